"""
Ranking API endpoints
排行榜API端点
"""

from fastapi import APIRouter, Depends, Query
from sqlalchemy.ext.asyncio import AsyncSession

from app.core.config import settings
from app.core.database import get_db
from app.services.ranking import ranking_service
from app.schemas.ranking import GameRankingResponse, GlobalRankingResponse, UserGameRank

router = APIRouter()


@router.get("", response_model=GlobalRankingResponse)
async def get_global_ranking(
    limit: int = Query(default=settings.RANKING_DEFAULT_LIMIT, description="返回条数 (1-100)"),
    db: AsyncSession = Depends(get_db)
):
    """
    全局排行榜

    按各游戏最高分之和降序，同时返回参与游戏数和单游戏最高分
    """
    entries = await ranking_service.global_ranking(db, limit)
    return GlobalRankingResponse(entries=entries, total=len(entries))


@router.get("/games/{game_slug}", response_model=GameRankingResponse)
async def get_game_ranking(
    game_slug: str,
    limit: int = Query(default=settings.RANKING_DEFAULT_LIMIT, description="返回条数 (1-100)"),
    db: AsyncSession = Depends(get_db)
):
    """按游戏排行榜，未知游戏返回空列表"""
    entries = await ranking_service.ranking_for_game(db, game_slug, limit)
    return GameRankingResponse(game=game_slug, entries=entries, total=len(entries))


@router.get("/games/{game_slug}/users/{user_id}", response_model=UserGameRank)
async def get_user_game_rank(
    game_slug: str,
    user_id: int,
    db: AsyncSession = Depends(get_db)
):
    """获取用户在某游戏中的排名"""
    return await ranking_service.get_user_rank_for_game(db, game_slug, user_id)
