"""
Score API endpoints
分数API端点
"""

import logging
from typing import List

from fastapi import APIRouter, Depends, Query, status
from sqlalchemy.ext.asyncio import AsyncSession

from app.core.config import settings
from app.core.database import get_db
from app.services.score import score_service
from app.services.ranking import ranking_service
from app.schemas.ranking import GameRankingResponse
from app.schemas.score import ScoreHistoryEntry, ScoreSubmit, SubmissionResult, UserScoresResponse
from app.schemas.user import AuthenticatedUser
from app.api.v1.endpoints.auth import get_current_user

logger = logging.getLogger(__name__)

router = APIRouter()


@router.post("", response_model=SubmissionResult, status_code=status.HTTP_201_CREATED)
async def submit_score(
    submission: ScoreSubmit,
    current_user: AuthenticatedUser = Depends(get_current_user),
    db: AsyncSession = Depends(get_db)
):
    """
    提交分数（游戏必须已存在）

    - 首次提交：保存分数
    - 高于当前最高分：更新并记录历史
    - 不高于当前最高分：不做修改，返回已有最高分
    """
    return await score_service.submit_score(
        db, current_user, submission.game, submission.score, submission.metadata
    )


@router.post("/auto-create", response_model=SubmissionResult, status_code=status.HTTP_201_CREATED)
async def submit_score_creating_game(
    submission: ScoreSubmit,
    current_user: AuthenticatedUser = Depends(get_current_user),
    db: AsyncSession = Depends(get_db)
):
    """提交分数，游戏不存在时自动创建"""
    return await score_service.submit_score_creating_game(
        db, current_user, submission.game, submission.score, submission.metadata
    )


@router.get("/user/{user_id}", response_model=UserScoresResponse)
async def get_user_scores(
    user_id: int,
    db: AsyncSession = Depends(get_db)
):
    """获取用户在各游戏中的最高分，按分数降序"""
    scores = await score_service.get_scores_for_user(db, user_id)
    return UserScoresResponse(user_id=user_id, scores=scores, total_games=len(scores))


@router.get("/me/{game_slug}/history", response_model=List[ScoreHistoryEntry])
async def get_my_score_history(
    game_slug: str,
    current_user: AuthenticatedUser = Depends(get_current_user),
    db: AsyncSession = Depends(get_db)
):
    """获取当前用户在某游戏中的最高分变更记录"""
    return await score_service.get_score_history(db, current_user.user_id, game_slug)


@router.get("/game/{game_slug}", response_model=GameRankingResponse)
async def get_game_scores(
    game_slug: str,
    limit: int = Query(default=settings.RANKING_DEFAULT_LIMIT, description="返回条数 (1-100)"),
    db: AsyncSession = Depends(get_db)
):
    """获取某游戏的最高分排行"""
    entries = await ranking_service.ranking_for_game(db, game_slug, limit)
    return GameRankingResponse(game=game_slug, entries=entries, total=len(entries))
