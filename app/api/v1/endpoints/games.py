"""
Game catalog API endpoints
游戏目录API端点
"""

from fastapi import APIRouter, Depends, status
from sqlalchemy.ext.asyncio import AsyncSession

from app.core.database import get_db
from app.services.game import game_service
from app.schemas.game import GameCreate, GameListResponse, GameResponse
from app.schemas.user import AuthenticatedUser
from app.api.v1.endpoints.auth import get_current_user

router = APIRouter()


@router.get("", response_model=GameListResponse)
async def list_games(db: AsyncSession = Depends(get_db)):
    """获取所有游戏"""
    games = await game_service.list_games(db)
    return GameListResponse(
        games=[GameResponse.model_validate(game) for game in games],
        total=len(games)
    )


@router.post("", response_model=GameResponse, status_code=status.HTTP_201_CREATED)
async def create_game(
    game_data: GameCreate,
    current_user: AuthenticatedUser = Depends(get_current_user),
    db: AsyncSession = Depends(get_db)
):
    """
    创建游戏

    slug 由名称生成（小写，非字母数字字符替换为 '-'），重复时返回 409
    """
    game = await game_service.create_game(db, game_data)
    return GameResponse.model_validate(game)


@router.get("/{game_slug}", response_model=GameResponse)
async def get_game(game_slug: str, db: AsyncSession = Depends(get_db)):
    """获取游戏详情"""
    game = await game_service.get_game(db, game_slug)
    return GameResponse.model_validate(game)
