"""
User profile API endpoints
用户公开资料API端点
"""

from fastapi import APIRouter, Depends
from sqlalchemy.ext.asyncio import AsyncSession

from app.core.database import get_db
from app.core.exceptions import NotFoundError
from app.services.user import user_service
from app.schemas.user import PublicUserProfile

router = APIRouter()


@router.get("/{username}", response_model=PublicUserProfile)
async def get_user(
    username: str,
    db: AsyncSession = Depends(get_db)
):
    """按用户名获取公开资料，停用的账号返回 404"""
    user = await user_service.find_active_user_by_username(db, username)
    if user is None:
        raise NotFoundError("用户不存在", {"username": username})
    return PublicUserProfile.model_validate(user)
