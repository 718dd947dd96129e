"""
Authentication API endpoints
用户认证API端点
"""

from fastapi import APIRouter, Depends, status
from fastapi.security import HTTPBearer, HTTPAuthorizationCredentials
from sqlalchemy.ext.asyncio import AsyncSession

from app.core.database import get_db
from app.core.exceptions import InvalidTokenError
from app.services.auth import auth_service
from app.services.user import user_service
from app.schemas.common import MessageResponse
from app.schemas.user import (
    AuthenticatedUser, UserCreate, UserLogin, UserProfileUpdate, UserResponse, UserToken
)

router = APIRouter()
# auto_error=False 使得 HTTPBearer 在没有 token 时不会自动返回 403
# 我们手动处理，统一返回 401 以保持一致性
security = HTTPBearer(auto_error=False)


async def get_current_user(
    credentials: HTTPAuthorizationCredentials = Depends(security),
    db: AsyncSession = Depends(get_db)
) -> AuthenticatedUser:
    """Dependency resolving the bearer token to an explicit principal"""
    if credentials is None:
        raise InvalidTokenError("未提供认证凭据")
    return await auth_service.authenticate(db, credentials.credentials)


@router.post("/register", response_model=UserToken, status_code=status.HTTP_201_CREATED)
async def register(
    user_data: UserCreate,
    db: AsyncSession = Depends(get_db)
):
    """
    Register a new user
    用户注册端点 - 返回令牌和用户信息

    - 用户名: 3-20个字母、数字或下划线
    - 邮箱可选，缺省时由用户名生成
    - 用户名或邮箱已存在时返回 409
    """
    return await auth_service.register(db, user_data)


@router.post("/login", response_model=UserToken)
async def login(
    login_data: UserLogin,
    db: AsyncSession = Depends(get_db)
):
    """
    User login
    用户登录端点
    """
    return await auth_service.login(db, login_data)


@router.get("/profile", response_model=UserResponse)
async def get_profile(
    current_user: AuthenticatedUser = Depends(get_current_user),
    db: AsyncSession = Depends(get_db)
):
    """获取当前用户信息"""
    user = await user_service.get_active_user(db, current_user.user_id)
    return UserResponse.model_validate(user)


@router.put("/profile", response_model=UserResponse)
async def update_profile(
    updates: UserProfileUpdate,
    current_user: AuthenticatedUser = Depends(get_current_user),
    db: AsyncSession = Depends(get_db)
):
    """更新显示名称、头像和简介，未提供的字段保持不变"""
    user = await user_service.update_profile(db, current_user.user_id, updates)
    return UserResponse.model_validate(user)


@router.delete("/profile", response_model=MessageResponse)
async def deactivate_account(
    current_user: AuthenticatedUser = Depends(get_current_user),
    db: AsyncSession = Depends(get_db)
):
    """停用当前账号（软删除），该用户将从所有排行榜中移除"""
    await user_service.deactivate_user(db, current_user.user_id)
    return MessageResponse(message="账号已停用")


@router.get("/verify")
async def verify_token(
    current_user: AuthenticatedUser = Depends(get_current_user)
):
    """验证令牌有效性"""
    return {
        "valid": True,
        "user_id": current_user.user_id,
        "username": current_user.username
    }
