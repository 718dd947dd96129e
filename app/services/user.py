"""
User store
用户存储服务 - 用户创建、查询、资料更新与停用（软删除）
"""

import logging
from typing import Optional

from sqlalchemy import select
from sqlalchemy.exc import IntegrityError
from sqlalchemy.ext.asyncio import AsyncSession

from app.core.config import settings
from app.core.database import store_guard
from app.core.exceptions import ConflictError, NotFoundError
from app.models.user import User
from app.schemas.user import UserProfileUpdate
from app.utils.security import input_validator

logger = logging.getLogger(__name__)


class UserService:
    """CRUD over user identity and profile records"""

    def default_email(self, username: str) -> str:
        return f"{username}@{settings.DEFAULT_EMAIL_DOMAIN}"

    async def create_user(
        self,
        db: AsyncSession,
        username: str,
        password_hash: str,
        email: Optional[str] = None,
        display_name: Optional[str] = None,
        avatar_url: Optional[str] = None,
        bio: Optional[str] = None,
    ) -> User:
        """
        Create a user, enforcing unique username and email

        Raises:
            ConflictError: username or email already taken
        """
        email = email or self.default_email(username)

        async with store_guard("create_user"):
            # Inactive accounts keep their username and email reserved
            result = await db.execute(select(User.id).where(User.username == username))
            if result.scalar_one_or_none() is not None:
                raise ConflictError("用户名已存在", {"field": "username"})

            result = await db.execute(select(User.id).where(User.email == email))
            if result.scalar_one_or_none() is not None:
                raise ConflictError("邮箱已被注册", {"field": "email"})

            db_user = User(
                username=username,
                email=email,
                password_hash=password_hash,
                display_name=input_validator.sanitize_input(display_name, 100),
                avatar_url=input_validator.sanitize_input(avatar_url, 500),
                bio=input_validator.sanitize_input(bio, 1000),
            )
            db.add(db_user)
            try:
                await db.commit()
            except IntegrityError as e:
                await db.rollback()
                logger.warning(f"Concurrent registration for {username}: {e}")
                raise ConflictError("用户名或邮箱已存在") from e
            await db.refresh(db_user)

        logger.info(f"User created: {username} (id={db_user.id})")
        return db_user

    async def find_active_user_by_id(self, db: AsyncSession, user_id: int) -> Optional[User]:
        async with store_guard("find_active_user_by_id"):
            stmt = select(User).where(User.id == user_id, User.is_active.is_(True))
            result = await db.execute(stmt)
            return result.scalar_one_or_none()

    async def find_active_user_by_username(self, db: AsyncSession, username: str) -> Optional[User]:
        async with store_guard("find_active_user_by_username"):
            stmt = select(User).where(User.username == username, User.is_active.is_(True))
            result = await db.execute(stmt)
            return result.scalar_one_or_none()

    async def get_active_user(self, db: AsyncSession, user_id: int) -> User:
        """Like find_active_user_by_id but raises NotFoundError"""
        user = await self.find_active_user_by_id(db, user_id)
        if user is None:
            raise NotFoundError("用户不存在", {"user_id": user_id})
        return user

    async def update_profile(self, db: AsyncSession, user_id: int, updates: UserProfileUpdate) -> User:
        """Change display fields; fields left as None keep their value"""
        user = await self.get_active_user(db, user_id)

        async with store_guard("update_profile"):
            if updates.display_name is not None:
                user.display_name = input_validator.sanitize_input(updates.display_name, 100)
            if updates.avatar_url is not None:
                user.avatar_url = input_validator.sanitize_input(updates.avatar_url, 500)
            if updates.bio is not None:
                user.bio = input_validator.sanitize_input(updates.bio, 1000)

            await db.commit()
            await db.refresh(user)

        logger.info(f"Profile updated for user {user_id}")
        return user

    async def deactivate_user(self, db: AsyncSession, user_id: int) -> User:
        """Soft delete: the user disappears from lookups and rankings"""
        user = await self.get_active_user(db, user_id)

        async with store_guard("deactivate_user"):
            user.is_active = False
            await db.commit()
            await db.refresh(user)

        logger.info(f"User deactivated: {user_id}")
        return user


# Global user service instance
user_service = UserService()
