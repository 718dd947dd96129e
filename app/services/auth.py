"""
Authentication service
用户认证服务 - 密码哈希、JWT签发与校验、注册与登录
"""

from datetime import datetime, timedelta, timezone
from typing import Optional
import logging
import bcrypt

from sqlalchemy.ext.asyncio import AsyncSession
from jose import JWTError, jwt

from app.core.config import settings
from app.core.database import store_guard
from app.core.exceptions import AuthenticationError, InvalidTokenError, ValidationError
from app.models.user import User
from app.schemas.user import AuthenticatedUser, UserCreate, UserLogin, UserResponse, UserToken
from app.services.user import user_service
from app.utils.security import input_validator

logger = logging.getLogger(__name__)


class AuthService:
    """Credential issuance and verification"""

    def hash_password(self, password: str) -> str:
        """Hash password using bcrypt directly"""
        # bcrypt has a 72-byte limit
        password_bytes = password.encode('utf-8')[:72]
        salt = bcrypt.gensalt()
        return bcrypt.hashpw(password_bytes, salt).decode('utf-8')

    def verify_password(self, plain_password: str, hashed_password: str) -> bool:
        """Verify password against hash"""
        try:
            password_bytes = plain_password.encode('utf-8')[:72]
            return bcrypt.checkpw(password_bytes, hashed_password.encode('utf-8'))
        except ValueError:
            # Malformed stored hash
            return False

    def issue_token(self, claims: dict, expires_delta: Optional[timedelta] = None) -> str:
        """Sign a JWT carrying the given claims"""
        to_encode = claims.copy()

        if expires_delta is None:
            expires_delta = timedelta(minutes=settings.ACCESS_TOKEN_EXPIRE_MINUTES)
        to_encode.update({"exp": datetime.now(timezone.utc) + expires_delta})

        return jwt.encode(to_encode, settings.SECRET_KEY, algorithm=settings.ALGORITHM)

    def verify_token(self, token: str) -> dict:
        """
        Verify a JWT and return its claims

        Raises:
            InvalidTokenError: bad signature, expired, or missing subject
        """
        try:
            payload = jwt.decode(token, settings.SECRET_KEY, algorithms=[settings.ALGORITHM])
        except JWTError as e:
            raise InvalidTokenError("无效或已过期的令牌") from e

        if payload.get("sub") is None or payload.get("username") is None:
            raise InvalidTokenError("令牌缺少用户信息")
        return payload

    def _token_response(self, user: User) -> UserToken:
        access_token = self.issue_token({"sub": str(user.id), "username": user.username})
        return UserToken(
            access_token=access_token,
            token_type="bearer",
            expires_in=settings.ACCESS_TOKEN_EXPIRE_MINUTES * 60,
            user=UserResponse.model_validate(user)
        )

    def _validate_registration_data(self, user_data: UserCreate) -> None:
        """Re-check registration input for callers that bypass the API schema"""
        if not input_validator.validate_username(user_data.username):
            raise ValidationError(
                "用户名格式无效：只能包含字母、数字和下划线，长度3-20字符",
                {"field": "username"}
            )
        if user_data.email is not None and not input_validator.validate_email(user_data.email):
            raise ValidationError("邮箱格式无效", {"field": "email"})
        if not input_validator.validate_password(user_data.password):
            raise ValidationError("密码长度必须在6-100字符之间", {"field": "password"})

    async def register(self, db: AsyncSession, user_data: UserCreate) -> UserToken:
        """
        Register a new user and log them in

        Raises:
            ValidationError: malformed username, email or password
            ConflictError: username or email already taken
        """
        self._validate_registration_data(user_data)

        user = await user_service.create_user(
            db,
            username=user_data.username,
            password_hash=self.hash_password(user_data.password),
            email=user_data.email,
            display_name=user_data.display_name,
            avatar_url=user_data.avatar_url,
            bio=user_data.bio,
        )

        logger.info(f"User registered successfully: {user.username}")
        return self._token_response(user)

    async def login(self, db: AsyncSession, login_data: UserLogin) -> UserToken:
        """
        Check credentials against an active user and issue a token

        Raises:
            AuthenticationError: unknown user or wrong password
        """
        user = await user_service.find_active_user_by_username(db, login_data.username)

        if user is None or not self.verify_password(login_data.password, user.password_hash):
            logger.warning(f"Failed login attempt for {login_data.username}")
            raise AuthenticationError("用户名或密码错误")

        async with store_guard("login"):
            user.last_login = datetime.now(timezone.utc)
            await db.commit()
            await db.refresh(user)

        logger.info(f"User logged in successfully: {user.username}")
        return self._token_response(user)

    async def authenticate(self, db: AsyncSession, token: str) -> AuthenticatedUser:
        """
        Resolve a bearer token to the principal of an active user

        Raises:
            InvalidTokenError: token invalid or user no longer active
        """
        payload = self.verify_token(token)

        try:
            user_id = int(payload["sub"])
        except (TypeError, ValueError) as e:
            raise InvalidTokenError("令牌用户信息无效") from e

        user = await user_service.find_active_user_by_id(db, user_id)
        if user is None:
            logger.warning(f"Token for missing or inactive user: {user_id}")
            raise InvalidTokenError("用户不存在或已停用")

        return AuthenticatedUser(user_id=user.id, username=user.username)


# Global auth service instance
auth_service = AuthService()
