"""
Pytest configuration and fixtures
测试配置和固件
"""

import pytest
from typing import AsyncGenerator
from httpx import AsyncClient, ASGITransport
from sqlalchemy.ext.asyncio import create_async_engine, AsyncSession, async_sessionmaker
from sqlalchemy.pool import StaticPool

from app.core.database import Base, get_db
from app.main import app
from app.models import User, Game  # noqa: F401  registers all tables
from app.schemas.game import GameCreate
from app.schemas.user import AuthenticatedUser
from app.services.game import game_service
from app.services.user import user_service


# Test database URL (in-memory SQLite for fast testing)
TEST_DATABASE_URL = "sqlite+aiosqlite:///:memory:"

# Placeholder hash for users that never log in
UNUSED_PASSWORD_HASH = "not-a-bcrypt-hash"


def make_test_engine():
    return create_async_engine(
        TEST_DATABASE_URL,
        poolclass=StaticPool,
        connect_args={"check_same_thread": False},
        echo=False
    )


@pytest.fixture
async def test_engine():
    """Fresh in-memory database per test"""
    engine = make_test_engine()

    async with engine.begin() as conn:
        await conn.run_sync(Base.metadata.create_all)

    yield engine

    await engine.dispose()


@pytest.fixture
async def db_session(test_engine) -> AsyncGenerator[AsyncSession, None]:
    """Create test database session"""
    async_session = async_sessionmaker(
        test_engine, class_=AsyncSession, expire_on_commit=False
    )

    async with async_session() as session:
        yield session


@pytest.fixture
def override_get_db(db_session):
    """Override database dependency for testing"""
    async def _override_get_db():
        yield db_session

    app.dependency_overrides[get_db] = _override_get_db
    yield
    app.dependency_overrides.clear()


@pytest.fixture
async def client(override_get_db) -> AsyncGenerator[AsyncClient, None]:
    """HTTP client bound to the app with the test database"""
    transport = ASGITransport(app=app)
    async with AsyncClient(transport=transport, base_url="http://test") as ac:
        yield ac


@pytest.fixture
def make_user(db_session):
    """Factory creating active users directly in the store"""
    async def _make_user(username: str, **profile) -> User:
        return await user_service.create_user(
            db_session,
            username=username,
            password_hash=UNUSED_PASSWORD_HASH,
            **profile
        )
    return _make_user


@pytest.fixture
def make_game(db_session):
    """Factory creating catalog games"""
    async def _make_game(name: str) -> Game:
        return await game_service.create_game(db_session, GameCreate(name=name))
    return _make_game


@pytest.fixture
def principal_for():
    """Build the principal a verified token would yield for a user"""
    def _principal_for(user: User) -> AuthenticatedUser:
        return AuthenticatedUser(user_id=user.id, username=user.username)
    return _principal_for
