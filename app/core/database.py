"""
Database configuration and connection management
数据库配置和连接管理
"""

from sqlalchemy.ext.asyncio import create_async_engine, AsyncEngine, AsyncSession, async_sessionmaker
from sqlalchemy.orm import DeclarativeBase
from sqlalchemy.exc import DisconnectionError, OperationalError
from sqlalchemy import text
from app.core.config import settings
from app.core.exceptions import ConflictError, StoreUnavailableError
import logging
import time
from typing import AsyncGenerator, Optional
from contextlib import asynccontextmanager

logger = logging.getLogger(__name__)

# InnoDB deadlock (1213) and lock wait timeout (1205)
LOCK_CONFLICT_CODES = (1205, 1213)


class Base(DeclarativeBase):
    """Base class for all database models"""
    pass


class DatabaseManager:
    """Owns the engine and session factory for the running application"""

    def __init__(self, database_url: Optional[str] = None):
        self.database_url = database_url or settings.DATABASE_URL
        self.engine: Optional[AsyncEngine] = None
        self.session_factory: Optional[async_sessionmaker] = None
        self._last_health_check = 0.0

    def _engine_options(self) -> dict:
        if self.database_url.startswith("sqlite"):
            return {"echo": settings.DEBUG}
        return {
            "pool_size": settings.DB_POOL_SIZE,
            "max_overflow": settings.DB_MAX_OVERFLOW,
            "pool_timeout": settings.DB_POOL_TIMEOUT,
            "pool_recycle": settings.DB_POOL_RECYCLE,
            "pool_pre_ping": True,  # Validate connections before use
            "echo": settings.DEBUG,
        }

    async def initialize(self):
        """Create the engine and session factory and verify connectivity"""
        try:
            self.engine = create_async_engine(self.database_url, **self._engine_options())
            self.session_factory = async_sessionmaker(
                self.engine,
                class_=AsyncSession,
                expire_on_commit=False,
                autoflush=True,
            )
            if not await self._test_connection():
                raise StoreUnavailableError("Database connection unavailable")
            logger.info("Database manager initialized successfully")
        except Exception as e:
            logger.error(f"Failed to initialize database manager: {e}")
            raise

    async def _test_connection(self) -> bool:
        """Test database connection health"""
        if not self.engine:
            return False
        try:
            async with self.engine.connect() as conn:
                await conn.execute(text("SELECT 1"))
            self._last_health_check = time.time()
            return True
        except (DisconnectionError, OperationalError) as e:
            logger.warning(f"Database connection test failed: {e}")
            return False

    async def create_tables(self):
        """Create all tables known to the metadata"""
        from app.models import user, game, score  # noqa

        async with self.engine.begin() as conn:
            await conn.run_sync(Base.metadata.create_all)

    async def health_check(self) -> dict:
        """Database health report for monitoring"""
        is_healthy = await self._test_connection()
        return {
            "status": "healthy" if is_healthy else "unhealthy",
            "last_health_check": self._last_health_check,
        }

    async def close(self):
        """Close database connections"""
        if self.engine:
            await self.engine.dispose()
            self.engine = None
            self.session_factory = None
            logger.info("Database connections closed")


# Application database manager, configured at startup
db_manager = DatabaseManager()


async def init_db():
    """Initialize database connection and create tables if needed"""
    try:
        await db_manager.initialize()
        await db_manager.create_tables()
        logger.info("Database initialized successfully")
    except Exception as e:
        logger.error(f"Failed to initialize database: {e}")
        raise


async def get_db() -> AsyncGenerator[AsyncSession, None]:
    """Dependency that hands each request its own session"""
    if not db_manager.session_factory:
        raise StoreUnavailableError("Database manager not initialized")

    session = db_manager.session_factory()
    try:
        yield session
    except Exception:
        await session.rollback()
        raise
    finally:
        await session.close()


async def close_db():
    """Close database connections"""
    await db_manager.close()


def is_lock_conflict(error: OperationalError) -> bool:
    """True when the store aborted the transaction over a lock, not a lost connection"""
    args = getattr(error.orig, "args", None) or ()
    return bool(args) and args[0] in LOCK_CONFLICT_CODES


@asynccontextmanager
async def store_guard(operation: str):
    """
    Translate driver failures into service errors

    Lock conflicts become ConflictError so callers may retry the transaction;
    any other connection or operational failure becomes StoreUnavailableError.
    """
    try:
        yield
    except OperationalError as e:
        if is_lock_conflict(e):
            logger.warning(f"Lock conflict during {operation}: {e.orig}")
            raise ConflictError("数据冲突，请重试", {"operation": operation}) from e
        logger.error(f"Database unavailable during {operation}: {e}")
        raise StoreUnavailableError(
            "Database connection unavailable",
            {"operation": operation}
        ) from e
    except DisconnectionError as e:
        logger.error(f"Database unavailable during {operation}: {e}")
        raise StoreUnavailableError(
            "Database connection unavailable",
            {"operation": operation}
        ) from e
