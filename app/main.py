"""
FastAPI main application entry point
排行榜服务主应用入口
"""

from fastapi import FastAPI, Request
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse
from contextlib import asynccontextmanager

from app.core.config import settings
from app.core.database import init_db, close_db
from app.core.exceptions import AuthenticationError, ScoreboardError, StoreUnavailableError
from app.api.v1.api import api_router
from app.middleware.request_logging import LoggingMiddleware
from app.schemas.common import ErrorResponse
import logging
import os

# Configure logging - 同时输出到控制台和文件
log_level = getattr(logging, settings.LOG_LEVEL.upper())
log_format = settings.LOG_FORMAT

log_dir = os.path.join(os.path.dirname(os.path.dirname(__file__)), 'logs')
os.makedirs(log_dir, exist_ok=True)
log_file = os.path.join(log_dir, 'app.log')

logging.basicConfig(
    level=log_level,
    format=log_format,
    handlers=[
        logging.StreamHandler(),
        logging.FileHandler(log_file, encoding='utf-8')
    ]
)
logger = logging.getLogger(__name__)

# 减少 SQLAlchemy 的日志噪音
logging.getLogger("sqlalchemy.engine").setLevel(logging.WARNING)
logging.getLogger("sqlalchemy.pool").setLevel(logging.WARNING)


@asynccontextmanager
async def lifespan(app: FastAPI):
    """Application lifespan events"""
    logger.info("Starting retro scoreboard service...")
    await init_db()
    logger.info("Application startup completed")

    yield

    logger.info("Shutting down application...")
    await close_db()
    logger.info("Application shutdown completed")


app = FastAPI(
    title="Retro Scoreboard",
    description="Score submission and leaderboard service",
    version="1.0.0",
    lifespan=lifespan,
    # 禁用尾部斜杠重定向，避免 307 Redirect 导致 Authorization header 丢失
    redirect_slashes=False
)

app.add_middleware(LoggingMiddleware)

app.add_middleware(
    CORSMiddleware,
    allow_origins=settings.CORS_ORIGINS,
    allow_credentials=True,
    allow_methods=["*"],
    allow_headers=["*"],
)


@app.exception_handler(ScoreboardError)
async def scoreboard_error_handler(request: Request, exc: ScoreboardError):
    """Render service errors in the common error envelope"""
    if isinstance(exc, StoreUnavailableError):
        logger.error(f"Store unavailable on {request.method} {request.url.path}: {exc.details}")
        message = "服务暂时不可用，请稍后重试"
        details = None
    else:
        message = exc.message
        details = exc.details or None

    headers = {"WWW-Authenticate": "Bearer"} if isinstance(exc, AuthenticationError) else None
    body = ErrorResponse(message=message, error_code=exc.error_code, error_details=details)
    return JSONResponse(
        status_code=exc.status_code,
        content=body.model_dump(mode="json"),
        headers=headers
    )


# Include API routes
app.include_router(api_router, prefix="/api/v1")


@app.get("/")
async def root():
    """Service status endpoint"""
    return {
        "message": "Retro Scoreboard API",
        "status": "running",
        "version": "1.0.0"
    }
