"""
Health check endpoints
健康检查端点
"""

from fastapi import APIRouter

from app.core.database import db_manager

router = APIRouter()


@router.get("/health")
async def health_check():
    """
    Liveness and database check
    服务与数据库健康检查
    """
    if db_manager.engine is None:
        database = {"status": "not_initialized"}
    else:
        database = await db_manager.health_check()

    return {
        "status": "healthy" if database["status"] == "healthy" else "degraded",
        "service": "retro-scoreboard",
        "version": "1.0.0",
        "database": database,
    }
