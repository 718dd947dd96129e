"""
API v1 router
API v1 路由配置
"""

from fastapi import APIRouter

# Import route modules
from app.api.v1.endpoints import auth, users, games, scores, rankings, health

api_router = APIRouter()

# Include endpoint routers
api_router.include_router(health.router, tags=["health"])
api_router.include_router(auth.router, prefix="/auth", tags=["authentication"])
api_router.include_router(users.router, prefix="/users", tags=["users"])
api_router.include_router(games.router, prefix="/games", tags=["games"])
api_router.include_router(scores.router, prefix="/scores", tags=["scores"])
api_router.include_router(rankings.router, prefix="/rankings", tags=["rankings"])
