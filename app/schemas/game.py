"""
Game Pydantic schemas
游戏数据验证和序列化模型
"""

from pydantic import BaseModel, Field
from typing import List, Optional
from datetime import datetime


class GameCreate(BaseModel):
    """Game creation schema; the slug is derived from the name"""
    name: str = Field(..., min_length=1, max_length=100, description="游戏名称")
    description: Optional[str] = Field(None, max_length=1000, description="游戏描述")


class GameResponse(BaseModel):
    """Game response schema"""
    id: int
    slug: str
    name: str
    description: Optional[str] = None
    created_at: Optional[datetime] = None

    class Config:
        from_attributes = True


class GameListResponse(BaseModel):
    """All known games"""
    games: List[GameResponse]
    total: int
