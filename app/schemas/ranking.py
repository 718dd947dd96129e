"""
Ranking Pydantic schemas
排行榜数据验证和序列化模型
"""

from pydantic import BaseModel, Field
from typing import List, Optional
from datetime import datetime


class GameRankEntry(BaseModel):
    """Single entry of a per-game ranking"""
    rank: int = Field(..., description="排名")
    user_id: int = Field(..., description="用户ID")
    username: str = Field(..., description="用户名")
    display_name: Optional[str] = Field(None, description="显示名称")
    avatar_url: Optional[str] = Field(None, description="头像地址")
    score: int = Field(..., description="最高分")
    recorded_at: Optional[datetime] = Field(None, description="最高分记录时间")


class GlobalRankEntry(BaseModel):
    """Single entry of the global ranking"""
    rank: int = Field(..., description="排名")
    user_id: int = Field(..., description="用户ID")
    username: str = Field(..., description="用户名")
    display_name: Optional[str] = Field(None, description="显示名称")
    avatar_url: Optional[str] = Field(None, description="头像地址")
    total_score: int = Field(..., description="各游戏最高分之和")
    games_played: int = Field(..., description="参与的游戏数")
    highest_score: int = Field(..., description="单个游戏的最高分")


class GameRankingResponse(BaseModel):
    """Per-game ranking"""
    game: str = Field(..., description="游戏slug")
    entries: List[GameRankEntry] = Field(..., description="排行榜条目")
    total: int = Field(..., description="条目数")


class GlobalRankingResponse(BaseModel):
    """Global ranking"""
    entries: List[GlobalRankEntry] = Field(..., description="排行榜条目")
    total: int = Field(..., description="条目数")


class UserGameRank(BaseModel):
    """A user's position in one game"""
    user_id: int
    game: str
    rank: int
    score: int
