"""
Score Pydantic schemas
分数数据验证和序列化模型
"""

from pydantic import BaseModel, Field, StrictInt
from typing import Any, Dict, List, Optional
from datetime import datetime

from app.core.config import settings


class ScoreSubmit(BaseModel):
    """Score submission request"""
    game: str = Field(..., min_length=1, max_length=100, description="游戏标识（slug或名称）")
    score: StrictInt = Field(..., ge=0, le=settings.SCORE_MAX, description="分数，非负整数")
    metadata: Optional[Dict[str, Any]] = Field(None, description="附加信息")


class ScoreResponse(BaseModel):
    """Stored best score"""
    id: int
    user_id: int
    game_id: int
    game_slug: str
    score: int
    metadata: Optional[Dict[str, Any]] = None
    created_at: Optional[datetime] = None
    updated_at: Optional[datetime] = None


class SubmissionResult(BaseModel):
    """Outcome of a score submission"""
    score: ScoreResponse = Field(..., description="提交后保存的最高分")
    accepted: bool = Field(..., description="本次提交是否写入了存储")
    is_new_high_score: bool = Field(..., description="是否刷新个人最高分")
    previous_score: Optional[int] = Field(None, description="提交前的最高分")
    rank: Optional[int] = Field(None, description="提交后在该游戏中的排名")


class UserScore(BaseModel):
    """One of a user's best scores"""
    game_slug: str
    game_name: str
    score: int
    metadata: Optional[Dict[str, Any]] = None
    created_at: Optional[datetime] = None
    updated_at: Optional[datetime] = None


class UserScoresResponse(BaseModel):
    """All best scores of a user"""
    user_id: int
    scores: List[UserScore]
    total_games: int


class ScoreHistoryEntry(BaseModel):
    """One accepted improvement"""
    old_score: int
    new_score: int
    recorded_at: Optional[datetime] = None

    class Config:
        from_attributes = True
