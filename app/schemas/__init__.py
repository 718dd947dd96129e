# Pydantic schemas
from .user import (
    UserCreate, UserLogin, UserProfileUpdate, UserResponse,
    PublicUserProfile, UserToken, AuthenticatedUser
)
from .game import GameCreate, GameResponse, GameListResponse
from .score import (
    ScoreSubmit, ScoreResponse, SubmissionResult, UserScore,
    UserScoresResponse, ScoreHistoryEntry
)
from .ranking import (
    GameRankEntry, GlobalRankEntry, GameRankingResponse,
    GlobalRankingResponse, UserGameRank
)
from .common import ResponseStatus, BaseResponse, ErrorResponse, MessageResponse

__all__ = [
    # User schemas
    "UserCreate", "UserLogin", "UserProfileUpdate", "UserResponse",
    "PublicUserProfile", "UserToken", "AuthenticatedUser",

    # Game schemas
    "GameCreate", "GameResponse", "GameListResponse",

    # Score schemas
    "ScoreSubmit", "ScoreResponse", "SubmissionResult", "UserScore",
    "UserScoresResponse", "ScoreHistoryEntry",

    # Ranking schemas
    "GameRankEntry", "GlobalRankEntry", "GameRankingResponse",
    "GlobalRankingResponse", "UserGameRank",

    # Common schemas
    "ResponseStatus", "BaseResponse", "ErrorResponse", "MessageResponse",
]
