# Database models
from .user import User
from .game import Game
from .score import Score, ScoreHistory

__all__ = [
    "User",
    "Game",
    "Score", "ScoreHistory",
]
