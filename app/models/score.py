"""
Score models
分数数据模型 - 每个用户每个游戏只保存最高分，改进记录写入历史表
"""

from sqlalchemy import Column, Integer, DateTime, JSON, ForeignKey, UniqueConstraint, Index
from sqlalchemy.sql import func
from sqlalchemy.orm import relationship
from app.core.database import Base


class Score(Base):
    """Personal best of one user for one game"""

    __tablename__ = "scores"
    __table_args__ = (
        UniqueConstraint("user_id", "game_id", name="uq_scores_user_game"),
        Index("ix_scores_game_score", "game_id", "score"),
    )

    # Auto-increment id doubles as the insertion-order tie-break in rankings
    id = Column(Integer, primary_key=True, autoincrement=True)
    user_id = Column(Integer, ForeignKey("users.id"), nullable=False, index=True)
    game_id = Column(Integer, ForeignKey("games.id"), nullable=False, index=True)

    score = Column(Integer, nullable=False)
    # "metadata" is reserved on declarative classes
    score_metadata = Column("metadata", JSON, default=dict, nullable=True)

    # Timestamps
    created_at = Column(DateTime(timezone=True), server_default=func.now())
    updated_at = Column(DateTime(timezone=True), server_default=func.now())

    # Relationships
    user = relationship("User", foreign_keys=[user_id])
    game = relationship("Game", foreign_keys=[game_id])

    def __repr__(self):
        return f"<Score(id={self.id}, user_id={self.user_id}, game_id={self.game_id}, score={self.score})>"


class ScoreHistory(Base):
    """Append-only log of accepted improvements"""

    __tablename__ = "score_history"

    id = Column(Integer, primary_key=True, autoincrement=True)
    score_id = Column(Integer, ForeignKey("scores.id"), nullable=False, index=True)
    old_score = Column(Integer, nullable=False)
    new_score = Column(Integer, nullable=False)

    recorded_at = Column(DateTime(timezone=True), server_default=func.now())

    score = relationship("Score", foreign_keys=[score_id])

    def __repr__(self):
        return f"<ScoreHistory(score_id={self.score_id}, {self.old_score} -> {self.new_score})>"
