"""
Game model
游戏数据模型
"""

from sqlalchemy import Column, String, Integer, DateTime, Text
from sqlalchemy.sql import func
from app.core.database import Base


class Game(Base):
    """A game that scores can be submitted for"""

    __tablename__ = "games"

    id = Column(Integer, primary_key=True, autoincrement=True)
    slug = Column(String(100), unique=True, index=True, nullable=False)
    name = Column(String(100), nullable=False)
    description = Column(Text, nullable=True)

    created_at = Column(DateTime(timezone=True), server_default=func.now())

    def __repr__(self):
        return f"<Game(id={self.id}, slug={self.slug})>"
