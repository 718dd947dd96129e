"""
Ranking service
排行榜服务 - 按游戏排行与全局排行，每次查询都基于当前数据实时计算
"""

import logging
from typing import List, Optional

from sqlalchemy import select, func, and_, or_
from sqlalchemy.ext.asyncio import AsyncSession

from app.core.config import settings
from app.core.database import store_guard
from app.core.exceptions import NotFoundError, ValidationError
from app.models.game import Game
from app.models.score import Score
from app.models.user import User
from app.schemas.ranking import GameRankEntry, GlobalRankEntry, UserGameRank

logger = logging.getLogger(__name__)


class RankingService:
    """Read-only leaderboard derivation over the score table"""

    def _validate_limit(self, limit: int) -> int:
        if isinstance(limit, bool) or not isinstance(limit, int):
            raise ValidationError("limit 必须是整数", {"limit": limit})
        if not 1 <= limit <= settings.RANKING_MAX_LIMIT:
            raise ValidationError(
                f"limit 必须在 1 到 {settings.RANKING_MAX_LIMIT} 之间",
                {"limit": limit}
            )
        return limit

    async def ranking_for_game(self, db: AsyncSession, game_slug: str, limit: int) -> List[GameRankEntry]:
        """
        Top scores of one game

        Ordered by score descending; equal scores keep insertion order
        (lower Score.id first). Ranks are row numbers starting at 1.
        Soft-deleted users are left out. An unknown slug yields [].

        Raises:
            ValidationError: limit outside [1, RANKING_MAX_LIMIT]
        """
        limit = self._validate_limit(limit)

        stmt = (
            select(
                Score.id,
                Score.score,
                Score.updated_at,
                User.id.label("user_id"),
                User.username,
                User.display_name,
                User.avatar_url,
            )
            .join(User, Score.user_id == User.id)
            .join(Game, Score.game_id == Game.id)
            .where(Game.slug == game_slug, User.is_active.is_(True))
            .order_by(Score.score.desc(), Score.id.asc())
            .limit(limit)
        )

        async with store_guard("ranking_for_game"):
            rows = (await db.execute(stmt)).all()

        return [
            GameRankEntry(
                rank=position,
                user_id=row.user_id,
                username=row.username,
                display_name=row.display_name,
                avatar_url=row.avatar_url,
                score=row.score,
                recorded_at=row.updated_at,
            )
            for position, row in enumerate(rows, start=1)
        ]

    async def global_ranking(self, db: AsyncSession, limit: int) -> List[GlobalRankEntry]:
        """
        Users ranked by the sum of their best scores across games

        Equal totals go to the user whose first score row is older.

        Raises:
            ValidationError: limit outside [1, RANKING_MAX_LIMIT]
        """
        limit = self._validate_limit(limit)

        total_score = func.sum(Score.score).label("total_score")
        games_played = func.count(func.distinct(Score.game_id)).label("games_played")
        highest_score = func.max(Score.score).label("highest_score")
        first_score_id = func.min(Score.id).label("first_score_id")

        stmt = (
            select(
                User.id.label("user_id"),
                User.username,
                User.display_name,
                User.avatar_url,
                total_score,
                games_played,
                highest_score,
                first_score_id,
            )
            .select_from(Score)
            .join(User, Score.user_id == User.id)
            .where(User.is_active.is_(True))
            .group_by(User.id, User.username, User.display_name, User.avatar_url)
            .order_by(total_score.desc(), first_score_id.asc())
            .limit(limit)
        )

        async with store_guard("global_ranking"):
            rows = (await db.execute(stmt)).all()

        return [
            GlobalRankEntry(
                rank=position,
                user_id=row.user_id,
                username=row.username,
                display_name=row.display_name,
                avatar_url=row.avatar_url,
                # SUM comes back as Decimal on some backends
                total_score=int(row.total_score),
                games_played=int(row.games_played),
                highest_score=int(row.highest_score),
            )
            for position, row in enumerate(rows, start=1)
        ]

    async def rank_in_game(self, db: AsyncSession, user_id: int, game_id: int) -> Optional[int]:
        """Position of a user in one game, or None if they have no visible score"""
        async with store_guard("rank_in_game"):
            own_stmt = (
                select(Score.id, Score.score)
                .join(User, Score.user_id == User.id)
                .where(
                    Score.user_id == user_id,
                    Score.game_id == game_id,
                    User.is_active.is_(True),
                )
            )
            own = (await db.execute(own_stmt)).first()
            if own is None:
                return None

            ahead_stmt = (
                select(func.count(Score.id))
                .join(User, Score.user_id == User.id)
                .where(
                    Score.game_id == game_id,
                    User.is_active.is_(True),
                    or_(
                        Score.score > own.score,
                        and_(Score.score == own.score, Score.id < own.id),
                    ),
                )
            )
            ahead = (await db.execute(ahead_stmt)).scalar_one()

        return ahead + 1

    async def get_user_rank_for_game(self, db: AsyncSession, game_slug: str, user_id: int) -> UserGameRank:
        """
        A user's rank and best score in one game

        Raises:
            NotFoundError: unknown game, or no visible score for the user
        """
        async with store_guard("get_user_rank_for_game"):
            stmt = (
                select(Score.score, Game.id.label("game_id"))
                .join(Game, Score.game_id == Game.id)
                .where(Game.slug == game_slug, Score.user_id == user_id)
            )
            row = (await db.execute(stmt)).first()

        rank = await self.rank_in_game(db, user_id, row.game_id) if row else None
        if rank is None:
            raise NotFoundError(
                "该用户在此游戏中没有排名",
                {"user_id": user_id, "game": game_slug}
            )

        return UserGameRank(user_id=user_id, game=game_slug, rank=rank, score=row.score)


# Global ranking service instance
ranking_service = RankingService()
