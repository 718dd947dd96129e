"""
Score service
分数服务 - 每个用户每个游戏只保留最高分，提交更高分时记录历史
"""

import logging
from datetime import datetime, timezone
from typing import Any, Dict, List, Optional, Tuple

from sqlalchemy import select
from sqlalchemy.exc import IntegrityError
from sqlalchemy.ext.asyncio import AsyncSession

from app.core.config import settings
from app.core.database import store_guard
from app.core.exceptions import ConflictError, ValidationError
from app.models.game import Game
from app.models.score import Score, ScoreHistory
from app.schemas.score import ScoreHistoryEntry, ScoreResponse, SubmissionResult, UserScore
from app.schemas.user import AuthenticatedUser
from app.services.game import game_service
from app.services.ranking import ranking_service
from app.services.user import user_service

logger = logging.getLogger(__name__)


class ScoreService:
    """Best-score bookkeeping per user per game"""

    def _validate_score(self, score: Any) -> int:
        if isinstance(score, bool) or not isinstance(score, int):
            raise ValidationError("分数必须是整数", {"score": score})
        if score < 0:
            raise ValidationError("分数不能为负数", {"score": score})
        if score > settings.SCORE_MAX:
            raise ValidationError(
                f"分数不能超过 {settings.SCORE_MAX}",
                {"score": score, "max": settings.SCORE_MAX}
            )
        return score

    async def _find_score_for_update(self, db: AsyncSession, user_id: int, game_id: int) -> Optional[Score]:
        """Load and row-lock the score of one (user, game) pair"""
        stmt = (
            select(Score)
            .where(Score.user_id == user_id, Score.game_id == game_id)
            .with_for_update()
            .execution_options(populate_existing=True)
        )
        result = await db.execute(stmt)
        return result.scalar_one_or_none()

    async def _apply_submission(
        self,
        db: AsyncSession,
        user_id: int,
        game: Game,
        score: int,
        metadata: Optional[Dict[str, Any]]
    ) -> Tuple[Score, bool, Optional[int]]:
        """
        Keep-best reconciliation inside the caller's transaction

        Returns the stored row, whether it was written, and the best score
        before this submission (None on first submission).
        """
        existing = await self._find_score_for_update(db, user_id, game.id)

        if existing is None:
            row = Score(
                user_id=user_id,
                game_id=game.id,
                score=score,
                score_metadata=metadata or {}
            )
            db.add(row)
            # A concurrent first submission surfaces here as IntegrityError,
            # or as a deadlock on InnoDB gap locks
            await db.flush()
            return row, True, None

        previous = existing.score
        if score <= previous:
            return existing, False, previous

        existing.score = score
        existing.updated_at = datetime.now(timezone.utc)
        if metadata is not None:
            existing.score_metadata = metadata
        db.add(ScoreHistory(score_id=existing.id, old_score=previous, new_score=score))
        await db.flush()
        return existing, True, previous

    async def _submit(
        self,
        db: AsyncSession,
        principal: AuthenticatedUser,
        game_identifier: str,
        score: Any,
        metadata: Optional[Dict[str, Any]],
        create_missing_game: bool
    ) -> SubmissionResult:
        score = self._validate_score(score)
        attempts = settings.SCORE_CONFLICT_RETRIES + 1

        for attempt in range(1, attempts + 1):
            try:
                async with store_guard("submit_score"):
                    game = await game_service.resolve_game(
                        db, game_identifier, create_missing=create_missing_game
                    )
                    row, accepted, previous = await self._apply_submission(
                        db, principal.user_id, game, score, metadata
                    )
                    await db.commit()
                break
            except (IntegrityError, ConflictError) as e:
                # Unique-key race on insert, or a deadlock between racing inserts
                await db.rollback()
                if attempt >= attempts:
                    logger.error(
                        f"Score submission conflict not resolved after {attempts} attempts: "
                        f"user={principal.user_id} game={game_identifier}"
                    )
                    raise ConflictError(
                        "分数提交冲突，请重试",
                        {"game": game_identifier}
                    ) from e
                logger.warning(
                    f"Concurrent score write for user={principal.user_id} "
                    f"game={game_identifier}, retrying on update path"
                )
            except Exception:
                await db.rollback()
                raise

        async with store_guard("submit_score"):
            await db.refresh(row)
        rank = await ranking_service.rank_in_game(db, principal.user_id, game.id)

        if accepted:
            logger.info(
                f"New best score: user={principal.user_id} game={game.slug} "
                f"{previous} -> {row.score}"
            )

        return SubmissionResult(
            score=ScoreResponse(
                id=row.id,
                user_id=row.user_id,
                game_id=row.game_id,
                game_slug=game.slug,
                score=row.score,
                metadata=row.score_metadata,
                created_at=row.created_at,
                updated_at=row.updated_at,
            ),
            accepted=accepted,
            is_new_high_score=accepted,
            previous_score=previous,
            rank=rank,
        )

    async def submit_score(
        self,
        db: AsyncSession,
        principal: AuthenticatedUser,
        game_identifier: str,
        score: Any,
        metadata: Optional[Dict[str, Any]] = None
    ) -> SubmissionResult:
        """
        Submit a score for an existing game

        A first submission inserts the row; a strictly higher score
        replaces it and appends a history entry; anything else leaves the
        store untouched.

        Raises:
            ValidationError: score negative, above SCORE_MAX, or not an integer
            NotFoundError: game does not exist
            ConflictError: insert race or lock conflict could not be reconciled
        """
        return await self._submit(db, principal, game_identifier, score, metadata, create_missing_game=False)

    async def submit_score_creating_game(
        self,
        db: AsyncSession,
        principal: AuthenticatedUser,
        game_identifier: str,
        score: Any,
        metadata: Optional[Dict[str, Any]] = None
    ) -> SubmissionResult:
        """Same as submit_score, but an unseen game is created on the fly"""
        return await self._submit(db, principal, game_identifier, score, metadata, create_missing_game=True)

    async def get_scores_for_user(self, db: AsyncSession, user_id: int) -> List[UserScore]:
        """
        Best scores of a user across games, highest first

        Raises:
            NotFoundError: user unknown or deactivated
        """
        await user_service.get_active_user(db, user_id)

        stmt = (
            select(Score, Game.slug, Game.name)
            .join(Game, Score.game_id == Game.id)
            .where(Score.user_id == user_id)
            .order_by(Score.score.desc(), Score.id.asc())
        )
        async with store_guard("get_scores_for_user"):
            rows = (await db.execute(stmt)).all()

        return [
            UserScore(
                game_slug=slug,
                game_name=name,
                score=row.score,
                metadata=row.score_metadata,
                created_at=row.created_at,
                updated_at=row.updated_at,
            )
            for row, slug, name in rows
        ]

    async def get_score_history(self, db: AsyncSession, user_id: int, game_slug: str) -> List[ScoreHistoryEntry]:
        """Improvements of one user's score in one game, oldest first"""
        stmt = (
            select(ScoreHistory)
            .join(Score, ScoreHistory.score_id == Score.id)
            .join(Game, Score.game_id == Game.id)
            .where(Score.user_id == user_id, Game.slug == game_slug)
            .order_by(ScoreHistory.id.asc())
        )
        async with store_guard("get_score_history"):
            entries = (await db.execute(stmt)).scalars().all()

        return [ScoreHistoryEntry.model_validate(entry) for entry in entries]


# Global score service instance
score_service = ScoreService()
