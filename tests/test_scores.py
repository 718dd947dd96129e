"""
Score submission tests
分数提交测试
"""

import pytest
from contextlib import asynccontextmanager
from hypothesis import given, strategies as st, settings, HealthCheck
from sqlalchemy import select, func
from sqlalchemy.exc import OperationalError
from sqlalchemy.ext.asyncio import AsyncSession, async_sessionmaker

from app.core.config import settings as app_settings
from app.core.database import Base, store_guard
from app.core.exceptions import ConflictError, NotFoundError, StoreUnavailableError, ValidationError
from app.models.game import Game
from app.models.score import Score, ScoreHistory
from app.schemas.game import GameCreate
from app.schemas.user import AuthenticatedUser
from app.services.game import game_service, slugify
from app.services.score import score_service
from app.services.user import user_service

from conftest import make_test_engine, UNUSED_PASSWORD_HASH


async def count_rows(db: AsyncSession, model) -> int:
    result = await db.execute(select(func.count()).select_from(model))
    return result.scalar_one()


class TestSlugify:
    """slug 生成测试"""

    def test_lowercases_and_hyphenates(self):
        assert slugify("Space Invaders") == "space-invaders"
        assert slugify("Pac-Man!!") == "pac-man"
        assert slugify("  Street   Fighter II  ") == "street-fighter-ii"

    def test_only_symbols_gives_empty_slug(self):
        assert slugify("!!!") == ""


class TestSubmitScore:
    """分数提交服务测试"""

    @pytest.mark.asyncio
    async def test_first_submission_inserts_row(self, db_session, make_user, make_game, principal_for):
        user = await make_user("player1")
        await make_game("Tetris")

        result = await score_service.submit_score(
            db_session, principal_for(user), "tetris", 1200, {"level": 7}
        )

        assert result.accepted is True
        assert result.is_new_high_score is True
        assert result.previous_score is None
        assert result.rank == 1
        assert result.score.score == 1200
        assert result.score.game_slug == "tetris"
        assert result.score.metadata == {"level": 7}
        assert result.score.created_at is not None
        assert await count_rows(db_session, Score) == 1
        assert await count_rows(db_session, ScoreHistory) == 0

    @pytest.mark.asyncio
    async def test_higher_score_updates_and_records_history(self, db_session, make_user, make_game, principal_for):
        user = await make_user("player1")
        await make_game("Tetris")
        principal = principal_for(user)

        await score_service.submit_score(db_session, principal, "tetris", 500)
        result = await score_service.submit_score(db_session, principal, "tetris", 800)

        assert result.accepted is True
        assert result.is_new_high_score is True
        assert result.previous_score == 500
        assert result.score.score == 800

        history = await score_service.get_score_history(db_session, user.id, "tetris")
        assert [(h.old_score, h.new_score) for h in history] == [(500, 800)]
        assert await count_rows(db_session, Score) == 1

    @pytest.mark.asyncio
    @pytest.mark.parametrize("resubmitted", [0, 499, 500])
    async def test_lower_or_equal_score_is_noop(self, db_session, make_user, make_game, principal_for, resubmitted):
        user = await make_user("player1")
        await make_game("Tetris")
        principal = principal_for(user)

        first = await score_service.submit_score(db_session, principal, "tetris", 500, {"run": 1})
        result = await score_service.submit_score(db_session, principal, "tetris", resubmitted, {"run": 2})

        assert result.accepted is False
        assert result.is_new_high_score is False
        assert result.previous_score == 500
        assert result.score.score == 500
        assert result.score.metadata == {"run": 1}
        assert result.score.updated_at == first.score.updated_at
        assert await count_rows(db_session, ScoreHistory) == 0

    @pytest.mark.asyncio
    async def test_improvement_replaces_metadata_only_when_given(self, db_session, make_user, make_game, principal_for):
        user = await make_user("player1")
        await make_game("Tetris")
        principal = principal_for(user)

        await score_service.submit_score(db_session, principal, "tetris", 100, {"run": 1})
        result = await score_service.submit_score(db_session, principal, "tetris", 200)
        assert result.score.metadata == {"run": 1}

        result = await score_service.submit_score(db_session, principal, "tetris", 300, {"run": 3})
        assert result.score.metadata == {"run": 3}

    @pytest.mark.asyncio
    @pytest.mark.parametrize("bad_score", [-1, 12.5, "100", True, None])
    async def test_invalid_scores_rejected(self, db_session, make_user, make_game, principal_for, bad_score):
        user = await make_user("player1")
        await make_game("Tetris")

        with pytest.raises(ValidationError):
            await score_service.submit_score(db_session, principal_for(user), "tetris", bad_score)

        assert await count_rows(db_session, Score) == 0

    @pytest.mark.asyncio
    async def test_score_at_column_limit_accepted(self, db_session, make_user, make_game, principal_for):
        user = await make_user("player1")
        await make_game("Tetris")

        result = await score_service.submit_score(
            db_session, principal_for(user), "tetris", app_settings.SCORE_MAX
        )

        assert result.score.score == app_settings.SCORE_MAX

    @pytest.mark.asyncio
    @pytest.mark.parametrize("too_large", [app_settings.SCORE_MAX + 1, 2**63])
    async def test_score_above_column_limit_rejected(self, db_session, make_user, make_game, principal_for, too_large):
        user = await make_user("player1")
        await make_game("Tetris")

        with pytest.raises(ValidationError):
            await score_service.submit_score(db_session, principal_for(user), "tetris", too_large)

        assert await count_rows(db_session, Score) == 0

    @pytest.mark.asyncio
    async def test_strict_submission_requires_existing_game(self, db_session, make_user, principal_for):
        user = await make_user("player1")

        with pytest.raises(NotFoundError):
            await score_service.submit_score(db_session, principal_for(user), "galaga", 100)

        assert await count_rows(db_session, Game) == 0
        assert await count_rows(db_session, Score) == 0

    @pytest.mark.asyncio
    async def test_strict_submission_resolves_display_name(self, db_session, make_user, make_game, principal_for):
        user = await make_user("player1")
        await make_game("Space Invaders")

        result = await score_service.submit_score(db_session, principal_for(user), "Space Invaders", 100)

        assert result.score.game_slug == "space-invaders"

    @pytest.mark.asyncio
    async def test_lazy_submission_creates_game_once(self, db_session, make_user, principal_for):
        user = await make_user("player1")
        principal = principal_for(user)

        first = await score_service.submit_score_creating_game(db_session, principal, "Donkey Kong", 300)
        second = await score_service.submit_score_creating_game(db_session, principal, "donkey-kong", 400)

        assert first.score.game_slug == "donkey-kong"
        assert second.score.game_id == first.score.game_id
        assert second.previous_score == 300

        game = await game_service.get_game(db_session, "donkey-kong")
        assert game.name == "Donkey Kong"
        assert await count_rows(db_session, Game) == 1

    @pytest.mark.asyncio
    async def test_lazy_submission_rejects_blank_identifier(self, db_session, make_user, principal_for):
        user = await make_user("player1")

        with pytest.raises(ValidationError):
            await score_service.submit_score_creating_game(db_session, principal_for(user), "???", 10)

    @pytest.mark.asyncio
    async def test_one_row_per_user_and_game(self, db_session, make_user, make_game, principal_for):
        alice = await make_user("alice")
        bob = await make_user("bob")
        await make_game("Tetris")
        await make_game("Galaga")

        for value in (10, 30, 20, 40):
            await score_service.submit_score(db_session, principal_for(alice), "tetris", value)
            await score_service.submit_score(db_session, principal_for(bob), "tetris", value)
            await score_service.submit_score(db_session, principal_for(alice), "galaga", value)

        assert await count_rows(db_session, Score) == 3


class TestSubmissionConflicts:
    """并发插入冲突处理测试"""

    @pytest.mark.asyncio
    async def test_insert_race_retries_on_update_path(self, db_session, make_user, make_game, principal_for, monkeypatch):
        user = await make_user("player1")
        game = await make_game("Tetris")

        # Another request already committed the first score for this pair
        db_session.add(Score(user_id=user.id, game_id=game.id, score=100, score_metadata={}))
        await db_session.commit()

        real_lookup = score_service._find_score_for_update
        calls = []

        async def stale_lookup(db, user_id, game_id):
            calls.append(game_id)
            if len(calls) == 1:
                return None
            return await real_lookup(db, user_id, game_id)

        monkeypatch.setattr(score_service, "_find_score_for_update", stale_lookup)

        result = await score_service.submit_score(db_session, principal_for(user), "tetris", 250)

        assert len(calls) == 2
        assert result.accepted is True
        assert result.previous_score == 100
        assert result.score.score == 250
        assert await count_rows(db_session, Score) == 1
        assert await count_rows(db_session, ScoreHistory) == 1

    @pytest.mark.asyncio
    async def test_unresolved_race_raises_conflict(self, db_session, make_user, make_game, principal_for, monkeypatch):
        user = await make_user("player1")
        game = await make_game("Tetris")
        db_session.add(Score(user_id=user.id, game_id=game.id, score=100, score_metadata={}))
        await db_session.commit()

        async def always_stale(db, user_id, game_id):
            return None

        monkeypatch.setattr(score_service, "_find_score_for_update", always_stale)

        with pytest.raises(ConflictError):
            await score_service.submit_score(db_session, principal_for(user), "tetris", 250)

        monkeypatch.undo()
        rows = (await db_session.execute(select(Score))).scalars().all()
        assert [row.score for row in rows] == [100]

    @pytest.mark.asyncio
    async def test_deadlock_retries_on_update_path(self, db_session, make_user, make_game, principal_for, monkeypatch):
        user = await make_user("player1")
        game = await make_game("Tetris")
        db_session.add(Score(user_id=user.id, game_id=game.id, score=100, score_metadata={}))
        await db_session.commit()

        real_lookup = score_service._find_score_for_update
        calls = []

        async def deadlocked_once(db, user_id, game_id):
            calls.append(game_id)
            if len(calls) == 1:
                raise OperationalError(
                    "SELECT ... FOR UPDATE", None,
                    Exception(1213, "Deadlock found when trying to get lock")
                )
            return await real_lookup(db, user_id, game_id)

        monkeypatch.setattr(score_service, "_find_score_for_update", deadlocked_once)

        result = await score_service.submit_score(db_session, principal_for(user), "tetris", 250)

        assert len(calls) == 2
        assert result.previous_score == 100
        assert result.score.score == 250
        assert await count_rows(db_session, ScoreHistory) == 1

    @pytest.mark.asyncio
    async def test_repeated_lock_timeout_raises_conflict(self, db_session, make_user, make_game, principal_for, monkeypatch):
        user = await make_user("player1")
        await make_game("Tetris")

        async def lock_wait_timeout(db, user_id, game_id):
            raise OperationalError(
                "SELECT ... FOR UPDATE", None,
                Exception(1205, "Lock wait timeout exceeded")
            )

        monkeypatch.setattr(score_service, "_find_score_for_update", lock_wait_timeout)

        with pytest.raises(ConflictError):
            await score_service.submit_score(db_session, principal_for(user), "tetris", 250)

    @pytest.mark.asyncio
    async def test_store_failure_rolls_back_submission(self, db_session, make_user, principal_for, monkeypatch):
        user = await make_user("player1")

        async def connection_lost(db, user_id, game_id):
            raise OperationalError(
                "SELECT ... FOR UPDATE", None,
                Exception(2013, "Lost connection to MySQL server during query")
            )

        monkeypatch.setattr(score_service, "_find_score_for_update", connection_lost)

        with pytest.raises(StoreUnavailableError):
            await score_service.submit_score_creating_game(db_session, principal_for(user), "Galaga", 10)

        # The game flushed by lazy creation must not survive the failed transaction
        monkeypatch.undo()
        assert await count_rows(db_session, Game) == 0
        result = await score_service.submit_score_creating_game(db_session, principal_for(user), "Galaga", 10)
        assert result.accepted is True


class TestStoreGuard:
    """存储异常转换测试"""

    @pytest.mark.asyncio
    @pytest.mark.parametrize("code", [1205, 1213])
    async def test_lock_conflict_becomes_conflict_error(self, code):
        with pytest.raises(ConflictError):
            async with store_guard("test"):
                raise OperationalError("UPDATE scores", None, Exception(code, "lock"))

    @pytest.mark.asyncio
    async def test_connection_failure_becomes_store_unavailable(self):
        with pytest.raises(StoreUnavailableError):
            async with store_guard("test"):
                raise OperationalError("SELECT 1", None, Exception(2003, "Can't connect to MySQL server"))

    @pytest.mark.asyncio
    async def test_sqlite_operational_error_becomes_store_unavailable(self):
        with pytest.raises(StoreUnavailableError):
            async with store_guard("test"):
                raise OperationalError("SELECT 1", None, Exception("database is locked"))


class TestUserScores:
    """用户分数查询测试"""

    @pytest.mark.asyncio
    async def test_scores_ordered_by_score_desc(self, db_session, make_user, make_game, principal_for):
        user = await make_user("player1")
        for name in ("Tetris", "Galaga", "Pong"):
            await make_game(name)
        principal = principal_for(user)

        await score_service.submit_score(db_session, principal, "tetris", 200)
        await score_service.submit_score(db_session, principal, "galaga", 900)
        await score_service.submit_score(db_session, principal, "pong", 50)

        scores = await score_service.get_scores_for_user(db_session, user.id)

        assert [(s.game_slug, s.score) for s in scores] == [("galaga", 900), ("tetris", 200), ("pong", 50)]
        assert scores[0].game_name == "Galaga"

    @pytest.mark.asyncio
    async def test_user_without_scores_gets_empty_list(self, db_session, make_user):
        user = await make_user("player1")

        assert await score_service.get_scores_for_user(db_session, user.id) == []

    @pytest.mark.asyncio
    async def test_unknown_user_not_found(self, db_session):
        with pytest.raises(NotFoundError):
            await score_service.get_scores_for_user(db_session, 999)

    @pytest.mark.asyncio
    async def test_deactivated_user_not_found(self, db_session, make_user):
        user = await make_user("player1")
        await user_service.deactivate_user(db_session, user.id)

        with pytest.raises(NotFoundError):
            await score_service.get_scores_for_user(db_session, user.id)

    @pytest.mark.asyncio
    async def test_history_empty_without_score(self, db_session, make_user):
        user = await make_user("player1")

        assert await score_service.get_score_history(db_session, user.id, "tetris") == []


@asynccontextmanager
async def fresh_store():
    """Standalone database for property tests, where per-test fixtures do not apply"""
    engine = make_test_engine()
    async with engine.begin() as conn:
        await conn.run_sync(Base.metadata.create_all)
    session_factory = async_sessionmaker(engine, class_=AsyncSession, expire_on_commit=False)
    try:
        async with session_factory() as session:
            user = await user_service.create_user(session, "prop_user", UNUSED_PASSWORD_HASH)
            await game_service.create_game(session, GameCreate(name="Prop Game"))
            yield session, AuthenticatedUser(user_id=user.id, username=user.username)
    finally:
        await engine.dispose()


@pytest.mark.asyncio
@given(submissions=st.lists(st.integers(min_value=0, max_value=10_000), min_size=1, max_size=12))
@settings(max_examples=25, deadline=None, suppress_health_check=[HealthCheck.too_slow])
async def test_property_best_score_and_history(submissions):
    """
    保存的分数等于所有提交的最大值；历史条数等于首次提交之后严格提升的次数
    """
    async with fresh_store() as (db, principal):
        best = None
        improvements = 0
        for value in submissions:
            result = await score_service.submit_score(db, principal, "prop-game", value)
            expected_new = best is None or value > best
            assert result.is_new_high_score is expected_new
            if best is not None and value > best:
                improvements += 1
            best = value if best is None else max(best, value)
            assert result.score.score == best

        assert await count_rows(db, Score) == 1
        assert await count_rows(db, ScoreHistory) == improvements
        scores = await score_service.get_scores_for_user(db, principal.user_id)
        assert scores[0].score == max(submissions)
