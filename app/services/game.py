"""
Game catalog service
游戏目录服务 - slug生成、游戏解析、创建与查询
"""

import re
import logging
from typing import List, Optional

from sqlalchemy import select
from sqlalchemy.exc import IntegrityError
from sqlalchemy.ext.asyncio import AsyncSession

from app.core.database import store_guard
from app.core.exceptions import ConflictError, NotFoundError, ValidationError
from app.models.game import Game
from app.schemas.game import GameCreate
from app.utils.security import input_validator

logger = logging.getLogger(__name__)

_NON_ALNUM = re.compile(r'[^a-z0-9]+')


def slugify(name: str) -> str:
    """Lowercase, collapse every non-alphanumeric run to '-', trim the ends"""
    return _NON_ALNUM.sub('-', name.lower()).strip('-')


class GameService:
    """Resolves identifiers to games and manages the catalog"""

    async def get_game_by_slug(self, db: AsyncSession, slug: str) -> Optional[Game]:
        async with store_guard("get_game_by_slug"):
            result = await db.execute(select(Game).where(Game.slug == slug))
            return result.scalar_one_or_none()

    async def get_game(self, db: AsyncSession, slug: str) -> Game:
        game = await self.get_game_by_slug(db, slug)
        if game is None:
            raise NotFoundError(f"游戏 '{slug}' 不存在", {"game": slug})
        return game

    async def list_games(self, db: AsyncSession) -> List[Game]:
        async with store_guard("list_games"):
            result = await db.execute(select(Game).order_by(Game.name, Game.id))
            return list(result.scalars().all())

    async def resolve_game(
        self,
        db: AsyncSession,
        identifier: str,
        create_missing: bool = False
    ) -> Game:
        """
        Find the game an identifier refers to

        An exact slug match wins; otherwise the identifier is slugified and
        looked up again, so display names resolve too. With create_missing
        an unseen game is added to the current transaction (flushed, not
        committed) so it commits together with the caller's work.

        Raises:
            NotFoundError: no such game and create_missing is False
            ValidationError: identifier has no alphanumeric characters
        """
        identifier = (identifier or "").strip()
        slug = slugify(identifier)
        if not slug:
            raise ValidationError("游戏标识无效", {"game": identifier})

        game = await self.get_game_by_slug(db, identifier)
        if game is None and slug != identifier:
            game = await self.get_game_by_slug(db, slug)
        if game is not None:
            return game

        if not create_missing:
            raise NotFoundError(f"游戏 '{identifier}' 不存在", {"game": identifier})

        async with store_guard("resolve_game"):
            game = Game(slug=slug, name=identifier, description=f"Game {identifier}")
            db.add(game)
            await db.flush()

        logger.info(f"Created game on first submission: {slug}")
        return game

    async def create_game(self, db: AsyncSession, game_data: GameCreate) -> Game:
        """
        Add a game to the catalog

        Raises:
            ValidationError: name has no alphanumeric characters
            ConflictError: a game with the same slug exists
        """
        name = input_validator.sanitize_input(game_data.name, 100)
        slug = slugify(name)
        if not slug:
            raise ValidationError("游戏名称无效", {"field": "name"})

        if await self.get_game_by_slug(db, slug) is not None:
            raise ConflictError(f"游戏 '{slug}' 已存在", {"game": slug})

        async with store_guard("create_game"):
            game = Game(
                slug=slug,
                name=name,
                description=input_validator.sanitize_input(game_data.description, 1000)
            )
            db.add(game)
            try:
                await db.commit()
            except IntegrityError as e:
                await db.rollback()
                raise ConflictError(f"游戏 '{slug}' 已存在", {"game": slug}) from e
            await db.refresh(game)

        logger.info(f"Game created: {slug}")
        return game


# Global game service instance
game_service = GameService()
