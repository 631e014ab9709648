"""Identity adapters exposing the current user's favorite id set."""

from __future__ import annotations

import logging
from typing import Protocol, runtime_checkable

from sqlalchemy import delete, select
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.ext.asyncio import AsyncSession
from sqlalchemy.orm import sessionmaker

from pokedex_sync.db.connection import session_scope
from pokedex_sync.db.models import FavoritePokemon
from pokedex_sync.errors import IdentityError

logger = logging.getLogger(__name__)


@runtime_checkable
class IdentitySource(Protocol):
    """Minimal identity surface consumed by the sync engine.

    ``current_favorite_ids`` raises :class:`IdentityError` when the set cannot be
    read. The mutations report failure through their boolean result instead.
    """

    @property
    def user_id(self) -> str: ...

    async def current_favorite_ids(self) -> set[int]: ...

    async def add_favorite(self, entry_id: int) -> bool: ...

    async def remove_favorite(self, entry_id: int) -> bool: ...


class SqlIdentitySource:
    """Favorites persisted in the ``favorite_pokemon`` table, keyed by user."""

    def __init__(
        self, session_factory: sessionmaker[AsyncSession], *, user_id: str
    ) -> None:
        if not user_id.strip():
            raise ValueError("user_id must not be blank")
        self._session_factory = session_factory
        self._user_id = user_id.strip()

    @property
    def user_id(self) -> str:
        return self._user_id

    async def current_favorite_ids(self) -> set[int]:
        try:
            async with session_scope(self._session_factory) as session:
                result = await session.execute(
                    select(FavoritePokemon.pokemon_id).where(
                        FavoritePokemon.user_id == self._user_id
                    )
                )
                return set(result.scalars().all())
        except SQLAlchemyError as exc:
            raise IdentityError(
                f"Could not read favorites for user {self._user_id}: {exc}"
            ) from exc

    async def add_favorite(self, entry_id: int) -> bool:
        """Insert ``entry_id``; adding an existing favorite is a successful no-op."""

        try:
            async with session_scope(self._session_factory) as session:
                existing = await session.execute(
                    select(FavoritePokemon.id).where(
                        FavoritePokemon.user_id == self._user_id,
                        FavoritePokemon.pokemon_id == entry_id,
                    )
                )
                if existing.scalar_one_or_none() is None:
                    session.add(
                        FavoritePokemon(user_id=self._user_id, pokemon_id=entry_id)
                    )
        except SQLAlchemyError as exc:
            logger.warning(
                "Failed to add favorite %s for user %s: %s",
                entry_id,
                self._user_id,
                exc,
            )
            return False
        return True

    async def remove_favorite(self, entry_id: int) -> bool:
        try:
            async with session_scope(self._session_factory) as session:
                await session.execute(
                    delete(FavoritePokemon).where(
                        FavoritePokemon.user_id == self._user_id,
                        FavoritePokemon.pokemon_id == entry_id,
                    )
                )
        except SQLAlchemyError as exc:
            logger.warning(
                "Failed to remove favorite %s for user %s: %s",
                entry_id,
                self._user_id,
                exc,
            )
            return False
        return True


__all__ = ["IdentitySource", "SqlIdentitySource"]
