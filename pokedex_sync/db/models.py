"""SQLAlchemy ORM models backing the durable local store.

Two tables live here: ``cache_blobs`` holds named JSON blobs such as the
offline favorites snapshot, and ``favorite_pokemon`` stores each user's
favorite ids for :class:`~pokedex_sync.services.identity_service.SqlIdentitySource`.
"""

from __future__ import annotations

from datetime import datetime, timezone

from sqlalchemy import DateTime, Integer, String, Text, UniqueConstraint
from sqlalchemy.orm import DeclarativeBase, Mapped, mapped_column


def utcnow():
    """Return current UTC datetime."""
    return datetime.now(timezone.utc)


class Base(DeclarativeBase):
    pass


class CacheBlob(Base):
    __tablename__ = "cache_blobs"

    key: Mapped[str] = mapped_column(String(255), primary_key=True)
    payload: Mapped[str] = mapped_column(Text, nullable=False)
    updated_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True),
        nullable=False,
        default=utcnow,
        onupdate=utcnow,
    )


class FavoritePokemon(Base):
    """One favorite id owned by a single user."""

    __tablename__ = "favorite_pokemon"
    __table_args__ = (
        UniqueConstraint(
            "user_id",
            "pokemon_id",
            name="uq_favorite_pokemon_user_pokemon",
        ),
    )

    id: Mapped[int] = mapped_column(Integer, primary_key=True, autoincrement=True)
    user_id: Mapped[str] = mapped_column(
        String(128),
        index=True,
        nullable=False,
        doc=(
            "Opaque identifier for the owning user, typically the subject id"
            " handed out by the authentication provider."
        ),
    )
    pokemon_id: Mapped[int] = mapped_column(Integer, nullable=False)
    added_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True),
        nullable=False,
        default=utcnow,
    )


__all__ = ["Base", "CacheBlob", "FavoritePokemon", "utcnow"]
