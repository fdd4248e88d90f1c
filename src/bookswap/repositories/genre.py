"""Genre repository."""

from collections.abc import Sequence

from sqlalchemy import delete, func, select

from bookswap.models.book import book_genres
from bookswap.models.genre import Genre
from bookswap.repositories.base import BaseRepository


class GenreRepository(BaseRepository[Genre]):
    """Repository for Genre model."""

    async def get_by_name(self, name: str) -> Genre | None:
        """Get a genre by name (case-insensitive)."""
        result = await self.session.execute(
            select(Genre).where(func.lower(Genre.name) == name.lower())
        )
        return result.scalar_one_or_none()

    async def list_by_name(self) -> list[Genre]:
        """Get all genres ordered alphabetically."""
        result = await self.session.execute(select(Genre).order_by(Genre.name))
        return list(result.scalars().all())

    async def get_many(self, genre_ids: Sequence[int]) -> list[Genre]:
        """Get the genres with the given IDs; unknown IDs are skipped."""
        if not genre_ids:
            return []
        result = await self.session.execute(
            select(Genre).where(Genre.id.in_(set(genre_ids))).order_by(Genre.name)
        )
        return list(result.scalars().all())

    async def hard_delete(self, entity: Genre) -> None:
        """Delete a genre together with its book associations.

        SQLite only honors ``ON DELETE CASCADE`` with foreign keys enabled,
        so association rows are removed explicitly.
        """
        await self.session.execute(
            delete(book_genres).where(book_genres.c.genre_id == entity.id)
        )
        await super().hard_delete(entity)
