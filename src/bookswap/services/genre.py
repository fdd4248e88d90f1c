"""Genre service."""

import structlog

from bookswap.core.exceptions import (
    DuplicateGenreError,
    GenreNotFoundError,
    ValidationError,
)
from bookswap.models.genre import Genre
from bookswap.repositories.genre import GenreRepository
from bookswap.services.cache import BOOK_COLLECTIONS, VersionedCache

logger = structlog.get_logger(__name__)


class GenreService:
    """Service for the genre catalog.

    Deleting a genre changes the genres embedded in cached book reads, so
    it bumps the book collections too.
    """

    def __init__(self, genre_repo: GenreRepository, cache: VersionedCache) -> None:
        self.genre_repo = genre_repo
        self.cache = cache

    async def create_genre(self, name: str) -> Genre:
        """Create a genre.

        Raises:
            ValidationError: If the trimmed name is empty
            DuplicateGenreError: If a genre with that name exists
        """
        name = name.strip()
        if not name:
            raise ValidationError("Genre name must not be empty", field="name")
        if await self.genre_repo.get_by_name(name) is not None:
            raise DuplicateGenreError(details={"name": name})

        genre = await self.genre_repo.create(Genre(name=name))
        await self.genre_repo.commit()
        logger.info("genre_created", genre_id=genre.id, name=name)
        return genre

    async def get_genre(self, genre_id: int) -> Genre:
        """Get a genre.

        Raises:
            GenreNotFoundError: If the genre does not exist
        """
        genre = await self.genre_repo.get_by_id(genre_id)
        if genre is None:
            raise GenreNotFoundError(genre_id)
        return genre

    async def list_genres(self) -> list[Genre]:
        """All genres ordered by name."""
        return await self.genre_repo.list_by_name()

    async def delete_genre(self, genre_id: int) -> None:
        """Delete a genre and its book associations.

        Raises:
            GenreNotFoundError: If the genre does not exist
        """
        genre = await self.get_genre(genre_id)
        await self.genre_repo.hard_delete(genre)
        await self.genre_repo.commit()
        await self.cache.bump(*BOOK_COLLECTIONS)
        logger.info("genre_deleted", genre_id=genre_id)
