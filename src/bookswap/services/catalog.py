"""Catalog service - book listings, search and their read cache.

List and search reads go through the version-tagged cache. Every write
commits first and then bumps both book collections, so the next read
misses and sees the new rows.
"""

from collections.abc import Sequence

import structlog
from pydantic import TypeAdapter

from bookswap.config import Settings, get_settings
from bookswap.core.exceptions import (
    BookForbiddenError,
    BookInExchangeError,
    BookNotFoundError,
    GenreNotFoundError,
)
from bookswap.models.book import Book, BookStatus
from bookswap.models.genre import Genre
from bookswap.repositories.book import BookRepository
from bookswap.repositories.genre import GenreRepository
from bookswap.schemas.books import (
    BookCreate,
    BookRead,
    BookSearchPage,
    BookSearchQuery,
    BookUpdate,
)
from bookswap.schemas.common import clamp_limit, clamp_offset
from bookswap.services.cache import (
    BOOK_COLLECTIONS,
    BOOKS_LIST,
    BOOKS_SEARCH,
    VersionedCache,
)
from bookswap.services.summary import SummaryService

logger = structlog.get_logger(__name__)

BOOK_LIST_ADAPTER = TypeAdapter(list[BookRead])
BOOK_SEARCH_ADAPTER = TypeAdapter(BookSearchPage)


class CatalogService:
    """Service for the book catalog.

    Usage:
        ```python
        service = CatalogService(book_repo, genre_repo, cache)
        page = await service.list_books(limit=20, offset=0)
        ```
    """

    def __init__(
        self,
        book_repo: BookRepository,
        genre_repo: GenreRepository,
        cache: VersionedCache,
        settings: Settings | None = None,
        summarizer: SummaryService | None = None,
    ) -> None:
        """Initialize the service.

        Args:
            book_repo: Repository for Book entities
            genre_repo: Repository for Genre entities
            cache: Version-tagged read cache
            settings: Application settings (cache TTLs)
            summarizer: Summary generator; summaries are skipped when None
        """
        self.book_repo = book_repo
        self.genre_repo = genre_repo
        self.cache = cache
        self.settings = settings or get_settings()
        self.summarizer = summarizer

    # -------------------------------------------------------------------------
    # Reads
    # -------------------------------------------------------------------------

    async def get_book(self, book_id: int) -> Book:
        """Get a listed book.

        Raises:
            BookNotFoundError: If the book does not exist or was deleted
        """
        book = await self.book_repo.get_by_id(book_id)
        if book is None:
            raise BookNotFoundError(book_id)
        return book

    async def list_books(
        self,
        limit: int | None = None,
        offset: int | None = None,
    ) -> list[BookRead]:
        """Get a page of books, newest first, through the cache.

        The limit defaults to 20 and is capped at 100; negative offsets
        become zero.
        """
        limit = clamp_limit(limit)
        offset = clamp_offset(offset)

        async def load() -> list[BookRead]:
            books = await self.book_repo.list_books(limit=limit, offset=offset)
            return [BookRead.model_validate(book) for book in books]

        return await self.cache.fetch(
            BOOKS_LIST,
            VersionedCache.list_signature(limit, offset),
            load,
            BOOK_LIST_ADAPTER,
            self.settings.cache_list_ttl_seconds,
        )

    async def search_books(self, query: BookSearchQuery) -> BookSearchPage:
        """Search the catalog through the cache.

        Args:
            query: Normalized search query

        Returns:
            The requested page and the total number of matches
        """

        async def load() -> BookSearchPage:
            books, total = await self.book_repo.search(
                title=query.title,
                author=query.author,
                city=query.city,
                status=query.status,
                genre_id=query.genre_id,
                sort_by=query.sort_by,
                sort_order=query.sort_order,
                offset=query.offset,
                limit=query.limit,
            )
            return BookSearchPage(
                items=[BookRead.model_validate(book) for book in books],
                total=total,
                page=query.page,
                limit=query.limit,
            )

        return await self.cache.fetch(
            BOOKS_SEARCH,
            VersionedCache.search_signature(query.model_dump()),
            load,
            BOOK_SEARCH_ADAPTER,
            self.settings.cache_search_ttl_seconds,
        )

    async def get_books_by_owner(
        self,
        owner_id: int,
        status: BookStatus | None = None,
    ) -> list[Book]:
        """Get a user's listed books, optionally with one status."""
        return await self.book_repo.get_by_owner(
            owner_id,
            status=status.value if status else None,
        )

    async def get_available_books(self, city: str | None = None) -> list[Book]:
        """Get books open for exchange, optionally from owners in ``city``."""
        city = city.strip() if city else None
        return await self.book_repo.get_available(city=city or None)

    # -------------------------------------------------------------------------
    # Writes
    # -------------------------------------------------------------------------

    async def create_book(self, owner_id: int, data: BookCreate) -> Book:
        """List a new book for ``owner_id``.

        When no summary is supplied and a summary generator is configured,
        one is generated from the description.

        Raises:
            GenreNotFoundError: If a genre ID does not exist
            SummaryGenerationError: If summary generation fails
        """
        genres = await self._resolve_genres(data.genre_ids)

        summary = data.summary or ""
        if not summary and self.summarizer is not None and data.description.strip():
            summary = await self.summarizer.generate(data.description)

        book = await self.book_repo.create(
            Book(
                title=data.title,
                author=data.author,
                description=data.description,
                summary=summary,
                status=BookStatus.AVAILABLE.value,
                owner_id=owner_id,
            )
        )
        if genres:
            book = await self.book_repo.replace_genres(book, genres)

        await self.book_repo.commit()
        await self.cache.bump(*BOOK_COLLECTIONS)

        logger.info("book_created", book_id=book.id, owner_id=owner_id)
        return book

    async def update_book(self, book_id: int, user_id: int, data: BookUpdate) -> Book:
        """Edit a book on behalf of its owner.

        Raises:
            BookNotFoundError: If the book does not exist
            BookForbiddenError: If ``user_id`` is not the owner
            BookInExchangeError: If the status is changed while in an exchange
            GenreNotFoundError: If a genre ID does not exist
        """
        book = await self._get_owned(book_id, user_id)

        if data.status is not None and data.status != book.status:
            if book.in_exchange:
                raise BookInExchangeError(book_id, book.status)
            book.status = data.status

        for field in ("title", "author", "description", "summary"):
            value = getattr(data, field)
            if value is not None:
                setattr(book, field, value)

        if data.genre_ids is not None:
            genres = await self._resolve_genres(data.genre_ids)
            book = await self.book_repo.replace_genres(book, genres)

        book = await self.book_repo.update(book)
        await self.book_repo.commit()
        await self.cache.bump(*BOOK_COLLECTIONS)

        logger.info("book_updated", book_id=book_id, owner_id=user_id)
        return book

    async def delete_book(self, book_id: int, user_id: int) -> None:
        """Soft delete a book on behalf of its owner.

        Raises:
            BookNotFoundError: If the book does not exist
            BookForbiddenError: If ``user_id`` is not the owner
            BookInExchangeError: If the book is pending or accepted in an exchange
        """
        book = await self._get_owned(book_id, user_id)
        if book.in_exchange:
            raise BookInExchangeError(book_id, book.status)

        await self.book_repo.soft_delete(book)
        await self.book_repo.commit()
        await self.cache.bump(*BOOK_COLLECTIONS)

        logger.info("book_deleted", book_id=book_id, owner_id=user_id)

    # -------------------------------------------------------------------------
    # Private Methods
    # -------------------------------------------------------------------------

    async def _get_owned(self, book_id: int, user_id: int) -> Book:
        book = await self.get_book(book_id)
        if book.owner_id != user_id:
            raise BookForbiddenError(details={"book_id": book_id})
        return book

    async def _resolve_genres(self, genre_ids: Sequence[int]) -> list[Genre]:
        """Load genres by ID, failing on the first unknown one."""
        if not genre_ids:
            return []
        genres = await self.genre_repo.get_many(genre_ids)
        found = {genre.id for genre in genres}
        for genre_id in genre_ids:
            if genre_id not in found:
                raise GenreNotFoundError(genre_id)
        return genres
