"""Tests for CatalogService."""

from datetime import UTC, datetime
from unittest.mock import AsyncMock, MagicMock

import pytest

from bookswap.config import Settings
from bookswap.core.exceptions import (
    BookForbiddenError,
    BookInExchangeError,
    BookNotFoundError,
    GenreNotFoundError,
    SummaryGenerationError,
)
from bookswap.models.book import Book, BookStatus
from bookswap.models.genre import Genre
from bookswap.schemas.books import BookCreate, BookSearchQuery, BookUpdate
from bookswap.services.cache import BOOK_COLLECTIONS, VersionedCache
from bookswap.services.catalog import CatalogService

OWNER = 1
STRANGER = 2


def make_book(book_id: int = 1, status: BookStatus = BookStatus.AVAILABLE) -> Book:
    now = datetime.now(UTC)
    book = Book(
        title="Dune",
        author="Frank Herbert",
        description="Desert planet",
        summary="",
        status=status.value,
        owner_id=OWNER,
    )
    book.id = book_id
    book.created_at = now
    book.updated_at = now
    return book


def make_genre(genre_id: int, name: str) -> Genre:
    genre = Genre(name=name)
    genre.id = genre_id
    return genre


# =============================================================================
# Fixtures
# =============================================================================


@pytest.fixture
def book_repo() -> MagicMock:
    repo = MagicMock()
    repo.get_by_id = AsyncMock(return_value=make_book())
    repo.list_books = AsyncMock(return_value=[make_book(1), make_book(2)])
    repo.search = AsyncMock(return_value=([make_book(3)], 1))
    repo.get_by_owner = AsyncMock(return_value=[])
    repo.get_available = AsyncMock(return_value=[])

    async def create(book: Book) -> Book:
        book.id = 50
        return book

    repo.create = AsyncMock(side_effect=create)
    repo.update = AsyncMock(side_effect=lambda book: book)
    repo.replace_genres = AsyncMock(side_effect=lambda book, genres: book)
    repo.soft_delete = AsyncMock()
    repo.commit = AsyncMock()
    return repo


@pytest.fixture
def genre_repo() -> MagicMock:
    repo = MagicMock()
    repo.get_many = AsyncMock(return_value=[make_genre(1, "Fiction")])
    return repo


@pytest.fixture
def mock_cache() -> MagicMock:
    """Cache that always misses and records bumps."""
    cache = MagicMock()

    async def fetch(collection, signature, loader, adapter, ttl):
        return await loader()

    cache.fetch = AsyncMock(side_effect=fetch)
    cache.bump = AsyncMock()
    return cache


@pytest.fixture
def summarizer() -> MagicMock:
    summarizer = MagicMock()
    summarizer.generate = AsyncMock(return_value="A generated summary.")
    return summarizer


@pytest.fixture
def service(
    book_repo: MagicMock,
    genre_repo: MagicMock,
    mock_cache: MagicMock,
    test_settings: Settings,
) -> CatalogService:
    return CatalogService(book_repo, genre_repo, mock_cache, settings=test_settings)


@pytest.fixture
def cached_service(
    book_repo: MagicMock,
    genre_repo: MagicMock,
    versioned_cache: VersionedCache,
    test_settings: Settings,
) -> CatalogService:
    """Service backed by a real in-memory versioned cache."""
    return CatalogService(book_repo, genre_repo, versioned_cache, settings=test_settings)


# =============================================================================
# Read Tests
# =============================================================================


class TestReads:
    """Tests for book reads."""

    @pytest.mark.asyncio
    async def test_get_book_not_found(
        self, service: CatalogService, book_repo: MagicMock
    ) -> None:
        """Test that a missing book raises."""
        book_repo.get_by_id.return_value = None
        with pytest.raises(BookNotFoundError):
            await service.get_book(99)

    @pytest.mark.asyncio
    @pytest.mark.parametrize(
        ("limit", "offset", "expected_limit", "expected_offset"),
        [
            (None, None, 20, 0),
            (0, 0, 20, 0),
            (-3, -5, 20, 0),
            (500, 10, 100, 10),
            (5, 15, 5, 15),
        ],
    )
    async def test_list_books_clamps(
        self,
        service: CatalogService,
        book_repo: MagicMock,
        limit: int | None,
        offset: int | None,
        expected_limit: int,
        expected_offset: int,
    ) -> None:
        """Test that pagination parameters are normalized."""
        await service.list_books(limit=limit, offset=offset)
        book_repo.list_books.assert_awaited_once_with(
            limit=expected_limit, offset=expected_offset
        )

    @pytest.mark.asyncio
    async def test_list_books_second_read_is_cached(
        self, cached_service: CatalogService, book_repo: MagicMock
    ) -> None:
        """Test that an identical list read is served from the cache."""
        first = await cached_service.list_books(limit=20, offset=0)
        second = await cached_service.list_books(limit=20, offset=0)

        assert [b.id for b in first] == [b.id for b in second] == [1, 2]
        book_repo.list_books.assert_awaited_once()

    @pytest.mark.asyncio
    async def test_write_invalidates_cached_list(
        self, cached_service: CatalogService, book_repo: MagicMock
    ) -> None:
        """Test that creating a book makes the next list read hit the database."""
        await cached_service.list_books()
        await cached_service.create_book(OWNER, BookCreate(title="New", author="Someone"))
        await cached_service.list_books()

        assert book_repo.list_books.await_count == 2

    @pytest.mark.asyncio
    async def test_search_passes_normalized_query(
        self, service: CatalogService, book_repo: MagicMock
    ) -> None:
        """Test that search forwards normalized filters and paging."""
        query = BookSearchQuery(
            title="  dune ",
            city="",
            status="AVAILABLE",
            page=2,
            limit=10,
            sort_by="TITLE",
            sort_order="sideways",
        )

        page = await service.search_books(query)

        book_repo.search.assert_awaited_once_with(
            title="dune",
            author=None,
            city=None,
            status="available",
            genre_id=None,
            sort_by="title",
            sort_order="desc",
            offset=10,
            limit=10,
        )
        assert page.total == 1
        assert page.page == 2
        assert [b.id for b in page.items] == [3]

    @pytest.mark.asyncio
    async def test_equivalent_searches_share_cache_entry(
        self, cached_service: CatalogService, book_repo: MagicMock
    ) -> None:
        """Test that searches differing only in formatting hit the same entry."""
        await cached_service.search_books(BookSearchQuery(title="dune", sort_by="title"))
        await cached_service.search_books(BookSearchQuery(title=" dune ", sort_by="TITLE"))

        book_repo.search.assert_awaited_once()

    @pytest.mark.asyncio
    async def test_available_books_blank_city(
        self, service: CatalogService, book_repo: MagicMock
    ) -> None:
        """Test that a blank city means no city filter."""
        await service.get_available_books("   ")
        book_repo.get_available.assert_awaited_once_with(city=None)


# =============================================================================
# Create Tests
# =============================================================================


class TestCreateBook:
    """Tests for listing books."""

    @pytest.mark.asyncio
    async def test_create_book(
        self,
        service: CatalogService,
        book_repo: MagicMock,
        mock_cache: MagicMock,
    ) -> None:
        """Test that a new book is available, committed and invalidates caches."""
        book = await service.create_book(
            OWNER, BookCreate(title="Dune", author="Frank Herbert", genre_ids=[1])
        )

        assert book.id == 50
        assert book.status == BookStatus.AVAILABLE.value
        assert book.owner_id == OWNER
        book_repo.replace_genres.assert_awaited_once()
        book_repo.commit.assert_awaited_once()
        mock_cache.bump.assert_awaited_once_with(*BOOK_COLLECTIONS)

    @pytest.mark.asyncio
    async def test_unknown_genre(
        self, service: CatalogService, book_repo: MagicMock
    ) -> None:
        """Test that an unknown genre ID aborts before anything is written."""
        with pytest.raises(GenreNotFoundError):
            await service.create_book(
                OWNER, BookCreate(title="Dune", author="Frank Herbert", genre_ids=[1, 7])
            )
        book_repo.create.assert_not_awaited()

    @pytest.mark.asyncio
    async def test_summary_generated_from_description(
        self,
        book_repo: MagicMock,
        genre_repo: MagicMock,
        mock_cache: MagicMock,
        summarizer: MagicMock,
        test_settings: Settings,
    ) -> None:
        """Test that a missing summary is generated when a generator is configured."""
        service = CatalogService(
            book_repo, genre_repo, mock_cache, settings=test_settings, summarizer=summarizer
        )

        book = await service.create_book(
            OWNER, BookCreate(title="Dune", author="F", description="Sand and spice")
        )

        summarizer.generate.assert_awaited_once_with("Sand and spice")
        assert book.summary == "A generated summary."

    @pytest.mark.asyncio
    async def test_supplied_summary_is_kept(
        self,
        book_repo: MagicMock,
        genre_repo: MagicMock,
        mock_cache: MagicMock,
        summarizer: MagicMock,
        test_settings: Settings,
    ) -> None:
        """Test that an owner-supplied summary skips generation."""
        service = CatalogService(
            book_repo, genre_repo, mock_cache, settings=test_settings, summarizer=summarizer
        )

        book = await service.create_book(
            OWNER,
            BookCreate(title="Dune", author="F", description="Sand", summary="Mine."),
        )

        summarizer.generate.assert_not_awaited()
        assert book.summary == "Mine."

    @pytest.mark.asyncio
    async def test_no_generation_without_description(
        self,
        book_repo: MagicMock,
        genre_repo: MagicMock,
        mock_cache: MagicMock,
        summarizer: MagicMock,
        test_settings: Settings,
    ) -> None:
        """Test that an empty description is never sent for summarizing."""
        service = CatalogService(
            book_repo, genre_repo, mock_cache, settings=test_settings, summarizer=summarizer
        )

        await service.create_book(OWNER, BookCreate(title="Dune", author="F"))

        summarizer.generate.assert_not_awaited()

    @pytest.mark.asyncio
    async def test_summary_failure_propagates(
        self,
        book_repo: MagicMock,
        genre_repo: MagicMock,
        mock_cache: MagicMock,
        summarizer: MagicMock,
        test_settings: Settings,
    ) -> None:
        """Test that a failed generation aborts the listing."""
        summarizer.generate.side_effect = SummaryGenerationError("boom")
        service = CatalogService(
            book_repo, genre_repo, mock_cache, settings=test_settings, summarizer=summarizer
        )

        with pytest.raises(SummaryGenerationError):
            await service.create_book(
                OWNER, BookCreate(title="Dune", author="F", description="Sand")
            )
        book_repo.create.assert_not_awaited()


# =============================================================================
# Update / Delete Tests
# =============================================================================


class TestUpdateBook:
    """Tests for editing books."""

    @pytest.mark.asyncio
    async def test_update_fields(
        self,
        service: CatalogService,
        book_repo: MagicMock,
        mock_cache: MagicMock,
    ) -> None:
        """Test that supplied fields change and omitted ones stay."""
        book = await service.update_book(1, OWNER, BookUpdate(title="Dune Messiah"))

        assert book.title == "Dune Messiah"
        assert book.author == "Frank Herbert"
        book_repo.replace_genres.assert_not_awaited()
        mock_cache.bump.assert_awaited_once_with(*BOOK_COLLECTIONS)

    @pytest.mark.asyncio
    async def test_empty_genre_list_clears(
        self, service: CatalogService, book_repo: MagicMock
    ) -> None:
        """Test that an empty genre list replaces the associations with nothing."""
        await service.update_book(1, OWNER, BookUpdate(genre_ids=[]))
        book_repo.replace_genres.assert_awaited_once()
        assert book_repo.replace_genres.await_args.args[1] == []

    @pytest.mark.asyncio
    async def test_take_off_market(self, service: CatalogService) -> None:
        """Test that an owner can reserve an available book."""
        book = await service.update_book(1, OWNER, BookUpdate(status="reserved"))
        assert book.status == BookStatus.RESERVED.value

    @pytest.mark.asyncio
    async def test_not_owner(self, service: CatalogService) -> None:
        """Test that only the owner edits a book."""
        with pytest.raises(BookForbiddenError):
            await service.update_book(1, STRANGER, BookUpdate(title="Mine now"))

    @pytest.mark.asyncio
    @pytest.mark.parametrize("status", [BookStatus.PENDING, BookStatus.ACCEPTED])
    async def test_status_locked_during_exchange(
        self,
        service: CatalogService,
        book_repo: MagicMock,
        status: BookStatus,
    ) -> None:
        """Test that a book in an exchange keeps its status."""
        book_repo.get_by_id.return_value = make_book(status=status)

        with pytest.raises(BookInExchangeError):
            await service.update_book(1, OWNER, BookUpdate(status="available"))
        book_repo.commit.assert_not_awaited()


class TestDeleteBook:
    """Tests for removing books."""

    @pytest.mark.asyncio
    async def test_delete(
        self,
        service: CatalogService,
        book_repo: MagicMock,
        mock_cache: MagicMock,
    ) -> None:
        """Test that deleting soft deletes and invalidates caches."""
        await service.delete_book(1, OWNER)

        book_repo.soft_delete.assert_awaited_once()
        mock_cache.bump.assert_awaited_once_with(*BOOK_COLLECTIONS)

    @pytest.mark.asyncio
    async def test_delete_refused_during_exchange(
        self, service: CatalogService, book_repo: MagicMock
    ) -> None:
        """Test that a pending book cannot be deleted."""
        book_repo.get_by_id.return_value = make_book(status=BookStatus.PENDING)

        with pytest.raises(BookInExchangeError):
            await service.delete_book(1, OWNER)
        book_repo.soft_delete.assert_not_awaited()

    @pytest.mark.asyncio
    async def test_delete_not_owner(self, service: CatalogService) -> None:
        """Test that only the owner deletes a book."""
        with pytest.raises(BookForbiddenError):
            await service.delete_book(1, STRANGER)
