"""End-to-end exchange lifecycle against SQLite and the in-memory cache."""

import pytest
from sqlalchemy.ext.asyncio import AsyncSession

from bookswap.core.exceptions import (
    BookInExchangeError,
    BookUnavailableError,
    ExchangeNotAcceptedError,
    ExchangeNotPendingError,
)
from bookswap.models.book import Book, BookStatus
from bookswap.models.exchange import ExchangeStatus
from bookswap.models.user import User
from bookswap.repositories.book import BookRepository
from bookswap.repositories.exchange import ExchangeRepository
from bookswap.repositories.genre import GenreRepository
from bookswap.repositories.user import UserRepository
from bookswap.services.cache import BOOKS_LIST, VersionedCache
from bookswap.services.catalog import CatalogService
from bookswap.services.exchange import ExchangeService


@pytest.fixture
async def parties(db_session: AsyncSession) -> dict:
    """Alice and Bob, each with one available book, plus Carol with one."""
    users = UserRepository(db_session)
    books = BookRepository(db_session)

    alice = await users.create(User(name="Alice", email="alice@example.com", password_hash="x"))
    bob = await users.create(User(name="Bob", email="bob@example.com", password_hash="x"))
    carol = await users.create(User(name="Carol", email="carol@example.com", password_hash="x"))

    alice_book = await books.create(Book(title="Dune", author="Herbert", owner_id=alice.id))
    bob_book = await books.create(Book(title="Emma", author="Austen", owner_id=bob.id))
    carol_book = await books.create(Book(title="Ulysses", author="Joyce", owner_id=carol.id))
    await db_session.commit()

    return {
        "alice": alice.id,
        "bob": bob.id,
        "carol": carol.id,
        "alice_book": alice_book.id,
        "bob_book": bob_book.id,
        "carol_book": carol_book.id,
    }


@pytest.fixture
def exchanges(db_session: AsyncSession, versioned_cache: VersionedCache) -> ExchangeService:
    return ExchangeService(
        ExchangeRepository(db_session), BookRepository(db_session), versioned_cache
    )


async def reload(db_session: AsyncSession, book_id: int) -> Book:
    """Read a book back from the database."""
    db_session.expire_all()
    book = await BookRepository(db_session).get_by_id(book_id)
    assert book is not None
    return book


async def propose(exchanges: ExchangeService, parties: dict):
    return await exchanges.create_exchange(
        initiator_id=parties["alice"],
        recipient_id=parties["bob"],
        initiator_book_id=parties["alice_book"],
        recipient_book_id=parties["bob_book"],
        actor_id=parties["alice"],
    )


# =============================================================================
# Lifecycle Tests
# =============================================================================


class TestLifecycle:
    """Tests for the full exchange lifecycle."""

    @pytest.mark.asyncio
    async def test_accept_then_complete(
        self,
        db_session: AsyncSession,
        exchanges: ExchangeService,
        parties: dict,
    ) -> None:
        """Test that completing swaps owners and frees both books."""
        alice, bob = parties["alice"], parties["bob"]
        exchange = await propose(exchanges, parties)
        exchange_id = exchange.id

        assert exchange.status == ExchangeStatus.PENDING.value
        assert (await reload(db_session, parties["alice_book"])).status == "pending"
        assert (await reload(db_session, parties["bob_book"])).status == "pending"

        await exchanges.accept_exchange(exchange_id, actor_id=bob)
        assert (await reload(db_session, parties["alice_book"])).status == "accepted"

        await exchanges.complete_exchange(exchange_id, actor_id=alice)

        db_session.expire_all()
        stored = await exchanges.get_exchange(exchange_id)
        assert stored.status == ExchangeStatus.COMPLETED.value
        assert stored.completed_at is not None

        # reload() expires every loaded object, so read each book before the next
        alice_book = await reload(db_session, parties["alice_book"])
        alice_book_owner, alice_book_status = alice_book.owner_id, alice_book.status
        bob_book = await reload(db_session, parties["bob_book"])
        bob_book_owner, bob_book_status = bob_book.owner_id, bob_book.status

        assert alice_book_owner == bob
        assert bob_book_owner == alice
        assert alice_book_status == bob_book_status == BookStatus.AVAILABLE.value

    @pytest.mark.asyncio
    async def test_completed_exchange_cannot_be_cancelled(
        self,
        exchanges: ExchangeService,
        parties: dict,
    ) -> None:
        """Test that a terminal exchange refuses further transitions."""
        exchange = await propose(exchanges, parties)
        await exchanges.accept_exchange(exchange.id)
        await exchanges.complete_exchange(exchange.id)

        with pytest.raises(ExchangeNotPendingError):
            await exchanges.cancel_exchange(exchange.id)
        with pytest.raises(ExchangeNotAcceptedError):
            await exchanges.complete_exchange(exchange.id)

    @pytest.mark.asyncio
    async def test_cancel_releases_books(
        self,
        db_session: AsyncSession,
        exchanges: ExchangeService,
        parties: dict,
    ) -> None:
        """Test that cancelling a pending exchange frees both books."""
        exchange_id = (await propose(exchanges, parties)).id

        await exchanges.cancel_exchange(exchange_id, actor_id=parties["alice"])

        for key in ("alice_book", "bob_book"):
            book = await reload(db_session, parties[key])
            assert book.status == BookStatus.AVAILABLE.value
        with pytest.raises(ExchangeNotPendingError):
            await exchanges.accept_exchange(exchange_id)

    @pytest.mark.asyncio
    async def test_accepted_exchange_cannot_be_cancelled(
        self,
        exchanges: ExchangeService,
        parties: dict,
    ) -> None:
        """Test that acceptance locks the exchange until completion."""
        exchange = await propose(exchanges, parties)
        await exchanges.accept_exchange(exchange.id)

        with pytest.raises(ExchangeNotPendingError):
            await exchanges.cancel_exchange(exchange.id)


# =============================================================================
# Concurrency-Safety Tests
# =============================================================================


class TestReservation:
    """Tests that a book takes part in at most one open exchange."""

    @pytest.mark.asyncio
    async def test_reserved_book_cannot_be_offered_again(
        self,
        db_session: AsyncSession,
        exchanges: ExchangeService,
        parties: dict,
    ) -> None:
        """Test that a pending book is refused for a second exchange."""
        await propose(exchanges, parties)
        carol = parties["carol"]

        with pytest.raises(BookUnavailableError):
            await exchanges.create_exchange(
                initiator_id=carol,
                recipient_id=parties["bob"],
                initiator_book_id=parties["carol_book"],
                recipient_book_id=parties["bob_book"],
            )

        carol_book = await reload(db_session, parties["carol_book"])
        assert carol_book.status == BookStatus.AVAILABLE.value

    @pytest.mark.asyncio
    async def test_book_locked_in_catalog(
        self,
        db_session: AsyncSession,
        exchanges: ExchangeService,
        versioned_cache: VersionedCache,
        parties: dict,
        test_settings,
    ) -> None:
        """Test that the owner cannot delete a book while it is in an exchange."""
        await propose(exchanges, parties)
        catalog = CatalogService(
            BookRepository(db_session),
            GenreRepository(db_session),
            versioned_cache,
            settings=test_settings,
        )

        with pytest.raises(BookInExchangeError):
            await catalog.delete_book(parties["alice_book"], parties["alice"])


# =============================================================================
# Cache Coherency Tests
# =============================================================================


class TestCacheCoherency:
    """Tests that exchange writes invalidate cached book lists."""

    @pytest.mark.asyncio
    async def test_list_reflects_exchange(
        self,
        db_session: AsyncSession,
        exchanges: ExchangeService,
        versioned_cache: VersionedCache,
        parties: dict,
        test_settings,
    ) -> None:
        """Test that a cached list read after an exchange write shows new statuses."""
        catalog = CatalogService(
            BookRepository(db_session),
            GenreRepository(db_session),
            versioned_cache,
            settings=test_settings,
        )

        before = await catalog.list_books()
        assert {b.status for b in before} == {"available"}
        version = await versioned_cache.current_version(BOOKS_LIST)

        await propose(exchanges, parties)

        assert await versioned_cache.current_version(BOOKS_LIST) == version + 1
        after = {b.id: b.status for b in await catalog.list_books()}
        assert after[parties["alice_book"]] == "pending"
        assert after[parties["bob_book"]] == "pending"
        assert after[parties["carol_book"]] == "available"
