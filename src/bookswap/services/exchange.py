"""Exchange service - the book swap state machine.

State Machine:
    pending → accepted → completed
           ↘ cancelled

Book status follows the exchange:

    exchange    initiator/recipient book
    --------    ------------------------
    created     available → pending
    accepted    pending → accepted
    completed   accepted → available, owners swapped
    cancelled   pending → available

Every status change is a conditional update on the expected status, so
two concurrent requests can never both reserve a book or both move the
same exchange. The loser gets the same error it would get had it arrived
second. All checks run before the first write; each operation commits
before the book caches are bumped.

Passing ``actor_id`` restricts who may act: the initiator creates and
cancels, the recipient accepts, either party completes.
"""

from datetime import UTC, datetime

import structlog

from bookswap.core.exceptions import (
    BookNotFoundError,
    BookUnavailableError,
    ExchangeForbiddenError,
    ExchangeInvalidIDError,
    ExchangeNotAcceptedError,
    ExchangeNotFoundError,
    ExchangeNotPendingError,
    InitiatorNotOwnerError,
    RecipientBookUnavailableError,
    RecipientNotOwnerError,
    SelfExchangeError,
)
from bookswap.models.book import Book, BookStatus
from bookswap.models.exchange import Exchange, ExchangeStatus
from bookswap.repositories.book import BookRepository
from bookswap.repositories.exchange import ExchangeRepository
from bookswap.services.cache import BOOK_COLLECTIONS, VersionedCache

logger = structlog.get_logger(__name__)


class ExchangeService:
    """Service driving exchanges through their lifecycle.

    Usage:
        ```python
        service = ExchangeService(exchange_repo, book_repo, cache)
        exchange = await service.create_exchange(
            initiator_id=1,
            recipient_id=2,
            initiator_book_id=10,
            recipient_book_id=20,
        )
        await service.accept_exchange(exchange.id, actor_id=2)
        await service.complete_exchange(exchange.id)
        ```
    """

    def __init__(
        self,
        exchange_repo: ExchangeRepository,
        book_repo: BookRepository,
        cache: VersionedCache,
    ) -> None:
        """Initialize the service.

        Args:
            exchange_repo: Repository for Exchange entities
            book_repo: Repository for Book entities
            cache: Version-tagged read cache (book collections are bumped)
        """
        self.exchange_repo = exchange_repo
        self.book_repo = book_repo
        self.cache = cache

    # -------------------------------------------------------------------------
    # Reads
    # -------------------------------------------------------------------------

    async def get_exchange(self, exchange_id: int) -> Exchange:
        """Get an exchange by ID.

        Raises:
            ExchangeInvalidIDError: If the ID is not positive
            ExchangeNotFoundError: If the exchange does not exist
        """
        if exchange_id <= 0:
            raise ExchangeInvalidIDError(exchange_id)
        exchange = await self.exchange_repo.get_by_id(exchange_id)
        if exchange is None:
            raise ExchangeNotFoundError(exchange_id)
        return exchange

    async def list_exchanges(self) -> list[Exchange]:
        """Get all exchanges, newest first."""
        return await self.exchange_repo.list_all()

    # -------------------------------------------------------------------------
    # Transitions
    # -------------------------------------------------------------------------

    async def create_exchange(
        self,
        initiator_id: int,
        recipient_id: int,
        initiator_book_id: int,
        recipient_book_id: int,
        actor_id: int | None = None,
    ) -> Exchange:
        """Propose swapping the initiator's book for the recipient's book.

        Both books are reserved (available → pending) before the exchange
        row is written.

        Raises:
            ExchangeForbiddenError: If ``actor_id`` is given and is not the initiator
            BookNotFoundError: If either book does not exist
            SelfExchangeError: If both books have the same owner
            InitiatorNotOwnerError: If the initiator does not own their book
            RecipientNotOwnerError: If the recipient does not own their book
            BookUnavailableError: If the initiator's book is not available
            RecipientBookUnavailableError: If the recipient's book is not available
        """
        if actor_id is not None and actor_id != initiator_id:
            raise ExchangeForbiddenError()

        initiator_book = await self._get_book(initiator_book_id)
        recipient_book = await self._get_book(recipient_book_id)

        if initiator_book.owner_id == recipient_book.owner_id:
            raise SelfExchangeError()
        if initiator_book.owner_id != initiator_id:
            raise InitiatorNotOwnerError(details={"book_id": initiator_book_id})
        if recipient_book.owner_id != recipient_id:
            raise RecipientNotOwnerError(details={"book_id": recipient_book_id})
        if initiator_book.status != BookStatus.AVAILABLE.value:
            raise BookUnavailableError(initiator_book_id)
        if recipient_book.status != BookStatus.AVAILABLE.value:
            raise RecipientBookUnavailableError(recipient_book_id)

        await self._reserve(initiator_book_id, recipient_book_id)

        exchange = await self.exchange_repo.create(
            Exchange(
                initiator_id=initiator_id,
                recipient_id=recipient_id,
                initiator_book_id=initiator_book_id,
                recipient_book_id=recipient_book_id,
                status=ExchangeStatus.PENDING.value,
            )
        )
        await self.exchange_repo.commit()
        await self.cache.bump(*BOOK_COLLECTIONS)

        logger.info(
            "exchange_created",
            exchange_id=exchange.id,
            initiator_id=initiator_id,
            recipient_id=recipient_id,
        )
        return exchange

    async def accept_exchange(
        self,
        exchange_id: int,
        actor_id: int | None = None,
    ) -> Exchange:
        """Accept a pending exchange; both books move to accepted.

        Raises:
            ExchangeInvalidIDError: If the ID is not positive
            ExchangeNotFoundError: If the exchange does not exist
            ExchangeForbiddenError: If ``actor_id`` is given and is not the recipient
            ExchangeNotPendingError: If the exchange is not pending
        """
        exchange = await self.get_exchange(exchange_id)
        if actor_id is not None and actor_id != exchange.recipient_id:
            raise ExchangeForbiddenError()
        if exchange.status != ExchangeStatus.PENDING.value:
            raise ExchangeNotPendingError(exchange_id, exchange.status)

        moved = await self.exchange_repo.transition(
            exchange_id, ExchangeStatus.PENDING, ExchangeStatus.ACCEPTED
        )
        if not moved:
            raise ExchangeNotPendingError(exchange_id)

        await self.book_repo.set_status_if(
            self._book_ids(exchange), BookStatus.PENDING, BookStatus.ACCEPTED
        )
        await self.exchange_repo.commit()
        await self.cache.bump(*BOOK_COLLECTIONS)

        logger.info("exchange_accepted", exchange_id=exchange_id)
        return exchange

    async def complete_exchange(
        self,
        exchange_id: int,
        actor_id: int | None = None,
    ) -> Exchange:
        """Complete an accepted exchange.

        Each book passes to the other party and becomes available again.

        Raises:
            ExchangeInvalidIDError: If the ID is not positive
            ExchangeNotFoundError: If the exchange does not exist
            ExchangeForbiddenError: If ``actor_id`` is given and is neither party
            ExchangeNotAcceptedError: If the exchange is not accepted
        """
        exchange = await self.get_exchange(exchange_id)
        if actor_id is not None and not exchange.involves(actor_id):
            raise ExchangeForbiddenError()
        if exchange.status != ExchangeStatus.ACCEPTED.value:
            raise ExchangeNotAcceptedError(exchange_id, exchange.status)

        moved = await self.exchange_repo.transition(
            exchange_id,
            ExchangeStatus.ACCEPTED,
            ExchangeStatus.COMPLETED,
            completed_at=datetime.now(UTC),
        )
        if not moved:
            raise ExchangeNotAcceptedError(exchange_id)

        swaps = (
            (exchange.initiator_book_id, exchange.recipient_id),
            (exchange.recipient_book_id, exchange.initiator_id),
        )
        for book_id, new_owner_id in swaps:
            transferred = await self.book_repo.transfer(
                book_id, new_owner_id, BookStatus.ACCEPTED, BookStatus.AVAILABLE
            )
            if not transferred:
                logger.warning(
                    "exchange_book_not_transferred",
                    exchange_id=exchange_id,
                    book_id=book_id,
                )

        await self.exchange_repo.commit()
        await self.cache.bump(*BOOK_COLLECTIONS)

        logger.info("exchange_completed", exchange_id=exchange_id)
        return exchange

    async def cancel_exchange(
        self,
        exchange_id: int,
        actor_id: int | None = None,
    ) -> Exchange:
        """Cancel a pending exchange and release both books.

        Accepted exchanges cannot be cancelled.

        Raises:
            ExchangeInvalidIDError: If the ID is not positive
            ExchangeNotFoundError: If the exchange does not exist
            ExchangeForbiddenError: If ``actor_id`` is given and is not the initiator
            ExchangeNotPendingError: If the exchange is not pending
        """
        exchange = await self.get_exchange(exchange_id)
        if actor_id is not None and actor_id != exchange.initiator_id:
            raise ExchangeForbiddenError()
        if exchange.status != ExchangeStatus.PENDING.value:
            raise ExchangeNotPendingError(exchange_id, exchange.status)

        moved = await self.exchange_repo.transition(
            exchange_id, ExchangeStatus.PENDING, ExchangeStatus.CANCELLED
        )
        if not moved:
            raise ExchangeNotPendingError(exchange_id)

        await self.book_repo.set_status_if(
            self._book_ids(exchange), BookStatus.PENDING, BookStatus.AVAILABLE
        )
        await self.exchange_repo.commit()
        await self.cache.bump(*BOOK_COLLECTIONS)

        logger.info("exchange_cancelled", exchange_id=exchange_id)
        return exchange

    # -------------------------------------------------------------------------
    # Private Methods
    # -------------------------------------------------------------------------

    async def _get_book(self, book_id: int) -> Book:
        book = await self.book_repo.get_by_id(book_id)
        if book is None:
            raise BookNotFoundError(book_id)
        return book

    async def _reserve(self, initiator_book_id: int, recipient_book_id: int) -> None:
        """Move both books from available to pending, or neither."""
        if not await self.book_repo.set_status_if(
            [initiator_book_id], BookStatus.AVAILABLE, BookStatus.PENDING
        ):
            raise BookUnavailableError(initiator_book_id)

        if not await self.book_repo.set_status_if(
            [recipient_book_id], BookStatus.AVAILABLE, BookStatus.PENDING
        ):
            await self.book_repo.set_status_if(
                [initiator_book_id], BookStatus.PENDING, BookStatus.AVAILABLE
            )
            raise RecipientBookUnavailableError(recipient_book_id)

    @staticmethod
    def _book_ids(exchange: Exchange) -> list[int]:
        return [exchange.initiator_book_id, exchange.recipient_book_id]
