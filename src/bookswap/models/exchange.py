"""Exchange model - a swap of two books between two users."""

from __future__ import annotations

from datetime import datetime
from enum import Enum

from sqlalchemy import DateTime, ForeignKey, String
from sqlalchemy.orm import Mapped, mapped_column

from bookswap.models.base import Base, IntegerPrimaryKeyMixin, TimestampMixin


class ExchangeStatus(str, Enum):
    """Lifecycle status of an exchange."""

    PENDING = "pending"
    ACCEPTED = "accepted"
    COMPLETED = "completed"
    CANCELLED = "cancelled"


class Exchange(IntegerPrimaryKeyMixin, TimestampMixin, Base):
    """Exchange of the initiator's book for the recipient's book.

    State Machine:
        pending → accepted → completed
               ↘ cancelled

    Completed and cancelled exchanges are terminal and never change again.

    Attributes:
        initiator_id: User who proposed the exchange
        recipient_id: User who owns the requested book
        initiator_book_id: Book offered by the initiator
        recipient_book_id: Book requested from the recipient
        status: Current status (see ExchangeStatus)
        completed_at: Set when the exchange completes
    """

    __tablename__ = "exchanges"

    initiator_id: Mapped[int] = mapped_column(
        ForeignKey("users.id"),
        nullable=False,
        index=True,
    )
    recipient_id: Mapped[int] = mapped_column(
        ForeignKey("users.id"),
        nullable=False,
        index=True,
    )
    initiator_book_id: Mapped[int] = mapped_column(
        ForeignKey("books.id"),
        nullable=False,
    )
    recipient_book_id: Mapped[int] = mapped_column(
        ForeignKey("books.id"),
        nullable=False,
    )
    status: Mapped[str] = mapped_column(
        String(20),
        nullable=False,
        default=ExchangeStatus.PENDING.value,
        index=True,
    )
    completed_at: Mapped[datetime | None] = mapped_column(
        DateTime(timezone=True),
        nullable=True,
    )

    def __repr__(self) -> str:
        return (
            f"<Exchange(id={self.id}, initiator_id={self.initiator_id}, "
            f"recipient_id={self.recipient_id}, status='{self.status}')>"
        )

    def involves(self, user_id: int) -> bool:
        """Check if the user is either party of the exchange."""
        return user_id in (self.initiator_id, self.recipient_id)
