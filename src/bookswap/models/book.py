"""Book model - a physical book listed by its owner for exchange.

Books are soft-deleted so exchanges and reviews that point at them stay
readable after the owner removes the listing.
"""

from __future__ import annotations

from enum import Enum
from typing import TYPE_CHECKING

from sqlalchemy import Column, ForeignKey, String, Table, Text
from sqlalchemy.orm import Mapped, mapped_column, relationship

from bookswap.models.base import (
    Base,
    IntegerPrimaryKeyMixin,
    SoftDeleteMixin,
    TimestampMixin,
)

if TYPE_CHECKING:
    from bookswap.models.genre import Genre


class BookStatus(str, Enum):
    """Availability of a book for exchange.

    State Machine:
        available → pending (exchange requested) → accepted → available (completed)
                          ↘ available (cancelled)
        available ↔ reserved (owner flag)
    """

    AVAILABLE = "available"
    RESERVED = "reserved"
    PENDING = "pending"
    ACCEPTED = "accepted"


#: Statuses that tie a book to an open exchange
EXCHANGE_LOCKED_STATUSES = (BookStatus.PENDING.value, BookStatus.ACCEPTED.value)


book_genres = Table(
    "book_genres",
    Base.metadata,
    Column(
        "book_id",
        ForeignKey("books.id", ondelete="CASCADE"),
        primary_key=True,
    ),
    Column(
        "genre_id",
        ForeignKey("genres.id", ondelete="CASCADE"),
        primary_key=True,
    ),
)


class Book(IntegerPrimaryKeyMixin, TimestampMixin, SoftDeleteMixin, Base):
    """A book offered for exchange.

    Attributes:
        title: Book title
        author: Book author
        description: Owner-supplied description
        summary: Short summary, generated when not supplied
        status: Availability (see BookStatus)
        owner_id: Foreign key to the owning user
    """

    __tablename__ = "books"

    title: Mapped[str] = mapped_column(String(255), nullable=False, index=True)
    author: Mapped[str] = mapped_column(String(255), nullable=False, index=True)
    description: Mapped[str] = mapped_column(Text, nullable=False, default="")
    summary: Mapped[str] = mapped_column(Text, nullable=False, default="")
    status: Mapped[str] = mapped_column(
        String(20),
        nullable=False,
        default=BookStatus.AVAILABLE.value,
        index=True,
    )
    owner_id: Mapped[int] = mapped_column(
        ForeignKey("users.id", ondelete="CASCADE"),
        nullable=False,
        index=True,
    )

    genres: Mapped[list[Genre]] = relationship(
        "Genre",
        secondary=book_genres,
        lazy="selectin",
        order_by="Genre.name",
    )

    def __repr__(self) -> str:
        return (
            f"<Book(id={self.id}, title='{self.title}', "
            f"owner_id={self.owner_id}, status='{self.status}')>"
        )

    @property
    def in_exchange(self) -> bool:
        """Check if the book is tied to a pending or accepted exchange."""
        return self.status in EXCHANGE_LOCKED_STATUSES
