"""Models package for BookSwap.

This module exports the Base class and all model classes.
"""

from bookswap.models.base import (
    Base,
    IntegerPrimaryKeyMixin,
    SoftDeleteMixin,
    TimestampMixin,
)
from bookswap.models.book import Book, BookStatus, book_genres
from bookswap.models.exchange import Exchange, ExchangeStatus
from bookswap.models.genre import Genre
from bookswap.models.review import Review
from bookswap.models.user import User

__all__ = [
    # Base and Mixins
    "Base",
    "IntegerPrimaryKeyMixin",
    "TimestampMixin",
    "SoftDeleteMixin",
    # Marketplace
    "User",
    "Book",
    "BookStatus",
    "book_genres",
    "Genre",
    "Exchange",
    "ExchangeStatus",
    "Review",
]
