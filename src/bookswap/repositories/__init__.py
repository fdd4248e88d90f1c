"""Repository pattern package for BookSwap.

This module exports base repository classes and concrete repositories.
"""

from bookswap.repositories.base import BaseRepository, SoftDeleteRepository
from bookswap.repositories.book import BookRepository
from bookswap.repositories.exchange import ExchangeRepository
from bookswap.repositories.genre import GenreRepository
from bookswap.repositories.review import ReviewRepository
from bookswap.repositories.user import UserRepository

__all__ = [
    # Base
    "BaseRepository",
    "SoftDeleteRepository",
    # Marketplace
    "UserRepository",
    "BookRepository",
    "GenreRepository",
    "ExchangeRepository",
    "ReviewRepository",
]
