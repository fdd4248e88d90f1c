"""Book catalog API schemas.

This module defines Pydantic models for book CRUD, list pages and the
search query. ``BookSearchQuery`` normalizes its input so that equivalent
searches produce the same cache signature.
"""

from typing import Any, Literal

from pydantic import BaseModel, Field, field_validator

from bookswap.models.book import BookStatus
from bookswap.schemas.common import (
    BaseSchema,
    TimestampMixin,
    clamp_limit,
    clamp_page,
)
from bookswap.schemas.genres import GenreRead

SORT_FIELDS = ("created_at", "title", "author", "id")
SORT_ORDERS = ("asc", "desc")
DEFAULT_SORT_BY = "created_at"
DEFAULT_SORT_ORDER = "desc"


# =============================================================================
# Create / Update
# =============================================================================


class BookCreate(BaseSchema):
    """Request body for listing a new book.

    Attributes:
        title: Book title
        author: Book author
        description: Free-form description, used as summary input
        summary: Optional summary; generated from the description when omitted
        genre_ids: Genres to attach
    """

    title: str = Field(..., min_length=1, max_length=255, description="Book title")
    author: str = Field(..., min_length=1, max_length=255, description="Book author")
    description: str = Field("", description="Book description")
    summary: str | None = Field(None, description="Short summary")
    genre_ids: list[int] = Field(default_factory=list, description="Genre IDs")


class BookUpdate(BaseSchema):
    """Request body for editing a book. Omitted fields stay unchanged.

    ``genre_ids`` replaces every association when present, an empty list
    clears them. ``status`` lets the owner take a book off the market.
    """

    title: str | None = Field(None, min_length=1, max_length=255)
    author: str | None = Field(None, min_length=1, max_length=255)
    description: str | None = None
    summary: str | None = None
    status: Literal["available", "reserved"] | None = None
    genre_ids: list[int] | None = None


# =============================================================================
# Read
# =============================================================================


class BookRead(BaseSchema, TimestampMixin):
    """Book as returned by the API and stored in the read cache."""

    id: int
    title: str
    author: str
    description: str
    summary: str
    status: str
    owner_id: int
    genres: list[GenreRead] = Field(default_factory=list)


class BookSearchPage(BaseModel):
    """One page of search results."""

    items: list[BookRead]
    total: int = Field(..., ge=0)
    page: int = Field(..., ge=1)
    limit: int = Field(..., ge=1)


# =============================================================================
# Search
# =============================================================================


class BookSearchQuery(BaseSchema):
    """Normalized catalog search query.

    Blank strings become None, sort options are lower-cased and unknown
    values fall back to the defaults, page and limit are clamped.
    """

    title: str | None = None
    author: str | None = None
    city: str | None = None
    status: str | None = None
    genre_id: int | None = None
    page: int = 1
    limit: int = 20
    sort_by: str = DEFAULT_SORT_BY
    sort_order: str = DEFAULT_SORT_ORDER

    @field_validator("title", "author", "city", "status", mode="before")
    @classmethod
    def _blank_to_none(cls, value: Any) -> Any:
        if isinstance(value, str):
            value = value.strip()
            return value or None
        return value

    @field_validator("status")
    @classmethod
    def _lower_status(cls, value: str | None) -> str | None:
        if value is None:
            return None
        value = value.lower()
        if value not in {s.value for s in BookStatus}:
            raise ValueError(f"unknown book status: {value}")
        return value

    @field_validator("genre_id", mode="before")
    @classmethod
    def _zero_genre_to_none(cls, value: Any) -> Any:
        if value in (0, "", "0"):
            return None
        return value

    @field_validator("page", mode="before")
    @classmethod
    def _clamp_page(cls, value: Any) -> int:
        return clamp_page(int(value) if value not in (None, "") else None)

    @field_validator("limit", mode="before")
    @classmethod
    def _clamp_limit(cls, value: Any) -> int:
        return clamp_limit(int(value) if value not in (None, "") else None)

    @field_validator("sort_by", mode="before")
    @classmethod
    def _normalize_sort_by(cls, value: Any) -> str:
        value = str(value or "").strip().lower()
        return value if value in SORT_FIELDS else DEFAULT_SORT_BY

    @field_validator("sort_order", mode="before")
    @classmethod
    def _normalize_sort_order(cls, value: Any) -> str:
        value = str(value or "").strip().lower()
        return value if value in SORT_ORDERS else DEFAULT_SORT_ORDER

    @property
    def offset(self) -> int:
        """Row offset of the requested page."""
        return (self.page - 1) * self.limit
