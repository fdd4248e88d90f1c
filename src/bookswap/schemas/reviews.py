"""Review API schemas.

Text length and rating bounds are enforced by the review service so the
same rules apply to every caller; the request model only checks types.
"""

from bookswap.schemas.common import BaseSchema, TimestampMixin


class ReviewCreate(BaseSchema):
    """Request body for leaving a review. The author is the caller."""

    target_user_id: int
    target_book_id: int
    text: str
    rating: int


class ReviewRead(BaseSchema, TimestampMixin):
    """Review as returned by the API."""

    id: int
    author_id: int
    target_user_id: int
    target_book_id: int
    text: str
    rating: int
