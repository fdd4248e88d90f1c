"""Review model - feedback one user leaves about another."""

from __future__ import annotations

from sqlalchemy import CheckConstraint, ForeignKey, String
from sqlalchemy.orm import Mapped, mapped_column

from bookswap.models.base import Base, IntegerPrimaryKeyMixin, TimestampMixin

REVIEW_TEXT_MIN_LENGTH = 10
REVIEW_TEXT_MAX_LENGTH = 150
REVIEW_RATING_MIN = 1
REVIEW_RATING_MAX = 5


class Review(IntegerPrimaryKeyMixin, TimestampMixin, Base):
    """Review written by ``author_id`` about ``target_user_id``.

    Attributes:
        author_id: User who wrote the review
        target_user_id: User being reviewed (never the author)
        target_book_id: Book the review refers to
        text: Trimmed review text
        rating: Score from 1 to 5
    """

    __tablename__ = "reviews"
    __table_args__ = (
        CheckConstraint(
            f"rating BETWEEN {REVIEW_RATING_MIN} AND {REVIEW_RATING_MAX}",
            name="ck_reviews_rating_range",
        ),
    )

    author_id: Mapped[int] = mapped_column(
        ForeignKey("users.id", ondelete="CASCADE"),
        nullable=False,
        index=True,
    )
    target_user_id: Mapped[int] = mapped_column(
        ForeignKey("users.id", ondelete="CASCADE"),
        nullable=False,
        index=True,
    )
    target_book_id: Mapped[int] = mapped_column(
        ForeignKey("books.id", ondelete="CASCADE"),
        nullable=False,
        index=True,
    )
    text: Mapped[str] = mapped_column(String(REVIEW_TEXT_MAX_LENGTH), nullable=False)
    rating: Mapped[int] = mapped_column(nullable=False)

    def __repr__(self) -> str:
        return (
            f"<Review(id={self.id}, author_id={self.author_id}, "
            f"target_user_id={self.target_user_id}, rating={self.rating})>"
        )
