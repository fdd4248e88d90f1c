"""Review service - user feedback after exchanges."""

import structlog

from bookswap.core.exceptions import (
    BookNotFoundError,
    ReviewForbiddenError,
    ReviewNotFoundError,
    ReviewRatingError,
    ReviewTextLengthError,
    SelfReviewError,
    UserNotFoundError,
)
from bookswap.models.review import (
    REVIEW_RATING_MAX,
    REVIEW_RATING_MIN,
    REVIEW_TEXT_MAX_LENGTH,
    REVIEW_TEXT_MIN_LENGTH,
    Review,
)
from bookswap.repositories.book import BookRepository
from bookswap.repositories.review import ReviewRepository
from bookswap.repositories.user import UserRepository
from bookswap.schemas.reviews import ReviewCreate

logger = structlog.get_logger(__name__)


class ReviewService:
    """Service for reviews.

    Text is trimmed before its length is checked; length counts characters,
    not bytes.
    """

    def __init__(
        self,
        review_repo: ReviewRepository,
        user_repo: UserRepository,
        book_repo: BookRepository,
    ) -> None:
        self.review_repo = review_repo
        self.user_repo = user_repo
        self.book_repo = book_repo

    async def create_review(self, author_id: int, data: ReviewCreate) -> Review:
        """Leave a review about another user.

        Raises:
            ReviewTextLengthError: If the trimmed text is not 10..150 characters
            ReviewRatingError: If the rating is not 1..5
            SelfReviewError: If the target user is the author
            UserNotFoundError: If the target user does not exist
            BookNotFoundError: If the target book does not exist
        """
        text = data.text.strip()
        if not REVIEW_TEXT_MIN_LENGTH <= len(text) <= REVIEW_TEXT_MAX_LENGTH:
            raise ReviewTextLengthError(len(text))
        if not REVIEW_RATING_MIN <= data.rating <= REVIEW_RATING_MAX:
            raise ReviewRatingError(data.rating)
        if data.target_user_id == author_id:
            raise SelfReviewError()

        if not await self.user_repo.exists(data.target_user_id):
            raise UserNotFoundError(data.target_user_id)
        if not await self.book_repo.exists(data.target_book_id):
            raise BookNotFoundError(data.target_book_id)

        review = await self.review_repo.create(
            Review(
                author_id=author_id,
                target_user_id=data.target_user_id,
                target_book_id=data.target_book_id,
                text=text,
                rating=data.rating,
            )
        )
        await self.review_repo.commit()

        logger.info(
            "review_created",
            review_id=review.id,
            author_id=author_id,
            target_user_id=data.target_user_id,
        )
        return review

    async def get_reviews_for_user(self, user_id: int) -> list[Review]:
        """Reviews about a user, newest first."""
        return await self.review_repo.get_for_user(user_id)

    async def get_reviews_for_book(self, book_id: int) -> list[Review]:
        """Reviews that refer to a book, newest first."""
        return await self.review_repo.get_for_book(book_id)

    async def delete_review(self, review_id: int, author_id: int) -> None:
        """Delete a review on behalf of its author.

        Raises:
            ReviewNotFoundError: If the review does not exist
            ReviewForbiddenError: If ``author_id`` did not write it
        """
        review = await self.review_repo.get_by_id(review_id)
        if review is None:
            raise ReviewNotFoundError(review_id)
        if review.author_id != author_id:
            raise ReviewForbiddenError(details={"review_id": review_id})

        await self.review_repo.hard_delete(review)
        await self.review_repo.commit()
        logger.info("review_deleted", review_id=review_id, author_id=author_id)
