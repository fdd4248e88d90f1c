"""Review repository."""

from sqlalchemy import select

from bookswap.models.review import Review
from bookswap.repositories.base import BaseRepository


class ReviewRepository(BaseRepository[Review]):
    """Repository for Review model."""

    async def get_for_user(self, target_user_id: int) -> list[Review]:
        """Get reviews about a user, newest first."""
        result = await self.session.execute(
            select(Review)
            .where(Review.target_user_id == target_user_id)
            .order_by(Review.created_at.desc(), Review.id.desc())
        )
        return list(result.scalars().all())

    async def get_for_book(self, target_book_id: int) -> list[Review]:
        """Get reviews that refer to a book, newest first."""
        result = await self.session.execute(
            select(Review)
            .where(Review.target_book_id == target_book_id)
            .order_by(Review.created_at.desc(), Review.id.desc())
        )
        return list(result.scalars().all())
