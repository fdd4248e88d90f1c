"""User repository for marketplace members."""

from sqlalchemy import func, select

from bookswap.models.book import Book
from bookswap.models.user import User
from bookswap.repositories.base import SoftDeleteRepository


class UserRepository(SoftDeleteRepository[User]):
    """Repository for User model with lookup by email."""

    async def get_by_email(
        self, email: str, include_deleted: bool = False
    ) -> User | None:
        """Get a user by email (case-insensitive).

        Args:
            email: Login email
            include_deleted: Also match soft-deleted accounts, whose emails
                stay reserved

        Returns:
            User if found, None otherwise
        """
        query = select(User) if include_deleted else self._base_query()
        result = await self.session.execute(
            query.where(func.lower(User.email) == email.strip().lower())
        )
        return result.scalar_one_or_none()

    async def count_books(self, user_id: int) -> int:
        """Count the user's listed (not deleted) books."""
        result = await self.session.execute(
            select(func.count())
            .select_from(Book)
            .where(Book.owner_id == user_id)
            .where(Book.deleted_at.is_(None))
        )
        return result.scalar_one()
