"""Generic base repository with async CRUD operations and soft delete support.

This module provides a generic repository pattern for SQLAlchemy models:
- BaseRepository[T]: Generic class for standard CRUD operations
- SoftDeleteRepository[T]: Repository with soft delete support
- All methods are async and use SQLAlchemy 2.0 style

Usage:
    from bookswap.repositories.base import BaseRepository, SoftDeleteRepository
    from bookswap.models.book import Book

    # For models without soft delete
    class ReviewRepository(BaseRepository[Review]):
        pass

    # For models with SoftDeleteMixin
    class BookRepository(SoftDeleteRepository[Book]):
        pass

    repo = BookRepository(session)
    book = await repo.get_by_id(book_id)
    books = await repo.get_all(offset=0, limit=10)
    await repo.soft_delete(book)  # Sets deleted_at instead of removing
"""

from typing import Any, Generic, TypeVar

from sqlalchemy import Select, func, select
from sqlalchemy.ext.asyncio import AsyncSession

from bookswap.models.base import Base

# Type variable for model classes
T = TypeVar("T", bound=Base)


class BaseRepository(Generic[T]):
    """Generic repository providing async CRUD operations.

    Type Parameters:
        T: The SQLAlchemy model class

    Attributes:
        session: The async database session
        model_class: The model class for this repository
    """

    model_class: type[T]

    def __init__(self, session: AsyncSession) -> None:
        """Initialize the repository with a database session.

        Args:
            session: Async database session
        """
        self.session = session

    def __init_subclass__(cls, **kwargs: Any) -> None:
        """Extract model class from Generic type parameter."""
        super().__init_subclass__(**kwargs)
        for base in getattr(cls, "__orig_bases__", ()):
            args = getattr(base, "__args__", ())
            if args and isinstance(args[0], type):
                cls.model_class = args[0]
                break

    def _base_query(self) -> Select[tuple[T]]:
        """Starting SELECT for reads; subclasses narrow it."""
        return select(self.model_class)

    async def get_by_id(self, id: int) -> T | None:
        """Get a single entity by its ID.

        Args:
            id: The entity's ID

        Returns:
            The entity if found, None otherwise
        """
        result = await self.session.execute(
            self._base_query().where(self.model_class.id == id)
        )
        return result.scalar_one_or_none()

    async def get_all(
        self,
        *,
        offset: int = 0,
        limit: int = 100,
    ) -> list[T]:
        """Get all entities with pagination, newest first.

        Args:
            offset: Number of records to skip
            limit: Maximum records to return

        Returns:
            List of entities
        """
        result = await self.session.execute(
            self._base_query()
            .order_by(self.model_class.created_at.desc(), self.model_class.id.desc())
            .offset(offset)
            .limit(limit)
        )
        return list(result.scalars().all())

    async def count(self) -> int:
        """Count total entities.

        Returns:
            Total count
        """
        result = await self.session.execute(
            select(func.count()).select_from(self._base_query().subquery())
        )
        return result.scalar_one()

    async def create(self, entity: T) -> T:
        """Create a new entity.

        Args:
            entity: The entity to create

        Returns:
            The created entity with generated fields (id, timestamps)
        """
        self.session.add(entity)
        await self.session.flush()
        await self.session.refresh(entity)
        return entity

    async def update(self, entity: T) -> T:
        """Flush pending changes of an entity and reload it.

        Args:
            entity: The entity with updated fields

        Returns:
            The updated entity
        """
        await self.session.flush()
        await self.session.refresh(entity)
        return entity

    async def hard_delete(self, entity: T) -> None:
        """Permanently delete an entity from the database.

        Args:
            entity: The entity to permanently delete
        """
        await self.session.delete(entity)
        await self.session.flush()

    async def commit(self) -> None:
        """Commit the session's transaction.

        Services commit before invalidating caches so readers never
        repopulate a fresh cache version with pre-write rows.
        """
        await self.session.commit()

    async def rollback(self) -> None:
        """Roll back the session's transaction after a failed write."""
        await self.session.rollback()

    async def exists(self, id: int) -> bool:
        """Check if an entity exists.

        Args:
            id: The entity's ID

        Returns:
            True if exists, False otherwise
        """
        query = self._base_query().where(self.model_class.id == id)
        result = await self.session.execute(
            select(func.count()).select_from(query.subquery())
        )
        return result.scalar_one() > 0


class SoftDeleteRepository(BaseRepository[T], Generic[T]):
    """Repository with soft delete support.

    This repository is for models that include SoftDeleteMixin.
    Reads exclude soft-deleted records; deleting sets the deleted_at timestamp.

    Type Parameters:
        T: The SQLAlchemy model class (must include SoftDeleteMixin)
    """

    def _base_query(self) -> Select[tuple[T]]:
        return select(self.model_class).where(
            self.model_class.deleted_at.is_(None)  # type: ignore[attr-defined]
        )

    async def soft_delete(self, entity: T) -> T:
        """Soft delete an entity by setting deleted_at timestamp.

        Args:
            entity: The entity to soft delete

        Returns:
            The soft-deleted entity
        """
        entity.mark_deleted()  # type: ignore[attr-defined]
        await self.session.flush()
        await self.session.refresh(entity)
        return entity
