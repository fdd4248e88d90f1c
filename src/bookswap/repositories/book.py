"""Book repository with catalog search and conditional status changes.

Status changes made on behalf of exchanges are conditional updates
(``WHERE status = expected``) so two requests can never reserve the same
book; the caller inspects the returned flag to learn whether it won.
"""

from __future__ import annotations

from collections.abc import Sequence
from datetime import UTC, datetime

from sqlalchemy import Select, func, select, update

from bookswap.models.book import Book, BookStatus, book_genres
from bookswap.models.genre import Genre
from bookswap.models.user import User
from bookswap.repositories.base import SoftDeleteRepository

#: Columns accepted by ``search(sort_by=...)``
SORTABLE_COLUMNS = {
    "created_at": Book.created_at,
    "title": Book.title,
    "author": Book.author,
    "id": Book.id,
}


class BookRepository(SoftDeleteRepository[Book]):
    """Repository for Book model."""

    async def list_books(self, *, limit: int, offset: int) -> list[Book]:
        """Get a page of listed books, newest first."""
        return await self.get_all(offset=offset, limit=limit)

    async def get_by_owner(
        self,
        owner_id: int,
        status: str | None = None,
    ) -> list[Book]:
        """Get a user's books, optionally restricted to one status."""
        query = self._base_query().where(Book.owner_id == owner_id)
        if status:
            query = query.where(Book.status == status)
        result = await self.session.execute(
            query.order_by(Book.created_at.desc(), Book.id.desc())
        )
        return list(result.scalars().all())

    async def get_available(self, city: str | None = None) -> list[Book]:
        """Get books open for exchange, optionally from owners in one city."""
        query = self._base_query().where(Book.status == BookStatus.AVAILABLE.value)
        if city:
            query = query.join(User, User.id == Book.owner_id).where(
                func.lower(User.city) == city.lower()
            )
        result = await self.session.execute(
            query.order_by(Book.created_at.desc(), Book.id.desc())
        )
        return list(result.scalars().all())

    # -------------------------------------------------------------------------
    # Search
    # -------------------------------------------------------------------------

    def _search_query(
        self,
        *,
        title: str | None = None,
        author: str | None = None,
        city: str | None = None,
        status: str | None = None,
        genre_id: int | None = None,
    ) -> Select[tuple[Book]]:
        query = self._base_query()
        if title:
            query = query.where(Book.title.icontains(title, autoescape=True))
        if author:
            query = query.where(Book.author.icontains(author, autoescape=True))
        if status:
            query = query.where(Book.status == status)
        if city:
            query = query.join(User, User.id == Book.owner_id).where(
                func.lower(User.city) == city.lower()
            )
        if genre_id:
            query = query.where(
                Book.id.in_(
                    select(book_genres.c.book_id).where(
                        book_genres.c.genre_id == genre_id
                    )
                )
            )
        return query

    async def search(
        self,
        *,
        title: str | None = None,
        author: str | None = None,
        city: str | None = None,
        status: str | None = None,
        genre_id: int | None = None,
        sort_by: str = "created_at",
        sort_order: str = "desc",
        offset: int = 0,
        limit: int = 20,
    ) -> tuple[list[Book], int]:
        """Search the catalog.

        Title and author match as case-insensitive substrings, city matches
        the owner's city. Unknown sort fields fall back to ``created_at``.

        Returns:
            Tuple of (page of books, total matching books)
        """
        query = self._search_query(
            title=title,
            author=author,
            city=city,
            status=status,
            genre_id=genre_id,
        )

        total_result = await self.session.execute(
            select(func.count()).select_from(query.subquery())
        )
        total = total_result.scalar_one()

        column = SORTABLE_COLUMNS.get(sort_by, Book.created_at)
        if sort_order == "asc":
            ordering = (column.asc(), Book.id.asc())
        else:
            ordering = (column.desc(), Book.id.desc())

        result = await self.session.execute(
            query.order_by(*ordering).offset(offset).limit(limit)
        )
        return list(result.scalars().all()), total

    # -------------------------------------------------------------------------
    # Genres
    # -------------------------------------------------------------------------

    async def replace_genres(self, book: Book, genres: Sequence[Genre]) -> Book:
        """Replace the book's genre associations with ``genres``."""
        book.genres = list(genres)
        await self.session.flush()
        await self.session.refresh(book)
        return book

    # -------------------------------------------------------------------------
    # Conditional status changes
    # -------------------------------------------------------------------------

    async def set_status_if(
        self,
        book_ids: Sequence[int],
        expected: BookStatus,
        new: BookStatus,
    ) -> list[int]:
        """Move books from ``expected`` to ``new`` status.

        Only rows currently in ``expected`` status are touched.

        Returns:
            IDs of the books that were updated
        """
        stmt = (
            update(Book)
            .where(Book.id.in_(list(book_ids)))
            .where(Book.status == expected.value)
            .where(Book.deleted_at.is_(None))
            .values(status=new.value, updated_at=datetime.now(UTC))
            .returning(Book.id)
            .execution_options(synchronize_session="evaluate")
        )
        result = await self.session.execute(stmt)
        return list(result.scalars().all())

    async def transfer(
        self,
        book_id: int,
        new_owner_id: int,
        expected: BookStatus,
        new: BookStatus,
    ) -> bool:
        """Hand a book to a new owner and change its status in one update.

        Returns:
            True if the book was in ``expected`` status and was updated
        """
        stmt = (
            update(Book)
            .where(Book.id == book_id)
            .where(Book.status == expected.value)
            .values(
                owner_id=new_owner_id,
                status=new.value,
                updated_at=datetime.now(UTC),
            )
            .returning(Book.id)
            .execution_options(synchronize_session="evaluate")
        )
        result = await self.session.execute(stmt)
        return result.scalar_one_or_none() is not None
