"""Book catalog endpoints.

List and search reads are served through the version-tagged cache; writes
require a bearer token and act on behalf of the caller.
"""

from typing import Annotated

from fastapi import APIRouter, Depends, Query, status

from bookswap.core.logging import get_logger
from bookswap.dependencies import CurrentUserId, get_catalog_service
from bookswap.models.book import Book
from bookswap.schemas.books import (
    BookCreate,
    BookRead,
    BookSearchPage,
    BookSearchQuery,
    BookUpdate,
)
from bookswap.schemas.common import DEFAULT_LIMIT, ErrorResponse
from bookswap.services.catalog import CatalogService

logger = get_logger(__name__)

router = APIRouter()

CatalogDep = Annotated[CatalogService, Depends(get_catalog_service)]


@router.get(
    "",
    response_model=list[BookRead],
    summary="List books",
    description="Newest books first. Limit defaults to 20 and is capped at 100.",
)
async def list_books(
    catalog: CatalogDep,
    limit: Annotated[int, Query(description="Page size")] = DEFAULT_LIMIT,
    offset: Annotated[int, Query(description="Rows to skip")] = 0,
) -> list[BookRead]:
    return await catalog.list_books(limit=limit, offset=offset)


@router.get(
    "/search",
    response_model=BookSearchPage,
    summary="Search books",
    description=(
        "Filter by title, author, owner city, status and genre. "
        "Sort by created_at, title, author or id."
    ),
)
async def search_books(
    catalog: CatalogDep,
    query: Annotated[BookSearchQuery, Query()],
) -> BookSearchPage:
    logger.debug("search_books_request", **query.model_dump(exclude_none=True))
    return await catalog.search_books(query)


@router.get(
    "/available",
    response_model=list[BookRead],
    summary="Books open for exchange",
)
async def available_books(
    catalog: CatalogDep,
    city: Annotated[str | None, Query(description="Owner city")] = None,
) -> list[Book]:
    return await catalog.get_available_books(city)


@router.get(
    "/{book_id}",
    response_model=BookRead,
    summary="Get a book",
    responses={404: {"model": ErrorResponse, "description": "Book not found"}},
)
async def get_book(book_id: int, catalog: CatalogDep) -> Book:
    return await catalog.get_book(book_id)


@router.post(
    "",
    response_model=BookRead,
    status_code=status.HTTP_201_CREATED,
    summary="List a new book",
    responses={
        401: {"model": ErrorResponse, "description": "Not authenticated"},
        404: {"model": ErrorResponse, "description": "Genre not found"},
        500: {"model": ErrorResponse, "description": "Summary generation failed"},
    },
)
async def create_book(
    data: BookCreate,
    user_id: CurrentUserId,
    catalog: CatalogDep,
) -> Book:
    return await catalog.create_book(user_id, data)


@router.patch(
    "/{book_id}",
    response_model=BookRead,
    summary="Edit a book",
    responses={
        400: {"model": ErrorResponse, "description": "Book is in an exchange"},
        403: {"model": ErrorResponse, "description": "Not the owner"},
        404: {"model": ErrorResponse, "description": "Book not found"},
    },
)
async def update_book(
    book_id: int,
    data: BookUpdate,
    user_id: CurrentUserId,
    catalog: CatalogDep,
) -> Book:
    return await catalog.update_book(book_id, user_id, data)


@router.delete(
    "/{book_id}",
    status_code=status.HTTP_204_NO_CONTENT,
    summary="Remove a book",
    responses={
        400: {"model": ErrorResponse, "description": "Book is in an exchange"},
        403: {"model": ErrorResponse, "description": "Not the owner"},
        404: {"model": ErrorResponse, "description": "Book not found"},
    },
)
async def delete_book(book_id: int, user_id: CurrentUserId, catalog: CatalogDep) -> None:
    await catalog.delete_book(book_id, user_id)
