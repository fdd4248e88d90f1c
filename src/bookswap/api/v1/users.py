"""User, profile and per-user listing endpoints."""

from typing import Annotated

from fastapi import APIRouter, Depends, Query, status

from bookswap.dependencies import (
    CurrentUserId,
    get_catalog_service,
    get_review_service,
    get_user_service,
)
from bookswap.models.book import Book, BookStatus
from bookswap.models.exchange import Exchange, ExchangeStatus
from bookswap.models.review import Review
from bookswap.models.user import User
from bookswap.schemas.books import BookRead
from bookswap.schemas.common import DEFAULT_LIMIT, ErrorResponse
from bookswap.schemas.exchanges import ExchangeRead
from bookswap.schemas.reviews import ReviewRead
from bookswap.schemas.users import UserProfile, UserRead, UserUpdate
from bookswap.services.catalog import CatalogService
from bookswap.services.review import ReviewService
from bookswap.services.user import UserService

router = APIRouter()

UserServiceDep = Annotated[UserService, Depends(get_user_service)]

NOT_FOUND = {404: {"model": ErrorResponse, "description": "User not found"}}


@router.get("", response_model=list[UserRead], summary="List users")
async def list_users(
    users: UserServiceDep,
    limit: Annotated[int, Query(description="Page size")] = DEFAULT_LIMIT,
    offset: Annotated[int, Query(description="Rows to skip")] = 0,
) -> list[UserRead]:
    return await users.list_users(limit=limit, offset=offset)


# -----------------------------------------------------------------------------
# Caller's account
# -----------------------------------------------------------------------------


@router.get("/me", response_model=UserRead, summary="Get my account")
async def get_me(user_id: CurrentUserId, users: UserServiceDep) -> User:
    return await users.get_user(user_id)


@router.patch(
    "/me",
    response_model=UserRead,
    summary="Edit my account",
    responses={400: {"model": ErrorResponse, "description": "Email already registered"}},
)
async def update_me(
    data: UserUpdate,
    user_id: CurrentUserId,
    users: UserServiceDep,
) -> User:
    return await users.update_user(user_id, data)


@router.delete("/me", status_code=status.HTTP_204_NO_CONTENT, summary="Delete my account")
async def delete_me(user_id: CurrentUserId, users: UserServiceDep) -> None:
    await users.delete_user(user_id)


# -----------------------------------------------------------------------------
# Any user
# -----------------------------------------------------------------------------


@router.get("/{user_id}", response_model=UserRead, summary="Get a user", responses=NOT_FOUND)
async def get_user(user_id: int, users: UserServiceDep) -> User:
    return await users.get_user(user_id)


@router.get(
    "/{user_id}/profile",
    response_model=UserProfile,
    summary="Public profile with activity counters",
    responses=NOT_FOUND,
)
async def get_profile(user_id: int, users: UserServiceDep) -> UserProfile:
    return await users.get_profile(user_id)


@router.get(
    "/{user_id}/exchanges",
    response_model=list[ExchangeRead],
    summary="Exchanges the user takes part in",
    responses=NOT_FOUND,
)
async def get_user_exchanges(
    user_id: int,
    users: UserServiceDep,
    status: ExchangeStatus | None = None,
) -> list[Exchange]:
    return await users.get_user_exchanges(user_id, status=status)


@router.get(
    "/{user_id}/books",
    response_model=list[BookRead],
    summary="Books listed by the user",
)
async def get_user_books(
    user_id: int,
    catalog: Annotated[CatalogService, Depends(get_catalog_service)],
    status: BookStatus | None = None,
) -> list[Book]:
    return await catalog.get_books_by_owner(user_id, status=status)


@router.get(
    "/{user_id}/reviews",
    response_model=list[ReviewRead],
    summary="Reviews about the user",
)
async def get_user_reviews(
    user_id: int,
    reviews: Annotated[ReviewService, Depends(get_review_service)],
) -> list[Review]:
    return await reviews.get_reviews_for_user(user_id)
