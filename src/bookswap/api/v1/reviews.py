"""Review endpoints."""

from typing import Annotated

from fastapi import APIRouter, Depends, status

from bookswap.dependencies import CurrentUserId, get_review_service
from bookswap.models.review import Review
from bookswap.schemas.common import ErrorResponse
from bookswap.schemas.reviews import ReviewCreate, ReviewRead
from bookswap.services.review import ReviewService

router = APIRouter()

ReviewDep = Annotated[ReviewService, Depends(get_review_service)]


@router.post(
    "",
    response_model=ReviewRead,
    status_code=status.HTTP_201_CREATED,
    summary="Leave a review",
    responses={
        400: {"model": ErrorResponse, "description": "Invalid text, rating or target"},
        404: {"model": ErrorResponse, "description": "Target user or book not found"},
    },
)
async def create_review(
    data: ReviewCreate,
    user_id: CurrentUserId,
    reviews: ReviewDep,
) -> Review:
    return await reviews.create_review(user_id, data)


@router.get(
    "/book/{book_id}",
    response_model=list[ReviewRead],
    summary="Reviews that refer to a book",
)
async def get_book_reviews(book_id: int, reviews: ReviewDep) -> list[Review]:
    return await reviews.get_reviews_for_book(book_id)


@router.delete(
    "/{review_id}",
    status_code=status.HTTP_204_NO_CONTENT,
    summary="Delete my review",
    responses={
        403: {"model": ErrorResponse, "description": "Not the author"},
        404: {"model": ErrorResponse, "description": "Review not found"},
    },
)
async def delete_review(review_id: int, user_id: CurrentUserId, reviews: ReviewDep) -> None:
    await reviews.delete_review(review_id, user_id)
