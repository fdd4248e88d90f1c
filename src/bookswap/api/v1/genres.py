"""Genre endpoints."""

from typing import Annotated

from fastapi import APIRouter, Depends, status

from bookswap.dependencies import CurrentUserId, get_genre_service
from bookswap.models.genre import Genre
from bookswap.schemas.common import ErrorResponse
from bookswap.schemas.genres import GenreCreate, GenreRead
from bookswap.services.genre import GenreService

router = APIRouter()

GenreDep = Annotated[GenreService, Depends(get_genre_service)]


@router.get("", response_model=list[GenreRead], summary="List genres")
async def list_genres(genres: GenreDep) -> list[Genre]:
    return await genres.list_genres()


@router.post(
    "",
    response_model=GenreRead,
    status_code=status.HTTP_201_CREATED,
    summary="Create a genre",
    responses={400: {"model": ErrorResponse, "description": "Empty or duplicate name"}},
)
async def create_genre(data: GenreCreate, _: CurrentUserId, genres: GenreDep) -> Genre:
    return await genres.create_genre(data.name)


@router.get(
    "/{genre_id}",
    response_model=GenreRead,
    summary="Get a genre",
    responses={404: {"model": ErrorResponse, "description": "Genre not found"}},
)
async def get_genre(genre_id: int, genres: GenreDep) -> Genre:
    return await genres.get_genre(genre_id)


@router.delete(
    "/{genre_id}",
    status_code=status.HTTP_204_NO_CONTENT,
    summary="Delete a genre",
    responses={404: {"model": ErrorResponse, "description": "Genre not found"}},
)
async def delete_genre(genre_id: int, _: CurrentUserId, genres: GenreDep) -> None:
    await genres.delete_genre(genre_id)
