"""Genre API schemas."""

from pydantic import Field

from bookswap.schemas.common import BaseSchema


class GenreCreate(BaseSchema):
    """Request body for creating a genre."""

    name: str = Field(..., max_length=100, description="Genre name")


class GenreRead(BaseSchema):
    """Genre as returned by the API."""

    id: int
    name: str
