"""User and authentication API schemas."""

from pydantic import EmailStr, Field

from bookswap.schemas.common import BaseSchema, TimestampMixin

# =============================================================================
# Registration / Login
# =============================================================================


class UserCreate(BaseSchema):
    """Request body for registration."""

    name: str = Field(..., min_length=1, max_length=100)
    email: EmailStr
    password: str = Field(..., min_length=6, max_length=128)
    city: str = Field("", max_length=100)
    address: str = Field("", max_length=255)


class LoginRequest(BaseSchema):
    """Request body for login."""

    email: EmailStr
    password: str = Field(..., min_length=1)


class TokenResponse(BaseSchema):
    """Issued access token."""

    access_token: str
    token_type: str = "bearer"
    user_id: int


# =============================================================================
# Users
# =============================================================================


class UserUpdate(BaseSchema):
    """Request body for editing the caller's account. Omitted fields stay unchanged."""

    name: str | None = Field(None, min_length=1, max_length=100)
    email: EmailStr | None = None
    password: str | None = Field(None, min_length=6, max_length=128)
    city: str | None = Field(None, max_length=100)
    address: str | None = Field(None, max_length=255)


class UserRead(BaseSchema, TimestampMixin):
    """User as returned by the API and stored in the read cache."""

    id: int
    name: str
    email: str
    city: str
    address: str


class UserProfile(BaseSchema):
    """Public profile with activity counters."""

    id: int
    name: str
    city: str
    books_count: int = Field(..., ge=0)
    completed_exchanges: int = Field(..., ge=0)
