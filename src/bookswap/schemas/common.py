"""Common Pydantic schemas used across the API.

This module provides shared schemas for:
- Error responses (consistent error format)
- Pagination limits and clamping
- Common fields and mixins
- Health check responses
"""

from datetime import datetime
from typing import Any

from pydantic import BaseModel, ConfigDict, Field

DEFAULT_LIMIT = 20
MAX_LIMIT = 100


# =============================================================================
# Base Configuration
# =============================================================================


class BaseSchema(BaseModel):
    """Base schema with common configuration."""

    model_config = ConfigDict(
        from_attributes=True,  # Allow ORM model conversion
        populate_by_name=True,  # Allow both alias and field name
        str_strip_whitespace=True,  # Strip whitespace from strings
    )


# =============================================================================
# Error Schemas
# =============================================================================


class ErrorDetail(BaseModel):
    """Details of an error response.

    Attributes:
        code: Machine-readable error code (e.g., "EXCHANGE_NOT_PENDING")
        message: Human-readable error description
        request_id: Correlation ID for tracing (optional)
        details: Additional error context (optional)
    """

    code: str = Field(..., description="Machine-readable error code")
    message: str = Field(..., description="Human-readable error description")
    request_id: str | None = Field(
        None, description="Request correlation ID for tracing"
    )
    details: dict[str, Any] | None = Field(
        None, description="Additional error context"
    )


class ErrorResponse(BaseModel):
    """Standard error response wrapper.

    All API errors return this format.
    """

    error: ErrorDetail

    model_config = ConfigDict(
        json_schema_extra={
            "example": {
                "error": {
                    "code": "EXCHANGE_NOT_PENDING",
                    "message": "Exchange is not pending",
                    "request_id": "abc-123-def-456",
                    "details": {"exchange_id": 12, "status": "accepted"},
                }
            }
        }
    )


# =============================================================================
# Pagination
# =============================================================================


def clamp_limit(limit: int | None) -> int:
    """Missing or non-positive limits become the default; large ones the max."""
    if limit is None or limit <= 0:
        return DEFAULT_LIMIT
    return min(limit, MAX_LIMIT)


def clamp_offset(offset: int | None) -> int:
    """Negative or missing offsets become zero."""
    if offset is None or offset < 0:
        return 0
    return offset


def clamp_page(page: int | None) -> int:
    """Pages are 1-indexed; anything lower becomes the first page."""
    if page is None or page < 1:
        return 1
    return page


# =============================================================================
# Common Field Types
# =============================================================================


class TimestampMixin(BaseModel):
    """Mixin for models with timestamp fields."""

    created_at: datetime = Field(..., description="Creation timestamp")
    updated_at: datetime = Field(..., description="Last update timestamp")


# =============================================================================
# Health Check Schemas
# =============================================================================


class HealthCheckResponse(BaseModel):
    """Health check endpoint response.

    Attributes:
        status: Overall health status
        checks: Individual service health checks
    """

    status: str = Field(..., pattern="^(ok|degraded|error)$")
    checks: dict[str, str] = Field(
        default_factory=dict, description="Individual service checks"
    )
