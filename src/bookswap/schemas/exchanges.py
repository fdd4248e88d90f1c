"""Exchange API schemas."""

from datetime import datetime

from pydantic import Field

from bookswap.schemas.common import BaseSchema, TimestampMixin


class ExchangeCreate(BaseSchema):
    """Request body for proposing an exchange.

    The initiator is the authenticated caller.

    Attributes:
        recipient_id: Owner of the requested book
        initiator_book_id: Book the caller offers
        recipient_book_id: Book the caller wants
    """

    recipient_id: int = Field(..., gt=0)
    initiator_book_id: int = Field(..., gt=0)
    recipient_book_id: int = Field(..., gt=0)


class ExchangeRead(BaseSchema, TimestampMixin):
    """Exchange as returned by the API."""

    id: int
    initiator_id: int
    recipient_id: int
    initiator_book_id: int
    recipient_book_id: int
    status: str
    completed_at: datetime | None = None
