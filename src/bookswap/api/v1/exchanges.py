"""Exchange endpoints.

The caller is the initiator when proposing, and the acting party for each
transition.
"""

from typing import Annotated

from fastapi import APIRouter, Depends, status

from bookswap.dependencies import CurrentUserId, get_exchange_service
from bookswap.models.exchange import Exchange
from bookswap.schemas.common import ErrorResponse
from bookswap.schemas.exchanges import ExchangeCreate, ExchangeRead
from bookswap.services.exchange import ExchangeService

router = APIRouter()

ExchangeDep = Annotated[ExchangeService, Depends(get_exchange_service)]

TRANSITION_RESPONSES: dict[int | str, dict] = {
    400: {"model": ErrorResponse, "description": "Invalid ID or wrong status"},
    403: {"model": ErrorResponse, "description": "Caller may not do this"},
    404: {"model": ErrorResponse, "description": "Exchange not found"},
}


@router.post(
    "",
    response_model=ExchangeRead,
    status_code=status.HTTP_201_CREATED,
    summary="Propose an exchange",
    responses={
        400: {"model": ErrorResponse, "description": "Book unavailable or same owner"},
        403: {"model": ErrorResponse, "description": "Book ownership mismatch"},
        404: {"model": ErrorResponse, "description": "Book not found"},
    },
)
async def create_exchange(
    data: ExchangeCreate,
    user_id: CurrentUserId,
    exchanges: ExchangeDep,
) -> Exchange:
    return await exchanges.create_exchange(
        initiator_id=user_id,
        recipient_id=data.recipient_id,
        initiator_book_id=data.initiator_book_id,
        recipient_book_id=data.recipient_book_id,
        actor_id=user_id,
    )


@router.get("", response_model=list[ExchangeRead], summary="List exchanges")
async def list_exchanges(exchanges: ExchangeDep) -> list[Exchange]:
    return await exchanges.list_exchanges()


@router.get(
    "/{exchange_id}",
    response_model=ExchangeRead,
    summary="Get an exchange",
    responses=TRANSITION_RESPONSES,
)
async def get_exchange(exchange_id: int, exchanges: ExchangeDep) -> Exchange:
    return await exchanges.get_exchange(exchange_id)


@router.post(
    "/{exchange_id}/accept",
    response_model=ExchangeRead,
    summary="Accept a pending exchange (recipient)",
    responses=TRANSITION_RESPONSES,
)
async def accept_exchange(
    exchange_id: int,
    user_id: CurrentUserId,
    exchanges: ExchangeDep,
) -> Exchange:
    return await exchanges.accept_exchange(exchange_id, actor_id=user_id)


@router.post(
    "/{exchange_id}/complete",
    response_model=ExchangeRead,
    summary="Complete an accepted exchange (either party)",
    responses=TRANSITION_RESPONSES,
)
async def complete_exchange(
    exchange_id: int,
    user_id: CurrentUserId,
    exchanges: ExchangeDep,
) -> Exchange:
    return await exchanges.complete_exchange(exchange_id, actor_id=user_id)


@router.post(
    "/{exchange_id}/cancel",
    response_model=ExchangeRead,
    summary="Cancel a pending exchange (initiator)",
    responses=TRANSITION_RESPONSES,
)
async def cancel_exchange(
    exchange_id: int,
    user_id: CurrentUserId,
    exchanges: ExchangeDep,
) -> Exchange:
    return await exchanges.cancel_exchange(exchange_id, actor_id=user_id)
