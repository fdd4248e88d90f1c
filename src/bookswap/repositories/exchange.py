"""Exchange repository with guarded status transitions.

Every transition is a single ``UPDATE ... WHERE status = expected``.
Concurrent requests for the same exchange cannot both win: the loser
sees ``False`` and the row keeps the winner's status.
"""

from __future__ import annotations

from datetime import UTC, datetime
from typing import Any

from sqlalchemy import func, or_, select, update

from bookswap.models.exchange import Exchange, ExchangeStatus
from bookswap.repositories.base import BaseRepository


class ExchangeRepository(BaseRepository[Exchange]):
    """Repository for Exchange model."""

    async def transition(
        self,
        exchange_id: int,
        expected: ExchangeStatus,
        new: ExchangeStatus,
        **values: Any,
    ) -> bool:
        """Move an exchange from ``expected`` to ``new`` status.

        Args:
            exchange_id: The exchange's ID
            expected: Status the row must currently have
            new: Status to set
            **values: Extra columns to set in the same update

        Returns:
            True if the row was in ``expected`` status and was updated
        """
        stmt = (
            update(Exchange)
            .where(Exchange.id == exchange_id)
            .where(Exchange.status == expected.value)
            .values(status=new.value, updated_at=datetime.now(UTC), **values)
            .returning(Exchange.id)
            .execution_options(synchronize_session="evaluate")
        )
        result = await self.session.execute(stmt)
        return result.scalar_one_or_none() is not None

    async def list_all(self) -> list[Exchange]:
        """Get every exchange, newest first."""
        result = await self.session.execute(
            select(Exchange).order_by(Exchange.created_at.desc(), Exchange.id.desc())
        )
        return list(result.scalars().all())

    async def list_for_user(
        self,
        user_id: int,
        status: str | None = None,
    ) -> list[Exchange]:
        """Get exchanges where the user is initiator or recipient, newest first."""
        query = select(Exchange).where(
            or_(Exchange.initiator_id == user_id, Exchange.recipient_id == user_id)
        )
        if status:
            query = query.where(Exchange.status == status)
        result = await self.session.execute(
            query.order_by(Exchange.created_at.desc(), Exchange.id.desc())
        )
        return list(result.scalars().all())

    async def count_completed_for_user(self, user_id: int) -> int:
        """Count completed exchanges the user took part in."""
        result = await self.session.execute(
            select(func.count())
            .select_from(Exchange)
            .where(Exchange.status == ExchangeStatus.COMPLETED.value)
            .where(
                or_(
                    Exchange.initiator_id == user_id,
                    Exchange.recipient_id == user_id,
                )
            )
        )
        return result.scalar_one()
