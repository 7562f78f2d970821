"""Repository pattern implementations for data access.

This module provides the data access abstraction for watchlist entries.
Repositories work inside a caller-provided session and never commit.
"""

from __future__ import annotations

import logging
from dataclasses import dataclass
from datetime import UTC, datetime
from typing import TYPE_CHECKING

from sqlalchemy import delete, select, update

from memecoin_price_alerts.storage.models import WatchlistEntryModel

if TYPE_CHECKING:
    from sqlalchemy.ext.asyncio import AsyncSession

logger = logging.getLogger(__name__)


@dataclass
class WatchlistEntryDTO:
    """Data transfer object for watchlist entries."""

    token_address: str
    chain_id: str
    subscriber_id: str
    name: str
    symbol: str
    drop_threshold: float
    reference_price: float
    initial_price: float
    added_at: datetime | None = None

    @classmethod
    def from_model(cls, model: WatchlistEntryModel) -> WatchlistEntryDTO:
        """Create DTO from SQLAlchemy model."""
        added_at = model.added_at
        # SQLite drops tzinfo on the way back.
        if added_at is not None and added_at.tzinfo is None:
            added_at = added_at.replace(tzinfo=UTC)
        return cls(
            token_address=model.token_address,
            chain_id=model.chain_id,
            subscriber_id=model.subscriber_id,
            name=model.name,
            symbol=model.symbol,
            drop_threshold=model.drop_threshold,
            reference_price=model.reference_price,
            initial_price=model.initial_price,
            added_at=added_at,
        )


def _entry_key(token_address: str, chain_id: str, subscriber_id: str) -> tuple:
    return (
        WatchlistEntryModel.token_address == token_address.lower(),
        WatchlistEntryModel.chain_id == chain_id.lower(),
        WatchlistEntryModel.subscriber_id == subscriber_id,
    )


class WatchlistRepository:
    """Repository for watchlist entries.

    Example:
        ```python
        async with db.get_async_session() as session:
            repo = WatchlistRepository(session)
            entries = await repo.list_for_subscriber("123456")
        ```
    """

    def __init__(self, session: AsyncSession) -> None:
        """Initialize repository with session.

        Args:
            session: SQLAlchemy async session.
        """
        self.session = session

    async def list_all(self) -> list[WatchlistEntryDTO]:
        """Get every entry across all subscribers, oldest first."""
        result = await self.session.execute(
            select(WatchlistEntryModel).order_by(WatchlistEntryModel.id)
        )
        return [WatchlistEntryDTO.from_model(m) for m in result.scalars().all()]

    async def list_for_subscriber(self, subscriber_id: str) -> list[WatchlistEntryDTO]:
        """Get the entries of one subscriber, oldest first."""
        result = await self.session.execute(
            select(WatchlistEntryModel)
            .where(WatchlistEntryModel.subscriber_id == subscriber_id)
            .order_by(WatchlistEntryModel.id)
        )
        return [WatchlistEntryDTO.from_model(m) for m in result.scalars().all()]

    async def get(
        self, token_address: str, chain_id: str, subscriber_id: str
    ) -> WatchlistEntryDTO | None:
        """Get one entry by its composite key."""
        result = await self.session.execute(
            select(WatchlistEntryModel).where(
                *_entry_key(token_address, chain_id, subscriber_id)
            )
        )
        model = result.scalar_one_or_none()
        return WatchlistEntryDTO.from_model(model) if model else None

    async def insert(self, dto: WatchlistEntryDTO) -> WatchlistEntryDTO:
        """Insert a new entry.

        Raises:
            sqlalchemy.exc.IntegrityError: If the key already exists.
        """
        model = WatchlistEntryModel(
            token_address=dto.token_address.lower(),
            chain_id=dto.chain_id.lower(),
            subscriber_id=dto.subscriber_id,
            name=dto.name,
            symbol=dto.symbol,
            drop_threshold=dto.drop_threshold,
            reference_price=dto.reference_price,
            initial_price=dto.initial_price,
            added_at=dto.added_at or datetime.now(UTC),
        )
        self.session.add(model)
        await self.session.flush()
        return WatchlistEntryDTO.from_model(model)

    async def delete(self, token_address: str, chain_id: str, subscriber_id: str) -> bool:
        """Delete an entry. Returns True if a row was removed."""
        result = await self.session.execute(
            delete(WatchlistEntryModel).where(
                *_entry_key(token_address, chain_id, subscriber_id)
            )
        )
        return bool(result.rowcount)

    async def set_reference_price(
        self, token_address: str, chain_id: str, subscriber_id: str, price: float
    ) -> bool:
        """Replace the reference ("last alert") price. Returns True if found."""
        result = await self.session.execute(
            update(WatchlistEntryModel)
            .where(*_entry_key(token_address, chain_id, subscriber_id))
            .values(reference_price=price)
        )
        return bool(result.rowcount)

    async def set_threshold(
        self, token_address: str, chain_id: str, subscriber_id: str, threshold: float
    ) -> bool:
        """Replace the alert threshold. Returns True if found."""
        result = await self.session.execute(
            update(WatchlistEntryModel)
            .where(*_entry_key(token_address, chain_id, subscriber_id))
            .values(drop_threshold=threshold)
        )
        return bool(result.rowcount)
