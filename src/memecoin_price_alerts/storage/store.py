"""Watchlist store: one transactional session per operation."""

from __future__ import annotations

import logging
from datetime import UTC, datetime
from typing import TYPE_CHECKING

from sqlalchemy.exc import IntegrityError, SQLAlchemyError

from memecoin_price_alerts.storage.repos import WatchlistEntryDTO, WatchlistRepository

if TYPE_CHECKING:
    from memecoin_price_alerts.storage.database import DatabaseManager

logger = logging.getLogger(__name__)


class WatchlistStore:
    """Persistent per-subscriber watchlists.

    Keys are (token_address, chain_id, subscriber_id); address and chain are
    lowercased on every keyed operation. Reads used by the price monitor
    degrade to an empty list on database errors so a sweep turns into a
    no-op instead of crashing.
    """

    def __init__(self, db: DatabaseManager) -> None:
        self._db = db

    async def list_all(self) -> list[WatchlistEntryDTO]:
        try:
            async with self._db.get_async_session() as session:
                return await WatchlistRepository(session).list_all()
        except SQLAlchemyError as e:
            logger.error("Failed to load watchlist: %s", e)
            return []

    async def list_for(self, subscriber_id: str) -> list[WatchlistEntryDTO]:
        try:
            async with self._db.get_async_session() as session:
                return await WatchlistRepository(session).list_for_subscriber(subscriber_id)
        except SQLAlchemyError as e:
            logger.error("Failed to load watchlist for chat %s: %s", subscriber_id, e)
            return []

    async def add(
        self,
        *,
        token_address: str,
        chain_id: str,
        subscriber_id: str,
        name: str,
        symbol: str,
        current_price: float,
        threshold: float,
    ) -> WatchlistEntryDTO | None:
        """Add a token to a subscriber's watchlist.

        Both the reference and the initial price start at `current_price`.

        Returns:
            The stored entry, or None if the subscriber already tracks this
            token on this chain.

        Raises:
            ValueError: If `current_price` is not positive.
        """
        if not current_price > 0:
            raise ValueError(f"Cannot track a token without a positive price: {current_price}")

        dto = WatchlistEntryDTO(
            token_address=token_address.lower(),
            chain_id=chain_id.lower(),
            subscriber_id=subscriber_id,
            name=name,
            symbol=symbol,
            drop_threshold=threshold,
            reference_price=current_price,
            initial_price=current_price,
            added_at=datetime.now(UTC),
        )
        try:
            async with self._db.get_async_session() as session:
                repo = WatchlistRepository(session)
                if await repo.get(dto.token_address, dto.chain_id, subscriber_id) is not None:
                    return None
                entry = await repo.insert(dto)
        except IntegrityError:
            # Lost a race against a concurrent add of the same key.
            return None

        logger.info(
            "Chat %s now tracks %s on %s (threshold %s%%)",
            subscriber_id,
            entry.symbol,
            entry.chain_id,
            threshold,
        )
        return entry

    async def remove(self, token_address: str, chain_id: str, subscriber_id: str) -> bool:
        async with self._db.get_async_session() as session:
            return await WatchlistRepository(session).delete(token_address, chain_id, subscriber_id)

    async def update_reference_price(
        self, token_address: str, chain_id: str, subscriber_id: str, price: float
    ) -> bool:
        """Persist a new reference price after a fired alert.

        Write failures are logged and reported as False, not retried.
        """
        try:
            async with self._db.get_async_session() as session:
                return await WatchlistRepository(session).set_reference_price(
                    token_address, chain_id, subscriber_id, price
                )
        except SQLAlchemyError as e:
            logger.error(
                "Failed to update reference price for %s/%s (chat %s): %s",
                chain_id,
                token_address,
                subscriber_id,
                e,
            )
            return False

    async def update_threshold(
        self, token_address: str, chain_id: str, subscriber_id: str, threshold: float
    ) -> bool:
        async with self._db.get_async_session() as session:
            return await WatchlistRepository(session).set_threshold(
                token_address, chain_id, subscriber_id, threshold
            )
