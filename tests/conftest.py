"""Pytest configuration and fixtures."""

from __future__ import annotations

from collections.abc import AsyncIterator

import pytest

from memecoin_price_alerts.ingestor.models import TokenData
from memecoin_price_alerts.storage.database import DatabaseManager
from memecoin_price_alerts.storage.repos import WatchlistEntryDTO
from memecoin_price_alerts.storage.store import WatchlistStore


@pytest.fixture
async def db_manager() -> AsyncIterator[DatabaseManager]:
    """In-memory SQLite database with the schema created."""
    db = DatabaseManager("sqlite+aiosqlite:///:memory:")
    await db.init_schema_async()
    yield db
    await db.dispose_async()


@pytest.fixture
async def store(db_manager: DatabaseManager) -> WatchlistStore:
    return WatchlistStore(db_manager)


@pytest.fixture
def sample_token_address() -> str:
    """Sample ERC-20 style token address (mixed case)."""
    return "0x6982508145454Ce325dDbE47a25d4ec3d2311933"


def make_token(price: float = 1.0, **overrides: object) -> TokenData:
    """Build TokenData with sensible defaults for tests."""
    values: dict[str, object] = {
        "name": "Pepe",
        "symbol": "PEPE",
        "price_usd": price,
        "market_cap": 1_500_000.0,
        "liquidity_usd": 250_000.0,
        "price_change_24h": 3.5,
        "dex_id": "uniswap",
        "pair_address": "0xpair",
        "url": "https://dexscreener.com/ethereum/0xpair",
    }
    values.update(overrides)
    return TokenData(**values)  # type: ignore[arg-type]


def make_entry(
    reference_price: float = 1.0,
    *,
    initial_price: float | None = None,
    threshold: float = 5.0,
    token_address: str = "0xtoken",
    chain_id: str = "ethereum",
    subscriber_id: str = "100",
    symbol: str = "PEPE",
) -> WatchlistEntryDTO:
    return WatchlistEntryDTO(
        token_address=token_address,
        chain_id=chain_id,
        subscriber_id=subscriber_id,
        name="Pepe",
        symbol=symbol,
        drop_threshold=threshold,
        reference_price=reference_price,
        initial_price=initial_price if initial_price is not None else reference_price,
    )


@pytest.fixture
def token_factory():
    """Factory for TokenData snapshots."""
    return make_token


@pytest.fixture
def entry_factory():
    """Factory for watchlist entry DTOs."""
    return make_entry
