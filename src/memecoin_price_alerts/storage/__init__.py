"""Storage layer - Database schema, repositories and the watchlist store."""

from memecoin_price_alerts.storage.database import (
    DatabaseManager,
    create_async_db_engine,
    create_async_session_factory,
    init_async_db,
)
from memecoin_price_alerts.storage.models import Base, WatchlistEntryModel
from memecoin_price_alerts.storage.repos import WatchlistEntryDTO, WatchlistRepository
from memecoin_price_alerts.storage.store import WatchlistStore

__all__ = [
    "Base",
    "DatabaseManager",
    "WatchlistEntryDTO",
    "WatchlistEntryModel",
    "WatchlistRepository",
    "WatchlistStore",
    "create_async_db_engine",
    "create_async_session_factory",
    "init_async_db",
]
