"""DexScreener market data ingestion."""

from memecoin_price_alerts.ingestor.dexscreener import (
    DexScreenerClient,
    DexScreenerError,
    DexScreenerFormatError,
    DexScreenerTransientError,
)
from memecoin_price_alerts.ingestor.models import SearchResult, TokenData, select_best_pair

__all__ = [
    "DexScreenerClient",
    "DexScreenerError",
    "DexScreenerFormatError",
    "DexScreenerTransientError",
    "SearchResult",
    "TokenData",
    "select_best_pair",
]
