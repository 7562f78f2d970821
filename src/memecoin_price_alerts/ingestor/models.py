"""Data models for the ingestor module."""

from __future__ import annotations

import math
from collections.abc import Iterable
from dataclasses import dataclass
from typing import Any

DEXSCREENER_TOKEN_URL = "https://dexscreener.com/{chain_id}/{address}"


def _to_float(value: Any) -> float:
    """Parse a numeric field that DexScreener may send as number or string.

    Missing, unparseable or non-finite values become 0.0.
    """
    if value is None or isinstance(value, bool):
        return 0.0
    try:
        result = float(value)
    except (TypeError, ValueError):
        return 0.0
    return result if math.isfinite(result) else 0.0


def pair_liquidity_usd(pair: dict[str, Any]) -> float:
    """Return the USD liquidity of a pair, 0.0 when absent."""
    liquidity = pair.get("liquidity")
    if not isinstance(liquidity, dict):
        return 0.0
    return _to_float(liquidity.get("usd"))


def select_best_pair(pairs: Iterable[dict[str, Any]]) -> dict[str, Any] | None:
    """Pick the pair with the greatest USD liquidity.

    Ties go to the first pair encountered. Returns None for an empty input.
    """
    best: dict[str, Any] | None = None
    best_liquidity = 0.0
    for pair in pairs:
        liquidity = pair_liquidity_usd(pair)
        if best is None or liquidity > best_liquidity:
            best = pair
            best_liquidity = liquidity
    return best


def _base_token(pair: dict[str, Any]) -> dict[str, Any]:
    base = pair.get("baseToken")
    return base if isinstance(base, dict) else {}


def base_token_address(pair: dict[str, Any]) -> str | None:
    """Lowercased base-token address of a pair, if present."""
    address = _base_token(pair).get("address")
    if not address:
        return None
    return str(address).lower()


def _market_cap(pair: dict[str, Any]) -> float:
    return _to_float(pair.get("marketCap")) or _to_float(pair.get("fdv"))


@dataclass(frozen=True)
class TokenData:
    """Canonical market snapshot of a token, taken from its best pair."""

    name: str
    symbol: str
    price_usd: float
    market_cap: float
    liquidity_usd: float
    price_change_24h: float
    dex_id: str
    pair_address: str
    url: str

    @classmethod
    def from_pair(cls, pair: dict[str, Any], *, chain_id: str, address: str) -> TokenData:
        """Create TokenData from a DexScreener pair object."""
        base = _base_token(pair)
        price_change = pair.get("priceChange")
        h24 = price_change.get("h24") if isinstance(price_change, dict) else None
        return cls(
            name=str(base.get("name") or "Unknown"),
            symbol=str(base.get("symbol") or "UNKNOWN"),
            price_usd=_to_float(pair.get("priceUsd")),
            market_cap=_market_cap(pair),
            liquidity_usd=pair_liquidity_usd(pair),
            price_change_24h=_to_float(h24),
            dex_id=str(pair.get("dexId") or "unknown"),
            pair_address=str(pair.get("pairAddress") or ""),
            url=str(
                pair.get("url")
                or DEXSCREENER_TOKEN_URL.format(chain_id=chain_id, address=address)
            ),
        )


@dataclass(frozen=True)
class SearchResult:
    """A single pair returned by free-text token search."""

    name: str
    symbol: str
    address: str
    chain_id: str
    price_usd: float
    market_cap: float
    url: str

    @classmethod
    def from_pair(cls, pair: dict[str, Any]) -> SearchResult:
        base = _base_token(pair)
        return cls(
            name=str(base.get("name") or "Unknown"),
            symbol=str(base.get("symbol") or "UNKNOWN"),
            address=str(base.get("address") or ""),
            chain_id=str(pair.get("chainId") or ""),
            price_usd=_to_float(pair.get("priceUsd")),
            market_cap=_market_cap(pair),
            url=str(pair.get("url") or ""),
        )
