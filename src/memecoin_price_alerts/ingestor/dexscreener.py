"""Async DexScreener API client with batching and pacing.

Every public method degrades to an empty result on transport or format
errors: a missing quote only means "no data this cycle" for the caller.
"""

from __future__ import annotations

import asyncio
import logging
from collections.abc import Sequence
from typing import Any

import httpx

from memecoin_price_alerts.ingestor.models import (
    SearchResult,
    TokenData,
    base_token_address,
    select_best_pair,
)

logger = logging.getLogger(__name__)

# Constants
DEFAULT_BASE_URL = "https://api.dexscreener.com"
DEFAULT_TIMEOUT_SECONDS = 10.0
DEFAULT_BATCH_PAUSE_SECONDS = 0.25
MAX_ADDRESSES_PER_REQUEST = 30
MAX_SEARCH_RESULTS = 10

TOKENS_PATH = "/tokens/v1/{chain_id}/{addresses}"
SEARCH_PATH = "/latest/dex/search"


class DexScreenerError(Exception):
    """Base exception for DexScreener client errors."""


class DexScreenerTransientError(DexScreenerError):
    """Raised for network failures, timeouts and non-2xx responses."""


class DexScreenerFormatError(DexScreenerError):
    """Raised when a response body is not the JSON shape we expect."""


def chunked(items: Sequence[str], size: int) -> list[list[str]]:
    """Split items into consecutive chunks of at most `size` elements."""
    if size <= 0:
        raise ValueError("chunk size must be positive")
    return [list(items[i : i + size]) for i in range(0, len(items), size)]


class DexScreenerClient:
    """Thin async wrapper over the DexScreener public API.

    Example:
        ```python
        async with DexScreenerClient() as client:
            token = await client.fetch_one("solana", "So11111111111111111111111111111111111111112")
            quotes = await client.fetch_batch("ethereum", ["0xabc...", "0xdef..."])
        ```
    """

    def __init__(
        self,
        *,
        base_url: str = DEFAULT_BASE_URL,
        timeout_seconds: float = DEFAULT_TIMEOUT_SECONDS,
        batch_pause_seconds: float = DEFAULT_BATCH_PAUSE_SECONDS,
        batch_size: int = MAX_ADDRESSES_PER_REQUEST,
        http_client: httpx.AsyncClient | None = None,
    ) -> None:
        """Initialize the client.

        Args:
            base_url: API host.
            timeout_seconds: Per-request timeout.
            batch_pause_seconds: Pause between successive batch requests.
            batch_size: Addresses per batch request, capped at the API limit.
            http_client: Optional pre-built httpx client (not closed by us).
        """
        self._batch_size = min(batch_size, MAX_ADDRESSES_PER_REQUEST)
        self._batch_pause = batch_pause_seconds
        self._owns_client = http_client is None
        self._http = http_client or httpx.AsyncClient(
            base_url=base_url.rstrip("/"),
            timeout=timeout_seconds,
            headers={"Accept": "application/json"},
        )
        logger.info(
            "Initialized DexScreenerClient with host=%s, timeout=%.1fs",
            base_url,
            timeout_seconds,
        )

    async def _get_json(self, path: str, params: dict[str, str] | None = None) -> Any:
        try:
            response = await self._http.get(path, params=params)
            response.raise_for_status()
        except httpx.HTTPError as e:
            raise DexScreenerTransientError(f"GET {path} failed: {e}") from e
        try:
            return response.json()
        except ValueError as e:
            raise DexScreenerFormatError(f"GET {path} returned invalid JSON") from e

    async def _get_pairs(self, chain_id: str, addresses: Sequence[str]) -> list[dict[str, Any]]:
        path = TOKENS_PATH.format(chain_id=chain_id, addresses=",".join(addresses))
        payload = await self._get_json(path)
        if not isinstance(payload, list):
            raise DexScreenerFormatError(f"Expected a list of pairs from {path}")
        return [pair for pair in payload if isinstance(pair, dict)]

    async def fetch_one(self, chain_id: str, address: str) -> TokenData | None:
        """Fetch current market data for one token.

        Returns:
            TokenData from the most liquid pair, or None if the token is
            unknown or the request failed.
        """
        try:
            pairs = await self._get_pairs(chain_id, [address])
        except DexScreenerError as e:
            logger.warning("Error fetching token data for %s/%s: %s", chain_id, address, e)
            return None

        best = select_best_pair(pairs)
        if best is None:
            return None
        return TokenData.from_pair(best, chain_id=chain_id, address=address)

    async def fetch_batch(self, chain_id: str, addresses: Sequence[str]) -> dict[str, TokenData]:
        """Fetch market data for many tokens on one chain.

        Requests are split into chunks of at most 30 addresses with a short
        pause between them. A failed chunk only loses its own addresses.

        Returns:
            Mapping of lowercased address to TokenData. Addresses without
            data are absent.
        """
        wanted = list(dict.fromkeys(address.lower() for address in addresses))
        results: dict[str, TokenData] = {}

        for index, batch in enumerate(chunked(wanted, self._batch_size)):
            if index > 0 and self._batch_pause > 0:
                await asyncio.sleep(self._batch_pause)

            try:
                pairs = await self._get_pairs(chain_id, batch)
            except DexScreenerError as e:
                logger.warning(
                    "Error fetching batch of %d tokens on %s: %s", len(batch), chain_id, e
                )
                continue

            pairs_by_token: dict[str, list[dict[str, Any]]] = {}
            for pair in pairs:
                address = base_token_address(pair)
                if address is not None:
                    pairs_by_token.setdefault(address, []).append(pair)

            for address in batch:
                best = select_best_pair(pairs_by_token.get(address, ()))
                if best is not None:
                    results[address] = TokenData.from_pair(
                        best, chain_id=chain_id, address=address
                    )

        return results

    async def search(self, query: str) -> list[SearchResult]:
        """Search pairs by token name, symbol or address."""
        try:
            payload = await self._get_json(SEARCH_PATH, params={"q": query})
        except DexScreenerError as e:
            logger.warning("Error searching tokens for %r: %s", query, e)
            return []

        pairs = payload.get("pairs") if isinstance(payload, dict) else None
        if not isinstance(pairs, list):
            return []
        return [
            SearchResult.from_pair(pair)
            for pair in pairs[:MAX_SEARCH_RESULTS]
            if isinstance(pair, dict)
        ]

    async def aclose(self) -> None:
        """Close the underlying HTTP client if we created it."""
        if self._owns_client:
            await self._http.aclose()

    async def __aenter__(self) -> DexScreenerClient:
        return self

    async def __aexit__(self, *args: Any) -> None:
        await self.aclose()
