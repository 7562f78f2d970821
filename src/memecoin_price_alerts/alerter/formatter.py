"""Chat message formatter.

This module turns watchlist entries and DexScreener market data into
Telegram legacy-Markdown messages: price alerts, confirmations, token
cards, watchlist overviews and search results.
"""

from __future__ import annotations

from collections.abc import Sequence
from typing import TYPE_CHECKING

from memecoin_price_alerts.alerter.formatting import (
    escape_markdown,
    format_market_cap,
    format_percent,
    format_price,
    format_threshold,
    to_fixed,
)

if TYPE_CHECKING:
    from memecoin_price_alerts.ingestor.models import SearchResult, TokenData
    from memecoin_price_alerts.storage.repos import WatchlistEntryDTO

SEPARATOR = "━━━━━━━━━━━━━━━━━"


def _change_since(current: float, base: float) -> float | None:
    if base <= 0:
        return None
    return (current - base) / base * 100


class AlertFormatter:
    """Builds every user-facing message that carries market data.

    All interpolated free text (names, symbols, formatted numbers) is
    escaped for legacy Markdown. Addresses go inside code spans and URLs
    inside link targets, where escaping does not apply.
    """

    def format_price_alert(
        self,
        entry: WatchlistEntryDTO,
        token: TokenData,
        percent_change: float,
    ) -> str:
        """Format a threshold-crossing alert.

        Args:
            entry: The watchlist entry, with its reference price as it was
                before this alert.
            token: Current market data for the entry's token.
            percent_change: Change from the reference price, in percent.

        Returns:
            Markdown message text.
        """
        is_up = percent_change > 0
        total_change = _change_since(token.price_usd, entry.initial_price) or 0.0

        lines = [
            f"{'🟢' if is_up else '🔴'} *PRICE ALERT: ${escape_markdown(entry.symbol)}*",
            "",
            f"💰 *Current Price:* {escape_markdown(format_price(token.price_usd))}",
            f"{'📈' if is_up else '📉'} *{'Gain' if is_up else 'Drop'}:* "
            f"{format_percent(percent_change)} from last alert",
            f"📊 *Market Cap:* {escape_markdown(format_market_cap(token.market_cap))}",
            "",
            SEPARATOR,
            f"📌 *Last Alert Price:* {escape_markdown(format_price(entry.reference_price))}",
            f"📍 *Initial Price:* {escape_markdown(format_price(entry.initial_price))}",
            f"📈 *Total Change:* {format_percent(total_change)}",
            f"⚡ *Alert Threshold:* {format_threshold(entry.drop_threshold)}%",
            "",
            f"🔗 *Chain:* {escape_markdown(entry.chain_id)}",
            f"📝 *Address:* `{entry.token_address}`",
            "",
            f"[View on DexScreener]({token.url})",
        ]
        return "\n".join(lines)

    def format_token_added(self, token: TokenData, chain_id: str, threshold: float) -> str:
        """Confirmation sent after a token joins the watchlist."""
        threshold_text = format_threshold(threshold)
        lines = [
            "✅ *Token Added to Watchlist!*",
            "",
            f"📌 *{escape_markdown(token.name)}* (${escape_markdown(token.symbol)})",
            f"💰 Current Price: {escape_markdown(format_price(token.price_usd))}",
            f"📊 Market Cap: {escape_markdown(format_market_cap(token.market_cap))}",
            f"⚡ Alert Threshold: {threshold_text}%",
            "",
            f"🔗 Chain: {escape_markdown(chain_id)}",
            "",
            f"You'll be notified when the price moves by {threshold_text}% or more.",
        ]
        return "\n".join(lines)

    def format_token_price(self, token: TokenData, chain_id: str) -> str:
        """Token card for /price."""
        lines = [
            f"💎 *{escape_markdown(token.name)}* (${escape_markdown(token.symbol)})",
            "",
            f"💰 *Price:* {escape_markdown(format_price(token.price_usd))}",
            f"📊 *Market Cap:* {escape_markdown(format_market_cap(token.market_cap))}",
            f"💧 *Liquidity:* {escape_markdown(format_market_cap(token.liquidity_usd))}",
            f"📈 *24h Change:* {format_percent(token.price_change_24h)}",
            "",
            f"🔗 Chain: {escape_markdown(chain_id)}",
            f"🏦 DEX: {escape_markdown(token.dex_id)}",
            "",
            f"[View on DexScreener]({token.url})",
        ]
        return "\n".join(lines)

    def format_watchlist(
        self,
        rows: Sequence[tuple[WatchlistEntryDTO, TokenData | None]],
    ) -> str:
        """Watchlist overview with live prices.

        Each row pairs an entry with its current market data, or None when
        the lookup failed.
        """
        blocks = []
        for entry, token in rows:
            if token is None:
                blocks.append(
                    f"*{escape_markdown(entry.symbol)}* ({escape_markdown(entry.chain_id)})\n"
                    "⚠️ Unable to fetch data"
                )
                continue

            from_alert = _change_since(token.price_usd, entry.reference_price)
            from_initial = _change_since(token.price_usd, entry.initial_price)
            alert_text = to_fixed(from_alert, 2) if from_alert is not None else "N/A"
            initial_text = to_fixed(from_initial, 2) if from_initial is not None else "N/A"
            trend = "📉" if from_alert is not None and float(alert_text) < 0 else "📈"

            blocks.append(
                f"*{escape_markdown(token.symbol)}* ({escape_markdown(entry.chain_id)})\n"
                f"💰 {escape_markdown(format_price(token.price_usd))} | "
                f"📊 {escape_markdown(format_market_cap(token.market_cap))}\n"
                f"{trend} {alert_text}% from last alert | {initial_text}% total\n"
                f"⚡ Threshold: {format_threshold(entry.drop_threshold)}%"
            )

        return "📋 *Your Watchlist*\n\n" + "\n\n".join(blocks)

    def format_search_results(self, query: str, results: Sequence[SearchResult]) -> str:
        """Search result listing for /search."""
        blocks = [
            f"*{escape_markdown(result.name)}* (${escape_markdown(result.symbol)})\n"
            f"💰 {escape_markdown(format_price(result.price_usd))} | "
            f"📊 {escape_markdown(format_market_cap(result.market_cap))}\n"
            f"🔗 {escape_markdown(result.chain_id)}\n"
            f"📝 `{result.address}`"
            for result in results
        ]
        header = f'🔎 *Search Results for "{escape_markdown(query)}"*'
        footer = "Use `/add <chain> <address>` to add a token."
        return "\n\n".join([header, *blocks, footer])

    def format_threshold_updated(self, threshold: float) -> str:
        return f"✅ Alert threshold updated to {format_threshold(threshold)}%"
