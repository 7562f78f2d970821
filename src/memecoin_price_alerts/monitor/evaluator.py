"""Per-entry threshold evaluation with a self-resetting reference price.

The reference price of an entry moves to the current price every time an
alert fires, so a steady trend produces one alert per threshold step
rather than a single alert measured from the add price.
"""

from __future__ import annotations

import logging
from dataclasses import dataclass
from typing import TYPE_CHECKING

from memecoin_price_alerts.alerter.formatter import AlertFormatter

if TYPE_CHECKING:
    from memecoin_price_alerts.alerter.notifier import Notifier
    from memecoin_price_alerts.ingestor.models import TokenData
    from memecoin_price_alerts.storage.repos import WatchlistEntryDTO
    from memecoin_price_alerts.storage.store import WatchlistStore

logger = logging.getLogger(__name__)


def compute_percent_change(current: float, reference: float) -> float | None:
    """Percent change from `reference` to `current`, sign preserved.

    Returns None when either price is not positive; such entries are
    skipped rather than evaluated.
    """
    if reference <= 0 or current <= 0:
        return None
    return (current - reference) / reference * 100


def should_alert(percent_change: float, threshold: float) -> bool:
    """Fire on moves of at least `threshold` percent in either direction."""
    return abs(percent_change) >= threshold


@dataclass(frozen=True)
class Evaluation:
    """Outcome of evaluating one entry against one market snapshot."""

    entry: WatchlistEntryDTO
    token: TokenData
    percent_change: float | None
    fired: bool = False
    notified: bool = False
    persisted: bool = False

    @property
    def skipped(self) -> bool:
        return self.percent_change is None


class AlertEvaluator:
    """Decides whether an entry fires and applies the side effects.

    On fire the alert is dispatched first, then the reference price is
    replaced by the current price whether or not delivery succeeded.
    """

    def __init__(
        self,
        store: WatchlistStore,
        notifier: Notifier,
        formatter: AlertFormatter | None = None,
    ) -> None:
        self._store = store
        self._notifier = notifier
        self._formatter = formatter or AlertFormatter()

    async def evaluate(self, entry: WatchlistEntryDTO, token: TokenData) -> Evaluation:
        current = token.price_usd
        change = compute_percent_change(current, entry.reference_price)
        if change is None:
            logger.debug(
                "Skipping %s (%s): non-positive price (current=%s, reference=%s)",
                entry.symbol,
                entry.chain_id,
                current,
                entry.reference_price,
            )
            return Evaluation(entry=entry, token=token, percent_change=None)

        if not should_alert(change, entry.drop_threshold):
            return Evaluation(entry=entry, token=token, percent_change=change)

        logger.info(
            "%s Price %s detected for %s: %.2f%%",
            "🟢" if change > 0 else "🔴",
            "up" if change > 0 else "down",
            entry.symbol,
            change,
        )

        text = self._formatter.format_price_alert(entry, token, change)
        try:
            notified = await self._notifier.send(entry.subscriber_id, text)
        except Exception:
            logger.exception("Notifier failed for chat %s", entry.subscriber_id)
            notified = False

        persisted = await self._store.update_reference_price(
            entry.token_address, entry.chain_id, entry.subscriber_id, current
        )
        if not persisted:
            logger.warning(
                "Reference price for %s (%s, chat %s) was not updated",
                entry.symbol,
                entry.chain_id,
                entry.subscriber_id,
            )

        return Evaluation(
            entry=entry,
            token=token,
            percent_change=change,
            fired=True,
            notified=notified,
            persisted=persisted,
        )
