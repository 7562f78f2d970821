"""Periodic watchlist sweeps on a fixed cadence.

A sweep loads every watchlist entry, fetches market data once per chain
and hands each entry to the alert evaluator. Ticks are scheduled against
the loop clock from the moment the monitor starts, so a slow sweep does
not push later ticks back.
"""

from __future__ import annotations

import asyncio
import contextlib
import logging
from collections.abc import Iterator, Sequence
from dataclasses import dataclass
from datetime import UTC, datetime
from enum import Enum
from typing import TYPE_CHECKING, Protocol

if TYPE_CHECKING:
    from memecoin_price_alerts.ingestor.models import TokenData
    from memecoin_price_alerts.monitor.evaluator import AlertEvaluator, Evaluation
    from memecoin_price_alerts.storage.repos import WatchlistEntryDTO
    from memecoin_price_alerts.storage.store import WatchlistStore

logger = logging.getLogger(__name__)

WARMUP_DELAY_SECONDS = 5.0
DEFAULT_INTERVAL_SECONDS = 60.0


class MarketDataSource(Protocol):
    async def fetch_batch(self, chain_id: str, addresses: Sequence[str]) -> dict[str, TokenData]:
        raise NotImplementedError


class MonitorState(str, Enum):
    """Price monitor lifecycle states."""

    STOPPED = "stopped"
    SCHEDULED = "scheduled"
    SWEEPING = "sweeping"


@dataclass
class MonitorStats:
    """Counters across all sweeps since the monitor was created."""

    started_at: datetime | None = None
    sweeps_started: int = 0
    sweeps_completed: int = 0
    sweeps_skipped: int = 0
    entries_evaluated: int = 0
    alerts_fired: int = 0
    last_sweep_at: datetime | None = None
    last_error: str | None = None


def group_by_chain(entries: Sequence[WatchlistEntryDTO]) -> dict[str, list[WatchlistEntryDTO]]:
    """Group entries by chain, keeping first-appearance order of chains and entries."""
    groups: dict[str, list[WatchlistEntryDTO]] = {}
    for entry in entries:
        groups.setdefault(entry.chain_id, []).append(entry)
    return groups


class PriceMonitor:
    """Owns the sweep schedule and its collaborators.

    Example:
        ```python
        monitor = PriceMonitor(store, dexscreener, evaluator, interval_seconds=60)
        await monitor.start()
        ...
        await monitor.stop()
        ```
    """

    def __init__(
        self,
        store: WatchlistStore,
        market_data: MarketDataSource,
        evaluator: AlertEvaluator,
        *,
        interval_seconds: float = DEFAULT_INTERVAL_SECONDS,
        warmup_seconds: float = WARMUP_DELAY_SECONDS,
        allow_overlap: bool = False,
    ) -> None:
        """Initialize the monitor.

        Args:
            store: Watchlist storage.
            market_data: Batched market data source.
            evaluator: Per-entry alert evaluator.
            interval_seconds: Steady-state time between ticks.
            warmup_seconds: Delay before the first, extra sweep.
            allow_overlap: Launch a new sweep on every tick even if the
                previous one is still running.
        """
        if interval_seconds <= 0:
            raise ValueError("interval_seconds must be positive")
        self._store = store
        self._market_data = market_data
        self._evaluator = evaluator
        self._interval = interval_seconds
        self._warmup = warmup_seconds
        self._allow_overlap = allow_overlap

        self._stats = MonitorStats()
        self._stop_event: asyncio.Event | None = None
        self._schedule_task: asyncio.Task[None] | None = None
        self._sweep_tasks: set[asyncio.Task[None]] = set()
        self._active_sweeps = 0

    @property
    def state(self) -> MonitorState:
        if not self.is_running:
            return MonitorState.STOPPED
        if self._active_sweeps:
            return MonitorState.SWEEPING
        return MonitorState.SCHEDULED

    @property
    def stats(self) -> MonitorStats:
        return self._stats

    @property
    def is_running(self) -> bool:
        return self._schedule_task is not None and not self._schedule_task.done()

    async def start(self) -> None:
        """Start ticking. A running schedule is stopped and replaced."""
        if self.is_running:
            logger.info("Price monitor already running; restarting schedule")
            await self.stop()

        self._stop_event = asyncio.Event()
        self._stats.started_at = datetime.now(UTC)
        self._schedule_task = asyncio.create_task(self._run(self._stop_event))
        logger.info("📊 Price monitor started (checking every %ss)", f"{self._interval:g}")

    async def stop(self) -> None:
        """Cancel pending ticks. A sweep already in flight runs to completion."""
        if self._stop_event is not None:
            self._stop_event.set()
        if self._schedule_task is not None:
            self._schedule_task.cancel()
            with contextlib.suppress(asyncio.CancelledError):
                await self._schedule_task
            self._schedule_task = None
            logger.info("📊 Price monitor stopped")

    async def wait_for_sweeps(self, timeout: float | None = None) -> None:
        """Wait for in-flight sweeps to finish."""
        if not self._sweep_tasks:
            return
        _, pending = await asyncio.wait(set(self._sweep_tasks), timeout=timeout)
        if pending:
            logger.warning("%d sweep(s) still running after %.1fs", len(pending), timeout or 0)

    def _tick_times(self, start: float) -> Iterator[float]:
        """Yield tick deadlines: the warm-up tick merged into the interval grid."""
        warmup_at: float | None = start + self._warmup
        k = 1
        while True:
            interval_at = start + k * self._interval
            if warmup_at is not None and warmup_at <= interval_at:
                yield warmup_at
                if warmup_at == interval_at:
                    k += 1
                warmup_at = None
            else:
                yield interval_at
                k += 1

    async def _run(self, stop_event: asyncio.Event) -> None:
        loop = asyncio.get_running_loop()
        for due in self._tick_times(loop.time()):
            delay = max(0.0, due - loop.time())
            try:
                await asyncio.wait_for(stop_event.wait(), timeout=delay)
                break
            except TimeoutError:
                pass
            self._tick()

    def _tick(self) -> None:
        if self._sweep_tasks and not self._allow_overlap:
            self._stats.sweeps_skipped += 1
            logger.warning("Previous sweep still running; skipping this tick")
            return
        task = asyncio.create_task(self._guarded_sweep())
        self._sweep_tasks.add(task)
        task.add_done_callback(self._sweep_tasks.discard)

    async def _guarded_sweep(self) -> None:
        try:
            await self.sweep()
        except Exception as e:
            self._stats.last_error = str(e)
            logger.exception("Price sweep failed")

    async def sweep(self) -> list[Evaluation]:
        """Run one full pass over the watchlist.

        Returns:
            Evaluations for every entry that had market data.
        """
        self._stats.sweeps_started += 1
        self._active_sweeps += 1
        try:
            entries = await self._store.list_all()
            if not entries:
                return []

            logger.info("🔍 Checking prices for %d token(s)...", len(entries))
            evaluations: list[Evaluation] = []
            for chain_id, group in group_by_chain(entries).items():
                try:
                    evaluations.extend(await self._sweep_chain(chain_id, group))
                except Exception as e:
                    self._stats.last_error = f"{chain_id}: {e}"
                    logger.exception("Sweep of chain %s failed", chain_id)

            fired = sum(1 for evaluation in evaluations if evaluation.fired)
            self._stats.entries_evaluated += len(evaluations)
            self._stats.alerts_fired += fired
            if fired:
                logger.info("Sweep fired %d alert(s)", fired)
            return evaluations
        finally:
            self._active_sweeps -= 1
            self._stats.sweeps_completed += 1
            self._stats.last_sweep_at = datetime.now(UTC)

    async def _sweep_chain(
        self, chain_id: str, entries: Sequence[WatchlistEntryDTO]
    ) -> list[Evaluation]:
        quotes = await self._market_data.fetch_batch(
            chain_id, [entry.token_address for entry in entries]
        )
        evaluations = []
        for entry in entries:
            token = quotes.get(entry.token_address.lower())
            if token is None:
                logger.warning("⚠️ No data for %s (%s)", entry.symbol, entry.chain_id)
                continue
            try:
                evaluations.append(await self._evaluator.evaluate(entry, token))
            except Exception as e:
                self._stats.last_error = f"{entry.symbol} ({entry.chain_id}): {e}"
                logger.exception("Evaluation of %s (%s) failed", entry.symbol, entry.chain_id)
        return evaluations
