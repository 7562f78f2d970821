"""Main orchestrator for Memecoin Price Alerts.

This module provides the Pipeline class that wires the watchlist store,
the DexScreener client, the Telegram bot and the price monitor together
and manages their lifecycle.
"""

from __future__ import annotations

import asyncio
import contextlib
import logging
from dataclasses import dataclass
from datetime import UTC, datetime
from enum import Enum
from typing import TYPE_CHECKING, Any

from memecoin_price_alerts.alerter.formatter import AlertFormatter
from memecoin_price_alerts.alerter.notifier import LoggingNotifier, Notifier, TelegramNotifier
from memecoin_price_alerts.bot.conversation import ConversationManager
from memecoin_price_alerts.bot.handlers import build_application, register_commands
from memecoin_price_alerts.bot.service import WatchlistService
from memecoin_price_alerts.config import Settings, get_settings
from memecoin_price_alerts.health import HealthServer, create_health_app
from memecoin_price_alerts.ingestor.dexscreener import DexScreenerClient
from memecoin_price_alerts.monitor.evaluator import AlertEvaluator
from memecoin_price_alerts.monitor.scheduler import PriceMonitor
from memecoin_price_alerts.storage.database import DatabaseManager
from memecoin_price_alerts.storage.store import WatchlistStore

if TYPE_CHECKING:
    from telegram.ext import Application

logger = logging.getLogger(__name__)

HOUSEKEEPING_INTERVAL_SECONDS = 60.0
SWEEP_DRAIN_TIMEOUT_SECONDS = 10.0


class PipelineState(str, Enum):
    """Pipeline lifecycle states."""

    STOPPED = "stopped"
    STARTING = "starting"
    RUNNING = "running"
    STOPPING = "stopping"
    ERROR = "error"


@dataclass
class PipelineStats:
    """Statistics for the pipeline."""

    started_at: datetime | None = None
    conversations_expired: int = 0
    last_error: str | None = None


class Pipeline:
    """Main orchestrator for the price alert bot.

    Pipeline flow:
        Watchlist Store → Price Monitor → DexScreener → Alert Evaluator → Telegram

    Example:
        ```python
        from memecoin_price_alerts.config import get_settings
        from memecoin_price_alerts.pipeline import Pipeline

        pipeline = Pipeline(get_settings())

        await pipeline.start()
        # Bot and monitor run until stop() is called
        await pipeline.stop()
        ```
    """

    def __init__(
        self,
        settings: Settings | None = None,
        *,
        dry_run: bool | None = None,
    ) -> None:
        """Initialize the pipeline.

        Args:
            settings: Application settings. If not provided, uses get_settings().
            dry_run: If True, log alerts instead of sending them. Overrides
                settings.dry_run.
        """
        self._settings = settings or get_settings()
        self._dry_run = dry_run if dry_run is not None else self._settings.dry_run

        self._state = PipelineState.STOPPED
        self._stats = PipelineStats()

        # Components (initialized in start())
        self._db_manager: DatabaseManager | None = None
        self._store: WatchlistStore | None = None
        self._dexscreener: DexScreenerClient | None = None
        self._application: Application | None = None
        self._notifier: Notifier | None = None
        self._evaluator: AlertEvaluator | None = None
        self._monitor: PriceMonitor | None = None
        self._conversations: ConversationManager | None = None
        self._service: WatchlistService | None = None
        self._health_server: HealthServer | None = None

        # Synchronization
        self._stop_event: asyncio.Event | None = None
        self._housekeeping_task: asyncio.Task[None] | None = None
        self._app_started = False

    @property
    def state(self) -> PipelineState:
        """Current pipeline state."""
        return self._state

    @property
    def stats(self) -> PipelineStats:
        """Current pipeline statistics."""
        return self._stats

    @property
    def is_running(self) -> bool:
        """Check if pipeline is running."""
        return self._state == PipelineState.RUNNING

    @property
    def dry_run(self) -> bool:
        return self._dry_run

    @property
    def monitor(self) -> PriceMonitor | None:
        return self._monitor

    @property
    def service(self) -> WatchlistService | None:
        return self._service

    async def start(self) -> None:
        """Start the pipeline.

        Raises:
            RuntimeError: If pipeline is already running.
            Exception: If any component fails to initialize.
        """
        if self._state != PipelineState.STOPPED:
            raise RuntimeError(f"Cannot start pipeline in state {self._state}")

        self._state = PipelineState.STARTING
        self._stop_event = asyncio.Event()
        logger.info("🚀 Starting Memecoin Price Alert Bot...")

        try:
            await self._initialize_components()
            await self._start_background_services()
            self._stats.started_at = datetime.now(UTC)
            self._state = PipelineState.RUNNING
            logger.info("✅ Bot is running! Press Ctrl+C to stop.")
        except Exception as e:
            self._state = PipelineState.ERROR
            self._stats.last_error = str(e)
            logger.error("Failed to start pipeline: %s", e)
            await self._stop_background_services()
            await self._cleanup()
            raise

    async def stop(self) -> None:
        """Stop the pipeline gracefully.

        Components are stopped in reverse order of startup.
        """
        if self._state == PipelineState.STOPPED:
            return

        self._state = PipelineState.STOPPING
        logger.info("👋 Shutting down gracefully...")

        if self._stop_event:
            self._stop_event.set()

        await self._stop_background_services()
        await self._cleanup()

        self._state = PipelineState.STOPPED
        logger.info("Pipeline stopped")

    def request_stop(self) -> None:
        """Ask `run()` to return. Safe to call from a signal handler."""
        if self._stop_event is not None:
            self._stop_event.set()

    async def _initialize_components(self) -> None:
        """Initialize all pipeline components."""
        settings = self._settings

        logger.debug("Initializing database...")
        self._db_manager = DatabaseManager(settings.database.url)
        await self._db_manager.init_schema_async()
        self._store = WatchlistStore(self._db_manager)

        logger.debug("Initializing DexScreener client...")
        self._dexscreener = DexScreenerClient(
            base_url=settings.dexscreener.base_url,
            timeout_seconds=settings.dexscreener.timeout_seconds,
            batch_pause_seconds=settings.dexscreener.batch_pause_seconds,
        )

        formatter = AlertFormatter()
        self._conversations = ConversationManager(settings.telegram.conversation_ttl_seconds)
        self._service = WatchlistService(
            self._store,
            self._dexscreener,
            formatter=formatter,
            conversations=self._conversations,
        )

        if settings.telegram.bot_token is not None:
            logger.debug("Initializing Telegram application...")
            self._application = build_application(
                settings.telegram.bot_token.get_secret_value(), self._service
            )
        else:
            logger.warning("TELEGRAM_BOT_TOKEN not set; chat commands are disabled")

        if self._dry_run or self._application is None:
            logger.info("Dry run: alerts will be logged, not sent")
            self._notifier = LoggingNotifier()
        else:
            self._notifier = TelegramNotifier(self._application.bot)

        self._evaluator = AlertEvaluator(self._store, self._notifier, formatter)
        self._monitor = PriceMonitor(
            self._store,
            self._dexscreener,
            self._evaluator,
            interval_seconds=settings.monitor.check_interval_seconds,
        )

        self._health_server = HealthServer(
            create_health_app(self._monitor), port=settings.health_port
        )

        logger.info("All components initialized")

    async def _start_background_services(self) -> None:
        """Start polling, the monitor and the health server."""
        if self._health_server:
            await self._health_server.start()

        if self._application:
            await self._application.initialize()
            await register_commands(self._application.bot)
            await self._application.start()
            if self._application.updater is not None:
                await self._application.updater.start_polling()
            self._app_started = True
            logger.info("🤖 Telegram polling started")

        if self._monitor:
            await self._monitor.start()

        if self._stop_event:
            self._housekeeping_task = asyncio.create_task(
                self._housekeeping_loop(self._stop_event)
            )

    async def _stop_background_services(self) -> None:
        """Stop background services."""
        if self._housekeeping_task:
            self._housekeeping_task.cancel()
            with contextlib.suppress(asyncio.CancelledError):
                await self._housekeeping_task
            self._housekeeping_task = None

        if self._monitor:
            logger.debug("Stopping price monitor...")
            await self._monitor.stop()
            await self._monitor.wait_for_sweeps(SWEEP_DRAIN_TIMEOUT_SECONDS)

        if self._application and self._app_started:
            logger.debug("Stopping Telegram application...")
            if self._application.updater is not None and self._application.updater.running:
                await self._application.updater.stop()
            await self._application.stop()
            await self._application.shutdown()
            self._app_started = False

        if self._health_server:
            logger.debug("Stopping health server...")
            await self._health_server.stop()

    async def _cleanup(self) -> None:
        """Clean up resources."""
        if self._dexscreener:
            await self._dexscreener.aclose()
            self._dexscreener = None

        # Close database connections
        if self._db_manager:
            await self._db_manager.dispose_async()
            self._db_manager = None

        self._application = None
        self._health_server = None
        logger.debug("Resources cleaned up")

    async def _housekeeping_loop(self, stop_event: asyncio.Event) -> None:
        """Expire idle chat conversations."""
        while not stop_event.is_set():
            try:
                await asyncio.wait_for(stop_event.wait(), timeout=HOUSEKEEPING_INTERVAL_SECONDS)
            except TimeoutError:
                pass
            if self._conversations is None:
                continue
            expired = self._conversations.purge_expired()
            if expired:
                self._stats.conversations_expired += expired
                logger.debug("Expired %d idle conversation(s)", expired)

    async def run(self) -> None:
        """Start the pipeline and run until `request_stop()` or cancellation."""
        await self.start()

        try:
            if self._stop_event:
                await self._stop_event.wait()
        except asyncio.CancelledError:
            pass
        finally:
            await self.stop()

    async def __aenter__(self) -> Pipeline:
        """Async context manager entry."""
        await self.start()
        return self

    async def __aexit__(self, *args: Any) -> None:
        """Async context manager exit."""
        await self.stop()
