"""HTTP health endpoints for hosting platforms and uptime checks."""

from __future__ import annotations

import asyncio
import contextlib
import logging
import time
from collections.abc import Callable, Iterator
from datetime import UTC, datetime
from typing import TYPE_CHECKING, Any

import uvicorn
from fastapi import FastAPI

if TYPE_CHECKING:
    from memecoin_price_alerts.monitor.scheduler import PriceMonitor

logger = logging.getLogger(__name__)

SERVICE_NAME = "Memecoin Price Alerts"


def _monitor_summary(monitor: PriceMonitor) -> dict[str, Any]:
    stats = monitor.stats
    return {
        "state": monitor.state.value,
        "sweeps_completed": stats.sweeps_completed,
        "sweeps_skipped": stats.sweeps_skipped,
        "alerts_fired": stats.alerts_fired,
        "last_sweep_at": stats.last_sweep_at.isoformat() if stats.last_sweep_at else None,
    }


def create_health_app(
    monitor: PriceMonitor | None = None,
    *,
    clock: Callable[[], float] = time.monotonic,
) -> FastAPI:
    """Create the health check application.

    Args:
        monitor: Price monitor whose state is reported on `/health`.
        clock: Monotonic clock used for uptime.
    """
    started = clock()
    app = FastAPI(title=SERVICE_NAME, docs_url=None, redoc_url=None, openapi_url=None)

    def uptime() -> float:
        return round(clock() - started, 3)

    def timestamp() -> str:
        return datetime.now(UTC).isoformat().replace("+00:00", "Z")

    @app.get("/")
    async def root() -> dict[str, Any]:
        return {
            "status": "ok",
            "service": SERVICE_NAME,
            "uptime": uptime(),
            "timestamp": timestamp(),
        }

    @app.get("/health")
    async def health() -> dict[str, Any]:
        return {
            "status": "healthy",
            "uptime": uptime(),
            "timestamp": timestamp(),
            "monitor": _monitor_summary(monitor) if monitor is not None else None,
        }

    return app


class _EmbeddedServer(uvicorn.Server):
    """uvicorn server that leaves process signal handling to the caller."""

    def install_signal_handlers(self) -> None:
        pass

    @contextlib.contextmanager
    def capture_signals(self) -> Iterator[None]:
        yield


class HealthServer:
    """Runs the health app with uvicorn inside the current event loop."""

    def __init__(self, app: FastAPI, *, host: str = "0.0.0.0", port: int = 8080) -> None:
        self._config = uvicorn.Config(app, host=host, port=port, log_level="warning")
        self._server = _EmbeddedServer(self._config)
        self._task: asyncio.Task[None] | None = None

    async def start(self) -> None:
        self._task = asyncio.create_task(self._serve())
        logger.info("🌐 Health server listening on port %d", self._config.port)

    async def stop(self) -> None:
        if self._task is None:
            return
        self._server.should_exit = True
        try:
            await asyncio.wait_for(self._task, timeout=5.0)
        except TimeoutError:
            logger.warning("Health server did not stop in time; cancelling")
            self._task.cancel()
            with contextlib.suppress(asyncio.CancelledError):
                await self._task
        self._task = None

    async def _serve(self) -> None:
        try:
            await self._server.serve()
        except SystemExit:
            # uvicorn exits the process when it cannot bind; keep the bot running.
            logger.error("Health server failed to start on port %d", self._config.port)
