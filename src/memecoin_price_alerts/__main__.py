"""Command line entry point: `python -m memecoin_price_alerts [run|init-db]`."""

from __future__ import annotations

import argparse
import asyncio
import logging
import signal
import sys
from typing import Any

from pydantic import ValidationError

from memecoin_price_alerts.config import Settings, get_settings
from memecoin_price_alerts.pipeline import Pipeline
from memecoin_price_alerts.storage.database import DatabaseManager

logger = logging.getLogger("memecoin_price_alerts")

LOG_FORMAT = "%(asctime)s %(levelname)s %(name)s: %(message)s"


def configure_logging(settings: Settings) -> None:
    logging.basicConfig(level=settings.get_logging_level(), format=LOG_FORMAT)
    # Request URLs embed the bot token.
    logging.getLogger("httpx").setLevel(logging.WARNING)


def _log_loop_exception(loop: asyncio.AbstractEventLoop, context: dict[str, Any]) -> None:
    exc = context.get("exception")
    logger.error("Unhandled error in event loop: %s", context.get("message"), exc_info=exc)


async def run_bot(settings: Settings, *, dry_run: bool) -> None:
    pipeline = Pipeline(settings, dry_run=dry_run)
    loop = asyncio.get_running_loop()
    loop.set_exception_handler(_log_loop_exception)
    for sig in (signal.SIGINT, signal.SIGTERM):
        try:
            loop.add_signal_handler(sig, pipeline.request_stop)
        except NotImplementedError:
            # Windows event loops have no signal handler support.
            pass
    await pipeline.run()


async def init_db(settings: Settings) -> None:
    db = DatabaseManager(settings.database.url)
    try:
        await db.init_schema_async()
    finally:
        await db.dispose_async()
    logger.info("Database schema ready at %s", settings.redacted_summary()["database_url"])


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(
        prog="memecoin-price-alerts",
        description="Telegram bot that alerts on price moves of tracked DEX tokens",
    )
    parser.add_argument(
        "command",
        nargs="?",
        choices=("run", "init-db"),
        default="run",
        help="run the bot (default) or create the database schema",
    )
    parser.add_argument(
        "--dry-run",
        action="store_true",
        default=False,
        help="Log price alerts instead of sending them",
    )
    return parser


def main(argv: list[str] | None = None) -> int:
    args = build_parser().parse_args(argv)

    try:
        settings = get_settings()
    except ValidationError as e:
        print(f"Invalid configuration: {e}", file=sys.stderr)
        return 2

    configure_logging(settings)

    try:
        settings.validate_requirements(command=args.command)
    except ValueError as e:
        logger.error("%s", e)
        return 2

    logger.debug("Settings: %s", settings.redacted_summary())

    try:
        if args.command == "init-db":
            asyncio.run(init_db(settings))
        else:
            asyncio.run(run_bot(settings, dry_run=args.dry_run or settings.dry_run))
    except KeyboardInterrupt:
        pass
    except Exception:
        logger.exception("Fatal error")
        return 1
    return 0


if __name__ == "__main__":
    sys.exit(main())
