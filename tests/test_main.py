"""Tests for the command line entry point."""

from __future__ import annotations

from unittest.mock import AsyncMock, MagicMock, patch

import pytest

from memecoin_price_alerts import __main__ as cli
from memecoin_price_alerts.storage.database import DatabaseManager


@pytest.fixture
def settings() -> MagicMock:
    settings = MagicMock()
    settings.dry_run = False
    settings.get_logging_level.return_value = 20
    settings.database.url = "sqlite+aiosqlite:///:memory:"
    return settings


class TestParser:
    def test_defaults_to_run(self) -> None:
        args = cli.build_parser().parse_args([])
        assert args.command == "run"
        assert args.dry_run is False

    def test_init_db_and_dry_run(self) -> None:
        args = cli.build_parser().parse_args(["init-db", "--dry-run"])
        assert args.command == "init-db"
        assert args.dry_run is True

    def test_rejects_unknown_command(self) -> None:
        with pytest.raises(SystemExit):
            cli.build_parser().parse_args(["serve"])


class TestMain:
    """Tests for main()."""

    def test_missing_token_exits_with_2(self, settings) -> None:
        settings.validate_requirements.side_effect = ValueError("TELEGRAM_BOT_TOKEN is required")

        with (
            patch.object(cli, "get_settings", return_value=settings),
            patch.object(cli, "configure_logging"),
            patch.object(cli, "run_bot", new=AsyncMock()) as run_bot,
        ):
            assert cli.main(["run"]) == 2

        run_bot.assert_not_called()

    def test_run_passes_dry_run_flag(self, settings) -> None:
        with (
            patch.object(cli, "get_settings", return_value=settings),
            patch.object(cli, "configure_logging"),
            patch.object(cli, "run_bot", new=AsyncMock()) as run_bot,
        ):
            assert cli.main(["run", "--dry-run"]) == 0

        run_bot.assert_awaited_once_with(settings, dry_run=True)
        settings.validate_requirements.assert_called_once_with(command="run")

    def test_fatal_error_exits_with_1(self, settings) -> None:
        with (
            patch.object(cli, "get_settings", return_value=settings),
            patch.object(cli, "configure_logging"),
            patch.object(cli, "run_bot", new=AsyncMock(side_effect=RuntimeError("boom"))),
        ):
            assert cli.main([]) == 1

    def test_init_db_creates_schema(self, settings) -> None:
        init_schema = AsyncMock()
        dispose = AsyncMock()

        with (
            patch.object(cli, "get_settings", return_value=settings),
            patch.object(cli, "configure_logging"),
            patch.object(DatabaseManager, "init_schema_async", init_schema),
            patch.object(DatabaseManager, "dispose_async", dispose),
        ):
            assert cli.main(["init-db"]) == 0

        init_schema.assert_awaited_once()
        dispose.assert_awaited_once()
