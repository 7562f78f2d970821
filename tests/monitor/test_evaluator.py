"""Tests for per-entry alert evaluation."""

from __future__ import annotations

from dataclasses import replace
from unittest.mock import AsyncMock

import pytest

from memecoin_price_alerts.alerter.notifier import LoggingNotifier
from memecoin_price_alerts.monitor.evaluator import (
    AlertEvaluator,
    compute_percent_change,
    should_alert,
)
from memecoin_price_alerts.storage.store import WatchlistStore


@pytest.fixture
def mock_store() -> AsyncMock:
    store = AsyncMock(spec=WatchlistStore)
    store.update_reference_price.return_value = True
    return store


@pytest.fixture
def mock_notifier() -> AsyncMock:
    notifier = AsyncMock()
    notifier.send.return_value = True
    return notifier


class TestPercentChange:
    def test_signed_change(self) -> None:
        assert compute_percent_change(1.1, 1.0) == pytest.approx(10.0)
        assert compute_percent_change(0.9, 1.0) == pytest.approx(-10.0)

    def test_non_positive_prices(self) -> None:
        assert compute_percent_change(0.0, 1.0) is None
        assert compute_percent_change(1.0, 0.0) is None
        assert compute_percent_change(-1.0, 1.0) is None

    def test_should_alert_is_symmetric_and_inclusive(self) -> None:
        assert should_alert(5.0, 5.0)
        assert should_alert(-5.0, 5.0)
        assert not should_alert(4.99, 5.0)
        assert not should_alert(-4.99, 5.0)


class TestAlertEvaluator:
    """Tests for AlertEvaluator.evaluate."""

    @pytest.mark.asyncio
    async def test_below_threshold_does_nothing(
        self, mock_store, mock_notifier, entry_factory, token_factory
    ) -> None:
        evaluator = AlertEvaluator(mock_store, mock_notifier)

        result = await evaluator.evaluate(entry_factory(1.0), token_factory(1.04))

        assert not result.fired
        assert result.percent_change == pytest.approx(4.0)
        mock_notifier.send.assert_not_awaited()
        mock_store.update_reference_price.assert_not_awaited()

    @pytest.mark.asyncio
    async def test_fire_sends_then_resets_reference(
        self, mock_store, mock_notifier, entry_factory, token_factory
    ) -> None:
        calls: list[str] = []
        mock_notifier.send.side_effect = lambda *a: calls.append("send") or True
        mock_store.update_reference_price.side_effect = lambda *a: calls.append("persist") or True
        evaluator = AlertEvaluator(mock_store, mock_notifier)
        entry = entry_factory(1.0, token_address="0xabc", subscriber_id="42")

        result = await evaluator.evaluate(entry, token_factory(0.94))

        assert result.fired and result.notified and result.persisted
        assert calls == ["send", "persist"]
        subscriber, text = mock_notifier.send.await_args.args
        assert subscriber == "42"
        assert "🔴 *PRICE ALERT: $PEPE*" in text
        mock_store.update_reference_price.assert_awaited_once_with(
            "0xabc", "ethereum", "42", 0.94
        )

    @pytest.mark.asyncio
    async def test_upward_move_fires(
        self, mock_store, mock_notifier, entry_factory, token_factory
    ) -> None:
        evaluator = AlertEvaluator(mock_store, mock_notifier)

        result = await evaluator.evaluate(entry_factory(1.0), token_factory(1.05))

        assert result.fired
        text = mock_notifier.send.await_args.args[1]
        assert text.startswith("🟢")

    @pytest.mark.asyncio
    async def test_non_positive_price_is_skipped(
        self, mock_store, mock_notifier, entry_factory, token_factory
    ) -> None:
        evaluator = AlertEvaluator(mock_store, mock_notifier)

        result = await evaluator.evaluate(entry_factory(1.0), token_factory(0.0))

        assert result.skipped
        assert not result.fired
        mock_notifier.send.assert_not_awaited()

    @pytest.mark.asyncio
    async def test_delivery_failure_still_persists(
        self, mock_store, mock_notifier, entry_factory, token_factory
    ) -> None:
        mock_notifier.send.return_value = False
        evaluator = AlertEvaluator(mock_store, mock_notifier)

        result = await evaluator.evaluate(entry_factory(1.0), token_factory(2.0))

        assert result.fired
        assert not result.notified
        assert result.persisted
        mock_store.update_reference_price.assert_awaited_once()

    @pytest.mark.asyncio
    async def test_notifier_exception_still_persists(
        self, mock_store, mock_notifier, entry_factory, token_factory
    ) -> None:
        mock_notifier.send.side_effect = RuntimeError("boom")
        evaluator = AlertEvaluator(mock_store, mock_notifier)

        result = await evaluator.evaluate(entry_factory(1.0), token_factory(2.0))

        assert result.fired
        assert not result.notified
        mock_store.update_reference_price.assert_awaited_once()

    @pytest.mark.asyncio
    async def test_persist_failure_is_reported(
        self, mock_store, mock_notifier, entry_factory, token_factory
    ) -> None:
        mock_store.update_reference_price.return_value = False
        evaluator = AlertEvaluator(mock_store, mock_notifier)

        result = await evaluator.evaluate(entry_factory(1.0), token_factory(2.0))

        assert result.fired
        assert result.notified
        assert not result.persisted


class TestRecursiveAlerts:
    """The reference price follows each alert, against a real store."""

    @pytest.mark.asyncio
    async def test_documented_sequence_fires_three_times(
        self, store: WatchlistStore, token_factory
    ) -> None:
        notifier = LoggingNotifier()
        evaluator = AlertEvaluator(store, notifier)
        await store.add(
            token_address="0xabc",
            chain_id="ethereum",
            subscriber_id="7",
            name="Pepe",
            symbol="PEPE",
            current_price=1.00,
            threshold=5.0,
        )

        fired = []
        for price in (0.94, 0.89, 0.92, 0.84):
            [entry] = await store.list_all()
            result = await evaluator.evaluate(entry, token_factory(price))
            fired.append(result.fired)

        assert fired == [True, True, False, True]
        assert len(notifier.sent) == 3

        [entry] = await store.list_all()
        assert entry.reference_price == 0.84
        assert entry.initial_price == 1.00

    @pytest.mark.asyncio
    async def test_alert_leaves_other_subscribers_untouched(
        self, store: WatchlistStore, token_factory
    ) -> None:
        evaluator = AlertEvaluator(store, LoggingNotifier())
        for subscriber_id in ("1", "2"):
            await store.add(
                token_address="0xAbc",
                chain_id="ethereum",
                subscriber_id=subscriber_id,
                name="Pepe",
                symbol="PEPE",
                current_price=1.0,
                threshold=5.0,
            )

        [first] = await store.list_for("1")
        result = await evaluator.evaluate(first, token_factory(0.9))

        assert result.fired
        references = {e.subscriber_id: e.reference_price for e in await store.list_all()}
        assert references == {"1": 0.9, "2": 1.0}

    @pytest.mark.asyncio
    async def test_in_memory_entry_is_not_mutated(
        self, mock_store, mock_notifier, entry_factory, token_factory
    ) -> None:
        entry = entry_factory(1.0)
        snapshot = replace(entry)
        await AlertEvaluator(mock_store, mock_notifier).evaluate(entry, token_factory(2.0))
        assert entry == snapshot
