"""Tests for chat command logic."""

from __future__ import annotations

from unittest.mock import AsyncMock

import pytest

from memecoin_price_alerts.bot import constants as c
from memecoin_price_alerts.bot.conversation import Command, ConversationState
from memecoin_price_alerts.bot.service import (
    ADD_THRESHOLD_PROMPT,
    ADD_THRESHOLD_RETRY,
    SEARCH_PROMPT,
    UPDATE_THRESHOLD_PROMPT,
    WatchlistService,
)
from memecoin_price_alerts.ingestor.models import SearchResult
from memecoin_price_alerts.storage.store import WatchlistStore

CHAT = "100"
ADDRESS = "0x6982508145454Ce325dDbE47a25d4ec3d2311933"


@pytest.fixture
def market_data(token_factory) -> AsyncMock:
    market_data = AsyncMock()
    market_data.fetch_one.return_value = token_factory(0.5)
    market_data.fetch_batch.return_value = {}
    market_data.search.return_value = []
    return market_data


@pytest.fixture
def service(store: WatchlistStore, market_data: AsyncMock) -> WatchlistService:
    return WatchlistService(store, market_data)


async def _track(store: WatchlistStore, address: str = ADDRESS, chain_id: str = "ethereum"):
    return await store.add(
        token_address=address,
        chain_id=chain_id,
        subscriber_id=CHAT,
        name="Pepe",
        symbol="PEPE",
        current_price=0.5,
        threshold=5.0,
    )


class TestStaticCommands:
    def test_start_and_help(self, service: WatchlistService) -> None:
        assert service.start().text == c.START_MESSAGE
        assert service.start().markdown
        assert service.help().text == c.HELP_MESSAGE

    def test_cancel_clears_conversation(self, service: WatchlistService) -> None:
        service.begin(CHAT, Command.ADD)

        reply = service.cancel(CHAT)

        assert reply.text == c.CANCELLED
        assert service.conversations.get(CHAT) is None


class TestAdd:
    """Tests for /add with arguments."""

    @pytest.mark.asyncio
    async def test_usage(self, service: WatchlistService) -> None:
        reply = await service.add(CHAT, ["sol"])
        assert reply.text == c.USAGE_ADD
        assert reply.markdown

    @pytest.mark.asyncio
    async def test_unknown_chain(self, service: WatchlistService, market_data) -> None:
        reply = await service.add(CHAT, ["Dogechain", ADDRESS])

        assert reply.text == c.unknown_chain_message("dogechain")
        assert "Supported:" in reply.text
        market_data.fetch_one.assert_not_awaited()

    @pytest.mark.asyncio
    async def test_invalid_threshold(self, service: WatchlistService) -> None:
        reply = await service.add(CHAT, ["eth", ADDRESS, "150"])
        assert reply.text == c.INVALID_THRESHOLD

    @pytest.mark.asyncio
    async def test_success_with_alias_and_default_threshold(
        self, service: WatchlistService, store: WatchlistStore, market_data
    ) -> None:
        progress = AsyncMock()

        reply = await service.add(CHAT, ["eth", ADDRESS], progress)

        progress.assert_awaited_once_with(c.FETCHING_TOKEN)
        market_data.fetch_one.assert_awaited_once_with("ethereum", ADDRESS)
        assert reply.markdown
        assert reply.text.startswith("✅ *Token Added to Watchlist!*")
        assert "moves by 5% or more" in reply.text

        [entry] = await store.list_for(CHAT)
        assert entry.token_address == ADDRESS.lower()
        assert entry.drop_threshold == 5.0
        assert entry.reference_price == entry.initial_price == 0.5

    @pytest.mark.asyncio
    async def test_custom_threshold(self, service: WatchlistService, store) -> None:
        await service.add(CHAT, ["ethereum", ADDRESS, "12.5"])

        [entry] = await store.list_for(CHAT)
        assert entry.drop_threshold == 12.5

    @pytest.mark.asyncio
    async def test_duplicate(self, service: WatchlistService) -> None:
        await service.add(CHAT, ["eth", ADDRESS])
        reply = await service.add(CHAT, ["eth", ADDRESS.lower()])
        assert reply.text == c.ALREADY_TRACKED

    @pytest.mark.asyncio
    async def test_token_not_found(self, service: WatchlistService, market_data, store) -> None:
        market_data.fetch_one.return_value = None

        reply = await service.add(CHAT, ["eth", ADDRESS])

        assert reply.text == c.TOKEN_NOT_FOUND
        assert await store.list_for(CHAT) == []

    @pytest.mark.asyncio
    async def test_token_without_price(
        self, service: WatchlistService, market_data, store, token_factory
    ) -> None:
        market_data.fetch_one.return_value = token_factory(0.0)

        reply = await service.add(CHAT, ["eth", ADDRESS])

        assert reply.text == c.TOKEN_WITHOUT_PRICE
        assert await store.list_for(CHAT) == []


class TestOtherDirectCommands:
    @pytest.mark.asyncio
    async def test_remove(self, service: WatchlistService, store) -> None:
        assert (await service.remove(CHAT, ["eth", ADDRESS])).text == c.NOT_IN_WATCHLIST

        await _track(store)
        assert (await service.remove(CHAT, ["eth", ADDRESS])).text == c.REMOVED
        assert await store.list_for(CHAT) == []

    @pytest.mark.asyncio
    async def test_remove_usage(self, service: WatchlistService) -> None:
        assert (await service.remove(CHAT, [])).text == c.USAGE_REMOVE

    @pytest.mark.asyncio
    async def test_price(self, service: WatchlistService, market_data) -> None:
        progress = AsyncMock()

        reply = await service.price(["sol", "So11111111111111111111111111111111111111112"], progress)

        progress.assert_awaited_once_with(c.FETCHING_PRICE)
        market_data.fetch_one.assert_awaited_once_with(
            "solana", "So11111111111111111111111111111111111111112"
        )
        assert reply.markdown and reply.disable_preview
        assert reply.text.startswith("💎 *Pepe* ($PEPE)")

    @pytest.mark.asyncio
    async def test_price_not_found(self, service: WatchlistService, market_data) -> None:
        market_data.fetch_one.return_value = None
        assert (await service.price(["eth", ADDRESS])).text == c.TOKEN_NOT_FOUND

    @pytest.mark.asyncio
    async def test_search(self, service: WatchlistService, market_data) -> None:
        market_data.search.return_value = [
            SearchResult("Pepe", "PEPE", ADDRESS, "ethereum", 0.00001, 4e9, "https://x")
        ]

        reply = await service.search(["pepe", "coin"])

        market_data.search.assert_awaited_once_with("pepe coin")
        assert reply.markdown
        assert reply.text.startswith('🔎 *Search Results for "pepe coin"*')

    @pytest.mark.asyncio
    async def test_search_usage_and_no_results(self, service: WatchlistService) -> None:
        assert (await service.search([])).text == c.USAGE_SEARCH
        assert (await service.search(["zzz"])).text == c.NO_SEARCH_RESULTS

    @pytest.mark.asyncio
    async def test_threshold(self, service: WatchlistService, store) -> None:
        assert (await service.threshold(CHAT, ["eth", ADDRESS])).text == c.USAGE_THRESHOLD
        assert (await service.threshold(CHAT, ["eth", ADDRESS, "0"])).text == c.INVALID_THRESHOLD
        assert (await service.threshold(CHAT, ["eth", ADDRESS, "3"])).text == c.NOT_IN_WATCHLIST

        await _track(store)
        reply = await service.threshold(CHAT, ["eth", ADDRESS, "3"])

        assert reply.text == "✅ Alert threshold updated to 3%"
        [entry] = await store.list_for(CHAT)
        assert entry.drop_threshold == 3.0


class TestListWatchlist:
    @pytest.mark.asyncio
    async def test_empty(self, service: WatchlistService, market_data) -> None:
        reply = await service.list_watchlist(CHAT)

        assert reply.text == c.EMPTY_WATCHLIST
        market_data.fetch_batch.assert_not_awaited()

    @pytest.mark.asyncio
    async def test_fetches_once_per_chain(
        self, service: WatchlistService, store, market_data, token_factory
    ) -> None:
        await _track(store, "0xaaa", "ethereum")
        await _track(store, "0xbbb", "ethereum")
        await _track(store, "sol1", "solana")
        market_data.fetch_batch.side_effect = lambda chain, addresses: (
            {"0xaaa": token_factory(0.6)} if chain == "ethereum" else {}
        )
        progress = AsyncMock()

        reply = await service.list_watchlist(CHAT, progress)

        progress.assert_awaited_once_with(c.FETCHING_PRICES)
        assert market_data.fetch_batch.await_count == 2
        assert reply.markdown
        assert reply.text.startswith("📋 *Your Watchlist*")
        assert "📈 20.00% from last alert | 20.00% total" in reply.text
        assert reply.text.count("⚠️ Unable to fetch data") == 2


class TestInteractiveFlow:
    """Conversation-driven versions of the commands."""

    @pytest.mark.asyncio
    async def test_add_flow_with_skip(self, service: WatchlistService, store) -> None:
        first = service.begin(CHAT, Command.ADD)
        assert first.chain_keyboard == Command.ADD

        prompt = service.handle_callback(CHAT, "add:chain:ethereum")
        assert "✅ Chain: *ethereum*" in prompt.text

        reply = await service.handle_text(CHAT, ADDRESS)
        assert reply is not None and reply.text == ADD_THRESHOLD_PROMPT

        reply = await service.handle_text(CHAT, "skip")
        assert reply is not None and reply.text.startswith("✅ *Token Added")
        assert service.conversations.get(CHAT) is None

        [entry] = await store.list_for(CHAT)
        assert entry.drop_threshold == c.DEFAULT_THRESHOLD

    @pytest.mark.asyncio
    async def test_invalid_threshold_retries(self, service: WatchlistService, store) -> None:
        service.begin(CHAT, Command.ADD)
        service.handle_callback(CHAT, "add:chain:ethereum")
        await service.handle_text(CHAT, ADDRESS)

        retry = await service.handle_text(CHAT, "lots")
        assert retry is not None and retry.text == ADD_THRESHOLD_RETRY
        conversation = service.conversations.get(CHAT)
        assert conversation is not None
        assert conversation.state == ConversationState.AWAITING_THRESHOLD

        await service.handle_text(CHAT, "8")
        [entry] = await store.list_for(CHAT)
        assert entry.drop_threshold == 8.0

    @pytest.mark.asyncio
    async def test_typed_chain_alias(self, service: WatchlistService) -> None:
        service.begin(CHAT, Command.PRICE)

        unknown = await service.handle_text(CHAT, "dogechain")
        assert unknown is not None and unknown.text.startswith("❌ Unknown chain: dogechain")

        prompt = await service.handle_text(CHAT, "SOL")
        assert prompt is not None and "✅ Chain: *solana*" in prompt.text

    @pytest.mark.asyncio
    async def test_remove_flow(self, service: WatchlistService, store) -> None:
        await _track(store)
        service.begin(CHAT, Command.REMOVE)
        service.handle_callback(CHAT, "remove:chain:ethereum")

        reply = await service.handle_text(CHAT, ADDRESS)

        assert reply is not None and reply.text == c.REMOVED
        assert service.conversations.get(CHAT) is None

    @pytest.mark.asyncio
    async def test_threshold_flow(self, service: WatchlistService, store) -> None:
        await _track(store)
        service.begin(CHAT, Command.THRESHOLD)
        service.handle_callback(CHAT, "threshold:chain:ethereum")

        prompt = await service.handle_text(CHAT, ADDRESS)
        assert prompt is not None and prompt.text == UPDATE_THRESHOLD_PROMPT

        reply = await service.handle_text(CHAT, "2.5")
        assert reply is not None and reply.text == "✅ Alert threshold updated to 2.5%"

    @pytest.mark.asyncio
    async def test_search_flow(self, service: WatchlistService, market_data) -> None:
        first = service.begin(CHAT, Command.SEARCH)
        assert first.text == SEARCH_PROMPT
        assert first.cancel_keyboard

        reply = await service.handle_text(CHAT, "bonk")

        market_data.search.assert_awaited_once_with("bonk")
        assert reply is not None and reply.text == c.NO_SEARCH_RESULTS

    def test_mismatched_callback_expires(self, service: WatchlistService) -> None:
        assert service.handle_callback(CHAT, "add:chain:ethereum").text == c.SESSION_EXPIRED

        service.begin(CHAT, Command.REMOVE)
        assert service.handle_callback(CHAT, "add:chain:ethereum").text == c.SESSION_EXPIRED
        assert service.handle_callback(CHAT, "remove:chain:dogechain").text == c.SESSION_EXPIRED
        assert service.handle_callback(CHAT, "garbage").text == c.SESSION_EXPIRED

    def test_cancel_callback(self, service: WatchlistService) -> None:
        service.begin(CHAT, Command.ADD)

        assert service.handle_callback(CHAT, "cancel").text == c.CANCELLED
        assert service.conversations.get(CHAT) is None

    @pytest.mark.asyncio
    async def test_text_without_conversation_is_ignored(self, service: WatchlistService) -> None:
        assert await service.handle_text(CHAT, "hello") is None

    @pytest.mark.asyncio
    async def test_commands_are_not_conversation_input(self, service: WatchlistService) -> None:
        service.begin(CHAT, Command.SEARCH)
        assert await service.handle_text(CHAT, "/help") is None
        assert service.conversations.get(CHAT) is not None
