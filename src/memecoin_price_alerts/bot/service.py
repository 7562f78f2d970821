"""Chat command logic, independent of the Telegram transport.

`WatchlistService` validates user input, talks to the store and the
market data client, and returns `Reply` objects. The Telegram adapter in
`bot.handlers` only turns replies into API calls.
"""

from __future__ import annotations

import logging
from collections.abc import Awaitable, Callable, Sequence
from dataclasses import dataclass
from typing import TYPE_CHECKING, Any, Protocol

from memecoin_price_alerts.alerter.formatter import AlertFormatter
from memecoin_price_alerts.bot import constants as c
from memecoin_price_alerts.bot.conversation import (
    Command,
    ConversationManager,
    ConversationState,
    InvalidThresholdError,
    parse_threshold,
)
from memecoin_price_alerts.monitor.scheduler import group_by_chain

if TYPE_CHECKING:
    from memecoin_price_alerts.ingestor.models import SearchResult, TokenData
    from memecoin_price_alerts.storage.store import WatchlistStore

logger = logging.getLogger(__name__)

ProgressCallback = Callable[[str], Awaitable[Any]]

CHAIN_PROMPTS: dict[Command, str] = {
    Command.ADD: "➕ *Add Token to Watchlist*\n\nSelect the chain:",
    Command.REMOVE: "➖ *Remove Token from Watchlist*\n\nSelect the chain:",
    Command.PRICE: "💰 *Get Token Price*\n\nSelect the chain:",
    Command.THRESHOLD: "⚡ *Update Alert Threshold*\n\nSelect the chain:",
}
SEARCH_PROMPT = "🔍 *Search for Tokens*\n\nPlease enter the token name or symbol to search:"

ADDRESS_PROMPT_TITLES: dict[Command, str] = {
    Command.ADD: "➕ *Add Token to Watchlist*",
    Command.REMOVE: "➖ *Remove Token*",
    Command.PRICE: "💰 *Get Token Price*",
    Command.THRESHOLD: "⚡ *Update Threshold*",
}

ADD_THRESHOLD_PROMPT = (
    "✅ Address received!\n\nNow enter the alert threshold percentage (1-100):\n\n"
    '_or type "skip" to use default 5%_'
)
UPDATE_THRESHOLD_PROMPT = "✅ Address received!\n\nNow enter the new threshold percentage (1-100):"
ADD_THRESHOLD_RETRY = '❌ Invalid threshold. Please enter a number between 0 and 100, or "skip":'
UPDATE_THRESHOLD_RETRY = "❌ Invalid threshold. Please enter a number between 0 and 100:"


class MarketData(Protocol):
    async def fetch_one(self, chain_id: str, address: str) -> TokenData | None:
        raise NotImplementedError

    async def fetch_batch(self, chain_id: str, addresses: Sequence[str]) -> dict[str, TokenData]:
        raise NotImplementedError

    async def search(self, query: str) -> list[SearchResult]:
        raise NotImplementedError


@dataclass(frozen=True)
class Reply:
    """A message to send (or to edit in place, for callback queries)."""

    text: str
    markdown: bool = False
    disable_preview: bool = False
    # Attach the chain picker for this command.
    chain_keyboard: Command | None = None
    cancel_keyboard: bool = False


def _address_prompt(command: Command, chain_id: str) -> Reply:
    return Reply(
        f"{ADDRESS_PROMPT_TITLES[command]}\n\n✅ Chain: *{chain_id}*\n\n"
        "Now please enter the token contract address:",
        markdown=True,
    )


async def _report(progress: ProgressCallback | None, text: str) -> None:
    if progress is not None:
        await progress(text)


class WatchlistService:
    """Implements every bot command on top of the store and market data."""

    def __init__(
        self,
        store: WatchlistStore,
        market_data: MarketData,
        *,
        formatter: AlertFormatter | None = None,
        conversations: ConversationManager | None = None,
    ) -> None:
        self._store = store
        self._market_data = market_data
        self._formatter = formatter or AlertFormatter()
        self._conversations = conversations or ConversationManager()

    @property
    def conversations(self) -> ConversationManager:
        return self._conversations

    # Static commands

    def start(self) -> Reply:
        return Reply(c.START_MESSAGE, markdown=True)

    def help(self) -> Reply:
        return Reply(c.HELP_MESSAGE, markdown=True)

    def cancel(self, subscriber_id: str) -> Reply:
        self._conversations.end(subscriber_id)
        return Reply(c.CANCELLED)

    # Direct commands (arguments on the command line)

    async def add(
        self, subscriber_id: str, args: Sequence[str], progress: ProgressCallback | None = None
    ) -> Reply:
        if len(args) < 2:
            return Reply(c.USAGE_ADD, markdown=True)
        chain_id = c.resolve_chain(args[0])
        if chain_id is None:
            return Reply(c.unknown_chain_message(args[0].lower()))
        try:
            threshold = parse_threshold(args[2]) if len(args) > 2 else c.DEFAULT_THRESHOLD
        except InvalidThresholdError:
            return Reply(c.INVALID_THRESHOLD)
        return await self.process_add(subscriber_id, chain_id, args[1], threshold, progress)

    async def remove(self, subscriber_id: str, args: Sequence[str]) -> Reply:
        if len(args) < 2:
            return Reply(c.USAGE_REMOVE, markdown=True)
        chain_id = c.resolve_chain(args[0])
        if chain_id is None:
            return Reply(c.unknown_chain_message(args[0].lower()))
        return await self.process_remove(subscriber_id, chain_id, args[1])

    async def price(
        self, args: Sequence[str], progress: ProgressCallback | None = None
    ) -> Reply:
        if len(args) < 2:
            return Reply(c.USAGE_PRICE, markdown=True)
        chain_id = c.resolve_chain(args[0])
        if chain_id is None:
            return Reply(c.unknown_chain_message(args[0].lower()))
        return await self.process_price(chain_id, args[1], progress)

    async def search(
        self, args: Sequence[str], progress: ProgressCallback | None = None
    ) -> Reply:
        query = " ".join(args).strip()
        if not query:
            return Reply(c.USAGE_SEARCH, markdown=True)
        return await self.process_search(query, progress)

    async def threshold(self, subscriber_id: str, args: Sequence[str]) -> Reply:
        if len(args) < 3:
            return Reply(c.USAGE_THRESHOLD, markdown=True)
        chain_id = c.resolve_chain(args[0])
        if chain_id is None:
            return Reply(c.unknown_chain_message(args[0].lower()))
        try:
            value = parse_threshold(args[2])
        except InvalidThresholdError:
            return Reply(c.INVALID_THRESHOLD)
        return await self.process_threshold(subscriber_id, chain_id, args[1], value)

    async def list_watchlist(
        self, subscriber_id: str, progress: ProgressCallback | None = None
    ) -> Reply:
        entries = await self._store.list_for(subscriber_id)
        if not entries:
            return Reply(c.EMPTY_WATCHLIST, markdown=True)

        await _report(progress, c.FETCHING_PRICES)
        quotes: dict[tuple[str, str], TokenData] = {}
        for chain_id, group in group_by_chain(entries).items():
            batch = await self._market_data.fetch_batch(
                chain_id, [entry.token_address for entry in group]
            )
            for address, token in batch.items():
                quotes[(chain_id, address)] = token

        rows = [(entry, quotes.get((entry.chain_id, entry.token_address))) for entry in entries]
        return Reply(self._formatter.format_watchlist(rows), markdown=True)

    # Interactive flow

    def begin(self, subscriber_id: str, command: Command) -> Reply:
        """Start an interactive command and return its first prompt."""
        self._conversations.begin(subscriber_id, command)
        if command == Command.SEARCH:
            return Reply(SEARCH_PROMPT, markdown=True, cancel_keyboard=True)
        return Reply(CHAIN_PROMPTS[command], markdown=True, chain_keyboard=command)

    def handle_callback(self, subscriber_id: str, data: str) -> Reply:
        """Handle an inline keyboard press: `cancel` or `<command>:chain:<chain_id>`."""
        if data == "cancel":
            return self.cancel(subscriber_id)

        parts = data.split(":")
        if len(parts) != 3 or parts[1] != "chain":
            return Reply(c.SESSION_EXPIRED)
        try:
            command = Command(parts[0])
        except ValueError:
            return Reply(c.SESSION_EXPIRED)
        chain_id = parts[2]

        conversation = self._conversations.get(subscriber_id)
        if (
            conversation is None
            or conversation.command != command
            or conversation.state != ConversationState.AWAITING_CHAIN
            or chain_id not in c.CHAIN_IDS
        ):
            return Reply(c.SESSION_EXPIRED)

        conversation.chain_id = chain_id
        self._conversations.advance(subscriber_id, conversation)
        return _address_prompt(command, chain_id)

    async def handle_text(
        self, subscriber_id: str, text: str, progress: ProgressCallback | None = None
    ) -> Reply | None:
        """Feed a plain text message into the active conversation.

        Returns None when the subscriber has no active conversation.
        """
        text = text.strip()
        if not text or text.startswith("/"):
            return None
        conversation = self._conversations.get(subscriber_id)
        if conversation is None:
            return None

        command = conversation.command
        state = conversation.state

        if state == ConversationState.AWAITING_CHAIN:
            chain_id = c.resolve_chain(text)
            if chain_id is None:
                self._conversations.touch(subscriber_id)
                return Reply(c.unknown_chain_message(text.lower()))
            conversation.chain_id = chain_id
            self._conversations.advance(subscriber_id, conversation)
            return _address_prompt(command, chain_id)

        if state == ConversationState.AWAITING_QUERY:
            self._conversations.advance(subscriber_id, conversation)
            return await self.process_search(text, progress)

        chain_id = conversation.chain_id or ""

        if state == ConversationState.AWAITING_ADDRESS:
            conversation.address = text
            self._conversations.advance(subscriber_id, conversation)
            if command == Command.ADD:
                return Reply(ADD_THRESHOLD_PROMPT, markdown=True)
            if command == Command.THRESHOLD:
                return Reply(UPDATE_THRESHOLD_PROMPT)
            if command == Command.REMOVE:
                return await self.process_remove(subscriber_id, chain_id, text)
            return await self.process_price(chain_id, text, progress)

        # AWAITING_THRESHOLD
        address = conversation.address or ""
        if command == Command.ADD:
            try:
                value = (
                    c.DEFAULT_THRESHOLD if text.lower() == "skip" else parse_threshold(text)
                )
            except InvalidThresholdError:
                self._conversations.touch(subscriber_id)
                return Reply(ADD_THRESHOLD_RETRY)
            self._conversations.advance(subscriber_id, conversation)
            return await self.process_add(subscriber_id, chain_id, address, value, progress)

        try:
            value = parse_threshold(text)
        except InvalidThresholdError:
            self._conversations.touch(subscriber_id)
            return Reply(UPDATE_THRESHOLD_RETRY)
        self._conversations.advance(subscriber_id, conversation)
        return await self.process_threshold(subscriber_id, chain_id, address, value)

    # Shared processing for both flows

    async def process_add(
        self,
        subscriber_id: str,
        chain_id: str,
        address: str,
        threshold: float,
        progress: ProgressCallback | None = None,
    ) -> Reply:
        await _report(progress, c.FETCHING_TOKEN)
        token = await self._market_data.fetch_one(chain_id, address)
        if token is None:
            return Reply(c.TOKEN_NOT_FOUND)
        if token.price_usd <= 0:
            return Reply(c.TOKEN_WITHOUT_PRICE)

        entry = await self._store.add(
            token_address=address,
            chain_id=chain_id,
            subscriber_id=subscriber_id,
            name=token.name,
            symbol=token.symbol,
            current_price=token.price_usd,
            threshold=threshold,
        )
        if entry is None:
            return Reply(c.ALREADY_TRACKED)
        return Reply(
            self._formatter.format_token_added(token, chain_id, threshold), markdown=True
        )

    async def process_remove(self, subscriber_id: str, chain_id: str, address: str) -> Reply:
        removed = await self._store.remove(address, chain_id, subscriber_id)
        return Reply(c.REMOVED if removed else c.NOT_IN_WATCHLIST)

    async def process_price(
        self, chain_id: str, address: str, progress: ProgressCallback | None = None
    ) -> Reply:
        await _report(progress, c.FETCHING_PRICE)
        token = await self._market_data.fetch_one(chain_id, address)
        if token is None:
            return Reply(c.TOKEN_NOT_FOUND)
        return Reply(
            self._formatter.format_token_price(token, chain_id),
            markdown=True,
            disable_preview=True,
        )

    async def process_search(self, query: str, progress: ProgressCallback | None = None) -> Reply:
        await _report(progress, c.SEARCHING)
        results = await self._market_data.search(query)
        if not results:
            return Reply(c.NO_SEARCH_RESULTS)
        return Reply(self._formatter.format_search_results(query, results), markdown=True)

    async def process_threshold(
        self, subscriber_id: str, chain_id: str, address: str, threshold: float
    ) -> Reply:
        updated = await self._store.update_threshold(address, chain_id, subscriber_id, threshold)
        if not updated:
            return Reply(c.NOT_IN_WATCHLIST)
        logger.info("Chat %s set threshold %s%% on %s/%s", subscriber_id, threshold, chain_id, address)
        return Reply(self._formatter.format_threshold_updated(threshold))
