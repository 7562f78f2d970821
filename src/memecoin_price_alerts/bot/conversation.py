"""Per-subscriber conversation state for interactive commands.

Interactive commands (`/add` without arguments and friends) collect their
inputs over several messages. Each subscriber has at most one active
conversation; it moves through an explicit transition table and expires
after a period of inactivity.
"""

from __future__ import annotations

import logging
import math
import time
from collections.abc import Callable
from dataclasses import dataclass
from enum import Enum

from memecoin_price_alerts.bot.constants import MAX_THRESHOLD, MIN_THRESHOLD_EXCLUSIVE

logger = logging.getLogger(__name__)

DEFAULT_CONVERSATION_TTL_SECONDS = 600.0


class InvalidThresholdError(ValueError):
    """Raised when user input is not a threshold in (0, 100]."""


def parse_threshold(text: str) -> float:
    """Parse a user-supplied alert threshold.

    Raises:
        InvalidThresholdError: If `text` is not a finite number in (0, 100].
    """
    try:
        value = float(text.strip().rstrip("%"))
    except ValueError as e:
        raise InvalidThresholdError(f"Not a number: {text!r}") from e
    if not math.isfinite(value) or not MIN_THRESHOLD_EXCLUSIVE < value <= MAX_THRESHOLD:
        raise InvalidThresholdError(f"Threshold out of range: {text!r}")
    return value


class Command(str, Enum):
    """Commands that support the interactive flow."""

    ADD = "add"
    REMOVE = "remove"
    PRICE = "price"
    SEARCH = "search"
    THRESHOLD = "threshold"


class ConversationState(str, Enum):
    IDLE = "idle"
    AWAITING_CHAIN = "awaiting_chain"
    AWAITING_ADDRESS = "awaiting_address"
    AWAITING_THRESHOLD = "awaiting_threshold"
    AWAITING_QUERY = "awaiting_query"


INITIAL_STATES: dict[Command, ConversationState] = {
    Command.ADD: ConversationState.AWAITING_CHAIN,
    Command.REMOVE: ConversationState.AWAITING_CHAIN,
    Command.PRICE: ConversationState.AWAITING_CHAIN,
    Command.THRESHOLD: ConversationState.AWAITING_CHAIN,
    Command.SEARCH: ConversationState.AWAITING_QUERY,
}

# (command, current state) -> state after a valid input
TRANSITIONS: dict[tuple[Command, ConversationState], ConversationState] = {
    (Command.ADD, ConversationState.AWAITING_CHAIN): ConversationState.AWAITING_ADDRESS,
    (Command.ADD, ConversationState.AWAITING_ADDRESS): ConversationState.AWAITING_THRESHOLD,
    (Command.ADD, ConversationState.AWAITING_THRESHOLD): ConversationState.IDLE,
    (Command.REMOVE, ConversationState.AWAITING_CHAIN): ConversationState.AWAITING_ADDRESS,
    (Command.REMOVE, ConversationState.AWAITING_ADDRESS): ConversationState.IDLE,
    (Command.PRICE, ConversationState.AWAITING_CHAIN): ConversationState.AWAITING_ADDRESS,
    (Command.PRICE, ConversationState.AWAITING_ADDRESS): ConversationState.IDLE,
    (Command.THRESHOLD, ConversationState.AWAITING_CHAIN): ConversationState.AWAITING_ADDRESS,
    (Command.THRESHOLD, ConversationState.AWAITING_ADDRESS): ConversationState.AWAITING_THRESHOLD,
    (Command.THRESHOLD, ConversationState.AWAITING_THRESHOLD): ConversationState.IDLE,
    (Command.SEARCH, ConversationState.AWAITING_QUERY): ConversationState.IDLE,
}


@dataclass
class Conversation:
    """Inputs collected so far for one interactive command."""

    command: Command
    state: ConversationState
    updated_at: float
    chain_id: str | None = None
    address: str | None = None

    def advance(self) -> ConversationState:
        """Move to the next state.

        Raises:
            KeyError: If the current state has no outgoing transition.
        """
        self.state = TRANSITIONS[(self.command, self.state)]
        return self.state

    @property
    def finished(self) -> bool:
        return self.state == ConversationState.IDLE


class ConversationManager:
    """Holds at most one active conversation per subscriber."""

    def __init__(
        self,
        ttl_seconds: float = DEFAULT_CONVERSATION_TTL_SECONDS,
        *,
        clock: Callable[[], float] = time.monotonic,
    ) -> None:
        self._ttl = ttl_seconds
        self._clock = clock
        self._conversations: dict[str, Conversation] = {}

    def __len__(self) -> int:
        return len(self._conversations)

    def begin(self, subscriber_id: str, command: Command) -> Conversation:
        """Start a new conversation, replacing any previous one."""
        conversation = Conversation(
            command=command,
            state=INITIAL_STATES[command],
            updated_at=self._clock(),
        )
        self._conversations[subscriber_id] = conversation
        return conversation

    def get(self, subscriber_id: str) -> Conversation | None:
        """Active conversation of a subscriber, or None if absent or expired."""
        conversation = self._conversations.get(subscriber_id)
        if conversation is None:
            return None
        if self._clock() - conversation.updated_at > self._ttl:
            logger.debug("Conversation for chat %s expired", subscriber_id)
            del self._conversations[subscriber_id]
            return None
        return conversation

    def advance(self, subscriber_id: str, conversation: Conversation) -> ConversationState:
        """Advance a conversation; finished conversations are dropped."""
        state = conversation.advance()
        conversation.updated_at = self._clock()
        if conversation.finished:
            self._conversations.pop(subscriber_id, None)
        return state

    def touch(self, subscriber_id: str) -> None:
        conversation = self._conversations.get(subscriber_id)
        if conversation is not None:
            conversation.updated_at = self._clock()

    def end(self, subscriber_id: str) -> bool:
        """Drop the conversation of a subscriber. Returns True if one existed."""
        return self._conversations.pop(subscriber_id, None) is not None

    def purge_expired(self) -> int:
        """Drop every expired conversation and return how many were removed."""
        now = self._clock()
        expired = [
            subscriber_id
            for subscriber_id, conversation in self._conversations.items()
            if now - conversation.updated_at > self._ttl
        ]
        for subscriber_id in expired:
            del self._conversations[subscriber_id]
        return len(expired)
