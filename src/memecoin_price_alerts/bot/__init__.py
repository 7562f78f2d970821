"""Telegram chat surface: commands, interactive flows and replies."""

from memecoin_price_alerts.bot.conversation import (
    Command,
    ConversationManager,
    ConversationState,
    InvalidThresholdError,
    parse_threshold,
)
from memecoin_price_alerts.bot.handlers import BotHandlers, build_application, register_commands
from memecoin_price_alerts.bot.service import Reply, WatchlistService

__all__ = [
    "BotHandlers",
    "Command",
    "ConversationManager",
    "ConversationState",
    "InvalidThresholdError",
    "Reply",
    "WatchlistService",
    "build_application",
    "parse_threshold",
    "register_commands",
]
