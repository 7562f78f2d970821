"""Alert delivery to chat subscribers."""

from __future__ import annotations

import logging
from collections import deque
from typing import TYPE_CHECKING, Protocol

from telegram import LinkPreviewOptions
from telegram.constants import ParseMode
from telegram.error import TelegramError

if TYPE_CHECKING:
    from telegram import Bot

logger = logging.getLogger(__name__)

DRY_RUN_HISTORY_SIZE = 100


class Notifier(Protocol):
    async def send(self, subscriber_id: str, text: str) -> bool:
        raise NotImplementedError


class TelegramNotifier:
    """Sends Markdown messages through a python-telegram-bot `Bot`.

    Delivery failures are logged and reported as False, never raised.
    """

    def __init__(self, bot: Bot) -> None:
        self._bot = bot

    async def send(self, subscriber_id: str, text: str) -> bool:
        try:
            await self._bot.send_message(
                chat_id=subscriber_id,
                text=text,
                parse_mode=ParseMode.MARKDOWN,
                link_preview_options=LinkPreviewOptions(is_disabled=True),
            )
        except TelegramError as e:
            logger.error("Error sending alert to chat %s: %s", subscriber_id, e)
            return False
        return True


class LoggingNotifier:
    """Dry-run notifier that writes alerts to the log instead of Telegram.

    Only the most recent `history_size` alerts are kept in `sent`.
    """

    def __init__(self, history_size: int = DRY_RUN_HISTORY_SIZE) -> None:
        self.sent: deque[tuple[str, str]] = deque(maxlen=history_size)

    async def send(self, subscriber_id: str, text: str) -> bool:
        self.sent.append((subscriber_id, text))
        logger.info("DRY RUN alert for chat %s:\n%s", subscriber_id, text)
        return True
