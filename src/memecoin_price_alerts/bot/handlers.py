"""python-telegram-bot adapter for `WatchlistService`."""

from __future__ import annotations

import logging
from typing import TYPE_CHECKING

from telegram import (
    BotCommand,
    InlineKeyboardButton,
    InlineKeyboardMarkup,
    LinkPreviewOptions,
    Update,
)
from telegram.constants import ParseMode
from telegram.error import TelegramError
from telegram.ext import (
    Application,
    ApplicationBuilder,
    CallbackQueryHandler,
    CommandHandler,
    ContextTypes,
    MessageHandler,
    filters,
)

from memecoin_price_alerts.bot.constants import BOT_COMMANDS, GENERIC_ERROR, SUPPORTED_CHAINS
from memecoin_price_alerts.bot.conversation import Command

if TYPE_CHECKING:
    from telegram import Bot, Message

    from memecoin_price_alerts.bot.service import Reply, WatchlistService

logger = logging.getLogger(__name__)

CANCEL_BUTTON = InlineKeyboardButton("❌ Cancel", callback_data="cancel")


def chain_keyboard(command: Command) -> InlineKeyboardMarkup:
    """Two-column chain picker with a cancel row."""
    buttons = [
        InlineKeyboardButton(label, callback_data=f"{command.value}:chain:{chain_id}")
        for chain_id, label in SUPPORTED_CHAINS
    ]
    rows = [buttons[i : i + 2] for i in range(0, len(buttons), 2)]
    rows.append([CANCEL_BUTTON])
    return InlineKeyboardMarkup(rows)


def _reply_markup(reply: Reply) -> InlineKeyboardMarkup | None:
    if reply.chain_keyboard is not None:
        return chain_keyboard(reply.chain_keyboard)
    if reply.cancel_keyboard:
        return InlineKeyboardMarkup([[CANCEL_BUTTON]])
    return None


def _send_options(reply: Reply) -> dict[str, object]:
    options: dict[str, object] = {}
    if reply.markdown:
        options["parse_mode"] = ParseMode.MARKDOWN
    if reply.disable_preview:
        options["link_preview_options"] = LinkPreviewOptions(is_disabled=True)
    return options


async def send_reply(message: Message, reply: Reply) -> None:
    await message.reply_text(reply.text, reply_markup=_reply_markup(reply), **_send_options(reply))


async def register_commands(bot: Bot) -> None:
    """Publish the command menu shown by Telegram clients."""
    try:
        await bot.set_my_commands([BotCommand(name, desc) for name, desc in BOT_COMMANDS])
        logger.info("📋 Bot menu commands registered")
    except TelegramError as e:
        logger.error("Failed to set bot commands: %s", e)


class BotHandlers:
    """PTB callbacks; each one resolves the chat and delegates to the service."""

    def __init__(self, service: WatchlistService) -> None:
        self._service = service

    @staticmethod
    def _subscriber(update: Update) -> str:
        chat = update.effective_chat
        if chat is None:
            raise ValueError("Update has no chat")
        return str(chat.id)

    async def start(self, update: Update, context: ContextTypes.DEFAULT_TYPE) -> None:
        if update.effective_message:
            await send_reply(update.effective_message, self._service.start())

    async def help(self, update: Update, context: ContextTypes.DEFAULT_TYPE) -> None:
        if update.effective_message:
            await send_reply(update.effective_message, self._service.help())

    async def cancel(self, update: Update, context: ContextTypes.DEFAULT_TYPE) -> None:
        message = update.effective_message
        if message:
            await send_reply(message, self._service.cancel(self._subscriber(update)))

    async def list_entries(self, update: Update, context: ContextTypes.DEFAULT_TYPE) -> None:
        message = update.effective_message
        if not message:
            return
        reply = await self._service.list_watchlist(self._subscriber(update), message.reply_text)
        await send_reply(message, reply)

    async def add(self, update: Update, context: ContextTypes.DEFAULT_TYPE) -> None:
        message = update.effective_message
        if not message:
            return
        subscriber = self._subscriber(update)
        if context.args:
            reply = await self._service.add(subscriber, context.args, message.reply_text)
        else:
            reply = self._service.begin(subscriber, Command.ADD)
        await send_reply(message, reply)

    async def remove(self, update: Update, context: ContextTypes.DEFAULT_TYPE) -> None:
        message = update.effective_message
        if not message:
            return
        subscriber = self._subscriber(update)
        if context.args:
            reply = await self._service.remove(subscriber, context.args)
        else:
            reply = self._service.begin(subscriber, Command.REMOVE)
        await send_reply(message, reply)

    async def price(self, update: Update, context: ContextTypes.DEFAULT_TYPE) -> None:
        message = update.effective_message
        if not message:
            return
        if context.args:
            reply = await self._service.price(context.args, message.reply_text)
        else:
            reply = self._service.begin(self._subscriber(update), Command.PRICE)
        await send_reply(message, reply)

    async def search(self, update: Update, context: ContextTypes.DEFAULT_TYPE) -> None:
        message = update.effective_message
        if not message:
            return
        if context.args:
            reply = await self._service.search(context.args, message.reply_text)
        else:
            reply = self._service.begin(self._subscriber(update), Command.SEARCH)
        await send_reply(message, reply)

    async def threshold(self, update: Update, context: ContextTypes.DEFAULT_TYPE) -> None:
        message = update.effective_message
        if not message:
            return
        subscriber = self._subscriber(update)
        if context.args:
            reply = await self._service.threshold(subscriber, context.args)
        else:
            reply = self._service.begin(subscriber, Command.THRESHOLD)
        await send_reply(message, reply)

    async def on_callback(self, update: Update, context: ContextTypes.DEFAULT_TYPE) -> None:
        """Inline keyboard presses edit the prompt message in place."""
        query = update.callback_query
        if query is None:
            return
        await query.answer()
        reply = self._service.handle_callback(self._subscriber(update), query.data or "")
        await query.edit_message_text(reply.text, **_send_options(reply))

    async def on_text(self, update: Update, context: ContextTypes.DEFAULT_TYPE) -> None:
        """Plain text feeds the active conversation, if any."""
        message = update.effective_message
        if not message or not message.text:
            return
        reply = await self._service.handle_text(
            self._subscriber(update), message.text, message.reply_text
        )
        if reply is not None:
            await send_reply(message, reply)

    async def on_error(self, update: object, context: ContextTypes.DEFAULT_TYPE) -> None:
        logger.error("Error while handling update: %s", context.error, exc_info=context.error)
        if isinstance(update, Update) and update.effective_message:
            try:
                await update.effective_message.reply_text(GENERIC_ERROR)
            except TelegramError as e:
                logger.warning("Could not report error to chat: %s", e)


def build_application(token: str, service: WatchlistService) -> Application:
    """Build a PTB application with every command wired to `service`.

    The caller owns the lifecycle (initialize, start, polling, shutdown).
    """
    handlers = BotHandlers(service)
    app = ApplicationBuilder().token(token).build()

    app.add_handler(CommandHandler("start", handlers.start))
    app.add_handler(CommandHandler("help", handlers.help))
    app.add_handler(CommandHandler("add", handlers.add))
    app.add_handler(CommandHandler("remove", handlers.remove))
    app.add_handler(CommandHandler("list", handlers.list_entries))
    app.add_handler(CommandHandler("price", handlers.price))
    app.add_handler(CommandHandler("search", handlers.search))
    app.add_handler(CommandHandler("threshold", handlers.threshold))
    app.add_handler(CommandHandler("cancel", handlers.cancel))
    app.add_handler(CallbackQueryHandler(handlers.on_callback))
    app.add_handler(MessageHandler(filters.TEXT & ~filters.COMMAND, handlers.on_text))
    app.add_error_handler(handlers.on_error)
    return app
