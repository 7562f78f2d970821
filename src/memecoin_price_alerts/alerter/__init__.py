"""Alert formatting and delivery."""

from memecoin_price_alerts.alerter.formatter import AlertFormatter
from memecoin_price_alerts.alerter.formatting import (
    escape_markdown,
    format_market_cap,
    format_percent,
    format_price,
    format_threshold,
)
from memecoin_price_alerts.alerter.notifier import LoggingNotifier, Notifier, TelegramNotifier

__all__ = [
    "AlertFormatter",
    "LoggingNotifier",
    "Notifier",
    "TelegramNotifier",
    "escape_markdown",
    "format_market_cap",
    "format_percent",
    "format_price",
    "format_threshold",
]
