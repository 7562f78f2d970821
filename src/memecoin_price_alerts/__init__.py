"""Memecoin Price Alerts - percent-move alerts for DEX tokens over Telegram."""

__version__ = "0.1.0"
