"""Pure number and text formatting helpers for chat messages.

Fixed-point and scientific output round half-up on the exact binary value
of the float, so a price renders the same way in every message. The
thousands-grouped tier rounds half-up on the shortest decimal repr.
"""

from __future__ import annotations

import re
from decimal import ROUND_HALF_UP, Context, Decimal

# Wide enough for any finite double expanded to its exact decimal value
_DECIMAL_CONTEXT = Context(prec=800)

_TRAILING_ZEROS = re.compile(r"\.?0+$")
_MARKDOWN_SPECIALS = re.compile(r"([_*`\[])")

TINY_PRICE = 1e-8
SMALL_PRICE = 1e-4

_MARKET_CAP_UNITS = (
    (1e12, "T"),
    (1e9, "B"),
    (1e6, "M"),
    (1e3, "K"),
)


def to_fixed(value: float, digits: int) -> str:
    """Render `value` with exactly `digits` fraction digits."""
    quantum = Decimal(1).scaleb(-digits)
    rounded = Decimal(value).quantize(quantum, rounding=ROUND_HALF_UP, context=_DECIMAL_CONTEXT)
    return f"{rounded:f}"


def to_exponential(value: float, digits: int) -> str:
    """Render `value` as `d.dddde±x` with an unpadded exponent."""
    if value == 0:
        return f"{to_fixed(0.0, digits)}e+0"

    sign = "-" if value < 0 else ""
    exact = abs(Decimal(value))
    exponent = exact.adjusted()
    quantum = Decimal(1).scaleb(-digits)
    mantissa = exact.scaleb(-exponent, context=_DECIMAL_CONTEXT).quantize(
        quantum, rounding=ROUND_HALF_UP, context=_DECIMAL_CONTEXT
    )
    if mantissa >= 10:
        exponent += 1
        mantissa = exact.scaleb(-exponent, context=_DECIMAL_CONTEXT).quantize(
            quantum, rounding=ROUND_HALF_UP, context=_DECIMAL_CONTEXT
        )
    exponent_sign = "+" if exponent >= 0 else "-"
    return f"{sign}{mantissa:f}e{exponent_sign}{abs(exponent)}"


def _grouped(value: float) -> str:
    rounded = Decimal(repr(value)).quantize(
        Decimal("0.01"), rounding=ROUND_HALF_UP, context=_DECIMAL_CONTEXT
    )
    return f"{rounded:,.2f}"


def format_price(price: float) -> str:
    """Format a USD price with precision that scales with magnitude.

    Examples:
        >>> format_price(0)
        '$0.00'
        >>> format_price(0.0000123)
        '$0.0000123'
        >>> format_price(1234.567)
        '$1,234.57'
    """
    if price == 0:
        return "$0.00"
    if price < TINY_PRICE:
        return f"${to_exponential(price, 4)}"
    if price < SMALL_PRICE:
        return f"${_TRAILING_ZEROS.sub('', to_fixed(price, 10))}"
    if price < 1:
        return f"${_TRAILING_ZEROS.sub('', to_fixed(price, 6))}"
    if price < 1000:
        return f"${to_fixed(price, 4)}"
    return f"${_grouped(price)}"


def format_market_cap(value: float | None) -> str:
    """Format a market cap (or liquidity) with a T/B/M/K suffix."""
    if not value:
        return "N/A"
    for scale, suffix in _MARKET_CAP_UNITS:
        if value >= scale:
            return f"${to_fixed(value / scale, 2)}{suffix}"
    return f"${to_fixed(value, 2)}"


def format_percent(value: float) -> str:
    """Signed percentage with two decimals; `+` only for positive values."""
    prefix = "+" if value > 0 else ""
    return f"{prefix}{to_fixed(value, 2)}%"


def format_threshold(value: float) -> str:
    """Render a threshold as its shortest plain number (5 -> '5', 2.5 -> '2.5')."""
    shortest = Decimal(repr(float(value))).normalize(_DECIMAL_CONTEXT)
    if shortest == 0:
        return "0"
    if 1e-6 <= abs(value) < 1e21:
        return f"{shortest:f}"
    return _exponential_shortest(shortest)


def _exponential_shortest(value: Decimal) -> str:
    sign, digits, exponent = value.as_tuple()
    coefficient = "".join(str(d) for d in digits)
    adjusted = int(exponent) + len(coefficient) - 1
    mantissa = coefficient[0] + (f".{coefficient[1:]}" if len(coefficient) > 1 else "")
    exponent_sign = "+" if adjusted >= 0 else "-"
    return f"{'-' if sign else ''}{mantissa}e{exponent_sign}{abs(adjusted)}"


def escape_markdown(text: object) -> str:
    """Escape the characters that legacy Telegram Markdown treats as markup."""
    return _MARKDOWN_SPECIALS.sub(r"\\\1", str(text))
