# SPDX-FileCopyrightText: 2025 Roland Knall <rknall@gmail.com>
# SPDX-License-Identifier: GPL-2.0-only
"""Currency conversion and display formatting."""

import logging
import math
import numbers
from collections.abc import Mapping
from decimal import Decimal
from typing import Any

logger = logging.getLogger(__name__)

CURRENCY_SYMBOLS = {
    "USD": "$",
    "EUR": "€",
    "GBP": "£",
    "RON": "RON ",
}


def to_amount(value: Any) -> float | None:
    """Return ``value`` as a finite float, or None if it is not one."""
    if value is None or isinstance(value, bool):
        return None
    if isinstance(value, str):
        try:
            value = float(value.strip())
        except ValueError:
            return None
    if isinstance(value, Decimal):
        return float(value) if value.is_finite() else None
    if not isinstance(value, numbers.Real):
        return None
    value = float(value)
    return value if math.isfinite(value) else None


def convert(
    amount: Any,
    from_currency: str,
    to_currency: str,
    rates: Mapping[str, Mapping[str, float]],
) -> float:
    """Convert ``amount`` between currencies using a rate table.

    - Non-finite or non-numeric amounts convert to 0.
    - Same currency returns the amount unchanged.
    - An unknown pair returns the amount unchanged (fail open).
    - A corrupt rate that yields NaN converts to 0.

    The sign of a finite amount is preserved; clamping negatives is the job
    of record normalization.
    """
    value = to_amount(amount)
    if value is None:
        return 0.0

    if from_currency == to_currency:
        return value

    from_rates = rates.get(from_currency) if isinstance(rates, Mapping) else None
    if not from_rates or not isinstance(from_rates, Mapping):
        logger.debug(f"No rates for source currency {from_currency!r}")
        return value

    rate = from_rates.get(to_currency)
    if not rate:
        logger.debug(f"No rate for {from_currency!r} -> {to_currency!r}")
        return value
    if isinstance(rate, bool) or not isinstance(rate, (numbers.Real, Decimal)):
        return 0.0
    if isinstance(rate, Decimal) and not rate.is_finite():
        return 0.0

    result = value * float(rate)
    return 0.0 if math.isnan(result) else result


def currency_symbol(currency: str) -> str:
    """Display prefix for a currency; unknown codes use the code itself."""
    return CURRENCY_SYMBOLS.get(currency.upper(), f"{currency.upper()} ")


def format_currency(value: Any, currency: str, abbreviate: bool = False) -> str:
    """Format a money value for display.

    With ``abbreviate`` the value is rounded to whole units and values of
    1000 or more are shown in thousands (``$1.5K``). Otherwise two
    decimals are shown.
    """
    amount = to_amount(value)
    if amount is None:
        amount = 0.0

    sign = "-" if amount < 0 else ""
    symbol = currency_symbol(currency)

    if abbreviate:
        rounded = round(abs(amount))
        if rounded >= 1000:
            return f"{sign}{symbol}{_thousands(rounded)}K"
        return f"{sign}{symbol}{rounded}"
    return f"{sign}{symbol}{abs(amount):,.2f}"


def format_number(value: Any) -> str:
    """Format a plain count, abbreviating at 1000 like currency values."""
    amount = to_amount(value) or 0.0
    rounded = round(amount)
    if abs(rounded) >= 1000:
        return f"{_thousands(rounded)}K"
    return str(rounded)


def format_hours(value: Any) -> str:
    """Hours are never abbreviated: ``12.4`` -> ``12h``."""
    hours = to_amount(value) or 0.0
    return f"{round(hours)}h"


def _thousands(rounded: int) -> str:
    text = f"{rounded / 1000:.2f}".rstrip("0").rstrip(".")
    return text
