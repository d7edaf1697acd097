"""Display formatting for money values that may be missing or malformed."""

from __future__ import annotations

from decimal import ROUND_HALF_UP, Decimal, localcontext
from typing import Any

from quote_reconciliation.config import get_settings
from quote_reconciliation.models import extract_decimal

NOT_AVAILABLE = "N/A"
CENT = Decimal("0.01")

CURRENCY_SYMBOLS = {
    "USD": "$",
    "EUR": "€",
    "GBP": "£",
    "JPY": "¥",
    "INR": "₹",
    "AUD": "A$",
    "CAD": "CA$",
    "NZD": "NZ$",
    "HKD": "HK$",
    "CNY": "CN¥",
}


def currency_prefix(currency: str) -> str:
    code = currency.strip().upper()
    return CURRENCY_SYMBOLS.get(code, f"{code} ")


def format_currency(amount: Any, currency: str | None = None) -> str:
    """Format an amount as en-US currency, or "N/A" when it is not a number.

    >>> format_currency(1234.5, "USD")
    '$1,234.50'
    >>> format_currency(None)
    'N/A'
    """
    value = extract_decimal(amount)
    if value is None:
        return NOT_AVAILABLE

    code = (currency or get_settings().default_currency).strip().upper()
    # Room for every integer digit plus two decimals
    with localcontext() as ctx:
        ctx.prec = max(ctx.prec, value.adjusted() + 3)
        rounded = value.quantize(CENT, rounding=ROUND_HALF_UP)
        sign = "-" if rounded < 0 else ""
        return f"{sign}{currency_prefix(code)}{abs(rounded):,.2f}"
