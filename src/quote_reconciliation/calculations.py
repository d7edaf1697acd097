"""Line financials and quote totals for CRM deal products.

Discount is always applied before tax. Amounts are not rounded or clamped:
a discount larger than the line's base amount produces a negative line,
which is a data problem in the CRM record and is passed through as-is.
"""

from __future__ import annotations

from collections.abc import Iterable
from decimal import Decimal
from typing import Any

import structlog

from quote_reconciliation.config import get_settings
from quote_reconciliation.models import (
    ZERO,
    DiscountKind,
    LineFinancials,
    ProductLine,
    QuoteSummary,
)

logger = structlog.get_logger(__name__)

HUNDRED = Decimal("100")


class ReconciliationError(Exception):
    """Base exception for reconciliation precondition violations."""

    def __init__(self, message: str, details: Any = None):
        super().__init__(message)
        self.details = details


class MixedCurrencyError(ReconciliationError):
    """Deal products are priced in more than one currency."""

    def __init__(self, currencies: Iterable[str]):
        self.currencies = tuple(sorted(currencies))
        super().__init__(
            f"Deal products use multiple currencies: {', '.join(self.currencies)}",
            details={"currencies": list(self.currencies)},
        )


def calculate_base_amount(product: ProductLine) -> Decimal:
    """Quantity times unit price, treating missing values as zero."""
    quantity = product.quantity if product.quantity is not None else ZERO
    unit_price = product.unit_price if product.unit_price is not None else ZERO
    return quantity * unit_price


def calculate_discount_amount(product: ProductLine, base_amount: Decimal) -> Decimal:
    if product.discount_kind is DiscountKind.PERCENTAGE:
        return base_amount * (product.discount_value / HUNDRED)
    return product.discount_value


def calculate_line_financials(product: ProductLine) -> LineFinancials:
    """Compute discount, tax and total for one product line."""
    base_amount = calculate_base_amount(product)
    discount_amount = calculate_discount_amount(product, base_amount)
    amount_after_discount = base_amount - discount_amount
    tax_amount = amount_after_discount * (product.tax_rate_percent / HUNDRED)
    return LineFinancials(
        base_amount=base_amount,
        discount_amount=discount_amount,
        amount_after_discount=amount_after_discount,
        tax_amount=tax_amount,
        line_total=amount_after_discount + tax_amount,
    )


def find_currencies(products: Iterable[ProductLine]) -> set[str]:
    """Distinct non-empty currency codes used by the given lines."""
    return {
        product.currency_code.strip().upper()
        for product in products
        if product.currency_code and product.currency_code.strip()
    }


def calculate_quote_summary(
    products: Iterable[ProductLine],
    *,
    strict_currency: bool | None = None,
) -> QuoteSummary:
    """Sum subtotal, tax and grand total across all product lines.

    The lines are assumed to share one currency. Mixed currencies are
    reported on the summary (or raised with ``strict_currency``) since the
    sums would otherwise silently add unlike amounts.

    Raises:
        MixedCurrencyError: Lines use several currencies and strict mode is on.
    """
    if strict_currency is None:
        strict_currency = get_settings().strict_currency

    lines = list(products)
    currencies = find_currencies(lines)
    mixed: tuple[str, ...] = ()
    if len(currencies) > 1:
        if strict_currency:
            raise MixedCurrencyError(currencies)
        mixed = tuple(sorted(currencies))
        logger.warning("mixed_currencies", currencies=list(mixed), lines=len(lines))

    subtotal = ZERO
    total_tax = ZERO
    grand_total = ZERO
    for product in lines:
        financials = calculate_line_financials(product)
        subtotal += financials.amount_after_discount
        total_tax += financials.tax_amount
        grand_total += financials.line_total

    return QuoteSummary(
        subtotal=subtotal,
        total_tax=total_tax,
        grand_total=grand_total,
        currency_code=next(iter(currencies)) if len(currencies) == 1 else None,
        mixed_currencies=mixed,
    )


def calculate_products_total(products: Iterable[ProductLine]) -> Decimal:
    """Sum of the line totals the CRM itself reports."""
    return sum((product.line_sum or ZERO for product in products), ZERO)
