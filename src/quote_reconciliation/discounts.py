"""Discount analysis for matched CRM/accounting line pairs.

The CRM side is recomputed from the product's own quantity, price and
discount. The accounting side is taken as reported: the accounting system
is the source of truth for its own arithmetic.
"""

from __future__ import annotations

from collections.abc import Sequence
from decimal import Decimal

import structlog

from quote_reconciliation.calculations import calculate_line_financials
from quote_reconciliation.matching import MatchedPair, resolve_tolerance
from quote_reconciliation.models import (
    ZERO,
    AccountingDiscountSide,
    AccountingLineItem,
    CrmDiscountSide,
    DiscountAnalysisItem,
    DiscountKind,
    ProductLine,
    TotalDiscrepancies,
)

logger = structlog.get_logger(__name__)


def _crm_side(product: ProductLine) -> CrmDiscountSide:
    financials = calculate_line_financials(product)
    special_price = None
    if financials.discount_amount != ZERO and product.quantity:
        special_price = financials.amount_after_discount / product.quantity
    return CrmDiscountSide(
        base_amount=financials.base_amount,
        expected_amount=financials.amount_after_discount,
        discount_value=product.discount_value,
        discount_kind=product.discount_kind,
        total_discount_applied=financials.discount_amount,
        special_price=special_price,
    )


def _accounting_side(item: AccountingLineItem) -> AccountingDiscountSide:
    line_amount = item.line_amount if item.line_amount is not None else ZERO
    if item.discount_amount != ZERO:
        applied = item.discount_amount
    elif item.quantity is not None and item.unit_amount is not None:
        applied = item.quantity * item.unit_amount - line_amount
    else:
        applied = ZERO
    return AccountingDiscountSide(
        line_amount=line_amount,
        discount_rate_percent=item.discount_rate_percent,
        discount_amount=item.discount_amount,
        total_discount_applied=applied,
    )


def analyze_pair(pair: MatchedPair, tolerance: Decimal) -> DiscountAnalysisItem:
    crm = _crm_side(pair.product)
    accounting = _accounting_side(pair.item)
    discrepancy = abs(crm.expected_amount - accounting.line_amount)
    return DiscountAnalysisItem(
        product_index=pair.index,
        product_name=pair.product.name,
        crm=crm,
        accounting=accounting,
        discrepancy=discrepancy,
        discount_match=discrepancy <= tolerance,
    )


def analyze_discounts(
    pairs: Sequence[MatchedPair],
    *,
    tolerance: Decimal | None = None,
) -> list[DiscountAnalysisItem]:
    """Compare expected post-discount amounts against accounting line amounts."""
    tolerance = resolve_tolerance(tolerance)
    results = [analyze_pair(pair, tolerance) for pair in pairs]
    for item in results:
        if not item.discount_match:
            logger.info(
                "discount_mismatch",
                product=item.product_name,
                expected=str(item.crm.expected_amount),
                actual=str(item.accounting.line_amount),
                discrepancy=str(item.discrepancy),
            )
    return results


def summarize_discrepancies(
    items: Sequence[DiscountAnalysisItem],
) -> TotalDiscrepancies | None:
    """Totals across all analysed pairs; None when nothing was paired.

    Produced whether or not any pair mismatches, so an exact match shows
    up as a zero difference rather than as a missing warning.
    """
    if not items:
        return None
    before = sum((item.crm.base_amount for item in items), ZERO)
    expected = sum((item.crm.expected_amount for item in items), ZERO)
    actual = sum((item.accounting.line_amount for item in items), ZERO)
    return TotalDiscrepancies(
        pipedrive_total_before_discount=before,
        pipedrive_expected_total=expected,
        xero_actual_total=actual,
        discount_difference=actual - expected,
    )


def describe_discount_issue(item: DiscountAnalysisItem) -> str:
    """Readable summary of a mismatched pair."""
    crm = item.crm
    if crm.discount_kind is DiscountKind.PERCENTAGE:
        crm_discount = f"{crm.discount_value}%"
    else:
        crm_discount = f"{crm.discount_value:,.2f}"
    accounting = item.accounting
    if accounting.discount_rate_percent > 0:
        xero_discount = f"{accounting.discount_rate_percent}% discount"
    elif accounting.discount_amount > 0:
        xero_discount = f"{accounting.discount_amount:,.2f} discount"
    else:
        xero_discount = "no discount"
    return (
        f"{item.product_name}: expected {crm.expected_amount:,.2f} after "
        f"{crm_discount} discount in Pipedrive, Xero has "
        f"{accounting.line_amount:,.2f} ({xero_discount}), "
        f"difference {item.discrepancy:,.2f}"
    )
