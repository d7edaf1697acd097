"""Reconciliation pipeline for a CRM deal and its accounting quote.

Runs the sync gate first and stops there when the quote may not be
updated. Otherwise diffs the line items, analyses discounts on every
matched pair and checks the single-currency precondition, returning one
complete ``ComparisonAnalysis``.
"""

from __future__ import annotations

from collections.abc import Iterable
from decimal import Decimal
from typing import Any

import structlog

from quote_reconciliation.calculations import calculate_quote_summary
from quote_reconciliation.config import quote_context
from quote_reconciliation.discounts import (
    analyze_discounts,
    describe_discount_issue,
    summarize_discrepancies,
)
from quote_reconciliation.gate import evaluate_sync_gate
from quote_reconciliation.matching import diff_line_items, resolve_tolerance
from quote_reconciliation.models import (
    ComparisonAnalysis,
    ProductComparison,
    ReconciliationInput,
)

logger = structlog.get_logger(__name__)


def analyze_quotation_changes(
    data: ReconciliationInput,
    *,
    tolerance: Decimal | None = None,
    permitted_statuses: Iterable[str] | None = None,
    strict_currency: bool | None = None,
) -> ComparisonAnalysis:
    """Compare a deal's products with its accounting quote.

    Args:
        data: Snapshot of the deal products and the accounting quote.
        tolerance: Amount tolerance in currency units. Defaults to settings.
        permitted_statuses: Quote statuses that allow an update. Defaults to
            settings.
        strict_currency: Raise instead of flagging when products use several
            currencies. Defaults to settings.

    Returns:
        The comparison. ``can_update`` is False with a ``message`` whenever
        the sync gate blocks, in which case no diff is computed.

    Raises:
        MixedCurrencyError: Only in strict currency mode.
    """
    with quote_context(quote_id=data.quote_id, quote_number=data.quote_number):
        return _analyze(
            data,
            tolerance=tolerance,
            permitted_statuses=permitted_statuses,
            strict_currency=strict_currency,
        )


def _analyze(
    data: ReconciliationInput,
    *,
    tolerance: Decimal | None,
    permitted_statuses: Iterable[str] | None,
    strict_currency: bool | None,
) -> ComparisonAnalysis:
    decision = evaluate_sync_gate(
        data.quote_status,
        status_warning=data.status_warning,
        permitted_statuses=permitted_statuses,
    )
    if not decision.can_update:
        logger.info(
            "quotation_update_blocked",
            reason=decision.reason.value if decision.reason else None,
            message=decision.message,
        )
        return ComparisonAnalysis(can_update=False, message=decision.message)

    tolerance = resolve_tolerance(tolerance)
    diff = diff_line_items(data.products, data.line_items, tolerance=tolerance)
    discount_analysis = analyze_discounts(diff.pairs, tolerance=tolerance)

    mismatches = list(diff.mismatches)
    mismatches.extend(
        describe_discount_issue(item) for item in discount_analysis if not item.discount_match
    )
    summary = calculate_quote_summary(data.products, strict_currency=strict_currency)
    if summary.has_mixed_currencies:
        mismatches.append(
            "Deal products use multiple currencies: " + ", ".join(summary.mixed_currencies)
        )

    analysis = ComparisonAnalysis(
        can_update=True,
        quote_summary=summary,
        new_products=diff.new_products,
        removed_items=diff.removed_items,
        changed_items=diff.changed_items,
        has_changes=diff.has_changes,
        product_comparison=ProductComparison(
            mismatches=mismatches,
            discount_analysis=discount_analysis,
            total_discrepancies=summarize_discrepancies(discount_analysis),
        ),
    )
    logger.info(
        "quotation_analyzed",
        state=analysis.state.value,
        new=len(analysis.new_products),
        removed=len(analysis.removed_items),
        changed=len(analysis.changed_items),
        discount_issues=len(analysis.discount_issues),
    )
    return analysis


def analyze_quotation_payload(payload: dict[str, Any], **kwargs: Any) -> ComparisonAnalysis:
    """Parse the backend quotation payload and analyse it."""
    return analyze_quotation_changes(ReconciliationInput.from_payload(payload), **kwargs)
