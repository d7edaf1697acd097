"""Pair CRM product lines with accounting quote line items and classify differences.

Lines are paired on a stable product code when both sides carry one and
otherwise on the product name against the line description (exact,
case-sensitive). When several lines share a name the first match wins;
no tie-breaking is attempted and the duplicates are logged.
"""

from __future__ import annotations

from collections import Counter
from collections.abc import Sequence
from dataclasses import dataclass, field
from decimal import Decimal

import structlog

from quote_reconciliation.config import get_settings
from quote_reconciliation.models import AccountingLineItem, ProductLine

logger = structlog.get_logger(__name__)


@dataclass(frozen=True)
class MatchedPair:
    """A CRM line and the accounting line it was paired with."""

    index: int  # 1-based position of the product in the deal
    product: ProductLine
    item: AccountingLineItem


@dataclass
class LineDiff:
    new_products: list[ProductLine] = field(default_factory=list)
    removed_items: list[AccountingLineItem] = field(default_factory=list)
    changed_items: list[ProductLine] = field(default_factory=list)
    pairs: list[MatchedPair] = field(default_factory=list)
    mismatches: list[str] = field(default_factory=list)

    @property
    def has_changes(self) -> bool:
        return bool(self.new_products or self.removed_items or self.changed_items)


def resolve_tolerance(tolerance: Decimal | None) -> Decimal:
    if tolerance is not None:
        return tolerance
    return Decimal(str(get_settings().amount_tolerance))


def lines_match(product: ProductLine, item: AccountingLineItem) -> bool:
    """Whether a CRM line and an accounting line describe the same product."""
    if product.key and item.item_code:
        return product.key == item.item_code
    return product.name == item.description


def find_matching_item(
    product: ProductLine, line_items: Sequence[AccountingLineItem]
) -> AccountingLineItem | None:
    for item in line_items:
        if lines_match(product, item):
            return item
    return None


def _format_amount(value: Decimal | None) -> str:
    return "unknown" if value is None else f"{value:,.2f}"


def _log_duplicates(
    products: Sequence[ProductLine], line_items: Sequence[AccountingLineItem]
) -> None:
    for label, names in (
        ("pipedrive", [product.name for product in products]),
        ("xero", [item.description for item in line_items]),
    ):
        duplicates = sorted(name for name, count in Counter(names).items() if count > 1)
        if duplicates:
            logger.warning(
                "duplicate_line_description",
                source=label,
                names=duplicates,
                note="first match is used for pairing",
            )


def detect_line_changes(
    product: ProductLine,
    item: AccountingLineItem,
    tolerance: Decimal,
) -> tuple[bool, list[str]]:
    """Compare a matched pair.

    Returns whether the product counts as changed (quantity or unit price)
    plus a readable note for every difference found, including a line total
    that disagrees with the CRM's own reported sum.
    """
    notes: list[str] = []
    changed = False

    if item.quantity != product.quantity:
        changed = True
        notes.append(
            f"{product.name}: quantity {_format_amount(product.quantity)} in Pipedrive "
            f"vs {_format_amount(item.quantity)} in Xero"
        )

    if product.unit_price is not None and item.unit_amount is not None:
        if abs(item.unit_amount - product.unit_price) > tolerance:
            changed = True
            notes.append(
                f"{product.name}: unit price {_format_amount(product.unit_price)} in Pipedrive "
                f"vs {_format_amount(item.unit_amount)} in Xero"
            )

    if product.line_sum is not None and item.line_amount is not None:
        if abs(item.line_amount - product.line_sum) > tolerance:
            notes.append(
                f"{product.name}: line total {_format_amount(product.line_sum)} in Pipedrive "
                f"vs {_format_amount(item.line_amount)} in Xero"
            )

    return changed, notes


def diff_line_items(
    products: Sequence[ProductLine],
    line_items: Sequence[AccountingLineItem] | None,
    *,
    tolerance: Decimal | None = None,
) -> LineDiff:
    """Classify CRM lines and accounting lines as new, removed or changed."""
    tolerance = resolve_tolerance(tolerance)
    items = list(line_items or [])
    _log_duplicates(products, items)

    diff = LineDiff()
    for index, product in enumerate(products, start=1):
        item = find_matching_item(product, items)
        if item is None:
            diff.new_products.append(product)
            continue

        diff.pairs.append(MatchedPair(index=index, product=product, item=item))
        changed, notes = detect_line_changes(product, item, tolerance)
        if changed:
            diff.changed_items.append(product)
        diff.mismatches.extend(notes)

    diff.removed_items = [
        item for item in items if not any(lines_match(product, item) for product in products)
    ]

    logger.debug(
        "line_items_diffed",
        new=len(diff.new_products),
        removed=len(diff.removed_items),
        changed=len(diff.changed_items),
        paired=len(diff.pairs),
    )
    return diff
