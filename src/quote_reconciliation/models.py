"""Data records shared by the reconciliation components.

CRM (Pipedrive) deal products and accounting (Xero) quote line items arrive
as loosely-shaped dictionaries from the backend. The ``from_*`` constructors
turn them into typed records and never raise on bad values: anything that
cannot be read as a number becomes ``None``.
"""

from __future__ import annotations

from dataclasses import dataclass, field
from decimal import Decimal, InvalidOperation
from enum import Enum
from typing import Any

ZERO = Decimal("0")
# Largest power of ten, either way, accepted from a payload; beyond it
# products and quotients of amounts can overflow the Decimal context
MAX_EXPONENT = 100

# Field names the backend has used for a product's unit price, in priority order.
UNIT_PRICE_FIELDS = (
    "unit_price",
    "unitPrice",
    "item_price",
    "itemPrice",
    "price",
    "unit_amount",
    "unitAmount",
)


def extract_decimal(value: Any) -> Decimal | None:
    """Read a finite, sanely sized Decimal from a raw payload value, or None."""
    if value is None or isinstance(value, bool):
        return None
    try:
        result = Decimal(str(value).strip())
    except (TypeError, ValueError, InvalidOperation):
        return None
    if not result.is_finite():
        return None
    if result and abs(result.adjusted()) > MAX_EXPONENT:
        return None
    return result


def _first_decimal(raw: dict[str, Any], *keys: str) -> Decimal | None:
    for key in keys:
        value = extract_decimal(raw.get(key))
        if value is not None:
            return value
    return None


def _first_text(raw: dict[str, Any], *keys: str) -> str | None:
    for key in keys:
        value = raw.get(key)
        if value is None:
            continue
        text = str(value).strip()
        if text:
            return text
    return None


def _money(value: Decimal | None) -> float | None:
    return float(value) if value is not None else None


class DiscountKind(str, Enum):
    """How a CRM line discount is expressed."""

    PERCENTAGE = "percentage"
    AMOUNT = "amount"

    @classmethod
    def parse(cls, raw: Any) -> DiscountKind:
        """Only an explicit percentage is a percentage; anything else is an amount."""
        if isinstance(raw, cls):
            return raw
        if raw is not None and str(raw).strip().lower() == cls.PERCENTAGE.value:
            return cls.PERCENTAGE
        return cls.AMOUNT


class QuoteDocumentStatus(str, Enum):
    """Lifecycle status of an accounting quote document."""

    DRAFT = "DRAFT"
    ACCEPTED = "ACCEPTED"
    DECLINED = "DECLINED"
    OTHER = "OTHER"

    @classmethod
    def parse(cls, raw: Any) -> QuoteDocumentStatus:
        if isinstance(raw, cls):
            return raw
        normalized = str(raw or "").strip().upper()
        try:
            return cls(normalized)
        except ValueError:
            return cls.OTHER


class ComparisonState(str, Enum):
    """Overall outcome of a reconciliation pass."""

    BLOCKED = "blocked"
    CHANGES_DETECTED = "changes_detected"
    IN_SYNC = "in_sync"


@dataclass(frozen=True)
class ProductLine:
    """A priced product attached to a CRM deal."""

    name: str
    quantity: Decimal | None = None
    unit_price: Decimal | None = None
    discount_value: Decimal = ZERO
    discount_kind: DiscountKind = DiscountKind.AMOUNT
    tax_rate_percent: Decimal = ZERO
    currency_code: str | None = None
    id: int | str | None = None
    # Stable cross-system key (product code) when the CRM provides one
    key: str | None = None
    # Line total as reported by the CRM itself
    line_sum: Decimal | None = None

    @classmethod
    def from_pipedrive(cls, raw: dict[str, Any]) -> ProductLine:
        """Build a product line from a Pipedrive deal product payload."""
        quantity = extract_decimal(raw.get("quantity"))
        line_sum = extract_decimal(raw.get("sum"))

        unit_price = _first_decimal(raw, *UNIT_PRICE_FIELDS)
        if unit_price is None and line_sum is not None and quantity is not None and quantity > 0:
            unit_price = line_sum / quantity

        currency = _first_text(raw, "currency")
        return cls(
            name=str(raw.get("name") or ""),
            quantity=quantity,
            unit_price=unit_price,
            discount_value=extract_decimal(raw.get("discount")) or ZERO,
            discount_kind=DiscountKind.parse(raw.get("discount_type")),
            tax_rate_percent=extract_decimal(raw.get("tax")) or ZERO,
            currency_code=currency.upper() if currency else None,
            id=raw.get("id", raw.get("product_id")),
            key=_first_text(raw, "code", "product_code"),
            line_sum=line_sum,
        )

    def to_dict(self) -> dict[str, Any]:
        return {
            "id": self.id,
            "name": self.name,
            "quantity": _money(self.quantity),
            "unitPrice": _money(self.unit_price),
            "discount": _money(self.discount_value),
            "discountType": self.discount_kind.value,
            "tax": _money(self.tax_rate_percent),
            "currency": self.currency_code,
            "code": self.key,
            "sum": _money(self.line_sum),
        }


@dataclass(frozen=True)
class AccountingLineItem:
    """A line item inside a previously issued accounting quote."""

    description: str
    quantity: Decimal | None = None
    unit_amount: Decimal | None = None
    line_amount: Decimal | None = None
    discount_rate_percent: Decimal = ZERO
    discount_amount: Decimal = ZERO
    item_code: str | None = None

    @classmethod
    def from_xero(cls, raw: dict[str, Any]) -> AccountingLineItem:
        """Build a line item from a Xero quote ``LineItems`` entry."""
        return cls(
            description=str(raw.get("Description", raw.get("description")) or ""),
            quantity=_first_decimal(raw, "Quantity", "quantity"),
            unit_amount=_first_decimal(raw, "UnitAmount", "unitAmount"),
            line_amount=_first_decimal(raw, "LineAmount", "lineAmount"),
            discount_rate_percent=_first_decimal(raw, "DiscountRate", "discountRate")
            or ZERO,
            discount_amount=_first_decimal(raw, "DiscountAmount", "discountAmount")
            or ZERO,
            item_code=_first_text(raw, "ItemCode", "itemCode"),
        )

    def to_dict(self) -> dict[str, Any]:
        return {
            "Description": self.description,
            "Quantity": _money(self.quantity),
            "UnitAmount": _money(self.unit_amount),
            "LineAmount": _money(self.line_amount),
            "DiscountRate": _money(self.discount_rate_percent),
            "DiscountAmount": _money(self.discount_amount),
            "ItemCode": self.item_code,
        }


@dataclass(frozen=True)
class LineFinancials:
    """Discount and tax adjusted amounts for one product line."""

    base_amount: Decimal
    discount_amount: Decimal
    amount_after_discount: Decimal
    tax_amount: Decimal
    line_total: Decimal


@dataclass(frozen=True)
class QuoteSummary:
    """Totals across every product line of a deal."""

    subtotal: Decimal
    total_tax: Decimal
    grand_total: Decimal
    currency_code: str | None = None
    mixed_currencies: tuple[str, ...] = ()

    @property
    def has_mixed_currencies(self) -> bool:
        return bool(self.mixed_currencies)

    def to_dict(self) -> dict[str, Any]:
        return {
            "subtotal": _money(self.subtotal),
            "totalTax": _money(self.total_tax),
            "grandTotal": _money(self.grand_total),
            "currency": self.currency_code,
        }


@dataclass(frozen=True)
class CrmDiscountSide:
    base_amount: Decimal
    expected_amount: Decimal
    discount_value: Decimal
    discount_kind: DiscountKind
    total_discount_applied: Decimal
    special_price: Decimal | None = None

    def to_dict(self) -> dict[str, Any]:
        return {
            "baseAmount": _money(self.base_amount),
            "expectedAmount": _money(self.expected_amount),
            "discountValue": _money(self.discount_value),
            "discountType": self.discount_kind.value,
            "totalDiscountApplied": _money(self.total_discount_applied),
            "specialPrice": _money(self.special_price),
        }


@dataclass(frozen=True)
class AccountingDiscountSide:
    line_amount: Decimal
    discount_rate_percent: Decimal
    discount_amount: Decimal
    total_discount_applied: Decimal

    def to_dict(self) -> dict[str, Any]:
        return {
            "lineAmount": _money(self.line_amount),
            "discountRate": _money(self.discount_rate_percent),
            "discountAmount": _money(self.discount_amount),
            "totalDiscountApplied": _money(self.total_discount_applied),
        }


@dataclass(frozen=True)
class DiscountAnalysisItem:
    """Discount comparison for one matched CRM/accounting pair."""

    product_index: int
    product_name: str
    crm: CrmDiscountSide
    accounting: AccountingDiscountSide
    discrepancy: Decimal
    discount_match: bool

    def to_dict(self) -> dict[str, Any]:
        return {
            "productIndex": self.product_index,
            "productName": self.product_name,
            "pipedrive": self.crm.to_dict(),
            "xero": self.accounting.to_dict(),
            "discrepancy": _money(self.discrepancy),
            "discountMatch": self.discount_match,
        }


@dataclass(frozen=True)
class TotalDiscrepancies:
    pipedrive_total_before_discount: Decimal
    pipedrive_expected_total: Decimal
    xero_actual_total: Decimal
    discount_difference: Decimal

    def to_dict(self) -> dict[str, Any]:
        return {
            "pipedriveTotalBeforeDiscount": _money(self.pipedrive_total_before_discount),
            "pipedriveExpectedTotal": _money(self.pipedrive_expected_total),
            "xeroActualTotal": _money(self.xero_actual_total),
            "discountDifference": _money(self.discount_difference),
        }


@dataclass
class ProductComparison:
    mismatches: list[str] = field(default_factory=list)
    discount_analysis: list[DiscountAnalysisItem] = field(default_factory=list)
    total_discrepancies: TotalDiscrepancies | None = None

    def to_dict(self) -> dict[str, Any]:
        payload: dict[str, Any] = {
            "mismatches": list(self.mismatches),
            "discountAnalysis": [item.to_dict() for item in self.discount_analysis],
        }
        if self.total_discrepancies is not None:
            payload["totalDiscrepancies"] = self.total_discrepancies.to_dict()
        return payload


@dataclass
class ComparisonAnalysis:
    """Result of one reconciliation pass, handed to the update workflow."""

    can_update: bool
    message: str | None = None
    new_products: list[ProductLine] = field(default_factory=list)
    removed_items: list[AccountingLineItem] = field(default_factory=list)
    changed_items: list[ProductLine] = field(default_factory=list)
    has_changes: bool = False
    product_comparison: ProductComparison | None = None
    quote_summary: QuoteSummary | None = None

    @property
    def discount_issues(self) -> list[DiscountAnalysisItem]:
        if self.product_comparison is None:
            return []
        return [
            item for item in self.product_comparison.discount_analysis if not item.discount_match
        ]

    @property
    def needs_update(self) -> bool:
        """True when an update would change the accounting quote."""
        return self.can_update and (self.has_changes or bool(self.discount_issues))

    @property
    def state(self) -> ComparisonState:
        if not self.can_update:
            return ComparisonState.BLOCKED
        if self.needs_update:
            return ComparisonState.CHANGES_DETECTED
        return ComparisonState.IN_SYNC

    def summary_text(self) -> str:
        """One-line banner describing the outcome."""
        if not self.can_update:
            return self.message or "Cannot update quote"
        if not self.needs_update:
            return "No changes detected"
        text = (
            f"{len(self.new_products)} new products, "
            f"{len(self.removed_items)} removed items, "
            f"{len(self.changed_items)} changed items"
        )
        issues = len(self.discount_issues)
        if issues:
            text += f", {issues} discount mismatches"
        return text

    def to_dict(self) -> dict[str, Any]:
        payload: dict[str, Any] = {"canUpdate": self.can_update}
        if self.message is not None:
            payload["message"] = self.message
        payload.update(
            {
                "newProducts": [product.to_dict() for product in self.new_products],
                "removedItems": [item.to_dict() for item in self.removed_items],
                "changedItems": [product.to_dict() for product in self.changed_items],
                "hasChanges": self.has_changes,
            }
        )
        if self.product_comparison is not None:
            payload["productComparison"] = self.product_comparison.to_dict()
        if self.quote_summary is not None:
            payload["quoteSummary"] = self.quote_summary.to_dict()
        return payload


@dataclass
class ReconciliationInput:
    """Snapshot of one deal and its accounting quote, as fetched by the caller."""

    quote_status: str | None
    products: list[ProductLine] = field(default_factory=list)
    # None when the accounting quote carries no line items at all
    line_items: list[AccountingLineItem] | None = None
    status_warning: str | None = None
    quote_id: str | None = None
    quote_number: str | None = None

    @property
    def has_quote(self) -> bool:
        return self.quote_status is not None

    @classmethod
    def from_payload(cls, payload: dict[str, Any]) -> ReconciliationInput:
        """Parse the backend's quotation data response."""
        products = [
            ProductLine.from_pipedrive(raw)
            for raw in payload.get("products") or []
            if isinstance(raw, dict)
        ]

        quotation = payload.get("xeroQuotation")
        comparison = payload.get("comparison")
        warning = None
        if isinstance(comparison, dict):
            warning = _first_text(comparison, "statusWarning")

        if not isinstance(quotation, dict):
            return cls(quote_status=None, products=products, status_warning=warning)

        raw_items = quotation.get("lineItems")
        line_items = None
        if isinstance(raw_items, list):
            line_items = [
                AccountingLineItem.from_xero(raw) for raw in raw_items if isinstance(raw, dict)
            ]

        return cls(
            quote_status=str(quotation.get("status") or ""),
            products=products,
            line_items=line_items,
            status_warning=warning,
            quote_id=_first_text(quotation, "quoteId"),
            quote_number=_first_text(quotation, "quoteNumber"),
        )


__all__ = [
    "AccountingDiscountSide",
    "AccountingLineItem",
    "ComparisonAnalysis",
    "ComparisonState",
    "CrmDiscountSide",
    "DiscountAnalysisItem",
    "DiscountKind",
    "LineFinancials",
    "ProductComparison",
    "ProductLine",
    "QuoteDocumentStatus",
    "QuoteSummary",
    "ReconciliationInput",
    "TotalDiscrepancies",
    "UNIT_PRICE_FIELDS",
    "ZERO",
    "extract_decimal",
]
