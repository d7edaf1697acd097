"""Quote Reconciliation - compare CRM deal products with accounting quotes."""

__version__ = "0.1.0"

from quote_reconciliation.calculations import (
    MixedCurrencyError,
    ReconciliationError,
    calculate_line_financials,
    calculate_products_total,
    calculate_quote_summary,
)
from quote_reconciliation.config import configure_logging, get_settings, quote_context
from quote_reconciliation.discounts import analyze_discounts, summarize_discrepancies
from quote_reconciliation.formatting import format_currency
from quote_reconciliation.gate import BlockReason, GateDecision, GateState, evaluate_sync_gate
from quote_reconciliation.matching import LineDiff, MatchedPair, diff_line_items
from quote_reconciliation.models import (
    AccountingLineItem,
    ComparisonAnalysis,
    ComparisonState,
    DiscountAnalysisItem,
    DiscountKind,
    LineFinancials,
    ProductLine,
    QuoteDocumentStatus,
    QuoteSummary,
    ReconciliationInput,
)
from quote_reconciliation.reconciliation import (
    analyze_quotation_changes,
    analyze_quotation_payload,
)

__all__ = [
    # Version
    "__version__",
    # Records
    "AccountingLineItem",
    "ComparisonAnalysis",
    "ComparisonState",
    "DiscountAnalysisItem",
    "DiscountKind",
    "LineFinancials",
    "ProductLine",
    "QuoteDocumentStatus",
    "QuoteSummary",
    "ReconciliationInput",
    # Calculations
    "calculate_line_financials",
    "calculate_products_total",
    "calculate_quote_summary",
    # Matching & discounts
    "LineDiff",
    "MatchedPair",
    "diff_line_items",
    "analyze_discounts",
    "summarize_discrepancies",
    # Sync gate
    "BlockReason",
    "GateDecision",
    "GateState",
    "evaluate_sync_gate",
    # Pipeline
    "analyze_quotation_changes",
    "analyze_quotation_payload",
    # Formatting
    "format_currency",
    # Errors
    "ReconciliationError",
    "MixedCurrencyError",
    # Config
    "get_settings",
    "configure_logging",
    "quote_context",
]
