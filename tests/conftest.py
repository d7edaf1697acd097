"""Pytest configuration and fixtures."""

import os
from decimal import Decimal

import pytest
import structlog
from structlog.testing import LogCapture

# Pin environment before importing settings
os.environ.setdefault("QUOTE_DEFAULT_CURRENCY", "USD")
os.environ.setdefault("QUOTE_AMOUNT_TOLERANCE", "0.01")
os.environ.setdefault("QUOTE_UPDATABLE_STATUSES", '["DRAFT"]')
os.environ.setdefault("QUOTE_STRICT_CURRENCY", "false")

from quote_reconciliation.config import get_settings  # noqa: E402
from quote_reconciliation.models import (  # noqa: E402
    AccountingLineItem,
    DiscountKind,
    ProductLine,
)


@pytest.fixture(autouse=True)
def _fresh_settings():
    """Drop cached settings so env changes in a test take effect."""
    get_settings.cache_clear()
    yield
    get_settings.cache_clear()


@pytest.fixture
def log_output():
    """Capture structlog events, including bound context variables."""
    capture = LogCapture()
    structlog.configure(processors=[structlog.contextvars.merge_contextvars, capture])
    yield capture
    structlog.reset_defaults()


@pytest.fixture
def service_a():
    """Single product with a 10% discount and no tax."""
    return ProductLine(
        name="Service A",
        quantity=Decimal("1"),
        unit_price=Decimal("1000"),
        discount_value=Decimal("10"),
        discount_kind=DiscountKind.PERCENTAGE,
        currency_code="USD",
        id=1,
    )


@pytest.fixture
def make_line_item():
    """Factory for accounting line items."""

    def _make(description: str, quantity="1", unit_amount="1000", line_amount="1000", **kwargs):
        return AccountingLineItem(
            description=description,
            quantity=Decimal(quantity),
            unit_amount=Decimal(unit_amount),
            line_amount=Decimal(line_amount),
            **kwargs,
        )

    return _make


@pytest.fixture
def mock_quotation_payload():
    """Mock quotation data response from the backend."""
    return {
        "deal": {"id": 42, "title": "Hull survey", "value": 2100, "currency": "USD"},
        "quotationNumber": "QU-0042",
        "products": [
            {
                "id": 1,
                "name": "Hull inspection",
                "quantity": 2,
                "item_price": 500,
                "discount": 10,
                "discount_type": "percentage",
                "tax": 0,
                "sum": 900,
                "currency": "USD",
            },
            {
                "id": 2,
                "name": "Report writing",
                "quantity": 1,
                "item_price": 1200,
                "discount": 0,
                "discount_type": "amount",
                "tax": 0,
                "sum": 1200,
                "currency": "USD",
            },
        ],
        "xeroQuotation": {
            "quoteId": "9f1c7b0e-0000-4000-8000-000000000042",
            "quoteNumber": "QU-0042",
            "status": "DRAFT",
            "lineItems": [
                {
                    "Description": "Hull inspection",
                    "Quantity": 2,
                    "UnitAmount": 500,
                    "LineAmount": 900,
                    "DiscountRate": 10,
                },
                {
                    "Description": "Report writing",
                    "Quantity": 1,
                    "UnitAmount": 1200,
                    "LineAmount": 1200,
                },
            ],
            "subTotal": 2100,
            "totalTax": 0,
            "total": 2100,
        },
        "comparison": {
            "canUpdate": True,
            "pipedriveProductCount": 2,
            "xeroLineItemCount": 2,
            "statusWarning": None,
        },
    }
