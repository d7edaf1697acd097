"""Tests for currency formatting."""

from decimal import Decimal

import pytest

from quote_reconciliation.formatting import NOT_AVAILABLE, format_currency


@pytest.mark.parametrize(
    "amount",
    [None, float("nan"), Decimal("NaN"), float("inf"), "not a number", "", True],
)
def test_invalid_values_render_as_not_available(amount):
    assert format_currency(amount) == NOT_AVAILABLE


def test_zero_is_a_real_amount():
    assert format_currency(0, "USD") == "$0.00"


@pytest.mark.parametrize(
    ("amount", "currency", "expected"),
    [
        (1234.5, "USD", "$1,234.50"),
        (Decimal("1000000"), "usd", "$1,000,000.00"),
        (-50, "USD", "-$50.00"),
        (99.999, "EUR", "€100.00"),
        (2.675, "GBP", "£2.68"),
        ("42", "NZD", "NZ$42.00"),
        (10, "SGD", "SGD 10.00"),
    ],
)
def test_formats_with_symbol_and_two_decimals(amount, currency, expected):
    assert format_currency(amount, currency) == expected


def test_tiny_negative_rounds_to_unsigned_zero():
    assert format_currency(Decimal("-0.001"), "USD") == "$0.00"


def test_default_currency_comes_from_settings(monkeypatch):
    from quote_reconciliation.config import get_settings

    assert format_currency(5) == "$5.00"

    monkeypatch.setenv("QUOTE_DEFAULT_CURRENCY", "EUR")
    get_settings.cache_clear()

    assert format_currency(5) == "€5.00"


@pytest.mark.parametrize(
    ("amount", "expected"),
    [
        (1e30, "$1" + ",000" * 10 + ".00"),
        (10**26, "$100" + ",000" * 8 + ".00"),
        (
            Decimal("123456789012345678901234567.891"),
            "$123,456,789,012,345,678,901,234,567.89",
        ),
        (Decimal("-1E+40"), "-$10" + ",000" * 13 + ".00"),
    ],
)
def test_very_large_amounts_keep_every_digit(amount, expected):
    assert format_currency(amount, "USD") == expected


def test_amounts_beyond_the_payload_cap_render_as_not_available():
    assert format_currency(Decimal("1E+200"), "USD") == NOT_AVAILABLE
