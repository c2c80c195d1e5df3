"""Tests for amount parsing."""

from decimal import Decimal

import pytest

from railshed.utils.amount_parser import parse_amount, split_currency_code


@pytest.mark.parametrize(
    "text, expected",
    [
        ("35", "35"),
        ("35.00", "35.00"),
        ("€35.00", "35.00"),
        ("35.00 EUR", "35.00"),
        ("EUR 35.00", "35.00"),
        ("1,234.56", "1234.56"),
        ("1.234,56", "1234.56"),
        ("35,50", "35.50"),
        ("1,234", "1234"),
    ],
)
def test_parse_amount(text, expected):
    assert parse_amount(text) == Decimal(expected)


@pytest.mark.parametrize("text", ["", "   ", "abc", "12.3.4"])
def test_parse_amount_invalid(text):
    with pytest.raises(ValueError):
        parse_amount(text)


@pytest.mark.parametrize(
    "text, expected",
    [
        ("35.00 EUR", ("35.00", "EUR")),
        ("usd 1,234.56", ("1,234.56", "USD")),
        ("€35.00", ("€35.00", None)),
        ("35", ("35", None)),
    ],
)
def test_split_currency_code(text, expected):
    assert split_currency_code(text) == expected
