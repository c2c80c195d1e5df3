"""Tests for value canonicalization."""

from datetime import date
from decimal import Decimal

import pytest

from railshed.domain.enums import Control, Scale, ServiceLevel
from railshed.domain.errors import InvalidCurrencyError, InvalidUnitError, ValidationError
from railshed.domain.values import (
    MAX_MINOR_UNITS,
    MeasureUnit,
    Price,
    canonicalize_fields,
    optional_text,
    to_bool,
    to_country_code,
    to_date,
    to_delivery_date,
    to_epoch,
    to_measure,
    to_optional_measure,
    to_optional_price,
    to_price,
)


class TestPrice:
    """Tests for price canonicalization."""

    def test_major_units_become_minor_units(self):
        assert to_price("35.00", "eur") == Price(amount=3500, currency="EUR")

    def test_float_amount_keeps_its_decimal_value(self):
        assert to_price(35.1, "EUR").amount == 3510

    def test_zero_decimal_currency(self):
        assert to_price(1200, "JPY") == Price(amount=1200, currency="JPY")

    def test_three_decimal_currency(self):
        assert to_price("1.234", "KWD").amount == 1234

    def test_too_many_fraction_digits(self):
        with pytest.raises(InvalidCurrencyError):
            to_price("12.5", "JPY")

    def test_unknown_currency(self):
        with pytest.raises(InvalidCurrencyError):
            to_price("10", "XYZ")

    def test_negative_amount(self):
        with pytest.raises(ValidationError):
            to_price("-1", "EUR")

    def test_malformed_amount(self):
        with pytest.raises(ValidationError):
            to_price("abc", "EUR")

    def test_optional_price_forms(self):
        expected = Price(amount=3500, currency="EUR")
        assert to_optional_price(None) is None
        assert to_optional_price("35.00 EUR") == expected
        assert to_optional_price(("35", "EUR")) == expected
        assert to_optional_price({"value": "35.00", "currency": "EUR"}) == expected
        assert to_optional_price({"amount": 3500, "currency": "EUR"}) == expected
        assert to_optional_price(expected) == expected

    def test_optional_price_without_currency(self):
        with pytest.raises(ValidationError):
            to_optional_price("35.00")

    def test_str_and_decimal(self):
        price = Price(amount=3500, currency="EUR")
        assert price.to_decimal() == Decimal("35.00")
        assert str(price) == "35.00 EUR"
        assert str(Price(amount=1200, currency="JPY")) == "1200 JPY"

    def test_add_requires_same_currency(self):
        assert Price(100, "EUR").add(Price(250, "EUR")) == Price(350, "EUR")
        with pytest.raises(ValidationError):
            Price(100, "EUR").add(Price(100, "USD"))

    def test_from_minor_units_rejects_non_integer(self):
        with pytest.raises(ValidationError):
            Price.from_minor_units("3500", "EUR")
        with pytest.raises(ValidationError):
            Price.from_minor_units(True, "EUR")

    def test_amount_upper_bound(self):
        assert Price.from_minor_units(MAX_MINOR_UNITS, "EUR").amount == MAX_MINOR_UNITS
        with pytest.raises(ValidationError):
            Price.from_minor_units(MAX_MINOR_UNITS + 1, "EUR")
        with pytest.raises(ValidationError):
            to_price("99999999999999999999", "EUR")

    def test_code_in_amount_must_match_currency(self):
        assert to_price("35.00 EUR", "eur") == Price(amount=3500, currency="EUR")
        assert to_price("EUR 35.00", "EUR") == Price(amount=3500, currency="EUR")
        with pytest.raises(InvalidCurrencyError):
            to_price("35.00 USD", "EUR")
        with pytest.raises(InvalidCurrencyError):
            to_optional_price(("USD 35", "EUR"))


class TestMeasure:
    """Tests for length canonicalization."""

    def test_quantized_to_hundredths(self):
        measure = to_measure("150.456", "mm")
        assert measure.value == Decimal("150.46")
        assert measure.unit is MeasureUnit.MILLIMETERS

    def test_default_unit_is_millimeters(self):
        assert to_measure(150).unit is MeasureUnit.MILLIMETERS

    def test_unknown_unit(self):
        with pytest.raises(InvalidUnitError):
            to_measure(10, "furlong")

    def test_negative_value(self):
        with pytest.raises(ValidationError):
            to_measure(-1)

    def test_conversion(self):
        assert to_measure(1, "in").to("mm").value == Decimal("25.40")

    def test_optional_forms(self):
        assert to_optional_measure(None) is None
        assert to_optional_measure({"value": "1", "unit": "in"}).unit is MeasureUnit.INCHES
        assert to_optional_measure(150).value == Decimal("150.00")


class TestEpochAndDates:
    """Tests for epoch, delivery date and date canonicalization."""

    @pytest.mark.parametrize(
        "raw, expected",
        [("iv", "IV"), ("IIIB", "IIIb"), ("iv/v", "IV/V"), ("museum", "Museum"), ("  ", None), (None, None)],
    )
    def test_epoch(self, raw, expected):
        assert to_epoch(raw) == expected

    @pytest.mark.parametrize("raw", ["VII", "V/IV", "4", "IVc"])
    def test_invalid_epoch(self, raw):
        with pytest.raises(ValidationError):
            to_epoch(raw)

    @pytest.mark.parametrize(
        "raw, expected",
        [("2024", "2024"), ("2024/3", "2024/03"), ("2024-03", "2024/03"), ("2024/q1", "2024/Q1"),
         ("2024-03-15", "2024-03-15"), (date(2024, 3, 15), "2024-03-15")],
    )
    def test_delivery_date(self, raw, expected):
        assert to_delivery_date(raw) == expected

    @pytest.mark.parametrize("raw", ["2024/13", "2024/Q5", "March 2024", "2024-02-30"])
    def test_invalid_delivery_date(self, raw):
        with pytest.raises(ValidationError):
            to_delivery_date(raw)

    def test_to_date(self):
        assert to_date("2024-03-01") == date(2024, 3, 1)
        assert to_date(date(2024, 3, 1)) == date(2024, 3, 1)

    def test_to_date_missing(self):
        with pytest.raises(ValidationError, match="purchase_date"):
            to_date(None, "purchase_date")

    def test_to_date_malformed(self):
        with pytest.raises(ValidationError):
            to_date("not a date")


class TestEnumsAndText:
    """Tests for enum parsing and text helpers."""

    def test_enum_parse_is_case_insensitive(self):
        assert Scale.parse("h0") is Scale.H0
        assert Control.parse("dcc_ready") is Control.DCC_READY
        assert Control.parse("DCC READY") is Control.DCC_READY
        assert ServiceLevel.parse("1cl/2cl") is ServiceLevel.FIRST_SECOND

    def test_enum_parse_rejects_unknown(self):
        with pytest.raises(ValidationError, match="Expected one of"):
            Scale.parse("HO")

    def test_parse_optional(self):
        assert Scale.parse_optional("") is None
        assert Scale.parse_optional(None) is None

    def test_dcc_capable(self):
        assert Control.DCC_SOUND.dcc_capable
        assert not Control.NO_DCC.dcc_capable

    def test_country_code(self):
        assert to_country_code(" it ") == "IT"
        assert to_country_code("") is None
        with pytest.raises(ValidationError):
            to_country_code("ITA")

    def test_optional_text(self):
        assert optional_text("  x ") == "x"
        assert optional_text("   ") is None

    def test_to_bool(self):
        assert to_bool("yes", "flag") is True
        assert to_bool(0, "flag") is False
        with pytest.raises(ValidationError):
            to_bool("maybe", "flag")


def test_canonicalize_fields_rejects_unknown_field():
    with pytest.raises(ValidationError, match="has no field 'colour'"):
        canonicalize_fields("Thing", {"colour": "red"}, {"epoch": to_epoch})


def test_canonicalize_fields_runs_converters():
    assert canonicalize_fields("Thing", {"epoch": "iv"}, {"epoch": to_epoch}) == {"epoch": "IV"}
