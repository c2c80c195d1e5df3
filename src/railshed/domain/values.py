"""Value canonicalization for prices, measures, dates and catalog codes.

Every raw value coming from a caller passes through one of the ``to_*``
functions before it reaches the database. The functions are pure: the same
input always produces the same canonical value, and canonical values compare
structurally (``Price`` and ``Measure`` are frozen dataclasses holding an
``int`` and a ``Decimal`` respectively, never a float).
"""

import re
from dataclasses import dataclass
from datetime import date, datetime
from decimal import Decimal, InvalidOperation, ROUND_HALF_EVEN
from typing import Any, Callable, Optional

from railshed.domain.enums import ParsableEnum
from railshed.domain.errors import (
    InvalidCurrencyError,
    InvalidUnitError,
    ValidationError,
    missing_field,
)
from railshed.utils.amount_parser import parse_amount, split_currency_code
from railshed.utils.date_parser import parse_date

# ISO 4217 active codes grouped by minor-unit exponent.
_ZERO_DECIMAL = frozenset(
    "BIF CLP DJF GNF ISK JPY KMF KRW PYG RWF UGX UYI VND VUV XAF XOF XPF".split()
)
_THREE_DECIMAL = frozenset("BHD IQD JOD KWD LYD OMR TND".split())
_FOUR_DECIMAL = frozenset("CLF UYW".split())
_TWO_DECIMAL = frozenset(
    """
    AED AFN ALL AMD ANG AOA ARS AUD AWG AZN BAM BBD BDT BGN BMD BND BOB BOV
    BRL BSD BTN BWP BYN BZD CAD CDF CHE CHF CHW CNY COP COU CRC CUP CVE CZK
    DKK DOP DZD EGP ERN ETB EUR FJD FKP GBP GEL GHS GIP GMD GTQ GYD HKD HNL
    HTG HUF IDR ILS INR IRR JMD KES KGS KHR KPW KYD KZT LAK LBP LKR LRD LSL
    MAD MDL MGA MKD MMK MNT MOP MRU MUR MVR MWK MXN MXV MYR MZN NAD NGN NIO
    NOK NPR NZD PAB PEN PGK PHP PKR PLN QAR RON RSD RUB SAR SBD SCR SDG SEK
    SGD SHP SLE SOS SRD SSP STN SVC SYP SZL THB TJS TMT TOP TRY TTD TWD TZS
    UAH USD USN UYU UZS VED VES WST XCD XCG YER ZAR ZMW ZWG
    """.split()
)

CURRENCY_EXPONENTS: dict[str, int] = {
    **{code: 0 for code in _ZERO_DECIMAL},
    **{code: 2 for code in _TWO_DECIMAL},
    **{code: 3 for code in _THREE_DECIMAL},
    **{code: 4 for code in _FOUR_DECIMAL},
}

# Largest amount a SQLite INTEGER column holds.
MAX_MINOR_UNITS = 2**63 - 1


def currency_exponent(currency_code: str) -> int:
    """Return the minor-unit exponent of an ISO 4217 currency.

    Raises:
        InvalidCurrencyError: If the code is not an ISO 4217 currency
    """
    code = (currency_code or "").strip().upper() if isinstance(currency_code, str) else ""
    if code not in CURRENCY_EXPONENTS:
        raise InvalidCurrencyError(f"Unknown currency code '{currency_code}'")
    return CURRENCY_EXPONENTS[code]


def _check_amount_range(amount: "int | Decimal") -> None:
    if amount < 0:
        raise ValidationError(f"Price amount must not be negative, got {amount}")
    if amount > MAX_MINOR_UNITS:
        raise ValidationError(f"Price amount {amount} exceeds {MAX_MINOR_UNITS} minor units")


@dataclass(frozen=True)
class Price:
    """Amount in minor units of an ISO 4217 currency."""

    amount: int
    currency: str

    @classmethod
    def from_minor_units(cls, amount: Any, currency: Any) -> "Price":
        """Build a price from persisted parts, validating both."""
        if isinstance(amount, bool) or not isinstance(amount, int):
            raise ValidationError(f"Price amount must be an integer number of minor units, got {amount!r}")
        _check_amount_range(amount)
        currency_exponent(currency)
        return cls(amount=amount, currency=currency.strip().upper())

    @property
    def exponent(self) -> int:
        return CURRENCY_EXPONENTS[self.currency]

    def to_decimal(self) -> Decimal:
        """Major-unit decimal value, e.g. ``Decimal('35.00')`` for 3500 EUR."""
        return Decimal(self.amount).scaleb(-self.exponent)

    def add(self, other: "Price") -> "Price":
        if other.currency != self.currency:
            raise ValidationError(f"Cannot add {other.currency} to {self.currency}")
        return Price(self.amount + other.amount, self.currency)

    def __str__(self) -> str:
        return f"{self.to_decimal():.{self.exponent}f} {self.currency}"


def _to_decimal(raw: Any, what: str) -> Decimal:
    if isinstance(raw, bool):
        raise ValidationError(f"Invalid {what}: {raw!r}")
    if isinstance(raw, Decimal):
        value = raw
    elif isinstance(raw, int):
        value = Decimal(raw)
    elif isinstance(raw, float):
        # repr gives the shortest string that round-trips, so 35.1 stays 35.1
        value = Decimal(repr(raw))
    elif isinstance(raw, str):
        try:
            value = parse_amount(raw)
        except ValueError as e:
            raise ValidationError(f"Invalid {what}: {e}") from e
    else:
        raise ValidationError(f"Invalid {what}: {raw!r}")
    if not value.is_finite():
        raise ValidationError(f"Invalid {what}: {raw!r}")
    return value


def to_price(raw_amount: Any, currency_code: str) -> Price:
    """Canonicalize a major-unit amount and currency code into a Price.

    Examples:
        to_price("35.00", "eur") -> Price(amount=3500, currency="EUR")
        to_price(1200, "JPY") -> Price(amount=1200, currency="JPY")

    Raises:
        InvalidCurrencyError: Unknown currency, a code in the amount string
            that differs from currency_code, or more fractional digits than
            the currency's minor unit allows
        ValidationError: Amount is malformed, negative or too large
    """
    exponent = currency_exponent(currency_code)
    code = currency_code.strip().upper()
    if isinstance(raw_amount, str):
        _, written_code = split_currency_code(raw_amount)
        if written_code is not None and written_code != code:
            raise InvalidCurrencyError(f"Amount '{raw_amount.strip()}' is not in {code}")
    amount = _to_decimal(raw_amount, "price amount")
    if amount < 0:
        raise ValidationError(f"Price amount must not be negative, got {amount}")
    scaled = amount.scaleb(exponent)
    if scaled != scaled.to_integral_value():
        raise InvalidCurrencyError(f"Amount {amount} cannot be represented in {code} minor units")
    _check_amount_range(scaled)
    return Price(amount=int(scaled), currency=code)


def to_optional_price(raw: Any) -> Optional[Price]:
    """Canonicalize an optional price given as Price, mapping or (amount, currency) pair.

    Mappings may carry minor units (``{"amount": 3500, "currency": "EUR"}``)
    or a major-unit value (``{"value": "35.00", "currency": "EUR"}``).
    """
    if raw is None:
        return None
    if isinstance(raw, Price):
        return Price.from_minor_units(raw.amount, raw.currency)
    if isinstance(raw, dict):
        if "value" in raw:
            return to_price(raw["value"], raw.get("currency"))
        return Price.from_minor_units(raw.get("amount"), raw.get("currency"))
    if isinstance(raw, (tuple, list)) and len(raw) == 2:
        return to_price(raw[0], raw[1])
    if isinstance(raw, str) and raw.strip():
        # "35.00 EUR"
        amount, _, currency = raw.strip().rpartition(" ")
        if amount:
            return to_price(amount, currency)
    raise ValidationError(f"Invalid price: {raw!r}")


class MeasureUnit(ParsableEnum):
    MILLIMETERS = "mm"
    INCHES = "in"
    METERS = "m"
    KILOMETERS = "km"
    MILES = "mi"


# Millimeters per unit.
_MM_PER_UNIT = {
    MeasureUnit.MILLIMETERS: Decimal("1"),
    MeasureUnit.INCHES: Decimal("25.4"),
    MeasureUnit.METERS: Decimal("1000"),
    MeasureUnit.KILOMETERS: Decimal("1000000"),
    MeasureUnit.MILES: Decimal("1609344"),
}

_MEASURE_QUANTUM = Decimal("0.01")


@dataclass(frozen=True)
class Measure:
    """Physical length with its unit."""

    value: Decimal
    unit: MeasureUnit

    def to(self, unit: "MeasureUnit | str") -> "Measure":
        target = _parse_unit(unit)
        converted = self.value * _MM_PER_UNIT[self.unit] / _MM_PER_UNIT[target]
        return Measure(converted.quantize(_MEASURE_QUANTUM, rounding=ROUND_HALF_EVEN), target)

    def __str__(self) -> str:
        return f"{self.value} {self.unit.value}"


def _parse_unit(unit: Any) -> MeasureUnit:
    try:
        return MeasureUnit.parse(unit)
    except ValidationError as e:
        raise InvalidUnitError(f"Unknown measure unit '{unit}'") from e


def to_measure(raw_value: Any, unit: "MeasureUnit | str" = MeasureUnit.MILLIMETERS) -> Measure:
    """Canonicalize a length into a Measure quantized to hundredths.

    Raises:
        InvalidUnitError: Unknown unit
        ValidationError: Malformed or negative value
    """
    measure_unit = _parse_unit(unit)
    value = _to_decimal(raw_value, "measure value")
    if value < 0:
        raise ValidationError(f"Measure value must not be negative, got {value}")
    try:
        quantized = value.quantize(_MEASURE_QUANTUM, rounding=ROUND_HALF_EVEN)
    except InvalidOperation as e:
        raise ValidationError(f"Invalid measure value: {raw_value!r}") from e
    return Measure(quantized, measure_unit)


def to_optional_measure(raw: Any) -> Optional[Measure]:
    """Canonicalize an optional length given as Measure, mapping or bare number (mm)."""
    if raw is None:
        return None
    if isinstance(raw, Measure):
        return to_measure(raw.value, raw.unit)
    if isinstance(raw, dict):
        return to_measure(raw.get("value"), raw.get("unit") or MeasureUnit.MILLIMETERS)
    return to_measure(raw)


def to_date(raw: Any, field: str = "date") -> date:
    """Canonicalize a date given as ``date``, ``datetime`` or string."""
    if isinstance(raw, datetime):
        return raw.date()
    if isinstance(raw, date):
        return raw
    if isinstance(raw, str) and raw.strip():
        try:
            return parse_date(raw)
        except ValueError as e:
            raise ValidationError(f"Invalid {field}: {e}") from e
    raise ValidationError(missing_field(field))


def to_optional_date(raw: Any, field: str = "date") -> Optional[date]:
    if raw is None or (isinstance(raw, str) and not raw.strip()):
        return None
    return to_date(raw, field)


_EPOCH_SINGLE = re.compile(r"^(VI|V|IV|III|II|I)([AB])?$")
_EPOCH_RANGE = re.compile(r"^(VI|V|IV|III|II|I)/(VI|V|IV|III|II|I)$")
_ROMAN_ORDER = ["I", "II", "III", "IV", "V", "VI"]


def to_epoch(raw: Optional[str]) -> Optional[str]:
    """Canonicalize an epoch: ``IV``, ``IIIb``, ``IV/V`` or ``Museum``."""
    if raw is None or not str(raw).strip():
        return None
    text = str(raw).strip().upper()
    if text == "MUSEUM":
        return "Museum"
    match = _EPOCH_SINGLE.match(text)
    if match:
        half = match.group(2)
        return match.group(1) + (half.lower() if half else "")
    match = _EPOCH_RANGE.match(text)
    if match and _ROMAN_ORDER.index(match.group(1)) < _ROMAN_ORDER.index(match.group(2)):
        return f"{match.group(1)}/{match.group(2)}"
    raise ValidationError(f"Invalid epoch '{raw}'")


_DELIVERY_YEAR = re.compile(r"^(\d{4})$")
_DELIVERY_MONTH = re.compile(r"^(\d{4})[/-](\d{1,2})$")
_DELIVERY_QUARTER = re.compile(r"^(\d{4})/Q([1-4])$", re.IGNORECASE)
_DELIVERY_ISO = re.compile(r"^\d{4}-\d{2}-\d{2}$")


def to_delivery_date(raw: Optional[str]) -> Optional[str]:
    """Canonicalize a delivery date: ``2024``, ``2024/03``, ``2024/Q1`` or ``2024-03-15``."""
    if raw is None:
        return None
    if isinstance(raw, date):
        return raw.isoformat()
    text = str(raw).strip()
    if not text:
        return None
    if _DELIVERY_YEAR.match(text):
        return text
    match = _DELIVERY_QUARTER.match(text)
    if match:
        return f"{match.group(1)}/Q{match.group(2)}"
    match = _DELIVERY_MONTH.match(text)
    if match and 1 <= int(match.group(2)) <= 12:
        return f"{match.group(1)}/{int(match.group(2)):02d}"
    if _DELIVERY_ISO.match(text):
        try:
            return date.fromisoformat(text).isoformat()
        except ValueError as e:
            raise ValidationError(f"Invalid delivery date '{raw}': {e}") from e
    raise ValidationError(f"Invalid delivery date '{raw}'")


def to_country_code(raw: Optional[str]) -> Optional[str]:
    if raw is None or not raw.strip():
        return None
    code = raw.strip().upper()
    if not re.fullmatch(r"[A-Z]{2}", code):
        raise ValidationError(f"Invalid country code '{raw}'")
    return code


def require_text(raw: Any, field: str) -> str:
    """Return stripped text, rejecting missing or blank values."""
    if raw is None or not isinstance(raw, str) or not raw.strip():
        raise ValidationError(missing_field(field))
    return raw.strip()


def optional_text(raw: Any) -> Optional[str]:
    if raw is None:
        return None
    text = str(raw).strip()
    return text or None


_TRUE = {"1", "true", "yes", "y", "on"}
_FALSE = {"0", "false", "no", "n", "off"}


def to_bool(raw: Any, field: str) -> bool:
    if isinstance(raw, bool):
        return raw
    if isinstance(raw, int) and raw in (0, 1):
        return bool(raw)
    if isinstance(raw, str) and raw.strip().lower() in _TRUE | _FALSE:
        return raw.strip().lower() in _TRUE
    raise ValidationError(f"Invalid {field}: {raw!r}")


def canonicalize_fields(
    kind: str,
    raw: dict[str, Any],
    converters: dict[str, Callable[[Any], Any]],
) -> dict[str, Any]:
    """Run every raw field through its converter.

    Raises:
        ValidationError: For a field the entity does not have, or a value
            its converter rejects
    """
    canonical = {}
    for name, value in raw.items():
        if name not in converters:
            raise ValidationError(f"{kind} has no field '{name}'")
        canonical[name] = converters[name](value)
    return canonical
