"""Closed enumerations for catalog and collection fields.

Values are stored in their canonical spelling (the enum value). Parsing is
case-insensitive and also accepts the member name, so both ``"h0"`` and
``"H0"`` resolve to ``Scale.H0`` and ``"dcc_ready"`` resolves to
``Control.DCC_READY``.
"""

from enum import Enum
from typing import Optional, TypeVar

from railshed.domain.errors import ValidationError

E = TypeVar("E", bound="ParsableEnum")


class ParsableEnum(str, Enum):
    """String enum with a lenient, case-insensitive parser."""

    @classmethod
    def parse(cls: type[E], raw: "str | E") -> E:
        """Parse a raw value into a member.

        Raises:
            ValidationError: If the value matches no member
        """
        if isinstance(raw, cls):
            return raw
        if not isinstance(raw, str) or not raw.strip():
            raise ValidationError(f"Invalid {cls.label()}: {raw!r}")
        key = raw.strip().upper().replace("-", "_").replace(" ", "_")
        for member in cls:
            if key in (member.value.upper(), member.name):
                return member
        allowed = ", ".join(member.value for member in cls)
        raise ValidationError(f"Invalid {cls.label()} '{raw}'. Expected one of: {allowed}")

    @classmethod
    def parse_optional(cls: type[E], raw: "Optional[str | E]") -> Optional[E]:
        """Parse a value, mapping None and empty strings to None."""
        if raw is None or (isinstance(raw, str) and not raw.strip()):
            return None
        return cls.parse(raw)

    @classmethod
    def label(cls) -> str:
        """Human readable name used in error messages."""
        return "".join(f" {c.lower()}" if c.isupper() else c for c in cls.__name__).strip()


class Scale(ParsableEnum):
    """Model railway scales."""

    H0 = "H0"
    H0M = "H0m"
    H0E = "H0e"
    N = "N"
    TT = "TT"
    Z = "Z"
    G = "G"
    SCALE_1 = "1"
    SCALE_0 = "0"
    SCALE_00 = "00"

    @property
    def ratio(self) -> float:
        """Denominator of the ``1:ratio`` notation."""
        return _SCALE_RATIOS[self]


_SCALE_RATIOS = {
    Scale.H0: 87.0,
    Scale.H0M: 87.0,
    Scale.H0E: 87.0,
    Scale.N: 160.0,
    Scale.TT: 120.0,
    Scale.Z: 220.0,
    Scale.G: 22.5,
    Scale.SCALE_1: 32.0,
    Scale.SCALE_0: 43.5,
    Scale.SCALE_00: 76.2,
}


class PowerMethod(ParsableEnum):
    AC = "AC"
    DC = "DC"
    TRIX_EXPRESS = "TRIX_EXPRESS"
    NONE = "NONE"


class Category(ParsableEnum):
    LOCOMOTIVE = "LOCOMOTIVE"
    PASSENGER_CAR = "PASSENGER_CAR"
    FREIGHT_CAR = "FREIGHT_CAR"
    ELECTRIC_MULTIPLE_UNIT = "ELECTRIC_MULTIPLE_UNIT"
    RAILCAR = "RAILCAR"
    TRAIN_SET = "TRAIN_SET"


class Control(ParsableEnum):
    DCC_READY = "DCC_READY"
    DCC_DECODER_INSTALLED = "DCC_DECODER_INSTALLED"
    DCC_SOUND = "DCC_SOUND"
    NO_DCC = "NO_DCC"

    @property
    def dcc_capable(self) -> bool:
        return self is not Control.NO_DCC


DCC_CAPABLE_CONTROLS = tuple(c.value for c in Control if c.dcc_capable)


class DccInterface(ParsableEnum):
    NEM_651 = "NEM_651"
    NEM_652 = "NEM_652"
    NEM_654 = "NEM_654"
    PLUX_8 = "PLUX_8"
    PLUX_12 = "PLUX_12"
    PLUX_16 = "PLUX_16"
    PLUX_22 = "PLUX_22"
    NEXT_18 = "NEXT_18"
    NEXT_18_S = "NEXT_18_S"
    MTC_21 = "MTC_21"


class AvailabilityStatus(ParsableEnum):
    ANNOUNCED = "ANNOUNCED"
    AVAILABLE = "AVAILABLE"
    CANCELLED = "CANCELLED"
    DISCONTINUED = "DISCONTINUED"


class ServiceLevel(ParsableEnum):
    FIRST = "1cl"
    SECOND = "2cl"
    THIRD = "3cl"
    FIRST_SECOND = "1cl/2cl"
    SECOND_THIRD = "2cl/3cl"
    FIRST_SECOND_THIRD = "1cl/2cl/3cl"


class PurchaseType(ParsableEnum):
    BOUGHT = "BOUGHT"
    PREORDER = "PREORDER"
    SOLD = "SOLD"


class Priority(ParsableEnum):
    LOW = "LOW"
    NORMAL = "NORMAL"
    HIGH = "HIGH"
