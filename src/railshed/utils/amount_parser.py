"""Amount parsing utilities."""

from decimal import Decimal, InvalidOperation
import re
from typing import Optional

_CURRENCY_CODE = re.compile(r"^([A-Za-z]{3})\s+|\s+([A-Za-z]{3})$")


def split_currency_code(amount_str: str) -> tuple[str, Optional[str]]:
    """Split a leading or trailing ISO code off an amount string.

    Returns:
        The remaining amount text and the upper-cased code, or None when
        the string carries no code
    """
    text = amount_str.strip()
    match = _CURRENCY_CODE.search(text)
    if match is None:
        return text, None
    code = match.group(1) or match.group(2)
    return (text[: match.start()] + text[match.end():]).strip(), code.upper()


def parse_amount(amount_str: str) -> Decimal:
    """Parse a major-unit amount string into a Decimal.

    Handles the usual ways prices are typed in:
    - "35.00", "35"
    - "€35.00", "35.00 EUR"
    - "1,234.56" (comma thousands separator)
    - "1.234,56" and "35,00" (comma decimal separator)

    A currency code in the string is dropped; use split_currency_code first
    when it has to be checked.

    Args:
        amount_str: Amount string

    Returns:
        Decimal amount

    Raises:
        ValueError: If amount string cannot be parsed
    """
    if not amount_str or not amount_str.strip():
        raise ValueError("Empty amount string")

    cleaned, _ = split_currency_code(amount_str)

    # Strip currency symbols
    cleaned = re.sub(r"[$€£¥]", "", cleaned)
    cleaned = cleaned.replace(" ", "").replace("'", "")

    # The right-most separator is the decimal one when both appear
    if "," in cleaned and "." in cleaned:
        if cleaned.rfind(",") > cleaned.rfind("."):
            cleaned = cleaned.replace(".", "").replace(",", ".")
        else:
            cleaned = cleaned.replace(",", "")
    elif "," in cleaned:
        head, _, tail = cleaned.rpartition(",")
        if len(tail) == 3 and head:
            # 1,234 reads as a thousands separator
            cleaned = cleaned.replace(",", "")
        else:
            cleaned = cleaned.replace(",", ".")

    try:
        return Decimal(cleaned)
    except InvalidOperation as e:
        raise ValueError(f"Could not parse amount '{amount_str}'") from e
