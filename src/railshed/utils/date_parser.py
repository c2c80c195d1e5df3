"""Date parsing utilities."""

from datetime import date, timedelta
from dateutil import parser as date_parser


def parse_date(date_str: str) -> date:
    """Parse a date string into a date object.

    Supports ISO dates ("2024-01-15"), free-form absolute dates understood by
    dateutil ("15 January 2024") and the relative words "today", "yesterday"
    and "tomorrow".

    Args:
        date_str: Date string

    Returns:
        Date object

    Raises:
        ValueError: If date string cannot be parsed
    """
    text = date_str.strip().lower()
    today = date.today()

    relative_dates = {
        "today": today,
        "yesterday": today - timedelta(days=1),
        "tomorrow": today + timedelta(days=1),
    }
    if text in relative_dates:
        return relative_dates[text]

    try:
        return date.fromisoformat(text)
    except ValueError:
        pass

    try:
        return date_parser.parse(text, dayfirst=True).date()
    except (ValueError, TypeError, OverflowError) as e:
        raise ValueError(f"Could not parse date '{date_str}': {e}")
