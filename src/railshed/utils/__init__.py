"""Utility functions for railshed."""

from railshed.utils.date_parser import parse_date
from railshed.utils.amount_parser import parse_amount

__all__ = ["parse_date", "parse_amount"]
