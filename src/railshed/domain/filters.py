"""Filter and paging options for collection and catalog searches."""

import base64
import binascii
import json
from dataclasses import dataclass
from typing import Any, Optional

from railshed.domain.enums import Category, Scale
from railshed.domain.errors import ValidationError
from railshed.domain.values import optional_text, to_epoch

DEFAULT_PAGE_SIZE = 50
MAX_PAGE_SIZE = 500


@dataclass(frozen=True)
class CollectionFilter:
    """Search options, all optional and combined with AND.

    ``brand``, ``scale``, ``epoch`` and ``category`` are exact matches,
    ``road_number`` is a prefix match, ``text`` is a case-insensitive
    substring match over description and product code.
    """

    brand: Optional[str] = None
    scale: Optional[Scale] = None
    epoch: Optional[str] = None
    category: Optional[Category] = None
    livery: Optional[str] = None
    depot: Optional[str] = None
    road_number: Optional[str] = None
    dcc_capable: Optional[bool] = None
    text: Optional[str] = None

    @classmethod
    def create(
        cls,
        brand: Optional[str] = None,
        scale: Any = None,
        epoch: Optional[str] = None,
        category: Any = None,
        livery: Optional[str] = None,
        depot: Optional[str] = None,
        road_number: Optional[str] = None,
        dcc_capable: Optional[bool] = None,
        text: Optional[str] = None,
    ) -> "CollectionFilter":
        """Build a filter from raw values, canonicalizing each one."""
        if dcc_capable is not None and not isinstance(dcc_capable, bool):
            raise ValidationError(f"dcc_capable must be a boolean, got {dcc_capable!r}")
        return cls(
            brand=optional_text(brand),
            scale=Scale.parse_optional(scale),
            epoch=to_epoch(epoch),
            category=Category.parse_optional(category),
            livery=optional_text(livery),
            depot=optional_text(depot),
            road_number=optional_text(road_number),
            dcc_capable=dcc_capable,
            text=optional_text(text),
        )


@dataclass(frozen=True)
class PageRequest:
    """Page size and the cursor returned with the previous page."""

    limit: int = DEFAULT_PAGE_SIZE
    cursor: Optional[str] = None

    def __post_init__(self):
        if isinstance(self.limit, bool) or not isinstance(self.limit, int):
            raise ValidationError(f"Page limit must be an integer, got {self.limit!r}")
        if not 1 <= self.limit <= MAX_PAGE_SIZE:
            raise ValidationError(f"Page limit must be between 1 and {MAX_PAGE_SIZE}")

    @property
    def after(self) -> Optional[tuple[str, str]]:
        if self.cursor is None:
            return None
        return decode_cursor(self.cursor)


def encode_cursor(sort_description: str, entity_id: str) -> str:
    """Encode the sort key of the last row of a page as an opaque token."""
    payload = json.dumps([sort_description, entity_id], separators=(",", ":"))
    return base64.urlsafe_b64encode(payload.encode("utf-8")).decode("ascii")


def decode_cursor(cursor: str) -> tuple[str, str]:
    """Decode a cursor produced by :func:`encode_cursor`."""
    try:
        description, entity_id = json.loads(base64.urlsafe_b64decode(cursor.encode("ascii")))
    except (ValueError, TypeError, binascii.Error, UnicodeError) as e:
        raise ValidationError(f"Invalid page cursor '{cursor}'") from e
    if not isinstance(description, str) or not isinstance(entity_id, str):
        raise ValidationError(f"Invalid page cursor '{cursor}'")
    return description, entity_id
