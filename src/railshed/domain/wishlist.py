"""Wish list domain service."""

import logging
from typing import Any, Optional

from railshed.database.base import Database
from railshed.domain.catalog import refuse_identity_change
from railshed.domain.entities import WishList, WishListEntry
from railshed.domain.enums import Priority
from railshed.domain.errors import NotFoundError, ValidationError
from railshed.domain.values import canonicalize_fields, optional_text, require_text

logger = logging.getLogger(__name__)

WISHLIST_FIELDS = {
    "name": lambda value: require_text(value, "name"),
    "description": optional_text,
}

ENTRY_FIELDS = {
    "referenced_item_number": optional_text,
    "note": optional_text,
    "priority": lambda value: Priority.parse_optional(value) or Priority.NORMAL,
}


class WishlistService:
    """Service for managing ordered wish lists."""

    def __init__(self, db: Database):
        """Initialize wish list service.

        Args:
            db: Database instance
        """
        self.db = db

    def create(self, name: str, description: Optional[str] = None) -> WishList:
        """Create an empty wish list.

        Raises:
            ValidationError: If the name is blank
            InvariantViolationError: If the name is already taken
        """
        fields = canonicalize_fields("WishList", {"name": name, "description": description}, WISHLIST_FIELDS)
        return self.db.create_wishlist(**fields)

    def get(self, reference: str) -> WishList:
        """Get a wish list with its entries, by ID or name.

        Raises:
            NotFoundError: If the wish list does not exist
        """
        wishlist = self.db.get_wishlist(reference) or self.db.get_wishlist_by_name(reference)
        if wishlist is None:
            raise NotFoundError("Wish list", reference)
        return wishlist

    def list_wishlists(self) -> list[WishList]:
        return self.db.list_wishlists()

    def update(self, wishlist_id: str, **changes: Any) -> WishList:
        """Rename a wish list or change its description."""
        refuse_identity_change("WishList", changes)
        return self.db.update_wishlist(wishlist_id, canonicalize_fields("WishList", changes, WISHLIST_FIELDS))

    def delete(self, wishlist_id: str) -> None:
        self.db.delete_wishlist(wishlist_id)

    def add_entry(
        self,
        wishlist_id: str,
        item_number: Optional[str] = None,
        note: Optional[str] = None,
        priority: "Priority | str | None" = None,
    ) -> WishListEntry:
        """Append an entry at the tail of a wish list.

        Args:
            wishlist_id: Wish list ID
            item_number: Catalog product code of the wanted item
            note: Free text note
            priority: LOW, NORMAL (default) or HIGH

        Returns:
            Created entry, positioned after every existing entry

        Raises:
            NotFoundError: If the wish list does not exist
        """
        fields = canonicalize_fields(
            "WishListEntry",
            {"referenced_item_number": item_number, "note": note, "priority": priority},
            ENTRY_FIELDS,
        )
        return self.db.add_wishlist_entry(wishlist_id, **fields)

    def update_entry(self, entry_id: str, **changes: Any) -> WishListEntry:
        """Update item number, note or priority of an entry.

        Positions change only through reorder, move_entry and remove_entry.
        """
        refuse_identity_change("WishListEntry", changes, immutable=("wishlist_id", "position"))
        return self.db.update_wishlist_entry(entry_id, canonicalize_fields("WishListEntry", changes, ENTRY_FIELDS))

    def remove_entry(self, entry_id: str) -> None:
        """Remove an entry; the remaining entries close the gap."""
        self.db.remove_wishlist_entry(entry_id)

    def reorder(self, wishlist_id: str, ordered_ids: list[str]) -> None:
        """Put the entries of a wish list in the given order.

        Raises:
            InvariantViolationError: If ordered_ids is not exactly the list's entry ids
        """
        self.db.reorder_wishlist(wishlist_id, list(ordered_ids))
        logger.debug("Reordered wish list %s", wishlist_id)

    def move_entry(self, entry_id: str, new_position: int) -> WishList:
        """Move one entry to a new zero-based position, shifting the others."""
        with self.db.transaction():
            entry = self.db.get_wishlist_entry(entry_id)
            if entry is None:
                raise NotFoundError("Wish list entry", entry_id)
            wishlist = self.get(entry.wishlist_id)
            ids = [e.id for e in wishlist.entries]
            if isinstance(new_position, bool) or not isinstance(new_position, int) or not (
                0 <= new_position < len(ids)
            ):
                raise ValidationError(f"Position must be between 0 and {len(ids) - 1}, got {new_position!r}")
            ids.remove(entry_id)
            ids.insert(new_position, entry_id)
            return self.db.reorder_wishlist(wishlist.id, ids)
