"""Tests for WishlistService."""

import pytest

from railshed.domain.enums import Priority
from railshed.domain.errors import InvariantViolationError, NotFoundError, ValidationError


@pytest.fixture
def wishlist(wishlist_service):
    """A wish list with three entries."""
    created = wishlist_service.create("Italian stock", "FS epoch IV")
    for number in ("40152", "60480", "45001"):
        wishlist_service.add_entry(created.id, item_number=number)
    return wishlist_service.get(created.id)


def _positions(wishlist):
    return [(entry.position, entry.referenced_item_number) for entry in wishlist.entries]


def test_entries_are_appended_densely(wishlist):
    assert _positions(wishlist) == [(0, "40152"), (1, "60480"), (2, "45001")]


def test_get_by_name(wishlist_service, wishlist):
    assert wishlist_service.get("Italian stock").id == wishlist.id


def test_get_unknown(wishlist_service):
    with pytest.raises(NotFoundError):
        wishlist_service.get("nothing")


def test_duplicate_name(wishlist_service, wishlist):
    with pytest.raises(InvariantViolationError):
        wishlist_service.create("Italian stock")


def test_default_and_explicit_priority(wishlist_service, wishlist):
    assert wishlist.entries[0].priority is Priority.NORMAL
    entry = wishlist_service.add_entry(wishlist.id, item_number="1", priority="high")
    assert entry.priority is Priority.HIGH
    assert entry.position == 3


def test_add_to_unknown_list(wishlist_service):
    with pytest.raises(NotFoundError):
        wishlist_service.add_entry("missing", item_number="1")


def test_remove_closes_gap(wishlist_service, wishlist):
    wishlist_service.remove_entry(wishlist.entries[0].id)
    assert _positions(wishlist_service.get(wishlist.id)) == [(0, "60480"), (1, "45001")]


def test_reorder(wishlist_service, wishlist):
    ids = [entry.id for entry in wishlist.entries]
    wishlist_service.reorder(wishlist.id, [ids[2], ids[0], ids[1]])
    assert _positions(wishlist_service.get(wishlist.id)) == [(0, "45001"), (1, "40152"), (2, "60480")]


@pytest.mark.parametrize("pick", [lambda ids: ids[:2], lambda ids: ids + ["extra"], lambda ids: [ids[0]] * 3])
def test_reorder_requires_exact_id_set(wishlist_service, wishlist, pick):
    ids = [entry.id for entry in wishlist.entries]
    with pytest.raises(InvariantViolationError):
        wishlist_service.reorder(wishlist.id, pick(ids))
    assert _positions(wishlist_service.get(wishlist.id)) == _positions(wishlist)


def test_move_entry(wishlist_service, wishlist):
    moved = wishlist_service.move_entry(wishlist.entries[0].id, 2)
    assert _positions(moved) == [(0, "60480"), (1, "45001"), (2, "40152")]


def test_move_entry_out_of_range(wishlist_service, wishlist):
    with pytest.raises(ValidationError):
        wishlist_service.move_entry(wishlist.entries[0].id, 3)


def test_position_is_not_editable(wishlist_service, wishlist):
    with pytest.raises(InvariantViolationError):
        wishlist_service.update_entry(wishlist.entries[0].id, position=2)


def test_update_entry(wishlist_service, wishlist):
    updated = wishlist_service.update_entry(wishlist.entries[1].id, note="only with sound", priority="LOW")
    assert updated.note == "only with sound"
    assert updated.priority is Priority.LOW
    assert updated.position == 1


def test_rename_and_delete(wishlist_service, wishlist):
    renamed = wishlist_service.update(wishlist.id, name="FS")
    assert renamed.name == "FS"
    assert len(renamed.entries) == 3

    wishlist_service.delete(wishlist.id)
    assert wishlist_service.list_wishlists() == []
