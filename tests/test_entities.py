"""Tests for domain entities."""

import dataclasses
from datetime import date

import pytest

from railshed.domain.entities import CollectionItem, Manufacturer, PurchaseInfo, WishListEntry
from railshed.domain.enums import Priority, PurchaseType


def _purchase(purchase_id, purchase_type):
    return PurchaseInfo(
        id=purchase_id,
        collection_item_id="i1",
        purchase_type=purchase_type,
        purchase_date=date(2024, 3, 1),
    )


class TestManufacturer:
    """Tests for Manufacturer entity."""

    def test_immutability(self):
        manufacturer = Manufacturer(id="m1", name="ACME")
        with pytest.raises(dataclasses.FrozenInstanceError):
            manufacturer.name = "Rivarossi"

    def test_equality(self):
        assert Manufacturer(id="m1", name="ACME") == Manufacturer(id="m1", name="ACME")
        assert Manufacturer(id="m1", name="ACME") != Manufacturer(id="m2", name="ACME")


class TestPurchaseInfo:
    """Tests for purchase lineage helpers."""

    @pytest.mark.parametrize(
        "purchase_type, current",
        [(PurchaseType.BOUGHT, True), (PurchaseType.PREORDER, True), (PurchaseType.SOLD, False)],
    )
    def test_is_current(self, purchase_type, current):
        assert _purchase("p1", purchase_type).is_current is current


class TestCollectionItem:
    """Tests for CollectionItem entity."""

    def test_defaults(self):
        item = CollectionItem(id="i1", collection_id="c1", manufacturer="ACME", product_code="40152")
        assert item.quantity == 1
        assert item.rolling_stocks == ()
        assert item.current_purchase is None

    def test_current_purchase_skips_sold_records(self):
        sold = _purchase("p1", PurchaseType.SOLD)
        bought = _purchase("p2", PurchaseType.BOUGHT)
        item = CollectionItem(
            id="i1", collection_id="c1", manufacturer="ACME", product_code="40152", purchases=(sold, bought)
        )
        assert item.current_purchase == bought


def test_wishlist_entry_default_priority():
    entry = WishListEntry(id="e1", wishlist_id="w1", position=0)
    assert entry.priority is Priority.NORMAL
