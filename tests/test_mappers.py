"""Tests for database mappers."""

from datetime import date
from decimal import Decimal

from railshed.database.mappers import (
    collection_item_to_domain,
    measure_from_columns,
    price_from_columns,
    purchase_info_to_domain,
    railway_model_to_domain,
    to_columns,
    wishlist_to_domain,
)
from railshed.database.models import (
    CollectionItem as ORMCollectionItem,
    OwnedRollingStock as ORMOwnedRollingStock,
    PurchaseInfo as ORMPurchaseInfo,
    RailwayModel as ORMRailwayModel,
    RollingStock as ORMRollingStock,
    WishList as ORMWishList,
    WishListEntry as ORMWishListEntry,
)
from railshed.domain.entities import CollectionItem, RailwayModel
from railshed.domain.enums import Category, Control, Priority, PurchaseType, Scale
from railshed.domain.values import Measure, MeasureUnit, Price


class TestToColumns:
    """Tests for flattening domain values into columns."""

    def test_price_and_measure_expand(self):
        columns = to_columns(
            {
                "purchased_price": Price(3500, "EUR"),
                "length": Measure(Decimal("150.00"), MeasureUnit.MILLIMETERS),
                "scale": Scale.H0,
                "description": "Ghkrs",
            }
        )
        assert columns == {
            "purchased_price_amount": 3500,
            "purchased_price_currency": "EUR",
            "length_value": "150.00",
            "length_unit": "mm",
            "scale": "H0",
            "description": "Ghkrs",
        }

    def test_none_clears_both_columns(self):
        assert to_columns({"cost": None, "length": None}) == {
            "cost_amount": None,
            "cost_currency": None,
            "length_value": None,
            "length_unit": None,
        }

    def test_column_pairs_back_to_values(self):
        assert price_from_columns(3500, "EUR") == Price(3500, "EUR")
        assert price_from_columns(None, None) is None
        assert measure_from_columns("150.00", "mm") == Measure(Decimal("150.00"), MeasureUnit.MILLIMETERS)
        assert measure_from_columns(None, None) is None


class TestEntityMappers:
    """Tests for ORM to domain conversion."""

    def test_railway_model_with_rolling_stocks(self):
        orm_model = ORMRailwayModel(
            id="rm1", manufacturer_id="m1", product_code="40152", scale="H0", category="FREIGHT_CAR"
        )
        orm_stock = ORMRollingStock(
            id="rs1", railway_model_id="rm1", road_number="21 83", control="DCC_READY", is_dummy=False
        )

        model = railway_model_to_domain(orm_model, [orm_stock])

        assert isinstance(model, RailwayModel)
        assert model.scale is Scale.H0
        assert model.category is Category.FREIGHT_CAR
        assert model.power_method is None
        assert model.rolling_stocks[0].control is Control.DCC_READY
        assert model.rolling_stocks[0].length is None

    def test_collection_item_with_children(self):
        orm_item = ORMCollectionItem(
            id="i1", collection_id="c1", manufacturer="ACME", product_code="40152", quantity=2
        )
        orm_stock = ORMOwnedRollingStock(id="o1", item_id="i1", railway_id="r1")
        orm_purchase = ORMPurchaseInfo(
            id="p1",
            collection_item_id="i1",
            purchase_type="BOUGHT",
            purchase_date=date(2024, 3, 1),
            purchased_price_amount=3500,
            purchased_price_currency="EUR",
        )

        item = collection_item_to_domain(orm_item, [orm_stock], [orm_purchase])

        assert isinstance(item, CollectionItem)
        assert item.quantity == 2
        assert item.rolling_stocks[0].railway_id == "r1"
        assert item.current_purchase.purchased_price == Price(3500, "EUR")

    def test_sold_purchase(self):
        orm_purchase = ORMPurchaseInfo(
            id="p1",
            collection_item_id="i1",
            purchase_type="SOLD",
            purchase_date=date(2024, 3, 1),
            sale_date=date(2024, 6, 1),
        )
        purchase = purchase_info_to_domain(orm_purchase)
        assert purchase.purchase_type is PurchaseType.SOLD
        assert not purchase.is_current
        assert purchase.purchased_price is None

    def test_wishlist_entries_keep_given_order(self):
        entries = [
            ORMWishListEntry(id="e1", wishlist_id="w1", position=0, priority="HIGH"),
            ORMWishListEntry(id="e2", wishlist_id="w1", position=1, priority="NORMAL"),
        ]
        wishlist = wishlist_to_domain(ORMWishList(id="w1", name="Wanted"), entries)
        assert [e.id for e in wishlist.entries] == ["e1", "e2"]
        assert wishlist.entries[0].priority is Priority.HIGH
