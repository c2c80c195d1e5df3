"""Domain model entities for railshed.

These are pure data classes representing the catalog and the owned
collection, independent of the database schema. Identifiers are UUID strings
assigned by the repository at creation.
"""

from dataclasses import dataclass
from datetime import date
from typing import Optional

from railshed.domain.enums import (
    AvailabilityStatus,
    Category,
    Control,
    DccInterface,
    PowerMethod,
    Priority,
    PurchaseType,
    Scale,
    ServiceLevel,
)
from railshed.domain.values import Measure, Price


@dataclass(frozen=True)
class Manufacturer:
    """Model manufacturer (brand) reference entity."""

    id: str
    name: str
    registered_company_name: Optional[str] = None
    country_code: Optional[str] = None


@dataclass(frozen=True)
class RailwayCompany:
    """Prototype railway company reference entity."""

    id: str
    name: str
    registered_company_name: Optional[str] = None
    country_code: Optional[str] = None
    status: Optional[str] = None


@dataclass(frozen=True)
class RollingStock:
    """Catalog rolling stock, a component of a railway model."""

    id: str
    railway_model_id: str
    category: Optional[Category] = None
    railway_company_id: Optional[str] = None
    road_number: Optional[str] = None
    type_name: Optional[str] = None
    series: Optional[str] = None
    depot: Optional[str] = None
    length: Optional[Measure] = None
    livery: Optional[str] = None
    service_level: Optional[ServiceLevel] = None
    control: Optional[Control] = None
    dcc_interface: Optional[DccInterface] = None
    is_dummy: bool = False


@dataclass(frozen=True)
class RailwayModel:
    """Catalog definition of a product, with its rolling stocks."""

    id: str
    manufacturer_id: str
    product_code: str
    scale: Scale
    description: Optional[str] = None
    details: Optional[str] = None
    power_method: Optional[PowerMethod] = None
    epoch: Optional[str] = None
    category: Optional[Category] = None
    delivery_date: Optional[str] = None
    availability_status: Optional[AvailabilityStatus] = None
    rolling_stocks: tuple[RollingStock, ...] = ()


@dataclass(frozen=True)
class OwnedRollingStock:
    """A rolling stock unit the owner actually has."""

    id: str
    item_id: str
    railway_id: str
    catalog_rolling_stock_id: Optional[str] = None
    notes: Optional[str] = None
    epoch: Optional[str] = None


@dataclass(frozen=True)
class PurchaseInfo:
    """One dated record in the purchase/sale lineage of a collection item."""

    id: str
    collection_item_id: str
    purchase_type: PurchaseType
    purchase_date: date
    seller_id: Optional[str] = None
    buyer_id: Optional[str] = None
    sale_date: Optional[date] = None
    purchased_price: Optional[Price] = None
    sale_price: Optional[Price] = None
    deposit: Optional[Price] = None
    preorder_total: Optional[Price] = None
    expected_date: Optional[date] = None

    @property
    def is_current(self) -> bool:
        """True while the item is still held (or pre-ordered) under this record."""
        return self.purchase_type is not PurchaseType.SOLD


@dataclass(frozen=True)
class CollectionItem:
    """Owned unit, optionally linked to a catalog railway model."""

    id: str
    collection_id: str
    manufacturer: str
    product_code: str
    railway_model_id: Optional[str] = None
    description: Optional[str] = None
    conditions: Optional[str] = None
    power_method: Optional[PowerMethod] = None
    scale: Optional[Scale] = None
    epoch: Optional[str] = None
    category: Optional[Category] = None
    quantity: int = 1
    rolling_stocks: tuple[OwnedRollingStock, ...] = ()
    purchases: tuple[PurchaseInfo, ...] = ()

    @property
    def current_purchase(self) -> Optional[PurchaseInfo]:
        for purchase in self.purchases:
            if purchase.is_current:
                return purchase
        return None


@dataclass(frozen=True)
class Collection:
    """The owner's collection with counters derived from its items."""

    id: str
    name: str
    locomotives_count: int = 0
    passenger_cars_count: int = 0
    freight_cars_count: int = 0
    train_sets_count: int = 0
    railcars_count: int = 0
    electric_multiple_units_count: int = 0
    total_value: Optional[Price] = None


@dataclass(frozen=True)
class WishListEntry:
    """A wanted item at a fixed position of its wish list."""

    id: str
    wishlist_id: str
    position: int
    referenced_item_number: Optional[str] = None
    note: Optional[str] = None
    priority: Priority = Priority.NORMAL


@dataclass(frozen=True)
class WishList:
    """Named, ordered list of wanted items."""

    id: str
    name: str
    description: Optional[str] = None
    entries: tuple[WishListEntry, ...] = ()


@dataclass(frozen=True)
class MaintenanceEvent:
    """Service event recorded against an owned rolling stock."""

    id: str
    rolling_stock_id: str
    date: date
    description: str
    sequence: int
    cost: Optional[Price] = None
    performed_by: Optional[str] = None
    next_due: Optional[date] = None


@dataclass(frozen=True)
class Page:
    """One page of search results and the cursor for the next one."""

    items: tuple = ()
    next_cursor: Optional[str] = None


@dataclass(frozen=True)
class NewRollingStock:
    """Validated input for a catalog rolling stock that does not exist yet."""

    category: Optional[Category] = None
    railway_company_id: Optional[str] = None
    road_number: Optional[str] = None
    type_name: Optional[str] = None
    series: Optional[str] = None
    depot: Optional[str] = None
    length: Optional[Measure] = None
    livery: Optional[str] = None
    service_level: Optional[ServiceLevel] = None
    control: Optional[Control] = None
    dcc_interface: Optional[DccInterface] = None
    is_dummy: bool = False


@dataclass(frozen=True)
class NewOwnedRollingStock:
    """Validated input for an owned rolling stock."""

    railway_id: str
    catalog_rolling_stock_id: Optional[str] = None
    notes: Optional[str] = None
    epoch: Optional[str] = None


@dataclass(frozen=True)
class NewPurchase:
    """Validated input for a purchase record."""

    purchase_type: PurchaseType
    purchase_date: date
    seller_id: Optional[str] = None
    purchased_price: Optional[Price] = None
    deposit: Optional[Price] = None
    preorder_total: Optional[Price] = None
    expected_date: Optional[date] = None
