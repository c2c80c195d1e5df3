"""Mapper functions to convert between domain models and SQLAlchemy models.

Prices are persisted as ``<field>_amount``/``<field>_currency`` column pairs
and measures as ``<field>_value``/``<field>_unit``. The helpers here are the
only place that knows about that flattening.
"""

from decimal import Decimal
from enum import Enum
from typing import Any, Optional

from railshed.domain import entities as domain
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
from railshed.domain.values import Measure, MeasureUnit, Price
from railshed.database.models import (
    Collection as ORMCollection,
    CollectionItem as ORMCollectionItem,
    MaintenanceEvent as ORMMaintenanceEvent,
    Manufacturer as ORMManufacturer,
    OwnedRollingStock as ORMOwnedRollingStock,
    PurchaseInfo as ORMPurchaseInfo,
    RailwayCompany as ORMRailwayCompany,
    RailwayModel as ORMRailwayModel,
    RollingStock as ORMRollingStock,
    WishList as ORMWishList,
    WishListEntry as ORMWishListEntry,
)

PRICE_FIELDS = frozenset(
    {"purchased_price", "sale_price", "deposit", "preorder_total", "cost", "total_value"}
)
MEASURE_FIELDS = frozenset({"length"})


def to_columns(fields: dict[str, Any]) -> dict[str, Any]:
    """Flatten domain values into column values.

    Enums become their value, prices and measures expand into their column
    pairs (both set to NULL when the value is None).
    """
    columns: dict[str, Any] = {}
    for name, value in fields.items():
        if name in PRICE_FIELDS:
            columns[f"{name}_amount"] = value.amount if value is not None else None
            columns[f"{name}_currency"] = value.currency if value is not None else None
        elif name in MEASURE_FIELDS:
            columns[f"{name}_value"] = str(value.value) if value is not None else None
            columns[f"{name}_unit"] = value.unit.value if value is not None else None
        elif isinstance(value, Enum):
            columns[name] = value.value
        else:
            columns[name] = value
    return columns


def price_from_columns(amount: Optional[int], currency: Optional[str]) -> Optional[Price]:
    if currency is None or amount is None:
        return None
    return Price.from_minor_units(amount, currency)


def measure_from_columns(value: Optional[str], unit: Optional[str]) -> Optional[Measure]:
    if value is None:
        return None
    return Measure(Decimal(value), MeasureUnit.parse(unit or MeasureUnit.MILLIMETERS.value))


def _enum(enum_cls, value):
    return enum_cls(value) if value is not None else None


def manufacturer_to_domain(orm: ORMManufacturer) -> domain.Manufacturer:
    """Convert SQLAlchemy Manufacturer model to domain Manufacturer entity."""
    return domain.Manufacturer(
        id=orm.id,
        name=orm.name,
        registered_company_name=orm.registered_company_name,
        country_code=orm.country_code,
    )


def railway_company_to_domain(orm: ORMRailwayCompany) -> domain.RailwayCompany:
    """Convert SQLAlchemy RailwayCompany model to domain RailwayCompany entity."""
    return domain.RailwayCompany(
        id=orm.id,
        name=orm.name,
        registered_company_name=orm.registered_company_name,
        country_code=orm.country_code,
        status=orm.status,
    )


def rolling_stock_to_domain(orm: ORMRollingStock) -> domain.RollingStock:
    """Convert SQLAlchemy RollingStock model to domain RollingStock entity."""
    return domain.RollingStock(
        id=orm.id,
        railway_model_id=orm.railway_model_id,
        category=_enum(Category, orm.category),
        railway_company_id=orm.railway_company_id,
        road_number=orm.road_number,
        type_name=orm.type_name,
        series=orm.series,
        depot=orm.depot,
        length=measure_from_columns(orm.length_value, orm.length_unit),
        livery=orm.livery,
        service_level=_enum(ServiceLevel, orm.service_level),
        control=_enum(Control, orm.control),
        dcc_interface=_enum(DccInterface, orm.dcc_interface),
        is_dummy=bool(orm.is_dummy),
    )


def railway_model_to_domain(
    orm: ORMRailwayModel, rolling_stocks: list[ORMRollingStock]
) -> domain.RailwayModel:
    """Convert SQLAlchemy RailwayModel model and its rolling stocks to a domain entity."""
    return domain.RailwayModel(
        id=orm.id,
        manufacturer_id=orm.manufacturer_id,
        product_code=orm.product_code,
        scale=Scale(orm.scale),
        description=orm.description,
        details=orm.details,
        power_method=_enum(PowerMethod, orm.power_method),
        epoch=orm.epoch,
        category=_enum(Category, orm.category),
        delivery_date=orm.delivery_date,
        availability_status=_enum(AvailabilityStatus, orm.availability_status),
        rolling_stocks=tuple(rolling_stock_to_domain(rs) for rs in rolling_stocks),
    )


def owned_rolling_stock_to_domain(orm: ORMOwnedRollingStock) -> domain.OwnedRollingStock:
    """Convert SQLAlchemy OwnedRollingStock model to domain entity."""
    return domain.OwnedRollingStock(
        id=orm.id,
        item_id=orm.item_id,
        railway_id=orm.railway_id,
        catalog_rolling_stock_id=orm.catalog_rolling_stock_id,
        notes=orm.notes,
        epoch=orm.epoch,
    )


def purchase_info_to_domain(orm: ORMPurchaseInfo) -> domain.PurchaseInfo:
    """Convert SQLAlchemy PurchaseInfo model to domain entity."""
    return domain.PurchaseInfo(
        id=orm.id,
        collection_item_id=orm.collection_item_id,
        purchase_type=PurchaseType(orm.purchase_type),
        purchase_date=orm.purchase_date,
        seller_id=orm.seller_id,
        buyer_id=orm.buyer_id,
        sale_date=orm.sale_date,
        purchased_price=price_from_columns(orm.purchased_price_amount, orm.purchased_price_currency),
        sale_price=price_from_columns(orm.sale_price_amount, orm.sale_price_currency),
        deposit=price_from_columns(orm.deposit_amount, orm.deposit_currency),
        preorder_total=price_from_columns(orm.preorder_total_amount, orm.preorder_total_currency),
        expected_date=orm.expected_date,
    )


def collection_item_to_domain(
    orm: ORMCollectionItem,
    rolling_stocks: list[ORMOwnedRollingStock],
    purchases: list[ORMPurchaseInfo],
) -> domain.CollectionItem:
    """Convert SQLAlchemy CollectionItem model and its children to a domain entity."""
    return domain.CollectionItem(
        id=orm.id,
        collection_id=orm.collection_id,
        manufacturer=orm.manufacturer,
        product_code=orm.product_code,
        railway_model_id=orm.railway_model_id,
        description=orm.description,
        conditions=orm.conditions,
        power_method=_enum(PowerMethod, orm.power_method),
        scale=_enum(Scale, orm.scale),
        epoch=orm.epoch,
        category=_enum(Category, orm.category),
        quantity=orm.quantity,
        rolling_stocks=tuple(owned_rolling_stock_to_domain(rs) for rs in rolling_stocks),
        purchases=tuple(purchase_info_to_domain(p) for p in purchases),
    )


def collection_to_domain(orm: ORMCollection) -> domain.Collection:
    """Convert SQLAlchemy Collection model to domain Collection entity."""
    return domain.Collection(
        id=orm.id,
        name=orm.name,
        locomotives_count=orm.locomotives_count,
        passenger_cars_count=orm.passenger_cars_count,
        freight_cars_count=orm.freight_cars_count,
        train_sets_count=orm.train_sets_count,
        railcars_count=orm.railcars_count,
        electric_multiple_units_count=orm.electric_multiple_units_count,
        total_value=price_from_columns(orm.total_value_amount, orm.total_value_currency),
    )


def wishlist_entry_to_domain(orm: ORMWishListEntry) -> domain.WishListEntry:
    """Convert SQLAlchemy WishListEntry model to domain entity."""
    return domain.WishListEntry(
        id=orm.id,
        wishlist_id=orm.wishlist_id,
        position=orm.position,
        referenced_item_number=orm.referenced_item_number,
        note=orm.note,
        priority=Priority(orm.priority),
    )


def wishlist_to_domain(orm: ORMWishList, entries: list[ORMWishListEntry]) -> domain.WishList:
    """Convert SQLAlchemy WishList model and its entries to a domain entity."""
    return domain.WishList(
        id=orm.id,
        name=orm.name,
        description=orm.description,
        entries=tuple(wishlist_entry_to_domain(e) for e in entries),
    )


def maintenance_event_to_domain(orm: ORMMaintenanceEvent) -> domain.MaintenanceEvent:
    """Convert SQLAlchemy MaintenanceEvent model to domain entity."""
    return domain.MaintenanceEvent(
        id=orm.id,
        rolling_stock_id=orm.rolling_stock_id,
        date=orm.date,
        description=orm.description,
        sequence=orm.sequence,
        cost=price_from_columns(orm.cost_amount, orm.cost_currency),
        performed_by=orm.performed_by,
        next_due=orm.next_due,
    )
