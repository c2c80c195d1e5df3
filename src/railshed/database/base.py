"""Abstract database interface."""

from abc import ABC, abstractmethod
from contextlib import AbstractContextManager
from datetime import date
from typing import Any, Optional

# Import entities directly to avoid circular import through domain/__init__.py
from railshed.domain.entities import (
    Collection,
    CollectionItem,
    MaintenanceEvent,
    Manufacturer,
    NewOwnedRollingStock,
    NewPurchase,
    NewRollingStock,
    OwnedRollingStock,
    Page,
    PurchaseInfo,
    RailwayCompany,
    RailwayModel,
    RollingStock,
    WishList,
    WishListEntry,
)
from railshed.domain.enums import Priority
from railshed.domain.filters import CollectionFilter, PageRequest
from railshed.domain.values import Price


class Database(ABC):
    """Abstract database interface for railshed.

    Every write method runs as a single unit of work: either all of its rows
    are committed or none are. ``transaction()`` groups several calls into one
    unit of work; calls made inside it join the outer transaction.
    """

    @abstractmethod
    def connect(self) -> None:
        """Connect to the database."""
        pass

    @abstractmethod
    def disconnect(self) -> None:
        """Disconnect from the database."""
        pass

    @abstractmethod
    def initialize_schema(self) -> int:
        """Apply pending schema migrations. Returns the schema version."""
        pass

    @abstractmethod
    def schema_version(self) -> int:
        """Return the persisted schema version."""
        pass

    @abstractmethod
    def transaction(self) -> AbstractContextManager:
        """Open (or join) a unit of work."""
        pass

    # Manufacturer operations
    @abstractmethod
    def create_manufacturer(
        self, name: str, registered_company_name: Optional[str] = None, country_code: Optional[str] = None
    ) -> Manufacturer:
        """Create a manufacturer with a unique name."""
        pass

    @abstractmethod
    def get_manufacturer(self, manufacturer_id: str) -> Optional[Manufacturer]:
        pass

    @abstractmethod
    def get_manufacturer_by_name(self, name: str) -> Optional[Manufacturer]:
        pass

    @abstractmethod
    def list_manufacturers(self) -> list[Manufacturer]:
        pass

    @abstractmethod
    def update_manufacturer(self, manufacturer_id: str, fields: dict[str, Any]) -> Manufacturer:
        pass

    @abstractmethod
    def delete_manufacturer(self, manufacturer_id: str) -> None:
        """Delete a manufacturer and, by cascade, its railway models."""
        pass

    # Railway company operations
    @abstractmethod
    def create_railway_company(
        self,
        name: str,
        registered_company_name: Optional[str] = None,
        country_code: Optional[str] = None,
        status: Optional[str] = None,
    ) -> RailwayCompany:
        """Create a railway company with a unique name."""
        pass

    @abstractmethod
    def get_railway_company(self, company_id: str) -> Optional[RailwayCompany]:
        pass

    @abstractmethod
    def get_railway_company_by_name(self, name: str) -> Optional[RailwayCompany]:
        pass

    @abstractmethod
    def list_railway_companies(self) -> list[RailwayCompany]:
        pass

    @abstractmethod
    def update_railway_company(self, company_id: str, fields: dict[str, Any]) -> RailwayCompany:
        pass

    @abstractmethod
    def delete_railway_company(self, company_id: str) -> None:
        """Delete a railway company and every rolling stock that refers to it."""
        pass

    # Catalog operations
    @abstractmethod
    def create_railway_model(
        self, fields: dict[str, Any], rolling_stocks: list[NewRollingStock]
    ) -> RailwayModel:
        """Create a railway model together with its rolling stocks."""
        pass

    @abstractmethod
    def get_railway_model(self, model_id: str) -> Optional[RailwayModel]:
        pass

    @abstractmethod
    def list_railway_models(self, manufacturer_id: Optional[str] = None) -> list[RailwayModel]:
        pass

    @abstractmethod
    def update_railway_model(self, model_id: str, fields: dict[str, Any]) -> RailwayModel:
        pass

    @abstractmethod
    def delete_railway_model(self, model_id: str) -> None:
        """Delete a railway model, its rolling stocks, and null weak references to them."""
        pass

    @abstractmethod
    def add_rolling_stock(self, model_id: str, rolling_stock: NewRollingStock) -> RollingStock:
        pass

    @abstractmethod
    def get_rolling_stock(self, rolling_stock_id: str) -> Optional[RollingStock]:
        pass

    @abstractmethod
    def update_rolling_stock(self, rolling_stock_id: str, fields: dict[str, Any]) -> RollingStock:
        pass

    @abstractmethod
    def delete_rolling_stock(self, rolling_stock_id: str) -> None:
        """Delete a rolling stock unless it is the last one of its model."""
        pass

    # Collection operations
    @abstractmethod
    def get_collection(self) -> Collection:
        """Return the collection, creating it on first use."""
        pass

    @abstractmethod
    def create_collection_item(
        self,
        fields: dict[str, Any],
        rolling_stocks: list[NewOwnedRollingStock],
        purchase: Optional[NewPurchase] = None,
    ) -> CollectionItem:
        """Create an item with its owned rolling stocks and first purchase record."""
        pass

    @abstractmethod
    def get_collection_item(self, item_id: str) -> Optional[CollectionItem]:
        pass

    @abstractmethod
    def list_collection_items(self) -> list[CollectionItem]:
        pass

    @abstractmethod
    def update_collection_item(self, item_id: str, fields: dict[str, Any]) -> CollectionItem:
        pass

    @abstractmethod
    def delete_collection_item(self, item_id: str) -> None:
        pass

    @abstractmethod
    def add_owned_rolling_stock(
        self, item_id: str, rolling_stock: NewOwnedRollingStock
    ) -> OwnedRollingStock:
        pass

    @abstractmethod
    def get_owned_rolling_stock(self, rolling_stock_id: str) -> Optional[OwnedRollingStock]:
        pass

    @abstractmethod
    def update_owned_rolling_stock(self, rolling_stock_id: str, fields: dict[str, Any]) -> OwnedRollingStock:
        pass

    @abstractmethod
    def delete_owned_rolling_stock(self, rolling_stock_id: str) -> None:
        pass

    @abstractmethod
    def add_purchase(self, item_id: str, purchase: NewPurchase) -> PurchaseInfo:
        """Append a purchase record; at most one record per item may be current."""
        pass

    @abstractmethod
    def record_sale(
        self,
        purchase_id: str,
        sale_date: date,
        buyer_id: Optional[str] = None,
        sale_price: Optional[Price] = None,
    ) -> PurchaseInfo:
        """Close the current purchase record of an item as sold."""
        pass

    @abstractmethod
    def list_purchases(self, item_id: str) -> list[PurchaseInfo]:
        pass

    # Search operations
    @abstractmethod
    def search_collection_items(self, flt: CollectionFilter, page: PageRequest) -> Page:
        pass

    @abstractmethod
    def search_railway_models(self, flt: CollectionFilter, page: PageRequest) -> Page:
        pass

    # Wish list operations
    @abstractmethod
    def create_wishlist(self, name: str, description: Optional[str] = None) -> WishList:
        pass

    @abstractmethod
    def get_wishlist(self, wishlist_id: str) -> Optional[WishList]:
        pass

    @abstractmethod
    def get_wishlist_by_name(self, name: str) -> Optional[WishList]:
        pass

    @abstractmethod
    def list_wishlists(self) -> list[WishList]:
        pass

    @abstractmethod
    def update_wishlist(self, wishlist_id: str, fields: dict[str, Any]) -> WishList:
        pass

    @abstractmethod
    def delete_wishlist(self, wishlist_id: str) -> None:
        pass

    @abstractmethod
    def add_wishlist_entry(
        self,
        wishlist_id: str,
        referenced_item_number: Optional[str] = None,
        note: Optional[str] = None,
        priority: Priority = Priority.NORMAL,
    ) -> WishListEntry:
        """Append an entry at the tail of a wish list."""
        pass

    @abstractmethod
    def get_wishlist_entry(self, entry_id: str) -> Optional[WishListEntry]:
        pass

    @abstractmethod
    def update_wishlist_entry(self, entry_id: str, fields: dict[str, Any]) -> WishListEntry:
        pass

    @abstractmethod
    def remove_wishlist_entry(self, entry_id: str) -> None:
        """Remove an entry and renumber the rest densely."""
        pass

    @abstractmethod
    def reorder_wishlist(self, wishlist_id: str, ordered_entry_ids: list[str]) -> WishList:
        """Rewrite entry positions to follow the given order."""
        pass

    # Maintenance operations
    @abstractmethod
    def create_maintenance_event(
        self,
        rolling_stock_id: str,
        event_date: date,
        description: str,
        cost: Optional[Price] = None,
        performed_by: Optional[str] = None,
        next_due: Optional[date] = None,
    ) -> MaintenanceEvent:
        pass

    @abstractmethod
    def get_maintenance_event(self, event_id: str) -> Optional[MaintenanceEvent]:
        pass

    @abstractmethod
    def list_maintenance_events(self, rolling_stock_id: str) -> list[MaintenanceEvent]:
        """List events ordered by date, ties broken by creation order."""
        pass

    @abstractmethod
    def update_maintenance_next_due(self, event_id: str, next_due: Optional[date]) -> MaintenanceEvent:
        pass

    @abstractmethod
    def list_due_maintenance(self, until: date) -> list[MaintenanceEvent]:
        pass

    # Backup operations
    @abstractmethod
    def dump_tables(self) -> dict[str, list[dict[str, Any]]]:
        """Return every row of every entity table as persisted."""
        pass

    @abstractmethod
    def replace_all(self, tables: dict[str, list[dict[str, Any]]]) -> None:
        """Replace the contents of every entity table in one transaction."""
        pass

    @abstractmethod
    def count_rows(self) -> dict[str, int]:
        """Return the row count per entity table."""
        pass
