"""Collection domain service: owned items, owned rolling stocks, purchases."""

import logging
from typing import Any, Optional

from railshed.database.base import Database
from railshed.domain.catalog import refuse_identity_change
from railshed.domain.entities import (
    Collection,
    CollectionItem,
    NewOwnedRollingStock,
    NewPurchase,
    OwnedRollingStock,
    PurchaseInfo,
)
from railshed.domain.enums import Category, PowerMethod, PurchaseType, Scale
from railshed.domain.errors import (
    InvariantViolationError,
    NotFoundError,
    ValidationError,
    missing_field,
)
from railshed.domain.values import (
    canonicalize_fields,
    optional_text,
    require_text,
    to_date,
    to_epoch,
    to_optional_date,
    to_optional_price,
)
from railshed.utils.reference_resolver import resolve_railway_company

logger = logging.getLogger(__name__)


def to_quantity(raw: Any) -> int:
    """Canonicalize an item quantity (a non-negative integer)."""
    if isinstance(raw, bool):
        raise ValidationError(f"Invalid quantity: {raw!r}")
    if isinstance(raw, str) and raw.strip().isdigit():
        raw = int(raw.strip())
    if not isinstance(raw, int) or raw < 0:
        raise ValidationError(f"Quantity must be a non-negative integer, got {raw!r}")
    return raw


ITEM_FIELDS = {
    "manufacturer": lambda value: require_text(value, "manufacturer"),
    "product_code": lambda value: require_text(value, "product_code"),
    "railway_model_id": optional_text,
    "description": optional_text,
    "conditions": optional_text,
    "power_method": PowerMethod.parse_optional,
    "scale": Scale.parse_optional,
    "epoch": to_epoch,
    "category": Category.parse_optional,
    "quantity": to_quantity,
}

OWNED_ROLLING_STOCK_FIELDS = {
    "catalog_rolling_stock_id": optional_text,
    "notes": optional_text,
    "epoch": to_epoch,
}

PURCHASE_FIELDS = {
    "purchase_date": lambda value: to_date(value, "purchase_date"),
    "seller_id": optional_text,
    "purchased_price": to_optional_price,
    "deposit": to_optional_price,
    "preorder_total": to_optional_price,
    "expected_date": lambda value: to_optional_date(value, "expected_date"),
}


class CollectionService:
    """Service for managing the owned collection."""

    def __init__(self, db: Database):
        """Initialize collection service.

        Args:
            db: Database instance
        """
        self.db = db

    def get_collection(self) -> Collection:
        """Return the collection with its derived counters."""
        return self.db.get_collection()

    def _new_owned_rolling_stock(self, raw: dict[str, Any]) -> NewOwnedRollingStock:
        raw = dict(raw)
        railway_id = raw.pop("railway_id", None)
        railway = raw.pop("railway", None) or railway_id
        if railway is None:
            raise ValidationError(missing_field("railway"))
        fields = canonicalize_fields("OwnedRollingStock", raw, OWNED_ROLLING_STOCK_FIELDS)
        return NewOwnedRollingStock(railway_id=resolve_railway_company(self.db, railway).id, **fields)

    @staticmethod
    def _new_purchase(raw: dict[str, Any]) -> NewPurchase:
        raw = dict(raw)
        purchase_type = PurchaseType.parse(raw.pop("purchase_type", PurchaseType.BOUGHT))
        if purchase_type is PurchaseType.SOLD:
            raise ValidationError("A sale is recorded against the current purchase with record_sale")
        if raw.get("purchase_date") is None:
            raise ValidationError(missing_field("purchase_date"))
        fields = canonicalize_fields("PurchaseInfo", raw, PURCHASE_FIELDS)
        return NewPurchase(purchase_type=purchase_type, **fields)

    def create_item(
        self,
        manufacturer: str,
        product_code: str,
        rolling_stocks: Optional[list[dict[str, Any]]] = None,
        purchase: Optional[dict[str, Any]] = None,
        **details: Any,
    ) -> CollectionItem:
        """Create a collection item with its owned rolling stocks and purchase.

        Args:
            manufacturer: Brand name as printed on the box
            product_code: Manufacturer's item number
            rolling_stocks: Owned units; each needs ``railway`` (railway
                company ID or name) and may carry ``catalog_rolling_stock_id``,
                ``notes`` and ``epoch``
            purchase: Optional first purchase record (``purchase_type``,
                ``purchase_date``, ``seller_id``, ``purchased_price``, ...)
            **details: Optional railway_model_id, description, conditions,
                power_method, scale, epoch, category, quantity

        Returns:
            Created collection item

        Raises:
            ValidationError: If a field is missing or malformed
            NotFoundError: If a referenced catalog entry or railway company does not exist
        """
        fields = canonicalize_fields(
            "CollectionItem",
            {"manufacturer": manufacturer, "product_code": product_code, **details},
            ITEM_FIELDS,
        )
        stocks = [self._new_owned_rolling_stock(raw) for raw in rolling_stocks or []]
        new_purchase = self._new_purchase(purchase) if purchase is not None else None
        item = self.db.create_collection_item(fields, stocks, new_purchase)
        logger.info("Added collection item %s (%s %s)", item.id, item.manufacturer, item.product_code)
        return item

    def add_from_catalog(
        self,
        model_id: str,
        railway: Optional[str] = None,
        purchase: Optional[dict[str, Any]] = None,
        **details: Any,
    ) -> CollectionItem:
        """Create a collection item from a catalog railway model.

        The item copies the model's descriptive fields and owns one rolling
        stock per catalog rolling stock, linked to it.

        Args:
            model_id: Railway model ID
            railway: Railway company for catalog rolling stocks that have none
            purchase: Optional first purchase record
            **details: Overrides for the copied item fields (e.g. quantity, conditions)

        Raises:
            NotFoundError: If the model does not exist
            ValidationError: If a rolling stock has no railway company and none is given
        """
        model = self.db.get_railway_model(model_id)
        if model is None:
            raise NotFoundError("Railway model", model_id)
        manufacturer = self.db.get_manufacturer(model.manufacturer_id)
        fallback = resolve_railway_company(self.db, railway).id if railway is not None else None

        stocks = []
        for stock in model.rolling_stocks:
            railway_id = stock.railway_company_id or fallback
            if railway_id is None:
                raise ValidationError(missing_field("railway"))
            stocks.append(
                NewOwnedRollingStock(railway_id=railway_id, catalog_rolling_stock_id=stock.id, epoch=model.epoch)
            )

        raw = {
            "manufacturer": manufacturer.name,
            "product_code": model.product_code,
            "railway_model_id": model.id,
            "description": model.description,
            "power_method": model.power_method,
            "scale": model.scale,
            "epoch": model.epoch,
            "category": model.category,
            **details,
        }
        fields = canonicalize_fields("CollectionItem", raw, ITEM_FIELDS)
        new_purchase = self._new_purchase(purchase) if purchase is not None else None
        item = self.db.create_collection_item(fields, stocks, new_purchase)
        logger.info("Added collection item %s from railway model %s", item.id, model.id)
        return item

    def get_item(self, item_id: str) -> CollectionItem:
        """Get a collection item.

        Raises:
            NotFoundError: If the item does not exist
        """
        item = self.db.get_collection_item(item_id)
        if item is None:
            raise NotFoundError("Collection item", item_id)
        return item

    def list_items(self) -> list[CollectionItem]:
        return self.db.list_collection_items()

    def update_item(self, item_id: str, **changes: Any) -> CollectionItem:
        refuse_identity_change("CollectionItem", changes, immutable=("collection_id",))
        return self.db.update_collection_item(item_id, canonicalize_fields("CollectionItem", changes, ITEM_FIELDS))

    def delete_item(self, item_id: str) -> None:
        """Delete a collection item with its owned rolling stocks, purchases and maintenance history."""
        self.db.delete_collection_item(item_id)

    # Owned rolling stocks
    def add_rolling_stock(self, item_id: str, **fields: Any) -> OwnedRollingStock:
        return self.db.add_owned_rolling_stock(item_id, self._new_owned_rolling_stock(fields))

    def get_rolling_stock(self, rolling_stock_id: str) -> OwnedRollingStock:
        rolling_stock = self.db.get_owned_rolling_stock(rolling_stock_id)
        if rolling_stock is None:
            raise NotFoundError("Owned rolling stock", rolling_stock_id)
        return rolling_stock

    def update_rolling_stock(self, rolling_stock_id: str, **changes: Any) -> OwnedRollingStock:
        refuse_identity_change("OwnedRollingStock", changes, immutable=("item_id",))
        changes = dict(changes)
        railway = changes.pop("railway", None)
        fields = canonicalize_fields("OwnedRollingStock", changes, OWNED_ROLLING_STOCK_FIELDS)
        if railway is not None:
            fields["railway_id"] = resolve_railway_company(self.db, railway).id
        return self.db.update_owned_rolling_stock(rolling_stock_id, fields)

    def delete_rolling_stock(self, rolling_stock_id: str) -> None:
        self.db.delete_owned_rolling_stock(rolling_stock_id)

    # Purchases
    def record_purchase(self, item_id: str, **purchase: Any) -> PurchaseInfo:
        """Append a purchase (or pre-order) record to an item's lineage.

        Raises:
            InvariantViolationError: If the item already has a current purchase record
        """
        return self.db.add_purchase(item_id, self._new_purchase(purchase))

    def record_sale(
        self,
        item_id: str,
        sale_date: Any,
        buyer_id: Optional[str] = None,
        sale_price: Any = None,
    ) -> PurchaseInfo:
        """Record the sale of an item's current holding.

        Raises:
            InvariantViolationError: If the item has no current purchase record
        """
        item = self.get_item(item_id)
        current = item.current_purchase
        if current is None:
            raise InvariantViolationError(f"Collection item {item_id} has no current purchase record to sell")
        return self.db.record_sale(
            current.id,
            to_date(sale_date, "sale_date"),
            buyer_id=optional_text(buyer_id),
            sale_price=to_optional_price(sale_price),
        )

    def list_purchases(self, item_id: str) -> list[PurchaseInfo]:
        return self.db.list_purchases(item_id)
