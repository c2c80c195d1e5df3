"""Generic SQLAlchemy database implementation."""

import logging
from contextlib import contextmanager
from dataclasses import fields as dataclass_fields
from datetime import date
from typing import Any, Iterable, Iterator, Optional

from sqlalchemy import delete, func, select, text
from sqlalchemy.exc import IntegrityError
from sqlalchemy.orm import Session

from railshed.database.base import Database
from railshed.database.mappers import (
    collection_item_to_domain,
    collection_to_domain,
    maintenance_event_to_domain,
    manufacturer_to_domain,
    owned_rolling_stock_to_domain,
    purchase_info_to_domain,
    railway_company_to_domain,
    railway_model_to_domain,
    rolling_stock_to_domain,
    to_columns,
    wishlist_entry_to_domain,
    wishlist_to_domain,
)
from railshed.database.migrations import current_version, migrate
from railshed.database.models import (
    ENTITY_TABLES,
    Base,
    Collection,
    CollectionItem,
    MaintenanceEvent,
    Manufacturer,
    OwnedRollingStock,
    PurchaseInfo,
    RailwayCompany,
    RailwayModel,
    RollingStock,
    WishList,
    WishListEntry,
    create_session_factory,
    create_sqlite_engine,
)
from railshed.database.search import collection_item_query, railway_model_query, sort_key
from railshed.domain import entities as domain
from railshed.domain.enums import Category, Priority, PurchaseType
from railshed.domain.errors import (
    InvariantViolationError,
    NotFoundError,
    ValidationError,
    current_holding_exists,
    duplicate_name,
    immutable_field,
    last_rolling_stock,
    missing_field,
    reorder_mismatch,
)
from railshed.domain.filters import CollectionFilter, PageRequest, encode_cursor
from railshed.domain.values import Price

logger = logging.getLogger(__name__)

DEFAULT_COLLECTION_NAME = "My collection"
DEFAULT_COLLECTION_CURRENCY = "EUR"

_COUNTER_COLUMNS = {
    Category.LOCOMOTIVE.value: "locomotives_count",
    Category.PASSENGER_CAR.value: "passenger_cars_count",
    Category.FREIGHT_CAR.value: "freight_cars_count",
    Category.TRAIN_SET.value: "train_sets_count",
    Category.RAILCAR.value: "railcars_count",
    Category.ELECTRIC_MULTIPLE_UNIT.value: "electric_multiple_units_count",
}

# SQLite caps the number of bound parameters per statement
_IN_CHUNK = 500


def _chunks(ids: list[str]) -> Iterator[list[str]]:
    for start in range(0, len(ids), _IN_CHUNK):
        yield ids[start : start + _IN_CHUNK]


def _field_values(value: Any) -> dict[str, Any]:
    """Shallow field dict of an input dataclass (keeps Price/Measure intact)."""
    return {f.name: getattr(value, f.name) for f in dataclass_fields(value)}


class SQLAlchemyDatabase(Database):
    """SQLAlchemy-based implementation of Database interface."""

    def __init__(self, database_url: str):
        """Initialize SQLAlchemy database.

        Args:
            database_url: SQLAlchemy database URL (e.g., 'sqlite:///path/to.db')
        """
        self.database_url = database_url
        self.engine = create_sqlite_engine(database_url)
        self.session_factory = create_session_factory(self.engine)
        self._session: Optional[Session] = None
        self._depth = 0

    def _get_session(self) -> Session:
        """Get current session, creating one if needed."""
        if self._session is None:
            self._session = self.session_factory()
        return self._session

    def connect(self) -> None:
        """Connect to the database."""
        # Connection is lazy, so this is a no-op
        pass

    def disconnect(self) -> None:
        """Disconnect from the database."""
        if self._session is not None:
            self._session.close()
            self._session = None
        self.engine.dispose()

    def initialize_schema(self) -> int:
        """Apply pending schema migrations. Returns the schema version."""
        return migrate(self.engine)

    def schema_version(self) -> int:
        return current_version(self.engine)

    @contextmanager
    def transaction(self) -> Iterator[Session]:
        """Open a unit of work, or a savepoint when one is already open.

        The outermost block commits on success. Any exception rolls back the
        block it was raised in; constraint violations surface as
        InvariantViolationError.
        """
        session = self._get_session()
        savepoint = session.begin_nested() if self._depth > 0 else None
        self._depth += 1
        try:
            yield session
            if savepoint is not None:
                savepoint.commit()
            else:
                session.commit()
        except IntegrityError as e:
            self._rollback(session, savepoint)
            logger.warning("Write refused by a database constraint: %s", e.orig)
            raise InvariantViolationError(f"Constraint violated: {e.orig}") from e
        except Exception:
            self._rollback(session, savepoint)
            raise
        finally:
            self._depth -= 1

    @staticmethod
    def _rollback(session: Session, savepoint) -> None:
        if savepoint is not None:
            if savepoint.is_active:
                savepoint.rollback()
        else:
            session.rollback()

    # Helpers
    @staticmethod
    def _require(session: Session, model, entity_id: Optional[str], kind: str):
        if entity_id is None:
            raise ValidationError(missing_field(f"{kind.lower().replace(' ', '_')}_id"))
        obj = session.get(model, entity_id)
        if obj is None:
            raise NotFoundError(kind, entity_id)
        return obj

    @staticmethod
    def _apply(orm, kind: str, fields: dict[str, Any], immutable: Iterable[str] = ()) -> None:
        """Write canonical field values onto a row, refusing identity changes."""
        frozen = {"id", *immutable}
        for name in fields:
            if name in frozen:
                logger.warning("Refused to change %s.%s of %s", kind, name, orm.id)
                raise InvariantViolationError(immutable_field(kind, name))
        for column, value in to_columns(fields).items():
            if column not in orm.__table__.columns:
                raise ValidationError(f"{kind} has no field '{column}'")
            setattr(orm, column, value)

    @staticmethod
    def _ensure_unique_name(session: Session, model, kind: str, name: str, exclude_id: Optional[str] = None):
        query = select(model.id).where(model.name == name)
        if exclude_id is not None:
            query = query.where(model.id != exclude_id)
        if session.execute(query).first() is not None:
            logger.warning("Refused duplicate %s name '%s'", kind, name)
            raise InvariantViolationError(duplicate_name(kind, name))

    @staticmethod
    def _rolling_stocks_by_model(session: Session, model_ids: list[str]) -> dict[str, list[RollingStock]]:
        grouped: dict[str, list[RollingStock]] = {model_id: [] for model_id in model_ids}
        for chunk in _chunks(model_ids):
            rows = session.execute(
                select(RollingStock).where(RollingStock.railway_model_id.in_(chunk)).order_by(text("rowid"))
            ).scalars()
            for row in rows:
                grouped[row.railway_model_id].append(row)
        return grouped

    def _models_to_domain(self, session: Session, models: list[RailwayModel]) -> list[domain.RailwayModel]:
        stocks = self._rolling_stocks_by_model(session, [m.id for m in models])
        return [railway_model_to_domain(m, stocks[m.id]) for m in models]

    def _items_to_domain(self, session: Session, items: list[CollectionItem]) -> list[domain.CollectionItem]:
        item_ids = [item.id for item in items]
        owned: dict[str, list[OwnedRollingStock]] = {item_id: [] for item_id in item_ids}
        purchases: dict[str, list[PurchaseInfo]] = {item_id: [] for item_id in item_ids}
        for chunk in _chunks(item_ids):
            for row in session.execute(
                select(OwnedRollingStock).where(OwnedRollingStock.item_id.in_(chunk)).order_by(text("rowid"))
            ).scalars():
                owned[row.item_id].append(row)
            for row in session.execute(
                select(PurchaseInfo)
                .where(PurchaseInfo.collection_item_id.in_(chunk))
                .order_by(PurchaseInfo.purchase_date, text("rowid"))
            ).scalars():
                purchases[row.collection_item_id].append(row)
        return [collection_item_to_domain(item, owned[item.id], purchases[item.id]) for item in items]

    def _wishlists_to_domain(self, session: Session, wishlists: list[WishList]) -> list[domain.WishList]:
        ids = [w.id for w in wishlists]
        entries: dict[str, list[WishListEntry]] = {wishlist_id: [] for wishlist_id in ids}
        for chunk in _chunks(ids):
            for row in session.execute(
                select(WishListEntry)
                .where(WishListEntry.wishlist_id.in_(chunk))
                .order_by(WishListEntry.wishlist_id, WishListEntry.position)
            ).scalars():
                entries[row.wishlist_id].append(row)
        return [wishlist_to_domain(w, entries[w.id]) for w in wishlists]

    # Manufacturer operations
    def create_manufacturer(
        self, name: str, registered_company_name: Optional[str] = None, country_code: Optional[str] = None
    ) -> domain.Manufacturer:
        """Create a new manufacturer."""
        with self.transaction() as session:
            self._ensure_unique_name(session, Manufacturer, "Manufacturer", name)
            manufacturer = Manufacturer(
                name=name, registered_company_name=registered_company_name, country_code=country_code
            )
            session.add(manufacturer)
            session.flush()
            return manufacturer_to_domain(manufacturer)

    def get_manufacturer(self, manufacturer_id: str) -> Optional[domain.Manufacturer]:
        """Get manufacturer by ID."""
        with self.transaction() as session:
            manufacturer = session.get(Manufacturer, manufacturer_id)
            return manufacturer_to_domain(manufacturer) if manufacturer is not None else None

    def get_manufacturer_by_name(self, name: str) -> Optional[domain.Manufacturer]:
        """Get manufacturer by name."""
        with self.transaction() as session:
            manufacturer = session.execute(
                select(Manufacturer).where(Manufacturer.name == name)
            ).scalar_one_or_none()
            return manufacturer_to_domain(manufacturer) if manufacturer is not None else None

    def list_manufacturers(self) -> list[domain.Manufacturer]:
        """List all manufacturers."""
        with self.transaction() as session:
            rows = session.execute(select(Manufacturer).order_by(Manufacturer.name)).scalars()
            return [manufacturer_to_domain(row) for row in rows]

    def update_manufacturer(self, manufacturer_id: str, fields: dict[str, Any]) -> domain.Manufacturer:
        """Update manufacturer fields."""
        with self.transaction() as session:
            manufacturer = self._require(session, Manufacturer, manufacturer_id, "Manufacturer")
            if "name" in fields:
                self._ensure_unique_name(session, Manufacturer, "Manufacturer", fields["name"], manufacturer_id)
            self._apply(manufacturer, "Manufacturer", fields)
            session.flush()
            return manufacturer_to_domain(manufacturer)

    def delete_manufacturer(self, manufacturer_id: str) -> None:
        """Delete a manufacturer and its railway models."""
        with self.transaction() as session:
            manufacturer = self._require(session, Manufacturer, manufacturer_id, "Manufacturer")
            model_count = session.execute(
                select(func.count()).select_from(RailwayModel).where(RailwayModel.manufacturer_id == manufacturer_id)
            ).scalar_one()
            session.delete(manufacturer)
            session.flush()
            session.expire_all()
            logger.info("Deleted manufacturer %s and %d railway model(s)", manufacturer_id, model_count)

    # Railway company operations
    def create_railway_company(
        self,
        name: str,
        registered_company_name: Optional[str] = None,
        country_code: Optional[str] = None,
        status: Optional[str] = None,
    ) -> domain.RailwayCompany:
        """Create a new railway company."""
        with self.transaction() as session:
            self._ensure_unique_name(session, RailwayCompany, "Railway company", name)
            company = RailwayCompany(
                name=name,
                registered_company_name=registered_company_name,
                country_code=country_code,
                status=status,
            )
            session.add(company)
            session.flush()
            return railway_company_to_domain(company)

    def get_railway_company(self, company_id: str) -> Optional[domain.RailwayCompany]:
        """Get railway company by ID."""
        with self.transaction() as session:
            company = session.get(RailwayCompany, company_id)
            return railway_company_to_domain(company) if company is not None else None

    def get_railway_company_by_name(self, name: str) -> Optional[domain.RailwayCompany]:
        """Get railway company by name."""
        with self.transaction() as session:
            company = session.execute(
                select(RailwayCompany).where(RailwayCompany.name == name)
            ).scalar_one_or_none()
            return railway_company_to_domain(company) if company is not None else None

    def list_railway_companies(self) -> list[domain.RailwayCompany]:
        """List all railway companies."""
        with self.transaction() as session:
            rows = session.execute(select(RailwayCompany).order_by(RailwayCompany.name)).scalars()
            return [railway_company_to_domain(row) for row in rows]

    def update_railway_company(self, company_id: str, fields: dict[str, Any]) -> domain.RailwayCompany:
        """Update railway company fields."""
        with self.transaction() as session:
            company = self._require(session, RailwayCompany, company_id, "Railway company")
            if "name" in fields:
                self._ensure_unique_name(session, RailwayCompany, "Railway company", fields["name"], company_id)
            self._apply(company, "Railway company", fields)
            session.flush()
            return railway_company_to_domain(company)

    def delete_railway_company(self, company_id: str) -> None:
        """Delete a railway company, its rolling stocks and owned units.

        Railway models left without any rolling stock are deleted as well.
        """
        with self.transaction() as session:
            company = self._require(session, RailwayCompany, company_id, "Railway company")
            affected_models = list(
                session.execute(
                    select(RollingStock.railway_model_id)
                    .where(RollingStock.railway_company_id == company_id)
                    .distinct()
                ).scalars()
            )
            session.delete(company)
            session.flush()

            emptied = 0
            for chunk in _chunks(affected_models):
                result = session.execute(
                    delete(RailwayModel).where(
                        RailwayModel.id.in_(chunk),
                        ~select(RollingStock.id).where(RollingStock.railway_model_id == RailwayModel.id).exists(),
                    ),
                    execution_options={"synchronize_session": False},
                )
                emptied += result.rowcount or 0
            session.expire_all()
            self._refresh_collection(session)
            logger.info(
                "Deleted railway company %s; removed %d railway model(s) left without rolling stock",
                company_id,
                emptied,
            )

    # Catalog operations
    def _new_rolling_stock(self, session: Session, model_id: str, stock: domain.NewRollingStock) -> RollingStock:
        if stock.railway_company_id is not None:
            self._require(session, RailwayCompany, stock.railway_company_id, "Railway company")
        row = RollingStock(railway_model_id=model_id, **to_columns(_field_values(stock)))
        session.add(row)
        return row

    def create_railway_model(
        self, fields: dict[str, Any], rolling_stocks: list[domain.NewRollingStock]
    ) -> domain.RailwayModel:
        """Create a railway model and its rolling stocks in one unit of work."""
        if not rolling_stocks:
            raise ValidationError(missing_field("rolling_stocks"))
        with self.transaction() as session:
            self._require(session, Manufacturer, fields.get("manufacturer_id"), "Manufacturer")
            model = RailwayModel(**to_columns(fields))
            session.add(model)
            session.flush()
            for stock in rolling_stocks:
                self._new_rolling_stock(session, model.id, stock)
            session.flush()
            return self._models_to_domain(session, [model])[0]

    def get_railway_model(self, model_id: str) -> Optional[domain.RailwayModel]:
        """Get railway model by ID, with its rolling stocks."""
        with self.transaction() as session:
            model = session.get(RailwayModel, model_id)
            if model is None:
                return None
            return self._models_to_domain(session, [model])[0]

    def list_railway_models(self, manufacturer_id: Optional[str] = None) -> list[domain.RailwayModel]:
        """List railway models, optionally filtered by manufacturer."""
        with self.transaction() as session:
            query = select(RailwayModel)
            if manufacturer_id is not None:
                query = query.where(RailwayModel.manufacturer_id == manufacturer_id)
            models = list(session.execute(query.order_by(RailwayModel.product_code, RailwayModel.id)).scalars())
            return self._models_to_domain(session, models)

    def update_railway_model(self, model_id: str, fields: dict[str, Any]) -> domain.RailwayModel:
        """Update scalar fields of a railway model."""
        with self.transaction() as session:
            model = self._require(session, RailwayModel, model_id, "Railway model")
            if "manufacturer_id" in fields:
                self._require(session, Manufacturer, fields["manufacturer_id"], "Manufacturer")
            self._apply(model, "RailwayModel", fields)
            session.flush()
            return self._models_to_domain(session, [model])[0]

    def delete_railway_model(self, model_id: str) -> None:
        """Delete a railway model with its rolling stocks."""
        with self.transaction() as session:
            model = self._require(session, RailwayModel, model_id, "Railway model")
            session.delete(model)
            session.flush()
            session.expire_all()
            logger.info("Deleted railway model %s", model_id)

    def add_rolling_stock(self, model_id: str, rolling_stock: domain.NewRollingStock) -> domain.RollingStock:
        """Add a rolling stock to an existing railway model."""
        with self.transaction() as session:
            self._require(session, RailwayModel, model_id, "Railway model")
            row = self._new_rolling_stock(session, model_id, rolling_stock)
            session.flush()
            return rolling_stock_to_domain(row)

    def get_rolling_stock(self, rolling_stock_id: str) -> Optional[domain.RollingStock]:
        """Get catalog rolling stock by ID."""
        with self.transaction() as session:
            row = session.get(RollingStock, rolling_stock_id)
            return rolling_stock_to_domain(row) if row is not None else None

    def update_rolling_stock(self, rolling_stock_id: str, fields: dict[str, Any]) -> domain.RollingStock:
        """Update a rolling stock; its railway model cannot change."""
        with self.transaction() as session:
            row = self._require(session, RollingStock, rolling_stock_id, "Rolling stock")
            if fields.get("railway_company_id") is not None:
                self._require(session, RailwayCompany, fields["railway_company_id"], "Railway company")
            self._apply(row, "RollingStock", fields, immutable=("railway_model_id",))
            session.flush()
            return rolling_stock_to_domain(row)

    def delete_rolling_stock(self, rolling_stock_id: str) -> None:
        """Delete a rolling stock, keeping at least one per railway model."""
        with self.transaction() as session:
            row = self._require(session, RollingStock, rolling_stock_id, "Rolling stock")
            siblings = session.execute(
                select(func.count())
                .select_from(RollingStock)
                .where(RollingStock.railway_model_id == row.railway_model_id)
            ).scalar_one()
            if siblings <= 1:
                logger.warning("Refused to delete last rolling stock %s", rolling_stock_id)
                raise InvariantViolationError(last_rolling_stock(row.railway_model_id))
            session.delete(row)
            session.flush()
            session.expire_all()

    # Collection operations
    def _collection_row(self, session: Session) -> Collection:
        collection = session.execute(select(Collection).order_by(text("rowid")).limit(1)).scalar_one_or_none()
        if collection is None:
            collection = Collection(
                name=DEFAULT_COLLECTION_NAME,
                total_value_amount=0,
                total_value_currency=DEFAULT_COLLECTION_CURRENCY,
            )
            session.add(collection)
            session.flush()
            logger.info("Created collection %s", collection.id)
        return collection

    def _refresh_collection(self, session: Session) -> None:
        """Recompute the derived counters of every collection."""
        collections = list(session.execute(select(Collection)).scalars())
        for collection in collections:
            counts = dict(
                session.execute(
                    select(CollectionItem.category, func.sum(CollectionItem.quantity))
                    .where(CollectionItem.collection_id == collection.id)
                    .group_by(CollectionItem.category)
                ).all()
            )
            for category, column in _COUNTER_COLUMNS.items():
                setattr(collection, column, int(counts.get(category) or 0))

            total = session.execute(
                select(func.sum(PurchaseInfo.purchased_price_amount))
                .join(CollectionItem, CollectionItem.id == PurchaseInfo.collection_item_id)
                .where(
                    CollectionItem.collection_id == collection.id,
                    PurchaseInfo.purchase_type != PurchaseType.SOLD.value,
                    PurchaseInfo.purchased_price_currency == collection.total_value_currency,
                )
            ).scalar()
            collection.total_value_amount = int(total or 0)
        session.flush()

    def get_collection(self) -> domain.Collection:
        """Return the collection, creating it on first use."""
        with self.transaction() as session:
            return collection_to_domain(self._collection_row(session))

    def _new_owned_rolling_stock(
        self, session: Session, item_id: str, stock: domain.NewOwnedRollingStock
    ) -> OwnedRollingStock:
        self._require(session, RailwayCompany, stock.railway_id, "Railway company")
        if stock.catalog_rolling_stock_id is not None:
            self._require(session, RollingStock, stock.catalog_rolling_stock_id, "Rolling stock")
        row = OwnedRollingStock(item_id=item_id, **to_columns(_field_values(stock)))
        session.add(row)
        return row

    def _new_purchase(self, session: Session, item_id: str, purchase: domain.NewPurchase) -> PurchaseInfo:
        if purchase.purchase_type is not PurchaseType.SOLD:
            current = session.execute(
                select(PurchaseInfo.id).where(
                    PurchaseInfo.collection_item_id == item_id,
                    PurchaseInfo.purchase_type != PurchaseType.SOLD.value,
                )
            ).first()
            if current is not None:
                logger.warning("Refused second current purchase for item %s", item_id)
                raise InvariantViolationError(current_holding_exists(item_id))
        row = PurchaseInfo(collection_item_id=item_id, **to_columns(_field_values(purchase)))
        session.add(row)
        return row

    def create_collection_item(
        self,
        fields: dict[str, Any],
        rolling_stocks: list[domain.NewOwnedRollingStock],
        purchase: Optional[domain.NewPurchase] = None,
    ) -> domain.CollectionItem:
        """Create an item, its owned rolling stocks and purchase record in one unit of work."""
        with self.transaction() as session:
            collection = self._collection_row(session)
            if fields.get("railway_model_id") is not None:
                self._require(session, RailwayModel, fields["railway_model_id"], "Railway model")
            item = CollectionItem(collection_id=collection.id, **to_columns(fields))
            session.add(item)
            session.flush()
            for stock in rolling_stocks:
                self._new_owned_rolling_stock(session, item.id, stock)
            if purchase is not None:
                self._new_purchase(session, item.id, purchase)
            session.flush()
            self._refresh_collection(session)
            return self._items_to_domain(session, [item])[0]

    def get_collection_item(self, item_id: str) -> Optional[domain.CollectionItem]:
        """Get collection item by ID, with owned rolling stocks and purchases."""
        with self.transaction() as session:
            item = session.get(CollectionItem, item_id)
            if item is None:
                return None
            return self._items_to_domain(session, [item])[0]

    def list_collection_items(self) -> list[domain.CollectionItem]:
        """List all collection items in description order."""
        with self.transaction() as session:
            items = list(
                session.execute(
                    select(CollectionItem).order_by(sort_key(CollectionItem), CollectionItem.id)
                ).scalars()
            )
            return self._items_to_domain(session, items)

    def update_collection_item(self, item_id: str, fields: dict[str, Any]) -> domain.CollectionItem:
        """Update scalar fields of a collection item."""
        with self.transaction() as session:
            item = self._require(session, CollectionItem, item_id, "Collection item")
            if fields.get("railway_model_id") is not None:
                self._require(session, RailwayModel, fields["railway_model_id"], "Railway model")
            self._apply(item, "CollectionItem", fields, immutable=("collection_id",))
            session.flush()
            self._refresh_collection(session)
            return self._items_to_domain(session, [item])[0]

    def delete_collection_item(self, item_id: str) -> None:
        """Delete a collection item with its owned rolling stocks and purchases."""
        with self.transaction() as session:
            item = self._require(session, CollectionItem, item_id, "Collection item")
            session.delete(item)
            session.flush()
            session.expire_all()
            self._refresh_collection(session)
            logger.info("Deleted collection item %s", item_id)

    def add_owned_rolling_stock(
        self, item_id: str, rolling_stock: domain.NewOwnedRollingStock
    ) -> domain.OwnedRollingStock:
        """Add an owned rolling stock to a collection item."""
        with self.transaction() as session:
            self._require(session, CollectionItem, item_id, "Collection item")
            row = self._new_owned_rolling_stock(session, item_id, rolling_stock)
            session.flush()
            self._refresh_collection(session)
            return owned_rolling_stock_to_domain(row)

    def get_owned_rolling_stock(self, rolling_stock_id: str) -> Optional[domain.OwnedRollingStock]:
        """Get owned rolling stock by ID."""
        with self.transaction() as session:
            row = session.get(OwnedRollingStock, rolling_stock_id)
            return owned_rolling_stock_to_domain(row) if row is not None else None

    def update_owned_rolling_stock(self, rolling_stock_id: str, fields: dict[str, Any]) -> domain.OwnedRollingStock:
        """Update an owned rolling stock; its item cannot change."""
        with self.transaction() as session:
            row = self._require(session, OwnedRollingStock, rolling_stock_id, "Owned rolling stock")
            if "railway_id" in fields:
                self._require(session, RailwayCompany, fields["railway_id"], "Railway company")
            if fields.get("catalog_rolling_stock_id") is not None:
                self._require(session, RollingStock, fields["catalog_rolling_stock_id"], "Rolling stock")
            self._apply(row, "OwnedRollingStock", fields, immutable=("item_id",))
            session.flush()
            self._refresh_collection(session)
            return owned_rolling_stock_to_domain(row)

    def delete_owned_rolling_stock(self, rolling_stock_id: str) -> None:
        """Delete an owned rolling stock and its maintenance history."""
        with self.transaction() as session:
            row = self._require(session, OwnedRollingStock, rolling_stock_id, "Owned rolling stock")
            session.delete(row)
            session.flush()
            session.expire_all()
            self._refresh_collection(session)

    def add_purchase(self, item_id: str, purchase: domain.NewPurchase) -> domain.PurchaseInfo:
        """Append a purchase record to an item's lineage."""
        with self.transaction() as session:
            self._require(session, CollectionItem, item_id, "Collection item")
            row = self._new_purchase(session, item_id, purchase)
            session.flush()
            self._refresh_collection(session)
            return purchase_info_to_domain(row)

    def record_sale(
        self,
        purchase_id: str,
        sale_date: date,
        buyer_id: Optional[str] = None,
        sale_price: Optional[Price] = None,
    ) -> domain.PurchaseInfo:
        """Turn a current purchase record into a SOLD record."""
        with self.transaction() as session:
            row = self._require(session, PurchaseInfo, purchase_id, "Purchase")
            if row.purchase_type == PurchaseType.SOLD.value:
                logger.warning("Refused to sell purchase record %s twice", purchase_id)
                raise InvariantViolationError(f"Purchase record {purchase_id} is already sold")
            if sale_date < row.purchase_date:
                raise ValidationError(
                    f"Sale date {sale_date.isoformat()} is before purchase date {row.purchase_date.isoformat()}"
                )
            self._apply(
                row,
                "PurchaseInfo",
                {
                    "purchase_type": PurchaseType.SOLD,
                    "sale_date": sale_date,
                    "buyer_id": buyer_id,
                    "sale_price": sale_price,
                },
            )
            session.flush()
            self._refresh_collection(session)
            return purchase_info_to_domain(row)

    def list_purchases(self, item_id: str) -> list[domain.PurchaseInfo]:
        """List the purchase lineage of an item, oldest first."""
        with self.transaction() as session:
            self._require(session, CollectionItem, item_id, "Collection item")
            rows = session.execute(
                select(PurchaseInfo)
                .where(PurchaseInfo.collection_item_id == item_id)
                .order_by(PurchaseInfo.purchase_date, text("rowid"))
            ).scalars()
            return [purchase_info_to_domain(row) for row in rows]

    # Search operations
    @staticmethod
    def _page(rows: list, limit: int) -> tuple[list, Optional[str]]:
        if len(rows) <= limit:
            return rows, None
        rows = rows[:limit]
        last = rows[-1]
        return rows, encode_cursor(last.description or "", last.id)

    def search_collection_items(self, flt: CollectionFilter, page: PageRequest) -> domain.Page:
        """Return one page of collection items matching the filter."""
        after = page.after
        with self.transaction() as session:
            stmt = collection_item_query(session, flt, page.limit, after)
            rows, next_cursor = self._page(list(session.execute(stmt).scalars()), page.limit)
            return domain.Page(items=tuple(self._items_to_domain(session, rows)), next_cursor=next_cursor)

    def search_railway_models(self, flt: CollectionFilter, page: PageRequest) -> domain.Page:
        """Return one page of railway models matching the filter."""
        after = page.after
        with self.transaction() as session:
            stmt = railway_model_query(session, flt, page.limit, after)
            rows, next_cursor = self._page(list(session.execute(stmt).scalars()), page.limit)
            return domain.Page(items=tuple(self._models_to_domain(session, rows)), next_cursor=next_cursor)

    # Wish list operations
    def create_wishlist(self, name: str, description: Optional[str] = None) -> domain.WishList:
        """Create an empty wish list."""
        with self.transaction() as session:
            self._ensure_unique_name(session, WishList, "Wish list", name)
            wishlist = WishList(name=name, description=description)
            session.add(wishlist)
            session.flush()
            return wishlist_to_domain(wishlist, [])

    def get_wishlist(self, wishlist_id: str) -> Optional[domain.WishList]:
        """Get wish list by ID, with entries in position order."""
        with self.transaction() as session:
            wishlist = session.get(WishList, wishlist_id)
            if wishlist is None:
                return None
            return self._wishlists_to_domain(session, [wishlist])[0]

    def get_wishlist_by_name(self, name: str) -> Optional[domain.WishList]:
        """Get wish list by name."""
        with self.transaction() as session:
            wishlist = session.execute(select(WishList).where(WishList.name == name)).scalar_one_or_none()
            if wishlist is None:
                return None
            return self._wishlists_to_domain(session, [wishlist])[0]

    def list_wishlists(self) -> list[domain.WishList]:
        """List all wish lists."""
        with self.transaction() as session:
            wishlists = list(session.execute(select(WishList).order_by(WishList.name)).scalars())
            return self._wishlists_to_domain(session, wishlists)

    def update_wishlist(self, wishlist_id: str, fields: dict[str, Any]) -> domain.WishList:
        """Rename a wish list or change its description."""
        with self.transaction() as session:
            wishlist = self._require(session, WishList, wishlist_id, "Wish list")
            if "name" in fields:
                self._ensure_unique_name(session, WishList, "Wish list", fields["name"], wishlist_id)
            self._apply(wishlist, "WishList", fields)
            session.flush()
            return self._wishlists_to_domain(session, [wishlist])[0]

    def delete_wishlist(self, wishlist_id: str) -> None:
        """Delete a wish list and its entries."""
        with self.transaction() as session:
            wishlist = self._require(session, WishList, wishlist_id, "Wish list")
            session.delete(wishlist)
            session.flush()
            session.expire_all()

    def add_wishlist_entry(
        self,
        wishlist_id: str,
        referenced_item_number: Optional[str] = None,
        note: Optional[str] = None,
        priority: Priority = Priority.NORMAL,
    ) -> domain.WishListEntry:
        """Append an entry at the tail of a wish list."""
        with self.transaction() as session:
            self._require(session, WishList, wishlist_id, "Wish list")
            position = session.execute(
                select(func.count()).select_from(WishListEntry).where(WishListEntry.wishlist_id == wishlist_id)
            ).scalar_one()
            entry = WishListEntry(
                wishlist_id=wishlist_id,
                referenced_item_number=referenced_item_number,
                note=note,
                priority=priority.value,
                position=position,
            )
            session.add(entry)
            session.flush()
            return wishlist_entry_to_domain(entry)

    def get_wishlist_entry(self, entry_id: str) -> Optional[domain.WishListEntry]:
        """Get wish list entry by ID."""
        with self.transaction() as session:
            entry = session.get(WishListEntry, entry_id)
            return wishlist_entry_to_domain(entry) if entry is not None else None

    def update_wishlist_entry(self, entry_id: str, fields: dict[str, Any]) -> domain.WishListEntry:
        """Update note, item number or priority of an entry."""
        with self.transaction() as session:
            entry = self._require(session, WishListEntry, entry_id, "Wish list entry")
            self._apply(entry, "WishListEntry", fields, immutable=("wishlist_id", "position"))
            session.flush()
            return wishlist_entry_to_domain(entry)

    def _entry_ids(self, session: Session, wishlist_id: str) -> list[str]:
        return list(
            session.execute(
                select(WishListEntry.id)
                .where(WishListEntry.wishlist_id == wishlist_id)
                .order_by(WishListEntry.position)
            ).scalars()
        )

    def _renumber(self, session: Session, wishlist_id: str, ordered_ids: list[str]) -> None:
        """Rewrite positions to 0..n-1 in the given order.

        Positions first move to distinct negative values so the unique
        (wishlist_id, position) index never sees two rows on one position.
        """
        entries = {
            entry.id: entry
            for entry in session.execute(
                select(WishListEntry).where(WishListEntry.wishlist_id == wishlist_id)
            ).scalars()
        }
        for offset, entry_id in enumerate(ordered_ids):
            entries[entry_id].position = -(offset + 1)
        session.flush()
        for position, entry_id in enumerate(ordered_ids):
            entries[entry_id].position = position
        session.flush()

    def remove_wishlist_entry(self, entry_id: str) -> None:
        """Remove an entry and close the gap it leaves."""
        with self.transaction() as session:
            entry = self._require(session, WishListEntry, entry_id, "Wish list entry")
            wishlist_id = entry.wishlist_id
            session.delete(entry)
            session.flush()
            self._renumber(session, wishlist_id, self._entry_ids(session, wishlist_id))

    def reorder_wishlist(self, wishlist_id: str, ordered_entry_ids: list[str]) -> domain.WishList:
        """Rewrite entry positions to follow the given order."""
        with self.transaction() as session:
            wishlist = self._require(session, WishList, wishlist_id, "Wish list")
            current = self._entry_ids(session, wishlist_id)
            if sorted(current) != sorted(ordered_entry_ids):
                logger.warning("Refused reorder of wish list %s: id set mismatch", wishlist_id)
                raise InvariantViolationError(reorder_mismatch(wishlist_id))
            self._renumber(session, wishlist_id, list(ordered_entry_ids))
            return self._wishlists_to_domain(session, [wishlist])[0]

    # Maintenance operations
    def create_maintenance_event(
        self,
        rolling_stock_id: str,
        event_date: date,
        description: str,
        cost: Optional[Price] = None,
        performed_by: Optional[str] = None,
        next_due: Optional[date] = None,
    ) -> domain.MaintenanceEvent:
        """Append a maintenance event to an owned rolling stock's history."""
        with self.transaction() as session:
            self._require(session, OwnedRollingStock, rolling_stock_id, "Owned rolling stock")
            last = session.execute(
                select(func.max(MaintenanceEvent.sequence)).where(
                    MaintenanceEvent.rolling_stock_id == rolling_stock_id
                )
            ).scalar()
            event = MaintenanceEvent(
                rolling_stock_id=rolling_stock_id,
                date=event_date,
                description=description,
                performed_by=performed_by,
                next_due=next_due,
                sequence=(last or 0) + 1,
                **to_columns({"cost": cost}),
            )
            session.add(event)
            session.flush()
            return maintenance_event_to_domain(event)

    def get_maintenance_event(self, event_id: str) -> Optional[domain.MaintenanceEvent]:
        """Get maintenance event by ID."""
        with self.transaction() as session:
            event = session.get(MaintenanceEvent, event_id)
            return maintenance_event_to_domain(event) if event is not None else None

    def list_maintenance_events(self, rolling_stock_id: str) -> list[domain.MaintenanceEvent]:
        """List events of an owned rolling stock by date, then creation order."""
        with self.transaction() as session:
            self._require(session, OwnedRollingStock, rolling_stock_id, "Owned rolling stock")
            rows = session.execute(
                select(MaintenanceEvent)
                .where(MaintenanceEvent.rolling_stock_id == rolling_stock_id)
                .order_by(MaintenanceEvent.date, MaintenanceEvent.sequence)
            ).scalars()
            return [maintenance_event_to_domain(row) for row in rows]

    def update_maintenance_next_due(
        self, event_id: str, next_due: Optional[date]
    ) -> domain.MaintenanceEvent:
        """Correct the next due date of an event."""
        with self.transaction() as session:
            event = self._require(session, MaintenanceEvent, event_id, "Maintenance event")
            if next_due is not None and next_due < event.date:
                raise ValidationError(
                    f"Next due date {next_due.isoformat()} is before event date {event.date.isoformat()}"
                )
            event.next_due = next_due
            session.flush()
            return maintenance_event_to_domain(event)

    def list_due_maintenance(self, until: date) -> list[domain.MaintenanceEvent]:
        """List events whose next due date is on or before a date."""
        with self.transaction() as session:
            rows = session.execute(
                select(MaintenanceEvent)
                .where(MaintenanceEvent.next_due.is_not(None), MaintenanceEvent.next_due <= until)
                .order_by(MaintenanceEvent.next_due, MaintenanceEvent.sequence)
            ).scalars()
            return [maintenance_event_to_domain(row) for row in rows]

    # Backup operations
    def dump_tables(self) -> dict[str, list[dict[str, Any]]]:
        """Return every row of every entity table, in insertion order."""
        with self.transaction() as session:
            return {
                table: [dict(row) for row in session.execute(text(f"SELECT * FROM {table} ORDER BY rowid")).mappings()]
                for table in ENTITY_TABLES
            }

    def replace_all(self, tables: dict[str, list[dict[str, Any]]]) -> None:
        """Delete every entity row, then insert the given rows, in one transaction."""
        with self.transaction() as session:
            for table in reversed(ENTITY_TABLES):
                session.execute(text(f"DELETE FROM {table}"))
            for table in ENTITY_TABLES:
                rows = tables.get(table) or []
                if not rows:
                    continue
                known = set(Base.metadata.tables[table].columns.keys())
                columns = list(rows[0].keys())
                unknown = set(columns) - known
                if unknown:
                    raise ValidationError(f"Table {table} has no column(s) {', '.join(sorted(unknown))}")
                for row in rows:
                    if set(row.keys()) != set(columns):
                        raise ValidationError(f"Rows of table {table} do not share one column set")
                statement = text(
                    f"INSERT INTO {table} ({', '.join(columns)}) "
                    f"VALUES ({', '.join(':' + column for column in columns)})"
                )
                session.execute(statement, rows)
            session.expire_all()
            self._refresh_collection(session)
            logger.info("Replaced store contents with %d row(s)", sum(len(rows or []) for rows in tables.values()))

    def count_rows(self) -> dict[str, int]:
        """Return the row count per entity table."""
        with self.transaction() as session:
            return {
                table: session.execute(text(f"SELECT COUNT(*) FROM {table}")).scalar_one() for table in ENTITY_TABLES
            }
