"""SQLAlchemy models for the railshed database.

The tables themselves are created by the versioned migrations in
``railshed.database.migrations``; these models only map them. Foreign keys
carry the same ``ON DELETE`` rules as the migration DDL so that the ORM and
the database agree about owning (CASCADE) and weak (SET NULL) references.
"""

import uuid

from sqlalchemy import (
    Boolean,
    Column,
    Date,
    ForeignKey,
    Integer,
    String,
    create_engine,
    event,
)
from sqlalchemy.engine import Engine
from sqlalchemy.orm import Session, declarative_base, relationship, sessionmaker

Base = declarative_base()

# Entity tables, parents before children.
ENTITY_TABLES = (
    "manufacturers",
    "railway_companies",
    "railway_models",
    "rolling_stocks",
    "collections",
    "collection_items",
    "owned_rolling_stocks",
    "purchase_infos",
    "wishlists",
    "wishlist_entries",
    "maintenance_events",
)


def new_id() -> str:
    """Generate a new primary key."""
    return str(uuid.uuid4())


class Manufacturer(Base):
    """Model manufacturer (brand)."""

    __tablename__ = "manufacturers"

    id = Column(String, primary_key=True, default=new_id)
    name = Column(String, unique=True, nullable=False)
    registered_company_name = Column(String, nullable=True)
    country_code = Column(String, nullable=True)

    railway_models = relationship(
        "RailwayModel", back_populates="manufacturer", cascade="all, delete-orphan", passive_deletes=True
    )


class RailwayCompany(Base):
    """Prototype railway company."""

    __tablename__ = "railway_companies"

    id = Column(String, primary_key=True, default=new_id)
    name = Column(String, unique=True, nullable=False)
    registered_company_name = Column(String, nullable=True)
    country_code = Column(String, nullable=True)
    status = Column(String, nullable=True)


class RailwayModel(Base):
    """Catalog railway model."""

    __tablename__ = "railway_models"

    id = Column(String, primary_key=True, default=new_id)
    manufacturer_id = Column(String, ForeignKey("manufacturers.id", ondelete="CASCADE"), nullable=False)
    product_code = Column(String, nullable=False)
    description = Column(String, nullable=True)
    details = Column(String, nullable=True)
    power_method = Column(String, nullable=True)
    scale = Column(String, nullable=False)
    epoch = Column(String, nullable=True)
    category = Column(String, nullable=True)
    delivery_date = Column(String, nullable=True)
    availability_status = Column(String, nullable=True)

    manufacturer = relationship("Manufacturer", back_populates="railway_models")
    rolling_stocks = relationship(
        "RollingStock", back_populates="railway_model", cascade="all, delete-orphan", passive_deletes=True
    )


class RollingStock(Base):
    """Catalog rolling stock belonging to a railway model."""

    __tablename__ = "rolling_stocks"

    id = Column(String, primary_key=True, default=new_id)
    railway_model_id = Column(String, ForeignKey("railway_models.id", ondelete="CASCADE"), nullable=False)
    category = Column(String, nullable=True)
    railway_company_id = Column(String, ForeignKey("railway_companies.id", ondelete="CASCADE"), nullable=True)
    road_number = Column(String, nullable=True)
    type_name = Column(String, nullable=True)
    series = Column(String, nullable=True)
    depot = Column(String, nullable=True)
    length_value = Column(String, nullable=True)
    length_unit = Column(String, nullable=True)
    livery = Column(String, nullable=True)
    service_level = Column(String, nullable=True)
    control = Column(String, nullable=True)
    dcc_interface = Column(String, nullable=True)
    is_dummy = Column(Boolean, default=False, nullable=False)

    railway_model = relationship("RailwayModel", back_populates="rolling_stocks")


class Collection(Base):
    """Singleton collection with derived counters."""

    __tablename__ = "collections"

    id = Column(String, primary_key=True, default=new_id)
    name = Column(String, nullable=False)
    locomotives_count = Column(Integer, default=0, nullable=False)
    passenger_cars_count = Column(Integer, default=0, nullable=False)
    freight_cars_count = Column(Integer, default=0, nullable=False)
    train_sets_count = Column(Integer, default=0, nullable=False)
    railcars_count = Column(Integer, default=0, nullable=False)
    electric_multiple_units_count = Column(Integer, default=0, nullable=False)
    total_value_amount = Column(Integer, default=0, nullable=False)
    total_value_currency = Column(String, default="EUR", nullable=False)


class CollectionItem(Base):
    """Owned item, weakly linked to the catalog."""

    __tablename__ = "collection_items"

    id = Column(String, primary_key=True, default=new_id)
    collection_id = Column(String, ForeignKey("collections.id", ondelete="CASCADE"), nullable=False)
    railway_model_id = Column(String, ForeignKey("railway_models.id", ondelete="SET NULL"), nullable=True)
    manufacturer = Column(String, nullable=False)
    product_code = Column(String, nullable=False)
    description = Column(String, nullable=True)
    conditions = Column(String, nullable=True)
    power_method = Column(String, nullable=True)
    scale = Column(String, nullable=True)
    epoch = Column(String, nullable=True)
    category = Column(String, nullable=True)
    quantity = Column(Integer, default=1, nullable=False)

    rolling_stocks = relationship(
        "OwnedRollingStock", back_populates="item", cascade="all, delete-orphan", passive_deletes=True
    )
    purchases = relationship(
        "PurchaseInfo", back_populates="item", cascade="all, delete-orphan", passive_deletes=True
    )


class OwnedRollingStock(Base):
    """Owned rolling stock unit."""

    __tablename__ = "owned_rolling_stocks"

    id = Column(String, primary_key=True, default=new_id)
    item_id = Column(String, ForeignKey("collection_items.id", ondelete="CASCADE"), nullable=False)
    catalog_rolling_stock_id = Column(
        String, ForeignKey("rolling_stocks.id", ondelete="SET NULL"), nullable=True
    )
    notes = Column(String, nullable=True)
    railway_id = Column(String, ForeignKey("railway_companies.id", ondelete="CASCADE"), nullable=False)
    epoch = Column(String, nullable=True)

    item = relationship("CollectionItem", back_populates="rolling_stocks")


class PurchaseInfo(Base):
    """Purchase or sale record of a collection item."""

    __tablename__ = "purchase_infos"

    id = Column(String, primary_key=True, default=new_id)
    collection_item_id = Column(
        String, ForeignKey("collection_items.id", ondelete="CASCADE"), nullable=False
    )
    purchase_type = Column(String, nullable=False)
    purchase_date = Column(Date, nullable=False)
    seller_id = Column(String, nullable=True)
    buyer_id = Column(String, nullable=True)
    sale_date = Column(Date, nullable=True)
    purchased_price_amount = Column(Integer, nullable=True)
    purchased_price_currency = Column(String, nullable=True)
    sale_price_amount = Column(Integer, nullable=True)
    sale_price_currency = Column(String, nullable=True)
    deposit_amount = Column(Integer, nullable=True)
    deposit_currency = Column(String, nullable=True)
    preorder_total_amount = Column(Integer, nullable=True)
    preorder_total_currency = Column(String, nullable=True)
    expected_date = Column(Date, nullable=True)

    item = relationship("CollectionItem", back_populates="purchases")


class WishList(Base):
    """Named wish list."""

    __tablename__ = "wishlists"

    id = Column(String, primary_key=True, default=new_id)
    name = Column(String, unique=True, nullable=False)
    description = Column(String, nullable=True)

    entries = relationship(
        "WishListEntry",
        back_populates="wishlist",
        cascade="all, delete-orphan",
        passive_deletes=True,
        order_by="WishListEntry.position",
    )


class WishListEntry(Base):
    """Entry of a wish list at a dense position."""

    __tablename__ = "wishlist_entries"

    id = Column(String, primary_key=True, default=new_id)
    wishlist_id = Column(String, ForeignKey("wishlists.id", ondelete="CASCADE"), nullable=False)
    referenced_item_number = Column(String, nullable=True)
    note = Column(String, nullable=True)
    priority = Column(String, default="NORMAL", nullable=False)
    position = Column(Integer, nullable=False)

    wishlist = relationship("WishList", back_populates="entries")


class MaintenanceEvent(Base):
    """Append-only service event of an owned rolling stock."""

    __tablename__ = "maintenance_events"

    id = Column(String, primary_key=True, default=new_id)
    rolling_stock_id = Column(
        String, ForeignKey("owned_rolling_stocks.id", ondelete="CASCADE"), nullable=False
    )
    date = Column(Date, nullable=False)
    description = Column(String, nullable=False)
    cost_amount = Column(Integer, nullable=True)
    cost_currency = Column(String, nullable=True)
    performed_by = Column(String, nullable=True)
    next_due = Column(Date, nullable=True)
    sequence = Column(Integer, nullable=False)


def create_sqlite_engine(database_url: str, echo: bool = False) -> Engine:
    """Create an engine with foreign keys enforced and transactional DDL.

    pysqlite defers ``BEGIN`` until the first DML statement, which would let
    schema changes run outside any transaction. The listeners take over
    transaction control and emit ``BEGIN`` explicitly instead.
    """
    engine = create_engine(database_url, echo=echo)

    @event.listens_for(engine, "connect")
    def _on_connect(dbapi_connection, connection_record):
        dbapi_connection.isolation_level = None
        cursor = dbapi_connection.cursor()
        cursor.execute("PRAGMA foreign_keys=ON")
        cursor.close()

    @event.listens_for(engine, "begin")
    def _on_begin(conn):
        conn.exec_driver_sql("BEGIN")

    return engine


def create_session_factory(engine: Engine) -> sessionmaker[Session]:
    """Create a SQLAlchemy session factory bound to an engine."""
    return sessionmaker(bind=engine)
