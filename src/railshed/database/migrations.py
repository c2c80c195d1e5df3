"""Versioned schema migrations.

The store keeps a single version marker in ``schema_version``. Migrations
form a linear history of strictly increasing versions; each one runs in its
own transaction together with the marker update, so a failure leaves the
store at the previous version. Every statement is written so that running a
migration a second time changes nothing (``IF NOT EXISTS`` for tables and
indexes, an inspector check before adding columns).
"""

import logging
from dataclasses import dataclass
from typing import Callable, Optional, Sequence

from sqlalchemy import inspect, text
from sqlalchemy.engine import Connection, Engine

from railshed.domain.errors import MigrationFailedError

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class Migration:
    """One step of the schema history."""

    version: int
    name: str
    upgrade: Callable[[Connection], None]


def _statements(*statements: str) -> Callable[[Connection], None]:
    def upgrade(conn: Connection) -> None:
        for statement in statements:
            conn.execute(text(statement))

    return upgrade


def column_exists(conn: Connection, table_name: str, column_name: str) -> bool:
    """Check if a column exists in a table."""
    inspector = inspect(conn)
    return column_name in [col["name"] for col in inspector.get_columns(table_name)]


_CATALOG = _statements(
    """
    CREATE TABLE IF NOT EXISTS manufacturers (
        id                      TEXT PRIMARY KEY,
        name                    TEXT NOT NULL,
        registered_company_name TEXT,
        country_code            TEXT
    )
    """,
    "CREATE UNIQUE INDEX IF NOT EXISTS idx_manufacturers_name ON manufacturers (name)",
    """
    CREATE TABLE IF NOT EXISTS railway_companies (
        id                      TEXT PRIMARY KEY,
        name                    TEXT NOT NULL,
        registered_company_name TEXT,
        country_code            TEXT,
        status                  TEXT
    )
    """,
    "CREATE UNIQUE INDEX IF NOT EXISTS idx_railway_companies_name ON railway_companies (name)",
    """
    CREATE TABLE IF NOT EXISTS railway_models (
        id                  TEXT PRIMARY KEY,
        manufacturer_id     TEXT NOT NULL,
        product_code        TEXT NOT NULL,
        description         TEXT,
        details             TEXT,
        power_method        TEXT,
        scale               TEXT NOT NULL,
        epoch               TEXT,
        category            TEXT,
        delivery_date       TEXT,
        availability_status TEXT,
        FOREIGN KEY (manufacturer_id) REFERENCES manufacturers (id) ON DELETE CASCADE
    )
    """,
    "CREATE INDEX IF NOT EXISTS idx_railway_models_product_code ON railway_models (product_code)",
    "CREATE INDEX IF NOT EXISTS idx_railway_models_manufacturer_id ON railway_models (manufacturer_id)",
    """
    CREATE TABLE IF NOT EXISTS rolling_stocks (
        id                 TEXT PRIMARY KEY,
        railway_model_id   TEXT NOT NULL,
        category           TEXT,
        railway_company_id TEXT,
        road_number        TEXT,
        type_name          TEXT,
        series             TEXT,
        depot              TEXT,
        length_value       TEXT,
        length_unit        TEXT,
        livery             TEXT,
        service_level      TEXT,
        control            TEXT,
        dcc_interface      TEXT,
        is_dummy           INTEGER NOT NULL DEFAULT 0,
        FOREIGN KEY (railway_model_id) REFERENCES railway_models (id) ON DELETE CASCADE,
        FOREIGN KEY (railway_company_id) REFERENCES railway_companies (id) ON DELETE CASCADE
    )
    """,
    "CREATE INDEX IF NOT EXISTS idx_rolling_stocks_road_number ON rolling_stocks (road_number)",
    "CREATE INDEX IF NOT EXISTS idx_rolling_stocks_railway_model_id ON rolling_stocks (railway_model_id)",
    "CREATE INDEX IF NOT EXISTS idx_rolling_stocks_railway_company_id ON rolling_stocks (railway_company_id)",
)

_COLLECTION = _statements(
    """
    CREATE TABLE IF NOT EXISTS collections (
        id                            TEXT PRIMARY KEY,
        name                          TEXT NOT NULL,
        locomotives_count             INTEGER NOT NULL DEFAULT 0,
        passenger_cars_count          INTEGER NOT NULL DEFAULT 0,
        freight_cars_count            INTEGER NOT NULL DEFAULT 0,
        train_sets_count              INTEGER NOT NULL DEFAULT 0,
        railcars_count                INTEGER NOT NULL DEFAULT 0,
        electric_multiple_units_count INTEGER NOT NULL DEFAULT 0,
        total_value_amount            INTEGER NOT NULL DEFAULT 0,
        total_value_currency          TEXT NOT NULL DEFAULT 'EUR'
    )
    """,
    """
    CREATE TABLE IF NOT EXISTS collection_items (
        id               TEXT PRIMARY KEY,
        collection_id    TEXT NOT NULL,
        railway_model_id TEXT,
        manufacturer     TEXT NOT NULL,
        product_code     TEXT NOT NULL,
        description      TEXT,
        conditions       TEXT,
        power_method     TEXT,
        scale            TEXT,
        epoch            TEXT,
        FOREIGN KEY (collection_id) REFERENCES collections (id) ON DELETE CASCADE,
        FOREIGN KEY (railway_model_id) REFERENCES railway_models (id) ON DELETE SET NULL
    )
    """,
    """
    CREATE TABLE IF NOT EXISTS owned_rolling_stocks (
        id                       TEXT PRIMARY KEY,
        item_id                  TEXT NOT NULL,
        catalog_rolling_stock_id TEXT,
        notes                    TEXT,
        railway_id               TEXT NOT NULL,
        epoch                    TEXT,
        FOREIGN KEY (item_id) REFERENCES collection_items (id) ON DELETE CASCADE,
        FOREIGN KEY (catalog_rolling_stock_id) REFERENCES rolling_stocks (id) ON DELETE SET NULL,
        FOREIGN KEY (railway_id) REFERENCES railway_companies (id) ON DELETE CASCADE
    )
    """,
    "CREATE INDEX IF NOT EXISTS idx_owned_rolling_stocks_item_id ON owned_rolling_stocks (item_id)",
    """
    CREATE INDEX IF NOT EXISTS idx_owned_rolling_stocks_catalog_id
        ON owned_rolling_stocks (catalog_rolling_stock_id)
    """,
    """
    CREATE TABLE IF NOT EXISTS purchase_infos (
        id                       TEXT PRIMARY KEY,
        collection_item_id       TEXT NOT NULL,
        purchase_type            TEXT NOT NULL,
        purchase_date            TEXT NOT NULL,
        seller_id                TEXT,
        buyer_id                 TEXT,
        sale_date                TEXT,
        purchased_price_amount   INTEGER CHECK (purchased_price_amount >= 0),
        purchased_price_currency TEXT,
        sale_price_amount        INTEGER CHECK (sale_price_amount >= 0),
        sale_price_currency      TEXT,
        deposit_amount           INTEGER CHECK (deposit_amount >= 0),
        deposit_currency         TEXT,
        preorder_total_amount    INTEGER CHECK (preorder_total_amount >= 0),
        preorder_total_currency  TEXT,
        expected_date            TEXT,
        FOREIGN KEY (collection_item_id) REFERENCES collection_items (id) ON DELETE CASCADE
    )
    """,
    "CREATE INDEX IF NOT EXISTS idx_purchase_infos_collection_item ON purchase_infos (collection_item_id)",
    "CREATE INDEX IF NOT EXISTS idx_purchase_infos_type ON purchase_infos (purchase_type)",
)

_WISHLISTS = _statements(
    """
    CREATE TABLE IF NOT EXISTS wishlists (
        id          TEXT PRIMARY KEY,
        name        TEXT NOT NULL,
        description TEXT
    )
    """,
    "CREATE UNIQUE INDEX IF NOT EXISTS idx_wishlists_name ON wishlists (name)",
    """
    CREATE TABLE IF NOT EXISTS wishlist_entries (
        id                     TEXT PRIMARY KEY,
        wishlist_id            TEXT NOT NULL,
        referenced_item_number TEXT,
        note                   TEXT,
        priority               TEXT NOT NULL DEFAULT 'NORMAL',
        position               INTEGER NOT NULL,
        FOREIGN KEY (wishlist_id) REFERENCES wishlists (id) ON DELETE CASCADE
    )
    """,
    """
    CREATE UNIQUE INDEX IF NOT EXISTS idx_wishlist_entries_position
        ON wishlist_entries (wishlist_id, position)
    """,
)

_MAINTENANCE = _statements(
    """
    CREATE TABLE IF NOT EXISTS maintenance_events (
        id               TEXT PRIMARY KEY,
        rolling_stock_id TEXT NOT NULL,
        date             TEXT NOT NULL,
        description      TEXT NOT NULL,
        cost_amount      INTEGER CHECK (cost_amount >= 0),
        cost_currency    TEXT,
        performed_by     TEXT,
        next_due         TEXT,
        sequence         INTEGER NOT NULL,
        FOREIGN KEY (rolling_stock_id) REFERENCES owned_rolling_stocks (id) ON DELETE CASCADE
    )
    """,
    """
    CREATE INDEX IF NOT EXISTS idx_maintenance_events_history
        ON maintenance_events (rolling_stock_id, date, sequence)
    """,
    "CREATE INDEX IF NOT EXISTS idx_maintenance_events_next_due ON maintenance_events (next_due)",
)

_SEARCH_INDEXES = _statements(
    "CREATE INDEX IF NOT EXISTS idx_collection_items_manufacturer ON collection_items (manufacturer)",
    "CREATE INDEX IF NOT EXISTS idx_collection_items_scale ON collection_items (scale)",
    "CREATE INDEX IF NOT EXISTS idx_collection_items_epoch ON collection_items (epoch)",
    "CREATE INDEX IF NOT EXISTS idx_collection_items_category ON collection_items (category)",
    "CREATE INDEX IF NOT EXISTS idx_collection_items_product_code ON collection_items (product_code)",
    "CREATE INDEX IF NOT EXISTS idx_collection_items_railway_model_id ON collection_items (railway_model_id)",
    """
    CREATE INDEX IF NOT EXISTS idx_collection_items_sort
        ON collection_items (COALESCE(description, ''), id)
    """,
    "CREATE INDEX IF NOT EXISTS idx_railway_models_scale ON railway_models (scale)",
    "CREATE INDEX IF NOT EXISTS idx_railway_models_epoch ON railway_models (epoch)",
    "CREATE INDEX IF NOT EXISTS idx_railway_models_category ON railway_models (category)",
    """
    CREATE INDEX IF NOT EXISTS idx_railway_models_sort
        ON railway_models (COALESCE(description, ''), id)
    """,
    "CREATE INDEX IF NOT EXISTS idx_rolling_stocks_livery ON rolling_stocks (livery)",
    "CREATE INDEX IF NOT EXISTS idx_rolling_stocks_depot ON rolling_stocks (depot)",
)


def _collection_item_search_columns(conn: Connection) -> None:
    if not column_exists(conn, "collection_items", "category"):
        conn.execute(text("ALTER TABLE collection_items ADD COLUMN category TEXT"))
        # Items already linked to the catalog inherit the category of their model
        conn.execute(
            text(
                """
                UPDATE collection_items
                   SET category = (SELECT category FROM railway_models
                                    WHERE railway_models.id = collection_items.railway_model_id)
                 WHERE railway_model_id IS NOT NULL
                """
            )
        )
        logger.info("Added column collection_items.category")
    if not column_exists(conn, "collection_items", "quantity"):
        conn.execute(
            text(
                "ALTER TABLE collection_items "
                "ADD COLUMN quantity INTEGER NOT NULL DEFAULT 1 CHECK (quantity >= 0)"
            )
        )
        logger.info("Added column collection_items.quantity")
    _SEARCH_INDEXES(conn)


MIGRATIONS: tuple[Migration, ...] = (
    Migration(1, "create catalog tables", _CATALOG),
    Migration(2, "create collection tables", _COLLECTION),
    Migration(3, "create wish list tables", _WISHLISTS),
    Migration(4, "create maintenance ledger", _MAINTENANCE),
    Migration(5, "add item category and quantity, search indexes", _collection_item_search_columns),
)

LATEST_VERSION = MIGRATIONS[-1].version


def validate_history(migrations: Sequence[Migration]) -> None:
    """Reject histories that are not strictly increasing."""
    previous = 0
    for migration in migrations:
        if migration.version <= previous:
            raise ValueError(
                f"Migration history must be strictly increasing: {migration.version} follows {previous}"
            )
        previous = migration.version


def _ensure_version_table(conn: Connection) -> None:
    conn.execute(
        text(
            """
            CREATE TABLE IF NOT EXISTS schema_version (
                id      INTEGER PRIMARY KEY CHECK (id = 1),
                version INTEGER NOT NULL
            )
            """
        )
    )


def _read_version(conn: Connection) -> int:
    if not inspect(conn).has_table("schema_version"):
        return 0
    value = conn.execute(text("SELECT version FROM schema_version WHERE id = 1")).scalar()
    return int(value) if value is not None else 0


def _write_version(conn: Connection, version: int) -> None:
    conn.execute(
        text(
            """
            INSERT INTO schema_version (id, version) VALUES (1, :version)
            ON CONFLICT (id) DO UPDATE SET version = max(version, excluded.version)
            """
        ),
        {"version": version},
    )


def current_version(engine: Engine) -> int:
    """Return the persisted schema version (0 for an empty store)."""
    with engine.connect() as conn:
        return _read_version(conn)


def apply_migration(engine: Engine, migration: Migration) -> None:
    """Run a single migration in its own transaction.

    Raises:
        MigrationFailedError: If any statement fails; nothing is committed
    """
    logger.info("Applying migration %d: %s", migration.version, migration.name)
    try:
        with engine.begin() as conn:
            _ensure_version_table(conn)
            migration.upgrade(conn)
            _write_version(conn, migration.version)
    except Exception as e:
        logger.error("Migration %d failed: %s", migration.version, e)
        raise MigrationFailedError(migration.version, str(e)) from e


def migrate(
    engine: Engine,
    migrations: Sequence[Migration] = MIGRATIONS,
    target: Optional[int] = None,
) -> int:
    """Apply all pending migrations in order and return the resulting version.

    Args:
        engine: Engine of the store to upgrade
        migrations: Migration history, oldest first
        target: Stop after this version (defaults to the newest)

    Raises:
        MigrationFailedError: If a migration fails or the store was written
            by a newer schema than this history knows about
    """
    validate_history(migrations)
    latest = migrations[-1].version if migrations else 0
    target = latest if target is None else target
    version = current_version(engine)

    if version > latest:
        raise MigrationFailedError(version, f"store schema is newer than the supported version {latest}")

    for migration in migrations:
        if migration.version <= version or migration.version > target:
            continue
        apply_migration(engine, migration)
        version = migration.version

    logger.debug("Schema at version %d", version)
    return version
