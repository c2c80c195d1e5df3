"""Backup export and transactional restore.

A backup is a JSON document::

    {
      "format": "railshed-backup",
      "format_version": 1,
      "schema_version": 5,
      "exported_at": "2024-05-01T10:00:00+00:00",
      "tables": {"manufacturers": [{...}, ...], ...}
    }

Rows hold the persisted column values (integers, ISO date strings, text) in
insertion order. Restoring validates the whole snapshot before anything is
written, then replaces every table inside one transaction.
"""

import json
import logging
import os
from datetime import datetime, timezone
from pathlib import Path
from typing import Any

from sqlalchemy import Boolean, Integer
from sqlalchemy.exc import SQLAlchemyError

from railshed.database.base import Database
from railshed.database.models import ENTITY_TABLES, Base
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
from railshed.domain.errors import DomainError, RestoreError
from railshed.domain.values import MAX_MINOR_UNITS, Price, to_delivery_date, to_epoch, to_measure

logger = logging.getLogger(__name__)

BACKUP_FORMAT = "railshed-backup"
BACKUP_FORMAT_VERSION = 1

# (table, column, referenced table, required)
_REFERENCES = (
    ("railway_models", "manufacturer_id", "manufacturers", True),
    ("rolling_stocks", "railway_model_id", "railway_models", True),
    ("rolling_stocks", "railway_company_id", "railway_companies", False),
    ("collection_items", "collection_id", "collections", True),
    ("collection_items", "railway_model_id", "railway_models", False),
    ("owned_rolling_stocks", "item_id", "collection_items", True),
    ("owned_rolling_stocks", "catalog_rolling_stock_id", "rolling_stocks", False),
    ("owned_rolling_stocks", "railway_id", "railway_companies", True),
    ("purchase_infos", "collection_item_id", "collection_items", True),
    ("wishlist_entries", "wishlist_id", "wishlists", True),
    ("maintenance_events", "rolling_stock_id", "owned_rolling_stocks", True),
)

_ENUM_COLUMNS = {
    "railway_models": {
        "scale": Scale,
        "power_method": PowerMethod,
        "category": Category,
        "availability_status": AvailabilityStatus,
    },
    "rolling_stocks": {
        "category": Category,
        "service_level": ServiceLevel,
        "control": Control,
        "dcc_interface": DccInterface,
    },
    "collection_items": {"scale": Scale, "power_method": PowerMethod, "category": Category},
    "purchase_infos": {"purchase_type": PurchaseType},
    "wishlist_entries": {"priority": Priority},
}

_PRICE_COLUMNS = {
    "collections": ("total_value",),
    "purchase_infos": ("purchased_price", "sale_price", "deposit", "preorder_total"),
    "maintenance_events": ("cost",),
}

_DATE_COLUMNS = {
    "purchase_infos": ("purchase_date", "sale_date", "expected_date"),
    "maintenance_events": ("date", "next_due"),
}

_EPOCH_COLUMNS = {
    "railway_models": ("epoch",),
    "collection_items": ("epoch",),
    "owned_rolling_stocks": ("epoch",),
}


def _upgrade_rows(tables: dict[str, list[dict[str, Any]]], from_version: int) -> None:
    """Bring rows written under an older schema up to the current columns."""
    if from_version < 5:
        model_categories = {
            row.get("id"): row.get("category")
            for row in tables.get("railway_models", [])
            if isinstance(row, dict) and isinstance(row.get("id"), str)
        }
        for row in tables.get("collection_items", []):
            if not isinstance(row, dict):
                continue
            model_id = row.get("railway_model_id")
            row.setdefault("category", model_categories.get(model_id) if isinstance(model_id, str) else None)
            row.setdefault("quantity", 1)


def _check(condition: bool, message: str) -> None:
    if not condition:
        raise RestoreError(message)


def _validate_rows(tables: dict[str, list[dict[str, Any]]]) -> None:
    """Validate a complete snapshot against the current schema and invariants."""
    ids: dict[str, set[str]] = {}
    for table in ENTITY_TABLES:
        columns = Base.metadata.tables[table].columns
        seen: set[str] = set()
        for row in tables[table]:
            _check(isinstance(row, dict), f"{table}: rows must be objects")
            _check(set(row) == set(columns.keys()), f"{table}: row columns do not match the schema")
            row_id = row["id"]
            _check(isinstance(row_id, str) and bool(row_id), f"{table}: row without id")
            _check(row_id not in seen, f"{table}: duplicate id {row_id}")
            seen.add(row_id)
            for column in columns:
                if not column.nullable:
                    _check(row[column.name] is not None, f"{table} row {row_id}: {column.name} is required")
            _validate_values(table, row)
        ids[table] = seen

    for table, column, target, required in _REFERENCES:
        for row in tables[table]:
            value = row[column]
            if value is None:
                _check(not required, f"{table} row {row['id']}: {column} is required")
                continue
            _check(value in ids[target], f"{table} row {row['id']}: {column} {value} does not resolve")

    models_with_stock = {row["railway_model_id"] for row in tables["rolling_stocks"]}
    for row in tables["railway_models"]:
        _check(row["id"] in models_with_stock, f"Railway model {row['id']} has no rolling stock")

    current_holdings: set[str] = set()
    for row in tables["purchase_infos"]:
        if row["purchase_type"] != PurchaseType.SOLD.value:
            item_id = row["collection_item_id"]
            _check(item_id not in current_holdings, f"Collection item {item_id} has two current purchase records")
            current_holdings.add(item_id)

    positions: dict[str, list[int]] = {}
    for row in tables["wishlist_entries"]:
        positions.setdefault(row["wishlist_id"], []).append(row["position"])
    for wishlist_id, values in positions.items():
        _check(sorted(values) == list(range(len(values))), f"Wish list {wishlist_id} positions are not dense")


def _check_column_types(table: str, row: dict[str, Any]) -> None:
    for column in Base.metadata.tables[table].columns:
        value = row[column.name]
        if value is None:
            continue
        if isinstance(column.type, Boolean):
            ok = isinstance(value, bool) or (isinstance(value, int) and value in (0, 1))
        elif isinstance(column.type, Integer):
            ok = (
                isinstance(value, int)
                and not isinstance(value, bool)
                and -MAX_MINOR_UNITS - 1 <= value <= MAX_MINOR_UNITS
            )
        else:
            ok = isinstance(value, str)
        _check(ok, f"invalid {column.name} {value!r}")


def _validate_values(table: str, row: dict[str, Any]) -> None:
    row_id = row["id"]
    try:
        _check_column_types(table, row)
        for column, enum_cls in _ENUM_COLUMNS.get(table, {}).items():
            if row[column] is not None:
                enum_cls(row[column])
        for name in _PRICE_COLUMNS.get(table, ()):
            amount, currency = row[f"{name}_amount"], row[f"{name}_currency"]
            if amount is not None or currency is not None:
                Price.from_minor_units(amount, currency)
        for column in _DATE_COLUMNS.get(table, ()):
            if row[column] is not None:
                datetime.strptime(row[column], "%Y-%m-%d")
        for column in _EPOCH_COLUMNS.get(table, ()):
            if row[column] is not None:
                _check(to_epoch(row[column]) == row[column], "invalid epoch")
        if table == "railway_models" and row["delivery_date"] is not None:
            _check(to_delivery_date(row["delivery_date"]) == row["delivery_date"], "invalid delivery date")
        if table == "rolling_stocks" and row["length_value"] is not None:
            to_measure(row["length_value"], row["length_unit"] or "mm")
        if table == "collection_items":
            quantity = row["quantity"]
            _check(
                isinstance(quantity, int) and not isinstance(quantity, bool) and quantity >= 0,
                "invalid quantity",
            )
    except (DomainError, ValueError, TypeError) as e:
        raise RestoreError(f"{table} row {row_id}: {e}") from e


class BackupService:
    """Service for exporting and restoring complete snapshots of the store."""

    def __init__(self, db: Database):
        """Initialize backup service.

        Args:
            db: Database instance
        """
        self.db = db

    def export_backup(self) -> str:
        """Serialize the entire store into a versioned JSON document."""
        snapshot = {
            "format": BACKUP_FORMAT,
            "format_version": BACKUP_FORMAT_VERSION,
            "schema_version": self.db.schema_version(),
            "exported_at": datetime.now(timezone.utc).isoformat(timespec="seconds"),
            "tables": self.db.dump_tables(),
        }
        logger.info(
            "Exported backup with %d row(s)", sum(len(rows) for rows in snapshot["tables"].values())
        )
        return json.dumps(snapshot, ensure_ascii=False, indent=2)

    def _load(self, snapshot: "str | dict[str, Any]") -> dict[str, list[dict[str, Any]]]:
        if isinstance(snapshot, str):
            try:
                snapshot = json.loads(snapshot)
            except json.JSONDecodeError as e:
                raise RestoreError(f"Backup is not valid JSON: {e}") from e
        _check(isinstance(snapshot, dict), "Backup must be a JSON object")
        _check(snapshot.get("format") == BACKUP_FORMAT, "Not a railshed backup")

        format_version = snapshot.get("format_version")
        _check(
            isinstance(format_version, int) and 1 <= format_version <= BACKUP_FORMAT_VERSION,
            f"Unsupported backup format version {format_version!r}",
        )
        schema_version = snapshot.get("schema_version")
        current = self.db.schema_version()
        _check(
            isinstance(schema_version, int) and 1 <= schema_version,
            f"Invalid backup schema version {schema_version!r}",
        )
        _check(
            schema_version <= current,
            f"Backup schema version {schema_version} is newer than this store ({current})",
        )

        raw_tables = snapshot.get("tables")
        _check(isinstance(raw_tables, dict), "Backup has no tables")
        unknown = set(raw_tables) - set(ENTITY_TABLES)
        _check(not unknown, f"Backup contains unknown table(s): {', '.join(sorted(unknown))}")
        tables = {}
        for table in ENTITY_TABLES:
            rows = raw_tables.get(table, [])
            _check(isinstance(rows, list), f"{table}: rows must be a list")
            tables[table] = [dict(row) if isinstance(row, dict) else row for row in rows]

        _upgrade_rows(tables, schema_version)
        return tables

    def restore_backup(self, snapshot: "str | dict[str, Any]") -> None:
        """Replace the store contents with a snapshot, all or nothing.

        Args:
            snapshot: JSON text produced by export_backup, or its parsed form

        Raises:
            RestoreError: If the snapshot is malformed, was written by a newer
                schema, or violates any constraint; the store is left untouched
        """
        tables = self._load(snapshot)
        _validate_rows(tables)
        try:
            self.db.replace_all(tables)
        except (DomainError, SQLAlchemyError, OverflowError) as e:
            logger.error("Restore failed: %s", e)
            raise RestoreError(f"Restore failed: {e}") from e
        logger.info("Restored backup with %d row(s)", sum(len(rows) for rows in tables.values()))

    def export_to_file(self, path: "str | Path") -> Path:
        """Write a backup to a file, replacing it atomically."""
        target = Path(path).expanduser()
        target.parent.mkdir(parents=True, exist_ok=True)
        tmp = target.with_suffix(target.suffix + ".tmp")
        tmp.write_text(self.export_backup(), encoding="utf-8")
        os.replace(tmp, target)
        return target

    def restore_from_file(self, path: "str | Path") -> None:
        """Restore a backup previously written by export_to_file."""
        try:
            text = Path(path).expanduser().read_text(encoding="utf-8")
        except OSError as e:
            raise RestoreError(f"Cannot read backup {path}: {e}") from e
        self.restore_backup(text)

