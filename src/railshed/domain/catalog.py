"""Catalog domain service: manufacturers, railway companies, railway models."""

import logging
from typing import Any, Iterable, Optional

from railshed.database.base import Database
from railshed.domain.entities import (
    Manufacturer,
    NewRollingStock,
    RailwayCompany,
    RailwayModel,
    RollingStock,
)
from railshed.domain.enums import (
    AvailabilityStatus,
    Category,
    Control,
    DccInterface,
    PowerMethod,
    Scale,
    ServiceLevel,
)
from railshed.domain.errors import InvariantViolationError, NotFoundError, immutable_field
from railshed.domain.values import (
    canonicalize_fields,
    optional_text,
    require_text,
    to_bool,
    to_country_code,
    to_delivery_date,
    to_epoch,
    to_optional_measure,
)
from railshed.utils.reference_resolver import resolve_manufacturer, resolve_railway_company

logger = logging.getLogger(__name__)

REFERENCE_FIELDS = {
    "name": lambda value: require_text(value, "name"),
    "registered_company_name": optional_text,
    "country_code": to_country_code,
}

RAILWAY_COMPANY_FIELDS = {**REFERENCE_FIELDS, "status": optional_text}

RAILWAY_MODEL_FIELDS = {
    "product_code": lambda value: require_text(value, "product_code"),
    "scale": Scale.parse,
    "description": optional_text,
    "details": optional_text,
    "power_method": PowerMethod.parse_optional,
    "epoch": to_epoch,
    "category": Category.parse_optional,
    "delivery_date": to_delivery_date,
    "availability_status": AvailabilityStatus.parse_optional,
}

ROLLING_STOCK_FIELDS = {
    "category": Category.parse_optional,
    "road_number": optional_text,
    "type_name": optional_text,
    "series": optional_text,
    "depot": optional_text,
    "length": to_optional_measure,
    "livery": optional_text,
    "service_level": ServiceLevel.parse_optional,
    "control": Control.parse_optional,
    "dcc_interface": DccInterface.parse_optional,
    "is_dummy": lambda value: to_bool(value, "is_dummy"),
}


def refuse_identity_change(kind: str, changes: dict[str, Any], immutable: Iterable[str] = ()) -> None:
    for name in ("id", *immutable):
        if name in changes:
            raise InvariantViolationError(immutable_field(kind, name))


class CatalogService:
    """Service for managing the catalog."""

    def __init__(self, db: Database):
        """Initialize catalog service.

        Args:
            db: Database instance
        """
        self.db = db

    # Manufacturers
    def create_manufacturer(
        self, name: str, registered_company_name: Optional[str] = None, country_code: Optional[str] = None
    ) -> Manufacturer:
        """Create a manufacturer.

        Args:
            name: Unique manufacturer (brand) name
            registered_company_name: Optional legal name
            country_code: Optional ISO 3166 alpha-2 code

        Returns:
            Created manufacturer

        Raises:
            ValidationError: If the name is blank or the country code malformed
            InvariantViolationError: If the name is already taken
        """
        fields = canonicalize_fields(
            "Manufacturer",
            {"name": name, "registered_company_name": registered_company_name, "country_code": country_code},
            REFERENCE_FIELDS,
        )
        return self.db.create_manufacturer(**fields)

    def get_manufacturer(self, reference: str) -> Manufacturer:
        """Get a manufacturer by ID or name.

        Raises:
            NotFoundError: If the manufacturer does not exist
        """
        return resolve_manufacturer(self.db, reference)

    def list_manufacturers(self) -> list[Manufacturer]:
        return self.db.list_manufacturers()

    def update_manufacturer(self, manufacturer_id: str, **changes: Any) -> Manufacturer:
        """Update manufacturer fields (name, registered_company_name, country_code)."""
        refuse_identity_change("Manufacturer", changes)
        return self.db.update_manufacturer(
            manufacturer_id, canonicalize_fields("Manufacturer", changes, REFERENCE_FIELDS)
        )

    def delete_manufacturer(self, reference: str) -> None:
        """Delete a manufacturer and all of its railway models."""
        manufacturer = resolve_manufacturer(self.db, reference)
        self.db.delete_manufacturer(manufacturer.id)

    # Railway companies
    def create_railway_company(
        self,
        name: str,
        registered_company_name: Optional[str] = None,
        country_code: Optional[str] = None,
        status: Optional[str] = None,
    ) -> RailwayCompany:
        """Create a railway company.

        Raises:
            ValidationError: If the name is blank or the country code malformed
            InvariantViolationError: If the name is already taken
        """
        fields = canonicalize_fields(
            "RailwayCompany",
            {
                "name": name,
                "registered_company_name": registered_company_name,
                "country_code": country_code,
                "status": status,
            },
            RAILWAY_COMPANY_FIELDS,
        )
        return self.db.create_railway_company(**fields)

    def get_railway_company(self, reference: str) -> RailwayCompany:
        """Get a railway company by ID or name.

        Raises:
            NotFoundError: If the railway company does not exist
        """
        return resolve_railway_company(self.db, reference)

    def list_railway_companies(self) -> list[RailwayCompany]:
        return self.db.list_railway_companies()

    def update_railway_company(self, company_id: str, **changes: Any) -> RailwayCompany:
        refuse_identity_change("RailwayCompany", changes)
        return self.db.update_railway_company(
            company_id, canonicalize_fields("RailwayCompany", changes, RAILWAY_COMPANY_FIELDS)
        )

    def delete_railway_company(self, reference: str) -> None:
        """Delete a railway company.

        Its catalog rolling stocks and owned rolling stocks go with it; railway
        models left without rolling stock are deleted too.
        """
        company = resolve_railway_company(self.db, reference)
        self.db.delete_railway_company(company.id)

    # Railway models
    def _new_rolling_stock(self, raw: dict[str, Any]) -> NewRollingStock:
        raw = dict(raw)
        railway_company_id = raw.pop("railway_company_id", None)
        railway = raw.pop("railway", None) or railway_company_id
        fields = canonicalize_fields("RollingStock", raw, ROLLING_STOCK_FIELDS)
        if railway is not None:
            fields["railway_company_id"] = resolve_railway_company(self.db, railway).id
        return NewRollingStock(**fields)

    def create_railway_model(
        self,
        manufacturer: str,
        product_code: str,
        scale: str | Scale,
        rolling_stocks: list[dict[str, Any]],
        **details: Any,
    ) -> RailwayModel:
        """Create a railway model together with its rolling stocks.

        Args:
            manufacturer: Manufacturer ID or name
            product_code: Manufacturer's item number
            scale: Model scale (e.g. "H0")
            rolling_stocks: One mapping per rolling stock; ``railway`` takes a
                railway company ID or name, ``length`` a number (mm) or
                ``{"value": ..., "unit": ...}``
            **details: Optional description, details, power_method, epoch,
                category, delivery_date, availability_status

        Returns:
            Created railway model with its rolling stocks

        Raises:
            ValidationError: If a field is missing or malformed, or no
                rolling stock is given
            NotFoundError: If the manufacturer or a railway company does not exist
        """
        fields = canonicalize_fields(
            "RailwayModel",
            {"product_code": product_code, "scale": scale, **details},
            RAILWAY_MODEL_FIELDS,
        )
        stocks = [self._new_rolling_stock(raw) for raw in rolling_stocks or []]
        fields["manufacturer_id"] = resolve_manufacturer(self.db, manufacturer).id
        model = self.db.create_railway_model(fields, stocks)
        logger.info("Created railway model %s (%s)", model.id, model.product_code)
        return model

    def get_railway_model(self, model_id: str) -> RailwayModel:
        """Get a railway model with its rolling stocks.

        Raises:
            NotFoundError: If the railway model does not exist
        """
        model = self.db.get_railway_model(model_id)
        if model is None:
            raise NotFoundError("Railway model", model_id)
        return model

    def list_railway_models(self, manufacturer: Optional[str] = None) -> list[RailwayModel]:
        """List railway models, optionally only those of one manufacturer."""
        manufacturer_id = resolve_manufacturer(self.db, manufacturer).id if manufacturer else None
        return self.db.list_railway_models(manufacturer_id)

    def update_railway_model(self, model_id: str, **changes: Any) -> RailwayModel:
        """Update scalar fields of a railway model.

        ``manufacturer`` (a name or ID) moves the model to another existing
        manufacturer. A raw ``manufacturer_id`` is refused, so the owner is
        only ever changed through a reference that resolves. Rolling stocks
        stay with their model; their ``railway_model_id`` never changes.
        """
        refuse_identity_change("RailwayModel", changes, immutable=("manufacturer_id",))
        changes = dict(changes)
        manufacturer = changes.pop("manufacturer", None)
        fields = canonicalize_fields("RailwayModel", changes, RAILWAY_MODEL_FIELDS)
        if manufacturer is not None:
            fields["manufacturer_id"] = resolve_manufacturer(self.db, manufacturer).id
        return self.db.update_railway_model(model_id, fields)

    def delete_railway_model(self, model_id: str) -> None:
        """Delete a railway model and its rolling stocks.

        Collection items and owned rolling stocks that pointed at it keep
        existing with their catalog link cleared.
        """
        self.db.delete_railway_model(model_id)

    # Rolling stocks
    def add_rolling_stock(self, model_id: str, **fields: Any) -> RollingStock:
        return self.db.add_rolling_stock(model_id, self._new_rolling_stock(fields))

    def get_rolling_stock(self, rolling_stock_id: str) -> RollingStock:
        rolling_stock = self.db.get_rolling_stock(rolling_stock_id)
        if rolling_stock is None:
            raise NotFoundError("Rolling stock", rolling_stock_id)
        return rolling_stock

    def update_rolling_stock(self, rolling_stock_id: str, **changes: Any) -> RollingStock:
        """Update a rolling stock.

        Raises:
            InvariantViolationError: On an attempt to move it to another railway model
        """
        refuse_identity_change("RollingStock", changes, immutable=("railway_model_id",))
        changes = dict(changes)
        railway_given = "railway" in changes
        railway = changes.pop("railway", None)
        fields = canonicalize_fields("RollingStock", changes, ROLLING_STOCK_FIELDS)
        if railway_given:
            fields["railway_company_id"] = (
                resolve_railway_company(self.db, railway).id if railway is not None else None
            )
        return self.db.update_rolling_stock(rolling_stock_id, fields)

    def delete_rolling_stock(self, rolling_stock_id: str) -> None:
        """Delete a rolling stock.

        Raises:
            InvariantViolationError: If it is the last rolling stock of its model
        """
        self.db.delete_rolling_stock(rolling_stock_id)
