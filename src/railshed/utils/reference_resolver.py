"""Utility for resolving manufacturer and railway company references."""

from railshed.database.base import Database
from railshed.domain.entities import Manufacturer, RailwayCompany
from railshed.domain.errors import NotFoundError, ValidationError, missing_field


def _reference(reference: str | None, field: str) -> str:
    if reference is None or not str(reference).strip():
        raise ValidationError(missing_field(field))
    return str(reference).strip()


def resolve_manufacturer(db: Database, reference: str) -> Manufacturer:
    """Resolve a manufacturer name or ID to the manufacturer.

    Args:
        db: Database instance
        reference: Manufacturer ID or name

    Returns:
        Manufacturer entity

    Raises:
        NotFoundError: If no manufacturer has that ID or name
    """
    reference = _reference(reference, "manufacturer")
    manufacturer = db.get_manufacturer(reference) or db.get_manufacturer_by_name(reference)
    if manufacturer is None:
        raise NotFoundError("Manufacturer", reference)
    return manufacturer


def resolve_railway_company(db: Database, reference: str) -> RailwayCompany:
    """Resolve a railway company name or ID to the company.

    Raises:
        NotFoundError: If no railway company has that ID or name
    """
    reference = _reference(reference, "railway")
    company = db.get_railway_company(reference) or db.get_railway_company_by_name(reference)
    if company is None:
        raise NotFoundError("Railway company", reference)
    return company
