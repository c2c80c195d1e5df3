"""Shared domain error messages and error types."""


class DomainError(ValueError):
    """Base class for domain-level errors.

    Subclasses provide semantic categories while preserving ValueError
    compatibility for existing error handling.
    """


class ValidationError(DomainError):
    """Missing or malformed input rejected at the boundary."""


class InvalidCurrencyError(ValidationError):
    """Currency code outside ISO 4217 or amount not representable in it."""


class InvalidUnitError(ValidationError):
    """Unknown measure unit."""


class NotFoundError(DomainError):
    """A referenced entity does not exist."""

    def __init__(self, kind: str, entity_id: str):
        self.kind = kind
        self.entity_id = entity_id
        super().__init__(f"{kind} {entity_id} not found")


class InvariantViolationError(DomainError):
    """Write refused because it would break a domain invariant."""


class MigrationFailedError(DomainError):
    """Schema upgrade aborted; the store was left at the previous version."""

    def __init__(self, version: int, reason: str):
        self.version = version
        super().__init__(f"Migration to schema version {version} failed: {reason}")


class RestoreError(DomainError):
    """Backup snapshot is malformed, invalid or not migratable."""


def duplicate_name(kind: str, name: str) -> str:
    """Return message for a unique-name collision."""
    return f"{kind} with name '{name}' already exists"


def missing_field(field: str) -> str:
    """Return message for a missing required field."""
    return f"Missing required field '{field}'"


def immutable_field(kind: str, field: str) -> str:
    """Return message for an attempt to change an identifying field."""
    return f"{kind}.{field} cannot be changed after creation; delete and recreate instead"


def last_rolling_stock(model_id: str) -> str:
    """Return message when deleting would leave a railway model empty."""
    return f"Railway model {model_id} must keep at least one rolling stock"


def current_holding_exists(item_id: str) -> str:
    """Return message when a second current purchase is recorded for an item."""
    return (
        f"Collection item {item_id} already has a current purchase record. "
        "Record its sale before adding a new purchase."
    )


def reorder_mismatch(wishlist_id: str) -> str:
    """Return message when a reorder id set differs from the list contents."""
    return f"Entry ids do not match the current entries of wish list {wishlist_id}"
