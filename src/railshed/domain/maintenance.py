"""Maintenance ledger domain service."""

import datetime
from typing import Any, Optional

from railshed.database.base import Database
from railshed.domain.entities import MaintenanceEvent
from railshed.domain.errors import NotFoundError, ValidationError
from railshed.domain.values import optional_text, require_text, to_date, to_optional_date, to_optional_price


class MaintenanceService:
    """Service for the append-only maintenance history of owned rolling stocks."""

    def __init__(self, db: Database):
        """Initialize maintenance service.

        Args:
            db: Database instance
        """
        self.db = db

    def record(
        self,
        rolling_stock_id: str,
        date: Any,
        description: str,
        cost: Any = None,
        performed_by: Optional[str] = None,
        next_due: Any = None,
    ) -> MaintenanceEvent:
        """Append a maintenance event.

        Args:
            rolling_stock_id: Owned rolling stock ID
            date: Date of the service
            description: What was done
            cost: Optional price ("12.50 EUR", (amount, currency) or Price)
            performed_by: Optional workshop or person
            next_due: Optional date the next service is due

        Returns:
            Recorded event

        Raises:
            ValidationError: If a field is missing or malformed, or next_due
                is before the event date
            NotFoundError: If the owned rolling stock does not exist
        """
        event_date = to_date(date, "date")
        next_due_date = to_optional_date(next_due, "next_due")
        if next_due_date is not None and next_due_date < event_date:
            raise ValidationError(
                f"Next due date {next_due_date.isoformat()} is before event date {event_date.isoformat()}"
            )
        return self.db.create_maintenance_event(
            rolling_stock_id,
            event_date,
            require_text(description, "description"),
            cost=to_optional_price(cost),
            performed_by=optional_text(performed_by),
            next_due=next_due_date,
        )

    def list_events(self, rolling_stock_id: str) -> list[MaintenanceEvent]:
        """List the history of an owned rolling stock, oldest first."""
        return self.db.list_maintenance_events(rolling_stock_id)

    def get_event(self, event_id: str) -> MaintenanceEvent:
        event = self.db.get_maintenance_event(event_id)
        if event is None:
            raise NotFoundError("Maintenance event", event_id)
        return event

    def correct_next_due(self, event_id: str, new_date: Any) -> MaintenanceEvent:
        """Correct (or clear, with None) the next due date of an event."""
        return self.db.update_maintenance_next_due(event_id, to_optional_date(new_date, "next_due"))

    def upcoming(self, until: Any = None) -> list[MaintenanceEvent]:
        """List events due on or before a date (default today)."""
        until_date = to_date(until, "until") if until is not None else datetime.date.today()
        return self.db.list_due_maintenance(until_date)
