"""Tests for MaintenanceService."""

from datetime import date, timedelta

import pytest

from railshed.domain.errors import NotFoundError, ValidationError
from railshed.domain.values import Price


@pytest.fixture
def stock_id(owned_ghkrs):
    """ID of the owned Ghkrs rolling stock."""
    return owned_ghkrs.rolling_stocks[0].id


def test_record_event(maintenance_service, stock_id):
    event = maintenance_service.record(
        stock_id, "2024-05-01", "Cleaned wheels", cost="12.50 EUR", performed_by="me", next_due="2025-05-01"
    )
    assert event.sequence == 1
    assert event.date == date(2024, 5, 1)
    assert event.cost == Price(1250, "EUR")
    assert event.next_due == date(2025, 5, 1)
    assert maintenance_service.get_event(event.id) == event


def test_history_is_ordered_by_date_then_insertion(maintenance_service, stock_id):
    maintenance_service.record(stock_id, "2024-06-01", "Oiled")
    maintenance_service.record(stock_id, "2024-05-01", "Cleaned")
    maintenance_service.record(stock_id, "2024-06-01", "Replaced coupler")

    history = maintenance_service.list_events(stock_id)
    assert [e.description for e in history] == ["Cleaned", "Oiled", "Replaced coupler"]
    assert [e.sequence for e in history] == [2, 1, 3]


def test_next_due_before_event_refused(maintenance_service, stock_id):
    with pytest.raises(ValidationError):
        maintenance_service.record(stock_id, "2024-05-01", "Cleaned", next_due="2024-04-01")


def test_description_required(maintenance_service, stock_id):
    with pytest.raises(ValidationError):
        maintenance_service.record(stock_id, "2024-05-01", "  ")


def test_unknown_rolling_stock(maintenance_service):
    with pytest.raises(NotFoundError):
        maintenance_service.record("missing", "2024-05-01", "Cleaned")


def test_correct_next_due(maintenance_service, stock_id):
    event = maintenance_service.record(stock_id, "2024-05-01", "Cleaned", next_due="2025-05-01")

    corrected = maintenance_service.correct_next_due(event.id, "2025-01-01")
    assert corrected.next_due == date(2025, 1, 1)
    assert corrected.description == event.description

    assert maintenance_service.correct_next_due(event.id, None).next_due is None

    with pytest.raises(ValidationError):
        maintenance_service.correct_next_due(event.id, "2024-01-01")


def test_upcoming(maintenance_service, stock_id):
    today = date.today()
    due = maintenance_service.record(stock_id, today - timedelta(days=30), "Cleaned", next_due=today)
    maintenance_service.record(stock_id, today, "Oiled", next_due=today + timedelta(days=90))

    assert [e.id for e in maintenance_service.upcoming()] == [due.id]
    assert len(maintenance_service.upcoming(today + timedelta(days=90))) == 2


def test_history_goes_with_the_item(maintenance_service, collection_service, owned_ghkrs, stock_id):
    event = maintenance_service.record(stock_id, "2024-05-01", "Cleaned")
    collection_service.delete_item(owned_ghkrs.id)
    with pytest.raises(NotFoundError):
        maintenance_service.get_event(event.id)
