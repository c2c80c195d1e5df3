"""Shared pytest fixtures for railshed tests."""

import json
import os
import tempfile

import pytest

from railshed.database.factories import create_sqlite_database
from railshed.domain.backup import BackupService
from railshed.domain.catalog import CatalogService
from railshed.domain.collection import CollectionService
from railshed.domain.maintenance import MaintenanceService
from railshed.domain.search import SearchService
from railshed.domain.wishlist import WishlistService


@pytest.fixture
def temp_db():
    """Create a temporary database for testing."""
    # Create a temporary file for the database
    fd, db_path = tempfile.mkstemp(suffix=".db")
    os.close(fd)

    # Create database
    db = create_sqlite_database(database_path=db_path)
    # Store the path for tests that need it
    db.database_path = db_path
    db.connect()
    db.initialize_schema()

    yield db

    # Cleanup
    db.disconnect()
    if os.path.exists(db_path):
        os.unlink(db_path)


@pytest.fixture
def catalog_service(temp_db):
    """Create a CatalogService with a temporary database."""
    return CatalogService(temp_db)


@pytest.fixture
def collection_service(temp_db):
    """Create a CollectionService with a temporary database."""
    return CollectionService(temp_db)


@pytest.fixture
def search_service(temp_db):
    """Create a SearchService with a temporary database."""
    return SearchService(temp_db)


@pytest.fixture
def wishlist_service(temp_db):
    """Create a WishlistService with a temporary database."""
    return WishlistService(temp_db)


@pytest.fixture
def maintenance_service(temp_db):
    """Create a MaintenanceService with a temporary database."""
    return MaintenanceService(temp_db)


@pytest.fixture
def backup_service(temp_db):
    """Create a BackupService with a temporary database."""
    return BackupService(temp_db)


@pytest.fixture
def acme(catalog_service):
    """Create the ACME manufacturer."""
    return catalog_service.create_manufacturer("ACME", "Associazione Costruzioni Modellistiche Esatte", "IT")


@pytest.fixture
def fs(catalog_service):
    """Create the FS railway company."""
    return catalog_service.create_railway_company("FS", "Ferrovie dello Stato", "IT", status="active")


@pytest.fixture
def db_company(catalog_service):
    """Create the DB railway company."""
    return catalog_service.create_railway_company("DB", "Deutsche Bundesbahn", "DE", status="historic")


@pytest.fixture
def ghkrs_model(catalog_service, acme, fs):
    """Create the ACME 40152 freight car model with one rolling stock."""
    return catalog_service.create_railway_model(
        "ACME",
        "40152",
        "H0",
        [
            {
                "railway": "FS",
                "category": "FREIGHT_CAR",
                "road_number": "21 83 166 5 155-1 Ghks-w",
                "type_name": "Ghkrs",
                "livery": "brown",
                "length": {"value": "150", "unit": "mm"},
            }
        ],
        description="Carro merci coperto Ghkrs",
        power_method="DC",
        epoch="IV",
        category="FREIGHT_CAR",
    )


@pytest.fixture
def e444_model(catalog_service, acme, fs):
    """Create a DCC-ready electric locomotive model."""
    return catalog_service.create_railway_model(
        "ACME",
        "60480",
        "H0",
        [
            {
                "railway": "FS",
                "category": "LOCOMOTIVE",
                "road_number": "E 444 005",
                "livery": "tartaruga",
                "depot": "Milano Smistamento",
                "control": "DCC_READY",
                "dcc_interface": "NEXT_18",
            }
        ],
        description="Locomotiva elettrica E 444",
        power_method="DC",
        epoch="IV",
        category="LOCOMOTIVE",
    )


@pytest.fixture
def owned_ghkrs(collection_service, ghkrs_model):
    """Add the Ghkrs model to the collection, bought for 35.00 EUR."""
    return collection_service.add_from_catalog(
        ghkrs_model.id,
        purchase={"purchase_date": "2024-03-01", "purchased_price": "35.00 EUR"},
    )


@pytest.fixture
def cli_runner():
    """Create a Click CLI test runner."""
    from click.testing import CliRunner

    return CliRunner()


@pytest.fixture
def write_json(tmp_path):
    """Write an object to a JSON file under tmp_path and return the path."""

    def _write(name, data):
        path = tmp_path / name
        path.write_text(json.dumps(data), encoding="utf-8")
        return str(path)

    return _write
