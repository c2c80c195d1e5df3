"""Tests for CatalogService."""

from decimal import Decimal

import pytest

from railshed.domain.enums import Category, Control, Scale
from railshed.domain.errors import InvariantViolationError, NotFoundError, ValidationError
from railshed.domain.values import MeasureUnit


class TestManufacturers:
    """Tests for manufacturer management."""

    def test_create_and_get(self, catalog_service):
        created = catalog_service.create_manufacturer("ACME", country_code="it")
        assert created.country_code == "IT"

        assert catalog_service.get_manufacturer(created.id) == created
        assert catalog_service.get_manufacturer("ACME") == created

    def test_duplicate_name(self, catalog_service, acme):
        with pytest.raises(InvariantViolationError, match="already exists"):
            catalog_service.create_manufacturer("ACME")

    def test_blank_name(self, catalog_service):
        with pytest.raises(ValidationError):
            catalog_service.create_manufacturer("  ")

    def test_get_unknown(self, catalog_service):
        with pytest.raises(NotFoundError):
            catalog_service.get_manufacturer("Rivarossi")

    def test_list_sorted_by_name(self, catalog_service):
        catalog_service.create_manufacturer("Roco")
        catalog_service.create_manufacturer("ACME")
        assert [m.name for m in catalog_service.list_manufacturers()] == ["ACME", "Roco"]

    def test_update(self, catalog_service, acme):
        updated = catalog_service.update_manufacturer(acme.id, registered_company_name="ACME s.r.l.")
        assert updated.registered_company_name == "ACME s.r.l."
        assert updated.name == "ACME"

    def test_update_id_refused(self, catalog_service, acme):
        with pytest.raises(InvariantViolationError):
            catalog_service.update_manufacturer(acme.id, id="other")

    def test_rename_to_taken_name(self, catalog_service, acme):
        roco = catalog_service.create_manufacturer("Roco")
        with pytest.raises(InvariantViolationError):
            catalog_service.update_manufacturer(roco.id, name="ACME")

    def test_delete_cascades_to_models(self, catalog_service, acme, ghkrs_model):
        catalog_service.delete_manufacturer("ACME")

        assert catalog_service.list_manufacturers() == []
        with pytest.raises(NotFoundError):
            catalog_service.get_railway_model(ghkrs_model.id)
        with pytest.raises(NotFoundError):
            catalog_service.get_rolling_stock(ghkrs_model.rolling_stocks[0].id)


class TestRailwayModels:
    """Tests for railway model management."""

    def test_composite_create(self, catalog_service, ghkrs_model, fs):
        assert ghkrs_model.product_code == "40152"
        assert ghkrs_model.scale is Scale.H0
        assert ghkrs_model.epoch == "IV"
        assert len(ghkrs_model.rolling_stocks) == 1

        stock = ghkrs_model.rolling_stocks[0]
        assert stock.road_number == "21 83 166 5 155-1 Ghks-w"
        assert stock.railway_company_id == fs.id
        assert stock.category is Category.FREIGHT_CAR
        assert stock.length.value == Decimal("150.00")
        assert stock.length.unit is MeasureUnit.MILLIMETERS

        fetched = catalog_service.get_railway_model(ghkrs_model.id)
        assert fetched == ghkrs_model

    def test_model_without_rolling_stock_refused(self, catalog_service, acme):
        with pytest.raises(ValidationError, match="rolling_stocks"):
            catalog_service.create_railway_model("ACME", "40153", "H0", [])
        assert catalog_service.list_railway_models() == []

    def test_unknown_manufacturer(self, catalog_service, fs):
        with pytest.raises(NotFoundError):
            catalog_service.create_railway_model("Nobody", "1", "H0", [{"railway": "FS"}])

    def test_unknown_railway_leaves_nothing_behind(self, catalog_service, acme):
        with pytest.raises(NotFoundError):
            catalog_service.create_railway_model("ACME", "1", "H0", [{"railway": "SNCF"}])
        assert catalog_service.list_railway_models() == []

    def test_invalid_scale(self, catalog_service, acme):
        with pytest.raises(ValidationError):
            catalog_service.create_railway_model("ACME", "1", "HO", [{}])

    def test_unknown_rolling_stock_field(self, catalog_service, acme):
        with pytest.raises(ValidationError, match="colour"):
            catalog_service.create_railway_model("ACME", "1", "H0", [{"colour": "red"}])

    def test_rolling_stock_without_railway(self, catalog_service, acme):
        model = catalog_service.create_railway_model("ACME", "1", "N", [{"category": "locomotive"}])
        assert model.rolling_stocks[0].railway_company_id is None

    def test_list_by_manufacturer(self, catalog_service, ghkrs_model, e444_model):
        catalog_service.create_manufacturer("Roco")
        catalog_service.create_railway_model("Roco", "72000", "H0", [{"railway": "FS"}])

        acme_models = catalog_service.list_railway_models("ACME")
        assert [m.product_code for m in acme_models] == ["40152", "60480"]
        assert len(catalog_service.list_railway_models()) == 3

    def test_update_fields(self, catalog_service, ghkrs_model):
        updated = catalog_service.update_railway_model(ghkrs_model.id, epoch="iv/v", availability_status="available")
        assert updated.epoch == "IV/V"
        assert updated.availability_status.value == "AVAILABLE"
        assert updated.rolling_stocks == ghkrs_model.rolling_stocks

    def test_move_to_other_manufacturer(self, catalog_service, ghkrs_model):
        roco = catalog_service.create_manufacturer("Roco")
        updated = catalog_service.update_railway_model(ghkrs_model.id, manufacturer="Roco")
        assert updated.manufacturer_id == roco.id

    def test_manufacturer_id_is_immutable(self, catalog_service, ghkrs_model):
        with pytest.raises(InvariantViolationError):
            catalog_service.update_railway_model(ghkrs_model.id, manufacturer_id="x")

    def test_delete_keeps_collection_item(self, catalog_service, collection_service, ghkrs_model, owned_ghkrs):
        catalog_service.delete_railway_model(ghkrs_model.id)

        item = collection_service.get_item(owned_ghkrs.id)
        assert item.railway_model_id is None
        assert len(item.rolling_stocks) == 1
        assert item.rolling_stocks[0].catalog_rolling_stock_id is None


class TestRollingStocks:
    """Tests for rolling stocks of a railway model."""

    def test_add_and_update(self, catalog_service, ghkrs_model, db_company):
        added = catalog_service.add_rolling_stock(ghkrs_model.id, railway="DB", road_number="123", control="dcc_sound")
        assert added.railway_company_id == db_company.id
        assert added.control is Control.DCC_SOUND

        updated = catalog_service.update_rolling_stock(added.id, railway=None, livery="green")
        assert updated.railway_company_id is None
        assert updated.livery == "green"
        assert updated.road_number == "123"

        model = catalog_service.get_railway_model(ghkrs_model.id)
        assert [rs.id for rs in model.rolling_stocks] == [ghkrs_model.rolling_stocks[0].id, added.id]

    def test_railway_model_is_immutable(self, catalog_service, ghkrs_model, e444_model):
        stock = ghkrs_model.rolling_stocks[0]
        with pytest.raises(InvariantViolationError):
            catalog_service.update_rolling_stock(stock.id, railway_model_id=e444_model.id)

    def test_last_rolling_stock_cannot_be_deleted(self, catalog_service, ghkrs_model):
        with pytest.raises(InvariantViolationError, match="at least one"):
            catalog_service.delete_rolling_stock(ghkrs_model.rolling_stocks[0].id)

    def test_delete_one_of_two(self, catalog_service, ghkrs_model):
        added = catalog_service.add_rolling_stock(ghkrs_model.id, road_number="2")
        catalog_service.delete_rolling_stock(ghkrs_model.rolling_stocks[0].id)
        model = catalog_service.get_railway_model(ghkrs_model.id)
        assert [rs.id for rs in model.rolling_stocks] == [added.id]


class TestRailwayCompanies:
    """Tests for railway company management."""

    def test_create_and_list(self, catalog_service, fs, db_company):
        assert [c.name for c in catalog_service.list_railway_companies()] == ["DB", "FS"]
        assert catalog_service.get_railway_company("FS").status == "active"

    def test_delete_removes_emptied_models(self, catalog_service, ghkrs_model, db_company):
        mixed = catalog_service.create_railway_model(
            "ACME", "70000", "H0", [{"railway": "FS"}, {"railway": "DB"}]
        )

        catalog_service.delete_railway_company("FS")

        with pytest.raises(NotFoundError):
            catalog_service.get_railway_model(ghkrs_model.id)
        remaining = catalog_service.get_railway_model(mixed.id)
        assert [rs.railway_company_id for rs in remaining.rolling_stocks] == [db_company.id]

    def test_delete_removes_owned_rolling_stocks(self, catalog_service, collection_service, owned_ghkrs):
        catalog_service.delete_railway_company("FS")

        item = collection_service.get_item(owned_ghkrs.id)
        assert item.rolling_stocks == ()
        assert item.railway_model_id is None
