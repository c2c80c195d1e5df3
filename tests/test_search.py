"""Tests for SearchService filters and pagination."""

import pytest

from railshed.database.models import CollectionItem
from railshed.database.search import choose_index, collection_item_candidates, collection_item_query
from railshed.domain.errors import ValidationError
from railshed.domain.filters import CollectionFilter, PageRequest, decode_cursor, encode_cursor


@pytest.fixture
def stocked_collection(catalog_service, collection_service, owned_ghkrs, e444_model, db_company):
    """A collection with a freight car, a DCC-ready locomotive and a free N scale item."""
    e444 = collection_service.add_from_catalog(e444_model.id)
    free = collection_service.create_item(
        "Fleischmann",
        "7370",
        rolling_stocks=[{"railway": "DB"}],
        description="Dampflok BR 03",
        scale="N",
        epoch="III",
        category="LOCOMOTIVE",
    )
    return {"ghkrs": owned_ghkrs, "e444": e444, "free": free}


def _ids(page):
    return {item.id for item in page.items}


class TestCollectionFilters:
    """Tests for filter correctness."""

    def test_no_filter_lists_everything_in_description_order(self, search_service, stocked_collection):
        page = search_service.list_collection()
        assert [item.description for item in page.items] == [
            "Carro merci coperto Ghkrs",
            "Dampflok BR 03",
            "Locomotiva elettrica E 444",
        ]
        assert page.next_cursor is None

    def test_brand(self, search_service, stocked_collection):
        page = search_service.list_collection({"brand": "ACME"})
        assert _ids(page) == {stocked_collection["ghkrs"].id, stocked_collection["e444"].id}

    def test_scale_and_category(self, search_service, stocked_collection):
        page = search_service.list_collection({"scale": "h0", "category": "LOCOMOTIVE"})
        assert _ids(page) == {stocked_collection["e444"].id}

    def test_epoch(self, search_service, stocked_collection):
        page = search_service.list_collection({"epoch": "iii"})
        assert _ids(page) == {stocked_collection["free"].id}

    def test_road_number_prefix(self, search_service, stocked_collection):
        page = search_service.list_collection({"road_number": "21 83"})
        assert _ids(page) == {stocked_collection["ghkrs"].id}

    def test_road_number_prefix_escapes_wildcards(self, search_service, stocked_collection):
        assert search_service.list_collection({"road_number": "%"}).items == ()

    def test_livery_and_depot(self, search_service, stocked_collection):
        assert _ids(search_service.list_collection({"livery": "tartaruga"})) == {stocked_collection["e444"].id}
        assert _ids(search_service.list_collection({"depot": "Milano Smistamento"})) == {
            stocked_collection["e444"].id
        }

    def test_dcc_capable_filters_are_disjoint(self, search_service, stocked_collection):
        capable = _ids(search_service.list_collection({"dcc_capable": True}))
        not_capable = _ids(search_service.list_collection({"dcc_capable": False}))

        assert capable == {stocked_collection["e444"].id}
        assert capable.isdisjoint(not_capable)
        assert capable | not_capable == {item.id for item in stocked_collection.values()}

    def test_text_is_case_insensitive(self, search_service, stocked_collection):
        assert _ids(search_service.list_collection({"text": "dampf"})) == {stocked_collection["free"].id}
        assert _ids(search_service.list_collection({"text": "7370"})) == {stocked_collection["free"].id}

    def test_unknown_option(self, search_service):
        with pytest.raises(TypeError):
            search_service.list_collection({"colour": "red"})

    def test_invalid_option_value(self, search_service):
        with pytest.raises(ValidationError):
            search_service.list_collection({"scale": "HO"})

    def test_dcc_capable_must_be_boolean(self):
        with pytest.raises(ValidationError):
            CollectionFilter.create(dcc_capable="yes")


class TestPagination:
    """Tests for cursor pagination."""

    def test_pages_cover_every_item_once(self, search_service, collection_service, fs):
        created = {
            collection_service.create_item("Roco", f"{n:03d}", description=f"Wagon {n % 4}").id
            for n in range(11)
        }

        seen = []
        cursor = None
        while True:
            page = search_service.list_collection(page=PageRequest(limit=3, cursor=cursor))
            assert len(page.items) <= 3
            seen.extend(item.id for item in page.items)
            if page.next_cursor is None:
                break
            cursor = page.next_cursor

        assert len(seen) == len(set(seen)) == 11
        assert set(seen) == created

    def test_pages_are_stable_under_inserts_before_cursor(self, search_service, collection_service):
        for n in range(4):
            collection_service.create_item("Roco", str(n), description=f"M{n}")
        first = search_service.list_collection(page=PageRequest(limit=2))
        assert [i.description for i in first.items] == ["M0", "M1"]

        collection_service.create_item("Roco", "x", description="A first")
        second = search_service.list_collection(page=PageRequest(limit=2, cursor=first.next_cursor))
        assert [i.description for i in second.items] == ["M2", "M3"]

    def test_iter_collection(self, search_service, collection_service):
        for n in range(5):
            collection_service.create_item("Roco", str(n))
        assert len(list(search_service.iter_collection(page_size=2))) == 5

    def test_limit_bounds(self):
        with pytest.raises(ValidationError):
            PageRequest(limit=0)
        with pytest.raises(ValidationError):
            PageRequest(limit=501)

    def test_cursor_round_trip_and_garbage(self):
        assert decode_cursor(encode_cursor("Wagon", "abc")) == ("Wagon", "abc")
        with pytest.raises(ValidationError):
            decode_cursor("not-a-cursor")


class TestCatalogSearch:
    """Tests for searching railway models."""

    def test_filters(self, search_service, ghkrs_model, e444_model):
        assert [m.id for m in search_service.search_catalog({"category": "LOCOMOTIVE"}).items] == [e444_model.id]
        assert [m.id for m in search_service.search_catalog({"road_number": "E 444"}).items] == [e444_model.id]
        assert [m.id for m in search_service.search_catalog({"brand": "ACME", "dcc_capable": False}).items] == [
            ghkrs_model.id
        ]


class TestIndexChoice:
    """Tests for choosing the driving index."""

    @pytest.fixture
    def skewed(self, collection_service):
        """Many H0 items from one brand, one ACME item and one N item."""
        for n in range(6):
            collection_service.create_item("Roco", str(n), scale="H0")
        collection_service.create_item("ACME", "40152", scale="H0")
        collection_service.create_item("Roco", "7370", scale="N")

    def _chosen(self, temp_db, **options):
        with temp_db.transaction() as session:
            flt = CollectionFilter.create(**options)
            return choose_index(session, CollectionItem, collection_item_candidates(flt))

    def test_fewest_rows_wins(self, temp_db, skewed):
        assert self._chosen(temp_db, brand="ACME", scale="H0").index_name == "idx_collection_items_manufacturer"
        assert self._chosen(temp_db, brand="Roco", scale="N").index_name == "idx_collection_items_scale"

    def test_no_indexed_predicate(self, temp_db, skewed):
        assert self._chosen(temp_db, text="40152") is None

    def test_chosen_predicate_drives_the_query(self, temp_db, search_service, skewed):
        with temp_db.transaction() as session:
            stmt = collection_item_query(session, CollectionFilter.create(brand="ACME", scale="H0"), limit=10)
        assert "IN (SELECT" in str(stmt)

        page = search_service.list_collection({"brand": "ACME", "scale": "H0"})
        assert [item.product_code for item in page.items] == ["40152"]
