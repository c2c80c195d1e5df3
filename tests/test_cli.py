"""Tests for the command line interface."""

import re

from railshed.cli.main import cli


def _run(cli_runner, temp_db, *args, **kwargs):
    return cli_runner.invoke(cli, ["--db-path", temp_db.database_path, *args], **kwargs)


def _created_id(output):
    return re.search(r"ID: ([0-9a-f-]+)", output).group(1)


def test_manufacturer_add_and_list(cli_runner, temp_db):
    """Test creating and listing manufacturers."""
    result = _run(cli_runner, temp_db, "manufacturer", "add", "ACME", "--country", "it")
    assert result.exit_code == 0
    assert "Created manufacturer 'ACME'" in result.output

    result = _run(cli_runner, temp_db, "manufacturer", "list")
    assert result.exit_code == 0
    assert "ACME" in result.output
    assert "IT" in result.output


def test_manufacturer_list_empty(cli_runner, temp_db):
    result = _run(cli_runner, temp_db, "manufacturer", "list")
    assert result.exit_code == 0
    assert "No manufacturers found" in result.output


def test_manufacturer_duplicate(cli_runner, temp_db):
    """Test creating a duplicate manufacturer name fails."""
    assert _run(cli_runner, temp_db, "manufacturer", "add", "ACME").exit_code == 0
    result = _run(cli_runner, temp_db, "manufacturer", "add", "ACME")
    assert result.exit_code == 1
    assert "already exists" in result.output.lower()


def test_manufacturer_delete_asks_for_confirmation(cli_runner, temp_db, acme):
    result = _run(cli_runner, temp_db, "manufacturer", "delete", "ACME", input="n\n")
    assert "Deletion cancelled" in result.output

    result = _run(cli_runner, temp_db, "manufacturer", "delete", "ACME", "--yes")
    assert result.exit_code == 0
    assert "Deleted manufacturer 'ACME'" in result.output


def test_model_add_and_show(cli_runner, temp_db, acme, write_json):
    """Test adding a railway model from a JSON file."""
    assert _run(cli_runner, temp_db, "railway", "add", "FS", "--country", "IT").exit_code == 0
    path = write_json(
        "model.json",
        {
            "manufacturer": "ACME",
            "product_code": "40152",
            "scale": "H0",
            "description": "Carro merci coperto Ghkrs",
            "category": "FREIGHT_CAR",
            "rolling_stocks": [
                {"railway": "FS", "category": "FREIGHT_CAR", "road_number": "21 83 166 5 155-1 Ghks-w"}
            ],
        },
    )

    result = _run(cli_runner, temp_db, "model", "add", path)
    assert result.exit_code == 0
    assert "Created railway model 40152" in result.output
    assert "with 1 rolling stock(s)" in result.output

    result = _run(cli_runner, temp_db, "model", "show", _created_id(result.output))
    assert result.exit_code == 0
    assert "Manufacturer: ACME" in result.output
    assert "21 83 166 5 155-1 Ghks-w" in result.output


def test_model_add_without_rolling_stocks(cli_runner, temp_db, acme, write_json):
    path = write_json("model.json", {"manufacturer": "ACME", "product_code": "1", "scale": "H0", "rolling_stocks": []})
    result = _run(cli_runner, temp_db, "model", "add", path)
    assert result.exit_code == 1
    assert "Error:" in result.output


def test_model_add_invalid_json(cli_runner, temp_db, tmp_path):
    path = tmp_path / "broken.json"
    path.write_text("{not json", encoding="utf-8")
    result = _run(cli_runner, temp_db, "model", "add", str(path))
    assert result.exit_code == 1
    assert "Cannot read" in result.output


def test_collection_flow(cli_runner, temp_db, ghkrs_model, write_json):
    """Test adding, listing, showing and deleting a collection item."""
    path = write_json(
        "item.json",
        {"model": ghkrs_model.id, "purchase": {"purchase_date": "2024-03-01", "purchased_price": "35.00 EUR"}},
    )
    result = _run(cli_runner, temp_db, "collection", "add", path)
    assert result.exit_code == 0
    assert "Added ACME 40152 to the collection" in result.output
    item_id = _created_id(result.output)

    result = _run(cli_runner, temp_db, "collection", "list", "--scale", "H0")
    assert result.exit_code == 0
    assert "1 freight car(s)" in result.output
    assert item_id in result.output

    result = _run(cli_runner, temp_db, "collection", "list", "--scale", "N")
    assert "No collection items found" in result.output

    result = _run(cli_runner, temp_db, "collection", "show", item_id)
    assert result.exit_code == 0
    assert "2024-03-01 BOUGHT" in result.output

    result = _run(cli_runner, temp_db, "collection", "delete", item_id, "--yes")
    assert result.exit_code == 0
    assert _run(cli_runner, temp_db, "collection", "show", item_id).exit_code == 1


def test_collection_list_pages(cli_runner, temp_db, collection_service):
    for n in range(3):
        collection_service.create_item("Roco", str(n), description=f"Wagon {n}")

    result = _run(cli_runner, temp_db, "collection", "list", "--limit", "2")
    assert result.exit_code == 0
    cursor = re.search(r"--cursor (\S+)", result.output).group(1)

    result = _run(cli_runner, temp_db, "collection", "list", "--limit", "2", "--cursor", cursor)
    assert "Wagon 2" in result.output
    assert "More items" not in result.output


def test_collection_list_bad_filter(cli_runner, temp_db):
    result = _run(cli_runner, temp_db, "collection", "list", "--scale", "HO")
    assert result.exit_code == 1
    assert "Error:" in result.output


def test_wishlist_flow(cli_runner, temp_db):
    """Test creating, filling and reordering a wish list."""
    assert _run(cli_runner, temp_db, "wishlist", "create", "Italian stock").exit_code == 0
    first = _run(cli_runner, temp_db, "wishlist", "add", "Italian stock", "--item", "40152")
    second = _run(cli_runner, temp_db, "wishlist", "add", "Italian stock", "--item", "60480", "--priority", "high")
    assert "at position 0" in first.output
    assert "at position 1" in second.output

    first_id = re.search(r"Added entry (\S+)", first.output).group(1)
    second_id = re.search(r"Added entry (\S+)", second.output).group(1)
    result = _run(cli_runner, temp_db, "wishlist", "reorder", "Italian stock", second_id, first_id)
    assert result.exit_code == 0

    result = _run(cli_runner, temp_db, "wishlist", "show", "Italian stock")
    assert result.output.index("60480") < result.output.index("40152")

    result = _run(cli_runner, temp_db, "wishlist", "reorder", "Italian stock", first_id)
    assert result.exit_code == 1


def test_maintenance_flow(cli_runner, temp_db, owned_ghkrs):
    """Test recording and listing maintenance events."""
    stock_id = owned_ghkrs.rolling_stocks[0].id
    result = _run(
        cli_runner,
        temp_db,
        "maintenance",
        "record",
        stock_id,
        "--date",
        "2024-05-01",
        "--description",
        "Cleaned wheels",
        "--cost",
        "12.50 EUR",
    )
    assert result.exit_code == 0
    assert "Recorded maintenance event #1" in result.output

    result = _run(cli_runner, temp_db, "maintenance", "list", stock_id)
    assert result.exit_code == 0
    assert "Cleaned wheels" in result.output

    result = _run(cli_runner, temp_db, "maintenance", "record", "missing", "--description", "Oiled")
    assert result.exit_code == 1


def test_backup_export_and_restore(cli_runner, temp_db, owned_ghkrs, tmp_path):
    """Test exporting a backup and restoring it."""
    target = tmp_path / "backup.json"
    result = _run(cli_runner, temp_db, "backup", "export", str(target))
    assert result.exit_code == 0
    assert target.exists()
    exported = re.search(r"Exported (\d+) row", result.output).group(1)

    result = _run(cli_runner, temp_db, "backup", "restore", str(target), "--yes")
    assert result.exit_code == 0
    assert f"Restored {exported} row(s)" in result.output


def test_backup_restore_invalid(cli_runner, temp_db, write_json):
    path = write_json("backup.json", {"format": "something-else"})
    result = _run(cli_runner, temp_db, "backup", "restore", path, "--yes")
    assert result.exit_code == 1
    assert "Error:" in result.output


def test_status_and_migrate_on_fresh_file(cli_runner, tmp_path):
    db_path = str(tmp_path / "fresh.db")

    result = cli_runner.invoke(cli, ["--db-path", db_path, "status"])
    assert result.exit_code == 0
    assert "Schema version: 0" in result.output
    assert "pending" in result.output

    result = cli_runner.invoke(cli, ["--db-path", db_path, "migrate"])
    assert result.exit_code == 0
    assert "Migrated schema from version 0" in result.output

    result = cli_runner.invoke(cli, ["--db-path", db_path, "migrate"])
    assert "Schema is up to date" in result.output
    assert (tmp_path / "railshed.log").exists()
