"""Collection commands."""

from pathlib import Path

import click

from railshed.cli.error_handling import handle_domain_error, load_json_file
from railshed.domain.collection import CollectionService
from railshed.domain.errors import DomainError
from railshed.domain.filters import CollectionFilter, PageRequest
from railshed.domain.search import SearchService


@click.group()
def collection_group():
    """Manage the owned collection."""
    pass


@collection_group.command("add")
@click.argument("json_file", type=click.Path(exists=True, dir_okay=False, path_type=Path))
@click.pass_context
def add_item(ctx, json_file: Path) -> None:
    """Add a collection item from a JSON file.

    Either describe the item directly ("manufacturer", "product_code",
    "rolling_stocks" with a "railway" each, optional "purchase" and item
    fields) or copy a catalog model with "model" (its ID), an optional
    fallback "railway", "purchase" and overrides such as "quantity".

    Example file:

    \b
        {"model": "<railway model ID>", "conditions": "new",
         "purchase": {"purchase_date": "2024-03-01",
                      "purchased_price": "35.00 EUR"}}
    """
    data = load_json_file(ctx, json_file)
    if not isinstance(data, dict):
        click.echo("Error: The item file must hold a JSON object", err=True)
        ctx.exit(1)

    service = CollectionService(ctx.obj["db"])
    try:
        if "model" in data:
            item = service.add_from_catalog(
                data.pop("model"),
                railway=data.pop("railway", None),
                purchase=data.pop("purchase", None),
                **data,
            )
        else:
            item = service.create_item(
                data.pop("manufacturer", None),
                data.pop("product_code", None),
                rolling_stocks=data.pop("rolling_stocks", None),
                purchase=data.pop("purchase", None),
                **data,
            )
    except DomainError as e:
        handle_domain_error(ctx, e)
    click.echo(f"Added {item.manufacturer} {item.product_code} to the collection (ID: {item.id})")


@collection_group.command("list")
@click.option("--brand", help="Manufacturer name (exact)")
@click.option("--scale", help="Scale (e.g. H0, N)")
@click.option("--epoch", help="Epoch (e.g. IV, IIIb, IV/V)")
@click.option("--category", help="Category (e.g. LOCOMOTIVE)")
@click.option("--livery", help="Livery of a rolling stock")
@click.option("--depot", help="Depot of a rolling stock")
@click.option("--road-number", help="Road number prefix")
@click.option("--dcc/--no-dcc", "dcc_capable", default=None, help="Only DCC capable / not DCC capable items")
@click.option("--text", help="Substring of description or product code")
@click.option("--limit", type=int, default=50, show_default=True, help="Page size")
@click.option("--cursor", help="Cursor printed with the previous page")
@click.pass_context
def list_items(
    ctx,
    brand: str | None,
    scale: str | None,
    epoch: str | None,
    category: str | None,
    livery: str | None,
    depot: str | None,
    road_number: str | None,
    dcc_capable: bool | None,
    text: str | None,
    limit: int,
    cursor: str | None,
) -> None:
    """List collection items matching the given filters, one page at a time.

    Examples:
        railshed collection list --scale H0 --category LOCOMOTIVE
        railshed collection list --road-number "E 444" --limit 20
    """
    db = ctx.obj["db"]
    try:
        flt = CollectionFilter.create(
            brand=brand,
            scale=scale,
            epoch=epoch,
            category=category,
            livery=livery,
            depot=depot,
            road_number=road_number,
            dcc_capable=dcc_capable,
            text=text,
        )
        page = SearchService(db).list_collection(flt, PageRequest(limit=limit, cursor=cursor))
    except DomainError as e:
        handle_domain_error(ctx, e)

    collection = CollectionService(db).get_collection()
    click.echo(
        f"\n{collection.name}: {collection.locomotives_count} locomotive(s), "
        f"{collection.passenger_cars_count} passenger car(s), {collection.freight_cars_count} freight car(s), "
        f"{collection.train_sets_count} train set(s), {collection.railcars_count} railcar(s), "
        f"{collection.electric_multiple_units_count} EMU(s); value {collection.total_value or '-'}"
    )

    if not page.items:
        click.echo("No collection items found.")
        return

    click.echo("-" * 100)
    click.echo(f"{'ID':<36} {'Brand':<12} {'Code':<10} {'Scale':<5} {'Qty':>3}  {'Description'}")
    click.echo("-" * 100)
    for item in page.items:
        click.echo(
            f"{item.id:<36} {item.manufacturer[:12]:<12} {item.product_code[:10]:<10} "
            f"{item.scale.value if item.scale else '':<5} {item.quantity:>3}  {item.description or ''}"
        )
    if page.next_cursor:
        click.echo(f"\nMore items: --cursor {page.next_cursor}")


@collection_group.command("show")
@click.argument("item_id")
@click.pass_context
def show_item(ctx, item_id: str) -> None:
    """Show a collection item with its rolling stocks and purchase history."""
    service = CollectionService(ctx.obj["db"])
    try:
        item = service.get_item(item_id)
    except DomainError as e:
        handle_domain_error(ctx, e)

    click.echo(f"\nCollection item: {item.id}")
    click.echo(f"  Brand: {item.manufacturer}")
    click.echo(f"  Product code: {item.product_code}")
    click.echo(f"  Quantity: {item.quantity}")
    for label, value in (
        ("Catalog model", item.railway_model_id),
        ("Description", item.description),
        ("Conditions", item.conditions),
        ("Scale", item.scale and item.scale.value),
        ("Power method", item.power_method and item.power_method.value),
        ("Epoch", item.epoch),
        ("Category", item.category and item.category.value),
    ):
        if value:
            click.echo(f"  {label}: {value}")

    click.echo(f"\nRolling stocks ({len(item.rolling_stocks)}):")
    for rs in item.rolling_stocks:
        click.echo(f"  {rs.id} | railway {rs.railway_id} | {rs.epoch or ''} | {rs.notes or ''}")

    click.echo(f"\nPurchases ({len(item.purchases)}):")
    for p in item.purchases:
        line = f"  {p.purchase_date} {p.purchase_type.value}"
        if p.purchased_price:
            line += f" {p.purchased_price}"
        if p.sale_date:
            line += f" | sold {p.sale_date}"
            if p.sale_price:
                line += f" for {p.sale_price}"
        click.echo(line)


@collection_group.command("delete")
@click.argument("item_id")
@click.option("--yes", is_flag=True, help="Do not ask for confirmation")
@click.pass_context
def delete_item(ctx, item_id: str, yes: bool) -> None:
    """Delete a collection item with its rolling stocks, purchases and maintenance history."""
    service = CollectionService(ctx.obj["db"])
    try:
        item = service.get_item(item_id)
    except DomainError as e:
        handle_domain_error(ctx, e)

    if not yes and not click.confirm(f"Delete {item.manufacturer} {item.product_code} (ID: {item.id})?"):
        click.echo("Deletion cancelled.")
        return

    try:
        service.delete_item(item.id)
    except DomainError as e:
        handle_domain_error(ctx, e)
    click.echo(f"Deleted {item.manufacturer} {item.product_code}")


def register_commands(cli):
    """Register collection commands with main CLI."""
    cli.add_command(collection_group, name="collection")
