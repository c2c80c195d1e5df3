"""Railway model (catalog) commands."""

from pathlib import Path

import click

from railshed.cli.error_handling import handle_domain_error, load_json_file
from railshed.domain.catalog import CatalogService
from railshed.domain.errors import DomainError


@click.group()
def model_group():
    """Manage catalog railway models."""
    pass


@model_group.command("add")
@click.argument("json_file", type=click.Path(exists=True, dir_okay=False, path_type=Path))
@click.pass_context
def add_model(ctx, json_file: Path) -> None:
    """Add a railway model with its rolling stocks from a JSON file.

    The file holds one object with "manufacturer" (name or ID),
    "product_code", "scale", a non-empty "rolling_stocks" list and any of
    description, details, power_method, epoch, category, delivery_date and
    availability_status. Each rolling stock may name its "railway" company.

    Example file:

    \b
        {"manufacturer": "ACME", "product_code": "40152", "scale": "H0",
         "description": "Ghkrs", "category": "FREIGHT_CAR",
         "rolling_stocks": [{"railway": "FS", "category": "FREIGHT_CAR",
                             "road_number": "21 83 166 5 155-1 Ghks-w"}]}
    """
    data = load_json_file(ctx, json_file)
    if not isinstance(data, dict):
        click.echo("Error: The model file must hold a JSON object", err=True)
        ctx.exit(1)

    service = CatalogService(ctx.obj["db"])
    try:
        model = service.create_railway_model(
            data.pop("manufacturer", None),
            data.pop("product_code", None),
            data.pop("scale", None),
            data.pop("rolling_stocks", None),
            **data,
        )
    except DomainError as e:
        handle_domain_error(ctx, e)
    click.echo(
        f"Created railway model {model.product_code} (ID: {model.id}) "
        f"with {len(model.rolling_stocks)} rolling stock(s)"
    )


@model_group.command("show")
@click.argument("model_id")
@click.pass_context
def show_model(ctx, model_id: str) -> None:
    """Show a railway model and its rolling stocks."""
    service = CatalogService(ctx.obj["db"])
    try:
        model = service.get_railway_model(model_id)
    except DomainError as e:
        handle_domain_error(ctx, e)

    manufacturers = {m.id: m.name for m in service.list_manufacturers()}
    railways = {c.id: c.name for c in service.list_railway_companies()}

    click.echo(f"\nRailway model: {model.id}")
    click.echo(f"  Manufacturer: {manufacturers.get(model.manufacturer_id, model.manufacturer_id)}")
    click.echo(f"  Product code: {model.product_code}")
    click.echo(f"  Scale: {model.scale.value}")
    for label, value in (
        ("Description", model.description),
        ("Details", model.details),
        ("Power method", model.power_method and model.power_method.value),
        ("Epoch", model.epoch),
        ("Category", model.category and model.category.value),
        ("Delivery date", model.delivery_date),
        ("Availability", model.availability_status and model.availability_status.value),
    ):
        if value:
            click.echo(f"  {label}: {value}")

    click.echo(f"\nRolling stocks ({len(model.rolling_stocks)}):")
    click.echo("-" * 80)
    for rs in model.rolling_stocks:
        railway = railways.get(rs.railway_company_id, "") if rs.railway_company_id else ""
        parts = [
            rs.id,
            railway,
            rs.category.value if rs.category else "",
            rs.road_number or "",
            rs.livery or "",
            str(rs.length) if rs.length else "",
            rs.control.value if rs.control else "",
        ]
        click.echo(" | ".join(parts))


@model_group.command("delete")
@click.argument("model_id")
@click.option("--yes", is_flag=True, help="Do not ask for confirmation")
@click.pass_context
def delete_model(ctx, model_id: str, yes: bool) -> None:
    """Delete a railway model and its rolling stocks.

    Collection items linked to it are kept, with the link cleared.
    """
    service = CatalogService(ctx.obj["db"])
    try:
        model = service.get_railway_model(model_id)
    except DomainError as e:
        handle_domain_error(ctx, e)

    if not yes and not click.confirm(f"Delete railway model {model.product_code} (ID: {model.id})?"):
        click.echo("Deletion cancelled.")
        return

    try:
        service.delete_railway_model(model.id)
    except DomainError as e:
        handle_domain_error(ctx, e)
    click.echo(f"Deleted railway model {model.product_code}")


def register_commands(cli):
    """Register railway model commands with main CLI."""
    cli.add_command(model_group, name="model")
