"""Manufacturer management commands."""

import click

from railshed.cli.error_handling import handle_domain_error
from railshed.domain.catalog import CatalogService
from railshed.domain.errors import DomainError


@click.group()
def manufacturer_group():
    """Manage manufacturers."""
    pass


@manufacturer_group.command("add")
@click.argument("name", metavar="NAME")
@click.option("--company", help="Registered company name")
@click.option("--country", help="ISO 3166 country code (e.g. DE)")
@click.pass_context
def add_manufacturer(ctx, name: str, company: str | None, country: str | None) -> None:
    """Add a manufacturer.

    Examples:
        railshed manufacturer add "ACME" --country IT
        railshed manufacturer add "Märklin" --company "Gebr. Märklin & Cie. GmbH" --country DE
    """
    service = CatalogService(ctx.obj["db"])
    try:
        manufacturer = service.create_manufacturer(name, registered_company_name=company, country_code=country)
    except DomainError as e:
        handle_domain_error(ctx, e)
    click.echo(f"Created manufacturer '{manufacturer.name}' (ID: {manufacturer.id})")


@manufacturer_group.command("list")
@click.pass_context
def list_manufacturers(ctx) -> None:
    """List all manufacturers."""
    manufacturers = CatalogService(ctx.obj["db"]).list_manufacturers()
    if not manufacturers:
        click.echo("No manufacturers found.")
        return

    click.echo("\nManufacturers:")
    click.echo("-" * 80)
    for m in manufacturers:
        click.echo(f"{m.id} | {m.name:20s} | {m.country_code or '--':2s} | {m.registered_company_name or ''}")


@manufacturer_group.command("delete")
@click.argument("manufacturer", metavar="MANUFACTURER")
@click.option("--yes", is_flag=True, help="Do not ask for confirmation")
@click.pass_context
def delete_manufacturer(ctx, manufacturer: str, yes: bool) -> None:
    """Delete a manufacturer and all of its railway models.

    MANUFACTURER can be a manufacturer name or ID.
    """
    service = CatalogService(ctx.obj["db"])
    try:
        found = service.get_manufacturer(manufacturer)
    except DomainError as e:
        handle_domain_error(ctx, e)

    models = service.list_railway_models(found.id)
    if not yes and not click.confirm(
        f"Delete manufacturer '{found.name}' and its {len(models)} railway model(s)?"
    ):
        click.echo("Deletion cancelled.")
        return

    try:
        service.delete_manufacturer(found.id)
    except DomainError as e:
        handle_domain_error(ctx, e)
    click.echo(f"Deleted manufacturer '{found.name}'")


def register_commands(cli):
    """Register manufacturer commands with main CLI."""
    cli.add_command(manufacturer_group, name="manufacturer")
