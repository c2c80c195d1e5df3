"""Railway company commands."""

import click

from railshed.cli.error_handling import handle_domain_error
from railshed.domain.catalog import CatalogService
from railshed.domain.errors import DomainError


@click.group()
def railway_group():
    """Manage railway companies."""
    pass


@railway_group.command("add")
@click.argument("name", metavar="NAME")
@click.option("--company", help="Registered company name")
@click.option("--country", help="ISO 3166 country code (e.g. DE)")
@click.option("--status", help="Operating status (e.g. active, historic)")
@click.pass_context
def add_railway(ctx, name: str, company: str | None, country: str | None, status: str | None) -> None:
    """Add a railway company.

    Examples:
        railshed railway add "DB" --company "Deutsche Bundesbahn" --country DE --status historic
    """
    service = CatalogService(ctx.obj["db"])
    try:
        company_obj = service.create_railway_company(
            name, registered_company_name=company, country_code=country, status=status
        )
    except DomainError as e:
        handle_domain_error(ctx, e)
    click.echo(f"Created railway company '{company_obj.name}' (ID: {company_obj.id})")


@railway_group.command("list")
@click.pass_context
def list_railways(ctx) -> None:
    """List all railway companies."""
    companies = CatalogService(ctx.obj["db"]).list_railway_companies()
    if not companies:
        click.echo("No railway companies found.")
        return

    click.echo("\nRailway companies:")
    click.echo("-" * 80)
    for c in companies:
        click.echo(
            f"{c.id} | {c.name:12s} | {c.country_code or '--':2s} | {c.status or '':10s} | "
            f"{c.registered_company_name or ''}"
        )


def register_commands(cli):
    """Register railway company commands with main CLI."""
    cli.add_command(railway_group, name="railway")
