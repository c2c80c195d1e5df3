"""Schema migration commands."""

import click

from railshed.cli.error_handling import handle_domain_error
from railshed.database.migrations import LATEST_VERSION
from railshed.domain.errors import MigrationFailedError


@click.command("migrate")
@click.pass_context
def migrate_schema(ctx) -> None:
    """Apply pending schema migrations.

    Each migration runs in its own transaction; a failing migration leaves
    the database at the last version that succeeded.
    """
    db = ctx.obj["db"]
    before = db.schema_version()
    try:
        version = db.initialize_schema()
    except MigrationFailedError as e:
        handle_domain_error(ctx, e)
    if version == before:
        click.echo(f"Schema is up to date (version {version})")
    else:
        click.echo(f"Migrated schema from version {before} to {version}")


@click.command("status")
@click.pass_context
def schema_status(ctx) -> None:
    """Show the schema version and pending migrations."""
    db = ctx.obj["db"]
    version = db.schema_version()
    click.echo(f"Schema version: {version} (latest: {LATEST_VERSION})")
    pending = LATEST_VERSION - version
    if pending > 0:
        click.echo(f"{pending} migration{'s' if pending != 1 else ''} pending; run 'railshed migrate'")


def register_commands(cli):
    """Register schema commands with main CLI."""
    cli.add_command(migrate_schema)
    cli.add_command(schema_status)
