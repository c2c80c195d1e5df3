"""Main CLI entry point."""

import os
from pathlib import Path

import click

from railshed.cli.commands import (
    backup,
    collection,
    maintenance,
    manufacturer,
    model,
    railway,
    schema,
    wishlist,
)
from railshed.cli.error_handling import handle_domain_error
from railshed.database.factories import DB_PATH_ENV, create_sqlite_database, default_database_path
from railshed.domain.errors import MigrationFailedError
from railshed.logging_setup import LOG_DIR_ENV, setup_logging

# Commands that manage the schema themselves
_SCHEMA_COMMANDS = {"migrate", "status"}


@click.group()
@click.option(
    "--db-path",
    type=click.Path(dir_okay=False),
    help=f"Path to database file (overrides {DB_PATH_ENV} environment variable)",
    envvar=DB_PATH_ENV,
)
@click.option(
    "--log-dir",
    type=click.Path(file_okay=False),
    help="Directory for railshed.log (defaults to the database directory)",
    envvar=LOG_DIR_ENV,
)
@click.option("--verbose", "-v", is_flag=True, help="Echo debug logging to stderr")
@click.pass_context
def cli(ctx, db_path: str | None, log_dir: str | None, verbose: bool):
    """Railshed - model railway catalog and collection manager.

    Keep a catalog of manufacturers, railway companies and railway models,
    track the items you own with their purchase history, and maintain wish
    lists and a maintenance log.
    """
    ctx.ensure_object(dict)

    # Initialize database connection only when actually running a command
    # (not when showing help)
    if ctx.invoked_subcommand is None:
        return

    if db_path is None:
        db_path = str(default_database_path())
    setup_logging(log_dir or os.path.dirname(os.path.abspath(db_path)), verbose=verbose)

    db = create_sqlite_database(database_path=db_path, auto_migrate=False)
    db.connect()
    ctx.call_on_close(db.disconnect)
    if ctx.invoked_subcommand not in _SCHEMA_COMMANDS:
        try:
            db.initialize_schema()
        except MigrationFailedError as e:
            handle_domain_error(ctx, e)
    ctx.obj["db"] = db
    ctx.obj["db_path"] = Path(db_path)


# Register all commands
schema.register_commands(cli)
manufacturer.register_commands(cli)
railway.register_commands(cli)
model.register_commands(cli)
collection.register_commands(cli)
wishlist.register_commands(cli)
maintenance.register_commands(cli)
backup.register_commands(cli)


def main():
    """Main entry point for CLI."""
    cli()


if __name__ == "__main__":
    main()
