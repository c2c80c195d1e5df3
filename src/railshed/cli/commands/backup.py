"""Backup export and restore commands."""

from pathlib import Path

import click

from railshed.cli.error_handling import handle_domain_error
from railshed.domain.backup import BackupService
from railshed.domain.errors import DomainError


@click.group()
def backup_group():
    """Export or restore a complete snapshot of the store."""
    pass


@backup_group.command("export")
@click.argument("output", type=click.Path(dir_okay=False, path_type=Path))
@click.pass_context
def export_backup(ctx, output: Path) -> None:
    """Write a JSON backup of every table to OUTPUT."""
    db = ctx.obj["db"]
    path = BackupService(db).export_to_file(output)
    total = sum(db.count_rows().values())
    click.echo(f"Exported {total} row(s) to {path}")


@backup_group.command("restore")
@click.argument("source", type=click.Path(exists=True, dir_okay=False, path_type=Path))
@click.option("--yes", is_flag=True, help="Do not ask for confirmation")
@click.pass_context
def restore_backup(ctx, source: Path, yes: bool) -> None:
    """Replace the whole store with the backup in SOURCE.

    The backup is validated first; on any error nothing is changed.
    """
    if not yes and not click.confirm("Replace ALL data in the store with this backup?"):
        click.echo("Restore cancelled.")
        return

    db = ctx.obj["db"]
    try:
        BackupService(db).restore_from_file(source)
    except DomainError as e:
        handle_domain_error(ctx, e)
    total = sum(db.count_rows().values())
    click.echo(f"Restored {total} row(s) from {source}")


def register_commands(cli):
    """Register backup commands with main CLI."""
    cli.add_command(backup_group, name="backup")
