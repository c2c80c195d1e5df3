"""CLI error handling helpers."""

import json
from pathlib import Path
from typing import Any

import click

from railshed.domain.errors import DomainError


def handle_domain_error(ctx: click.Context, error: DomainError | ValueError) -> None:
    """Render a domain error and exit with failure."""
    click.echo(f"Error: {error}", err=True)
    ctx.exit(1)


def load_json_file(ctx: click.Context, path: Path) -> Any:
    """Read a JSON input file, exiting with an error message when it is unreadable."""
    try:
        return json.loads(Path(path).read_text(encoding="utf-8"))
    except (OSError, json.JSONDecodeError) as e:
        click.echo(f"Error: Cannot read {path}: {e}", err=True)
        ctx.exit(1)
