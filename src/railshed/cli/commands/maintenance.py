"""Maintenance log commands."""

import click

from railshed.cli.error_handling import handle_domain_error
from railshed.domain.errors import DomainError
from railshed.domain.maintenance import MaintenanceService


def _echo_event(event) -> None:
    line = f"{event.sequence:>3}. {event.date} | {event.description}"
    if event.cost:
        line += f" | {event.cost}"
    if event.performed_by:
        line += f" | by {event.performed_by}"
    if event.next_due:
        line += f" | next due {event.next_due}"
    click.echo(line)


@click.group()
def maintenance_group():
    """Record and review maintenance of owned rolling stocks."""
    pass


@maintenance_group.command("record")
@click.argument("rolling_stock_id")
@click.option("--date", "event_date", default="today", show_default=True, help="Date of the service")
@click.option("--description", required=True, help="What was done")
@click.option("--cost", help='Cost with currency (e.g. "12.50 EUR")')
@click.option("--by", "performed_by", help="Workshop or person")
@click.option("--next-due", help="Date the next service is due")
@click.pass_context
def record_event(
    ctx,
    rolling_stock_id: str,
    event_date: str,
    description: str,
    cost: str | None,
    performed_by: str | None,
    next_due: str | None,
) -> None:
    """Record a maintenance event for an owned rolling stock.

    Examples:
        railshed maintenance record <ID> --description "Cleaned wheels" --cost "12.50 EUR"
    """
    try:
        event = MaintenanceService(ctx.obj["db"]).record(
            rolling_stock_id,
            event_date,
            description,
            cost=cost,
            performed_by=performed_by,
            next_due=next_due,
        )
    except DomainError as e:
        handle_domain_error(ctx, e)
    click.echo(f"Recorded maintenance event #{event.sequence} (ID: {event.id})")


@maintenance_group.command("list")
@click.argument("rolling_stock_id", required=False)
@click.option("--due-until", help="Instead list events due on or before this date")
@click.pass_context
def list_events(ctx, rolling_stock_id: str | None, due_until: str | None) -> None:
    """List the maintenance history of an owned rolling stock, oldest first.

    With --due-until, list events of all rolling stocks whose next service
    is due by that date.
    """
    service = MaintenanceService(ctx.obj["db"])
    if rolling_stock_id is None and due_until is None:
        click.echo("Error: Give a ROLLING_STOCK_ID or --due-until", err=True)
        ctx.exit(1)
    try:
        if due_until is not None:
            events = service.upcoming(due_until)
        else:
            events = service.list_events(rolling_stock_id)
    except DomainError as e:
        handle_domain_error(ctx, e)

    if not events:
        click.echo("No maintenance events found.")
        return
    for event in events:
        _echo_event(event)


@maintenance_group.command("correct")
@click.argument("event_id")
@click.option("--next-due", required=True, help='Corrected next due date ("" clears it)')
@click.pass_context
def correct_event(ctx, event_id: str, next_due: str) -> None:
    """Correct the next due date of a recorded event.

    Recorded events are otherwise immutable.
    """
    try:
        event = MaintenanceService(ctx.obj["db"]).correct_next_due(event_id, next_due)
    except DomainError as e:
        handle_domain_error(ctx, e)
    click.echo(f"Next due date of event {event.id} is now {event.next_due or 'unset'}")


def register_commands(cli):
    """Register maintenance commands with main CLI."""
    cli.add_command(maintenance_group, name="maintenance")
