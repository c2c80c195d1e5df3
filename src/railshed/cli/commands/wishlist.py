"""Wish list commands."""

import click

from railshed.cli.error_handling import handle_domain_error
from railshed.domain.errors import DomainError
from railshed.domain.wishlist import WishlistService


@click.group()
def wishlist_group():
    """Manage wish lists."""
    pass


@wishlist_group.command("create")
@click.argument("name")
@click.option("--description", help="What the list is for")
@click.pass_context
def create_wishlist(ctx, name: str, description: str | None) -> None:
    """Create an empty wish list."""
    try:
        wishlist = WishlistService(ctx.obj["db"]).create(name, description)
    except DomainError as e:
        handle_domain_error(ctx, e)
    click.echo(f"Created wish list '{wishlist.name}' (ID: {wishlist.id})")


@wishlist_group.command("list")
@click.pass_context
def list_wishlists(ctx) -> None:
    """List all wish lists."""
    wishlists = WishlistService(ctx.obj["db"]).list_wishlists()
    if not wishlists:
        click.echo("No wish lists found.")
        return

    click.echo("\nWish lists:")
    click.echo("-" * 80)
    for w in wishlists:
        click.echo(f"{w.id} | {w.name:20s} | {len(w.entries)} entr{'y' if len(w.entries) == 1 else 'ies'}")


@wishlist_group.command("show")
@click.argument("wishlist")
@click.pass_context
def show_wishlist(ctx, wishlist: str) -> None:
    """Show the entries of a wish list in order.

    WISHLIST can be a wish list name or ID.
    """
    try:
        found = WishlistService(ctx.obj["db"]).get(wishlist)
    except DomainError as e:
        handle_domain_error(ctx, e)

    click.echo(f"\n{found.name}" + (f": {found.description}" if found.description else ""))
    click.echo("-" * 80)
    if not found.entries:
        click.echo("(empty)")
    for entry in found.entries:
        click.echo(
            f"{entry.position:>3}. {entry.id} | {entry.priority.value:6s} | "
            f"{entry.referenced_item_number or '':12s} | {entry.note or ''}"
        )


@wishlist_group.command("add")
@click.argument("wishlist")
@click.option("--item", "item_number", help="Product code of the wanted item")
@click.option("--note", help="Free text note")
@click.option("--priority", type=click.Choice(["LOW", "NORMAL", "HIGH"], case_sensitive=False), help="Priority")
@click.pass_context
def add_entry(ctx, wishlist: str, item_number: str | None, note: str | None, priority: str | None) -> None:
    """Append an entry to a wish list.

    Examples:
        railshed wishlist add "Italian stock" --item 40152 --priority HIGH
    """
    service = WishlistService(ctx.obj["db"])
    try:
        found = service.get(wishlist)
        entry = service.add_entry(found.id, item_number=item_number, note=note, priority=priority)
    except DomainError as e:
        handle_domain_error(ctx, e)
    click.echo(f"Added entry {entry.id} at position {entry.position} of '{found.name}'")


@wishlist_group.command("remove")
@click.argument("entry_id")
@click.pass_context
def remove_entry(ctx, entry_id: str) -> None:
    """Remove an entry; later entries move up."""
    try:
        WishlistService(ctx.obj["db"]).remove_entry(entry_id)
    except DomainError as e:
        handle_domain_error(ctx, e)
    click.echo(f"Removed entry {entry_id}")


@wishlist_group.command("reorder")
@click.argument("wishlist")
@click.argument("entry_ids", nargs=-1, required=True)
@click.pass_context
def reorder_wishlist(ctx, wishlist: str, entry_ids: tuple[str, ...]) -> None:
    """Reorder a wish list.

    ENTRY_IDS must list every entry of the list exactly once, in the new order.
    """
    service = WishlistService(ctx.obj["db"])
    try:
        found = service.get(wishlist)
        service.reorder(found.id, list(entry_ids))
    except DomainError as e:
        handle_domain_error(ctx, e)
    click.echo(f"Reordered '{found.name}'")


def register_commands(cli):
    """Register wish list commands with main CLI."""
    cli.add_command(wishlist_group, name="wishlist")
