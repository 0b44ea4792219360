"""locks command: display integration locks held in the store."""

from __future__ import annotations

import time

import click
from rich.console import Console
from rich.table import Table

console = Console()


@click.command("locks")
@click.pass_context
def locks_cmd(ctx):
    """Show integration locks currently recorded in the configured store.

    Expired records are shown dimmed; the next acquire on the same key
    replaces them.
    """
    store = ctx.obj.get("store") if ctx.obj else None
    if store is None:
        raise click.UsageError("No lock store configured.")

    records = store.list_locks()
    if not records:
        console.print("[yellow]No integration locks held.[/yellow]")
        return

    now = time.time()
    table = Table(title="Integration Locks", show_header=True, header_style="bold cyan")
    table.add_column("Key", style="bold")
    table.add_column("Holder")
    table.add_column("Acquired At", width=20)
    table.add_column("Expires At", width=20)

    for r in records:
        style = "dim" if r.is_expired(now) else "white"
        table.add_row(r.key, r.holder, r.acquired_at_iso[:19], r.expires_at_iso[:19], style=style)

    console.print(table)
