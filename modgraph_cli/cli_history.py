"""Load-order snapshot commands for ModGraph CLI."""

from __future__ import annotations

from pathlib import Path
from typing import Optional

import typer
from rich.markup import escape
from rich.table import Table

from .catalog import save_load_order
from .cli_common import CATALOG_OPTION_HELP, console, fail, open_catalog, open_store, resolve_catalog_path

history_app = typer.Typer(help="📜 Load-order snapshots, diff and restore")


@history_app.command("save")
def save_snapshot(
    catalog: Optional[Path] = typer.Option(None, "--catalog", "-c", help=CATALOG_OPTION_HELP),
    description: Optional[str] = typer.Option(None, "--description", "-d", help="Note stored with the snapshot."),
):
    """📸 Snapshot the current load order.

    Example:
      mg history save -d "before update"
    """
    cat = open_catalog(catalog)
    store = open_store()
    snapshot = store.save_snapshot(cat.current_order(), cat.enabled_state(), description)
    console.print(
        f"[green]✓ Saved snapshot {snapshot.id}[/green] ({len(snapshot.module_order)} modules)."
    )


@history_app.command("list")
def list_snapshots():
    """📜 List stored snapshots, newest first."""
    snapshots = open_store().list_snapshots()
    if not snapshots:
        console.print("[yellow]No snapshots yet.[/yellow]")
        console.print("[dim]Snapshots are taken by 'mg history save' and before every change to the load order.[/dim]")
        return

    table = Table(title="Load Order Snapshots", show_lines=False)
    table.add_column("ID", style="dim", no_wrap=True)
    table.add_column("Created", style="cyan", width=16)
    table.add_column("Modules", justify="right", style="green")
    table.add_column("Enabled", justify="right", style="green")
    table.add_column("Description", min_width=20)
    for snapshot in snapshots:
        enabled = sum(1 for flag in snapshot.enabled_state.values() if flag)
        table.add_row(
            snapshot.id,
            snapshot.created_at.strftime("%Y-%m-%d %H:%M"),
            str(len(snapshot.module_order)),
            str(enabled),
            escape(snapshot.description or "—"),
        )
    console.print(table)


@history_app.command("compare")
def compare_snapshot(
    snapshot_id: str = typer.Argument(..., help="Snapshot ID."),
    catalog: Optional[Path] = typer.Option(None, "--catalog", "-c", help=CATALOG_OPTION_HELP),
):
    """🔍 Diff a snapshot against the current load order."""
    cat = open_catalog(catalog)
    comparison = open_store().compare(snapshot_id, cat.current_order(), cat.enabled_state())
    if comparison is None:
        fail(f"Snapshot '{snapshot_id}' not found.")
    if comparison.is_empty:
        console.print("[green]✓ No differences.[/green]")
        return

    for module_id in comparison.added:
        console.print(f"[green]+ {escape(module_id)}[/green]")
    for module_id in comparison.removed:
        console.print(f"[red]- {escape(module_id)}[/red]")
    for change in comparison.position_changes:
        console.print(
            f"[cyan]~ {escape(change.module_id)}[/cyan] moved {change.old_position} → {change.new_position}"
        )
    for change in comparison.state_changes:
        state = "enabled" if change.is_enabled else "disabled"
        console.print(f"[magenta]* {escape(change.module_id)}[/magenta] {state}")


@history_app.command("restore")
def restore_snapshot(
    snapshot_id: str = typer.Argument(..., help="Snapshot ID."),
    catalog: Optional[Path] = typer.Option(None, "--catalog", "-c", help=CATALOG_OPTION_HELP),
):
    """⏪ Write a snapshot's load order back to the catalog.

    The current order is snapshotted first, so a restore can be undone.
    """
    catalog_file = resolve_catalog_path(catalog)
    cat = open_catalog(catalog_file)
    entries = open_store().restore_snapshot(
        snapshot_id, cat.current_order(), cat.enabled_state(), cat.modules
    )
    if entries is None:
        fail(f"Snapshot '{snapshot_id}' not found.")
    save_load_order(catalog_file, entries)
    console.print(f"[green]✓ Restored snapshot {escape(snapshot_id)}[/green] ({len(entries)} modules).")


@history_app.command("delete")
def delete_snapshot(snapshot_id: str = typer.Argument(..., help="Snapshot ID.")):
    """🗑️  Delete one snapshot."""
    if not open_store().delete_snapshot(snapshot_id):
        fail(f"Snapshot '{snapshot_id}' not found.")
    console.print(f"[green]✓ Deleted snapshot {escape(snapshot_id)}.[/green]")


@history_app.command("clear")
def clear_history(
    yes: bool = typer.Option(False, "--yes", "-y", help="Do not ask for confirmation."),
):
    """🗑️  Delete every snapshot.

    Example:
      mg history clear --yes
    """
    if not yes and not typer.confirm("Delete all snapshots?", default=False):
        console.print("[dim]Cancelled.[/dim]")
        return
    removed = open_store().clear()
    console.print(f"[green]✓ Removed {removed} snapshot(s).[/green]")
