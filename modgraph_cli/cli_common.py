"""Helpers shared by the ModGraph CLI command groups."""

from __future__ import annotations

from pathlib import Path
from typing import NoReturn, Optional

import typer
from rich.console import Console
from rich.markup import escape

from . import config_manager
from .catalog import ModuleCatalog, load_catalog
from .errors import ModGraphError
from .snapshots import SnapshotStore

console = Console()

CATALOG_OPTION_HELP = "Catalog JSON file. Defaults to $MODGRAPH_CATALOG, then catalog.path from config."


def fail(message: str) -> NoReturn:
    """Print an error and exit with status 1."""
    console.print(f"[red]✗[/red] {escape(message)}")
    raise typer.Exit(1)


def resolve_catalog_path(catalog: Optional[Path]) -> Path:
    if catalog is not None:
        return catalog
    configured = config_manager.catalog_path()
    if configured is None:
        raise typer.BadParameter(
            "No catalog given. Pass --catalog or run 'mg config set catalog.path <file>'."
        )
    return configured


def open_catalog(catalog: Optional[Path]) -> ModuleCatalog:
    path = resolve_catalog_path(catalog)
    try:
        return load_catalog(path)
    except ModGraphError as exc:
        fail(str(exc))


def open_store() -> SnapshotStore:
    settings = config_manager.load_config()
    try:
        return SnapshotStore(
            config_manager.history_file(settings),
            max_snapshots=int(settings["history"]["max_snapshots"]),
        )
    except ValueError as exc:
        fail(f"Invalid history settings: {exc}")
