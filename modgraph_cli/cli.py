"""Typer-based CLI for ModGraph module dependency analysis."""

from __future__ import annotations

import logging
from pathlib import Path
from typing import List, Optional

import typer
from rich.console import Console
from rich.logging import RichHandler
from rich.markup import escape
from rich.panel import Panel
from rich.table import Table
from rich.tree import Tree

from . import __version__, config_manager
from .catalog import ModuleCatalog, save_load_order
from .cli_common import CATALOG_OPTION_HELP, console, fail, open_catalog, open_store, resolve_catalog_path
from .cli_config import config_app
from .cli_history import history_app
from .errors import OrderCycleError
from .graph_builder import build_dependency_graph
from .graph_export import export_graph, export_tree_json, write_export
from .models import DependencyGraph, DependencyTreeNode, DependencyType, ExportFormat, GraphOptions
from .optimizer import (
    analyze_load_order,
    apply_suggestion,
    considered_modules,
    find_suggestion,
    merge_into_order,
    to_load_order,
)
from .order_models import CyclePolicy, OptimizationOptions
from .trees import affected_modules, all_required_modules, build_module_tree

app = typer.Typer(
    help="🧩 ModGraph CLI — module dependency graphs and load-order optimization.",
    no_args_is_help=True,
    rich_markup_mode="rich",
)

app.add_typer(history_app, name="history")
app.add_typer(config_app, name="config")


def version_callback(value: bool):
    """Print version and exit."""
    if value:
        typer.echo(f"ModGraph CLI v{__version__}")
        raise typer.Exit()


def _configure_logging(verbose: bool) -> None:
    logger = logging.getLogger("modgraph_cli")
    if not any(isinstance(h, RichHandler) for h in logger.handlers):
        logger.addHandler(RichHandler(console=Console(stderr=True), show_path=False))
    logger.setLevel(logging.DEBUG if verbose else logging.WARNING)


@app.callback()
def main(
    version: Optional[bool] = typer.Option(
        None,
        "--version",
        "-v",
        help="Show version and exit.",
        callback=version_callback,
        is_eager=True,
    ),
    verbose: bool = typer.Option(False, "--verbose", "-V", help="Show debug logging."),
):
    """ModGraph CLI: inspect module dependencies and fix load orders."""
    _configure_logging(verbose)


def _score_color(score: int) -> str:
    if score >= 80:
        return "green"
    elif score >= 60:
        return "yellow"
    return "red"


def _analysis_options(
    include_native: bool = False,
    cycle_policy: Optional[CyclePolicy] = None,
    generate_order: bool = True,
) -> OptimizationOptions:
    settings = config_manager.load_config()["analysis"]
    policy = cycle_policy or settings["cycle_policy"]
    try:
        policy = CyclePolicy(policy)
    except ValueError:
        raise typer.BadParameter(f"Unknown cycle policy '{policy}' in config.")
    return OptimizationOptions(
        include_native=include_native or bool(settings["include_native"]),
        generate_optimized_order=generate_order,
        cycle_policy=policy,
    )


def _catalog_graph(catalog: ModuleCatalog, options: Optional[GraphOptions] = None) -> DependencyGraph:
    return build_dependency_graph(catalog.modules, catalog.selected_ids(), options)


def _print_id_list(title: str, ids: List[str], empty: str) -> None:
    if not ids:
        console.print(f"[dim]{empty}[/dim]")
        return
    console.print(f"[bold]{title}[/bold] ({len(ids)})")
    for module_id in ids:
        console.print(f"  • {escape(module_id)}")


def _snapshot_before(catalog: ModuleCatalog, description: str) -> None:
    snapshot = open_store().save_snapshot(catalog.current_order(), catalog.enabled_state(), description)
    console.print(f"[dim]Saved snapshot {snapshot.id} ({escape(description)}).[/dim]")


def _write_order(catalog_file: Path, catalog: ModuleCatalog, reordered: List[str]) -> None:
    merged = merge_into_order(catalog.current_order(), reordered)
    entries = to_load_order(merged, catalog.modules, catalog.enabled_state())
    save_load_order(catalog_file, entries)


@app.command("graph")
def graph_summary(
    catalog: Optional[Path] = typer.Option(None, "--catalog", "-c", help=CATALOG_OPTION_HELP),
    include_native: bool = typer.Option(False, "--include-native", help="Include native modules."),
):
    """Summarize the dependency graph of the catalog."""
    cat = open_catalog(catalog)
    native = include_native or bool(config_manager.load_config()["analysis"]["include_native"])
    graph = _catalog_graph(cat, GraphOptions(include_native_modules=native))

    table = Table(title="Dependency Graph", show_header=True)
    table.add_column("Metric", style="cyan")
    table.add_column("Value", justify="right", style="green")
    table.add_row("Modules", str(graph.total_nodes))
    table.add_row("Edges", str(graph.total_edges))
    table.add_row("Required edges", str(len(graph.edges_of_type(DependencyType.REQUIRED))))
    table.add_row("Root modules", str(len(graph.root_modules)))
    table.add_row("Orphaned modules", str(len(graph.orphaned_modules)))
    table.add_row("Circular chains", str(len(graph.circular_chains)))
    console.print(table)

    _print_id_list("Root modules", graph.root_modules, "No root modules.")
    _print_id_list("Orphaned modules", graph.orphaned_modules, "No orphaned modules.")
    if graph.has_circular_dependencies:
        console.print("[yellow]⚠️  Circular dependencies found. Run 'mg cycles' for details.[/yellow]")


@app.command("cycles")
def list_cycles(
    catalog: Optional[Path] = typer.Option(None, "--catalog", "-c", help=CATALOG_OPTION_HELP),
):
    """List circular dependency chains. Exits with 1 when any exist."""
    graph = _catalog_graph(open_catalog(catalog))
    if not graph.circular_chains:
        console.print("[green]✓ No circular dependencies.[/green]")
        return
    console.print(f"[red]Found {len(graph.circular_chains)} circular chain(s):[/red]")
    for chain in graph.circular_chains:
        console.print(f"  • {escape(' → '.join(chain))}")
    raise typer.Exit(1)


@app.command("orphans")
def list_orphans(
    catalog: Optional[Path] = typer.Option(None, "--catalog", "-c", help=CATALOG_OPTION_HELP),
):
    """List non-native modules that no other module requires."""
    graph = _catalog_graph(open_catalog(catalog))
    _print_id_list("Orphaned modules", graph.orphaned_modules, "No orphaned modules.")


def _tree_label(node: DependencyTreeNode) -> str:
    label = f"[bold]{escape(node.name)}[/bold]"
    if node.version:
        label += f" [dim]{escape(node.version)}[/dim]"
    if node.type == DependencyType.OPTIONAL:
        label += " [dim](optional)[/dim]"
    if not node.is_installed:
        label += " [red](missing)[/red]"
    return label


def _add_branch(parent: Tree, nodes: List[DependencyTreeNode]) -> None:
    stack = [(parent, nodes)]
    while stack:
        branch, children = stack.pop()
        for child in children:
            stack.append((branch.add(_tree_label(child)), child.children))


@app.command("tree")
def show_tree(
    module_id: str = typer.Argument(..., help="Module id to inspect."),
    catalog: Optional[Path] = typer.Option(None, "--catalog", "-c", help=CATALOG_OPTION_HELP),
    as_json: bool = typer.Option(False, "--json", help="Print the tree as JSON."),
):
    """Show what a module needs and what needs it.

    Example:
      mg tree MyMod
      mg tree MyMod --json
    """
    cat = open_catalog(catalog)
    if module_id not in cat.index():
        fail(f"Module '{module_id}' is not in the catalog.")
    tree = build_module_tree(cat.modules, module_id)

    if as_json:
        typer.echo(export_tree_json(tree))
        return

    root = Tree(f"[bold cyan]{escape(tree.root_module_name)}[/bold cyan]")
    _add_branch(root.add(f"Dependencies ({tree.total_dependencies})"), tree.dependencies)
    _add_branch(root.add(f"Dependents ({tree.total_dependents})"), tree.dependents)
    console.print(root)
    console.print(f"[dim]Max depth: {tree.max_depth}[/dim]")


@app.command("affected")
def show_affected(
    module_id: str = typer.Argument(..., help="Module id to disable."),
    catalog: Optional[Path] = typer.Option(None, "--catalog", "-c", help=CATALOG_OPTION_HELP),
):
    """List modules affected by disabling a module."""
    cat = open_catalog(catalog)
    if module_id not in cat.index():
        fail(f"Module '{module_id}' is not in the catalog.")
    _print_id_list(
        f"Affected by disabling {escape(module_id)}",
        affected_modules(cat.modules, module_id),
        "No other module depends on it.",
    )


@app.command("requires")
def show_requires(
    module_id: str = typer.Argument(..., help="Module id to inspect."),
    catalog: Optional[Path] = typer.Option(None, "--catalog", "-c", help=CATALOG_OPTION_HELP),
):
    """List every module a module needs, directly or transitively."""
    cat = open_catalog(catalog)
    if module_id not in cat.index():
        fail(f"Module '{module_id}' is not in the catalog.")
    _print_id_list(
        f"Required by {escape(module_id)}",
        all_required_modules(cat.modules, module_id),
        "It has no dependencies.",
    )


@app.command("analyze")
def analyze(
    catalog: Optional[Path] = typer.Option(None, "--catalog", "-c", help=CATALOG_OPTION_HELP),
    include_native: bool = typer.Option(False, "--include-native", help="Check native modules too."),
    no_order: bool = typer.Option(False, "--no-order", help="Skip synthesizing an optimized order."),
    cycle_policy: Optional[CyclePolicy] = typer.Option(
        None, "--cycle-policy", case_sensitive=False, help="lenient, report or strict."
    ),
):
    """Check the current load order and suggest fixes.

    Example:
      mg analyze
      mg analyze --cycle-policy report
    """
    cat = open_catalog(catalog)
    options = _analysis_options(include_native, cycle_policy, generate_order=not no_order)
    try:
        result = analyze_load_order(cat.modules, cat.load_order, options)
    except OrderCycleError as exc:
        fail(str(exc))

    color = _score_color(result.health_score)
    console.print(
        Panel.fit(
            f"[bold {color}]{result.health_score}/100[/bold {color}]\n{escape(result.summary)}",
            title="[bold]Load Order Health[/bold]",
            border_style=color,
        )
    )

    if result.suggestions:
        table = Table(title="Suggestions", show_header=True, show_lines=False)
        table.add_column("ID", style="dim", no_wrap=True)
        table.add_column("Module", style="cyan")
        table.add_column("Action", style="magenta")
        table.add_column("Move", justify="right")
        table.add_column("Confidence")
        table.add_column("Explanation", min_width=30)
        for s in result.suggestions:
            table.add_row(
                s.id,
                escape(s.module_id),
                f"{s.type.value} {escape(s.target_module_id or '')}".strip(),
                f"{s.current_position} → {s.suggested_position}",
                s.confidence.value,
                escape(s.explanation),
            )
        console.print(table)
        console.print("[dim]Apply one with 'mg apply-suggestion <ID>' or all with 'mg optimize --apply'.[/dim]")

    for source, target in result.cycle_breaks:
        console.print(f"[yellow]⚠️  Ignored {escape(source)} → {escape(target)} to break a cycle.[/yellow]")


@app.command("optimize")
def optimize(
    catalog: Optional[Path] = typer.Option(None, "--catalog", "-c", help=CATALOG_OPTION_HELP),
    apply: bool = typer.Option(False, "--apply", help="Write the optimized order to the catalog."),
    include_native: bool = typer.Option(False, "--include-native", help="Order native modules too."),
    cycle_policy: Optional[CyclePolicy] = typer.Option(
        None, "--cycle-policy", case_sensitive=False, help="lenient, report or strict."
    ),
):
    """Print a load order that satisfies dependencies and load hints.

    Example:
      mg optimize
      mg optimize --apply
    """
    catalog_file = resolve_catalog_path(catalog)
    cat = open_catalog(catalog_file)
    options = _analysis_options(include_native, cycle_policy)
    try:
        result = analyze_load_order(cat.modules, cat.load_order, options)
    except OrderCycleError as exc:
        fail(str(exc))

    order = result.optimized_order or []
    if not order:
        console.print("[yellow]No modules to order.[/yellow]")
        return

    console.print("[bold]Optimized load order[/bold]")
    for position, module_id in enumerate(order):
        console.print(f"  {position:>3}. {escape(module_id)}")
    for source, target in result.cycle_breaks:
        console.print(f"[yellow]⚠️  Ignored {escape(source)} → {escape(target)} to break a cycle.[/yellow]")

    if not apply:
        return
    _snapshot_before(cat, "Before optimization")
    _write_order(catalog_file, cat, order)
    console.print(f"[green]✓ Load order written to {escape(str(catalog_file))}.[/green]")


@app.command("apply-suggestion")
def apply_suggestion_cmd(
    suggestion_id: str = typer.Argument(..., help="Suggestion ID from 'mg analyze'."),
    catalog: Optional[Path] = typer.Option(None, "--catalog", "-c", help=CATALOG_OPTION_HELP),
    include_native: bool = typer.Option(False, "--include-native", help="Check native modules too."),
):
    """Apply a single suggestion to the catalog load order."""
    catalog_file = resolve_catalog_path(catalog)
    cat = open_catalog(catalog_file)
    options = _analysis_options(include_native, CyclePolicy.LENIENT, generate_order=False)
    result = analyze_load_order(cat.modules, cat.load_order, options)

    suggestion = find_suggestion(result, suggestion_id)
    if suggestion is None:
        fail(f"Suggestion '{suggestion_id}' not found. Run 'mg analyze' to list current suggestions.")

    considered = [m.id for m in considered_modules(cat.index(), cat.load_order, options)]
    moved = apply_suggestion(considered, suggestion)
    if moved is None:
        fail(f"Module '{suggestion.module_id}' is no longer in the load order.")

    _snapshot_before(cat, f"Before applying suggestion {suggestion_id}")
    _write_order(catalog_file, cat, moved)
    console.print(
        f"[green]✓ Moved {escape(suggestion.module_id)} to position {suggestion.suggested_position}.[/green]"
    )


@app.command("export-graph")
def export_graph_cmd(
    catalog: Optional[Path] = typer.Option(None, "--catalog", "-c", help=CATALOG_OPTION_HELP),
    fmt: Optional[ExportFormat] = typer.Option(
        None, "--format", "-f", case_sensitive=False, help="json, dot, mermaid or csv."
    ),
    output: Optional[Path] = typer.Option(None, "--output", "-o", help="Write to a file instead of stdout."),
    include_native: bool = typer.Option(False, "--include-native", help="Include native modules."),
    no_optional: bool = typer.Option(False, "--no-optional", help="Leave out optional dependency edges."),
    no_versions: bool = typer.Option(False, "--no-versions", help="Leave versions out of DOT labels."),
    selected_only: bool = typer.Option(False, "--selected-only", help="Only include selected modules."),
):
    """Export the dependency graph.

    Example:
      mg export-graph --format dot --output deps.dot
      mg export-graph --format mermaid
    """
    settings = config_manager.load_config()
    try:
        chosen = fmt or ExportFormat(settings["export"]["format"])
    except ValueError:
        raise typer.BadParameter(f"Unknown export format '{settings['export']['format']}' in config.")

    options = GraphOptions(
        format=chosen,
        include_native_modules=include_native or bool(settings["analysis"]["include_native"]),
        include_optional=not no_optional,
        include_versions=not no_versions and bool(settings["export"]["include_versions"]),
        selected_only=selected_only,
    )
    cat = open_catalog(catalog)
    text = export_graph(_catalog_graph(cat, options), options)

    if output is None:
        typer.echo(text, nl=False)
        return
    write_export(text, output)
    typer.echo(f"Exported {chosen.value} graph to {output}")
