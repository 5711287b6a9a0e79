"""Configuration commands for ModGraph CLI."""

from __future__ import annotations

import typer

from . import config, config_manager

config_app = typer.Typer(help="⚙️  Show and change ModGraph settings")


@config_app.command("show")
def show_config():
    """Show the effective configuration."""
    settings = config_manager.load_config()
    exists = config.CONFIG_FILE.exists()

    for section, values in settings.items():
        typer.echo(typer.style(f"[{section}]", fg=typer.colors.CYAN, bold=True))
        for key, value in values.items():
            shown = value if value != "" else typer.style("(not set)", dim=True)
            typer.echo(f"  {key:<16}{shown}")
    typer.echo("")
    note = "" if exists else " (not created yet, defaults shown)"
    typer.echo(f"  Config    {typer.style(str(config.CONFIG_FILE), dim=True)}{note}")


@config_app.command("set")
def set_config(
    key: str = typer.Argument(..., help="Setting as section.key, e.g. history.max_snapshots."),
    value: str = typer.Argument(..., help="New value."),
):
    """Change one setting.

    Example:
      mg config set catalog.path ~/game/modules.json
      mg config set analysis.cycle_policy strict
    """
    try:
        stored = config_manager.set_value(key, value)
    except KeyError:
        known = ", ".join(
            f"{section}.{name}"
            for section, values in config_manager.DEFAULT_CONFIG.items()
            for name in values
        )
        raise typer.BadParameter(f"Unknown setting '{key}'. Known settings: {known}")
    except ValueError as exc:
        raise typer.BadParameter(str(exc))
    typer.echo(f"✓ {key} = {stored}")
