"""check command - validate configs and requirements"""

from __future__ import annotations

from rich.table import Table

from lazycli.lib.context import CLIContext
from lazycli.lib.errors import LazyError, handle_error

from .utils import console, get_settings, load_registry


def check_command(ctx: CLIContext) -> None:
    """Load every package and summarize it."""
    try:
        settings = get_settings(ctx)
        registry = load_registry(settings)
    except LazyError as e:
        handle_error(e)

    if not registry.packages:
        console.print(f"[yellow]No packages found in {settings.config_dir}[/yellow]")
        return

    table = Table()
    table.add_column("Package", style="cyan")
    table.add_column("Steps", justify="right")
    table.add_column("Roots", justify="right")

    for name, package in registry.packages.items():
        table.add_row(name, str(len(package.steps)), str(len(package.roots)))

    console.print(table)
    console.print(f"[green]✓[/green] {len(registry.packages)} packages OK")
