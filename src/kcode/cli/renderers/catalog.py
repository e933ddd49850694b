"""Help catalog Rich renderer."""

from __future__ import annotations

from rich.console import Console
from rich.table import Table

from kcode.commands.types import CommandExecutionResult


def render_help(console: Console, result: CommandExecutionResult) -> bool:
    """Render `/help` output as a command table.

    Args:
        console: Rich console.
        result: Command result payload.

    Returns:
        ``True`` when rendered.
    """
    data = result.data if isinstance(result.data, dict) else None
    rows = data.get("commands") if data is not None else None
    if not isinstance(rows, list) or not rows:
        return False
    table = Table(title="Commands", show_header=True, header_style="bold cyan")
    table.add_column("Command", style="bold")
    table.add_column("Kind", style="magenta")
    table.add_column("Aliases")
    table.add_column("Description")
    table.add_column("Target", style="green")
    for row in rows:
        if not isinstance(row, dict):
            continue
        table.add_row(
            str(row.get("name", "")),
            str(row.get("kind", "")),
            ", ".join(str(alias) for alias in row.get("aliases", [])),
            str(row.get("description", "")),
            str(row.get("target", "")),
        )
    console.print(table)
    return True
