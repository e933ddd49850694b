"""Machine status and log Rich renderers."""

from __future__ import annotations

from rich.console import Console
from rich.panel import Panel
from rich.table import Table
from rich.text import Text

from kcode.commands.types import CommandExecutionResult

_STATE_STYLES = {
    "IDLE": "green",
    "RUN": "cyan",
    "HOLD": "yellow",
    "ALARM": "bold red",
}


def render_status(console: Console, result: CommandExecutionResult) -> bool:
    """Render `/status` output as a compact grid.

    Args:
        console: Rich console.
        result: Command result payload.

    Returns:
        ``True`` when rendered.
    """
    data = result.data if isinstance(result.data, dict) else None
    status = data.get("status") if data is not None else None
    if not isinstance(status, dict):
        return False
    state = str(status.get("state", ""))
    style = _STATE_STYLES.get(state, "white")
    grid = Table.grid(padding=(0, 2))
    grid.add_column(style="bold")
    grid.add_column()
    grid.add_row("State", f"[{style}]{state}[/{style}]")
    for axis in ("x", "y", "z"):
        grid.add_row(axis.upper(), f"{float(status.get(axis, 0.0)):.3f}")
    grid.add_row("Feed", f"{float(status.get('feed', 0.0)):.0f}")
    grid.add_row("Spindle", f"{float(status.get('speed', 0.0)):.0f}")
    grid.add_row("Temp", f"{float(status.get('temp', 0.0)):.1f} C")
    alarm = str(status.get("alarm", ""))
    if alarm:
        grid.add_row("Alarm", f"[bold red]{alarm}[/bold red]")
    console.print(
        Panel(
            grid,
            title=f"Machine ({data.get('source', 'transport')})",
            border_style=style,
            expand=True,
        )
    )
    return True


def render_logs(console: Console, result: CommandExecutionResult) -> bool:
    """Render `/logs` output without markup interpretation.

    Args:
        console: Rich console.
        result: Command result payload.

    Returns:
        ``True`` when rendered.
    """
    data = result.data if isinstance(result.data, dict) else None
    lines = data.get("lines") if data is not None else None
    if not isinstance(lines, list) or not lines:
        return False
    console.print(
        Panel(
            Text("\n".join(str(line) for line in lines)),
            title=str(data.get("path", "Logs")),
            border_style="blue",
            expand=True,
        ),
    )
    return True
