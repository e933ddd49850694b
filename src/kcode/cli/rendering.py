"""CLI result rendering policies and Rich views."""

from __future__ import annotations

from collections.abc import Callable

from rich.console import Console
from rich.json import JSON
from rich.panel import Panel
from rich.text import Text

from kcode.cli.renderers.catalog import render_help
from kcode.cli.renderers.machine import render_logs, render_status
from kcode.cli.result_codes import (
    HIDE_DATA_CODES,
    MACHINE_ALERT_CODES,
    QUIET_FAILURE_CODES,
)
from kcode.commands.types import CommandExecutionResult


class CliRenderer:
    """Render execution results with Rich structures and code-based policies."""

    def __init__(self, *, console: Console, show_data: bool = False) -> None:
        """Store console used for rendering.

        Args:
            console: Rich console used for output rendering.
            show_data: Whether to print result payloads below the output.
        """
        self._console = console
        self._show_data = show_data

    def render(self, result: CommandExecutionResult) -> None:
        """Render one execution result.

        Args:
            result: Execution result.
        """
        if result.should_clear:
            self._console.clear()
            return
        if result.success:
            if self._render_rich_success(result):
                return
            if result.output:
                self._console.print(
                    Panel(
                        result.output,
                        title="kcode",
                        border_style="yellow" if result.should_exit else "green",
                        expand=True,
                    )
                )
            self._render_data(result)
            return
        if result.code in QUIET_FAILURE_CODES:
            self._console.print(Text(result.output, style="yellow"))
            return
        alert = result.code in MACHINE_ALERT_CODES
        self._console.print(
            Panel(
                Text(result.output),
                title="Machine Error" if alert else f"Error ({result.code})",
                border_style="bold bright_red" if alert else "bold red",
                expand=True,
            )
        )
        self._render_data(result)

    def _render_data(self, result: CommandExecutionResult) -> None:
        if not self._show_data or not result.data:
            return
        if result.code in HIDE_DATA_CODES:
            return
        self._console.print(
            Panel(
                JSON.from_data(result.data),
                title="Data",
                border_style="cyan",
                expand=True,
            )
        )

    def _render_rich_success(self, result: CommandExecutionResult) -> bool:
        """Render specialized success view for selected result codes.

        Args:
            result: Execution result.

        Returns:
            ``True`` when a specialized render path handled the result.
        """
        renderers: dict[str, Callable[[Console, CommandExecutionResult], bool]] = {
            "help_listed": render_help,
            "status_shown": render_status,
            "logs_shown": render_logs,
        }
        renderer = renderers.get(result.code)
        if renderer is None:
            return False
        return renderer(self._console, result)
