"""Handler for the `logs` builtin."""

from __future__ import annotations

from collections import deque
from pathlib import Path

from kcode.commands.parser import ParsedCommand
from kcode.commands.types import CommandExecutionResult, ExecutionContext

DEFAULT_TAIL_LINES = 50


def tail_lines(path: Path, limit: int = DEFAULT_TAIL_LINES) -> list[str]:
    """Return the last lines of a text file.

    Args:
        path: File to read.
        limit: Maximum number of lines.

    Returns:
        Up to ``limit`` trailing lines without newlines.
    """
    with path.open(encoding="utf-8", errors="replace") as handle:
        return [line.rstrip("\n") for line in deque(handle, maxlen=limit)]


class LogsCommand:
    """Shows the tail of the session log file."""

    def __init__(self, limit: int = DEFAULT_TAIL_LINES) -> None:
        self._limit = limit

    def execute(
        self, command: ParsedCommand, context: ExecutionContext
    ) -> CommandExecutionResult:
        """Render recent log lines.

        Args:
            command: Parsed `logs` command.
            context: Execution collaborators.

        Returns:
            Success result with log lines, or an empty notice.
        """
        del command
        path = context.log_file
        if path is None or not path.exists():
            return CommandExecutionResult.ok(
                "No log entries yet.", code="logs_empty", data={"lines": []}
            )
        lines = tail_lines(path, self._limit)
        if not lines:
            return CommandExecutionResult.ok(
                "No log entries yet.", code="logs_empty", data={"lines": []}
            )
        return CommandExecutionResult.ok(
            "\n".join(lines),
            code="logs_shown",
            data={"lines": lines, "path": str(path)},
        )
