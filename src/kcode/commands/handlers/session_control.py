"""Handlers for the `exit` and `clear` builtins."""

from __future__ import annotations

from kcode.commands.parser import ParsedCommand
from kcode.commands.types import CommandExecutionResult, ExecutionContext


class ExitCommand:
    """Signals the session loop to end."""

    def execute(
        self, command: ParsedCommand, context: ExecutionContext
    ) -> CommandExecutionResult:
        del command, context
        return CommandExecutionResult.ok("Goodbye.", code="exit", should_exit=True)


class ClearCommand:
    """Signals the session loop to clear the screen."""

    def execute(
        self, command: ParsedCommand, context: ExecutionContext
    ) -> CommandExecutionResult:
        del command, context
        return CommandExecutionResult.ok("", code="cleared", should_clear=True)
