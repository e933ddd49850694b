"""Handler for the `help` builtin."""

from __future__ import annotations

from typing import Any

from kcode.commands.descriptors import (
    ApiCommandDescriptor,
    CommandDescriptor,
    MacroCommandDescriptor,
)
from kcode.commands.parser import ParsedCommand
from kcode.commands.types import CommandExecutionResult, ExecutionContext


def _target(entry: CommandDescriptor) -> str:
    """Describe what one command drives.

    Args:
        entry: Registry descriptor.

    Returns:
        Endpoint, step count, or builtin action.
    """
    if isinstance(entry, ApiCommandDescriptor):
        return entry.config.endpoint
    if isinstance(entry, MacroCommandDescriptor):
        count = len(entry.config.steps)
        return f"{count} step" if count == 1 else f"{count} steps"
    return entry.config.action


def _row(entry: CommandDescriptor) -> dict[str, Any]:
    return {
        "name": entry.name,
        "kind": str(entry.kind),
        "aliases": list(entry.aliases),
        "description": entry.description,
        "target": _target(entry),
    }


class HelpCommand:
    """Lists every registered command in case-insensitive name order."""

    def execute(
        self, command: ParsedCommand, context: ExecutionContext
    ) -> CommandExecutionResult:
        """Render the command catalog.

        Args:
            command: Parsed `help` command.
            context: Execution collaborators.

        Returns:
            Success result with one row per command.
        """
        del command
        rows = [_row(entry) for entry in context.registry.all_commands]
        if not rows:
            return CommandExecutionResult.ok(
                "No commands configured.", code="help_empty", data={"commands": []}
            )
        lines = []
        for row in rows:
            aliases = ", ".join(row["aliases"])
            suffix = f" ({aliases})" if aliases else ""
            lines.append(f"{row['name']}{suffix} - {row['description']}")
        return CommandExecutionResult.ok(
            "\n".join(lines),
            code="help_listed",
            data={"commands": rows},
        )
