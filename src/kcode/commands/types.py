"""Shared command-execution types."""

from __future__ import annotations

from dataclasses import dataclass
from pathlib import Path
from typing import TYPE_CHECKING, Any, Protocol

from pydantic import BaseModel, ConfigDict

from kcode.commands.errors import ExecutionErrorCode
from kcode.commands.parser import ParsedCommand
from kcode.commands.registry import CommandRegistry
from kcode.runtime.cancellation import CancellationToken

if TYPE_CHECKING:
    from kcode.machine.status_cache import StatusCache
    from kcode.transport.base import Transport


class CommandExecutionResult(BaseModel):
    """Outcome of executing one parsed command."""

    model_config = ConfigDict(extra="forbid", frozen=True)

    success: bool
    code: str
    output: str = ""
    data: dict[str, Any] | None = None
    should_exit: bool = False
    should_clear: bool = False
    cancelled: bool = False

    @classmethod
    def ok(
        cls,
        output: str,
        *,
        code: str = "ok",
        data: dict[str, Any] | None = None,
        should_exit: bool = False,
        should_clear: bool = False,
    ) -> CommandExecutionResult:
        """Construct a successful result.

        Args:
            output: Rendered user-facing text.
            code: Stable machine-readable success code.
            data: Optional payload for downstream renderers.
            should_exit: Whether the session should end.
            should_clear: Whether the screen should be cleared.

        Returns:
            Successful result.
        """
        return cls(
            success=True,
            code=code,
            output=output,
            data=data,
            should_exit=should_exit,
            should_clear=should_clear,
        )

    @classmethod
    def error(
        cls,
        output: str,
        *,
        code: str = ExecutionErrorCode.EXECUTION_FAILED,
        data: dict[str, Any] | None = None,
    ) -> CommandExecutionResult:
        """Construct a failed result.

        Args:
            output: User-facing error text.
            code: Stable machine-readable error code.
            data: Optional payload for downstream renderers.

        Returns:
            Failed result.
        """
        return cls(success=False, code=str(code), output=output, data=data)

    @classmethod
    def cancelled_result(cls, output: str = "Cancelled") -> CommandExecutionResult:
        """Construct a cancelled outcome.

        Args:
            output: User-facing text.

        Returns:
            Failed result flagged as cancelled.
        """
        return cls(
            success=False,
            code=str(ExecutionErrorCode.CANCELLED),
            output=output,
            cancelled=True,
        )


@dataclass(frozen=True)
class ExecutionContext:
    """Collaborators available to builtin handlers."""

    registry: CommandRegistry
    transport: Transport
    cancel: CancellationToken
    status_cache: StatusCache | None = None
    log_file: Path | None = None
    status_endpoint: str = "get_status"
    timeout_seconds: float = 5.0


class BuiltinHandler(Protocol):
    """Protocol implemented by builtin system actions."""

    def execute(
        self, command: ParsedCommand, context: ExecutionContext
    ) -> CommandExecutionResult:
        """Run builtin action.

        Args:
            command: Parsed system command.
            context: Execution collaborators.
        """
