"""Handler for the `status_panel` builtin."""

from __future__ import annotations

from pydantic import ValidationError

from kcode.commands.errors import ExecutionErrorCode
from kcode.commands.parser import ParsedCommand
from kcode.commands.types import CommandExecutionResult, ExecutionContext
from kcode.machine.models import MachineStatus
from kcode.transport.base import invoke_with_timeout


def format_status(status: MachineStatus) -> str:
    """Render one status snapshot as a single line.

    Args:
        status: Machine status snapshot.

    Returns:
        Human-readable status line.
    """
    line = (
        f"{status.state} X:{status.x:.3f} Y:{status.y:.3f} Z:{status.z:.3f} "
        f"F:{status.feed:.0f} S:{status.speed:.0f} T:{status.temp:.1f}C"
    )
    if status.alarm:
        line = f"{line} ALARM: {status.alarm}"
    return line


class StatusPanelCommand:
    """Shows the latest machine status.

    Reads the background status cache when one is attached and has data,
    otherwise asks the transport directly.
    """

    def execute(
        self, command: ParsedCommand, context: ExecutionContext
    ) -> CommandExecutionResult:
        """Render current machine status.

        Args:
            command: Parsed `status` command.
            context: Execution collaborators.

        Returns:
            Success result carrying the status payload, or a transport error.
        """
        del command
        status = context.status_cache.latest if context.status_cache else None
        source = "cache"
        if status is None:
            source = "transport"
            response = invoke_with_timeout(
                context.transport,
                context.status_endpoint,
                {},
                timeout_seconds=context.timeout_seconds,
                cancel=context.cancel,
            )
            if not response.success:
                return CommandExecutionResult.error(
                    response.error or "Status unavailable",
                    code=ExecutionErrorCode.TRANSPORT_FAILED,
                )
            try:
                status = MachineStatus.model_validate(response.data)
            except ValidationError as exc:
                return CommandExecutionResult.error(
                    f"Invalid status payload: {exc.error_count()} error(s)",
                    code=ExecutionErrorCode.TRANSPORT_FAILED,
                )
        return CommandExecutionResult.ok(
            format_status(status),
            code="status_shown",
            data={"status": status.to_payload(), "source": source},
        )
