"""Command executor: builtins, backend calls and macros."""

from __future__ import annotations

import logging
from collections.abc import Mapping
from pathlib import Path
from typing import Any

from kcode.commands.descriptors import (
    ApiCommandDescriptor,
    CommandKind,
    MacroCommandDescriptor,
    SystemCommandDescriptor,
)
from kcode.commands.errors import ExecutionError, ExecutionErrorCode
from kcode.commands.handlers.help import HelpCommand
from kcode.commands.handlers.logs import LogsCommand
from kcode.commands.handlers.session_control import ClearCommand, ExitCommand
from kcode.commands.handlers.status_panel import StatusPanelCommand
from kcode.commands.parser import ParsedCommand
from kcode.commands.registry import CommandRegistry
from kcode.commands.types import (
    BuiltinHandler,
    CommandExecutionResult,
    ExecutionContext,
)
from kcode.machine.status_cache import StatusCache
from kcode.runtime.cancellation import CancellationToken, OperationCancelledError
from kcode.template.engine import TemplateEngine
from kcode.transport.base import Transport, TransportResponse, invoke_with_timeout

_LOGGER = logging.getLogger(__name__)

BUILTIN_PREFIX = "builtin:"
DEFAULT_SUCCESS_OUTPUT = "Command executed successfully"


class CommandExecutor:
    """Executes parsed commands and never raises past its boundary."""

    def __init__(  # noqa: PLR0913
        self,
        *,
        registry: CommandRegistry,
        transport: Transport,
        template_engine: TemplateEngine | None = None,
        status_cache: StatusCache | None = None,
        log_file: Path | None = None,
        timeout_seconds: float = 5.0,
        status_endpoint: str = "get_status",
        builtins: dict[str, BuiltinHandler] | None = None,
    ) -> None:
        """Create executor with builtin handlers plus optional overrides.

        Args:
            registry: Command catalog, used by the help builtin.
            transport: Backend transport.
            template_engine: Response renderer.
            status_cache: Optional background status cache.
            log_file: Session log consumed by the logs builtin.
            timeout_seconds: Timeout applied to every transport call.
            status_endpoint: Endpoint queried for status.
            builtins: Optional builtin handlers keyed by action name.
        """
        self._registry = registry
        self._transport = transport
        self._templates = template_engine or TemplateEngine()
        self._status_cache = status_cache
        self._log_file = log_file
        self._timeout_seconds = timeout_seconds
        self._status_endpoint = status_endpoint
        self._builtins: dict[str, BuiltinHandler] = {
            "help": HelpCommand(),
            "exit": ExitCommand(),
            "clear": ClearCommand(),
            "status_panel": StatusPanelCommand(),
            "logs": LogsCommand(),
        }
        if builtins:
            self._builtins.update(builtins)

    def execute(
        self, command: ParsedCommand, *, cancel: CancellationToken | None = None
    ) -> CommandExecutionResult:
        """Execute one parsed command.

        Args:
            command: Parser output.
            cancel: Optional cancellation token for long-running work.

        Returns:
            Execution result; faults become failed results.
        """
        token = cancel or CancellationToken()
        try:
            return self._dispatch(command, token)
        except OperationCancelledError:
            _LOGGER.info("executor.cancelled name=%s", command.name)
            return CommandExecutionResult.cancelled_result(
                f"Cancelled: {command.input}"
            )
        except ExecutionError as exc:
            _LOGGER.warning(
                "executor.failed name=%s code=%s error=%s", command.name, exc.code, exc
            )
            return CommandExecutionResult.error(
                str(exc), code=exc.code, data=dict(exc.data) or None
            )
        except Exception as exc:
            _LOGGER.exception("executor.crashed name=%s", command.name)
            return CommandExecutionResult.error(
                f"Command execution failed: {exc}",
                code=ExecutionErrorCode.EXECUTION_FAILED,
            )

    def _dispatch(
        self, command: ParsedCommand, token: CancellationToken
    ) -> CommandExecutionResult:
        descriptor = command.descriptor
        if command.kind is CommandKind.UNKNOWN:
            raise ExecutionError(
                ExecutionErrorCode.UNKNOWN_COMMAND,
                f"Unknown command: {command.input}",
                data={"input": command.input, "note": command.note},
            )
        if command.kind is CommandKind.SYSTEM and isinstance(
            descriptor, SystemCommandDescriptor
        ):
            return self._execute_system(command, descriptor, token)
        if command.kind is CommandKind.API and isinstance(
            descriptor, ApiCommandDescriptor
        ):
            return self._execute_api(command, descriptor, token)
        if command.kind is CommandKind.MACRO and isinstance(
            descriptor, MacroCommandDescriptor
        ):
            return self._execute_macro(descriptor, token)
        raise ExecutionError(
            ExecutionErrorCode.MISSING_CONFIG,
            f"Command '{command.name}' has no configuration",
            data={"command": command.name},
        )

    def _execute_system(
        self,
        command: ParsedCommand,
        descriptor: SystemCommandDescriptor,
        token: CancellationToken,
    ) -> CommandExecutionResult:
        action = descriptor.config.action.strip()
        if not action.startswith(BUILTIN_PREFIX):
            raise ExecutionError(
                ExecutionErrorCode.UNKNOWN_ACTION,
                f"Unknown action: {action or '(none)'}",
                data={"command": descriptor.name, "action": action},
            )
        builtin_name = action[len(BUILTIN_PREFIX) :].strip()
        handler = self._builtins.get(builtin_name)
        if handler is None:
            raise ExecutionError(
                ExecutionErrorCode.UNKNOWN_BUILTIN,
                f"Unknown builtin: {builtin_name}",
                data={"command": descriptor.name, "builtin": builtin_name},
            )
        context = ExecutionContext(
            registry=self._registry,
            transport=self._transport,
            cancel=token,
            status_cache=self._status_cache,
            log_file=self._log_file,
            status_endpoint=self._status_endpoint,
            timeout_seconds=self._timeout_seconds,
        )
        return handler.execute(command, context)

    def _execute_api(
        self,
        command: ParsedCommand,
        descriptor: ApiCommandDescriptor,
        token: CancellationToken,
    ) -> CommandExecutionResult:
        endpoint = descriptor.config.endpoint.strip()
        if not endpoint:
            raise ExecutionError(
                ExecutionErrorCode.MISSING_CONFIG,
                f"Command '{descriptor.name}' has no endpoint",
                data={"command": descriptor.name},
            )
        response = self._invoke(endpoint, command.parameters, token)
        if not response.success:
            raise ExecutionError(
                ExecutionErrorCode.TRANSPORT_FAILED,
                response.error or "Request failed",
                data={"command": descriptor.name, "endpoint": endpoint},
            )
        return self._render(
            descriptor.name, descriptor.config.response_template, response
        )

    def _execute_macro(
        self, descriptor: MacroCommandDescriptor, token: CancellationToken
    ) -> CommandExecutionResult:
        steps = descriptor.config.steps
        if not steps:
            raise ExecutionError(
                ExecutionErrorCode.MISSING_CONFIG,
                f"Macro '{descriptor.name}' has no steps",
                data={"command": descriptor.name},
            )
        last = TransportResponse.ok()
        for index, step in enumerate(steps, start=1):
            token.raise_if_cancelled()
            _LOGGER.info(
                "executor.macro_step macro=%s step=%d endpoint=%s",
                descriptor.name,
                index,
                step.endpoint,
            )
            last = self._invoke(step.endpoint, step.request, token)
            if not last.success:
                raise ExecutionError(
                    ExecutionErrorCode.MACRO_STEP_FAILED,
                    f"Macro step failed: {last.error or 'request failed'}",
                    data={
                        "command": descriptor.name,
                        "step": index,
                        "endpoint": step.endpoint,
                    },
                )
        return self._render(descriptor.name, descriptor.config.response_template, last)

    def _invoke(
        self, endpoint: str, parameters: Mapping[str, Any], token: CancellationToken
    ) -> TransportResponse:
        return invoke_with_timeout(
            self._transport,
            endpoint,
            dict(parameters),
            timeout_seconds=self._timeout_seconds,
            cancel=token,
        )

    def _render(
        self, name: str, template: str, response: TransportResponse
    ) -> CommandExecutionResult:
        if template.strip():
            output = self._templates.render(template, response.data)
        else:
            message = response.data.get("message")
            output = str(message) if message else DEFAULT_SUCCESS_OUTPUT
        return CommandExecutionResult.ok(
            output,
            code="command_executed",
            data={"command": name, "response": response.data},
        )
