"""Deterministic command error contracts."""

from __future__ import annotations

from enum import StrEnum


class ConfigurationError(ValueError):
    """Raised when the command vocabulary cannot be built from config."""


class ExecutionErrorCode(StrEnum):
    """Stable command execution error codes."""

    UNKNOWN_COMMAND = "unknown_command"
    UNKNOWN_ACTION = "unknown_action"
    UNKNOWN_BUILTIN = "unknown_builtin"
    MISSING_CONFIG = "missing_config"
    TRANSPORT_FAILED = "transport_failed"
    MACRO_STEP_FAILED = "macro_step_failed"
    EXECUTION_FAILED = "execution_failed"
    CANCELLED = "cancelled"


class ExecutionError(RuntimeError):
    """Command execution failure with stable deterministic code."""

    def __init__(
        self,
        code: ExecutionErrorCode,
        message: str,
        *,
        data: dict[str, object] | None = None,
    ) -> None:
        """Create execution failure.

        Args:
            code: Stable execution error code.
            message: Human-readable error message.
            data: Optional structured payload for diagnostics.
        """
        super().__init__(message)
        self.code = code
        self.data = data or {}
