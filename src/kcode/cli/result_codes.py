"""Result code groupings used by CLI rendering policy."""

from __future__ import annotations

HIDE_DATA_CODES = frozenset(
    {
        "help_listed",
        "help_empty",
        "status_shown",
        "logs_shown",
        "logs_empty",
        "exit",
        "cleared",
    }
)

MACHINE_ALERT_CODES = frozenset(
    {
        "transport_failed",
        "macro_step_failed",
    }
)

QUIET_FAILURE_CODES = frozenset(
    {
        "cancelled",
    }
)
