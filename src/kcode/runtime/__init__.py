"""Runtime primitives and session wiring."""

from kcode.runtime.cancellation import CancellationToken, OperationCancelledError

__all__ = ["CancellationToken", "OperationCancelledError"]
