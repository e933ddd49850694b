"""Cooperative cancellation primitives shared by long-running operations."""

from __future__ import annotations

from collections.abc import Callable
from threading import Event, Lock


class OperationCancelledError(RuntimeError):
    """Raised when a cancellation token fires during an operation."""


class CancellationToken:
    """Thread-safe cancellation signal with linked children and callbacks."""

    def __init__(self) -> None:
        self._event = Event()
        self._lock = Lock()
        self._callbacks: list[Callable[[], None]] = []

    @property
    def cancelled(self) -> bool:
        """Whether cancellation was requested."""
        return self._event.is_set()

    def cancel(self) -> None:
        """Request cancellation and run registered callbacks once."""
        with self._lock:
            if self._event.is_set():
                return
            self._event.set()
            callbacks = list(self._callbacks)
            self._callbacks.clear()
        for callback in callbacks:
            callback()

    def on_cancel(self, callback: Callable[[], None]) -> None:
        """Register callback, invoking it immediately when already cancelled.

        Args:
            callback: Zero-argument callable.
        """
        with self._lock:
            if not self._event.is_set():
                self._callbacks.append(callback)
                return
        callback()

    def linked(self) -> CancellationToken:
        """Create child token cancelled whenever this token is cancelled.

        Returns:
            Child token that can also be cancelled independently.
        """
        child = CancellationToken()
        self.on_cancel(child.cancel)
        return child

    def raise_if_cancelled(self) -> None:
        """Raise when cancellation was requested.

        Raises:
            OperationCancelledError: If the token is cancelled.
        """
        if self._event.is_set():
            raise OperationCancelledError("operation cancelled")

    def wait(self, timeout: float | None = None) -> bool:
        """Block until cancelled or timeout elapses.

        Args:
            timeout: Maximum seconds to wait.

        Returns:
            True when cancellation was requested.
        """
        return self._event.wait(timeout)
