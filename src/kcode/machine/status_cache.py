"""Background status observer with a lock-guarded latest snapshot."""

from __future__ import annotations

import logging
from threading import Lock, Thread

from pydantic import ValidationError

from kcode.machine.models import MachineStatus
from kcode.runtime.cancellation import CancellationToken, OperationCancelledError
from kcode.transport.base import Transport

_LOGGER = logging.getLogger(__name__)


class StatusCache:
    """Keeps the most recent machine status streamed from a transport.

    Writers swap one immutable snapshot under the lock; readers copy the
    reference out, so neither side blocks longer than an assignment.
    """

    def __init__(self, transport: Transport, *, endpoint: str = "get_status") -> None:
        """Create cache bound to a transport status endpoint.

        Args:
            transport: Backend to subscribe to.
            endpoint: Status endpoint name.
        """
        self._transport = transport
        self._endpoint = endpoint
        self._lock = Lock()
        self._latest: MachineStatus | None = None
        self._updates = 0
        self._token: CancellationToken | None = None
        self._thread: Thread | None = None

    @property
    def latest(self) -> MachineStatus | None:
        """Most recent snapshot, or None before the first update."""
        with self._lock:
            return self._latest

    @property
    def update_count(self) -> int:
        """Number of snapshots written so far."""
        with self._lock:
            return self._updates

    @property
    def running(self) -> bool:
        """Whether the observer thread is alive."""
        return self._thread is not None and self._thread.is_alive()

    def update(self, status: MachineStatus) -> None:
        """Replace the latest snapshot.

        Args:
            status: New status snapshot.
        """
        with self._lock:
            self._latest = status
            self._updates += 1

    def start(self) -> None:
        """Start the background observer if it is not already running."""
        if self.running:
            return
        self._token = CancellationToken()
        self._thread = Thread(
            target=self._run,
            args=(self._token,),
            name="kcode-status-cache",
            daemon=True,
        )
        self._thread.start()
        _LOGGER.info("status_cache.started endpoint=%s", self._endpoint)

    def stop(self, timeout: float = 2.0) -> None:
        """Cancel the observer and wait for it to finish.

        Args:
            timeout: Maximum seconds to wait for the thread.
        """
        if self._token is not None:
            self._token.cancel()
        if self._thread is not None:
            self._thread.join(timeout)
        self._thread = None
        self._token = None
        _LOGGER.info("status_cache.stopped")

    def _run(self, token: CancellationToken) -> None:
        try:
            for response in self._transport.subscribe(self._endpoint, cancel=token):
                if not response.success:
                    _LOGGER.warning("status_cache.poll_failed error=%s", response.error)
                    continue
                try:
                    status = MachineStatus.model_validate(response.data)
                except ValidationError as exc:
                    _LOGGER.warning("status_cache.invalid_payload error=%s", exc)
                    continue
                self.update(status)
        except OperationCancelledError:
            pass
        except Exception:
            _LOGGER.exception("status_cache.observer_failed")
