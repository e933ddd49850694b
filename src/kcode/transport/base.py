"""Abstract transport boundary between the command pipeline and a backend."""

from __future__ import annotations

import logging
from collections.abc import Iterator, Mapping
from concurrent.futures import ThreadPoolExecutor
from concurrent.futures import TimeoutError as FutureTimeoutError
from typing import Any, Protocol

from pydantic import BaseModel, ConfigDict, Field

from kcode.runtime.cancellation import CancellationToken

_LOGGER = logging.getLogger(__name__)


class TransportResponse(BaseModel):
    """Single backend response."""

    model_config = ConfigDict(extra="forbid", frozen=True)

    success: bool
    data: dict[str, Any] = Field(default_factory=dict)
    error: str | None = None

    @classmethod
    def ok(cls, data: Mapping[str, Any] | None = None) -> TransportResponse:
        """Construct a successful response.

        Args:
            data: Response payload.

        Returns:
            Successful response.
        """
        return cls(success=True, data=dict(data or {}))

    @classmethod
    def failure(
        cls, error: str, *, data: Mapping[str, Any] | None = None
    ) -> TransportResponse:
        """Construct a failed response.

        Args:
            error: Human-readable failure reason.
            data: Optional partial payload.

        Returns:
            Failed response.
        """
        return cls(success=False, data=dict(data or {}), error=error)


class Transport(Protocol):
    """Capability implemented by every backend."""

    def invoke(
        self,
        endpoint: str,
        parameters: Mapping[str, Any],
        *,
        cancel: CancellationToken | None = None,
    ) -> TransportResponse:
        """Run one request/response call.

        Args:
            endpoint: Backend endpoint name.
            parameters: Request payload.
            cancel: Optional cancellation token.
        """

    def subscribe(
        self, endpoint: str, *, cancel: CancellationToken
    ) -> Iterator[TransportResponse]:
        """Yield responses until cancelled.

        Args:
            endpoint: Backend endpoint name.
            cancel: Token that ends the stream.
        """


def invoke_with_timeout(
    transport: Transport,
    endpoint: str,
    parameters: Mapping[str, Any],
    *,
    timeout_seconds: float,
    cancel: CancellationToken,
) -> TransportResponse:
    """Invoke transport within a timeout boundary.

    The call runs on a worker thread. When the timeout elapses, a linked
    token is cancelled so cooperative backends stop, and a failed response
    is returned.

    Args:
        transport: Backend transport.
        endpoint: Endpoint name.
        parameters: Request payload.
        timeout_seconds: Maximum seconds to wait.
        cancel: Caller cancellation token.

    Returns:
        Backend response, or a failure when the call timed out.

    Raises:
        OperationCancelledError: If the caller cancelled the operation.
    """
    attempt = cancel.linked()
    pool = ThreadPoolExecutor(max_workers=1, thread_name_prefix="kcode-invoke")
    future = pool.submit(transport.invoke, endpoint, parameters, cancel=attempt)
    timed_out = False
    try:
        return future.result(timeout=timeout_seconds)
    except FutureTimeoutError:
        timed_out = True
        attempt.cancel()
        cancel.raise_if_cancelled()
        _LOGGER.warning(
            "transport.timeout endpoint=%s timeout_s=%s", endpoint, timeout_seconds
        )
        return TransportResponse.failure(
            f"Request to '{endpoint}' timed out after {timeout_seconds:g}s"
        )
    finally:
        pool.shutdown(wait=not timed_out, cancel_futures=timed_out)
