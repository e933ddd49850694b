"""In-process transport backed by the machine simulator."""

from __future__ import annotations

import logging
import math
from collections.abc import Callable, Iterator, Mapping
from typing import Any, TypeAlias

from kcode.machine.simulator import MachineSimulator
from kcode.runtime.cancellation import CancellationToken
from kcode.transport.base import TransportResponse

_LOGGER = logging.getLogger(__name__)

_EndpointHandler: TypeAlias = Callable[
    [Mapping[str, Any], CancellationToken], TransportResponse
]


class SimulatorTransport:
    """Transport exposing simulator operations as named endpoints."""

    def __init__(
        self, simulator: MachineSimulator, *, poll_interval_seconds: float = 0.1
    ) -> None:
        """Bind transport to one simulator instance.

        Args:
            simulator: Owned machine simulator.
            poll_interval_seconds: Interval between subscription polls.
        """
        self._simulator = simulator
        self._poll_interval = poll_interval_seconds
        self._endpoints: dict[str, _EndpointHandler] = {
            "execute": self._execute,
            "get_status": self._get_status,
            "get_parameters": self._get_parameters,
            "set_parameter": self._set_parameter,
            "get_tools": self._get_tools,
            "estop": self._estop,
            "feed_hold": self._feed_hold,
            "reset": self._reset,
        }

    @property
    def simulator(self) -> MachineSimulator:
        """Simulator this transport drives."""
        return self._simulator

    def invoke(
        self,
        endpoint: str,
        parameters: Mapping[str, Any],
        *,
        cancel: CancellationToken | None = None,
    ) -> TransportResponse:
        """Dispatch one endpoint call to the simulator.

        Args:
            endpoint: Endpoint name.
            parameters: Request payload.
            cancel: Optional cancellation token.

        Returns:
            Endpoint response; unknown endpoints fail.

        Raises:
            OperationCancelledError: If motion was cancelled.
        """
        handler = self._endpoints.get(endpoint)
        if handler is None:
            return TransportResponse.failure(f"Unknown endpoint: {endpoint}")
        _LOGGER.debug("transport.invoke endpoint=%s", endpoint)
        return handler(parameters, cancel or CancellationToken())

    def subscribe(
        self, endpoint: str, *, cancel: CancellationToken
    ) -> Iterator[TransportResponse]:
        """Poll one endpoint at the configured interval until cancelled.

        Args:
            endpoint: Endpoint to poll.
            cancel: Token that ends the stream.

        Yields:
            One response per poll.
        """
        while not cancel.cancelled:
            yield self.invoke(endpoint, {}, cancel=cancel)
            if cancel.wait(self._poll_interval):
                return

    def _execute(
        self, parameters: Mapping[str, Any], cancel: CancellationToken
    ) -> TransportResponse:
        text = str(parameters.get("text", "")).strip()
        if not text:
            return TransportResponse.failure("Missing 'text' parameter")
        report = self._simulator.execute(text, cancel=cancel)
        data = {
            "success": report.accepted,
            "message": report.message,
            **report.status.to_payload(),
        }
        if not report.accepted:
            return TransportResponse.failure(
                report.message or "Command rejected", data=data
            )
        return TransportResponse.ok(data)

    def _get_status(
        self, parameters: Mapping[str, Any], cancel: CancellationToken
    ) -> TransportResponse:
        del parameters, cancel
        return TransportResponse.ok(self._simulator.status().to_payload())

    def _get_parameters(
        self, parameters: Mapping[str, Any], cancel: CancellationToken
    ) -> TransportResponse:
        del parameters, cancel
        table = self._simulator.parameters()
        return TransportResponse.ok(
            {
                "parameters": [
                    {"name": name, "value": value} for name, value in table.items()
                ]
            }
        )

    def _set_parameter(
        self, parameters: Mapping[str, Any], cancel: CancellationToken
    ) -> TransportResponse:
        del cancel
        key = str(parameters.get("key", "")).strip()
        raw_value = parameters.get("value", "")
        try:
            value = float(raw_value)
        except (TypeError, ValueError):
            return TransportResponse.failure(f"Invalid value for {key}: {raw_value}")
        if not math.isfinite(value):
            return TransportResponse.failure(f"Invalid value for {key}: {raw_value}")
        try:
            name = self._simulator.set_parameter(key, value)
        except KeyError:
            return TransportResponse.failure(f"Unknown parameter: {key}")
        return TransportResponse.ok(
            {"key": name, "value": value, "message": f"Set {name} to {value:g}"}
        )

    def _get_tools(
        self, parameters: Mapping[str, Any], cancel: CancellationToken
    ) -> TransportResponse:
        del parameters, cancel
        return TransportResponse.ok(
            {"tools": [tool.model_dump() for tool in self._simulator.tools]}
        )

    def _estop(
        self, parameters: Mapping[str, Any], cancel: CancellationToken
    ) -> TransportResponse:
        del parameters, cancel
        status = self._simulator.emergency_stop()
        return TransportResponse.ok(
            {"message": "Emergency stop", **status.to_payload()}
        )

    def _feed_hold(
        self, parameters: Mapping[str, Any], cancel: CancellationToken
    ) -> TransportResponse:
        del parameters, cancel
        status = self._simulator.feed_hold()
        return TransportResponse.ok(
            {"message": f"State: {status.state}", **status.to_payload()}
        )

    def _reset(
        self, parameters: Mapping[str, Any], cancel: CancellationToken
    ) -> TransportResponse:
        del parameters, cancel
        status = self._simulator.clear_alarm()
        return TransportResponse.ok({"message": "Alarm cleared", **status.to_payload()})
