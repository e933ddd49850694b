"""Backend transports."""

from kcode.transport.base import Transport, TransportResponse, invoke_with_timeout
from kcode.transport.factory import build_transport
from kcode.transport.simulator import SimulatorTransport

__all__ = [
    "SimulatorTransport",
    "Transport",
    "TransportResponse",
    "build_transport",
    "invoke_with_timeout",
]
