"""Transport construction from config."""

from __future__ import annotations

from kcode.commands.errors import ConfigurationError
from kcode.config import KcodeConfig, TransportType
from kcode.machine.simulator import MachineSimulator
from kcode.transport.base import Transport
from kcode.transport.simulator import SimulatorTransport


def build_transport(
    config: KcodeConfig, *, simulator: MachineSimulator | None = None
) -> Transport:
    """Create the configured transport backend.

    Args:
        config: Root config.
        simulator: Optional pre-built simulator to drive.

    Returns:
        Ready transport.

    Raises:
        ConfigurationError: If the transport type has no in-process backend.
    """
    transport_type = config.transport.type
    if transport_type is not TransportType.SIMULATOR:
        raise ConfigurationError(
            f"Transport '{transport_type}' is not available; use 'simulator'."
        )
    return SimulatorTransport(
        simulator or MachineSimulator(config.machine),
        poll_interval_seconds=config.transport.poll_interval_ms / 1000,
    )
