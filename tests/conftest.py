"""Pytest configuration and shared fixtures."""

from __future__ import annotations

import random
from pathlib import Path

import pytest

from kcode.config import KcodeConfig, MachineSettings, default_config
from kcode.machine.simulator import MachineSimulator
from kcode.transport.simulator import SimulatorTransport


def _fast_machine(settings: MachineSettings) -> MachineSettings:
    """Shrink simulated step timing so motion tests run quickly."""
    return settings.model_copy(
        update={
            "simulation": settings.simulation.model_copy(
                update={"step_count": 4, "step_interval_ms": 2.0, "settle_ms": 1.0}
            )
        }
    )


@pytest.fixture
def fast_machine_settings() -> MachineSettings:
    """Default machine envelope with millisecond-scale motion."""
    return _fast_machine(MachineSettings())


@pytest.fixture
def simulator(fast_machine_settings: MachineSettings) -> MachineSimulator:
    """Simulator with deterministic temperature drift."""
    return MachineSimulator(fast_machine_settings, rng=random.Random(7))


@pytest.fixture
def simulator_transport(simulator: MachineSimulator) -> SimulatorTransport:
    """Transport driving the shared simulator fixture."""
    return SimulatorTransport(simulator, poll_interval_seconds=0.005)


@pytest.fixture
def kcode_config(tmp_path: Path) -> KcodeConfig:
    """Bundled default config with fast motion and a temp session log."""
    config = default_config()
    return config.model_copy(
        update={
            "app": config.app.model_copy(
                update={"log_file": str(tmp_path / "kcode.log")}
            ),
            "machine": _fast_machine(config.machine),
            "transport": config.transport.model_copy(
                update={"poll_interval_ms": 5}
            ),
        }
    )
