"""Unit tests for the machine state simulator."""

from __future__ import annotations

import random
import threading
import time
from collections.abc import Callable

import pytest

from kcode.config import AxisLimits, MachineSettings, SimulationSettings
from kcode.machine.models import MachineState, MachineStatus
from kcode.machine.simulator import ESTOP_REASON, ExecutionReport, MachineSimulator
from kcode.runtime.cancellation import CancellationToken, OperationCancelledError


def _slow_simulator() -> MachineSimulator:
    settings = MachineSettings(
        simulation=SimulationSettings(
            step_count=20, step_interval_ms=10.0, settle_ms=1.0
        ),
    )
    return MachineSimulator(settings, rng=random.Random(1))


def _wait_for(predicate: Callable[[], bool], timeout: float = 2.0) -> None:
    deadline = time.monotonic() + timeout
    while not predicate():
        if time.monotonic() > deadline:
            raise AssertionError("condition not reached")
        time.sleep(0.002)


class _Background:
    """Runs one execute call on a thread and captures its outcome."""

    def __init__(
        self,
        simulator: MachineSimulator,
        line: str,
        cancel: CancellationToken | None = None,
    ) -> None:
        self.report: ExecutionReport | None = None
        self.error: BaseException | None = None
        self._thread = threading.Thread(
            target=self._run, args=(simulator, line, cancel), daemon=True
        )
        self._thread.start()

    def _run(
        self,
        simulator: MachineSimulator,
        line: str,
        cancel: CancellationToken | None,
    ) -> None:
        try:
            self.report = simulator.execute(line, cancel=cancel)
        except OperationCancelledError as exc:
            self.error = exc

    def join(self) -> None:
        self._thread.join(5.0)
        assert not self._thread.is_alive()


@pytest.mark.unit
def test_initial_status(simulator: MachineSimulator) -> None:
    """Simulator starts idle at the origin with seeded feed and speed."""
    status = simulator.status()

    assert status.state is MachineState.IDLE
    assert (status.x, status.y, status.z) == (0.0, 0.0, 0.0)
    assert status.feed == 1000.0
    assert status.speed == 6000.0
    assert status.alarm == ""


@pytest.mark.unit
def test_motion_commits_target(simulator: MachineSimulator) -> None:
    """A valid move commits position and feed, then returns to IDLE."""
    report = simulator.execute("G1 X10 Y20 Z5 F300")

    assert report.accepted is True
    assert report.status.state is MachineState.IDLE
    assert (report.status.x, report.status.y, report.status.z) == (10, 20, 5)
    assert report.status.feed == 300


@pytest.mark.unit
def test_motion_defaults_missing_axes_to_current(simulator: MachineSimulator) -> None:
    """Omitted axes keep their current values."""
    simulator.execute("G0 X10 Y20")
    report = simulator.execute("G0 Z7")

    assert (report.status.x, report.status.y, report.status.z) == (10, 20, 7)


@pytest.mark.unit
def test_soft_limit_alarms_without_moving(simulator: MachineSimulator) -> None:
    """Out-of-bounds target alarms and leaves position unchanged."""
    # Arrange - known start position
    simulator.execute("G0 X100")

    # Act - target beyond X_MAX
    report = simulator.execute("G0 X600")

    # Assert - alarm, no motion
    assert report.accepted is False
    assert report.status.state is MachineState.ALARM
    assert "600" in report.status.alarm
    assert report.message == report.status.alarm
    assert report.status.x == 100


@pytest.mark.unit
def test_soft_limit_rejects_negative_coordinates(simulator: MachineSimulator) -> None:
    """Lower bound is zero, inclusive."""
    assert simulator.execute("G0 X0").accepted is True
    assert simulator.execute("G0 X-1").status.state is MachineState.ALARM


@pytest.mark.unit
def test_soft_limit_upper_bound_is_inclusive(simulator: MachineSimulator) -> None:
    """Targets exactly at the maximum are accepted."""
    report = simulator.execute("G0 X500 Y500 Z100")

    assert report.accepted is True
    assert report.status.x == 500


@pytest.mark.unit
def test_soft_limits_disabled(fast_machine_settings: MachineSettings) -> None:
    """Disabled soft limits accept any target."""
    settings = fast_machine_settings.model_copy(update={"soft_limits": False})
    simulator = MachineSimulator(settings)

    report = simulator.execute("G0 X900")

    assert report.accepted is True
    assert report.status.x == 900


@pytest.mark.unit
def test_set_parameter_changes_limits(simulator: MachineSimulator) -> None:
    """Soft limits read the live parameter table."""
    simulator.set_parameter("x_max", 800)

    report = simulator.execute("G0 X700")

    assert report.accepted is True
    assert simulator.parameters()["X_MAX"] == 800


@pytest.mark.unit
def test_set_unknown_parameter_raises(simulator: MachineSimulator) -> None:
    """Unknown parameter names are rejected."""
    with pytest.raises(KeyError):
        simulator.set_parameter("WARP", 1)


@pytest.mark.unit
@pytest.mark.parametrize("value", [float("nan"), float("inf"), float("-inf")])
def test_set_non_finite_parameter_raises(
    simulator: MachineSimulator, value: float
) -> None:
    """Non-finite values never reach the parameter table."""
    # Arrange - current limit
    before = simulator.parameters()["X_MAX"]

    # Act / Assert - rejected and unchanged
    with pytest.raises(ValueError):
        simulator.set_parameter("X_MAX", value)
    assert simulator.parameters()["X_MAX"] == before


@pytest.mark.unit
def test_alarm_blocks_motion_until_reset(simulator: MachineSimulator) -> None:
    """Motion during ALARM is a no-op until the alarm is cleared."""
    # Arrange
    simulator.emergency_stop()

    # Act - move, reset, move
    blocked = simulator.execute("G0 X10")
    simulator.clear_alarm()
    moved = simulator.execute("G0 X10")

    # Assert
    assert blocked.accepted is False
    assert blocked.status.x == 0
    assert blocked.message == ESTOP_REASON
    assert moved.accepted is True
    assert moved.status.x == 10


@pytest.mark.unit
def test_estop_from_idle(simulator: MachineSimulator) -> None:
    """E-stop forces ALARM with the fixed reason."""
    status = simulator.emergency_stop()

    assert status.state is MachineState.ALARM
    assert status.alarm == ESTOP_REASON


@pytest.mark.unit
def test_estop_during_run_freezes_position() -> None:
    """E-stop mid-motion aborts without committing the target."""
    # Arrange - long move in flight
    simulator = _slow_simulator()
    job = _Background(simulator, "G0 X100")
    _wait_for(lambda: simulator.state is MachineState.RUN)

    # Act
    simulator.emergency_stop()
    job.join()

    # Assert - alarm at the start position
    assert job.report is not None
    assert job.report.accepted is False
    assert job.report.status.state is MachineState.ALARM
    assert job.report.status.x == 0


@pytest.mark.unit
def test_estop_during_hold_forces_alarm() -> None:
    """E-stop overrides a paused motion."""
    # Arrange - motion paused by feed hold
    simulator = _slow_simulator()
    job = _Background(simulator, "G0 X100")
    _wait_for(lambda: simulator.state is MachineState.RUN)
    simulator.feed_hold()
    assert simulator.state is MachineState.HOLD

    # Act
    simulator.emergency_stop()
    job.join()

    # Assert
    assert simulator.status().state is MachineState.ALARM
    assert simulator.status().x == 0


@pytest.mark.unit
def test_feed_hold_pauses_and_resumes_in_place() -> None:
    """Hold suspends stepping; a second toggle resumes and completes."""
    # Arrange - move in flight
    simulator = _slow_simulator()
    job = _Background(simulator, "G0 X50")
    _wait_for(lambda: simulator.state is MachineState.RUN)

    # Act - hold, wait, resume
    held = simulator.feed_hold()
    time.sleep(0.3)
    still_held = simulator.state
    resumed = simulator.feed_hold()
    job.join()

    # Assert - held in place, then completed
    assert held.state is MachineState.HOLD
    assert still_held is MachineState.HOLD
    assert resumed.state is MachineState.RUN
    assert job.report is not None
    assert job.report.accepted is True
    assert job.report.status.x == 50


@pytest.mark.unit
def test_feed_hold_is_noop_from_idle_and_alarm(simulator: MachineSimulator) -> None:
    """Feed hold only toggles between RUN and HOLD."""
    assert simulator.feed_hold().state is MachineState.IDLE

    simulator.emergency_stop()

    assert simulator.feed_hold().state is MachineState.ALARM


@pytest.mark.unit
def test_cancel_mid_motion_leaves_state_consistent() -> None:
    """Cancellation raises, commits nothing, and returns to IDLE."""
    # Arrange - cancellable move in flight
    simulator = _slow_simulator()
    token = CancellationToken()
    job = _Background(simulator, "G0 X100", cancel=token)
    _wait_for(lambda: simulator.state is MachineState.RUN)

    # Act
    token.cancel()
    job.join()

    # Assert - idle at the start position
    assert isinstance(job.error, OperationCancelledError)
    status = simulator.status()
    assert status.state is MachineState.IDLE
    assert status.x == 0


@pytest.mark.unit
def test_cancel_while_held_stops_promptly() -> None:
    """A held motion still observes cancellation."""
    # Arrange - cancellable move paused by hold
    simulator = _slow_simulator()
    token = CancellationToken()
    job = _Background(simulator, "G0 X100", cancel=token)
    _wait_for(lambda: simulator.state is MachineState.RUN)
    simulator.feed_hold()

    # Act
    token.cancel()
    job.join()

    # Assert
    assert isinstance(job.error, OperationCancelledError)
    assert simulator.state is MachineState.IDLE


@pytest.mark.unit
def test_concurrent_execute_is_rejected_as_busy() -> None:
    """One command runs at a time."""
    # Arrange - first move in flight
    simulator = _slow_simulator()
    job = _Background(simulator, "G0 X10")
    _wait_for(lambda: simulator.state is MachineState.RUN)

    # Act - second move
    second = simulator.execute("G0 X20")
    job.join()

    # Assert
    assert second.accepted is False
    assert second.message.startswith("Machine busy")


@pytest.mark.unit
def test_spindle_speed_is_clamped(simulator: MachineSimulator) -> None:
    """Spindle speed never exceeds the configured maximum."""
    report = simulator.execute("M3 S50000")

    assert report.status.speed == 12000


@pytest.mark.unit
def test_spindle_stop(simulator: MachineSimulator) -> None:
    """M5 stops the spindle."""
    assert simulator.execute("M5").status.speed == 0


@pytest.mark.unit
def test_g28_homes_all_axes(simulator: MachineSimulator) -> None:
    """G28 returns to the origin."""
    simulator.execute("G0 X10 Y10 Z10")

    report = simulator.execute("G28")

    assert (report.status.x, report.status.y, report.status.z) == (0, 0, 0)
    assert report.message == "Homed"


@pytest.mark.unit
def test_builtin_macros(simulator: MachineSimulator) -> None:
    """HOME and ZERO fall back to built-in behavior."""
    simulator.execute("G0 X10 Y10")
    assert simulator.execute("home").status.x == 0

    simulator.execute("G0 X10 Y10")
    zeroed = simulator.execute("ZERO")

    assert zeroed.accepted is True
    assert (zeroed.status.x, zeroed.status.y) == (0, 0)


@pytest.mark.unit
def test_configured_macro_runs_lines(fast_machine_settings: MachineSettings) -> None:
    """Configured macro lines run in order, skipping non G-code lines."""
    # Arrange - macro with a comment line
    settings = fast_machine_settings.model_copy(
        update={"macros": {"park": ["G0 Z50", "comment", "G0 X5 Y6"]}}
    )
    simulator = MachineSimulator(settings)

    # Act - name matched ignoring case
    report = simulator.execute("PARK")

    # Assert
    assert report.accepted is True
    assert (report.status.x, report.status.y, report.status.z) == (5, 6, 50)


@pytest.mark.unit
def test_macro_stops_at_alarm(fast_machine_settings: MachineSettings) -> None:
    """A macro line that alarms stops the remaining lines."""
    # Arrange - first line exceeds the work area
    settings = fast_machine_settings.model_copy(
        update={
            "work_area": AxisLimits(x=100, y=100, z=100),
            "macros": {"bad": ["G0 X500", "G0 Y5"]},
        }
    )
    simulator = MachineSimulator(settings)

    # Act
    report = simulator.execute("bad")

    # Assert - second line never ran
    assert report.accepted is False
    assert report.status.state is MachineState.ALARM
    assert report.status.y == 0


@pytest.mark.unit
def test_unknown_macro_is_rejected(simulator: MachineSimulator) -> None:
    """Unknown macro names are reported, leaving the machine idle."""
    report = simulator.execute("DANCE")

    assert report.accepted is False
    assert report.message == "Unknown macro: DANCE"
    assert report.status.state is MachineState.IDLE


@pytest.mark.unit
def test_temperature_drift_stays_in_range() -> None:
    """Temperature random walk is bounded."""
    simulator = MachineSimulator(rng=random.Random(3))

    temps = [simulator.status().temp for _ in range(500)]

    assert all(32.0 <= temp <= 55.0 for temp in temps)


@pytest.mark.unit
def test_status_rejects_inconsistent_alarm() -> None:
    """ALARM and alarm reason are present together or not at all."""
    with pytest.raises(ValueError, match="requires an alarm reason"):
        MachineStatus(state=MachineState.ALARM)
    with pytest.raises(ValueError, match="only valid in ALARM"):
        MachineStatus(alarm="stray")
