"""Unit tests for end-to-end session handling over the simulator."""

from __future__ import annotations

import pytest

from kcode.commands.errors import ConfigurationError
from kcode.config import ApiCommandConfig, KcodeConfig
from kcode.machine.simulator import ESTOP_REASON
from kcode.runtime.session import KcodeSession


def _session(config: KcodeConfig) -> KcodeSession:
    return KcodeSession(config, observe_status=False)


@pytest.mark.unit
def test_blank_input_returns_none(kcode_config: KcodeConfig) -> None:
    """Blank lines produce no result."""
    assert _session(kcode_config).handle_input("   ") is None


@pytest.mark.unit
def test_gcode_passthrough_renders_position(kcode_config: KcodeConfig) -> None:
    """G-code lines reach the simulator and render the response template."""
    result = _session(kcode_config).handle_input("G1 X10 Y2.5")

    assert result is not None
    assert result.success is True
    assert result.output == "OK (X:10.000 Y:2.500 Z:0.000)"


@pytest.mark.unit
def test_text_alias_reaches_simulator(kcode_config: KcodeConfig) -> None:
    """`rapid ` expands to `G0 `."""
    # Arrange
    session = _session(kcode_config)

    # Act - aliased rapid move
    result = session.handle_input("rapid X5")

    # Assert - simulator moved
    assert result is not None
    assert result.success is True
    assert session.transport.invoke("get_status", {}).data["x"] == 5


@pytest.mark.unit
def test_soft_limit_then_reset_flow(kcode_config: KcodeConfig) -> None:
    """Soft-limit alarm blocks motion until `/reset`."""
    # Arrange
    session = _session(kcode_config)

    # Act - trip, retry, reset, retry
    alarm = session.handle_input("G0 X600")
    blocked = session.handle_input("G0 X1")
    reset = session.handle_input("/reset")
    moved = session.handle_input("G0 X1")

    # Assert - blocked until reset
    assert alarm is not None and alarm.success is False
    assert "X:600.00" in alarm.output
    assert blocked is not None and blocked.success is False
    assert reset is not None and reset.output == "Alarm cleared"
    assert moved is not None and moved.success is True


@pytest.mark.unit
def test_estop_renders_alarm(kcode_config: KcodeConfig) -> None:
    """`/estop` renders the alarm branch of its template."""
    result = _session(kcode_config).handle_input("/estop")

    assert result is not None
    assert result.output == f"ALARM: {ESTOP_REASON}"


@pytest.mark.unit
def test_set_and_list_parameters(kcode_config: KcodeConfig) -> None:
    """`/set` updates parameters shown by `/params`."""
    # Arrange
    session = _session(kcode_config)

    # Act - raise the X limit and list
    updated = session.handle_input("/set x_max 650")
    listed = session.handle_input("/params")

    # Assert - new value listed
    assert updated is not None and updated.output == "Set X_MAX to 650"
    assert listed is not None
    assert "X_MAX = 650.00\n" in listed.output


@pytest.mark.unit
def test_tools_listing(kcode_config: KcodeConfig) -> None:
    """`/tools` renders one line per tool."""
    result = _session(kcode_config).handle_input("/tools")

    assert result is not None
    assert result.output.splitlines()[0] == "T1  dia 6.000  len 50.00  End Mill 6mm"
    assert len(result.output.splitlines()) == 3


@pytest.mark.unit
def test_home_macro(kcode_config: KcodeConfig) -> None:
    """`home` macro returns the machine to the origin."""
    # Arrange - move away from the origin
    session = _session(kcode_config)
    session.handle_input("G0 X10 Y10")

    # Act - home via alias
    result = session.handle_input("homing")

    # Assert - back at origin
    assert result is not None
    assert result.output == "Homed at X:0.00 Y:0.00 Z:0.00"


@pytest.mark.unit
def test_park_macro_uses_simulator_macro(kcode_config: KcodeConfig) -> None:
    """`park` runs the configured PARK lines and reports final status."""
    # Arrange - move away from the park position
    session = _session(kcode_config)
    session.handle_input("G0 X10 Y10")

    # Act - park
    result = session.handle_input("/park")

    # Assert - final status rendered
    assert result is not None
    assert result.output == "Parked at X:0.00 Y:0.00 Z:50.00 (IDLE)"


@pytest.mark.unit
def test_park_macro_fails_fast_in_alarm(kcode_config: KcodeConfig) -> None:
    """A failing first step aborts the macro."""
    # Arrange - machine in alarm
    session = _session(kcode_config)
    session.handle_input("/estop")

    # Act - park
    result = session.handle_input("park")

    # Assert - first step failure reported
    assert result is not None
    assert result.success is False
    assert result.output == f"Macro step failed: {ESTOP_REASON}"


@pytest.mark.unit
def test_exit_and_unknown(kcode_config: KcodeConfig) -> None:
    """Exit sets the flag; unknown input is echoed back trimmed."""
    # Arrange
    session = _session(kcode_config)

    # Act - exit alias and nonsense
    exit_result = session.handle_input("q")
    unknown = session.handle_input("fly away")

    # Assert
    assert exit_result is not None and exit_result.should_exit is True
    assert unknown is not None and unknown.output == "Unknown command: fly away"


@pytest.mark.unit
def test_status_via_session_cache(kcode_config: KcodeConfig) -> None:
    """Session with an observer serves `/status` from the cache once warm."""
    with KcodeSession(kcode_config) as session:
        assert session.status_cache is not None
        session.status_cache.update(
            session.transport.simulator.status()  # type: ignore[attr-defined]
        )
        result = session.handle_input("/status")

    assert result is not None
    assert result.data is not None
    assert result.data["source"] == "cache"


@pytest.mark.unit
def test_invalid_pattern_fails_session_build(kcode_config: KcodeConfig) -> None:
    """Bad patterns are a startup-time configuration fault."""
    # Arrange - API command with an unbalanced group
    commands = kcode_config.commands.model_copy(
        update={"api": {"bad": ApiCommandConfig(pattern="(", endpoint="execute")}}
    )
    config = kcode_config.model_copy(update={"commands": commands})

    # Act / Assert
    with pytest.raises(ConfigurationError):
        KcodeSession(config, observe_status=False)
