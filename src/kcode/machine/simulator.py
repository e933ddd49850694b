"""Cooperative CNC state simulator.

The simulator accepts the same text vocabulary as a physical controller
(G/M codes and macro names) and exposes the resulting status. Motion is a
fixed number of timed steps. Between steps the motion routine re-checks
for emergency stop, feed hold and cancellation; nothing is committed until
every step completes, so a partial move is never observable.
"""

from __future__ import annotations

import logging
import math
import random
import time
from collections.abc import Callable
from threading import Condition

from pydantic import BaseModel, ConfigDict

from kcode.config import MachineSettings
from kcode.machine.gcode import MachineCommand, MachineCommandKind, tokenize
from kcode.machine.models import DEFAULT_TOOLS, MachineState, MachineStatus, ToolEntry
from kcode.runtime.cancellation import CancellationToken, OperationCancelledError

_LOGGER = logging.getLogger(__name__)

ESTOP_REASON = "emergency stop activated"
TEMP_RANGE = (32.0, 55.0)
_TEMP_STEP = 0.2

X_MAX = "X_MAX"
Y_MAX = "Y_MAX"
Z_MAX = "Z_MAX"
DEFAULT_FEED = "DEFAULT_FEED"
MAX_SPINDLE = "MAX_SPINDLE"


class ExecutionReport(BaseModel):
    """Outcome of one simulator execute call."""

    model_config = ConfigDict(extra="forbid", frozen=True)

    accepted: bool
    message: str
    status: MachineStatus


class MachineSimulator:
    """Explicitly owned, thread-safe stand-in for a machine controller."""

    def __init__(
        self,
        settings: MachineSettings | None = None,
        *,
        rng: random.Random | None = None,
        clock: Callable[[], float] = time.monotonic,
    ) -> None:
        """Create simulator from machine settings.

        Args:
            settings: Machine envelope and simulation timing.
            rng: Random source for temperature drift.
            clock: Monotonic clock used for step deadlines.
        """
        self._settings = settings or MachineSettings()
        self._rng = rng or random.Random()
        self._clock = clock
        self._cond = Condition()
        self._params: dict[str, float] = {
            X_MAX: self._settings.work_area.x,
            Y_MAX: self._settings.work_area.y,
            Z_MAX: self._settings.work_area.z,
            DEFAULT_FEED: self._settings.max_velocity.x,
            MAX_SPINDLE: self._settings.max_spindle,
        }
        self._macros = {
            name.upper(): list(lines) for name, lines in self._settings.macros.items()
        }
        self._x = 0.0
        self._y = 0.0
        self._z = 0.0
        self._feed = self._params[DEFAULT_FEED]
        self._speed = self._params[MAX_SPINDLE] / 2
        self._state = MachineState.IDLE
        self._alarm = ""
        self._temp = 35.0
        self._busy = False
        self._stop_generation = 0

    @property
    def tools(self) -> tuple[ToolEntry, ...]:
        """Static tool table."""
        return DEFAULT_TOOLS

    @property
    def state(self) -> MachineState:
        """Current controller state."""
        with self._cond:
            return self._state

    def status(self) -> MachineStatus:
        """Return a consistent snapshot, advancing the temperature drift.

        Returns:
            Current machine status.
        """
        with self._cond:
            low, high = TEMP_RANGE
            drift = (self._rng.random() - 0.5) * _TEMP_STEP
            self._temp = min(high, max(low, self._temp + drift))
            return self._snapshot()

    def parameters(self) -> dict[str, float]:
        """Return a copy of the machine parameter table."""
        with self._cond:
            return dict(self._params)

    def set_parameter(self, key: str, value: float) -> str:
        """Update one known machine parameter.

        Args:
            key: Parameter name, matched case-insensitively.
            value: New numeric value.

        Returns:
            Canonical parameter name that was updated.

        Raises:
            KeyError: If the parameter is unknown.
            ValueError: If the value is not a finite number.
        """
        name = key.strip().upper()
        if not math.isfinite(value):
            raise ValueError(f"non-finite value for {name}: {value}")
        with self._cond:
            if name not in self._params:
                raise KeyError(name)
            self._params[name] = float(value)
        _LOGGER.info("simulator.parameter_set key=%s value=%s", name, value)
        return name

    def emergency_stop(self) -> MachineStatus:
        """Force ALARM from any state, interrupting in-flight motion."""
        with self._cond:
            self._state = MachineState.ALARM
            self._alarm = ESTOP_REASON
            self._stop_generation += 1
            self._cond.notify_all()
            _LOGGER.warning("simulator.estop")
            return self._snapshot()

    def feed_hold(self) -> MachineStatus:
        """Toggle RUN and HOLD; no-op from IDLE or ALARM."""
        with self._cond:
            if self._state is MachineState.RUN:
                self._state = MachineState.HOLD
            elif self._state is MachineState.HOLD:
                self._state = MachineState.RUN
            else:
                return self._snapshot()
            self._cond.notify_all()
            _LOGGER.info("simulator.feed_hold state=%s", self._state)
            return self._snapshot()

    def clear_alarm(self) -> MachineStatus:
        """Leave ALARM for IDLE; no-op in any other state."""
        with self._cond:
            if self._state is MachineState.ALARM:
                self._state = MachineState.IDLE
                self._alarm = ""
                self._cond.notify_all()
                _LOGGER.info("simulator.reset")
            return self._snapshot()

    def execute(
        self, line: str, *, cancel: CancellationToken | None = None
    ) -> ExecutionReport:
        """Run one G-code line or macro name to completion.

        Args:
            line: Command text.
            cancel: Optional cancellation token checked at every step.

        Returns:
            Report with final status. Not accepted when the machine is in
            ALARM, busy, or the command is unknown.

        Raises:
            OperationCancelledError: If cancelled before completion. No
                position is committed in that case.
        """
        token = cancel or CancellationToken()
        command = tokenize(line)
        with self._cond:
            if self._state is MachineState.ALARM:
                return self._report(False, self._alarm)
            if self._busy:
                return self._report(False, f"Machine busy ({self._state})")
            self._busy = True
            self._state = MachineState.RUN
            generation = self._stop_generation
        token.on_cancel(self._wake)
        try:
            self._pause(self._settings.simulation.settle_ms / 1000, token, generation)
            with self._cond:
                stopped = self._interrupted(generation)
            if stopped:
                accepted, message = False, ""
            else:
                accepted, message = self._dispatch(command, token, generation)
        finally:
            with self._cond:
                self._busy = False
                if self._state is not MachineState.ALARM:
                    self._state = MachineState.IDLE
                self._cond.notify_all()
        with self._cond:
            if self._state is MachineState.ALARM:
                return self._report(False, self._alarm)
            return self._report(accepted, message)

    def _dispatch(
        self, command: MachineCommand, token: CancellationToken, generation: int
    ) -> tuple[bool, str]:
        if command.kind is MachineCommandKind.GCODE:
            return self._run_gcode(command, token, generation)
        if command.kind is MachineCommandKind.MACRO:
            return self._run_macro(command.name, token, generation)
        return False, f"Unknown machine command: {command.raw}"

    def _run_macro(
        self, name: str, token: CancellationToken, generation: int
    ) -> tuple[bool, str]:
        lines = self._macros.get(name.upper())
        if lines is None:
            if name.upper() == "HOME":
                lines = ["G28"]
            elif name.upper() == "ZERO":
                with self._cond:
                    self._x = self._y = self._z = 0.0
                _LOGGER.info("simulator.zeroed")
                return True, "Zeroed"
            else:
                return False, f"Unknown macro: {name}"
        for line in lines:
            step = tokenize(line)
            if step.kind is not MachineCommandKind.GCODE:
                _LOGGER.debug("simulator.macro_line_skipped line=%s", line)
                continue
            self._run_gcode(step, token, generation)
            with self._cond:
                if self._interrupted(generation):
                    break
        return True, f"Macro {name.upper()} complete"

    def _run_gcode(
        self, command: MachineCommand, token: CancellationToken, generation: int
    ) -> tuple[bool, str]:
        if command.is_motion:
            return self._move(command, token, generation)
        if command.name == "G28":
            homing = command.model_copy(
                update={"name": "G0", "words": {"X": 0.0, "Y": 0.0, "Z": 0.0}}
            )
            accepted, _ = self._move(homing, token, generation)
            return accepted, "Homed"
        with self._cond:
            if command.name == "M5":
                self._speed = 0.0
            spindle = command.word("S")
            if spindle is not None:
                self._speed = min(spindle, self._params[MAX_SPINDLE])
        return True, f"{command.name} OK"

    def _move(
        self, command: MachineCommand, token: CancellationToken, generation: int
    ) -> tuple[bool, str]:
        with self._cond:
            x = _pick(command.word("X"), self._x)
            y = _pick(command.word("Y"), self._y)
            z = _pick(command.word("Z"), self._z)
            feed = _pick(command.word("F"), self._feed)
            spindle = command.word("S")
            if self._interrupted(generation):
                return False, self._alarm
            if self._settings.soft_limits and not self._within_limits(x, y, z):
                self._state = MachineState.ALARM
                self._alarm = f"Soft limit triggered at X:{x:.2f} Y:{y:.2f} Z:{z:.2f}"
                self._cond.notify_all()
                _LOGGER.warning("simulator.soft_limit reason=%s", self._alarm)
                return False, self._alarm
        _LOGGER.info("simulator.motion_accepted x=%.3f y=%.3f z=%.3f", x, y, z)

        simulation = self._settings.simulation
        for _ in range(simulation.step_count):
            if not self._step(simulation.step_interval_ms / 1000, token, generation):
                return False, self._alarm

        with self._cond:
            if self._state is MachineState.ALARM or generation != self._stop_generation:
                return False, self._alarm
            self._x, self._y, self._z, self._feed = x, y, z, feed
            if spindle is not None:
                self._speed = min(spindle, self._params[MAX_SPINDLE])
        return True, "OK"

    def _step(
        self, interval: float, token: CancellationToken, generation: int
    ) -> bool:
        """Wait one step, suspending while held.

        Returns:
            False when an emergency stop interrupted the motion.

        Raises:
            OperationCancelledError: If the token fired.
        """
        deadline = self._clock() + interval
        with self._cond:
            while True:
                if self._interrupted(generation):
                    return False
                if token.cancelled:
                    raise OperationCancelledError("motion cancelled")
                if self._state is MachineState.HOLD:
                    self._cond.wait()
                    continue
                remaining = deadline - self._clock()
                if remaining <= 0:
                    return True
                self._cond.wait(remaining)

    def _pause(self, seconds: float, token: CancellationToken, generation: int) -> None:
        deadline = self._clock() + seconds
        with self._cond:
            while not self._interrupted(generation):
                token.raise_if_cancelled()
                remaining = deadline - self._clock()
                if remaining <= 0:
                    return
                self._cond.wait(remaining)

    def _interrupted(self, generation: int) -> bool:
        return (
            self._state is MachineState.ALARM or generation != self._stop_generation
        )

    def _within_limits(self, x: float, y: float, z: float) -> bool:
        return (
            0 <= x <= self._params[X_MAX]
            and 0 <= y <= self._params[Y_MAX]
            and 0 <= z <= self._params[Z_MAX]
        )

    def _wake(self) -> None:
        with self._cond:
            self._cond.notify_all()

    def _snapshot(self) -> MachineStatus:
        return MachineStatus(
            x=self._x,
            y=self._y,
            z=self._z,
            feed=self._feed,
            speed=self._speed,
            state=self._state,
            alarm=self._alarm,
            temp=self._temp,
        )

    def _report(self, accepted: bool, message: str) -> ExecutionReport:
        return ExecutionReport(
            accepted=accepted, message=message, status=self._snapshot()
        )


def _pick(value: float | None, current: float) -> float:
    return current if value is None else value
