"""Machine status, state and tool catalog models."""

from __future__ import annotations

from enum import StrEnum
from typing import Any

from pydantic import BaseModel, ConfigDict, model_validator


class MachineState(StrEnum):
    """Simulated controller states."""

    IDLE = "IDLE"
    RUN = "RUN"
    HOLD = "HOLD"
    ALARM = "ALARM"


class MachineStatus(BaseModel):
    """Immutable snapshot of machine position and state."""

    model_config = ConfigDict(extra="forbid", frozen=True)

    x: float = 0.0
    y: float = 0.0
    z: float = 0.0
    feed: float = 0.0
    speed: float = 0.0
    state: MachineState = MachineState.IDLE
    alarm: str = ""
    temp: float = 35.0

    @model_validator(mode="after")
    def _alarm_matches_state(self) -> MachineStatus:
        """Keep the alarm reason present exactly when state is ALARM."""
        in_alarm = self.state is MachineState.ALARM
        if in_alarm and not self.alarm:
            raise ValueError("ALARM state requires an alarm reason")
        if not in_alarm and self.alarm:
            raise ValueError("alarm reason is only valid in ALARM state")
        return self

    def to_payload(self) -> dict[str, Any]:
        """Return transport payload with the state as plain text."""
        return self.model_dump(mode="json")


class ToolEntry(BaseModel):
    """One entry of the static tool table."""

    model_config = ConfigDict(extra="forbid", frozen=True)

    id: int
    diameter: float
    length: float
    description: str


DEFAULT_TOOLS: tuple[ToolEntry, ...] = (
    ToolEntry(id=1, diameter=6.0, length=50.0, description="End Mill 6mm"),
    ToolEntry(id=2, diameter=3.175, length=40.0, description="Ball Nose 1/8"),
    ToolEntry(id=99, diameter=10.0, length=0.0, description="Probe"),
)
