"""Machine state simulation."""

from kcode.machine.gcode import MachineCommand, MachineCommandKind, tokenize
from kcode.machine.models import DEFAULT_TOOLS, MachineState, MachineStatus, ToolEntry
from kcode.machine.simulator import ESTOP_REASON, ExecutionReport, MachineSimulator

__all__ = [
    "DEFAULT_TOOLS",
    "ESTOP_REASON",
    "ExecutionReport",
    "MachineCommand",
    "MachineCommandKind",
    "MachineSimulator",
    "MachineState",
    "MachineStatus",
    "ToolEntry",
    "tokenize",
]
