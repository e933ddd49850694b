"""Tokenizer for the G-code-like machine vocabulary."""

from __future__ import annotations

import re
from enum import StrEnum

from pydantic import BaseModel, ConfigDict, Field

_WORD_PATTERN = re.compile(r"([A-Z])\s*(-?\d+(?:\.\d+)?)")


class MachineCommandKind(StrEnum):
    """Classification of one tokenized line."""

    GCODE = "gcode"
    MACRO = "macro"
    SYSTEM = "system"
    UNKNOWN = "unknown"


class MachineCommand(BaseModel):
    """Tokenized machine command."""

    model_config = ConfigDict(extra="forbid", frozen=True)

    kind: MachineCommandKind
    name: str = ""
    raw: str = ""
    words: dict[str, float] = Field(default_factory=dict)

    def word(self, letter: str) -> float | None:
        """Return the numeric value of one address word, if present."""
        return self.words.get(letter.upper())

    @property
    def is_motion(self) -> bool:
        """Whether this is a rapid or linear move."""
        return self.kind is MachineCommandKind.GCODE and self.name in {"G0", "G1"}


def tokenize(line: str) -> MachineCommand:
    """Split one line into a command name and numeric address words.

    ``G01`` and ``G1`` both normalize to ``G1``. A leading ``/`` marks a
    system command; anything that does not start with a G or M code is
    treated as a macro name.

    Args:
        line: Raw command line.

    Returns:
        Tokenized command. Blank input yields ``UNKNOWN``.
    """
    text = line.strip()
    if not text:
        return MachineCommand(kind=MachineCommandKind.UNKNOWN, raw=line)
    if text.startswith("/"):
        return MachineCommand(
            kind=MachineCommandKind.SYSTEM, name=text.split()[0].lower(), raw=text
        )

    upper = text.upper()
    words = _WORD_PATTERN.findall(upper)
    if words and upper.startswith(words[0][0]) and words[0][0] in {"G", "M"}:
        letter, number = words[0]
        name = f"{letter}{_format_code(number)}"
        params = {key: float(value) for key, value in words[1:]}
        return MachineCommand(
            kind=MachineCommandKind.GCODE, name=name, raw=text, words=params
        )
    return MachineCommand(
        kind=MachineCommandKind.MACRO, name=upper.split()[0], raw=text
    )


def _format_code(number: str) -> str:
    """Drop leading zeros from an integral code number."""
    if "." in number:
        return number
    return str(int(number))
