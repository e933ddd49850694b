"""Immutable command descriptors held by the registry."""

from __future__ import annotations

import re
from dataclasses import dataclass
from enum import StrEnum
from typing import ClassVar, TypeAlias

from kcode.commands.names import names_equal
from kcode.config import ApiCommandConfig, MacroCommandConfig, SystemCommandConfig


class CommandKind(StrEnum):
    """Command classification used by parser and executor."""

    SYSTEM = "system"
    API = "api"
    MACRO = "macro"
    UNKNOWN = "unknown"


@dataclass(frozen=True)
class SystemCommandDescriptor:
    """Fixed command bound to a builtin action."""

    kind: ClassVar[CommandKind] = CommandKind.SYSTEM

    name: str
    description: str
    config: SystemCommandConfig
    aliases: tuple[str, ...] = ()

    def matches(self, text: str) -> bool:
        """Return whether text names this command or one of its aliases.

        Args:
            text: Trimmed user input.

        Returns:
            True on a case-insensitive name or alias match.
        """
        return names_equal(text, self.name) or any(
            names_equal(text, alias) for alias in self.aliases
        )


@dataclass(frozen=True)
class ApiCommandDescriptor:
    """Pattern-matched command forwarded to a transport endpoint."""

    kind: ClassVar[CommandKind] = CommandKind.API

    name: str
    description: str
    config: ApiCommandConfig
    pattern: re.Pattern[str] | None = None

    @property
    def aliases(self) -> tuple[str, ...]:
        """API commands are matched by pattern only."""
        return ()


@dataclass(frozen=True)
class MacroCommandDescriptor:
    """Named multi-step backend sequence."""

    kind: ClassVar[CommandKind] = CommandKind.MACRO

    name: str
    description: str
    config: MacroCommandConfig
    aliases: tuple[str, ...] = ()

    def matches(self, text: str) -> bool:
        """Return whether text names this macro or one of its aliases.

        Args:
            text: Trimmed user input.

        Returns:
            True on a case-insensitive name or alias match.
        """
        return names_equal(text, self.name) or any(
            names_equal(text, alias) for alias in self.aliases
        )


CommandDescriptor: TypeAlias = (
    SystemCommandDescriptor | ApiCommandDescriptor | MacroCommandDescriptor
)
