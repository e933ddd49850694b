"""Command registry built from the configured vocabulary."""

from __future__ import annotations

import logging
import re
from collections.abc import Iterable, Mapping
from types import MappingProxyType

from kcode.commands.descriptors import (
    ApiCommandDescriptor,
    CommandDescriptor,
    MacroCommandDescriptor,
    SystemCommandDescriptor,
)
from kcode.commands.errors import ConfigurationError
from kcode.commands.names import names_equal, normalize_name
from kcode.config import CommandsConfig, KcodeConfig

_LOGGER = logging.getLogger(__name__)

_DEFAULT_SYSTEM_DESCRIPTION = "System command"
_DEFAULT_API_DESCRIPTION = "API command"
_DEFAULT_MACRO_DESCRIPTION = "Macro command"


def _normalize_aliases(aliases: Iterable[str]) -> tuple[str, ...]:
    """Normalize aliases and drop case-insensitive duplicates.

    Args:
        aliases: Raw alias names from config.

    Returns:
        Normalized aliases in declaration order.
    """
    seen: set[str] = set()
    result: list[str] = []
    for alias in aliases:
        normalized = normalize_name(alias)
        key = normalized.casefold()
        if key in seen:
            continue
        seen.add(key)
        result.append(normalized)
    return tuple(result)


def _describe(description: str, fallback: str) -> str:
    """Return configured description or a kind-specific fallback."""
    return description.strip() or fallback


class CommandRegistry:
    """Searchable catalog of system, API and macro commands plus text aliases."""

    def __init__(self, commands: CommandsConfig) -> None:
        """Build every descriptor from the command vocabulary.

        Args:
            commands: Parsed command vocabulary.

        Raises:
            ConfigurationError: If an API command pattern does not compile.
        """
        commands = commands.model_copy(deep=True)
        self._system = self._build_system(commands)
        self._api = self._build_api(commands, taken=self._system)
        self._macros = self._build_macros(
            commands, taken=(*self._system, *self._api)
        )
        self._aliases = self._build_text_aliases(commands.aliases)
        merged: list[CommandDescriptor] = [*self._system, *self._api, *self._macros]
        self._all = tuple(sorted(merged, key=lambda entry: entry.name.casefold()))
        _LOGGER.info(
            "registry.built system=%d api=%d macros=%d aliases=%d",
            len(self._system),
            len(self._api),
            len(self._macros),
            len(self._aliases),
        )

    @classmethod
    def from_config(cls, config: KcodeConfig) -> CommandRegistry:
        """Build registry from the root config.

        Args:
            config: Root kcode config.

        Returns:
            Populated registry.
        """
        return cls(config.commands)

    @property
    def all_commands(self) -> tuple[CommandDescriptor, ...]:
        """Every descriptor sorted by name, ignoring case."""
        return self._all

    @property
    def system_commands(self) -> tuple[SystemCommandDescriptor, ...]:
        """System descriptors in declaration order."""
        return self._system

    @property
    def api_commands(self) -> tuple[ApiCommandDescriptor, ...]:
        """API descriptors in declaration order."""
        return self._api

    @property
    def macro_commands(self) -> tuple[MacroCommandDescriptor, ...]:
        """Macro descriptors in declaration order."""
        return self._macros

    @property
    def text_aliases(self) -> Mapping[str, str]:
        """Read-only literal prefix aliases in precedence order."""
        return MappingProxyType(self._aliases)

    def find(self, name: str) -> CommandDescriptor | None:
        """Look up one descriptor by canonical name or alias.

        Args:
            name: Command name with or without the leading slash.

        Returns:
            Matching descriptor or None.
        """
        for entry in self._all:
            if names_equal(name, entry.name) or any(
                names_equal(name, alias) for alias in entry.aliases
            ):
                return entry
        return None

    def expand_alias(self, text: str) -> tuple[str, bool]:
        """Replace the first matching literal alias prefix.

        Args:
            text: Raw user input.

        Returns:
            Expanded text and whether any alias matched.
        """
        for prefix, replacement in self._aliases.items():
            head = text[: len(prefix)]
            if head.casefold() == prefix.casefold():
                return replacement + text[len(prefix) :], True
        return text, False

    @staticmethod
    def _build_system(commands: CommandsConfig) -> tuple[SystemCommandDescriptor, ...]:
        """Build system descriptors.

        Args:
            commands: Command vocabulary.

        Returns:
            System descriptors with normalized names and aliases.
        """
        result: list[SystemCommandDescriptor] = []
        for key, entry in commands.system.items():
            name = normalize_name(key)
            if _is_duplicate(name, result):
                continue
            result.append(
                SystemCommandDescriptor(
                    name=name,
                    description=_describe(
                        entry.description, _DEFAULT_SYSTEM_DESCRIPTION
                    ),
                    config=entry,
                    aliases=_normalize_aliases(entry.aliases),
                )
            )
        return tuple(result)

    @staticmethod
    def _build_api(
        commands: CommandsConfig, *, taken: Iterable[CommandDescriptor]
    ) -> tuple[ApiCommandDescriptor, ...]:
        """Build API descriptors, compiling each pattern exactly once.

        Args:
            commands: Command vocabulary.
            taken: System descriptors that already own their names.

        Returns:
            API descriptors.

        Raises:
            ConfigurationError: If a pattern is not a valid regular expression.
        """
        result: list[ApiCommandDescriptor] = []
        for key, entry in commands.api.items():
            name = normalize_name(key)
            if _is_duplicate(name, [*taken, *result]):
                continue
            compiled: re.Pattern[str] | None = None
            if entry.pattern.strip():
                try:
                    compiled = re.compile(entry.pattern, re.IGNORECASE)
                except re.error as exc:
                    raise ConfigurationError(
                        f"Invalid pattern for API command '{name}': {exc}"
                    ) from exc
            result.append(
                ApiCommandDescriptor(
                    name=name,
                    description=_describe(entry.description, _DEFAULT_API_DESCRIPTION),
                    config=entry,
                    pattern=compiled,
                )
            )
        return tuple(result)

    @staticmethod
    def _build_macros(
        commands: CommandsConfig, *, taken: Iterable[CommandDescriptor]
    ) -> tuple[MacroCommandDescriptor, ...]:
        """Build macro descriptors.

        Args:
            commands: Command vocabulary.
            taken: System and API descriptors that already own their names.

        Returns:
            Macro descriptors with normalized names and aliases.
        """
        result: list[MacroCommandDescriptor] = []
        for key, entry in commands.macros.items():
            name = normalize_name(key)
            if _is_duplicate(name, [*taken, *result]):
                continue
            result.append(
                MacroCommandDescriptor(
                    name=name,
                    description=_describe(
                        entry.description, _DEFAULT_MACRO_DESCRIPTION
                    ),
                    config=entry,
                    aliases=_normalize_aliases(entry.aliases),
                )
            )
        return tuple(result)

    @staticmethod
    def _build_text_aliases(aliases: Mapping[str, str]) -> dict[str, str]:
        """Keep the first declaration of every alias prefix, ignoring case.

        Args:
            aliases: Literal prefix to replacement mapping.

        Returns:
            Ordered alias mapping.
        """
        result: dict[str, str] = {}
        seen: set[str] = set()
        for prefix, replacement in aliases.items():
            if not prefix:
                _LOGGER.warning("registry.alias_skipped reason=empty_prefix")
                continue
            key = prefix.casefold()
            if key in seen:
                continue
            seen.add(key)
            result[prefix] = replacement
        return result


def _is_duplicate(name: str, existing: Iterable[CommandDescriptor]) -> bool:
    """Return whether a normalized name is already registered.

    Args:
        name: Normalized command name.
        existing: Descriptors already built for the same kind.

    Returns:
        True when the name collides (a warning is logged).
    """
    if any(names_equal(name, entry.name) for entry in existing):
        _LOGGER.warning("registry.duplicate_name name=%s", name)
        return True
    return False
