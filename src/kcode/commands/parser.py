"""Resolve one line of operator input into a single command."""

from __future__ import annotations

import logging
import re
from dataclasses import dataclass, field
from types import MappingProxyType
from typing import Any

from kcode.commands.descriptors import (
    ApiCommandDescriptor,
    CommandDescriptor,
    CommandKind,
)
from kcode.commands.registry import CommandRegistry

_LOGGER = logging.getLogger(__name__)

MAX_ALIAS_DEPTH = 5
_INPUT_REF = "$input"


@dataclass(frozen=True)
class ParsedCommand:
    """Transient parse result for one input line.

    Attributes:
        kind: Matched command kind, or unknown.
        name: Canonical descriptor name; empty when unknown.
        input: Operator input with surrounding whitespace trimmed. Alias
            expansion never rewrites it.
        parameters: Request parameters mapped for API commands.
        descriptor: Matched descriptor, if any.
        note: Diagnostic detail for unknown results.
    """

    kind: CommandKind
    name: str
    input: str
    parameters: MappingProxyType[str, Any] = field(
        default_factory=lambda: MappingProxyType({})
    )
    descriptor: CommandDescriptor | None = None
    note: str = ""

    @property
    def is_unknown(self) -> bool:
        """Whether nothing in the registry matched."""
        return self.kind is CommandKind.UNKNOWN


class CommandParser:
    """Priority-ordered resolver over a command registry.

    Resolution order is system, API pattern, macro, then text-alias
    expansion. Fixed system commands therefore cannot be shadowed by
    macros or aliases.
    """

    def __init__(
        self, registry: CommandRegistry, *, max_alias_depth: int = MAX_ALIAS_DEPTH
    ) -> None:
        """Create parser bound to one registry.

        Args:
            registry: Command catalog to resolve against.
            max_alias_depth: Maximum number of chained alias expansions.
        """
        self._registry = registry
        self._max_alias_depth = max_alias_depth

    def parse(self, text: str) -> ParsedCommand | None:
        """Resolve raw input into one command.

        Args:
            text: Raw user input.

        Returns:
            Parsed command, or None for empty/whitespace-only input.
        """
        if not text or not text.strip():
            return None
        original = text.strip()
        return self._resolve(original, original=original, depth=0)

    def _resolve(self, text: str, *, original: str, depth: int) -> ParsedCommand:
        """Run one resolution pass, recursing through alias expansion.

        Args:
            text: Current (possibly expanded) input.
            original: Trimmed input as typed by the user.
            depth: Number of alias expansions applied so far.

        Returns:
            Parsed command for this pass.
        """
        if depth > self._max_alias_depth:
            _LOGGER.warning(
                "parser.alias_depth_exceeded input=%s depth=%d", original, depth
            )
            return ParsedCommand(
                kind=CommandKind.UNKNOWN,
                name="",
                input=original,
                note="alias expansion depth exceeded",
            )

        for system in self._registry.system_commands:
            if system.matches(text):
                _LOGGER.debug("parser.matched kind=system name=%s", system.name)
                return ParsedCommand(
                    kind=CommandKind.SYSTEM,
                    name=system.name,
                    input=original,
                    descriptor=system,
                )

        for api in self._registry.api_commands:
            if api.pattern is None:
                continue
            match = api.pattern.search(text)
            if match is None:
                continue
            _LOGGER.debug("parser.matched kind=api name=%s", api.name)
            return ParsedCommand(
                kind=CommandKind.API,
                name=api.name,
                input=original,
                parameters=MappingProxyType(_map_request(api, match, text)),
                descriptor=api,
            )

        for macro in self._registry.macro_commands:
            if macro.matches(text):
                _LOGGER.debug("parser.matched kind=macro name=%s", macro.name)
                return ParsedCommand(
                    kind=CommandKind.MACRO,
                    name=macro.name,
                    input=original,
                    descriptor=macro,
                )

        expanded, matched = self._registry.expand_alias(text)
        if matched:
            _LOGGER.debug("parser.alias_expanded from=%s to=%s", text, expanded)
            return self._resolve(expanded.strip(), original=original, depth=depth + 1)

        _LOGGER.debug("parser.unknown input=%s", original)
        return ParsedCommand(kind=CommandKind.UNKNOWN, name="", input=original)


def _map_request(
    descriptor: ApiCommandDescriptor, match: re.Match[str], text: str
) -> dict[str, Any]:
    """Build request parameters from the descriptor's request mapping.

    Args:
        descriptor: Matched API descriptor.
        match: Pattern match over the input.
        text: Input the pattern matched against.

    Returns:
        Field name to resolved value mapping.
    """
    captures: dict[str, str] = {_INPUT_REF: text}
    for index, group in enumerate(match.groups(), start=1):
        captures[f"${index}"] = group or ""
    resolved: dict[str, Any] = {}
    for field_name, template in descriptor.config.request_mapping.items():
        if template.startswith("$"):
            resolved[field_name] = captures.get(template, template)
        else:
            resolved[field_name] = template
    return resolved
