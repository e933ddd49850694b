"""Minimal response template language.

Templates are rendered in three passes over a flat context mapping:

1. ``{{if .field}}...{{else}}...{{end}}`` conditionals.
2. ``{{range .field}}...{{end}}`` loops over sequences. Mapping items expose
   their keys inside the body; scalar items are exposed as ``.item``. Every
   rendered item is followed by a newline.
3. ``{{.field}}`` and ``{{.field:format}}`` substitution. Field lookup
   ignores case. A format applies to numbers and datetimes only.

Any rendering fault is returned inline as a visible markup marker.
"""

from __future__ import annotations

import logging
import re
from collections.abc import Mapping, Sequence
from datetime import date, datetime
from typing import Any

_LOGGER = logging.getLogger(__name__)

_IF_PATTERN = re.compile(
    r"\{\{if\s+\.(\w+)\}\}(.*?)(?:\{\{else\}\}(.*?))?\{\{end\}\}", re.DOTALL
)
_RANGE_PATTERN = re.compile(r"\{\{range\s+\.(\w+)\}\}(.*?)\{\{end\}\}", re.DOTALL)
_VAR_PATTERN = re.compile(r"\{\{\.(\w+)(?::([^}]+))?\}\}")
_DOTNET_NUMERIC = re.compile(r"^([FfNnDd])(\d*)$")
_DOTNET_DATE_TOKEN = re.compile(r"yyyy|yy|MM|dd|HH|hh|mm|ss|tt")
_STRFTIME_TOKENS = {
    "yyyy": "%Y",
    "yy": "%y",
    "MM": "%m",
    "dd": "%d",
    "HH": "%H",
    "hh": "%I",
    "mm": "%M",
    "ss": "%S",
    "tt": "%p",
}


class TemplateRenderError(ValueError):
    """Raised when a template cannot be rendered against its context."""


def _lookup(context: Mapping[str, Any], name: str) -> Any:
    """Find a context value by name, ignoring case.

    Args:
        context: Render context.
        name: Field name from the template.

    Returns:
        Matching value or None when absent.
    """
    if name in context:
        return context[name]
    folded = name.casefold()
    for key, value in context.items():
        if str(key).casefold() == folded:
            return value
    return None


def _is_sequence(value: Any) -> bool:
    return isinstance(value, Sequence | set | frozenset) and not isinstance(
        value, str | bytes
    )


def is_truthy(value: Any) -> bool:
    """Apply template truthiness rules.

    Args:
        value: Context value.

    Returns:
        False for None, blank strings, empty collections, zero and False.
    """
    if value is None:
        return False
    if isinstance(value, str):
        return bool(value.strip())
    if isinstance(value, bool):
        return value
    if isinstance(value, int | float):
        return value != 0
    if isinstance(value, Mapping) or _is_sequence(value):
        return len(value) > 0
    return True


def _translate_format(spec: str) -> str:
    """Map ``F2``/``N2``/``D3`` style specs onto Python format specs."""
    match = _DOTNET_NUMERIC.match(spec.strip())
    if match is None:
        return spec
    letter, digits = match.groups()
    if letter in {"D", "d"}:
        return f"0{digits}d" if digits else "d"
    precision = digits or "2"
    if letter in {"N", "n"}:
        return f",.{precision}f"
    return f".{precision}f"


def _translate_date_format(spec: str) -> str:
    """Map ``yyyy-MM-dd HH:mm:ss`` style patterns onto ``strftime`` codes.

    Patterns already containing ``%`` are treated as ``strftime`` input.
    """
    if "%" in spec:
        return spec
    return _DOTNET_DATE_TOKEN.sub(lambda match: _STRFTIME_TOKENS[match.group(0)], spec)


def format_value(value: Any, spec: str | None) -> str:
    """Render one value with an optional format spec.

    Args:
        value: Context value.
        spec: Optional format spec from the template.

    Returns:
        Rendered text. Values without format support use ``str``.
    """
    if value is None:
        return ""
    if isinstance(value, bool):
        return "true" if value else "false"
    if not spec:
        return str(value)
    if isinstance(value, int | float):
        try:
            return format(value, _translate_format(spec))
        except ValueError:
            return str(value)
    if isinstance(value, datetime | date):
        try:
            return value.strftime(_translate_date_format(spec))
        except ValueError:
            return str(value)
    return str(value)


class TemplateEngine:
    """Renders response templates against backend payloads."""

    def render(self, template: str, context: Mapping[str, Any] | None) -> str:
        """Render template, reporting faults inline instead of raising.

        Args:
            template: Template text.
            context: Flat key/value context.

        Returns:
            Rendered text, or a ``[red]Template error: ...[/]`` marker.
        """
        try:
            return self.render_strict(template, context)
        except TemplateRenderError as exc:
            _LOGGER.warning("template.render_failed error=%s", exc)
            return f"[red]Template error: {exc}[/]"

    def render_strict(self, template: str, context: Mapping[str, Any] | None) -> str:
        """Render template and raise on faults.

        Args:
            template: Template text.
            context: Flat key/value context.

        Returns:
            Rendered text.

        Raises:
            TemplateRenderError: If a block or value cannot be rendered.
        """
        if not template:
            return ""
        scope: Mapping[str, Any] = context or {}
        try:
            result = self._render_conditionals(template, scope)
            result = self._render_ranges(result, scope)
            return self._render_variables(result, scope)
        except TemplateRenderError:
            raise
        except (TypeError, ValueError, AttributeError, RecursionError) as exc:
            raise TemplateRenderError(str(exc)) from exc

    def _render_conditionals(self, template: str, scope: Mapping[str, Any]) -> str:
        def _replace(match: re.Match[str]) -> str:
            value = _lookup(scope, match.group(1))
            if is_truthy(value):
                return match.group(2)
            return match.group(3) or ""

        return _IF_PATTERN.sub(_replace, template)

    def _render_ranges(self, template: str, scope: Mapping[str, Any]) -> str:
        def _replace(match: re.Match[str]) -> str:
            items = _lookup(scope, match.group(1))
            if not _is_sequence(items):
                return ""
            body = match.group(2)
            lines: list[str] = []
            for item in items:
                if isinstance(item, Mapping):
                    item_scope: Mapping[str, Any] = item
                else:
                    item_scope = {"item": item}
                rendered = self._render_conditionals(body, item_scope)
                lines.append(self._render_variables(rendered, item_scope) + "\n")
            return "".join(lines)

        return _RANGE_PATTERN.sub(_replace, template)

    def _render_variables(self, template: str, scope: Mapping[str, Any]) -> str:
        def _replace(match: re.Match[str]) -> str:
            return format_value(_lookup(scope, match.group(1)), match.group(2))

        return _VAR_PATTERN.sub(_replace, template)
