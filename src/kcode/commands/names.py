"""Canonical command name helpers."""

from __future__ import annotations


def normalize_name(value: str) -> str:
    """Normalize a command name to its canonical slash-prefixed form.

    Args:
        value: Raw command name or alias.

    Returns:
        Trimmed name prefixed with `/`; blank input becomes `/`.
    """
    trimmed = value.strip()
    if not trimmed:
        return "/"
    return trimmed if trimmed.startswith("/") else f"/{trimmed}"


def names_equal(left: str, right: str) -> bool:
    """Compare two command names after normalization, ignoring case.

    Args:
        left: First name.
        right: Second name.

    Returns:
        True when both names resolve to the same canonical command.
    """
    return normalize_name(left).casefold() == normalize_name(right).casefold()
