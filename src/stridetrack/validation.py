"""Shared validation functions for all entry points.

Pure functions with no MCP, FastAPI, or Click dependencies.
"""

from __future__ import annotations

import re
import unicodedata
from typing import Any

_MAX_ACTOR_LENGTH = 128
_ROLE_PATTERN = re.compile(r"^[a-z][a-z0-9_-]{0,31}$")


def sanitize_actor(value: Any) -> tuple[str, str | None]:
    """Validate and clean an actor name.

    Returns (cleaned_actor, None) on success or ("", error_message) on failure.
    Strips whitespace, then checks: non-empty, max length, no control/format chars.
    """
    if not isinstance(value, str):
        return ("", "actor must be a string")
    # Reject "\nbad" rather than silently absorbing the newline via strip().
    for ch in value:
        cat = unicodedata.category(ch)
        if cat.startswith("C"):  # Cc (control) and Cf (format)
            return ("", f"actor must not contain control characters (found U+{ord(ch):04X})")
    cleaned = value.strip()
    if not cleaned:
        return ("", "actor must not be empty")
    if len(cleaned) > _MAX_ACTOR_LENGTH:
        return ("", f"actor must be at most {_MAX_ACTOR_LENGTH} characters")
    return (cleaned, None)


def sanitize_role(value: Any) -> tuple[str, str | None]:
    """Validate an attestation role name: lowercase slug, at most 32 chars."""
    if not isinstance(value, str):
        return ("", "role must be a string")
    cleaned = value.strip().lower()
    if not _ROLE_PATTERN.match(cleaned):
        return ("", f"invalid role '{value}': use lowercase letters, digits, '-' or '_'")
    return (cleaned, None)


def parse_key_values(pairs: list[str] | tuple[str, ...], *, option: str = "field") -> dict[str, str]:
    """Parse ``key=value`` tokens. The value may itself contain ``=``.

    Raises:
        ValueError: On a token without ``=`` or with an empty key.
    """
    result: dict[str, str] = {}
    for pair in pairs:
        key, sep, value = pair.partition("=")
        if not sep or not key.strip():
            msg = f"--{option} expects key=value, got '{pair}'"
            raise ValueError(msg)
        result[key.strip()] = value
    return result
