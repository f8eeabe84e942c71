"""Pure helpers and constants shared across MCP tool modules.

This module has NO dependency on ``mcp_server`` module globals, so it can
be imported freely without triggering circular-import issues.
"""

from __future__ import annotations

import json
import logging
from typing import Any

from mcp.types import TextContent

from stridetrack.lifecycle import LifecycleError
from stridetrack.validation import sanitize_actor, sanitize_role

logger = logging.getLogger(__name__)

# Hard cap on list_requirements results to keep MCP response size within
# token limits. Callers can pass no_limit=true to bypass.
_MAX_LIST_RESULTS = 50


def _text(content: object) -> list[TextContent]:
    if isinstance(content, str):
        return [TextContent(type="text", text=content)]
    return [TextContent(type="text", text=json.dumps(content, indent=2, default=str))]


def _error(message: str, code: str, details: dict[str, Any] | None = None) -> list[TextContent]:
    return _text({"error": message, "code": code, "details": details or {}})


def _not_found(requirement_id: str) -> list[TextContent]:
    return _error(f"Requirement not found: {requirement_id}", "not_found")


def _lifecycle_error(exc: LifecycleError) -> list[TextContent]:
    """Rejected lifecycle operation; the error kind is the code."""
    details = dict(exc.detail)
    details["retryable"] = exc.retryable
    return _error(str(exc), exc.kind, details)


def _resolve_pagination(arguments: dict[str, Any]) -> tuple[int, int]:
    """Compute effective limit and offset, honouring ``no_limit`` and the cap.

    Callers should overfetch by 1 (``limit=effective_limit + 1``) to detect
    ``has_more``.
    """
    no_limit = arguments.get("no_limit", False)
    requested_limit = arguments.get("limit", 100)
    offset = arguments.get("offset", 0)

    effective_limit = (requested_limit if "limit" in arguments else 10_000_000) if no_limit else min(requested_limit, _MAX_LIST_RESULTS)

    return effective_limit, offset


def _validate_str(value: Any, name: str) -> list[TextContent] | None:
    """Return a validation error if *value* is not ``None`` and not a ``str``."""
    if value is not None and not isinstance(value, str):
        return _error(f"{name} must be a string", "validation_error")
    return None


def _validate_actor(value: Any) -> tuple[str, list[TextContent] | None]:
    """Sanitize actor, returning (cleaned, None) or ("", error_response)."""
    cleaned, err = sanitize_actor(value)
    if err:
        return ("", _error(err, "validation_error"))
    return (cleaned, None)


def _validate_role(value: Any) -> tuple[str, list[TextContent] | None]:
    cleaned, err = sanitize_role(value)
    if err:
        return ("", _error(err, "validation_error"))
    return (cleaned, None)
