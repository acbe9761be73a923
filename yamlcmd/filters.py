"""yamlcmd filters - response value extraction and display formatting."""

from __future__ import annotations

import json
import re
from typing import Any, Callable

DATA_REF_RE = re.compile(r"\$data\.[a-zA-Z0-9_.-]+")

MAX_DISPLAY_LENGTH = 50

# ---------------------------------------------------------------------------
# Path extraction
# ---------------------------------------------------------------------------


def _lookup(container: Any, segment: str) -> tuple[bool, Any]:
    """Look up one path segment in a dict or list."""
    if isinstance(container, dict):
        if segment in container:
            return True, container[segment]
        # kebab-case keys: "user-id" in the path, "userid" in the body
        stripped = segment.replace("-", "", 1)
        if stripped in container:
            return True, container[stripped]
        # and the other way round: "userid" in the path, "user-id" in the body
        for key, value in container.items():
            if isinstance(key, str) and key.replace("-", "") == stripped:
                return True, value
        return False, None

    if isinstance(container, list):
        # same first-hyphen rule as keys: "-1" addresses index 1
        if not segment.isdigit():
            segment = segment.replace("-", "", 1)
        if segment.isdigit():
            try:
                return True, container[int(segment)]
            except IndexError:
                return False, None

    return False, None


def get_nested_property(root: Any, path: str) -> Any:
    """Resolve a dotted path against a parsed response body.

    Returns None when any segment is missing. Never raises.

    Examples:
        get_nested_property({"a": {"b": 1}}, "a.b")          -> 1
        get_nested_property({"user-id": "x"}, "userid")     -> "x"
        get_nested_property({"items": [{"id": 7}]}, "items.0.id") -> 7
    """
    current = root
    for segment in path.split("."):
        if not segment:
            continue
        found, current = _lookup(current, segment)
        if not found:
            return None
    return current


# ---------------------------------------------------------------------------
# Display formatting
# ---------------------------------------------------------------------------


def format_display_value(value: Any) -> Any:
    """Shorten long strings for display; absent values become 'undefined'."""
    if isinstance(value, str):
        if len(value) > MAX_DISPLAY_LENGTH:
            return value[:MAX_DISPLAY_LENGTH] + "..."
        return value
    if value is None:
        return "undefined"
    return value


def to_text(value: Any) -> str:
    """Render an extracted value for substitution into a template."""
    if isinstance(value, str):
        return value
    if value is None:
        return ""
    return json.dumps(value)


# ---------------------------------------------------------------------------
# $data.<path> substitution
# ---------------------------------------------------------------------------


def substitute_data_refs(
    template: str,
    data: Any,
    transform: Callable[[Any], Any] | None = None,
) -> str:
    """Replace every ``$data.<path>`` in template with a value from data.

    transform is applied to each extracted value before it is rendered
    as text (format_display_value for on-screen output).
    """

    def _replace(m: re.Match) -> str:
        path = m.group(0)[len("$data.") :]
        value = get_nested_property(data, path)
        if transform is not None:
            value = transform(value)
        return to_text(value)

    return DATA_REF_RE.sub(_replace, template)


def render_response(template: str, data: Any) -> str:
    """Fill a ``response`` template from a response body for display."""
    return substitute_data_refs(template, data, format_display_value)


def extract_set_value(template: str, data: Any) -> str:
    """Fill a ``set`` template with raw (untruncated) response values."""
    return substitute_data_refs(template, data)
