"""
Value-preserving compactor.

Renders a parsed JSON value into bounded text. Long strings, big arrays
and wide objects are cut down, but every scalar that is shown is shown
verbatim: IDs, URLs, flags and counts survive untouched.

Two renderers live here:

- ``compact``: values, with size caps (the default for wrapped commands)
- ``extract_schema``: type shape only (``te json --schema``)
"""

from __future__ import annotations

from dataclasses import dataclass
import json
from typing import Any

from .errors import StructuredParseError
from .text import escape_for_embedding, truncate

DEFAULT_MAX_DEPTH = 5


@dataclass(frozen=True)
class CompactLimits:
    """Policy caps for compaction. Defaults match the shipped behaviour."""

    string_max_chars: int = 200
    string_preview_chars: int = 100
    array_preview_items: int = 3
    object_max_keys: int = 20


DEFAULT_LIMITS = CompactLimits()


def _scalar(value: Any) -> str:
    """Render a scalar as its JSON literal."""
    if value is None or isinstance(value, (bool, int, float)):
        return json.dumps(value)
    return escape_for_embedding(str(value))


def _compact_string(s: str, limits: CompactLimits) -> str:
    if len(s) <= limits.string_max_chars:
        return escape_for_embedding(s)
    prefix, total = truncate(s, limits.string_preview_chars)
    return escape_for_embedding(f"{prefix}...[{total} chars]")


def compact(
    value: Any,
    depth: int = 0,
    max_depth: int = DEFAULT_MAX_DEPTH,
    limits: CompactLimits = DEFAULT_LIMITS,
) -> str:
    """
    Render value into bounded text without altering any scalar.

    Args:
        value: Parsed JSON value (dict, list, str, int, float, bool, None)
        depth: Current nesting depth (0 at the root)
        max_depth: Containers deeper than this collapse to a count
        limits: Size caps

    Returns:
        Compact text; objects are multi-line, everything else single-line.
    """
    if isinstance(value, tuple):
        value = list(value)

    if depth > max_depth:
        if isinstance(value, dict):
            return f"{{...{len(value)} keys}}"
        if isinstance(value, list):
            return f"[...{len(value)} items]"
        if isinstance(value, str):
            return _compact_string(value, limits)
        return _scalar(value)

    if isinstance(value, str):
        return _compact_string(value, limits)

    if isinstance(value, list):
        if not value:
            return "[]"
        shown = value[: limits.array_preview_items]
        items = [compact(v, depth + 1, max_depth, limits) for v in shown]
        remaining = len(value) - len(shown)
        if remaining > 0:
            return f"[{', '.join(items)}, ...+{remaining} more]"
        return f"[{', '.join(items)}]"

    if isinstance(value, dict):
        if not value:
            return "{}"
        indent = "  " * (depth + 1)
        close_indent = "  " * depth
        keys = list(value.keys())
        show = min(len(keys), limits.object_max_keys)
        has_more = len(keys) > show

        lines = ["{"]
        for i, key in enumerate(keys[:show]):
            rendered = compact(value[key], depth + 1, max_depth, limits)
            comma = "" if i == show - 1 and not has_more else ","
            lines.append(f"{indent}{escape_for_embedding(str(key))}: {rendered}{comma}")
        if has_more:
            lines.append(f"{indent}...+{len(keys) - show} more keys")
        lines.append(f"{close_indent}}}")
        return "\n".join(lines)

    return _scalar(value)


def _loads(text: str) -> Any:
    try:
        return json.loads(text)
    except ValueError as e:
        raise StructuredParseError(f"invalid JSON: {e}") from e
    except RecursionError as e:
        raise StructuredParseError("invalid JSON: nested too deeply") from e


def compact_json_text(
    text: str,
    max_depth: int = DEFAULT_MAX_DEPTH,
    limits: CompactLimits = DEFAULT_LIMITS,
) -> str:
    """Parse JSON text and compact it."""
    value = _loads(text)
    try:
        return compact(value, 0, max_depth, limits)
    except RecursionError as e:
        raise StructuredParseError("JSON nested too deeply to render") from e


# Schema rendering -----------------------------------------------------------

SCHEMA_MAX_KEYS = 16


def _schema_string(s: str) -> str:
    if len(s) > 50:
        return f"string[{len(s)}]"
    if not s:
        return "string"
    if s.startswith("http"):
        return "url"
    if "-" in s and len(s) == 10:
        return "date?"
    return "string"


def extract_schema(value: Any, depth: int = 0, max_depth: int = DEFAULT_MAX_DEPTH) -> str:
    """Render the type shape of value (no values), indented by depth."""
    indent = "  " * depth

    if depth > max_depth:
        return f"{indent}..."

    if value is None:
        return f"{indent}null"
    if isinstance(value, bool):
        return f"{indent}bool"
    if isinstance(value, int):
        return f"{indent}int"
    if isinstance(value, float):
        return f"{indent}float"
    if isinstance(value, str):
        return f"{indent}{_schema_string(value)}"

    if isinstance(value, (list, tuple)):
        if not value:
            return f"{indent}[]"
        first = extract_schema(value[0], depth + 1, max_depth)
        if len(value) == 1:
            return f"{indent}[\n{first}\n{indent}]"
        return f"{indent}[{first.strip()}] ({len(value)})"

    if isinstance(value, dict):
        if not value:
            return f"{indent}{{}}"
        lines = [f"{indent}{{"]
        keys = sorted(value.keys(), key=str)
        for i, key in enumerate(keys):
            val = value[key]
            val_schema = extract_schema(val, depth + 1, max_depth)
            if val is None or isinstance(val, (bool, int, float, str)):
                comma = "," if i < len(keys) - 1 else ""
                lines.append(f"{indent}  {key}: {val_schema.strip()}{comma}")
            else:
                lines.append(f"{indent}  {key}:")
                lines.append(val_schema)
            remaining = len(keys) - i - 1
            if i >= SCHEMA_MAX_KEYS - 1 and remaining > 0:
                lines.append(f"{indent}  ... +{remaining} more keys")
                break
        lines.append(f"{indent}}}")
        return "\n".join(lines)

    return f"{indent}{type(value).__name__}"


def schema_json_text(text: str, max_depth: int = DEFAULT_MAX_DEPTH) -> str:
    """Parse JSON text and render its schema."""
    value = _loads(text)
    try:
        return extract_schema(value, 0, max_depth)
    except RecursionError as e:
        raise StructuredParseError("JSON nested too deeply to render") from e
