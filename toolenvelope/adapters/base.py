"""
Adapter contract.

An adapter knows one external tool's output. The classifier asks it two
questions, in order:

1. ``try_structured_parse``: can the raw bytes be parsed exactly?
2. ``try_degraded_parse``: if not, is there a confident heuristic summary?

Adapters never decide the final rendering and never see the exit code.
"""

from __future__ import annotations

import json
from typing import Any

from ..errors import StructuredParseError
from ..text import decode_lossy, strip_ansi

DegradedResult = tuple[str, list[str]]


class Adapter:
    """Base adapter: JSON documents are structured, nothing else is."""

    name: str = "base"
    description: str = ""
    # Extra "looks successful" phrasings this tool prints (regex, case-insensitive).
    success_patterns: tuple[str, ...] = ()

    def try_structured_parse(self, data: bytes) -> Any:
        """Parse stdout as a JSON object or array, else raise StructuredParseError."""
        text = strip_ansi(decode_lossy(data)).strip()
        if not text:
            raise StructuredParseError("empty output")
        if not text.startswith(("{", "[")):
            raise StructuredParseError("output is not a JSON document")
        try:
            value = json.loads(text)
        except ValueError as e:
            raise StructuredParseError(f"invalid JSON: {e}") from e
        except RecursionError as e:
            raise StructuredParseError("invalid JSON: nested too deeply") from e
        if not isinstance(value, (dict, list)):
            raise StructuredParseError("JSON root is not a container")
        return value

    def try_degraded_parse(self, data: bytes) -> DegradedResult | None:
        """Heuristic summary of raw output, or None when there is no signal."""
        return None

    def for_command(self, argv: list[str]) -> Adapter:
        """Adapter to use for this argv. Override when flags change the output shape."""
        return self

    def __repr__(self) -> str:
        return f"<{type(self).__name__} name={self.name!r}>"


class GenericAdapter(Adapter):
    """Fallback adapter for tools with no dedicated module."""

    name = "generic"
    description = "JSON objects/arrays are compacted; everything else passes through"
