"""
Codepoint-safe text helpers.

Everything here works on Python ``str`` codepoints, never on byte offsets,
and none of it raises on odd input.
"""

from __future__ import annotations

import json
import math
import re

ANSI_PATTERN = re.compile(r"\x1b\[[0-9;?]*[A-Za-z]")


def truncate(text: str, max_chars: int) -> tuple[str, int]:
    """Return (prefix of at most max_chars codepoints, total codepoint count)."""
    total = len(text)
    if max_chars < 0:
        max_chars = 0
    return text[:max_chars], total


def escape_for_embedding(text: str) -> str:
    """Quote text so it can sit inside a JSON-ish container unambiguously."""
    return json.dumps(text, ensure_ascii=False)


def decode_lossy(data: bytes | None) -> str:
    """Decode UTF-8, replacing invalid sequences with U+FFFD."""
    if not data:
        return ""
    return data.decode("utf-8", errors="replace")


def strip_ansi(text: str) -> str:
    """Remove terminal color/cursor escape sequences."""
    return ANSI_PATTERN.sub("", text)


def estimate_tokens(text: str) -> int:
    """Rough token count: ceil(chars / 4)."""
    return math.ceil(len(text) / 4)


def head_lines(text: str, max_lines: int) -> tuple[str, int]:
    """
    Keep the first max_lines lines of text.

    Returns (kept_text, omitted_line_count). A trailing newline does not
    count as an extra empty line.
    """
    lines = text.splitlines()
    if len(lines) <= max_lines:
        return "\n".join(lines), 0
    return "\n".join(lines[:max_lines]), len(lines) - max_lines
