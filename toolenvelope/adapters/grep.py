"""
Grep adapter.

Understands ``path:line:content`` output (grep -rn, rg --no-heading).
Ranks definitions and non-test files first, groups by file and leaves
breadcrumbs for what was not shown.
"""

from __future__ import annotations

from collections import Counter
from dataclasses import dataclass
import re

from ..text import decode_lossy, strip_ansi, truncate
from .base import Adapter, DegradedResult

MAX_FILES = 10
MAX_LINES_PER_FILE = 3
MAX_LINE_CHARS = 120

_DEFINITION_PATTERNS = [
    re.compile(r"^\s*(def|class|function|const|let|var|type|interface|fn|pub fn|struct)\s+"),
    re.compile(r"^\s*\w+\s*[=:]\s*(function|async|class|\()"),
    re.compile(r"^\s*export\s+(default\s+)?(function|class|const|let|var)"),
]
_TEST_PATH = re.compile(r"(test_|_test\.|\.test\.|tests/|__tests__|spec\.)")


@dataclass
class GrepMatch:
    """A single grep match with metadata."""

    path: str
    line_no: int
    content: str
    is_definition: bool = False
    is_test: bool = False


def _is_definition(content: str) -> bool:
    """Heuristic: is this line a definition?"""
    return any(p.match(content) for p in _DEFINITION_PATTERNS)


def _is_test_file(path: str) -> bool:
    return bool(_TEST_PATH.search(path.lower()))


def _rank_match(match: GrepMatch) -> tuple[int, int]:
    """Sort key: definitions in non-test files first, test usages last."""
    if match.is_test:
        priority = 2 if match.is_definition else 3
    else:
        priority = 0 if match.is_definition else 1
    return (priority, match.line_no)


def parse_matches(output: str) -> list[GrepMatch]:
    matches = []
    for line in output.splitlines():
        parts = line.split(":", 2)
        if len(parts) < 3:
            continue
        path, line_no_str, content = parts
        try:
            line_no = int(line_no_str)
        except ValueError:
            continue
        matches.append(
            GrepMatch(
                path=path,
                line_no=line_no,
                content=content,
                is_definition=_is_definition(content),
                is_test=_is_test_file(path),
            )
        )
    return matches


def _clip(content: str) -> str:
    text, total = truncate(content.strip(), MAX_LINE_CHARS)
    return f"{text}..." if total > MAX_LINE_CHARS else text


def render_matches(matches: list[GrepMatch]) -> str:
    per_file = Counter(m.path for m in matches)
    lines = [f"{len(matches)} matches in {len(per_file)} files"]

    non_test = [m for m in matches if not m.is_test]
    test_only = [m for m in matches if m.is_test]

    # Files ordered by their best-ranked match.
    ordered_files: list[str] = []
    for m in sorted(non_test, key=_rank_match):
        if m.path not in ordered_files:
            ordered_files.append(m.path)

    for path in ordered_files[:MAX_FILES]:
        lines.append(f"{path} ({per_file[path]})")
        file_matches = sorted((m for m in non_test if m.path == path), key=_rank_match)
        for m in file_matches[:MAX_LINES_PER_FILE]:
            lines.append(f"  {m.line_no}: {_clip(m.content)}")
        if len(file_matches) > MAX_LINES_PER_FILE:
            lines.append(f"  ...+{len(file_matches) - MAX_LINES_PER_FILE} more")

    hidden = ordered_files[MAX_FILES:]
    if hidden:
        hidden_count = sum(per_file[p] for p in hidden)
        lines.append(f"# TE: {hidden_count} more matches in {len(hidden)} files")
    if test_only:
        test_files = len({m.path for m in test_only})
        lines.append(f"# TE: {len(test_only)} test file matches in {test_files} files")
    return "\n".join(lines)


class GrepAdapter(Adapter):
    name = "grep"
    description = "grep -rn / rg: matches grouped by file, definitions first"

    def try_degraded_parse(self, data: bytes) -> DegradedResult | None:
        matches = parse_matches(strip_ansi(decode_lossy(data)))
        if not matches:
            return None
        return render_matches(matches), [
            f"grep: showing up to {MAX_LINES_PER_FILE} lines per file, ranked"
        ]
