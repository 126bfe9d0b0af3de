"""
Failure-visibility guard.

A filter bug or an over-eager adapter can turn a failing run into a line
that reads like success ("✓ all files formatted"). The guard compares the
rendered text with the real exit code and, when they disagree, appends a
block the reader cannot miss.
"""

from __future__ import annotations

from collections.abc import Iterable
from dataclasses import dataclass
import re

DEFAULT_SUCCESS_PATTERNS: tuple[str, ...] = (
    r"^\s*✓",
    r"^\s*ok\b",
    # "no errors" ends its clause; "no error handler registered" is not success.
    r"\bno (issues|errors?)( found| detected)?(?=\s*([.!,;:)]|$|in\b))",
    r"\ball (matched )?files (are )?formatted\b",
    r"\ball (tests )?passed\b",
    r"\b0 failed\b",
    r"\bsuccess(ful(ly)?)?\b",
)

DEFAULT_STDERR_LINES = 5


@dataclass(frozen=True)
class SuccessPatterns:
    """Compiled 'looks successful' phrasings. Extend, don't edit."""

    patterns: tuple[re.Pattern[str], ...]

    @classmethod
    def build(cls, *sources: Iterable[str]) -> SuccessPatterns:
        seen: list[str] = []
        for source in (DEFAULT_SUCCESS_PATTERNS, *sources):
            seen.extend(p for p in source if p not in seen)
        return cls(tuple(re.compile(p, re.IGNORECASE | re.MULTILINE) for p in seen))

    def extend(self, extra: Iterable[str]) -> SuccessPatterns:
        existing = {p.pattern for p in self.patterns}
        added = tuple(
            re.compile(p, re.IGNORECASE | re.MULTILINE) for p in extra if p not in existing
        )
        return SuccessPatterns(self.patterns + added)

    def matches(self, text: str) -> bool:
        return any(p.search(text) for p in self.patterns)


DEFAULT_PATTERNS = SuccessPatterns.build()


def guard(
    text: str,
    exit_code: int,
    raw_stderr: str = "",
    patterns: SuccessPatterns = DEFAULT_PATTERNS,
    stderr_lines: int = DEFAULT_STDERR_LINES,
) -> str:
    """
    Make a failing exit code visible when text claims success.

    Returns text unchanged when exit_code is 0 or when text does not look
    successful. Never removes anything from text.
    """
    if exit_code == 0 or not patterns.matches(text):
        return text

    block = [
        "",
        f"[te] WARNING: command exited with code {exit_code}; "
        "output above may be incomplete.",
    ]
    stderr_head = raw_stderr.strip().splitlines()[:stderr_lines]
    if stderr_head:
        block.append(f"[te] stderr (first {stderr_lines} lines):")
        block.extend(f"  {ln}" for ln in stderr_head)
    block.append("[te] Re-run the raw command to verify.")
    return text.rstrip("\n") + "\n" + "\n".join(block)
