"""Vitest adapter: summary line, failure blocks and timing."""

from __future__ import annotations

from dataclasses import dataclass
import re

from ..text import decode_lossy, strip_ansi
from .base import Adapter, DegradedResult

TEST_FILES = re.compile(r"Test Files\s+(?:(\d+)\s+failed\s+\|\s+)?(\d+)\s+passed")
TESTS = re.compile(r"Tests\s+(?:\d+\s+failed\s+\|\s+)?(\d+)\s+passed")
DURATION = re.compile(r"Duration\s+([\d.]+[ms]+)")


@dataclass
class RunStats:
    passed: int = 0
    failed: int = 0
    total: int = 0
    duration: str = ""


def parse_stats(output: str) -> RunStats:
    stats = RunStats()
    m = TEST_FILES.search(output)
    if m:
        stats.failed = int(m.group(1) or 0)
        stats.passed = int(m.group(2))
    m = TESTS.search(output)
    if m:
        stats.total = int(m.group(1))
    m = DURATION.search(output)
    if m:
        stats.duration = m.group(1)
    return stats


def extract_failures(output: str) -> list[str]:
    """Collect '✗ name' / 'FAIL name' blocks with their indented details."""
    failures: list[str] = []
    current: list[str] = []
    in_failure = False

    def flush() -> None:
        if current:
            failures.append("\n".join(current).strip())
            current.clear()

    for line in output.splitlines():
        if "✗" in line or "FAIL" in line:
            flush()
            current.append(line.strip())
            in_failure = True
            continue
        if not in_failure:
            continue
        if not line.strip() or line.startswith((" Test Files", " Tests")):
            in_failure = False
            flush()
        elif line.startswith("  "):
            current.append(line.strip())
    flush()
    return failures


def render_summary(output: str) -> str:
    stats = parse_stats(output)
    failures = extract_failures(output)

    lines: list[str] = []
    if stats.total > 0 or stats.passed or stats.failed:
        lines.append(f"PASS ({stats.passed}) FAIL ({stats.failed})")
    if failures:
        lines.append("")
        lines.extend(f"{i}. {failure}" for i, failure in enumerate(failures, start=1))
    if stats.duration:
        lines.append("")
        lines.append(f"Time: {stats.duration}")
    # A duration alone is not a summary.
    if not lines or (not failures and not stats.total and not stats.passed):
        return ""
    return "\n".join(lines).strip()


class VitestAdapter(Adapter):
    name = "vitest"
    description = "vitest run: pass/fail counts, failure details, duration"
    success_patterns = (r"^PASS \(\d+\) FAIL \(0\)",)

    def try_degraded_parse(self, data: bytes) -> DegradedResult | None:
        summary = render_summary(strip_ansi(decode_lossy(data)))
        if not summary:
            return None
        return summary, ["vitest: counts parsed from the text report"]
