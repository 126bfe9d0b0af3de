"""
wc adapter.

Drops alignment padding and repeated directory prefixes:

    wc file.py        ->  30L 96W 978B
    wc -l file.py     ->  30
    wc -l src/*.py    ->  one "count name" row per file, then "Σ total"

Which columns wc printed depends on its flags, so the adapter is bound to
the argv with ``for_command``. Without flags to go on, three numeric
columns are read as lines/words/bytes.
"""

from __future__ import annotations

from enum import Enum

from ..text import decode_lossy
from .base import Adapter, DegradedResult


class WcMode(Enum):
    FULL = "full"
    SINGLE = "single"
    MIXED = "mixed"


_COLUMN_FLAGS = "lwcm"
_LONG_FLAGS = {"--lines", "--words", "--bytes", "--chars"}


def detect_mode(args: list[str]) -> WcMode:
    """Mode from wc's flags: none -> FULL, one column -> SINGLE, more -> MIXED."""
    columns = 0
    for arg in args:
        if arg in _LONG_FLAGS:
            columns += 1
        elif arg.startswith("-") and not arg.startswith("--"):
            columns += sum(1 for ch in arg[1:] if ch in _COLUMN_FLAGS)
    if columns == 0:
        return WcMode.FULL
    return WcMode.SINGLE if columns == 1 else WcMode.MIXED


def _numbers_and_name(line: str) -> tuple[list[str], str] | None:
    """Leading numeric columns and the (possibly empty) name after them."""
    parts = line.split()
    count = 0
    while count < len(parts) and parts[count].isdigit():
        count += 1
    if count == 0:
        return None
    return parts[:count], " ".join(parts[count:])


def common_prefix(paths: list[str]) -> str:
    """Longest shared directory prefix (with trailing slash), or ''."""
    if len(paths) <= 1:
        return ""
    candidate = paths[0][: paths[0].rfind("/") + 1]
    while candidate:
        if all(p.startswith(candidate) for p in paths):
            return candidate
        candidate = candidate[: candidate[:-1].rfind("/") + 1]
    return ""


def _format(numbers: list[str], mode: WcMode) -> str:
    if mode is WcMode.SINGLE:
        return numbers[0]
    if mode is WcMode.FULL and len(numbers) >= 3:
        return f"{numbers[0]}L {numbers[1]}W {numbers[2]}B"
    return " ".join(numbers)


def render_counts(output: str, mode: WcMode | None = None) -> str:
    rows = []
    for line in output.strip().splitlines():
        parsed = _numbers_and_name(line)
        if parsed is None:
            return ""
        rows.append(parsed)
    if not rows:
        return ""

    if mode is None:
        widths = {len(numbers) for numbers, _ in rows}
        width = widths.pop() if len(widths) == 1 else 0
        mode = {1: WcMode.SINGLE, 3: WcMode.FULL}.get(width, WcMode.MIXED)

    if len(rows) == 1:
        return _format(rows[0][0], mode)

    names = [name for _, name in rows if name and name != "total"]
    prefix = common_prefix(names)
    lines = []
    for numbers, name in rows:
        if name == "total":
            lines.append(f"Σ {_format(numbers, mode)}")
        elif name:
            lines.append(f"{_format(numbers, mode)} {name[len(prefix):] if prefix else name}")
        else:
            lines.append(_format(numbers, mode))
    return "\n".join(lines)


class WcAdapter(Adapter):
    name = "wc"
    description = "wc: counts without padding, shared path prefix stripped"

    def __init__(self, mode: WcMode | None = None) -> None:
        self.mode = mode

    def for_command(self, argv: list[str]) -> Adapter:
        return WcAdapter(detect_mode(argv[1:]))

    def try_degraded_parse(self, data: bytes) -> DegradedResult | None:
        text = decode_lossy(data)
        errors = [ln for ln in text.splitlines() if ln.startswith("wc: ")]
        counts = "\n".join(ln for ln in text.splitlines() if not ln.startswith("wc: "))
        summary = render_counts(counts, self.mode)
        if not summary:
            return None
        warnings = ["wc: padding and shared path prefix removed"]
        if errors:
            warnings.append(f"wc: {len(errors)} errors, first: {errors[0]}")
        return summary, warnings
