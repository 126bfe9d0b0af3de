"""
Prettier adapter.

Reads ``[warn] <file>`` and ``[error] <message>`` markers. Success is only
claimed when prettier itself confirms it and no marker was seen.
"""

from __future__ import annotations

from dataclasses import dataclass, field
import re

from ..text import decode_lossy, strip_ansi
from .base import Adapter, DegradedResult

ALL_FORMATTED = "All matched files use Prettier"
MAX_LISTED = 10
_EXTENSION = re.compile(r"\.[A-Za-z0-9-]{1,10}$")


@dataclass
class PrettierReport:
    """What was found in a prettier run."""

    files_to_format: list[str] = field(default_factory=list)
    errors: list[str] = field(default_factory=list)
    files_checked: int = 0
    confirmed_clean: bool = False
    write_mode: bool = False


def _looks_like_path(text: str) -> bool:
    """'[warn] src/a.ts' is a file, '[warn] Code style issues found...' is not."""
    if "/" in text or "\\" in text:
        return True
    return " " not in text and bool(_EXTENSION.search(text))


def parse_report(output: str) -> PrettierReport:
    report = PrettierReport()
    for line in output.splitlines():
        stripped = line.strip()
        if stripped.startswith("[warn] "):
            path = stripped[len("[warn] "):]
            if _looks_like_path(path):
                report.files_to_format.append(path)
        elif stripped.startswith("[error] "):
            report.errors.append(stripped[len("[error] "):])
        elif ALL_FORMATTED in stripped:
            report.confirmed_clean = True
            first = stripped.split()[0]
            if first.isdigit():
                report.files_checked = int(first)
    if "Checking formatting" not in output and ("modified" in output or "formatted" in output):
        report.write_mode = True
    return report


def render_report(report: PrettierReport) -> str:
    if not report.files_to_format and not report.errors:
        if report.confirmed_clean:
            return "✓ Prettier: All files formatted correctly"
        return ""

    lines: list[str] = []
    if report.errors:
        lines.append(f"Prettier: {len(report.errors)} errors")
        lines.append("═" * 39)
        lines.extend(f"- {err}" for err in report.errors[:MAX_LISTED])
        if len(report.errors) > MAX_LISTED:
            lines.append(f"... +{len(report.errors) - MAX_LISTED} more errors")
        lines.append("")

    if report.files_to_format:
        if report.write_mode:
            lines.append(f"Prettier: {len(report.files_to_format)} files formatted")
        else:
            lines.append(f"Prettier: {len(report.files_to_format)} files need formatting")
        lines.append("═" * 39)
        for i, path in enumerate(report.files_to_format[:MAX_LISTED], start=1):
            lines.append(f"{i}. {path}")
        if len(report.files_to_format) > MAX_LISTED:
            lines.append("")
            lines.append(f"... +{len(report.files_to_format) - MAX_LISTED} more files")
        if report.files_checked > len(report.files_to_format):
            lines.append("")
            lines.append(
                f"{report.files_checked - len(report.files_to_format)} files already formatted"
            )

    return "\n".join(lines).strip()


class PrettierAdapter(Adapter):
    name = "prettier"
    description = "prettier --check / --write: files needing formatting and syntax errors"
    success_patterns = (r"all files formatted correctly",)

    def try_degraded_parse(self, data: bytes) -> DegradedResult | None:
        report = parse_report(strip_ansi(decode_lossy(data)))
        summary = render_report(report)
        if not summary:
            return None
        return summary, ["prettier: summary built from [warn]/[error] markers"]
