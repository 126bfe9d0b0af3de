"""
Find adapter.

Understands one-path-per-line output (find, fd). Groups files by
directory, lists the busiest extensions and counts ``find:`` errors
instead of repeating them.
"""

from __future__ import annotations

from collections import Counter
import posixpath

from ..text import decode_lossy, strip_ansi
from .base import Adapter, DegradedResult

MAX_FILES_SHOWN = 50
MAX_DIR_CHARS = 50
MAX_EXTENSIONS = 5


def _split(path: str) -> tuple[str, str]:
    path = path.rstrip("/") or path
    directory, name = posixpath.split(path)
    return (directory or "."), name


def _extension(name: str) -> str:
    ext = posixpath.splitext(name)[1]
    return ext[1:] if ext else "none"


def _dir_label(directory: str) -> str:
    if len(directory) > MAX_DIR_CHARS:
        return "..." + directory[-(MAX_DIR_CHARS - 3):]
    return directory


def parse_listing(output: str) -> tuple[list[str], list[str]]:
    """Split output into (paths, error lines). Blank lines are dropped."""
    paths, errors = [], []
    for line in output.splitlines():
        if not line.strip():
            continue
        if line.startswith(("find: ", "[fd error]")):
            errors.append(line)
        else:
            paths.append(line.rstrip())
    return paths, errors


def render_listing(paths: list[str]) -> str:
    by_dir: dict[str, list[str]] = {}
    for path in paths:
        directory, name = _split(path)
        by_dir.setdefault(directory, []).append(name)

    lines = [f"{len(paths)} files in {len(by_dir)} dirs"]
    shown = 0
    for directory in sorted(by_dir):
        if shown >= MAX_FILES_SHOWN:
            lines.append(f"...+{len(paths) - shown} more files")
            break
        names = by_dir[directory]
        lines.append(f"{_dir_label(directory)}/ {' '.join(names)}")
        shown += len(names)

    extensions = Counter(_extension(_split(p)[1]) for p in paths)
    if len(extensions) > 1:
        top = extensions.most_common(MAX_EXTENSIONS)
        lines.append("ext: " + " ".join(f".{ext}({n})" for ext, n in top))
    return "\n".join(lines)


class FindAdapter(Adapter):
    name = "find"
    description = "find / fd: files grouped by directory, extension counts"

    def try_degraded_parse(self, data: bytes) -> DegradedResult | None:
        paths, errors = parse_listing(strip_ansi(decode_lossy(data)))
        if not paths:
            return None
        # Prose is not a listing.
        if sum(1 for p in paths if " " in p) * 2 > len(paths):
            return None

        warnings = ["find: paths grouped by directory"]
        if errors:
            warnings.append(f"find: {len(errors)} errors, first: {errors[0]}")
        return render_listing(paths), warnings
