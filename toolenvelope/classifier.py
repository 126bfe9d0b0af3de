"""
Tiered output classifier.

Picks exactly one reading of a finished run, in strict priority order:

1. Structured  - the adapter parsed stdout exactly
2. Degraded    - the adapter found a confident heuristic summary
3. Passthrough - the first N lines, verbatim, with an omitted-line count

No backtracking: once a tier commits, nothing from the rejected tiers is
shown. Passthrough cannot fail.
"""

from __future__ import annotations

from dataclasses import dataclass
import logging
from typing import Any, ClassVar

from .adapters import Adapter
from .compactor import DEFAULT_LIMITS, DEFAULT_MAX_DEPTH, CompactLimits, compact
from .errors import StructuredParseError
from .process import RawExecution
from .text import decode_lossy, head_lines

logger = logging.getLogger(__name__)

DEFAULT_PASSTHROUGH_LINES = 100
HEURISTIC_WARNING = "heuristic summary, not exact: re-run the raw command for full output"


@dataclass(frozen=True)
class Structured:
    value: Any
    mode: ClassVar[str] = "structured"


@dataclass(frozen=True)
class Degraded:
    summary: str
    warnings: tuple[str, ...]
    mode: ClassVar[str] = "degraded"


@dataclass(frozen=True)
class Passthrough:
    text: str
    omitted_lines: int
    mode: ClassVar[str] = "passthrough"


ClassificationOutcome = Structured | Degraded | Passthrough


def _try_structured(raw: RawExecution, adapter: Adapter) -> Structured | None:
    try:
        return Structured(adapter.try_structured_parse(raw.stdout_bytes))
    except StructuredParseError as e:
        logger.debug(f"[{adapter.name}] structured parse rejected: {e}")
    except Exception:
        logger.warning(f"[{adapter.name}] structured parser crashed", exc_info=True)
    return None


def _try_degraded(raw: RawExecution, adapter: Adapter) -> Degraded | None:
    try:
        result = adapter.try_degraded_parse(raw.combined_bytes)
    except Exception:
        logger.warning(f"[{adapter.name}] heuristic parser crashed", exc_info=True)
        return None
    if result is None:
        return None
    summary, warnings = result
    if not summary or not summary.strip():
        logger.debug(f"[{adapter.name}] heuristic summary empty, falling through")
        return None
    return Degraded(summary, tuple(warnings) or (HEURISTIC_WARNING,))


def passthrough(raw: RawExecution, max_lines: int = DEFAULT_PASSTHROUGH_LINES) -> Passthrough:
    text, omitted = head_lines(decode_lossy(raw.combined_bytes), max_lines)
    return Passthrough(text, omitted)


def classify(
    raw: RawExecution,
    adapter: Adapter,
    *,
    passthrough_lines: int = DEFAULT_PASSTHROUGH_LINES,
    force_passthrough: bool = False,
) -> ClassificationOutcome:
    """Choose the tier for one run. Deterministic for the same bytes."""
    if not force_passthrough:
        outcome = _try_structured(raw, adapter) or _try_degraded(raw, adapter)
        if outcome is not None:
            return outcome
    return passthrough(raw, passthrough_lines)


def render(
    outcome: ClassificationOutcome,
    *,
    max_depth: int = DEFAULT_MAX_DEPTH,
    limits: CompactLimits = DEFAULT_LIMITS,
) -> str:
    """Turn an outcome into the text shown to the consumer."""
    if isinstance(outcome, Structured):
        return compact(outcome.value, 0, max_depth, limits)
    if isinstance(outcome, Degraded):
        lines = [outcome.summary.rstrip("\n")]
        lines.extend(f"[warning] {w}" for w in outcome.warnings)
        return "\n".join(lines)
    if outcome.omitted_lines:
        return f"{outcome.text}\n... [{outcome.omitted_lines} lines omitted]"
    return outcome.text
