"""
Execution & tracking protocol.

One invocation is one straight line:

    spawn -> capture/stream -> classify -> compact -> guard
          -> emit -> persist -> terminate

``execute`` runs everything up to and including persist and hands back
the status to exit with. ``terminate`` is the only way out, so a tracking
record for a failing command is always written before the process ends.
"""

from __future__ import annotations

from dataclasses import dataclass
import logging
import os
import sys
from typing import TextIO

from rich.console import Console
from rich.markup import escape

from .adapters import Adapter, get_adapter
from .classifier import ClassificationOutcome, classify, passthrough, render
from .config import TeConfig, get_te_config
from .errors import TrackingWriteError
from .guard import guard
from .process import RawExecution, command_line, run_captured, run_streaming
from .text import decode_lossy
from .tracking import TeTimer, Tracker, TrackingRecord, default_db_path

logger = logging.getLogger(__name__)

err_console = Console(stderr=True)


@dataclass(frozen=True)
class PipelineResult:
    """What one invocation produced."""

    exit_code: int
    output: str
    mode: str
    raw: RawExecution
    record: TrackingRecord | None = None
    tracked: bool = False


def tracker_for(config: TeConfig) -> Tracker | None:
    if not config.tracking_enabled:
        return None
    return Tracker(default_db_path(config.tracking_db_path), config.retention_days)


def persist_record(tracker: Tracker | None, record: TrackingRecord) -> bool:
    """Append the record. A failed write is reported, never fatal."""
    if tracker is None:
        return False
    try:
        tracker.record(record)
    except TrackingWriteError as e:
        logger.warning(str(e), extra={"cmd": record.original_command})
        err_console.print(f"[yellow]\\[te] warning:[/yellow] {escape(str(e))}", highlight=False)
        return False
    return True


def _emit(text: str, out: TextIO | None) -> bool:
    """Write the rendered text. A closed or broken stdout never stops Persist."""
    stream = out or sys.stdout
    try:
        if text:
            stream.write(text if text.endswith("\n") else text + "\n")
        stream.flush()
    except (OSError, ValueError) as e:
        logger.warning(f"could not write output: {e}")
        if isinstance(e, BrokenPipeError) and stream is sys.stdout:
            _silence_stdout()
        return False
    return True


def _silence_stdout() -> None:
    # Point fd 1 at devnull so the interpreter's final flush can't fail again.
    try:
        devnull = os.open(os.devnull, os.O_WRONLY)
        os.dup2(devnull, sys.stdout.fileno())
    except (OSError, ValueError):
        pass


def _render(
    outcome: ClassificationOutcome, raw: RawExecution, cfg: TeConfig
) -> tuple[ClassificationOutcome, str]:
    try:
        return outcome, render(outcome, max_depth=cfg.max_depth, limits=cfg.limits)
    except RecursionError:
        logger.warning("structured output nested too deeply to render, passing through")
        fallback = passthrough(raw, cfg.passthrough_lines)
        return fallback, render(fallback)


def execute(
    argv: list[str],
    adapter: Adapter | str | None = None,
    *,
    config: TeConfig | None = None,
    tracker: Tracker | None = None,
    stream: bool = False,
    raw: bool | None = None,
    wrapped_command: str | None = None,
    cwd: str | None = None,
    out: TextIO | None = None,
) -> PipelineResult:
    """
    Run argv through the full pipeline and persist its tracking record.

    Args:
        argv: Command to wrap
        adapter: Adapter instance or registry name (None = generic)
        config: TE config (loaded from toolenvelope.toml if None)
        tracker: Tracking store (built from config if None)
        stream: Inherit stdio instead of capturing (no classification)
        raw: Force passthrough and skip the guard (defaults to TE_RAW)
        wrapped_command: How TE was invoked, for tracking
        cwd: Working directory for the command
        out: Where rendered output goes (default stdout)

    Returns:
        PipelineResult; its exit_code is the wrapped command's status.

    Raises:
        SpawnFailure: The command could not be started. Nothing is tracked.
    """
    cfg = config or get_te_config()
    if not isinstance(adapter, Adapter):
        adapter = get_adapter(adapter)
    adapter = adapter.for_command(argv)
    if tracker is None:
        tracker = tracker_for(cfg)
    raw_mode = cfg.raw if raw is None else raw
    wrapped = wrapped_command or f"te run {command_line(argv)}"

    with TeTimer() as timer:
        if stream:
            execution = run_streaming(
                argv, wrapped_command=wrapped, cwd=cwd, timeout=cfg.timeout_s
            )
        else:
            execution = run_captured(
                argv, wrapped_command=wrapped, cwd=cwd, timeout=cfg.timeout_s
            )

    if stream:
        record = TrackingRecord.for_stream(
            original_command=execution.command_line,
            wrapped_command=wrapped,
            exec_time_ms=timer.elapsed_ms,
            exit_code=execution.exit_code,
        )
        tracked = persist_record(tracker, record)
        return PipelineResult(execution.exit_code, "", "stream", execution, record, tracked)

    outcome = classify(
        execution,
        adapter,
        passthrough_lines=cfg.passthrough_lines,
        force_passthrough=raw_mode,
    )
    outcome, text = _render(outcome, execution, cfg)

    if execution.timed_out:
        text = f"{text}\n[te] command timed out after {cfg.timeout_s}s".lstrip("\n")

    if not raw_mode and cfg.guard_enabled:
        text = guard(
            text,
            execution.exit_code,
            decode_lossy(execution.stderr_bytes),
            patterns=cfg.success_patterns.extend(adapter.success_patterns),
            stderr_lines=cfg.guard_stderr_lines,
        )

    _emit(text, out)

    mode = "raw" if raw_mode else outcome.mode
    logger.info(
        f"{adapter.name}: {mode}, exit={execution.exit_code}",
        extra={"cmd": execution.command_line, "exit_code": execution.exit_code, "mode": mode},
    )
    record = TrackingRecord.for_output(
        original_command=execution.command_line,
        wrapped_command=wrapped,
        raw_text=decode_lossy(execution.combined_bytes),
        filtered_text=text,
        raw_byte_length=execution.raw_byte_length,
        exec_time_ms=timer.elapsed_ms,
        exit_code=execution.exit_code,
        mode=mode,
    )
    tracked = persist_record(tracker, record)
    return PipelineResult(execution.exit_code, text, mode, execution, record, tracked)


def terminate(exit_code: int) -> None:
    """Flush stdio and leave with exit_code. Call only after execute returned."""
    for stream in (sys.stdout, sys.stderr):
        try:
            stream.flush()
        except (OSError, ValueError):
            pass
    raise SystemExit(exit_code)
