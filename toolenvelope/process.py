"""
Process boundary for Tool Envelope.

Two ways to run the wrapped command:

- captured: stdout/stderr collected as bytes, then classified
- streaming: stdio inherited, nothing collected (interactive tools)

Both return a RawExecution. A command that cannot be started raises
SpawnFailure; nothing else here raises for a command that ran.
"""

from __future__ import annotations

from dataclasses import dataclass
import logging
import os
import shlex
import subprocess
import time

from .errors import SpawnFailure

logger = logging.getLogger(__name__)

SIGNAL_EXIT_BASE = 128
TIMEOUT_EXIT = 124


@dataclass(frozen=True)
class RawExecution:
    """One finished run of an external command. Never mutated."""

    command_line: str
    wrapped_command: str
    returncode: int
    stdout_bytes: bytes = b""
    stderr_bytes: bytes = b""
    duration_ms: int = 0
    timed_out: bool = False
    streamed: bool = False

    @property
    def signal_number(self) -> int | None:
        """Signal that killed the process (subprocess reports it as -N)."""
        return -self.returncode if self.returncode < 0 else None

    @property
    def terminated_by_signal(self) -> bool:
        return self.returncode < 0

    @property
    def exit_code(self) -> int:
        """Status to propagate: the real code, or 128+N for signal N."""
        if self.returncode < 0:
            return SIGNAL_EXIT_BASE - self.returncode
        return self.returncode

    @property
    def raw_byte_length(self) -> int:
        return len(self.stdout_bytes) + len(self.stderr_bytes)

    @property
    def combined_bytes(self) -> bytes:
        """stdout followed by stderr, newline-separated when both exist."""
        if self.stdout_bytes and self.stderr_bytes:
            sep = b"" if self.stdout_bytes.endswith(b"\n") else b"\n"
            return self.stdout_bytes + sep + self.stderr_bytes
        return self.stdout_bytes or self.stderr_bytes


def command_line(argv: list[str]) -> str:
    return shlex.join(argv)


def _spawn_error(argv: list[str], exc: OSError) -> SpawnFailure:
    if isinstance(exc, FileNotFoundError):
        reason = "command not found"
    elif isinstance(exc, PermissionError):
        reason = "permission denied"
    else:
        reason = exc.strerror or str(exc)
    return SpawnFailure(argv, reason)


def _check_cwd(cwd: str | None) -> str | None:
    if cwd is None:
        return None
    cwd = os.path.expanduser(cwd)
    if not os.path.isdir(cwd):
        raise SpawnFailure([], f"working directory does not exist: {cwd}")
    return cwd


def run_captured(
    argv: list[str],
    *,
    wrapped_command: str = "",
    cwd: str | None = None,
    env: dict[str, str] | None = None,
    timeout: float | None = None,
) -> RawExecution:
    """
    Run argv to completion with stdout/stderr captured as bytes.

    Args:
        argv: Program and arguments (no shell)
        wrapped_command: How the user invoked TE, for tracking
        cwd: Working directory (defaults to current)
        env: Environment variable overrides
        timeout: Seconds before the child is killed (None = wait forever)

    Raises:
        SpawnFailure: The program could not be started
    """
    if not argv:
        raise SpawnFailure(argv, "empty command")
    cwd = _check_cwd(cwd)
    proc_env = {**os.environ, **env} if env else None

    start_ns = time.perf_counter_ns()
    try:
        result = subprocess.run(
            argv,
            capture_output=True,
            cwd=cwd,
            env=proc_env,
            timeout=timeout,
            check=False,
        )
    except subprocess.TimeoutExpired as e:
        elapsed = (time.perf_counter_ns() - start_ns) // 1_000_000
        logger.warning(f"Command timed out after {timeout}s: {command_line(argv)}")
        return RawExecution(
            command_line=command_line(argv),
            wrapped_command=wrapped_command,
            returncode=TIMEOUT_EXIT,
            stdout_bytes=e.stdout or b"",
            stderr_bytes=e.stderr or b"",
            duration_ms=elapsed,
            timed_out=True,
        )
    except OSError as e:
        raise _spawn_error(argv, e) from e

    elapsed = (time.perf_counter_ns() - start_ns) // 1_000_000
    logger.debug(f"Ran {argv[0]} (exit={result.returncode}, {elapsed}ms)")
    return RawExecution(
        command_line=command_line(argv),
        wrapped_command=wrapped_command,
        returncode=result.returncode,
        stdout_bytes=result.stdout or b"",
        stderr_bytes=result.stderr or b"",
        duration_ms=elapsed,
    )


def run_streaming(
    argv: list[str],
    *,
    wrapped_command: str = "",
    cwd: str | None = None,
    env: dict[str, str] | None = None,
    timeout: float | None = None,
) -> RawExecution:
    """Run argv with inherited stdio. Only the exit status comes back."""
    if not argv:
        raise SpawnFailure(argv, "empty command")
    cwd = _check_cwd(cwd)
    proc_env = {**os.environ, **env} if env else None

    start_ns = time.perf_counter_ns()
    timed_out = False
    try:
        returncode = subprocess.run(
            argv, cwd=cwd, env=proc_env, timeout=timeout, check=False
        ).returncode
    except subprocess.TimeoutExpired:
        logger.warning(f"Streaming command timed out after {timeout}s: {command_line(argv)}")
        returncode = TIMEOUT_EXIT
        timed_out = True
    except OSError as e:
        raise _spawn_error(argv, e) from e

    return RawExecution(
        command_line=command_line(argv),
        wrapped_command=wrapped_command,
        returncode=returncode,
        duration_ms=(time.perf_counter_ns() - start_ns) // 1_000_000,
        timed_out=timed_out,
        streamed=True,
    )
