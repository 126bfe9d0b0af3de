"""
Tracking store for Tool Envelope.

Append-only SQLite log of every wrapped invocation: what ran, how big the
raw output was, how big the rendered output was, how long it took and how
it exited. Reporting on this table is somebody else's job; TE only ever
inserts one row per invocation.

Many TE processes write concurrently (parallel CI jobs, an agent and a
human). Each insert is a single transaction on its own connection with a
busy timeout, so rows never interleave.
"""

from __future__ import annotations

from contextlib import closing
from dataclasses import dataclass
from datetime import datetime, timedelta, timezone
import logging
import os
from pathlib import Path
import sqlite3
import time

from .errors import TrackingWriteError
from .text import estimate_tokens

logger = logging.getLogger(__name__)

BUSY_TIMEOUT_S = 5.0
HISTORY_DAYS = 90
PROJECT_MARKERS = (".git", "pyproject.toml", "package.json", "Cargo.toml", "go.mod")

_SCHEMA = """
    CREATE TABLE IF NOT EXISTS commands (
        id INTEGER PRIMARY KEY AUTOINCREMENT,
        timestamp TEXT NOT NULL,
        original_cmd TEXT NOT NULL,
        wrapped_cmd TEXT NOT NULL,
        raw_bytes INTEGER NOT NULL,
        filtered_bytes INTEGER NOT NULL,
        input_tokens INTEGER NOT NULL,
        output_tokens INTEGER NOT NULL,
        saved_tokens INTEGER NOT NULL,
        savings_pct REAL NOT NULL,
        exec_time_ms INTEGER NOT NULL,
        exit_code INTEGER NOT NULL,
        mode TEXT NOT NULL,
        working_dir TEXT NOT NULL DEFAULT ''
    )
"""

_COLUMNS = (
    "timestamp, original_cmd, wrapped_cmd, raw_bytes, filtered_bytes, "
    "input_tokens, output_tokens, exec_time_ms, exit_code, mode, working_dir"
)


def _now_iso() -> str:
    """UTC ISO timestamp."""
    return datetime.now(timezone.utc).isoformat(timespec="milliseconds").replace("+00:00", "Z")


def detect_project_root(start: Path | None = None) -> str:
    """Walk up from start (default cwd) to the first project marker."""
    try:
        current = (start or Path.cwd()).resolve()
    except OSError:
        return ""
    for ancestor in [current, *current.parents]:
        if any((ancestor / marker).exists() for marker in PROJECT_MARKERS):
            return str(ancestor)
    return ""


def default_db_path(configured: str = "") -> Path:
    """TE_DB_PATH, then the configured path, then the XDG data dir."""
    env_path = os.getenv("TE_DB_PATH")
    if env_path:
        return Path(env_path).expanduser()
    if configured:
        return Path(configured).expanduser()
    data_home = os.getenv("XDG_DATA_HOME") or str(Path.home() / ".local" / "share")
    return Path(data_home) / "tool-envelope" / "history.db"


@dataclass(frozen=True)
class TrackingRecord:
    """One persisted invocation. Never mutated after creation."""

    timestamp: str
    original_command: str
    wrapped_command: str
    raw_byte_length: int
    filtered_byte_length: int
    exec_time_ms: int
    exit_code: int
    input_tokens: int = 0
    output_tokens: int = 0
    mode: str = "passthrough"
    working_dir: str = ""

    @property
    def saved_tokens(self) -> int:
        return max(self.input_tokens - self.output_tokens, 0)

    @property
    def savings_pct(self) -> float:
        if self.input_tokens <= 0:
            return 0.0
        return self.saved_tokens / self.input_tokens * 100.0

    @classmethod
    def for_output(
        cls,
        *,
        original_command: str,
        wrapped_command: str,
        raw_text: str,
        filtered_text: str,
        raw_byte_length: int,
        exec_time_ms: int,
        exit_code: int,
        mode: str,
        working_dir: str | None = None,
    ) -> TrackingRecord:
        """Record for a captured run: sizes and token estimates from the texts."""
        return cls(
            timestamp=_now_iso(),
            original_command=original_command,
            wrapped_command=wrapped_command,
            raw_byte_length=raw_byte_length,
            filtered_byte_length=len(filtered_text.encode("utf-8")),
            exec_time_ms=exec_time_ms,
            exit_code=exit_code,
            input_tokens=estimate_tokens(raw_text),
            output_tokens=estimate_tokens(filtered_text),
            mode=mode,
            working_dir=detect_project_root() if working_dir is None else working_dir,
        )

    @classmethod
    def for_stream(
        cls,
        *,
        original_command: str,
        wrapped_command: str,
        exec_time_ms: int,
        exit_code: int,
        working_dir: str | None = None,
    ) -> TrackingRecord:
        """Zero-savings record: timing only, so stream runs don't dilute stats."""
        return cls(
            timestamp=_now_iso(),
            original_command=original_command,
            wrapped_command=wrapped_command,
            raw_byte_length=0,
            filtered_byte_length=0,
            exec_time_ms=exec_time_ms,
            exit_code=exit_code,
            mode="stream",
            working_dir=detect_project_root() if working_dir is None else working_dir,
        )


class Tracker:
    """Append-only tracking database."""

    def __init__(self, db_path: Path, retention_days: int = HISTORY_DAYS) -> None:
        self.db_path = Path(db_path)
        self.retention_days = retention_days

    def _connect(self) -> sqlite3.Connection:
        self.db_path.parent.mkdir(parents=True, exist_ok=True)
        conn = sqlite3.connect(self.db_path, timeout=BUSY_TIMEOUT_S)
        conn.execute("PRAGMA journal_mode=WAL")
        conn.execute(_SCHEMA)
        conn.execute(
            "CREATE INDEX IF NOT EXISTS idx_commands_timestamp ON commands(timestamp)"
        )
        conn.execute(
            "CREATE INDEX IF NOT EXISTS idx_commands_working_dir ON commands(working_dir)"
        )
        conn.commit()
        return conn

    def record(self, rec: TrackingRecord) -> None:
        """Append rec. Raises TrackingWriteError; never partially writes."""
        try:
            with closing(self._connect()) as conn:
                with conn:
                    conn.execute(
                        f"""
                        INSERT INTO commands ({_COLUMNS}, saved_tokens, savings_pct)
                        VALUES (?, ?, ?, ?, ?, ?, ?, ?, ?, ?, ?, ?, ?)
                        """,
                        (
                            rec.timestamp,
                            rec.original_command,
                            rec.wrapped_command,
                            rec.raw_byte_length,
                            rec.filtered_byte_length,
                            rec.input_tokens,
                            rec.output_tokens,
                            rec.exec_time_ms,
                            rec.exit_code,
                            rec.mode,
                            rec.working_dir,
                            rec.saved_tokens,
                            rec.savings_pct,
                        ),
                    )
                    if self.retention_days > 0:
                        cutoff = datetime.now(timezone.utc) - timedelta(days=self.retention_days)
                        conn.execute(
                            "DELETE FROM commands WHERE timestamp < ?",
                            (cutoff.isoformat(timespec="milliseconds").replace("+00:00", "Z"),),
                        )
        except (sqlite3.Error, OSError) as e:
            raise TrackingWriteError(f"cannot write tracking record to {self.db_path}: {e}") from e

    def recent(self, limit: int = 10, working_dir: str | None = None) -> list[TrackingRecord]:
        """Newest records first, optionally for one project."""
        if not self.db_path.exists():
            return []
        query = f"SELECT {_COLUMNS} FROM commands"
        params: tuple = ()
        if working_dir is not None:
            query += " WHERE working_dir = ?"
            params = (working_dir,)
        query += " ORDER BY id DESC LIMIT ?"
        with closing(sqlite3.connect(self.db_path, timeout=BUSY_TIMEOUT_S)) as conn:
            rows = conn.execute(query, (*params, limit)).fetchall()
        return [
            TrackingRecord(
                timestamp=row[0],
                original_command=row[1],
                wrapped_command=row[2],
                raw_byte_length=row[3],
                filtered_byte_length=row[4],
                input_tokens=row[5],
                output_tokens=row[6],
                exec_time_ms=row[7],
                exit_code=row[8],
                mode=row[9],
                working_dir=row[10],
            )
            for row in rows
        ]


class TeTimer:
    """Context manager for timing TE operations."""

    def __init__(self) -> None:
        self.start_ns: int = 0
        self.elapsed_ms: int = 0

    def __enter__(self) -> TeTimer:
        self.start_ns = time.perf_counter_ns()
        return self

    def __exit__(self, *args) -> None:
        self.elapsed_ms = (time.perf_counter_ns() - self.start_ns) // 1_000_000
