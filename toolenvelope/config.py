"""
Configuration for Tool Envelope.

Loads from the [tool_envelope] section of toolenvelope.toml at the repo
root. Every knob has a default; a missing or broken file never stops a
command from running.

Environment overrides:
    TE_RAW=1        skip classification and the guard (debug escape hatch)
    TE_DB_PATH      tracking database location
    TE_LOG_LEVEL    log level for the toolenvelope logger
"""

from __future__ import annotations

from dataclasses import dataclass, field
from functools import lru_cache
import logging
import os
from pathlib import Path
import re
import tomllib
from typing import Any

from .compactor import DEFAULT_MAX_DEPTH, CompactLimits
from .errors import ConfigError
from .guard import DEFAULT_STDERR_LINES, SuccessPatterns

logger = logging.getLogger(__name__)

CONFIG_FILENAME = "toolenvelope.toml"
DEFAULT_PASSTHROUGH_LINES = 100
DEFAULT_RETENTION_DAYS = 90

_TRUTHY = {"1", "true", "yes", "on"}


def _find_repo_root(start: Path | None = None) -> Path:
    """Find the git repository root."""
    start = start or Path.cwd()
    current = start.resolve()
    for ancestor in [current, *current.parents]:
        if (ancestor / ".git").exists():
            return ancestor
    return current


def _read_toml(path: Path) -> dict[str, Any]:
    try:
        with open(path, "rb") as f:
            return tomllib.load(f)
    except (OSError, tomllib.TOMLDecodeError) as e:
        raise ConfigError(f"cannot read {path}: {e}") from e


@lru_cache
def load_config(repo_root: Path | None = None) -> dict[str, Any]:
    """Load toolenvelope.toml configuration."""
    root = repo_root or _find_repo_root()
    path = root / CONFIG_FILENAME
    if not path.exists():
        return {}
    try:
        return _read_toml(path)
    except ConfigError as e:
        logger.warning(f"{e}; using defaults")
        return {}


def env_flag(name: str) -> bool:
    return os.getenv(name, "").strip().lower() in _TRUTHY


def _table(parent: dict[str, Any], name: str) -> dict[str, Any]:
    value = parent.get(name, {})
    if not isinstance(value, dict):
        raise ConfigError(f"[tool_envelope.{name}] must be a table, got {type(value).__name__}")
    return value


def _check(value: Any, kind: type | tuple[type, ...], key: str, minimum: int | None = None) -> Any:
    # bool is an int subclass; only accept it where a bool is asked for.
    if isinstance(value, bool) and kind is not bool:
        raise ConfigError(f"{key} must be {_kind_name(kind)}, got a boolean")
    if not isinstance(value, kind):
        raise ConfigError(f"{key} must be {_kind_name(kind)}, got {type(value).__name__}")
    if minimum is not None and value < minimum:
        raise ConfigError(f"{key} must be >= {minimum}, got {value}")
    return value


def _kind_name(kind: type | tuple[type, ...]) -> str:
    if isinstance(kind, tuple):
        return " or ".join(k.__name__ for k in kind)
    return kind.__name__


def _patterns(value: Any) -> list[str]:
    _check(value, list, "guard.extra_success_patterns")
    valid = []
    for pattern in value:
        try:
            _check(pattern, str, "guard.extra_success_patterns[]")
            re.compile(pattern)
        except (ConfigError, re.error) as e:
            logger.warning(f"{CONFIG_FILENAME}: ignoring success pattern {pattern!r}: {e}")
            continue
        valid.append(pattern)
    return valid


class _Reader:
    """Pulls typed values out of the parsed TOML, falling back per key."""

    def __init__(self, root: dict[str, Any]) -> None:
        try:
            self.root = _table(root, "tool_envelope") if root else {}
        except ConfigError as e:
            logger.warning(f"{CONFIG_FILENAME}: {e}; using defaults")
            self.root = {}

    def section(self, name: str) -> dict[str, Any]:
        try:
            return _table(self.root, name)
        except ConfigError as e:
            logger.warning(f"{CONFIG_FILENAME}: {e}; using defaults")
            return {}

    def get(self, table: dict[str, Any], key: str, default: Any, kind, minimum=None) -> Any:
        if key not in table:
            return default
        try:
            return _check(table[key], kind, key, minimum)
        except ConfigError as e:
            logger.warning(f"{CONFIG_FILENAME}: {e}; using {default!r}")
            return default


@dataclass
class TeConfig:
    """Tool Envelope configuration."""

    enabled: bool = True
    max_depth: int = DEFAULT_MAX_DEPTH
    limits: CompactLimits = field(default_factory=CompactLimits)
    passthrough_lines: int = DEFAULT_PASSTHROUGH_LINES

    # Guard
    guard_enabled: bool = True
    guard_stderr_lines: int = DEFAULT_STDERR_LINES
    extra_success_patterns: list[str] = field(default_factory=list)

    # Execution
    timeout_s: float | None = None

    # Tracking
    tracking_enabled: bool = True
    tracking_db_path: str = ""
    retention_days: int = DEFAULT_RETENTION_DAYS

    # Logging
    log_level: str = "warning"
    log_format: str = "text"

    # Escape hatch
    raw: bool = False

    @property
    def success_patterns(self) -> SuccessPatterns:
        return SuccessPatterns.build(self.extra_success_patterns)


def get_te_config(repo_root: Path | None = None) -> TeConfig:
    """
    Load TE configuration from toolenvelope.toml plus environment.

    A value of the wrong type, a section that is not a table or a regex
    that does not compile is logged and replaced by its default.
    """
    reader = _Reader(load_config(repo_root or _find_repo_root()))
    te_cfg = reader.root

    compact = reader.section("compact")
    passthrough = reader.section("passthrough")
    guard = reader.section("guard")
    execution = reader.section("execution")
    tracking = reader.section("tracking")
    log = reader.section("logging")

    defaults = CompactLimits()
    timeout = reader.get(execution, "timeout_s", 0, (int, float), minimum=0)

    patterns: list[str] = []
    if "extra_success_patterns" in guard:
        try:
            patterns = _patterns(guard["extra_success_patterns"])
        except ConfigError as e:
            logger.warning(f"{CONFIG_FILENAME}: {e}; using []")

    return TeConfig(
        enabled=reader.get(te_cfg, "enabled", True, bool),
        max_depth=reader.get(te_cfg, "max_depth", DEFAULT_MAX_DEPTH, int, minimum=0),
        limits=CompactLimits(
            string_max_chars=reader.get(
                compact, "string_max_chars", defaults.string_max_chars, int, minimum=0
            ),
            string_preview_chars=reader.get(
                compact, "string_preview_chars", defaults.string_preview_chars, int, minimum=0
            ),
            array_preview_items=reader.get(
                compact, "array_preview_items", defaults.array_preview_items, int, minimum=0
            ),
            object_max_keys=reader.get(
                compact, "object_max_keys", defaults.object_max_keys, int, minimum=0
            ),
        ),
        passthrough_lines=reader.get(
            passthrough, "max_lines", DEFAULT_PASSTHROUGH_LINES, int, minimum=0
        ),
        guard_enabled=reader.get(guard, "enabled", True, bool),
        guard_stderr_lines=reader.get(
            guard, "stderr_lines", DEFAULT_STDERR_LINES, int, minimum=0
        ),
        extra_success_patterns=patterns,
        timeout_s=float(timeout) if timeout else None,
        tracking_enabled=reader.get(tracking, "enabled", True, bool),
        tracking_db_path=reader.get(tracking, "database_path", "", str),
        retention_days=reader.get(
            tracking, "retention_days", DEFAULT_RETENTION_DAYS, int, minimum=0
        ),
        log_level=os.getenv("TE_LOG_LEVEL") or reader.get(log, "level", "warning", str),
        log_format=reader.get(log, "format", "text", str),
        raw=env_flag("TE_RAW"),
    )
