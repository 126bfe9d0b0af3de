"""
Logging for Tool Envelope.

Logs go to stderr and default to WARNING so they never mix with the
rendered output on stdout. ``log_format = "json"`` emits one JSON object
per line for machine consumers.
"""

from __future__ import annotations

from datetime import datetime, timezone
import json
import logging
import os

from .config import TeConfig

LOGGER_NAME = "toolenvelope"
TEXT_FORMAT = "%(asctime)s [%(levelname)s] %(name)s: %(message)s"


class JsonLogFormatter(logging.Formatter):
    """JSON structured log formatter with session ID support."""

    def __init__(self) -> None:
        super().__init__()
        self.session_id = os.getenv("TE_SESSION_ID")

    def format(self, record: logging.LogRecord) -> str:
        log_data = {
            "ts": datetime.now(timezone.utc).isoformat().replace("+00:00", "Z"),
            "level": record.levelname.lower(),
            "logger": record.name,
            "msg": record.getMessage(),
        }

        if self.session_id:
            log_data["session_id"] = self.session_id

        # Extra fields passed via logger.x(..., extra={...})
        for key in ("cmd", "exit_code", "mode"):
            if hasattr(record, key):
                log_data[key] = getattr(record, key)

        if record.exc_info:
            log_data["exc"] = self.formatException(record.exc_info)

        return json.dumps(log_data, separators=(",", ":"))


def setup_logging(config: TeConfig, logger_name: str = LOGGER_NAME) -> logging.Logger:
    """Attach a single stderr handler to the package logger."""
    logger = logging.getLogger(logger_name)
    logger.handlers.clear()

    level = getattr(logging, config.log_level.upper(), logging.WARNING)
    logger.setLevel(level)

    handler = logging.StreamHandler()
    handler.setLevel(level)
    if config.log_format == "json":
        handler.setFormatter(JsonLogFormatter())
    else:
        handler.setFormatter(logging.Formatter(TEXT_FORMAT))

    logger.addHandler(handler)
    logger.propagate = False
    return logger
