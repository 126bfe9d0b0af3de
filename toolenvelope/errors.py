"""Error taxonomy for Tool Envelope."""

from __future__ import annotations

# Exit status used when the wrapper itself breaks (not the wrapped tool).
# Kept away from 1/2 (tool failures), 124 (timeout), 126/127 (shell codes)
# and 128+N (signals).
WRAPPER_FAILURE_EXIT = 254


class ToolEnvelopeError(Exception):
    """Base class for every error raised by TE."""


class SpawnFailure(ToolEnvelopeError):
    """The external process could not be started (not found, no permission)."""

    def __init__(self, argv: list[str], reason: str):
        self.argv = list(argv)
        self.reason = reason
        program = argv[0] if argv else "<empty>"
        super().__init__(f"failed to start {program}: {reason}")


class StructuredParseError(ToolEnvelopeError):
    """Raw output is not in the adapter's structured format."""


class TrackingWriteError(ToolEnvelopeError):
    """The tracking record could not be appended to the store."""


class ConfigError(ToolEnvelopeError):
    """toolenvelope.toml exists but could not be read."""
