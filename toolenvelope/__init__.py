"""
Tool Envelope (TE) - compact, trustworthy output for wrapped shell tools.

TE runs a third-party command, captures its raw output and re-renders it
into a token-efficient form for an LLM or a human operator. The rendering
never hides a failure, never drops a real value and never chokes on bad
bytes.

Philosophy: LLMs already know Unix. Give them less noise, not less truth.
"""

from __future__ import annotations

__version__ = "0.2.0"
