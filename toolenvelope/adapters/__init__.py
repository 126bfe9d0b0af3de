"""
Adapter registry.

The orchestration layer picks an adapter by name; the pipeline only ever
talks to the ``Adapter`` interface. Unknown names resolve to the generic
adapter so a new tool works (JSON or passthrough) before it has a module.
"""

from __future__ import annotations

import logging

from .base import Adapter, DegradedResult, GenericAdapter
from .find import FindAdapter
from .grep import GrepAdapter
from .jsonlines import JsonAdapter
from .kubectl import KubectlAdapter
from .prettier import PrettierAdapter
from .vitest import VitestAdapter
from .wc import WcAdapter

logger = logging.getLogger(__name__)

_REGISTRY: dict[str, Adapter] = {}


def register_adapter(adapter: Adapter, *, replace: bool = False) -> Adapter:
    """Add an adapter to the registry. Returns it for decorator-style use."""
    if not adapter.name or adapter.name == Adapter.name:
        raise ValueError(f"adapter needs a name: {adapter!r}")
    if adapter.name in _REGISTRY and not replace:
        raise ValueError(f"adapter already registered: {adapter.name}")
    _REGISTRY[adapter.name] = adapter
    return adapter


def get_adapter(name: str | None) -> Adapter:
    """Look up an adapter; unknown or empty names get the generic one."""
    if name and name in _REGISTRY:
        return _REGISTRY[name]
    if name:
        logger.debug(f"No adapter named {name!r}, using generic")
    return _REGISTRY["generic"]


def list_adapters() -> list[Adapter]:
    return [_REGISTRY[k] for k in sorted(_REGISTRY)]


for _adapter in (
    GenericAdapter(),
    JsonAdapter(),
    PrettierAdapter(),
    VitestAdapter(),
    GrepAdapter(),
    FindAdapter(),
    WcAdapter(),
    KubectlAdapter(),
):
    register_adapter(_adapter)

__all__ = [
    "Adapter",
    "DegradedResult",
    "GenericAdapter",
    "get_adapter",
    "list_adapters",
    "register_adapter",
]
