"""
Adapter factory.

Builds the four registry-level adapters from configuration. Tests and
embedders can pass their own mapping to ``WormRegistry`` instead.
"""

from __future__ import annotations

import logging
from typing import TYPE_CHECKING

from .base import LanguageAdapter
from .cpp import CppAdapter
from .go import GoAdapter
from .native import NativeAdapter
from .python import PythonAdapter

if TYPE_CHECKING:
    from ..core.config import WormConfig

logger = logging.getLogger(__name__)

# Session attribute name -> adapter class
ADAPTER_TYPES: dict[str, type[LanguageAdapter]] = {
    "js": NativeAdapter,
    "python": PythonAdapter,
    "go": GoAdapter,
    "cpp": CppAdapter,
}


def create_adapters(config: WormConfig) -> dict[str, LanguageAdapter]:
    """
    Create one adapter per language.

    Args:
        config: Resolved WORM configuration

    Returns:
        Mapping of facade name (``js``, ``python``, ``go``, ``cpp``) to adapter
    """
    adapters = {name: adapter_type(config) for name, adapter_type in ADAPTER_TYPES.items()}
    for name, adapter in adapters.items():
        if not adapter.is_available():
            logger.debug("%s toolchain not found; %s calls will be simulated", adapter.language, name)
    return adapters


def get_toolchain_info(config: WormConfig) -> list[dict[str, str | bool]]:
    """Report the configured executable and availability for each external toolchain."""
    settings = config.adapters
    rows: list[tuple[str, str, LanguageAdapter]] = [
        ("Python", settings.python.executable, PythonAdapter(config)),
        ("Go", settings.go.executable, GoAdapter(config)),
        ("C++", settings.cpp.compiler, CppAdapter(config)),
    ]
    return [
        {"language": language, "executable": executable, "available": adapter.is_available()}
        for language, executable, adapter in rows
    ]
