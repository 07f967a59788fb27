"""
WORM core: configuration, environment detection, errors and logging.

The session registry lives in ``worm.core.registry``.
"""

from .config import WormConfig, load_config
from .errors import (
    ArchiveDecodeError,
    BindingUnavailableError,
    CommandParseError,
    EntryNotFoundError,
    ExecutionError,
    InvalidEntryPathError,
    NotFoundError,
    SessionNotFoundError,
    SourceNotFoundError,
    WormError,
)

__all__ = [
    "WormConfig",
    "load_config",
    "ArchiveDecodeError",
    "BindingUnavailableError",
    "CommandParseError",
    "EntryNotFoundError",
    "ExecutionError",
    "InvalidEntryPathError",
    "NotFoundError",
    "SessionNotFoundError",
    "SourceNotFoundError",
    "WormError",
]
