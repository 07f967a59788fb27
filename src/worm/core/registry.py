"""
Session registry.

A ``WormRegistry`` owns the named sessions, one shared ContainerStore and
one adapter per language. There is no module-level instance; construct a
registry and pass it to whatever needs it.

    registry = WormRegistry(load_config())
    session = registry.create_session("analysis")
    session.set("data", [1, 2, 3])
    total = session.js.array(session.get("data")).sum()
    registry.shutdown()
"""

from __future__ import annotations

import logging
from collections import deque
from collections.abc import Mapping
from datetime import UTC, datetime
from typing import TYPE_CHECKING, Any

from pydantic import BaseModel, ConfigDict, Field

from ..adapters.factory import create_adapters
from ..container.codec import get_codec
from ..container.store import ContainerStore
from .config import WormConfig
from .errors import SessionNotFoundError, WormError

if TYPE_CHECKING:
    from ..adapters.base import LanguageAdapter, LanguageFacade
    from ..adapters.cpp import CppFacade
    from ..adapters.go import GoFacade
    from ..adapters.native import NativeFacade
    from ..adapters.python import PythonFacade

logger = logging.getLogger(__name__)


class HistoryRecord(BaseModel):
    """One completed operation in a session."""

    model_config = ConfigDict(frozen=True)

    timestamp: datetime = Field(default_factory=lambda: datetime.now(UTC))
    operation: str
    result: Any = None


class Session:
    """
    Named scope holding a key-value context and an operation history.

    Facades (``js``, ``python``, ``go``, ``cpp``) are created on first access
    and bound to this session, so every call they make lands in ``history``.
    """

    def __init__(self, name: str, registry: WormRegistry, max_history: int | None = None):
        self.name = name
        self.registry = registry
        self._context: dict[str, Any] = {}
        self._history: deque[HistoryRecord] = deque(maxlen=max_history)
        self._facades: dict[str, LanguageFacade] = {}
        self.created_at = datetime.now(UTC)

    def __repr__(self) -> str:
        return f"Session({self.name!r}, keys={len(self._context)}, history={len(self._history)})"

    # Context

    def set(self, key: str, value: Any) -> Session:
        self._context[key] = value
        return self

    def get(self, key: str, default: Any = None) -> Any:
        return self._context.get(key, default)

    def keys(self) -> list[str]:
        return list(self._context)

    @property
    def context(self) -> Mapping[str, Any]:
        return dict(self._context)

    # History

    def add_to_history(self, operation: str, result: Any) -> HistoryRecord:
        """Append a timestamped record; the oldest is dropped when ``max_history`` is reached."""
        now = datetime.now(UTC)
        if self._history and self._history[-1].timestamp > now:
            now = self._history[-1].timestamp
        record = HistoryRecord(timestamp=now, operation=operation, result=result)
        self._history.append(record)
        return record

    @property
    def history(self) -> tuple[HistoryRecord, ...]:
        return tuple(self._history)

    def cleanup(self) -> None:
        self._context.clear()
        self._history.clear()
        self._facades.clear()

    # Facades

    def _facade(self, name: str) -> Any:
        if name not in self._facades:
            self._facades[name] = self.registry.adapter(name).create_context(self)
        return self._facades[name]

    @property
    def js(self) -> NativeFacade:
        return self._facade("js")

    @property
    def python(self) -> PythonFacade:
        return self._facade("python")

    @property
    def go(self) -> GoFacade:
        return self._facade("go")

    @property
    def cpp(self) -> CppFacade:
        return self._facade("cpp")

    @property
    def container(self) -> ContainerStore:
        return self.registry.container


class WormRegistry:
    """
    Process-level owner of sessions, the container and the language adapters.

    Args:
        config: Resolved configuration (defaults when None)
        container: Shared store; built from ``config`` when None
        adapters: Adapter per facade name; built by ``create_adapters`` when None
    """

    def __init__(
        self,
        config: WormConfig | None = None,
        container: ContainerStore | None = None,
        adapters: Mapping[str, LanguageAdapter] | None = None,
    ):
        self.config = config or WormConfig()
        self.container = container or ContainerStore(
            self.config.container_path,
            embedded=self.config.embedded,
            codec=get_codec(self.config.container_format),
        )
        self.adapters = dict(adapters) if adapters is not None else create_adapters(self.config)
        self._sessions: dict[str, Session] = {}

    def __repr__(self) -> str:
        return f"WormRegistry(sessions={self.sessions})"

    def __enter__(self) -> WormRegistry:
        return self

    def __exit__(self, *exc_info: Any) -> None:
        self.shutdown()

    @property
    def sessions(self) -> list[str]:
        return list(self._sessions)

    def adapter(self, name: str) -> LanguageAdapter:
        try:
            return self.adapters[name]
        except KeyError:
            raise WormError(f"No adapter registered for {name!r}") from None

    def create_session(self, name: str = "default") -> Session:
        """
        Create and register a session.

        An existing session with the same name is cleaned up and replaced.

        Raises:
            WormError: ``max_sessions`` would be exceeded
        """
        previous = self._sessions.pop(name, None)
        if previous is not None:
            logger.warning("Session %r already exists; replacing it", name)
            previous.cleanup()
        elif len(self._sessions) >= self.config.max_sessions:
            raise WormError(
                f"Session limit reached ({self.config.max_sessions})",
                details=f"Close one of: {', '.join(self._sessions)}",
            )

        session = Session(name, self, max_history=self.config.max_history)
        self._sessions[name] = session
        logger.debug("Created session %r", name)
        return session

    def get_session(self, name: str) -> Session | None:
        return self._sessions.get(name)

    def require_session(self, name: str) -> Session:
        """
        Return a registered session.

        Raises:
            SessionNotFoundError: No session with that name
        """
        session = self._sessions.get(name)
        if session is None:
            raise SessionNotFoundError(name)
        return session

    def session(self, name: str = "default") -> Session:
        """Return the named session, creating it if needed."""
        existing = self._sessions.get(name)
        if existing is not None:
            return existing
        return self.create_session(name)

    def close_session(self, name: str) -> None:
        session = self._sessions.pop(name, None)
        if session is not None:
            session.cleanup()
            logger.debug("Closed session %r", name)

    def shutdown(self) -> None:
        """Close every session and release adapter resources."""
        for name in list(self._sessions):
            self.close_session(name)
        for adapter in self.adapters.values():
            adapter.shutdown()
