"""
Language facade interface.

Every target language (native Python, external Python, Go, C++) is
reached through the same two-level structure:

- ``LanguageAdapter``: one instance per registry. Holds configuration
  and any process-wide state (temp directories, loaded libraries) and
  creates session-bound facades.
- ``LanguageFacade``: bound to one session. Exposes ``execute`` and
  ``function`` (and ``library`` for the compiled languages) and records
  every completed call in the session history.

Calls that depend on an external toolchain never raise because the
toolchain is missing. They return an ``AdapterResult`` whose status is
``DEGRADED`` and whose value was computed natively (or is a labeled
placeholder), so callers can tell real results from stand-ins.
"""

from __future__ import annotations

import json
import logging
from abc import ABC, abstractmethod
from collections.abc import Awaitable, Callable, Iterable
from dataclasses import dataclass
from enum import StrEnum
from typing import TYPE_CHECKING, Any

from ..core.errors import BindingUnavailableError, WormError

if TYPE_CHECKING:
    from ..core.config import WormConfig
    from ..core.registry import Session

logger = logging.getLogger(__name__)


class ResultStatus(StrEnum):
    """Where an adapter result came from."""

    OK = "ok"  # Produced by the target runtime
    DEGRADED = "degraded"  # Toolchain unavailable, value is a stand-in


@dataclass(frozen=True)
class AdapterResult:
    """
    Outcome of one facade call.

    Attributes:
        value: The call's return value or captured output
        label: History label, e.g. ``go.strings.ToUpper("hi")``
        status: OK for real results, DEGRADED for simulated ones
        reason: Why the call was degraded (None when OK)
    """

    value: Any
    label: str
    status: ResultStatus = ResultStatus.OK
    reason: str | None = None

    @property
    def ok(self) -> bool:
        return self.status == ResultStatus.OK

    @property
    def degraded(self) -> bool:
        return self.status == ResultStatus.DEGRADED

    @classmethod
    def success(cls, value: Any, label: str) -> AdapterResult:
        return cls(value=value, label=label)

    @classmethod
    def simulated(cls, value: Any, label: str, reason: str) -> AdapterResult:
        return cls(value=value, label=label, status=ResultStatus.DEGRADED, reason=reason)

    def __str__(self) -> str:
        if self.degraded:
            return f"{self.value} (simulated: {self.reason})"
        return str(self.value)


def format_arg(value: Any) -> str:
    """Render one argument for a history label."""
    if isinstance(value, str):
        return json.dumps(value)
    if isinstance(value, bool):
        return "true" if value else "false"
    if isinstance(value, (list, dict, tuple)):
        return json.dumps(value, default=str)
    return str(value)


def format_call(namespace: str, name: str, args: Iterable[Any] = ()) -> str:
    """Build a history label like ``cpp.math.sqrt(25)``."""
    return f"{namespace}.{name}({', '.join(format_arg(a) for a in args)})"


Fallback = Callable[..., Any]


class LanguageFacade(ABC):
    """
    Session-bound entry point for one language.

    Implementations:
    - NativeFacade: in-process callables
    - PythonFacade: external interpreter via subprocess
    - GoFacade: ``go run`` via subprocess
    - CppFacade: ctypes-loaded shared libraries and compiler subprocesses
    """

    language: str = "abstract"
    namespace: str = "abstract"

    def __init__(self, session: Session, adapter: LanguageAdapter):
        self.session = session
        self.adapter = adapter

    @abstractmethod
    async def execute(self, code: Any) -> AdapterResult:
        """Run a complete snippet and return its captured output."""
        pass

    @abstractmethod
    def function(self, code: Any, name: str = "anonymous", **kwargs: Any) -> Any:
        """Return a callable handle for a function defined by ``code``."""
        pass

    def library(self, target: str, signatures: dict[str, Any] | None = None) -> Any:
        """Bind to an external library. Only the compiled languages support this."""
        raise WormError(f"{self.language} facade does not load libraries")

    def record(self, label: str, result: Any) -> None:
        """Append one history record to the owning session."""
        self.session.add_to_history(label, result)

    async def call_external(
        self,
        label: str,
        run: Callable[[], Awaitable[Any]],
        fallback: Fallback | None = None,
        fallback_args: tuple[Any, ...] = (),
        placeholder: Any = None,
    ) -> AdapterResult:
        """
        Run an external-toolchain call with fail-open semantics.

        A missing toolchain produces a DEGRADED result whose value comes from
        ``fallback(*fallback_args)`` or, without a fallback or when the fallback
        itself fails, ``placeholder``.
        ExecutionError (non-zero exit) propagates unchanged.
        """
        try:
            value = await run()
            result = AdapterResult.success(value, label)
        except BindingUnavailableError as e:
            logger.warning("%s unavailable, simulating %s: %s", self.language, label, e.reason)
            reason = e.reason
            value = placeholder
            if fallback is not None:
                try:
                    value = fallback(*fallback_args)
                except Exception as fallback_error:
                    logger.warning("Fallback for %s failed: %s", label, fallback_error)
                    reason = f"{e.reason}; fallback failed: {fallback_error}"
            result = AdapterResult.simulated(value, label, reason)

        self.record(label, result.value)
        return result


class LanguageAdapter(ABC):
    """
    Registry-level root object for one language.

    Creates facades bound to sessions; holds config shared by all of them.
    """

    language: str = "abstract"

    def __init__(self, config: WormConfig):
        self.config = config

    @abstractmethod
    def create_context(self, session: Session) -> LanguageFacade:
        """Create a facade bound to ``session``."""
        pass

    def is_available(self) -> bool:
        """Whether the backing toolchain can be found (in-process adapters always can)."""
        return True

    def shutdown(self) -> None:
        """Release process-wide resources (temp dirs, handles)."""
        pass
