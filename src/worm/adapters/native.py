"""
Native (in-process) facade.

Runs caller-supplied callables directly. There is no string evaluation:
``execute`` takes a callable, so the caller decides exactly what code is
reachable. Exceptions raised by user callables propagate unchanged.

The array/object/math/string helpers give the same fluent shape the
external facades expose:

    session.js.array(range(1, 11)).filter(lambda x: x % 2 == 0).map(lambda x: x * x).sum()
    # 220
"""

from __future__ import annotations

import functools
import math
import random
from collections.abc import Callable, Iterable
from typing import TYPE_CHECKING, Any

from .base import AdapterResult, LanguageAdapter, LanguageFacade, format_call

if TYPE_CHECKING:
    from ..core.registry import Session

_MISSING = object()


class NativeFunction:
    """A named in-process callable that records each call."""

    def __init__(self, func: Callable[..., Any], name: str, facade: NativeFacade):
        self.func = func
        self.name = name
        self.facade = facade

    def __repr__(self) -> str:
        return f"NativeFunction({self.name!r})"

    def call(self, *args: Any) -> Any:
        result = self.func(*args)
        self.facade.record(format_call(self.facade.namespace, self.name, args), result)
        return result

    __call__ = call

    def map(self, items: Iterable[Any]) -> list[Any]:
        return [self.func(item) for item in items]

    def filter(self, items: Iterable[Any]) -> list[Any]:
        return [item for item in items if self.func(item)]


class NativeArray:
    """Immutable-style list wrapper; every transform returns a new array."""

    def __init__(self, data: Any, facade: NativeFacade):
        if isinstance(data, (list, tuple, range)):
            self.data = list(data)
        else:
            self.data = [data]
        self.facade = facade

    def __repr__(self) -> str:
        return f"NativeArray({self.data!r})"

    def __len__(self) -> int:
        return len(self.data)

    def __iter__(self):
        return iter(self.data)

    def map(self, func: Callable[[Any], Any]) -> NativeArray:
        return NativeArray([func(x) for x in self.data], self.facade)

    def filter(self, func: Callable[[Any], Any]) -> NativeArray:
        return NativeArray([x for x in self.data if func(x)], self.facade)

    def reduce(self, func: Callable[[Any, Any], Any], initial: Any = _MISSING) -> Any:
        if initial is _MISSING:
            return functools.reduce(func, self.data)
        return functools.reduce(func, self.data, initial)

    def sum(self) -> Any:
        return sum(self.data)

    def mean(self) -> float:
        if not self.data:
            return math.nan
        return self.sum() / len(self.data)

    def length(self) -> int:
        return len(self.data)

    def sort(self, key: Callable[[Any], Any] | None = None, reverse: bool = False) -> NativeArray:
        return NativeArray(sorted(self.data, key=key, reverse=reverse), self.facade)

    def to_list(self) -> list[Any]:
        return list(self.data)


class NativeObject:
    """Dict wrapper with chainable ``set``."""

    def __init__(self, data: dict[str, Any] | None, facade: NativeFacade):
        self.data = dict(data or {})
        self.facade = facade

    def get(self, key: str) -> Any:
        return self.data.get(key)

    def set(self, key: str, value: Any) -> NativeObject:
        self.data[key] = value
        return self

    def keys(self) -> list[str]:
        return list(self.data)

    def values(self) -> list[Any]:
        return list(self.data.values())

    def to_dict(self) -> dict[str, Any]:
        return dict(self.data)


class NativeMath:
    def sqrt(self, x: float) -> float:
        return math.sqrt(x)

    def pow(self, base: float, exp: float) -> float:
        return math.pow(base, exp)

    def random(self) -> float:
        return random.random()

    def round(self, x: float) -> int:
        # Half-up rounding, not banker's rounding
        return math.floor(x + 0.5)


class NativeString:
    def __init__(self, value: Any, facade: NativeFacade):
        self.value = str(value)
        self.facade = facade

    def __str__(self) -> str:
        return self.value

    def __repr__(self) -> str:
        return f"NativeString({self.value!r})"

    def to_upper(self) -> NativeString:
        return NativeString(self.value.upper(), self.facade)

    def to_lower(self) -> NativeString:
        return NativeString(self.value.lower(), self.facade)

    def split(self, separator: str | None = None) -> NativeArray:
        return NativeArray(self.value.split(separator), self.facade)

    def length(self) -> int:
        return len(self.value)


class NativeFacade(LanguageFacade):
    """In-process facade; calls are synchronous and never degraded."""

    language = "Native"
    namespace = "js"

    def __init__(self, session: Session, adapter: NativeAdapter):
        super().__init__(session, adapter)
        self.functions: dict[str, NativeFunction] = {}

    def function(self, code: Callable[..., Any], name: str = "anonymous", **kwargs: Any) -> NativeFunction:
        if not callable(code):
            raise TypeError(f"Native functions must be callables, got {type(code).__name__}")
        func = NativeFunction(code, name, self)
        self.functions[name] = func
        return func

    async def execute(self, code: Callable[..., Any], *args: Any, label: str | None = None) -> AdapterResult:
        """
        Run a callable in-process and record it.

        Args:
            code: The callable to run (no strings; nothing is evaluated)
            *args: Positional arguments for the callable
            label: History label; defaults to ``js.execute(<name>)``
        """
        if not callable(code):
            raise TypeError("execute() takes a callable; string evaluation is not supported")
        value = code(*args)
        label = label or format_call(self.namespace, "execute", [getattr(code, "__name__", "callable")])
        self.record(label, value)
        return AdapterResult.success(value, label)

    def array(self, data: Any) -> NativeArray:
        return NativeArray(data, self)

    def object(self, data: dict[str, Any] | None = None) -> NativeObject:
        return NativeObject(data, self)

    def string(self, value: Any) -> NativeString:
        return NativeString(value, self)

    @property
    def math(self) -> NativeMath:
        return NativeMath()


class NativeAdapter(LanguageAdapter):
    language = "native"

    def create_context(self, session: Session) -> NativeFacade:
        return NativeFacade(session, self)
