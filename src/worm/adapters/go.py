"""
Go facade.

Calls are turned into a small ``package main`` program, written to the
adapter's work directory as ``temp_<n>.go`` and run with ``go run``. The
file is removed once the process has exited.

    result = await session.go.strings.to_upper("hello")
    result.value   # "HELLO" (or the native stand-in when go is missing)
"""

from __future__ import annotations

import itertools
import json
import logging
import shutil
import tempfile
from pathlib import Path
from typing import TYPE_CHECKING, Any

from ..core.errors import BindingUnavailableError, ExecutionError
from .base import AdapterResult, Fallback, LanguageAdapter, LanguageFacade, format_call
from .process import run_process, toolchain_available

if TYPE_CHECKING:
    from ..core.config import WormConfig
    from ..core.registry import Session

logger = logging.getLogger(__name__)

STANDARD_MODULES = ("fmt", "strings", "math", "time", "strconv")


def format_go_arg(value: Any) -> str:
    """Render a Python value as a Go literal."""
    if isinstance(value, bool):
        return "true" if value else "false"
    if isinstance(value, (int, float)):
        return repr(value)
    if isinstance(value, str):
        return json.dumps(value)
    # Anything else crosses as its JSON text in a Go string
    return json.dumps(json.dumps(value, default=str))


def go_imports(module_name: str, extra: tuple[str, ...] = ()) -> str:
    names = ["fmt"]
    if module_name in STANDARD_MODULES and module_name not in names:
        names.append(module_name)
    names.extend(n for n in extra if n not in names)
    body = "\n".join(f'    "{n}"' for n in names)
    return f"import (\n{body}\n)"


def generate_call_program(module_name: str, function_name: str, args: tuple[Any, ...]) -> str:
    """Build a program that prints the result of ``module.Function(args)``."""
    call = f"{module_name}.{function_name}({', '.join(format_go_arg(a) for a in args)})"
    return (
        "package main\n\n"
        f"{go_imports(module_name)}\n\n"
        "func main() {\n"
        f"    result := {call}\n"
        "    fmt.Print(result)\n"
        "}\n"
    )


class GoFunction:
    """Handle for ``<module>.<Function>`` in a Go package."""

    def __init__(
        self,
        module_name: str,
        function_name: str,
        facade: GoFacade,
        fallback: Fallback | None = None,
    ):
        self.module_name = module_name
        self.function_name = function_name
        self.facade = facade
        self.fallback = fallback

    def __repr__(self) -> str:
        return f"GoFunction({self.module_name}.{self.function_name})"

    def generate(self, args: tuple[Any, ...]) -> str:
        return generate_call_program(self.module_name, self.function_name, args)

    async def call(self, *args: Any) -> AdapterResult:
        async def _run() -> str:
            return await self.facade.run(self.generate(args))

        return await self.facade.call_external(
            format_call(self.facade.namespace, f"{self.module_name}.{self.function_name}", args),
            _run,
            fallback=self.fallback,
            fallback_args=args,
            placeholder=f"Simulated Go {self.module_name}.{self.function_name} result",
        )


class GoModule:
    """A Go package; function handles are cached per name."""

    def __init__(self, name: str, facade: GoFacade):
        self.name = name
        self.facade = facade
        self.functions: dict[str, GoFunction] = {}

    def function(self, function_name: str, fallback: Fallback | None = None) -> GoFunction:
        if function_name not in self.functions:
            self.functions[function_name] = GoFunction(self.name, function_name, self.facade, fallback)
        return self.functions[function_name]


class GoStrings(GoModule):
    """``strings`` package with native stand-ins for the common calls."""

    def __init__(self, facade: GoFacade):
        super().__init__("strings", facade)

    async def to_upper(self, value: str) -> AdapterResult:
        return await self.function("ToUpper", fallback=str.upper).call(value)

    async def to_lower(self, value: str) -> AdapterResult:
        return await self.function("ToLower", fallback=str.lower).call(value)

    async def contains(self, value: str, substr: str) -> AdapterResult:
        func = self.function("Contains", fallback=lambda s, sub: sub in s)
        result = await func.call(value, substr)
        if result.ok:
            return AdapterResult.success(result.value == "true", result.label)
        return result


class GoUserFunction:
    """Handle for a function declared in a Go snippet."""

    def __init__(
        self,
        code: str,
        name: str,
        facade: GoFacade,
        fallback: Fallback | None = None,
        imports: tuple[str, ...] = (),
    ):
        self.code = code
        self.name = name
        self.facade = facade
        self.fallback = fallback
        self.imports = imports

    def generate(self, args: tuple[Any, ...]) -> str:
        call = f"{self.name}({', '.join(format_go_arg(a) for a in args)})"
        return (
            "package main\n\n"
            f"{go_imports('main', self.imports)}\n\n"
            f"{self.code.strip()}\n\n"
            "func main() {\n"
            f"    fmt.Print({call})\n"
            "}\n"
        )

    async def call(self, *args: Any) -> AdapterResult:
        async def _run() -> str:
            return await self.facade.run(self.generate(args))

        return await self.facade.call_external(
            format_call(self.facade.namespace, self.name, args),
            _run,
            fallback=self.fallback,
            fallback_args=args,
            placeholder=f"Simulated Go {self.name} result",
        )


class GoFacade(LanguageFacade):
    """Session-bound facade for the Go toolchain."""

    language = "Go"
    namespace = "go"

    def __init__(self, session: Session, adapter: GoAdapter):
        super().__init__(session, adapter)
        self.adapter: GoAdapter = adapter
        self._strings = GoStrings(self)
        self.modules: dict[str, GoModule] = {"strings": self._strings}

    async def run(self, code: str, args: list[str] | None = None) -> str:
        """
        Run a Go program and return its trimmed stdout.

        Raises:
            BindingUnavailableError: go toolchain not startable
            ExecutionError: Compilation or runtime failure
        """
        return await self.adapter.run_program(code, args or [])

    async def execute(self, code: str, args: list[str] | None = None) -> AdapterResult:
        async def _run() -> str:
            return await self.run(code, args)

        label = format_call(self.namespace, "execute", [code.strip()])
        return await self.call_external(label, _run, placeholder="Simulated Go result")

    def function(
        self,
        code: str,
        name: str = "anonymous",
        fallback: Fallback | None = None,
        imports: tuple[str, ...] = (),
        **kwargs: Any,
    ) -> GoUserFunction:
        return GoUserFunction(code, name, self, fallback=fallback, imports=imports)

    def module(self, module_name: str) -> GoModule:
        if module_name not in self.modules:
            self.modules[module_name] = GoModule(module_name, self)
        return self.modules[module_name]

    def library(self, target: str, signatures: dict[str, Any] | None = None) -> GoModule:
        return self.module(target)

    @property
    def strings(self) -> GoStrings:
        return self._strings

    @property
    def fmt(self) -> GoModule:
        return self.module("fmt")

    @property
    def math(self) -> GoModule:
        return self.module("math")

    @property
    def time(self) -> GoModule:
        return self.module("time")


class GoAdapter(LanguageAdapter):
    language = "go"

    def __init__(self, config: WormConfig):
        super().__init__(config)
        self.settings = config.adapters.go
        self._work_dir: Path | None = None
        self._counter = itertools.count(1)

    @property
    def executable(self) -> str:
        return self.settings.executable

    @property
    def work_dir(self) -> Path:
        if self._work_dir is None:
            self._work_dir = Path(tempfile.mkdtemp(prefix="worm-go-"))
        return self._work_dir

    def is_available(self) -> bool:
        return toolchain_available(self.executable)

    async def check_installation(self) -> bool:
        """Return True when ``go version`` runs successfully."""
        try:
            await run_process(
                [self.executable, "version"],
                language="Go",
                timeout=self.config.effective_timeout(self.settings.timeout_ms),
            )
        except (BindingUnavailableError, ExecutionError) as e:
            logger.debug("Go toolchain check failed: %s", e)
            return False
        return True

    async def run_program(self, code: str, args: list[str]) -> str:
        source = self.work_dir / f"temp_{next(self._counter)}.go"
        source.write_text(code, encoding="utf-8")
        try:
            output = await run_process(
                [self.executable, "run", *self.settings.build_flags, str(source), *args],
                language="Go",
                cwd=self.work_dir,
                env=self.settings.environment,
                timeout=self.config.effective_timeout(self.settings.timeout_ms),
            )
        finally:
            source.unlink(missing_ok=True)
        return output.stdout.strip()

    def create_context(self, session: Session) -> GoFacade:
        return GoFacade(session, self)

    def shutdown(self) -> None:
        if self._work_dir is not None:
            shutil.rmtree(self._work_dir, ignore_errors=True)
            self._work_dir = None
