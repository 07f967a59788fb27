"""
External Python facade.

Each call writes a script to a temporary directory and runs it with the
configured interpreter (``WORM_PYTHON`` / ``[adapters.python].executable``).
Arguments are passed as a JSON literal and decoded inside the script, so
any JSON-serialisable value round-trips.

If the interpreter cannot be started the call degrades: the optional
``fallback`` callable computes the value in-process, otherwise the
placeholder ``["Simulated Python result"]`` is returned.
"""

from __future__ import annotations

import json
import logging
import math
import statistics
import tempfile
from pathlib import Path
from typing import TYPE_CHECKING, Any

from ..core.errors import WormError
from .base import AdapterResult, Fallback, LanguageAdapter, LanguageFacade, format_call
from .process import ProcessOutput, run_process, toolchain_available

if TYPE_CHECKING:
    from ..core.config import WormConfig
    from ..core.registry import Session

logger = logging.getLogger(__name__)

SIMULATED_OUTPUT = ["Simulated Python result"]

_CALL_TEMPLATE = """\
{code}

import json as _worm_json
_worm_args = _worm_json.loads({args_literal})
result = {target}(*_worm_args)
print(result)
"""


class PythonFunction:
    """Handle for a function defined by a Python snippet."""

    def __init__(
        self,
        code: str,
        name: str,
        facade: PythonFacade,
        fallback: Fallback | None = None,
        target: str | None = None,
    ):
        self.code = code
        self.name = name
        self.target = target or name
        self.facade = facade
        self.fallback = fallback

    def __repr__(self) -> str:
        return f"PythonFunction({self.name!r})"

    def script(self, args: tuple[Any, ...]) -> str:
        return _CALL_TEMPLATE.format(
            code=self.code,
            args_literal=repr(json.dumps(list(args))),
            target=self.target,
        )

    async def call(self, *args: Any) -> AdapterResult:
        """
        Run the function in the external interpreter.

        Returns the printed result as a string (OK) or the fallback value
        (DEGRADED) when the interpreter is unavailable.
        """

        async def _run() -> str:
            output = await self.facade.run(self.script(args))
            return output.stdout.strip()

        return await self.facade.call_external(
            format_call(self.facade.namespace, self.name, args),
            _run,
            fallback=self.fallback,
            fallback_args=args,
            placeholder=SIMULATED_OUTPUT[0],
        )


class PythonModule:
    """Handle for ``import <name>`` in the external interpreter."""

    def __init__(self, name: str, facade: PythonFacade):
        self.name = name
        self.facade = facade
        self.functions: dict[str, PythonFunction] = {}

    def function(self, function_name: str, fallback: Fallback | None = None) -> PythonFunction:
        key = f"{self.name}.{function_name}"
        if key not in self.functions:
            self.functions[key] = PythonFunction(
                f"import {self.name}",
                key,
                self.facade,
                fallback=fallback,
                target=key,
            )
        return self.functions[key]

    def array(self, data: list[Any]) -> PythonArray:
        if self.name != "numpy":
            raise WormError(f"Array method not available for module {self.name}")
        return PythonArray(data, self.facade)


class PythonArray:
    """numpy array helpers evaluated in the external interpreter."""

    def __init__(self, data: list[Any], facade: PythonFacade):
        self.data = list(data)
        self.facade = facade

    def _script(self, expression: str) -> str:
        return (
            "import json\n"
            "import numpy as np\n"
            f"array = np.array(json.loads({json.dumps(self.data)!r}))\n"
            f"print({expression})\n"
        )

    async def _evaluate(self, op: str, expression: str, parse: Any, fallback: Fallback) -> AdapterResult:
        async def _run() -> Any:
            output = await self.facade.run(self._script(expression))
            return parse(output.stdout.strip())

        return await self.facade.call_external(
            format_call(self.facade.namespace, f"numpy.array.{op}", [self.data]),
            _run,
            fallback=fallback,
        )

    async def mean(self) -> AdapterResult:
        return await self._evaluate("mean", "array.mean()", float, self._native_mean)

    def _native_mean(self) -> float:
        return statistics.fmean(self.data) if self.data else math.nan

    async def sum(self) -> AdapterResult:
        return await self._evaluate("sum", "array.sum()", float, lambda: float(sum(self.data)))

    async def shape(self) -> AdapterResult:
        return await self._evaluate("shape", "array.shape", str, lambda: str(_shape(self.data)))


def _shape(data: Any) -> tuple[int, ...]:
    dims: list[int] = []
    while isinstance(data, list):
        dims.append(len(data))
        if not data:
            break
        data = data[0]
    return tuple(dims)


class PythonFacade(LanguageFacade):
    """Session-bound facade for the external Python interpreter."""

    language = "Python"
    namespace = "python"

    def __init__(self, session: Session, adapter: PythonAdapter):
        super().__init__(session, adapter)
        self.adapter: PythonAdapter = adapter
        self.imports: dict[str, PythonModule] = {}

    async def run(self, code: str) -> ProcessOutput:
        """
        Run a script and return its raw output.

        Raises:
            BindingUnavailableError: Interpreter not startable
            ExecutionError: Script exited non-zero
        """
        return await self.adapter.run_script(code)

    async def execute(self, code: str) -> AdapterResult:
        """Run a snippet; the value is the list of non-empty stdout lines."""

        async def _run() -> list[str]:
            return (await self.run(code)).lines

        label = format_call(self.namespace, "execute", [code.strip()])
        return await self.call_external(label, _run, placeholder=list(SIMULATED_OUTPUT))

    def function(
        self,
        code: str,
        name: str = "anonymous",
        fallback: Fallback | None = None,
        **kwargs: Any,
    ) -> PythonFunction:
        return PythonFunction(code, name, self, fallback=fallback)

    def import_module(self, module_name: str) -> PythonModule:
        if module_name not in self.imports:
            self.imports[module_name] = PythonModule(module_name, self)
        return self.imports[module_name]


class PythonAdapter(LanguageAdapter):
    language = "python"

    def __init__(self, config: WormConfig):
        super().__init__(config)
        self.settings = config.adapters.python

    @property
    def executable(self) -> str:
        return self.settings.executable

    def is_available(self) -> bool:
        return toolchain_available(self.executable)

    async def run_script(self, code: str) -> ProcessOutput:
        with tempfile.TemporaryDirectory(prefix="worm-python-") as tmp:
            script = Path(tmp) / "snippet.py"
            script.write_text(code, encoding="utf-8")
            return await run_process(
                [self.executable, str(script)],
                language="Python",
                cwd=Path(tmp),
                timeout=self.config.effective_timeout(self.settings.timeout_ms),
            )

    def create_context(self, session: Session) -> PythonFacade:
        return PythonFacade(session, self)
