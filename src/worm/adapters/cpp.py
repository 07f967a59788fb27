"""
C/C++ facade.

Shared libraries are bound with ``ctypes``. A signature map declares each
symbol's return and argument types by name:

    lib = session.cpp.library("./libgeometry.so", {
        "area": ("double", ["double", "double"]),
    })
    lib.function("area").call(3.0, 4.0)

If the library cannot be loaded (or a symbol is missing) the function
handle becomes a placeholder that returns ``"C++ <name> result"`` as a
DEGRADED result instead of raising.
"""

from __future__ import annotations

import ctypes
import ctypes.util
import itertools
import logging
import math
import shutil
import sys
import tempfile
from collections.abc import Callable
from pathlib import Path
from typing import TYPE_CHECKING, Any

from ..core.errors import BindingUnavailableError, ExecutionError
from .base import AdapterResult, LanguageAdapter, LanguageFacade, format_call
from .process import run_process, toolchain_available

if TYPE_CHECKING:
    from ..core.config import WormConfig
    from ..core.registry import Session

logger = logging.getLogger(__name__)

CTYPES: dict[str, Any] = {
    "int": ctypes.c_int,
    "long": ctypes.c_long,
    "float": ctypes.c_float,
    "double": ctypes.c_double,
    "bool": ctypes.c_bool,
    "char*": ctypes.c_char_p,
    "string": ctypes.c_char_p,
    "void": None,
}

Signature = str | tuple[str, list[str]]


def resolve_signature(signature: Signature) -> tuple[Any, list[Any]]:
    """
    Turn ``"double"`` or ``("double", ["int", "int"])`` into ctypes types.

    Raises:
        ValueError: Unknown type name
    """
    if isinstance(signature, str):
        restype_name, arg_names = signature, []
    else:
        restype_name, arg_names = signature
    try:
        return CTYPES[restype_name], [CTYPES[name] for name in arg_names]
    except KeyError as e:
        raise ValueError(f"Unknown C type {e.args[0]!r}; expected one of {', '.join(CTYPES)}") from e


def _shared_library_name(name: str) -> str:
    if sys.platform == "win32":
        return f"{name}.dll"
    if sys.platform == "darwin":
        return f"lib{name}.dylib"
    return f"lib{name}.so"


def _executable_name(name: str) -> str:
    return f"{name}.exe" if sys.platform == "win32" else name


class CppFunction:
    """
    One symbol of a loaded library, or a placeholder when it is not bound.

    Calls are synchronous; ctypes calls block until the native code returns.
    """

    def __init__(
        self,
        name: str,
        signature: Signature,
        facade: CppFacade,
        native: Callable[..., Any] | None = None,
        reason: str | None = None,
    ):
        self.name = name
        self.signature = signature
        self.facade = facade
        self.native = native
        self.reason = reason

    def __repr__(self) -> str:
        state = "bound" if self.is_bound else "placeholder"
        return f"CppFunction({self.name!r}, {state})"

    @property
    def is_bound(self) -> bool:
        return self.native is not None

    def call(self, *args: Any) -> AdapterResult:
        label = format_call(self.facade.namespace, self.name, args)
        if self.native is None:
            reason = self.reason or "library not loaded"
            logger.warning("Would call C++ function %s with args %s (%s)", self.name, list(args), reason)
            result = AdapterResult.simulated(f"C++ {self.name} result", label, reason)
        else:
            native_args = [a.encode("utf-8") if isinstance(a, str) else a for a in args]
            try:
                value = self.native(*native_args)
            except ctypes.ArgumentError as e:
                raise ExecutionError("C++", f"bad arguments for {self.name}: {e}") from e
            if isinstance(value, bytes):
                value = value.decode("utf-8", errors="replace")
            result = AdapterResult.success(value, label)

        self.facade.record(label, result.value)
        return result

    __call__ = call


class CppLibrary:
    """A shared library bound through ctypes."""

    def __init__(
        self,
        path: str,
        signatures: dict[str, Signature] | None,
        facade: CppFacade,
        handle: ctypes.CDLL | None = None,
        reason: str | None = None,
    ):
        self.path = path
        self.facade = facade
        self.handle = handle
        self.reason = reason
        self.functions: dict[str, CppFunction] = {}
        for name, signature in (signatures or {}).items():
            self.function(name, signature)

    def __repr__(self) -> str:
        return f"CppLibrary({self.path!r}, loaded={self.loaded})"

    @property
    def loaded(self) -> bool:
        return self.handle is not None

    def function(self, function_name: str, signature: Signature = "double") -> CppFunction:
        if function_name in self.functions:
            return self.functions[function_name]

        native = None
        reason = self.reason
        if self.handle is not None:
            try:
                native = getattr(self.handle, function_name)
            except AttributeError:
                reason = f"symbol {function_name} not found in {self.path}"
                logger.warning("C++ symbol %s missing from %s, using placeholder", function_name, self.path)
            else:
                native.restype, native.argtypes = resolve_signature(signature)

        func = CppFunction(function_name, signature, self.facade, native=native, reason=reason)
        self.functions[function_name] = func
        return func


class CppSourceFunction:
    """A function defined in C++ source, built into its own shared library."""

    def __init__(self, code: str, name: str, signature: Signature, facade: CppFacade):
        self.code = code
        self.name = name
        self.signature = signature
        self.facade = facade
        self._library: CppLibrary | None = None

    def __repr__(self) -> str:
        return f"CppSourceFunction({self.name!r})"

    async def call(self, *args: Any) -> AdapterResult:
        if self._library is None:
            self._library = await self.facade.compile(self.code, output_name=f"fn_{self.name}")
        return self._library.function(self.name, self.signature).call(*args)


class CppMath:
    """sqrt/sin/cos/pow from libm, or Python's math module (DEGRADED)."""

    def __init__(self, facade: CppFacade):
        self.facade = facade

    def _call(self, name: str, fallback: Callable[..., float], *args: float) -> AdapterResult:
        label = format_call(self.facade.namespace, f"math.{name}", args)
        libm = self.facade.adapter.libm()
        if libm is None:
            try:
                value = fallback(*args)
                reason = "libm not available"
            except (ValueError, OverflowError) as e:
                # libm answers nan or inf where Python raises
                value = math.nan
                reason = f"libm not available; fallback failed: {e}"
            result = AdapterResult.simulated(value, label, reason)
        else:
            native = getattr(libm, name)
            native.restype = ctypes.c_double
            native.argtypes = [ctypes.c_double] * len(args)
            result = AdapterResult.success(native(*args), label)
        self.facade.record(label, result.value)
        return result

    def sqrt(self, x: float) -> AdapterResult:
        return self._call("sqrt", math.sqrt, x)

    def sin(self, x: float) -> AdapterResult:
        return self._call("sin", math.sin, x)

    def cos(self, x: float) -> AdapterResult:
        return self._call("cos", math.cos, x)

    def pow(self, base: float, exp: float) -> AdapterResult:
        return self._call("pow", math.pow, base, exp)


class CppFacade(LanguageFacade):
    """Session-bound facade for native libraries and the C++ compiler."""

    language = "C++"
    namespace = "cpp"

    def __init__(self, session: Session, adapter: CppAdapter):
        super().__init__(session, adapter)
        self.adapter: CppAdapter = adapter
        self.libraries: dict[str, CppLibrary] = {}

    def library(self, target: str, signatures: dict[str, Signature] | None = None) -> CppLibrary:
        """Load ``target`` (cached per base name). Never raises on load failure."""
        key = Path(target).name
        if key not in self.libraries:
            try:
                handle = self.adapter.load_library(target)
            except BindingUnavailableError as e:
                logger.warning("C++ library %s will work in simulation mode: %s", target, e.reason)
                self.libraries[key] = CppLibrary(target, signatures, self, reason=e.reason)
            else:
                self.libraries[key] = CppLibrary(target, signatures, self, handle=handle)
        return self.libraries[key]

    def function(
        self,
        code: str,
        name: str = "anonymous",
        signature: Signature = "double",
        **kwargs: Any,
    ) -> CppSourceFunction:
        """Handle for an ``extern "C"`` function in ``code``; compiled on first call."""
        return CppSourceFunction(code, name, signature, self)

    async def compile(self, code: str, output_name: str = "temp_lib") -> CppLibrary:
        """
        Compile ``code`` into a shared library and load it.

        A missing compiler yields a placeholder library.

        Raises:
            ExecutionError: The compiler rejected the source
        """
        try:
            lib_path = await self.adapter.compile_shared(code, output_name)
        except BindingUnavailableError as e:
            logger.warning("C++ compiler unavailable, %s will work in simulation mode: %s", output_name, e.reason)
            return CppLibrary(_shared_library_name(output_name), None, self, reason=e.reason)
        # A fresh build replaces any cached handle for the same name
        self.libraries.pop(lib_path.name, None)
        return self.library(str(lib_path))

    async def execute(self, code: str) -> AdapterResult:
        """Compile ``code`` as a program, run it, and return its trimmed stdout."""

        async def _run() -> str:
            return await self.adapter.compile_and_run(code)

        label = format_call(self.namespace, "execute", [code.strip()])
        return await self.call_external(label, _run, placeholder="Simulated C++ result")

    @property
    def math(self) -> CppMath:
        return CppMath(self)


class CppAdapter(LanguageAdapter):
    language = "cpp"

    def __init__(self, config: WormConfig):
        super().__init__(config)
        self.settings = config.adapters.cpp
        self._libraries: dict[str, ctypes.CDLL] = {}
        self._libm: ctypes.CDLL | None = None
        self._libm_checked = False
        self._work_dir: Path | None = None
        self._counter = itertools.count(1)

    @property
    def compiler(self) -> str:
        return self.settings.compiler

    @property
    def work_dir(self) -> Path:
        if self._work_dir is None:
            self._work_dir = Path(tempfile.mkdtemp(prefix="worm-cpp-"))
        return self._work_dir

    def is_available(self) -> bool:
        return toolchain_available(self.compiler)

    def load_library(self, path: str) -> ctypes.CDLL:
        """
        Load and cache a shared library.

        Raises:
            BindingUnavailableError: The loader rejected the file
        """
        if path not in self._libraries:
            try:
                self._libraries[path] = ctypes.CDLL(path)
            except OSError as e:
                raise BindingUnavailableError("C++", f"could not load {path}: {e}") from e
        return self._libraries[path]

    def libm(self) -> ctypes.CDLL | None:
        if not self._libm_checked:
            self._libm_checked = True
            name = ctypes.util.find_library("m")
            if name is not None:
                try:
                    self._libm = self.load_library(name)
                except BindingUnavailableError as e:
                    logger.warning("libm unavailable, C++ math will work in simulation mode: %s", e.reason)
        return self._libm

    def _compile_argv(self, source: Path, output: Path, shared: bool) -> list[str]:
        if Path(self.compiler).stem.lower() == "cl":
            argv = [self.compiler]
            if shared:
                argv.append("/LD")
            return [*argv, str(source), f"/Fe:{output}"]

        argv = [self.compiler, *self.settings.flags]
        if shared:
            argv += ["-shared", "-fPIC"]
        argv += [f"-I{p}" for p in self.settings.include_paths]
        argv += [str(source), "-o", str(output)]
        argv += [f"-L{p}" for p in self.settings.library_paths]
        argv += self.settings.libraries
        return argv

    async def _compile(self, code: str, name: str, shared: bool) -> Path:
        source = self.work_dir / f"{name}.cpp"
        output = self.work_dir / (_shared_library_name(name) if shared else _executable_name(name))
        source.write_text(code, encoding="utf-8")
        await run_process(
            self._compile_argv(source, output, shared),
            language="C++",
            cwd=self.work_dir,
            timeout=self.config.effective_timeout(self.settings.timeout_ms),
        )
        logger.info("Compiled %s", output)
        return output

    async def compile_shared(self, code: str, output_name: str) -> Path:
        return await self._compile(code, output_name, shared=True)

    async def compile_and_run(self, code: str) -> str:
        program = await self._compile(code, f"program_{next(self._counter)}", shared=False)
        try:
            output = await run_process(
                [str(program)],
                language="C++",
                cwd=self.work_dir,
                timeout=self.config.effective_timeout(self.settings.timeout_ms),
            )
        finally:
            program.unlink(missing_ok=True)
        return output.stdout.strip()

    def create_context(self, session: Session) -> CppFacade:
        return CppFacade(session, self)

    def shutdown(self) -> None:
        self._libraries.clear()
        self._libm = None
        self._libm_checked = False
        if self._work_dir is not None:
            shutil.rmtree(self._work_dir, ignore_errors=True)
            self._work_dir = None
