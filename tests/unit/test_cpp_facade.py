"""Tests for the ctypes-backed C++ facade."""

from __future__ import annotations

import ctypes
import ctypes.util
import math
from pathlib import Path

import pytest

from worm.adapters.cpp import CppLibrary, resolve_signature
from worm.core.errors import ExecutionError, WormError
from worm.core.registry import Session

LIBM = ctypes.util.find_library("m")
needs_libm = pytest.mark.skipif(LIBM is None, reason="libm not found on this platform")


class TestSignatures:
    def test_bare_return_type(self) -> None:
        assert resolve_signature("double") == (ctypes.c_double, [])

    def test_return_and_arguments(self) -> None:
        restype, argtypes = resolve_signature(("int", ["char*", "long"]))
        assert restype is ctypes.c_int
        assert argtypes == [ctypes.c_char_p, ctypes.c_long]

    def test_void(self) -> None:
        assert resolve_signature("void") == (None, [])

    def test_unknown_type(self) -> None:
        with pytest.raises(ValueError, match="Unknown C type 'quaternion'"):
            resolve_signature(("quaternion", []))


class TestMissingLibrary:
    def test_placeholder_result_is_recorded(self, session: Session) -> None:
        lib = session.cpp.library("/nonexistent/libgeometry.so", {"area": ("double", ["double", "double"])})

        result = lib.function("area").call(3.0, 4.0)

        assert not lib.loaded
        assert result.degraded
        assert result.value == "C++ area result"
        assert "could not load" in result.reason
        assert [(r.operation, r.result) for r in session.history] == [("cpp.area(3.0, 4.0)", "C++ area result")]

    def test_functions_added_later_are_placeholders(self, session: Session) -> None:
        lib = session.cpp.library("/nonexistent/libgeometry.so")
        func = lib.function("perimeter")
        assert not func.is_bound
        assert func(1).value == "C++ perimeter result"

    def test_libraries_cached_by_base_name(self, session: Session) -> None:
        first = session.cpp.library("/one/libshared.so")
        assert session.cpp.library("/two/libshared.so") is first


@needs_libm
class TestLoadedLibrary:
    def test_bound_call(self, session: Session) -> None:
        lib = session.cpp.library(LIBM, {"pow": ("double", ["double", "double"])})

        result = lib.function("pow").call(2.0, 10.0)

        assert lib.loaded
        assert result.ok
        assert result.value == 1024.0
        assert session.history[-1].operation == "cpp.pow(2.0, 10.0)"

    def test_missing_symbol_is_placeholder(self, session: Session) -> None:
        lib = session.cpp.library(LIBM)
        result = lib.function("definitely_not_a_libm_symbol").call()

        assert result.degraded
        assert "symbol definitely_not_a_libm_symbol not found" in result.reason

    def test_bad_arguments_raise_execution_error(self, session: Session) -> None:
        lib = session.cpp.library(LIBM, {"sqrt": ("double", ["double"])})
        with pytest.raises(ExecutionError, match="bad arguments for sqrt"):
            lib.function("sqrt").call("sixteen")
        assert session.history == ()


class TestCppMath:
    def test_sqrt(self, session: Session) -> None:
        result = session.cpp.math.sqrt(25)
        assert result.value == 5.0
        assert session.history[-1].operation == "cpp.math.sqrt(25)"

    def test_pow_and_trig(self, session: Session) -> None:
        m = session.cpp.math
        assert m.pow(2, 8).value == 256.0
        assert m.sin(0).value == 0.0
        assert m.cos(0).value == 1.0
        assert len(session.history) == 3

    def test_falls_back_without_libm(self, session: Session, monkeypatch) -> None:
        monkeypatch.setattr(session.cpp.adapter, "libm", lambda: None)

        result = session.cpp.math.sqrt(16)

        assert result.degraded
        assert result.value == 4.0
        assert result.reason == "libm not available"

    def test_fallback_domain_error_is_nan(self, session: Session, monkeypatch) -> None:
        monkeypatch.setattr(session.cpp.adapter, "libm", lambda: None)

        result = session.cpp.math.sqrt(-1)

        assert result.degraded
        assert math.isnan(result.value)
        assert "fallback failed: math domain error" in result.reason
        assert [r.operation for r in session.history] == ["cpp.math.sqrt(-1)"]


class TestMissingCompiler:
    @pytest.mark.asyncio
    async def test_compile_returns_placeholder_library(self, session: Session) -> None:
        lib = await session.cpp.compile('extern "C" double twice(double x) { return 2 * x; }', "twice")

        assert isinstance(lib, CppLibrary)
        assert not lib.loaded
        assert lib.function("twice").call(2.0).value == "C++ twice result"

    @pytest.mark.asyncio
    async def test_execute_is_simulated(self, session: Session) -> None:
        result = await session.cpp.execute("int main() { return 0; }")

        assert result.degraded
        assert result.value == "Simulated C++ result"
        assert len(session.history) == 1

    @pytest.mark.asyncio
    async def test_source_function_is_simulated(self, session: Session) -> None:
        add = session.cpp.function('extern "C" double add(double a, double b) { return a + b; }', "add")
        result = await add.call(1.0, 2.0)

        assert result.degraded
        assert result.value == "C++ add result"
        assert session.history[-1].operation == "cpp.add(1.0, 2.0)"

    def test_library_is_not_supported_on_python(self, session: Session) -> None:
        with pytest.raises(WormError, match="Python facade does not load libraries"):
            session.python.library("libfoo.so")


class TestCompilerCommandLine:
    def test_gcc_style_shared(self, session: Session, tmp_path: Path) -> None:
        adapter = session.cpp.adapter
        adapter.settings.compiler = "g++"
        adapter.settings.include_paths = ["/opt/include"]
        adapter.settings.library_paths = ["/opt/lib"]

        argv = adapter._compile_argv(tmp_path / "x.cpp", tmp_path / "libx.so", shared=True)

        assert argv[0] == "g++"
        assert "-shared" in argv and "-fPIC" in argv
        assert "-I/opt/include" in argv
        assert argv.index("-o") < argv.index("-L/opt/lib")
        assert argv[-1] == "-lm"

    def test_gcc_style_executable(self, session: Session, tmp_path: Path) -> None:
        adapter = session.cpp.adapter
        adapter.settings.compiler = "clang++"
        argv = adapter._compile_argv(tmp_path / "x.cpp", tmp_path / "x", shared=False)
        assert "-shared" not in argv
        assert argv[argv.index("-o") + 1] == str(tmp_path / "x")

    def test_msvc_style(self, session: Session, tmp_path: Path) -> None:
        adapter = session.cpp.adapter
        adapter.settings.compiler = "cl"
        argv = adapter._compile_argv(tmp_path / "x.cpp", tmp_path / "x.dll", shared=True)
        assert argv == ["cl", "/LD", str(tmp_path / "x.cpp"), f"/Fe:{tmp_path / 'x.dll'}"]
