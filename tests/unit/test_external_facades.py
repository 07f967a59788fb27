"""Tests for the subprocess-backed Python and Go facades."""

from __future__ import annotations

import json
import math
import sys
from pathlib import Path

import pytest

from worm.adapters import go as go_module
from worm.adapters import python as python_module
from worm.adapters.base import ResultStatus
from worm.adapters.go import format_go_arg, generate_call_program
from worm.adapters.process import ProcessOutput, run_process
from worm.core.errors import BindingUnavailableError, ExecutionError, WormError
from worm.core.registry import Session


class FakeRunner:
    """Stand-in for run_process that records argv and script contents."""

    def __init__(self, stdout: str = "", returncode: int = 0):
        self.stdout = stdout
        self.returncode = returncode
        self.calls: list[list[str]] = []
        self.sources: list[str] = []

    async def __call__(self, argv, *, language, cwd=None, env=None, timeout=None):
        self.calls.append(list(argv))
        for arg in argv:
            if arg.endswith((".py", ".go")) and Path(arg).exists():
                self.sources.append(Path(arg).read_text())
        if self.returncode != 0:
            raise ExecutionError(language, "boom", self.returncode)
        return ProcessOutput(stdout=self.stdout, stderr="", returncode=0)


class TestRunProcess:
    @pytest.mark.asyncio
    async def test_missing_program_is_binding_unavailable(self) -> None:
        with pytest.raises(BindingUnavailableError):
            await run_process(["/nonexistent/program"], language="Python")

    @pytest.mark.asyncio
    async def test_captures_stdout(self) -> None:
        output = await run_process([sys.executable, "-c", "print('a'); print(''); print('b')"], language="Python")
        assert output.returncode == 0
        assert output.lines == ["a", "b"]

    @pytest.mark.asyncio
    async def test_non_zero_exit_raises(self) -> None:
        code = "import sys; sys.stderr.write('bad things'); sys.exit(3)"
        with pytest.raises(ExecutionError) as exc_info:
            await run_process([sys.executable, "-c", code], language="Python")
        assert exc_info.value.returncode == 3
        assert str(exc_info.value).startswith("Python execution failed: bad things")

    @pytest.mark.asyncio
    async def test_timeout_kills_child(self) -> None:
        with pytest.raises(ExecutionError, match="timed out"):
            await run_process([sys.executable, "-c", "import time; time.sleep(10)"], language="Python", timeout=0.2)


class TestPythonFacadeDegraded:
    @pytest.mark.asyncio
    async def test_execute_returns_placeholder(self, session: Session) -> None:
        result = await session.python.execute("print(2 + 3)")

        assert result.status == ResultStatus.DEGRADED
        assert result.value == ["Simulated Python result"]
        assert "cannot start" in result.reason
        assert len(session.history) == 1
        assert session.history[0].operation.startswith("python.execute(")

    @pytest.mark.asyncio
    async def test_function_uses_fallback(self, session: Session) -> None:
        add = session.python.function("def add(a, b):\n    return a + b", "add", fallback=lambda a, b: a + b)
        result = await add.call(2, 3)

        assert result.degraded
        assert result.value == 5
        assert [(r.operation, r.result) for r in session.history] == [("python.add(2, 3)", 5)]

    @pytest.mark.asyncio
    async def test_numpy_array_falls_back_to_native(self, session: Session) -> None:
        array = session.python.import_module("numpy").array([1, 2, 3, 4])

        assert (await array.mean()).value == 2.5
        assert (await array.sum()).value == 10.0
        assert (await array.shape()).value == "(4,)"
        assert len(session.history) == 3

    @pytest.mark.asyncio
    async def test_numpy_mean_of_empty_array_is_nan(self, session: Session) -> None:
        result = await session.python.import_module("numpy").array([]).mean()

        assert result.degraded
        assert math.isnan(result.value)
        assert len(session.history) == 1

    @pytest.mark.asyncio
    async def test_failing_fallback_becomes_placeholder(self, session: Session) -> None:
        div = session.python.function("def div(a, b):\n    return a / b", "div", fallback=lambda a, b: a / b)
        result = await div.call(1, 0)

        assert result.degraded
        assert result.value == "Simulated Python result"
        assert "fallback failed: division by zero" in result.reason
        assert [r.operation for r in session.history] == ["python.div(1, 0)"]

    def test_array_only_for_numpy(self, session: Session) -> None:
        with pytest.raises(WormError, match="Array method not available"):
            session.python.import_module("pandas").array([1])

    def test_modules_are_cached(self, session: Session) -> None:
        numpy = session.python.import_module("numpy")
        assert session.python.import_module("numpy") is numpy
        assert numpy.function("mean") is numpy.function("mean")


class TestPythonFacadeWithInterpreter:
    @pytest.mark.asyncio
    async def test_execute_returns_stdout_lines(self, session: Session, monkeypatch) -> None:
        runner = FakeRunner(stdout="5\nsecond line\n")
        monkeypatch.setattr(python_module, "run_process", runner)

        result = await session.python.execute("print(2 + 3)")

        assert result.ok
        assert result.value == ["5", "second line"]
        assert runner.sources == ["print(2 + 3)"]

    @pytest.mark.asyncio
    async def test_function_passes_json_args(self, session: Session, monkeypatch) -> None:
        runner = FakeRunner(stdout="[1, 2, 'x']\n")
        monkeypatch.setattr(python_module, "run_process", runner)

        func = session.python.function("def f(*a):\n    return list(a)", "f")
        result = await func.call(1, 2, "x")

        assert result.ok
        assert result.value == "[1, 2, 'x']"
        script = runner.sources[0]
        assert "def f(*a):" in script
        assert json.dumps([1, 2, "x"]) in script
        assert "result = f(*_worm_args)" in script

    @pytest.mark.asyncio
    async def test_execution_error_propagates(self, session: Session, monkeypatch) -> None:
        monkeypatch.setattr(python_module, "run_process", FakeRunner(returncode=1))

        with pytest.raises(ExecutionError, match="Python execution failed"):
            await session.python.execute("raise SystemExit(1)")
        assert session.history == ()

    @pytest.mark.asyncio
    async def test_real_interpreter(self, session: Session) -> None:
        session.python.adapter.settings.executable = sys.executable
        result = await session.python.execute("print(6 * 7)")
        assert result.ok
        assert result.value == ["42"]


class TestGoCodeGeneration:
    @pytest.mark.parametrize(
        ("value", "expected"),
        [
            ("hi", '"hi"'),
            ('say "x"', '"say \\"x\\""'),
            (3, "3"),
            (1.5, "1.5"),
            (False, "false"),
        ],
    )
    def test_format_go_arg(self, value, expected: str) -> None:
        assert format_go_arg(value) == expected

    def test_program_imports_module(self) -> None:
        program = generate_call_program("strings", "ToUpper", ("hello",))

        assert program.startswith("package main")
        assert '"fmt"' in program
        assert '"strings"' in program
        assert 'result := strings.ToUpper("hello")' in program
        assert "fmt.Print(result)" in program

    def test_fmt_is_imported_once(self) -> None:
        program = generate_call_program("fmt", "Sprint", (1,))
        assert program.count('"fmt"') == 1


class TestGoFacadeDegraded:
    @pytest.mark.asyncio
    async def test_strings_helpers_fall_back(self, session: Session) -> None:
        strings = session.go.strings

        upper = await strings.to_upper("hello")
        lower = await strings.to_lower("HeLLo")
        contains = await strings.contains("hello world", "world")

        assert (upper.value, lower.value, contains.value) == ("HELLO", "hello", True)
        assert all(r.degraded for r in (upper, lower, contains))
        assert [r.operation for r in session.history] == [
            'go.strings.ToUpper("hello")',
            'go.strings.ToLower("HeLLo")',
            'go.strings.Contains("hello world", "world")',
        ]

    @pytest.mark.asyncio
    async def test_module_function_placeholder(self, session: Session) -> None:
        result = await session.go.module("strconv").function("Itoa").call(5)
        assert result.degraded
        assert result.value == "Simulated Go strconv.Itoa result"
        assert len(session.history) == 1

    @pytest.mark.asyncio
    async def test_check_installation_false(self, session: Session) -> None:
        assert await session.go.adapter.check_installation() is False

    def test_library_is_module(self, session: Session) -> None:
        assert session.go.library("math") is session.go.math
        assert session.go.fmt.name == "fmt"
        assert session.go.time.name == "time"

    def test_strings_module_is_shared(self, session: Session) -> None:
        assert session.go.module("strings") is session.go.strings
        assert isinstance(session.go.library("strings"), go_module.GoStrings)


class TestGoFacadeWithToolchain:
    @pytest.mark.asyncio
    async def test_contains_parses_bool(self, session: Session, monkeypatch) -> None:
        runner = FakeRunner(stdout="true")
        monkeypatch.setattr(go_module, "run_process", runner)

        result = await session.go.strings.contains("WORM rocks", "WORM")

        assert result.ok
        assert result.value is True
        argv = runner.calls[0]
        assert argv[:2] == [session.go.adapter.executable, "run"]
        assert 'strings.Contains("WORM rocks", "WORM")' in runner.sources[0]

    @pytest.mark.asyncio
    async def test_temp_source_is_removed(self, session: Session, monkeypatch) -> None:
        monkeypatch.setattr(go_module, "run_process", FakeRunner(stdout="ok\n"))

        result = await session.go.execute('package main\nfunc main() { println("ok") }')

        assert result.value == "ok"
        assert list(session.go.adapter.work_dir.glob("temp_*.go")) == []

    @pytest.mark.asyncio
    async def test_user_function(self, session: Session, monkeypatch) -> None:
        runner = FakeRunner(stdout="5")
        monkeypatch.setattr(go_module, "run_process", runner)

        add = session.go.function("func Add(a, b int) int { return a + b }", "Add")
        result = await add.call(2, 3)

        assert result.value == "5"
        assert "fmt.Print(Add(2, 3))" in runner.sources[0]
        assert session.history[-1].operation == "go.Add(2, 3)"

    def test_shutdown_removes_work_dir(self, session: Session) -> None:
        work_dir = session.go.adapter.work_dir
        assert work_dir.exists()
        session.go.adapter.shutdown()
        assert not work_dir.exists()
