"""Tests for the in-process (native) facade."""

from __future__ import annotations

import math

import pytest

from worm.adapters.base import AdapterResult, format_arg, format_call
from worm.core.errors import WormError
from worm.core.registry import Session


class TestLabels:
    @pytest.mark.parametrize(
        ("value", "expected"),
        [
            ("hi", '"hi"'),
            (True, "true"),
            (3, "3"),
            (2.5, "2.5"),
            ([1, 2], "[1, 2]"),
            ({"a": 1}, '{"a": 1}'),
        ],
    )
    def test_format_arg(self, value, expected: str) -> None:
        assert format_arg(value) == expected

    def test_format_call(self) -> None:
        assert format_call("go", "strings.ToUpper", ["hi"]) == 'go.strings.ToUpper("hi")'
        assert format_call("cpp", "math.pow", (2, 8)) == "cpp.math.pow(2, 8)"


class TestNativeArray:
    def test_even_squares_sum(self, session: Session) -> None:
        result = (
            session.js.array([1, 2, 3, 4, 5, 6, 7, 8, 9, 10])
            .filter(lambda x: x % 2 == 0)
            .map(lambda x: x * x)
            .sum()
        )
        assert result == 220

    def test_reduce_with_and_without_initial(self, session: Session) -> None:
        array = session.js.array([1, 2, 3])
        assert array.reduce(lambda a, b: a + b) == 6
        assert array.reduce(lambda a, b: a + b, 10) == 16

    def test_mean_and_length(self, session: Session) -> None:
        array = session.js.array([1, 2, 3, 4, 5])
        assert array.mean() == 3
        assert array.length() == 5
        assert len(array) == 5

    def test_mean_of_empty_is_nan(self, session: Session) -> None:
        assert math.isnan(session.js.array([]).mean())

    def test_sort_returns_new_array(self, session: Session) -> None:
        original = session.js.array([3, 1, 2])
        assert original.sort().to_list() == [1, 2, 3]
        assert original.sort(reverse=True).to_list() == [3, 2, 1]
        assert original.to_list() == [3, 1, 2]

    def test_scalar_is_wrapped(self, session: Session) -> None:
        assert session.js.array(7).to_list() == [7]

    def test_user_errors_propagate(self, session: Session) -> None:
        with pytest.raises(ZeroDivisionError):
            session.js.array([1, 0]).map(lambda x: 1 / x)


class TestNativeString:
    def test_split(self, session: Session) -> None:
        assert session.js.string("hello world").split(" ").to_list() == ["hello", "world"]

    def test_case(self, session: Session) -> None:
        value = session.js.string("hello world")
        assert str(value.to_upper()) == "HELLO WORLD"
        assert str(session.js.string("MiXeD").to_lower()) == "mixed"
        assert value.length() == 11


class TestNativeObjectAndMath:
    def test_object(self, session: Session) -> None:
        obj = session.js.object({"a": 1}).set("b", 2).set("c", 3)
        assert obj.get("b") == 2
        assert obj.get("zzz") is None
        assert obj.keys() == ["a", "b", "c"]
        assert obj.values() == [1, 2, 3]
        assert obj.to_dict() == {"a": 1, "b": 2, "c": 3}

    def test_math(self, session: Session) -> None:
        m = session.js.math
        assert m.sqrt(16) == 4
        assert m.pow(2, 3) == 8
        assert 0 <= m.random() < 1

    @pytest.mark.parametrize(("value", "expected"), [(2.5, 3), (-2.5, -2), (1.4, 1)])
    def test_round_half_up(self, session: Session, value: float, expected: int) -> None:
        assert session.js.math.round(value) == expected


class TestNativeFunction:
    def test_call_records_history(self, session: Session) -> None:
        double = session.js.function(lambda x: x * 2, "double")
        assert double.call(5) == 10
        assert double(6) == 12

        assert [(r.operation, r.result) for r in session.history] == [("js.double(5)", 10), ("js.double(6)", 12)]

    def test_map_and_filter(self, session: Session) -> None:
        is_even = session.js.function(lambda x: x % 2 == 0, "is_even")
        assert is_even.filter(range(6)) == [0, 2, 4]
        assert is_even.map([1, 2]) == [False, True]

    def test_requires_callable(self, session: Session) -> None:
        with pytest.raises(TypeError, match="callables"):
            session.js.function("x => x * 2", "arrow")

    def test_user_exception_propagates_without_record(self, session: Session) -> None:
        def boom(_):
            raise RuntimeError("user failure")

        with pytest.raises(RuntimeError, match="user failure"):
            session.js.function(boom, "boom").call(1)
        assert session.history == ()


class TestNativeExecute:
    @pytest.mark.asyncio
    async def test_execute_callable(self, session: Session) -> None:
        def total(*values):
            return sum(values)

        result = await session.js.execute(total, 1, 2, 3)

        assert isinstance(result, AdapterResult)
        assert result.ok
        assert result.value == 6
        assert session.history[-1].operation == 'js.execute("total")'

    @pytest.mark.asyncio
    async def test_execute_custom_label(self, session: Session) -> None:
        result = await session.js.execute(lambda: "done", label="js.cleanup()")
        assert result.label == "js.cleanup()"
        assert session.history[-1].operation == "js.cleanup()"

    @pytest.mark.asyncio
    async def test_execute_rejects_strings(self, session: Session) -> None:
        with pytest.raises(TypeError, match="string evaluation"):
            await session.js.execute("1 + 1")
        assert session.history == ()

    def test_library_not_supported(self, session: Session) -> None:
        with pytest.raises(WormError, match="Native facade does not load libraries"):
            session.js.library("libc.so.6")
