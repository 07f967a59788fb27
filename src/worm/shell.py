"""
Interactive WORM shell.

Input lines are parsed into a closed set of command dataclasses and
dispatched through a table; nothing the user types is evaluated as code.
Arguments are Python literals read with ``ast.literal_eval``, plus
``session.get('key')`` as a reference to a stored value.

    worm> session.set('data', [10, 20, 30])
    worm> js.array(session.get('data')).mean()
    20.0
"""

from __future__ import annotations

import ast
import asyncio
import json
import re
from collections.abc import Awaitable, Callable
from dataclasses import dataclass
from typing import Any

from rich.console import Console
from rich.pretty import Pretty
from rich.table import Table
from rich.text import Text

from .adapters.base import AdapterResult
from .core.errors import CommandParseError, WormError
from .core.registry import Session, WormRegistry

HELP_TEXT = """\
Interactive Commands:
  help                              Show this help
  exit                              Exit interactive mode
  session.set('key', value)         Store a literal value in the session
  session.get('key')                Show a stored value
  session.history                   Show operation history
  container.list('prefix')          List container files (prefix optional)
  container.read('path')            Print a container file
  container.stats()                 Show container statistics
  js.array([1, 2, 3]).sum()         Array ops: sum, mean, length, sort
  js.math.sqrt(16)                  Math ops: sqrt, pow, round
  js.string('a b').split(' ')       String ops: upper, lower, split, length
  cpp.math.sqrt(25)                 C++ math: sqrt, sin, cos, pow
  python.execute('print(1 + 1)')    Run a Python snippet
  go.strings.ToUpper('hi')          Go strings: ToUpper, ToLower, Contains

Examples:
  session.set('data', [10, 20, 30])
  js.array(session.get('data')).mean()
"""


# =============================================================================
# Commands
# =============================================================================


@dataclass(frozen=True)
class SessionRef:
    """A ``session.get('key')`` used as an argument."""

    key: str


@dataclass(frozen=True)
class Help:
    pass


@dataclass(frozen=True)
class Exit:
    pass


@dataclass(frozen=True)
class SessionSet:
    key: str
    value: Any


@dataclass(frozen=True)
class SessionGet:
    key: str


@dataclass(frozen=True)
class SessionHistory:
    pass


@dataclass(frozen=True)
class ContainerList:
    prefix: str = ""


@dataclass(frozen=True)
class ContainerRead:
    path: str


@dataclass(frozen=True)
class ContainerStats:
    pass


@dataclass(frozen=True)
class ArrayOp:
    data: Any
    op: str
    args: tuple[Any, ...] = ()


@dataclass(frozen=True)
class MathOp:
    namespace: str  # "js" or "cpp"
    op: str
    args: tuple[Any, ...]


@dataclass(frozen=True)
class StringOp:
    text: Any
    op: str
    args: tuple[Any, ...] = ()


@dataclass(frozen=True)
class PythonExecute:
    code: str


@dataclass(frozen=True)
class GoStringsOp:
    op: str
    args: tuple[Any, ...]


Command = (
    Help
    | Exit
    | SessionSet
    | SessionGet
    | SessionHistory
    | ContainerList
    | ContainerRead
    | ContainerStats
    | ArrayOp
    | MathOp
    | StringOp
    | PythonExecute
    | GoStringsOp
)

ARRAY_OPS = ("sum", "mean", "length", "sort")
STRING_OPS = {"upper": "to_upper", "lower": "to_lower", "split": "split", "length": "length"}
MATH_OPS = {"js": ("sqrt", "pow", "round"), "cpp": ("sqrt", "sin", "cos", "pow")}
GO_STRINGS_OPS = {"ToUpper": "to_upper", "ToLower": "to_lower", "Contains": "contains"}


# =============================================================================
# Parsing
# =============================================================================

_CALL = re.compile(r"^(?P<name>[A-Za-z_][\w.]*)\((?P<args>.*)\)$", re.DOTALL)
_CHAINED = re.compile(
    r"^(?P<name>[A-Za-z_][\w.]*)\((?P<args>.*)\)\.(?P<method>\w+)\((?P<margs>.*)\)$",
    re.DOTALL,
)
_SESSION_REF = re.compile(r"^\s*session\.get\((?P<key>.+)\)\s*$", re.DOTALL)


def parse_args(text: str) -> tuple[Any, ...]:
    """
    Parse a comma-separated argument list of literals.

    Raises:
        CommandParseError: Anything that is not a literal
    """
    if not text.strip():
        return ()
    ref = _SESSION_REF.match(text)
    if ref:
        key = parse_args(ref.group("key"))
        if len(key) != 1 or not isinstance(key[0], str):
            raise CommandParseError("session.get() takes one string key")
        return (SessionRef(key[0]),)
    try:
        value = ast.literal_eval(f"({text},)")
    except (ValueError, TypeError, SyntaxError) as e:
        raise CommandParseError(f"Invalid arguments: {text}", details=str(e)) from None
    return tuple(value)


def _split_call(line: str) -> tuple[str, tuple[Any, ...], str | None, tuple[Any, ...]]:
    chained = _CHAINED.match(line)
    if chained:
        try:
            return (
                chained.group("name"),
                parse_args(chained.group("args")),
                chained.group("method"),
                parse_args(chained.group("margs")),
            )
        except CommandParseError:
            # The first ")." may sit inside a string literal
            pass
    call = _CALL.match(line)
    if not call:
        raise CommandParseError(f"Unknown command: {line}", details='Type "help" for commands')
    return call.group("name"), parse_args(call.group("args")), None, ()


def _expect(args: tuple[Any, ...], count: int, usage: str) -> tuple[Any, ...]:
    if len(args) != count:
        raise CommandParseError(f"Usage: {usage}")
    return args


def parse_command(line: str) -> Command:
    """
    Turn one input line into a command.

    Raises:
        CommandParseError: Unknown command or malformed arguments
    """
    line = line.strip()
    if line in ("help", "?"):
        return Help()
    if line in ("exit", "quit"):
        return Exit()
    if line == "session.history":
        return SessionHistory()

    name, args, method, method_args = _split_call(line)

    if method is not None:
        if name == "js.array":
            if method not in ARRAY_OPS:
                raise CommandParseError(f"Unknown array operation: {method}")
            (data,) = _expect(args, 1, "js.array([...]).<op>()")
            return ArrayOp(data, method, method_args)
        if name == "js.string":
            if method not in STRING_OPS:
                raise CommandParseError(f"Unknown string operation: {method}")
            (text,) = _expect(args, 1, "js.string('text').<op>()")
            return StringOp(text, method, method_args)
        raise CommandParseError(f"Unknown command: {line}", details='Type "help" for commands')

    if name == "session.set":
        key, value = _expect(args, 2, "session.set('key', value)")
        return SessionSet(str(key), value)
    if name == "session.get":
        (key,) = _expect(args, 1, "session.get('key')")
        return SessionGet(str(key))
    if name == "container.list":
        return ContainerList(str(args[0]) if args else "")
    if name == "container.read":
        (path,) = _expect(args, 1, "container.read('path')")
        return ContainerRead(str(path))
    if name == "container.stats":
        return ContainerStats()
    if name == "python.execute":
        (code,) = _expect(args, 1, "python.execute('code')")
        return PythonExecute(str(code))

    namespace, _, op = name.rpartition(".")
    if namespace in ("js.math", "cpp.math"):
        lang = namespace.split(".")[0]
        if op not in MATH_OPS[lang]:
            raise CommandParseError(f"Unknown {namespace} operation: {op}")
        return MathOp(lang, op, args)
    if namespace == "go.strings":
        if op not in GO_STRINGS_OPS:
            raise CommandParseError(f"Unknown go.strings operation: {op}")
        return GoStringsOp(op, args)

    raise CommandParseError(f"Unknown command: {line}", details='Type "help" for commands')


# =============================================================================
# Dispatch
# =============================================================================


def _resolve(session: Session, value: Any) -> Any:
    if isinstance(value, SessionRef):
        return session.get(value.key)
    return value


async def _help(session: Session, cmd: Help) -> Any:
    return HELP_TEXT


async def _session_set(session: Session, cmd: SessionSet) -> Any:
    session.set(cmd.key, cmd.value)
    return f"Stored: {cmd.key} = {json.dumps(cmd.value, default=str)}"


async def _session_get(session: Session, cmd: SessionGet) -> Any:
    return session.get(cmd.key)


async def _session_history(session: Session, cmd: SessionHistory) -> Any:
    table = Table(title=f"Session '{session.name}' history")
    table.add_column("Time", style="dim")
    table.add_column("Operation", style="cyan")
    table.add_column("Result")
    for record in session.history:
        table.add_row(record.timestamp.strftime("%H:%M:%S"), record.operation, repr(record.result))
    return table


async def _container_list(session: Session, cmd: ContainerList) -> Any:
    return session.container.list(cmd.prefix)


async def _container_read(session: Session, cmd: ContainerRead) -> Any:
    return session.container.read_text(cmd.path)


async def _container_stats(session: Session, cmd: ContainerStats) -> Any:
    return session.container.stats()


async def _array_op(session: Session, cmd: ArrayOp) -> Any:
    array = session.js.array(_resolve(session, cmd.data))
    if cmd.op == "sort":
        return array.sort(reverse=bool(cmd.args and cmd.args[0])).to_list()
    return getattr(array, cmd.op)()


async def _math_op(session: Session, cmd: MathOp) -> Any:
    facade = session.js if cmd.namespace == "js" else session.cpp
    args = [_resolve(session, a) for a in cmd.args]
    try:
        return getattr(facade.math, cmd.op)(*args)
    except TypeError as e:
        raise CommandParseError(f"Bad arguments for {cmd.namespace}.math.{cmd.op}", details=str(e)) from None


async def _string_op(session: Session, cmd: StringOp) -> Any:
    value = session.js.string(_resolve(session, cmd.text))
    result = getattr(value, STRING_OPS[cmd.op])(*cmd.args)
    if hasattr(result, "to_list"):
        return result.to_list()
    return str(result) if cmd.op in ("upper", "lower") else result


async def _python_execute(session: Session, cmd: PythonExecute) -> Any:
    return await session.python.execute(cmd.code)


async def _go_strings(session: Session, cmd: GoStringsOp) -> Any:
    method = getattr(session.go.strings, GO_STRINGS_OPS[cmd.op])
    try:
        return await method(*[_resolve(session, a) for a in cmd.args])
    except TypeError as e:
        raise CommandParseError(f"Bad arguments for go.strings.{cmd.op}", details=str(e)) from None


Handler = Callable[[Session, Any], Awaitable[Any]]

HANDLERS: dict[type, Handler] = {
    Help: _help,
    SessionSet: _session_set,
    SessionGet: _session_get,
    SessionHistory: _session_history,
    ContainerList: _container_list,
    ContainerRead: _container_read,
    ContainerStats: _container_stats,
    ArrayOp: _array_op,
    MathOp: _math_op,
    StringOp: _string_op,
    PythonExecute: _python_execute,
    GoStringsOp: _go_strings,
}


async def dispatch(session: Session, command: Command) -> Any:
    """Run a parsed command against a session and return its result."""
    handler = HANDLERS.get(type(command))
    if handler is None:
        raise CommandParseError(f"Command cannot be dispatched: {type(command).__name__}")
    return await handler(session, command)


# =============================================================================
# REPL
# =============================================================================


class WormShell:
    """Read-parse-dispatch loop bound to one session."""

    prompt = "worm> "

    def __init__(self, registry: WormRegistry, session_name: str = "main", console: Console | None = None):
        self.registry = registry
        self.session = registry.session(session_name)
        self.console = console or Console()

    async def handle(self, line: str) -> bool:
        """Process one line. Returns False when the shell should exit."""
        if not line.strip():
            return True
        try:
            command = parse_command(line)
            if isinstance(command, Exit):
                return False
            result = await dispatch(self.session, command)
        except (WormError, TypeError, ValueError, ArithmeticError) as e:
            self.console.print(Text(f"Error: {e}", style="red"))
            return True
        self._show(result)
        return True

    def _show(self, result: Any) -> None:
        if isinstance(result, Table):
            self.console.print(result)
        elif isinstance(result, (str, AdapterResult)):
            self.console.print(str(result), markup=False, highlight=False)
        else:
            self.console.print(Pretty(result))

    async def run(self) -> None:
        self.console.print(Text("=== WORM Interactive Mode ===", style="bold cyan"))
        self.console.print('Type "help" for commands, "exit" to quit\n')
        while True:
            try:
                line = await asyncio.to_thread(self.console.input, self.prompt)
            except (KeyboardInterrupt, EOFError):
                self.console.print()
                break
            if not await self.handle(line):
                break
        self.console.print("Goodbye!")
