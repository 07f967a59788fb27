"""
WORM command line.

    worm [--debug] [--timeout MS] [--session NAME] [--config PATH] COMMAND
"""

from __future__ import annotations

import asyncio
import platform
from pathlib import Path

import typer
from rich.console import Console

from .._version import get_version
from ..core.config import load_config
from ..core.errors import WormError
from ..core.logging import setup_logging
from ..pipelines import machine_learning_pipeline, run_examples, text_processing_pipeline
from ..shell import WormShell
from .common import CliState, get_state, handle_errors
from .container import container_app
from .doctor import doctor_command

app = typer.Typer(
    name="worm",
    help="WORM - one session API over Python, Go, C++ and native code, with an embedded file container.",
    add_completion=False,
    no_args_is_help=True,
)
app.add_typer(container_app, name="container")

console = Console()


def version_callback(value: bool) -> None:
    """Display version and environment information."""
    if value:
        typer.echo(f"WORM v{get_version()}")
        typer.echo(f"Python {platform.python_version()} ({platform.python_implementation()})")
        raise typer.Exit()


@app.callback()
def main_callback(
    ctx: typer.Context,
    debug: bool = typer.Option(False, "--debug", help="Enable debug logging"),
    timeout: int | None = typer.Option(None, "--timeout", help="Operation timeout in milliseconds"),
    session: str = typer.Option("main", "--session", help="Session name"),
    config: Path | None = typer.Option(  # noqa: B008
        None,
        "--config",
        help="Path to worm.toml (default: ./worm.toml if present)",
    ),
    version: bool | None = typer.Option(
        None,
        "--version",
        "-v",
        callback=version_callback,
        is_eager=True,
        help="Show version and environment information",
    ),
) -> None:
    """WORM CLI main callback for global options."""
    try:
        resolved = load_config(config)
    except (FileNotFoundError, ValueError) as e:
        typer.secho(f"Error: {e}", fg=typer.colors.RED, err=True)
        raise typer.Exit(code=1) from e

    if debug:
        resolved.debug = True
    if timeout is not None:
        resolved.timeout_ms = timeout

    setup_logging("debug" if resolved.debug else resolved.log_level)
    state = CliState(config=resolved, session_name=session)
    ctx.obj = state
    ctx.call_on_close(state.close)


@app.command()
def version() -> None:
    """Show the WORM version."""
    typer.echo(f"WORM v{get_version()}")


@app.command()
def examples(ctx: typer.Context) -> None:
    """Run the basic usage examples."""
    state = get_state(ctx)
    with handle_errors(state):
        asyncio.run(run_examples(state.registry(), console=console))


@app.command("ml-pipeline")
def ml_pipeline(
    ctx: typer.Context,
    seed: int | None = typer.Option(None, "--seed", help="Random seed for reproducible data"),
) -> None:
    """Run the machine learning demo pipeline."""
    state = get_state(ctx)
    with handle_errors(state):
        asyncio.run(machine_learning_pipeline(state.registry(), seed=seed, console=console))


@app.command("text-pipeline")
def text_pipeline(ctx: typer.Context) -> None:
    """Run the text processing demo pipeline."""
    state = get_state(ctx)
    with handle_errors(state):
        asyncio.run(text_processing_pipeline(state.registry(), console=console))


@app.command()
def interactive(ctx: typer.Context) -> None:
    """Start the interactive shell."""
    state = get_state(ctx)
    with handle_errors(state):
        shell = WormShell(state.registry(), session_name=state.session_name, console=console)
        asyncio.run(shell.run())


@app.command()
def doctor(ctx: typer.Context) -> None:
    """Check which toolchains are available."""
    doctor_command(get_state(ctx).config)


def main() -> None:
    """Console script entry point."""
    try:
        app()
    except WormError as e:
        typer.secho(f"Error: {e}", fg=typer.colors.RED, err=True)
        raise SystemExit(1) from e
