"""
Container management CLI commands.

Commands for adding, listing, extracting and removing files in the
WORM container archive. Mutating commands save the archive.
"""

from __future__ import annotations

from pathlib import Path

import typer
from rich.console import Console
from rich.table import Table

from ..container.store import format_bytes
from .common import get_state, handle_errors

container_app = typer.Typer(help="Container management.", no_args_is_help=True)

console = Console()


@container_app.callback()
def container_callback(
    ctx: typer.Context,
    container: Path | None = typer.Option(  # noqa: B008
        None,
        "--container",
        "-c",
        help="Archive file (default: configured or container/container.worm)",
    ),
) -> None:
    """Select the archive the subcommands operate on."""
    if container is not None:
        get_state(ctx).container_path = container


@container_app.command("add")
def add_command(
    ctx: typer.Context,
    source: Path = typer.Argument(..., help="File or directory to add"),  # noqa: B008
    target: str | None = typer.Argument(None, help="Container path (or prefix for directories)"),
) -> None:
    """Add a file or directory to the container."""
    state = get_state(ctx)
    with handle_errors(state):
        store = state.container()
        if source.is_dir():
            added = store.add_directory(source, target if target is not None else source.resolve().name)
            typer.echo(f"Added {len(added)} files from {source}")
        else:
            path = store.add_file(source, target)
            typer.echo(f"Added {source} as {path}")
        store.save()


@container_app.command("list")
def list_command(
    ctx: typer.Context,
    prefix: str = typer.Argument("", help="Only list paths starting with this prefix"),
) -> None:
    """List files in the container."""
    state = get_state(ctx)
    with handle_errors(state):
        store = state.container()
        files = sorted(store.list(prefix))
        stats = store.stats()

        table = Table(title=f"Container contents ({stats['file_count']} files, {stats['total_size_formatted']})")
        table.add_column("Path", style="cyan")
        table.add_column("Size", justify="right")
        for path in files:
            table.add_row(path, format_bytes(len(store.read(path))))
        if not files:
            table.add_row("(empty)", "")
        console.print(table)


@container_app.command("extract")
def extract_command(
    ctx: typer.Context,
    path: str = typer.Argument(..., help="Container path to extract"),
    output: Path | None = typer.Argument(None, help="Output file (default: the container path)"),  # noqa: B008
) -> None:
    """Extract one file from the container."""
    state = get_state(ctx)
    with handle_errors(state):
        written = state.container().extract(path, output)
        typer.echo(f"Extracted {path} to {written}")


@container_app.command("extract-all")
def extract_all_command(
    ctx: typer.Context,
    output_dir: Path = typer.Argument(Path("extracted"), help="Output directory"),  # noqa: B008
) -> None:
    """Extract every file from the container."""
    state = get_state(ctx)
    with handle_errors(state):
        written = state.container().extract_all(output_dir)
        typer.echo(f"Extracted {len(written)} files to {output_dir}")


@container_app.command("remove")
def remove_command(
    ctx: typer.Context,
    path: str = typer.Argument(..., help="Container path to remove"),
) -> None:
    """Remove a file from the container."""
    state = get_state(ctx)
    with handle_errors(state):
        store = state.container()
        if store.remove(path):
            store.save()
            typer.echo(f"Removed {path}")
        else:
            typer.secho(f"File not found in container: {path}", fg=typer.colors.YELLOW)


@container_app.command("exists")
def exists_command(
    ctx: typer.Context,
    path: str = typer.Argument(..., help="Container path to check"),
) -> None:
    """Check whether a file exists in the container."""
    state = get_state(ctx)
    with handle_errors(state):
        found = state.container().exists(path)
        typer.echo(f"File {path}: {'EXISTS' if found else 'NOT FOUND'}")


@container_app.command("cat")
def cat_command(
    ctx: typer.Context,
    path: str = typer.Argument(..., help="Container path to print"),
) -> None:
    """Print a file from the container as text."""
    state = get_state(ctx)
    with handle_errors(state):
        typer.echo(state.container().read_text(path))


@container_app.command("stats")
def stats_command(ctx: typer.Context) -> None:
    """Show container statistics."""
    state = get_state(ctx)
    with handle_errors(state):
        stats = state.container().stats()
        typer.echo("Container Statistics:")
        typer.echo(f"  Files: {stats['file_count']}")
        typer.echo(f"  Total Size: {stats['total_size_formatted']}")
        typer.echo(f"  Embedded: {'Yes' if stats['is_embedded'] else 'No'}")


@container_app.command("clear")
def clear_command(
    ctx: typer.Context,
    yes: bool = typer.Option(False, "--yes", "-y", help="Skip confirmation"),
) -> None:
    """Remove every file from the container."""
    state = get_state(ctx)
    if not yes:
        typer.confirm("Remove all files from the container?", abort=True)
    with handle_errors(state):
        store = state.container()
        store.clear()
        store.save()
        typer.echo("Container cleared")
