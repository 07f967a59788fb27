"""
Shared CLI state and error handling.
"""

from __future__ import annotations

import traceback
from collections.abc import Iterator
from contextlib import contextmanager
from dataclasses import dataclass, field
from pathlib import Path

import typer

from ..container.codec import get_codec
from ..container.store import ContainerStore
from ..core.config import WormConfig
from ..core.errors import WormError
from ..core.registry import WormRegistry


@dataclass
class CliState:
    """Global options resolved by the main callback, shared via ``ctx.obj``."""

    config: WormConfig = field(default_factory=WormConfig)
    session_name: str = "main"
    container_path: Path | None = None
    _registry: WormRegistry | None = None

    def container(self) -> ContainerStore:
        if self._registry is not None:
            return self._registry.container
        return ContainerStore(
            self.container_path or self.config.container_path,
            embedded=self.config.embedded,
            codec=get_codec(self.config.container_format),
        )

    def registry(self) -> WormRegistry:
        if self._registry is None:
            self._registry = WormRegistry(self.config, container=self.container())
        return self._registry

    def close(self) -> None:
        if self._registry is not None and self.config.auto_cleanup:
            self._registry.shutdown()


def get_state(ctx: typer.Context) -> CliState:
    state = ctx.find_root().obj
    if not isinstance(state, CliState):
        state = CliState()
        ctx.find_root().obj = state
    return state


@contextmanager
def handle_errors(state: CliState) -> Iterator[None]:
    """Turn WormError into a red message and exit code 1."""
    try:
        yield
    except WormError as e:
        typer.secho(f"Error: {e}", fg=typer.colors.RED, err=True)
        if state.config.debug:
            typer.echo(traceback.format_exc(), err=True)
        raise typer.Exit(code=1) from e
