"""
WORM Doctor - toolchain health check.

Reports which external toolchains the facades can reach. Missing
toolchains are warnings, not failures: those calls run in simulation mode.
"""

from __future__ import annotations

import ctypes.util
import importlib
import sys

import typer

from ..adapters.factory import get_toolchain_info
from ..core.config import WormConfig


def doctor_command(config: WormConfig) -> None:
    """Run environment health checks for WORM."""
    ok_count = 0
    warn_count = 0
    fail_count = 0

    def _ok(msg: str) -> None:
        nonlocal ok_count
        ok_count += 1
        typer.echo(f"  [ok] {msg}")

    def _warn(msg: str) -> None:
        nonlocal warn_count
        warn_count += 1
        typer.echo(f"  [warn] {msg}")

    def _fail(msg: str) -> None:
        nonlocal fail_count
        fail_count += 1
        typer.echo(f"  [FAIL] {msg}")

    typer.echo("WORM Doctor\n")

    # 1. Python version
    typer.echo("Python:")
    v = sys.version_info
    if v >= (3, 11):
        _ok(f"Python {v.major}.{v.minor}.{v.micro}")
    else:
        _fail(f"Python {v.major}.{v.minor}.{v.micro} (3.11+ required)")

    # 2. Core packages
    typer.echo("\nCore packages:")
    for pkg in ("pydantic", "typer", "rich"):
        try:
            mod = importlib.import_module(pkg)
            version = getattr(mod, "__version__", getattr(mod, "VERSION", "?"))
            _ok(f"{pkg} {version}")
        except ImportError:
            _fail(f"{pkg} not importable")

    # 3. External toolchains
    typer.echo("\nToolchains:")
    for info in get_toolchain_info(config):
        if info["available"]:
            _ok(f"{info['language']}: {info['executable']}")
        else:
            _warn(f"{info['language']}: {info['executable']} not found (simulation mode)")

    # 4. Native math library
    typer.echo("\nNative libraries:")
    libm = ctypes.util.find_library("m")
    if libm:
        _ok(f"libm: {libm}")
    else:
        _warn("libm not found (C++ math simulated)")

    # 5. Container
    typer.echo("\nContainer:")
    if config.container_path is not None and not config.container_path.exists():
        _warn(f"{config.container_path} does not exist yet")
    else:
        _ok(f"format {config.container_format}, embedded={config.embedded}")

    typer.echo(f"\n{ok_count} ok, {warn_count} warnings, {fail_count} failures")
    if fail_count:
        raise typer.Exit(code=1)
