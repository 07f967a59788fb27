"""
WORM configuration.

Configuration is assembled from three layers, later layers winning:

1. Dataclass defaults below
2. An optional ``worm.toml`` file
3. Environment variables (``WORM_DEBUG``, ``WORM_TIMEOUT``, ``WORM_EMBEDDED``,
   ``WORM_CONTAINER``, ``WORM_PYTHON``, ``WORM_GO``, ``WORM_CXX``)

Example worm.toml:

    [worm]
    timeout = 20000
    debug = true
    max_history = 500

    [container]
    path = "assets/container.worm"
    format = "zip"

    [adapters.python]
    executable = "/usr/bin/python3"
"""

from __future__ import annotations

import os
import sys
import tomllib
from dataclasses import dataclass, field
from pathlib import Path
from typing import Any

from .environment import env_flag, is_embedded

CONFIG_FILENAME = "worm.toml"


def _default_cxx() -> str:
    if sys.platform == "win32":
        return "cl"
    if sys.platform == "darwin":
        return "clang++"
    return "g++"


@dataclass
class PythonSettings:
    """External Python interpreter settings."""

    executable: str = "python3"
    timeout_ms: int = 15000
    packages: list[str] = field(default_factory=lambda: ["numpy", "pandas", "scikit-learn"])


@dataclass
class CppSettings:
    """C/C++ compiler and native library settings."""

    compiler: str = field(default_factory=_default_cxx)
    flags: list[str] = field(default_factory=lambda: ["-O2", "-std=c++17"])
    libraries: list[str] = field(default_factory=lambda: ["-lm"])
    include_paths: list[str] = field(default_factory=list)
    library_paths: list[str] = field(default_factory=list)
    timeout_ms: int = 30000


@dataclass
class GoSettings:
    """Go toolchain settings."""

    executable: str = "go"
    timeout_ms: int = 10000
    build_flags: list[str] = field(default_factory=list)
    environment: dict[str, str] = field(default_factory=dict)


@dataclass
class NativeSettings:
    """In-process (native) facade settings."""

    timeout_ms: int = 5000


@dataclass
class AdapterSettings:
    """Per-language adapter configuration."""

    python: PythonSettings = field(default_factory=PythonSettings)
    cpp: CppSettings = field(default_factory=CppSettings)
    go: GoSettings = field(default_factory=GoSettings)
    native: NativeSettings = field(default_factory=NativeSettings)


@dataclass
class WormConfig:
    """
    Process-wide WORM configuration.

    Attributes:
        timeout_ms: Global operation timeout; external facades use the
            smaller of this and their own adapter timeout
        debug: Enable debug logging and tracebacks in the CLI
        auto_cleanup: Close all sessions when the CLI exits
        max_sessions: Upper bound on concurrently registered sessions
        max_history: Per-session history cap (None = unbounded)
        log_level: Logging level name
        embedded: Running as a packaged executable
        container_path: Archive location (None = mode default)
        container_format: "zip" or "json-gzip" for newly saved archives
    """

    timeout_ms: int = 30000
    debug: bool = False
    auto_cleanup: bool = True
    max_sessions: int = 10
    max_history: int | None = None
    log_level: str = "info"
    embedded: bool = field(default_factory=is_embedded)
    container_path: Path | None = None
    container_format: str = "zip"
    adapters: AdapterSettings = field(default_factory=AdapterSettings)

    def effective_timeout(self, adapter_timeout_ms: int) -> float:
        """Return the timeout in seconds for an adapter call."""
        return min(self.timeout_ms, adapter_timeout_ms) / 1000.0


def _apply_worm_section(config: WormConfig, data: dict[str, Any]) -> None:
    config.timeout_ms = int(data.get("timeout", config.timeout_ms))
    config.debug = bool(data.get("debug", config.debug))
    config.auto_cleanup = bool(data.get("auto_cleanup", config.auto_cleanup))
    config.max_sessions = int(data.get("max_sessions", config.max_sessions))
    if "max_history" in data:
        config.max_history = int(data["max_history"])
    config.log_level = str(data.get("log_level", config.log_level))


def _apply_adapter_sections(settings: AdapterSettings, data: dict[str, Any]) -> None:
    python_data = data.get("python", {})
    settings.python = PythonSettings(
        executable=python_data.get("executable", settings.python.executable),
        timeout_ms=int(python_data.get("timeout", settings.python.timeout_ms)),
        packages=list(python_data.get("packages", settings.python.packages)),
    )

    cpp_data = data.get("cpp", {})
    settings.cpp = CppSettings(
        compiler=cpp_data.get("compiler", settings.cpp.compiler),
        flags=list(cpp_data.get("flags", settings.cpp.flags)),
        libraries=list(cpp_data.get("libraries", settings.cpp.libraries)),
        include_paths=list(cpp_data.get("include_paths", settings.cpp.include_paths)),
        library_paths=list(cpp_data.get("library_paths", settings.cpp.library_paths)),
        timeout_ms=int(cpp_data.get("timeout", settings.cpp.timeout_ms)),
    )

    go_data = data.get("go", {})
    settings.go = GoSettings(
        executable=go_data.get("executable", settings.go.executable),
        timeout_ms=int(go_data.get("timeout", settings.go.timeout_ms)),
        build_flags=list(go_data.get("build_flags", settings.go.build_flags)),
        environment=dict(go_data.get("environment", settings.go.environment)),
    )

    native_data = data.get("native", data.get("javascript", {}))
    settings.native = NativeSettings(
        timeout_ms=int(native_data.get("timeout", settings.native.timeout_ms)),
    )


def _apply_env_overrides(config: WormConfig) -> None:
    if os.environ.get("WORM_DEBUG") is not None:
        config.debug = env_flag("WORM_DEBUG")
    timeout = os.environ.get("WORM_TIMEOUT", "").strip()
    if timeout:
        try:
            config.timeout_ms = int(timeout)
        except ValueError:
            raise ValueError(f"WORM_TIMEOUT must be an integer, got {timeout!r}")
    if os.environ.get("WORM_EMBEDDED") is not None:
        config.embedded = env_flag("WORM_EMBEDDED")
    if container := os.environ.get("WORM_CONTAINER"):
        config.container_path = Path(container)
    if python := os.environ.get("WORM_PYTHON"):
        config.adapters.python.executable = python
    if go := os.environ.get("WORM_GO"):
        config.adapters.go.executable = go
    if cxx := os.environ.get("WORM_CXX"):
        config.adapters.cpp.compiler = cxx


def load_config(path: Path | None = None) -> WormConfig:
    """
    Build a WormConfig from defaults, an optional TOML file, and the environment.

    Args:
        path: Explicit config file. When None, ``worm.toml`` in the current
            directory is used if present.

    Returns:
        Fully resolved configuration

    Raises:
        FileNotFoundError: If an explicit path does not exist
        ValueError: If a value has the wrong type
    """
    config = WormConfig()

    if path is None:
        candidate = Path.cwd() / CONFIG_FILENAME
        path = candidate if candidate.exists() else None
    elif not path.exists():
        raise FileNotFoundError(f"Config file not found: {path}")

    if path is not None:
        data = tomllib.loads(path.read_text(encoding="utf-8"))
        _apply_worm_section(config, data.get("worm", {}))
        _apply_adapter_sections(config.adapters, data.get("adapters", {}))

        container_data = data.get("container", {})
        if "path" in container_data:
            container_path = Path(container_data["path"])
            if not container_path.is_absolute():
                container_path = path.parent / container_path
            config.container_path = container_path
        config.container_format = container_data.get("format", config.container_format)

    _apply_env_overrides(config)
    return config
