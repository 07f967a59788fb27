"""Shared pytest fixtures for WORM tests."""

from __future__ import annotations

import logging
from pathlib import Path

import pytest

from worm.container import ContainerStore
from worm.core.config import WormConfig
from worm.core.registry import WormRegistry

MISSING_TOOL = "/nonexistent/worm-test-toolchain"


@pytest.fixture(autouse=True)
def _isolate_environment(monkeypatch: pytest.MonkeyPatch) -> None:
    """Keep WORM_* variables from the host out of the tests."""
    for name in (
        "WORM_EMBEDDED",
        "WORM_EMBEDDED_CONTAINER",
        "WORM_DEBUG",
        "WORM_TIMEOUT",
        "WORM_CONTAINER",
        "WORM_PYTHON",
        "WORM_GO",
        "WORM_CXX",
    ):
        monkeypatch.delenv(name, raising=False)


@pytest.fixture(autouse=True)
def _reset_worm_logger():
    """CLI tests install handlers on the ``worm`` logger; undo that afterwards."""
    yield
    worm_logger = logging.getLogger("worm")
    worm_logger.handlers.clear()
    worm_logger.propagate = True
    worm_logger.setLevel(logging.NOTSET)


@pytest.fixture
def container_path(tmp_path: Path) -> Path:
    """Archive location inside the test's temp directory."""
    return tmp_path / "container" / "container.worm"


@pytest.fixture
def store(container_path: Path) -> ContainerStore:
    """A file-backed store that starts empty."""
    return ContainerStore(container_path, embedded=False)


@pytest.fixture
def offline_config(container_path: Path) -> WormConfig:
    """Config whose external toolchains cannot be found."""
    config = WormConfig(embedded=False, container_path=container_path)
    config.adapters.python.executable = MISSING_TOOL
    config.adapters.go.executable = MISSING_TOOL
    config.adapters.cpp.compiler = MISSING_TOOL
    return config


@pytest.fixture
def registry(offline_config: WormConfig):
    """Isolated registry; shut down after the test."""
    reg = WormRegistry(offline_config)
    yield reg
    reg.shutdown()


@pytest.fixture
def session(registry: WormRegistry):
    return registry.create_session("test")
