"""
Subprocess execution shared by the external-toolchain facades.

One child process per call, no pooling. The caller awaits completion,
including teardown, before the output is returned.
"""

from __future__ import annotations

import asyncio
import logging
import os
import shutil
from collections.abc import Mapping, Sequence
from dataclasses import dataclass
from pathlib import Path

from ..core.errors import BindingUnavailableError, ExecutionError

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class ProcessOutput:
    """Captured result of a finished child process."""

    stdout: str
    stderr: str
    returncode: int

    @property
    def lines(self) -> list[str]:
        """Non-empty stdout lines, trailing whitespace stripped."""
        return [line.rstrip() for line in self.stdout.splitlines() if line.strip()]


def toolchain_available(executable: str) -> bool:
    """Check whether an executable resolves on PATH (or as a path)."""
    return shutil.which(executable) is not None


async def run_process(
    argv: Sequence[str],
    *,
    language: str,
    cwd: Path | None = None,
    env: Mapping[str, str] | None = None,
    timeout: float | None = None,
) -> ProcessOutput:
    """
    Spawn ``argv``, wait for it, and capture its output.

    Args:
        argv: Program and arguments
        language: Label used in error messages ("Python", "Go", "C++")
        cwd: Working directory for the child
        env: Extra environment variables merged over ``os.environ``
        timeout: Seconds before the child is killed

    Returns:
        ProcessOutput with decoded stdout/stderr

    Raises:
        BindingUnavailableError: The program could not be started
        ExecutionError: Non-zero exit status or timeout
    """
    child_env = None
    if env:
        child_env = {**os.environ, **env}

    logger.debug("Spawning %s: %s", language, " ".join(argv))
    try:
        proc = await asyncio.create_subprocess_exec(
            *argv,
            cwd=str(cwd) if cwd is not None else None,
            env=child_env,
            stdout=asyncio.subprocess.PIPE,
            stderr=asyncio.subprocess.PIPE,
        )
    except (FileNotFoundError, PermissionError, NotADirectoryError) as e:
        raise BindingUnavailableError(language, f"cannot start {argv[0]}: {e}") from e

    try:
        stdout, stderr = await asyncio.wait_for(proc.communicate(), timeout=timeout)
    except TimeoutError:
        proc.kill()
        await proc.wait()
        raise ExecutionError(language, f"timed out after {timeout:.1f}s", proc.returncode)

    output = ProcessOutput(
        stdout=stdout.decode("utf-8", errors="replace"),
        stderr=stderr.decode("utf-8", errors="replace"),
        returncode=proc.returncode if proc.returncode is not None else -1,
    )
    if output.returncode != 0:
        raise ExecutionError(language, output.stderr or output.stdout, output.returncode)
    return output
