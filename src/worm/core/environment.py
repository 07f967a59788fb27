"""
Runtime environment detection for WORM.

WORM can run straight from source or as a self-contained packaged
executable ("embedded mode"). The mode decides where the container
archive lives and whether an embedded resource blob is consulted.

Environment variables:
    WORM_EMBEDDED            - "true"/"1"/"yes"/"on" forces embedded mode
    WORM_EMBEDDED_CONTAINER  - base64 archive blob baked in at packaging time

Usage:
    from worm.core.environment import is_embedded, default_container_path

    path = default_container_path(is_embedded())
"""

from __future__ import annotations

import base64
import binascii
import logging
import os
import sys
from pathlib import Path

logger = logging.getLogger(__name__)

EMBEDDED_ENV_VAR = "WORM_EMBEDDED"
EMBEDDED_CONTAINER_ENV_VAR = "WORM_EMBEDDED_CONTAINER"
CONTAINER_FILENAME = "container.worm"

_TRUE_VALUES = {"1", "true", "yes", "on"}


def env_flag(name: str, default: bool = False) -> bool:
    """Parse boolean-like environment flags.

    Accepts true values: '1', 'true', 'yes', 'on' (case-insensitive). False for others.
    """
    val = os.environ.get(name)
    if val is None:
        return default
    return val.strip().lower() in _TRUE_VALUES


def is_embedded() -> bool:
    """Check whether the process runs as a packaged executable."""
    if env_flag(EMBEDDED_ENV_VAR):
        return True
    # PyInstaller and similar freezers set sys.frozen
    return bool(getattr(sys, "frozen", False))


def default_container_path(embedded: bool) -> Path:
    """
    Return the default archive location for the given mode.

    Embedded builds keep the archive beside the executable; source
    checkouts use ``container/container.worm`` under the working directory.
    """
    if embedded:
        return Path(sys.executable).resolve().parent / CONTAINER_FILENAME
    return Path.cwd() / "container" / CONTAINER_FILENAME


def embedded_container_blob() -> bytes | None:
    """Return the archive bytes baked into the environment, if any."""
    raw = os.environ.get(EMBEDDED_CONTAINER_ENV_VAR, "")
    if not raw:
        return None
    try:
        return base64.b64decode(raw, validate=True)
    except (binascii.Error, ValueError) as e:
        logger.warning("Ignoring malformed %s: %s", EMBEDDED_CONTAINER_ENV_VAR, e)
        return None
