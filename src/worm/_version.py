"""Installed WORM version, read from the package metadata."""

from functools import cache
from importlib.metadata import PackageNotFoundError, version

DISTRIBUTION = "worm"
UNKNOWN_VERSION = "0.0.0+unknown"


@cache
def get_version() -> str:
    """Return the version of the installed ``worm`` distribution."""
    try:
        return version(DISTRIBUTION)
    except PackageNotFoundError:
        return UNKNOWN_VERSION
