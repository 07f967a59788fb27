"""
WORM CLI Package.

- app.py: main Typer app, global options, demo and shell commands
- container.py: ``worm container ...`` sub-app
- doctor.py: toolchain health check
- common.py: shared state and error handling
"""

from .app import app, main, version_callback
from .container import container_app

__all__ = [
    "app",
    "main",
    "container_app",
    "version_callback",
]
