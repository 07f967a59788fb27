"""
Error types for WORM sessions, containers, and language adapters.
"""

from __future__ import annotations


class WormError(Exception):
    """Base exception for all WORM errors."""

    def __init__(self, message: str, *, details: str | None = None):
        self.message = message
        self.details = details
        super().__init__(self._format_message())

    def _format_message(self) -> str:
        """Format error message with details if available."""
        if self.details:
            return f"{self.message}\nDetails: {self.details}"
        return self.message

    def __repr__(self) -> str:
        return f"{self.__class__.__name__}(message={self.message!r}, details={self.details!r})"


class NotFoundError(WormError):
    """
    Raised when a requested resource does not exist.

    Examples:
    - Missing container entry
    - Missing source file or directory on the host filesystem
    - Unknown session name
    """

    pass


class EntryNotFoundError(NotFoundError):
    """Raised when a path is not present in the container."""

    def __init__(self, path: str):
        self.path = path
        super().__init__(f"File not found in container: {path}")


class SourceNotFoundError(NotFoundError):
    """Raised when a host file or directory to import does not exist."""

    def __init__(self, path: str):
        self.path = path
        super().__init__(f"File not found: {path}")


class SessionNotFoundError(NotFoundError):
    """Raised when a session name does not resolve in the registry."""

    def __init__(self, name: str):
        self.name = name
        super().__init__(f"Session not found: {name}")


class ArchiveDecodeError(WormError):
    """
    Raised when a serialized container blob cannot be decoded.

    ContainerStore.load() catches this and starts with an empty container.
    """

    pass


class ExecutionError(WormError):
    """Raised when an external process exits with a non-zero status."""

    def __init__(self, language: str, stderr: str, returncode: int | None = None):
        self.language = language
        self.stderr = stderr
        self.returncode = returncode
        super().__init__(f"{language} execution failed: {stderr.strip()}")


class BindingUnavailableError(WormError):
    """
    Raised when a toolchain or native library cannot be reached.

    Facades convert this into a degraded AdapterResult instead of
    letting it reach the caller.
    """

    def __init__(self, language: str, reason: str):
        self.language = language
        self.reason = reason
        super().__init__(f"{language} binding unavailable: {reason}")


class CommandParseError(WormError):
    """Raised when an interactive shell line is not a known command."""

    pass


class InvalidEntryPathError(WormError):
    """
    Raised when a container path cannot name a stored file.

    Examples:
    - Empty path or a trailing ``/`` (zip reads those as directories)
    - Absolute path or a ``..`` segment
    - Extraction target resolving outside the output directory
    """

    def __init__(self, path: str, reason: str):
        self.path = path
        self.reason = reason
        super().__init__(f"Invalid container path {path!r}: {reason}")
