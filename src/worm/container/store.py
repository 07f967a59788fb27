"""
In-memory container store.

The store keeps every entry as ``path -> bytes`` in memory and mirrors
the whole set to one archive file on ``save()``. Loading is lazy and
happens once per store; a missing or corrupt archive yields an empty
container and a warning instead of an error.

Usage:
    store = ContainerStore(Path("container/container.worm"))
    store.write_text("config/app.json", '{"debug": true}')
    store.save()

    fresh = ContainerStore(Path("container/container.worm"))
    fresh.read_json("config/app.json")  # {"debug": True}
"""

from __future__ import annotations

import json
import logging
import math
from pathlib import Path
from typing import Any

from ..core.environment import default_container_path, embedded_container_blob, is_embedded
from ..core.errors import ArchiveDecodeError, EntryNotFoundError, InvalidEntryPathError, SourceNotFoundError
from .codec import ArchiveCodec, ZipCodec, check_entry_path, detect_codec

logger = logging.getLogger(__name__)

_SIZE_UNITS = ["Bytes", "KB", "MB", "GB"]


def format_bytes(size: int) -> str:
    """Format a byte count as a short human-readable string ("1.5 KB")."""
    if size == 0:
        return "0 Bytes"
    k = 1024
    i = min(int(math.floor(math.log(size) / math.log(k))), len(_SIZE_UNITS) - 1)
    value = round(size / k**i, 2)
    # Trim trailing zeros the way "1.50" -> "1.5", "2.00" -> "2"
    text = f"{value:.2f}".rstrip("0").rstrip(".")
    return f"{text} {_SIZE_UNITS[i]}"


class ContainerStore:
    """
    Path-addressed byte storage backed by a single archive file.

    Attributes:
        path: Archive file location
        embedded: Whether the store belongs to a packaged executable
        codec: Codec used by ``save()``; ``load()`` detects the format
        is_loaded: Set after the first (and only) load
    """

    def __init__(
        self,
        path: Path | str | None = None,
        *,
        embedded: bool | None = None,
        codec: ArchiveCodec | None = None,
    ):
        self.embedded = is_embedded() if embedded is None else embedded
        self.path = Path(path) if path is not None else default_container_path(self.embedded)
        self.codec = codec or ZipCodec()
        self.is_loaded = False
        self._files: dict[str, bytes] = {}

    def __repr__(self) -> str:
        return f"ContainerStore(path={str(self.path)!r}, embedded={self.embedded})"

    # =========================================================================
    # Loading / saving
    # =========================================================================

    def load(self) -> None:
        """
        Populate the store from its archive. Runs at most once.

        Missing or unreadable archives leave the store empty.
        """
        if self.is_loaded:
            return

        try:
            data = self._read_archive()
            if data:
                self._files.update(detect_codec(data).decode(data))
                logger.debug("Loaded %d entries from %s", len(self._files), self.path)
        except (ArchiveDecodeError, OSError) as e:
            logger.warning("Container not readable (%s), starting with an empty container", e)
            self._files.clear()
        finally:
            self.is_loaded = True

    def _read_archive(self) -> bytes | None:
        if self.embedded:
            blob = embedded_container_blob()
            if blob is not None:
                return blob
        if self.path.exists():
            return self.path.read_bytes()
        return None

    def save(self, output_path: Path | str | None = None) -> Path:
        """
        Write every entry to the archive using the store's codec.

        Args:
            output_path: Alternative target; defaults to ``self.path``

        Returns:
            The path written
        """
        self.load()

        target = Path(output_path) if output_path is not None else self.path
        target.parent.mkdir(parents=True, exist_ok=True)

        data = self.codec.encode(self._files)
        target.write_bytes(data)
        logger.info("Container saved to %s (%s)", target, format_bytes(len(data)))
        return target

    # =========================================================================
    # Entry access
    # =========================================================================

    def write(self, path: str, content: bytes | bytearray | str) -> None:
        """
        Insert or replace an entry. Text is encoded as UTF-8.

        Raises:
            InvalidEntryPathError: If the path is empty, absolute, ends with
                ``/`` or contains a ``..`` segment
        """
        self.load()
        if isinstance(content, str):
            content = content.encode("utf-8")
        self._files[check_entry_path(path)] = bytes(content)

    def write_text(self, path: str, text: str, encoding: str = "utf-8") -> None:
        self.write(path, text.encode(encoding))

    def write_json(self, path: str, value: Any, indent: int | None = 2) -> None:
        self.write_text(path, json.dumps(value, indent=indent))

    def read(self, path: str) -> bytes:
        """
        Return the stored bytes for a path.

        Raises:
            EntryNotFoundError: If the path is not in the container
        """
        self.load()
        try:
            return self._files[path]
        except KeyError:
            raise EntryNotFoundError(path) from None

    def read_text(self, path: str, encoding: str = "utf-8") -> str:
        return self.read(path).decode(encoding)

    def read_json(self, path: str) -> Any:
        return json.loads(self.read_text(path))

    def exists(self, path: str) -> bool:
        self.load()
        return path in self._files

    def list(self, prefix: str = "") -> list[str]:
        """List stored paths in insertion order, optionally filtered by prefix."""
        self.load()
        if not prefix:
            return list(self._files)
        return [p for p in self._files if p.startswith(prefix)]

    def remove(self, path: str) -> bool:
        """Delete an entry. Returns False if it did not exist."""
        self.load()
        if path in self._files:
            del self._files[path]
            return True
        return False

    def clear(self) -> None:
        """Drop every entry in memory. Call ``save()`` to persist."""
        self.load()
        self._files.clear()

    # =========================================================================
    # Host filesystem bridging
    # =========================================================================

    def add_file(self, source: Path | str, target_path: str | None = None) -> str:
        """
        Copy a host file into the container.

        Args:
            source: Host file to read
            target_path: Container path; defaults to the source's base name

        Returns:
            The container path used

        Raises:
            SourceNotFoundError: If the source file does not exist
            InvalidEntryPathError: If the container path is not a valid file path
        """
        self.load()
        source = Path(source)
        if not source.is_file():
            raise SourceNotFoundError(str(source))

        actual_path = check_entry_path(target_path or source.name)
        self._files[actual_path] = source.read_bytes()
        logger.info("Added %s as %s to container", source, actual_path)
        return actual_path

    def add_directory(self, source_dir: Path | str, target_prefix: str = "") -> list[str]:
        """
        Recursively copy every regular file under a host directory.

        Container paths are the forward-slash relative paths joined under
        ``target_prefix``.

        Returns:
            Container paths added, in walk order

        Raises:
            SourceNotFoundError: If the directory does not exist
        """
        self.load()
        source_dir = Path(source_dir)
        if not source_dir.is_dir():
            raise SourceNotFoundError(str(source_dir))

        prefix = target_prefix.strip("/")
        added: list[str] = []
        for item in sorted(source_dir.rglob("*")):
            if not item.is_file():
                continue
            relative = item.relative_to(source_dir).as_posix()
            container_path = check_entry_path(f"{prefix}/{relative}" if prefix else relative)
            self._files[container_path] = item.read_bytes()
            added.append(container_path)

        logger.info("Added directory %s (%d files) to container", source_dir, len(added))
        return added

    def extract(self, path: str, output_path: Path | str | None = None) -> Path:
        """
        Write one entry to the host filesystem, creating parent directories.

        Raises:
            EntryNotFoundError: If the path is not in the container
        """
        content = self.read(path)
        target = Path(output_path) if output_path is not None else Path(path)
        target.parent.mkdir(parents=True, exist_ok=True)
        target.write_bytes(content)
        logger.info("Extracted %s to %s", path, target)
        return target

    def extract_all(self, output_dir: Path | str = "extracted") -> list[Path]:
        """
        Extract every entry under ``output_dir``, preserving relative paths.

        Every target is checked before anything is written.

        Raises:
            InvalidEntryPathError: If an entry would resolve outside ``output_dir``
        """
        self.load()
        output_dir = Path(output_dir)
        output_dir.mkdir(parents=True, exist_ok=True)
        root = output_dir.resolve()

        targets: dict[Path, bytes] = {}
        for path, content in self._files.items():
            target = output_dir / path
            if not target.resolve().is_relative_to(root):
                raise InvalidEntryPathError(path, f"resolves outside {output_dir}")
            targets[target] = content

        written: list[Path] = []
        for target, content in targets.items():
            target.parent.mkdir(parents=True, exist_ok=True)
            target.write_bytes(content)
            written.append(target)

        logger.info("Extracted all files to %s", output_dir)
        return written

    # =========================================================================
    # Statistics
    # =========================================================================

    def stats(self) -> dict[str, Any]:
        """Return file count, total byte size, formatted size, and embedded flag."""
        self.load()
        total_size = sum(len(content) for content in self._files.values())
        return {
            "file_count": len(self._files),
            "total_size": total_size,
            "total_size_formatted": format_bytes(total_size),
            "is_embedded": self.embedded,
        }
