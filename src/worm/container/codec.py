"""
Archive codecs for the WORM container.

Two interchangeable on-disk formats are supported:

- ``ZipCodec`` (format "zip"): a standard zip archive, one deflated
  entry per stored path. Directory placeholders (names ending in ``/``)
  are skipped on read.
- ``JsonGzipCodec`` (format "json-gzip"): one JSON document
  ``{"version": "1.0", "created": <ISO-8601>, "files": {path: base64}}``
  compressed as a single gzip stream.

Both formats carry a distinct magic prefix (``PK`` for zip, ``1f 8b`` for
gzip), so ``detect_codec`` can pick the right decoder for any blob.
Entry names that fail ``check_entry_path`` make the whole blob undecodable.
"""

from __future__ import annotations

import base64
import binascii
import gzip
import io
import json
import zipfile
import zlib
from abc import ABC, abstractmethod
from collections.abc import Mapping
from datetime import UTC, datetime
from pathlib import PureWindowsPath

from pydantic import BaseModel, Field, ValidationError

from ..core.errors import ArchiveDecodeError, InvalidEntryPathError

FORMAT_VERSION = "1.0"

ZIP_MAGIC = (b"PK\x03\x04", b"PK\x05\x06")
GZIP_MAGIC = b"\x1f\x8b"


def check_entry_path(path: str) -> str:
    """
    Validate a container path and return it unchanged.

    Stored paths are relative, forward-slash separated file names. Anything
    a zip reader would treat as a directory, or that could land outside an
    extraction directory, is refused.

    Raises:
        InvalidEntryPathError: If the path is empty, absolute, names a
            directory or contains a ``..`` segment
    """
    if not path:
        raise InvalidEntryPathError(path, "path is empty")
    if path.endswith(("/", "\\")):
        raise InvalidEntryPathError(path, "path names a directory")
    if path.startswith(("/", "\\")) or PureWindowsPath(path).drive:
        raise InvalidEntryPathError(path, "path is absolute")
    if ".." in path.replace("\\", "/").split("/"):
        raise InvalidEntryPathError(path, "path leaves the container root")
    return path


class ContainerDocument(BaseModel):
    """Serialized form of the json-gzip archive."""

    version: str = FORMAT_VERSION
    created: str = Field(default_factory=lambda: datetime.now(UTC).isoformat())
    files: dict[str, str] = Field(default_factory=dict)


class ArchiveCodec(ABC):
    """Converts a path -> bytes mapping to and from one archive blob."""

    name: str = "abstract"

    @abstractmethod
    def encode(self, files: Mapping[str, bytes]) -> bytes:
        """Serialize every entry into a single blob."""
        pass

    @abstractmethod
    def decode(self, data: bytes) -> dict[str, bytes]:
        """
        Deserialize a blob into a path -> bytes mapping.

        Raises:
            ArchiveDecodeError: If the blob is not a valid archive
        """
        pass

    def accepts(self, data: bytes) -> bool:
        """Check whether the blob looks like this codec's output."""
        return False


class ZipCodec(ArchiveCodec):
    """Multi-entry zip archive, each entry deflated independently."""

    name = "zip"

    def __init__(self, compresslevel: int = 9):
        self.compresslevel = compresslevel

    def encode(self, files: Mapping[str, bytes]) -> bytes:
        buffer = io.BytesIO()
        with zipfile.ZipFile(
            buffer,
            mode="w",
            compression=zipfile.ZIP_DEFLATED,
            compresslevel=self.compresslevel,
        ) as archive:
            for path, content in files.items():
                archive.writestr(path, content)
        return buffer.getvalue()

    def decode(self, data: bytes) -> dict[str, bytes]:
        files: dict[str, bytes] = {}
        try:
            with zipfile.ZipFile(io.BytesIO(data)) as archive:
                for info in archive.infolist():
                    # Directory placeholder
                    if info.filename.endswith("/"):
                        continue
                    files[check_entry_path(info.filename)] = archive.read(info)
        except (zipfile.BadZipFile, zlib.error, EOFError, OSError) as e:
            raise ArchiveDecodeError("Invalid zip container", details=str(e)) from e
        except InvalidEntryPathError as e:
            raise ArchiveDecodeError("Unsafe entry in zip container", details=str(e)) from e
        return files

    def accepts(self, data: bytes) -> bool:
        return data[:4] in ZIP_MAGIC


class JsonGzipCodec(ArchiveCodec):
    """Single gzip-compressed JSON document with base64 file contents."""

    name = "json-gzip"

    def encode(self, files: Mapping[str, bytes]) -> bytes:
        document = ContainerDocument(
            files={path: base64.b64encode(content).decode("ascii") for path, content in files.items()}
        )
        return gzip.compress(document.model_dump_json().encode("utf-8"))

    def decode(self, data: bytes) -> dict[str, bytes]:
        try:
            text = gzip.decompress(data).decode("utf-8")
            document = ContainerDocument.model_validate(json.loads(text))
            return {
                check_entry_path(path): base64.b64decode(encoded, validate=True)
                for path, encoded in document.files.items()
            }
        except (OSError, EOFError, zlib.error, UnicodeDecodeError) as e:
            raise ArchiveDecodeError("Invalid gzip container", details=str(e)) from e
        except (json.JSONDecodeError, ValidationError, binascii.Error) as e:
            raise ArchiveDecodeError("Invalid container document", details=str(e)) from e
        except InvalidEntryPathError as e:
            raise ArchiveDecodeError("Unsafe entry in container document", details=str(e)) from e

    def accepts(self, data: bytes) -> bool:
        return data[:2] == GZIP_MAGIC


CODECS: dict[str, type[ArchiveCodec]] = {
    ZipCodec.name: ZipCodec,
    JsonGzipCodec.name: JsonGzipCodec,
}


def get_codec(name: str) -> ArchiveCodec:
    """
    Look up a codec by format name.

    Raises:
        ValueError: If the format is unknown
    """
    try:
        return CODECS[name]()
    except KeyError:
        raise ValueError(
            f"Unknown container format: {name!r}. Valid formats: {sorted(CODECS)}"
        ) from None


def detect_codec(data: bytes) -> ArchiveCodec:
    """
    Pick the codec whose magic prefix matches the blob.

    Raises:
        ArchiveDecodeError: If no codec recognises the data
    """
    for codec_cls in CODECS.values():
        codec = codec_cls()
        if codec.accepts(data):
            return codec
    raise ArchiveDecodeError(
        "Unrecognised container format",
        details=f"leading bytes: {data[:4]!r}",
    )
