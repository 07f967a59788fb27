"""
WORM container: an embedded, path-addressed file store.

- codec.py: zip and json-gzip archive formats
- store.py: the in-memory ContainerStore
"""

from .codec import (
    ArchiveCodec,
    ContainerDocument,
    JsonGzipCodec,
    ZipCodec,
    check_entry_path,
    detect_codec,
    get_codec,
)
from .store import ContainerStore, format_bytes

__all__ = [
    "ArchiveCodec",
    "ContainerDocument",
    "ContainerStore",
    "JsonGzipCodec",
    "ZipCodec",
    "check_entry_path",
    "detect_codec",
    "format_bytes",
    "get_codec",
]
