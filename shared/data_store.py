"""
Durable key-value storage for locally owned state.

The subscription layer persists string values under fixed keys, the same way
a browser persists to local storage. Two backends are provided:
- JsonFileStorage: one JSON object on disk, rewritten atomically per write
- MemoryStorage: a plain dict, for tests and throwaway sessions

Design decisions:
- Values are opaque strings; encoding is the caller's concern
- Every write replaces the whole file through a temporary sibling, so readers
  never observe a partial write
- A corrupt file is reported on read and replaced on the next write
"""

import json
import logging
import os
from pathlib import Path
from typing import Optional, Protocol

from shared.errors import StorageCorruption, StorageError

logger = logging.getLogger("data_store")


class KeyValueStorage(Protocol):
    """Structural interface shared by the storage backends."""

    def get(self, key: str) -> Optional[str]:
        ...

    def set(self, key: str, value: str) -> None:
        ...

    def delete(self, key: str) -> None:
        ...


class MemoryStorage:
    """In-memory storage backend."""

    def __init__(self, initial: Optional[dict[str, str]] = None):
        self._values: dict[str, str] = dict(initial or {})

    def get(self, key: str) -> Optional[str]:
        return self._values.get(key)

    def set(self, key: str, value: str) -> None:
        self._values[key] = value

    def delete(self, key: str) -> None:
        self._values.pop(key, None)


class JsonFileStorage:
    """
    Storage backend holding all keys in a single JSON object file.

    The file is re-read on every access; this process is assumed to be the
    only writer.
    """

    def __init__(self, path: Path):
        """
        Initialize the storage.

        Args:
            path: JSON file to read and write. Parent directories are created
                on first write.
        """
        self.path = Path(path)

    # =========================================================================
    # File access
    # =========================================================================

    def _read(self) -> dict[str, str]:
        """Read the whole file, raising StorageCorruption if it cannot be decoded."""
        if not self.path.exists():
            return {}
        try:
            data = json.loads(self.path.read_text(encoding="utf-8"))
        except (OSError, UnicodeDecodeError, json.JSONDecodeError) as e:
            raise StorageCorruption(f"Unreadable storage file {self.path}: {e}") from e
        if not isinstance(data, dict):
            raise StorageCorruption(f"Storage file {self.path} does not hold a JSON object")
        return data

    def _read_for_write(self) -> dict[str, str]:
        try:
            return self._read()
        except StorageCorruption as e:
            logger.warning(f"Discarding corrupt storage before write: {e}")
            return {}

    def _write(self, data: dict[str, str]) -> None:
        tmp = self.path.with_name(self.path.name + ".tmp")
        try:
            self.path.parent.mkdir(parents=True, exist_ok=True)
            tmp.write_text(json.dumps(data, indent=2), encoding="utf-8")
            os.replace(tmp, self.path)
        except OSError as e:
            raise StorageError(f"Failed to write {self.path}: {e}") from e

    # =========================================================================
    # Key-value operations
    # =========================================================================

    def get(self, key: str) -> Optional[str]:
        value = self._read().get(key)
        if value is not None and not isinstance(value, str):
            raise StorageCorruption(f"Value under {key!r} is not a string", key=key)
        return value

    def set(self, key: str, value: str) -> None:
        data = self._read_for_write()
        data[key] = value
        self._write(data)

    def delete(self, key: str) -> None:
        data = self._read_for_write()
        if key in data:
            del data[key]
            self._write(data)


def open_storage(path: Optional[Path] = None) -> KeyValueStorage:
    """Open file storage at ``path``, or memory storage when no path is given."""
    if path is None:
        return MemoryStorage()
    return JsonFileStorage(path)
