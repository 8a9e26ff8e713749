"""
HashModel Persistence Layer - Memory Backend

In-memory value store for development and testing.
"""

import threading
from typing import Dict, List, Mapping

from ..core.errors import StoreError
from .base import ValueStore


class MemoryStore(ValueStore):
    """
    In-memory value store.

    Keeps hashes in a dictionary with the same semantics as the Redis
    backend: field-level merge on write, empty mapping for absent keys.
    Data is lost when the process exits.
    """

    def __init__(self):
        super().__init__()
        self._data: Dict[str, Dict[str, str]] = {}
        self._lock = threading.RLock()

    def write_hash(self, key: str, mapping: Mapping[str, str]) -> None:
        """Merge fields into the hash stored at ``key``."""
        try:
            self._validate(key, mapping)
        except StoreError as e:
            self._record_failure("write_hash", e)
            raise

        with self._lock:
            self._record_write()
            if not mapping:
                return
            self._data.setdefault(key, {}).update(mapping)
        self._logger.debug(f"Wrote {len(mapping)} fields to {key!r}")

    def read_hash(self, key: str) -> Dict[str, str]:
        """Read a copy of the hash stored at ``key``."""
        with self._lock:
            self._record_read()
            return dict(self._data.get(key, {}))

    def delete(self, key: str) -> bool:
        """Delete the hash stored at ``key``."""
        with self._lock:
            self._record_delete()
            return self._data.pop(key, None) is not None

    def exists(self, key: str) -> bool:
        """Check if a hash is stored at ``key``."""
        with self._lock:
            return key in self._data

    def keys(self) -> List[str]:
        """Stored keys in insertion order."""
        with self._lock:
            return list(self._data)

    def snapshot(self) -> Dict[str, Dict[str, str]]:
        """Deep copy of everything stored."""
        with self._lock:
            return {key: dict(fields) for key, fields in self._data.items()}

    def clear(self) -> None:
        with self._lock:
            self._data.clear()

    def __len__(self) -> int:
        return len(self._data)

    def _validate(self, key: str, mapping: Mapping[str, str]) -> None:
        if not isinstance(key, str) or not key:
            raise StoreError(f"Store key must be a non-empty string, got {key!r}")
        for name, value in mapping.items():
            if not isinstance(name, str) or not isinstance(value, str):
                raise StoreError(f"Hash fields must map text to text, got {name!r}: {value!r}")


_shared_store = MemoryStore()


def get_memory_store() -> MemoryStore:
    """Get the process-wide shared memory store."""
    return _shared_store


__all__ = ["MemoryStore", "get_memory_store"]
