"""
HashModel Persistence Layer - Base Classes

This module provides the abstract interface for hash-oriented value stores.
"""

import logging
from abc import ABC, abstractmethod
from dataclasses import dataclass
from typing import Any, Dict, Mapping, Optional


@dataclass
class StoreMetrics:
    """Operation counters kept by every value store"""
    reads: int = 0
    writes: int = 0
    deletes: int = 0
    failures: int = 0
    last_error: Optional[str] = None

    def reset(self) -> None:
        self.reads = 0
        self.writes = 0
        self.deletes = 0
        self.failures = 0
        self.last_error = None

    def to_dict(self) -> Dict[str, Any]:
        """Convert metrics to dictionary"""
        return {
            "reads": self.reads,
            "writes": self.writes,
            "deletes": self.deletes,
            "failures": self.failures,
            "last_error": self.last_error,
        }


class ValueStore(ABC):
    """
    Abstract base class for hash-oriented key/value stores.

    A store keeps one hash (field name -> text) per key. Writes merge fields
    into the existing hash. Reading an absent key yields an empty mapping,
    never an error. Nothing is atomic across keys.
    """

    def __init__(self):
        self.metrics = StoreMetrics()
        self._logger = logging.getLogger(f"{self.__class__.__module__}.{self.__class__.__name__}")

    @abstractmethod
    def write_hash(self, key: str, mapping: Mapping[str, str]) -> None:
        """
        Write the fields of ``mapping`` into the hash stored at ``key``.

        Args:
            key: Store key
            mapping: Field name to text value

        Raises:
            StoreError: If the write fails
        """
        pass

    @abstractmethod
    def read_hash(self, key: str) -> Dict[str, str]:
        """
        Read the hash stored at ``key``.

        Args:
            key: Store key

        Returns:
            Field name to text value, empty if the key is absent

        Raises:
            StoreError: If the read fails
        """
        pass

    @abstractmethod
    def delete(self, key: str) -> bool:
        """
        Delete the hash stored at ``key``.

        Returns:
            True if a hash was deleted, False if the key was absent
        """
        pass

    @abstractmethod
    def exists(self, key: str) -> bool:
        """Check if a hash is stored at ``key``"""
        pass

    def close(self) -> None:
        """Release connections held by the store"""
        pass

    def _record_read(self) -> None:
        self.metrics.reads += 1

    def _record_write(self) -> None:
        self.metrics.writes += 1

    def _record_delete(self) -> None:
        self.metrics.deletes += 1

    def _record_failure(self, operation: str, error: Exception) -> None:
        self.metrics.failures += 1
        self.metrics.last_error = str(error)
        self._logger.error(f"{operation} failed: {error}")

    def __enter__(self):
        return self

    def __exit__(self, exc_type, exc_val, exc_tb):
        self.close()
