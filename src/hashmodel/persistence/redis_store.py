"""
HashModel Persistence Layer - Redis Backend

Value store backed by Redis hashes (``HSET`` / ``HGETALL``).
"""

from typing import Any, Dict, Mapping, Optional

import redis

from ..core.errors import StoreError
from .base import ValueStore


class RedisStore(ValueStore):
    """
    Redis-backed value store.

    Each persisted object is one Redis hash. Writing an empty mapping is a
    no-op since Redis cannot store an empty hash.

    Example:
        store = RedisStore("redis://localhost:6379/0")
        store.write_hash("1", {"text": "hi", "tags": "2"})
        store.read_hash("1")
    """

    def __init__(
        self,
        url: str = "redis://localhost:6379/0",
        *,
        client: Optional[Any] = None,
        socket_timeout: Optional[float] = None,
    ):
        """
        Initialize Redis store.

        Args:
            url: Redis connection URL, ignored when ``client`` is given
            client: Existing redis client to use instead of connecting
            socket_timeout: Socket timeout in seconds for new connections
        """
        super().__init__()
        self.url = url
        if client is None:
            client = redis.from_url(url, decode_responses=True, socket_timeout=socket_timeout)
        self._client = client

    @property
    def client(self) -> Any:
        return self._client

    def write_hash(self, key: str, mapping: Mapping[str, str]) -> None:
        """Write fields with a single ``HSET``."""
        if not mapping:
            self._record_write()
            return

        try:
            self._client.hset(key, mapping=dict(mapping))
        except redis.RedisError as e:
            self._record_failure("write_hash", e)
            raise StoreError(f"Failed to write hash {key!r}: {e}") from e

        self._record_write()
        self._logger.debug(f"HSET {key!r} ({len(mapping)} fields)")

    def read_hash(self, key: str) -> Dict[str, str]:
        """Read all fields with ``HGETALL``."""
        try:
            raw = self._client.hgetall(key)
        except redis.RedisError as e:
            self._record_failure("read_hash", e)
            raise StoreError(f"Failed to read hash {key!r}: {e}") from e

        self._record_read()
        return {self._text(name): self._text(value) for name, value in (raw or {}).items()}

    def delete(self, key: str) -> bool:
        """Delete the hash with ``DEL``."""
        try:
            deleted = self._client.delete(key)
        except redis.RedisError as e:
            self._record_failure("delete", e)
            raise StoreError(f"Failed to delete {key!r}: {e}") from e

        self._record_delete()
        return bool(deleted)

    def exists(self, key: str) -> bool:
        """Check the key with ``EXISTS``."""
        try:
            return bool(self._client.exists(key))
        except redis.RedisError as e:
            self._record_failure("exists", e)
            raise StoreError(f"Failed to check {key!r}: {e}") from e

    def ping(self) -> bool:
        """Check that the server answers."""
        try:
            return bool(self._client.ping())
        except redis.RedisError as e:
            self._record_failure("ping", e)
            return False

    def close(self) -> None:
        self._client.close()

    @staticmethod
    def _text(value: Any) -> str:
        if isinstance(value, bytes):
            return value.decode("utf-8")
        return value


__all__ = ["RedisStore"]
