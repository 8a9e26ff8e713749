"""
HashModel Persistence Module

Value store backends the session writes object hashes to.
"""

from .base import StoreMetrics, ValueStore
from .memory import MemoryStore, get_memory_store
from .redis_store import RedisStore

__all__ = [
    "ValueStore",
    "StoreMetrics",
    "MemoryStore",
    "get_memory_store",
    "RedisStore",
]
