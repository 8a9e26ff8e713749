"""
HashModel - Object Persistence on Hash Stores

Declare which attributes of plain classes are stored, then save and load
whole object graphs, list relationships included, to Redis hashes or an
in-memory store.
"""

from .core import (
    persistable, is_persistable,
    PersistableId, PersistableField, PersistableListField, lazy_load, FieldKind,
    Schema, SchemaBuilder, schema_for,
    is_deferred, is_hydrated, hydrate,
    PersistenceError, SchemaError, NotPersistableError, IdError, StoreError,
)
from .session import Session
from .persistence import ValueStore, MemoryStore, RedisStore, get_memory_store
from .config import HashModelConfig, create_store, configure_logging, open_session

__all__ = [
    # Declaration
    'persistable',
    'is_persistable',
    'PersistableId',
    'PersistableField',
    'PersistableListField',
    'lazy_load',
    'FieldKind',

    # Schemas
    'Schema',
    'SchemaBuilder',
    'schema_for',

    # Sessions and deferred loading
    'Session',
    'is_deferred',
    'is_hydrated',
    'hydrate',

    # Stores
    'ValueStore',
    'MemoryStore',
    'RedisStore',
    'get_memory_store',

    # Configuration
    'HashModelConfig',
    'create_store',
    'configure_logging',
    'open_session',

    # Errors
    'PersistenceError',
    'SchemaError',
    'NotPersistableError',
    'IdError',
    'StoreError',
]
