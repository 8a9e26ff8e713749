"""
HashModel Core

Declaration surface, schema builder, deferred stand-ins and errors.
"""

from .errors import IdError, NotPersistableError, PersistenceError, SchemaError, StoreError
from .fields import (
    FieldKind, PersistableField, PersistableId, PersistableListField, lazy_load
)
from .persistable import is_persistable, persistable, type_registry
from .proxy import Loaded, Pending, hydrate, is_deferred, is_hydrated, make_deferred
from .schema import LIST_SEPARATOR, ListField, Schema, SchemaBuilder, default_builder, schema_for

__all__ = [
    'persistable', 'is_persistable', 'type_registry',
    'PersistableId', 'PersistableField', 'PersistableListField', 'lazy_load', 'FieldKind',
    'Schema', 'SchemaBuilder', 'ListField', 'default_builder', 'schema_for', 'LIST_SEPARATOR',
    'Pending', 'Loaded', 'make_deferred', 'is_deferred', 'is_hydrated', 'hydrate',
    'PersistenceError', 'SchemaError', 'NotPersistableError', 'IdError', 'StoreError',
]
