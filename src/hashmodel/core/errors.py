"""
HashModel Errors

Exception hierarchy shared by the schema builder, the session and the
value store backends.

    PersistenceError
    ├── SchemaError
    │   ├── NotPersistableError
    │   └── IdError
    └── StoreError
"""


class PersistenceError(Exception):
    """Base exception for persistence operations"""
    pass


class SchemaError(PersistenceError):
    """Raised when a schema cannot be built or resolved for a type"""
    pass


class NotPersistableError(SchemaError):
    """Raised when a type or one of its fields cannot be persisted"""
    pass


class IdError(SchemaError):
    """Raised when the identifier field is missing, duplicated or unset"""
    pass


class StoreError(PersistenceError):
    """Raised when the value store fails to read or write"""
    pass


__all__ = [
    "PersistenceError", "SchemaError", "NotPersistableError",
    "IdError", "StoreError"
]
