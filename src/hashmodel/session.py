"""
Persistence Session

💾 Save and Load Object Graphs:
A session collects root objects with ``register`` and writes them, with
everything reachable through their list fields, on ``persist_all``. Each
object becomes one hash keyed by its identifier; a list field is stored as
the comma-joined identifiers of its elements. ``load`` reverses this for an
object that already carries its identifier, loading list elements eagerly or
as deferred stand-ins depending on the field.

Nothing is rolled back: when a walk fails part-way, hashes written before the
failure stay written.
"""

import logging
from typing import Any, Dict, List, Mapping, Optional, Set, Tuple

from .core.errors import PersistenceError, StoreError
from .core.proxy import make_deferred
from .core.schema import LIST_SEPARATOR, Schema, SchemaBuilder, concrete_type, default_builder
from .persistence.base import ValueStore


class Session:
    """
    Persistence session bound to one value store.

    Not safe for concurrent use; give each thread its own session.
    """

    def __init__(self, store: ValueStore, builder: Optional[SchemaBuilder] = None, close_store: bool = False):
        """
        Initialize session.

        Args:
            store: Value store to read and write hashes
            builder: Schema builder, defaults to the process-wide one
            close_store: Close the store when the session closes
        """
        self.store = store
        self.builder = builder or default_builder
        self._close_store = close_store
        self._registered: Dict[int, Tuple[Any, Schema]] = {}
        self._closed = False
        self._logger = logging.getLogger(f"{self.__class__.__module__}.{self.__class__.__name__}")

    @property
    def closed(self) -> bool:
        return self._closed

    @property
    def registered(self) -> List[Tuple[Any, Schema]]:
        """Registered (object, schema) pairs in registration order"""
        return list(self._registered.values())

    def schema_for(self, target: Any) -> Schema:
        """Schema for a persistable class or instance"""
        return self.builder.build(concrete_type(target))

    def register(self, obj: Any) -> Schema:
        """
        Register a root object for the next ``persist_all``.

        Args:
            obj: Instance of a persistable class

        Returns:
            Schema of the object's class

        Raises:
            SchemaError: If no schema can be built for the object's class
        """
        self._ensure_open()
        schema = self.schema_for(obj)
        self._registered[id(obj)] = (obj, schema)
        self._logger.debug(f"Registered {schema.type.__name__} instance")
        return schema

    def persist_all(self) -> int:
        """
        Persist every registered object and everything reachable from it.

        Roots are independent: a failing root does not stop the others. The
        first failure is raised once every root has been tried.

        Returns:
            Number of roots persisted
        """
        self._ensure_open()
        persisted = 0
        first_error: Optional[Exception] = None

        for obj, schema in list(self._registered.values()):
            try:
                self.persist_recursive(obj, schema)
                persisted += 1
            except PersistenceError as e:
                self._logger.error(f"Failed to persist {schema.type.__name__} instance: {e}")
                if first_error is None:
                    first_error = e

        self._logger.info(f"Persisted {persisted} of {len(self._registered)} registered objects")
        if first_error is not None:
            raise first_error
        return persisted

    def persist_recursive(self, obj: Any, schema: Optional[Schema] = None) -> str:
        """
        Persist one object and, depth first, every element of its list fields.

        Args:
            obj: Object to persist
            schema: Schema of the object, resolved from its class if omitted

        Returns:
            Identifier the object was stored under

        Raises:
            IdError: If the object or an element has no identifier
            PersistenceError: If a field cannot be read or the store fails
        """
        self._ensure_open()
        return self._persist(obj, schema or self.schema_for(obj), set())

    def _persist(self, obj: Any, schema: Schema, written: Set[int]) -> str:
        key = schema.get_identifier(obj)
        if id(obj) in written:
            return key
        written.add(id(obj))

        fields = schema.get_scalar_fields(obj)
        for list_field, elements in schema.get_list_fields(obj):
            element_ids = []
            for element in elements:
                element_id = self._persist(element, list_field.schema, written)
                if LIST_SEPARATOR in element_id:
                    raise PersistenceError(
                        f"Identifier {element_id!r} in list field {list_field.stored_name!r} "
                        f"contains the separator {LIST_SEPARATOR!r}"
                    )
                element_ids.append(element_id)
            fields[list_field.stored_name] = LIST_SEPARATOR.join(element_ids)

        self._write(key, fields)
        return key

    def load(self, obj: Any, schema: Optional[Schema] = None) -> Any:
        """
        Load stored fields into an object that already carries its identifier.

        Args:
            obj: Object to fill in
            schema: Schema of the object, resolved from its class if omitted

        Returns:
            The same object

        Raises:
            IdError: If the object has no identifier
            PersistenceError: If nothing is stored for it, a stored value
                cannot be parsed, or the store fails
        """
        self._ensure_open()
        schema = schema or self.schema_for(obj)
        key = schema.get_identifier(obj)
        stored = self._read(key)

        if not stored and (schema.scalar_fields or schema.list_fields):
            raise PersistenceError(f"No stored {schema.type.__name__} with identifier {key!r}")

        for scalar in schema.scalar_fields:
            scalar.set(obj, stored.get(scalar.stored_name))

        for list_field in schema.list_fields.values():
            text = stored.get(list_field.stored_name, "")
            items = []
            if text:
                for token in text.split(LIST_SEPARATOR):
                    items.append(self._load_element(list_field.schema, token, list_field.lazy))
            list_field.set(obj, items)

        return obj

    def _load_element(self, schema: Schema, token: str, lazy: bool) -> Any:
        if lazy:
            return make_deferred(self, schema, token)

        element = schema.new_instance()
        schema.set_identifier(element, token)
        return self.load(element, schema)

    def _write(self, key: str, fields: Mapping[str, str]) -> None:
        try:
            self.store.write_hash(key, fields)
        except PersistenceError:
            raise
        except Exception as e:
            raise StoreError(f"Failed to write {key!r}: {e}") from e
        self._logger.debug(f"Wrote {key!r}")

    def _read(self, key: str) -> Dict[str, str]:
        try:
            return self.store.read_hash(key)
        except PersistenceError:
            raise
        except Exception as e:
            raise StoreError(f"Failed to read {key!r}: {e}") from e

    def _ensure_open(self) -> None:
        if self._closed:
            raise PersistenceError("Session is closed")

    def close(self) -> None:
        """Drop registrations; close the store if the session owns it."""
        if self._closed:
            return
        self._registered.clear()
        self._closed = True
        if self._close_store:
            self.store.close()
        self._logger.info("Session closed")

    def __enter__(self):
        return self

    def __exit__(self, exc_type, exc_val, exc_tb):
        self.close()


__all__ = ["Session"]
