"""
Schema Descriptor Builder

🧬 Per-Type Field Schemas:
A schema describes how one persistable class maps onto a stored hash: its
identifier field, its scalar fields, and its list fields together with the
schema of their elements. Schemas are built once per class, cached, and
shared by every field that references the class. Self-referential types
(a ``Post`` whose replies are ``Post``) terminate because a schema that is
still being built is reused instead of being built again.
"""

import collections.abc
import inspect
import logging
import threading
from dataclasses import dataclass, field
from types import MappingProxyType
from typing import Any, Dict, List, Mapping, Optional, Sequence, Tuple

from .errors import IdError, NotPersistableError, PersistenceError, SchemaError
from .fields import (
    FieldKind, PersistableDescriptor, PersistableField, PersistableId,
    PersistableListField, declared_fields
)
from .persistable import TypeRegistry, is_persistable, type_key, type_registry

logger = logging.getLogger(__name__)

LIST_SEPARATOR = ","

# Set on generated deferred subclasses, points at the class they stand in for
DEFERRED_TARGET_ATTR = "__deferred_target__"


def concrete_type(target: Any) -> type:
    """Class whose schema describes ``target`` (an instance or a class)"""
    cls = target if isinstance(target, type) else type(target)
    return cls.__dict__.get(DEFERRED_TARGET_ATTR, cls)


def _format(kind: FieldKind, attr_name: str, obj: Any, value: Any) -> str:
    if not kind.accepts(value):
        raise PersistenceError(
            f"Field {attr_name!r} of {type(obj).__name__} instance holds {value!r}, "
            f"not a {kind.value}"
        )
    return kind.format(value)


@dataclass(frozen=True)
class IdField:
    """Identifier field of a schema"""
    attr_name: str
    stored_name: str
    kind: FieldKind

    def get(self, obj: Any) -> str:
        value = getattr(obj, self.attr_name, None)
        if value is None or value == "":
            raise IdError(f"Identifier field {self.attr_name!r} is not set on {type(obj).__name__} instance")
        return _format(self.kind, self.attr_name, obj, value)

    def set(self, obj: Any, token: str) -> None:
        try:
            value = self.kind.parse(token)
        except ValueError as e:
            raise PersistenceError(
                f"Identifier {token!r} is not a valid {self.kind.value} for field {self.attr_name!r}"
            ) from e
        setattr(obj, self.attr_name, value)


@dataclass(frozen=True)
class ScalarField:
    """Scalar field of a schema"""
    attr_name: str
    stored_name: str
    kind: FieldKind

    def get(self, obj: Any) -> str:
        value = getattr(obj, self.attr_name, None)
        if value is None:
            raise PersistenceError(f"Field {self.attr_name!r} is not set on {type(obj).__name__} instance")
        return _format(self.kind, self.attr_name, obj, value)

    def set(self, obj: Any, text: Optional[str]) -> None:
        if text is None:
            setattr(obj, self.attr_name, None)
            return
        try:
            value = self.kind.parse(text)
        except ValueError as e:
            raise PersistenceError(
                f"Stored value {text!r} of field {self.stored_name!r} is not a valid {self.kind.value}"
            ) from e
        setattr(obj, self.attr_name, value)


@dataclass(frozen=True)
class ListField:
    """
    List field of a schema.

    Laziness belongs to the field, not to the element schema, so two fields
    sharing an element type can load it differently.
    """
    attr_name: str
    stored_name: str
    schema: 'Schema' = field(compare=False, repr=False)
    lazy: bool = False
    container: type = list

    def get(self, obj: Any) -> Sequence[Any]:
        value = getattr(obj, self.attr_name, None)
        if value is None:
            return ()
        if isinstance(value, (str, bytes)) or not isinstance(value, collections.abc.Sequence):
            raise PersistenceError(
                f"List field {self.attr_name!r} of {type(obj).__name__} instance holds "
                f"{type(value).__name__}, not a list"
            )
        return value

    def set(self, obj: Any, items: List[Any]) -> None:
        if self.container is not list:
            items = self.container(items)
        setattr(obj, self.attr_name, items)


class Schema:
    """
    Field schema of one persistable class.

    Read-only once the build that created it has finished.
    """

    def __init__(self, cls: type, id_field: IdField, scalar_fields: Sequence[ScalarField]):
        self.type = cls
        self.type_name = type_key(cls)
        self.id_field = id_field
        self._scalar_fields: Tuple[ScalarField, ...] = tuple(scalar_fields)
        self._list_fields: Dict[str, ListField] = {}
        self._sealed = False

    def __setattr__(self, name: str, value: Any) -> None:
        if getattr(self, "_sealed", False):
            raise SchemaError(f"Schema for {self.type_name} is read-only")
        object.__setattr__(self, name, value)

    @property
    def scalar_fields(self) -> Tuple[ScalarField, ...]:
        return self._scalar_fields

    @property
    def list_fields(self) -> Mapping[str, ListField]:
        return MappingProxyType(self._list_fields)

    @property
    def sealed(self) -> bool:
        return self._sealed

    def _add_list_field(self, list_field: ListField) -> None:
        if self._sealed:
            raise SchemaError(f"Schema for {self.type_name} is read-only")
        self._list_fields[list_field.stored_name] = list_field

    def _seal(self) -> None:
        object.__setattr__(self, "_sealed", True)

    # Capability interface
    def get_identifier(self, obj: Any) -> str:
        """Identifier of ``obj`` as store key text"""
        return self.id_field.get(obj)

    def set_identifier(self, obj: Any, token: str) -> None:
        """Assign an identifier parsed from store text using the declared kind"""
        self.id_field.set(obj, token)

    def get_scalar_fields(self, obj: Any) -> Dict[str, str]:
        """Scalar fields of ``obj`` as stored name -> text"""
        return {f.stored_name: f.get(obj) for f in self._scalar_fields}

    def get_list_fields(self, obj: Any) -> List[Tuple[ListField, Sequence[Any]]]:
        """List fields of ``obj`` paired with their current values"""
        return [(f, f.get(obj)) for f in self._list_fields.values()]

    def new_instance(self) -> Any:
        """Create a blank instance with the parameterless constructor"""
        try:
            return self.type()
        except Exception as e:
            raise PersistenceError(f"Cannot instantiate {self.type_name}: {e}") from e

    def __repr__(self) -> str:
        lists = ", ".join(
            f"{name}->{f.schema.type.__name__}{' (lazy)' if f.lazy else ''}"
            for name, f in self._list_fields.items()
        )
        scalars = ", ".join(f.stored_name for f in self._scalar_fields)
        return f"Schema({self.type.__name__}, id={self.id_field.stored_name}, scalars=[{scalars}], lists=[{lists}])"


class SchemaBuilder:
    """
    Builds and caches schemas.

    Every class gets at most one schema instance per builder. A build that
    fails caches nothing, including the partial schemas of element types it
    had reached.
    """

    def __init__(self, registry: Optional[TypeRegistry] = None):
        self.registry = registry or type_registry
        self._schemas: Dict[type, Schema] = {}
        self._lock = threading.RLock()

    def build(self, cls: type) -> Schema:
        """
        Get the schema for ``cls``, building it on first use.

        Args:
            cls: Persistable class (a deferred subclass resolves to its target)

        Returns:
            The shared schema instance for ``cls``

        Raises:
            NotPersistableError: If the class or one of its fields is not persistable
            IdError: If the class does not declare exactly one identifier field
            SchemaError: If a list element type cannot be resolved
        """
        cls = concrete_type(cls)
        with self._lock:
            cached = self._schemas.get(cls)
            if cached is not None:
                return cached

            in_progress: Dict[str, Schema] = {}
            schema = self._build(cls, in_progress)

            for built in in_progress.values():
                built._seal()
                self._schemas[built.type] = built
                logger.debug(f"Built {built!r}")

            return schema

    def get(self, cls: type) -> Optional[Schema]:
        """Cached schema for ``cls`` without building"""
        with self._lock:
            return self._schemas.get(concrete_type(cls))

    def clear(self) -> None:
        with self._lock:
            self._schemas.clear()

    def __contains__(self, cls: type) -> bool:
        return self.get(cls) is not None

    def __len__(self) -> int:
        return len(self._schemas)

    def _build(self, cls: type, in_progress: Dict[str, Schema]) -> Schema:
        if not is_persistable(cls):
            raise NotPersistableError(f"Class {cls.__qualname__!r} is not marked @persistable")
        self._check_constructor(cls)

        id_field: Optional[IdField] = None
        scalars: List[ScalarField] = []
        lists: List[PersistableListField] = []
        stored_names = set()

        for declared in declared_fields(cls):
            self._check_field(cls, declared, stored_names)

            if isinstance(declared, PersistableId):
                if id_field is not None:
                    raise IdError(f"Class {cls.__qualname__!r} declares more than one identifier field")
                id_field = IdField(declared.attr_name, declared.stored_name, self._kind_of(cls, declared))
            elif isinstance(declared, PersistableListField):
                self._check_list_field(cls, declared)
                lists.append(declared)
            elif isinstance(declared, PersistableField):
                scalars.append(ScalarField(declared.attr_name, declared.stored_name, self._kind_of(cls, declared)))

        if id_field is None:
            raise IdError(f"Class {cls.__qualname__!r} must declare one identifier field")

        schema = Schema(cls, id_field, scalars)
        # Registered before the list fields resolve so that a list of the
        # class itself, directly or through other classes, finds it here.
        in_progress[type_key(cls)] = schema

        for declared in lists:
            element_cls = self._resolve_element(cls, declared)
            child = self._schemas.get(element_cls) or in_progress.get(type_key(element_cls))
            if child is None:
                child = self._build(element_cls, in_progress)

            schema._add_list_field(ListField(
                attr_name=declared.attr_name,
                stored_name=declared.stored_name,
                schema=child,
                lazy=declared.lazy,
                container=declared.container,
            ))

        return schema

    def _check_constructor(self, cls: type) -> None:
        try:
            signature = inspect.signature(cls)
        except (TypeError, ValueError) as e:
            raise NotPersistableError(f"Cannot inspect constructor of {cls.__qualname__!r}: {e}") from e

        required = [
            name for name, param in signature.parameters.items()
            if param.default is param.empty
            and param.kind not in (param.VAR_POSITIONAL, param.VAR_KEYWORD)
        ]
        if required:
            raise NotPersistableError(
                f"Class {cls.__qualname__!r} must be constructible without arguments "
                f"(required parameters: {', '.join(required)})"
            )

    def _check_field(self, cls: type, declared: PersistableDescriptor, stored_names: set) -> None:
        if not declared.is_restricted:
            raise NotPersistableError(
                f"Field {declared.attr_name!r} of {cls.__qualname__!r} must be non-public (prefix it with '_')"
            )
        if not declared.stored_name:
            raise NotPersistableError(f"Field {declared.attr_name!r} of {cls.__qualname__!r} has no usable name")
        if declared.stored_name in stored_names:
            raise NotPersistableError(
                f"Field {declared.attr_name!r} of {cls.__qualname__!r} clashes with another field stored as "
                f"{declared.stored_name!r}"
            )
        stored_names.add(declared.stored_name)

    def _check_list_field(self, cls: type, declared: PersistableListField) -> None:
        container = declared.container
        if not (isinstance(container, type) and issubclass(container, collections.abc.MutableSequence)):
            raise NotPersistableError(
                f"List field {declared.attr_name!r} of {cls.__qualname__!r} must use a list-like container, "
                f"got {container!r}"
            )
        if not declared.element_name:
            raise NotPersistableError(
                f"List field {declared.attr_name!r} of {cls.__qualname__!r} must name its element type"
            )

    def _kind_of(self, cls: type, declared: Any) -> FieldKind:
        kind = FieldKind.of(declared.kind)
        if kind is None:
            raise NotPersistableError(
                f"Field {declared.attr_name!r} of {cls.__qualname__!r} must be declared as str or int, "
                f"got {declared.kind!r}"
            )
        return kind

    def _resolve_element(self, cls: type, declared: PersistableListField) -> type:
        if isinstance(declared.element, type):
            return declared.element

        element_cls = self.registry.resolve(declared.element, context_module=cls.__module__)
        if element_cls is None:
            raise SchemaError(
                f"Cannot resolve element type {declared.element!r} of list field "
                f"{declared.attr_name!r} on {cls.__qualname__!r}"
            )
        return element_cls


# Process-wide builder used by sessions unless one is passed explicitly
default_builder = SchemaBuilder()


def schema_for(target: Any) -> Schema:
    """Schema for a persistable class or instance from the default builder"""
    return default_builder.build(concrete_type(target))


__all__ = [
    "Schema", "SchemaBuilder", "IdField", "ScalarField", "ListField",
    "default_builder", "schema_for", "concrete_type",
    "LIST_SEPARATOR", "DEFERRED_TARGET_ATTR"
]
