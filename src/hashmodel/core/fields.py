"""
Persistable Field Declarations

Descriptors used as class attributes to declare which attributes of a
persistable class are stored, and how:

    @persistable
    class Post:
        _post_id = PersistableId(int)
        _post_content = PersistableField(str)
        _replies = PersistableListField("Post", lazy=True)

Each descriptor records itself in the declaring class's field table when the
class is created, so the schema builder never has to scan the class.
"""

from enum import Enum
from typing import Any, List, Optional, Type, Union

DECLARED_FIELDS_ATTR = "__persistable_fields__"


class FieldKind(Enum):
    """Declared kind of an identifier or scalar field"""
    TEXT = "text"
    INTEGER = "integer"

    @classmethod
    def of(cls, python_type: Any) -> Optional['FieldKind']:
        """Map a declared python type to a field kind, None if unsupported"""
        if python_type is str:
            return cls.TEXT
        if python_type is int:
            return cls.INTEGER
        return None

    def parse(self, text: str) -> Union[str, int]:
        """Convert stored text back into a value of this kind"""
        if self is FieldKind.INTEGER:
            return int(text)
        return text

    def accepts(self, value: Any) -> bool:
        """Whether ``value`` is of this kind (booleans are not integers)"""
        if self is FieldKind.INTEGER:
            return isinstance(value, int) and not isinstance(value, bool)
        return isinstance(value, str)

    def format(self, value: Any) -> str:
        """Convert a value of this kind into its stored text"""
        return str(value)


class PersistableDescriptor:
    """
    Base class for persistable field declarations.

    Behaves like a plain instance attribute: values live in the instance
    ``__dict__`` under the declared attribute name and read as None until set.
    """

    def __init__(self):
        self.attr_name: Optional[str] = None
        self.owner: Optional[type] = None

    def __set_name__(self, owner: type, name: str) -> None:
        self.attr_name = name
        self.owner = owner

        declared = owner.__dict__.get(DECLARED_FIELDS_ATTR)
        if declared is None:
            declared = []
            setattr(owner, DECLARED_FIELDS_ATTR, declared)
        declared.append(self)

    @property
    def stored_name(self) -> str:
        """Name of the field inside the stored hash"""
        return self.attr_name.lstrip("_")

    @property
    def is_restricted(self) -> bool:
        """Whether the attribute is non-public (leading underscore)"""
        return self.attr_name.startswith("_")

    def __get__(self, instance, owner):
        if instance is None:
            return self
        return instance.__dict__.get(self.attr_name)

    def __set__(self, instance, value) -> None:
        instance.__dict__[self.attr_name] = value

    def __repr__(self) -> str:
        return f"{self.__class__.__name__}({self.attr_name!r})"


class PersistableId(PersistableDescriptor):
    """Declares the identifier field; its text form is the store key."""

    def __init__(self, kind: Type = str):
        super().__init__()
        self.kind = kind


class PersistableField(PersistableDescriptor):
    """Declares a scalar field holding a text or integer value."""

    def __init__(self, kind: Type = str):
        super().__init__()
        self.kind = kind


class PersistableListField(PersistableDescriptor):
    """
    Declares a list field holding nested persistable values.

    Args:
        element: Element type, by name ("Post", "app.entities.Post") or class
        container: Declared container type, must be a mutable sequence
        lazy: Load elements as deferred stand-ins instead of eagerly
    """

    def __init__(self, element: Union[str, type, None], container: Any = list, lazy: bool = False):
        super().__init__()
        self.element = element
        self.container = container
        self.lazy = lazy

    @property
    def element_name(self) -> Optional[str]:
        """Element type name as declared"""
        if isinstance(self.element, type):
            return f"{self.element.__module__}.{self.element.__qualname__}"
        return self.element


def lazy_load(field: PersistableListField) -> PersistableListField:
    """Mark a list field as deferred."""
    if not isinstance(field, PersistableListField):
        raise TypeError("lazy_load() only applies to PersistableListField declarations")
    field.lazy = True
    return field


def declared_fields(cls: type) -> List[PersistableDescriptor]:
    """Fields declared directly on ``cls``, in definition order."""
    return list(cls.__dict__.get(DECLARED_FIELDS_ATTR, ()))


__all__ = [
    "FieldKind", "PersistableDescriptor", "PersistableId", "PersistableField",
    "PersistableListField", "lazy_load", "declared_fields", "DECLARED_FIELDS_ATTR"
]
