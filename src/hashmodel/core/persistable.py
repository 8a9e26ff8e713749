"""
Persistable Marker and Type Registry

The ``@persistable`` decorator opts a class into the engine and records it in
a process-wide registry so that list fields can name their element type.
"""

import importlib
import logging
import threading
from typing import Dict, List, Optional

logger = logging.getLogger(__name__)

PERSISTABLE_MARKER = "__persistable__"


def type_key(cls: type) -> str:
    """Registry key for a class"""
    return f"{cls.__module__}.{cls.__qualname__}"


class TypeRegistry:
    """
    Registry of persistable classes by qualified name.

    Element type names are resolved in this order:
    1. relative to the module of the declaring class
    2. as a fully qualified ``module.Class`` name
    3. by importing the module part of a qualified name
    4. by short class name, when exactly one registered class has it
    """

    def __init__(self):
        self._types: Dict[str, type] = {}
        self._lock = threading.RLock()

    def register(self, cls: type) -> None:
        key = type_key(cls)
        with self._lock:
            previous = self._types.get(key)
            if previous is not None and previous is not cls:
                logger.debug(f"Replacing persistable type registered as {key}")
            self._types[key] = cls

    def unregister(self, cls: type) -> None:
        with self._lock:
            if self._types.get(type_key(cls)) is cls:
                del self._types[type_key(cls)]

    def types(self) -> List[type]:
        with self._lock:
            return list(self._types.values())

    def resolve(self, name: str, context_module: Optional[str] = None) -> Optional[type]:
        """
        Resolve an element type name to a class.

        Args:
            name: Declared element type name
            context_module: Module of the class declaring the list field

        Returns:
            The resolved class, or None if nothing matches
        """
        with self._lock:
            if context_module:
                found = self._types.get(f"{context_module}.{name}")
                if found is not None:
                    return found

            found = self._types.get(name)
            if found is not None:
                return found

        found = self._import(name)
        if found is not None:
            return found

        with self._lock:
            candidates = [
                cls for cls in self._types.values()
                if cls.__qualname__ == name or cls.__name__ == name
            ]
        if len(candidates) == 1:
            return candidates[0]
        if len(candidates) > 1:
            logger.warning(f"Element type name {name!r} is ambiguous: {len(candidates)} registered classes match")
        return None

    def _import(self, name: str) -> Optional[type]:
        parts = name.split(".")
        for split in range(len(parts) - 1, 0, -1):
            module_name = ".".join(parts[:split])
            try:
                target = importlib.import_module(module_name)
            except ImportError:
                continue
            for attr in parts[split:]:
                target = getattr(target, attr, None)
                if target is None:
                    break
            if isinstance(target, type):
                return target
        return None


type_registry = TypeRegistry()


def persistable(cls=None):
    """
    Mark a class as persistable.

    The marker is set on the class itself, so subclasses must opt in again.
    Usable as ``@persistable`` or ``@persistable()``.
    """
    def decorator(target: type) -> type:
        setattr(target, PERSISTABLE_MARKER, True)
        type_registry.register(target)
        return target

    if cls is not None:
        return decorator(cls)

    return decorator


def is_persistable(cls: type) -> bool:
    """Whether ``cls`` itself (not a base class) carries the persistable marker"""
    return cls.__dict__.get(PERSISTABLE_MARKER, False) is True


__all__ = [
    "persistable", "is_persistable", "TypeRegistry", "type_registry",
    "type_key", "PERSISTABLE_MARKER"
]
