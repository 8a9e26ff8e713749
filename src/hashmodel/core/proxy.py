"""
Deferred Proxy

Stand-ins for elements of lazily loaded list fields. A stand-in is an
instance of a generated subclass of the element class (``DeferredPost`` for
``Post``), so it offers the same attributes and methods and passes
``isinstance`` checks. Only its identifier is set when it is created.

Its hydration state is an explicit variant: ``Pending`` until the first
read-style access, which loads the remaining fields through the bound session
and switches the state to ``Loaded``. Writes and ``set_``/``add_`` mutator
calls never trigger a load.
"""

import functools
import logging
import threading
from dataclasses import dataclass
from typing import Any, Callable, Dict, Union

from .errors import PersistenceError
from .schema import DEFERRED_TARGET_ATTR, Schema

logger = logging.getLogger(__name__)

STATE_ATTR = "_deferred_state"
LOCK_ATTR = "_deferred_lock"
MUTATING_ATTR = "_deferred_mutating"
EXEMPT_ATTR = "__deferred_exempt__"

# Methods with these prefixes are treated as mutators: neither the call nor
# the attribute reads made while it runs hydrate
MUTATOR_PREFIXES = ("set_", "add_")


@dataclass(frozen=True)
class Pending:
    """Not loaded yet; carries what is needed to load"""
    identifier: str
    session: Any
    schema: Schema


@dataclass(frozen=True)
class Hydrating:
    """Load in progress on the thread ``thread_id``"""
    pending: Pending
    thread_id: int


@dataclass(frozen=True)
class Loaded:
    """Fully loaded; every access passes straight through"""
    pass


LOADED = Loaded()

HydrationState = Union[Pending, Hydrating, Loaded]


class DeferredMixin:
    """Intercepts read-style attribute access to hydrate on first use."""

    __slots__ = ()

    def __getattribute__(self, name: str) -> Any:
        if name.startswith("__"):
            return super().__getattribute__(name)

        values = object.__getattribute__(self, "__dict__")
        state = values.get(STATE_ATTR)
        if state is None or state is LOADED or _mutating(values):
            return super().__getattribute__(name)

        if name.startswith(MUTATOR_PREFIXES):
            attr = super().__getattribute__(name)
            return _without_hydration(self, attr) if callable(attr) else attr

        if not _passes_through(type(self), name):
            _hydrate(self)
        return super().__getattribute__(name)


def _passes_through(proxy_cls: type, name: str) -> bool:
    if name in (STATE_ATTR, LOCK_ATTR, MUTATING_ATTR):
        return True
    return name in proxy_cls.__dict__[EXEMPT_ATTR]


def _mutating(values: Dict[str, Any]) -> bool:
    """Whether a mutator of this stand-in is running on the current thread"""
    depths = values.get(MUTATING_ATTR)
    return bool(depths) and depths.get(threading.get_ident(), 0) > 0


def _without_hydration(proxy: Any, method: Callable) -> Callable:
    @functools.wraps(method)
    def call(*args, **kwargs):
        depths = proxy.__dict__[MUTATING_ATTR]
        ident = threading.get_ident()
        depths[ident] = depths.get(ident, 0) + 1
        try:
            return method(*args, **kwargs)
        finally:
            depths[ident] -= 1
            if not depths[ident]:
                del depths[ident]

    return call


def _hydrate(proxy: Any) -> None:
    values = proxy.__dict__
    state = values.get(STATE_ATTR)
    if isinstance(state, Hydrating) and state.thread_id == threading.get_ident():
        # Reads made by the load itself
        return

    with values[LOCK_ATTR]:
        state = values.get(STATE_ATTR)
        if not isinstance(state, Pending):
            return

        values[STATE_ATTR] = Hydrating(state, threading.get_ident())
        logger.debug(f"Hydrating deferred {state.schema.type.__name__} {state.identifier}")
        try:
            state.session.load(proxy, state.schema)
        except BaseException:
            values[STATE_ATTR] = state
            raise
        values[STATE_ATTR] = LOADED


_deferred_classes: Dict[type, type] = {}
_deferred_classes_lock = threading.Lock()


def deferred_class(schema: Schema) -> type:
    """Generated stand-in subclass for the class described by ``schema``"""
    target = schema.type
    with _deferred_classes_lock:
        cls = _deferred_classes.get(target)
        if cls is None:
            exempt = frozenset({schema.id_field.attr_name, schema.id_field.stored_name})
            cls = type(f"Deferred{target.__name__}", (DeferredMixin, target), {
                "__module__": target.__module__,
                "__qualname__": f"Deferred{target.__qualname__}",
                DEFERRED_TARGET_ATTR: target,
                EXEMPT_ATTR: exempt,
            })
            _deferred_classes[target] = cls
        return cls


def make_deferred(session: Any, schema: Schema, identifier: str) -> Any:
    """
    Create an unhydrated stand-in.

    Args:
        session: Session whose ``load`` fills in the remaining fields
        schema: Schema of the element class
        identifier: Identifier as store text

    Returns:
        Instance of the element's deferred subclass with only its identifier set
    """
    cls = deferred_class(schema)
    try:
        proxy = cls()
    except Exception as e:
        raise PersistenceError(f"Cannot instantiate {schema.type_name}: {e}") from e

    values = proxy.__dict__
    values[LOCK_ATTR] = threading.Lock()
    values[MUTATING_ATTR] = {}
    schema.set_identifier(proxy, identifier)
    values[STATE_ATTR] = Pending(identifier, session, schema)
    return proxy


def is_deferred(obj: Any) -> bool:
    """Whether ``obj`` is a deferred stand-in"""
    return DEFERRED_TARGET_ATTR in type(obj).__dict__


def is_hydrated(obj: Any) -> bool:
    """False only for stand-ins that have not loaded yet"""
    if not is_deferred(obj):
        return True
    return obj.__dict__.get(STATE_ATTR) is LOADED


def hydrate(obj: Any) -> Any:
    """Load a stand-in now instead of on first read; other objects pass through"""
    if is_deferred(obj):
        _hydrate(obj)
    return obj


__all__ = [
    "Pending", "Loaded", "Hydrating", "HydrationState", "DeferredMixin",
    "deferred_class", "make_deferred", "is_deferred", "is_hydrated", "hydrate"
]
