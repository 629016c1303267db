"""Addressable object graph.

The protocol never touches application objects directly. Every node on
a path is seen through the `Addressable` capability interface, which
plain Python objects get via `ObjectNode`:

- Mappings are addressed by key
- Lists and tuples by decimal index
- Everything else by attribute (names starting with "_" are hidden)

Event sources are named members of a node. Objects that want to expose
events implement `add_listener(name, fn)` / `remove_listener(name, fn)`,
most simply by inheriting `EventEmitter`.
"""

from __future__ import annotations

import logging
from collections.abc import Callable, Mapping, MutableMapping, MutableSequence, Sequence
from typing import Any, Protocol, runtime_checkable

from .errors import CogSocketError, InvocationError, ResolutionError

logger = logging.getLogger(__name__)

Listener = Callable[..., Any]


@runtime_checkable
class Addressable(Protocol):
    """A node of the object graph that paths can address."""

    def get_member(self, name: str) -> Any:
        """Read a member. Raises ResolutionError if it does not exist."""
        ...

    def set_member(self, name: str, value: Any) -> None:
        """Assign a member."""
        ...

    def invoke_member(self, name: str, args: Sequence[Any]) -> Any:
        """Call a member with positional arguments and return its result."""
        ...

    def add_listener(self, name: str, listener: Listener) -> None:
        """Subscribe to the event source `name`."""
        ...

    def remove_listener(self, name: str, listener: Listener) -> None:
        """Unsubscribe from the event source `name`."""
        ...


class ObjectNode:
    """Addressable view of an arbitrary Python object."""

    def __init__(self, obj: Any):
        self.obj = obj

    def __repr__(self) -> str:
        return f"ObjectNode({self.obj!r})"

    def get_member(self, name: str) -> Any:
        obj = self.obj
        if isinstance(obj, Mapping):
            try:
                return obj[name]
            except KeyError:
                raise ResolutionError(f"No member '{name}'") from None
        if isinstance(obj, Sequence) and not isinstance(obj, str | bytes):
            index = self._index(name)
            try:
                return obj[index]
            except IndexError:
                raise ResolutionError(f"Index {index} out of range") from None
        self._check_public(name)
        try:
            return getattr(obj, name)
        except AttributeError:
            raise ResolutionError(f"No member '{name}'") from None
        except Exception as e:
            raise InvocationError(f"Reading '{name}' failed: {e}") from e

    def set_member(self, name: str, value: Any) -> None:
        obj = self.obj
        try:
            if isinstance(obj, MutableMapping):
                obj[name] = value
            elif isinstance(obj, MutableSequence):
                obj[self._index(name)] = value
            elif isinstance(obj, Mapping | Sequence):
                raise InvocationError(f"Member '{name}' is read-only")
            else:
                self._check_public(name)
                setattr(obj, name, value)
        except CogSocketError:
            raise
        except IndexError:
            raise ResolutionError(f"Index {name} out of range") from None
        except Exception as e:
            raise InvocationError(f"Writing '{name}' failed: {e}") from e

    def invoke_member(self, name: str, args: Sequence[Any]) -> Any:
        method = self.get_member(name)
        if not callable(method):
            raise InvocationError(f"Member '{name}' is not callable")
        try:
            return method(*args)
        except CogSocketError:
            raise
        except Exception as e:
            raise InvocationError(f"Invoking '{name}' failed: {e}") from e

    def add_listener(self, name: str, listener: Listener) -> None:
        self._event_source(name).add_listener(name, listener)

    def remove_listener(self, name: str, listener: Listener) -> None:
        self._event_source(name).remove_listener(name, listener)

    def _event_source(self, name: str) -> Any:
        obj = self.obj
        if not (hasattr(obj, "add_listener") and hasattr(obj, "remove_listener")):
            raise ResolutionError(f"'{name}' is not an event source")
        return obj

    @staticmethod
    def _check_public(name: str) -> None:
        if not name or name.startswith("_"):
            raise ResolutionError(f"No member '{name}'")

    @staticmethod
    def _index(name: str) -> int:
        if not name.isdigit():
            raise ResolutionError(f"'{name}' is not a valid index")
        return int(name)


def as_addressable(obj: Any) -> Addressable:
    """Return `obj` if it is already addressable, else wrap it."""
    if isinstance(obj, Addressable):
        return obj
    return ObjectNode(obj)


class EventEmitter:
    """Named event sources for application objects.

    Usage:
        class Sensor(EventEmitter):
            def trigger(self):
                self.emit("changed", {"v": 5})
    """

    def __init__(self) -> None:
        self._listeners: dict[str, list[Listener]] = {}

    def add_listener(self, name: str, listener: Listener) -> None:
        """Subscribe `listener` to event `name`."""
        self._listeners.setdefault(name, []).append(listener)

    def remove_listener(self, name: str, listener: Listener) -> None:
        """Unsubscribe `listener` from event `name` (no-op if absent)."""
        listeners = self._listeners.get(name)
        if not listeners:
            return
        if listener in listeners:
            listeners.remove(listener)
        if not listeners:
            del self._listeners[name]

    def listener_count(self, name: str) -> int:
        return len(self._listeners.get(name, ()))

    def emit(self, name: str, *args: Any) -> None:
        """Call every listener of `name` with `args`.

        A failing listener is logged and does not prevent the others
        from running.
        """
        # Copy, listeners may unsubscribe while being called
        for listener in list(self._listeners.get(name, ())):
            try:
                listener(*args)
            except Exception:
                logger.exception(f"Error in listener for event '{name}'")
