"""
Weak handles to pooled objects.

A handle is a ``weakref.ref`` subclass compared and hashed by its own
identity, so pooled objects need not be hashable. The handle table keeps
exactly one handle per live object; a handle's callback is its finalization
registration and fires once, when the target is reclaimed.
"""

import weakref
from typing import Callable, Generic, TypeVar

Obj = TypeVar("Obj")


class WeakHandle(weakref.ref):  # type: ignore[type-arg]
    """Identity-stable weak reference to a pooled object."""

    def __init__(
        self, obj: Obj, callback: Callable[["WeakHandle[Obj]"], None] | None = None
    ):
        super().__init__(obj, callback)
        self.key = id(obj)

    __eq__ = object.__eq__
    __ne__ = object.__ne__
    __hash__ = object.__hash__

    def resolve(self) -> Obj | None:
        """Return the live target, or None once it has been reclaimed."""
        return self()

    @property
    def alive(self) -> bool:
        return self() is not None

    def __repr__(self) -> str:
        state = "alive" if self.alive else "dead"
        return f"<WeakHandle key={self.key:#x} {state}>"


class HandleTable(Generic[Obj]):
    """
    One handle per live object, keyed by ``id()``.

    An entry can outlive its target until the reclamation is reconciled, and
    CPython may hand the same ``id()`` to a new object in the meantime. Every
    lookup therefore checks that the stored handle still resolves to the
    object asked about.
    """

    def __init__(self, on_reclaimed: Callable[[WeakHandle[Obj]], None]):
        self._on_reclaimed = on_reclaimed
        self._handles: dict[int, WeakHandle[Obj]] = {}

    def __len__(self) -> int:
        return len(self._handles)

    def lookup(self, obj: Obj) -> WeakHandle[Obj] | None:
        handle = self._handles.get(id(obj))
        if handle is not None and handle() is obj:
            return handle
        return None

    def get_or_create(self, obj: Obj) -> tuple[WeakHandle[Obj], bool]:
        """
        Return the object's handle, creating and registering one if needed.

        Raises:
            TypeError: If the object does not support weak references.
        """
        handle = self.lookup(obj)
        if handle is not None:
            return handle, False

        handle = WeakHandle(obj, self._on_reclaimed)
        self._handles[handle.key] = handle
        return handle, True

    def evict(self, handle: WeakHandle[Obj]) -> bool:
        """Drop the handle if it is still the table's entry for its key."""
        if self._handles.get(handle.key) is handle:
            del self._handles[handle.key]
            return True
        return False
