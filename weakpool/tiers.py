"""
Strong and weak retention tiers.

The strong tier is a stack that owns its objects. The weak tier is an
insertion-ordered set of handles whose targets the pool does not keep alive.
"""

from typing import Callable, Generic, Iterator, TypeVar

from .handles import WeakHandle

Obj = TypeVar("Obj")


class TierStore(Generic[Obj]):
    """Push, pop and migrate primitives over the two tiers."""

    def __init__(self) -> None:
        self.strong: list[Obj] = []
        # dict as an ordered set
        self.weak: dict[WeakHandle[Obj], None] = {}

    @property
    def strong_len(self) -> int:
        return len(self.strong)

    @property
    def weak_len(self) -> int:
        return len(self.weak)

    def push_strong(self, obj: Obj) -> int:
        """Push onto the strong tier and return its new length."""
        self.strong.append(obj)
        return len(self.strong)

    def pop_strong(self) -> Obj | None:
        return self.strong.pop() if self.strong else None

    def add_weak(self, handle: WeakHandle[Obj]) -> None:
        self.weak[handle] = None

    def discard_weak(self, handle: WeakHandle[Obj]) -> bool:
        if handle in self.weak:
            del self.weak[handle]
            return True
        return False

    def drain_weak(self) -> Iterator[Obj]:
        """
        Remove weak handles in insertion order, yielding each live target.

        Dead handles are dropped without being yielded. Handles are removed
        as they are visited, so stopping the iteration early leaves the rest
        of the tier intact.
        """
        while self.weak:
            handle = next(iter(self.weak))
            del self.weak[handle]
            obj = handle()
            if obj is not None:
                yield obj

    def take_live_weak(self) -> Obj | None:
        """Remove and return the first weak target still alive."""
        for obj in self.drain_weak():
            return obj
        return None

    def demote(self, handle_for: Callable[[Obj], WeakHandle[Obj]], limit: int) -> int:
        """
        Move objects from the top of the strong tier into the weak tier until
        at most ``limit`` remain. Returns the number moved.
        """
        moved = 0
        while len(self.strong) > limit:
            obj = self.strong.pop()
            self.add_weak(handle_for(obj))
            moved += 1
        return moved

    def promote(self, limit: int) -> int:
        """
        Move live weak targets onto the strong tier until it holds ``limit``
        objects or the weak tier is exhausted. Returns the number moved.
        """
        moved = 0
        if len(self.strong) >= limit:
            return moved
        for obj in self.drain_weak():
            moved += 1
            if self.push_strong(obj) >= limit:
                break
        return moved

    def holds_strong(self, obj: Obj) -> bool:
        return any(pooled is obj for pooled in self.strong)

    def holds_weak(self, handle: WeakHandle[Obj]) -> bool:
        return handle in self.weak
