from typing import Generic, TypeVar

from .handles import WeakHandle

Obj = TypeVar("Obj")


class ActiveRegistry(Generic[Obj]):
    """
    Handles of objects currently checked out of the pool.

    Only handles are held, so a caller that drops an acquired object without
    releasing it lets it be reclaimed; the finalization tracker then reports
    it as an active reclaim.
    """

    def __init__(self) -> None:
        self._active: set[WeakHandle[Obj]] = set()

    def __len__(self) -> int:
        return len(self._active)

    def __contains__(self, handle: object) -> bool:
        return handle in self._active

    def add(self, handle: WeakHandle[Obj]) -> None:
        self._active.add(handle)

    def discard(self, handle: WeakHandle[Obj]) -> bool:
        """Remove the handle; returns False when it was not checked out."""
        if handle in self._active:
            self._active.remove(handle)
            return True
        return False
