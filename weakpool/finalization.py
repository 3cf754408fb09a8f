"""
Reconciles pool state with the reclamation of pooled objects.

Every handle the pool creates is registered here through its weakref
callback. CPython runs that callback at the moment of reclamation, which may
fall in the middle of a pool operation, so the callback only queues the
handle; the bookkeeping runs later on the scheduler.
"""

import sys
from typing import Generic, TypeVar

from .handles import HandleTable, WeakHandle
from .log import get_contextual_logger
from .registry import ActiveRegistry
from .scheduling import Scheduler
from .tiers import TierStore

Obj = TypeVar("Obj")

MAX_COUNTER = sys.maxsize


def saturating_increment(value: int) -> int:
    return value if value >= MAX_COUNTER else value + 1


class FinalizationTracker(Generic[Obj]):
    """
    Counts reclamations of weakly pooled and of still-active objects.

    Attributes:
        num_gc: Weak tier reclamations since the last rescale.
        num_active_reclaims: Reclamations of objects that were checked out and
            never released. Stays 0 when callers release what they acquire.
    """

    def __init__(
        self,
        tiers: TierStore[Obj],
        active: ActiveRegistry[Obj],
        scheduler: Scheduler,
        pool_name: str = "",
    ):
        self.tiers = tiers
        self.active = active
        self.scheduler = scheduler
        self.pool_name = pool_name
        self.handles: HandleTable[Obj] = HandleTable(self.notify)
        self.num_gc = 0
        self.num_active_reclaims = 0
        self.logger = get_contextual_logger(__name__)

    def notify(self, handle: WeakHandle[Obj]) -> None:
        """Weakref callback: defer reconciliation of a reclaimed handle."""
        self.scheduler.call_soon(self.reconcile, handle)

    def reconcile(self, handle: WeakHandle[Obj]) -> None:
        if self.tiers.discard_weak(handle):
            self.num_gc = saturating_increment(self.num_gc)
        elif self.active.discard(handle):
            self.num_active_reclaims = saturating_increment(self.num_active_reclaims)
            self.logger.warning(
                "Pool %s: an acquired object was reclaimed without being released "
                "(%d so far)",
                self.pool_name or "<unnamed>",
                self.num_active_reclaims,
            )

        self.handles.evict(handle)

    def reset_gc_count(self) -> None:
        self.num_gc = 0
