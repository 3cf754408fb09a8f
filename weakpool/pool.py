"""
Object pool with a strongly and a weakly referenced tier.

Objects released to the pool go to the strong tier while it has room and are
otherwise only weakly observed, leaving the garbage collector free to reclaim
them. The strong tier's capacity follows usage through a pluggable scaling
algorithm, re-evaluated by a debounced rescale after releases.
"""

from typing import Callable, Generic, TypeVar

from models import Capacity, PoolStats

from .finalization import FinalizationTracker
from .log import get_contextual_logger
from .registry import ActiveRegistry
from .rescaler import Rescaler, checked_capacity
from .scaling import PoolScalingAlgorithm, scaling_algorithm_from_settings
from .scheduling import AsyncioScheduler, Scheduler
from .tiers import TierStore

Obj = TypeVar("Obj")

Create = Callable[[], Obj]
Reset = Callable[[Obj], None]


class WeakPool(Generic[Obj]):
    """
    Recycles objects through a strong and a weak tier.

    Callers acquire objects, use them, and release them back. Releasing an
    object the pool did not hand out, releasing twice, or using an object
    after releasing it are not detected; they silently break the pool's
    bookkeeping.

    Pooled objects must support weak references.
    """

    def __init__(
        self,
        create: Create[Obj],
        reset: Reset[Obj],
        scaling_algorithm: PoolScalingAlgorithm | None = None,
        scheduler: Scheduler | None = None,
        name: str | None = None,
    ):
        """
        Args:
            create: Builds a new object when neither tier has one to reuse.
            reset: Restores an object to its defaults as it is released.
            scaling_algorithm: Strong tier scaling policy. Defaults to the
                policy configured through the environment.
            scheduler: Where rescales and reclamation bookkeeping are
                deferred to. Defaults to the running asyncio event loop.
            name: Label used in logs and monitoring.
        """
        self.name = name or f"{getattr(create, '__qualname__', 'pool')}-{id(self):x}"
        self._create = create
        self._reset = reset
        self._scaling_algorithm = (
            scaling_algorithm
            if scaling_algorithm is not None
            else scaling_algorithm_from_settings()
        )
        self._scheduler = scheduler if scheduler is not None else AsyncioScheduler()
        self.logger = get_contextual_logger(__name__)

        initial_capacity = checked_capacity(
            self._scaling_algorithm, self._scaling_algorithm(0, 0, 0, 0, 0)
        )

        self._tiers: TierStore[Obj] = TierStore()
        self._active: ActiveRegistry[Obj] = ActiveRegistry()
        self._tracker: FinalizationTracker[Obj] = FinalizationTracker(
            self._tiers, self._active, self._scheduler, pool_name=self.name
        )
        self._rescaler: Rescaler[Obj] = Rescaler(
            self._scaling_algorithm,
            self._tiers,
            self._active,
            self._tracker,
            self._scheduler,
            initial_capacity,
            pool_name=self.name,
        )

        self.logger.info(
            "WeakPool %s initialized with max strong pool size %d (algorithm: %r)",
            self.name,
            initial_capacity,
            self._scaling_algorithm,
        )

    @property
    def num_active_objects(self) -> int:
        """Number of objects currently checked out."""
        return len(self._active)

    @property
    def cur_max_strong_pool_size(self) -> Capacity:
        """Current maximum size of the strong tier."""
        return Capacity(self._rescaler.capacity)

    @property
    def num_strong_pooled_refs(self) -> int:
        return self._tiers.strong_len

    @property
    def num_weak_pooled_refs(self) -> int:
        """Weak tier size, possibly including handles not yet reconciled."""
        return self._tiers.weak_len

    @property
    def num_gc(self) -> int:
        """Weakly pooled objects reclaimed since the last rescale."""
        return self._tracker.num_gc

    @property
    def num_active_gc(self) -> int:
        """Acquired objects reclaimed without being released."""
        return self._tracker.num_active_reclaims

    @property
    def rescale_scheduled(self) -> bool:
        return self._rescaler.scheduled

    @property
    def scheduler(self) -> Scheduler:
        return self._scheduler

    def acquire(self) -> Obj:
        """Get an object from the pool, creating one only if none can be reused."""
        self._scheduler.flush()
        tiers = self._tiers
        obj = tiers.pop_strong()

        if obj is not None:
            # Top the strong tier back up from the weak tier
            backfill = tiers.take_live_weak()
            if backfill is not None:
                tiers.push_strong(backfill)
        else:
            obj = tiers.take_live_weak()
            if obj is None:
                obj = self._create()
                self.logger.debug("Pool %s allocated a new object", self.name)

        handle, _ = self._tracker.handles.get_or_create(obj)
        self._active.add(handle)
        return obj

    def release(self, obj: Obj) -> None:
        """Reset an object and return it to the pool."""
        self._scheduler.flush()
        handle, _ = self._tracker.handles.get_or_create(obj)
        if not self._active.discard(handle):
            self.logger.debug(
                "Pool %s received an object it did not hand out (or already released)",
                self.name,
            )

        self._reset(obj)

        if self._tiers.strong_len < self._rescaler.capacity:
            self._tiers.push_strong(obj)
        else:
            self._tiers.add_weak(handle)

        self._rescaler.arm()

    def is_active(self, obj: Obj) -> bool:
        handle = self._tracker.handles.lookup(obj)
        return handle is not None and handle in self._active

    def is_strong_pooled(self, obj: Obj) -> bool:
        return self._tiers.holds_strong(obj)

    def is_weak_pooled(self, obj: Obj) -> bool:
        handle = self._tracker.handles.lookup(obj)
        return handle is not None and self._tiers.holds_weak(handle)

    def stats(self) -> PoolStats:
        return PoolStats(
            num_active_objects=self.num_active_objects,
            cur_max_strong_pool_size=self.cur_max_strong_pool_size,
            num_strong_pooled_refs=self.num_strong_pooled_refs,
            num_weak_pooled_refs=self.num_weak_pooled_refs,
            num_gc=self.num_gc,
            num_active_gc=self.num_active_gc,
            rescale_scheduled=self.rescale_scheduled,
        )

    def __repr__(self) -> str:
        return (
            f"<WeakPool {self.name} active={self.num_active_objects} "
            f"strong={self.num_strong_pooled_refs}/{self.cur_max_strong_pool_size} "
            f"weak={self.num_weak_pooled_refs}>"
        )
