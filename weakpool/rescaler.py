"""
Debounced resizing of the strong tier.

Releases arm the rescaler; however many arrive before the host yields, a
single rescale runs afterwards and sees the state as of when it runs.
"""

import numbers
from enum import Enum
from typing import Generic, TypeVar

from .errors import ScalingAlgorithmError
from .finalization import FinalizationTracker
from .handles import WeakHandle
from .log import get_contextual_logger
from .registry import ActiveRegistry
from .scaling import PoolScalingAlgorithm
from .scheduling import Scheduler
from .tiers import TierStore

Obj = TypeVar("Obj")


class RescaleState(Enum):
    IDLE = "idle"
    SCHEDULED = "scheduled"
    RUNNING = "running"


def checked_capacity(algorithm: PoolScalingAlgorithm, result: object) -> int:
    """Validate a scaling result; bools and negative or fractional values are rejected."""
    if isinstance(result, bool) or not isinstance(result, numbers.Integral):
        raise ScalingAlgorithmError(algorithm, result)
    if result < 0:
        raise ScalingAlgorithmError(algorithm, result)
    return int(result)


class Rescaler(Generic[Obj]):
    """
    Single-shot deferred task: Idle -> Scheduled -> Running -> Idle.

    There is no cancellation; once armed, the rescale runs exactly once.
    """

    def __init__(
        self,
        algorithm: PoolScalingAlgorithm,
        tiers: TierStore[Obj],
        active: ActiveRegistry[Obj],
        tracker: FinalizationTracker[Obj],
        scheduler: Scheduler,
        initial_capacity: int,
        pool_name: str = "",
    ):
        self.algorithm = algorithm
        self.tiers = tiers
        self.active = active
        self.tracker = tracker
        self.scheduler = scheduler
        self.capacity = initial_capacity
        self.pool_name = pool_name
        self.state = RescaleState.IDLE
        self.num_rescales = 0
        self.logger = get_contextual_logger(__name__)

    @property
    def scheduled(self) -> bool:
        return self.state is not RescaleState.IDLE

    def arm(self) -> bool:
        """Schedule a rescale unless one is already pending. Returns True if scheduled."""
        if self.state is not RescaleState.IDLE:
            return False

        self.state = RescaleState.SCHEDULED
        self.scheduler.call_soon(self.run)
        return True

    def run(self) -> None:
        self.state = RescaleState.RUNNING
        try:
            self._rescale()
        finally:
            self.state = RescaleState.IDLE

    def _rescale(self) -> None:
        tiers = self.tiers
        strong_len = tiers.strong_len
        weak_len = tiers.weak_len
        result = self.algorithm(
            len(self.active), self.capacity, strong_len, weak_len, self.tracker.num_gc
        )
        new_max = checked_capacity(self.algorithm, result)

        demoted = promoted = 0
        if new_max < strong_len:
            demoted = tiers.demote(self._handle_for, new_max)
        elif new_max > strong_len and weak_len > 0:
            promoted = tiers.promote(new_max)

        old_max = self.capacity
        self.capacity = new_max
        self.tracker.reset_gc_count()
        self.num_rescales += 1

        self.logger.debug(
            "Pool %s rescaled: max strong size %d -> %d (active=%d, strong=%d, weak=%d, "
            "demoted=%d, promoted=%d)",
            self.pool_name or "<unnamed>",
            old_max,
            new_max,
            len(self.active),
            tiers.strong_len,
            tiers.weak_len,
            demoted,
            promoted,
        )

    def _handle_for(self, obj: Obj) -> WeakHandle[Obj]:
        handle, _ = self.tracker.handles.get_or_create(obj)
        return handle
