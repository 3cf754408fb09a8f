from dataclasses import asdict, dataclass
from typing import Any, NewType

Capacity = NewType("Capacity", int)


@dataclass(slots=True, frozen=True)
class PoolStats:
    """Point-in-time statistics of a single pool"""
    num_active_objects: int
    cur_max_strong_pool_size: Capacity
    num_strong_pooled_refs: int
    num_weak_pooled_refs: int
    num_gc: int
    num_active_gc: int
    rescale_scheduled: bool

    def as_dict(self) -> dict[str, Any]:
        return asdict(self)
