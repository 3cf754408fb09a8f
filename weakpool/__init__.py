"""
Adaptive object pool with strong and weak retention tiers.

Main exports:
- WeakPool: the pool itself
- default_scaling_algorithm, RatioScalingAlgorithm, FixedScalingAlgorithm:
  strong tier scaling policies
- AsyncioScheduler, ManualScheduler: where deferred pool work runs
"""

from .errors import PoolError, ScalingAlgorithmError
from .pool import WeakPool
from .scaling import (
    DEFAULT_MAX_STRONG_POOL_SIZE,
    MAX_POOL_TO_ACTIVE_RATIO,
    MIN_POOL_TO_ACTIVE_RATIO,
    POOL_SCALING_FACTOR,
    FixedScalingAlgorithm,
    PoolScalingAlgorithm,
    RatioScalingAlgorithm,
    ScalingConfig,
    default_scaling_algorithm,
)
from .scheduling import AsyncioScheduler, ManualScheduler, Scheduler

__all__ = [
    "WeakPool",
    "PoolError",
    "ScalingAlgorithmError",
    "PoolScalingAlgorithm",
    "default_scaling_algorithm",
    "RatioScalingAlgorithm",
    "FixedScalingAlgorithm",
    "ScalingConfig",
    "DEFAULT_MAX_STRONG_POOL_SIZE",
    "POOL_SCALING_FACTOR",
    "MIN_POOL_TO_ACTIVE_RATIO",
    "MAX_POOL_TO_ACTIVE_RATIO",
    "Scheduler",
    "AsyncioScheduler",
    "ManualScheduler",
]
