"""
Strong pool scaling algorithms.

A scaling algorithm maps the pool's statistics to a new maximum size for the
strongly referenced tier. The pool calls it once at construction with all
arguments set to zero to seed its capacity, then once per rescale.
"""

import math
from typing import Protocol

from pydantic import BaseModel, Field, model_validator

from config.settings import PoolSettings, get_pool_settings

DEFAULT_MAX_STRONG_POOL_SIZE = 5
POOL_SCALING_FACTOR = 0.2
MIN_POOL_TO_ACTIVE_RATIO = 0.1
MAX_POOL_TO_ACTIVE_RATIO = 0.5


class PoolScalingAlgorithm(Protocol):
    """Call signature of a strong pool scaling algorithm."""

    def __call__(
        self,
        num_active_objects: int,
        cur_max_strong_pool_size: int,
        num_strong_pooled_refs: int,
        num_weak_pooled_refs: int,
        num_gc: int,
    ) -> int:
        ...


def default_scaling_algorithm(
    num_active_objects: int,
    cur_max_strong_pool_size: int,
    num_strong_pooled_refs: int = 0,
    num_weak_pooled_refs: int = 0,
    num_gc: int = 0,
) -> int:
    """
    Keep the strong pool between 10% and 50% of the active object count.

    When the current size drifts outside that band it is re-anchored at 20%
    of the active count. The result never drops below the default size, so
    some reuse survives idle periods.
    """
    # Always true at construction
    if num_active_objects == 0:
        return DEFAULT_MAX_STRONG_POOL_SIZE

    pool_to_active_ratio = cur_max_strong_pool_size / num_active_objects

    if (
        pool_to_active_ratio < MIN_POOL_TO_ACTIVE_RATIO
        or pool_to_active_ratio > MAX_POOL_TO_ACTIVE_RATIO
    ):
        return max(
            math.ceil(num_active_objects * POOL_SCALING_FACTOR),
            DEFAULT_MAX_STRONG_POOL_SIZE,
        )

    return max(cur_max_strong_pool_size, DEFAULT_MAX_STRONG_POOL_SIZE)


class ScalingConfig(BaseModel):
    """Tunables of the ratio scaling policy."""

    default_size: int = Field(default=DEFAULT_MAX_STRONG_POOL_SIZE, ge=0)
    scaling_factor: float = Field(default=POOL_SCALING_FACTOR, gt=0)
    min_ratio: float = Field(default=MIN_POOL_TO_ACTIVE_RATIO, ge=0)
    max_ratio: float = Field(default=MAX_POOL_TO_ACTIVE_RATIO, ge=0)

    @model_validator(mode="after")
    def check_ratio_band(self) -> "ScalingConfig":
        if self.min_ratio > self.max_ratio:
            raise ValueError(
                f"min_ratio ({self.min_ratio}) must not exceed max_ratio ({self.max_ratio})"
            )
        return self

    @classmethod
    def from_settings(cls, settings: PoolSettings | None = None) -> "ScalingConfig":
        settings = settings or get_pool_settings()
        return cls(
            default_size=settings.default_strong_size,
            scaling_factor=settings.scaling_factor,
            min_ratio=settings.min_ratio,
            max_ratio=settings.max_ratio,
        )


class RatioScalingAlgorithm:
    """The default policy with configurable constants."""

    def __init__(self, config: ScalingConfig | None = None):
        self.config = config or ScalingConfig()

    def __call__(
        self,
        num_active_objects: int,
        cur_max_strong_pool_size: int,
        num_strong_pooled_refs: int = 0,
        num_weak_pooled_refs: int = 0,
        num_gc: int = 0,
    ) -> int:
        config = self.config
        if num_active_objects == 0:
            return config.default_size

        ratio = cur_max_strong_pool_size / num_active_objects
        if ratio < config.min_ratio or ratio > config.max_ratio:
            return max(
                math.ceil(num_active_objects * config.scaling_factor),
                config.default_size,
            )

        return max(cur_max_strong_pool_size, config.default_size)

    def __repr__(self) -> str:
        c = self.config
        return (
            f"RatioScalingAlgorithm(default_size={c.default_size}, "
            f"scaling_factor={c.scaling_factor}, "
            f"band=[{c.min_ratio}, {c.max_ratio}])"
        )


class FixedScalingAlgorithm:
    """Always returns the same capacity."""

    def __init__(self, size: int):
        if size < 0:
            raise ValueError(f"size must be non-negative, got {size}")
        self.size = size

    def __call__(
        self,
        num_active_objects: int,
        cur_max_strong_pool_size: int,
        num_strong_pooled_refs: int = 0,
        num_weak_pooled_refs: int = 0,
        num_gc: int = 0,
    ) -> int:
        return self.size

    def __repr__(self) -> str:
        return f"FixedScalingAlgorithm(size={self.size})"


def scaling_algorithm_from_settings(
    settings: PoolSettings | None = None,
) -> PoolScalingAlgorithm:
    """
    Build the scaling algorithm described by the environment.

    Returns the module-level default when the settings match its constants.
    """
    config = ScalingConfig.from_settings(settings)
    if config == ScalingConfig():
        return default_scaling_algorithm
    return RatioScalingAlgorithm(config)
