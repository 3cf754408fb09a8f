from functools import lru_cache

from pydantic import Field
from pydantic_settings import BaseSettings, SettingsConfigDict


env_file = ".env"


class PoolSettings(BaseSettings):
    """Scaling defaults applied to pools built without an explicit algorithm."""

    model_config = SettingsConfigDict(
        env_file=env_file, env_file_encoding="utf-8", extra="ignore"
    )
    default_strong_size: int = Field(alias="POOL_DEFAULT_STRONG_SIZE", default=5)
    scaling_factor: float = Field(alias="POOL_SCALING_FACTOR", default=0.2)
    min_ratio: float = Field(alias="POOL_MIN_RATIO", default=0.1)
    max_ratio: float = Field(alias="POOL_MAX_RATIO", default=0.5)


class MonitorSettings(BaseSettings):
    model_config = SettingsConfigDict(
        env_file=env_file, env_file_encoding="utf-8", extra="ignore"
    )
    interval_seconds: int = Field(alias="POOL_MONITOR_INTERVAL", default=15)
    memory_limit_gb: float = Field(alias="POOL_MONITOR_MEMORY_LIMIT_GB", default=4.0)


@lru_cache(maxsize=1)
def get_pool_settings() -> PoolSettings:
    return PoolSettings()


@lru_cache(maxsize=1)
def get_monitor_settings() -> MonitorSettings:
    return MonitorSettings()
