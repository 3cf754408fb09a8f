import asyncio
import logging
from dataclasses import dataclass, field

import psutil

from config.settings import get_monitor_settings
from models import PoolStats
from weakpool import WeakPool

logger = logging.getLogger(__name__)


@dataclass
class MonitorSnapshot:
    """A snapshot of pool statistics and process memory."""

    memory_used_gb: float
    memory_limit_gb: float
    pools: dict[str, PoolStats] = field(default_factory=dict)

    @property
    def memory_used_percent(self) -> float:
        if self.memory_limit_gb <= 0:
            return 0.0
        return self.memory_used_gb / self.memory_limit_gb * 100


class PoolMonitor:
    """Gathers and logs pool statistics periodically."""

    def __init__(
        self,
        pools: dict[str, WeakPool],
        interval_seconds: int | None = None,
        memory_limit_gb: float | None = None,
    ):
        settings = get_monitor_settings()
        self.pools = pools
        self.interval = (
            interval_seconds if interval_seconds is not None else settings.interval_seconds
        )
        self.memory_limit_gb = (
            memory_limit_gb if memory_limit_gb is not None else settings.memory_limit_gb
        )
        self.process = psutil.Process()
        self._monitoring_task: asyncio.Task[None] | None = None

    @property
    def is_running(self) -> bool:
        return self._monitoring_task is not None and not self._monitoring_task.done()

    def _get_memory_usage_gb(self) -> float:
        """Total RSS of the current process and its children."""
        try:
            total_used_bytes = self.process.memory_info().rss
            for child in self.process.children(recursive=True):
                try:
                    total_used_bytes += child.memory_info().rss
                except (psutil.NoSuchProcess, psutil.AccessDenied):
                    continue
            return total_used_bytes / (1024**3)
        except (psutil.NoSuchProcess, psutil.AccessDenied, OSError) as e:
            logger.error("Failed to get memory usage: %s", e)
            return 0.0

    async def collect_snapshot(self) -> MonitorSnapshot:
        snapshot = MonitorSnapshot(
            memory_used_gb=self._get_memory_usage_gb(),
            memory_limit_gb=self.memory_limit_gb,
            pools={name: pool.stats() for name, pool in self.pools.items()},
        )
        logger.debug("Collected pool snapshot: %s", snapshot)
        return snapshot

    async def _monitor_loop(self) -> None:
        while True:
            try:
                snapshot = await self.collect_snapshot()
                pool_summary = " | ".join(
                    f"{name}: active={s.num_active_objects} "
                    f"strong={s.num_strong_pooled_refs}/{s.cur_max_strong_pool_size} "
                    f"weak={s.num_weak_pooled_refs} gc={s.num_gc} active_gc={s.num_active_gc}"
                    for name, s in snapshot.pools.items()
                ) or "No pools"
                logger.info(
                    "Pool Snapshot - Memory: %.2fGB (%.1f%% of %.2fGB) | %s",
                    snapshot.memory_used_gb,
                    snapshot.memory_used_percent,
                    snapshot.memory_limit_gb,
                    pool_summary,
                )
            except Exception as e:  # noqa: BLE001
                # Keep monitoring alive
                logger.exception("Error in pool monitoring loop: %s", e)

            await asyncio.sleep(self.interval)

    def start(self) -> None:
        if self.is_running:
            logger.warning("Pool monitor is already running.")
            return

        self._monitoring_task = asyncio.create_task(self._monitor_loop())
        logger.info("Pool monitor started with %ss interval.", self.interval)

    async def stop(self) -> None:
        if self._monitoring_task and not self._monitoring_task.done():
            self._monitoring_task.cancel()
            try:
                await self._monitoring_task
            except asyncio.CancelledError:
                pass
            logger.info("Pool monitor stopped.")

        self._monitoring_task = None
