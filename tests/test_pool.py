"""Tests for WeakPool driven by a manually drained scheduler."""

import gc

import pytest

from helpers import Counter, Item, acquire_n, release_all
from models import PoolStats
from weakpool import (
    FixedScalingAlgorithm,
    ManualScheduler,
    ScalingAlgorithmError,
    WeakPool,
)
from weakpool.finalization import MAX_COUNTER, saturating_increment


class AdjustableAlgorithm:
    """Scaling algorithm whose answer the test sets directly."""

    def __init__(self, size: int):
        self.size = size
        self.calls: list[tuple] = []

    def __call__(self, *args):
        self.calls.append(args)
        return self.size


def make_pool(algorithm, scheduler=None, factory=None):
    return WeakPool(
        factory or Counter(),
        Item.reset,
        scaling_algorithm=algorithm,
        scheduler=scheduler if scheduler is not None else ManualScheduler(),
    )


def states(pool, obj):
    return (pool.is_active(obj), pool.is_strong_pooled(obj), pool.is_weak_pooled(obj))


class TestConstruction:
    def test_seeds_capacity_from_algorithm(self, pool):
        assert pool.cur_max_strong_pool_size == 5

    def test_seed_call_uses_zero_arguments(self):
        algorithm = AdjustableAlgorithm(3)
        pool = make_pool(algorithm)
        assert algorithm.calls == [(0, 0, 0, 0, 0)]
        assert pool.cur_max_strong_pool_size == 3

    def test_starts_empty(self, pool):
        assert pool.stats() == PoolStats(
            num_active_objects=0,
            cur_max_strong_pool_size=5,
            num_strong_pooled_refs=0,
            num_weak_pooled_refs=0,
            num_gc=0,
            num_active_gc=0,
            rescale_scheduled=False,
        )

    def test_rejects_negative_seed(self):
        with pytest.raises(ScalingAlgorithmError):
            make_pool(lambda *args: -1)

    def test_rejects_fractional_seed(self):
        with pytest.raises(ScalingAlgorithmError):
            make_pool(lambda *args: 2.5)

    def test_keeps_falsy_algorithm(self):
        class SizedAlgorithm(AdjustableAlgorithm):
            def __len__(self):
                return 0

        algorithm = SizedAlgorithm(3)
        pool = make_pool(algorithm)
        assert algorithm.calls == [(0, 0, 0, 0, 0)]
        assert pool.cur_max_strong_pool_size == 3

    def test_keeps_falsy_scheduler(self):
        class EmptySizedScheduler(ManualScheduler):
            def __len__(self):
                return self.pending

        scheduler = EmptySizedScheduler()
        pool = make_pool(FixedScalingAlgorithm(5), scheduler=scheduler)
        assert pool.scheduler is scheduler

        pool.release(pool.acquire())
        assert scheduler.pending == 1


class TestAcquireRelease:
    def test_tracks_active_objects(self, pool):
        assert pool.num_active_objects == 0
        obj = pool.acquire()
        assert pool.num_active_objects == 1
        pool.release(obj)
        assert pool.num_active_objects == 0

    def test_active_count_after_k_acquires_j_releases(self, pool):
        objs = acquire_n(pool, 12)
        release_all(pool, objs[:7])
        assert pool.num_active_objects == 5

    def test_tracks_strong_pool(self, pool):
        assert pool.num_strong_pooled_refs == 0
        pool.release(pool.acquire())
        assert pool.num_strong_pooled_refs == 1

    def test_release_under_capacity_goes_strong(self, pool):
        objs = acquire_n(pool, 3)
        release_all(pool, objs[:2])
        strong, weak = pool.num_strong_pooled_refs, pool.num_weak_pooled_refs
        pool.release(objs[2])
        assert pool.num_strong_pooled_refs == strong + 1
        assert pool.num_weak_pooled_refs == weak

    def test_overflow_goes_weak(self, pool):
        objs = acquire_n(pool, pool.cur_max_strong_pool_size + 1)
        release_all(pool, objs)
        assert pool.num_strong_pooled_refs == 5
        assert pool.num_weak_pooled_refs == 1
        assert pool.is_weak_pooled(objs[-1])

    def test_reuses_most_recently_released(self, pool, factory):
        a, b = acquire_n(pool, 2)
        pool.release(a)
        pool.release(b)
        assert pool.acquire() is b
        assert factory.calls == 2

    def test_release_resets_object(self, pool):
        obj = pool.acquire()
        obj.value = 42
        pool.release(obj)
        assert obj.value == 0

    def test_factory_only_called_when_nothing_reusable(self, pool, factory):
        objs = acquire_n(pool, 8)
        assert factory.calls == 8
        release_all(pool, objs)
        reacquired = acquire_n(pool, 8)
        assert factory.calls == 8
        assert {id(obj) for obj in reacquired} == {id(obj) for obj in objs}
        pool.acquire()
        assert factory.calls == 9

    def test_acquire_backfills_strong_from_weak(self, pool):
        objs = acquire_n(pool, 7)
        release_all(pool, objs)
        assert (pool.num_strong_pooled_refs, pool.num_weak_pooled_refs) == (5, 2)

        pool.acquire()
        assert (pool.num_strong_pooled_refs, pool.num_weak_pooled_refs) == (5, 1)
        assert pool.is_strong_pooled(objs[5])

    def test_acquire_takes_weak_when_strong_empty(self, factory, scheduler):
        pool = make_pool(FixedScalingAlgorithm(0), scheduler, factory)
        obj = pool.acquire()
        pool.release(obj)
        assert pool.num_strong_pooled_refs == 0
        assert pool.is_weak_pooled(obj)

        assert pool.acquire() is obj
        assert factory.calls == 1
        assert pool.num_weak_pooled_refs == 0

    def test_acquire_skips_reclaimed_weak_handles(self, factory, scheduler):
        pool = make_pool(FixedScalingAlgorithm(0), scheduler, factory)
        release_all(pool, acquire_n(pool, 3))
        gc.collect()
        assert pool.num_weak_pooled_refs == 3

        pool.acquire()
        assert factory.calls == 4
        assert pool.num_weak_pooled_refs == 0

    def test_factory_error_propagates(self, scheduler):
        def broken():
            raise RuntimeError("boom")

        pool = make_pool(None, scheduler, broken)
        with pytest.raises(RuntimeError, match="boom"):
            pool.acquire()
        assert pool.num_active_objects == 0

    def test_reset_error_propagates(self, factory, scheduler):
        def broken_reset(obj):
            raise ValueError("bad reset")

        pool = WeakPool(factory, broken_reset, scheduler=scheduler)
        obj = pool.acquire()
        with pytest.raises(ValueError, match="bad reset"):
            pool.release(obj)
        assert not pool.is_strong_pooled(obj)
        assert not pool.is_weak_pooled(obj)
        assert not pool.rescale_scheduled

    def test_foreign_release_is_tolerated(self, pool):
        stranger = Item()
        pool.release(stranger)
        assert pool.num_active_objects == 0
        assert pool.is_strong_pooled(stranger)

    def test_active_gc_stays_zero_without_reclaims(self, pool, scheduler):
        for _ in range(3):
            objs = acquire_n(pool, 9)
            release_all(pool, objs)
            scheduler.run_pending()
        assert pool.num_active_gc == 0


class TestIntrospection:
    def test_states_are_mutually_exclusive(self, pool, scheduler):
        objs = acquire_n(pool, 8)
        release_all(pool, objs[:6])

        for obj in objs:
            assert sum(states(pool, obj)) == 1

        assert states(pool, objs[0]) == (False, True, False)
        assert states(pool, objs[5]) == (False, False, True)
        assert states(pool, objs[7]) == (True, False, False)

        scheduler.run_pending()
        for obj in objs:
            assert sum(states(pool, obj)) == 1

    def test_unknown_object(self, pool):
        assert states(pool, Item()) == (False, False, False)


class TestRescale:
    def test_releases_arm_single_rescale(self, pool, scheduler):
        objs = acquire_n(pool, 10)
        release_all(pool, objs)
        assert pool.rescale_scheduled
        assert scheduler.pending == 1

        assert scheduler.run_pending() == 1
        assert not pool.rescale_scheduled
        assert scheduler.pending == 0

    def test_rescale_not_run_before_yield(self, pool, scheduler):
        objs = acquire_n(pool, 105)
        pool.release(objs.pop())
        assert pool.cur_max_strong_pool_size == 5

        scheduler.run_pending()
        assert pool.cur_max_strong_pool_size == 21

    def test_rescale_uses_live_statistics(self, scheduler):
        algorithm = AdjustableAlgorithm(2)
        pool = make_pool(algorithm, scheduler)
        objs = acquire_n(pool, 4)
        release_all(pool, objs[:3])
        scheduler.run_pending()
        # active, current max, strong, weak, gc
        assert algorithm.calls[-1] == (1, 2, 2, 1, 0)

    def test_shrink_demotes_to_weak(self, scheduler):
        algorithm = AdjustableAlgorithm(5)
        pool = make_pool(algorithm, scheduler)
        objs = acquire_n(pool, 5)
        release_all(pool, objs)

        algorithm.size = 2
        scheduler.run_pending()
        assert pool.cur_max_strong_pool_size == 2
        assert pool.num_strong_pooled_refs == 2
        assert pool.num_weak_pooled_refs == 3
        assert pool.is_strong_pooled(objs[0])
        assert pool.is_weak_pooled(objs[4])

    def test_grow_promotes_from_weak(self, scheduler):
        algorithm = AdjustableAlgorithm(5)
        pool = make_pool(algorithm, scheduler)
        objs = acquire_n(pool, 5)
        release_all(pool, objs)
        algorithm.size = 2
        scheduler.run_pending()

        obj = pool.acquire()
        assert (pool.num_strong_pooled_refs, pool.num_weak_pooled_refs) == (2, 2)
        pool.release(obj)
        assert (pool.num_strong_pooled_refs, pool.num_weak_pooled_refs) == (2, 3)

        algorithm.size = 4
        scheduler.run_pending()
        assert pool.cur_max_strong_pool_size == 4
        assert (pool.num_strong_pooled_refs, pool.num_weak_pooled_refs) == (4, 1)

    def test_grow_discards_reclaimed_handles(self, scheduler):
        algorithm = AdjustableAlgorithm(0)
        pool = make_pool(algorithm, scheduler)
        release_all(pool, acquire_n(pool, 3))
        gc.collect()
        assert pool.num_weak_pooled_refs == 3

        algorithm.size = 3
        # Runs the rescale, then the three reclamation reconciliations
        scheduler.run_pending()
        assert pool.num_strong_pooled_refs == 0
        assert pool.num_weak_pooled_refs == 0
        assert pool.num_gc == 0

    def test_capacity_can_drop_below_occupancy_until_rescale(self, scheduler):
        algorithm = AdjustableAlgorithm(5)
        pool = make_pool(algorithm, scheduler)
        objs = acquire_n(pool, 5)
        release_all(pool, objs)
        scheduler.run_pending()

        algorithm.size = 1
        obj = pool.acquire()
        pool.release(obj)
        assert pool.num_strong_pooled_refs == 5
        scheduler.run_pending()
        assert pool.num_strong_pooled_refs == 1

    def test_invalid_scaling_result_leaves_state(self, scheduler):
        algorithm = AdjustableAlgorithm(5)
        pool = make_pool(algorithm, scheduler)
        objs = acquire_n(pool, 2)
        pool.release(objs[0])

        algorithm.size = -1
        with pytest.raises(ScalingAlgorithmError):
            scheduler.run_pending()
        assert pool.cur_max_strong_pool_size == 5
        assert pool.num_strong_pooled_refs == 1
        assert not pool.rescale_scheduled

        algorithm.size = 5
        pool.release(objs[1])
        assert pool.rescale_scheduled


class TestFinalization:
    def test_weak_reclaim_counts_gc(self, pool, scheduler):
        objs = acquire_n(pool, 6)
        release_all(pool, objs)
        del objs
        gc.collect()

        assert scheduler.pending == 2
        scheduler.run_pending()
        assert pool.num_gc == 1
        assert pool.num_weak_pooled_refs == 0
        assert pool.num_strong_pooled_refs == 5

    def test_rescale_resets_gc_count(self, pool, scheduler):
        objs = acquire_n(pool, 6)
        release_all(pool, objs)
        del objs
        gc.collect()
        scheduler.run_pending()
        assert pool.num_gc == 1

        pool.release(pool.acquire())
        scheduler.run_pending()
        assert pool.num_gc == 0

    def test_active_reclaim_is_reported(self, pool, scheduler, caplog):
        obj = pool.acquire()
        assert pool.num_active_objects == 1
        del obj
        gc.collect()

        with caplog.at_level("WARNING"):
            scheduler.run_pending()
        assert pool.num_active_gc == 1
        assert pool.num_active_objects == 0
        assert "without being released" in caplog.text

    def test_strong_pooled_objects_are_not_reclaimed(self, pool, scheduler):
        release_all(pool, acquire_n(pool, 3))
        gc.collect()
        scheduler.run_pending()
        assert pool.num_strong_pooled_refs == 3
        assert pool.num_gc == 0
        assert pool.num_active_gc == 0

    def test_counters_saturate(self):
        assert saturating_increment(0) == 1
        assert saturating_increment(MAX_COUNTER - 1) == MAX_COUNTER
        assert saturating_increment(MAX_COUNTER) == MAX_COUNTER

    def test_tracker_saturates_gc_count(self, pool, scheduler):
        objs = acquire_n(pool, 6)
        release_all(pool, objs)
        scheduler.run_pending()
        pool._tracker.num_gc = MAX_COUNTER
        del objs
        gc.collect()
        scheduler.run_pending()
        assert pool.num_gc == MAX_COUNTER


class TestEndToEnd:
    def test_overflow_rescale_and_promotion(self, pool, scheduler):
        assert pool.cur_max_strong_pool_size == 5

        objs = acquire_n(pool, 6)
        release_all(pool, objs)
        assert pool.num_strong_pooled_refs == 5
        assert pool.num_weak_pooled_refs == 1

        scheduler.run_pending()
        assert pool.cur_max_strong_pool_size == 5
        assert pool.num_strong_pooled_refs == 5
        assert pool.num_weak_pooled_refs == 1

        pool.acquire()
        assert pool.num_weak_pooled_refs == 0
        assert pool.num_strong_pooled_refs == 5
        assert pool.num_active_objects == 1

    def test_stats_snapshot(self, pool):
        objs = acquire_n(pool, 6)
        release_all(pool, objs[:5])
        stats = pool.stats().as_dict()
        assert stats == {
            "num_active_objects": 1,
            "cur_max_strong_pool_size": 5,
            "num_strong_pooled_refs": 5,
            "num_weak_pooled_refs": 0,
            "num_gc": 0,
            "num_active_gc": 0,
            "rescale_scheduled": True,
        }
