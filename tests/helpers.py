"""Shared objects and helpers for the pool tests."""

from weakpool import WeakPool


class Item:
    """Pooled test object."""

    def __init__(self) -> None:
        self.value = 0

    def reset(self) -> None:
        self.value = 0


class Counter:
    """Factory that counts how many objects it built."""

    def __init__(self) -> None:
        self.calls = 0

    def __call__(self) -> Item:
        self.calls += 1
        return Item()


def acquire_n(pool: WeakPool, num: int) -> list:
    return [pool.acquire() for _ in range(num)]


def release_all(pool: WeakPool, objs: list) -> None:
    for obj in objs:
        pool.release(obj)
