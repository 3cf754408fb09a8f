import pytest

from helpers import Counter, Item
from weakpool import ManualScheduler, WeakPool


@pytest.fixture
def factory() -> Counter:
    return Counter()


@pytest.fixture
def scheduler() -> ManualScheduler:
    return ManualScheduler()


@pytest.fixture
def pool(factory: Counter, scheduler: ManualScheduler) -> WeakPool:
    return WeakPool(factory, Item.reset, scheduler=scheduler, name="test")
