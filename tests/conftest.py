"""Shared test fixtures: items, storage backends and a controllable clock."""
from datetime import datetime, timedelta, timezone

import pytest

from price_check.analysis.price_analyzer import PriceAnalyzer
from price_check.models.item import Amount, Item
from price_check.storage.base import KeyValueStorage
from price_check.storage.memory import MemoryStorage


class FakeClock:
    def __init__(self, start: datetime):
        self.now = start

    def __call__(self) -> datetime:
        return self.now

    def advance(self, **kwargs):
        self.now = self.now + timedelta(**kwargs)


class FailingStorage(KeyValueStorage):
    """Storage whose every operation raises."""

    async def get(self, key):
        raise OSError("storage unavailable")

    async def set(self, key, value):
        raise OSError("storage unavailable")

    async def remove(self, key):
        raise OSError("storage unavailable")

    async def get_all_keys(self):
        raise OSError("storage unavailable")

    async def remove_many(self, keys):
        raise OSError("storage unavailable")


def make_item(price: float, item_id: str = "", **overrides) -> Item:
    """Create an Item with sensible defaults."""
    defaults = {
        "item_id": item_id or f"item-{price}",
        "title": f"Listing at {price}",
        "price": Amount(value=price),
        "end_time": "2024-03-01T12:00:00.000Z",
    }
    defaults.update(overrides)
    return Item(**defaults)


@pytest.fixture
def item_factory():
    return make_item


@pytest.fixture
def storage() -> MemoryStorage:
    return MemoryStorage()


@pytest.fixture
def failing_storage() -> FailingStorage:
    return FailingStorage()


@pytest.fixture
def clock() -> FakeClock:
    return FakeClock(datetime(2024, 3, 1, 12, 0, tzinfo=timezone.utc))


@pytest.fixture
def sample_analysis():
    active = [make_item(p, f"a{i}") for i, p in enumerate([800, 750, 700, 900])]
    sold = [make_item(p, f"s{i}") for i, p in enumerate([650, 700, 720])]
    return PriceAnalyzer.analyze(active, sold, "iPhone 13")
