"""Pytest configuration to ensure local testing defaults."""

from __future__ import annotations

import asyncio
import os
import sys
from pathlib import Path

import pytest

BACKEND_DIR = Path(__file__).resolve().parents[1]
if str(BACKEND_DIR) not in sys.path:
    sys.path.insert(0, str(BACKEND_DIR))

# Tests never need a running PostgreSQL; the app import falls back to sqlite.
default_sqlite_url = f"sqlite+aiosqlite:///{(BACKEND_DIR / 'tests' / 'test_orders.db').resolve().as_posix()}"
os.environ.setdefault("DATABASE_URL", default_sqlite_url)

from orderhub import errors, schemas  # noqa: E402
from orderhub.cache import ResultCache  # noqa: E402
from orderhub.services.order_service import OrderQueryService  # noqa: E402
from orderhub.store import InMemoryOrderStore  # noqa: E402


class FakeClock:
    def __init__(self, start: float = 1000.0) -> None:
        self.now = start

    def __call__(self) -> float:
        return self.now

    def advance(self, seconds: float) -> None:
        self.now += seconds


class SpyStore(InMemoryOrderStore):
    """In-memory store that counts reads and can be told to fail."""

    def __init__(self) -> None:
        super().__init__()
        self.calls: dict[str, int] = {}
        self.fail_on: set[str] = set()

    def _track(self, operation: str) -> None:
        self.calls[operation] = self.calls.get(operation, 0) + 1
        if operation in self.fail_on:
            raise errors.StoreError(operation)

    async def find(self, criteria, sort, skip, limit):
        self._track("find")
        # yield like a real round trip would
        await asyncio.sleep(0)
        return await super().find(criteria, sort, skip, limit)

    async def aggregate(self, account_id=None):
        self._track("aggregate")
        return await super().aggregate(account_id)

    async def insert(self, record):
        self._track("insert")
        return await super().insert(record)

    async def update_one(self, order_id, partial, account_id=None):
        self._track("update_one")
        return await super().update_one(order_id, partial, account_id)

    async def delete_one(self, order_id, account_id=None):
        self._track("delete_one")
        return await super().delete_one(order_id, account_id)


class GatedStore(SpyStore):
    """Holds ``find`` open until the test releases it."""

    def __init__(self) -> None:
        super().__init__()
        self.entered = asyncio.Event()
        self.release = asyncio.Event()

    async def find(self, criteria, sort, skip, limit):
        self.entered.set()
        await self.release.wait()
        return await super().find(criteria, sort, skip, limit)


def make_order(**overrides) -> schemas.OrderCreate:
    data = {
        "customer": "Alice",
        "category": "Electronics",
        "date": "2025-01-15",
        "source": "Online",
        "geo": "New York",
        "amount": 100,
    }
    data.update(overrides)
    return schemas.OrderCreate.model_validate(data)


@pytest.fixture
def clock() -> FakeClock:
    return FakeClock()


@pytest.fixture
def store() -> SpyStore:
    return SpyStore()


@pytest.fixture
def gated_store() -> GatedStore:
    return GatedStore()


@pytest.fixture
def service(store, clock) -> OrderQueryService:
    return OrderQueryService(store, ResultCache(clock=clock))


@pytest.fixture
def order_factory():
    return make_order
