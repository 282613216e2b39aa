"""
tests.conftest

Shared fixtures: in-memory fake backends/drivers and a controllable clock.

Responsibilities:
- Let `DatabaseManager` be exercised without a live MongoDB/PostgreSQL.
- Count driver calls so cache and registry behaviour can be asserted.
"""

from __future__ import annotations

import asyncio
import random
from typing import Any

import pytest

from db_gateway.db.cache import QueryCache
from db_gateway.db.config import DatabaseConfig, EngineKind, PoolOptions
from db_gateway.db.drivers.base import StoreDriver
from db_gateway.db.manager import DatabaseManager
from db_gateway.db.records import random_offset
from db_gateway.errors import DatabaseConnectionError, EngineError


class FakeBackend:
    """State of one fake database, shared by every driver opened against it."""

    def __init__(
        self,
        kind: EngineKind = EngineKind.RELATIONAL,
        structures: dict[str, list[dict[str, Any]]] | None = None,
    ) -> None:
        self.kind = kind
        self.structures: dict[str, list[dict[str, Any]]] = structures or {}
        self.reachable = True
        self.fail_next_ping = False
        self.fail_close = False
        self.failing_sample_calls: set[int] = set()
        # When set, sampling blocks until the event fires.
        self.sample_gate: asyncio.Event | None = None
        self.sample_started = asyncio.Event()
        self.sample_calls = 0
        self.created_structures: list[str] = []


class FakeDriver(StoreDriver):
    def __init__(self, backend: FakeBackend, rng: random.Random) -> None:
        self.backend = backend
        self.kind = backend.kind
        self._rng = rng
        self.connected = False
        self.closed = False

    async def connect(self) -> None:
        # Yield so concurrent first-use callers genuinely interleave.
        await asyncio.sleep(0)
        if not self.backend.reachable:
            raise DatabaseConnectionError("backend unreachable")
        self.connected = True

    async def ping(self) -> None:
        if self.backend.fail_next_ping:
            self.backend.fail_next_ping = False
            raise DatabaseConnectionError("connection reset")
        if not self.backend.reachable:
            raise DatabaseConnectionError("backend unreachable")

    async def close(self) -> None:
        self.closed = True
        if self.backend.fail_close:
            raise RuntimeError("close failed")

    async def list_structures(self) -> list[str]:
        return list(self.backend.structures)

    async def sample_random(self, structure: str, limit: int) -> list[dict[str, Any]]:
        self.backend.sample_calls += 1
        if self.backend.sample_calls in self.backend.failing_sample_calls:
            raise EngineError("query failed")
        # Snapshot first: a gated read returns what it saw before any concurrent write.
        rows = list(self.backend.structures[structure])
        self.backend.sample_started.set()
        if self.backend.sample_gate is not None:
            await self.backend.sample_gate.wait()
        if not rows:
            return []
        offset = random_offset(len(rows), self._rng)
        return [dict(row) for row in rows[offset : offset + limit]]

    async def insert_record(self, structure: str, record: dict[str, Any]) -> dict[str, Any]:
        rows = self.backend.structures[structure]
        inserted = {"id": len(rows) + 1, **record}
        rows.append(inserted)
        return dict(inserted)

    async def create_default_structure(self, record: dict[str, Any]) -> str:
        name = (
            "default_collection" if self.kind is EngineKind.DOCUMENT else "default_table"
        )
        self.backend.structures.setdefault(name, [])
        self.backend.created_structures.append(name)
        return name


class FakeDriverFactory:
    def __init__(self, backends: dict[str, FakeBackend]) -> None:
        self.backends = backends
        self.created: list[FakeDriver] = []

    def __call__(
        self, config: DatabaseConfig, *, pool: PoolOptions, rng: random.Random
    ) -> FakeDriver:
        driver = FakeDriver(self.backends[config.abbreviation], rng)
        self.created.append(driver)
        return driver


class FakeClock:
    def __init__(self) -> None:
        self.now = 1000.0

    def __call__(self) -> float:
        return self.now

    def advance(self, seconds: float) -> None:
        self.now += seconds


class ZeroRandom(random.Random):
    """Always draws offset 0, so samples are the leading rows."""

    def randrange(self, *args: Any, **kwargs: Any) -> int:
        return 0


def _rows(count: int) -> list[dict[str, Any]]:
    return [{"id": i, "name": f"row-{i}", "note": "" if i % 2 else None} for i in range(1, count + 1)]


@pytest.fixture
def backends() -> dict[str, FakeBackend]:
    return {
        "a": FakeBackend(structures={"items": _rows(30), "other": _rows(3)}),
        "c": FakeBackend(structures={"items": _rows(5)}),
        "docs": FakeBackend(kind=EngineKind.DOCUMENT),
    }


@pytest.fixture
def driver_factory(backends: dict[str, FakeBackend]) -> FakeDriverFactory:
    return FakeDriverFactory(backends)


@pytest.fixture
def clock() -> FakeClock:
    return FakeClock()


@pytest.fixture
def manager(
    backends: dict[str, FakeBackend],
    driver_factory: FakeDriverFactory,
    clock: FakeClock,
) -> DatabaseManager:
    configs = {
        abbr: DatabaseConfig(abbreviation=abbr, url=f"fake://{abbr}", engine=backend.kind)
        for abbr, backend in backends.items()
    }
    return DatabaseManager(
        configs,
        cache=QueryCache(ttl_seconds=3600, clock=clock),
        driver_factory=driver_factory,
        rng=random.Random(42),
    )


@pytest.fixture
def zero_random() -> random.Random:
    return ZeroRandom()
