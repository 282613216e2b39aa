"""
tests.test_document_driver

DocumentStoreDriver against an in-memory stand-in for the Motor client.
"""

from __future__ import annotations

import random
from typing import Any

import pytest
from bson import ObjectId
from pymongo.errors import CollectionInvalid, ServerSelectionTimeoutError

from db_gateway.db.config import PoolOptions
from db_gateway.db.drivers.document import (
    DEFAULT_COLLECTION,
    DocumentStoreDriver,
    stringify_object_ids,
)
from db_gateway.errors import DatabaseConnectionError, EngineError


class _InsertResult:
    def __init__(self, inserted_id: ObjectId) -> None:
        self.inserted_id = inserted_id


class _Cursor:
    def __init__(self, documents: list[dict[str, Any]]) -> None:
        self._documents = documents
        self._skip = 0
        self._limit = 0

    def skip(self, n: int) -> _Cursor:
        self._skip = n
        return self

    def limit(self, n: int) -> _Cursor:
        self._limit = n
        return self

    async def to_list(self, length: int | None = None) -> list[dict[str, Any]]:
        end = self._skip + self._limit if self._limit else None
        return [dict(doc) for doc in self._documents[self._skip : end]]


class _Collection:
    def __init__(self, documents: list[dict[str, Any]]) -> None:
        self.documents = documents

    async def count_documents(self, flt: dict[str, Any]) -> int:
        return len(self.documents)

    def find(self) -> _Cursor:
        return _Cursor(self.documents)

    async def insert_one(self, document: dict[str, Any]) -> _InsertResult:
        document.setdefault("_id", ObjectId())
        self.documents.append(document)
        return _InsertResult(document["_id"])


class _Database:
    def __init__(self) -> None:
        self.collections: dict[str, list[dict[str, Any]]] = {}
        self.reachable = True
        self.broken = False

    async def command(self, name: str) -> dict[str, Any]:
        if not self.reachable:
            raise ServerSelectionTimeoutError("no servers")
        return {"ok": 1}

    async def list_collection_names(self) -> list[str]:
        if self.broken:
            raise ServerSelectionTimeoutError("no servers")
        return list(self.collections)

    async def create_collection(self, name: str) -> _Collection:
        if name in self.collections:
            raise CollectionInvalid(f"collection {name} already exists")
        self.collections[name] = []
        return _Collection(self.collections[name])

    def __getitem__(self, name: str) -> _Collection:
        return _Collection(self.collections.setdefault(name, []))


class _Client:
    def __init__(self, url: str, **options: Any) -> None:
        self.url = url
        self.options = options
        self.database = _Database()
        self.closed = False
        self.default_name: str | None = None

    def get_default_database(self, default: str | None = None) -> _Database:
        self.default_name = default
        return self.database

    def close(self) -> None:
        self.closed = True


class _ClientFactory:
    def __init__(self) -> None:
        self.clients: list[_Client] = []

    def __call__(self, url: str, **options: Any) -> _Client:
        client = _Client(url, **options)
        self.clients.append(client)
        return client


async def _connected(factory: _ClientFactory, rng: random.Random | None = None) -> DocumentStoreDriver:
    driver = DocumentStoreDriver(
        "mongodb://localhost:27017/app",
        pool=PoolOptions(max_size=10, min_size=2, connect_timeout=5, socket_timeout=45, idle_timeout=30),
        rng=rng or random.Random(5),
        client_factory=factory,
    )
    await driver.connect()
    return driver


@pytest.mark.asyncio
async def test_connect_applies_pool_and_timeouts() -> None:
    factory = _ClientFactory()
    await _connected(factory)

    options = factory.clients[0].options
    assert options["maxPoolSize"] == 10
    assert options["minPoolSize"] == 2
    assert options["connectTimeoutMS"] == 5000
    assert options["serverSelectionTimeoutMS"] == 5000
    assert options["socketTimeoutMS"] == 45000
    assert options["maxIdleTimeMS"] == 30000
    assert factory.clients[0].default_name == "test"


@pytest.mark.asyncio
async def test_failed_ping_on_connect_closes_the_client() -> None:
    factory = _ClientFactory()

    class _DeadClient(_Client):
        def __init__(self, url: str, **options: Any) -> None:
            super().__init__(url, **options)
            self.database.reachable = False

    def dead_factory(url: str, **options: Any) -> _Client:
        client = _DeadClient(url, **options)
        factory.clients.append(client)
        return client

    driver = DocumentStoreDriver("mongodb://down/app", client_factory=dead_factory)
    with pytest.raises(DatabaseConnectionError):
        await driver.connect()
    assert factory.clients[0].closed


@pytest.mark.asyncio
async def test_list_structures_hides_system_collections() -> None:
    factory = _ClientFactory()
    driver = await _connected(factory)
    db = factory.clients[0].database
    db.collections = {"events": [], "system.views": []}

    assert await driver.list_structures() == ["events"]


@pytest.mark.asyncio
async def test_backend_errors_become_engine_errors() -> None:
    factory = _ClientFactory()
    driver = await _connected(factory)
    factory.clients[0].database.broken = True

    with pytest.raises(EngineError):
        await driver.list_structures()


@pytest.mark.asyncio
async def test_sample_is_bounded_and_json_friendly() -> None:
    factory = _ClientFactory()
    driver = await _connected(factory)
    db = factory.clients[0].database
    db.collections["events"] = [
        {"_id": ObjectId(), "n": i, "ref": {"owner": ObjectId()}} for i in range(20)
    ]

    rows = await driver.sample_random("events", 5)

    assert 1 <= len(rows) <= 5
    for row in rows:
        assert isinstance(row["_id"], str)
        assert isinstance(row["ref"]["owner"], str)


@pytest.mark.asyncio
async def test_sample_of_empty_collection_is_empty() -> None:
    factory = _ClientFactory()
    driver = await _connected(factory)
    factory.clients[0].database.collections["events"] = []

    assert await driver.sample_random("events", 5) == []


@pytest.mark.asyncio
async def test_insert_returns_generated_id_without_mutating_input() -> None:
    factory = _ClientFactory()
    driver = await _connected(factory)
    record = {"x": 1}

    inserted = await driver.insert_record("events", record)

    assert record == {"x": 1}
    assert inserted["x"] == 1
    assert ObjectId.is_valid(inserted["_id"])
    stored = factory.clients[0].database.collections["events"][0]
    assert str(stored["_id"]) == inserted["_id"]


@pytest.mark.asyncio
async def test_default_collection_creation_tolerates_a_concurrent_creator() -> None:
    factory = _ClientFactory()
    driver = await _connected(factory)

    assert await driver.create_default_structure({"x": 1}) == DEFAULT_COLLECTION
    assert await driver.create_default_structure({"x": 1}) == DEFAULT_COLLECTION
    assert list(factory.clients[0].database.collections) == [DEFAULT_COLLECTION]


@pytest.mark.asyncio
async def test_close_releases_the_client() -> None:
    factory = _ClientFactory()
    driver = await _connected(factory)

    await driver.close()

    assert factory.clients[0].closed
    with pytest.raises(DatabaseConnectionError):
        await driver.ping()


def test_stringify_object_ids_walks_nested_values() -> None:
    oid = ObjectId()
    assert stringify_object_ids({"a": [oid, {"b": oid}], "c": 1}) == {
        "a": [str(oid), {"b": str(oid)}],
        "c": 1,
    }
