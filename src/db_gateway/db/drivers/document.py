"""
db_gateway.db.drivers.document

MongoDB driver on Motor (async PyMongo).

Responsibilities:
- Open one pooled client per backend, bound to the URL's default database.
- Sample a random page of the first collection; insert documents.
- Create `default_collection` on demand.
"""

from __future__ import annotations

import contextlib
import random
from collections.abc import Callable, Iterator
from typing import Any

from bson import ObjectId
from motor.motor_asyncio import AsyncIOMotorClient, AsyncIOMotorDatabase
from pymongo.errors import CollectionInvalid, PyMongoError

from db_gateway.db.config import EngineKind, PoolOptions
from db_gateway.db.drivers.base import StoreDriver
from db_gateway.db.records import random_offset
from db_gateway.errors import DatabaseConnectionError, EngineError
from db_gateway.observability.logging import get_logger

log = get_logger(__name__)

DEFAULT_COLLECTION = "default_collection"
# Same fallback as the Mongo shell when the URL names no database.
DEFAULT_DATABASE = "test"


def _ms(seconds: float) -> int:
    return int(seconds * 1000)


def stringify_object_ids(value: Any) -> Any:
    """Render ObjectIds (at any depth) as strings so documents are JSON-serialisable."""
    if isinstance(value, ObjectId):
        return str(value)
    if isinstance(value, dict):
        return {key: stringify_object_ids(item) for key, item in value.items()}
    if isinstance(value, list):
        return [stringify_object_ids(item) for item in value]
    return value


@contextlib.contextmanager
def _engine_errors(action: str) -> Iterator[None]:
    try:
        yield
    except PyMongoError as e:
        raise EngineError(f"{action} failed: {e}") from e


class DocumentStoreDriver(StoreDriver):
    kind = EngineKind.DOCUMENT

    def __init__(
        self,
        url: str,
        *,
        pool: PoolOptions | None = None,
        rng: random.Random | None = None,
        client_factory: Callable[..., AsyncIOMotorClient] = AsyncIOMotorClient,
    ) -> None:
        self._url = url
        self._pool = pool or PoolOptions()
        self._rng = rng or random.Random()
        self._client_factory = client_factory
        self._client: AsyncIOMotorClient | None = None
        self._database: AsyncIOMotorDatabase | None = None

    @property
    def database(self) -> AsyncIOMotorDatabase:
        if self._database is None:
            raise DatabaseConnectionError("Document driver is not connected")
        return self._database

    async def connect(self) -> None:
        try:
            self._client = self._client_factory(
                self._url,
                maxPoolSize=self._pool.max_size,
                minPoolSize=min(self._pool.min_size, self._pool.max_size),
                connectTimeoutMS=_ms(self._pool.connect_timeout),
                serverSelectionTimeoutMS=_ms(self._pool.connect_timeout),
                socketTimeoutMS=_ms(self._pool.socket_timeout),
                maxIdleTimeMS=_ms(self._pool.idle_timeout),
            )
            self._database = self._client.get_default_database(DEFAULT_DATABASE)
        except PyMongoError as e:
            raise DatabaseConnectionError(f"Invalid MongoDB configuration: {type(e).__name__}") from e
        try:
            await self.ping()
        except DatabaseConnectionError:
            await self.close()
            raise

    async def ping(self) -> None:
        try:
            await self.database.command("ping")
        except PyMongoError as e:
            raise DatabaseConnectionError(f"MongoDB backend unreachable: {e}") from e

    async def close(self) -> None:
        client, self._client, self._database = self._client, None, None
        if client is not None:
            client.close()

    async def list_structures(self) -> list[str]:
        with _engine_errors("Listing collections"):
            names = await self.database.list_collection_names()
        return [name for name in names if not name.startswith("system.")]

    async def sample_random(self, structure: str, limit: int) -> list[dict[str, Any]]:
        collection = self.database[structure]
        with _engine_errors(f"Sampling collection {structure!r}"):
            total = await collection.count_documents({})
            if not total:
                return []
            offset = random_offset(total, self._rng)
            documents = await collection.find().skip(offset).limit(limit).to_list(length=limit)
        return [stringify_object_ids(doc) for doc in documents]

    async def insert_record(self, structure: str, record: dict[str, Any]) -> dict[str, Any]:
        # insert_one adds `_id` to the dict it is given; keep the caller's record untouched.
        document = dict(record)
        with _engine_errors(f"Inserting into collection {structure!r}"):
            result = await self.database[structure].insert_one(document)
        inserted = stringify_object_ids(document)
        inserted["_id"] = str(result.inserted_id)
        return inserted

    async def create_default_structure(self, record: dict[str, Any]) -> str:
        with _engine_errors(f"Creating collection {DEFAULT_COLLECTION!r}"):
            try:
                await self.database.create_collection(DEFAULT_COLLECTION)
            except CollectionInvalid:
                # Another writer created it between our listing and now.
                log.info("structure_exists", structure=DEFAULT_COLLECTION)
        return DEFAULT_COLLECTION
