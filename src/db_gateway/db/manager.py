"""
db_gateway.db.manager

The gateway core: connection registry, read cache and the read/write paths.

Responsibilities:
- Resolve an abbreviation to its config and to exactly one live driver.
- Validate cached drivers before reuse and transparently recreate dead ones.
- Serve random samples through the TTL cache; invalidate it on writes.
- Insert records, creating the default structure only when allowed.
- Close every driver on shutdown.
"""

from __future__ import annotations

import asyncio
import random
from collections.abc import Callable, Mapping
from typing import Any

from db_gateway.db.cache import CacheKey, QueryCache
from db_gateway.db.config import DatabaseConfig, EngineKind, PoolOptions, load_configs
from db_gateway.db.drivers import StoreDriver, create_driver
from db_gateway.db.records import strip_empty_values
from db_gateway.errors import DatabaseConnectionError, NoStructureFound, UnknownDatabase
from db_gateway.observability.logging import get_logger
from db_gateway.settings import Settings

log = get_logger(__name__)

DriverFactory = Callable[..., StoreDriver]

RANDOM_OPERATION = "random"
DEFAULT_SAMPLE_LIMIT = 10


class DatabaseManager:
    """
    One instance per process, created at startup and closed at shutdown.

    Concurrency: connection creation is single-flight per abbreviation (one
    `asyncio.Lock` each), so concurrent first use never opens two pools for the
    same backend. Different abbreviations never wait on each other.
    """

    def __init__(
        self,
        configs: Mapping[str, DatabaseConfig],
        *,
        pool: PoolOptions | None = None,
        cache: QueryCache | None = None,
        driver_factory: DriverFactory = create_driver,
        rng: random.Random | None = None,
    ) -> None:
        self._configs = dict(configs)
        self._pool = pool or PoolOptions()
        self._cache = cache if cache is not None else QueryCache()
        self._driver_factory = driver_factory
        self._rng = rng or random.Random()

        self._connections: dict[str, StoreDriver] = {}
        self._locks: dict[str, asyncio.Lock] = {}

    @classmethod
    def from_settings(
        cls,
        settings: Settings,
        *,
        environ: Mapping[str, str] | None = None,
    ) -> DatabaseManager:
        # Fails fast with UnsupportedEngine on a bad URL scheme.
        configs = load_configs(environ)
        log.info("databases_configured", databases=sorted(configs))
        return cls(
            configs,
            pool=settings.pool_options(),
            cache=QueryCache(ttl_seconds=settings.cache_ttl_seconds),
        )

    @property
    def configs(self) -> Mapping[str, DatabaseConfig]:
        return self._configs

    @property
    def cache(self) -> QueryCache:
        return self._cache

    def config_for(self, abbr: str) -> DatabaseConfig:
        config = self._configs.get(abbr)
        if config is None:
            raise UnknownDatabase(abbr)
        return config

    def is_connected(self, abbr: str) -> bool:
        return abbr in self._connections

    # ------------------------------------------------------------------
    # Connection registry
    # ------------------------------------------------------------------

    async def get_connection(self, abbr: str) -> StoreDriver:
        config = self.config_for(abbr)
        lock = self._locks.setdefault(abbr, asyncio.Lock())
        async with lock:
            existing = self._connections.get(abbr)
            if existing is not None:
                try:
                    await existing.ping()
                    return existing
                except DatabaseConnectionError as e:
                    log.warning("connection_invalid", database=abbr, error=str(e))
                    del self._connections[abbr]
                    await self._close_quietly(abbr, existing)

            driver = self._driver_factory(config, pool=self._pool, rng=self._rng)
            await driver.connect()
            self._connections[abbr] = driver
            log.info("connection_opened", database=abbr, engine=config.engine.value)
            return driver

    async def close_all(self) -> None:
        connections, self._connections = self._connections, {}
        for abbr, driver in connections.items():
            await self._close_quietly(abbr, driver)

    async def _close_quietly(self, abbr: str, driver: StoreDriver) -> None:
        # Every handle gets a close attempt; one failure must not strand the rest.
        try:
            await driver.close()
            log.info("connection_closed", database=abbr)
        except Exception as e:
            log.error("connection_close_failed", database=abbr, error=str(e))

    # ------------------------------------------------------------------
    # Read path
    # ------------------------------------------------------------------

    async def get_random_data(
        self,
        abbr: str,
        limit: int = DEFAULT_SAMPLE_LIMIT,
        *,
        use_cache: bool = True,
    ) -> list[dict[str, Any]]:
        if limit < 1:
            raise ValueError("limit must be a positive integer")
        self.config_for(abbr)

        key = CacheKey(abbr, RANDOM_OPERATION, limit)
        if use_cache:
            cached = self._cache.get(key)
            if cached is not None:
                log.debug("cache_hit", database=abbr, limit=limit)
                return cached

        # Rows sampled across a write to `abbr` must not be cached.
        generation = self._cache.generation(abbr)
        driver = await self.get_connection(abbr)
        structures = await driver.list_structures()
        if not structures:
            rows: list[dict[str, Any]] = []
        else:
            # Single-structure assumption: always the first one reported.
            sampled = await driver.sample_random(structures[0], limit)
            rows = [strip_empty_values(record) for record in sampled[:limit]]

        if use_cache and not self._cache.put(key, rows, generation=generation):
            log.debug("cache_put_skipped", database=abbr, limit=limit)
        return rows

    # ------------------------------------------------------------------
    # Write path
    # ------------------------------------------------------------------

    async def insert_data(
        self,
        abbr: str,
        record: dict[str, Any],
        allow_create_structure: bool = False,
    ) -> dict[str, Any]:
        driver = await self.get_connection(abbr)
        structures = await driver.list_structures()
        if structures:
            structure = structures[0]
        elif not allow_create_structure:
            kind = "collections" if driver.kind is EngineKind.DOCUMENT else "tables"
            raise NoStructureFound(f"No {kind} found in the database")
        else:
            structure = await driver.create_default_structure(record)
            log.info("structure_created", database=abbr, structure=structure)

        inserted = await driver.insert_record(structure, record)
        dropped = self._cache.invalidate(abbr)
        log.info("record_inserted", database=abbr, structure=structure, cache_dropped=dropped)
        return inserted


# --- Module Notes -----------------------------------------------------------
# The only retry anywhere in the core is the ping-then-recreate step in
# `get_connection`; every other failure propagates to the caller.
