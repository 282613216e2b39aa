"""
db_gateway.db.drivers

Engine-specific implementations of the `StoreDriver` interface.

Responsibilities:
- Build the right driver for a `DatabaseConfig` (`create_driver`).
"""

from __future__ import annotations

import random

from db_gateway.db.config import DatabaseConfig, EngineKind, PoolOptions
from db_gateway.db.drivers.base import StoreDriver
from db_gateway.errors import UnsupportedEngine


def create_driver(
    config: DatabaseConfig,
    *,
    pool: PoolOptions,
    rng: random.Random,
) -> StoreDriver:
    # Imported lazily so a deployment with only one engine never loads the other's driver.
    if config.engine is EngineKind.DOCUMENT:
        from db_gateway.db.drivers.document import DocumentStoreDriver

        return DocumentStoreDriver(config.url, pool=pool, rng=rng)
    if config.engine is EngineKind.RELATIONAL:
        from db_gateway.db.drivers.relational import RelationalStoreDriver

        return RelationalStoreDriver(config.url, pool=pool, rng=rng)
    raise UnsupportedEngine(f"Unsupported database type: {config.engine}")


__all__ = ["StoreDriver", "create_driver"]
