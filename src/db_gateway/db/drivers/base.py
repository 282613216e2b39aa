"""
db_gateway.db.drivers.base

The interface every backend driver implements.

Responsibilities:
- Define the lifecycle (`connect`, `ping`, `close`) the registry relies on.
- Define the structure-level operations the read/write paths rely on.

Contract for implementations:
- Connection and liveness failures raise `DatabaseConnectionError`.
- Query failures raise `EngineError`.
- Records are plain JSON-friendly dicts; empty-value stripping is the caller's job.
"""

from __future__ import annotations

import abc
from typing import Any

from db_gateway.db.config import EngineKind


class StoreDriver(abc.ABC):
    kind: EngineKind

    @abc.abstractmethod
    async def connect(self) -> None:
        """Open the pool and verify it with one ping."""

    @abc.abstractmethod
    async def ping(self) -> None: ...

    @abc.abstractmethod
    async def close(self) -> None: ...

    @abc.abstractmethod
    async def list_structures(self) -> list[str]:
        """Collections or tables, in the order the backend reports them."""

    @abc.abstractmethod
    async def sample_random(self, structure: str, limit: int) -> list[dict[str, Any]]:
        """At most `limit` records starting at a random offset; [] when empty."""

    @abc.abstractmethod
    async def insert_record(self, structure: str, record: dict[str, Any]) -> dict[str, Any]:
        """Insert one record and return it with its generated identifier."""

    @abc.abstractmethod
    async def create_default_structure(self, record: dict[str, Any]) -> str:
        """Create the default collection/table suited to `record`; returns its name."""
