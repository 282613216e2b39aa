"""
db_gateway.db.drivers.relational

PostgreSQL driver on SQLAlchemy's async engine (asyncpg).

Responsibilities:
- Translate `postgres://` URLs into an async engine with bounded pool and timeouts.
- Sample a random page of the first table; insert rows with `RETURNING`.
- Create `default_table` with columns inferred from the first record.

Any SQLAlchemy async URL works (tests run it over `sqlite+aiosqlite`); pool and
asyncpg timeout options are only applied to PostgreSQL.
"""

from __future__ import annotations

import contextlib
import datetime as _dt
import json
import random
from collections.abc import Iterator
from typing import Any

from sqlalchemy import (
    JSON,
    Column,
    DateTime,
    Integer,
    MetaData,
    Table,
    func,
    insert,
    inspect,
    select,
    text,
)
from sqlalchemy.engine import URL, make_url
from sqlalchemy.exc import ArgumentError, InvalidRequestError, SQLAlchemyError
from sqlalchemy.ext.asyncio import AsyncConnection, AsyncEngine, create_async_engine

from db_gateway.db.config import EngineKind, PoolOptions
from db_gateway.db.drivers.base import StoreDriver
from db_gateway.db.records import infer_column_type, parse_timestamp, random_offset
from db_gateway.errors import DatabaseConnectionError, EngineError

DEFAULT_TABLE = "default_table"
PUBLIC_SCHEMA = "public"

_POSTGRES_DRIVERNAMES = frozenset({"postgres", "postgresql"})


def engine_options(raw_url: str, pool: PoolOptions) -> tuple[URL, dict[str, Any]]:
    url = make_url(raw_url)
    if url.drivername in _POSTGRES_DRIVERNAMES:
        url = url.set(drivername="postgresql+asyncpg")

    options: dict[str, Any] = {"pool_pre_ping": True}
    if url.get_backend_name() != "postgresql":
        return url, options

    connect_args: dict[str, Any] = {
        "timeout": pool.connect_timeout,
        "command_timeout": pool.socket_timeout,
    }
    # asyncpg takes `ssl`, not libpq's `sslmode`; hosted Postgres URLs usually carry the latter.
    sslmode = url.query.get("sslmode")
    if sslmode is not None:
        url = url.difference_update_query(["sslmode"])
        connect_args["ssl"] = sslmode

    options.update(
        pool_size=max(pool.min_size, 1),
        max_overflow=max(pool.max_size - max(pool.min_size, 1), 0),
        pool_timeout=pool.connect_timeout,
        connect_args=connect_args,
    )
    return url, options


def default_table_for(record: dict[str, Any], *, schema: str | None = None) -> Table:
    columns = [
        Column(name, infer_column_type(value)) for name, value in record.items() if name != "id"
    ]
    return Table(
        DEFAULT_TABLE,
        MetaData(),
        Column("id", Integer, primary_key=True, autoincrement=True),
        *columns,
        schema=schema,
    )


def _coerce(column: Column, value: Any) -> Any:
    if value is None:
        return None
    column_type = column.type
    if isinstance(column_type, DateTime):
        if isinstance(value, str):
            value = parse_timestamp(value) or value
        if (
            isinstance(value, _dt.datetime)
            and value.tzinfo is not None
            and not column_type.timezone
        ):
            value = value.astimezone(_dt.UTC).replace(tzinfo=None)
        return value
    if isinstance(column_type, Integer) and isinstance(value, float) and value.is_integer():
        return int(value)
    if isinstance(value, (dict, list)) and not isinstance(column_type, JSON):
        return json.dumps(value)
    return value


@contextlib.contextmanager
def _engine_errors(action: str) -> Iterator[None]:
    try:
        yield
    except (SQLAlchemyError, OSError) as e:
        raise EngineError(f"{action} failed: {e}") from e


class RelationalStoreDriver(StoreDriver):
    kind = EngineKind.RELATIONAL

    def __init__(
        self,
        url: str,
        *,
        pool: PoolOptions | None = None,
        rng: random.Random | None = None,
    ) -> None:
        self._url = url
        self._pool = pool or PoolOptions()
        self._rng = rng or random.Random()
        self._engine: AsyncEngine | None = None
        self._schema: str | None = None

    @property
    def engine(self) -> AsyncEngine:
        if self._engine is None:
            raise DatabaseConnectionError("Relational driver is not connected")
        return self._engine

    async def connect(self) -> None:
        try:
            url, options = engine_options(self._url, self._pool)
            engine = create_async_engine(url, **options)
        except (ArgumentError, InvalidRequestError, ValueError) as e:
            # Covers unknown and non-async dialect drivers too. The parser's message
            # echoes the URL, credentials included.
            raise DatabaseConnectionError("Invalid relational database URL") from e
        self._engine = engine
        self._schema = PUBLIC_SCHEMA if url.get_backend_name() == "postgresql" else None
        try:
            await self.ping()
        except DatabaseConnectionError:
            await self.close()
            raise

    async def ping(self) -> None:
        try:
            async with self.engine.connect() as conn:
                await conn.execute(text("SELECT 1"))
        except (SQLAlchemyError, OSError) as e:
            raise DatabaseConnectionError(f"Relational backend unreachable: {e}") from e

    async def close(self) -> None:
        engine, self._engine = self._engine, None
        if engine is not None:
            await engine.dispose()

    async def _reflect(self, conn: AsyncConnection, name: str) -> Table:
        return await conn.run_sync(
            lambda sync_conn: Table(name, MetaData(), schema=self._schema, autoload_with=sync_conn)
        )

    async def list_structures(self) -> list[str]:
        with _engine_errors("Listing tables"):
            async with self.engine.connect() as conn:
                return await conn.run_sync(
                    lambda sync_conn: inspect(sync_conn).get_table_names(schema=self._schema)
                )

    async def sample_random(self, structure: str, limit: int) -> list[dict[str, Any]]:
        with _engine_errors(f"Sampling table {structure!r}"):
            async with self.engine.connect() as conn:
                table = await self._reflect(conn, structure)
                total = (
                    await conn.execute(select(func.count()).select_from(table))
                ).scalar_one()
                if not total:
                    return []
                offset = random_offset(int(total), self._rng)
                result = await conn.execute(select(table).offset(offset).limit(limit))
                return [dict(row) for row in result.mappings()]

    async def insert_record(self, structure: str, record: dict[str, Any]) -> dict[str, Any]:
        with _engine_errors(f"Inserting into table {structure!r}"):
            async with self.engine.begin() as conn:
                table = await self._reflect(conn, structure)
                unknown = [key for key in record if key not in table.c]
                if unknown:
                    raise EngineError(
                        f"Table {structure!r} has no column(s): {', '.join(sorted(unknown))}"
                    )
                values = {key: _coerce(table.c[key], value) for key, value in record.items()}
                stmt = insert(table)
                if values:
                    stmt = stmt.values(values)
                result = await conn.execute(stmt.returning(*table.c))
                return dict(result.mappings().one())

    async def create_default_structure(self, record: dict[str, Any]) -> str:
        table = default_table_for(record, schema=self._schema)
        with _engine_errors(f"Creating table {DEFAULT_TABLE!r}"):
            async with self.engine.begin() as conn:
                await conn.run_sync(table.create, checkfirst=True)
        return table.name


# --- Module Notes -----------------------------------------------------------
# Table and column names always go through SQLAlchemy Core so they are quoted;
# nothing from a request body is ever formatted into SQL text.
