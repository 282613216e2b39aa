"""
db_gateway.db.config

Backend discovery from the process environment.

Responsibilities:
- Scan for `DB_<ABBR>_URL` variables and derive the abbreviation.
- Detect the engine kind from the URL scheme, failing fast on unknown schemes.
- Carry pool/timeout options shared by both drivers.
"""

from __future__ import annotations

import enum
import os
import re
from collections.abc import Mapping
from dataclasses import dataclass

from db_gateway.errors import UnsupportedEngine

_ENV_KEY = re.compile(r"^DB_(?P<name>.+)_URL$")

_DOCUMENT_SCHEMES = ("mongodb://", "mongodb+srv://")
_RELATIONAL_SCHEMES = ("postgres://", "postgresql://", "postgresql+asyncpg://")


class EngineKind(str, enum.Enum):
    DOCUMENT = "mongodb"
    RELATIONAL = "postgres"


@dataclass(frozen=True, slots=True)
class DatabaseConfig:
    abbreviation: str
    url: str
    engine: EngineKind

    def __repr__(self) -> str:
        # URLs usually embed credentials.
        return f"DatabaseConfig(abbreviation={self.abbreviation!r}, engine={self.engine.value!r})"


@dataclass(frozen=True, slots=True)
class PoolOptions:
    max_size: int = 10
    min_size: int = 2
    # Seconds.
    connect_timeout: float = 5.0
    socket_timeout: float = 45.0
    idle_timeout: float = 30.0


def detect_engine(url: str) -> EngineKind:
    if url.startswith(_DOCUMENT_SCHEMES):
        return EngineKind.DOCUMENT
    if url.startswith(_RELATIONAL_SCHEMES):
        return EngineKind.RELATIONAL
    scheme = url.split("://", 1)[0] if "://" in url else url[:16]
    raise UnsupportedEngine(f"Unsupported database type for URL scheme: {scheme!r}")


def load_configs(environ: Mapping[str, str] | None = None) -> dict[str, DatabaseConfig]:
    """
    Build the abbreviation -> config mapping.

    `DB_BLOG_URL=postgres://...` yields `{"blog": DatabaseConfig("blog", ..., RELATIONAL)}`.
    Raises `UnsupportedEngine` for any URL whose scheme is not recognised.
    """

    environ = os.environ if environ is None else environ
    configs: dict[str, DatabaseConfig] = {}
    for key, value in environ.items():
        match = _ENV_KEY.match(key)
        if match is None:
            continue
        abbr = match.group("name").lower()
        configs[abbr] = DatabaseConfig(abbreviation=abbr, url=value, engine=detect_engine(value))
    return configs
