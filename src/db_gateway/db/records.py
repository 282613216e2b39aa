"""
db_gateway.db.records

Engine-agnostic record helpers shared by the drivers and the manager.

Responsibilities:
- Strip empty values from records before they leave the core.
- Draw the random page offset used for sampling.
- Infer a relational column type from a single runtime value.
"""

from __future__ import annotations

import datetime as _dt
import random
from typing import Any

from sqlalchemy import Boolean, DateTime, Double, Integer, Text
from sqlalchemy.types import TypeEngine

Record = dict[str, Any]


def strip_empty_values(record: Record) -> Record:
    """Drop keys whose value is None or an empty string."""
    return {
        key: value
        for key, value in record.items()
        if value is not None and not (isinstance(value, str) and value == "")
    }


def random_offset(count: int, rng: random.Random) -> int:
    """
    Offset in [0, count) for a "random offset + page scan" sample.

    Not uniform: rows near the end come back in short pages and small tables
    skew toward early rows. Non-positive counts always give 0.
    """

    if count <= 0:
        return 0
    return rng.randrange(count)


def parse_timestamp(value: str) -> _dt.datetime | None:
    try:
        return _dt.datetime.fromisoformat(value.strip())
    except ValueError:
        return None


def infer_column_type(value: Any) -> type[TypeEngine]:
    """
    Best-effort column type for a new table, judged from one sample value.

    A free-text string that happens to be ISO-8601 is typed as a timestamp;
    callers should not rely on this for anything beyond bootstrapping.
    """

    # bool before int: bool is an int subclass.
    if isinstance(value, bool):
        return Boolean
    if isinstance(value, int):
        return Integer
    if isinstance(value, float):
        return Double
    if isinstance(value, (_dt.datetime, _dt.date)):
        return DateTime
    if isinstance(value, str) and value.strip() and parse_timestamp(value) is not None:
        return DateTime
    return Text
