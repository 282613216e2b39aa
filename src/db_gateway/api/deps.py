"""
db_gateway.api.deps

FastAPI dependency wiring for the API layer.

Responsibilities:
- Provide dependency functions for settings and the database manager.
- Encapsulate app.state access patterns.
"""

from __future__ import annotations

from fastapi import Request

from db_gateway.db.manager import DatabaseManager
from db_gateway.settings import Settings


def settings_dep(request: Request) -> Settings:
    # Set by `create_app`; tests inject their own Settings this way.
    return request.app.state.settings  # type: ignore[attr-defined]


def manager_dep(request: Request) -> DatabaseManager:
    # Created in the app lifespan (see `db_gateway.api.app.create_app`).
    return request.app.state.db_manager  # type: ignore[attr-defined]
