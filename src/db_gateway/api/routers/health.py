"""
db_gateway.api.routers.health

Health and readiness endpoints.

Responsibilities:
- Provide liveness probe (`/healthz`).
- Provide readiness probe (`/readyz`) that validates every configured backend.
"""

from __future__ import annotations

from typing import Any

from fastapi import APIRouter, Depends
from fastapi.responses import JSONResponse
from starlette.status import HTTP_200_OK, HTTP_503_SERVICE_UNAVAILABLE

from db_gateway.api.deps import manager_dep
from db_gateway.db.manager import DatabaseManager
from db_gateway.errors import GatewayError

router = APIRouter()


@router.get("/healthz")
async def healthz() -> dict[str, str]:
    return {"status": "ok"}


@router.get("/readyz")
async def readyz(manager: DatabaseManager = Depends(manager_dep)) -> JSONResponse:
    # Goes through the registry, so a dead pool is recreated here rather than on the next read.
    databases: dict[str, Any] = {}
    for abbr in sorted(manager.configs):
        try:
            await manager.get_connection(abbr)
            databases[abbr] = "ok"
        except GatewayError as e:
            databases[abbr] = f"error: {e}"

    ready = all(status == "ok" for status in databases.values())
    return JSONResponse(
        {"status": "ready" if ready else "degraded", "databases": databases},
        status_code=HTTP_200_OK if ready else HTTP_503_SERVICE_UNAVAILABLE,
    )
