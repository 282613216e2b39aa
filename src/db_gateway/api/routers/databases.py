"""
db_gateway.api.routers.databases

Public read and token-protected write endpoints, one backend per abbreviation.

Responsibilities:
- Serve random samples (`GET /api/{db_abbr}` plus the short `/{db_abbr}` aliases).
- Accept JSON-object inserts (`POST /api/{db_abbr}`), escalating to structure
  creation only for callers holding the structure key.
- Shape every response as `{success, ..., database}`.
"""

from __future__ import annotations

from typing import Any

from fastapi import APIRouter, Depends, Request
from fastapi.encoders import jsonable_encoder
from fastapi.responses import JSONResponse, PlainTextResponse
from starlette.status import (
    HTTP_400_BAD_REQUEST,
    HTTP_401_UNAUTHORIZED,
    HTTP_500_INTERNAL_SERVER_ERROR,
)

from db_gateway.api.deps import manager_dep, settings_dep
from db_gateway.auth.deps import get_principal
from db_gateway.auth.models import Principal
from db_gateway.db.manager import DatabaseManager
from db_gateway.errors import GatewayError, InvalidPayload, NoStructureFound
from db_gateway.observability.logging import get_logger
from db_gateway.settings import Settings

log = get_logger(__name__)

router = APIRouter(tags=["databases"])

INVALID_PAYLOAD_MESSAGE = "Invalid data format. Please provide a JSON object."
STRUCTURE_DENIED_MESSAGE = (
    "No structure exists for this database; a valid structure API key is required to create one"
)
USAGE = (
    "Database API is running. Use GET /api/:dbAbbr or direct /:dbAbbr to access data, "
    "POST /api/:dbAbbr with token to insert data."
)

# Order matters: the bare `/{db_abbr}` aliases must be registered after every fixed path.
READ_PATHS = (
    "/api/{db_abbr}",
    "/api/{db_abbr}/{rest:path}",
    "/{db_abbr}",
    "/{db_abbr}/{rest:path}",
)


def _failure(db_abbr: str, message: str, status_code: int) -> JSONResponse:
    return JSONResponse(
        {"success": False, "error": message, "database": db_abbr},
        status_code=status_code,
    )


async def _read_record(request: Request) -> dict[str, Any]:
    try:
        payload = await request.json()
    except ValueError as e:
        raise InvalidPayload(INVALID_PAYLOAD_MESSAGE) from e
    if not isinstance(payload, dict):
        raise InvalidPayload(INVALID_PAYLOAD_MESSAGE)
    return payload


@router.get("/", response_class=PlainTextResponse)
async def usage() -> str:
    return USAGE


@router.post("/api/{db_abbr}")
async def insert_record(
    db_abbr: str,
    request: Request,
    principal: Principal = Depends(get_principal),
    manager: DatabaseManager = Depends(manager_dep),
) -> Any:
    try:
        record = await _read_record(request)
    except InvalidPayload as e:
        return _failure(db_abbr, str(e), HTTP_400_BAD_REQUEST)

    try:
        try:
            data = await manager.insert_data(db_abbr, record)
        except NoStructureFound:
            if not principal.can_create_structure:
                log.info("structure_creation_denied", database=db_abbr)
                return _failure(db_abbr, STRUCTURE_DENIED_MESSAGE, HTTP_401_UNAUTHORIZED)
            data = await manager.insert_data(db_abbr, record, allow_create_structure=True)
    except GatewayError as e:
        log.warning("insert_failed", database=db_abbr, error=str(e))
        return _failure(db_abbr, str(e), HTTP_500_INTERNAL_SERVER_ERROR)

    return jsonable_encoder(
        {
            "success": True,
            "data": data,
            "message": "Data inserted successfully",
            "database": db_abbr,
        }
    )


async def read_random_sample(
    request: Request,
    manager: DatabaseManager = Depends(manager_dep),
    settings: Settings = Depends(settings_dep),
) -> Any:
    db_abbr = request.path_params["db_abbr"]
    try:
        data = await manager.get_random_data(db_abbr, settings.sample_limit)
    except GatewayError as e:
        log.warning("read_failed", database=db_abbr, error=str(e))
        return _failure(db_abbr, str(e), HTTP_500_INTERNAL_SERVER_ERROR)

    return jsonable_encoder(
        {"success": True, "data": data, "count": len(data), "database": db_abbr}
    )


for _path in READ_PATHS:
    router.add_api_route(_path, read_random_sample, methods=["GET"])


# --- Module Notes -----------------------------------------------------------
# The core raises typed errors and never sees HTTP; status mapping lives only here.
