"""
db_gateway.api.app

FastAPI app factory for the database gateway.

Responsibilities:
- Build the FastAPI application and register routers/middleware.
- Own the `DatabaseManager` lifecycle (created with the app, closed on shutdown).
- Render auth/HTTP errors in the same `{success, error}` shape as the routes.
"""

from __future__ import annotations

from collections.abc import AsyncIterator
from contextlib import asynccontextmanager

from fastapi import FastAPI, Request
from fastapi.responses import JSONResponse
from starlette.exceptions import HTTPException as StarletteHTTPException

from db_gateway import __version__
from db_gateway.api.routers.databases import router as databases_router
from db_gateway.api.routers.health import router as health_router
from db_gateway.db.manager import DatabaseManager
from db_gateway.observability.logging import configure_logging, get_logger
from db_gateway.observability.middleware import RequestContextMiddleware
from db_gateway.settings import Settings

log = get_logger(__name__)


def create_app(*, settings: Settings, manager: DatabaseManager | None = None) -> FastAPI:
    configure_logging(
        service_name=settings.service_name,
        level=settings.log_level,
        json_logs=settings.env != "dev",
    )

    # Built eagerly so a bad DB_<ABBR>_URL aborts startup instead of the first request.
    db_manager = manager if manager is not None else DatabaseManager.from_settings(settings)

    @asynccontextmanager
    async def lifespan(_: FastAPI) -> AsyncIterator[None]:
        log.info("startup", env=settings.env, databases=sorted(db_manager.configs))
        try:
            yield
        finally:
            await db_manager.close_all()
            log.info("shutdown")

    app = FastAPI(
        title="Database Gateway",
        version=__version__,
        docs_url="/docs",
        openapi_url="/openapi.json",
        lifespan=lifespan,
    )
    app.state.settings = settings
    app.state.db_manager = db_manager

    @app.exception_handler(StarletteHTTPException)
    async def _http_error(_: Request, exc: StarletteHTTPException) -> JSONResponse:
        return JSONResponse(
            {"success": False, "error": exc.detail},
            status_code=exc.status_code,
            headers=getattr(exc, "headers", None),
        )

    app.add_middleware(RequestContextMiddleware)
    # Health first: the databases router ends in catch-all `/{db_abbr}` routes.
    app.include_router(health_router, tags=["health"])
    app.include_router(databases_router)

    return app


# --- Module Notes -----------------------------------------------------------
# App composition only. Database logic lives in `db_gateway.db`; the manager is
# reachable from handlers through `app.state.db_manager`.
