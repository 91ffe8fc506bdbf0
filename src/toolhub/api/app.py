from __future__ import annotations

import logging
from typing import Optional

from fastapi import FastAPI
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse
from starlette.requests import Request

from toolhub import __version__
from toolhub.api.routers.health import router as health_router
from toolhub.catalog.services.catalog_service import (
    CatalogService,
    build_catalog_service,
)
from toolhub.catalog.web.catalog_router import catalog_router
from toolhub.config import get_settings
from toolhub.exceptions import CatalogException

logger = logging.getLogger(__name__)


def _parse_csv(value: str) -> list[str]:
    return [part.strip() for part in (value or "").split(",") if part.strip()]


async def _catalog_exception_handler(_request: Request, exc: CatalogException) -> JSONResponse:
    return JSONResponse(
        status_code=exc.status_code,
        content={"error": exc.message, "code": exc.code, "details": exc.details},
    )


def create_app(service: Optional[CatalogService] = None) -> FastAPI:
    """
    Build the HTTP app.

    The catalog service (and with it the backend) is created once here and
    lives for the whole process; tests pass their own service.
    """
    settings = get_settings()
    app = FastAPI(title="toolhub", version=__version__)
    app.state.catalog_service = service or build_catalog_service(settings)

    origins = _parse_csv(settings.CORS_ORIGINS)
    if origins:
        app.add_middleware(
            CORSMiddleware,
            allow_origins=origins,
            allow_methods=["*"],
            allow_headers=["*"],
        )
    app.add_exception_handler(CatalogException, _catalog_exception_handler)
    app.include_router(health_router, prefix="/api")
    app.include_router(catalog_router, prefix="/api")

    @app.on_event("shutdown")
    def _shutdown() -> None:  # pragma: no cover
        app.state.catalog_service.backend.close()

    logger.info("toolhub %s ready (backend=%s)", __version__, app.state.catalog_service.backend.name)
    return app
