from __future__ import annotations

from fastapi import APIRouter, Depends

from toolhub import __version__
from toolhub.api.dependencies.catalog import get_catalog_service
from toolhub.catalog.records import utc_now_iso
from toolhub.catalog.services.catalog_service import CatalogService
from toolhub.config import get_settings

router = APIRouter(tags=["system"])


@router.get("/health")
def health(service: CatalogService = Depends(get_catalog_service)) -> dict:
    settings = get_settings()
    return {
        "ok": True,
        "status": "ok",
        "service": "toolhub",
        "version": __version__,
        "environment": settings.ENVIRONMENT,
        "backend": service.backend.name,
        "time": utc_now_iso(),
    }


@router.get("/health/deps")
def health_deps(service: CatalogService = Depends(get_catalog_service)) -> dict:
    backend = service.backend.ping()
    return {
        "ok": bool(backend.get("ok")),
        "service": "toolhub",
        "version": __version__,
        "deps": {"backend": backend},
    }
