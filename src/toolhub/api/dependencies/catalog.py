from __future__ import annotations

from starlette.requests import Request

from toolhub.catalog.services.catalog_service import CatalogService


def get_catalog_service(request: Request) -> CatalogService:
    return request.app.state.catalog_service
