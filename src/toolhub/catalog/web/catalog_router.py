from typing import Any, Optional

from fastapi import APIRouter, Depends, Query
from fastapi.responses import JSONResponse
from pydantic import BaseModel

from toolhub.api.dependencies.auth import require_admin
from toolhub.api.dependencies.catalog import get_catalog_service
from toolhub.catalog.filters import AppFilter
from toolhub.catalog.services.catalog_service import CatalogService, ServiceResult
from toolhub.exceptions import NotFoundError

catalog_router = APIRouter(tags=["Catalog"])


class AppCreateRequest(BaseModel):
    # Left untyped: missing values come back as MISSING_FIELD and the rest
    # is coerced by normalize().
    id: Any = None
    name: Any = None
    category: Any = None
    store: Any = None
    tags: Any = None
    description: Any = None
    downloadUrl: Any = None
    updateInfo: Any = None


class RatingRequest(BaseModel):
    # Left untyped so out-of-range and non-numeric values reach the
    # service and come back as INVALID_RATING rather than a schema error.
    rating: Any = None
    comment: Optional[str] = None
    user: Optional[str] = None
    persona: Optional[str] = None


class FeedbackRequest(BaseModel):
    comment: Optional[str] = None
    user: Optional[str] = None
    persona: Optional[str] = None


def _respond(result: ServiceResult):
    if result.ok:
        return JSONResponse(status_code=result.status, content=result.data)
    return JSONResponse(
        status_code=result.status,
        content={"error": result.error, "code": result.code},
    )


@catalog_router.get("/apps")
def list_apps(
    category: Optional[str] = None,
    tag: Optional[str] = None,
    q: Optional[str] = None,
    store: Optional[str] = None,
    sort: Optional[str] = Query(None, description="name|downloads|rating|updated"),
    service: CatalogService = Depends(get_catalog_service),
):
    app_filter = AppFilter.build(category=category, tag=tag, q=q, store=store, sort=sort)
    return {"apps": [app.to_dict() for app in service.list_apps(app_filter)]}


@catalog_router.get("/apps/{app_id}")
def get_app(app_id: str, service: CatalogService = Depends(get_catalog_service)):
    app = service.get_app(app_id)
    if app is None:
        raise NotFoundError(app_id)
    return app.to_dict()


@catalog_router.post("/apps", dependencies=[Depends(require_admin)])
def create_app(
    payload: AppCreateRequest,
    service: CatalogService = Depends(get_catalog_service),
):
    return _respond(service.create_app(payload.model_dump(exclude_none=True)))


@catalog_router.post("/apps/{app_id}/download")
def download_app(app_id: str, service: CatalogService = Depends(get_catalog_service)):
    return _respond(service.increment_download(app_id))


@catalog_router.post("/apps/{app_id}/rate")
def rate_app(
    app_id: str,
    payload: Optional[RatingRequest] = None,
    service: CatalogService = Depends(get_catalog_service),
):
    payload = payload or RatingRequest()
    return _respond(service.add_rating(app_id, payload.model_dump()))


@catalog_router.post("/apps/{app_id}/feedback")
def add_feedback(
    app_id: str,
    payload: Optional[FeedbackRequest] = None,
    service: CatalogService = Depends(get_catalog_service),
):
    payload = payload or FeedbackRequest()
    return _respond(service.add_feedback(app_id, payload.model_dump()))


@catalog_router.get("/categories")
def list_categories(service: CatalogService = Depends(get_catalog_service)):
    return {"categories": service.list_categories()}


@catalog_router.get("/stores")
def list_stores(service: CatalogService = Depends(get_catalog_service)):
    return {"stores": service.list_stores()}


@catalog_router.get("/stats")
def get_stats(service: CatalogService = Depends(get_catalog_service)):
    return service.get_stats()
