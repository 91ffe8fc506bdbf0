"""
Catalog Service
Orchestrates backend calls for the app catalog and turns domain outcomes into
uniform results for the HTTP layer and the CLI.
"""

from __future__ import annotations

import dataclasses
import logging
from dataclasses import dataclass
from typing import Any, Callable, Dict, List, Mapping, Optional

from toolhub.catalog.aggregation import append_feedback, apply_rating, compute_stats
from toolhub.catalog.filters import AppFilter
from toolhub.catalog.records import (
    VALID_CATEGORIES,
    App,
    build_feedback_entry,
    normalize,
    utc_now_iso,
    validate_rating_input,
)
from toolhub.catalog.storage.backend_interface import CatalogBackend
from toolhub.catalog.storage.document_backend import DocumentCatalogBackend
from toolhub.catalog.storage.memory_backend import MemoryCatalogBackend
from toolhub.catalog.storage.sql_backend import SqlCatalogBackend
from toolhub.config import get_settings
from toolhub.config.settings import Settings
from toolhub.exceptions import (
    CatalogException,
    ConfigurationError,
    MissingFieldError,
    NotFoundError,
    StoreFailure,
)

logger = logging.getLogger(__name__)

REQUIRED_FIELDS = ("id", "name", "downloadUrl")

LIST_FAILURE_EMPTY = "empty"
LIST_FAILURE_RAISE = "raise"

_BACKENDS: Dict[str, Callable[[Settings], CatalogBackend]] = {
    "memory": lambda settings: MemoryCatalogBackend(),
    "sql": SqlCatalogBackend,
    "document": DocumentCatalogBackend,
}


def get_catalog_backend(settings: Optional[Settings] = None) -> CatalogBackend:
    """Factory function to get the configured CatalogBackend."""
    settings = settings or get_settings()
    key = (settings.BACKEND or "").strip().lower()
    factory = _BACKENDS.get(key)
    if factory is None:
        raise ConfigurationError(
            f"Unsupported BACKEND: {settings.BACKEND}", config_key="BACKEND"
        )
    backend = factory(settings)
    logger.info("Catalog backend selected: %s", backend.name)
    return backend


@dataclass(frozen=True)
class ServiceResult:
    ok: bool
    status: int
    data: Any = None
    error: Optional[str] = None
    code: Optional[str] = None

    @classmethod
    def success(cls, data: Any, status: int = 200) -> "ServiceResult":
        return cls(ok=True, status=status, data=data)

    @classmethod
    def failure(cls, exc: CatalogException) -> "ServiceResult":
        return cls(ok=False, status=exc.status_code, error=exc.message, code=exc.code)


class CatalogService:
    def __init__(
        self,
        backend: CatalogBackend,
        *,
        list_failure_mode: str = LIST_FAILURE_EMPTY,
    ):
        if list_failure_mode not in {LIST_FAILURE_EMPTY, LIST_FAILURE_RAISE}:
            raise ConfigurationError(
                f"Unsupported LIST_FAILURE_MODE: {list_failure_mode}",
                config_key="LIST_FAILURE_MODE",
            )
        self.backend = backend
        self.list_failure_mode = list_failure_mode

    # ---- reads ----

    def list_apps(self, app_filter: Optional[AppFilter] = None) -> List[App]:
        try:
            return self.backend.list_apps(app_filter or AppFilter())
        except StoreFailure as exc:
            if self.list_failure_mode == LIST_FAILURE_RAISE:
                raise
            logger.warning("Listing apps failed, returning empty result: %s", exc.message)
            return []

    def get_app(self, app_id: str) -> Optional[App]:
        return self.backend.get_app(app_id)

    def list_categories(self) -> List[str]:
        categories = list(VALID_CATEGORIES)
        for app in self.list_apps():
            if app.category not in categories:
                categories.append(app.category)
        return categories

    def list_stores(self) -> List[str]:
        stores: List[str] = []
        for app in self.list_apps():
            if app.store not in stores:
                stores.append(app.store)
        return stores

    def get_stats(self) -> Dict[str, Any]:
        return compute_stats(self.list_apps())

    # ---- writes ----

    def create_app(self, payload: Mapping[str, Any]) -> ServiceResult:
        payload = payload or {}
        missing = [name for name in REQUIRED_FIELDS if not _present(payload.get(name))]
        try:
            if missing:
                raise MissingFieldError(missing)
            app = normalize(
                {
                    **payload,
                    "downloads": 0,
                    "rating": 0,
                    "ratingCount": 0,
                    "feedback": [],
                    "lastUpdated": utc_now_iso(),
                }
            )
            created = self.backend.create_app(app)
        except CatalogException as exc:
            return ServiceResult.failure(exc)
        logger.info("Created app %s (%s)", created.id, created.category)
        return ServiceResult.success(created.to_dict(), status=201)

    def increment_download(self, app_id: str) -> ServiceResult:
        def mutate(app: App) -> App:
            return dataclasses.replace(app, downloads=app.downloads + 1)

        try:
            app = self._update(app_id, mutate)
        except CatalogException as exc:
            return ServiceResult.failure(exc)
        return ServiceResult.success(
            {"downloadUrl": app.download_url, "downloads": app.downloads}
        )

    def add_rating(self, app_id: str, payload: Mapping[str, Any]) -> ServiceResult:
        payload = payload or {}
        try:
            score = validate_rating_input(payload.get("rating"))
            entry = build_feedback_entry(
                user=payload.get("user"),
                persona=payload.get("persona"),
                comment=payload.get("comment"),
                rating=score,
            )

            def mutate(app: App) -> App:
                rating, rating_count = apply_rating(app.rating, app.rating_count, score)
                return dataclasses.replace(
                    app,
                    rating=rating,
                    rating_count=rating_count,
                    feedback=append_feedback(app.feedback, entry),
                )

            app = self._update(app_id, mutate)
        except CatalogException as exc:
            return ServiceResult.failure(exc)
        return ServiceResult.success(
            {
                "rating": app.rating,
                "ratingCount": app.rating_count,
                "feedback": [item.to_dict() for item in app.feedback],
            }
        )

    def add_feedback(self, app_id: str, payload: Mapping[str, Any]) -> ServiceResult:
        payload = payload or {}
        entry = build_feedback_entry(
            user=payload.get("user"),
            persona=payload.get("persona"),
            comment=payload.get("comment"),
        )

        def mutate(app: App) -> App:
            return dataclasses.replace(app, feedback=append_feedback(app.feedback, entry))

        try:
            self._update(app_id, mutate)
        except CatalogException as exc:
            return ServiceResult.failure(exc)
        return ServiceResult.success(entry.to_dict(), status=201)

    def _update(self, app_id: str, mutate: Callable[[App], App]) -> App:
        app = self.backend.atomic_update(app_id, mutate)
        if app is None:
            raise NotFoundError(app_id)
        return app


def _present(value: Any) -> bool:
    if value is None:
        return False
    if isinstance(value, str):
        return bool(value.strip())
    return True


def build_catalog_service(settings: Optional[Settings] = None) -> CatalogService:
    settings = settings or get_settings()
    return CatalogService(
        get_catalog_backend(settings),
        list_failure_mode=(settings.LIST_FAILURE_MODE or LIST_FAILURE_EMPTY).strip().lower(),
    )
