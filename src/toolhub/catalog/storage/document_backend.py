"""
Document Catalog Backend
Implements CatalogBackend on an Elasticsearch/OpenSearch index, one document per app.

The document store has no multi-document transactions. Atomic updates are
serialized per app id with an in-process KeyedLock, which is only correct
while this process is the sole writer. Writes also carry the document's
sequence number, so an update from another process is detected and reported
as StoreFailure instead of being overwritten.
"""

import logging
from contextlib import contextmanager
from typing import Any, Dict, Iterator, List, Optional

from elasticsearch import ApiError, Elasticsearch, TransportError

from toolhub.catalog.filters import AppFilter, filter_apps
from toolhub.catalog.records import App, normalize
from toolhub.catalog.storage.backend_interface import CatalogBackend, Mutator
from toolhub.catalog.storage.keyed_lock import KeyedLock
from toolhub.config.settings import Settings
from toolhub.exceptions import DuplicateIdError, StoreFailure

logger = logging.getLogger(__name__)

# No pagination: one search returns the whole (filtered) catalog.
MAX_RESULTS = 10000

APP_INDEX_MAPPINGS = {
    "properties": {
        "id": {"type": "keyword"},
        "name": {"type": "text", "fields": {"raw": {"type": "keyword"}}},
        "category": {"type": "keyword"},
        "store": {"type": "keyword"},
        "tags": {"type": "keyword"},
        "description": {"type": "text"},
        "downloadUrl": {"type": "keyword", "index": False},
        "updateInfo": {"type": "text", "index": False},
        "downloads": {"type": "long"},
        "rating": {"type": "float"},
        "ratingCount": {"type": "long"},
        "feedback": {"type": "object", "enabled": False},
        "lastUpdated": {"type": "date"},
    }
}


class DocumentCatalogBackend(CatalogBackend):
    name = "document"

    def __init__(self, settings: Settings, *, client: Optional[Elasticsearch] = None):
        self.index_name = f"{settings.SEARCH_ENGINE_INDEX_PREFIX}-apps"
        if client is None:
            auth = None
            if settings.SEARCH_ENGINE_USERNAME and settings.SEARCH_ENGINE_PASSWORD:
                auth = (
                    settings.SEARCH_ENGINE_USERNAME,
                    settings.SEARCH_ENGINE_PASSWORD,
                )
            client = Elasticsearch(
                hosts=[settings.SEARCH_ENGINE_URL],
                basic_auth=auth,
                request_timeout=settings.SEARCH_ENGINE_TIMEOUT_SECONDS,
            )
        self.client = client
        self._record_locks = KeyedLock()
        self.ensure_index()

    @contextmanager
    def _store_errors(self, operation: str) -> Iterator[None]:
        try:
            yield
        except (ApiError, TransportError) as exc:
            message = str(exc)
            logger.error("Document catalog %s failed: %s", operation, message)
            raise StoreFailure(message, backend=self.name, operation=operation) from exc

    def ensure_index(self) -> None:
        """Creates the app index with mappings if it doesn't exist."""
        with self._store_errors("init"):
            if self.client.indices.exists(index=self.index_name):
                return
            # 400 = created concurrently by another process
            self.client.options(ignore_status=400).indices.create(
                index=self.index_name, mappings=APP_INDEX_MAPPINGS
            )
            logger.info("Created catalog index: %s", self.index_name)

    @staticmethod
    def _narrowing_query(app_filter: AppFilter) -> Dict[str, Any]:
        clauses: List[Dict[str, Any]] = []
        if app_filter.category:
            clauses.append(
                {"term": {"category": {"value": app_filter.category, "case_insensitive": True}}}
            )
        if app_filter.store:
            clauses.append({"term": {"store": app_filter.store}})
        if app_filter.tag:
            clauses.append(
                {"term": {"tags": {"value": app_filter.tag, "case_insensitive": True}}}
            )
        if not clauses:
            return {"match_all": {}}
        return {"bool": {"filter": clauses}}

    def list_apps(self, app_filter: Optional[AppFilter] = None) -> List[App]:
        app_filter = app_filter or AppFilter()
        with self._store_errors("list"):
            resp = self.client.search(
                index=self.index_name,
                query=self._narrowing_query(app_filter),
                size=MAX_RESULTS,
            )
        hits = resp.body.get("hits", {}).get("hits", [])
        return filter_apps((normalize(hit.get("_source") or {}) for hit in hits), app_filter)

    def _fetch(self, app_id: str) -> Optional[Dict[str, Any]]:
        resp = self.client.options(ignore_status=404).get(index=self.index_name, id=app_id)
        if resp.meta.status == 404 or not resp.body.get("found"):
            return None
        return resp.body

    def get_app(self, app_id: str) -> Optional[App]:
        with self._store_errors("get"):
            doc = self._fetch(app_id)
        return normalize(doc["_source"]) if doc is not None else None

    def create_app(self, app: App) -> App:
        # op_type=create: the store itself rejects a second document with the same id.
        with self._store_errors("create"):
            resp = self.client.options(ignore_status=409).create(
                index=self.index_name,
                id=app.id,
                document=app.to_dict(),
                refresh="wait_for",
            )
        if resp.meta.status == 409:
            raise DuplicateIdError(app.id)
        return app

    def atomic_update(self, app_id: str, mutator: Mutator) -> Optional[App]:
        with self._record_locks.hold(app_id):
            with self._store_errors("update"):
                doc = self._fetch(app_id)
                if doc is None:
                    return None
                updated = mutator(normalize(doc["_source"]))
                resp = self.client.options(ignore_status=409).index(
                    index=self.index_name,
                    id=app_id,
                    document=updated.to_dict(),
                    if_seq_no=doc["_seq_no"],
                    if_primary_term=doc["_primary_term"],
                    refresh="wait_for",
                )
            if resp.meta.status == 409:
                logger.error("Document catalog update conflict for %s", app_id)
                raise StoreFailure(
                    "App was modified by another writer; update not applied",
                    backend=self.name,
                    operation="update",
                    id=app_id,
                )
        return updated

    def ping(self) -> Dict[str, Any]:
        try:
            ok = bool(self.client.ping())
        except (ApiError, TransportError) as exc:
            return {"ok": False, "backend": self.name, "error": str(exc)}
        return {"ok": ok, "backend": self.name, "index": self.index_name}

    def close(self) -> None:
        self.client.close()
