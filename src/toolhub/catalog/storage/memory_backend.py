"""
Memory Catalog Backend
Implements CatalogBackend with a process-local table.
"""

import threading
from typing import Any, Dict, List, Optional

from toolhub.catalog.filters import AppFilter, filter_apps
from toolhub.catalog.records import App, normalize
from toolhub.catalog.storage.backend_interface import CatalogBackend, Mutator
from toolhub.catalog.storage.keyed_lock import KeyedLock
from toolhub.exceptions import DuplicateIdError


class MemoryCatalogBackend(CatalogBackend):
    """
    Records are kept as plain dicts and rebuilt on every read, so callers
    never share mutable state with the table.
    """

    name = "memory"

    def __init__(self):
        self._table: Dict[str, Dict[str, Any]] = {}
        self._table_lock = threading.Lock()
        self._record_locks = KeyedLock()

    def list_apps(self, app_filter: Optional[AppFilter] = None) -> List[App]:
        with self._table_lock:
            snapshot = list(self._table.values())
        return filter_apps((normalize(doc) for doc in snapshot), app_filter)

    def get_app(self, app_id: str) -> Optional[App]:
        with self._table_lock:
            doc = self._table.get(app_id)
        return normalize(doc) if doc is not None else None

    def create_app(self, app: App) -> App:
        doc = app.to_dict()
        with self._table_lock:
            if app.id in self._table:
                raise DuplicateIdError(app.id)
            self._table[app.id] = doc
        return normalize(doc)

    def atomic_update(self, app_id: str, mutator: Mutator) -> Optional[App]:
        with self._record_locks.hold(app_id):
            current = self.get_app(app_id)
            if current is None:
                return None
            doc = mutator(current).to_dict()
            with self._table_lock:
                self._table[app_id] = doc
        return normalize(doc)

    def ping(self) -> Dict[str, Any]:
        with self._table_lock:
            size = len(self._table)
        return {"ok": True, "backend": self.name, "apps": size}
