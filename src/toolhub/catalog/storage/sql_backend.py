"""
SQL Catalog Backend
Implements CatalogBackend on a relational database via SQLAlchemy.

Every atomic update runs in a single transaction that locks the row first
(SELECT ... FOR UPDATE on PostgreSQL, BEGIN IMMEDIATE on SQLite), so
concurrent updates of the same app are applied one after another. An
in-memory SQLite database has a single connection shared by all threads;
its transactions are run one at a time under a backend-wide lock.
"""

import logging
import threading
from contextlib import contextmanager, nullcontext
from datetime import datetime, timezone
from typing import Any, Dict, Iterator, List, Optional

from sqlalchemy import func, select, text
from sqlalchemy.engine import Engine
from sqlalchemy.exc import IntegrityError, SQLAlchemyError
from sqlalchemy.orm import Session

from toolhub.catalog.filters import AppFilter, filter_apps, parse_timestamp
from toolhub.catalog.records import App, normalize
from toolhub.catalog.storage.backend_interface import CatalogBackend, Mutator
from toolhub.config.settings import Settings
from toolhub.database import (
    create_db_engine,
    create_session_factory,
    init_db,
    session_scope,
    shares_one_connection,
)
from toolhub.exceptions import DuplicateIdError, StoreFailure
from toolhub.models.app import AppRow

logger = logging.getLogger(__name__)


def _to_iso(value: Optional[datetime]) -> str:
    if value is None:
        return ""
    if value.tzinfo is None:
        value = value.replace(tzinfo=timezone.utc)
    value = value.astimezone(timezone.utc)
    return value.isoformat(timespec="milliseconds").replace("+00:00", "Z")


def row_to_app(row: AppRow) -> App:
    return normalize(
        {
            "id": row.id,
            "name": row.name,
            "category": row.category,
            "store": row.store,
            "tags": row.tags,
            "description": row.description,
            "downloadUrl": row.download_url,
            "updateInfo": row.update_info,
            "downloads": row.downloads,
            "rating": row.rating,
            "ratingCount": row.rating_count,
            "feedback": row.feedback,
            "lastUpdated": _to_iso(row.last_updated),
        }
    )


def copy_into_row(row: AppRow, app: App) -> AppRow:
    row.name = app.name
    row.category = app.category
    row.store = app.store
    row.tags = list(app.tags)
    row.description = app.description
    row.download_url = app.download_url
    row.update_info = app.update_info
    row.downloads = app.downloads
    row.rating = app.rating
    row.rating_count = app.rating_count
    row.feedback = [entry.to_dict() for entry in app.feedback]
    row.last_updated = parse_timestamp(app.last_updated)
    return row


class SqlCatalogBackend(CatalogBackend):
    name = "sql"

    def __init__(self, settings: Settings, *, engine: Optional[Engine] = None):
        self.engine = engine or create_db_engine(
            settings.DATABASE_URL,
            echo=settings.DATABASE_ECHO,
            timeout_seconds=settings.DATABASE_TIMEOUT_SECONDS,
        )
        self._sessions = create_session_factory(self.engine)
        # In-memory SQLite: one connection for all threads, one transaction at a time.
        self._serial = threading.Lock() if shares_one_connection(self.engine) else nullcontext()
        try:
            with self._serial:
                init_db(self.engine)
        except SQLAlchemyError as exc:
            raise self._failure("init", exc) from exc

    @contextmanager
    def _transaction(self) -> Iterator[Session]:
        with self._serial:
            with session_scope(self._sessions) as session:
                yield session

    def _failure(self, operation: str, exc: SQLAlchemyError) -> StoreFailure:
        message = str(getattr(exc, "orig", None) or exc)
        logger.error("SQL catalog %s failed: %s", operation, message)
        return StoreFailure(message, backend=self.name, operation=operation)

    def list_apps(self, app_filter: Optional[AppFilter] = None) -> List[App]:
        app_filter = app_filter or AppFilter()
        query = select(AppRow)
        if app_filter.category:
            query = query.where(func.lower(AppRow.category) == app_filter.category.lower())
        if app_filter.store:
            query = query.where(AppRow.store == app_filter.store)
        try:
            with self._transaction() as session:
                apps = [row_to_app(row) for row in session.scalars(query).all()]
        except SQLAlchemyError as exc:
            raise self._failure("list", exc) from exc
        return filter_apps(apps, app_filter)

    def get_app(self, app_id: str) -> Optional[App]:
        try:
            with self._transaction() as session:
                row = session.get(AppRow, app_id)
                return row_to_app(row) if row is not None else None
        except SQLAlchemyError as exc:
            raise self._failure("get", exc) from exc

    def create_app(self, app: App) -> App:
        try:
            with self._transaction() as session:
                if session.get(AppRow, app.id) is not None:
                    raise DuplicateIdError(app.id)
                row = copy_into_row(AppRow(id=app.id), app)
                session.add(row)
                session.flush()
                created = row_to_app(row)
        except IntegrityError as exc:
            # Only a row that now holds this id makes it a lost insert race;
            # any other constraint violation is a store failure.
            if self.get_app(app.id) is not None:
                raise DuplicateIdError(app.id) from exc
            raise self._failure("create", exc) from exc
        except SQLAlchemyError as exc:
            raise self._failure("create", exc) from exc
        return created

    def atomic_update(self, app_id: str, mutator: Mutator) -> Optional[App]:
        query = select(AppRow).where(AppRow.id == app_id).with_for_update()
        try:
            with self._transaction() as session:
                row = session.execute(query).scalar_one_or_none()
                if row is None:
                    return None
                updated = mutator(row_to_app(row))
                copy_into_row(row, updated)
                session.flush()
                result = row_to_app(row)
        except SQLAlchemyError as exc:
            raise self._failure("update", exc) from exc
        return result

    def ping(self) -> Dict[str, Any]:
        try:
            with self._serial, self.engine.connect() as conn:
                conn.execute(text("SELECT 1"))
        except SQLAlchemyError as exc:
            return {"ok": False, "backend": self.name, "error": str(exc)}
        return {"ok": True, "backend": self.name, "dialect": self.engine.dialect.name}

    def close(self) -> None:
        self.engine.dispose()
