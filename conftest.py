from __future__ import annotations

import os

import pytest

from toolhub.config import get_settings


def _db_url() -> str:
    return (os.getenv("TOOLHUB_PYTEST_DB_URL") or "").strip()


def pytest_configure(config: pytest.Config) -> None:
    config.addinivalue_line(
        "markers",
        "requires_db: marks tests that need a real PostgreSQL (enable with TOOLHUB_PYTEST_DB_URL=postgresql+psycopg://...)",
    )


def pytest_collection_modifyitems(config: pytest.Config, items) -> None:
    if _db_url():
        return
    skip_db = pytest.mark.skip(reason="TOOLHUB_PYTEST_DB_URL not set")
    for item in items:
        if "requires_db" in item.keywords:
            item.add_marker(skip_db)


@pytest.fixture(autouse=True)
def _fresh_settings():
    get_settings.cache_clear()
    yield
    get_settings.cache_clear()


@pytest.fixture
def postgres_url() -> str:
    return _db_url()
