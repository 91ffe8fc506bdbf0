import dataclasses
import time
from concurrent.futures import ThreadPoolExecutor

import pytest

from toolhub.catalog.filters import AppFilter
from toolhub.catalog.records import normalize
from toolhub.catalog.storage.memory_backend import MemoryCatalogBackend
from toolhub.exceptions import DuplicateIdError


def _app(app_id, **extra):
    return normalize({"id": app_id, "name": app_id.title(), "downloadUrl": f"https://dl/{app_id}", **extra})


def _slow_increment(app):
    time.sleep(0.001)
    return dataclasses.replace(app, downloads=app.downloads + 1)


class TestMemoryCatalogBackend:
    @pytest.fixture
    def backend(self):
        return MemoryCatalogBackend()

    def test_create_and_get(self, backend):
        backend.create_app(_app("pump-sizer", category="Engineering"))

        app = backend.get_app("pump-sizer")
        assert app.name == "Pump-Sizer"
        assert app.category == "Engineering"
        assert backend.get_app("missing") is None

    def test_duplicate_create_fails(self, backend):
        backend.create_app(_app("a"))
        with pytest.raises(DuplicateIdError):
            backend.create_app(_app("a", name="Other"))
        assert backend.get_app("a").name == "A"

    def test_list_applies_filter(self, backend):
        backend.create_app(_app("a", category="Engineering", tags=["x"]))
        backend.create_app(_app("b", category="Safety", tags=["y"]))

        assert [a.id for a in backend.list_apps(AppFilter.build(category="Engineering"))] == ["a"]
        assert [a.id for a in backend.list_apps(AppFilter.build(tag="y"))] == ["b"]
        assert [a.id for a in backend.list_apps()] == ["a", "b"]

    def test_atomic_update_missing_returns_none(self, backend):
        assert backend.atomic_update("ghost", _slow_increment) is None

    def test_reads_do_not_share_state(self, backend):
        backend.create_app(_app("a", tags=["x"]))

        first = backend.get_app("a")
        first.tags.append("mutated")

        assert backend.get_app("a").tags == ["x"]

    def test_failed_mutator_leaves_record_unchanged(self, backend):
        backend.create_app(_app("a"))

        def explode(app):
            raise RuntimeError("boom")

        with pytest.raises(RuntimeError):
            backend.atomic_update("a", explode)
        assert backend.get_app("a").downloads == 0
        # lock was released
        assert backend.atomic_update("a", _slow_increment).downloads == 1

    def test_concurrent_updates_same_id_are_not_lost(self, backend):
        backend.create_app(_app("a"))

        with ThreadPoolExecutor(max_workers=16) as pool:
            list(pool.map(lambda _: backend.atomic_update("a", _slow_increment), range(64)))

        assert backend.get_app("a").downloads == 64

    def test_concurrent_creates_have_one_winner(self, backend):
        def attempt(i):
            try:
                backend.create_app(_app("same", name=f"attempt-{i}"))
                return True
            except DuplicateIdError:
                return False

        with ThreadPoolExecutor(max_workers=8) as pool:
            results = list(pool.map(attempt, range(16)))

        assert results.count(True) == 1
        assert len(backend.list_apps()) == 1

    def test_ping_reports_size(self, backend):
        backend.create_app(_app("a"))
        assert backend.ping() == {"ok": True, "backend": "memory", "apps": 1}
