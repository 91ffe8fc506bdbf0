"""
Catalog filtering and ordering shared by every backend.

Backends may narrow the candidate set in the store first (SQL WHERE clauses,
search-engine terms), but the final answer is always produced by
`filter_apps()` so all backends agree on matching and ordering rules.
"""

from __future__ import annotations

from dataclasses import dataclass
from datetime import datetime, timezone
from typing import Iterable, List, Optional

from toolhub.catalog.records import App

SORT_NAME = "name"
SORT_DOWNLOADS = "downloads"
SORT_RATING = "rating"
SORT_UPDATED = "updated"
SORT_KEYS = (SORT_NAME, SORT_DOWNLOADS, SORT_RATING, SORT_UPDATED)

_EPOCH = datetime(1970, 1, 1, tzinfo=timezone.utc)


def _clean(value: Optional[str]) -> Optional[str]:
    if value is None:
        return None
    value = str(value).strip()
    return value or None


@dataclass(frozen=True)
class AppFilter:
    """Conjunction of optional constraints; None means unconstrained."""

    category: Optional[str] = None
    tag: Optional[str] = None
    q: Optional[str] = None
    store: Optional[str] = None
    sort: str = SORT_NAME

    @classmethod
    def build(
        cls,
        *,
        category: Optional[str] = None,
        tag: Optional[str] = None,
        q: Optional[str] = None,
        store: Optional[str] = None,
        sort: Optional[str] = None,
    ) -> "AppFilter":
        sort_key = (_clean(sort) or SORT_NAME).lower()
        return cls(
            category=_clean(category),
            tag=_clean(tag),
            q=_clean(q),
            store=_clean(store),
            sort=sort_key if sort_key in SORT_KEYS else SORT_NAME,
        )

    def matches(self, app: App) -> bool:
        if self.category and app.category.lower() != self.category.lower():
            return False
        if self.store and app.store != self.store:
            return False
        if self.tag:
            wanted = self.tag.lower()
            if not any(tag.lower() == wanted for tag in app.tags):
                return False
        if self.q:
            term = self.q.lower()
            haystacks = [app.name, app.description, *app.tags]
            if not any(term in text.lower() for text in haystacks):
                return False
        return True


def parse_timestamp(value: str) -> datetime:
    if not value:
        return _EPOCH
    text = value[:-1] + "+00:00" if value.endswith("Z") else value
    try:
        parsed = datetime.fromisoformat(text)
    except ValueError:
        return _EPOCH
    if parsed.tzinfo is None:
        parsed = parsed.replace(tzinfo=timezone.utc)
    return parsed


def sort_apps(apps: Iterable[App], sort: str = SORT_NAME) -> List[App]:
    ordered = sorted(apps, key=lambda app: (app.name, app.id))
    if sort == SORT_DOWNLOADS:
        ordered.sort(key=lambda app: app.downloads, reverse=True)
    elif sort == SORT_RATING:
        ordered.sort(key=lambda app: app.rating, reverse=True)
    elif sort == SORT_UPDATED:
        ordered.sort(key=lambda app: parse_timestamp(app.last_updated), reverse=True)
    return ordered


def filter_apps(apps: Iterable[App], app_filter: Optional[AppFilter] = None) -> List[App]:
    app_filter = app_filter or AppFilter()
    return sort_apps((app for app in apps if app_filter.matches(app)), app_filter.sort)
