"""
Catalog record model.

Every app, whichever backend it is read from or written to, is converted into
these shapes. `normalize()` is the single entry point from raw mappings
(request payloads, stored documents, rows) to a valid `App`.
"""

from __future__ import annotations

import math
from dataclasses import dataclass, field
from datetime import datetime, timezone
from typing import Any, Dict, List, Mapping, Optional, Union

from toolhub.exceptions import InvalidRatingError

VALID_CATEGORIES = (
    "Engineering",
    "Automation",
    "Safety",
    "Operations",
    "Data",
    "Monitoring",
    "Productivity",
    "DevOps",
)
DEFAULT_CATEGORY = "General"
DEFAULT_STORE = "Main"
DEFAULT_USER = "anonymous"
DEFAULT_PERSONA = "viewer"

MAX_TAGS = 10
MAX_USER_LENGTH = 80
MAX_COMMENT_LENGTH = 500

MIN_SCORE = 1
MAX_SCORE = 5

Score = Union[int, float]


def utc_now_iso() -> str:
    """Current UTC time as an ISO-8601 string with millisecond precision, e.g. 2025-01-31T08:00:00.000Z"""
    now = datetime.now(timezone.utc)
    return now.isoformat(timespec="milliseconds").replace("+00:00", "Z")


@dataclass(frozen=True)
class Feedback:
    """A single feedback entry. Entries are never modified once appended."""

    user: str
    persona: str
    comment: str
    created_at: str
    rating: Optional[Score] = None

    def to_dict(self) -> Dict[str, Any]:
        data: Dict[str, Any] = {"user": self.user, "persona": self.persona}
        if self.rating is not None:
            data["rating"] = self.rating
        data["comment"] = self.comment
        data["createdAt"] = self.created_at
        return data

    @classmethod
    def from_dict(cls, data: Mapping[str, Any]) -> "Feedback":
        rating = data.get("rating")
        if isinstance(rating, bool) or not isinstance(rating, (int, float)):
            rating = None
        return cls(
            user=_as_text(data.get("user"), DEFAULT_USER),
            persona=_as_text(data.get("persona"), DEFAULT_PERSONA),
            comment=_as_text(data.get("comment"), ""),
            created_at=_as_text(data.get("createdAt"), ""),
            rating=rating,
        )


@dataclass(frozen=True)
class App:
    id: str
    name: str
    download_url: str
    category: str = DEFAULT_CATEGORY
    store: str = DEFAULT_STORE
    tags: List[str] = field(default_factory=list)
    description: str = ""
    update_info: str = ""
    downloads: int = 0
    rating: float = 0.0
    rating_count: int = 0
    feedback: List[Feedback] = field(default_factory=list)
    last_updated: str = ""

    def to_dict(self) -> Dict[str, Any]:
        return {
            "id": self.id,
            "name": self.name,
            "category": self.category,
            "store": self.store,
            "tags": list(self.tags),
            "description": self.description,
            "downloadUrl": self.download_url,
            "updateInfo": self.update_info,
            "downloads": self.downloads,
            "rating": self.rating,
            "ratingCount": self.rating_count,
            "feedback": [entry.to_dict() for entry in self.feedback],
            "lastUpdated": self.last_updated,
        }


def normalize_category(value: Any) -> str:
    if isinstance(value, str) and value in VALID_CATEGORIES:
        return value
    return DEFAULT_CATEGORY


def normalize_tags(value: Any) -> List[str]:
    if not isinstance(value, (list, tuple)):
        return []
    return [str(tag) for tag in value[:MAX_TAGS]]


def normalize(raw: Mapping[str, Any]) -> App:
    """
    Coerce any mapping into a valid App. Never raises.

    - tags: anything but a list becomes [], longer lists are cut to MAX_TAGS
    - category: unknown values become DEFAULT_CATEGORY
    - store: missing values become DEFAULT_STORE
    - counters: missing or malformed values become 0
    """
    raw = raw or {}
    feedback_raw = raw.get("feedback")
    feedback = (
        [Feedback.from_dict(item) for item in feedback_raw if isinstance(item, Mapping)]
        if isinstance(feedback_raw, (list, tuple))
        else []
    )
    rating_count = max(_as_int(raw.get("ratingCount")), 0)
    rating = min(max(_as_float(raw.get("rating")), 0.0), float(MAX_SCORE))
    if rating_count == 0:
        rating = 0.0

    return App(
        id=_as_text(raw.get("id"), ""),
        name=_as_text(raw.get("name"), ""),
        download_url=_as_text(raw.get("downloadUrl"), ""),
        category=normalize_category(raw.get("category")),
        store=_as_text(raw.get("store"), "") or DEFAULT_STORE,
        tags=normalize_tags(raw.get("tags")),
        description=_as_text(raw.get("description"), ""),
        update_info=_as_text(raw.get("updateInfo"), ""),
        downloads=max(_as_int(raw.get("downloads")), 0),
        rating=rating,
        rating_count=rating_count,
        feedback=feedback,
        last_updated=_as_text(raw.get("lastUpdated"), ""),
    )


def validate_rating_input(value: Any) -> Score:
    """Return the submitted score, or raise InvalidRatingError unless it is a finite number in [1, 5]."""
    if value is None or isinstance(value, bool):
        raise InvalidRatingError(value)
    try:
        score = float(value)
    except (TypeError, ValueError):
        raise InvalidRatingError(value) from None
    if not math.isfinite(score) or score < MIN_SCORE or score > MAX_SCORE:
        raise InvalidRatingError(value)
    return int(score) if score.is_integer() else score


def build_feedback_entry(
    *,
    user: Any = None,
    persona: Any = None,
    comment: Any = None,
    rating: Optional[Score] = None,
    created_at: Optional[str] = None,
) -> Feedback:
    return Feedback(
        user=_as_text(user, DEFAULT_USER)[:MAX_USER_LENGTH],
        persona=_as_text(persona, DEFAULT_PERSONA),
        comment=_as_text(comment, "")[:MAX_COMMENT_LENGTH],
        created_at=created_at or utc_now_iso(),
        rating=rating,
    )


def _as_text(value: Any, default: str) -> str:
    if value is None or value == "":
        return default
    return value if isinstance(value, str) else str(value)


def _as_int(value: Any) -> int:
    if isinstance(value, bool):
        return 0
    try:
        return int(value)
    except (TypeError, ValueError, OverflowError):
        return 0


def _as_float(value: Any) -> float:
    if isinstance(value, bool):
        return 0.0
    try:
        result = float(value)
    except (TypeError, ValueError):
        return 0.0
    return result if math.isfinite(result) else 0.0
