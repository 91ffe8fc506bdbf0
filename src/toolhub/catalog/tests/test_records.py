import math

import pytest

from toolhub.catalog.records import (
    DEFAULT_CATEGORY,
    DEFAULT_STORE,
    MAX_COMMENT_LENGTH,
    MAX_TAGS,
    MAX_USER_LENGTH,
    VALID_CATEGORIES,
    App,
    Feedback,
    build_feedback_entry,
    normalize,
    validate_rating_input,
)
from toolhub.exceptions import InvalidRatingError


def test_normalize_truncates_tags_and_coerces_category():
    app = normalize(
        {
            "id": "lint-kit",
            "name": "Lint Kit",
            "category": "Games",
            "tags": [f"t{i}" for i in range(15)],
            "downloadUrl": "https://example.com/lint-kit.zip",
        }
    )

    assert len(app.tags) == MAX_TAGS
    assert app.tags[0] == "t0" and app.tags[-1] == "t9"
    assert app.category == DEFAULT_CATEGORY
    assert app.store == DEFAULT_STORE
    assert app.feedback == []
    assert app.downloads == 0
    assert app.rating == 0
    assert app.rating_count == 0


@pytest.mark.parametrize("category", VALID_CATEGORIES)
def test_normalize_keeps_known_categories(category):
    assert normalize({"category": category}).category == category


def test_normalize_category_match_is_exact():
    # "engineering" is not a member of the enumerated set
    assert normalize({"category": "engineering"}).category == DEFAULT_CATEGORY


@pytest.mark.parametrize(
    "raw",
    [
        {},
        {"tags": "not-a-list", "feedback": "nope", "downloads": "many"},
        {"rating": "NaN", "ratingCount": -3, "category": None},
        {"feedback": [None, 3, {"user": "ana", "comment": "ok"}]},
    ],
)
def test_normalize_never_fails(raw):
    app = normalize(raw)

    assert isinstance(app, App)
    assert isinstance(app.tags, list)
    assert app.downloads >= 0
    assert 0 <= app.rating <= 5
    assert app.rating_count >= 0


def test_normalize_skips_non_mapping_feedback_items():
    app = normalize({"feedback": [None, 3, {"user": "ana", "comment": "ok", "createdAt": "x"}]})

    assert app.feedback == [Feedback(user="ana", persona="viewer", comment="ok", created_at="x")]


def test_rating_is_zero_without_ratings():
    app = normalize({"rating": 4.2, "ratingCount": 0})
    assert app.rating == 0


def test_to_dict_uses_camel_case_keys():
    data = normalize(
        {"id": "a", "name": "A", "downloadUrl": "u", "updateInfo": "v2", "ratingCount": 2, "rating": 3.5}
    ).to_dict()

    assert data["downloadUrl"] == "u"
    assert data["updateInfo"] == "v2"
    assert data["ratingCount"] == 2
    assert data["rating"] == 3.5
    assert set(data) == {
        "id",
        "name",
        "category",
        "store",
        "tags",
        "description",
        "downloadUrl",
        "updateInfo",
        "downloads",
        "rating",
        "ratingCount",
        "feedback",
        "lastUpdated",
    }


@pytest.mark.parametrize("value, expected", [(1, 1), (5, 5), ("3", 3), (4.5, 4.5), (2.0, 2)])
def test_validate_rating_input_accepts_range(value, expected):
    assert validate_rating_input(value) == expected


@pytest.mark.parametrize("value", [0, 6, 0.99, 5.01, -1, None, True, "abc", "", math.nan, math.inf, [3]])
def test_validate_rating_input_rejects(value):
    with pytest.raises(InvalidRatingError) as excinfo:
        validate_rating_input(value)
    assert excinfo.value.status_code == 400
    assert excinfo.value.code == "INVALID_RATING"


def test_build_feedback_entry_truncates_and_defaults():
    entry = build_feedback_entry(user="u" * 200, comment="c" * 900, created_at="2025-01-01T00:00:00.000Z")

    assert len(entry.user) == MAX_USER_LENGTH
    assert len(entry.comment) == MAX_COMMENT_LENGTH
    assert entry.persona == "viewer"
    assert entry.rating is None
    assert "rating" not in entry.to_dict()

    anonymous = build_feedback_entry()
    assert anonymous.user == "anonymous"
    assert anonymous.comment == ""
    assert anonymous.created_at.endswith("Z")


def test_feedback_round_trips_rating():
    entry = build_feedback_entry(user="kim", persona="engineer", comment="solid", rating=4)
    restored = Feedback.from_dict(entry.to_dict())

    assert restored == entry
