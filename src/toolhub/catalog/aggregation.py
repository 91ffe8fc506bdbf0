"""
Rating and statistics aggregation.

Pure functions only: no I/O, no clock. Backends call them inside their
atomic update so the same sequence of scores always produces the same rating.
"""

from __future__ import annotations

from decimal import ROUND_HALF_UP, Decimal
from typing import Any, Dict, Iterable, List, Tuple

from toolhub.catalog.records import App, Feedback, Score

_CENTS = Decimal("0.01")


def round2(value: float) -> float:
    """Round half-up to 2 decimal places (2.675 -> 2.68, unlike round())."""
    return float(Decimal(str(value)).quantize(_CENTS, rounding=ROUND_HALF_UP))


def apply_rating(rating: float, rating_count: int, score: Score) -> Tuple[float, int]:
    """
    Fold one score into a running weighted average.

    Returns (rating', rating_count') where
    rating' = round2((rating * rating_count + score) / (rating_count + 1)).
    """
    new_count = rating_count + 1
    total = rating * rating_count + score
    return round2(total / new_count), new_count


def append_feedback(feedback: Iterable[Feedback], entry: Feedback) -> List[Feedback]:
    return [*feedback, entry]


def compute_stats(apps: Iterable[App]) -> Dict[str, Any]:
    total_downloads = 0
    rating_sum = 0.0
    rating_count = 0
    category_breakdown: Dict[str, int] = {}
    app_count = 0

    for app in apps:
        app_count += 1
        total_downloads += app.downloads
        rating_sum += app.rating * app.rating_count
        rating_count += app.rating_count
        category_breakdown[app.category] = category_breakdown.get(app.category, 0) + 1

    return {
        "totalDownloads": total_downloads,
        "averageRating": round2(rating_sum / rating_count) if rating_count else 0,
        "categoryBreakdown": category_breakdown,
        "appCount": app_count,
    }
