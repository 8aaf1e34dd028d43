"""
Interval Policy - fixed-ladder review scheduling

Pure scheduling logic (no database calls): maps a material's current review
state and a practice outcome to its next review count, review date and
mastery status.

Rules, in precedence order:
1. Poor outcome (flagged poor performance or rated "poor"):
   - all stages completed: halve the review count (at least 1), review tomorrow
   - stages abandoned: reset the review count to 0, review tomorrow
2. "fair": advance the review count, use half the ladder interval (min 1 day)
3. "good" or no rating: advance the review count, full ladder interval, and
   promote to mastered once the count reaches the mastery threshold
"""

from __future__ import annotations

from dataclasses import dataclass
from datetime import date
from typing import Optional

from shadowing.clock import add_days
from shadowing.srs.constants import (
    MASTERY_REVIEW_THRESHOLD,
    REVIEW_INTERVALS,
    MaterialStatus,
    SelfRating,
)


@dataclass(frozen=True)
class MaterialReviewState:
    """Review-relevant columns of a material row as read before an update."""
    review_count: int
    status: str
    last_practice_date: Optional[date] = None


@dataclass(frozen=True)
class PracticeOutcome:
    """Scheduling-relevant result of one practice session."""
    completed_all_stages: bool
    self_rating: Optional[str]  # "good" | "fair" | "poor" | None
    is_poor_performance: bool = False

    @property
    def is_poor(self) -> bool:
        return self.is_poor_performance or self.self_rating == SelfRating.POOR.value


@dataclass(frozen=True)
class ReviewUpdate:
    """New schedule for a material."""
    review_count: int
    next_review_date: date
    status: str


def normalize_self_rating(value) -> Optional[str]:
    """Rating value as stored, or None for anything that is not good/fair/poor."""
    if isinstance(value, SelfRating):
        return value.value
    if isinstance(value, str) and value in {rating.value for rating in SelfRating}:
        return value
    return None


def interval_for(review_count: int) -> int:
    """
    Ladder interval (days) for a review count after increment.

    The index is review_count - 1, clamped to the ladder bounds so counts
    past the end keep reusing the last interval.
    """
    index = min(max(review_count - 1, 0), len(REVIEW_INTERVALS) - 1)
    return REVIEW_INTERVALS[index]


def next_review(
    material: MaterialReviewState,
    outcome: PracticeOutcome,
    today: date
) -> ReviewUpdate:
    """
    Compute the next review schedule for a material.

    Args:
        material: Current review state
        outcome: Practice outcome
        today: Current practice day

    Returns:
        ReviewUpdate with new review count, next review date and status
    """
    if outcome.is_poor:
        if outcome.completed_all_stages:
            review_count = max(1, material.review_count // 2)
        else:
            review_count = 0
        return ReviewUpdate(
            review_count=review_count,
            next_review_date=add_days(today, 1),
            status=MaterialStatus.LEARNING.value,
        )

    review_count = material.review_count + 1
    interval = interval_for(review_count)

    if outcome.self_rating == SelfRating.FAIR.value:
        return ReviewUpdate(
            review_count=review_count,
            next_review_date=add_days(today, max(1, interval // 2)),
            status=_promote_unlearned(material.status),
        )

    # Mastery changes the status only; the item keeps getting reviewed
    if review_count >= MASTERY_REVIEW_THRESHOLD and outcome.completed_all_stages:
        status = MaterialStatus.MASTERED.value
    else:
        status = _promote_unlearned(material.status)

    return ReviewUpdate(
        review_count=review_count,
        next_review_date=add_days(today, interval),
        status=status,
    )


def _promote_unlearned(status: str) -> str:
    if status == MaterialStatus.UNLEARNED.value:
        return MaterialStatus.LEARNING.value
    return status
