"""
Slot budget and ordering rules for daily plans.

Pure helpers (no DB calls) shared by the generator.
"""

from __future__ import annotations

import math
from dataclasses import dataclass
from datetime import date, datetime
from typing import Optional, Sequence

from shadowing.srs.constants import MaterialStatus, PlanItemType


MAX_PLAN_ITEMS = 50
MINUTES_PER_ITEM = 2
REVIEW_SHARE_CAP = 0.8


@dataclass(frozen=True)
class PlanCandidate:
    """A material eligible for today's plan."""
    id: str
    level: int
    status: str
    tags: str
    next_review_date: Optional[date] = None
    created_at: Optional[datetime] = None

    @property
    def item_type(self) -> str:
        if self.status == MaterialStatus.LEARNING.value:
            return PlanItemType.REVIEW.value
        return PlanItemType.NEW.value


def total_slots(daily_minutes: int) -> int:
    """Plan size for a daily time budget, capped at MAX_PLAN_ITEMS."""
    return max(0, min(daily_minutes // MINUTES_PER_ITEM, MAX_PLAN_ITEMS))


def review_cap(available_reviews: int, slots: int) -> int:
    """
    How many due reviews may enter the plan.

    With more than one slot, reviews take at most 80% of the plan and always
    leave one slot for new material.
    """
    if slots > 1:
        return min(available_reviews, slots - 1, math.ceil(slots * REVIEW_SHARE_CAP))
    return min(available_reviews, slots)


def order_reviews(reviews: Sequence[PlanCandidate]) -> list[PlanCandidate]:
    """Reviews by level ascending (stable, so due-date order breaks ties)."""
    return sorted(reviews, key=lambda m: m.level)


def order_new(new_items: Sequence[PlanCandidate]) -> list[PlanCandidate]:
    """New material grouped by serialized tag set, then level ascending."""
    return sorted(new_items, key=lambda m: (m.tags or "[]", m.level))


def compose_plan(
    reviews: Sequence[PlanCandidate],
    new_items: Sequence[PlanCandidate]
) -> list[PlanCandidate]:
    """Final plan sequence: ordered reviews followed by ordered new material."""
    return order_reviews(reviews) + order_new(new_items)
