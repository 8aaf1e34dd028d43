"""
SRS - fixed-ladder spaced repetition

Quick start:
    from shadowing import srs

    # Pure scheduling (no DB calls)
    update = srs.next_review(state, outcome, today)

    # Persisted, CAS-protected update
    srs.update_material_after_practice(session, material_id, outcome, today)
"""

# Pure scheduling
from shadowing.srs.interval_policy import (
    MaterialReviewState,
    PracticeOutcome,
    ReviewUpdate,
    interval_for,
    next_review,
)

# Persisted update
from shadowing.srs.updater import update_material_after_practice

# Constants
from shadowing.srs.constants import (
    MASTERY_REVIEW_THRESHOLD,
    MAX_CAS_RETRIES,
    REVIEW_INTERVALS,
    MaterialStatus,
    PlanItemStatus,
    PlanItemType,
    PreprocessStatus,
    SelfRating,
)


__all__ = [
    # Scheduling
    "MaterialReviewState",
    "PracticeOutcome",
    "ReviewUpdate",
    "interval_for",
    "next_review",

    # Database operations
    "update_material_after_practice",

    # Enums
    "MaterialStatus",
    "PlanItemStatus",
    "PlanItemType",
    "PreprocessStatus",
    "SelfRating",

    # Parameters
    "MASTERY_REVIEW_THRESHOLD",
    "MAX_CAS_RETRIES",
    "REVIEW_INTERVALS",
]
