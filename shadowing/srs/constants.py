"""
Spaced Repetition Constants

All fixed parameters for the review schedule and the shared status
vocabularies in one place.
"""

from enum import Enum
from typing import Final


# ---- Status Vocabularies ----

class MaterialStatus(str, Enum):
    """Learning state of a material."""
    UNLEARNED = "unlearned"
    LEARNING = "learning"
    MASTERED = "mastered"


class PreprocessStatus(str, Enum):
    """Content preprocessing state (owned by the preprocessing pipeline)."""
    PENDING = "pending"
    PROCESSING = "processing"
    DONE = "done"
    FAILED = "failed"


class PlanItemStatus(str, Enum):
    """Plan item lifecycle. COMPLETED is terminal."""
    PENDING = "pending"
    IN_PROGRESS = "in_progress"
    COMPLETED = "completed"


class PlanItemType(str, Enum):
    """Why a material is in today's plan."""
    REVIEW = "review"
    NEW = "new"


class SelfRating(str, Enum):
    """User's own rating at the end of a practice session."""
    GOOD = "good"
    FAIR = "fair"
    POOR = "poor"


# Plan items in these states may still be claimed by a completion
CLAIMABLE_ITEM_STATUSES: Final[tuple[str, ...]] = (
    PlanItemStatus.PENDING.value,
    PlanItemStatus.IN_PROGRESS.value,
)


# ---- Review Schedule ----

REVIEW_INTERVALS: Final[tuple[int, ...]] = (1, 2, 4, 7, 16, 30, 60)  # days
MASTERY_REVIEW_THRESHOLD: Final[int] = 5


# ---- Optimistic Concurrency ----

MAX_CAS_RETRIES: Final[int] = 5


# ---- Levels ----

MIN_LEVEL: Final[int] = 1
MAX_LEVEL: Final[int] = 5

DAILY_MINUTES_OPTIONS: Final[tuple[int, ...]] = (10, 20, 30)
