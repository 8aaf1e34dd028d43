"""Practice completion and streak tracking."""

from shadowing.practice.completion import (
    ALREADY_COMPLETED,
    CompletionResult,
    complete_practice,
    complete_submission,
    start_plan_item,
)
from shadowing.practice.streak import update_user_streak

__all__ = [
    "ALREADY_COMPLETED",
    "CompletionResult",
    "complete_practice",
    "complete_submission",
    "start_plan_item",
    "update_user_streak",
]
