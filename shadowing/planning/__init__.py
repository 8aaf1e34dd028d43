"""Daily plan generation."""

from shadowing.planning.generator import (
    PlanSummary,
    UserProfile,
    generate_daily_plan,
    load_user_profile,
    regenerate_daily_plan,
)
from shadowing.planning.batch import BatchResult, generate_plans_for_all_users

__all__ = [
    "PlanSummary",
    "UserProfile",
    "generate_daily_plan",
    "load_user_profile",
    "regenerate_daily_plan",
    "BatchResult",
    "generate_plans_for_all_users",
]
