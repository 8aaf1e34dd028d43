"""
Service layer to assemble a user's progress summary.
"""

from __future__ import annotations

from datetime import date

from sqlalchemy.orm import Session

from shadowing.analytics.metrics import (
    build_day_index,
    compute_average_completion_rate,
    compute_daily_completion_rate,
    count_completed_plans,
)
from shadowing.analytics.queries import get_user_material_stats, load_plan_history_df
from shadowing.analytics.types import ProgressSummary
from shadowing.clock import add_days


def build_progress_summary(
    session: Session,
    user_id: str,
    today: date,
    days: int = 30
) -> ProgressSummary:
    """
    Build material stats and plan completion figures for the `days` before today.
    """
    start = add_days(today, -days)
    plans_df = load_plan_history_df(session, user_id, start, today)
    day_index = build_day_index(start, today)
    materials = get_user_material_stats(session, user_id)
    session.commit()

    return ProgressSummary(
        user_id=user_id,
        today=today,
        materials=materials,
        daily_completion_rate=compute_daily_completion_rate(plans_df, day_index),
        average_completion_rate=compute_average_completion_rate(plans_df),
        plans_completed=count_completed_plans(plans_df),
    )
