"""
Data-loading helpers for progress analytics.
"""

from __future__ import annotations

from datetime import date

import pandas as pd
from sqlalchemy import func
from sqlalchemy.orm import Session

from shadowing.analytics.types import LevelStats, MaterialStats
from shadowing.db.models import DailyPlan, Material
from shadowing.srs.constants import MaterialStatus


PLAN_COLUMNS = ["plan_date", "completed_items", "total_items"]


def load_plan_history_df(session: Session, user_id: str, start: date, end: date) -> pd.DataFrame:
    """
    Load a user's daily plans dated in [start, end) into a dataframe.
    """
    rows = session.query(
        DailyPlan.plan_date,
        DailyPlan.completed_items,
        DailyPlan.total_items,
    ).filter(
        DailyPlan.user_id == user_id,
        DailyPlan.plan_date >= start,
        DailyPlan.plan_date < end,
    ).order_by(DailyPlan.plan_date.asc()).all()

    if not rows:
        return pd.DataFrame(columns=PLAN_COLUMNS)

    df = pd.DataFrame([tuple(row) for row in rows], columns=PLAN_COLUMNS)
    df["plan_date"] = pd.to_datetime(df["plan_date"])
    return df


def get_user_material_stats(session: Session, user_id: str) -> MaterialStats:
    """
    Count a user's materials by status and by level.
    """
    rows = session.query(
        Material.level,
        Material.status,
        func.count(Material.id),
    ).filter(
        Material.user_id == user_id
    ).group_by(Material.level, Material.status).all()

    by_status = {status.value: 0 for status in MaterialStatus}
    by_level: dict[int, LevelStats] = {}

    for level, status, count in rows:
        by_status[status] = by_status.get(status, 0) + count
        current = by_level.get(level, LevelStats())
        by_level[level] = LevelStats(
            total=current.total + count,
            mastered=current.mastered + (count if status == MaterialStatus.MASTERED.value else 0),
        )

    return MaterialStats(
        total=sum(by_status.values()),
        unlearned=by_status[MaterialStatus.UNLEARNED.value],
        learning=by_status[MaterialStatus.LEARNING.value],
        mastered=by_status[MaterialStatus.MASTERED.value],
        by_level=dict(sorted(by_level.items())),
    )
