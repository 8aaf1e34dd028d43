"""
Metric computations for progress summaries.
"""

from __future__ import annotations

from datetime import date

import pandas as pd


def build_day_index(start: date, end: date) -> pd.DatetimeIndex:
    """
    Dense day index covering [start, end).
    """
    if end <= start:
        return pd.DatetimeIndex([])
    return pd.date_range(start=start, end=pd.Timestamp(end) - pd.Timedelta(days=1), freq="D")


def compute_daily_completion_rate(plans_df: pd.DataFrame, day_index: pd.DatetimeIndex) -> pd.Series:
    """
    Per-day completed/total ratio; days without a plan (or an empty plan) are 0.
    """
    if len(day_index) == 0:
        return pd.Series(dtype="float64")
    if plans_df.empty:
        return pd.Series(0.0, index=day_index, dtype="float64")

    totals = plans_df.set_index("plan_date")
    rates = (totals["completed_items"] / totals["total_items"].where(totals["total_items"] > 0))
    return rates.fillna(0.0).reindex(day_index, fill_value=0.0).astype("float64")


def compute_average_completion_rate(plans_df: pd.DataFrame) -> float:
    """
    Aggregate completion across all plans (sum completed / sum total).
    """
    if plans_df.empty:
        return 0.0
    total = int(plans_df["total_items"].sum())
    if total == 0:
        return 0.0
    return float(plans_df["completed_items"].sum()) / total


def count_completed_plans(plans_df: pd.DataFrame) -> int:
    """
    Plans whose every item was completed.
    """
    if plans_df.empty:
        return 0
    done = (plans_df["total_items"] > 0) & (plans_df["completed_items"] >= plans_df["total_items"])
    return int(done.sum())
