"""
Types for progress summaries.
"""

from __future__ import annotations

from dataclasses import dataclass, field
from datetime import date

import pandas as pd


@dataclass(frozen=True)
class LevelStats:
    total: int = 0
    mastered: int = 0


@dataclass(frozen=True)
class MaterialStats:
    """Material counts by status and by level."""
    total: int = 0
    unlearned: int = 0
    learning: int = 0
    mastered: int = 0
    by_level: dict[int, LevelStats] = field(default_factory=dict)


@dataclass(frozen=True)
class ProgressSummary:
    """
    Precomputed figures for a user's progress page.
    """
    user_id: str
    today: date
    materials: MaterialStats
    daily_completion_rate: pd.Series
    average_completion_rate: float
    plans_completed: int
