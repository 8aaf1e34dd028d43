"""
Analytics package exports.
"""

from shadowing.analytics.queries import get_user_material_stats
from shadowing.analytics.service import build_progress_summary
from shadowing.analytics.types import LevelStats, MaterialStats, ProgressSummary

__all__ = [
    "get_user_material_stats",
    "build_progress_summary",
    "LevelStats",
    "MaterialStats",
    "ProgressSummary",
]
