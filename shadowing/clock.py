"""
Practice-day clock.

Every "today" in the system is the UTC wall clock shifted by a fixed +8 hours
and truncated to a date. Plan generation, completion, streaks and level
checks must all derive their date from here.
"""

from __future__ import annotations

from datetime import date, datetime, timedelta, timezone
from typing import Optional


PRACTICE_DAY_OFFSET = timedelta(hours=8)


def practice_today(now: Optional[datetime] = None) -> date:
    """
    Current practice day.

    Args:
        now: Wall-clock instant (defaults to now). Naive values are taken as UTC.

    Returns:
        Calendar date at UTC+8
    """
    if now is None:
        now = datetime.now(timezone.utc)
    elif now.tzinfo is None:
        now = now.replace(tzinfo=timezone.utc)
    return (now.astimezone(timezone.utc) + PRACTICE_DAY_OFFSET).date()


def add_days(day: date, days: int) -> date:
    return day + timedelta(days=days)
