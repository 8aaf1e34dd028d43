"""
Practice streak updater.

CAS-protected read-modify-write over a user's streak counters. The streak
continues if the user last practiced yesterday and restarts at 1 otherwise.
Practicing again on the same day changes nothing.
"""

from __future__ import annotations

import logging
from dataclasses import dataclass
from datetime import date
from typing import Optional

from sqlalchemy.orm import Session

from shadowing.clock import add_days
from shadowing.db.cas import compare_and_swap
from shadowing.db.models import User
from shadowing.srs.constants import MAX_CAS_RETRIES

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class StreakState:
    last_practice_date: Optional[date]
    streak_days: int
    max_streak_days: int
    total_practice_days: int


def advance_streak(state: StreakState, today: date) -> StreakState:
    """New streak counters for a practice on `today` (caller checks same-day)."""
    if state.last_practice_date == add_days(today, -1):
        streak = state.streak_days + 1
    else:
        streak = 1

    return StreakState(
        last_practice_date=today,
        streak_days=streak,
        max_streak_days=max(streak, state.max_streak_days),
        total_practice_days=state.total_practice_days + 1,
    )


def _load_streak(session: Session, user_id: str) -> Optional[StreakState]:
    row = session.query(
        User.last_practice_date,
        User.streak_days,
        User.max_streak_days,
        User.total_practice_days,
    ).filter(User.id == user_id).first()
    session.commit()

    if row is None:
        return None
    return StreakState(
        last_practice_date=row.last_practice_date,
        streak_days=row.streak_days,
        max_streak_days=row.max_streak_days,
        total_practice_days=row.total_practice_days,
    )


def update_user_streak(session: Session, user_id: str, today: date) -> Optional[StreakState]:
    """
    Record a practice day for the user.

    Returns:
        The streak state written, or None if nothing was written (unknown user,
        already practiced today, or CAS retries exhausted)
    """
    for _ in range(MAX_CAS_RETRIES):
        current = _load_streak(session, user_id)
        if current is None:
            return None

        if current.last_practice_date == today:
            return None

        updated = advance_streak(current, today)
        applied = compare_and_swap(
            session,
            User,
            user_id,
            expected={
                "last_practice_date": current.last_practice_date,
                "streak_days": current.streak_days,
                "max_streak_days": current.max_streak_days,
                "total_practice_days": current.total_practice_days,
            },
            values={
                "last_practice_date": updated.last_practice_date,
                "streak_days": updated.streak_days,
                "max_streak_days": updated.max_streak_days,
                "total_practice_days": updated.total_practice_days,
            },
        )
        if applied:
            return updated

    logger.warning("[Streak] Failed to update streak with CAS for user %s", user_id)
    return None
