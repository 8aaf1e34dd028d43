"""
Level progression and retirement protection.

Read-only heuristics over a user's recent daily plans:

- Level up: at least 20 mastered materials at the current level AND, over the
  7 days before today, at least 3 plans with an aggregate completion rate
  above 80%.
- Retirement protection: the 3 days before today all have plans and every one
  of them is below 50% completion. New material is then withheld from the
  next plan (reviews never are).

Both windows exclude today itself.
"""

from __future__ import annotations

import logging
from dataclasses import dataclass
from datetime import date

from sqlalchemy import func
from sqlalchemy.orm import Session

from shadowing.clock import add_days
from shadowing.db.models import DailyPlan, Material, User
from shadowing.srs.constants import MAX_LEVEL, MaterialStatus

logger = logging.getLogger(__name__)


# ---- Thresholds ----

LEVEL_UP_MASTERED_COUNT = 20
LEVEL_UP_WINDOW_DAYS = 7
LEVEL_UP_MIN_PLANS = 3
LEVEL_UP_COMPLETION_RATE = 0.80

RETIREMENT_WINDOW_DAYS = 3
RETIREMENT_MIN_PLANS = 3
RETIREMENT_COMPLETION_RATE = 0.50


@dataclass(frozen=True)
class LevelCheck:
    should_upgrade: bool
    mastered_count: int = 0
    completion_rate: float = 0.0


def _recent_plans(session: Session, user_id: str, today: date, window_days: int) -> list:
    """Plans dated in [today - window_days, today)."""
    return session.query(
        DailyPlan.plan_date,
        DailyPlan.completed_items,
        DailyPlan.total_items,
    ).filter(
        DailyPlan.user_id == user_id,
        DailyPlan.plan_date >= add_days(today, -window_days),
        DailyPlan.plan_date < today,
    ).order_by(DailyPlan.plan_date.desc()).all()


def check_level_progression(
    session: Session,
    user_id: str,
    current_level: int,
    today: date
) -> LevelCheck:
    """
    Decide whether a user has earned the next level.

    Args:
        session: Database session
        user_id: User identifier
        current_level: Level the caller read for the user
        today: Current practice day (excluded from the window)

    Returns:
        LevelCheck with should_upgrade and the figures it was based on
    """
    if current_level >= MAX_LEVEL:
        return LevelCheck(should_upgrade=False)

    mastered_count = session.query(func.count(Material.id)).filter(
        Material.user_id == user_id,
        Material.level == current_level,
        Material.status == MaterialStatus.MASTERED.value,
    ).scalar() or 0

    if mastered_count < LEVEL_UP_MASTERED_COUNT:
        return LevelCheck(should_upgrade=False, mastered_count=mastered_count)

    plans = _recent_plans(session, user_id, today, LEVEL_UP_WINDOW_DAYS)
    if len(plans) < LEVEL_UP_MIN_PLANS:
        # Not enough data
        return LevelCheck(should_upgrade=False, mastered_count=mastered_count)

    total_completed = sum(p.completed_items for p in plans)
    total_items = sum(p.total_items for p in plans)
    completion_rate = total_completed / total_items if total_items > 0 else 0.0

    return LevelCheck(
        should_upgrade=completion_rate > LEVEL_UP_COMPLETION_RATE,
        mastered_count=mastered_count,
        completion_rate=completion_rate,
    )


def check_retirement_protection(session: Session, user_id: str, today: date) -> bool:
    """
    Check whether new material should be suppressed after a slump.

    Returns:
        True if the last 3 days (excluding today) all have plans below 50% completion
    """
    plans = _recent_plans(session, user_id, today, RETIREMENT_WINDOW_DAYS)

    if len(plans) < RETIREMENT_MIN_PLANS:
        return False

    return all(
        p.total_items > 0 and p.completed_items / p.total_items < RETIREMENT_COMPLETION_RATE
        for p in plans
    )


def apply_level_upgrade(session: Session, user_id: str, observed_level: int) -> bool:
    """
    Promote a user by one level, only if their level is still observed_level.

    A concurrent completion that already promoted the user makes this a no-op.

    Returns:
        True if the level was raised
    """
    changed = session.query(User).filter(
        User.id == user_id,
        User.level == observed_level,
        User.level < MAX_LEVEL,
    ).update({"level": User.level + 1}, synchronize_session=False)
    session.commit()
    return changed > 0


def evaluate_level_progression(session: Session, user_id: str, today: date) -> bool:
    """
    Read the user's level, evaluate progression and apply the upgrade.

    Returns:
        True if the user was promoted by this call
    """
    level = session.query(User.level).filter(User.id == user_id).scalar()
    session.commit()
    if level is None or level >= MAX_LEVEL:
        return False

    check = check_level_progression(session, user_id, level, today)
    if not check.should_upgrade:
        return False

    promoted = apply_level_upgrade(session, user_id, level)
    if promoted:
        logger.info(
            "[Level] User %s promoted to level %d (mastered=%d, completion=%.2f)",
            user_id, level + 1, check.mastered_count, check.completion_rate
        )
    return promoted
