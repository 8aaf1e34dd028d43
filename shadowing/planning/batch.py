"""
Daily plan batch generation.

Generates today's plan for every onboarded user, a fixed number of users at a
time. One user's failure is logged and counted; it never stops the batch.
"""

from __future__ import annotations

import logging
from concurrent.futures import ThreadPoolExecutor
from dataclasses import dataclass
from datetime import date
from typing import Optional

from sqlalchemy.orm import sessionmaker

from shadowing.clock import practice_today
from shadowing.config import get_plan_batch_concurrency
from shadowing.db.database import session_scope
from shadowing.db.models import User
from shadowing.planning.generator import UserProfile, generate_daily_plan

logger = logging.getLogger(__name__)


@dataclass
class BatchResult:
    plan_date: date
    generated: int = 0
    skipped: int = 0
    failed: int = 0


def list_plan_users(session_factory: sessionmaker) -> list[UserProfile]:
    """Users who finished onboarding and therefore get a daily plan."""
    with session_scope(session_factory) as session:
        rows = session.query(User.id, User.level, User.daily_minutes).filter(
            User.onboarding_completed.is_(True)
        ).order_by(User.created_at.asc()).all()
        return [UserProfile(id=r.id, level=r.level, daily_minutes=r.daily_minutes) for r in rows]


def _generate_for_user(session_factory: sessionmaker, user: UserProfile, plan_date: date) -> bool:
    with session_scope(session_factory) as session:
        return generate_daily_plan(session, user, plan_date) is not None


def generate_plans_for_all_users(
    session_factory: sessionmaker,
    plan_date: Optional[date] = None,
    concurrency: Optional[int] = None
) -> BatchResult:
    """
    Generate plans for all onboarded users.

    Args:
        session_factory: Factory giving each worker its own session
        plan_date: Practice day (defaults to today's practice day)
        concurrency: Users processed in parallel (defaults to PLAN_BATCH_CONCURRENCY,
            at least 1)

    Returns:
        BatchResult with generated / skipped / failed counts
    """
    plan_date = plan_date or practice_today()
    if concurrency is None:
        concurrency = get_plan_batch_concurrency()
    concurrency = max(1, concurrency)
    result = BatchResult(plan_date=plan_date)

    users = list_plan_users(session_factory)
    logger.info("[Plan] Generating daily plans for %s (%d users)", plan_date, len(users))

    with ThreadPoolExecutor(max_workers=concurrency) as executor:
        for start in range(0, len(users), concurrency):
            batch = users[start:start + concurrency]
            futures = [
                (user, executor.submit(_generate_for_user, session_factory, user, plan_date))
                for user in batch
            ]
            for user, future in futures:
                try:
                    if future.result():
                        result.generated += 1
                    else:
                        result.skipped += 1
                except Exception:
                    result.failed += 1
                    logger.exception("[Plan] Failed to generate plan for user %s", user.id)

    logger.info(
        "[Plan] Plans generated: %d, skipped: %d, failed: %d",
        result.generated, result.skipped, result.failed
    )
    return result
