"""
Daily Plan Generator

Creates one plan per user per practice day from two pools:
1. Review pool: learning materials whose next_review_date has come, earliest due first
2. New pool: unlearned materials at or below the user's level, oldest first

Plan Logic:
- Slots = daily_minutes / 2, capped at 50
- Reviews take at most 80% of the slots and leave one slot for new material
- New material is withheld entirely while retirement protection is active
- Reviews (by level) come before new material (by tag group, then level)

Generation is idempotent per (user, day). Two concurrent callers race on the
(user_id, plan_date) unique constraint; the loser returns the winner's plan.
"""

from __future__ import annotations

import logging
from dataclasses import dataclass
from datetime import date
from typing import Optional

from sqlalchemy.exc import IntegrityError
from sqlalchemy.orm import Session

from shadowing.db.models import DailyPlan, Material, PlanItem, User, new_id
from shadowing.planning.ordering import (
    PlanCandidate,
    compose_plan,
    review_cap,
    total_slots,
)
from shadowing.progression import check_retirement_protection
from shadowing.srs.constants import MaterialStatus, PlanItemStatus, PreprocessStatus

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class UserProfile:
    """The slice of a user row the generator needs."""
    id: str
    level: int
    daily_minutes: int


@dataclass(frozen=True)
class PlanSummary:
    plan_id: str
    total_items: int


def _to_candidate(row) -> PlanCandidate:
    return PlanCandidate(
        id=row.id,
        level=row.level,
        status=row.status,
        tags=row.tags,
        next_review_date=row.next_review_date,
        created_at=row.created_at,
    )


def _candidate_columns():
    return (
        Material.id,
        Material.level,
        Material.status,
        Material.tags,
        Material.next_review_date,
        Material.created_at,
    )


def find_plan(session: Session, user_id: str, plan_date: date) -> Optional[DailyPlan]:
    return session.query(DailyPlan).filter(
        DailyPlan.user_id == user_id,
        DailyPlan.plan_date == plan_date,
    ).first()


def fetch_due_reviews(session: Session, user_id: str, plan_date: date) -> list[PlanCandidate]:
    """Learning materials due on or before plan_date, earliest due first."""
    rows = session.query(*_candidate_columns()).filter(
        Material.user_id == user_id,
        Material.status == MaterialStatus.LEARNING.value,
        Material.next_review_date <= plan_date,
        Material.preprocess_status == PreprocessStatus.DONE.value,
    ).order_by(Material.next_review_date.asc()).all()
    return [_to_candidate(row) for row in rows]


def fetch_new_materials(
    session: Session,
    user_id: str,
    max_level: int,
    limit: int
) -> list[PlanCandidate]:
    """Unlearned materials at or below max_level, oldest first."""
    if limit <= 0:
        return []

    rows = session.query(*_candidate_columns()).filter(
        Material.user_id == user_id,
        Material.status == MaterialStatus.UNLEARNED.value,
        Material.level <= max_level,
        Material.preprocess_status == PreprocessStatus.DONE.value,
    ).order_by(Material.created_at.asc()).limit(limit).all()
    return [_to_candidate(row) for row in rows]


def generate_daily_plan(
    session: Session,
    user: UserProfile,
    plan_date: date
) -> Optional[PlanSummary]:
    """
    Create today's plan for a user.

    Args:
        session: Database session
        user: User profile (id, level, daily_minutes)
        plan_date: Practice day the plan is for

    Returns:
        PlanSummary of the created plan; the concurrent winner's plan if another
        request created it first; None if a plan already existed or there is
        nothing to practice
    """
    if find_plan(session, user.id, plan_date) is not None:
        return None

    slots = total_slots(user.daily_minutes)

    due = fetch_due_reviews(session, user.id, plan_date)
    reviews = due[:review_cap(len(due), slots)]

    new_slots = max(0, slots - len(reviews))
    if new_slots > 0 and check_retirement_protection(session, user.id, plan_date):
        logger.info(
            "[Plan] Retirement protection active for user %s on %s; no new material",
            user.id, plan_date
        )
        new_slots = 0

    new_items = fetch_new_materials(session, user.id, user.level, new_slots)
    items = compose_plan(reviews, new_items)
    session.commit()  # end read phase

    if not items:
        return None

    plan_id = new_id()
    try:
        # Plan row and items commit together; the plan row is flushed first
        # so the unique (user_id, plan_date) check fires before any item insert
        session.add(DailyPlan(
            id=plan_id,
            user_id=user.id,
            plan_date=plan_date,
            total_items=len(items),
            completed_items=0,
        ))
        session.flush()
        session.add_all([
            PlanItem(
                id=new_id(),
                plan_id=plan_id,
                material_id=item.id,
                item_order=order,
                item_type=item.item_type,
                status=PlanItemStatus.PENDING.value,
            )
            for order, item in enumerate(items, start=1)
        ])
        session.commit()
    except IntegrityError:
        session.rollback()
        existing = find_plan(session, user.id, plan_date)
        session.commit()
        if existing is None:
            raise
        logger.info(
            "[Plan] Lost plan creation race for user %s on %s; using plan %s",
            user.id, plan_date, existing.id
        )
        return PlanSummary(plan_id=existing.id, total_items=existing.total_items)

    logger.info(
        "[Plan] Created plan %s for user %s on %s (%d reviews, %d new)",
        plan_id, user.id, plan_date, len(reviews), len(new_items)
    )
    return PlanSummary(plan_id=plan_id, total_items=len(items))


def regenerate_daily_plan(
    session: Session,
    user: UserProfile,
    plan_date: date
) -> Optional[PlanSummary]:
    """
    Discard an untouched plan and build a fresh one.

    Refuses (returns None) if any item of the existing plan has left the
    pending state, or if the plan's completed_items counter is non-zero; a
    partially practiced plan is never rebuilt.
    """
    existing = find_plan(session, user.id, plan_date)

    if existing is not None:
        started = session.query(PlanItem.id).filter(
            PlanItem.plan_id == existing.id,
            PlanItem.status != PlanItemStatus.PENDING.value,
        ).count()

        if started > 0:
            session.commit()
            logger.info(
                "[Plan] Not regenerating plan %s: %d item(s) already started",
                existing.id, started
            )
            return None

        session.query(PlanItem).filter(
            PlanItem.plan_id == existing.id,
            PlanItem.status == PlanItemStatus.PENDING.value,
        ).delete(synchronize_session=False)
        deleted = session.query(DailyPlan).filter(
            DailyPlan.id == existing.id,
            DailyPlan.completed_items == 0,
        ).delete(synchronize_session=False)

        if deleted == 0:
            # Counter says something was completed; keep the plan and its items
            plan_id = existing.id
            session.rollback()
            logger.warning(
                "[Plan] Not regenerating plan %s: completed_items is non-zero",
                plan_id
            )
            return None

        session.commit()

    return generate_daily_plan(session, user, plan_date)


def load_user_profile(session: Session, user_id: str) -> UserProfile:
    """
    Load the generator's view of a user.

    Raises:
        LookupError: if the user does not exist
    """
    row = session.query(User.id, User.level, User.daily_minutes).filter(
        User.id == user_id
    ).first()
    if row is None:
        raise LookupError(f"User {user_id} not found")
    return UserProfile(id=row.id, level=row.level, daily_minutes=row.daily_minutes)
