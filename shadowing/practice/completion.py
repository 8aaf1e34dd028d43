"""
Practice Completion Transaction

Records the end of one practice session:
1. Claim the plan item (pending/in_progress -> completed, CAS on the read status)
2. Increment the plan's completed_items, saturating at total_items
3. Insert the practice record
4. Advance the material's review schedule (critical)
5. Update the streak and evaluate level progression (non-critical)

Every write commits on its own. If steps 1-4 fail part way, the writes that
did land are compensated before the error propagates. The plan item is
reverted first; only if that revert applies are the counter and the record
undone. A record without a completed item is preferred over a completed item
without a record.
"""

from __future__ import annotations

import logging
from dataclasses import dataclass, field
from datetime import date
from typing import Callable, Optional

from sqlalchemy import case, func
from sqlalchemy.orm import Session

from shadowing.clock import practice_today
from shadowing.db.models import DailyPlan, PlanItem, PracticeRecord, new_id, utcnow
from shadowing.progression import evaluate_level_progression
from shadowing.practice.streak import update_user_streak
from shadowing.schemas import PracticeSubmission
from shadowing.srs.constants import CLAIMABLE_ITEM_STATUSES, PlanItemStatus
from shadowing.srs.interval_policy import PracticeOutcome, normalize_self_rating
from shadowing.srs.updater import update_material_after_practice

logger = logging.getLogger(__name__)


ALREADY_COMPLETED = "already_completed"


@dataclass(frozen=True)
class CompletionResult:
    accepted: bool
    record_id: Optional[str] = None
    reason: Optional[str] = None


@dataclass(frozen=True)
class PlanItemSnapshot:
    plan_id: str
    status: str


# ---- Plan item / plan counter writes ----

def read_plan_item(session: Session, plan_item_id: str) -> Optional[PlanItemSnapshot]:
    row = session.query(PlanItem.plan_id, PlanItem.status).filter(
        PlanItem.id == plan_item_id
    ).first()
    session.commit()
    if row is None:
        return None
    return PlanItemSnapshot(plan_id=row.plan_id, status=row.status)


def mark_plan_item_completed(session: Session, plan_item_id: str, observed_status: str) -> bool:
    """CAS the item to completed; False if its status moved since it was read."""
    changed = session.query(PlanItem).filter(
        PlanItem.id == plan_item_id,
        PlanItem.status == observed_status,
    ).update({
        "status": PlanItemStatus.COMPLETED.value,
        "completed_at": func.coalesce(PlanItem.completed_at, utcnow()),
    }, synchronize_session=False)
    session.commit()
    return changed > 0


def revert_plan_item(session: Session, plan_item_id: str, previous_status: str) -> bool:
    """Undo a claim; applies only while the item is still completed."""
    changed = session.query(PlanItem).filter(
        PlanItem.id == plan_item_id,
        PlanItem.status == PlanItemStatus.COMPLETED.value,
    ).update({
        "status": previous_status,
        "completed_at": None,
    }, synchronize_session=False)
    session.commit()
    return changed > 0


def increment_plan_completed(session: Session, plan_id: str) -> None:
    session.query(DailyPlan).filter(DailyPlan.id == plan_id).update({
        "completed_items": case(
            (DailyPlan.completed_items < DailyPlan.total_items, DailyPlan.completed_items + 1),
            else_=DailyPlan.total_items,
        ),
    }, synchronize_session=False)
    session.commit()


def decrement_plan_completed(session: Session, plan_id: str) -> None:
    session.query(DailyPlan).filter(DailyPlan.id == plan_id).update({
        "completed_items": case(
            (DailyPlan.completed_items > 0, DailyPlan.completed_items - 1),
            else_=0,
        ),
    }, synchronize_session=False)
    session.commit()


def start_plan_item(session: Session, plan_item_id: str) -> bool:
    """
    Mark a pending plan item as in progress.

    Returns:
        True if the item moved from pending to in_progress
    """
    changed = session.query(PlanItem).filter(
        PlanItem.id == plan_item_id,
        PlanItem.status == PlanItemStatus.PENDING.value,
    ).update({
        "status": PlanItemStatus.IN_PROGRESS.value,
        "started_at": func.coalesce(PlanItem.started_at, utcnow()),
    }, synchronize_session=False)
    session.commit()
    return changed > 0


def find_record_by_operation(session: Session, user_id: str, operation_id: str) -> Optional[str]:
    record_id = session.query(PracticeRecord.id).filter(
        PracticeRecord.user_id == user_id,
        PracticeRecord.operation_id == operation_id,
    ).limit(1).scalar()
    session.commit()
    return record_id


def delete_practice_record(session: Session, record_id: str) -> None:
    session.query(PracticeRecord).filter(
        PracticeRecord.id == record_id
    ).delete(synchronize_session=False)
    session.commit()


# ---- Compensation ----

@dataclass
class CompletionSaga:
    """
    Writes that landed during one completion, with their undo actions.

    The plan item claim gates everything else: if it cannot be reverted, the
    other steps are left in place.
    """
    session: Session
    plan_item_id: Optional[str]
    plan_id: Optional[str] = None
    previous_status: Optional[str] = None
    record_id: Optional[str] = None
    steps: list[tuple[str, Callable[[], None]]] = field(default_factory=list)

    def claimed(self, plan_id: str, previous_status: str) -> None:
        self.plan_id = plan_id
        self.previous_status = previous_status

    def did(self, name: str, undo: Callable[[], None]) -> None:
        self.steps.append((name, undo))

    def compensate(self) -> None:
        if self.plan_item_id is None:
            reverted = True
        elif self.previous_status is None:
            # Claim never applied; nothing of ours to undo on the item
            reverted = True
        else:
            reverted = revert_plan_item(self.session, self.plan_item_id, self.previous_status)

        if not reverted:
            if self.record_id is not None:
                logger.error(
                    "[Practice] Skip deleting practice record because plan item rollback failed "
                    "(record=%s, plan_item=%s, plan=%s)",
                    self.record_id, self.plan_item_id, self.plan_id
                )
            return

        for name, undo in reversed(self.steps):
            logger.debug("[Practice] Compensating %s", name)
            undo()


# ---- Transaction ----

def complete_practice(
    session: Session,
    user_id: str,
    material_id: str,
    plan_item_id: Optional[str] = None,
    self_rating: Optional[str] = None,
    is_poor_performance: bool = False,
    duration_seconds: int = 0,
    completed_all_stages: bool = True,
    operation_id: Optional[str] = None,
    today: Optional[date] = None
) -> CompletionResult:
    """
    Record a completed practice session and advance all learning state.

    Args:
        session: Database session
        user_id: Authenticated user id
        material_id: Material that was practiced
        plan_item_id: Plan item being completed, or None for off-plan practice
        self_rating: "good" | "fair" | "poor" | None (anything else counts as None)
        is_poor_performance: Poor performance signal from the practice flow
        duration_seconds: Session length
        completed_all_stages: Whether every practice stage was finished
        operation_id: Optional client idempotency token
        today: Practice day (defaults to the current practice day)

    Returns:
        CompletionResult(accepted=True, record_id=...) on success, or
        CompletionResult(accepted=False, reason="already_completed") for a stale
        or duplicate attempt

    Raises:
        Any error from the claim, record insert or review update, after
        compensation has run
    """
    today = today or practice_today()
    self_rating = normalize_self_rating(self_rating)

    if operation_id is not None:
        existing = find_record_by_operation(session, user_id, operation_id)
        if existing is not None:
            return CompletionResult(accepted=False, record_id=existing, reason=ALREADY_COMPLETED)

    saga = CompletionSaga(session=session, plan_item_id=plan_item_id)

    try:
        if plan_item_id is not None:
            item = read_plan_item(session, plan_item_id)
            if item is None or item.status not in CLAIMABLE_ITEM_STATUSES:
                return CompletionResult(accepted=False, reason=ALREADY_COMPLETED)

            if not mark_plan_item_completed(session, plan_item_id, item.status):
                return CompletionResult(accepted=False, reason=ALREADY_COMPLETED)
            saga.claimed(item.plan_id, item.status)

            increment_plan_completed(session, item.plan_id)
            saga.did("plan_counter", lambda: decrement_plan_completed(session, item.plan_id))

        record_id = new_id()
        session.add(PracticeRecord(
            id=record_id,
            user_id=user_id,
            material_id=material_id,
            plan_item_id=plan_item_id,
            completed_all_stages=completed_all_stages,
            self_rating=self_rating,
            is_poor_performance=is_poor_performance,
            duration_seconds=duration_seconds,
            operation_id=operation_id,
        ))
        session.commit()
        saga.record_id = record_id
        saga.did("practice_record", lambda: delete_practice_record(session, record_id))

        update_material_after_practice(
            session,
            material_id,
            PracticeOutcome(
                completed_all_stages=completed_all_stages,
                self_rating=self_rating,
                is_poor_performance=is_poor_performance,
            ),
            today,
        )
    except Exception as error:
        session.rollback()
        try:
            saga.compensate()
        except Exception:
            session.rollback()
            logger.exception("[Practice] Compensation failed")

        logger.error(
            "[Practice] Completion failed (user=%s, material=%s, plan_item=%s, plan=%s, record=%s): %s",
            user_id, material_id, plan_item_id, saga.plan_id, saga.record_id, error
        )
        raise

    _run_side_effects(session, user_id, today)
    return CompletionResult(accepted=True, record_id=record_id)


def complete_submission(
    session: Session,
    submission: PracticeSubmission,
    today: Optional[date] = None
) -> CompletionResult:
    """Run complete_practice for a validated practice submission."""
    return complete_practice(
        session,
        user_id=submission.user_id,
        material_id=submission.material_id,
        plan_item_id=submission.plan_item_id,
        self_rating=submission.self_rating,
        is_poor_performance=submission.is_poor_performance,
        duration_seconds=submission.duration_seconds,
        completed_all_stages=submission.completed_all_stages,
        operation_id=submission.operation_id,
        today=today,
    )


def _run_side_effects(session: Session, user_id: str, today: date) -> None:
    """Streak and level updates. Failures are logged, never raised."""
    try:
        update_user_streak(session, user_id, today)
    except Exception:
        session.rollback()
        logger.exception("[Practice] Failed to update streak for user %s", user_id)

    try:
        evaluate_level_progression(session, user_id, today)
    except Exception:
        session.rollback()
        logger.exception("[Practice] Failed to evaluate level progression for user %s", user_id)
