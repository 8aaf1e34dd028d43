"""
Data Integrity Auditor

Read-only scan for violations of the invariants the plan generator and the
completion transaction are supposed to uphold. It detects; it never repairs.

Checks (all run on every invocation):
- completed_items_over_total (error): plan counter above its item count
- plan_completion_mismatch (error): plan counter != completed items in the plan
- completed_plan_item_without_record (error): completion with no practice record
- practice_record_plan_status_mismatch (warn): record linked to a non-completed item
- duplicate_operation_id (error): one client operation id recorded twice for a user
"""

from __future__ import annotations

import logging
from typing import Callable

from sqlalchemy import func
from sqlalchemy.orm import Query, Session

from shadowing.db.models import DailyPlan, PlanItem, PracticeRecord
from shadowing.schemas import IntegrityIssue, IntegrityReport
from shadowing.srs.constants import PlanItemStatus

logger = logging.getLogger(__name__)


MAX_SAMPLE_LIMIT = 50

COMPLETED = PlanItemStatus.COMPLETED.value


def _plans_over_total(session: Session) -> Query:
    return session.query(DailyPlan.id).filter(
        DailyPlan.completed_items > DailyPlan.total_items
    )


def _plans_with_counter_drift(session: Session) -> Query:
    completed_in_plan = session.query(func.count(PlanItem.id)).filter(
        PlanItem.plan_id == DailyPlan.id,
        PlanItem.status == COMPLETED,
    ).correlate(DailyPlan).scalar_subquery()

    return session.query(DailyPlan.id).filter(
        DailyPlan.completed_items != completed_in_plan
    )


def _completed_items_without_record(session: Session) -> Query:
    return session.query(PlanItem.id).outerjoin(
        PracticeRecord, PracticeRecord.plan_item_id == PlanItem.id
    ).filter(
        PlanItem.status == COMPLETED,
        PracticeRecord.id.is_(None),
    )


def _records_on_open_items(session: Session) -> Query:
    return session.query(PracticeRecord.id).join(
        PlanItem, PracticeRecord.plan_item_id == PlanItem.id
    ).filter(
        PlanItem.status != COMPLETED
    )


def _duplicate_operation_ids(session: Session) -> Query:
    return session.query(
        PracticeRecord.user_id,
        PracticeRecord.operation_id,
    ).filter(
        PracticeRecord.operation_id.isnot(None)
    ).group_by(
        PracticeRecord.user_id,
        PracticeRecord.operation_id,
    ).having(func.count(PracticeRecord.id) > 1)


# code -> (severity, message, query builder, sample formatter)
CHECKS: list[tuple[str, str, str, Callable[[Session], Query], Callable]] = [
    (
        "completed_items_over_total",
        "error",
        "daily_plans.completed_items exceeds total_items",
        _plans_over_total,
        lambda row: row.id,
    ),
    (
        "plan_completion_mismatch",
        "error",
        "daily_plans.completed_items mismatches completed plan_items count",
        _plans_with_counter_drift,
        lambda row: row.id,
    ),
    (
        "completed_plan_item_without_record",
        "error",
        "completed plan_items without linked practice_records",
        _completed_items_without_record,
        lambda row: row.id,
    ),
    (
        "practice_record_plan_status_mismatch",
        "warn",
        "practice_records linked to non-completed plan_items",
        _records_on_open_items,
        lambda row: row.id,
    ),
    (
        "duplicate_operation_id",
        "error",
        "duplicate operation_id detected per user in practice_records",
        _duplicate_operation_ids,
        lambda row: f"{row.user_id}:{row.operation_id}",
    ),
]


def clamp_sample_limit(sample_limit: int) -> int:
    return max(1, min(MAX_SAMPLE_LIMIT, sample_limit))


def check_practice_data_integrity(session: Session, sample_limit: int = 10) -> list[IntegrityIssue]:
    """
    Run every integrity check.

    Args:
        session: Database session
        sample_limit: Max sample identifiers per issue (clamped to 1-50)

    Returns:
        One IntegrityIssue per failing check (empty list when clean)
    """
    limit = clamp_sample_limit(sample_limit)
    issues: list[IntegrityIssue] = []

    for code, severity, message, build_query, format_sample in CHECKS:
        query = build_query(session)
        count = query.order_by(None).count()
        if count == 0:
            continue

        samples = [format_sample(row) for row in query.limit(limit).all()]
        issues.append(IntegrityIssue(
            code=code,
            severity=severity,
            count=count,
            message=message,
            samples=samples,
        ))
        logger.warning("[Integrity] %s: %d (%s)", code, count, severity)

    session.commit()
    return issues


def build_integrity_report(session: Session, sample_limit: int = 30) -> dict:
    """
    Operator-facing JSON body: checkedAt, issueCount and issues.
    """
    issues = check_practice_data_integrity(session, sample_limit)
    report = IntegrityReport(issue_count=len(issues), issues=issues)
    return report.model_dump(mode="json", by_alias=True)
