"""
Material, user and plan queries used around the core operations.

Material creation/deletion, user settings and today's plan view.
"""

from __future__ import annotations

import json
from dataclasses import dataclass
from datetime import date, datetime
from typing import Iterable, Optional, Sequence

from sqlalchemy import case, func
from sqlalchemy.orm import Session

from shadowing.db.models import DailyPlan, Material, PlanItem, PracticeRecord, User, new_id, utcnow
from shadowing.srs.constants import (
    DAILY_MINUTES_OPTIONS,
    MAX_LEVEL,
    MIN_LEVEL,
    MaterialStatus,
    PlanItemStatus,
    PreprocessStatus,
)


# ---- Materials ----

def create_material(
    session: Session,
    user_id: str,
    content: str,
    level: int = 1,
    tags: Iterable[str] = (),
    source_type: str = "direct",
    preprocess_status: str = PreprocessStatus.PENDING.value,
    created_at: Optional[datetime] = None
) -> str:
    """
    Insert a new unlearned material.

    Returns:
        The new material id
    """
    material_id = new_id()
    session.add(Material(
        id=material_id,
        user_id=user_id,
        content=content,
        source_type=source_type,
        level=level,
        status=MaterialStatus.UNLEARNED.value,
        tags=json.dumps(list(tags)),
        review_count=0,
        preprocess_status=preprocess_status,
        created_at=created_at or utcnow(),
    ))
    session.commit()
    return material_id


def create_materials_batch(session: Session, user_id: str, sentences: Sequence[str]) -> list[str]:
    """Insert many materials in a single transaction."""
    ids = [new_id() for _ in sentences]
    session.add_all([
        Material(
            id=material_id,
            user_id=user_id,
            content=content,
            source_type="direct",
            status=MaterialStatus.UNLEARNED.value,
            review_count=0,
        )
        for material_id, content in zip(ids, sentences)
    ])
    session.commit()
    return ids


def update_material_tags(session: Session, material_id: str, user_id: str, tags: Iterable[str]) -> bool:
    changed = session.query(Material).filter(
        Material.id == material_id,
        Material.user_id == user_id,
    ).update({"tags": json.dumps(list(tags))}, synchronize_session=False)
    session.commit()
    return changed > 0


def get_material(session: Session, material_id: str) -> Optional[Material]:
    return session.query(Material).filter(Material.id == material_id).first()


def _escape_like(text: str) -> str:
    return text.replace("\\", "\\\\").replace("%", "\\%").replace("_", "\\_")


def get_user_materials(
    session: Session,
    user_id: str,
    status: Optional[str] = None,
    level: Optional[int] = None,
    search: Optional[str] = None,
    limit: int = 20,
    offset: int = 0
) -> tuple[list[Material], int]:
    """
    One page of a user's corpus, newest first.

    Args:
        session: Database session
        user_id: Owner of the materials
        status: Only materials in this learning state
        level: Only materials at this level
        search: Substring of the content; % and _ match literally
        limit: Page size
        offset: Rows to skip

    Returns:
        (materials on this page, total matching materials)
    """
    query = session.query(Material).filter(Material.user_id == user_id)

    if status:
        query = query.filter(Material.status == status)
    if level:
        query = query.filter(Material.level == level)
    if search:
        query = query.filter(Material.content.like(f"%{_escape_like(search)}%", escape="\\"))

    total = query.order_by(None).count()
    materials = query.order_by(Material.created_at.desc()).limit(limit).offset(offset).all()
    return materials, total


def delete_material(session: Session, material_id: str, user_id: str) -> Optional[list[str]]:
    """
    Delete a material and everything that references it.

    Plans that contained the material lose the removed items from both
    counters (never below zero). Audio files live in external storage; their
    keys are returned so the caller can purge them.

    Returns:
        Audio storage keys of the deleted material, or None if it was not found
    """
    material = session.query(
        Material.audio_slow_key,
        Material.audio_normal_key,
        Material.audio_fast_key,
    ).filter(
        Material.id == material_id,
        Material.user_id == user_id,
    ).first()

    if material is None:
        session.commit()
        return None

    per_plan = session.query(
        PlanItem.plan_id,
        func.count(PlanItem.id).label("total_count"),
        func.sum(
            case((PlanItem.status == PlanItemStatus.COMPLETED.value, 1), else_=0)
        ).label("completed_count"),
    ).filter(PlanItem.material_id == material_id).group_by(PlanItem.plan_id).all()

    for plan_id, total_count, completed_count in per_plan:
        completed_count = completed_count or 0
        session.query(DailyPlan).filter(DailyPlan.id == plan_id).update({
            "total_items": case(
                (DailyPlan.total_items >= total_count, DailyPlan.total_items - total_count),
                else_=0,
            ),
            "completed_items": case(
                (DailyPlan.completed_items >= completed_count, DailyPlan.completed_items - completed_count),
                else_=0,
            ),
        }, synchronize_session=False)

    session.query(PracticeRecord).filter(
        PracticeRecord.material_id == material_id
    ).delete(synchronize_session=False)
    session.query(PlanItem).filter(
        PlanItem.material_id == material_id
    ).delete(synchronize_session=False)
    session.query(Material).filter(
        Material.id == material_id,
        Material.user_id == user_id,
    ).delete(synchronize_session=False)
    session.commit()

    return [key for key in material if key]


# ---- Users ----

def get_user(session: Session, user_id: str) -> Optional[User]:
    return session.query(User).filter(User.id == user_id).first()


def update_user_settings(
    session: Session,
    user_id: str,
    daily_minutes: Optional[int] = None,
    level: Optional[int] = None
) -> None:
    """
    Change a user's daily budget and/or level.

    Raises:
        ValueError: daily_minutes not in DAILY_MINUTES_OPTIONS, or level outside 1-5
    """
    values = {}

    if daily_minutes is not None:
        if daily_minutes not in DAILY_MINUTES_OPTIONS:
            raise ValueError(f"daily_minutes must be one of {DAILY_MINUTES_OPTIONS}")
        values["daily_minutes"] = daily_minutes

    if level is not None:
        if not MIN_LEVEL <= level <= MAX_LEVEL:
            raise ValueError(f"level must be between {MIN_LEVEL} and {MAX_LEVEL}")
        values["level"] = level

    if not values:
        return

    session.query(User).filter(User.id == user_id).update(values, synchronize_session=False)
    session.commit()


# ---- Today's plan ----

@dataclass(frozen=True)
class PlanItemView:
    id: str
    material_id: str
    item_order: int
    item_type: str
    status: str
    content: str
    level: int
    material_status: str
    tags: list[str]
    translation: Optional[str]
    preprocess_status: str


@dataclass(frozen=True)
class PlanView:
    plan_id: str
    plan_date: date
    total_items: int
    completed_items: int
    items: list[PlanItemView]


def get_plan_with_items(session: Session, user_id: str, plan_date: date) -> Optional[PlanView]:
    """
    Load a user's plan for a day with its items in presentation order.

    Returns:
        PlanView, or None if no plan exists for that day
    """
    plan = session.query(
        DailyPlan.id,
        DailyPlan.plan_date,
        DailyPlan.total_items,
        DailyPlan.completed_items,
    ).filter(
        DailyPlan.user_id == user_id,
        DailyPlan.plan_date == plan_date,
    ).first()

    if plan is None:
        return None

    rows = session.query(
        PlanItem.id,
        PlanItem.material_id,
        PlanItem.item_order,
        PlanItem.item_type,
        PlanItem.status,
        Material.content,
        Material.level,
        Material.status.label("material_status"),
        Material.tags,
        Material.translation,
        Material.preprocess_status,
    ).join(
        Material, PlanItem.material_id == Material.id
    ).filter(
        PlanItem.plan_id == plan.id
    ).order_by(PlanItem.item_order.asc()).all()

    items = [
        PlanItemView(
            id=row.id,
            material_id=row.material_id,
            item_order=row.item_order,
            item_type=row.item_type,
            status=row.status,
            content=row.content,
            level=row.level,
            material_status=row.material_status,
            tags=json.loads(row.tags or "[]"),
            translation=row.translation,
            preprocess_status=row.preprocess_status,
        )
        for row in rows
    ]

    return PlanView(
        plan_id=plan.id,
        plan_date=plan.plan_date,
        total_items=plan.total_items,
        completed_items=plan.completed_items,
        items=items,
    )
