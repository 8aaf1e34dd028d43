"""
SQLAlchemy ORM Models for the practice database

Defines users, materials, daily plans, plan items and practice records.
All rows are scoped to a single user; there are no cross-user references.
"""

import uuid
from datetime import datetime, timezone

from sqlalchemy import (
    Boolean,
    Column,
    Date,
    DateTime,
    ForeignKey,
    Index,
    Integer,
    String,
    Text,
    UniqueConstraint,
)
from sqlalchemy.orm import declarative_base

Base = declarative_base()


def new_id() -> str:
    return str(uuid.uuid4())


def utcnow() -> datetime:
    return datetime.now(timezone.utc)


class User(Base):
    """
    Learner profile plus the streak counters maintained by practice completion.
    """
    __tablename__ = 'users'

    id = Column(String(36), primary_key=True, default=new_id)
    username = Column(String(255), nullable=False, unique=True)

    level = Column(Integer, nullable=False, default=1)  # 1-5
    daily_minutes = Column(Integer, nullable=False, default=20)

    # Streak tracking (CAS-updated as a group)
    streak_days = Column(Integer, nullable=False, default=0)
    max_streak_days = Column(Integer, nullable=False, default=0)
    total_practice_days = Column(Integer, nullable=False, default=0)
    last_practice_date = Column(Date, nullable=True)

    onboarding_completed = Column(Boolean, nullable=False, default=False)
    created_at = Column(DateTime(timezone=True), nullable=False, default=utcnow)

    def __repr__(self):
        return f"<User({self.id}, level={self.level})>"


class Material(Base):
    """
    A practice sentence with its own review schedule.
    """
    __tablename__ = 'materials'
    __table_args__ = (
        Index('idx_materials_user_status', 'user_id', 'status'),
        Index('idx_materials_user_review', 'user_id', 'next_review_date'),
        Index('idx_materials_user_level', 'user_id', 'level'),
    )

    id = Column(String(36), primary_key=True, default=new_id)
    user_id = Column(String(36), ForeignKey('users.id'), nullable=False)
    content = Column(Text, nullable=False)
    source_type = Column(String(50), nullable=False, default='direct')

    level = Column(Integer, nullable=False, default=1)  # difficulty 1-5
    status = Column(String(20), nullable=False, default='unlearned')
    tags = Column(Text, nullable=False, default='[]')  # JSON array

    # Fields derived by the preprocessing pipeline
    translation = Column(Text, nullable=True)
    phonetic_notes = Column(Text, nullable=True)
    pause_marks = Column(Text, nullable=True)
    word_mask = Column(Text, nullable=True)
    expression_prompt = Column(Text, nullable=True)
    audio_slow_key = Column(String(255), nullable=True)
    audio_normal_key = Column(String(255), nullable=True)
    audio_fast_key = Column(String(255), nullable=True)
    preprocess_status = Column(String(20), nullable=False, default='pending')

    # Review schedule
    review_count = Column(Integer, nullable=False, default=0)
    next_review_date = Column(Date, nullable=True)
    last_practice_date = Column(Date, nullable=True)

    created_at = Column(DateTime(timezone=True), nullable=False, default=utcnow)

    def __repr__(self):
        return f"<Material({self.id}, {self.status}, reviews={self.review_count})>"


class DailyPlan(Base):
    """
    One plan per user per practice day.

    Invariant: 0 <= completed_items <= total_items.
    """
    __tablename__ = 'daily_plans'
    __table_args__ = (
        UniqueConstraint('user_id', 'plan_date', name='idx_plans_user_date'),
    )

    id = Column(String(36), primary_key=True, default=new_id)
    user_id = Column(String(36), ForeignKey('users.id'), nullable=False)
    plan_date = Column(Date, nullable=False)
    total_items = Column(Integer, nullable=False, default=0)
    completed_items = Column(Integer, nullable=False, default=0)
    created_at = Column(DateTime(timezone=True), nullable=False, default=utcnow)

    def __repr__(self):
        return f"<DailyPlan({self.id}, {self.plan_date}, {self.completed_items}/{self.total_items})>"


class PlanItem(Base):
    """
    One material's slot within a daily plan.

    Completed if and only if exactly one practice record references it.
    """
    __tablename__ = 'plan_items'
    __table_args__ = (
        Index('idx_plan_items_plan_id', 'plan_id'),
    )

    id = Column(String(36), primary_key=True, default=new_id)
    plan_id = Column(String(36), ForeignKey('daily_plans.id'), nullable=False)
    material_id = Column(String(36), ForeignKey('materials.id'), nullable=False)
    item_order = Column(Integer, nullable=False)
    item_type = Column(String(20), nullable=False, default='new')  # review | new
    status = Column(String(20), nullable=False, default='pending')
    started_at = Column(DateTime(timezone=True), nullable=True)
    completed_at = Column(DateTime(timezone=True), nullable=True)

    def __repr__(self):
        return f"<PlanItem({self.id}, #{self.item_order}, {self.status})>"


class PracticeRecord(Base):
    """
    Immutable log entry for one completed practice attempt.
    """
    __tablename__ = 'practice_records'
    __table_args__ = (
        Index('idx_practice_records_user_id', 'user_id'),
        Index('idx_practice_records_material_id', 'material_id'),
        Index('idx_practice_records_plan_item_id', 'plan_item_id'),
    )

    id = Column(String(36), primary_key=True, default=new_id)
    user_id = Column(String(36), ForeignKey('users.id'), nullable=False)
    material_id = Column(String(36), ForeignKey('materials.id'), nullable=False)
    plan_item_id = Column(String(36), ForeignKey('plan_items.id'), nullable=True)

    completed_all_stages = Column(Boolean, nullable=False, default=False)
    self_rating = Column(String(10), nullable=True)  # good | fair | poor
    is_poor_performance = Column(Boolean, nullable=False, default=False)
    duration_seconds = Column(Integer, nullable=False, default=0)

    # Client-supplied idempotency token (optional)
    operation_id = Column(String(255), nullable=True)

    created_at = Column(DateTime(timezone=True), nullable=False, default=utcnow)

    def __repr__(self):
        return f"<PracticeRecord({self.id}, material={self.material_id})>"
