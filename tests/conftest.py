"""
Shared fixtures: an in-memory practice database and row factories.
"""

from __future__ import annotations

import itertools
import json
from datetime import date, datetime, timedelta, timezone

import pytest
from sqlalchemy import create_engine
from sqlalchemy.orm import sessionmaker
from sqlalchemy.pool import StaticPool

from shadowing.db.models import (
    Base,
    DailyPlan,
    Material,
    PlanItem,
    PracticeRecord,
    User,
    new_id,
)
from shadowing.planning.generator import UserProfile


TODAY = date(2025, 3, 10)
EPOCH = datetime(2025, 1, 1, tzinfo=timezone.utc)


@pytest.fixture
def engine():
    engine = create_engine(
        "sqlite://",
        connect_args={"check_same_thread": False},
        poolclass=StaticPool,
    )
    Base.metadata.create_all(engine)
    yield engine
    engine.dispose()


@pytest.fixture
def session_factory(engine):
    return sessionmaker(bind=engine, expire_on_commit=False)


@pytest.fixture
def session(session_factory):
    session = session_factory()
    yield session
    session.close()


def fresh(session, model, row_id):
    """Reload a row from the database, bypassing the identity map."""
    session.expire_all()
    return session.get(model, row_id)


def profile(user: User) -> UserProfile:
    return UserProfile(id=user.id, level=user.level, daily_minutes=user.daily_minutes)


@pytest.fixture
def make_user(session):
    counter = itertools.count(1)

    def _make_user(**overrides) -> User:
        n = next(counter)
        values = dict(
            id=new_id(),
            username=f"user{n}",
            level=1,
            daily_minutes=20,
            streak_days=0,
            max_streak_days=0,
            total_practice_days=0,
            last_practice_date=None,
            onboarding_completed=True,
            created_at=EPOCH + timedelta(minutes=n),
        )
        values.update(overrides)
        user = User(**values)
        session.add(user)
        session.commit()
        return user

    return _make_user


@pytest.fixture
def make_material(session):
    counter = itertools.count(1)

    def _make_material(user: User, tags=(), **overrides) -> Material:
        n = next(counter)
        values = dict(
            id=new_id(),
            user_id=user.id,
            content=f"Sentence number {n}.",
            level=1,
            status="unlearned",
            tags=json.dumps(list(tags)),
            review_count=0,
            next_review_date=None,
            last_practice_date=None,
            preprocess_status="done",
            created_at=EPOCH + timedelta(seconds=n),
        )
        values.update(overrides)
        material = Material(**values)
        session.add(material)
        session.commit()
        return material

    return _make_material


@pytest.fixture
def make_plan(session):
    def _make_plan(user: User, plan_date: date, materials=(), statuses=None, **overrides):
        """Create a plan with one item per material; returns (plan, items)."""
        statuses = list(statuses or ["pending"] * len(materials))
        plan = DailyPlan(
            id=new_id(),
            user_id=user.id,
            plan_date=plan_date,
            total_items=len(materials),
            completed_items=statuses.count("completed"),
        )
        for key, value in overrides.items():
            setattr(plan, key, value)
        session.add(plan)
        session.flush()

        items = []
        for order, (material, status) in enumerate(zip(materials, statuses), start=1):
            item = PlanItem(
                id=new_id(),
                plan_id=plan.id,
                material_id=material.id,
                item_order=order,
                item_type="review" if material.status == "learning" else "new",
                status=status,
            )
            session.add(item)
            items.append(item)
        session.commit()
        return plan, items

    return _make_plan


@pytest.fixture
def make_record(session):
    def _make_record(user: User, material: Material, plan_item=None, **overrides) -> PracticeRecord:
        values = dict(
            id=new_id(),
            user_id=user.id,
            material_id=material.id,
            plan_item_id=plan_item.id if plan_item is not None else None,
            completed_all_stages=True,
            self_rating="good",
            is_poor_performance=False,
            duration_seconds=60,
        )
        values.update(overrides)
        record = PracticeRecord(**values)
        session.add(record)
        session.commit()
        return record

    return _make_record
