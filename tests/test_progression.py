"""
Tests for level progression and retirement protection.
"""

from conftest import TODAY, fresh
from shadowing.clock import add_days
from shadowing.db.models import DailyPlan, User, new_id
from shadowing.progression import (
    apply_level_upgrade,
    check_level_progression,
    check_retirement_protection,
    evaluate_level_progression,
)


def add_plan(session, user, days_ago, completed, total):
    session.add(DailyPlan(
        id=new_id(),
        user_id=user.id,
        plan_date=add_days(TODAY, -days_ago),
        total_items=total,
        completed_items=completed,
    ))
    session.commit()


def add_mastered(make_material, user, count, level=1):
    for _ in range(count):
        make_material(user, level=level, status="mastered", review_count=5)


# ---- Level progression ----

def test_upgrade_when_mastered_and_consistent(session, make_user, make_material):
    user = make_user(level=1)
    add_mastered(make_material, user, 20)
    for days_ago in (1, 2, 3):
        add_plan(session, user, days_ago, completed=9, total=10)

    check = check_level_progression(session, user.id, 1, TODAY)

    assert check.should_upgrade
    assert check.mastered_count == 20
    assert abs(check.completion_rate - 0.9) < 1e-9


def test_no_upgrade_below_mastery_threshold(session, make_user, make_material):
    user = make_user(level=1)
    add_mastered(make_material, user, 19)
    add_mastered(make_material, user, 5, level=2)
    for days_ago in (1, 2, 3):
        add_plan(session, user, days_ago, completed=10, total=10)

    check = check_level_progression(session, user.id, 1, TODAY)

    assert not check.should_upgrade
    assert check.mastered_count == 19


def test_no_upgrade_with_too_few_plans(session, make_user, make_material):
    user = make_user(level=1)
    add_mastered(make_material, user, 20)
    add_plan(session, user, 1, completed=10, total=10)
    add_plan(session, user, 2, completed=10, total=10)

    assert not check_level_progression(session, user.id, 1, TODAY).should_upgrade


def test_exactly_eighty_percent_is_not_enough(session, make_user, make_material):
    user = make_user(level=1)
    add_mastered(make_material, user, 20)
    for days_ago in (1, 2, 3):
        add_plan(session, user, days_ago, completed=8, total=10)

    assert not check_level_progression(session, user.id, 1, TODAY).should_upgrade


def test_level_window_excludes_today_and_old_plans(session, make_user, make_material):
    user = make_user(level=1)
    add_mastered(make_material, user, 20)
    add_plan(session, user, 0, completed=10, total=10)
    add_plan(session, user, 8, completed=10, total=10)
    add_plan(session, user, 1, completed=10, total=10)
    add_plan(session, user, 7, completed=10, total=10)

    # only the plans 1 and 7 days ago are in the window
    assert not check_level_progression(session, user.id, 1, TODAY).should_upgrade


def test_max_level_never_upgrades(session, make_user, make_material):
    user = make_user(level=5)
    add_mastered(make_material, user, 20, level=5)
    for days_ago in (1, 2, 3):
        add_plan(session, user, days_ago, completed=10, total=10)

    assert not check_level_progression(session, user.id, 5, TODAY).should_upgrade
    assert not evaluate_level_progression(session, user.id, TODAY)


def test_evaluate_promotes_once(session, make_user, make_material):
    user = make_user(level=1)
    add_mastered(make_material, user, 20)
    for days_ago in (1, 2, 3):
        add_plan(session, user, days_ago, completed=10, total=10)

    assert evaluate_level_progression(session, user.id, TODAY)
    assert fresh(session, User, user.id).level == 2
    # Level 2 has no mastered material yet
    assert not evaluate_level_progression(session, user.id, TODAY)
    assert fresh(session, User, user.id).level == 2


def test_upgrade_is_conditional_on_observed_level(session, make_user):
    user = make_user(level=2)

    assert not apply_level_upgrade(session, user.id, observed_level=1)
    assert fresh(session, User, user.id).level == 2

    assert apply_level_upgrade(session, user.id, observed_level=2)
    assert fresh(session, User, user.id).level == 3


def test_upgrade_never_passes_max_level(session, make_user):
    user = make_user(level=5)
    assert not apply_level_upgrade(session, user.id, observed_level=5)
    assert fresh(session, User, user.id).level == 5


# ---- Retirement protection ----

def test_protection_after_three_bad_days(session, make_user):
    user = make_user()
    for days_ago in (1, 2, 3):
        add_plan(session, user, days_ago, completed=1, total=5)

    assert check_retirement_protection(session, user.id, TODAY)


def test_no_protection_when_one_day_is_half_done(session, make_user):
    user = make_user()
    add_plan(session, user, 1, completed=1, total=5)
    add_plan(session, user, 2, completed=5, total=10)
    add_plan(session, user, 3, completed=0, total=5)

    assert not check_retirement_protection(session, user.id, TODAY)


def test_no_protection_with_missing_day(session, make_user):
    user = make_user()
    add_plan(session, user, 1, completed=0, total=5)
    add_plan(session, user, 2, completed=0, total=5)
    add_plan(session, user, 4, completed=0, total=5)

    assert not check_retirement_protection(session, user.id, TODAY)


def test_protection_ignores_todays_plan(session, make_user):
    user = make_user()
    add_plan(session, user, 0, completed=5, total=5)
    for days_ago in (1, 2, 3):
        add_plan(session, user, days_ago, completed=0, total=5)

    assert check_retirement_protection(session, user.id, TODAY)


def test_empty_plans_do_not_trigger_protection(session, make_user):
    user = make_user()
    for days_ago in (1, 2, 3):
        add_plan(session, user, days_ago, completed=0, total=0)

    assert not check_retirement_protection(session, user.id, TODAY)
