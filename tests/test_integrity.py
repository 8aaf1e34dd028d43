"""
Tests for the data integrity auditor.
"""

from conftest import TODAY
from shadowing.clock import add_days
from shadowing.integrity import (
    build_integrity_report,
    check_practice_data_integrity,
    clamp_sample_limit,
)
from shadowing.practice.completion import complete_practice


def codes(issues):
    return {issue.code: issue for issue in issues}


def test_clean_database_after_normal_use(session, make_user, make_material, make_plan):
    user = make_user()
    a = make_material(user)
    b = make_material(user)
    _, items = make_plan(user, TODAY, [a, b])

    complete_practice(session, user.id, a.id, items[0].id, "good", operation_id="op-1", today=TODAY)
    complete_practice(session, user.id, b.id, None, "fair", today=TODAY)

    assert check_practice_data_integrity(session) == []


def test_counter_over_total(session, make_user, make_material, make_plan, make_record):
    user = make_user()
    material = make_material(user)
    plan, items = make_plan(user, TODAY, [material], statuses=["completed"], completed_items=2)
    make_record(user, material, items[0])

    found = codes(check_practice_data_integrity(session))

    assert set(found) == {"completed_items_over_total", "plan_completion_mismatch"}
    assert found["completed_items_over_total"].severity == "error"
    assert found["completed_items_over_total"].samples == [plan.id]


def test_counter_drift(session, make_user, make_material, make_plan, make_record):
    user = make_user()
    a = make_material(user)
    b = make_material(user)
    plan, items = make_plan(user, TODAY, [a, b], statuses=["completed", "completed"], completed_items=1)
    make_record(user, a, items[0])
    make_record(user, b, items[1])

    found = codes(check_practice_data_integrity(session))

    assert set(found) == {"plan_completion_mismatch"}
    assert found["plan_completion_mismatch"].count == 1
    assert found["plan_completion_mismatch"].samples == [plan.id]


def test_completed_item_without_record(session, make_user, make_material, make_plan):
    user = make_user()
    material = make_material(user)
    _, items = make_plan(user, TODAY, [material], statuses=["completed"])

    found = codes(check_practice_data_integrity(session))

    assert set(found) == {"completed_plan_item_without_record"}
    assert found["completed_plan_item_without_record"].samples == [items[0].id]


def test_record_on_pending_item_is_a_warning(session, make_user, make_material, make_plan, make_record):
    user = make_user()
    material = make_material(user)
    _, items = make_plan(user, TODAY, [material])
    record = make_record(user, material, items[0])

    found = codes(check_practice_data_integrity(session))

    assert set(found) == {"practice_record_plan_status_mismatch"}
    issue = found["practice_record_plan_status_mismatch"]
    assert issue.severity == "warn"
    assert issue.samples == [record.id]


def test_duplicate_operation_id(session, make_user, make_material, make_record):
    user = make_user()
    other = make_user()
    material = make_material(user)
    other_material = make_material(other)
    make_record(user, material, operation_id="op-1")
    make_record(user, material, operation_id="op-1")
    make_record(other, other_material, operation_id="op-1")
    make_record(user, material)
    make_record(user, material)

    found = codes(check_practice_data_integrity(session))

    assert set(found) == {"duplicate_operation_id"}
    assert found["duplicate_operation_id"].count == 1
    assert found["duplicate_operation_id"].samples == [f"{user.id}:op-1"]


def test_samples_are_bounded(session, make_user, make_material, make_plan):
    user = make_user()
    for days_ago in range(5):
        material = make_material(user)
        make_plan(user, add_days(TODAY, -days_ago), [material], statuses=["completed"])

    found = codes(check_practice_data_integrity(session, sample_limit=2))

    issue = found["completed_plan_item_without_record"]
    assert issue.count == 5
    assert len(issue.samples) == 2


def test_clamp_sample_limit():
    assert clamp_sample_limit(0) == 1
    assert clamp_sample_limit(-5) == 1
    assert clamp_sample_limit(30) == 30
    assert clamp_sample_limit(500) == 50


def test_report_shape(session, make_user, make_material, make_plan):
    user = make_user()
    material = make_material(user)
    make_plan(user, TODAY, [material], statuses=["completed"])

    report = build_integrity_report(session)

    assert set(report) == {"checkedAt", "issueCount", "issues"}
    assert report["issueCount"] == 1
    assert isinstance(report["checkedAt"], str)
    assert report["issues"][0]["code"] == "completed_plan_item_without_record"
    assert report["issues"][0]["count"] == 1


def test_empty_report(session):
    report = build_integrity_report(session)
    assert report["issueCount"] == 0
    assert report["issues"] == []
