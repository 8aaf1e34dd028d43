from datetime import datetime

import pytest
from pydantic import ValidationError

from shadowing.schemas import IntegrityIssue, IntegrityReport, PracticeSubmission


def test_submission_defaults():
    submission = PracticeSubmission(user_id="u1", material_id="m1")
    assert submission.plan_item_id is None
    assert submission.self_rating is None
    assert submission.completed_all_stages is True
    assert submission.duration_seconds == 0


def test_unknown_rating_becomes_none():
    assert PracticeSubmission(user_id="u1", material_id="m1", self_rating="great").self_rating is None
    assert PracticeSubmission(user_id="u1", material_id="m1", self_rating="fair").self_rating == "fair"


def test_blank_ids_become_none():
    submission = PracticeSubmission(user_id="u1", material_id="m1", plan_item_id="  ", operation_id="")
    assert submission.plan_item_id is None
    assert submission.operation_id is None


def test_negative_duration_rejected():
    with pytest.raises(ValidationError):
        PracticeSubmission(user_id="u1", material_id="m1", duration_seconds=-1)


def test_missing_user_rejected():
    with pytest.raises(ValidationError):
        PracticeSubmission(user_id="", material_id="m1")


def test_issue_requires_known_code():
    with pytest.raises(ValidationError):
        IntegrityIssue(code="something_else", severity="error", count=1, message="x")


def test_report_serializes_with_camel_case_keys():
    report = IntegrityReport(
        checked_at=datetime(2025, 3, 10, 8, 0),
        issue_count=1,
        issues=[IntegrityIssue(
            code="duplicate_operation_id",
            severity="error",
            count=1,
            message="duplicate",
            samples=["u1:op"],
        )],
    )

    body = report.model_dump(mode="json", by_alias=True)

    assert body["checkedAt"] == "2025-03-10T08:00:00"
    assert body["issueCount"] == 1
    assert body["issues"][0]["samples"] == ["u1:op"]
