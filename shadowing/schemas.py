"""
Pydantic models for data crossing the core's boundary.

Inbound: a practice submission from the practice flow.
Outbound: the data integrity report returned to operators as JSON.
"""

from __future__ import annotations

from datetime import datetime, timezone
from typing import Literal, Optional

from pydantic import BaseModel, ConfigDict, Field, field_validator

from shadowing.srs.interval_policy import normalize_self_rating


# ---- Practice Submission ----

class PracticeSubmission(BaseModel):
    """
    Scheduling-relevant fields the practice flow reports when a session ends.

    Recorded audio is handled by audio storage and is not part of this model.
    """
    user_id: str = Field(..., min_length=1, description="Authenticated user id")
    material_id: str = Field(..., min_length=1)
    plan_item_id: Optional[str] = Field(default=None, description="None for practice outside a plan")
    self_rating: Optional[str] = Field(default=None, description="good | fair | poor | absent")
    is_poor_performance: bool = False
    duration_seconds: int = Field(default=0, ge=0)
    completed_all_stages: bool = True
    operation_id: Optional[str] = Field(default=None, description="Client idempotency token")

    @field_validator("self_rating", mode="before")
    @classmethod
    def _drop_unknown_rating(cls, value):
        # Unknown ratings count as "no rating"
        return normalize_self_rating(value)

    @field_validator("plan_item_id", "operation_id", mode="before")
    @classmethod
    def _blank_to_none(cls, value):
        if isinstance(value, str) and not value.strip():
            return None
        return value


# ---- Integrity Report ----

IssueCode = Literal[
    "completed_items_over_total",
    "plan_completion_mismatch",
    "completed_plan_item_without_record",
    "practice_record_plan_status_mismatch",
    "duplicate_operation_id",
]


class IntegrityIssue(BaseModel):
    """One violated invariant, with a bounded sample of offending row ids."""
    code: IssueCode
    severity: Literal["warn", "error"]
    count: int = Field(..., ge=1)
    message: str
    samples: list[str] = Field(default_factory=list)


class IntegrityReport(BaseModel):
    """Body of the operator integrity-check response."""
    model_config = ConfigDict(populate_by_name=True)

    checked_at: datetime = Field(
        default_factory=lambda: datetime.now(timezone.utc),
        alias="checkedAt"
    )
    issue_count: int = Field(default=0, alias="issueCount")
    issues: list[IntegrityIssue] = Field(default_factory=list)
