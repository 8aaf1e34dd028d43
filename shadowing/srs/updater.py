"""
Spaced-Repetition Updater

Applies the interval policy to a persisted material with an optimistic
read-compute-write loop. The write is predicated on review_count, status and
last_practice_date all being unchanged since the read.

Best effort: after MAX_CAS_RETRIES lost races the update is skipped and a
warning is logged.
"""

from __future__ import annotations

import logging
from datetime import date
from typing import Optional

from sqlalchemy.orm import Session

from shadowing.db.cas import compare_and_swap
from shadowing.db.models import Material
from shadowing.srs.constants import MAX_CAS_RETRIES
from shadowing.srs.interval_policy import (
    MaterialReviewState,
    PracticeOutcome,
    ReviewUpdate,
    next_review,
)

logger = logging.getLogger(__name__)


def load_review_state(session: Session, material_id: str) -> Optional[MaterialReviewState]:
    """
    Fresh read of the material's review columns.

    Returns:
        MaterialReviewState, or None if the material does not exist
    """
    row = session.query(
        Material.review_count,
        Material.status,
        Material.last_practice_date,
    ).filter(Material.id == material_id).first()
    session.commit()  # end the read so the next attempt sees fresh state

    if row is None:
        return None

    return MaterialReviewState(
        review_count=row.review_count,
        status=row.status,
        last_practice_date=row.last_practice_date,
    )


def update_material_after_practice(
    session: Session,
    material_id: str,
    outcome: PracticeOutcome,
    today: date
) -> Optional[ReviewUpdate]:
    """
    Advance a material's review schedule after a practice session.

    Args:
        session: Database session
        material_id: Material to update
        outcome: Practice outcome
        today: Current practice day

    Returns:
        The applied ReviewUpdate, or None if the material is gone or every
        CAS attempt lost its race
    """
    for attempt in range(MAX_CAS_RETRIES):
        current = load_review_state(session, material_id)
        if current is None:
            return None

        update = next_review(current, outcome, today)

        applied = compare_and_swap(
            session,
            Material,
            material_id,
            expected={
                "review_count": current.review_count,
                "status": current.status,
                "last_practice_date": current.last_practice_date,
            },
            values={
                "review_count": update.review_count,
                "next_review_date": update.next_review_date,
                "status": update.status,
                "last_practice_date": today,
            },
        )
        if applied:
            return update

        logger.debug(
            "[SpacedRepetition] CAS conflict on material %s (attempt %d)",
            material_id, attempt + 1
        )

    logger.warning(
        "[SpacedRepetition] CAS update failed after %d retries for material %s",
        MAX_CAS_RETRIES, material_id
    )
    return None
