"""
Compare-and-swap writes.

A CAS write is an UPDATE whose WHERE clause repeats every column value the
caller read earlier; it applies only if none of them changed in between.
The write is committed immediately.
"""

from __future__ import annotations

from typing import Any, Mapping

from sqlalchemy.orm import Session


def column_matches(column, value: Any):
    """Equality predicate that also matches NULL when value is None."""
    if value is None:
        return column.is_(None)
    return column == value


def compare_and_swap(
    session: Session,
    model,
    row_id: str,
    expected: Mapping[str, Any],
    values: Mapping[str, Any]
) -> bool:
    """
    Conditionally update one row and commit.

    Args:
        session: Database session
        model: ORM model class
        row_id: Primary key of the row
        expected: Column name -> value observed at read time
        values: Column name -> new value

    Returns:
        True if the row was updated, False if any expected value changed
        (or the row no longer exists)
    """
    predicates = [model.id == row_id]
    predicates.extend(
        column_matches(getattr(model, name), value)
        for name, value in expected.items()
    )

    changed = session.query(model).filter(*predicates).update(
        dict(values),
        synchronize_session=False
    )
    session.commit()
    return changed > 0
