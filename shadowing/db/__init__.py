"""
Practice database: ORM models and session management.
"""

from shadowing.db.database import (
    get_engine,
    get_session,
    get_session_factory,
    init_db,
    reset_db,
    session_scope,
)
from shadowing.db.models import (
    Base,
    DailyPlan,
    Material,
    PlanItem,
    PracticeRecord,
    User,
)

__all__ = [
    "get_engine",
    "get_session",
    "get_session_factory",
    "init_db",
    "reset_db",
    "session_scope",
    "Base",
    "DailyPlan",
    "Material",
    "PlanItem",
    "PracticeRecord",
    "User",
]
