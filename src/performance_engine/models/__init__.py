"""SQLAlchemy ORM models."""

from performance_engine.models.base import Base, TimestampMixin
from performance_engine.models.performance import (
    ActivityRow,
    AppraisalRow,
    CommentRow,
    PlanRow,
    ResponsibilityRow,
)

__all__ = [
    "Base",
    "TimestampMixin",
    "ActivityRow",
    "AppraisalRow",
    "CommentRow",
    "PlanRow",
    "ResponsibilityRow",
]
