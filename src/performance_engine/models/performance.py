"""Performance plan, responsibility, activity, appraisal and comment tables."""

from __future__ import annotations

from datetime import date, datetime
from decimal import Decimal
from typing import Any
from uuid import UUID, uuid4

from sqlalchemy import (
    JSON,
    CheckConstraint,
    Date,
    DateTime,
    ForeignKey,
    Index,
    Integer,
    Numeric,
    String,
    Text,
    UniqueConstraint,
)
from sqlalchemy.dialects.postgresql import JSONB
from sqlalchemy.orm import Mapped, mapped_column, relationship

from performance_engine.models.base import Base, TimestampMixin

# JSONB on Postgres, plain JSON elsewhere
JsonType = JSON().with_variant(JSONB(), "postgresql")

WORKFLOW_STATUS_CHECK = (
    "IN ('draft', 'submitted', 'supervisor_approved', 'approved', 'revision_requested')"
)


# ===== Performance Plans =====


class PlanRow(Base, TimestampMixin):
    """Performance plan header."""

    __tablename__ = "performance_plan"

    id: Mapped[UUID] = mapped_column(primary_key=True, default=uuid4)
    employee_id: Mapped[UUID] = mapped_column(nullable=False)
    supervisor_id: Mapped[UUID] = mapped_column(nullable=False)
    reviewer_id: Mapped[UUID | None] = mapped_column(nullable=True)
    plan_year: Mapped[int] = mapped_column(Integer, nullable=False)
    plan_period: Mapped[str] = mapped_column(String, nullable=False)
    status: Mapped[str] = mapped_column(String, nullable=False, default="draft")
    workflow_status: Mapped[str] = mapped_column(String, nullable=False, default="draft")
    submitted_at: Mapped[datetime | None] = mapped_column(DateTime(timezone=True), nullable=True)
    supervisor_approved_at: Mapped[datetime | None] = mapped_column(
        DateTime(timezone=True), nullable=True
    )
    reviewer_approved_at: Mapped[datetime | None] = mapped_column(
        DateTime(timezone=True), nullable=True
    )
    version: Mapped[int] = mapped_column(Integer, nullable=False, default=1)

    __table_args__ = (
        CheckConstraint(
            "status IN ('draft', 'submitted', 'completed')",
            name="performance_plan_status_check",
        ),
        CheckConstraint(
            f"workflow_status {WORKFLOW_STATUS_CHECK}",
            name="performance_plan_workflow_status_check",
        ),
        Index("performance_plan_employee_period_idx", "employee_id", "plan_year", "plan_period"),
        Index("performance_plan_supervisor_idx", "supervisor_id"),
        Index("performance_plan_reviewer_idx", "reviewer_id"),
    )

    # Relationships
    responsibilities: Mapped[list[ResponsibilityRow]] = relationship(
        back_populates="plan",
        order_by="ResponsibilityRow.position",
        passive_deletes=True,
    )


class ResponsibilityRow(Base, TimestampMixin):
    """Weighted objective line item of a plan."""

    __tablename__ = "performance_responsibility"

    id: Mapped[UUID] = mapped_column(primary_key=True, default=uuid4)
    plan_id: Mapped[UUID] = mapped_column(
        ForeignKey("performance_plan.id", ondelete="CASCADE"),
        nullable=False,
    )
    position: Mapped[int] = mapped_column(Integer, nullable=False, default=0)
    description: Mapped[str] = mapped_column(Text, nullable=False)
    tasks: Mapped[str] = mapped_column(Text, nullable=False, default="")
    weight: Mapped[int] = mapped_column(Integer, nullable=False)
    target_date: Mapped[date | None] = mapped_column(Date, nullable=True)
    status: Mapped[str] = mapped_column(String, nullable=False, default="")
    comments: Mapped[str] = mapped_column(Text, nullable=False, default="")
    success_indicators: Mapped[list[dict[str, Any]]] = mapped_column(
        JsonType, nullable=False, default=list
    )

    __table_args__ = (
        CheckConstraint("weight >= 0 AND weight <= 100", name="performance_responsibility_weight_check"),
        Index("performance_responsibility_plan_idx", "plan_id"),
    )

    # Relationships
    plan: Mapped[PlanRow] = relationship(back_populates="responsibilities")
    activities: Mapped[list[ActivityRow]] = relationship(
        back_populates="responsibility",
        order_by="ActivityRow.created_at",
        passive_deletes=True,
    )


class ActivityRow(Base, TimestampMixin):
    """Append-only progress record under a responsibility."""

    __tablename__ = "performance_activity"

    id: Mapped[UUID] = mapped_column(primary_key=True, default=uuid4)
    responsibility_id: Mapped[UUID] = mapped_column(
        ForeignKey("performance_responsibility.id", ondelete="CASCADE"),
        nullable=False,
    )
    title: Mapped[str] = mapped_column(String, nullable=False)
    description: Mapped[str] = mapped_column(Text, nullable=False, default="")
    status: Mapped[str] = mapped_column(String, nullable=False, default="pending")
    completed_at: Mapped[datetime | None] = mapped_column(DateTime(timezone=True), nullable=True)

    __table_args__ = (
        CheckConstraint(
            "status IN ('pending', 'in-progress', 'completed')",
            name="performance_activity_status_check",
        ),
        CheckConstraint(
            "(status = 'completed') = (completed_at IS NOT NULL)",
            name="performance_activity_completed_at_check",
        ),
        Index("performance_activity_responsibility_idx", "responsibility_id"),
    )

    # Relationships
    responsibility: Mapped[ResponsibilityRow] = relationship(back_populates="activities")


# ===== Appraisals =====


class AppraisalRow(Base, TimestampMixin):
    """Performance appraisal cycle."""

    __tablename__ = "performance_appraisal"

    id: Mapped[UUID] = mapped_column(primary_key=True, default=uuid4)
    employee_id: Mapped[UUID] = mapped_column(nullable=False)
    supervisor_id: Mapped[UUID] = mapped_column(nullable=False)
    reviewer_id: Mapped[UUID | None] = mapped_column(nullable=True)
    plan_id: Mapped[UUID | None] = mapped_column(
        ForeignKey("performance_plan.id", ondelete="SET NULL"),
        nullable=True,
    )
    appraisal_type: Mapped[str] = mapped_column(String, nullable=False, default="annual")
    overall_rating: Mapped[Decimal | None] = mapped_column(Numeric(3, 2), nullable=True)
    status: Mapped[str] = mapped_column(String, nullable=False, default="draft")
    submitted_at: Mapped[datetime | None] = mapped_column(DateTime(timezone=True), nullable=True)
    supervisor_approved_at: Mapped[datetime | None] = mapped_column(
        DateTime(timezone=True), nullable=True
    )
    reviewer_approved_at: Mapped[datetime | None] = mapped_column(
        DateTime(timezone=True), nullable=True
    )
    version: Mapped[int] = mapped_column(Integer, nullable=False, default=1)

    __table_args__ = (
        CheckConstraint(f"status {WORKFLOW_STATUS_CHECK}", name="performance_appraisal_status_check"),
        CheckConstraint(
            "overall_rating IS NULL OR (overall_rating >= 0 AND overall_rating <= 5)",
            name="performance_appraisal_rating_check",
        ),
        Index("performance_appraisal_employee_idx", "employee_id"),
    )


# ===== Workflow Comment Ledger =====


class CommentRow(Base):
    """Append-only workflow comment ledger entry (no updates or deletes)."""

    __tablename__ = "workflow_comment"

    id: Mapped[UUID] = mapped_column(primary_key=True, default=uuid4)
    record_type: Mapped[str] = mapped_column(String, nullable=False)
    record_id: Mapped[UUID] = mapped_column(nullable=False)
    sequence: Mapped[int] = mapped_column(Integer, nullable=False)
    author_id: Mapped[UUID] = mapped_column(nullable=False)
    author_display_name: Mapped[str] = mapped_column(String, nullable=False, default="")
    role: Mapped[str] = mapped_column(String, nullable=False)
    action: Mapped[str] = mapped_column(String, nullable=False)
    text: Mapped[str] = mapped_column(Text, nullable=False, default="")
    via_override: Mapped[bool] = mapped_column(nullable=False, default=False)
    created_at: Mapped[datetime] = mapped_column(DateTime(timezone=True), nullable=False)

    __table_args__ = (
        UniqueConstraint("record_type", "record_id", "sequence", name="workflow_comment_sequence_unique"),
        CheckConstraint("record_type IN ('plan', 'appraisal')", name="workflow_comment_record_type_check"),
        CheckConstraint(
            "role IN ('employee', 'supervisor', 'reviewer')",
            name="workflow_comment_role_check",
        ),
    )
