"""Workflow, ExecutionRun, and RunContinuationRecord ORM models. Event-driven automation."""

from datetime import datetime
from typing import Any

import sqlalchemy as sa
from sqlalchemy import (
    JSON,
    Boolean,
    CheckConstraint,
    DateTime,
    ForeignKey,
    Index,
    Integer,
    String,
    Text,
)
from sqlalchemy.orm import Mapped, mapped_column

from autoflow.infrastructure.persistence.database import Base
from autoflow.infrastructure.persistence.models.mixins import (
    CuidMixin,
    OrgScopedModel,
)
from autoflow.shared.enums import ExecutionRunStatus
from autoflow.shared.utils.datetime import utc_now


class Workflow(OrgScopedModel, Base):
    """Workflow definition. Table: workflow. Trigger type + ordered steps JSON."""

    __tablename__ = "workflow"

    name: Mapped[str] = mapped_column(String, nullable=False)
    description: Mapped[str | None] = mapped_column(Text, nullable=True)
    trigger_type: Mapped[str] = mapped_column(String, nullable=False, index=True)
    is_active: Mapped[bool] = mapped_column(
        Boolean, nullable=False, default=True, server_default=sa.true()
    )
    steps: Mapped[list[dict[str, Any]]] = mapped_column(JSON, nullable=False, default=list)
    execution_count: Mapped[int] = mapped_column(
        Integer, nullable=False, default=0, server_default=sa.text("0")
    )
    last_executed_at: Mapped[datetime | None] = mapped_column(
        DateTime(timezone=True), nullable=True
    )

    __table_args__ = (
        Index("ix_workflow_org_trigger_active", "org_id", "trigger_type", "is_active"),
    )


class ExecutionRun(OrgScopedModel, Base):
    """Execution run history. Table: execution_run."""

    __tablename__ = "execution_run"

    workflow_id: Mapped[str] = mapped_column(
        String,
        ForeignKey("workflow.id", ondelete="CASCADE"),
        nullable=False,
        index=True,
    )
    trigger_event: Mapped[str] = mapped_column(String, nullable=False)
    trigger_data: Mapped[dict[str, Any] | None] = mapped_column(JSON, nullable=True)
    steps_snapshot: Mapped[list[dict[str, Any]]] = mapped_column(
        JSON, nullable=False, default=list
    )
    status: Mapped[str] = mapped_column(
        String,
        nullable=False,
        default=ExecutionRunStatus.RUNNING.value,
        index=True,
    )
    steps_executed: Mapped[int] = mapped_column(Integer, nullable=False, default=0)
    steps_total: Mapped[int] = mapped_column(Integer, nullable=False, default=0)
    steps_failed: Mapped[int] = mapped_column(Integer, nullable=False, default=0)
    step_log: Mapped[list[dict[str, Any]] | None] = mapped_column(JSON, nullable=True)
    error_message: Mapped[str | None] = mapped_column(Text, nullable=True)
    started_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True), nullable=False, default=utc_now
    )
    completed_at: Mapped[datetime | None] = mapped_column(
        DateTime(timezone=True), nullable=True
    )
    duration: Mapped[int | None] = mapped_column(Integer, nullable=True)

    __table_args__ = (
        Index("ix_execution_run_org_workflow_started", "org_id", "workflow_id", "started_at"),
        CheckConstraint(
            "status IN ({})".format(
                ", ".join(
                    "'{}'".format(v.replace("'", "''"))
                    for v in ExecutionRunStatus.values()
                )
            ),
            name="execution_run_status_check",
        ),
    )


class RunContinuationRecord(CuidMixin, Base):
    """Resume point of a run suspended by a wait step. Table: run_continuation."""

    __tablename__ = "run_continuation"

    run_id: Mapped[str] = mapped_column(
        String,
        ForeignKey("execution_run.id", ondelete="CASCADE"),
        nullable=False,
        unique=True,
    )
    next_step_index: Mapped[int] = mapped_column(Integer, nullable=False)
    resume_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True), nullable=False, index=True
    )
    context: Mapped[dict[str, Any] | None] = mapped_column(JSON, nullable=True)
    # Set when a scheduler hands the run to the launcher; cleared on re-suspend.
    claimed_at: Mapped[datetime | None] = mapped_column(
        DateTime(timezone=True), nullable=True
    )
    created_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True), nullable=False, default=utc_now
    )
