"""Repository interfaces (ports) for the application layer.

Protocols define persistence contracts for workflows, execution runs, and
wait continuations. Infrastructure provides SQLAlchemy implementations.
"""

from __future__ import annotations

from datetime import datetime, timedelta
from typing import Any, Protocol

from autoflow.domain.entities import (
    ExecutionRunEntity,
    RunContinuation,
    StepEntity,
    WorkflowEntity,
)
from autoflow.shared.enums import ExecutionRunStatus


class IWorkflowRepository(Protocol):
    """Protocol for workflow definition persistence."""

    async def get_by_id_and_org(
        self, workflow_id: str, org_id: str
    ) -> WorkflowEntity | None:
        """Return the workflow when it exists in the organization."""

    async def get_by_trigger(
        self, org_id: str, trigger_type: str
    ) -> list[WorkflowEntity]:
        """Return active workflows of the organization with the given trigger type."""

    async def list_for_org(
        self,
        org_id: str,
        *,
        search: str | None = None,
        trigger_type: str | None = None,
        is_active: bool | None = None,
        skip: int = 0,
        limit: int = 20,
    ) -> tuple[list[WorkflowEntity], int]:
        """Return a page of workflows (newest update first) and the total count."""

    async def create_workflow(
        self,
        org_id: str,
        name: str,
        trigger_type: str,
        steps: tuple[StepEntity, ...],
        description: str | None = None,
        is_active: bool = True,
    ) -> WorkflowEntity:
        """Create a workflow; return the created entity."""

    async def replace_definition(
        self,
        workflow_id: str,
        org_id: str,
        *,
        name: str,
        description: str | None,
        trigger_type: str,
        steps: tuple[StepEntity, ...],
    ) -> WorkflowEntity | None:
        """Full-replace name/description/trigger/steps; None when not found."""

    async def set_active(
        self, workflow_id: str, org_id: str, is_active: bool
    ) -> WorkflowEntity | None:
        """Set is_active only; None when not found."""

    async def delete_workflow(self, workflow_id: str, org_id: str) -> bool:
        """Delete the workflow; False when not found."""

    async def increment_execution(self, workflow_id: str, executed_at: datetime) -> None:
        """Atomically bump execution_count by one and set last_executed_at."""


class IExecutionRunRepository(Protocol):
    """Protocol for execution run history persistence."""

    async def create_run(
        self,
        *,
        org_id: str,
        workflow_id: str,
        trigger_event: str,
        trigger_data: dict[str, Any],
        steps: tuple[StepEntity, ...],
        started_at: datetime,
    ) -> ExecutionRunEntity:
        """Insert a running run with steps_total = len(steps)."""

    async def get_run(
        self, run_id: str, org_id: str | None = None
    ) -> ExecutionRunEntity | None:
        """Return a run by id (optionally scoped to an organization)."""

    async def list_by_workflow(
        self, workflow_id: str, org_id: str, *, skip: int = 0, limit: int = 20
    ) -> tuple[list[ExecutionRunEntity], int]:
        """Return a page of runs (newest first) and the total count."""

    async def record_progress(
        self,
        run_id: str,
        *,
        steps_executed: int,
        step_failed: bool,
        log_entry: dict[str, Any],
    ) -> ExecutionRunEntity | None:
        """Advance a running run's counters and append to its step log."""

    async def finish(
        self,
        run_id: str,
        *,
        status: ExecutionRunStatus,
        completed_at: datetime,
        error_message: str | None = None,
    ) -> ExecutionRunEntity | None:
        """Move a running run to a terminal status and compute its duration."""


class IRunContinuationRepository(Protocol):
    """Protocol for durable wait continuations."""

    async def save(self, continuation: RunContinuation) -> None:
        """Persist (or replace) the continuation for its run."""

    async def delete_for_run(self, run_id: str) -> bool:
        """Drop the continuation of a run that has moved past its wait."""

    async def claim_due(
        self, now: datetime, limit: int, lease: timedelta
    ) -> list[RunContinuation]:
        """Mark due, unclaimed (or lease-expired) continuations claimed and return them."""
