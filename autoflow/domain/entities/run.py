"""Execution run domain entities: the per-run history record and its wait continuation."""

from __future__ import annotations

from dataclasses import dataclass, field
from datetime import datetime
from typing import Any

from autoflow.domain.entities.workflow import StepEntity
from autoflow.shared.enums import ExecutionRunStatus


@dataclass(frozen=True)
class ExecutionRunEntity:
    """One instantiation of a workflow's steps against a triggering context.

    steps_snapshot is the step list captured when the run started, so a run
    resumed after a wait executes the same steps even if the workflow was
    edited meanwhile.
    """

    id: str
    org_id: str
    workflow_id: str
    trigger_event: str
    trigger_data: dict[str, Any]
    steps_snapshot: tuple[StepEntity, ...]
    status: ExecutionRunStatus
    steps_executed: int
    steps_total: int
    steps_failed: int
    started_at: datetime
    step_log: list[dict[str, Any]] = field(default_factory=list)
    error_message: str | None = None
    completed_at: datetime | None = None
    duration: int | None = None

    @property
    def is_terminal(self) -> bool:
        return self.status.is_terminal


@dataclass(frozen=True)
class RunContinuation:
    """Persisted resume point of a run suspended by a wait step."""

    run_id: str
    next_step_index: int
    resume_at: datetime
    context: dict[str, Any]
