"""Workflow API schemas."""

from datetime import datetime
from typing import Any

from pydantic import AliasChoices, BaseModel, ConfigDict, Field

from autoflow.domain.enums import MoveDirection
from autoflow.shared.enums import ExecutionRunStatus


class StepSchema(BaseModel):
    """One step of a definition; type and config are checked on save."""

    model_config = ConfigDict(from_attributes=True)

    id: str = Field(..., min_length=1, max_length=128)
    type: str = Field(..., min_length=1, max_length=64, description="Action type")
    label: str = ""
    config: dict[str, Any] = Field(default_factory=dict)


class WorkflowDefinitionRequest(BaseModel):
    """Request body for saving a workflow (full replace of the definition)."""

    name: str = Field(..., max_length=255)
    description: str | None = None
    trigger_type: str = Field(..., min_length=1, max_length=64)
    steps: list[StepSchema] = Field(default_factory=list)


class WorkflowCreateRequest(WorkflowDefinitionRequest):
    """Request body for creating a workflow."""

    is_active: bool = True


class ToggleRequest(BaseModel):
    """Set the active flag (enable or is_active); omit it to flip the current value.

    Unknown keys are rejected with 422.
    """

    model_config = ConfigDict(extra="forbid")

    enable: bool | None = Field(
        default=None, validation_alias=AliasChoices("enable", "is_active")
    )


class MoveStepRequest(BaseModel):
    direction: MoveDirection


class ExecuteRequest(BaseModel):
    """Optional context for a manual run (e.g. {"lead": {...}})."""

    payload: dict[str, Any] = Field(default_factory=dict)


class WorkflowResponse(BaseModel):
    """Workflow response."""

    model_config = ConfigDict(from_attributes=True)

    id: str
    org_id: str
    name: str
    description: str | None
    trigger_type: str
    is_active: bool
    steps: list[StepSchema]
    execution_count: int
    last_executed_at: datetime | None
    created_at: datetime | None
    updated_at: datetime | None


class WorkflowListResponse(BaseModel):
    items: list[WorkflowResponse]
    total: int
    page: int
    page_size: int


class ExecutionRunSummary(BaseModel):
    """One row of run history."""

    model_config = ConfigDict(from_attributes=True)

    id: str
    workflow_id: str
    trigger_event: str
    status: ExecutionRunStatus
    started_at: datetime
    completed_at: datetime | None
    duration: int | None
    steps_executed: int
    steps_total: int
    steps_failed: int


class ExecutionRunResponse(ExecutionRunSummary):
    """A single run with its trigger data and per-step log."""

    trigger_data: dict[str, Any]
    step_log: list[dict[str, Any]]
    error_message: str | None


class RunHistoryResponse(BaseModel):
    items: list[ExecutionRunSummary]
    total: int
    page: int
    page_size: int


class ExecutionAckResponse(BaseModel):
    """Manual execute acknowledgement; the outcome appears in run history."""

    model_config = ConfigDict(from_attributes=True)

    workflow_id: str
    run_id: str
    accepted: bool
