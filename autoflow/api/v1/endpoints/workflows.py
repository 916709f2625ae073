"""Workflow API: thin routes delegating to WorkflowDefinitionService and the trigger matcher."""

from fastapi import APIRouter, Query, Response

from autoflow.api.v1.dependencies import Engine, OrgId, ReadService, WriteService
from autoflow.application.dtos.workflow import WorkflowDefinition
from autoflow.core.config import get_settings
from autoflow.domain.entities import StepEntity
from autoflow.schemas.workflow import (
    ExecuteRequest,
    ExecutionAckResponse,
    ExecutionRunResponse,
    ExecutionRunSummary,
    MoveStepRequest,
    RunHistoryResponse,
    ToggleRequest,
    WorkflowCreateRequest,
    WorkflowDefinitionRequest,
    WorkflowListResponse,
    WorkflowResponse,
)

router = APIRouter()


def _to_definition(body: WorkflowDefinitionRequest) -> WorkflowDefinition:
    return WorkflowDefinition(
        name=body.name,
        description=body.description,
        trigger_type=body.trigger_type,
        steps=tuple(
            StepEntity(id=s.id, type=s.type, label=s.label, config=s.config)
            for s in body.steps
        ),
    )


def _page_size(page_size: int | None) -> int:
    settings = get_settings()
    return min(page_size or settings.default_page_size, settings.max_page_size)


@router.post("", response_model=WorkflowResponse, status_code=201)
async def create_workflow(
    body: WorkflowCreateRequest,
    org_id: OrgId,
    service: WriteService,
):
    """Create a workflow (org-scoped)."""
    workflow = await service.create(org_id, _to_definition(body), is_active=body.is_active)
    return WorkflowResponse.model_validate(workflow)


@router.get("", response_model=WorkflowListResponse)
async def list_workflows(
    org_id: OrgId,
    service: ReadService,
    search: str | None = Query(None, max_length=255),
    trigger_type: str | None = Query(None),
    is_active: bool | None = Query(None),
    page: int = Query(1, ge=1),
    page_size: int | None = Query(None, ge=1),
):
    """List workflows, most recently updated first."""
    result = await service.list_workflows(
        org_id,
        search=search,
        trigger_type=trigger_type,
        is_active=is_active,
        page=page,
        page_size=_page_size(page_size),
    )
    return WorkflowListResponse(
        items=[WorkflowResponse.model_validate(w) for w in result.items],
        total=result.total,
        page=result.page,
        page_size=result.page_size,
    )


@router.get("/runs/{run_id}", response_model=ExecutionRunResponse)
async def get_run(run_id: str, org_id: OrgId, service: ReadService):
    """Get one execution run with its step log (org-scoped)."""
    run = await service.get_run(org_id, run_id)
    return ExecutionRunResponse.model_validate(run)


@router.get("/{workflow_id}", response_model=WorkflowResponse)
async def get_workflow(workflow_id: str, org_id: OrgId, service: ReadService):
    """Get workflow by id (org-scoped)."""
    workflow = await service.get(org_id, workflow_id)
    return WorkflowResponse.model_validate(workflow)


@router.put("/{workflow_id}", response_model=WorkflowResponse)
async def save_workflow(
    workflow_id: str,
    body: WorkflowDefinitionRequest,
    org_id: OrgId,
    service: WriteService,
):
    """Replace name, description, trigger type and steps. Does not start a run."""
    workflow = await service.save_definition(org_id, workflow_id, _to_definition(body))
    return WorkflowResponse.model_validate(workflow)


@router.delete("/{workflow_id}", status_code=204)
async def delete_workflow(workflow_id: str, org_id: OrgId, service: WriteService):
    """Delete a workflow and its run history."""
    await service.delete(org_id, workflow_id)
    return Response(status_code=204)


@router.put("/{workflow_id}/toggle", response_model=WorkflowResponse)
async def toggle_workflow(
    workflow_id: str,
    org_id: OrgId,
    service: WriteService,
    body: ToggleRequest | None = None,
):
    """Activate or deactivate; an empty body flips the current state."""
    enable = body.enable if body is not None else None
    workflow = await service.toggle_active(org_id, workflow_id, enable)
    return WorkflowResponse.model_validate(workflow)


@router.post("/{workflow_id}/steps/{step_id}/move", response_model=WorkflowResponse)
async def move_step(
    workflow_id: str,
    step_id: str,
    body: MoveStepRequest,
    org_id: OrgId,
    service: WriteService,
):
    """Swap a step with its neighbour above (up) or below (down)."""
    workflow = await service.move_step(org_id, workflow_id, step_id, body.direction)
    return WorkflowResponse.model_validate(workflow)


@router.post("/{workflow_id}/execute", response_model=ExecutionAckResponse, status_code=202)
async def execute_workflow(
    workflow_id: str,
    org_id: OrgId,
    engine: Engine,
    body: ExecuteRequest | None = None,
):
    """Start one manual run; its outcome shows up in run history."""
    ack = await engine.matcher.execute_now(
        org_id, workflow_id, body.payload if body is not None else None
    )
    return ExecutionAckResponse.model_validate(ack)


@router.get("/{workflow_id}/runs", response_model=RunHistoryResponse)
async def get_run_history(
    workflow_id: str,
    org_id: OrgId,
    service: ReadService,
    page: int = Query(1, ge=1),
    page_size: int | None = Query(None, ge=1),
):
    """Execution history for a workflow, newest first."""
    result = await service.get_run_history(
        org_id, workflow_id, page=page, page_size=_page_size(page_size)
    )
    return RunHistoryResponse(
        items=[ExecutionRunSummary.model_validate(r) for r in result.items],
        total=result.total,
        page=result.page,
        page_size=result.page_size,
    )
