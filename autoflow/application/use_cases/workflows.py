"""Workflow definition store use case: validated CRUD, toggle, reorder, run history.

Saving is a full replace of name/description/trigger/steps and never starts
a run. Toggling is_active touches nothing else.
"""

from __future__ import annotations

from autoflow.application.dtos.workflow import Page, WorkflowDefinition
from autoflow.application.interfaces.repositories import (
    IExecutionRunRepository,
    IWorkflowRepository,
)
from autoflow.domain.entities import ExecutionRunEntity, WorkflowEntity, move_step
from autoflow.domain.enums import MoveDirection, StepType, TriggerType
from autoflow.domain.exceptions import ResourceNotFoundException, ValidationException


def validate_definition(definition: WorkflowDefinition) -> WorkflowDefinition:
    """Check a definition before it is persisted; return it with the name trimmed.

    Raises:
        ValidationException: Empty name, unknown trigger type, unknown step
            type, or duplicate/empty step id.
    """
    name = (definition.name or "").strip()
    if not name:
        raise ValidationException("Workflow name must not be empty", field="name")
    if definition.trigger_type not in TriggerType.values():
        raise ValidationException(
            f"Unknown trigger type: {definition.trigger_type!r}", field="trigger_type"
        )
    seen: set[str] = set()
    for position, step in enumerate(definition.steps):
        if step.type not in StepType.values():
            raise ValidationException(
                f"Unknown step type at position {position}: {step.type!r}",
                field="steps",
            )
        if not step.id:
            raise ValidationException(
                f"Step at position {position} has no id", field="steps"
            )
        if step.id in seen:
            raise ValidationException(f"Duplicate step id: {step.id!r}", field="steps")
        seen.add(step.id)
    return WorkflowDefinition(
        name=name,
        trigger_type=definition.trigger_type,
        steps=tuple(definition.steps),
        description=definition.description,
    )


def _page_bounds(page: int, page_size: int) -> tuple[int, int]:
    if page < 1:
        raise ValidationException("page must be >= 1", field="page")
    if page_size < 1:
        raise ValidationException("page_size must be >= 1", field="page_size")
    return (page - 1) * page_size, page_size


class WorkflowDefinitionService:
    """Creates, edits, toggles, reorders, lists, and deletes workflows; reads run history."""

    def __init__(
        self,
        workflow_repo: IWorkflowRepository,
        run_repo: IExecutionRunRepository,
    ) -> None:
        self._workflow_repo = workflow_repo
        self._run_repo = run_repo

    async def create(
        self, org_id: str, definition: WorkflowDefinition, *, is_active: bool = True
    ) -> WorkflowEntity:
        valid = validate_definition(definition)
        return await self._workflow_repo.create_workflow(
            org_id=org_id,
            name=valid.name,
            trigger_type=valid.trigger_type,
            steps=valid.steps,
            description=valid.description,
            is_active=is_active,
        )

    async def get(self, org_id: str, workflow_id: str) -> WorkflowEntity:
        workflow = await self._workflow_repo.get_by_id_and_org(workflow_id, org_id)
        if workflow is None:
            raise ResourceNotFoundException("workflow", workflow_id)
        return workflow

    async def save_definition(
        self, org_id: str, workflow_id: str, definition: WorkflowDefinition
    ) -> WorkflowEntity:
        """Full replace; validation happens before anything is written."""
        valid = validate_definition(definition)
        updated = await self._workflow_repo.replace_definition(
            workflow_id,
            org_id,
            name=valid.name,
            description=valid.description,
            trigger_type=valid.trigger_type,
            steps=valid.steps,
        )
        if updated is None:
            raise ResourceNotFoundException("workflow", workflow_id)
        return updated

    async def toggle_active(
        self, org_id: str, workflow_id: str, enable: bool | None = None
    ) -> WorkflowEntity:
        """Set is_active to enable, or flip it when enable is None."""
        if enable is None:
            current = await self.get(org_id, workflow_id)
            enable = not current.is_active
        updated = await self._workflow_repo.set_active(workflow_id, org_id, enable)
        if updated is None:
            raise ResourceNotFoundException("workflow", workflow_id)
        return updated

    async def move_step(
        self,
        org_id: str,
        workflow_id: str,
        step_id: str,
        direction: MoveDirection,
    ) -> WorkflowEntity:
        """Swap a step with its neighbour and persist the new snapshot."""
        workflow = await self.get(org_id, workflow_id)
        try:
            steps = move_step(workflow.steps, step_id, direction)
        except ValueError as e:
            raise ResourceNotFoundException("step", step_id) from e
        return await self.save_definition(
            org_id,
            workflow_id,
            WorkflowDefinition(
                name=workflow.name,
                trigger_type=workflow.trigger_type,
                steps=steps,
                description=workflow.description,
            ),
        )

    async def delete(self, org_id: str, workflow_id: str) -> None:
        if not await self._workflow_repo.delete_workflow(workflow_id, org_id):
            raise ResourceNotFoundException("workflow", workflow_id)

    async def list_workflows(
        self,
        org_id: str,
        *,
        search: str | None = None,
        trigger_type: str | None = None,
        is_active: bool | None = None,
        page: int = 1,
        page_size: int = 20,
    ) -> Page[WorkflowEntity]:
        skip, limit = _page_bounds(page, page_size)
        items, total = await self._workflow_repo.list_for_org(
            org_id,
            search=search.strip() if search else None,
            trigger_type=trigger_type or None,
            is_active=is_active,
            skip=skip,
            limit=limit,
        )
        return Page(items=items, total=total, page=page, page_size=page_size)

    async def get_run_history(
        self, org_id: str, workflow_id: str, *, page: int = 1, page_size: int = 20
    ) -> Page[ExecutionRunEntity]:
        """Runs of one workflow, newest first."""
        await self.get(org_id, workflow_id)
        skip, limit = _page_bounds(page, page_size)
        items, total = await self._run_repo.list_by_workflow(
            workflow_id, org_id, skip=skip, limit=limit
        )
        return Page(items=items, total=total, page=page, page_size=page_size)

    async def get_run(self, org_id: str, run_id: str) -> ExecutionRunEntity:
        run = await self._run_repo.get_run(run_id, org_id)
        if run is None:
            raise ResourceNotFoundException("execution_run", run_id)
        return run
