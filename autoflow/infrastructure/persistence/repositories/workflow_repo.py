"""Workflow, ExecutionRun, and RunContinuation repositories.

Repositories return domain entities; ORM rows do not leave this module.
Datetimes are normalised to UTC on the way out (SQLite drops tzinfo).
"""

from __future__ import annotations

from datetime import datetime, timedelta
from typing import Any

from sqlalchemy import delete, func, or_, select, update
from sqlalchemy.ext.asyncio import AsyncSession

from autoflow.domain.entities import (
    ExecutionRunEntity,
    RunContinuation,
    StepEntity,
    WorkflowEntity,
)
from autoflow.infrastructure.persistence.models.workflow import (
    ExecutionRun,
    RunContinuationRecord,
    Workflow,
)
from autoflow.infrastructure.persistence.repositories.base import BaseRepository
from autoflow.shared.enums import ExecutionRunStatus
from autoflow.shared.utils.datetime import elapsed_ms, ensure_utc


def _escape_like(value: str) -> str:
    return value.replace("\\", "\\\\").replace("%", "\\%").replace("_", "\\_")


def _steps_to_json(steps: tuple[StepEntity, ...]) -> list[dict[str, Any]]:
    return [step.to_dict() for step in steps]


def _steps_from_json(data: list[dict[str, Any]] | None) -> tuple[StepEntity, ...]:
    return tuple(StepEntity.from_dict(item) for item in data or [])


def to_workflow_entity(row: Workflow) -> WorkflowEntity:
    return WorkflowEntity(
        id=row.id,
        org_id=row.org_id,
        name=row.name,
        description=row.description,
        trigger_type=row.trigger_type,
        is_active=row.is_active,
        steps=_steps_from_json(row.steps),
        execution_count=row.execution_count or 0,
        last_executed_at=ensure_utc(row.last_executed_at),
        created_at=ensure_utc(row.created_at),
        updated_at=ensure_utc(row.updated_at),
    )


def to_run_entity(row: ExecutionRun) -> ExecutionRunEntity:
    started_at = ensure_utc(row.started_at)
    if started_at is None:
        raise ValueError(f"execution_run {row.id} has no started_at")
    return ExecutionRunEntity(
        id=row.id,
        org_id=row.org_id,
        workflow_id=row.workflow_id,
        trigger_event=row.trigger_event,
        trigger_data=dict(row.trigger_data or {}),
        steps_snapshot=_steps_from_json(row.steps_snapshot),
        status=ExecutionRunStatus(row.status),
        steps_executed=row.steps_executed,
        steps_total=row.steps_total,
        steps_failed=row.steps_failed,
        started_at=started_at,
        step_log=list(row.step_log or []),
        error_message=row.error_message,
        completed_at=ensure_utc(row.completed_at),
        duration=row.duration,
    )


class WorkflowRepository(BaseRepository[Workflow]):
    """Workflow repository (organization-scoped)."""

    def __init__(self, db: AsyncSession) -> None:
        super().__init__(db, Workflow)

    async def _get_row(self, workflow_id: str, org_id: str) -> Workflow | None:
        result = await self.db.execute(
            select(Workflow).where(Workflow.id == workflow_id, Workflow.org_id == org_id)
        )
        return result.scalar_one_or_none()

    async def get_by_id_and_org(
        self, workflow_id: str, org_id: str
    ) -> WorkflowEntity | None:
        row = await self._get_row(workflow_id, org_id)
        return to_workflow_entity(row) if row else None

    async def get_by_trigger(
        self, org_id: str, trigger_type: str
    ) -> list[WorkflowEntity]:
        result = await self.db.execute(
            select(Workflow)
            .where(
                Workflow.org_id == org_id,
                Workflow.trigger_type == trigger_type,
                Workflow.is_active.is_(True),
            )
            .order_by(Workflow.created_at.asc(), Workflow.id.asc())
        )
        return [to_workflow_entity(row) for row in result.scalars().all()]

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
        conditions: list[Any] = [Workflow.org_id == org_id]
        if search:
            conditions.append(
                Workflow.name.ilike(f"%{_escape_like(search)}%", escape="\\")
            )
        if trigger_type:
            conditions.append(Workflow.trigger_type == trigger_type)
        if is_active is not None:
            conditions.append(Workflow.is_active.is_(is_active))
        total = await self.db.scalar(
            select(func.count(Workflow.id)).where(*conditions)
        )
        result = await self.db.execute(
            select(Workflow)
            .where(*conditions)
            .order_by(Workflow.updated_at.desc(), Workflow.id.desc())
            .offset(skip)
            .limit(limit)
        )
        return [to_workflow_entity(row) for row in result.scalars().all()], total or 0

    async def create_workflow(
        self,
        org_id: str,
        name: str,
        trigger_type: str,
        steps: tuple[StepEntity, ...],
        description: str | None = None,
        is_active: bool = True,
    ) -> WorkflowEntity:
        """Create workflow; return created entity."""
        workflow = Workflow(
            org_id=org_id,
            name=name,
            description=description,
            trigger_type=trigger_type,
            is_active=is_active,
            steps=_steps_to_json(steps),
            execution_count=0,
        )
        return to_workflow_entity(await self.create(workflow))

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
        row = await self._get_row(workflow_id, org_id)
        if row is None:
            return None
        row.name = name
        row.description = description
        row.trigger_type = trigger_type
        row.steps = _steps_to_json(steps)
        await self.db.flush()
        await self.db.refresh(row)
        return to_workflow_entity(row)

    async def set_active(
        self, workflow_id: str, org_id: str, is_active: bool
    ) -> WorkflowEntity | None:
        row = await self._get_row(workflow_id, org_id)
        if row is None:
            return None
        row.is_active = is_active
        await self.db.flush()
        await self.db.refresh(row)
        return to_workflow_entity(row)

    async def delete_workflow(self, workflow_id: str, org_id: str) -> bool:
        row = await self._get_row(workflow_id, org_id)
        if row is None:
            return False
        await self.delete(row)
        return True

    async def increment_execution(self, workflow_id: str, executed_at: datetime) -> None:
        """Single UPDATE so concurrent run starts never lose an increment.

        updated_at is pinned to its current value: running a workflow is not an edit.
        """
        await self.db.execute(
            update(Workflow)
            .where(Workflow.id == workflow_id)
            .values(
                execution_count=Workflow.execution_count + 1,
                last_executed_at=executed_at,
                updated_at=Workflow.updated_at,
            )
            .execution_options(synchronize_session=False)
        )


class ExecutionRunRepository(BaseRepository[ExecutionRun]):
    """Execution run repository: create, progress, finish, history queries."""

    def __init__(self, db: AsyncSession) -> None:
        super().__init__(db, ExecutionRun)

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
        run = ExecutionRun(
            org_id=org_id,
            workflow_id=workflow_id,
            trigger_event=trigger_event,
            trigger_data=trigger_data,
            steps_snapshot=_steps_to_json(steps),
            status=ExecutionRunStatus.RUNNING.value,
            steps_executed=0,
            steps_total=len(steps),
            steps_failed=0,
            step_log=[],
            started_at=started_at,
        )
        return to_run_entity(await self.create(run))

    async def get_run(
        self, run_id: str, org_id: str | None = None
    ) -> ExecutionRunEntity | None:
        stmt = select(ExecutionRun).where(ExecutionRun.id == run_id)
        if org_id is not None:
            stmt = stmt.where(ExecutionRun.org_id == org_id)
        row = (await self.db.execute(stmt)).scalar_one_or_none()
        return to_run_entity(row) if row else None

    async def list_by_workflow(
        self, workflow_id: str, org_id: str, *, skip: int = 0, limit: int = 20
    ) -> tuple[list[ExecutionRunEntity], int]:
        conditions = [
            ExecutionRun.workflow_id == workflow_id,
            ExecutionRun.org_id == org_id,
        ]
        total = await self.db.scalar(
            select(func.count(ExecutionRun.id)).where(*conditions)
        )
        result = await self.db.execute(
            select(ExecutionRun)
            .where(*conditions)
            .order_by(ExecutionRun.started_at.desc(), ExecutionRun.id.desc())
            .offset(skip)
            .limit(limit)
        )
        return [to_run_entity(row) for row in result.scalars().all()], total or 0

    async def record_progress(
        self,
        run_id: str,
        *,
        steps_executed: int,
        step_failed: bool,
        log_entry: dict[str, Any],
    ) -> ExecutionRunEntity | None:
        """Advance counters of a running run; terminal runs are left untouched."""
        row = await self.get_by_id(run_id)
        if row is None:
            return None
        if row.status != ExecutionRunStatus.RUNNING.value:
            return to_run_entity(row)
        row.steps_executed = max(row.steps_executed, steps_executed)
        if step_failed:
            row.steps_failed += 1
        row.step_log = [*(row.step_log or []), log_entry]
        await self.db.flush()
        return to_run_entity(row)

    async def finish(
        self,
        run_id: str,
        *,
        status: ExecutionRunStatus,
        completed_at: datetime,
        error_message: str | None = None,
    ) -> ExecutionRunEntity | None:
        """Terminal transition; a run that is already terminal is returned unchanged."""
        if not status.is_terminal:
            raise ValueError(f"finish() needs a terminal status, got {status.value}")
        row = await self.get_by_id(run_id)
        if row is None:
            return None
        if row.status != ExecutionRunStatus.RUNNING.value:
            return to_run_entity(row)
        row.status = status.value
        row.completed_at = completed_at
        row.duration = elapsed_ms(row.started_at, completed_at)
        row.error_message = error_message
        await self.db.flush()
        return to_run_entity(row)


class RunContinuationRepository(BaseRepository[RunContinuationRecord]):
    """Durable wait continuations: save on suspend, claim when due."""

    def __init__(self, db: AsyncSession) -> None:
        super().__init__(db, RunContinuationRecord)

    @staticmethod
    def _to_entity(row: RunContinuationRecord) -> RunContinuation:
        resume_at = ensure_utc(row.resume_at)
        if resume_at is None:
            raise ValueError(f"run_continuation {row.id} has no resume_at")
        return RunContinuation(
            run_id=row.run_id,
            next_step_index=row.next_step_index,
            resume_at=resume_at,
            context=dict(row.context or {}),
        )

    async def _get_row_for_run(self, run_id: str) -> RunContinuationRecord | None:
        result = await self.db.execute(
            select(RunContinuationRecord).where(RunContinuationRecord.run_id == run_id)
        )
        return result.scalar_one_or_none()

    async def save(self, continuation: RunContinuation) -> None:
        """Upsert the run's continuation; a re-saved continuation is unclaimed."""
        row = await self._get_row_for_run(continuation.run_id)
        if row is None:
            await self.create(
                RunContinuationRecord(
                    run_id=continuation.run_id,
                    next_step_index=continuation.next_step_index,
                    resume_at=continuation.resume_at,
                    context=continuation.context,
                )
            )
            return
        row.next_step_index = continuation.next_step_index
        row.resume_at = continuation.resume_at
        row.context = continuation.context
        row.claimed_at = None
        await self.db.flush()

    async def delete_for_run(self, run_id: str) -> bool:
        """Drop the run's continuation once the resumed run has recorded progress."""
        result = await self.db.execute(
            delete(RunContinuationRecord).where(RunContinuationRecord.run_id == run_id)
        )
        return (result.rowcount or 0) > 0

    async def claim_due(
        self, now: datetime, limit: int, lease: timedelta
    ) -> list[RunContinuation]:
        """Mark due continuations claimed and return them, oldest resume_at first.

        A claimed row stays until the resumed run records its next step or
        finishes. If that never happens (process stopped mid-resume), the
        claim expires after lease and the row is due again. On PostgreSQL,
        SKIP LOCKED lets several schedulers claim disjoint batches; other
        backends ignore the lock clause.
        """
        result = await self.db.execute(
            select(RunContinuationRecord)
            .where(
                RunContinuationRecord.resume_at <= now,
                or_(
                    RunContinuationRecord.claimed_at.is_(None),
                    RunContinuationRecord.claimed_at <= now - lease,
                ),
            )
            .order_by(RunContinuationRecord.resume_at.asc())
            .limit(limit)
            .with_for_update(skip_locked=True)
        )
        rows = list(result.scalars().all())
        for row in rows:
            row.claimed_at = now
        await self.db.flush()
        return [self._to_entity(row) for row in rows]
