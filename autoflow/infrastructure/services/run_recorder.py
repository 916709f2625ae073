"""Execution run recorder: the run-history state machine over short transactions.

Each call opens its own session and commits before returning, so progress is
visible to history queries while a run is still going and survives a crash.
"""

from __future__ import annotations

from collections.abc import Callable
from datetime import datetime, timedelta
from typing import Any

from sqlalchemy.ext.asyncio import AsyncSession, async_sessionmaker

from autoflow.domain.entities import ExecutionRunEntity, RunContinuation, WorkflowEntity
from autoflow.infrastructure.persistence.repositories.workflow_repo import (
    ExecutionRunRepository,
    RunContinuationRepository,
    WorkflowRepository,
)
from autoflow.shared.enums import ExecutionRunStatus
from autoflow.shared.telemetry.logging import get_logger
from autoflow.shared.utils.datetime import utc_now

logger = get_logger(__name__)


class ExecutionRunRecorder:
    """Creates runs, records step progress and suspensions, and finalizes status."""

    def __init__(
        self,
        session_factory: async_sessionmaker[AsyncSession],
        clock: Callable[[], datetime] = utc_now,
    ) -> None:
        self._session_factory = session_factory
        self._clock = clock

    async def start_run(
        self,
        workflow: WorkflowEntity,
        *,
        trigger_event: str,
        trigger_data: dict[str, Any],
    ) -> ExecutionRunEntity:
        """Create a running run with the current step snapshot and bump the workflow counters.

        Both writes commit together: a run exists if and only if it was counted.
        """
        started_at = self._clock()
        async with self._session_factory() as session:
            async with session.begin():
                run = await ExecutionRunRepository(session).create_run(
                    org_id=workflow.org_id,
                    workflow_id=workflow.id,
                    trigger_event=trigger_event,
                    trigger_data=trigger_data,
                    steps=workflow.steps,
                    started_at=started_at,
                )
                await WorkflowRepository(session).increment_execution(
                    workflow.id, started_at
                )
        logger.info(
            "Run %s started for workflow %s (trigger=%s, steps=%d)",
            run.id,
            workflow.id,
            trigger_event,
            run.steps_total,
        )
        return run

    async def get_run(self, run_id: str) -> ExecutionRunEntity | None:
        async with self._session_factory() as session:
            return await ExecutionRunRepository(session).get_run(run_id)

    async def record_step(
        self,
        run_id: str,
        *,
        steps_executed: int,
        failed: bool,
        entry: dict[str, Any],
    ) -> None:
        """Record one step. A continuation left by a resumed wait is consumed here."""
        async with self._session_factory() as session:
            async with session.begin():
                await ExecutionRunRepository(session).record_progress(
                    run_id,
                    steps_executed=steps_executed,
                    step_failed=failed,
                    log_entry=entry,
                )
                await RunContinuationRepository(session).delete_for_run(run_id)

    async def suspend(
        self,
        run_id: str,
        *,
        steps_executed: int,
        entry: dict[str, Any],
        continuation: RunContinuation,
    ) -> None:
        """Record the wait step and persist where to resume, in one transaction."""
        async with self._session_factory() as session:
            async with session.begin():
                await ExecutionRunRepository(session).record_progress(
                    run_id,
                    steps_executed=steps_executed,
                    step_failed=False,
                    log_entry=entry,
                )
                await RunContinuationRepository(session).save(continuation)
        logger.info(
            "Run %s waiting until %s (resumes at step %d)",
            run_id,
            continuation.resume_at.isoformat(),
            continuation.next_step_index + 1,
        )

    async def claim_due(
        self, now: datetime, limit: int, lease: timedelta
    ) -> list[RunContinuation]:
        async with self._session_factory() as session:
            async with session.begin():
                return await RunContinuationRepository(session).claim_due(
                    now, limit, lease
                )

    async def finish(
        self,
        run_id: str,
        *,
        status: ExecutionRunStatus,
        error_message: str | None = None,
    ) -> ExecutionRunEntity | None:
        async with self._session_factory() as session:
            async with session.begin():
                run = await ExecutionRunRepository(session).finish(
                    run_id,
                    status=status,
                    completed_at=self._clock(),
                    error_message=error_message,
                )
                await RunContinuationRepository(session).delete_for_run(run_id)
        if run is not None:
            logger.info(
                "Run %s %s (%d/%d steps, %d failed, %sms)",
                run_id,
                run.status.value,
                run.steps_executed,
                run.steps_total,
                run.steps_failed,
                run.duration,
            )
        return run
