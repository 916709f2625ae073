"""Trigger matcher: turns domain events and manual requests into runs."""

from __future__ import annotations

import asyncio
from typing import Any

from sqlalchemy.ext.asyncio import AsyncSession, async_sessionmaker

from autoflow.application.dtos.execution import ExecutionAck
from autoflow.domain.entities import DomainEvent, ExecutionRunEntity
from autoflow.domain.enums import TriggerType
from autoflow.domain.exceptions import ResourceNotFoundException, WorkflowInactiveException
from autoflow.infrastructure.persistence.repositories.workflow_repo import WorkflowRepository
from autoflow.infrastructure.services.run_launcher import RunLauncher
from autoflow.infrastructure.services.run_recorder import ExecutionRunRecorder
from autoflow.shared.telemetry.logging import get_logger

logger = get_logger(__name__)

MANUAL_TRIGGER_EVENT = TriggerType.MANUAL.value


class TriggerMatcher:
    """Matches events to active workflows by trigger type and starts one run per match.

    Runs are created under a lock so they are recorded in event arrival
    order; execution is launched after the lock is released, so runs may
    finish in any order.
    """

    def __init__(
        self,
        session_factory: async_sessionmaker[AsyncSession],
        recorder: ExecutionRunRecorder,
        launcher: RunLauncher,
        *,
        manual_requires_active: bool = False,
    ) -> None:
        self._session_factory = session_factory
        self._recorder = recorder
        self._launcher = launcher
        self._manual_requires_active = manual_requires_active
        self._lock = asyncio.Lock()

    async def handle_event(self, event: DomainEvent) -> list[str]:
        """Start a run for every active workflow of the org triggered by event.type.

        Returns the ids of the runs started; an unmatched or unknown event
        returns an empty list.
        """
        if event.type not in TriggerType.values():
            logger.info("Dropping event of unknown type %r (org %s)", event.type, event.org_id)
            return []
        if event.type == MANUAL_TRIGGER_EVENT:
            logger.info(
                "Dropping manual event for org %s; manual runs start via execute_now",
                event.org_id,
            )
            return []

        runs: list[ExecutionRunEntity] = []
        async with self._lock:
            async with self._session_factory() as session:
                workflows = await WorkflowRepository(session).get_by_trigger(
                    event.org_id, event.type
                )
            if not workflows:
                logger.info(
                    "No active workflow for event %s in org %s", event.type, event.org_id
                )
                return []
            for workflow in workflows:
                runs.append(
                    await self._recorder.start_run(
                        workflow,
                        trigger_event=event.type,
                        trigger_data=dict(event.payload),
                    )
                )

        for run in runs:
            await self._launcher.launch(run.id)
        return [run.id for run in runs]

    async def execute_now(
        self,
        org_id: str,
        workflow_id: str,
        payload: dict[str, Any] | None = None,
    ) -> ExecutionAck:
        """Start exactly one run of the workflow, bypassing event matching.

        The outcome is visible later in run history.

        Raises:
            ResourceNotFoundException: No such workflow in the org.
            WorkflowInactiveException: Workflow is inactive and manual
                execution is configured to require an active workflow.
        """
        async with self._session_factory() as session:
            workflow = await WorkflowRepository(session).get_by_id_and_org(
                workflow_id, org_id
            )
        if workflow is None:
            raise ResourceNotFoundException("workflow", workflow_id)
        if self._manual_requires_active and not workflow.is_active:
            raise WorkflowInactiveException(workflow_id)

        trigger_data = {
            **(payload or {}),
            "workflow": {"id": workflow.id, "name": workflow.name},
            "manual": True,
        }
        run = await self._recorder.start_run(
            workflow, trigger_event=MANUAL_TRIGGER_EVENT, trigger_data=trigger_data
        )
        await self._launcher.launch(run.id)
        return ExecutionAck(workflow_id=workflow.id, run_id=run.id)
