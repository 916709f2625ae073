"""Wiring of the execution engine: recorder, executor, launcher, matcher, scheduler."""

from __future__ import annotations

from collections.abc import Callable
from dataclasses import dataclass
from datetime import datetime

from sqlalchemy.ext.asyncio import AsyncSession, async_sessionmaker

from autoflow.application.interfaces.services import (
    IAssignmentService,
    IEmailService,
    IEntityService,
    IGenerationService,
    INotificationService,
)
from autoflow.application.services.condition_evaluator import ConditionEvaluator
from autoflow.core.config import Settings, get_settings
from autoflow.infrastructure.services.action_handlers import (
    ActionHandlerRegistry,
    build_action_registry,
)
from autoflow.infrastructure.services.collaborators import (
    LogOnlyAssignmentService,
    LogOnlyEmailService,
    LogOnlyEntityService,
    LogOnlyNotificationService,
    UnconfiguredGenerationService,
)
from autoflow.infrastructure.services.resume_scheduler import ResumeScheduler
from autoflow.infrastructure.services.run_launcher import RunLauncher
from autoflow.infrastructure.services.run_recorder import ExecutionRunRecorder
from autoflow.infrastructure.services.step_executor import StepExecutor
from autoflow.infrastructure.services.trigger_matcher import TriggerMatcher
from autoflow.shared.utils.datetime import utc_now


@dataclass
class WorkflowEngine:
    """Engine components sharing one session factory. Stored on app.state.engine."""

    recorder: ExecutionRunRecorder
    registry: ActionHandlerRegistry
    executor: StepExecutor
    launcher: RunLauncher
    matcher: TriggerMatcher
    scheduler: ResumeScheduler
    shutdown_grace: float = 0.0

    def start(self) -> None:
        self.scheduler.start()

    async def shutdown(self) -> None:
        await self.scheduler.stop()
        await self.launcher.shutdown(self.shutdown_grace)


def build_engine(
    session_factory: async_sessionmaker[AsyncSession],
    *,
    settings: Settings | None = None,
    notifier: INotificationService | None = None,
    mailer: IEmailService | None = None,
    assigner: IAssignmentService | None = None,
    entities: IEntityService | None = None,
    generator: IGenerationService | None = None,
    clock: Callable[[], datetime] = utc_now,
) -> WorkflowEngine:
    """Build the engine. Collaborators not supplied fall back to the log-only ones."""
    settings = settings or get_settings()
    registry = build_action_registry(
        notifier=notifier or LogOnlyNotificationService(),
        mailer=mailer or LogOnlyEmailService(),
        assigner=assigner or LogOnlyAssignmentService(),
        entities=entities or LogOnlyEntityService(),
        generator=generator or UnconfiguredGenerationService(),
    )
    recorder = ExecutionRunRecorder(session_factory, clock=clock)
    executor = StepExecutor(recorder, registry, ConditionEvaluator(), clock=clock)
    launcher = RunLauncher(executor, background=settings.run_in_background)
    matcher = TriggerMatcher(
        session_factory,
        recorder,
        launcher,
        manual_requires_active=settings.manual_execute_requires_active,
    )
    scheduler = ResumeScheduler(
        recorder,
        launcher,
        poll_interval=settings.resume_poll_interval_seconds,
        batch_size=settings.resume_batch_size,
        claim_lease=settings.resume_claim_lease_seconds,
        clock=clock,
    )
    return WorkflowEngine(
        recorder=recorder,
        registry=registry,
        executor=executor,
        launcher=launcher,
        matcher=matcher,
        scheduler=scheduler,
        shutdown_grace=settings.shutdown_grace_seconds,
    )
