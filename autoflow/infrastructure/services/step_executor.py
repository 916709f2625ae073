"""Step executor: interprets a run's step snapshot in order.

Handles condition and wait itself and dispatches every other step type to
the action-handler registry. Progress is recorded after each step. A wait
step persists a continuation and returns; the resume scheduler calls
execute() again with start_index set to the step after the wait.
"""

from __future__ import annotations

from collections.abc import Callable
from datetime import datetime, timedelta
from typing import Any

from autoflow.application.dtos.execution import ActionResult, StepContext
from autoflow.application.dtos.step_config import WaitConfig, parse_step_config
from autoflow.application.services.condition_evaluator import ConditionEvaluator
from autoflow.domain.entities import ExecutionRunEntity, RunContinuation, StepEntity
from autoflow.domain.enums import StepType
from autoflow.domain.exceptions import (
    ActionExecutionError,
    ConditionSyntaxError,
    RunFatalError,
)
from autoflow.infrastructure.services.action_handlers import ActionHandlerRegistry
from autoflow.infrastructure.services.run_recorder import ExecutionRunRecorder
from autoflow.shared.enums import ExecutionRunStatus, StepOutcome
from autoflow.shared.telemetry.logging import get_logger
from autoflow.shared.utils.datetime import utc_now

logger = get_logger(__name__)


def _log_entry(
    index: int,
    step: StepEntity,
    outcome: StepOutcome,
    at: datetime,
    *,
    error: str | None = None,
    detail: dict[str, Any] | None = None,
) -> dict[str, Any]:
    entry: dict[str, Any] = {
        "index": index,
        "step_id": step.id,
        "type": step.type,
        "label": step.label,
        "outcome": outcome.value,
        "at": at.isoformat(),
    }
    if error:
        entry["error"] = error
    if detail:
        entry["detail"] = detail
    return entry


def _failure_summary(errors: list[str], total: int) -> str:
    summary = f"{len(errors)} of {total} steps failed"
    return f"{summary}; last error: {errors[-1]}" if errors else summary


class StepExecutor:
    """Runs the steps of one execution run, strictly one after another."""

    def __init__(
        self,
        recorder: ExecutionRunRecorder,
        registry: ActionHandlerRegistry,
        evaluator: ConditionEvaluator | None = None,
        clock: Callable[[], datetime] = utc_now,
    ) -> None:
        self._recorder = recorder
        self._registry = registry
        self._evaluator = evaluator or ConditionEvaluator()
        self._clock = clock

    async def execute(
        self,
        run_id: str,
        *,
        start_index: int = 0,
        context: dict[str, Any] | None = None,
    ) -> ExecutionRunStatus | None:
        """Execute the run from start_index until it finishes or suspends.

        context defaults to the run's trigger data. Returns the terminal
        status, or None when the run suspended on a wait step (or was
        missing or already terminal).
        """
        run = await self._recorder.get_run(run_id)
        if run is None:
            logger.warning("Run %s not found; nothing to execute", run_id)
            return None
        if run.is_terminal:
            logger.info("Run %s already %s; not executing", run_id, run.status.value)
            return None
        data = context if context is not None else dict(run.trigger_data)
        try:
            return await self._run_steps(run, start_index, data)
        except Exception as e:
            logger.exception("Run %s aborted by executor fault", run_id)
            await self._recorder.finish(
                run_id, status=ExecutionRunStatus.FAILED, error_message=str(e)
            )
            return ExecutionRunStatus.FAILED

    async def _run_steps(
        self, run: ExecutionRunEntity, start_index: int, data: dict[str, Any]
    ) -> ExecutionRunStatus | None:
        steps = run.steps_snapshot
        if start_index < 0 or start_index > len(steps):
            raise RunFatalError(run.id, f"resume index {start_index} out of range")
        context = StepContext(
            org_id=run.org_id, run_id=run.id, workflow_id=run.workflow_id, data=data
        )
        errors = [
            str(entry.get("error") or "step failed")
            for entry in run.step_log
            if entry.get("outcome") == StepOutcome.FAILED.value
        ]

        for index in range(start_index, len(steps)):
            step = steps[index]
            try:
                step_type = StepType(step.type)
            except ValueError as e:
                raise RunFatalError(run.id, f"unknown step type {step.type!r}") from e

            if step_type is StepType.CONDITION:
                passed, error = self._evaluate_condition(step, data)
                if error:
                    errors.append(error)
                if passed:
                    await self._recorder.record_step(
                        run.id,
                        steps_executed=index + 1,
                        failed=False,
                        entry=_log_entry(index, step, StepOutcome.SUCCESS, self._clock()),
                    )
                    continue
                await self._recorder.record_step(
                    run.id,
                    steps_executed=index + 1,
                    failed=error is not None,
                    entry=_log_entry(
                        index,
                        step,
                        StepOutcome.FAILED if error else StepOutcome.SHORT_CIRCUIT,
                        self._clock(),
                        error=error,
                    ),
                )
                logger.info(
                    "Run %s stopped at condition step %d of %d",
                    run.id,
                    index + 1,
                    len(steps),
                )
                return await self._finish(run, errors)

            if step_type is StepType.WAIT:
                if await self._wait(run, index, step, data, errors):
                    return None
                continue

            failed, error, detail = await self._dispatch(step_type, context, step.config)
            if failed:
                errors.append(error or "step failed")
                logger.warning(
                    "Run %s step %d (%s) failed: %s", run.id, index + 1, step.type, error
                )
            await self._recorder.record_step(
                run.id,
                steps_executed=index + 1,
                failed=failed,
                entry=_log_entry(
                    index,
                    step,
                    StepOutcome.FAILED if failed else StepOutcome.SUCCESS,
                    self._clock(),
                    error=error,
                    detail=detail,
                ),
            )

        return await self._finish(run, errors)

    def _evaluate_condition(
        self, step: StepEntity, data: dict[str, Any]
    ) -> tuple[bool, str | None]:
        """Return (passed, error). A condition that cannot be evaluated does not pass."""
        try:
            return self._evaluator.evaluate(data, step.config), None
        except (ActionExecutionError, ConditionSyntaxError) as e:
            logger.warning("Condition step %s could not be evaluated: %s", step.id, e.message)
            return False, e.message

    async def _wait(
        self,
        run: ExecutionRunEntity,
        index: int,
        step: StepEntity,
        data: dict[str, Any],
        errors: list[str],
    ) -> bool:
        """Suspend the run for the configured minutes. Return True if it suspended."""
        now = self._clock()
        try:
            cfg = parse_step_config(WaitConfig, StepType.WAIT, step.config)
        except ActionExecutionError as e:
            errors.append(e.message)
            await self._recorder.record_step(
                run.id,
                steps_executed=index + 1,
                failed=True,
                entry=_log_entry(index, step, StepOutcome.FAILED, now, error=e.message),
            )
            return False
        if cfg.minutes <= 0:
            await self._recorder.record_step(
                run.id,
                steps_executed=index + 1,
                failed=False,
                entry=_log_entry(index, step, StepOutcome.SUCCESS, now),
            )
            return False
        resume_at = now + timedelta(minutes=cfg.minutes)
        await self._recorder.suspend(
            run.id,
            steps_executed=index + 1,
            entry=_log_entry(
                index,
                step,
                StepOutcome.SUSPENDED,
                now,
                detail={"resume_at": resume_at.isoformat()},
            ),
            continuation=RunContinuation(
                run_id=run.id,
                next_step_index=index + 1,
                resume_at=resume_at,
                context=data,
            ),
        )
        return True

    async def _dispatch(
        self, step_type: StepType, context: StepContext, config: dict[str, Any]
    ) -> tuple[bool, str | None, dict[str, Any]]:
        """Call the handler; return (failed, error, detail). Handler errors stay in the step."""
        handler = self._registry.get(step_type)
        if handler is None:
            raise RunFatalError(context.run_id, f"no handler registered for {step_type.value}")
        try:
            result: ActionResult = await handler.execute(context, config)
        except ActionExecutionError as e:
            return True, e.message, {}
        except Exception as e:
            logger.exception("Handler for %s raised", step_type.value)
            return True, f"{step_type.value} failed: {e}", {}
        if not result.success:
            return True, result.error or f"{step_type.value} failed", dict(result.detail)
        return False, None, dict(result.detail)

    async def _finish(
        self, run: ExecutionRunEntity, errors: list[str]
    ) -> ExecutionRunStatus:
        if errors:
            await self._recorder.finish(
                run.id,
                status=ExecutionRunStatus.FAILED,
                error_message=_failure_summary(errors, run.steps_total),
            )
            return ExecutionRunStatus.FAILED
        await self._recorder.finish(run.id, status=ExecutionRunStatus.COMPLETED)
        return ExecutionRunStatus.COMPLETED
