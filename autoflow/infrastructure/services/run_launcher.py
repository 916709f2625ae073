"""Run launcher: one asyncio task per run, or inline execution for tests and scripts."""

from __future__ import annotations

import asyncio
from typing import Any

from autoflow.infrastructure.services.step_executor import StepExecutor
from autoflow.shared.telemetry.logging import get_logger

logger = get_logger(__name__)


class RunLauncher:
    """Starts step execution for runs.

    In background mode each run gets its own task, so callers (event
    listener, HTTP handlers) return as soon as the run record exists. Runs
    execute concurrently with each other; steps within a run never do.
    """

    def __init__(self, executor: StepExecutor, *, background: bool = True) -> None:
        self._executor = executor
        self._background = background
        self._tasks: set[asyncio.Task[Any]] = set()

    @property
    def in_flight(self) -> int:
        return len(self._tasks)

    async def launch(
        self,
        run_id: str,
        *,
        start_index: int = 0,
        context: dict[str, Any] | None = None,
    ) -> None:
        if not self._background:
            await self._executor.execute(run_id, start_index=start_index, context=context)
            return
        task = asyncio.create_task(
            self._executor.execute(run_id, start_index=start_index, context=context),
            name=f"run-{run_id}",
        )
        self._tasks.add(task)
        task.add_done_callback(self._on_done)

    def _on_done(self, task: asyncio.Task[Any]) -> None:
        self._tasks.discard(task)
        if task.cancelled():
            logger.warning("Task %s cancelled before its run finished", task.get_name())
            return
        exc = task.exception()
        if exc is not None:
            logger.error(
                "Task %s failed outside the executor: %s",
                task.get_name(),
                exc,
                exc_info=exc,
            )

    async def wait_idle(self) -> None:
        """Wait until every launched run has finished or suspended."""
        while self._tasks:
            await asyncio.gather(*list(self._tasks), return_exceptions=True)

    async def shutdown(self, grace: float = 0.0) -> None:
        """Give in-flight runs grace seconds to finish or suspend, then cancel the rest.

        A cancelled resumed run keeps its claimed continuation, so a later
        scheduler picks it up again once the claim lease expires.
        """
        tasks = list(self._tasks)
        if not tasks:
            return
        pending: set[asyncio.Task[Any]] = set(tasks)
        if grace > 0:
            _, pending = await asyncio.wait(tasks, timeout=grace)
        for task in pending:
            task.cancel()
        if pending:
            await asyncio.gather(*pending, return_exceptions=True)
        logger.info(
            "Launcher stopped: %d runs drained, %d cancelled",
            len(tasks) - len(pending),
            len(pending),
        )
