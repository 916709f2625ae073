"""Resume scheduler: wakes runs suspended by wait steps once they are due."""

from __future__ import annotations

import asyncio
from collections.abc import Callable
from datetime import datetime, timedelta

from autoflow.infrastructure.services.run_launcher import RunLauncher
from autoflow.infrastructure.services.run_recorder import ExecutionRunRecorder
from autoflow.shared.telemetry.logging import get_logger
from autoflow.shared.utils.datetime import utc_now

logger = get_logger(__name__)


class ResumeScheduler:
    """Polls persisted continuations and relaunches due runs at their next step.

    Continuations live in the database, so runs waiting across a restart
    are picked up by the first tick after startup.
    """

    def __init__(
        self,
        recorder: ExecutionRunRecorder,
        launcher: RunLauncher,
        *,
        poll_interval: float = 15.0,
        batch_size: int = 50,
        claim_lease: float = 900.0,
        clock: Callable[[], datetime] = utc_now,
    ) -> None:
        self._recorder = recorder
        self._launcher = launcher
        self._poll_interval = poll_interval
        self._batch_size = batch_size
        self._claim_lease = timedelta(seconds=claim_lease)
        self._clock = clock
        self._task: asyncio.Task[None] | None = None

    async def tick(self, now: datetime | None = None) -> list[str]:
        """Claim every continuation due at now and relaunch its run. Returns run ids."""
        now = now or self._clock()
        resumed: list[str] = []
        while True:
            due = await self._recorder.claim_due(now, self._batch_size, self._claim_lease)
            for continuation in due:
                logger.info(
                    "Resuming run %s at step %d",
                    continuation.run_id,
                    continuation.next_step_index + 1,
                )
                await self._launcher.launch(
                    continuation.run_id,
                    start_index=continuation.next_step_index,
                    context=continuation.context,
                )
                resumed.append(continuation.run_id)
            if len(due) < self._batch_size:
                return resumed

    async def run_forever(self) -> None:
        logger.info("Resume scheduler started (every %.1fs)", self._poll_interval)
        while True:
            try:
                await self.tick()
            except asyncio.CancelledError:
                raise
            except Exception:
                logger.exception("Resume scheduler tick failed; retrying next interval")
            await asyncio.sleep(self._poll_interval)

    def start(self) -> None:
        if self._task is None or self._task.done():
            self._task = asyncio.create_task(self.run_forever(), name="resume-scheduler")

    async def stop(self) -> None:
        if self._task is None:
            return
        self._task.cancel()
        try:
            await self._task
        except asyncio.CancelledError:
            pass
        self._task = None
        logger.info("Resume scheduler stopped")
