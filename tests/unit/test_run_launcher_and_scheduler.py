"""RunLauncher task handling, ResumeScheduler batching, and step template rendering."""

import asyncio
from datetime import UTC, datetime, timedelta
from unittest.mock import AsyncMock

import pytest

from autoflow.domain.entities import RunContinuation
from autoflow.domain.exceptions import ActionExecutionError
from autoflow.infrastructure.services.resume_scheduler import ResumeScheduler
from autoflow.infrastructure.services.run_launcher import RunLauncher
from autoflow.infrastructure.services.template_renderer import StepTemplateRenderer

T0 = datetime(2026, 3, 2, 9, 0, 0, tzinfo=UTC)


class TestRunLauncher:
    async def test_inline_mode_awaits_executor(self) -> None:
        executor = AsyncMock()
        launcher = RunLauncher(executor, background=False)

        await launcher.launch("run1", start_index=2, context={"lead": {"id": "l1"}})

        executor.execute.assert_awaited_once_with(
            "run1", start_index=2, context={"lead": {"id": "l1"}}
        )
        assert launcher.in_flight == 0

    async def test_background_mode_tracks_tasks(self) -> None:
        release = asyncio.Event()
        executor = AsyncMock()

        async def _execute(run_id, *, start_index=0, context=None):
            await release.wait()

        executor.execute = AsyncMock(side_effect=_execute)
        launcher = RunLauncher(executor)

        await launcher.launch("run1")
        await launcher.launch("run2")
        assert launcher.in_flight == 2

        release.set()
        await launcher.wait_idle()
        assert launcher.in_flight == 0
        assert executor.execute.await_count == 2

    async def test_task_error_is_logged_not_raised(self) -> None:
        executor = AsyncMock()
        executor.execute = AsyncMock(side_effect=RuntimeError("boom"))
        launcher = RunLauncher(executor)

        await launcher.launch("run1")
        await launcher.wait_idle()

        assert launcher.in_flight == 0

    async def test_shutdown_cancels_in_flight(self) -> None:
        executor = AsyncMock()

        async def _execute(run_id, *, start_index=0, context=None):
            await asyncio.sleep(3600)

        executor.execute = AsyncMock(side_effect=_execute)
        launcher = RunLauncher(executor)
        await launcher.launch("run1")
        await asyncio.sleep(0)

        await launcher.shutdown()

        assert launcher.in_flight == 0

    async def test_shutdown_drains_runs_within_grace(self) -> None:
        finished: list[str] = []
        executor = AsyncMock()

        async def _execute(run_id, *, start_index=0, context=None):
            await asyncio.sleep(0.01 if run_id == "quick" else 3600)
            finished.append(run_id)

        executor.execute = AsyncMock(side_effect=_execute)
        launcher = RunLauncher(executor)
        await launcher.launch("quick")
        await launcher.launch("stuck")

        await launcher.shutdown(grace=0.5)

        assert finished == ["quick"]
        assert launcher.in_flight == 0


class TestResumeScheduler:
    async def test_tick_drains_in_batches(self) -> None:
        batches = [
            [RunContinuation(f"run{i}", 1, T0, {"i": i}) for i in range(2)],
            [RunContinuation("run2", 3, T0, {})],
        ]
        recorder = AsyncMock()
        recorder.claim_due = AsyncMock(side_effect=batches)
        launcher = AsyncMock()
        scheduler = ResumeScheduler(recorder, launcher, batch_size=2, clock=lambda: T0)

        resumed = await scheduler.tick()

        assert resumed == ["run0", "run1", "run2"]
        assert recorder.claim_due.await_count == 2
        launcher.launch.assert_any_await("run2", start_index=3, context={})

    async def test_tick_uses_given_time(self) -> None:
        recorder = AsyncMock()
        recorder.claim_due = AsyncMock(return_value=[])
        scheduler = ResumeScheduler(recorder, AsyncMock(), batch_size=10, clock=lambda: T0)

        assert await scheduler.tick(T0 + timedelta(hours=1)) == []
        recorder.claim_due.assert_awaited_once_with(
            T0 + timedelta(hours=1), 10, timedelta(seconds=900)
        )

    async def test_start_and_stop(self) -> None:
        recorder = AsyncMock()
        recorder.claim_due = AsyncMock(return_value=[])
        scheduler = ResumeScheduler(recorder, AsyncMock(), poll_interval=0.01)

        scheduler.start()
        await asyncio.sleep(0.05)
        await scheduler.stop()

        assert recorder.claim_due.await_count >= 1


class TestStepTemplateRenderer:
    def test_renders_nested_paths(self) -> None:
        renderer = StepTemplateRenderer()
        assert (
            renderer.render("Hi {{ lead.name }}", {"lead": {"name": "Ada"}}, step_type="send_message")
            == "Hi Ada"
        )

    def test_plain_text_passes_through(self) -> None:
        assert StepTemplateRenderer().render("Hello", {}, step_type="send_message") == "Hello"

    def test_missing_path_renders_empty(self) -> None:
        renderer = StepTemplateRenderer()
        assert renderer.render("[{{ a.b.c }}]", {}, step_type="send_message") == "[]"

    def test_sandbox_blocks_attribute_escape(self) -> None:
        renderer = StepTemplateRenderer()
        with pytest.raises(ActionExecutionError):
            renderer.render(
                "{{ ''.__class__.__mro__[1].__subclasses__() }}", {}, step_type="send_message"
            )

    def test_cache_is_bounded(self) -> None:
        renderer = StepTemplateRenderer(max_cached=2)
        for i in range(5):
            assert renderer.render(f"{{{{ {i} }}}}", {}, step_type="send_message") == str(i)
        assert len(renderer._compiled) <= 2
