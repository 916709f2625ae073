"""Repository integration tests against a per-test SQLite database."""

from datetime import UTC, datetime, timedelta

import pytest

from autoflow.domain.entities import RunContinuation, StepEntity
from autoflow.infrastructure.persistence.repositories import (
    ExecutionRunRepository,
    RunContinuationRepository,
    WorkflowRepository,
)
from autoflow.shared.enums import ExecutionRunStatus

T0 = datetime(2026, 3, 2, 9, 0, 0, tzinfo=UTC)
STEPS = (
    StepEntity(id="s1", type="wait", label="Pause", config={"minutes": "30"}),
    StepEntity(id="s2", type="update_status", config={"targetStatus": "qualified"}),
)


async def _create_workflow(session_factory, name: str = "Welcome", **kwargs):
    async with session_factory() as session:
        async with session.begin():
            return await WorkflowRepository(session).create_workflow(
                org_id=kwargs.pop("org_id", "org1"),
                name=name,
                trigger_type=kwargs.pop("trigger_type", "lead_created"),
                steps=kwargs.pop("steps", STEPS),
                **kwargs,
            )


async def _create_run(session_factory, workflow, started_at: datetime = T0):
    async with session_factory() as session:
        async with session.begin():
            return await ExecutionRunRepository(session).create_run(
                org_id=workflow.org_id,
                workflow_id=workflow.id,
                trigger_event="lead_created",
                trigger_data={"lead": {"id": "l1"}},
                steps=workflow.steps,
                started_at=started_at,
            )


class TestWorkflowRepository:
    async def test_create_and_get_round_trips_steps(self, session_factory) -> None:
        created = await _create_workflow(session_factory, description="greets leads")
        assert created.id
        assert created.execution_count == 0
        assert created.last_executed_at is None
        assert created.created_at is not None and created.created_at.tzinfo is not None

        async with session_factory() as session:
            found = await WorkflowRepository(session).get_by_id_and_org(created.id, "org1")
        assert found == created
        assert found.steps == STEPS

    async def test_get_is_org_scoped(self, session_factory) -> None:
        created = await _create_workflow(session_factory)
        async with session_factory() as session:
            assert await WorkflowRepository(session).get_by_id_and_org(created.id, "org2") is None

    async def test_get_by_trigger_returns_active_matches_only(self, session_factory) -> None:
        match = await _create_workflow(session_factory, name="match")
        await _create_workflow(session_factory, name="inactive", is_active=False)
        await _create_workflow(session_factory, name="other trigger", trigger_type="scheduled")
        await _create_workflow(session_factory, name="other org", org_id="org2")

        async with session_factory() as session:
            found = await WorkflowRepository(session).get_by_trigger("org1", "lead_created")
        assert [w.id for w in found] == [match.id]

    async def test_list_filters_and_total(self, session_factory) -> None:
        await _create_workflow(session_factory, name="Welcome new leads")
        await _create_workflow(session_factory, name="50% off follow-up", trigger_type="scheduled")
        await _create_workflow(session_factory, name="Old welcome", is_active=False)

        async with session_factory() as session:
            repo = WorkflowRepository(session)
            items, total = await repo.list_for_org("org1", search="WELCOME")
            assert total == 2
            assert {w.name for w in items} == {"Welcome new leads", "Old welcome"}

            items, total = await repo.list_for_org("org1", search="%")
            assert [w.name for w in items] == ["50% off follow-up"]

            items, total = await repo.list_for_org("org1", is_active=False)
            assert [w.name for w in items] == ["Old welcome"]

            items, total = await repo.list_for_org("org1", trigger_type="scheduled")
            assert total == 1

            items, total = await repo.list_for_org("org1", skip=0, limit=2)
            assert len(items) == 2
            assert total == 3

    async def test_list_newest_update_first(self, session_factory) -> None:
        first = await _create_workflow(session_factory, name="first")
        second = await _create_workflow(session_factory, name="second")
        async with session_factory() as session:
            async with session.begin():
                await WorkflowRepository(session).set_active(first.id, "org1", False)
            items, _ = await WorkflowRepository(session).list_for_org("org1")
        assert [w.id for w in items] == [first.id, second.id]

    async def test_replace_definition_is_full_replace(self, session_factory) -> None:
        created = await _create_workflow(session_factory, description="old")
        new_steps = (StepEntity(id="s9", type="add_tag", config={"tag": "vip"}),)
        async with session_factory() as session:
            async with session.begin():
                updated = await WorkflowRepository(session).replace_definition(
                    created.id,
                    "org1",
                    name="Renamed",
                    description=None,
                    trigger_type="new_conversation",
                    steps=new_steps,
                )
        assert updated is not None
        assert (updated.name, updated.description, updated.trigger_type) == (
            "Renamed",
            None,
            "new_conversation",
        )
        assert updated.steps == new_steps
        assert updated.is_active is True

    async def test_increment_execution_is_cumulative(self, session_factory) -> None:
        created = await _create_workflow(session_factory)
        for minutes in (1, 2, 3):
            async with session_factory() as session:
                async with session.begin():
                    await WorkflowRepository(session).increment_execution(
                        created.id, T0 + timedelta(minutes=minutes)
                    )
        async with session_factory() as session:
            found = await WorkflowRepository(session).get_by_id_and_org(created.id, "org1")
        assert found.execution_count == 3
        assert found.last_executed_at == T0 + timedelta(minutes=3)
        assert found.updated_at == created.updated_at

    async def test_delete(self, session_factory) -> None:
        created = await _create_workflow(session_factory)
        async with session_factory() as session:
            async with session.begin():
                repo = WorkflowRepository(session)
                assert await repo.delete_workflow(created.id, "org2") is False
                assert await repo.delete_workflow(created.id, "org1") is True
            assert await WorkflowRepository(session).get_by_id_and_org(created.id, "org1") is None


class TestExecutionRunRepository:
    async def test_create_run_snapshots_steps(self, session_factory) -> None:
        workflow = await _create_workflow(session_factory)
        run = await _create_run(session_factory, workflow)
        assert run.status is ExecutionRunStatus.RUNNING
        assert run.steps_total == 2
        assert run.steps_snapshot == STEPS
        assert run.started_at == T0
        assert run.duration is None

    async def test_progress_then_finish(self, session_factory) -> None:
        workflow = await _create_workflow(session_factory)
        run = await _create_run(session_factory, workflow)
        async with session_factory() as session:
            async with session.begin():
                repo = ExecutionRunRepository(session)
                await repo.record_progress(
                    run.id, steps_executed=1, step_failed=True, log_entry={"index": 0}
                )
                await repo.record_progress(
                    run.id, steps_executed=2, step_failed=False, log_entry={"index": 1}
                )
                finished = await repo.finish(
                    run.id,
                    status=ExecutionRunStatus.FAILED,
                    completed_at=T0 + timedelta(seconds=90),
                    error_message="1 of 2 steps failed",
                )
        assert finished.status is ExecutionRunStatus.FAILED
        assert finished.steps_executed == 2
        assert finished.steps_failed == 1
        assert finished.duration == 90_000
        assert finished.step_log == [{"index": 0}, {"index": 1}]

    async def test_terminal_run_is_immutable(self, session_factory) -> None:
        workflow = await _create_workflow(session_factory)
        run = await _create_run(session_factory, workflow)
        async with session_factory() as session:
            async with session.begin():
                repo = ExecutionRunRepository(session)
                done = await repo.finish(
                    run.id, status=ExecutionRunStatus.COMPLETED, completed_at=T0
                )
                again = await repo.finish(
                    run.id, status=ExecutionRunStatus.FAILED, completed_at=T0 + timedelta(hours=1)
                )
                progressed = await repo.record_progress(
                    run.id, steps_executed=2, step_failed=True, log_entry={"late": True}
                )
        assert again == done
        assert progressed == done
        assert done.status is ExecutionRunStatus.COMPLETED

    async def test_finish_needs_terminal_status(self, session_factory) -> None:
        workflow = await _create_workflow(session_factory)
        run = await _create_run(session_factory, workflow)
        async with session_factory() as session:
            with pytest.raises(ValueError):
                await ExecutionRunRepository(session).finish(
                    run.id, status=ExecutionRunStatus.RUNNING, completed_at=T0
                )

    async def test_list_by_workflow_newest_first(self, session_factory) -> None:
        workflow = await _create_workflow(session_factory)
        older = await _create_run(session_factory, workflow, started_at=T0)
        newer = await _create_run(session_factory, workflow, started_at=T0 + timedelta(minutes=5))
        async with session_factory() as session:
            repo = ExecutionRunRepository(session)
            items, total = await repo.list_by_workflow(workflow.id, "org1")
            assert total == 2
            assert [r.id for r in items] == [newer.id, older.id]
            assert await repo.get_run(older.id, "org2") is None
            assert (await repo.get_run(older.id)).id == older.id


LEASE = timedelta(minutes=15)


async def _claim(session_factory, now: datetime, limit: int = 10) -> list[RunContinuation]:
    async with session_factory() as session:
        async with session.begin():
            return await RunContinuationRepository(session).claim_due(now, limit, LEASE)


async def _save_continuation(session_factory, *continuations: RunContinuation) -> None:
    async with session_factory() as session:
        async with session.begin():
            repo = RunContinuationRepository(session)
            for continuation in continuations:
                await repo.save(continuation)


class TestRunContinuationRepository:
    async def test_claim_due_returns_only_due(self, session_factory) -> None:
        workflow = await _create_workflow(session_factory)
        due = await _create_run(session_factory, workflow)
        later = await _create_run(session_factory, workflow)
        await _save_continuation(
            session_factory,
            RunContinuation(due.id, 1, T0 + timedelta(minutes=30), {"lead": {"id": "l1"}}),
            RunContinuation(later.id, 1, T0 + timedelta(hours=2), {}),
        )

        claimed = await _claim(session_factory, T0 + timedelta(minutes=31))

        assert [c.run_id for c in claimed] == [due.id]
        assert claimed[0].context == {"lead": {"id": "l1"}}
        assert claimed[0].next_step_index == 1
        assert [c.run_id for c in await _claim(session_factory, T0 + timedelta(hours=3))] == [
            later.id
        ]

    async def test_claimed_continuation_is_held_for_the_lease(self, session_factory) -> None:
        workflow = await _create_workflow(session_factory)
        run = await _create_run(session_factory, workflow)
        await _save_continuation(session_factory, RunContinuation(run.id, 1, T0, {}))

        assert len(await _claim(session_factory, T0)) == 1
        assert await _claim(session_factory, T0 + timedelta(minutes=14)) == []

        reclaimed = await _claim(session_factory, T0 + timedelta(minutes=15))
        assert [c.run_id for c in reclaimed] == [run.id]

    async def test_resave_clears_claim(self, session_factory) -> None:
        workflow = await _create_workflow(session_factory)
        run = await _create_run(session_factory, workflow)
        await _save_continuation(session_factory, RunContinuation(run.id, 1, T0, {}))
        await _claim(session_factory, T0)

        await _save_continuation(
            session_factory, RunContinuation(run.id, 3, T0 + timedelta(minutes=5), {"x": 1})
        )

        [claimed] = await _claim(session_factory, T0 + timedelta(minutes=5))
        assert claimed == RunContinuation(run.id, 3, T0 + timedelta(minutes=5), {"x": 1})

    async def test_delete_for_run(self, session_factory) -> None:
        workflow = await _create_workflow(session_factory)
        run = await _create_run(session_factory, workflow)
        await _save_continuation(session_factory, RunContinuation(run.id, 1, T0, {}))

        async with session_factory() as session:
            async with session.begin():
                repo = RunContinuationRepository(session)
                assert await repo.delete_for_run(run.id) is True
                assert await repo.delete_for_run(run.id) is False

        assert await _claim(session_factory, T0 + timedelta(days=1)) == []


class TestWorkflowDeleteCascade:
    async def test_delete_removes_runs_and_continuations(self, session_factory) -> None:
        workflow = await _create_workflow(session_factory)
        other = await _create_workflow(session_factory, name="Other")
        run = await _create_run(session_factory, workflow)
        kept = await _create_run(session_factory, other)
        await _save_continuation(
            session_factory,
            RunContinuation(run.id, 1, T0, {}),
            RunContinuation(kept.id, 1, T0, {}),
        )

        async with session_factory() as session:
            async with session.begin():
                assert await WorkflowRepository(session).delete_workflow(workflow.id, "org1")

        async with session_factory() as session:
            repo = ExecutionRunRepository(session)
            assert await repo.get_run(run.id) is None
            assert (await repo.get_run(kept.id)).id == kept.id
        assert [c.run_id for c in await _claim(session_factory, T0)] == [kept.id]
