"""Tests for workflow, task and audit log repositories."""

from uuid import uuid4

import pytest

from softagon.db.models import AuditLog, Task, Workflow
from softagon.repositories import (
    AuditLogRepository,
    ImmutableRecordError,
    TaskRepository,
    WorkflowRepository,
)
from tests.factories import make_result, make_session


def create_task(**values) -> Task:
    return Task(
        task_id=values.pop("task_id", uuid4()),
        workflow_id=values.pop("workflow_id", uuid4()),
        title=values.pop("title", "Review contract"),
        status=values.pop("status", "pending"),
        **values,
    )


class TestWorkflowRepository:
    @pytest.mark.asyncio
    async def test_create_with_explicit_status(self):
        session = make_session()

        workflow = await WorkflowRepository(session).create(name="Onboarding", status="draft")

        assert isinstance(workflow, Workflow)
        assert workflow.status == "draft"

    @pytest.mark.asyncio
    async def test_list_by_status(self):
        workflows = [Workflow(workflow_id=uuid4(), name="A", status="active")]
        session = make_session(make_result(scalars=workflows))

        assert list(await WorkflowRepository(session).list_by_status("active")) == workflows


class TestTaskRepository:
    """Tests for task assignment and status changes."""

    @pytest.mark.asyncio
    async def test_assign(self):
        task = create_task()
        user_id = uuid4()
        session = make_session(get=task)

        await TaskRepository(session).assign(task.task_id, user_id)

        assert task.assigned_to_id == user_id

    @pytest.mark.asyncio
    async def test_unassign(self):
        task = create_task(assigned_to_id=uuid4())
        session = make_session(get=task)

        await TaskRepository(session).assign(task.task_id, None)

        assert task.assigned_to_id is None

    @pytest.mark.asyncio
    async def test_set_status_accepts_any_value(self):
        task = create_task()
        session = make_session(get=task)

        await TaskRepository(session).set_status(task.task_id, "waiting-for-legal")

        assert task.status == "waiting-for-legal"

    @pytest.mark.asyncio
    async def test_list_for_workflow(self):
        tasks = [create_task(), create_task()]
        session = make_session(make_result(scalars=tasks))

        assert list(await TaskRepository(session).list_for_workflow(uuid4())) == tasks


class TestAuditLogRepository:
    """The audit trail is append-only."""

    @pytest.mark.asyncio
    async def test_append(self):
        session = make_session()
        user_id, task_id = uuid4(), uuid4()

        entry = await AuditLogRepository(session).append(
            "task.completed", user_id, task_id=task_id, details={"comment": "done"}
        )

        assert isinstance(entry, AuditLog)
        assert entry.action == "task.completed"
        assert entry.user_id == user_id
        assert entry.task_id == task_id
        assert entry.workflow_id is None
        assert entry.details == {"comment": "done"}
        session.add.assert_called_once_with(entry)

    @pytest.mark.asyncio
    async def test_create_is_append(self):
        session = make_session()
        entry = await AuditLogRepository(session).create(action="workflow.started", user_id=uuid4())
        assert entry.action == "workflow.started"

    @pytest.mark.asyncio
    async def test_update_rejected(self):
        with pytest.raises(ImmutableRecordError):
            await AuditLogRepository(make_session()).update(uuid4(), action="tampered")

    @pytest.mark.asyncio
    async def test_delete_rejected(self):
        session = make_session()
        with pytest.raises(ImmutableRecordError):
            await AuditLogRepository(session).delete(uuid4())
        session.execute.assert_not_awaited()

    @pytest.mark.asyncio
    async def test_list_for_task_is_chronological(self):
        from sqlalchemy.dialects import postgresql

        session = make_session(make_result(scalars=[]))
        await AuditLogRepository(session).list_for_task(uuid4())

        sql = str(session.execute.await_args.args[0].compile(dialect=postgresql.dialect()))
        assert "ORDER BY audit_logs.timestamp" in sql
        assert "LIMIT" not in sql
