"""Workflow (BPM) repositories: workflows, tasks and the audit log."""

from __future__ import annotations

import logging
from typing import TYPE_CHECKING, Any

from sqlalchemy import select

from softagon.db.models import AuditLog, Task, Workflow
from softagon.repositories.base import ImmutableRecordError, Repository

if TYPE_CHECKING:
    from collections.abc import Sequence
    from uuid import UUID

logger = logging.getLogger(__name__)


class WorkflowRepository(Repository[Workflow]):
    model = Workflow

    async def list_by_status(self, status: str) -> Sequence[Workflow]:
        return await self.list(status=status, limit=None)


class TaskRepository(Repository[Task]):
    """Tasks within workflows.

    Status values are free text; transition rules live with the caller.
    """

    model = Task

    async def list_for_workflow(self, workflow_id: UUID) -> Sequence[Task]:
        query = select(Task).where(Task.workflow_id == workflow_id).order_by(Task.created_at)
        result = await self._session.execute(query)
        return result.scalars().all()

    async def list_for_assignee(
        self,
        user_id: UUID,
        *,
        status: str | None = None,
    ) -> Sequence[Task]:
        """Tasks assigned to a user, soonest due first."""
        query = select(Task).where(Task.assigned_to_id == user_id)
        if status is not None:
            query = query.where(Task.status == status)
        query = query.order_by(Task.due_date.asc().nulls_last(), Task.created_at)
        result = await self._session.execute(query)
        return result.scalars().all()

    async def assign(self, task_id: UUID, user_id: UUID | None) -> Task:
        """Assign a task to a user, or unassign it with None."""
        return await self.update(task_id, assigned_to_id=user_id)

    async def set_status(self, task_id: UUID, status: str) -> Task:
        return await self.update(task_id, status=status)


class AuditLogRepository(Repository[AuditLog]):
    """Append-only audit trail of actions on tasks and workflows."""

    model = AuditLog
    guards_model = True

    async def append(
        self,
        action: str,
        user_id: UUID,
        *,
        task_id: UUID | None = None,
        workflow_id: UUID | None = None,
        details: dict[str, Any] | None = None,
    ) -> AuditLog:
        """Record an action.

        Args:
            action: Short action name (e.g. "task.completed").
            user_id: User who performed the action.
            task_id: Task acted on, if any.
            workflow_id: Workflow acted on, if any.
            details: Optional structured context.

        Returns:
            The new AuditLog entry, with its server-assigned timestamp.
        """
        return await super().create(
            action=action,
            user_id=user_id,
            task_id=task_id,
            workflow_id=workflow_id,
            details=details,
        )

    async def create(self, **values: Any) -> AuditLog:
        """Alias of append()."""
        return await self.append(**values)

    def _default_order(self) -> Any:
        return AuditLog.timestamp

    async def list_for_task(self, task_id: UUID) -> Sequence[AuditLog]:
        return await self.list(task_id=task_id, limit=None)

    async def list_for_workflow(self, workflow_id: UUID) -> Sequence[AuditLog]:
        return await self.list(workflow_id=workflow_id, limit=None)

    async def list_for_user(self, user_id: UUID) -> Sequence[AuditLog]:
        return await self.list(user_id=user_id, limit=None)

    async def update(self, record_id: Any, **values: Any) -> AuditLog:
        raise ImmutableRecordError(self.model_name, record_id, "update")

    async def delete(self, record_id: Any) -> bool:
        raise ImmutableRecordError(self.model_name, record_id, "delete")
