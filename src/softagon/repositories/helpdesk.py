"""Helpdesk repositories: lookup tables and tickets."""

from __future__ import annotations

import logging
from datetime import UTC, datetime, timedelta
from typing import TYPE_CHECKING

from sqlalchemy import delete, select

from softagon.db.models import (
    CustomField,
    HelpTopic,
    SLAPlan,
    Ticket,
    TicketAttachment,
    TicketCollaborator,
    TicketCustomField,
    TicketPriority,
    TicketStatus,
    TicketThread,
)
from softagon.repositories.base import RecordNotFoundError, Repository

if TYPE_CHECKING:
    from collections.abc import Sequence
    from uuid import UUID

    from sqlalchemy.ext.asyncio import AsyncSession

logger = logging.getLogger(__name__)


class InvalidTicketStateError(Exception):
    """Raised when a ticket is not in a state that allows the operation."""

    def __init__(self, ticket_id: UUID, operation: str, reason: str) -> None:
        self.ticket_id = ticket_id
        self.operation = operation
        self.reason = reason
        super().__init__(f"Cannot {operation} ticket {ticket_id}: {reason}")


class HelpdeskRepository:
    """Lookup tables that classify tickets.

    Each table has a generic repository attribute (`statuses`, `priorities`,
    `help_topics`, `sla_plans`, `custom_fields`) plus a few lookups.
    """

    def __init__(self, session: AsyncSession) -> None:
        self._session = session
        self.statuses: Repository[TicketStatus] = Repository(session, TicketStatus)
        self.priorities: Repository[TicketPriority] = Repository(session, TicketPriority)
        self.help_topics: Repository[HelpTopic] = Repository(session, HelpTopic)
        self.sla_plans: Repository[SLAPlan] = Repository(session, SLAPlan)
        self.custom_fields: Repository[CustomField] = Repository(session, CustomField)

    async def get_status_by_name(self, name: str) -> TicketStatus | None:
        result = await self._session.execute(select(TicketStatus).where(TicketStatus.name == name))
        return result.scalar_one_or_none()

    async def list_priorities(self) -> Sequence[TicketPriority]:
        """Priorities, most urgent first."""
        result = await self._session.execute(
            select(TicketPriority).order_by(TicketPriority.urgency.desc(), TicketPriority.name)
        )
        return result.scalars().all()

    async def list_active_topics(self, department_id: UUID | None = None) -> Sequence[HelpTopic]:
        query = select(HelpTopic).where(HelpTopic.is_active.is_(True))
        if department_id is not None:
            query = query.where(HelpTopic.department_id == department_id)
        result = await self._session.execute(query.order_by(HelpTopic.name))
        return result.scalars().all()

    async def list_required_fields(self) -> Sequence[CustomField]:
        result = await self._session.execute(
            select(CustomField).where(CustomField.required.is_(True)).order_by(CustomField.name)
        )
        return result.scalars().all()


class TicketRepository(Repository[Ticket]):
    """Tickets with their conversation, collaborators and custom field values."""

    model = Ticket

    async def open_ticket(
        self,
        *,
        subject: str,
        description: str,
        created_by_id: UUID,
        department_id: UUID,
        help_topic_id: int,
        status_id: int,
        priority_id: int,
        sla_plan_id: int | None = None,
        assigned_to_id: UUID | None = None,
        due_date: datetime | None = None,
    ) -> Ticket:
        """Open a ticket.

        When no due date is given and an SLA plan is, the ticket is due
        grace_period_hours from now.

        Raises:
            RecordNotFoundError: If the SLA plan does not exist.
        """
        if due_date is None and sla_plan_id is not None:
            plan = await self._session.get(SLAPlan, sla_plan_id)
            if plan is None:
                raise RecordNotFoundError("SLAPlan", sla_plan_id)
            due_date = datetime.now(UTC) + timedelta(hours=plan.grace_period_hours)

        ticket = await self.create(
            subject=subject,
            description=description,
            created_by_id=created_by_id,
            department_id=department_id,
            help_topic_id=help_topic_id,
            status_id=status_id,
            priority_id=priority_id,
            sla_plan_id=sla_plan_id,
            assigned_to_id=assigned_to_id,
            due_date=due_date,
        )
        logger.info(
            "Ticket opened",
            extra={
                "ticket_id": str(ticket.ticket_id),
                "department_id": str(department_id),
                "due_date": due_date.isoformat() if due_date else None,
            },
        )
        return ticket

    async def add_thread(self, ticket_id: UUID, user_id: UUID, message: str) -> TicketThread:
        """Post a message on a ticket and refresh its last response time."""
        ticket = await self.get_or_raise(ticket_id)
        thread = TicketThread(ticket_id=ticket_id, user_id=user_id, message=message)
        self._session.add(thread)
        ticket.last_response_at = datetime.now(UTC)
        await self._session.flush()
        await self._session.refresh(thread)
        return thread

    async def list_threads(self, ticket_id: UUID) -> Sequence[TicketThread]:
        """A ticket's conversation in posting order."""
        query = (
            select(TicketThread)
            .where(TicketThread.ticket_id == ticket_id)
            .order_by(TicketThread.created_at)
        )
        result = await self._session.execute(query)
        return result.scalars().all()

    async def add_thread_attachment(
        self,
        thread_id: UUID,
        *,
        file_name: str,
        file_path: str,
        mime_type: str,
        size: int,
    ) -> TicketAttachment:
        attachment = TicketAttachment(
            thread_id=thread_id,
            file_name=file_name,
            file_path=file_path,
            mime_type=mime_type,
            size=size,
        )
        self._session.add(attachment)
        await self._session.flush()
        await self._session.refresh(attachment)
        return attachment

    async def add_collaborator(self, ticket_id: UUID, user_id: UUID) -> TicketCollaborator:
        """Add a collaborator.

        Raises:
            sqlalchemy.exc.IntegrityError: If the user already collaborates.
        """
        collaborator = TicketCollaborator(ticket_id=ticket_id, user_id=user_id)
        self._session.add(collaborator)
        await self._session.flush()
        await self._session.refresh(collaborator)
        return collaborator

    async def remove_collaborator(self, ticket_id: UUID, user_id: UUID) -> bool:
        stmt = delete(TicketCollaborator).where(
            TicketCollaborator.ticket_id == ticket_id,
            TicketCollaborator.user_id == user_id,
        )
        result = await self._session.execute(stmt)
        return result.rowcount > 0

    async def set_custom_field(
        self,
        ticket_id: UUID,
        custom_field_id: int,
        value: str,
    ) -> TicketCustomField:
        """Set a custom field value on a ticket, replacing any previous one."""
        query = select(TicketCustomField).where(
            TicketCustomField.ticket_id == ticket_id,
            TicketCustomField.custom_field_id == custom_field_id,
        )
        result = await self._session.execute(query)
        field_value = result.scalar_one_or_none()

        if field_value is None:
            field_value = TicketCustomField(
                ticket_id=ticket_id, custom_field_id=custom_field_id, value=value
            )
            self._session.add(field_value)
        else:
            field_value.value = value
        await self._session.flush()
        await self._session.refresh(field_value)
        return field_value

    async def custom_field_values(self, ticket_id: UUID) -> dict[int, str]:
        """Custom field values of a ticket keyed by custom_field_id."""
        query = select(TicketCustomField).where(TicketCustomField.ticket_id == ticket_id)
        result = await self._session.execute(query)
        return {v.custom_field_id: v.value for v in result.scalars().all()}

    async def assign(self, ticket_id: UUID, user_id: UUID | None) -> Ticket:
        """Assign a ticket to a user, or unassign it with None."""
        return await self.update(ticket_id, assigned_to_id=user_id)

    async def _get_status(self, status_id: int) -> TicketStatus:
        status = await self._session.get(TicketStatus, status_id)
        if status is None:
            raise RecordNotFoundError("TicketStatus", status_id)
        return status

    async def close(self, ticket_id: UUID, status_id: int) -> Ticket:
        """Close a ticket with a closing status.

        Raises:
            RecordNotFoundError: If the ticket or status does not exist.
            InvalidTicketStateError: If already closed or the status is not a closing one.
        """
        ticket = await self.get_or_raise(ticket_id)
        if ticket.closed_at is not None:
            raise InvalidTicketStateError(ticket_id, "close", "ticket is already closed")
        status = await self._get_status(status_id)
        if not status.is_closed:
            raise InvalidTicketStateError(
                ticket_id, "close", f"status {status.name!r} is not a closed status"
            )

        ticket = await self.update(ticket_id, status_id=status_id, closed_at=datetime.now(UTC))
        logger.info("Ticket closed", extra={"ticket_id": str(ticket_id), "status": status.name})
        return ticket

    async def reopen(self, ticket_id: UUID, status_id: int) -> Ticket:
        """Reopen a closed ticket with an open status.

        Raises:
            RecordNotFoundError: If the ticket or status does not exist.
            InvalidTicketStateError: If not closed or the status is a closing one.
        """
        ticket = await self.get_or_raise(ticket_id)
        if ticket.closed_at is None:
            raise InvalidTicketStateError(ticket_id, "reopen", "ticket is not closed")
        status = await self._get_status(status_id)
        if status.is_closed:
            raise InvalidTicketStateError(
                ticket_id, "reopen", f"status {status.name!r} is a closed status"
            )

        ticket = await self.update(ticket_id, status_id=status_id, closed_at=None)
        logger.info("Ticket reopened", extra={"ticket_id": str(ticket_id), "status": status.name})
        return ticket

    async def list_for_department(
        self,
        department_id: UUID,
        *,
        include_closed: bool = False,
    ) -> Sequence[Ticket]:
        query = select(Ticket).where(Ticket.department_id == department_id)
        if not include_closed:
            query = query.where(Ticket.closed_at.is_(None))
        result = await self._session.execute(query.order_by(Ticket.created_at))
        return result.scalars().all()

    async def list_for_assignee(self, user_id: UUID) -> Sequence[Ticket]:
        """Open tickets assigned to a user, soonest due first."""
        query = (
            select(Ticket)
            .where(Ticket.assigned_to_id == user_id, Ticket.closed_at.is_(None))
            .order_by(Ticket.due_date.asc().nulls_last(), Ticket.created_at)
        )
        result = await self._session.execute(query)
        return result.scalars().all()
