"""Tests for the helpdesk repositories.

Tests cover:
- Ticket due dates derived from SLA plans
- Thread posting and last response tracking
- Custom field values
- Closing and reopening tickets
"""

from datetime import UTC, datetime, timedelta
from uuid import uuid4

import pytest

from softagon.db.models import (
    CustomField,
    HelpTopic,
    SLAPlan,
    Ticket,
    TicketCustomField,
    TicketPriority,
    TicketStatus,
    TicketThread,
)
from softagon.repositories import (
    HelpdeskRepository,
    InvalidTicketStateError,
    RecordNotFoundError,
    TicketRepository,
)
from tests.factories import (
    create_ticket,
    create_ticket_status,
    make_lookup,
    make_result,
    make_session,
)


def ticket_values(**overrides):
    values = {
        "subject": "VPN down",
        "description": "Cannot connect since this morning.",
        "created_by_id": uuid4(),
        "department_id": uuid4(),
        "help_topic_id": 1,
        "status_id": 1,
        "priority_id": 2,
    }
    values.update(overrides)
    return values


class TestHelpdeskRepository:
    def test_lookup_repositories(self):
        repo = HelpdeskRepository(make_session())

        assert repo.statuses.model is TicketStatus
        assert repo.priorities.model is TicketPriority
        assert repo.help_topics.model is HelpTopic
        assert repo.sla_plans.model is SLAPlan
        assert repo.custom_fields.model is CustomField

    @pytest.mark.asyncio
    async def test_get_status_by_name(self):
        status = create_ticket_status(name="Open")
        session = make_session(make_result(scalar=status))

        assert await HelpdeskRepository(session).get_status_by_name("Open") is status


class TestOpenTicket:
    """Tests for open_ticket due date handling."""

    @pytest.mark.asyncio
    async def test_due_date_from_sla_plan(self):
        plan = SLAPlan(sla_plan_id=7, name="Default", grace_period_hours=48)
        session = make_session(get=make_lookup(plan))
        before = datetime.now(UTC)

        ticket = await TicketRepository(session).open_ticket(**ticket_values(sla_plan_id=7))

        assert isinstance(ticket, Ticket)
        assert ticket.sla_plan_id == 7
        assert before + timedelta(hours=48) <= ticket.due_date
        assert ticket.due_date <= datetime.now(UTC) + timedelta(hours=48)

    @pytest.mark.asyncio
    async def test_explicit_due_date_wins(self):
        due = datetime(2026, 12, 1, tzinfo=UTC)
        session = make_session()

        ticket = await TicketRepository(session).open_ticket(
            **ticket_values(sla_plan_id=7, due_date=due)
        )

        assert ticket.due_date == due
        session.get.assert_not_awaited()

    @pytest.mark.asyncio
    async def test_no_sla_plan_no_due_date(self):
        ticket = await TicketRepository(make_session()).open_ticket(**ticket_values())
        assert ticket.due_date is None
        assert ticket.closed_at is None

    @pytest.mark.asyncio
    async def test_missing_sla_plan(self):
        session = make_session()

        with pytest.raises(RecordNotFoundError) as exc_info:
            await TicketRepository(session).open_ticket(**ticket_values(sla_plan_id=99))

        assert exc_info.value.model_name == "SLAPlan"
        session.add.assert_not_called()


class TestThreads:
    @pytest.mark.asyncio
    async def test_add_thread_sets_last_response(self):
        ticket = create_ticket()
        session = make_session(get=ticket)
        user_id = uuid4()

        thread = await TicketRepository(session).add_thread(ticket.ticket_id, user_id, "On it.")

        assert isinstance(thread, TicketThread)
        assert thread.ticket_id == ticket.ticket_id
        assert thread.user_id == user_id
        assert ticket.last_response_at is not None
        session.add.assert_called_once_with(thread)

    @pytest.mark.asyncio
    async def test_add_thread_to_missing_ticket(self):
        session = make_session()
        with pytest.raises(RecordNotFoundError):
            await TicketRepository(session).add_thread(uuid4(), uuid4(), "Hello?")
        session.add.assert_not_called()


class TestCustomFields:
    @pytest.mark.asyncio
    async def test_first_value_is_inserted(self):
        session = make_session(make_result(scalar=None))
        ticket_id = uuid4()

        value = await TicketRepository(session).set_custom_field(ticket_id, 3, "Building B")

        assert isinstance(value, TicketCustomField)
        assert value.ticket_id == ticket_id
        assert value.custom_field_id == 3
        assert value.value == "Building B"
        session.add.assert_called_once_with(value)

    @pytest.mark.asyncio
    async def test_existing_value_is_replaced(self):
        existing = TicketCustomField(ticket_id=uuid4(), custom_field_id=3, value="Building A")
        session = make_session(make_result(scalar=existing))

        value = await TicketRepository(session).set_custom_field(
            existing.ticket_id, 3, "Building B"
        )

        assert value is existing
        assert existing.value == "Building B"
        session.add.assert_not_called()

    @pytest.mark.asyncio
    async def test_custom_field_values_keyed_by_field(self):
        ticket_id = uuid4()
        values = [
            TicketCustomField(ticket_id=ticket_id, custom_field_id=1, value="B"),
            TicketCustomField(ticket_id=ticket_id, custom_field_id=2, value="3rd floor"),
        ]
        session = make_session(make_result(scalars=values))

        assert await TicketRepository(session).custom_field_values(ticket_id) == {
            1: "B",
            2: "3rd floor",
        }


class TestCloseAndReopen:
    """Tests for the closed_at lifecycle."""

    @pytest.fixture
    def statuses(self):
        return create_ticket_status(1, "Open"), create_ticket_status(2, "Resolved", is_closed=True)

    @pytest.mark.asyncio
    async def test_close(self, statuses):
        open_status, resolved = statuses
        ticket = create_ticket(status_id=open_status.ticket_status_id)
        session = make_session(get=make_lookup(ticket, *statuses))

        await TicketRepository(session).close(ticket.ticket_id, resolved.ticket_status_id)

        assert ticket.status_id == resolved.ticket_status_id
        assert ticket.closed_at is not None

    @pytest.mark.asyncio
    async def test_close_with_open_status_rejected(self, statuses):
        open_status, _ = statuses
        ticket = create_ticket()
        session = make_session(get=make_lookup(ticket, *statuses))

        with pytest.raises(InvalidTicketStateError) as exc_info:
            await TicketRepository(session).close(ticket.ticket_id, open_status.ticket_status_id)

        assert exc_info.value.operation == "close"
        assert ticket.closed_at is None

    @pytest.mark.asyncio
    async def test_close_already_closed_rejected(self, statuses):
        _, resolved = statuses
        ticket = create_ticket(closed_at=datetime(2026, 1, 1, tzinfo=UTC), status_id=2)
        session = make_session(get=make_lookup(ticket, *statuses))

        with pytest.raises(InvalidTicketStateError):
            await TicketRepository(session).close(ticket.ticket_id, resolved.ticket_status_id)

    @pytest.mark.asyncio
    async def test_close_with_unknown_status(self, statuses):
        ticket = create_ticket()
        session = make_session(get=make_lookup(ticket, *statuses))

        with pytest.raises(RecordNotFoundError) as exc_info:
            await TicketRepository(session).close(ticket.ticket_id, 42)

        assert exc_info.value.model_name == "TicketStatus"

    @pytest.mark.asyncio
    async def test_reopen(self, statuses):
        open_status, _ = statuses
        ticket = create_ticket(closed_at=datetime(2026, 1, 1, tzinfo=UTC), status_id=2)
        session = make_session(get=make_lookup(ticket, *statuses))

        await TicketRepository(session).reopen(ticket.ticket_id, open_status.ticket_status_id)

        assert ticket.closed_at is None
        assert ticket.status_id == open_status.ticket_status_id

    @pytest.mark.asyncio
    async def test_reopen_open_ticket_rejected(self, statuses):
        open_status, _ = statuses
        ticket = create_ticket()
        session = make_session(get=make_lookup(ticket, *statuses))

        with pytest.raises(InvalidTicketStateError) as exc_info:
            await TicketRepository(session).reopen(ticket.ticket_id, open_status.ticket_status_id)

        assert exc_info.value.operation == "reopen"

    @pytest.mark.asyncio
    async def test_reopen_with_closed_status_rejected(self, statuses):
        _, resolved = statuses
        ticket = create_ticket(closed_at=datetime(2026, 1, 1, tzinfo=UTC), status_id=2)
        session = make_session(get=make_lookup(ticket, *statuses))

        with pytest.raises(InvalidTicketStateError):
            await TicketRepository(session).reopen(ticket.ticket_id, resolved.ticket_status_id)

        assert ticket.closed_at is not None
