import logging

import pytest
from sqlalchemy import func, select

from app.core.errors import ValidationFailed
from app.core.ticket_rules import ApprovalLevel, Module, TicketStatus
from app.models.event import EventKind
from app.models.ticket import Ticket
from app.services.intake_service import format_ticket_number


def test_ticket_number_is_derived_from_row_id(create_ticket):
    ticket = create_ticket()
    assert ticket.ticket_number == format_ticket_number(ticket.id)
    assert ticket.ticket_number == f"TKT{ticket.id:04d}"


def test_approval_required_ticket_waits_for_l1(create_ticket):
    ticket = create_ticket("Hardware")

    assert ticket.status == TicketStatus.PENDING_APPROVAL_L1
    assert ticket.requires_approval is True
    assert ticket.approval_level_count == 1
    assert ticket.current_approval_level == ApprovalLevel.L1
    assert ticket.approval_completed is False
    assert ticket.routed_to is None
    assert ticket.approval_deadline is not None

    record = ticket.level_record(ApprovalLevel.L1)
    assert record.approver_id == "it.manager"
    assert [e.kind for e in ticket.events] == [EventKind.CREATED, EventKind.APPROVAL_REQUESTED]


def test_bypassed_ticket_is_routed_immediately(create_ticket):
    ticket = create_ticket("Network / Connectivity", subject="VPN keeps dropping")

    assert ticket.status == TicketStatus.IN_QUEUE
    assert ticket.approval_completed is True
    assert ticket.current_approval_level == ApprovalLevel.NONE
    assert ticket.routed_to == "IT"
    assert ticket.specialist_queue == "Network Team"
    assert ticket.processing_deadline is not None
    assert [e.kind for e in ticket.events] == [
        EventKind.CREATED,
        EventKind.APPROVAL_BYPASSED,
        EventKind.ROUTED,
        EventKind.QUEUED,
    ]


def test_policy_snapshot_is_taken_at_creation(session, create_ticket, policy):
    p = policy("Cleaning", Module.FACILITIES)
    p.processing_sla_hours = 8
    p.requires_user_confirmation = False
    session.commit()

    ticket = create_ticket("Cleaning", Module.FACILITIES, subject="Spill in the pantry")
    p.processing_sla_hours = 99
    session.commit()

    assert ticket.processing_sla_hours == 8
    assert ticket.requires_user_confirmation is False
    assert ticket.specialist_queue == "Housekeeping"


def test_sub_category_lookup_ignores_case(create_ticket):
    ticket = create_ticket("  hardware ")
    assert ticket.requires_approval is True


def test_missing_policy_leaves_ticket_approved_and_unrouted(create_ticket, caplog):
    with caplog.at_level(logging.WARNING):
        ticket = create_ticket("Quantum Printer", subject="Printer prints the future")

    assert ticket.status == TicketStatus.APPROVED
    assert ticket.approval_completed is True
    assert ticket.requires_approval is False
    assert ticket.routed_to is None
    assert "module=IT" in caplog.text


@pytest.mark.parametrize(
    "overrides",
    [
        {"requester_email": "not-an-email"},
        {"requester_email": ""},
        {"subject": "   "},
        {"description": ""},
        {"module": "Legal"},
        {"urgency": "whenever"},
    ],
)
def test_invalid_input_creates_nothing(session, create_ticket, overrides):
    with pytest.raises(ValidationFailed):
        create_ticket(**overrides)
    assert session.scalar(select(func.count(Ticket.id))) == 0


def test_requester_email_is_normalized(create_ticket):
    ticket = create_ticket(requester_email="Kim.Minji@EXAMPLE.com")
    assert ticket.requester_email == "Kim.Minji@example.com"
