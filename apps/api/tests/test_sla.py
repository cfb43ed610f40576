from datetime import datetime, timedelta, timezone

import pytest

from app.core.actor import SYSTEM
from app.core.errors import InvalidTransition
from app.core.ticket_rules import ClosingReason, Module, TicketStatus
from app.core.timeutil import utcnow
from app.models.event import EventKind
from app.models.ticket import Ticket
from app.services import closure_service, sla_service, sla_sweep
from app.services.sla_service import AT_RISK, ON_TRACK, OVERDUE

T0 = datetime(2026, 3, 2, 9, 0, tzinfo=timezone.utc)


def make_ticket(**fields) -> Ticket:
    values = dict(
        status=TicketStatus.PENDING_APPROVAL_L1,
        requires_approval=True,
        submitted_at=T0,
        approval_sla_hours=24,
        processing_sla_hours=48,
        routed_at=None,
        last_reopened_at=None,
    )
    values.update(fields)
    return Ticket(**values)


def test_approval_phase_labels():
    ticket = make_ticket()

    snap = sla_service.evaluate(ticket, T0 + timedelta(hours=10))
    assert snap.phase == sla_service.PHASE_APPROVAL
    assert snap.deadline == T0 + timedelta(hours=24)
    assert snap.label == ON_TRACK
    assert snap.is_overdue is False

    assert sla_service.evaluate(ticket, T0 + timedelta(hours=21)).label == AT_RISK

    late = sla_service.evaluate(ticket, T0 + timedelta(hours=30))
    assert late.is_overdue is True
    assert late.overdue_by == timedelta(hours=6)
    assert late.label == OVERDUE


def test_processing_phase_uses_routed_at():
    routed = T0 + timedelta(hours=2)
    ticket = make_ticket(status=TicketStatus.IN_PROGRESS, routed_at=routed)

    snap = sla_service.evaluate(ticket, routed + timedelta(hours=10))
    assert snap.phase == sla_service.PHASE_PROCESSING
    assert snap.deadline == routed + timedelta(hours=48)
    assert snap.remaining == timedelta(hours=38)
    assert snap.approval_deadline == T0 + timedelta(hours=24)


def test_reopened_ticket_restarts_processing_clock():
    reopened = T0 + timedelta(days=5)
    ticket = make_ticket(status=TicketStatus.REOPENED, routed_at=T0, last_reopened_at=reopened)
    assert sla_service.processing_deadline(ticket) == reopened + timedelta(hours=48)
    assert sla_service.is_overdue(ticket, reopened + timedelta(hours=1)) is False


def test_no_active_phase_after_closure():
    ticket = make_ticket(status=TicketStatus.CLOSED, routed_at=T0)
    snap = sla_service.evaluate(ticket, T0 + timedelta(days=30))
    assert snap.phase == sla_service.PHASE_NONE
    assert snap.deadline is None
    assert snap.is_overdue is False
    assert snap.label is None


def test_bypassed_ticket_has_no_approval_deadline():
    ticket = make_ticket(status=TicketStatus.IN_QUEUE, requires_approval=False, routed_at=T0)
    assert sla_service.approval_deadline(ticket) is None


def test_evaluate_does_not_touch_the_ticket():
    ticket = make_ticket(status=TicketStatus.IN_PROGRESS, routed_at=T0)
    fields = ("status", "routed_at", "processing_deadline", "closed_at", "closing_reason", "updated_at")
    before = [getattr(ticket, f) for f in fields]
    assert sla_service.evaluate(ticket, T0 + timedelta(days=10)).is_overdue is True
    assert [getattr(ticket, f) for f in fields] == before


def test_naive_timestamps_are_treated_as_utc():
    ticket = make_ticket(submitted_at=T0.replace(tzinfo=None))
    assert sla_service.approval_deadline(ticket) == T0 + timedelta(hours=24)


def test_sweep_auto_closes_overdue_tickets(session, session_factory, create_ticket, policy, run, actors):
    policy("Network / Connectivity").auto_close_on_breach = True
    session.commit()
    ticket = create_ticket("Network / Connectivity", subject="VPN keeps dropping")
    other = create_ticket("Other", subject="Mouse is sticky")

    assert sla_sweep.sweep_once(session_factory, now=utcnow()) == []

    later = utcnow() + timedelta(hours=ticket.processing_sla_hours + 1)
    closed = sla_sweep.sweep_once(session_factory, now=later)
    assert closed == [ticket.id]

    session.expire_all()
    refreshed = session.get(Ticket, ticket.id)
    assert refreshed.status == TicketStatus.AUTO_CLOSED
    assert refreshed.closing_reason == ClosingReason.AUTO_CLOSED
    assert refreshed.events[-1].kind == EventKind.AUTO_CLOSED
    assert refreshed.events[-1].actor_id == "system"
    # 정책상 자동 종료 대상이 아닌 티켓은 그대로
    assert session.get(Ticket, other.id).status == TicketStatus.IN_QUEUE

    # 자동 종료된 티켓도 재오픈할 수 있다
    run(refreshed, actors.employee, "reopen", closure_service.reopen, "Never fixed", actors.employee)
    assert refreshed.status == TicketStatus.REOPENED
    assert sla_sweep.sweep_once(session_factory, now=utcnow()) == []


def test_auto_close_is_rejected_outside_processing(create_ticket, run, actors):
    ticket = create_ticket("Hardware")
    with pytest.raises(InvalidTransition):
        run(ticket, actors.admin, "auto_close", closure_service.close, actors.admin, None, ClosingReason.AUTO_CLOSED)
    assert ticket.status == TicketStatus.PENDING_APPROVAL_L1


def test_auto_close_requires_breach_and_policy_flag(session, create_ticket, policy, run):
    ticket = create_ticket("Other", subject="Mouse is sticky")
    assert ticket.status == TicketStatus.IN_QUEUE
    late = utcnow() + timedelta(hours=ticket.processing_sla_hours + 1)

    # 정책이 자동 종료를 허용하지 않으면 기한이 지나도 거부
    with pytest.raises(InvalidTransition):
        run(ticket, SYSTEM, "auto_close", closure_service.close, SYSTEM, None, ClosingReason.AUTO_CLOSED, now=late)

    policy("Network / Connectivity").auto_close_on_breach = True
    session.commit()
    fresh = create_ticket("Network / Connectivity", subject="VPN keeps dropping")
    with pytest.raises(InvalidTransition) as exc:
        run(fresh, SYSTEM, "auto_close", closure_service.close, SYSTEM, None, ClosingReason.AUTO_CLOSED)
    assert "SLA not breached" in exc.value.message
    assert fresh.status == TicketStatus.IN_QUEUE
    assert fresh.closing_reason is None

    run(fresh, SYSTEM, "auto_close", closure_service.close, SYSTEM, None, ClosingReason.AUTO_CLOSED, now=late)
    assert fresh.status == TicketStatus.AUTO_CLOSED


def test_requester_cannot_auto_close_over_http(client, auth):
    body = {
        "module": "IT",
        "sub_category": "Other",
        "subject": "Mouse is sticky",
        "description": "The left button sticks after a few clicks.",
    }
    ticket = client.post("/tickets", json=body, headers=auth("emp001")).json()
    assert ticket["status"] == "In Queue"

    res = client.post(f"/tickets/{ticket['id']}/close", json={"reason": "Auto-Closed"}, headers=auth("emp001"))
    assert res.status_code == 403
    after = client.get(f"/tickets/{ticket['id']}", headers=auth("emp001")).json()
    assert after["status"] == "In Queue"
    assert after["closing_reason"] is None


def test_facilities_policy_hours_drive_the_deadline(session, create_ticket, policy):
    policy("Plumbing", Module.FACILITIES).processing_sla_hours = 6
    session.commit()
    ticket = create_ticket("Plumbing", Module.FACILITIES, subject="Leaking tap in kitchen")
    snap = sla_service.evaluate(ticket, ticket.routed_at + timedelta(hours=3))
    assert snap.label == AT_RISK
    assert snap.remaining == timedelta(hours=3)
