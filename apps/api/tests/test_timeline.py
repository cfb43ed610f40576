import pytest

from app.core.ticket_rules import ApprovalDecision, ApprovalLevel, TicketStatus
from app.services import (
    approval_service,
    assignment_service,
    closure_service,
    progress_service,
    routing_service,
)
from app.services.timeline_service import build_timeline, ordinal, split_cycles


def close_cycle(run, ticket, actors, specialist):
    run(ticket, actors.specialist, "assign", assignment_service.assign_to_specialist, specialist.id, specialist.name, None, actors.specialist)
    run(ticket, specialist, "start_work", progress_service.start_work, specialist)
    run(ticket, specialist, "complete_work", progress_service.complete_work, "Fixed", specialist)
    run(ticket, actors.employee, "confirm", progress_service.confirm_completion, actors.employee)
    run(ticket, specialist, "close", closure_service.close, specialist)


@pytest.mark.parametrize("n,expected", [(1, "1st"), (2, "2nd"), (3, "3rd"), (4, "4th"), (11, "11th"), (12, "12th"), (21, "21st")])
def test_ordinal(n, expected):
    assert ordinal(n) == expected


def test_pending_approval_timeline(create_ticket):
    ticket = create_ticket("Hardware")
    steps = build_timeline(ticket)

    assert [s.label for s in steps] == ["Submitted", "L1 Approval"]
    assert steps[0].status == "completed"
    assert steps[1].status == "active"
    assert steps[1].description == "Awaiting IT Manager approval"


def test_never_reopened_ticket_renders_plain_steps(create_ticket, run, actors):
    ticket = create_ticket("Hardware")
    run(ticket, actors.manager, "decide_approval", approval_service.decide, ApprovalLevel.L1, actors.manager, ApprovalDecision.APPROVED)
    approval = build_timeline(ticket)[1]
    assert approval.status == "completed"
    assert approval.description == "Approved by IT Manager"

    run(ticket, actors.specialist, "route", routing_service.route, actors.specialist)
    steps = build_timeline(ticket)
    assert [s.label for s in steps] == ["Submitted", "L1 Approval", "Routed to Department", "Assigned"]
    assert steps[2].status == "active"
    assert steps[3].status == "pending"

    close_cycle(run, ticket, actors, actors.specialist)
    steps = build_timeline(ticket)
    assert [s.label for s in steps] == [
        "Submitted",
        "L1 Approval",
        "Routed to Department",
        "Assigned",
        "Work In Progress",
        "User Confirmation",
        "Closed",
    ]
    assert all(s.status == "completed" for s in steps)
    assert steps[3].description == "Assigned to IT Specialist"


def test_reopen_twice_timeline(create_ticket, run, actors):
    ticket = create_ticket("Network / Connectivity", subject="VPN keeps dropping")
    close_cycle(run, ticket, actors, actors.specialist)
    run(ticket, actors.employee, "reopen", closure_service.reopen, "Dropping again", actors.employee)
    close_cycle(run, ticket, actors, actors.specialist2)
    run(ticket, actors.employee, "reopen", closure_service.reopen, "Still dropping", actors.employee)

    steps = build_timeline(ticket)
    assert [s.label for s in steps] == [
        "Submitted",
        "Routed to Department",
        "Assigned (1st)",
        "In Progress (1st)",
        "Confirmed (1st)",
        "Closed (1st)",
        "Reopened",
        "Assigned (2nd)",
        "In Progress (2nd)",
        "Confirmed (2nd)",
        "Closed (2nd)",
        "Reopened",
        "Reassigned",
    ]
    by_id = {s.id: s for s in steps}
    assert by_id["assigned-1"].description == "Was assigned to IT Specialist"
    assert by_id["assigned-2"].description == "Was assigned to Second Specialist"
    assert by_id["reopened-1"].status == "completed"
    assert by_id["reopened-2"].status == "active"
    assert by_id["reopened-2"].description.endswith("Still dropping")
    assert by_id["reassigned"].status == "pending"
    assert by_id["reassigned"].description == "Awaiting IT specialist"
    assert sum(1 for s in steps if s.label == "Reopened" and s.status == "active") == 1


def test_live_cycle_after_reopen(create_ticket, run, actors):
    ticket = create_ticket("Network / Connectivity", subject="VPN keeps dropping")
    close_cycle(run, ticket, actors, actors.specialist)
    run(ticket, actors.employee, "reopen", closure_service.reopen, "Dropping again", actors.employee)
    work = actors.specialist2
    run(ticket, actors.specialist, "assign", assignment_service.assign_to_specialist, work.id, work.name, None, actors.specialist)
    run(ticket, work, "start_work", progress_service.start_work, work)

    steps = build_timeline(ticket)
    assert [s.label for s in steps][-3:] == ["Reopened", "Reassigned", "Work In Progress"]
    assert steps[-3].status == "completed"
    assert steps[-2].status == "completed"
    assert steps[-2].description == "Reassigned to Second Specialist"
    assert steps[-1].status == "active"
    assert steps[-1].id == "in-progress-reopen"


def test_cancelled_ticket_gets_a_cancelled_step(create_ticket, run, actors):
    ticket = create_ticket("Hardware")
    run(ticket, actors.employee, "cancel", closure_service.cancel, actors.employee)

    steps = build_timeline(ticket)
    assert [s.label for s in steps] == ["Submitted", "L1 Approval", "Cancelled"]
    assert steps[1].status == "pending"
    assert ticket.status == TicketStatus.CANCELLED


def test_split_cycles_keeps_one_more_cycle_than_reopens(create_ticket, run, actors):
    ticket = create_ticket("Network / Connectivity", subject="VPN keeps dropping")
    close_cycle(run, ticket, actors, actors.specialist)
    run(ticket, actors.employee, "reopen", closure_service.reopen, "Dropping again", actors.employee)

    cycles, reopens = split_cycles(list(ticket.events))
    assert len(cycles) == len(reopens) + 1 == 2
    assert cycles[-1] == []
