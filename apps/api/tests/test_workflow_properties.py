from hypothesis import HealthCheck, given, settings, strategies as st

from app.core.errors import WorkflowError
from app.core.ticket_rules import (
    PENDING_APPROVAL_STATUSES,
    ApprovalDecision,
    ApprovalLevel,
    Module,
    TicketStatus,
)
from app.services import (
    approval_service,
    assignment_service,
    closure_service,
    progress_service,
    routing_service,
)

CATEGORIES = [
    (Module.IT, "Hardware"),
    (Module.IT, "Network / Connectivity"),
    (Module.FINANCE, "Payroll Question"),
]


def _current_level(ticket):
    level = ticket.current_approval_level
    return ApprovalLevel.L1 if level == ApprovalLevel.NONE else level


def _decide(decision):
    def command(run, ticket, a):
        run(ticket, a.admin, "decide_approval", approval_service.decide, _current_level(ticket), a.admin, decision)

    return command


def _assign(run, ticket, a):
    work = a.specialist
    run(ticket, work, "assign", assignment_service.assign_to_specialist, work.id, work.name, None, work)


COMMANDS = {
    "approve": _decide(ApprovalDecision.APPROVED),
    "reject": _decide(ApprovalDecision.REJECTED),
    "route": lambda run, t, a: run(t, a.specialist, "route", routing_service.route, a.specialist),
    "assign": _assign,
    "start": lambda run, t, a: run(t, a.specialist, "start_work", progress_service.start_work, a.specialist),
    "pause": lambda run, t, a: run(t, a.specialist, "pause", progress_service.pause, "Waiting on parts", a.specialist),
    "resume": lambda run, t, a: run(t, a.specialist, "resume", progress_service.resume, a.specialist),
    "complete": lambda run, t, a: run(t, a.specialist, "complete_work", progress_service.complete_work, "Done", a.specialist),
    "confirm": lambda run, t, a: run(t, a.employee, "confirm", progress_service.confirm_completion, a.employee),
    "close": lambda run, t, a: run(t, a.specialist, "close", closure_service.close, a.specialist),
    "cancel": lambda run, t, a: run(t, a.employee, "cancel", closure_service.cancel, a.employee),
    "reopen": lambda run, t, a: run(t, a.employee, "reopen", closure_service.reopen, "Broken again", a.employee),
}


def check_invariants(ticket, previous_event_ids):
    if ticket.routed_to is not None:
        assert ticket.approval_completed

    pending = [lv for lv in ticket.approval_levels if lv.decision == ApprovalDecision.PENDING]
    assert len(pending) <= 1
    if pending:
        assert pending[0].level == ticket.current_approval_level
    if ticket.status in PENDING_APPROVAL_STATUSES:
        assert pending
        assert not ticket.approval_completed

    if ticket.status in (TicketStatus.ASSIGNED, TicketStatus.IN_PROGRESS, TicketStatus.PAUSED):
        assert ticket.assigned_to_id is not None

    event_ids = [e.id for e in ticket.events]
    # 이력은 추가만 된다
    assert event_ids[: len(previous_event_ids)] == previous_event_ids
    return event_ids


@settings(max_examples=40, deadline=None, suppress_health_check=[HealthCheck.function_scoped_fixture])
@given(
    category=st.sampled_from(CATEGORIES),
    steps=st.lists(st.sampled_from(sorted(COMMANDS)), max_size=15),
)
def test_random_command_sequences_keep_invariants(create_ticket, run, actors, category, steps):
    module, sub_category = category
    ticket = create_ticket(sub_category, module, subject="Property generated ticket")
    event_ids = check_invariants(ticket, [])

    for name in steps:
        status_before = ticket.status
        events_before = len(ticket.events)
        try:
            COMMANDS[name](run, ticket, actors)
        except WorkflowError:
            # 실패한 명령은 아무것도 바꾸지 않는다
            assert ticket.status == status_before
            assert len(ticket.events) == events_before
        event_ids = check_invariants(ticket, event_ids)
