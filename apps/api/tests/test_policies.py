import pytest

from app.core.errors import PolicyNotFound
from app.core.ticket_rules import ApprovalLevel, Module
from app.models.category_policy import PolicyApprover
from app.services import assignment_service, category_policy_service, directory_service
from app.services.category_policy_service import ResolvedPolicy


def resolved(requires_approval=True, approvers=None):
    return ResolvedPolicy(
        module=Module.IT,
        sub_category="Hardware",
        requires_approval=requires_approval,
        processing_queue="IT",
        specialist_queue="Hardware Team",
        requires_user_confirmation=True,
        auto_close_on_breach=False,
        approval_sla_hours=24,
        processing_sla_hours=48,
        approvers=approvers or {},
    )


@pytest.mark.parametrize(
    "requires_approval,levels,expected",
    [
        (False, [ApprovalLevel.L1, ApprovalLevel.L2], 0),
        (True, [], 1),
        (True, [ApprovalLevel.L1], 1),
        (True, [ApprovalLevel.L1, ApprovalLevel.L2, ApprovalLevel.L3], 3),
        # L2 가 비어 있으면 L3 는 무시
        (True, [ApprovalLevel.L1, ApprovalLevel.L3], 1),
    ],
)
def test_level_count_is_contiguous_from_l1(requires_approval, levels, expected):
    policy = resolved(requires_approval, {level: "someone" for level in levels})
    assert policy.level_count == expected


def test_resolve_falls_back_to_defaults(session):
    policy = category_policy_service.resolve(session, "IT", "  hardware ")
    assert policy.sub_category == "Hardware"
    assert policy.specialist_queue == "Hardware Team"
    assert policy.approval_sla_hours == 24
    assert policy.processing_sla_hours == 48
    assert policy.approvers == {ApprovalLevel.L1: "it.manager"}


def test_inactive_policy_is_not_found(session, policy):
    policy("Software").is_active = False
    session.commit()

    with pytest.raises(PolicyNotFound) as exc:
        category_policy_service.resolve(session, Module.IT, "Software")
    assert exc.value.code == "POLICY_NOT_FOUND"
    assert category_policy_service.resolve_or_none(session, Module.IT, "Software") is None
    assert not category_policy_service.queue_exists(session, Module.IT, "Software Team")


def test_queues_belong_to_one_module(session):
    assert category_policy_service.queue_exists(session, Module.FACILITIES, "Plumbing Team")
    assert not category_policy_service.queue_exists(session, Module.IT, "Plumbing Team")
    assert (Module.FINANCE, "Payroll Team") in category_policy_service.list_queues(session, Module.FINANCE)
    assert all(m == Module.IT for m, _ in category_policy_service.list_queues(session, Module.IT))


def test_queue_specialists_report_active_work(session, create_ticket, run, actors):
    ticket = create_ticket("Network / Connectivity", subject="VPN keeps dropping")
    work = actors.specialist2
    run(ticket, actors.specialist, "assign", assignment_service.assign_to_specialist, work.id, work.name, None, actors.specialist)

    counts = {
        s.entry.id: s.active_ticket_count
        for s in directory_service.get_queue_specialists(session, Module.IT, "Network Team")
    }
    assert counts == {"it.specialist": 0, "it.specialist2": 1}
    assert directory_service.is_queue_member(session, Module.IT, "Network Team", "it.specialist2")
    assert not directory_service.is_queue_member(session, Module.IT, "Security Team", "it.specialist2")


def test_level_approver_prefers_policy_then_manager(session, create_ticket, policy):
    hardware = policy("Hardware")
    hardware.approvers.append(PolicyApprover(level=ApprovalLevel.L2, emp_no="it.director"))
    session.commit()
    ticket = create_ticket("Hardware")

    assert directory_service.get_level_approver(session, ticket, ApprovalLevel.L2).id == "it.director"
    assert directory_service.get_level_approver(session, ticket, ApprovalLevel.L3) is None

    hardware.approvers.clear()
    session.commit()
    assert directory_service.get_level_approver(session, ticket, ApprovalLevel.L1).id == "it.manager"
    assert directory_service.get_manager(session, "emp001").name == "IT Manager"
