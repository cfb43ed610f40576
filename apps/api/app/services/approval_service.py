from __future__ import annotations

import logging

from sqlalchemy.orm import Session

from ..core.actor import Actor
from ..core.errors import (
    AlreadyDecided,
    Forbidden,
    InvalidTransition,
    PolicyNotFound,
    StaleLevel,
    ValidationFailed,
)
from ..core.ticket_rules import (
    MAX_APPROVAL_LEVELS,
    PENDING_APPROVAL_STATUSES,
    ApprovalDecision,
    ApprovalLevel,
    TicketStatus,
)
from ..core.timeutil import add_hours, utcnow
from ..models.event import EventKind
from ..models.ticket import Ticket, TicketApprovalLevel
from . import directory_service, routing_service
from .history import post_message, transition

logger = logging.getLogger(__name__)

APPROVER_ROLES = {"manager", "admin"}


def _open_level(session: Session, ticket: Ticket, level: ApprovalLevel) -> TicketApprovalLevel:
    approver = directory_service.get_level_approver(session, ticket, level)
    record = TicketApprovalLevel(
        level=level,
        approver_id=approver.id if approver else None,
        approver_name=approver.name if approver else None,
        approver_email=approver.email if approver else None,
        decision=ApprovalDecision.PENDING,
        opened_at=utcnow(),
    )
    ticket.approval_levels.append(record)
    ticket.current_approval_level = level
    return record


def _approver_label(record: TicketApprovalLevel) -> str:
    return record.approver_name or "manager"


def submit(session: Session, ticket: Ticket, actor: Actor) -> None:
    """Start the approval chain for a freshly created ticket.

    Tickets that need no approval are marked approved straight away and the
    caller hands them to the router.
    """
    if ticket.status != TicketStatus.SUBMITTED:
        raise InvalidTransition("submit", ticket.status)

    now = utcnow()
    if ticket.submitted_at is None:
        ticket.submitted_at = now

    if not ticket.requires_approval:
        ticket.approval_completed = True
        ticket.current_approval_level = ApprovalLevel.NONE
        ticket.approval_level_count = 0
        transition(
            ticket,
            TicketStatus.APPROVED,
            EventKind.APPROVAL_BYPASSED,
            actor,
            detail=f"Ticket created for {ticket.module} module - approval not required",
        )
        return

    ticket.approval_level_count = min(max(ticket.approval_level_count or 0, 1), MAX_APPROVAL_LEVELS)
    ticket.approval_deadline = add_hours(ticket.submitted_at, ticket.approval_sla_hours)
    record = _open_level(session, ticket, ApprovalLevel.L1)
    transition(
        ticket,
        TicketStatus.PENDING_APPROVAL_L1,
        EventKind.APPROVAL_REQUESTED,
        actor,
        detail=f"Sent for L1 approval ({_approver_label(record)})",
        subject_id=record.approver_id,
        subject_name=record.approver_name,
    )


def _parse_level(level: ApprovalLevel | str) -> ApprovalLevel:
    try:
        parsed = ApprovalLevel(level)
    except ValueError:
        raise ValidationFailed(f"Unknown approval level '{level}'")
    if parsed == ApprovalLevel.NONE:
        raise ValidationFailed("Approval level must be one of L1, L2, L3")
    return parsed


def _parse_decision(decision: ApprovalDecision | str) -> ApprovalDecision:
    try:
        parsed = ApprovalDecision(decision)
    except ValueError:
        raise ValidationFailed(f"Unknown approval decision '{decision}'")
    if parsed == ApprovalDecision.PENDING:
        raise ValidationFailed("Decision must be Approved or Rejected")
    return parsed


def _check_approver(record: TicketApprovalLevel, actor: Actor) -> None:
    if actor.is_admin:
        return
    if record.approver_id:
        if actor.id != record.approver_id:
            raise Forbidden(f"Only {record.approver_name or record.approver_id} can decide {record.level}")
        return
    if actor.role not in APPROVER_ROLES:
        raise Forbidden(f"Only a manager can decide {record.level}")


def decide(
    session: Session,
    ticket: Ticket,
    level: ApprovalLevel | str,
    actor: Actor,
    decision: ApprovalDecision | str,
    remarks: str | None = None,
) -> TicketApprovalLevel:
    level = _parse_level(level)
    decision = _parse_decision(decision)
    record = ticket.level_record(level)

    if level != ticket.current_approval_level:
        # 이미 처리된 레벨이면 더 구체적인 오류로 안내
        if record is not None and record.decision != ApprovalDecision.PENDING:
            raise AlreadyDecided(level.value, record.decision.value)
        raise StaleLevel(level.value, ticket.current_approval_level.value)
    if ticket.status not in PENDING_APPROVAL_STATUSES:
        raise InvalidTransition("decide approval on", ticket.status)
    if record is None or record.decision != ApprovalDecision.PENDING:
        raise AlreadyDecided(level.value, record.decision.value if record else "missing")

    _check_approver(record, actor)

    remarks = (remarks or "").strip() or None
    now = utcnow()
    record.decision = decision
    record.decided_by = actor.name
    record.decided_at = now
    record.remarks = remarks
    if remarks:
        post_message(ticket, actor, f"{level} {decision}: {remarks}", message_type="approval_note")

    if decision == ApprovalDecision.REJECTED:
        ticket.current_approval_level = ApprovalLevel.NONE
        detail = f"{level} rejected by {actor.name}"
        if remarks:
            detail = f"{detail}: {remarks}"
        transition(ticket, TicketStatus.REJECTED, EventKind.REJECTED, actor, detail=detail)
        return record

    next_number = level.number + 1
    if next_number <= ticket.approval_level_count:
        next_level = ApprovalLevel.from_number(next_number)
        next_record = _open_level(session, ticket, next_level)
        transition(
            ticket,
            TicketStatus.pending_approval(next_level),
            EventKind.LEVEL_APPROVED,
            actor,
            detail=f"{level} approved by {actor.name}; sent for {next_level} approval ({_approver_label(next_record)})",
            subject_id=next_record.approver_id,
            subject_name=next_record.approver_name,
        )
        return record

    ticket.current_approval_level = ApprovalLevel.NONE
    ticket.approval_completed = True
    transition(
        ticket,
        TicketStatus.APPROVED,
        EventKind.APPROVAL_COMPLETED,
        actor,
        detail=f"{level} approved by {actor.name}. All approvals completed",
    )
    try:
        routing_service.route(session, ticket, actor)
    except PolicyNotFound:
        # 정책이 생기면 담당자가 직접 라우팅한다
        logger.warning("라우팅 정책 없음, 승인 완료 상태로 남김 ticket=%s", ticket.ticket_number)
    return record
