from __future__ import annotations

import logging

from email_validator import EmailNotValidError, validate_email
from sqlalchemy.orm import Session

from ..core.actor import Actor
from ..core.config import settings
from ..core.errors import PolicyNotFound, ValidationFailed
from ..core.ticket_rules import Module, TicketStatus, Urgency
from ..core.timeutil import utcnow
from ..models.event import EventKind
from ..models.ticket import Ticket
from . import approval_service, category_policy_service, routing_service
from .history import record_event
from .ticket_commands import after_commit, begin

logger = logging.getLogger(__name__)


def _required(value: str | None, label: str) -> str:
    value = (value or "").strip()
    if not value:
        raise ValidationFailed(f"{label} is required")
    return value


def _normalize_email(addr: str | None) -> str:
    addr = _required(addr, "Requester email")
    try:
        return validate_email(addr, check_deliverability=False).normalized
    except EmailNotValidError as exc:
        raise ValidationFailed(f"Invalid requester email: {exc}")


def format_ticket_number(ticket_id: int) -> str:
    return f"{settings.ticket_number_prefix}{ticket_id:04d}"


def create_ticket(
    session: Session,
    *,
    module: Module | str,
    sub_category: str,
    subject: str,
    description: str,
    urgency: Urgency | str = Urgency.MEDIUM,
    requester_id: str,
    requester_name: str,
    requester_email: str,
    department: str | None = None,
    actor: Actor | None = None,
) -> Ticket:
    """Create a ticket and push it through submit (and routing when no approval is needed)."""
    try:
        module = Module(module)
    except ValueError:
        raise ValidationFailed(f"Unknown module '{module}'")
    try:
        urgency = Urgency(urgency or Urgency.MEDIUM)
    except ValueError:
        raise ValidationFailed(f"Unknown urgency '{urgency}'")
    sub_category = _required(sub_category, "Sub-category")
    subject = _required(subject, "Subject")
    description = _required(description, "Description")
    requester_id = _required(requester_id, "Requester id")
    requester_name = _required(requester_name, "Requester name")
    email = _normalize_email(requester_email)
    actor = actor or Actor(id=requester_id, name=requester_name)

    policy = category_policy_service.resolve_or_none(session, module, sub_category)

    now = utcnow()
    ticket = Ticket(
        module=module,
        sub_category=sub_category,
        subject=subject,
        description=description,
        urgency=urgency,
        requester_id=requester_id,
        requester_name=requester_name,
        requester_email=email,
        requester_department=(department or "").strip() or None,
        status=TicketStatus.SUBMITTED,
        requires_approval=policy.requires_approval if policy else False,
        approval_level_count=policy.level_count if policy else 0,
        requires_user_confirmation=policy.requires_user_confirmation if policy else True,
        auto_close_on_breach=policy.auto_close_on_breach if policy else False,
        approval_sla_hours=policy.approval_sla_hours if policy else settings.default_approval_sla_hours,
        processing_sla_hours=policy.processing_sla_hours if policy else settings.default_processing_sla_hours,
        submitted_at=now,
        reopen_count=0,
        created_at=now,
        updated_at=now,
    )

    ctx = begin(session, ticket, actor, "create")
    try:
        session.add(ticket)
        session.flush()
        ticket.ticket_number = format_ticket_number(ticket.id)

        record_event(
            ticket,
            EventKind.CREATED,
            actor,
            detail=f"{module} request '{subject}' submitted by {requester_name}",
            new_status=TicketStatus.SUBMITTED,
        )
        approval_service.submit(session, ticket, actor)
        if ticket.approval_completed:
            try:
                routing_service.route(session, ticket, actor)
            except PolicyNotFound:
                # 승인 완료 상태로 남겨 두고 관리자가 정책을 등록한 뒤 라우팅한다
                logger.warning("라우팅 정책 없음, 미배정 상태로 남김 ticket=%s", ticket.ticket_number)
        session.commit()
    except Exception:
        session.rollback()
        raise

    after_commit(ctx)
    return ticket
