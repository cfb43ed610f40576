from __future__ import annotations

from datetime import datetime

from sqlalchemy.orm import Session

from ..core.actor import Actor
from ..core.errors import Forbidden, InvalidTransition, ValidationFailed
from ..core.ticket_rules import (
    PROCESSING_STATUSES,
    ClosingReason,
    ProgressStatus,
    TicketStatus,
    can_cancel,
    can_reopen,
)
from ..core.timeutil import add_hours, utcnow
from ..models.event import EventKind
from ..models.ticket import Ticket
from . import sla_service
from .assignment_service import clear_assignment
from .history import post_message, record_event, transition


def _parse_reason(reason: ClosingReason | str | None) -> ClosingReason | None:
    if reason is None or reason == "":
        return None
    try:
        return ClosingReason(reason)
    except ValueError:
        raise ValidationFailed(f"Unknown closing reason '{reason}'")


def _stamp_closure(ticket: Ticket, actor: Actor, note: str | None, reason: ClosingReason) -> None:
    ticket.closed_at = utcnow()
    ticket.closed_by = actor.name
    ticket.closing_note = note
    ticket.closing_reason = reason


def close(
    session: Session,
    ticket: Ticket,
    actor: Actor,
    note: str | None = None,
    reason: ClosingReason | str | None = None,
    now: datetime | None = None,
) -> None:
    reason = _parse_reason(reason)
    note = (note or "").strip() or None

    if reason == ClosingReason.USER_CANCELLATION:
        raise ValidationFailed("Use cancel to withdraw a ticket")

    if reason == ClosingReason.AUTO_CLOSED:
        if ticket.status not in PROCESSING_STATUSES:
            raise InvalidTransition("auto-close", ticket.status)
        if not ticket.auto_close_on_breach or not sla_service.is_overdue(ticket, now):
            raise InvalidTransition("auto-close", ticket.status, "SLA not breached or auto-close disabled")
        _stamp_closure(ticket, actor, note or "Auto-closed after the processing SLA was breached", reason)
        transition(ticket, TicketStatus.AUTO_CLOSED, EventKind.AUTO_CLOSED, actor, detail=ticket.closing_note)
        return

    if ticket.status == TicketStatus.CONFIRMED:
        reason = reason or ClosingReason.USER_CONFIRMED
    elif ticket.status == TicketStatus.WORK_COMPLETED and not ticket.requires_user_confirmation:
        if reason == ClosingReason.USER_CONFIRMED:
            raise ValidationFailed("Ticket was not confirmed by the requester")
        reason = reason or ClosingReason.RESOLVED
    elif ticket.status == TicketStatus.AWAITING_USER_CONFIRMATION:
        raise InvalidTransition("close", ticket.status, "waiting for the requester to confirm the work")
    else:
        raise InvalidTransition("close", ticket.status)

    _stamp_closure(ticket, actor, note, reason)
    detail = f"Closed by {actor.name} ({reason})"
    if note:
        detail = f"{detail}: {note}"
    transition(ticket, TicketStatus.CLOSED, EventKind.CLOSED, actor, detail=detail)


def cancel(session: Session, ticket: Ticket, actor: Actor, reason: str | None = None) -> None:
    if not can_cancel(ticket.status):
        raise InvalidTransition("cancel", ticket.status)
    if not actor.is_admin and actor.id != ticket.requester_id:
        raise Forbidden("Only the requester can cancel this ticket")
    reason = (reason or "").strip() or None
    note = f"Ticket cancelled by {actor.name}"
    if reason:
        note = f"{note}: {reason}"
    _stamp_closure(ticket, actor, note, ClosingReason.USER_CANCELLATION)
    transition(ticket, TicketStatus.CANCELLED, EventKind.CANCELLED, actor, detail=note)


def reopen(session: Session, ticket: Ticket, reason: str, actor: Actor) -> None:
    """Start a new work cycle on a closed ticket.

    Approval and route are kept; assignment, progress and closure are reset so
    the ticket goes back to the queue.
    """
    if ticket.status == TicketStatus.REOPENED:
        raise InvalidTransition("reopen", ticket.status, "ticket is already reopened")
    if not can_reopen(ticket.status):
        raise InvalidTransition("reopen", ticket.status)
    if not actor.is_admin and actor.id != ticket.requester_id:
        raise Forbidden("Only the requester can reopen this ticket")
    reason = (reason or "").strip()
    if not reason:
        raise ValidationFailed("Reopen reason is required")

    if ticket.assigned_to_id:
        previous_name = ticket.assigned_to_name or ticket.assigned_to_id
        record_event(
            ticket,
            EventKind.ASSIGNMENT_CLEARED,
            actor,
            detail=f"Previous assignment to {previous_name} cleared. Ticket returned to the queue.",
            previous_status=ticket.status,
            new_status=ticket.status,
            previous_subject_id=ticket.assigned_to_id,
            previous_subject_name=previous_name,
        )
    clear_assignment(ticket)

    ticket.progress_status = ProgressStatus.NOT_STARTED
    ticket.progress_notes = None
    ticket.pause_reason = None
    ticket.resolved_by = None
    ticket.resolved_at = None
    ticket.resolution_notes = None
    ticket.user_confirmed_at = None
    ticket.confirmation_feedback = None
    ticket.closed_at = None
    ticket.closed_by = None
    ticket.closing_note = None
    ticket.closing_reason = None

    now = utcnow()
    ticket.reopen_count = (ticket.reopen_count or 0) + 1
    ticket.last_reopened_at = now
    ticket.processing_deadline = add_hours(now, ticket.processing_sla_hours)

    transition(
        ticket,
        TicketStatus.REOPENED,
        EventKind.REOPENED,
        actor,
        detail=f"Ticket reopened by {actor.name}. Reason: {reason}",
    )
    post_message(ticket, actor, f"**Ticket Reopened**\n\n{reason}", message_type="status_update")
