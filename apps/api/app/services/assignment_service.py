from __future__ import annotations

from sqlalchemy.orm import Session

from ..core.actor import Actor
from ..core.errors import InvalidTransition, ValidationFailed
from ..core.ticket_rules import TERMINAL_STATUSES, ProgressStatus, TicketStatus
from ..core.timeutil import utcnow
from ..models.event import EventKind
from ..models.ticket import Ticket
from . import category_policy_service
from .history import record_event, transition


def clear_assignment(ticket: Ticket) -> None:
    ticket.assigned_to_id = None
    ticket.assigned_to_name = None
    ticket.assigned_at = None
    ticket.assigned_by = None
    ticket.assignment_notes = None
    ticket.assignment_queue = None


def _populate(ticket: Ticket, specialist_id: str, specialist_name: str, queue: str | None, actor: Actor, notes: str | None) -> None:
    ticket.assigned_to_id = specialist_id
    ticket.assigned_to_name = specialist_name
    ticket.assigned_at = utcnow()
    ticket.assigned_by = actor.name
    ticket.assignment_notes = notes
    ticket.assignment_queue = queue


def _require_specialist(specialist_id: str | None, specialist_name: str | None) -> tuple[str, str]:
    specialist_id = (specialist_id or "").strip()
    if not specialist_id:
        raise ValidationFailed("Specialist id is required")
    return specialist_id, (specialist_name or "").strip() or specialist_id


def _validate_queue(session: Session, ticket: Ticket, queue: str | None) -> str:
    """A queue is a ``(module, queue)`` pair; bare names from another module never match."""
    queue = (queue or "").strip() or ticket.specialist_queue
    if not queue:
        raise ValidationFailed("Ticket has no specialist queue to assign from")
    if queue != ticket.specialist_queue or not category_policy_service.queue_exists(session, ticket.module, queue):
        raise ValidationFailed(
            f"Queue '{queue}' is not the {ticket.module} queue for this ticket ({ticket.specialist_queue or '-'})"
        )
    return queue


def assign_to_specialist(
    session: Session,
    ticket: Ticket,
    specialist_id: str,
    specialist_name: str,
    queue: str | None,
    actor: Actor,
    notes: str | None = None,
) -> None:
    if ticket.status in TERMINAL_STATUSES:
        raise InvalidTransition("assign", ticket.status)
    reopened = ticket.status == TicketStatus.REOPENED and ticket.approval_completed
    if ticket.status != TicketStatus.IN_QUEUE and not reopened:
        raise InvalidTransition("assign", ticket.status, "ticket must be In Queue or Reopened")
    if ticket.routed_to is None:
        raise InvalidTransition("assign", ticket.status, "ticket has not been routed to a queue")

    specialist_id, specialist_name = _require_specialist(specialist_id, specialist_name)
    queue = _validate_queue(session, ticket, queue)
    notes = (notes or "").strip() or None

    _populate(ticket, specialist_id, specialist_name, queue, actor, notes)
    ticket.progress_status = ProgressStatus.NOT_STARTED

    detail = f"Assigned to {specialist_name}"
    if notes:
        detail = f"{detail} - {notes}"
    transition(
        ticket,
        TicketStatus.ASSIGNED,
        EventKind.ASSIGNED,
        actor,
        detail=detail,
        subject_id=specialist_id,
        subject_name=specialist_name,
    )


def reassign(
    session: Session,
    ticket: Ticket,
    new_specialist_id: str,
    new_specialist_name: str,
    reason: str,
    actor: Actor,
) -> None:
    """Hand an assigned ticket to another specialist. Status does not change."""
    if ticket.status in TERMINAL_STATUSES:
        raise InvalidTransition("reassign", ticket.status)
    if not ticket.assigned_to_id:
        raise InvalidTransition("reassign", ticket.status, "ticket has no current assignee")
    reason = (reason or "").strip()
    if not reason:
        raise ValidationFailed("Reassignment reason is required")
    new_id, new_name = _require_specialist(new_specialist_id, new_specialist_name)
    if new_id == ticket.assigned_to_id:
        raise ValidationFailed(f"Ticket is already assigned to {ticket.assigned_to_name or new_id}")

    previous_id = ticket.assigned_to_id
    previous_name = ticket.assigned_to_name or previous_id
    queue = ticket.assignment_queue

    clear_assignment(ticket)
    _populate(ticket, new_id, new_name, queue, actor, reason)
    ticket.updated_at = utcnow()

    record_event(
        ticket,
        EventKind.REASSIGNED,
        actor,
        detail=f"Reassigned from {previous_name} to {new_name}. Reason: {reason}",
        previous_status=ticket.status,
        new_status=ticket.status,
        subject_id=new_id,
        subject_name=new_name,
        previous_subject_id=previous_id,
        previous_subject_name=previous_name,
    )
