from __future__ import annotations

from sqlalchemy.orm import Session

from ..core.actor import Actor
from ..core.errors import Forbidden, InvalidTransition, ValidationFailed
from ..core.ticket_rules import ProgressStatus, TicketStatus
from ..core.timeutil import utcnow
from ..models.event import EventKind
from ..models.ticket import Ticket
from .history import post_message, record_event, transition

WORKING_STATUSES = {TicketStatus.ASSIGNED, TicketStatus.IN_PROGRESS, TicketStatus.PAUSED}


def _check_assignee(ticket: Ticket, actor: Actor) -> None:
    if actor.is_admin or actor.role == "system":
        return
    if not ticket.assigned_to_id or actor.id != ticket.assigned_to_id:
        raise Forbidden("Only the assigned specialist can update this ticket")


def _require_status(ticket: Ticket, action: str, allowed: set[TicketStatus], hint: str | None = None) -> None:
    if ticket.status not in allowed:
        raise InvalidTransition(action, ticket.status, hint)


def start_work(session: Session, ticket: Ticket, actor: Actor) -> None:
    _require_status(ticket, "start work on", {TicketStatus.ASSIGNED})
    _check_assignee(ticket, actor)
    ticket.progress_status = ProgressStatus.IN_PROGRESS
    transition(ticket, TicketStatus.IN_PROGRESS, EventKind.WORK_STARTED, actor, detail=f"Work started by {actor.name}")


def pause(session: Session, ticket: Ticket, reason: str, actor: Actor) -> None:
    _require_status(ticket, "pause", {TicketStatus.ASSIGNED, TicketStatus.IN_PROGRESS})
    _check_assignee(ticket, actor)
    reason = (reason or "").strip()
    if not reason:
        raise ValidationFailed("Pause reason is required")
    ticket.pause_reason = reason
    ticket.progress_status = ProgressStatus.ON_HOLD
    transition(ticket, TicketStatus.PAUSED, EventKind.PAUSED, actor, detail=f"Paused: {reason}")
    post_message(ticket, actor, f"**Ticket Paused**\n\n{reason}", message_type="status_update")


def resume(session: Session, ticket: Ticket, actor: Actor, notes: str | None = None) -> None:
    _require_status(ticket, "resume", {TicketStatus.PAUSED})
    _check_assignee(ticket, actor)
    ticket.pause_reason = None
    ticket.progress_status = ProgressStatus.IN_PROGRESS
    notes = (notes or "").strip() or None
    transition(ticket, TicketStatus.IN_PROGRESS, EventKind.RESUMED, actor, detail=notes or "Work resumed")
    if notes:
        post_message(ticket, actor, f"**Ticket Resumed**\n\n{notes}", message_type="status_update")


def update_progress(
    session: Session,
    ticket: Ticket,
    progress_status: ProgressStatus | str,
    actor: Actor,
    notes: str | None = None,
) -> None:
    """Specialist-facing progress update that keeps the ticket status in step."""
    try:
        progress_status = ProgressStatus(progress_status)
    except ValueError:
        raise ValidationFailed(f"Unknown progress status '{progress_status}'")
    _require_status(ticket, "update progress on", WORKING_STATUSES)
    _check_assignee(ticket, actor)
    notes = (notes or "").strip() or None

    if progress_status == ProgressStatus.COMPLETED:
        if not notes:
            raise ValidationFailed("Completion notes are required")
        complete_work(session, ticket, notes, actor)
        return
    if progress_status == ProgressStatus.ON_HOLD:
        pause(session, ticket, notes or "On hold", actor)
        return
    if progress_status == ProgressStatus.NOT_STARTED:
        raise ValidationFailed("Progress cannot be moved back to Not Started")

    if ticket.status == TicketStatus.PAUSED:
        resume(session, ticket, actor)
    elif ticket.status == TicketStatus.ASSIGNED:
        start_work(session, ticket, actor)

    ticket.progress_notes = notes or ticket.progress_notes
    if notes:
        record_event(
            ticket,
            EventKind.PROGRESS_UPDATED,
            actor,
            detail=notes,
            previous_status=ticket.status,
            new_status=ticket.status,
        )
        post_message(ticket, actor, f"**Progress Update: {progress_status}**\n\n{notes}", message_type="status_update")


def complete_work(session: Session, ticket: Ticket, notes: str, actor: Actor) -> None:
    _require_status(
        ticket,
        "complete",
        {TicketStatus.ASSIGNED, TicketStatus.IN_PROGRESS},
        "resume the ticket first" if ticket.status == TicketStatus.PAUSED else None,
    )
    _check_assignee(ticket, actor)
    notes = (notes or "").strip()
    if not notes:
        raise ValidationFailed("Completion notes are required")

    ticket.resolved_by = actor.name
    ticket.resolved_at = utcnow()
    ticket.resolution_notes = notes
    ticket.progress_status = ProgressStatus.COMPLETED
    ticket.progress_notes = notes
    transition(ticket, TicketStatus.WORK_COMPLETED, EventKind.WORK_COMPLETED, actor, detail=f"Work completed: {notes}")
    post_message(ticket, actor, notes, message_type="closing_note")

    if ticket.requires_user_confirmation:
        transition(
            ticket,
            TicketStatus.AWAITING_USER_CONFIRMATION,
            EventKind.AWAITING_CONFIRMATION,
            actor,
            detail=f"Awaiting confirmation from {ticket.requester_name}",
        )


def confirm_completion(session: Session, ticket: Ticket, actor: Actor, feedback: str | None = None) -> None:
    _require_status(ticket, "confirm", {TicketStatus.AWAITING_USER_CONFIRMATION})
    if not actor.is_admin and actor.id != ticket.requester_id:
        raise Forbidden("Only the requester can confirm the work")
    feedback = (feedback or "").strip() or None
    ticket.user_confirmed_at = utcnow()
    ticket.confirmation_feedback = feedback
    transition(
        ticket,
        TicketStatus.CONFIRMED,
        EventKind.USER_CONFIRMED,
        actor,
        detail=f"Confirmed by {actor.name}" + (f": {feedback}" if feedback else ""),
    )
    if feedback:
        post_message(ticket, actor, feedback, message_type="feedback")
