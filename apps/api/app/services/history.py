from __future__ import annotations

from ..core.actor import Actor
from ..core.ticket_rules import TicketStatus
from ..core.timeutil import utcnow
from ..models.event import EVENT_LABELS, EventKind, TicketEvent
from ..models.message import TicketMessage
from ..models.ticket import Ticket


def current_cycle(ticket: Ticket) -> int:
    return (ticket.reopen_count or 0) + 1


def record_event(
    ticket: Ticket,
    kind: EventKind,
    actor: Actor,
    *,
    detail: str | None = None,
    previous_status: TicketStatus | None = None,
    new_status: TicketStatus | None = None,
    subject_id: str | None = None,
    subject_name: str | None = None,
    previous_subject_id: str | None = None,
    previous_subject_name: str | None = None,
) -> TicketEvent:
    """Append one history row. Rows are only ever appended."""
    event = TicketEvent(
        kind=kind,
        action=EVENT_LABELS[kind],
        actor_id=actor.id,
        actor_name=actor.name,
        actor_role=actor.role,
        previous_status=previous_status,
        new_status=new_status,
        detail=detail,
        subject_id=subject_id,
        subject_name=subject_name,
        previous_subject_id=previous_subject_id,
        previous_subject_name=previous_subject_name,
        cycle=current_cycle(ticket),
        created_at=utcnow(),
    )
    ticket.events.append(event)
    return event


def transition(
    ticket: Ticket,
    new_status: TicketStatus,
    kind: EventKind,
    actor: Actor,
    **fields,
) -> TicketEvent:
    previous = ticket.status
    ticket.status = new_status
    ticket.updated_at = utcnow()
    return record_event(ticket, kind, actor, previous_status=previous, new_status=new_status, **fields)


def post_message(
    ticket: Ticket,
    actor: Actor,
    body: str,
    *,
    message_type: str = "message",
    attachments: list | None = None,
) -> TicketMessage:
    message = TicketMessage(
        sender_role=actor.role,
        sender_id=actor.id,
        sender_name=actor.name,
        message_type=message_type,
        body=body,
        attachments=attachments or None,
        created_at=utcnow(),
    )
    ticket.messages.append(message)
    return message
