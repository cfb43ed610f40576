from __future__ import annotations

from dataclasses import dataclass, field

from ..models.event import EventKind, TicketEvent
from ..models.message import TicketMessage
from ..models.ticket import Ticket


@dataclass
class Notification:
    event_type: str
    recipient_role: str
    recipient_id: str | None
    ticket_id: int
    ticket_number: str | None
    source_id: int | None = None
    payload: dict = field(default_factory=dict)

    @property
    def event_key(self) -> str:
        return ":".join(
            [
                self.event_type,
                str(self.ticket_id),
                str(self.source_id or "-"),
                self.recipient_role,
                self.recipient_id or "-",
            ]
        )


def _base_payload(ticket: Ticket, event: TicketEvent | None = None) -> dict:
    payload = {
        "subject": ticket.subject,
        "module": str(ticket.module),
        "status": str(ticket.status),
    }
    if event is not None:
        payload["action"] = event.action
        payload["actor"] = event.actor_name
        if event.detail:
            payload["detail"] = event.detail
    return payload


def _make(ticket: Ticket, event: TicketEvent, event_type: str, role: str, recipient_id: str | None) -> Notification:
    return Notification(
        event_type=event_type,
        recipient_role=role,
        recipient_id=recipient_id,
        ticket_id=ticket.id,
        ticket_number=ticket.ticket_number,
        source_id=event.id,
        payload=_base_payload(ticket, event),
    )


def _requester(ticket: Ticket, event: TicketEvent, event_type: str) -> Notification:
    return _make(ticket, event, event_type, "requester", ticket.requester_id)


def _queue(ticket: Ticket, event: TicketEvent, event_type: str) -> Notification:
    # 큐 담당 관리자 전체 대상, 수신자 해석은 알림 서비스 몫
    queue = ticket.specialist_queue or str(ticket.module)
    return _make(ticket, event, event_type, f"queue:{ticket.module}:{queue}", None)


def _approval_needed(ticket: Ticket, event: TicketEvent) -> Notification:
    record = ticket.level_record(ticket.current_approval_level)
    if record is not None and record.approver_id:
        return _make(ticket, event, "approval_needed", "approver", record.approver_id)
    return _make(ticket, event, "approval_needed", "manager", None)


def from_event(ticket: Ticket, event: TicketEvent) -> list[Notification]:
    kind = event.kind
    if kind == EventKind.CREATED:
        return [_requester(ticket, event, "ticket_created")]
    if kind == EventKind.APPROVAL_REQUESTED:
        return [_approval_needed(ticket, event)]
    if kind == EventKind.LEVEL_APPROVED:
        return [_approval_needed(ticket, event)]
    if kind == EventKind.APPROVAL_COMPLETED:
        return [_requester(ticket, event, "approved")]
    if kind == EventKind.REJECTED:
        return [_requester(ticket, event, "rejected")]
    if kind == EventKind.QUEUED:
        return [_queue(ticket, event, "queued")]
    if kind == EventKind.ASSIGNED:
        return [
            _make(ticket, event, "assigned", "specialist", event.subject_id),
            _requester(ticket, event, "assigned"),
        ]
    if kind == EventKind.REASSIGNED:
        return [
            _make(ticket, event, "assigned", "specialist", event.subject_id),
            _make(ticket, event, "reassigned", "specialist", event.previous_subject_id),
        ]
    if kind == EventKind.WORK_COMPLETED:
        return [_requester(ticket, event, "completed")]
    if kind in (EventKind.CLOSED, EventKind.AUTO_CLOSED):
        return [_requester(ticket, event, "closed")]
    if kind == EventKind.CANCELLED:
        result = [_requester(ticket, event, "cancelled")]
        if ticket.assigned_to_id:
            result.append(_make(ticket, event, "cancelled", "specialist", ticket.assigned_to_id))
        return result
    if kind == EventKind.REOPENED:
        return [_queue(ticket, event, "reopened")]
    return []


def from_message(ticket: Ticket, message: TicketMessage) -> list[Notification]:
    """Tell the other side of the conversation that a message arrived."""
    if message.sender_id == ticket.requester_id:
        if not ticket.assigned_to_id:
            return []
        role, recipient_id = "specialist", ticket.assigned_to_id
    else:
        role, recipient_id = "requester", ticket.requester_id
    payload = _base_payload(ticket)
    payload["sender"] = message.sender_name
    return [
        Notification(
            event_type="message_added",
            recipient_role=role,
            recipient_id=recipient_id,
            ticket_id=ticket.id,
            ticket_number=ticket.ticket_number,
            source_id=message.id,
            payload=payload,
        )
    ]


def build_notifications(
    ticket: Ticket,
    events: list[TicketEvent],
    messages: list[TicketMessage] | None = None,
) -> list[Notification]:
    result: list[Notification] = []
    for event in events:
        result.extend(n for n in from_event(ticket, event) if n.recipient_id or n.recipient_role != "specialist")
    for message in messages or []:
        result.extend(from_message(ticket, message))
    return result
