from __future__ import annotations

from dataclasses import dataclass
from datetime import datetime

from sqlalchemy.orm import Session

from ..core.actor import Actor
from ..core.errors import InvalidTransition, NotApprovable
from ..core.ticket_rules import TicketStatus
from ..core.timeutil import add_hours, utcnow
from ..models.event import EventKind
from ..models.ticket import Ticket
from . import category_policy_service
from .history import transition


@dataclass(frozen=True)
class RouteInfo:
    routed_to: str
    processing_queue: str | None
    specialist_queue: str | None
    routed_at: datetime | None
    already_routed: bool = False

    @classmethod
    def from_ticket(cls, ticket: Ticket, already_routed: bool = False) -> "RouteInfo":
        return cls(
            routed_to=ticket.routed_to,
            processing_queue=ticket.processing_queue,
            specialist_queue=ticket.specialist_queue,
            routed_at=ticket.routed_at,
            already_routed=already_routed,
        )


def route(session: Session, ticket: Ticket, actor: Actor) -> RouteInfo:
    """Send an approved ticket to its department queue.

    Calling it again on a routed ticket returns the existing route without
    touching history. A missing policy raises ``PolicyNotFound`` before
    anything changes, leaving the ticket approved and unrouted.
    """
    if not ticket.approval_completed:
        raise NotApprovable(ticket.ticket_number)
    if ticket.routed_to is not None:
        return RouteInfo.from_ticket(ticket, already_routed=True)
    if ticket.status != TicketStatus.APPROVED:
        raise InvalidTransition("route", ticket.status)

    policy = category_policy_service.resolve(session, ticket.module, ticket.sub_category)

    now = utcnow()
    ticket.routed_to = ticket.module.value
    ticket.processing_queue = policy.processing_queue
    ticket.specialist_queue = policy.specialist_queue
    ticket.routed_at = now
    ticket.processing_deadline = add_hours(now, ticket.processing_sla_hours)

    transition(
        ticket,
        TicketStatus.ROUTED,
        EventKind.ROUTED,
        actor,
        detail=f"Routed to {ticket.routed_to} department ({policy.processing_queue})",
    )
    transition(
        ticket,
        TicketStatus.IN_QUEUE,
        EventKind.QUEUED,
        actor,
        detail=f"Waiting in {policy.specialist_queue} queue",
    )
    return RouteInfo.from_ticket(ticket)
