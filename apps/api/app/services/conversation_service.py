from __future__ import annotations

from sqlalchemy.orm import Session

from ..core.actor import Actor
from ..core.errors import InvalidTransition, ValidationFailed
from ..core.ticket_rules import accepts_messages
from ..models.message import TicketMessage
from ..models.ticket import Ticket
from .history import post_message

MAX_ATTACHMENTS = 10


def add_message(
    session: Session,
    ticket: Ticket,
    actor: Actor,
    text: str,
    attachments: list[dict] | None = None,
) -> TicketMessage:
    if not accepts_messages(ticket.status):
        raise InvalidTransition("post a message on", ticket.status)
    text = (text or "").strip()
    if not text:
        raise ValidationFailed("Message text is required")
    attachments = list(attachments or [])
    if len(attachments) > MAX_ATTACHMENTS:
        raise ValidationFailed(f"At most {MAX_ATTACHMENTS} attachments per message")
    return post_message(ticket, actor, text, attachments=attachments)
