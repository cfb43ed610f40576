from __future__ import annotations

from contextlib import contextmanager
from dataclasses import dataclass
import logging
from typing import Iterator

from sqlalchemy import select
from sqlalchemy.orm import Session

from ..core.actor import Actor
from ..core.errors import TicketNotFound
from ..core.ticket_lock import ticket_lock
from ..models.event import TicketEvent
from ..models.message import TicketMessage
from ..models.ticket import Ticket
from . import audit_service, notification_service
from .notification_events import build_notifications
from .ticket_cache import ticket_list_cache

logger = logging.getLogger(__name__)


@dataclass
class CommandContext:
    session: Session
    ticket: Ticket
    actor: Actor
    action: str
    before: dict | None = None
    event_mark: int = 0
    message_mark: int = 0
    notify_messages: bool = False

    @property
    def new_events(self) -> list[TicketEvent]:
        return list(self.ticket.events[self.event_mark:])

    @property
    def new_messages(self) -> list[TicketMessage]:
        return list(self.ticket.messages[self.message_mark:])


def load_ticket(session: Session, ticket_id: int, *, for_update: bool = False) -> Ticket:
    stmt = select(Ticket).where(Ticket.id == ticket_id)
    if for_update:
        stmt = stmt.with_for_update().execution_options(populate_existing=True)
    ticket = session.scalars(stmt).first()
    if ticket is None:
        raise TicketNotFound(ticket_id)
    return ticket


def begin(session: Session, ticket: Ticket, actor: Actor, action: str) -> CommandContext:
    return CommandContext(
        session=session,
        ticket=ticket,
        actor=actor,
        action=action,
        before=audit_service.snapshot(ticket) if ticket.id is not None else None,
        event_mark=len(ticket.events),
        message_mark=len(ticket.messages),
    )


@contextmanager
def ticket_command(session: Session, ticket_id: int, actor: Actor, action: str) -> Iterator[CommandContext]:
    """Run one workflow command on a ticket as a single transaction.

    The ticket is locked in-process and loaded ``FOR UPDATE``. The body mutates
    ``ctx.ticket``; on success everything is committed together and the
    post-commit effects run, on any error the whole command is rolled back.
    """
    with ticket_lock(ticket_id):
        try:
            ticket = load_ticket(session, ticket_id, for_update=True)
            ctx = begin(session, ticket, actor, action)
            yield ctx
            session.commit()
        except Exception:
            session.rollback()
            raise
    after_commit(ctx)


def after_commit(ctx: CommandContext) -> None:
    """Best-effort side effects; failures are logged and never undo the command."""
    ticket = ctx.ticket
    events = ctx.new_events
    if not events and not ctx.new_messages:
        return
    logger.info(
        "티켓 명령 완료: %s ticket=%s status=%s actor=%s",
        ctx.action,
        ticket.ticket_number,
        ticket.status,
        ctx.actor.id,
    )
    ticket_list_cache.invalidate()

    bind = ctx.session.get_bind()
    try:
        messages = ctx.new_messages if ctx.notify_messages else []
        notification_service.emit(bind, build_notifications(ticket, events, messages))
    except Exception:
        logger.exception("failed to emit notification (ticket_id=%s)", ticket.id)

    try:
        audit_service.write_audit(
            bind,
            actor=ctx.actor,
            action=ctx.action,
            ticket=ticket,
            before=ctx.before,
            after=audit_service.snapshot(ticket),
            severity=audit_service.severity_for(events),
        )
    except Exception:
        logger.exception("failed to write audit log (ticket_id=%s)", ticket.id)
