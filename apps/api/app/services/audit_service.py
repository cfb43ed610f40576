from __future__ import annotations

from sqlalchemy.engine import Connection, Engine
from sqlalchemy.orm import Session

from ..core.actor import Actor
from ..core.config import settings
from ..models.audit_log import AuditLog
from ..models.event import EventKind, TicketEvent
from ..models.ticket import Ticket

AUDITED_FIELDS = (
    "status",
    "current_approval_level",
    "approval_completed",
    "routed_to",
    "specialist_queue",
    "assigned_to_id",
    "progress_status",
    "closing_reason",
    "reopen_count",
)

_CRITICAL_KINDS = {EventKind.AUTO_CLOSED}
_WARNING_KINDS = {
    EventKind.REJECTED,
    EventKind.CANCELLED,
    EventKind.REASSIGNED,
    EventKind.REOPENED,
}


def snapshot(ticket: Ticket) -> dict:
    result = {}
    for name in AUDITED_FIELDS:
        value = getattr(ticket, name, None)
        result[name] = value if value is None or isinstance(value, (bool, int)) else str(value)
    return result


def severity_for(events: list[TicketEvent]) -> str:
    kinds = {e.kind for e in events}
    if kinds & _CRITICAL_KINDS:
        return "critical"
    if kinds & _WARNING_KINDS:
        return "warning"
    return "info"


def write_audit(
    bind: Engine | Connection,
    *,
    actor: Actor,
    action: str,
    ticket: Ticket,
    before: dict | None,
    after: dict | None,
    severity: str = "info",
) -> None:
    if not settings.audit_enabled:
        return
    with Session(bind=bind) as session:
        session.add(
            AuditLog(
                ticket_id=ticket.id,
                ticket_number=ticket.ticket_number,
                actor_id=actor.id,
                actor_role=actor.role,
                action=action,
                before=before,
                after=after,
                severity=severity,
            )
        )
        session.commit()
