"""SLA clock.

Deadlines are pure functions of the ticket's timestamps and snapshotted SLA
hours. Nothing here writes to the ticket; overdue state is computed on read.
"""
from __future__ import annotations

from dataclasses import dataclass
from datetime import datetime, timedelta

from ..core.config import settings
from ..core.ticket_rules import PENDING_APPROVAL_STATUSES, PROCESSING_STATUSES
from ..core.timeutil import add_hours, as_utc, utcnow
from ..models.ticket import Ticket

PHASE_APPROVAL = "approval"
PHASE_PROCESSING = "processing"
PHASE_NONE = "none"

ON_TRACK = "On Track"
AT_RISK = "At Risk"
OVERDUE = "Overdue"


@dataclass(frozen=True)
class SlaSnapshot:
    phase: str
    deadline: datetime | None
    is_overdue: bool
    overdue_by: timedelta | None
    remaining: timedelta | None
    label: str | None
    approval_deadline: datetime | None
    processing_deadline: datetime | None


def approval_deadline(ticket: Ticket) -> datetime | None:
    if not ticket.requires_approval:
        return None
    return add_hours(ticket.submitted_at, ticket.approval_sla_hours)


def processing_deadline(ticket: Ticket) -> datetime | None:
    # 재오픈된 티켓은 재오픈 시점부터 처리 SLA를 다시 센다
    start = ticket.last_reopened_at or ticket.routed_at
    return add_hours(start, ticket.processing_sla_hours)


def active_phase(ticket: Ticket) -> str:
    if ticket.status in PENDING_APPROVAL_STATUSES:
        return PHASE_APPROVAL
    if ticket.status in PROCESSING_STATUSES and ticket.routed_at is not None:
        return PHASE_PROCESSING
    return PHASE_NONE


def status_label(remaining: timedelta | None) -> str | None:
    if remaining is None:
        return None
    if remaining < timedelta(0):
        return OVERDUE
    if remaining < timedelta(hours=settings.sla_at_risk_hours):
        return AT_RISK
    return ON_TRACK


def evaluate(ticket: Ticket, now: datetime | None = None) -> SlaSnapshot:
    now = as_utc(now) if now is not None else utcnow()
    approval = approval_deadline(ticket)
    processing = processing_deadline(ticket)
    phase = active_phase(ticket)

    deadline = {PHASE_APPROVAL: approval, PHASE_PROCESSING: processing}.get(phase)
    if deadline is None:
        return SlaSnapshot(phase, None, False, None, None, None, approval, processing)

    remaining = deadline - now
    overdue = remaining < timedelta(0)
    return SlaSnapshot(
        phase=phase,
        deadline=deadline,
        is_overdue=overdue,
        overdue_by=-remaining if overdue else None,
        remaining=remaining,
        label=status_label(remaining),
        approval_deadline=approval,
        processing_deadline=processing,
    )


def is_overdue(ticket: Ticket, now: datetime | None = None) -> bool:
    return evaluate(ticket, now).is_overdue
