"""Rebuild the user-facing progress timeline from the typed history log.

The timeline is derived on every read and never stored. Work cycles are split
at each REOPENED event: finished cycles are rendered with ordinals
("Assigned (1st)", "Closed (1st)") followed by their Reopened step, and the
cycle after the last reopen reflects the live state of the ticket.
"""
from __future__ import annotations

from dataclasses import dataclass
from datetime import datetime

from ..core.ticket_rules import PENDING_APPROVAL_STATUSES, ApprovalDecision, TicketStatus
from ..models.event import EventKind, TicketEvent
from ..models.ticket import Ticket, TicketApprovalLevel

COMPLETED = "completed"
ACTIVE = "active"
PENDING = "pending"
REJECTED = "rejected"

ASSIGNMENT_KINDS = {EventKind.ASSIGNED, EventKind.REASSIGNED}
WORK_KINDS = {EventKind.WORK_STARTED, EventKind.RESUMED, EventKind.PROGRESS_UPDATED, EventKind.WORK_COMPLETED}
CLOSE_KINDS = {EventKind.CLOSED, EventKind.AUTO_CLOSED}
WORKING_STATUSES = {TicketStatus.IN_PROGRESS, TicketStatus.PAUSED}
QUEUE_STATUSES = {TicketStatus.APPROVED, TicketStatus.ROUTED, TicketStatus.IN_QUEUE}


@dataclass
class TimelineStep:
    id: str
    label: str
    status: str
    timestamp: datetime | None = None
    description: str | None = None


def ordinal(n: int) -> str:
    if 10 <= n % 100 <= 20:
        suffix = "th"
    else:
        suffix = {1: "st", 2: "nd", 3: "rd"}.get(n % 10, "th")
    return f"{n}{suffix}"


def _last(events: list[TicketEvent], kinds: set[EventKind]) -> TicketEvent | None:
    for event in reversed(events):
        if event.kind in kinds:
            return event
    return None


def _specialist_fallback(ticket: Ticket) -> str:
    return f"{ticket.module} specialist"


def split_cycles(events: list[TicketEvent]) -> tuple[list[list[TicketEvent]], list[TicketEvent]]:
    """Split history at REOPENED events.

    Returns ``(cycles, reopen_events)`` where ``cycles`` has one more entry than
    ``reopen_events``; the last cycle is the live one.
    """
    cycles: list[list[TicketEvent]] = [[]]
    reopens: list[TicketEvent] = []
    for event in events:
        if event.kind == EventKind.REOPENED:
            reopens.append(event)
            cycles.append([])
        else:
            cycles[-1].append(event)
    return cycles, reopens


def _approval_steps(ticket: Ticket, levels: list[TicketApprovalLevel]) -> list[TimelineStep]:
    steps = []
    for record in sorted(levels, key=lambda r: r.level.number):
        approver = record.approver_name or "manager"
        if record.decision == ApprovalDecision.APPROVED:
            status = COMPLETED
            description = f"Approved by {record.decided_by or approver}"
        elif record.decision == ApprovalDecision.REJECTED:
            status = REJECTED
            description = f"Rejected by {record.decided_by or approver}"
            if record.remarks:
                description = f"{description}: {record.remarks}"
        else:
            live = record.level == ticket.current_approval_level and ticket.status in PENDING_APPROVAL_STATUSES
            status = ACTIVE if live else PENDING
            description = f"Awaiting {approver} approval"
        steps.append(
            TimelineStep(
                id=f"approval-{record.level.value.lower()}",
                label=f"{record.level} Approval",
                status=status,
                timestamp=record.decided_at or record.opened_at,
                description=description,
            )
        )
    return steps


def _routed_step(ticket: Ticket, reopened: bool) -> TimelineStep:
    if ticket.routed_to is None:
        return TimelineStep(
            id="routed",
            label="Routed to Department",
            status=ACTIVE if ticket.status == TicketStatus.APPROVED else PENDING,
            description="Awaiting routing",
        )
    live = not reopened and ticket.status in QUEUE_STATUSES
    return TimelineStep(
        id="routed",
        label="Routed to Department",
        status=ACTIVE if live else COMPLETED,
        timestamp=ticket.routed_at,
        description=f"Routed to {ticket.routed_to} Department ({ticket.specialist_queue or '-'})",
    )


def _finished_cycle_steps(ticket: Ticket, number: int, events: list[TicketEvent]) -> list[TimelineStep]:
    nth = ordinal(number)
    kinds = {e.kind for e in events}
    steps = []

    assigned = _last(events, ASSIGNMENT_KINDS)
    cleared = _last(events, {EventKind.ASSIGNMENT_CLEARED})
    if assigned or cleared:
        name = (assigned.subject_name if assigned else None) or (
            cleared.previous_subject_name if cleared else None
        ) or _specialist_fallback(ticket)
        steps.append(
            TimelineStep(
                id=f"assigned-{number}",
                label=f"Assigned ({nth})",
                status=COMPLETED,
                timestamp=assigned.created_at if assigned else None,
                description=f"Was assigned to {name}",
            )
        )

    if kinds & WORK_KINDS:
        done = _last(events, {EventKind.WORK_COMPLETED})
        steps.append(
            TimelineStep(
                id=f"in-progress-{number}",
                label=f"In Progress ({nth})",
                status=COMPLETED,
                timestamp=done.created_at if done else None,
                description="Work was completed" if done else "Work was in progress",
            )
        )

    confirmed = _last(events, {EventKind.USER_CONFIRMED})
    if confirmed:
        steps.append(
            TimelineStep(
                id=f"confirmed-{number}",
                label=f"Confirmed ({nth})",
                status=COMPLETED,
                timestamp=confirmed.created_at,
                description=f"Was confirmed by {confirmed.actor_name}",
            )
        )

    closed = _last(events, CLOSE_KINDS)
    if closed:
        steps.append(
            TimelineStep(
                id=f"closed-{number}",
                label=f"Closed ({nth})",
                status=COMPLETED,
                timestamp=closed.created_at,
                description="Was closed, then reopened",
            )
        )
    return steps


def _live_steps(ticket: Ticket, events: list[TicketEvent], reopened: bool) -> list[TimelineStep]:
    kinds = {e.kind for e in events}
    status = ticket.status
    suffix = "-reopen" if reopened else ""
    steps = []

    assigned = _last(events, ASSIGNMENT_KINDS)
    if assigned or ticket.assigned_to_id:
        name = ticket.assigned_to_name or (assigned.subject_name if assigned else None) or _specialist_fallback(ticket)
        description = f"{'Reassigned' if reopened else 'Assigned'} to {name}"
        if ticket.assignment_notes:
            description = f"{description} - {ticket.assignment_notes}"
        steps.append(
            TimelineStep(
                id="reassigned" if reopened else "assigned",
                label="Reassigned" if reopened else "Assigned",
                status=ACTIVE if status == TicketStatus.ASSIGNED else COMPLETED,
                timestamp=ticket.assigned_at or (assigned.created_at if assigned else None),
                description=description,
            )
        )
    elif not reopened and status == TicketStatus.IN_QUEUE:
        steps.append(
            TimelineStep(id="assigned", label="Assigned", status=PENDING, description="Awaiting assignment")
        )
    elif reopened and status == TicketStatus.REOPENED:
        steps.append(
            TimelineStep(
                id="reassigned",
                label="Reassigned",
                status=PENDING,
                description=f"Awaiting {_specialist_fallback(ticket)}",
            )
        )

    if kinds & WORK_KINDS or status in WORKING_STATUSES:
        if status == TicketStatus.PAUSED:
            description = f"Paused: {ticket.pause_reason}" if ticket.pause_reason else "Paused"
        elif status == TicketStatus.IN_PROGRESS:
            description = "Work is ongoing"
        else:
            description = "Work completed"
        done = _last(events, {EventKind.WORK_COMPLETED})
        steps.append(
            TimelineStep(
                id=f"in-progress{suffix}",
                label="Work In Progress",
                status=ACTIVE if status in WORKING_STATUSES else COMPLETED,
                timestamp=done.created_at if done else ticket.resolved_at,
                description=description,
            )
        )

    awaiting = _last(events, {EventKind.AWAITING_CONFIRMATION})
    if ticket.requires_user_confirmation and awaiting:
        confirmed = _last(events, {EventKind.USER_CONFIRMED})
        if confirmed:
            step_status = COMPLETED
            description = f"Confirmed by {confirmed.actor_name}"
        elif status == TicketStatus.AWAITING_USER_CONFIRMATION:
            step_status = ACTIVE
            description = f"Awaiting confirmation from {ticket.requester_name}"
        else:
            step_status = PENDING
            description = "Not confirmed by the requester"
        steps.append(
            TimelineStep(
                id=f"user-confirmation{suffix}",
                label="User Confirmation",
                status=step_status,
                timestamp=confirmed.created_at if confirmed else awaiting.created_at,
                description=description,
            )
        )

    closed = _last(events, CLOSE_KINDS)
    if closed:
        auto = closed.kind == EventKind.AUTO_CLOSED
        steps.append(
            TimelineStep(
                id=f"closed{suffix}",
                label="Auto-Closed" if auto else "Closed",
                status=COMPLETED,
                timestamp=closed.created_at,
                description=ticket.closing_note or closed.detail,
            )
        )
    return steps


def build_timeline(
    ticket: Ticket,
    events: list[TicketEvent] | None = None,
    approval_levels: list[TicketApprovalLevel] | None = None,
) -> list[TimelineStep]:
    events = list(ticket.events if events is None else events)
    levels = list(ticket.approval_levels if approval_levels is None else approval_levels)

    steps = [
        TimelineStep(
            id="submitted",
            label="Submitted",
            status=COMPLETED,
            timestamp=ticket.submitted_at or ticket.created_at,
            description=f"by {ticket.requester_name}",
        )
    ]

    if ticket.requires_approval:
        approval_steps = _approval_steps(ticket, levels)
        steps.extend(approval_steps)
        if any(s.status == REJECTED for s in approval_steps):
            return steps

    cancelled = _last(events, {EventKind.CANCELLED})

    if ticket.approval_completed:
        cycles, reopens = split_cycles(events)
        reopened = bool(reopens)
        steps.append(_routed_step(ticket, reopened))

        for number, (cycle_events, reopen_event) in enumerate(zip(cycles, reopens), start=1):
            steps.extend(_finished_cycle_steps(ticket, number, cycle_events))
            is_live = number == len(reopens) and ticket.status == TicketStatus.REOPENED
            steps.append(
                TimelineStep(
                    id=f"reopened-{number}",
                    label="Reopened",
                    status=ACTIVE if is_live else COMPLETED,
                    timestamp=reopen_event.created_at,
                    description=reopen_event.detail if is_live else "Ticket was reopened",
                )
            )

        steps.extend(_live_steps(ticket, cycles[-1], reopened))

    if cancelled is not None:
        steps.append(
            TimelineStep(
                id="cancelled",
                label="Cancelled",
                status=COMPLETED,
                timestamp=cancelled.created_at,
                description=ticket.closing_note or cancelled.detail,
            )
        )
    return steps
