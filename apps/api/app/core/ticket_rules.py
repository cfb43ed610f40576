from __future__ import annotations

from enum import Enum


class ValueEnum(str, Enum):
    def __str__(self) -> str:
        return self.value


class Module(ValueEnum):
    IT = "IT"
    FACILITIES = "Facilities"
    FINANCE = "Finance"


class Urgency(ValueEnum):
    LOW = "low"
    MEDIUM = "medium"
    HIGH = "high"
    CRITICAL = "critical"

    @property
    def rank(self) -> int:
        return _URGENCY_ORDER.index(self)


_URGENCY_ORDER = [Urgency.LOW, Urgency.MEDIUM, Urgency.HIGH, Urgency.CRITICAL]


class ApprovalLevel(ValueEnum):
    NONE = "NONE"
    L1 = "L1"
    L2 = "L2"
    L3 = "L3"

    @property
    def number(self) -> int:
        return 0 if self is ApprovalLevel.NONE else int(self.value[1])

    @classmethod
    def from_number(cls, number: int) -> "ApprovalLevel":
        if number == 0:
            return cls.NONE
        return cls(f"L{number}")


APPROVAL_LEVELS = (ApprovalLevel.L1, ApprovalLevel.L2, ApprovalLevel.L3)
MAX_APPROVAL_LEVELS = len(APPROVAL_LEVELS)


class ApprovalDecision(ValueEnum):
    PENDING = "Pending"
    APPROVED = "Approved"
    REJECTED = "Rejected"


class TicketStatus(ValueEnum):
    DRAFT = "Draft"
    SUBMITTED = "Submitted"
    PENDING_APPROVAL_L1 = "Pending Approval L1"
    PENDING_APPROVAL_L2 = "Pending Approval L2"
    PENDING_APPROVAL_L3 = "Pending Approval L3"
    APPROVED = "Approved"
    REJECTED = "Rejected"
    ROUTED = "Routed"
    IN_QUEUE = "In Queue"
    ASSIGNED = "Assigned"
    IN_PROGRESS = "In Progress"
    PAUSED = "Paused"
    WORK_COMPLETED = "Work Completed"
    AWAITING_USER_CONFIRMATION = "Awaiting User Confirmation"
    CONFIRMED = "Confirmed"
    CLOSED = "Closed"
    AUTO_CLOSED = "Auto-Closed"
    CANCELLED = "Cancelled"
    REOPENED = "Reopened"

    @classmethod
    def pending_approval(cls, level: ApprovalLevel) -> "TicketStatus":
        return {
            ApprovalLevel.L1: cls.PENDING_APPROVAL_L1,
            ApprovalLevel.L2: cls.PENDING_APPROVAL_L2,
            ApprovalLevel.L3: cls.PENDING_APPROVAL_L3,
        }[level]


class ProgressStatus(ValueEnum):
    NOT_STARTED = "Not Started"
    IN_PROGRESS = "In Progress"
    ON_HOLD = "On Hold"
    COMPLETED = "Completed"


class ClosingReason(ValueEnum):
    RESOLVED = "Resolved"
    USER_CONFIRMED = "User Confirmed"
    AUTO_CLOSED = "Auto-Closed"
    USER_CANCELLATION = "User Cancellation"


PENDING_APPROVAL_STATUSES = frozenset(
    {
        TicketStatus.PENDING_APPROVAL_L1,
        TicketStatus.PENDING_APPROVAL_L2,
        TicketStatus.PENDING_APPROVAL_L3,
    }
)

CLOSED_STATUSES = frozenset({TicketStatus.CLOSED, TicketStatus.AUTO_CLOSED})

# 더 이상 진행할 수 없는 상태 (reopen 은 CLOSED_STATUSES 에서만 허용)
TERMINAL_STATUSES = frozenset(
    {TicketStatus.CLOSED, TicketStatus.AUTO_CLOSED, TicketStatus.CANCELLED, TicketStatus.REJECTED}
)

NON_CANCELLABLE_STATUSES = frozenset(
    {
        TicketStatus.CANCELLED,
        TicketStatus.CLOSED,
        TicketStatus.AUTO_CLOSED,
        TicketStatus.CONFIRMED,
        TicketStatus.REJECTED,
    }
)

# assigned_to_id 가 채워져 있어야 하는 상태
ASSIGNED_STATUSES = frozenset(
    {
        TicketStatus.ASSIGNED,
        TicketStatus.IN_PROGRESS,
        TicketStatus.PAUSED,
        TicketStatus.WORK_COMPLETED,
        TicketStatus.AWAITING_USER_CONFIRMATION,
    }
)

# 담당자 기록을 보존해도 되는 상태
ASSIGNMENT_RETAINED_STATUSES = ASSIGNED_STATUSES | {
    TicketStatus.CONFIRMED,
    TicketStatus.CLOSED,
    TicketStatus.AUTO_CLOSED,
    TicketStatus.CANCELLED,
}

# SLA 처리 단계로 간주하는 상태 (auto-close 대상)
PROCESSING_STATUSES = frozenset(
    {
        TicketStatus.ROUTED,
        TicketStatus.IN_QUEUE,
        TicketStatus.ASSIGNED,
        TicketStatus.IN_PROGRESS,
        TicketStatus.PAUSED,
        TicketStatus.WORK_COMPLETED,
        TicketStatus.AWAITING_USER_CONFIRMATION,
        TicketStatus.REOPENED,
    }
)


def is_terminal(status: TicketStatus) -> bool:
    return status in TERMINAL_STATUSES


def can_cancel(status: TicketStatus) -> bool:
    return status not in NON_CANCELLABLE_STATUSES


def can_reopen(status: TicketStatus) -> bool:
    return status in CLOSED_STATUSES


def accepts_messages(status: TicketStatus) -> bool:
    return status not in {TicketStatus.CLOSED, TicketStatus.AUTO_CLOSED, TicketStatus.CANCELLED}
