from datetime import datetime

from sqlalchemy.orm import Mapped, mapped_column, relationship
from sqlalchemy import Integer, String, DateTime, ForeignKey, Text

from ..core.ticket_rules import TicketStatus, ValueEnum
from ..core.timeutil import utcnow
from .columns import value_enum
from .user import Base


class EventKind(ValueEnum):
    CREATED = "created"
    APPROVAL_REQUESTED = "approval_requested"
    APPROVAL_BYPASSED = "approval_bypassed"
    LEVEL_APPROVED = "level_approved"
    APPROVAL_COMPLETED = "approval_completed"
    REJECTED = "rejected"
    ROUTED = "routed"
    QUEUED = "queued"
    ASSIGNED = "assigned"
    REASSIGNED = "reassigned"
    ASSIGNMENT_CLEARED = "assignment_cleared"
    WORK_STARTED = "work_started"
    PAUSED = "paused"
    RESUMED = "resumed"
    PROGRESS_UPDATED = "progress_updated"
    WORK_COMPLETED = "work_completed"
    AWAITING_CONFIRMATION = "awaiting_confirmation"
    USER_CONFIRMED = "user_confirmed"
    CLOSED = "closed"
    AUTO_CLOSED = "auto_closed"
    CANCELLED = "cancelled"
    REOPENED = "reopened"


# 화면/감사 로그에 표시되는 기본 액션 라벨
EVENT_LABELS = {
    EventKind.CREATED: "Ticket Created",
    EventKind.APPROVAL_REQUESTED: "Approval Requested",
    EventKind.APPROVAL_BYPASSED: "Approval Not Required",
    EventKind.LEVEL_APPROVED: "Level Approved",
    EventKind.APPROVAL_COMPLETED: "Approval Completed",
    EventKind.REJECTED: "Rejected",
    EventKind.ROUTED: "Routed",
    EventKind.QUEUED: "In Queue",
    EventKind.ASSIGNED: "Assigned",
    EventKind.REASSIGNED: "Reassigned",
    EventKind.ASSIGNMENT_CLEARED: "Assignment Cleared for Reopen",
    EventKind.WORK_STARTED: "Work Started",
    EventKind.PAUSED: "Paused",
    EventKind.RESUMED: "Resumed",
    EventKind.PROGRESS_UPDATED: "Progress Updated",
    EventKind.WORK_COMPLETED: "Work Completed",
    EventKind.AWAITING_CONFIRMATION: "Awaiting User Confirmation",
    EventKind.USER_CONFIRMED: "User Confirmed",
    EventKind.CLOSED: "Closed",
    EventKind.AUTO_CLOSED: "Auto-Closed",
    EventKind.CANCELLED: "Cancelled",
    EventKind.REOPENED: "Reopened",
}


class TicketEvent(Base):
    """Append-only history row. Never updated or deleted once written."""

    __tablename__ = "ticket_events"

    id: Mapped[int] = mapped_column(primary_key=True)

    ticket_id: Mapped[int] = mapped_column(
        Integer, ForeignKey("tickets.id", ondelete="CASCADE"), index=True
    )
    kind: Mapped[EventKind] = mapped_column(value_enum(EventKind, 32))
    action: Mapped[str] = mapped_column(String(64))

    actor_id: Mapped[str] = mapped_column(String(50))
    actor_name: Mapped[str] = mapped_column(String(100))
    actor_role: Mapped[str | None] = mapped_column(String(32), nullable=True)

    # 변경 전/후 상태
    previous_status: Mapped[TicketStatus | None] = mapped_column(value_enum(TicketStatus), nullable=True)
    new_status: Mapped[TicketStatus | None] = mapped_column(value_enum(TicketStatus), nullable=True)

    # 메모(선택)
    detail: Mapped[str | None] = mapped_column(Text, nullable=True)
    # 담당자 변경 시 이전/이후 담당자 (재오픈 이후 타임라인 복원용)
    subject_id: Mapped[str | None] = mapped_column(String(50), nullable=True)
    subject_name: Mapped[str | None] = mapped_column(String(100), nullable=True)
    previous_subject_id: Mapped[str | None] = mapped_column(String(50), nullable=True)
    previous_subject_name: Mapped[str | None] = mapped_column(String(100), nullable=True)

    cycle: Mapped[int] = mapped_column(Integer, default=1)

    created_at: Mapped[datetime] = mapped_column(DateTime(timezone=True), default=utcnow)

    ticket = relationship("Ticket", back_populates="events")
