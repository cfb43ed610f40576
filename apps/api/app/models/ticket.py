from datetime import datetime

from sqlalchemy.orm import Mapped, mapped_column, relationship, validates
from sqlalchemy import Boolean, String, Text, Integer, DateTime, ForeignKey, UniqueConstraint, func

from ..core.ticket_rules import (
    ApprovalDecision,
    ApprovalLevel,
    Module,
    ProgressStatus,
    TicketStatus,
    Urgency,
    ClosingReason,
)
from ..core.timeutil import utcnow
from .columns import value_enum
from .event import TicketEvent
from .message import TicketMessage
from .user import Base


class Ticket(Base):
    __tablename__ = "tickets"

    id: Mapped[int] = mapped_column(primary_key=True)
    ticket_number: Mapped[str | None] = mapped_column(String(20), unique=True, nullable=True, index=True)

    # 분류 - module 은 생성 이후 변경 불가
    module: Mapped[Module] = mapped_column(value_enum(Module, 20))
    sub_category: Mapped[str] = mapped_column(String(100))
    subject: Mapped[str] = mapped_column(String(200))
    description: Mapped[str] = mapped_column(Text)
    urgency: Mapped[Urgency] = mapped_column(value_enum(Urgency, 16), default=Urgency.MEDIUM)

    # 요청 시점의 요청자 정보 스냅샷
    requester_id: Mapped[str] = mapped_column(String(50), index=True)
    requester_name: Mapped[str] = mapped_column(String(100))
    requester_email: Mapped[str] = mapped_column(String(255))
    requester_department: Mapped[str | None] = mapped_column(String(100), nullable=True)

    status: Mapped[TicketStatus] = mapped_column(value_enum(TicketStatus), default=TicketStatus.SUBMITTED, index=True)

    # Approval block
    requires_approval: Mapped[bool] = mapped_column(Boolean, default=False)
    approval_level_count: Mapped[int] = mapped_column(Integer, default=0)
    current_approval_level: Mapped[ApprovalLevel] = mapped_column(
        value_enum(ApprovalLevel, 8), default=ApprovalLevel.NONE
    )
    approval_completed: Mapped[bool] = mapped_column(Boolean, default=False)

    # Routing block - approval_completed 전에는 항상 비어 있어야 한다
    routed_to: Mapped[str | None] = mapped_column(String(20), nullable=True, index=True)
    processing_queue: Mapped[str | None] = mapped_column(String(100), nullable=True)
    specialist_queue: Mapped[str | None] = mapped_column(String(100), nullable=True)
    routed_at: Mapped[datetime | None] = mapped_column(DateTime(timezone=True), nullable=True)

    # Assignment block
    assigned_to_id: Mapped[str | None] = mapped_column(String(50), nullable=True, index=True)
    assigned_to_name: Mapped[str | None] = mapped_column(String(100), nullable=True)
    assigned_at: Mapped[datetime | None] = mapped_column(DateTime(timezone=True), nullable=True)
    assigned_by: Mapped[str | None] = mapped_column(String(100), nullable=True)
    assignment_notes: Mapped[str | None] = mapped_column(Text, nullable=True)
    assignment_queue: Mapped[str | None] = mapped_column(String(100), nullable=True)

    # Progress / resolution
    progress_status: Mapped[ProgressStatus] = mapped_column(
        value_enum(ProgressStatus, 20), default=ProgressStatus.NOT_STARTED
    )
    progress_notes: Mapped[str | None] = mapped_column(Text, nullable=True)
    pause_reason: Mapped[str | None] = mapped_column(Text, nullable=True)
    resolved_by: Mapped[str | None] = mapped_column(String(100), nullable=True)
    resolved_at: Mapped[datetime | None] = mapped_column(DateTime(timezone=True), nullable=True)
    resolution_notes: Mapped[str | None] = mapped_column(Text, nullable=True)
    requires_user_confirmation: Mapped[bool] = mapped_column(Boolean, default=True)
    user_confirmed_at: Mapped[datetime | None] = mapped_column(DateTime(timezone=True), nullable=True)
    confirmation_feedback: Mapped[str | None] = mapped_column(Text, nullable=True)

    # Closure
    closed_at: Mapped[datetime | None] = mapped_column(DateTime(timezone=True), nullable=True)
    closed_by: Mapped[str | None] = mapped_column(String(100), nullable=True)
    closing_note: Mapped[str | None] = mapped_column(Text, nullable=True)
    closing_reason: Mapped[ClosingReason | None] = mapped_column(value_enum(ClosingReason, 32), nullable=True)
    reopen_count: Mapped[int] = mapped_column(Integer, default=0, server_default="0")
    last_reopened_at: Mapped[datetime | None] = mapped_column(DateTime(timezone=True), nullable=True)

    # SLA block (overdue 여부는 조회 시 계산)
    approval_sla_hours: Mapped[int] = mapped_column(Integer, default=24)
    processing_sla_hours: Mapped[int] = mapped_column(Integer, default=48)
    auto_close_on_breach: Mapped[bool] = mapped_column(Boolean, default=False)
    submitted_at: Mapped[datetime | None] = mapped_column(DateTime(timezone=True), nullable=True)
    approval_deadline: Mapped[datetime | None] = mapped_column(DateTime(timezone=True), nullable=True)
    processing_deadline: Mapped[datetime | None] = mapped_column(DateTime(timezone=True), nullable=True)

    created_at: Mapped[datetime] = mapped_column(DateTime(timezone=True), default=utcnow, server_default=func.now())
    updated_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True), default=utcnow, server_default=func.now(), onupdate=utcnow
    )

    approval_levels: Mapped[list["TicketApprovalLevel"]] = relationship(
        back_populates="ticket",
        order_by="TicketApprovalLevel.id",
        cascade="all, delete-orphan",
    )
    events: Mapped[list[TicketEvent]] = relationship(
        back_populates="ticket",
        order_by="TicketEvent.id",
        cascade="all, delete-orphan",
    )
    messages: Mapped[list[TicketMessage]] = relationship(
        back_populates="ticket",
        order_by="TicketMessage.id",
        cascade="all, delete-orphan",
    )

    @validates("module")
    def _validate_module(self, key, value):
        current = self.__dict__.get("module")
        if current is not None and Module(value) != current:
            raise ValueError("module is immutable once the ticket is created")
        return Module(value)

    def level_record(self, level: ApprovalLevel) -> "TicketApprovalLevel | None":
        for record in self.approval_levels:
            if record.level == level:
                return record
        return None


class TicketApprovalLevel(Base):
    __tablename__ = "ticket_approval_levels"
    __table_args__ = (
        UniqueConstraint("ticket_id", "level", name="uq_ticket_approval_levels_ticket_level"),
    )

    id: Mapped[int] = mapped_column(primary_key=True)
    ticket_id: Mapped[int] = mapped_column(Integer, ForeignKey("tickets.id", ondelete="CASCADE"), index=True)
    level: Mapped[ApprovalLevel] = mapped_column(value_enum(ApprovalLevel, 8))
    approver_id: Mapped[str | None] = mapped_column(String(50), nullable=True)
    approver_name: Mapped[str | None] = mapped_column(String(100), nullable=True)
    approver_email: Mapped[str | None] = mapped_column(String(255), nullable=True)
    decision: Mapped[ApprovalDecision] = mapped_column(
        value_enum(ApprovalDecision, 16), default=ApprovalDecision.PENDING
    )
    decided_by: Mapped[str | None] = mapped_column(String(100), nullable=True)
    remarks: Mapped[str | None] = mapped_column(Text, nullable=True)
    opened_at: Mapped[datetime] = mapped_column(DateTime(timezone=True), default=utcnow)
    decided_at: Mapped[datetime | None] = mapped_column(DateTime(timezone=True), nullable=True)

    ticket: Mapped[Ticket] = relationship(back_populates="approval_levels")
