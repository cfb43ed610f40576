from pydantic import BaseModel, Field
from datetime import datetime

from ..core.ticket_rules import (
    ApprovalDecision,
    ApprovalLevel,
    ClosingReason,
    Module,
    ProgressStatus,
    TicketStatus,
    Urgency,
)


class TicketCreateIn(BaseModel):
    module: Module
    sub_category: str = Field(min_length=1, max_length=100)
    subject: str = Field(min_length=5, max_length=200)
    description: str = Field(min_length=10)
    urgency: Urgency = Urgency.MEDIUM
    # 대리 접수가 아니면 로그인 사용자 정보로 채운다
    requester_email: str | None = None
    department: str | None = None


class ApprovalLevelOut(BaseModel):
    level: ApprovalLevel
    approver_id: str | None = None
    approver_name: str | None = None
    approver_email: str | None = None
    decision: ApprovalDecision
    decided_by: str | None = None
    remarks: str | None = None
    opened_at: datetime | None = None
    decided_at: datetime | None = None

    class Config:
        from_attributes = True


class TicketOut(BaseModel):
    id: int
    ticket_number: str | None
    module: Module
    sub_category: str
    subject: str
    description: str
    urgency: Urgency
    status: TicketStatus

    requester_id: str
    requester_name: str
    requester_email: str
    requester_department: str | None = None

    requires_approval: bool
    approval_level_count: int
    current_approval_level: ApprovalLevel
    approval_completed: bool

    routed_to: str | None = None
    processing_queue: str | None = None
    specialist_queue: str | None = None
    routed_at: datetime | None = None

    assigned_to_id: str | None = None
    assigned_to_name: str | None = None
    assigned_at: datetime | None = None
    assigned_by: str | None = None
    assignment_notes: str | None = None
    assignment_queue: str | None = None

    progress_status: ProgressStatus
    progress_notes: str | None = None
    pause_reason: str | None = None
    resolved_by: str | None = None
    resolved_at: datetime | None = None
    resolution_notes: str | None = None
    requires_user_confirmation: bool
    user_confirmed_at: datetime | None = None
    confirmation_feedback: str | None = None

    closed_at: datetime | None = None
    closed_by: str | None = None
    closing_note: str | None = None
    closing_reason: ClosingReason | None = None
    reopen_count: int = 0

    approval_sla_hours: int
    processing_sla_hours: int
    submitted_at: datetime | None = None
    approval_deadline: datetime | None = None
    processing_deadline: datetime | None = None

    created_at: datetime
    updated_at: datetime | None = None

    class Config:
        from_attributes = True


class RouteOut(BaseModel):
    routed_to: str
    processing_queue: str | None = None
    specialist_queue: str | None = None
    routed_at: datetime | None = None
    already_routed: bool = False

    class Config:
        from_attributes = True
