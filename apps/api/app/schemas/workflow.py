from pydantic import BaseModel, Field

from ..core.ticket_rules import ApprovalDecision, ClosingReason, ProgressStatus


class ApprovalDecisionIn(BaseModel):
    decision: ApprovalDecision
    remarks: str | None = Field(default=None, max_length=2000)


class AssignIn(BaseModel):
    specialist_id: str = Field(min_length=1, max_length=50)
    specialist_name: str | None = Field(default=None, max_length=100)
    queue: str | None = Field(default=None, max_length=100)
    notes: str | None = Field(default=None, max_length=2000)


class ReassignIn(BaseModel):
    specialist_id: str = Field(min_length=1, max_length=50)
    specialist_name: str | None = Field(default=None, max_length=100)
    reason: str = Field(min_length=1, max_length=2000)


class PauseIn(BaseModel):
    reason: str = Field(min_length=1, max_length=2000)


class ResumeIn(BaseModel):
    notes: str | None = Field(default=None, max_length=2000)


class ProgressIn(BaseModel):
    progress_status: ProgressStatus
    notes: str | None = Field(default=None, max_length=5000)


class CompleteIn(BaseModel):
    notes: str = Field(min_length=1, max_length=5000)


class ConfirmIn(BaseModel):
    feedback: str | None = Field(default=None, max_length=2000)


class CloseIn(BaseModel):
    note: str | None = Field(default=None, max_length=2000)
    reason: ClosingReason | None = None


class CancelIn(BaseModel):
    reason: str | None = Field(default=None, max_length=2000)


class ReopenIn(BaseModel):
    reason: str = Field(min_length=1, max_length=2000)
