from pydantic import BaseModel, Field
from datetime import datetime

from ..core.ticket_rules import ApprovalLevel, Module


class PolicyApproverIn(BaseModel):
    level: ApprovalLevel
    emp_no: str = Field(min_length=1, max_length=50)


class PolicyApproverOut(BaseModel):
    level: ApprovalLevel
    emp_no: str

    class Config:
        from_attributes = True


class CategoryPolicyOut(BaseModel):
    id: int
    module: Module
    sub_category: str
    requires_approval: bool
    processing_queue: str
    specialist_queue: str
    requires_user_confirmation: bool
    auto_close_on_breach: bool
    approval_sla_hours: int | None = None
    processing_sla_hours: int | None = None
    sort_order: int
    is_active: bool
    approvers: list[PolicyApproverOut] = Field(default_factory=list)
    updated_at: datetime | None = None

    class Config:
        from_attributes = True


class CategoryPolicyCreateIn(BaseModel):
    module: Module
    sub_category: str = Field(min_length=1, max_length=100)
    requires_approval: bool = False
    processing_queue: str = Field(min_length=1, max_length=100)
    specialist_queue: str = Field(min_length=1, max_length=100)
    requires_user_confirmation: bool = True
    auto_close_on_breach: bool = False
    approval_sla_hours: int | None = Field(default=None, ge=1)
    processing_sla_hours: int | None = Field(default=None, ge=1)
    sort_order: int = 999
    approvers: list[PolicyApproverIn] = Field(default_factory=list)


class CategoryPolicyUpdateIn(BaseModel):
    requires_approval: bool | None = None
    processing_queue: str | None = Field(default=None, min_length=1, max_length=100)
    specialist_queue: str | None = Field(default=None, min_length=1, max_length=100)
    requires_user_confirmation: bool | None = None
    auto_close_on_breach: bool | None = None
    approval_sla_hours: int | None = Field(default=None, ge=1)
    processing_sla_hours: int | None = Field(default=None, ge=1)
    sort_order: int | None = None
    is_active: bool | None = None
    approvers: list[PolicyApproverIn] | None = None
