from pydantic import BaseModel
from datetime import datetime

from ..services.sla_service import SlaSnapshot


class TimelineStepOut(BaseModel):
    id: str
    label: str
    status: str
    timestamp: datetime | None = None
    description: str | None = None

    class Config:
        from_attributes = True


class SlaOut(BaseModel):
    phase: str
    deadline: datetime | None = None
    is_overdue: bool = False
    overdue_by_hours: float | None = None
    remaining_hours: float | None = None
    label: str | None = None
    approval_deadline: datetime | None = None
    processing_deadline: datetime | None = None

    @classmethod
    def from_snapshot(cls, snap: SlaSnapshot) -> "SlaOut":
        def hours(value):
            return round(value.total_seconds() / 3600, 2) if value is not None else None

        return cls(
            phase=snap.phase,
            deadline=snap.deadline,
            is_overdue=snap.is_overdue,
            overdue_by_hours=hours(snap.overdue_by),
            remaining_hours=hours(snap.remaining),
            label=snap.label,
            approval_deadline=snap.approval_deadline,
            processing_deadline=snap.processing_deadline,
        )
