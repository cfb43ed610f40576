from pydantic import BaseModel
from datetime import datetime

from ..core.ticket_rules import TicketStatus
from ..models.event import EventKind


class EventOut(BaseModel):
    id: int
    ticket_id: int
    kind: EventKind
    action: str
    actor_id: str
    actor_name: str
    actor_role: str | None = None
    previous_status: TicketStatus | None = None
    new_status: TicketStatus | None = None
    detail: str | None = None
    subject_id: str | None = None
    subject_name: str | None = None
    previous_subject_id: str | None = None
    previous_subject_name: str | None = None
    cycle: int
    created_at: datetime | None = None

    class Config:
        from_attributes = True
