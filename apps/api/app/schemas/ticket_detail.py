from pydantic import BaseModel

from .ticket import ApprovalLevelOut, TicketOut
from .message import MessageOut
from .event import EventOut
from .timeline import SlaOut, TimelineStepOut


class TicketDetailOut(BaseModel):
    ticket: TicketOut
    approval_levels: list[ApprovalLevelOut]
    events: list[EventOut]
    messages: list[MessageOut]
    timeline: list[TimelineStepOut]
    sla: SlaOut
