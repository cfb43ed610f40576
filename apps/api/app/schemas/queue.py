from pydantic import BaseModel, Field

from ..core.ticket_rules import Module


class QueueOut(BaseModel):
    module: Module
    queue: str
    member_count: int = 0


class QueueMemberIn(BaseModel):
    emp_no: str = Field(min_length=1, max_length=50)
