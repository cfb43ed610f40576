from pydantic import BaseModel


class SpecialistOut(BaseModel):
    id: str
    name: str
    email: str | None = None
    title: str | None = None
    department: str | None = None
    active_ticket_count: int = 0
