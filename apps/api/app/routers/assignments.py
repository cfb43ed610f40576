from fastapi import APIRouter, Depends
from sqlalchemy.orm import Session

from ..db import get_session
from ..core.actor import Actor
from ..core.current_user import get_current_actor, require_roles
from ..core.errors import ValidationFailed
from ..schemas.ticket import TicketOut
from ..schemas.workflow import AssignIn, ReassignIn
from ..services import assignment_service, directory_service
from ..services.ticket_commands import ticket_command

router = APIRouter(tags=["assignments"])


def _specialist_name(session: Session, specialist_id: str, given: str | None) -> str:
    entry = directory_service.find_user(session, specialist_id)
    if entry is None and not given:
        raise ValidationFailed(f"Specialist {specialist_id} not found in the directory")
    return given or entry.name


@router.post("/tickets/{ticket_id}/assign", response_model=TicketOut)
def assign_ticket(
    ticket_id: int,
    payload: AssignIn,
    session: Session = Depends(get_session),
    actor: Actor = Depends(get_current_actor),
):
    require_roles(actor, {"specialist"})
    name = _specialist_name(session, payload.specialist_id, payload.specialist_name)
    with ticket_command(session, ticket_id, actor, "assign") as ctx:
        assignment_service.assign_to_specialist(
            session, ctx.ticket, payload.specialist_id, name, payload.queue, actor, payload.notes
        )
    return ctx.ticket


@router.post("/tickets/{ticket_id}/reassign", response_model=TicketOut)
def reassign_ticket(
    ticket_id: int,
    payload: ReassignIn,
    session: Session = Depends(get_session),
    actor: Actor = Depends(get_current_actor),
):
    require_roles(actor, {"specialist"})
    name = _specialist_name(session, payload.specialist_id, payload.specialist_name)
    with ticket_command(session, ticket_id, actor, "reassign") as ctx:
        assignment_service.reassign(session, ctx.ticket, payload.specialist_id, name, payload.reason, actor)
    return ctx.ticket
