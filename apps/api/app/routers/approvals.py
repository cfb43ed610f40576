from fastapi import APIRouter, Depends
from sqlalchemy.orm import Session

from ..db import get_session
from ..core.actor import Actor
from ..core.current_user import get_current_actor
from ..core.ticket_rules import ApprovalLevel
from ..schemas.ticket import ApprovalLevelOut, TicketOut
from ..schemas.workflow import ApprovalDecisionIn
from ..services import approval_service
from ..services.ticket_commands import ticket_command
from .tickets import assert_access, get_ticket_or_404

router = APIRouter(tags=["approvals"])


@router.get("/tickets/{ticket_id}/approvals", response_model=list[ApprovalLevelOut])
def list_approval_levels(
    ticket_id: int,
    session: Session = Depends(get_session),
    actor: Actor = Depends(get_current_actor),
):
    ticket = get_ticket_or_404(session, ticket_id)
    assert_access(actor, ticket)
    return list(ticket.approval_levels)


@router.post("/tickets/{ticket_id}/approvals/{level}", response_model=TicketOut)
def decide_approval(
    ticket_id: int,
    level: ApprovalLevel,
    payload: ApprovalDecisionIn,
    session: Session = Depends(get_session),
    actor: Actor = Depends(get_current_actor),
):
    with ticket_command(session, ticket_id, actor, "decide_approval") as ctx:
        approval_service.decide(session, ctx.ticket, level, actor, payload.decision, payload.remarks)
    return ctx.ticket
