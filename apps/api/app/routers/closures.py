from fastapi import APIRouter, Depends, HTTPException
from sqlalchemy.orm import Session

from ..db import get_session
from ..core.actor import Actor
from ..core.current_user import get_current_actor, is_staff
from ..core.ticket_rules import ClosingReason
from ..schemas.ticket import TicketOut
from ..schemas.workflow import CloseIn, ReopenIn
from ..services import closure_service
from ..services.ticket_commands import ticket_command

router = APIRouter(prefix="/tickets", tags=["closures"])


@router.post("/{ticket_id}/close", response_model=TicketOut)
def close_ticket(
    ticket_id: int,
    payload: CloseIn | None = None,
    session: Session = Depends(get_session),
    actor: Actor = Depends(get_current_actor),
):
    payload = payload or CloseIn()
    if payload.reason == ClosingReason.AUTO_CLOSED:
        # 자동 종료는 SLA 스윕만 수행한다
        raise HTTPException(status_code=403, detail="Auto-close is issued by the SLA sweep only")
    with ticket_command(session, ticket_id, actor, "close") as ctx:
        # 요청자는 본인 티켓만, 담당자/관리자는 전체
        if not is_staff(actor) and actor.id != ctx.ticket.requester_id:
            raise HTTPException(status_code=403, detail="Forbidden")
        closure_service.close(session, ctx.ticket, actor, payload.note, payload.reason)
    return ctx.ticket


@router.post("/{ticket_id}/reopen", response_model=TicketOut)
def reopen_ticket(
    ticket_id: int,
    payload: ReopenIn,
    session: Session = Depends(get_session),
    actor: Actor = Depends(get_current_actor),
):
    with ticket_command(session, ticket_id, actor, "reopen") as ctx:
        closure_service.reopen(session, ctx.ticket, payload.reason, actor)
    return ctx.ticket
