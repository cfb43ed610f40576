from fastapi import APIRouter, Depends
from sqlalchemy.orm import Session

from ..db import get_session
from ..core.actor import Actor
from ..core.current_user import get_current_actor
from ..schemas.message import MessageCreateIn, MessageOut
from ..services import conversation_service
from ..services.ticket_commands import ticket_command
from .tickets import assert_access, get_ticket_or_404

router = APIRouter(tags=["messages"])


@router.get("/tickets/{ticket_id}/messages", response_model=list[MessageOut])
def list_messages(
    ticket_id: int,
    session: Session = Depends(get_session),
    actor: Actor = Depends(get_current_actor),
):
    ticket = get_ticket_or_404(session, ticket_id)
    assert_access(actor, ticket)
    return list(ticket.messages)


@router.post("/tickets/{ticket_id}/messages", response_model=MessageOut)
def create_message(
    ticket_id: int,
    payload: MessageCreateIn,
    session: Session = Depends(get_session),
    actor: Actor = Depends(get_current_actor),
):
    with ticket_command(session, ticket_id, actor, "add_message") as ctx:
        assert_access(actor, ctx.ticket)
        ctx.notify_messages = True
        message = conversation_service.add_message(
            session,
            ctx.ticket,
            actor,
            payload.text,
            [a.model_dump() for a in payload.attachments],
        )
    return message
