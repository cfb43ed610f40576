from fastapi import APIRouter, Depends
from sqlalchemy.orm import Session

from ..db import get_session
from ..core.actor import Actor
from ..core.current_user import get_current_actor
from ..schemas.ticket import TicketOut
from ..schemas.workflow import CompleteIn, ConfirmIn, PauseIn, ProgressIn, ResumeIn
from ..services import progress_service
from ..services.ticket_commands import ticket_command

router = APIRouter(prefix="/tickets", tags=["progress"])


@router.post("/{ticket_id}/start", response_model=TicketOut)
def start_work(
    ticket_id: int,
    session: Session = Depends(get_session),
    actor: Actor = Depends(get_current_actor),
):
    with ticket_command(session, ticket_id, actor, "start_work") as ctx:
        progress_service.start_work(session, ctx.ticket, actor)
    return ctx.ticket


@router.post("/{ticket_id}/pause", response_model=TicketOut)
def pause_ticket(
    ticket_id: int,
    payload: PauseIn,
    session: Session = Depends(get_session),
    actor: Actor = Depends(get_current_actor),
):
    with ticket_command(session, ticket_id, actor, "pause") as ctx:
        progress_service.pause(session, ctx.ticket, payload.reason, actor)
    return ctx.ticket


@router.post("/{ticket_id}/resume", response_model=TicketOut)
def resume_ticket(
    ticket_id: int,
    payload: ResumeIn | None = None,
    session: Session = Depends(get_session),
    actor: Actor = Depends(get_current_actor),
):
    with ticket_command(session, ticket_id, actor, "resume") as ctx:
        progress_service.resume(session, ctx.ticket, actor, payload.notes if payload else None)
    return ctx.ticket


@router.post("/{ticket_id}/progress", response_model=TicketOut)
def update_progress(
    ticket_id: int,
    payload: ProgressIn,
    session: Session = Depends(get_session),
    actor: Actor = Depends(get_current_actor),
):
    with ticket_command(session, ticket_id, actor, "update_progress") as ctx:
        progress_service.update_progress(session, ctx.ticket, payload.progress_status, actor, payload.notes)
    return ctx.ticket


@router.post("/{ticket_id}/complete", response_model=TicketOut)
def complete_work(
    ticket_id: int,
    payload: CompleteIn,
    session: Session = Depends(get_session),
    actor: Actor = Depends(get_current_actor),
):
    with ticket_command(session, ticket_id, actor, "complete_work") as ctx:
        progress_service.complete_work(session, ctx.ticket, payload.notes, actor)
    return ctx.ticket


@router.post("/{ticket_id}/confirm", response_model=TicketOut)
def confirm_completion(
    ticket_id: int,
    payload: ConfirmIn | None = None,
    session: Session = Depends(get_session),
    actor: Actor = Depends(get_current_actor),
):
    with ticket_command(session, ticket_id, actor, "confirm") as ctx:
        progress_service.confirm_completion(session, ctx.ticket, actor, payload.feedback if payload else None)
    return ctx.ticket
