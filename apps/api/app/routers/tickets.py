from fastapi import APIRouter, Depends, HTTPException, Query
from sqlalchemy.orm import Session
from sqlalchemy import and_, desc, or_, select

from ..db import get_session
from ..core.actor import Actor
from ..core.current_user import get_current_actor, get_current_user, is_staff, require_roles
from ..core.errors import TicketNotFound
from ..core.ticket_rules import ApprovalDecision, Module, TicketStatus
from ..models.ticket import Ticket, TicketApprovalLevel
from ..models.user import User
from ..schemas.event import EventOut
from ..schemas.message import MessageOut
from ..schemas.ticket import ApprovalLevelOut, RouteOut, TicketCreateIn, TicketOut
from ..schemas.ticket_detail import TicketDetailOut
from ..schemas.timeline import SlaOut, TimelineStepOut
from ..schemas.workflow import CancelIn
from ..services import closure_service, intake_service, routing_service, sla_service, timeline_service
from ..services.ticket_cache import ticket_list_cache
from ..services.ticket_commands import ticket_command

router = APIRouter(prefix="/tickets", tags=["tickets"])


def get_ticket_or_404(session: Session, ticket_id: int) -> Ticket:
    t = session.get(Ticket, ticket_id)
    if not t:
        raise TicketNotFound(ticket_id)
    return t


def can_view(actor: Actor, ticket: Ticket) -> bool:
    if is_staff(actor) or actor.role == "manager":
        return True
    if actor.id in (ticket.requester_id, ticket.assigned_to_id):
        return True
    return any(level.approver_id == actor.id for level in ticket.approval_levels)


def assert_access(actor: Actor, ticket: Ticket) -> None:
    if not can_view(actor, ticket):
        raise HTTPException(status_code=403, detail="Forbidden")


@router.post("", response_model=TicketOut)
def create_ticket(
    payload: TicketCreateIn,
    session: Session = Depends(get_session),
    user: User = Depends(get_current_user),
):
    actor = Actor.from_user(user)
    return intake_service.create_ticket(
        session,
        module=payload.module,
        sub_category=payload.sub_category,
        subject=payload.subject,
        description=payload.description,
        urgency=payload.urgency,
        requester_id=user.emp_no,
        requester_name=actor.name,
        requester_email=payload.requester_email or user.email or "",
        department=payload.department or user.department,
        actor=actor,
    )


@router.get("", response_model=list[TicketOut])
def list_tickets(
    session: Session = Depends(get_session),
    actor: Actor = Depends(get_current_actor),
    scope: str = Query(default="mine"),
    status: TicketStatus | None = Query(default=None),
    module: Module | None = Query(default=None),
    queue: str | None = Query(default=None),
    unrouted: bool = Query(default=False),
    limit: int = Query(default=100, ge=1, le=1000),
    offset: int = Query(default=0, ge=0),
):
    if scope not in ("mine", "assigned", "approvals", "all"):
        raise HTTPException(status_code=422, detail=f"Invalid scope: {scope}")
    if scope == "all" or unrouted or queue:
        require_roles(actor, {"specialist"})

    def load() -> list[TicketOut]:
        stmt = select(Ticket)
        if scope == "mine":
            stmt = stmt.where(Ticket.requester_id == actor.id)
        elif scope == "assigned":
            stmt = stmt.where(Ticket.assigned_to_id == actor.id)
        elif scope == "approvals":
            stmt = stmt.join(
                TicketApprovalLevel,
                and_(
                    TicketApprovalLevel.ticket_id == Ticket.id,
                    TicketApprovalLevel.level == Ticket.current_approval_level,
                ),
            ).where(TicketApprovalLevel.decision == ApprovalDecision.PENDING)
            if not actor.is_admin:
                mine = TicketApprovalLevel.approver_id == actor.id
                if actor.role == "manager":
                    mine = or_(mine, TicketApprovalLevel.approver_id.is_(None))
                stmt = stmt.where(mine)
        if status is not None:
            stmt = stmt.where(Ticket.status == status)
        if module is not None:
            stmt = stmt.where(Ticket.module == module)
        if queue:
            stmt = stmt.where(Ticket.specialist_queue == queue)
        if unrouted:
            # 승인은 끝났지만 정책이 없어 라우팅되지 못한 티켓 (설정 누락)
            stmt = stmt.where(Ticket.approval_completed.is_(True)).where(Ticket.routed_to.is_(None))
        stmt = stmt.order_by(desc(Ticket.id)).limit(limit).offset(offset)
        return [TicketOut.model_validate(t) for t in session.scalars(stmt).all()]

    key = (actor.id, actor.role, scope, status, module, queue, unrouted, limit, offset)
    return ticket_list_cache.get_or_load(key, load)


@router.get("/{ticket_id}", response_model=TicketOut)
def get_ticket(
    ticket_id: int,
    session: Session = Depends(get_session),
    actor: Actor = Depends(get_current_actor),
):
    ticket = get_ticket_or_404(session, ticket_id)
    assert_access(actor, ticket)
    return ticket


@router.get("/{ticket_id}/detail", response_model=TicketDetailOut)
def get_ticket_detail(
    ticket_id: int,
    session: Session = Depends(get_session),
    actor: Actor = Depends(get_current_actor),
):
    ticket = get_ticket_or_404(session, ticket_id)
    assert_access(actor, ticket)
    events = list(ticket.events)
    levels = list(ticket.approval_levels)
    timeline = timeline_service.build_timeline(ticket, events, levels)
    return TicketDetailOut(
        ticket=TicketOut.model_validate(ticket),
        approval_levels=[ApprovalLevelOut.model_validate(level) for level in levels],
        events=[EventOut.model_validate(e) for e in events],
        messages=[MessageOut.model_validate(m) for m in ticket.messages],
        timeline=[TimelineStepOut.model_validate(step) for step in timeline],
        sla=SlaOut.from_snapshot(sla_service.evaluate(ticket)),
    )


@router.get("/{ticket_id}/events", response_model=list[EventOut])
def list_events(
    ticket_id: int,
    session: Session = Depends(get_session),
    actor: Actor = Depends(get_current_actor),
):
    ticket = get_ticket_or_404(session, ticket_id)
    assert_access(actor, ticket)
    return list(ticket.events)


@router.get("/{ticket_id}/timeline", response_model=list[TimelineStepOut])
def get_timeline(
    ticket_id: int,
    session: Session = Depends(get_session),
    actor: Actor = Depends(get_current_actor),
):
    ticket = get_ticket_or_404(session, ticket_id)
    assert_access(actor, ticket)
    return timeline_service.build_timeline(ticket)


@router.get("/{ticket_id}/sla", response_model=SlaOut)
def get_sla(
    ticket_id: int,
    session: Session = Depends(get_session),
    actor: Actor = Depends(get_current_actor),
):
    ticket = get_ticket_or_404(session, ticket_id)
    assert_access(actor, ticket)
    return SlaOut.from_snapshot(sla_service.evaluate(ticket))


@router.post("/{ticket_id}/route", response_model=RouteOut)
def route_ticket(
    ticket_id: int,
    session: Session = Depends(get_session),
    actor: Actor = Depends(get_current_actor),
):
    require_roles(actor, {"specialist"})
    with ticket_command(session, ticket_id, actor, "route") as ctx:
        info = routing_service.route(session, ctx.ticket, actor)
    return info


@router.post("/{ticket_id}/cancel", response_model=TicketOut)
def cancel_ticket(
    ticket_id: int,
    payload: CancelIn | None = None,
    session: Session = Depends(get_session),
    actor: Actor = Depends(get_current_actor),
):
    with ticket_command(session, ticket_id, actor, "cancel") as ctx:
        closure_service.cancel(session, ctx.ticket, actor, payload.reason if payload else None)
    return ctx.ticket
