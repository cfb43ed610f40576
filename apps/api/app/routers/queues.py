from fastapi import APIRouter, Depends, HTTPException, Query
from sqlalchemy.orm import Session
from sqlalchemy import func, select

from ..db import get_session
from ..core.actor import Actor
from ..core.current_user import get_current_actor, require_roles
from ..core.ticket_rules import Module
from ..models.queue_member import QueueMember
from ..models.user import User
from ..schemas.queue import QueueMemberIn, QueueOut
from ..schemas.user import SpecialistOut
from ..services import category_policy_service, directory_service

router = APIRouter(prefix="/queues", tags=["queues"])


def ensure_queue(session: Session, module: Module, queue: str) -> None:
    if not category_policy_service.queue_exists(session, module, queue):
        raise HTTPException(status_code=404, detail=f"Queue {module} / {queue} not found")


@router.get("", response_model=list[QueueOut])
def list_queues(
    module: Module | None = Query(default=None),
    session: Session = Depends(get_session),
    actor: Actor = Depends(get_current_actor),
):
    counts = dict(
        ((row[0], row[1]), row[2])
        for row in session.execute(
            select(QueueMember.module, QueueMember.queue, func.count(QueueMember.id)).group_by(
                QueueMember.module, QueueMember.queue
            )
        ).all()
    )
    return [
        QueueOut(module=m, queue=q, member_count=counts.get((m, q), 0))
        for m, q in category_policy_service.list_queues(session, module)
    ]


@router.get("/{module}/{queue}/specialists", response_model=list[SpecialistOut])
def list_specialists(
    module: Module,
    queue: str,
    session: Session = Depends(get_session),
    actor: Actor = Depends(get_current_actor),
):
    require_roles(actor, {"specialist"})
    ensure_queue(session, module, queue)
    return [
        SpecialistOut(
            id=s.entry.id,
            name=s.entry.name,
            email=s.entry.email,
            title=s.entry.title,
            department=s.entry.department,
            active_ticket_count=s.active_ticket_count,
        )
        for s in directory_service.get_queue_specialists(session, module, queue)
    ]


@router.post("/{module}/{queue}/members", response_model=list[SpecialistOut])
def add_member(
    module: Module,
    queue: str,
    payload: QueueMemberIn,
    session: Session = Depends(get_session),
    actor: Actor = Depends(get_current_actor),
):
    if not actor.is_admin:
        raise HTTPException(status_code=403, detail="Forbidden")
    ensure_queue(session, module, queue)
    user = session.scalar(select(User).where(User.emp_no == payload.emp_no))
    if not user:
        raise HTTPException(status_code=404, detail="User not found")
    if user.role not in ("specialist", "admin"):
        raise HTTPException(status_code=422, detail="Queue members must be specialists")
    if not directory_service.is_queue_member(session, module, queue, payload.emp_no):
        session.add(QueueMember(module=module, queue=queue, emp_no=payload.emp_no))
        session.commit()
    return list_specialists(module, queue, session, actor)


@router.delete("/{module}/{queue}/members/{emp_no}")
def remove_member(
    module: Module,
    queue: str,
    emp_no: str,
    session: Session = Depends(get_session),
    actor: Actor = Depends(get_current_actor),
):
    if not actor.is_admin:
        raise HTTPException(status_code=403, detail="Forbidden")
    member = session.scalar(
        select(QueueMember)
        .where(QueueMember.module == module)
        .where(QueueMember.queue == queue)
        .where(QueueMember.emp_no == emp_no)
    )
    if not member:
        raise HTTPException(status_code=404, detail="Queue member not found")
    session.delete(member)
    session.commit()
    return {"status": "ok"}
