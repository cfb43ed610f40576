import logging
from fastapi import APIRouter, Depends, HTTPException, Query
from sqlalchemy.orm import Session
from sqlalchemy import select

from ..db import get_session
from ..core.actor import Actor
from ..core.current_user import get_current_actor
from ..core.ticket_rules import APPROVAL_LEVELS, Module
from ..models.category_policy import CategoryPolicy, PolicyApprover
from ..models.user import User
from ..schemas.category_policy import (
    CategoryPolicyCreateIn,
    CategoryPolicyOut,
    CategoryPolicyUpdateIn,
    PolicyApproverIn,
)
from ..services.ticket_cache import ticket_list_cache

router = APIRouter(prefix="/category-policies", tags=["category-policies"])

logger = logging.getLogger(__name__)


def require_admin(actor: Actor) -> None:
    if not actor.is_admin:
        raise HTTPException(status_code=403, detail="Forbidden")


def get_policy_or_404(session: Session, policy_id: int) -> CategoryPolicy:
    policy = session.get(CategoryPolicy, policy_id)
    if not policy:
        raise HTTPException(status_code=404, detail="Category policy not found")
    return policy


def _replace_approvers(session: Session, policy: CategoryPolicy, approvers: list[PolicyApproverIn]) -> None:
    levels = [a.level for a in approvers]
    if len(levels) != len(set(levels)):
        raise HTTPException(status_code=422, detail="Each approval level can have only one approver")
    if any(level not in APPROVAL_LEVELS for level in levels):
        raise HTTPException(status_code=422, detail="Approver level must be one of L1, L2, L3")

    emp_nos = {a.emp_no for a in approvers}
    if emp_nos:
        existing = set(session.scalars(select(User.emp_no).where(User.emp_no.in_(emp_nos))).all())
        missing = emp_nos - existing
        if missing:
            raise HTTPException(status_code=404, detail=f"Approver not found: {', '.join(sorted(missing))}")

    policy.approvers.clear()
    session.flush()
    for a in approvers:
        policy.approvers.append(PolicyApprover(level=a.level, emp_no=a.emp_no))


@router.get("", response_model=list[CategoryPolicyOut])
def list_policies(
    module: Module | None = Query(default=None),
    include_inactive: bool = Query(default=False),
    session: Session = Depends(get_session),
):
    stmt = select(CategoryPolicy).order_by(CategoryPolicy.module, CategoryPolicy.sort_order, CategoryPolicy.id)
    if module is not None:
        stmt = stmt.where(CategoryPolicy.module == module)
    if not include_inactive:
        stmt = stmt.where(CategoryPolicy.is_active.is_(True))
    return list(session.scalars(stmt).all())


@router.post("", response_model=CategoryPolicyOut)
def create_policy(
    payload: CategoryPolicyCreateIn,
    session: Session = Depends(get_session),
    actor: Actor = Depends(get_current_actor),
):
    require_admin(actor)
    exists = session.scalar(
        select(CategoryPolicy.id)
        .where(CategoryPolicy.module == payload.module)
        .where(CategoryPolicy.sub_category == payload.sub_category)
    )
    if exists:
        raise HTTPException(status_code=409, detail="Category policy already exists")

    policy = CategoryPolicy(
        module=payload.module,
        sub_category=payload.sub_category.strip(),
        requires_approval=payload.requires_approval,
        processing_queue=payload.processing_queue,
        specialist_queue=payload.specialist_queue,
        requires_user_confirmation=payload.requires_user_confirmation,
        auto_close_on_breach=payload.auto_close_on_breach,
        approval_sla_hours=payload.approval_sla_hours,
        processing_sla_hours=payload.processing_sla_hours,
        sort_order=payload.sort_order,
    )
    session.add(policy)
    _replace_approvers(session, policy, payload.approvers)
    session.commit()
    session.refresh(policy)
    logger.info("카테고리 정책 등록: %s / %s by %s", policy.module, policy.sub_category, actor.id)
    return policy


@router.patch("/{policy_id}", response_model=CategoryPolicyOut)
def update_policy(
    policy_id: int,
    payload: CategoryPolicyUpdateIn,
    session: Session = Depends(get_session),
    actor: Actor = Depends(get_current_actor),
):
    require_admin(actor)
    policy = get_policy_or_404(session, policy_id)
    changes = payload.model_dump(exclude_unset=True, exclude={"approvers"})
    for field, value in changes.items():
        if value is None and field not in ("approval_sla_hours", "processing_sla_hours"):
            continue
        setattr(policy, field, value)
    if payload.approvers is not None:
        _replace_approvers(session, policy, payload.approvers)
    session.commit()
    session.refresh(policy)
    # 티켓은 생성 시점 정책을 스냅샷으로 가지므로 기존 티켓에는 영향 없음
    ticket_list_cache.invalidate()
    return policy


@router.delete("/{policy_id}")
def deactivate_policy(
    policy_id: int,
    session: Session = Depends(get_session),
    actor: Actor = Depends(get_current_actor),
):
    require_admin(actor)
    policy = get_policy_or_404(session, policy_id)
    policy.is_active = False
    session.commit()
    return {"status": "ok"}
