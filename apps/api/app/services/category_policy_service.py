from __future__ import annotations

from dataclasses import dataclass
import logging

from sqlalchemy import func, select
from sqlalchemy.orm import Session, selectinload

from ..core.config import settings
from ..core.errors import PolicyNotFound
from ..core.ticket_rules import APPROVAL_LEVELS, ApprovalLevel, Module
from ..models.category_policy import CategoryPolicy

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class ResolvedPolicy:
    module: Module
    sub_category: str
    requires_approval: bool
    processing_queue: str
    specialist_queue: str
    requires_user_confirmation: bool
    auto_close_on_breach: bool
    approval_sla_hours: int
    processing_sla_hours: int
    # level -> approver emp_no, 설정된 레벨만 포함
    approvers: dict[ApprovalLevel, str]

    @property
    def level_count(self) -> int:
        """Number of approval levels a ticket walks under this policy.

        Levels are enabled contiguously from L1; a gap ends the chain. A policy
        that requires approval but names no approver still gets one level,
        decided by the requester's manager.
        """
        if not self.requires_approval:
            return 0
        count = 0
        for level in APPROVAL_LEVELS:
            if level not in self.approvers:
                break
            count += 1
        return max(count, 1)


def _normalize(sub_category: str) -> str:
    return (sub_category or "").strip().lower()


def _find_policy(session: Session, module: Module, sub_category: str) -> CategoryPolicy | None:
    stmt = (
        select(CategoryPolicy)
        .options(selectinload(CategoryPolicy.approvers))
        .where(CategoryPolicy.module == module)
        .where(func.lower(CategoryPolicy.sub_category) == _normalize(sub_category))
        .where(CategoryPolicy.is_active.is_(True))
    )
    return session.scalars(stmt).first()


def to_resolved(policy: CategoryPolicy) -> ResolvedPolicy:
    return ResolvedPolicy(
        module=policy.module,
        sub_category=policy.sub_category,
        requires_approval=bool(policy.requires_approval),
        processing_queue=policy.processing_queue,
        specialist_queue=policy.specialist_queue,
        requires_user_confirmation=bool(policy.requires_user_confirmation),
        auto_close_on_breach=bool(policy.auto_close_on_breach),
        approval_sla_hours=policy.approval_sla_hours or settings.default_approval_sla_hours,
        processing_sla_hours=policy.processing_sla_hours or settings.default_processing_sla_hours,
        approvers={a.level: a.emp_no for a in policy.approvers},
    )


def resolve(session: Session, module: Module | str, sub_category: str) -> ResolvedPolicy:
    module = Module(module)
    policy = _find_policy(session, module, sub_category)
    if policy is None:
        raise PolicyNotFound(module.value, sub_category)
    return to_resolved(policy)


def resolve_or_none(session: Session, module: Module | str, sub_category: str) -> ResolvedPolicy | None:
    try:
        return resolve(session, module, sub_category)
    except PolicyNotFound:
        logger.warning("카테고리 정책 없음, 승인 없이 접수합니다. module=%s sub_category=%s", module, sub_category)
        return None


def queue_exists(session: Session, module: Module, queue: str) -> bool:
    """True when an active policy of ``module`` sends work to ``queue``."""
    stmt = (
        select(CategoryPolicy.id)
        .where(CategoryPolicy.module == module)
        .where(CategoryPolicy.specialist_queue == queue)
        .where(CategoryPolicy.is_active.is_(True))
        .limit(1)
    )
    return session.execute(stmt).first() is not None


def list_queues(session: Session, module: Module | None = None) -> list[tuple[Module, str]]:
    stmt = (
        select(CategoryPolicy.module, CategoryPolicy.specialist_queue)
        .where(CategoryPolicy.is_active.is_(True))
        .distinct()
        .order_by(CategoryPolicy.module, CategoryPolicy.specialist_queue)
    )
    if module is not None:
        stmt = stmt.where(CategoryPolicy.module == module)
    return [(row[0], row[1]) for row in session.execute(stmt).all()]
