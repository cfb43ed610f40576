from __future__ import annotations

from dataclasses import dataclass

from sqlalchemy import func, select
from sqlalchemy.orm import Session

from ..core.ticket_rules import ASSIGNED_STATUSES, ApprovalLevel, Module
from ..models.category_policy import CategoryPolicy, PolicyApprover
from ..models.queue_member import QueueMember
from ..models.ticket import Ticket
from ..models.user import User


@dataclass(frozen=True)
class DirectoryEntry:
    id: str
    name: str
    email: str | None = None
    title: str | None = None
    department: str | None = None

    @classmethod
    def from_user(cls, user: User) -> "DirectoryEntry":
        return cls(
            id=user.emp_no,
            name=user.name or user.emp_no,
            email=user.email,
            title=user.title,
            department=user.department,
        )


@dataclass(frozen=True)
class Specialist:
    entry: DirectoryEntry
    active_ticket_count: int


def find_user(session: Session, emp_no: str | None) -> DirectoryEntry | None:
    if not emp_no:
        return None
    user = session.scalars(
        select(User).where(User.emp_no == emp_no).where(User.is_active.is_(True))
    ).first()
    return DirectoryEntry.from_user(user) if user else None


def get_manager(session: Session, emp_no: str) -> DirectoryEntry | None:
    user = session.scalars(select(User).where(User.emp_no == emp_no)).first()
    if not user or not user.manager_emp_no:
        return None
    return find_user(session, user.manager_emp_no)


def get_level_approver(session: Session, ticket: Ticket, level: ApprovalLevel) -> DirectoryEntry | None:
    """Approver configured on the ticket's policy for ``level``.

    L1 falls back to the requester's manager when the policy names nobody.
    """
    stmt = (
        select(PolicyApprover.emp_no)
        .join(CategoryPolicy, CategoryPolicy.id == PolicyApprover.policy_id)
        .where(CategoryPolicy.module == ticket.module)
        .where(func.lower(CategoryPolicy.sub_category) == ticket.sub_category.strip().lower())
        .where(PolicyApprover.level == level)
    )
    emp_no = session.scalars(stmt).first()
    approver = find_user(session, emp_no)
    if approver is None and level == ApprovalLevel.L1:
        approver = get_manager(session, ticket.requester_id)
    return approver


def active_ticket_count(session: Session, emp_no: str) -> int:
    stmt = (
        select(func.count(Ticket.id))
        .where(Ticket.assigned_to_id == emp_no)
        .where(Ticket.status.in_(list(ASSIGNED_STATUSES)))
    )
    return int(session.scalar(stmt) or 0)


def get_queue_specialists(session: Session, module: Module, queue: str) -> list[Specialist]:
    stmt = (
        select(User)
        .join(QueueMember, QueueMember.emp_no == User.emp_no)
        .where(QueueMember.module == module)
        .where(QueueMember.queue == queue)
        .where(User.is_active.is_(True))
        .order_by(User.name, User.emp_no)
    )
    users = list(session.scalars(stmt).all())
    return [Specialist(DirectoryEntry.from_user(u), active_ticket_count(session, u.emp_no)) for u in users]


def is_queue_member(session: Session, module: Module, queue: str, emp_no: str) -> bool:
    stmt = (
        select(QueueMember.id)
        .where(QueueMember.module == module)
        .where(QueueMember.queue == queue)
        .where(QueueMember.emp_no == emp_no)
        .limit(1)
    )
    return session.execute(stmt).first() is not None
