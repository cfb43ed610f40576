from sqlalchemy.orm import Session
from sqlalchemy import select
import os

from ..models.user import User
from ..models.category_policy import CategoryPolicy, PolicyApprover
from ..models.queue_member import QueueMember
from .ticket_rules import ApprovalLevel, Module

# (module, sub_category, requires_approval, processing_queue, specialist_queue)
POLICY_SEEDS = [
    (Module.IT, "Hardware", True, "IT", "Hardware Team"),
    (Module.IT, "Software", True, "IT", "Software Team"),
    (Module.IT, "Network / Connectivity", False, "IT", "Network Team"),
    (Module.IT, "Account / Login Problem", False, "IT", "Identity Team"),
    (Module.IT, "Access Request", True, "IT", "Security Team"),
    (Module.IT, "New Equipment Request", True, "IT", "Hardware Team"),
    (Module.IT, "Other", False, "IT", "General IT Support"),
    (Module.FACILITIES, "Maintenance Request", False, "Facilities", "Building Maintenance"),
    (Module.FACILITIES, "Repair Request", False, "Facilities", "Building Maintenance"),
    (Module.FACILITIES, "Cleaning", False, "Facilities", "Housekeeping"),
    (Module.FACILITIES, "Electrical Issue", False, "Facilities", "Electrical Team"),
    (Module.FACILITIES, "AC Temperature Issue", False, "Facilities", "HVAC Team"),
    (Module.FACILITIES, "Plumbing", False, "Facilities", "Plumbing Team"),
    (Module.FACILITIES, "Furniture", False, "Facilities", "Furniture & Layout"),
    (Module.FINANCE, "Payroll Question", False, "Finance", "Payroll Team"),
    (Module.FINANCE, "Expense Reimbursement Issue", False, "Finance", "Expense Claims"),
    (Module.FINANCE, "Invoice / Payment Issue", False, "Finance", "Invoice Processing"),
    (Module.FINANCE, "Purchase Order Request", False, "Finance", "Procurement Team"),
    (Module.FINANCE, "Vendor Setup or Update", False, "Finance", "Vendor Management"),
    (Module.FINANCE, "Budget or Account Inquiry", False, "Finance", "Accounts Team"),
]


def seed_users(session: Session) -> None:
    """
    DEV 기본 사용자 시드.
    - 동일 사번이 있으면 역할/소속만 갱신합니다.
    - 기본 관리자 사번은 ADMIN_EMPLOYEE_NO 로 바꿀 수 있습니다.
    """
    admin_employee_no = os.getenv("ADMIN_EMPLOYEE_NO", "admin")
    seeds = [
        dict(emp_no=admin_employee_no, name="Service Desk Admin", role="admin", department="IT"),
        dict(emp_no="it.manager", name="IT Manager", role="manager", department="IT"),
        dict(emp_no="it.specialist", name="IT Specialist", role="specialist", department="IT"),
    ]

    for s in seeds:
        exists = session.scalar(select(User).where(User.emp_no == s["emp_no"]))
        if exists:
            exists.role = s["role"]
            exists.department = s["department"]
            continue
        session.add(User(email=f"{s['emp_no']}@example.com", **s))

    session.commit()


def seed_category_policies(session: Session) -> None:
    for order, (module, sub_category, requires_approval, processing_queue, specialist_queue) in enumerate(
        POLICY_SEEDS, start=1
    ):
        exists = session.scalar(
            select(CategoryPolicy)
            .where(CategoryPolicy.module == module)
            .where(CategoryPolicy.sub_category == sub_category)
        )
        if exists:
            # 관리자가 바꾼 승인/SLA 설정은 유지하고 큐 이름만 맞춘다
            exists.processing_queue = processing_queue
            exists.specialist_queue = specialist_queue
            continue
        session.add(
            CategoryPolicy(
                module=module,
                sub_category=sub_category,
                requires_approval=requires_approval,
                processing_queue=processing_queue,
                specialist_queue=specialist_queue,
                sort_order=order,
            )
        )
    session.commit()


def seed_queue_members(session: Session) -> None:
    manager = session.scalar(select(User).where(User.emp_no == "it.manager"))
    specialist = session.scalar(select(User).where(User.emp_no == "it.specialist"))
    if not specialist:
        return

    it_queues = {p[4] for p in POLICY_SEEDS if p[0] == Module.IT}
    for queue in sorted(it_queues):
        exists = session.scalar(
            select(QueueMember)
            .where(QueueMember.module == Module.IT)
            .where(QueueMember.queue == queue)
            .where(QueueMember.emp_no == specialist.emp_no)
        )
        if not exists:
            session.add(QueueMember(module=Module.IT, queue=queue, emp_no=specialist.emp_no))

    if manager:
        approval_policies = session.scalars(
            select(CategoryPolicy)
            .where(CategoryPolicy.module == Module.IT)
            .where(CategoryPolicy.requires_approval.is_(True))
        ).all()
        for policy in approval_policies:
            if not any(a.level == ApprovalLevel.L1 for a in policy.approvers):
                policy.approvers.append(PolicyApprover(level=ApprovalLevel.L1, emp_no=manager.emp_no))

    session.commit()
