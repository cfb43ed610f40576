from sqlalchemy.orm import Mapped, mapped_column, relationship
from sqlalchemy import Boolean, DateTime, ForeignKey, Integer, String, UniqueConstraint, func

from ..core.ticket_rules import ApprovalLevel, Module
from .columns import value_enum
from .user import Base


class CategoryPolicy(Base):
    __tablename__ = "category_policies"
    __table_args__ = (
        UniqueConstraint("module", "sub_category", name="uq_category_policies_module_sub_category"),
    )

    id: Mapped[int] = mapped_column(Integer, primary_key=True)
    module: Mapped[Module] = mapped_column(value_enum(Module, 20))
    sub_category: Mapped[str] = mapped_column(String(100))

    requires_approval: Mapped[bool] = mapped_column(Boolean, default=False)
    processing_queue: Mapped[str] = mapped_column(String(100))
    specialist_queue: Mapped[str] = mapped_column(String(100))

    requires_user_confirmation: Mapped[bool] = mapped_column(Boolean, default=True)
    auto_close_on_breach: Mapped[bool] = mapped_column(Boolean, default=False)
    approval_sla_hours: Mapped[int | None] = mapped_column(Integer, nullable=True)
    processing_sla_hours: Mapped[int | None] = mapped_column(Integer, nullable=True)

    sort_order: Mapped[int] = mapped_column(Integer, default=999)
    is_active: Mapped[bool] = mapped_column(Boolean, default=True)

    created_at: Mapped[DateTime] = mapped_column(DateTime(timezone=True), server_default=func.now())
    updated_at: Mapped[DateTime] = mapped_column(
        DateTime(timezone=True), server_default=func.now(), onupdate=func.now()
    )

    approvers: Mapped[list["PolicyApprover"]] = relationship(
        back_populates="policy",
        order_by="PolicyApprover.level",
        cascade="all, delete-orphan",
    )


class PolicyApprover(Base):
    """One configured approver per enabled approval level of a policy."""

    __tablename__ = "policy_approvers"
    __table_args__ = (
        UniqueConstraint("policy_id", "level", name="uq_policy_approvers_policy_level"),
    )

    id: Mapped[int] = mapped_column(Integer, primary_key=True)
    policy_id: Mapped[int] = mapped_column(ForeignKey("category_policies.id", ondelete="CASCADE"), index=True)
    level: Mapped[ApprovalLevel] = mapped_column(value_enum(ApprovalLevel, 8))
    emp_no: Mapped[str] = mapped_column(String(50), ForeignKey("users.emp_no"), index=True)

    created_at: Mapped[DateTime] = mapped_column(DateTime(timezone=True), server_default=func.now())

    policy: Mapped[CategoryPolicy] = relationship(back_populates="approvers")
