from sqlalchemy.orm import Mapped, mapped_column
from sqlalchemy import DateTime, ForeignKey, Integer, String, UniqueConstraint, func

from ..core.ticket_rules import Module
from .columns import value_enum
from .user import Base


class QueueMember(Base):
    __tablename__ = "queue_members"
    __table_args__ = (
        UniqueConstraint("module", "queue", "emp_no", name="uq_queue_members_module_queue_emp"),
    )

    id: Mapped[int] = mapped_column(Integer, primary_key=True)
    module: Mapped[Module] = mapped_column(value_enum(Module, 20), index=True)
    queue: Mapped[str] = mapped_column(String(100), index=True)
    emp_no: Mapped[str] = mapped_column(String(50), ForeignKey("users.emp_no"), index=True)

    created_at: Mapped[DateTime] = mapped_column(DateTime(timezone=True), server_default=func.now())
    updated_at: Mapped[DateTime] = mapped_column(
        DateTime(timezone=True), server_default=func.now(), onupdate=func.now()
    )
