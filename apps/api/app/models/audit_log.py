from sqlalchemy.orm import Mapped, mapped_column
from sqlalchemy import JSON, DateTime, Integer, String, func
from .user import Base


class AuditLog(Base):
    __tablename__ = "audit_logs"

    id: Mapped[int] = mapped_column(Integer, primary_key=True)
    ticket_id: Mapped[int | None] = mapped_column(Integer, nullable=True, index=True)
    ticket_number: Mapped[str | None] = mapped_column(String(20), nullable=True)
    actor_id: Mapped[str] = mapped_column(String(50), index=True)
    actor_role: Mapped[str | None] = mapped_column(String(32), nullable=True)
    action: Mapped[str] = mapped_column(String(64), index=True)
    before: Mapped[dict | None] = mapped_column(JSON, nullable=True)
    after: Mapped[dict | None] = mapped_column(JSON, nullable=True)
    # info / warning / critical
    severity: Mapped[str] = mapped_column(String(16), default="info")
    created_at: Mapped[DateTime] = mapped_column(DateTime(timezone=True), server_default=func.now())
