from datetime import datetime

from sqlalchemy.orm import Mapped, mapped_column, relationship
from sqlalchemy import JSON, Integer, Text, DateTime, ForeignKey, String

from ..core.timeutil import utcnow
from .user import Base


class TicketMessage(Base):
    __tablename__ = "ticket_messages"

    id: Mapped[int] = mapped_column(primary_key=True)

    ticket_id: Mapped[int] = mapped_column(
        Integer, ForeignKey("tickets.id", ondelete="CASCADE"), index=True
    )
    # employee / manager / specialist / admin / system
    sender_role: Mapped[str] = mapped_column(String(32))
    sender_id: Mapped[str | None] = mapped_column(String(50), nullable=True)
    sender_name: Mapped[str] = mapped_column(String(100))

    # message / status_update / closing_note / approval_note
    message_type: Mapped[str] = mapped_column(String(32), default="message")
    body: Mapped[str] = mapped_column(Text)
    attachments: Mapped[list | None] = mapped_column(JSON, nullable=True)

    created_at: Mapped[datetime] = mapped_column(DateTime(timezone=True), default=utcnow)

    ticket = relationship("Ticket", back_populates="messages")
