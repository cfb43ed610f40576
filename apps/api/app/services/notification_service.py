from __future__ import annotations

import logging

from sqlalchemy import select
from sqlalchemy.engine import Connection, Engine
from sqlalchemy.orm import Session

from ..core.config import settings
from ..models.notification import NotificationOutbox
from .notification_events import Notification

logger = logging.getLogger(__name__)


def emit(bind: Engine | Connection, notifications: list[Notification]) -> int:
    """Write notifications to the outbox in a session of their own.

    Runs after the command has committed. Duplicate event keys are skipped.
    Returns the number of rows written.
    """
    if not notifications:
        return 0
    if not settings.notifications_enabled:
        logger.info("알림 비활성화로 %d건 발행을 생략합니다.", len(notifications))
        return 0

    written = 0
    with Session(bind=bind, expire_on_commit=False) as session:
        for n in notifications:
            exists = session.execute(
                select(NotificationOutbox.id).where(NotificationOutbox.event_key == n.event_key)
            ).first()
            if exists:
                logger.info("중복 이벤트로 알림 발행 생략: %s", n.event_key)
                continue
            session.add(
                NotificationOutbox(
                    event_key=n.event_key,
                    event_type=n.event_type,
                    ticket_id=n.ticket_id,
                    ticket_number=n.ticket_number,
                    recipient_role=n.recipient_role,
                    recipient_id=n.recipient_id,
                    payload=n.payload,
                    status="pending",
                )
            )
            written += 1
        session.commit()
    logger.info("알림 %d건 발행 대기 등록", written)
    return written
