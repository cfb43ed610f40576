from __future__ import annotations

from datetime import datetime
import logging
import threading
import time
from typing import Callable

from sqlalchemy import select
from sqlalchemy.orm import Session

from ..core.actor import SYSTEM
from ..core.errors import WorkflowError
from ..core.settings import settings
from ..core.ticket_rules import PROCESSING_STATUSES, ClosingReason
from ..core.timeutil import utcnow
from ..db import SessionLocal
from ..models.ticket import Ticket
from . import closure_service, sla_service
from .ticket_commands import ticket_command

logger = logging.getLogger(__name__)


def _load_candidates(session: Session, now: datetime, limit: int) -> list[int]:
    stmt = (
        select(Ticket.id)
        .where(Ticket.status.in_(list(PROCESSING_STATUSES)))
        .where(Ticket.auto_close_on_breach.is_(True))
        .where(Ticket.processing_deadline.is_not(None))
        .where(Ticket.processing_deadline < now)
        .order_by(Ticket.processing_deadline)
        .limit(limit)
    )
    return list(session.scalars(stmt).all())


def sweep_once(
    session_factory: Callable[[], Session] = SessionLocal,
    now: datetime | None = None,
    limit: int | None = None,
) -> list[int]:
    """Auto-close overdue tickets whose policy allows it. Returns the closed ids."""
    now = now or utcnow()
    limit = limit or settings.SLA_SWEEP_BATCH_SIZE
    with session_factory() as session:
        candidates = _load_candidates(session, now, limit)

    closed: list[int] = []
    for ticket_id in candidates:
        with session_factory() as session:
            try:
                with ticket_command(session, ticket_id, SYSTEM, "auto_close") as ctx:
                    # 후보 조회 이후 상태가 바뀌었을 수 있으므로 잠금 안에서 다시 확인
                    ticket = ctx.ticket
                    if ticket.status in PROCESSING_STATUSES and sla_service.is_overdue(ticket, now):
                        closure_service.close(session, ticket, SYSTEM, reason=ClosingReason.AUTO_CLOSED, now=now)
                if ctx.new_events:
                    closed.append(ticket_id)
            except WorkflowError as exc:
                logger.warning("SLA 자동 종료 건너뜀 ticket_id=%s: %s", ticket_id, exc.message)
    if closed:
        logger.info("SLA 초과로 %d건 자동 종료", len(closed))
    return closed


def _worker_loop() -> None:
    while True:
        try:
            sweep_once()
        except Exception:
            logger.exception("SLA 스윕 워커 오류")
        time.sleep(settings.SLA_SWEEP_INTERVAL_SECONDS)


def start_sla_sweep_thread() -> None:
    if not settings.SLA_SWEEP_ENABLED:
        logger.info("SLA 스윕이 비활성화되어 워커를 시작하지 않습니다.")
        return
    t = threading.Thread(target=_worker_loop, name="sla-sweep", daemon=True)
    t.start()
