from fastapi import FastAPI, Request
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse
import logging
import os

from .routers import (
    approvals,
    assignments,
    category_policies,
    closures,
    health,
    messages,
    progress,
    queues,
    tickets,
)
from .models.user import Base
from .db import engine, SessionLocal
from .core.errors import WorkflowError
from .core.seed import seed_category_policies, seed_queue_members, seed_users
from .core.settings import settings
from .services.sla_sweep import start_sla_sweep_thread

import app.models.ticket  # noqa: F401
import app.models.event  # noqa: F401
import app.models.message  # noqa: F401
import app.models.category_policy  # noqa: F401
import app.models.queue_member  # noqa: F401
import app.models.notification  # noqa: F401
import app.models.audit_log  # noqa: F401

logger = logging.getLogger(__name__)

app = FastAPI(title="Service Request Workflow API")


@app.exception_handler(WorkflowError)
def handle_workflow_error(request: Request, exc: WorkflowError):
    if exc.status_code >= 500:
        logger.error("workflow error on %s: %s", request.url.path, exc.message)
    return JSONResponse(status_code=exc.status_code, content={"detail": exc.message, "code": exc.code})


@app.on_event("startup")
def on_startup():
    if settings.AUTO_DB_BOOTSTRAP:
        # Create tables in dev if missing.
        Base.metadata.create_all(bind=engine)

        # 개발용 사용자/카테고리 정책/큐 담당자 시드
        with SessionLocal() as session:
            seed_users(session)
            seed_category_policies(session)
            seed_queue_members(session)

    # Start the SLA auto-close sweep (if enabled).
    start_sla_sweep_thread()


app.include_router(health.router)
app.include_router(tickets.router)
app.include_router(approvals.router)
app.include_router(assignments.router)
app.include_router(progress.router)
app.include_router(closures.router)
app.include_router(messages.router)
app.include_router(category_policies.router)
app.include_router(queues.router)

# CORS: allow local dev origins by default.
raw_origins = os.getenv(
    "CORS_ORIGINS",
    "http://localhost:3000,http://127.0.0.1:3000,http://localhost:5173,http://127.0.0.1:5173",
)
allow_origins = [o.strip() for o in raw_origins.split(",") if o.strip()]

app.add_middleware(
    CORSMiddleware,
    allow_origins=allow_origins,
    allow_credentials=True,
    allow_methods=["*"],
    allow_headers=["*"],
)
