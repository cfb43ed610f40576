from types import SimpleNamespace

import pytest
from fastapi.testclient import TestClient
from sqlalchemy import create_engine, select
from sqlalchemy.orm import sessionmaker
from sqlalchemy.pool import StaticPool

from app.core.actor import Actor
from app.core.security import create_access_token
from app.core.seed import seed_category_policies, seed_queue_members, seed_users
from app.core.ticket_rules import Module
from app.db import get_session
from app.main import app
from app.models.category_policy import CategoryPolicy
from app.models.queue_member import QueueMember
from app.models.user import Base, User
from app.services import intake_service
from app.services.ticket_cache import ticket_list_cache
from app.services.ticket_commands import ticket_command

# seed_users 가 만드는 계정 + 테스트 전용 계정
EXTRA_USERS = [
    dict(emp_no="emp001", name="Kim Minji", role="employee", department="Sales", manager_emp_no="it.manager"),
    dict(emp_no="emp002", name="Lee Jun", role="employee", department="Sales", manager_emp_no="it.manager"),
    dict(emp_no="it.director", name="IT Director", role="manager", department="IT"),
    dict(emp_no="it.specialist2", name="Second Specialist", role="specialist", department="IT"),
]


@pytest.fixture()
def engine():
    engine = create_engine(
        "sqlite://",
        connect_args={"check_same_thread": False},
        poolclass=StaticPool,
        future=True,
    )
    Base.metadata.create_all(bind=engine)
    yield engine
    engine.dispose()


@pytest.fixture()
def session_factory(engine):
    return sessionmaker(bind=engine, autoflush=False, expire_on_commit=False, future=True)


@pytest.fixture()
def session(session_factory):
    with session_factory() as s:
        seed_users(s)
        for data in EXTRA_USERS:
            s.add(User(email=f"{data['emp_no']}@example.com", **data))
        s.commit()
        seed_category_policies(s)
        seed_queue_members(s)
        s.add(QueueMember(module=Module.IT, queue="Hardware Team", emp_no="it.specialist2"))
        s.add(QueueMember(module=Module.IT, queue="Network Team", emp_no="it.specialist2"))
        s.commit()
        yield s


@pytest.fixture(autouse=True)
def clear_list_cache():
    ticket_list_cache.invalidate()
    yield
    ticket_list_cache.invalidate()


@pytest.fixture()
def actors():
    return SimpleNamespace(
        employee=Actor(id="emp001", name="Kim Minji", role="employee"),
        other_employee=Actor(id="emp002", name="Lee Jun", role="employee"),
        manager=Actor(id="it.manager", name="IT Manager", role="manager"),
        director=Actor(id="it.director", name="IT Director", role="manager"),
        specialist=Actor(id="it.specialist", name="IT Specialist", role="specialist"),
        specialist2=Actor(id="it.specialist2", name="Second Specialist", role="specialist"),
        admin=Actor(id="admin", name="Service Desk Admin", role="admin"),
    )


@pytest.fixture()
def policy(session):
    """Look up a seeded policy so a test can tweak it before creating tickets."""

    def _policy(sub_category: str, module: Module = Module.IT) -> CategoryPolicy:
        found = session.scalar(
            select(CategoryPolicy)
            .where(CategoryPolicy.module == module)
            .where(CategoryPolicy.sub_category == sub_category)
        )
        assert found is not None, sub_category
        return found

    return _policy


@pytest.fixture()
def create_ticket(session, actors):
    def _create(sub_category: str = "Hardware", module: Module = Module.IT, requester: Actor | None = None, **overrides):
        requester = requester or actors.employee
        fields = dict(
            module=module,
            sub_category=sub_category,
            subject="Laptop screen flickers",
            description="The screen flickers every few minutes after docking.",
            urgency="high",
            requester_id=requester.id,
            requester_name=requester.name,
            requester_email=f"{requester.id}@example.com",
            department="Sales",
        )
        fields.update(overrides)
        return intake_service.create_ticket(session, actor=requester, **fields)

    return _create


@pytest.fixture()
def run(session):
    """Run one service call as a locked ticket command, the way the routers do."""

    def _run(ticket, actor: Actor, action: str, fn, *args, **kwargs):
        with ticket_command(session, ticket.id, actor, action) as ctx:
            fn(session, ctx.ticket, *args, **kwargs)
        return ctx.ticket

    return _run


@pytest.fixture()
def client(session, session_factory):
    def override_session():
        s = session_factory()
        try:
            yield s
        finally:
            s.close()

    app.dependency_overrides[get_session] = override_session
    with TestClient(app) as c:
        yield c
    app.dependency_overrides.clear()


@pytest.fixture()
def auth():
    def _auth(emp_no: str) -> dict:
        return {"Authorization": f"Bearer {create_access_token(emp_no)}"}

    return _auth
