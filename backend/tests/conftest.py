"""Pytest fixtures: file-backed SQLite database recreated for every test."""
import os

os.environ["DATABASE_URL"] = "sqlite:///./test.db"

import pytest  # noqa: E402
from sqlalchemy import create_engine, event  # noqa: E402
from sqlalchemy.orm import sessionmaker  # noqa: E402
from fastapi.testclient import TestClient  # noqa: E402

from taskverse.auth import build_caller, create_session_token  # noqa: E402
from taskverse.database import Base, get_db  # noqa: E402
from taskverse.main import app  # noqa: E402
from taskverse.models import MemberRole, OrganizationMember, User  # noqa: E402
from taskverse.services import membership_service, project_service  # noqa: E402

SQLITE_URL = "sqlite:///./test.db"


@pytest.fixture(scope="function")
def db_engine():
    """Create a fresh SQLite engine for each test."""
    engine = create_engine(SQLITE_URL, connect_args={"check_same_thread": False})

    # Enable WAL mode for better concurrency
    @event.listens_for(engine, "connect")
    def _set_sqlite_pragma(dbapi_conn, connection_record):
        cursor = dbapi_conn.cursor()
        cursor.execute("PRAGMA journal_mode=WAL")
        cursor.close()

    Base.metadata.drop_all(bind=engine)
    Base.metadata.create_all(bind=engine)
    yield engine
    Base.metadata.drop_all(bind=engine)
    engine.dispose()


@pytest.fixture(scope="function")
def db(db_engine):
    """Yield a database session closed after the test."""
    TestingSession = sessionmaker(autocommit=False, autoflush=False, bind=db_engine)
    session = TestingSession()
    try:
        yield session
    finally:
        session.close()


@pytest.fixture(scope="function")
def client(db_engine):
    """FastAPI TestClient with the database dependency overridden to use SQLite."""
    TestingSession = sessionmaker(autocommit=False, autoflush=False, bind=db_engine)

    def _override_get_db():
        session = TestingSession()
        try:
            yield session
        finally:
            session.close()

    app.dependency_overrides[get_db] = _override_get_db
    with TestClient(app) as c:
        yield c
    app.dependency_overrides.clear()


# ---------------------------------------------------------------------------
# API helpers: each returns the response JSON
# ---------------------------------------------------------------------------
def auth_headers(token: str) -> dict:
    return {"Authorization": f"Bearer {token}"}


def create_test_user(client: TestClient, name: str = "Test User", email: str = None) -> dict:
    """Helper: POST /api/users and return {"user": ..., "access_token": ...}."""
    email = email or f"{name.lower().replace(' ', '.')}@example.com"
    resp = client.post("/api/users/", json={"name": name, "email": email})
    assert resp.status_code == 201, resp.text
    return resp.json()


def create_test_org(client: TestClient, owner: dict, name: str = "Acme Corp") -> dict:
    resp = client.post("/api/organizations/", json={"name": name}, headers=auth_headers(owner["access_token"]))
    assert resp.status_code == 201, resp.text
    return resp.json()["data"]


def add_member_via_invite(client: TestClient, org: dict, admin: dict, member: dict, role: str = "MEMBER") -> dict:
    """Invite ``member`` by email and accept as them."""
    resp = client.post(
        f"/api/organizations/{org['organization_id']}/invitations",
        json={"email": member["user"]["email"], "role": role},
        headers=auth_headers(admin["access_token"]),
    )
    assert resp.status_code == 201, resp.text
    token = resp.json()["data"]["token"]
    resp = client.post(
        f"/api/organizations/invitations/{token}/accept", headers=auth_headers(member["access_token"]),
    )
    assert resp.status_code == 200, resp.text
    return resp.json()["data"]


def create_test_project(client: TestClient, org: dict, user: dict, key: str = "ALPHA", type: str = "SCRUM") -> dict:
    resp = client.post(
        f"/api/organizations/{org['organization_id']}/projects",
        json={"name": "Alpha Project", "key": key, "type": type},
        headers=auth_headers(user["access_token"]),
    )
    assert resp.status_code == 201, resp.text
    return resp.json()["data"]


def create_test_issue(client: TestClient, project: dict, user: dict, title: str = "First issue", **fields) -> dict:
    resp = client.post(
        f"/api/projects/{project['project_id']}/issues",
        json={"title": title, **fields},
        headers=auth_headers(user["access_token"]),
    )
    assert resp.status_code == 201, resp.text
    return resp.json()


# ---------------------------------------------------------------------------
# Service helpers: work directly on a session
# ---------------------------------------------------------------------------
def make_user(db, name: str, email: str = None) -> User:
    user = User(name=name, email=email or f"{name.lower().replace(' ', '.')}@example.com")
    db.add(user)
    db.commit()
    return user


def caller_for(db, user: User):
    return build_caller(db, user)


def make_org(db, owner: User, name: str = "Acme Corp"):
    result = membership_service.create_organization(db, caller_for(db, owner), name)
    assert result.ok, result
    return result.value


def add_member(db, org, user: User, role: MemberRole = MemberRole.member) -> OrganizationMember:
    membership = OrganizationMember(organization_id=org.organization_id, user_id=user.user_id, role=role)
    db.add(membership)
    db.commit()
    return membership


def make_project(db, owner: User, org, key: str = "ALPHA", type=None):
    kwargs = {"type": type} if type is not None else {}
    result = project_service.create_project(db, caller_for(db, owner), org.organization_id, "Alpha Project", key, **kwargs)
    assert result.ok, result
    return result.value


def token_for(user: User) -> str:
    return create_session_token(user.user_id)
