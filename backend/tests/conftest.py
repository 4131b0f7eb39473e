"""
Pytest configuration and fixtures for the CVC intake API and sync client.

The app is imported against a shared in-memory SQLite database; every test
starts from freshly created tables.
"""
import os

os.environ["DATABASE_URL"] = "sqlite://"
os.environ["JWT_SECRET_KEY"] = "test-secret"
os.environ["BCRYPT_ROUNDS"] = "4"
os.environ["IDEMPOTENCY_CLEANUP_ENABLED"] = "false"
os.environ["AUTO_CREATE_TABLES"] = "false"

import pytest
from fastapi.testclient import TestClient

from app.db.database import Base, SessionLocal, engine, init_db
from app.main import app

API = "/api/v1"
PASSWORD = "s3cret-pass"


@pytest.fixture(autouse=True)
def fresh_db():
    init_db()
    yield
    Base.metadata.drop_all(bind=engine)


@pytest.fixture
def db():
    session = SessionLocal()
    try:
        yield session
    finally:
        session.close()


@pytest.fixture
def client():
    return TestClient(app)


# =============================================================================
# Factory Helpers
# =============================================================================

def register(client, email, role="victim", full_name=None):
    """Register an account and return (user, auth headers)."""
    resp = client.post(
        f"{API}/auth/register",
        json={"email": email, "password": PASSWORD, "full_name": full_name, "role": role},
    )
    assert resp.status_code == 201, resp.text
    body = resp.json()
    return body["user"], {"Authorization": f"Bearer {body['access_token']}"}


def create_case(client, headers, application=None, **fields):
    resp = client.post(f"{API}/cases", json={"application": application, **fields}, headers=headers)
    assert resp.status_code == 201, resp.text
    return resp.json()


def invite(client, headers, case_id, email, can_edit=False):
    return client.post(
        f"{API}/case-access/invite",
        json={"caseId": case_id, "advocateEmail": email, "canEdit": can_edit},
        headers=headers,
    )


@pytest.fixture
def victim(client):
    return register(client, "victim@example.com", full_name="Vic Tim")


@pytest.fixture
def advocate(client):
    return register(client, "advocate@example.com", role="advocate", full_name="Ada Vocate")
