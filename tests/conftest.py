"""
Shared pytest fixtures: user snapshots, a FastAPI client with no database,
and an in-memory Mongo (mongomock-motor) for service and route tests.

Snapshots have the shape built by UserService.get_snapshot.
"""
import pytest
from fastapi.testclient import TestClient
from mongomock_motor import AsyncMongoMockClient

from dashboard.app import create_app
from dashboard.auth.helpers import create_access_token
from dashboard.config import get_database
from dashboard.users.service import UserService


def make_user(user_id="u-1", role="employee", custom_role=None, **extra):
    user = {
        "id": user_id,
        "name": f"User {user_id}",
        "email": f"{user_id}@example.com",
        "role": role,
        "custom_role_id": custom_role["id"] if custom_role else None,
        "custom_role": custom_role,
        "is_active": True,
        "token_version": 0,
        "created_by": None,
        "manager_ids": [],
    }
    user.update(extra)
    return user


def make_role(role_id="r-1", permissions=None, full_access=False, is_team_manager=False, **extra):
    role = {
        "id": role_id,
        "name": f"Role {role_id}",
        "full_access": full_access,
        "is_team_manager": is_team_manager,
        "permissions": permissions or {},
        "is_active": True,
    }
    role.update(extra)
    return role


@pytest.fixture
def superadmin():
    return make_user("sa-1", role="superadmin")


@pytest.fixture
def admin():
    return make_user("ad-1", role="admin")


@pytest.fixture
def manager():
    return make_user("mg-1", role="manager")


@pytest.fixture
def employee():
    return make_user("em-1", role="employee")


@pytest.fixture
def full_access_role():
    return make_role("r-full", full_access=True)


@pytest.fixture
def users_store():
    """user id -> snapshot, served by the patched snapshot loader."""
    return {}


@pytest.fixture
def client(monkeypatch, users_store):
    """App client whose auth middleware reads snapshots from ``users_store``."""

    async def fake_loader(user_id):
        return users_store.get(user_id)

    monkeypatch.setattr("dashboard.middleware.load_user_snapshot", fake_loader)
    app = create_app()
    app.dependency_overrides[get_database] = lambda: None
    return TestClient(app)


@pytest.fixture
def auth_header(users_store):
    """Register a snapshot and return an Authorization header for it."""

    def _header(user, token_version=None):
        users_store[user["id"]] = user
        version = user.get("token_version", 0) if token_version is None else token_version
        token = create_access_token(user["id"], version)
        return {"Authorization": f"Bearer {token}"}

    return _header


# ── In-memory Mongo ──────────────────────────────────────────────
async def insert_role(db, name="Custom", permissions=None, full_access=False, **extra) -> str:
    doc = {
        "name": name,
        "full_access": full_access,
        "is_team_manager": False,
        "permissions": permissions or {},
        "is_system": False,
        "is_active": True,
    }
    doc.update(extra)
    result = await db["roles"].insert_one(doc)
    return str(result.inserted_id)


async def insert_user(db, email, role="employee", custom_role_id=None, **extra) -> str:
    doc = {
        "name": email.split("@")[0],
        "email": email,
        "password": "not-a-hash",
        "role": role,
        "custom_role_id": custom_role_id,
        "manager_ids": [],
        "is_active": True,
        "token_version": 0,
        "is_deleted": False,
        "created_by": None,
    }
    doc.update(extra)
    result = await db["users"].insert_one(doc)
    return str(result.inserted_id)


def bearer(user_id, token_version=0):
    return {"Authorization": f"Bearer {create_access_token(user_id, token_version)}"}


@pytest.fixture
def db():
    return AsyncMongoMockClient()["reporting_dashboard_test"]


@pytest.fixture
def db_client(monkeypatch, db):
    """App client backed by ``db``; the auth middleware loads real snapshots from it."""

    async def loader(user_id):
        return await UserService(db).get_snapshot(user_id)

    monkeypatch.setattr("dashboard.middleware.load_user_snapshot", loader)
    app = create_app()
    app.dependency_overrides[get_database] = lambda: db
    return TestClient(app)
