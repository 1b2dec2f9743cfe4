"""
End-to-end tests through create_app(): the auth middleware, the error
envelope and guarded routes.

``client`` serves patched snapshots with no database behind it. ``db_client``
runs against an in-memory Mongo, seeded with ``asyncio.run``.
"""
import asyncio
from datetime import timedelta

from dashboard.auth.helpers import create_access_token
from dashboard.rbac import PERMISSIONS_SCHEMA, has_full_access
from dashboard.users.service import UserService

from .conftest import bearer, insert_role, insert_user, make_role, make_user


def _error(response):
    body = response.json()
    assert body["success"] is False
    return body["error"]


class TestAuthMiddleware:
    def test_health_is_public(self, client):
        response = client.get("/health")
        assert response.status_code == 200
        assert response.json()["status"] == "healthy"

    def test_missing_token(self, client):
        response = client.get("/api/v1/auth/me")
        assert response.status_code == 401
        assert _error(response)["code"] == "AUTH_TOKEN_MISSING"

    def test_invalid_token(self, client):
        response = client.get("/api/v1/auth/me", headers={"Authorization": "Bearer nope"})
        assert response.status_code == 401
        assert _error(response)["code"] == "AUTH_TOKEN_INVALID"

    def test_expired_token(self, client, users_store, employee):
        users_store[employee["id"]] = employee
        token = create_access_token(employee["id"], 0, expires_delta=timedelta(minutes=-5))
        response = client.get("/api/v1/auth/me", headers={"Authorization": f"Bearer {token}"})
        assert response.status_code == 401
        assert _error(response)["code"] == "AUTH_TOKEN_EXPIRED"

    def test_unknown_user(self, client):
        token = create_access_token("ghost", 0)
        response = client.get("/api/v1/auth/me", headers={"Authorization": f"Bearer {token}"})
        assert response.status_code == 401
        assert _error(response)["code"] == "AUTH_USER_NOT_FOUND"

    def test_inactive_user(self, client, auth_header):
        headers = auth_header(make_user("in-1", is_active=False))
        response = client.get("/api/v1/auth/me", headers=headers)
        assert response.status_code == 403
        assert _error(response)["code"] == "AUTH_ACCOUNT_INACTIVE"

    def test_revoked_token(self, client, auth_header):
        headers = auth_header(make_user("rv-1", token_version=2), token_version=1)
        response = client.get("/api/v1/auth/me", headers=headers)
        assert response.status_code == 401
        assert _error(response)["code"] == "AUTH_TOKEN_REVOKED"

    def test_deactivated_custom_role(self, client, auth_header):
        role = make_role(full_access=True, is_active=False)
        headers = auth_header(make_user("dr-1", custom_role=role))
        response = client.get("/api/v1/auth/me", headers=headers)
        assert response.status_code == 403
        assert _error(response)["code"] == "AUTH_NO_ROLE"


class TestMe:
    def test_returns_capabilities(self, client, auth_header, manager):
        response = client.get("/api/v1/auth/me", headers=auth_header(manager))
        assert response.status_code == 200
        data = response.json()["data"]
        assert data["id"] == manager["id"]
        assert "token_version" not in data
        caps = data["capabilities"]
        assert caps["is_team_manager"] is True
        assert caps["can_edit_users"] is True
        assert caps["can_delete_users"] is False
        assert caps["can_edit_settings"] is False


class TestGuardedRoutes:
    def test_roles_require_full_access(self, client, auth_header, manager):
        response = client.get("/api/v1/roles/", headers=auth_header(manager))
        assert response.status_code == 403
        error = _error(response)
        assert error["code"] == "AUTH_INSUFFICIENT_PERMISSIONS"
        assert error["message"] == "Full access required"

    def test_roles_schema_for_full_access(self, client, auth_header, full_access_role):
        user = make_user("fa-1", role="employee", custom_role=full_access_role)
        response = client.get("/api/v1/roles/schema", headers=auth_header(user))
        assert response.status_code == 200
        assert response.json()["data"] == PERMISSIONS_SCHEMA

    def test_users_listing_denied_for_employee(self, client, auth_header, employee):
        response = client.get("/api/v1/users/", headers=auth_header(employee))
        assert response.status_code == 403
        assert _error(response)["message"] == "You do not have permission to read users"

    def test_clients_listing_denied_without_read(self, client, auth_header):
        user = make_user("cu-1", custom_role=make_role(permissions={"Clients": {"Read": False}}))
        response = client.get("/api/v1/clients/", headers=auth_header(user))
        assert response.status_code == 403

    def test_activity_stats_denied_for_employee(self, client, auth_header, employee):
        response = client.get("/api/v1/activities/stats", headers=auth_header(employee))
        assert response.status_code == 403


def _seed(coro):
    return asyncio.run(coro)


class TestUserRoutes:
    def test_manager_cannot_promote_self(self, db, db_client):
        manager_id = _seed(insert_user(db, "mgr@example.com", role="manager"))
        response = db_client.put(
            f"/api/v1/users/{manager_id}",
            json={"role": "superadmin"},
            headers=bearer(manager_id),
        )
        assert response.status_code == 403
        assert _error(response)["code"] == "FORBIDDEN"
        snapshot = _seed(UserService(db).get_snapshot(manager_id))
        assert has_full_access(snapshot) is False

    def test_manager_cannot_create_admin(self, db, db_client):
        manager_id = _seed(insert_user(db, "mgr@example.com", role="manager"))
        response = db_client.post(
            "/api/v1/users/",
            json={
                "name": "New Admin",
                "email": "new.admin@example.com",
                "password": "password123",
                "role": "admin",
            },
            headers=bearer(manager_id),
        )
        assert response.status_code == 403
        assert _seed(db["users"].count_documents({"email": "new.admin@example.com"})) == 0

    def test_custom_role_holder_cannot_detach_role(self, db, db_client):
        role_id = _seed(insert_role(db, permissions={"Users": ["Read", "Update"]}))
        user_id = _seed(insert_user(db, "limited@example.com", role="admin", custom_role_id=role_id))
        response = db_client.put(
            f"/api/v1/users/{user_id}",
            json={"custom_role_id": None},
            headers=bearer(user_id),
        )
        assert response.status_code == 403
        snapshot = _seed(UserService(db).get_snapshot(user_id))
        assert snapshot["custom_role_id"] == role_id
        assert has_full_access(snapshot) is False

    def test_cannot_delete_self(self, db, db_client):
        root_id = _seed(insert_user(db, "root@example.com", role="superadmin"))
        response = db_client.delete(f"/api/v1/users/{root_id}", headers=bearer(root_id))
        assert response.status_code == 400
        assert _error(response)["message"] == "You cannot delete your own account"

    def test_manager_cannot_delete_admin(self, db, db_client):
        role_id = _seed(insert_role(db, permissions={"Users": ["Delete"]}))
        actor_id = _seed(insert_user(db, "deleter@example.com", custom_role_id=role_id))
        admin_id = _seed(insert_user(db, "admin@example.com", role="admin"))
        response = db_client.delete(f"/api/v1/users/{admin_id}", headers=bearer(actor_id))
        assert response.status_code == 403
        assert _seed(UserService(db).get_snapshot(admin_id)) is not None

    def test_full_access_update_is_logged(self, db, db_client):
        root_id = _seed(insert_user(db, "root@example.com", role="superadmin"))
        emp_id = _seed(insert_user(db, "emp@example.com"))
        response = db_client.put(
            f"/api/v1/users/{emp_id}",
            json={"name": "Renamed"},
            headers=bearer(root_id),
        )
        assert response.status_code == 200
        assert response.json()["data"]["name"] == "Renamed"
        logged = _seed(db["activity_logs"].count_documents(
            {"action": "user_updated", "entity_id": emp_id}
        ))
        assert logged == 1


class TestSessionRoutes:
    def test_logout_revokes_token(self, db, db_client):
        user_id = _seed(insert_user(db, "emp@example.com"))
        headers = bearer(user_id)
        assert db_client.get("/api/v1/auth/me", headers=headers).status_code == 200

        response = db_client.post("/api/v1/auth/logout", headers=headers)
        assert response.status_code == 200

        response = db_client.get("/api/v1/auth/me", headers=headers)
        assert response.status_code == 401
        assert _error(response)["code"] == "AUTH_TOKEN_REVOKED"
        assert db_client.get("/api/v1/auth/me", headers=bearer(user_id, 1)).status_code == 200


class TestRoleRoutes:
    def test_toggle_is_logged(self, db, db_client):
        root_id = _seed(insert_user(db, "root@example.com", role="superadmin"))
        role_id = _seed(insert_role(db, name="Sales"))
        response = db_client.patch(f"/api/v1/roles/{role_id}/toggle", headers=bearer(root_id))
        assert response.status_code == 200
        assert response.json()["data"]["is_active"] is False

        entry = _seed(db["activity_logs"].find_one({"entity_id": role_id}))
        assert entry["action"] == "role_updated"
        assert entry["user_id"] == root_id

    def test_deactivated_role_locks_out_its_users(self, db, db_client):
        root_id = _seed(insert_user(db, "root@example.com", role="superadmin"))
        role_id = _seed(insert_role(db, name="Sales", permissions={"Clients": ["Read"]}))
        user_id = _seed(insert_user(db, "sales@example.com", custom_role_id=role_id))
        db_client.patch(f"/api/v1/roles/{role_id}/toggle", headers=bearer(root_id))

        response = db_client.get("/api/v1/auth/me", headers=bearer(user_id))
        assert response.status_code == 403
        assert _error(response)["code"] == "AUTH_NO_ROLE"
