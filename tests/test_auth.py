"""
Tests for login sessions, token handling and user administration.
"""

import asyncio

from service_center_api.app.core.config import settings
from service_center_api.app.services.auth_service import AuthService

from conftest import PASSWORD


def login(client, username, password=PASSWORD):
    return client.post("/api/v1/auth/login", json={"username": username, "password": password})


def bearer(token):
    return {"Authorization": f"Bearer {token}"}


class TestLogin:

    def test_login_returns_token_and_user(self, client):
        response = login(client, "admin")

        assert response.status_code == 200
        body = response.json()
        assert body["token_type"] == "bearer"
        assert body["user"]["username"] == "admin"
        assert body["user"]["role"] == "Admin"

        me = client.get("/api/v1/auth/me", headers=bearer(body["access_token"]))
        assert me.status_code == 200
        assert me.json()["role_id"] == 1

    def test_wrong_password(self, client):
        assert login(client, "admin", "nope-nope").status_code == 401

    def test_unknown_user(self, client):
        assert login(client, "ghost").status_code == 401

    def test_login_is_audited(self, client, headers):
        login(client, "admin")
        logs = client.get("/api/v1/audit/logs", params={"action": "login"}, headers=headers["admin"]).json()
        assert logs and logs[0]["username"] == "admin"


class TestTokens:

    def test_logout_revokes_token(self, client):
        token = login(client, "admin").json()["access_token"]

        assert client.post("/api/v1/auth/logout", headers=bearer(token)).status_code == 204
        assert client.get("/api/v1/auth/me", headers=bearer(token)).status_code == 401

    def test_tampered_token(self, client, headers):
        token = headers["admin"]["Authorization"].split(" ", 1)[1]
        header, payload, signature = token.split(".")
        forged = ".".join([header, payload[:-2] + "xx", signature])

        assert client.get("/api/v1/auth/me", headers=bearer(forged)).status_code == 401
        assert client.get("/api/v1/auth/me", headers=bearer("not-a-token")).status_code == 401

    def test_static_token_acts_as_primary_admin(self, client, monkeypatch):
        monkeypatch.setattr(settings, "super_admin_static_token", "script-token")

        response = client.get("/api/v1/auth/me", headers=bearer("script-token"))

        assert response.status_code == 200
        assert response.json()["username"] == "admin"

    def test_expired_sessions_are_purged(self, db_path, users):
        asyncio.run(AuthService.create_session(users["admin"]["user_id"], "admin"))
        assert asyncio.run(AuthService.purge_expired()) == 0


class TestUserAdministration:

    def test_create_and_list(self, client, headers):
        body = {"username": "clerk2", "full_name": "Clerk Two", "password": "clerk123", "role_id": 3}

        response = client.post("/api/v1/users/", json=body, headers=headers["admin"])

        assert response.status_code == 201
        assert response.json()["role"] == "Job Card"
        assert "password" not in response.json()
        usernames = [u["username"] for u in client.get("/api/v1/users/", headers=headers["admin"]).json()]
        assert "clerk2" in usernames

    def test_duplicate_username(self, client, headers):
        body = {"username": "manager", "password": "another1", "role_id": 2}
        assert client.post("/api/v1/users/", json=body, headers=headers["admin"]).status_code == 409

    def test_only_admins_manage_users(self, client, headers):
        assert client.get("/api/v1/users/", headers=headers["manager"]).status_code == 403

    def test_disabling_user_ends_sessions(self, client, headers, users):
        user_id = users["jobcard"]["user_id"]

        response = client.patch(f"/api/v1/users/{user_id}", json={"disabled": True}, headers=headers["admin"])

        assert response.status_code == 200
        assert response.json()["disabled"] is True
        assert client.get("/api/v1/auth/me", headers=headers["jobcard"]).status_code == 401
        assert login(client, "staff1").status_code == 401

    def test_password_change(self, client, headers, users):
        user_id = users["manager"]["user_id"]

        client.patch(f"/api/v1/users/{user_id}", json={"password": "fresh-pass"}, headers=headers["admin"])

        assert client.get("/api/v1/auth/me", headers=headers["manager"]).status_code == 401
        assert login(client, "manager").status_code == 401
        assert login(client, "manager", "fresh-pass").status_code == 200

    def test_cannot_delete_self(self, client, headers, users):
        response = client.delete(f"/api/v1/users/{users['admin']['user_id']}", headers=headers["admin"])
        assert response.status_code == 400

    def test_primary_admin_is_protected(self, client, headers, users):
        body = {"username": "admin2", "password": "admin2pass", "role_id": 1}
        client.post("/api/v1/users/", json=body, headers=headers["admin"])
        token = login(client, "admin2", "admin2pass").json()["access_token"]

        response = client.delete(f"/api/v1/users/{users['admin']['user_id']}", headers=bearer(token))
        assert response.status_code == 400

        other = client.delete(f"/api/v1/users/{users['service']['user_id']}", headers=bearer(token))
        assert other.status_code == 204

    def test_unknown_user(self, client, headers):
        assert client.get("/api/v1/users/999", headers=headers["admin"]).status_code == 404
