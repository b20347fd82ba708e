"""
Pytest configuration and shared fixtures.

Every test gets its own SQLite file under ``tmp_path``; the global
``settings`` object is pointed at it before ``init_db`` runs.
"""

import asyncio
from typing import Any, Callable, Dict

import pytest
from fastapi.testclient import TestClient

from service_center_api.app.core import security
from service_center_api.app.core.config import settings
from service_center_api.app.core.db import get_connection, init_db, now_iso
from service_center_api.app.core.enums import Role
from service_center_api.app.main import app
from service_center_api.app.services.auth_service import AuthService

ROLE_USERS = {
    "admin": ("admin", Role.ADMIN),
    "manager": ("manager", Role.MANAGER),
    "jobcard": ("staff1", Role.JOB_CARD),
    "technician": ("tech1", Role.TECHNICIAN),
    "service": ("service1", Role.SERVICE),
}

PASSWORD = "secret123"


@pytest.fixture
def db_path(tmp_path, monkeypatch):
    """Fresh, migrated database with the bootstrap administrator."""
    path = tmp_path / "service_center.db"
    monkeypatch.setattr(settings, "database_url", str(path))
    monkeypatch.setattr(settings, "super_admin_static_token", "")
    monkeypatch.setattr(settings, "admin_password", PASSWORD)
    monkeypatch.setattr(settings, "loyalty_points_per_unit", 0.01)
    # Keeps password hashing fast; stored hashes stay verifiable within a test.
    monkeypatch.setattr(security, "PBKDF2_ITERATIONS", 1_000)
    init_db()
    return path


@pytest.fixture
def client(db_path):
    with TestClient(app) as test_client:
        yield test_client


@pytest.fixture
def users(db_path) -> Dict[str, Dict[str, Any]]:
    """One account per role, keyed by ``admin``, ``manager``, ``jobcard``, ``technician`` and ``service``."""
    conn = get_connection()
    try:
        accounts = {}
        for key, (username, role) in ROLE_USERS.items():
            row = conn.execute("SELECT id FROM users WHERE username = ?", (username,)).fetchone()
            if row:
                user_id = row["id"]
            else:
                cursor = conn.execute(
                    "INSERT INTO users (username, full_name, password, role_id, created_at) VALUES (?, ?, ?, ?, ?)",
                    (username, username.title(), security.hash_password(PASSWORD), int(role), now_iso()),
                )
                user_id = cursor.lastrowid
            accounts[key] = {"user_id": user_id, "username": username, "role_id": int(role)}
        conn.commit()
        return accounts
    finally:
        conn.close()


@pytest.fixture
def headers(users) -> Dict[str, Dict[str, str]]:
    """Authorization headers for every role, backed by real sessions."""
    result = {}
    for key, account in users.items():
        token = asyncio.run(AuthService.create_session(account["user_id"], account["username"]))
        result[key] = {"Authorization": f"Bearer {token['access_token']}"}
    return result


def job_payload(**overrides: Any) -> Dict[str, Any]:
    payload = {
        "customer_name": "Rajesh Kumar",
        "phone": "0771234567",
        "bike_model": "Shine",
        "registration": "NP-2341",
        "odometer": 15420,
        "service_category": "Paid Service",
        "service_type": "Regular Service",
        "estimated_time": "45 mins",
        "cost": 1500,
    }
    payload.update(overrides)
    return payload


@pytest.fixture
def make_job(client, headers) -> Callable[..., Dict[str, Any]]:
    """Create a job card as the administrator and return the response body."""

    def _make(**overrides: Any) -> Dict[str, Any]:
        response = client.post("/api/v1/job-cards/", json=job_payload(**overrides), headers=headers["admin"])
        assert response.status_code == 201, response.text
        return response.json()

    return _make


@pytest.fixture
def make_technician(client, headers) -> Callable[..., Dict[str, Any]]:
    def _make(name: str = "Kannan Selvam", **overrides: Any) -> Dict[str, Any]:
        body = {"name": name, "phone": "0761111111", "specialization": "Engine Repair"}
        body.update(overrides)
        response = client.post("/api/v1/technicians/", json=body, headers=headers["manager"])
        assert response.status_code == 201, response.text
        return response.json()

    return _make


@pytest.fixture
def make_staff(client, headers) -> Callable[..., Dict[str, Any]]:
    def _make(name: str = "Ramesh Nair", **overrides: Any) -> Dict[str, Any]:
        body = {"name": name, "phone": "0773456789", "role": "Job Card", "work_skills": ["Customer Service"]}
        body.update(overrides)
        response = client.post("/api/v1/staff/", json=body, headers=headers["admin"])
        assert response.status_code == 201, response.text
        return response.json()

    return _make


@pytest.fixture
def job_data() -> Callable[..., Dict[str, Any]]:
    """Factory for job card request bodies."""
    return job_payload
