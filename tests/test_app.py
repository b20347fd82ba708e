"""
Tests for application wiring: health check, CORS and migrations.
"""

from service_center_api.app.core.db import get_connection, init_db


class TestApplication:

    def test_health(self, client):
        response = client.get("/health")
        assert response.status_code == 200
        assert response.json()["status"] == "ok"

    def test_cors_preflight(self, client):
        response = client.options(
            "/api/v1/job-cards/",
            headers={"Origin": "http://kiosk.local", "Access-Control-Request-Method": "GET"},
        )
        assert response.status_code == 200
        assert response.headers["access-control-allow-origin"] in ("*", "http://kiosk.local")

    def test_migrations_are_idempotent(self, db_path):
        init_db()
        conn = get_connection()
        try:
            versions = [row["version"] for row in conn.execute("SELECT version FROM migrations ORDER BY version")]
            roles = conn.execute("SELECT COUNT(*) FROM roles").fetchone()[0]
            admins = conn.execute("SELECT COUNT(*) FROM users").fetchone()[0]
        finally:
            conn.close()
        assert versions == [1, 2, 3]
        assert roles == 5
        assert admins == 1
