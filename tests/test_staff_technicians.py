"""
Tests for the staff directory and technician endpoints.
"""

from datetime import date


class TestStaffDirectory:

    def test_create_and_read(self, client, headers, make_staff):
        created = make_staff(work_skills=["Customer Service", "Billing"])

        fetched = client.get(f"/api/v1/staff/{created['id']}", headers=headers["manager"]).json()

        assert fetched["name"] == "Ramesh Nair"
        assert fetched["work_skills"] == ["Customer Service", "Billing"]
        assert fetched["is_active"] is True

    def test_role_must_be_known(self, client, headers):
        body = {"name": "Nobody", "phone": "0770000000", "role": "Cashier"}
        assert client.post("/api/v1/staff/", json=body, headers=headers["admin"]).status_code == 422

    def test_only_admin_writes(self, client, headers):
        body = {"name": "Nobody", "phone": "0770000000", "role": "Service"}
        assert client.post("/api/v1/staff/", json=body, headers=headers["manager"]).status_code == 403
        assert client.get("/api/v1/staff/", headers=headers["jobcard"]).status_code == 403

    def test_active_only_filter(self, client, headers, make_staff):
        make_staff(name="Anand")
        retired = make_staff(name="Bala")
        client.patch(f"/api/v1/staff/{retired['id']}", json={"is_active": False}, headers=headers["admin"])

        names = [s["name"] for s in client.get("/api/v1/staff/", params={"active_only": True}, headers=headers["admin"]).json()]

        assert names == ["Anand"]

    def test_delete_removes_attendance(self, client, headers, make_staff):
        member = make_staff()
        client.post(
            "/api/v1/attendance/",
            json={"staff_id": member["id"], "status": "Present"},
            headers=headers["admin"],
        )

        assert client.delete(f"/api/v1/staff/{member['id']}", headers=headers["admin"]).status_code == 204

        today = client.get("/api/v1/attendance/", params={"date": date.today().isoformat()}, headers=headers["admin"])
        assert today.json() == []
        assert client.get(f"/api/v1/staff/{member['id']}", headers=headers["admin"]).status_code == 404

    def test_unknown_staff(self, client, headers):
        assert client.patch("/api/v1/staff/99", json={"name": "X"}, headers=headers["admin"]).status_code == 404


class TestTechnicians:

    def test_everyone_can_list(self, client, headers, make_technician):
        make_technician()
        for role in ("admin", "jobcard", "technician", "service"):
            response = client.get("/api/v1/technicians/", headers=headers[role])
            assert response.status_code == 200
            assert len(response.json()) == 1

    def test_only_managers_write(self, client, headers):
        body = {"name": "Kannan", "phone": "0761111111"}
        assert client.post("/api/v1/technicians/", json=body, headers=headers["jobcard"]).status_code == 403

    def test_deactivate(self, client, headers, make_technician):
        tech = make_technician()

        response = client.patch(f"/api/v1/technicians/{tech['id']}", json={"is_active": False}, headers=headers["admin"])

        assert response.json()["is_active"] is False
        active = client.get("/api/v1/technicians/", params={"active_only": True}, headers=headers["admin"]).json()
        assert active == []

    def test_delete_unassigns_jobs(self, client, headers, make_technician, make_job):
        tech = make_technician()
        job = make_job(technician_id=tech["id"])
        assert job["technician_name"] == "Kannan Selvam"

        assert client.delete(f"/api/v1/technicians/{tech['id']}", headers=headers["manager"]).status_code == 204

        refreshed = client.get(f"/api/v1/job-cards/{job['id']}", headers=headers["admin"]).json()
        assert refreshed["technician_id"] is None
