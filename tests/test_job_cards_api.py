"""
Tests for the job card endpoints: workflow, bays, redaction and audit trail.
"""

import sqlite3

import pytest

from service_center_api.app.core.db import get_connection

BASE = "/api/v1/job-cards"


def set_status(client, headers, job_id, status):
    return client.patch(f"{BASE}/{job_id}/status", json={"status": status}, headers=headers)


class TestCreateJobCard:

    def test_front_desk_creates_job(self, client, headers, job_data):
        response = client.post(f"{BASE}/", json=job_data(), headers=headers["jobcard"])

        assert response.status_code == 201
        body = response.json()
        assert body["job_number"] == "JC001"
        assert body["status"] == "Pending"
        assert body["payment_status"] == "Paid in Full"

    @pytest.mark.parametrize("role", ["technician", "service"])
    def test_limited_roles_cannot_create(self, client, headers, job_data, role):
        response = client.post(f"{BASE}/", json=job_data(), headers=headers[role])
        assert response.status_code == 403

    def test_requires_authentication(self, client):
        assert client.get(f"{BASE}/").status_code == 401

    def test_repair_advance_split(self, make_job):
        job = make_job(service_category="Repair", service_type="Repair", cost=18500)

        assert job["advance_payment"] == 9250
        assert job["remaining_payment"] == 9250
        assert job["payment_status"] == "Advance Paid"

    def test_service_type_must_match_category(self, client, headers, job_data):
        response = client.post(
            f"{BASE}/", json=job_data(service_category="Repair", service_type="Regular Service"), headers=headers["admin"]
        )
        assert response.status_code == 400

    def test_cannot_start_delivered(self, client, headers, job_data):
        response = client.post(f"{BASE}/", json=job_data(status="Delivered"), headers=headers["admin"])
        assert response.status_code == 400

    def test_negative_cost_rejected(self, client, headers, job_data):
        response = client.post(f"{BASE}/", json=job_data(cost=-1), headers=headers["admin"])
        assert response.status_code == 422


class TestRevenueRedaction:

    @pytest.mark.parametrize("role", ["jobcard", "technician", "service"])
    def test_hidden_from_non_revenue_roles(self, client, headers, make_job, role):
        job = make_job(bay="Wash Bay")

        body = client.get(f"{BASE}/{job['id']}", headers=headers[role]).json()

        for field in ("cost", "advance_payment", "remaining_payment"):
            assert field not in body
        assert body["customer_name"] == "Rajesh Kumar"

    @pytest.mark.parametrize("role", ["admin", "manager"])
    def test_visible_to_revenue_roles(self, client, headers, make_job, role):
        job = make_job(cost=2500)

        body = client.get(f"{BASE}/{job['id']}", headers=headers[role]).json()

        assert body["cost"] == 2500
        assert body["advance_payment"] == 2500

    def test_list_is_redacted(self, client, headers, make_job):
        make_job()
        rows = client.get(f"{BASE}/", headers=headers["jobcard"]).json()
        assert rows and all("cost" not in row for row in rows)


class TestStatusWorkflow:

    def test_technician_limited_to_progress_and_completion(self, client, headers, make_job):
        job = make_job()

        assert set_status(client, headers["technician"], job["id"], "Quality Check").status_code == 403
        response = set_status(client, headers["technician"], job["id"], "In Progress")
        assert response.status_code == 200
        assert response.json()["status"] == "In Progress"

    def test_oil_change_rejected_for_repair(self, client, headers, make_job):
        job = make_job(service_category="Repair", service_type="Repair")
        assert set_status(client, headers["admin"], job["id"], "Oil Change").status_code == 400

    def test_delivery_requires_completion(self, client, headers, make_job):
        job = make_job(status="In Progress")
        assert set_status(client, headers["admin"], job["id"], "Delivered").status_code == 409

    def test_completion_and_delivery_timestamps(self, client, headers, make_job):
        job = make_job()

        completed = set_status(client, headers["admin"], job["id"], "Completed").json()
        assert completed["completed_at"] is not None
        assert completed["delivered_at"] is None

        delivered = set_status(client, headers["admin"], job["id"], "Delivered").json()
        assert delivered["status"] == "Delivered"
        assert delivered["delivered_at"] is not None

    def test_delivered_is_final(self, client, headers, make_job):
        job = make_job(status="Completed")
        set_status(client, headers["admin"], job["id"], "Delivered")

        assert set_status(client, headers["admin"], job["id"], "Completed").status_code == 409

    def test_same_status_writes_no_history(self, client, headers, make_job):
        job = make_job()

        response = set_status(client, headers["admin"], job["id"], "Pending")

        assert response.status_code == 200
        history = client.get(f"{BASE}/{job['id']}/history", headers=headers["admin"]).json()
        assert [entry["action"] for entry in history] == ["create"]

    def test_unknown_job(self, client, headers):
        assert set_status(client, headers["admin"], 999, "In Progress").status_code == 404


class TestEditJobCard:

    def test_cost_change_recomputes_payment(self, client, headers, make_job):
        job = make_job(service_category="Repair", service_type="Repair", cost=1000)

        response = client.patch(f"{BASE}/{job['id']}", json={"cost": 3000}, headers=headers["admin"])

        assert response.status_code == 200
        assert response.json()["advance_payment"] == 1500
        assert response.json()["remaining_payment"] == 1500

    def test_category_change_checked_against_status(self, client, headers, make_job):
        job = make_job(status="Oil Change", service_type="Service with Oil Spray (Oil Change)")

        response = client.patch(
            f"{BASE}/{job['id']}",
            json={"service_category": "Repair", "service_type": "Repair"},
            headers=headers["admin"],
        )

        assert response.status_code == 400

    def test_category_change_switches_payment(self, client, headers, make_job):
        job = make_job(cost=2000)

        response = client.patch(
            f"{BASE}/{job['id']}",
            json={"service_category": "Repair", "service_type": "Repair"},
            headers=headers["manager"],
        )

        assert response.status_code == 200
        assert response.json()["payment_status"] == "Advance Paid"
        assert response.json()["advance_payment"] == 1000

    def test_technician_cannot_edit(self, client, headers, make_job):
        job = make_job()
        response = client.patch(f"{BASE}/{job['id']}", json={"odometer": 1}, headers=headers["technician"])
        assert response.status_code == 403


class TestAssignment:

    def test_technician_bay_holds_one_active_job(self, client, headers, make_job):
        first = make_job(bay="Bay 1")
        second = make_job(registration="NP-1111")

        response = client.patch(f"{BASE}/{second['id']}/assignment", json={"bay": "Bay 1"}, headers=headers["jobcard"])
        assert response.status_code == 409

        set_status(client, headers["admin"], first["id"], "Completed")
        response = client.patch(f"{BASE}/{second['id']}/assignment", json={"bay": "Bay 1"}, headers=headers["jobcard"])
        assert response.status_code == 200
        assert response.json()["bay"] == "Bay 1"

    def test_create_into_busy_bay_conflicts(self, client, headers, make_job, job_data):
        make_job(bay="Bay 2")
        response = client.post(f"{BASE}/", json=job_data(bay="Bay 2"), headers=headers["admin"])
        assert response.status_code == 409

    def test_wash_bay_batches_jobs(self, make_job):
        make_job(bay="Wash Bay")
        second = make_job(bay="Wash Bay", registration="NP-2222")
        assert second["bay"] == "Wash Bay"

    def test_unknown_bay(self, client, headers, make_job):
        job = make_job()
        response = client.patch(f"{BASE}/{job['id']}/assignment", json={"bay": "Bay 9"}, headers=headers["admin"])
        assert response.status_code == 400

    def test_technician_must_exist_and_be_active(self, client, headers, make_job, make_technician):
        job = make_job()
        inactive = make_technician(is_active=False)
        active = make_technician(name="Vimal Kumar")

        missing = client.patch(f"{BASE}/{job['id']}/assignment", json={"technician_id": 999}, headers=headers["admin"])
        assert missing.status_code == 404
        disabled = client.patch(
            f"{BASE}/{job['id']}/assignment", json={"technician_id": inactive["id"]}, headers=headers["admin"]
        )
        assert disabled.status_code == 400
        ok = client.patch(
            f"{BASE}/{job['id']}/assignment", json={"technician_id": active["id"]}, headers=headers["admin"]
        )
        assert ok.status_code == 200
        assert ok.json()["technician_name"] == "Vimal Kumar"

    def test_reopening_into_occupied_bay_conflicts(self, client, headers, make_job):
        first = make_job(bay="Bay 3")
        set_status(client, headers["admin"], first["id"], "Completed")
        make_job(bay="Bay 3", registration="NP-3333")

        assert set_status(client, headers["admin"], first["id"], "In Progress").status_code == 409

    def test_bay_status(self, client, headers, make_job):
        make_job(bay="Bay 1")
        make_job(bay="Wash Bay", registration="NP-4444")

        bays = {bay["bay"]: bay for bay in client.get("/api/v1/bays/status", headers=headers["jobcard"]).json()}

        assert len(bays) == 6
        assert bays["Bay 1"]["is_occupied"] is True
        assert bays["Bay 2"]["is_occupied"] is False
        assert bays["Wash Bay"]["is_wash_bay"] is True
        assert "cost" not in bays["Bay 1"]["job_cards"][0]


class TestListing:

    def test_newest_first_and_filters(self, client, headers, make_job):
        make_job(customer_name="First Customer")
        make_job(customer_name="Second Customer", registration="NP-5555", status="In Progress")

        rows = client.get(f"{BASE}/", headers=headers["admin"]).json()
        assert [row["customer_name"] for row in rows] == ["Second Customer", "First Customer"]

        in_progress = client.get(f"{BASE}/", params={"status": "In Progress"}, headers=headers["admin"]).json()
        assert [row["registration"] for row in in_progress] == ["NP-5555"]

    def test_search_by_job_number_and_registration(self, client, headers, make_job):
        make_job()
        make_job(registration="NP-7788", customer_name="Mohan Raj")

        by_number = client.get(f"{BASE}/", params={"q": "JC002"}, headers=headers["admin"]).json()
        assert [row["customer_name"] for row in by_number] == ["Mohan Raj"]
        by_reg = client.get(f"{BASE}/", params={"q": "7788"}, headers=headers["admin"]).json()
        assert len(by_reg) == 1

    def test_technician_sees_only_open_jobs(self, client, headers, make_job):
        make_job()
        make_job(status="Quality Check", registration="NP-6666")
        make_job(status="Completed", registration="NP-7777")

        rows = client.get(f"{BASE}/", headers=headers["technician"]).json()

        assert [row["status"] for row in rows] == ["Pending"]

    def test_service_sees_only_wash_bay(self, client, headers, make_job):
        make_job(bay="Bay 1")
        make_job(bay="Wash Bay", registration="NP-8888")

        rows = client.get(f"{BASE}/", headers=headers["service"]).json()

        assert [row["registration"] for row in rows] == ["NP-8888"]

    def test_recent(self, client, headers, make_job):
        for i in range(4):
            make_job(registration=f"NP-000{i}")
        rows = client.get(f"{BASE}/recent", params={"limit": 2}, headers=headers["admin"]).json()
        assert [row["registration"] for row in rows] == ["NP-0003", "NP-0002"]


class TestLimitedRoleAccess:
    """Technician and Service users cannot reach jobs their list hides."""

    def test_technician_cannot_reopen_completed_job(self, client, headers, make_job):
        job = make_job(bay="Bay 1")
        set_status(client, headers["admin"], job["id"], "Completed")

        response = set_status(client, headers["technician"], job["id"], "In Progress")

        assert response.status_code == 404
        stored = client.get(f"{BASE}/{job['id']}", headers=headers["admin"]).json()
        assert stored["status"] == "Completed"
        assert stored["completed_at"] is not None

    @pytest.mark.parametrize("status", ["Quality Check", "Completed"])
    def test_closed_or_checked_job_hidden_from_technician(self, client, headers, make_job, status):
        job = make_job(status=status)
        assert client.get(f"{BASE}/{job['id']}", headers=headers["technician"]).status_code == 404

    def test_service_cannot_reach_technician_bay(self, client, headers, make_job):
        job = make_job(bay="Bay 2")

        assert client.get(f"{BASE}/{job['id']}", headers=headers["service"]).status_code == 404
        assert set_status(client, headers["service"], job["id"], "Completed").status_code == 404
        stored = client.get(f"{BASE}/{job['id']}", headers=headers["admin"]).json()
        assert stored["status"] == "Pending"

    def test_service_works_wash_bay_jobs(self, client, headers, make_job):
        job = make_job(bay="Wash Bay")

        assert client.get(f"{BASE}/{job['id']}", headers=headers["service"]).status_code == 200
        response = set_status(client, headers["service"], job["id"], "Completed")
        assert response.status_code == 200
        assert response.json()["status"] == "Completed"

    def test_technician_sees_open_job(self, client, headers, make_job):
        job = make_job(status="In Progress", bay="Bay 3")
        response = client.get(f"{BASE}/{job['id']}", headers=headers["technician"])
        assert response.status_code == 200
        assert response.json()["bay"] == "Bay 3"


class TestHistoryAndDelete:

    def test_history_oldest_first_with_changes(self, client, headers, make_job, users):
        job = make_job()
        set_status(client, headers["technician"], job["id"], "In Progress")

        history = client.get(f"{BASE}/{job['id']}/history", headers=headers["admin"]).json()

        assert [entry["action"] for entry in history] == ["create", "status_change"]
        change = history[1]
        assert change["user_id"] == users["technician"]["user_id"]
        assert change["details"]["changes"]["status"] == {"old": "Pending", "new": "In Progress"}

    def test_history_hides_revenue_changes(self, client, headers, make_job):
        job = make_job(cost=1000)
        client.patch(f"{BASE}/{job['id']}", json={"cost": 1200, "odometer": 16000}, headers=headers["admin"])

        admin_view = client.get(f"{BASE}/{job['id']}/history", headers=headers["admin"]).json()
        clerk_view = client.get(f"{BASE}/{job['id']}/history", headers=headers["jobcard"]).json()

        assert "cost" in admin_view[1]["details"]["changes"]
        assert "cost" not in clerk_view[1]["details"]["changes"]
        assert "odometer" in clerk_view[1]["details"]["changes"]
        assert "cost" not in clerk_view[0]["details"]["values"]

    def test_history_not_available_to_technicians(self, client, headers, make_job):
        job = make_job()
        assert client.get(f"{BASE}/{job['id']}/history", headers=headers["technician"]).status_code == 403

    def test_delete_keeps_history(self, client, headers, make_job):
        job = make_job()

        assert client.delete(f"{BASE}/{job['id']}", headers=headers["jobcard"]).status_code == 403
        assert client.delete(f"{BASE}/{job['id']}", headers=headers["manager"]).status_code == 204
        assert client.get(f"{BASE}/{job['id']}", headers=headers["admin"]).status_code == 404

        history = client.get(f"{BASE}/{job['id']}/history", headers=headers["admin"]).json()
        assert history[-1]["action"] == "delete"

    def test_history_unknown_job(self, client, headers):
        assert client.get(f"{BASE}/404/history", headers=headers["admin"]).status_code == 404

    def test_audit_log_is_immutable(self, make_job):
        make_job()
        conn = get_connection()
        try:
            with pytest.raises(sqlite3.DatabaseError):
                conn.execute("UPDATE audit_logs SET action = 'tampered'")
            with pytest.raises(sqlite3.DatabaseError):
                conn.execute("DELETE FROM audit_logs")
        finally:
            conn.close()
