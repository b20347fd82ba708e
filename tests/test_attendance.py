"""
Tests for daily attendance.
"""

from datetime import date, timedelta

import pytest

BASE = "/api/v1/attendance"


@pytest.fixture
def staff_member(make_staff):
    return make_staff()


def mark(client, headers, staff_id, status="Present", **extra):
    body = {"staff_id": staff_id, "status": status}
    body.update(extra)
    return client.post(f"{BASE}/", json=body, headers=headers)


class TestMarkAttendance:

    def test_defaults_to_today(self, client, headers, staff_member):
        response = mark(client, headers["manager"], staff_member["id"], check_in_time="08:30")

        assert response.status_code == 201
        body = response.json()
        assert body["date"] == date.today().isoformat()
        assert body["staff_name"] == "Ramesh Nair"
        assert body["check_in_time"] == "08:30"

    def test_one_record_per_day(self, client, headers, staff_member):
        mark(client, headers["manager"], staff_member["id"])
        assert mark(client, headers["manager"], staff_member["id"], "Late").status_code == 409

    def test_unknown_staff(self, client, headers):
        assert mark(client, headers["admin"], 404).status_code == 404

    def test_bad_time_format(self, client, headers, staff_member):
        assert mark(client, headers["admin"], staff_member["id"], check_in_time="8.30am").status_code == 422

    def test_other_days_are_admin_only(self, client, headers, staff_member):
        yesterday = (date.today() - timedelta(days=1)).isoformat()

        assert mark(client, headers["manager"], staff_member["id"], date=yesterday).status_code == 403
        response = mark(client, headers["admin"], staff_member["id"], date=yesterday)
        assert response.status_code == 201
        assert response.json()["date"] == yesterday

    def test_front_desk_cannot_take_attendance(self, client, headers, staff_member):
        assert mark(client, headers["jobcard"], staff_member["id"]).status_code == 403


class TestUpdateAttendance:

    def test_manager_edits_today(self, client, headers, staff_member):
        record = mark(client, headers["manager"], staff_member["id"]).json()

        response = client.patch(
            f"{BASE}/{record['id']}", json={"status": "Late", "check_in_time": "09:15"}, headers=headers["manager"]
        )

        assert response.status_code == 200
        assert response.json()["status"] == "Late"
        assert response.json()["updated_at"] is not None

    def test_manager_cannot_edit_past(self, client, headers, staff_member):
        past = (date.today() - timedelta(days=3)).isoformat()
        record = mark(client, headers["admin"], staff_member["id"], date=past).json()

        denied = client.patch(f"{BASE}/{record['id']}", json={"status": "Leave"}, headers=headers["manager"])
        allowed = client.patch(f"{BASE}/{record['id']}", json={"status": "Leave"}, headers=headers["admin"])

        assert denied.status_code == 403
        assert allowed.status_code == 200

    def test_unknown_record(self, client, headers):
        assert client.patch(f"{BASE}/77", json={"status": "Leave"}, headers=headers["admin"]).status_code == 404


class TestAttendanceQueries:

    def test_summary_counts_late_as_present(self, client, headers, make_staff):
        ids = [make_staff(name=name)["id"] for name in ("Anand", "Bala", "Chitra", "Devi")]
        mark(client, headers["admin"], ids[0], "Present")
        mark(client, headers["admin"], ids[1], "Late")
        mark(client, headers["admin"], ids[2], "Leave")

        summary = client.get(f"{BASE}/summary", headers=headers["manager"]).json()

        assert summary["present"] == 2
        assert summary["absent"] == 0
        assert summary["leave"] == 1
        assert summary["total_staff"] == 4

    def test_summary_ignores_inactive_staff(self, client, headers, make_staff):
        active = make_staff(name="Anand")
        former = make_staff(name="Bala", is_active=False)
        mark(client, headers["admin"], active["id"], "Present")
        mark(client, headers["admin"], former["id"], "Absent")

        summary = client.get(f"{BASE}/summary", headers=headers["manager"]).json()

        assert summary["present"] == 1
        assert summary["absent"] == 0
        assert summary["total_staff"] == 1

    def test_today_sorted_by_name(self, client, headers, make_staff):
        zed = make_staff(name="Zahir")
        anu = make_staff(name="Anu")
        mark(client, headers["admin"], zed["id"])
        mark(client, headers["admin"], anu["id"])

        names = [r["staff_name"] for r in client.get(f"{BASE}/today", headers=headers["admin"]).json()]

        assert names == ["Anu", "Zahir"]

    def test_staff_history_newest_first(self, client, headers, staff_member):
        today = date.today()
        for days_ago in (2, 0, 1):
            day = (today - timedelta(days=days_ago)).isoformat()
            mark(client, headers["admin"], staff_member["id"], date=day)

        history = client.get(f"{BASE}/staff/{staff_member['id']}", headers=headers["admin"]).json()
        assert [r["date"] for r in history] == [(today - timedelta(days=d)).isoformat() for d in (0, 1, 2)]

        bounded = client.get(
            f"{BASE}/staff/{staff_member['id']}",
            params={"date_from": (today - timedelta(days=1)).isoformat()},
            headers=headers["admin"],
        ).json()
        assert len(bounded) == 2

    def test_staff_history_unknown(self, client, headers):
        assert client.get(f"{BASE}/staff/12", headers=headers["admin"]).status_code == 404
