"""
Tests for dashboard statistics and reports.
"""

from datetime import date, timedelta

import pytest


@pytest.fixture
def jobs(client, headers, make_job, make_technician):
    tech = make_technician()
    paid = make_job(cost=1500, technician_id=tech["id"])
    repair = make_job(
        service_category="Repair", service_type="Repair", cost=10000, registration="NP-1000", technician_id=tech["id"]
    )
    make_job(bike_model="Unicorn", cost=999, registration="NP-2000")
    client.patch(f"/api/v1/job-cards/{paid['id']}/status", json={"status": "Completed"}, headers=headers["admin"])
    client.patch(f"/api/v1/job-cards/{repair['id']}/status", json={"status": "Completed"}, headers=headers["admin"])
    client.patch(f"/api/v1/job-cards/{repair['id']}/status", json={"status": "Delivered"}, headers=headers["admin"])
    return tech


class TestStatistics:

    def test_counts_and_revenue(self, client, headers, jobs):
        stats = client.get("/api/v1/statistics/", headers=headers["manager"]).json()

        assert stats["today_jobs"] == 3
        assert stats["total_jobs"] == 3
        assert stats["pending"] == 1
        assert stats["completed"] == 1
        assert stats["delivered"] == 1
        assert stats["revenue"] == 11500

    def test_revenue_hidden(self, client, headers, jobs):
        stats = client.get("/api/v1/statistics/", headers=headers["technician"]).json()
        assert "revenue" not in stats
        assert "currency" not in stats
        assert stats["total_jobs"] == 3


class TestSummaryReport:

    def test_summary(self, client, headers, jobs):
        report = client.get("/api/v1/reports/summary", headers=headers["admin"]).json()

        assert report["total_jobs"] == 3
        assert report["completed_jobs"] == 2
        assert report["total_revenue"] == 11500
        assert report["currency"] == "LKR"
        assert report["average_job_value"] == 5750
        assert report["by_category"] == {"Paid Service": 2, "Repair": 1}
        assert report["by_status"]["Oil Change"] == 0
        assert report["top_models"][0] == {"bike_model": "Shine", "count": 2}
        assert report["technician_jobs"][0]["technician_name"] == "Kannan Selvam"
        assert report["technician_jobs"][0]["jobs"] == 2

    def test_summary_without_revenue(self, client, headers, jobs):
        report = client.get("/api/v1/reports/summary", headers=headers["jobcard"]).json()
        assert "total_revenue" not in report
        assert "average_job_value" not in report

    def test_date_range(self, client, headers, jobs):
        yesterday = (date.today() - timedelta(days=1)).isoformat()

        report = client.get("/api/v1/reports/summary", params={"date_to": yesterday}, headers=headers["admin"]).json()

        assert report["total_jobs"] == 0
        assert report["technician_jobs"] == []
        assert report["average_job_value"] == 0

    def test_limited_roles_excluded(self, client, headers):
        assert client.get("/api/v1/reports/summary", headers=headers["service"]).status_code == 403


class TestAttendanceReport:

    def test_counts_per_staff(self, client, headers, make_staff):
        anand = make_staff(name="Anand")
        make_staff(name="Bala")
        today = date.today()
        for days_ago, status in ((0, "Present"), (1, "Late"), (2, "Absent")):
            client.post(
                "/api/v1/attendance/",
                json={"staff_id": anand["id"], "status": status, "date": (today - timedelta(days=days_ago)).isoformat()},
                headers=headers["admin"],
            )

        report = client.get("/api/v1/reports/attendance", headers=headers["manager"]).json()

        assert [row["name"] for row in report] == ["Anand", "Bala"]
        assert report[0]["present"] == 1
        assert report[0]["late"] == 1
        assert report[0]["absent"] == 1
        assert report[0]["total"] == 3
        assert report[1]["total"] == 0

    def test_requires_manager(self, client, headers):
        assert client.get("/api/v1/reports/attendance", headers=headers["jobcard"]).status_code == 403
