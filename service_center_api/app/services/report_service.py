"""
Service layer for dashboard figures and reports.

All queries are read-only.  Revenue is the sum of ``cost`` over jobs
that are ``Completed`` or ``Delivered``; callers pass ``show_revenue``
so that monetary figures are left out for roles that may not see them.
"""

from __future__ import annotations

import logging
from typing import Any, Dict, List, Optional

from service_center_api.app.core.config import settings
from service_center_api.app.core.db import get_connection, today_iso
from service_center_api.app.core.enums import AttendanceStatus, CLOSED_STATUSES, JobStatus

logger = logging.getLogger(__name__)

_CLOSED = tuple(sorted(s.value for s in CLOSED_STATUSES))
_CLOSED_SQL = f"status IN ({', '.join('?' for _ in _CLOSED)})"


def _date_filter(date_from: Optional[str], date_to: Optional[str], column: str = "created_at"):
    clauses: List[str] = []
    params: List[Any] = []
    if date_from:
        clauses.append(f"date({column}) >= date(?)")
        params.append(date_from)
    if date_to:
        clauses.append(f"date({column}) <= date(?)")
        params.append(date_to)
    return clauses, params


class ReportService:
    """Aggregated job and attendance figures."""

    @classmethod
    async def statistics(cls, show_revenue: bool) -> Dict[str, Any]:
        """Dashboard counters for the job board."""
        conn = get_connection()
        try:
            cursor = conn.cursor()
            today_jobs = cursor.execute(
                "SELECT COUNT(*) FROM job_cards WHERE date(created_at) = date(?)", (today_iso(),)
            ).fetchone()[0]
            by_status = {
                row["status"]: row["count"]
                for row in cursor.execute(
                    "SELECT status, COUNT(*) AS count FROM job_cards GROUP BY status"
                ).fetchall()
            }
            result: Dict[str, Any] = {
                "today_jobs": today_jobs,
                "total_jobs": sum(by_status.values()),
                "pending": by_status.get(JobStatus.PENDING.value, 0),
                "in_progress": by_status.get(JobStatus.IN_PROGRESS.value, 0),
                "completed": by_status.get(JobStatus.COMPLETED.value, 0),
                "delivered": by_status.get(JobStatus.DELIVERED.value, 0),
            }
            if show_revenue:
                result["revenue"] = cursor.execute(
                    f"SELECT COALESCE(SUM(cost), 0) FROM job_cards WHERE {_CLOSED_SQL}", _CLOSED
                ).fetchone()[0]
                result["currency"] = settings.currency
            return result
        finally:
            conn.close()

    @classmethod
    async def summary(
        cls,
        date_from: Optional[str] = None,
        date_to: Optional[str] = None,
        show_revenue: bool = False,
    ) -> Dict[str, Any]:
        """Job report over the jobs created between ``date_from`` and ``date_to``.

        Both bounds are inclusive and optional.

        Returns
        -------
        dict
            ``total_jobs``, ``completed_jobs``, ``by_category``,
            ``by_status``, ``top_models`` (five most frequent bike models)
            and ``technician_jobs``.  With ``show_revenue`` it also holds
            ``total_revenue`` and ``average_job_value``.
        """
        clauses, params = _date_filter(date_from, date_to)
        where = " WHERE " + " AND ".join(clauses) if clauses else ""
        and_where = " AND " + " AND ".join(clauses) if clauses else ""
        conn = get_connection()
        try:
            cursor = conn.cursor()
            total_jobs = cursor.execute(f"SELECT COUNT(*) FROM job_cards{where}", tuple(params)).fetchone()[0]
            completed_jobs, revenue = cursor.execute(
                f"SELECT COUNT(*), COALESCE(SUM(cost), 0) FROM job_cards WHERE {_CLOSED_SQL}{and_where}",
                (*_CLOSED, *params),
            ).fetchone()
            by_category = {
                row["service_category"]: row["count"]
                for row in cursor.execute(
                    f"SELECT service_category, COUNT(*) AS count FROM job_cards{where} GROUP BY service_category",
                    tuple(params),
                ).fetchall()
            }
            by_status = {status.value: 0 for status in JobStatus}
            for row in cursor.execute(
                f"SELECT status, COUNT(*) AS count FROM job_cards{where} GROUP BY status", tuple(params)
            ).fetchall():
                by_status[row["status"]] = row["count"]
            top_models = [
                {"bike_model": row["bike_model"], "count": row["count"]}
                for row in cursor.execute(
                    f"SELECT bike_model, COUNT(*) AS count FROM job_cards{where} "
                    "GROUP BY bike_model ORDER BY count DESC, bike_model ASC LIMIT 5",
                    tuple(params),
                ).fetchall()
            ]
            tech_clauses, _ = _date_filter(date_from, date_to, column="j.created_at")
            tech_where = " AND " + " AND ".join(tech_clauses) if tech_clauses else ""
            technician_jobs = [
                {
                    "technician_id": row["technician_id"],
                    "technician_name": row["technician_name"],
                    "jobs": row["jobs"],
                }
                for row in cursor.execute(
                    "SELECT j.technician_id, t.name AS technician_name, COUNT(*) AS jobs "
                    "FROM job_cards j JOIN technicians t ON t.id = j.technician_id "
                    f"WHERE j.technician_id IS NOT NULL{tech_where} "
                    "GROUP BY j.technician_id ORDER BY jobs DESC, t.name ASC",
                    tuple(params),
                ).fetchall()
            ]
        finally:
            conn.close()
        report: Dict[str, Any] = {
            "date_from": date_from,
            "date_to": date_to,
            "total_jobs": total_jobs,
            "completed_jobs": completed_jobs,
            "by_category": by_category,
            "by_status": by_status,
            "top_models": top_models,
            "technician_jobs": technician_jobs,
        }
        if show_revenue:
            report["total_revenue"] = revenue
            report["average_job_value"] = round(revenue / completed_jobs, 2) if completed_jobs else 0.0
            report["currency"] = settings.currency
        return report

    @classmethod
    async def attendance_report(cls, date_from: Optional[str] = None, date_to: Optional[str] = None) -> List[Dict[str, Any]]:
        """Attendance counts per staff member over a date range."""
        clauses, params = _date_filter(date_from, date_to, column="a.date")
        join_filter = " AND " + " AND ".join(clauses) if clauses else ""
        conn = get_connection()
        try:
            rows = conn.execute(
                "SELECT s.id AS staff_id, s.name, a.status, COUNT(a.id) AS count FROM staff s "
                f"LEFT JOIN attendance a ON a.staff_id = s.id{join_filter} "
                "GROUP BY s.id, a.status ORDER BY s.name",
                tuple(params),
            ).fetchall()
        finally:
            conn.close()
        report: Dict[int, Dict[str, Any]] = {}
        for row in rows:
            entry = report.setdefault(
                row["staff_id"],
                {
                    "staff_id": row["staff_id"],
                    "name": row["name"],
                    **{status.value.lower(): 0 for status in AttendanceStatus},
                    "total": 0,
                },
            )
            if row["status"]:
                entry[row["status"].lower()] = row["count"]
                entry["total"] += row["count"]
        return list(report.values())
