"""
Business logic for daily staff attendance.

There is at most one record per staff member per day.  Records for
past or future dates can only be changed by an administrator.
"""

import logging
import sqlite3
from typing import Any, Dict, List, Optional

from service_center_api.app.core.db import get_connection, now_iso, today_iso
from service_center_api.app.core.enums import AttendanceStatus, Role
from service_center_api.app.core.exceptions import ConflictError, NotFoundError, PermissionDeniedError
from service_center_api.app.schemas.attendance import AttendanceCreate, AttendanceRead, AttendanceSummary
from service_center_api.app.services.audit_service import AuditService

logger = logging.getLogger(__name__)

_SELECT = (
    "SELECT a.*, s.name AS staff_name FROM attendance a "
    "JOIN staff s ON s.id = a.staff_id"
)


class AttendanceService:
    """Service for recording and querying attendance."""

    @staticmethod
    def _row_to_model(row: sqlite3.Row) -> AttendanceRead:
        return AttendanceRead(**dict(row))

    @classmethod
    async def list_for_date(cls, day: Optional[str] = None) -> List[AttendanceRead]:
        """Return the records of ``day`` (today when omitted) ordered by staff name."""
        conn = get_connection()
        try:
            rows = conn.execute(
                f"{_SELECT} WHERE a.date = ? ORDER BY s.name", (day or today_iso(),)
            ).fetchall()
            return [cls._row_to_model(row) for row in rows]
        finally:
            conn.close()

    @classmethod
    async def list_for_staff(
        cls,
        staff_id: int,
        date_from: Optional[str] = None,
        date_to: Optional[str] = None,
    ) -> List[AttendanceRead]:
        """Attendance history of one staff member, most recent first."""
        conn = get_connection()
        try:
            if not conn.execute("SELECT 1 FROM staff WHERE id = ?", (staff_id,)).fetchone():
                raise NotFoundError(f"Staff member {staff_id} not found")
            query = f"{_SELECT} WHERE a.staff_id = ?"
            params: List[Any] = [staff_id]
            if date_from:
                query += " AND a.date >= ?"
                params.append(date_from)
            if date_to:
                query += " AND a.date <= ?"
                params.append(date_to)
            rows = conn.execute(query + " ORDER BY a.date DESC", tuple(params)).fetchall()
            return [cls._row_to_model(row) for row in rows]
        finally:
            conn.close()

    @classmethod
    async def summary(cls, day: Optional[str] = None) -> AttendanceSummary:
        """Headcount of active staff for one day.  Late arrivals count as present."""
        day = day or today_iso()
        conn = get_connection()
        try:
            counts = {
                row["status"]: row["count"]
                for row in conn.execute(
                    "SELECT a.status, COUNT(*) AS count FROM attendance a"
                    " JOIN staff s ON s.id = a.staff_id"
                    " WHERE a.date = ? AND s.is_active = 1 GROUP BY a.status",
                    (day,),
                ).fetchall()
            }
            total_staff = conn.execute("SELECT COUNT(*) FROM staff WHERE is_active = 1").fetchone()[0]
        finally:
            conn.close()
        return AttendanceSummary(
            date=day,
            present=counts.get(AttendanceStatus.PRESENT.value, 0) + counts.get(AttendanceStatus.LATE.value, 0),
            absent=counts.get(AttendanceStatus.ABSENT.value, 0),
            leave=counts.get(AttendanceStatus.LEAVE.value, 0),
            total_staff=total_staff,
        )

    @classmethod
    async def mark(cls, data: AttendanceCreate, current_user: dict) -> AttendanceRead:
        """Create the attendance record of a staff member for a day.

        Only an administrator may create records for a day other than
        today.
        """
        day = data.date.isoformat() if data.date else today_iso()
        if day != today_iso() and current_user.get("role_id") != Role.ADMIN:
            raise PermissionDeniedError("Only an administrator can record attendance for another day")
        conn = get_connection()
        try:
            cursor = conn.cursor()
            if not cursor.execute("SELECT 1 FROM staff WHERE id = ?", (data.staff_id,)).fetchone():
                raise NotFoundError(f"Staff member {data.staff_id} not found")
            if cursor.execute(
                "SELECT 1 FROM attendance WHERE staff_id = ? AND date = ?", (data.staff_id, day)
            ).fetchone():
                raise ConflictError(f"Attendance for staff {data.staff_id} on {day} already recorded")
            cursor.execute(
                "INSERT INTO attendance (staff_id, date, status, check_in_time, check_out_time, notes, created_at) "
                "VALUES (?, ?, ?, ?, ?, ?, ?)",
                (
                    data.staff_id,
                    day,
                    data.status.value,
                    data.check_in_time,
                    data.check_out_time,
                    data.notes,
                    now_iso(),
                ),
            )
            record_id = cursor.lastrowid
            AuditService.record(
                cursor,
                current_user.get("user_id"),
                "create",
                "attendance",
                record_id,
                {"staff_id": data.staff_id, "date": day, "status": data.status.value},
            )
            conn.commit()
            return cls._row_to_model(cursor.execute(f"{_SELECT} WHERE a.id = ?", (record_id,)).fetchone())
        except Exception:
            conn.rollback()
            raise
        finally:
            conn.close()

    @classmethod
    async def update(cls, record_id: int, updates: Dict[str, Any], current_user: dict) -> AttendanceRead:
        conn = get_connection()
        try:
            cursor = conn.cursor()
            row = cursor.execute(f"{_SELECT} WHERE a.id = ?", (record_id,)).fetchone()
            if not row:
                raise NotFoundError(f"Attendance record {record_id} not found")
            if row["date"] != today_iso() and current_user.get("role_id") != Role.ADMIN:
                raise PermissionDeniedError("Only an administrator can edit attendance of another day")
            changes = {}
            for field, value in updates.items():
                if isinstance(value, AttendanceStatus):
                    value = value.value
                if row[field] != value:
                    changes[field] = {"old": row[field], "new": value}
            if not changes:
                return cls._row_to_model(row)
            assignments = ", ".join(f"{field} = ?" for field in changes)
            cursor.execute(
                f"UPDATE attendance SET {assignments}, updated_at = ? WHERE id = ?",
                (*[c["new"] for c in changes.values()], now_iso(), record_id),
            )
            AuditService.record(
                cursor, current_user.get("user_id"), "update", "attendance", record_id, {"changes": changes}
            )
            conn.commit()
            return cls._row_to_model(cursor.execute(f"{_SELECT} WHERE a.id = ?", (record_id,)).fetchone())
        except Exception:
            conn.rollback()
            raise
        finally:
            conn.close()
