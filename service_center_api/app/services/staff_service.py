"""
Business logic for the staff directory and the technician list.

Staff members are the people attendance is taken for; technicians are
the people job cards are assigned to.  ``work_skills`` is stored as a
JSON array.
"""

import json
import logging
import sqlite3
from typing import Any, Dict, List, Optional

from service_center_api.app.core.db import get_connection, now_iso
from service_center_api.app.core.exceptions import NotFoundError
from service_center_api.app.schemas.staff import (
    StaffCreate,
    StaffRead,
    TechnicianCreate,
    TechnicianRead,
)
from service_center_api.app.services.audit_service import AuditService

logger = logging.getLogger(__name__)


def _apply_update(
    cursor: sqlite3.Cursor,
    table: str,
    record_id: int,
    updates: Dict[str, Any],
) -> None:
    fields = []
    values: List[Any] = []
    for key, value in updates.items():
        if isinstance(value, bool):
            value = 1 if value else 0
        elif isinstance(value, list):
            value = json.dumps(value)
        fields.append(f"{key} = ?")
        values.append(value)
    values.extend([now_iso(), record_id])
    cursor.execute(f"UPDATE {table} SET {', '.join(fields)}, updated_at = ? WHERE id = ?", tuple(values))


class StaffService:
    """Service for the staff directory."""

    @staticmethod
    def _row_to_model(row: sqlite3.Row) -> StaffRead:
        data = dict(row)
        data["work_skills"] = json.loads(row["work_skills"]) if row["work_skills"] else []
        data["is_active"] = bool(row["is_active"])
        return StaffRead(**data)

    @classmethod
    async def list_staff(cls, active_only: bool = False) -> List[StaffRead]:
        query = "SELECT * FROM staff"
        if active_only:
            query += " WHERE is_active = 1"
        conn = get_connection()
        try:
            rows = conn.execute(query + " ORDER BY name").fetchall()
            return [cls._row_to_model(row) for row in rows]
        finally:
            conn.close()

    @classmethod
    async def get_staff(cls, staff_id: int) -> StaffRead:
        conn = get_connection()
        try:
            row = conn.execute("SELECT * FROM staff WHERE id = ?", (staff_id,)).fetchone()
            if not row:
                raise NotFoundError(f"Staff member {staff_id} not found")
            return cls._row_to_model(row)
        finally:
            conn.close()

    @classmethod
    async def create_staff(cls, data: StaffCreate, actor_id: Optional[int]) -> StaffRead:
        conn = get_connection()
        try:
            cursor = conn.cursor()
            cursor.execute(
                "INSERT INTO staff (name, phone, email, role, work_skills, is_active, created_at) "
                "VALUES (?, ?, ?, ?, ?, ?, ?)",
                (
                    data.name,
                    data.phone,
                    data.email,
                    data.role,
                    json.dumps(data.work_skills),
                    1 if data.is_active else 0,
                    now_iso(),
                ),
            )
            staff_id = cursor.lastrowid
            AuditService.record(cursor, actor_id, "create", "staff", staff_id, {"name": data.name, "role": data.role})
            conn.commit()
            logger.info("Staff member %s added", data.name)
            return cls._row_to_model(cursor.execute("SELECT * FROM staff WHERE id = ?", (staff_id,)).fetchone())
        except Exception:
            conn.rollback()
            raise
        finally:
            conn.close()

    @classmethod
    async def update_staff(cls, staff_id: int, updates: Dict[str, Any], actor_id: Optional[int]) -> StaffRead:
        conn = get_connection()
        try:
            cursor = conn.cursor()
            if not cursor.execute("SELECT 1 FROM staff WHERE id = ?", (staff_id,)).fetchone():
                raise NotFoundError(f"Staff member {staff_id} not found")
            if updates:
                _apply_update(cursor, "staff", staff_id, updates)
                AuditService.record(cursor, actor_id, "update", "staff", staff_id, {"fields": sorted(updates)})
                conn.commit()
            return cls._row_to_model(cursor.execute("SELECT * FROM staff WHERE id = ?", (staff_id,)).fetchone())
        except Exception:
            conn.rollback()
            raise
        finally:
            conn.close()

    @classmethod
    async def delete_staff(cls, staff_id: int, actor_id: Optional[int]) -> None:
        """Remove a staff member together with their attendance records."""
        conn = get_connection()
        try:
            cursor = conn.cursor()
            row = cursor.execute("SELECT name FROM staff WHERE id = ?", (staff_id,)).fetchone()
            if not row:
                raise NotFoundError(f"Staff member {staff_id} not found")
            cursor.execute("DELETE FROM staff WHERE id = ?", (staff_id,))
            AuditService.record(cursor, actor_id, "delete", "staff", staff_id, {"name": row["name"]})
            conn.commit()
        except Exception:
            conn.rollback()
            raise
        finally:
            conn.close()


class TechnicianService:
    """Service for technicians that job cards are assigned to."""

    @staticmethod
    def _row_to_model(row: sqlite3.Row) -> TechnicianRead:
        data = dict(row)
        data["is_active"] = bool(row["is_active"])
        return TechnicianRead(**data)

    @classmethod
    async def list_technicians(cls, active_only: bool = False) -> List[TechnicianRead]:
        query = "SELECT * FROM technicians"
        if active_only:
            query += " WHERE is_active = 1"
        conn = get_connection()
        try:
            rows = conn.execute(query + " ORDER BY name").fetchall()
            return [cls._row_to_model(row) for row in rows]
        finally:
            conn.close()

    @classmethod
    async def get_technician(cls, technician_id: int) -> TechnicianRead:
        conn = get_connection()
        try:
            row = conn.execute("SELECT * FROM technicians WHERE id = ?", (technician_id,)).fetchone()
            if not row:
                raise NotFoundError(f"Technician {technician_id} not found")
            return cls._row_to_model(row)
        finally:
            conn.close()

    @classmethod
    async def create_technician(cls, data: TechnicianCreate, actor_id: Optional[int]) -> TechnicianRead:
        conn = get_connection()
        try:
            cursor = conn.cursor()
            cursor.execute(
                "INSERT INTO technicians (name, phone, specialization, is_active, created_at) VALUES (?, ?, ?, ?, ?)",
                (data.name, data.phone, data.specialization, 1 if data.is_active else 0, now_iso()),
            )
            technician_id = cursor.lastrowid
            AuditService.record(cursor, actor_id, "create", "technician", technician_id, {"name": data.name})
            conn.commit()
            return cls._row_to_model(
                cursor.execute("SELECT * FROM technicians WHERE id = ?", (technician_id,)).fetchone()
            )
        except Exception:
            conn.rollback()
            raise
        finally:
            conn.close()

    @classmethod
    async def update_technician(
        cls, technician_id: int, updates: Dict[str, Any], actor_id: Optional[int]
    ) -> TechnicianRead:
        conn = get_connection()
        try:
            cursor = conn.cursor()
            if not cursor.execute("SELECT 1 FROM technicians WHERE id = ?", (technician_id,)).fetchone():
                raise NotFoundError(f"Technician {technician_id} not found")
            if updates:
                _apply_update(cursor, "technicians", technician_id, updates)
                AuditService.record(
                    cursor, actor_id, "update", "technician", technician_id, {"fields": sorted(updates)}
                )
                conn.commit()
            return cls._row_to_model(
                cursor.execute("SELECT * FROM technicians WHERE id = ?", (technician_id,)).fetchone()
            )
        except Exception:
            conn.rollback()
            raise
        finally:
            conn.close()

    @classmethod
    async def delete_technician(cls, technician_id: int, actor_id: Optional[int]) -> None:
        """Delete a technician.  Their job cards become unassigned."""
        conn = get_connection()
        try:
            cursor = conn.cursor()
            row = cursor.execute("SELECT name FROM technicians WHERE id = ?", (technician_id,)).fetchone()
            if not row:
                raise NotFoundError(f"Technician {technician_id} not found")
            cursor.execute("DELETE FROM technicians WHERE id = ?", (technician_id,))
            AuditService.record(cursor, actor_id, "delete", "technician", technician_id, {"name": row["name"]})
            conn.commit()
        except Exception:
            conn.rollback()
            raise
        finally:
            conn.close()
