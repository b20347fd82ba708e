"""
Business logic for the parts catalog.
"""

import logging
import sqlite3
from typing import Any, Dict, List, Optional

from service_center_api.app.core.db import get_connection, now_iso
from service_center_api.app.core.exceptions import ConflictError, NotFoundError
from service_center_api.app.schemas.part import PartCreate, PartRead
from service_center_api.app.services.audit_service import AuditService

logger = logging.getLogger(__name__)


class PartsService:
    """Service for looking up and maintaining catalog parts."""

    @staticmethod
    def _row_to_model(row: sqlite3.Row) -> PartRead:
        return PartRead(**dict(row))

    @staticmethod
    def _check_unique(cursor: sqlite3.Cursor, part_number: str, part_id: Optional[int] = None) -> None:
        row = cursor.execute(
            "SELECT id FROM parts_catalog WHERE part_number = ? AND id != ?",
            (part_number, part_id or 0),
        ).fetchone()
        if row:
            raise ConflictError(f"Part number '{part_number}' already exists")

    @classmethod
    async def list_parts(cls, q: Optional[str] = None, limit: int = 100, offset: int = 0) -> List[PartRead]:
        """List parts ordered by name, optionally matching ``q`` against number or name."""
        query = "SELECT * FROM parts_catalog"
        params: List[Any] = []
        if q:
            query += " WHERE part_number LIKE ? OR name LIKE ?"
            params.extend([f"%{q}%", f"%{q}%"])
        query += " ORDER BY name LIMIT ? OFFSET ?"
        params.extend([limit, offset])
        conn = get_connection()
        try:
            return [cls._row_to_model(row) for row in conn.execute(query, tuple(params)).fetchall()]
        finally:
            conn.close()

    @classmethod
    async def get_part(cls, part_id: int) -> PartRead:
        conn = get_connection()
        try:
            row = conn.execute("SELECT * FROM parts_catalog WHERE id = ?", (part_id,)).fetchone()
            if not row:
                raise NotFoundError(f"Part {part_id} not found")
            return cls._row_to_model(row)
        finally:
            conn.close()

    @classmethod
    async def create_part(cls, data: PartCreate, actor_id: Optional[int]) -> PartRead:
        conn = get_connection()
        try:
            cursor = conn.cursor()
            cls._check_unique(cursor, data.part_number)
            cursor.execute(
                "INSERT INTO parts_catalog (part_number, name, price, created_at) VALUES (?, ?, ?, ?)",
                (data.part_number, data.name, data.price, now_iso()),
            )
            part_id = cursor.lastrowid
            AuditService.record(cursor, actor_id, "create", "part", part_id, data.model_dump())
            conn.commit()
            logger.info("Part %s added to catalog", data.part_number)
            return cls._row_to_model(cursor.execute("SELECT * FROM parts_catalog WHERE id = ?", (part_id,)).fetchone())
        except Exception:
            conn.rollback()
            raise
        finally:
            conn.close()

    @classmethod
    async def update_part(cls, part_id: int, updates: Dict[str, Any], actor_id: Optional[int]) -> PartRead:
        conn = get_connection()
        try:
            cursor = conn.cursor()
            row = cursor.execute("SELECT * FROM parts_catalog WHERE id = ?", (part_id,)).fetchone()
            if not row:
                raise NotFoundError(f"Part {part_id} not found")
            changes = {f: {"old": row[f], "new": v} for f, v in updates.items() if row[f] != v}
            if not changes:
                return cls._row_to_model(row)
            if "part_number" in changes:
                cls._check_unique(cursor, changes["part_number"]["new"], part_id)
            assignments = ", ".join(f"{field} = ?" for field in changes)
            cursor.execute(
                f"UPDATE parts_catalog SET {assignments}, updated_at = ? WHERE id = ?",
                (*[c["new"] for c in changes.values()], now_iso(), part_id),
            )
            AuditService.record(cursor, actor_id, "update", "part", part_id, {"changes": changes})
            conn.commit()
            return cls._row_to_model(cursor.execute("SELECT * FROM parts_catalog WHERE id = ?", (part_id,)).fetchone())
        except Exception:
            conn.rollback()
            raise
        finally:
            conn.close()

    @classmethod
    async def delete_part(cls, part_id: int, actor_id: Optional[int]) -> None:
        conn = get_connection()
        try:
            cursor = conn.cursor()
            row = cursor.execute("SELECT part_number FROM parts_catalog WHERE id = ?", (part_id,)).fetchone()
            if not row:
                raise NotFoundError(f"Part {part_id} not found")
            cursor.execute("DELETE FROM parts_catalog WHERE id = ?", (part_id,))
            AuditService.record(cursor, actor_id, "delete", "part", part_id, {"part_number": row["part_number"]})
            conn.commit()
        except Exception:
            conn.rollback()
            raise
        finally:
            conn.close()
