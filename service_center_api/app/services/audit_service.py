"""
Append-only audit trail.

Every write in the service center (job cards, loyalty, staff, settings)
leaves a row in ``audit_logs``.  Database triggers abort any UPDATE
or DELETE on that table.  Writes that must succeed or fail together with a business
change go through ``record`` on the caller's cursor so both land in
the same transaction.
"""

from __future__ import annotations

import json
import sqlite3
from typing import Any, Dict, List, Optional

from service_center_api.app.core.db import get_connection, now_iso


class AuditService:
    """Writes and queries audit entries."""

    @staticmethod
    def record(
        cursor: sqlite3.Cursor,
        user_id: Optional[int],
        action: str,
        object_type: str,
        object_id: Optional[int] = None,
        details: Optional[dict] = None,
    ) -> int:
        """Insert an audit record using an open cursor.

        The caller owns the transaction; nothing is committed here.
        Returns the id of the new entry.
        """
        cursor.execute(
            """
            INSERT INTO audit_logs (user_id, action, object_type, object_id, timestamp, details)
            VALUES (?, ?, ?, ?, ?, ?)
            """,
            (
                user_id,
                action,
                object_type,
                object_id,
                now_iso(),
                json.dumps(details, default=str) if details else None,
            ),
        )
        return cursor.lastrowid

    @classmethod
    async def log(
        cls,
        user_id: Optional[int],
        action: str,
        object_type: str,
        object_id: Optional[int] = None,
        details: Optional[dict] = None,
    ) -> None:
        """Write one entry in its own transaction.

        Used for events that change nothing else, such as a login.
        ``user_id`` is ``None`` for actions not tied to a user.
        """
        conn = get_connection()
        try:
            cls.record(conn.cursor(), user_id, action, object_type, object_id, details)
            conn.commit()
        finally:
            conn.close()

    @staticmethod
    def _row_to_dict(row: sqlite3.Row) -> Dict[str, Any]:
        details_data = None
        if row["details"]:
            try:
                details_data = json.loads(row["details"])
            except json.JSONDecodeError:
                details_data = row["details"]
        return {
            "id": row["id"],
            "user_id": row["user_id"],
            "username": row["username"],
            "action": row["action"],
            "object_type": row["object_type"],
            "object_id": row["object_id"],
            "timestamp": row["timestamp"],
            "details": details_data,
        }

    @classmethod
    async def list_logs(
        cls,
        user_id: Optional[int] = None,
        object_type: Optional[str] = None,
        object_id: Optional[int] = None,
        action: Optional[str] = None,
        start_date: Optional[str] = None,
        end_date: Optional[str] = None,
        limit: int = 100,
        offset: int = 0,
        oldest_first: bool = False,
    ) -> List[Dict[str, Any]]:
        """Audit entries matching every given filter.

        Date filters accept ISO dates ("YYYY-MM-DD") and are inclusive on
        both ends.  Results are ordered by id, newest first unless
        ``oldest_first`` is set.
        """
        conn = get_connection()
        try:
            cursor = conn.cursor()
            where_clauses: List[str] = []
            params: List[Any] = []
            if user_id is not None:
                where_clauses.append("a.user_id = ?")
                params.append(user_id)
            if object_type:
                where_clauses.append("a.object_type = ?")
                params.append(object_type)
            if object_id is not None:
                where_clauses.append("a.object_id = ?")
                params.append(object_id)
            if action:
                where_clauses.append("a.action = ?")
                params.append(action)
            if start_date:
                where_clauses.append("date(a.timestamp) >= date(?)")
                params.append(start_date)
            if end_date:
                where_clauses.append("date(a.timestamp) <= date(?)")
                params.append(end_date)
            query = (
                "SELECT a.id, a.user_id, u.username, a.action, a.object_type, a.object_id, "
                "a.timestamp, a.details FROM audit_logs a LEFT JOIN users u ON u.id = a.user_id"
            )
            if where_clauses:
                query += " WHERE " + " AND ".join(where_clauses)
            query += " ORDER BY a.id " + ("ASC" if oldest_first else "DESC") + " LIMIT ? OFFSET ?"
            params.extend([limit, offset])
            rows = cursor.execute(query, tuple(params)).fetchall()
            return [cls._row_to_dict(row) for row in rows]
        finally:
            conn.close()
