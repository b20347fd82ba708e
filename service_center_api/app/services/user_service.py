"""
Business logic for user accounts.

Users are logins with a role.  Passwords are hashed with
``core.security.hash_password`` before they reach the database.
"""

import logging
import sqlite3
from typing import Any, Dict, List

from service_center_api.app.core.db import get_connection, now_iso
from service_center_api.app.core.enums import ROLE_NAMES
from service_center_api.app.core.exceptions import ConflictError, NotFoundError
from service_center_api.app.core.security import hash_password
from service_center_api.app.schemas.user import UserCreate, UserRead
from service_center_api.app.services.audit_service import AuditService

logger = logging.getLogger(__name__)

_COLUMNS = "id, username, full_name, role_id, staff_id, disabled, created_at"


class UserService:
    """Service for administering user accounts."""

    @staticmethod
    def _row_to_model(row: sqlite3.Row) -> UserRead:
        return UserRead(
            id=row["id"],
            username=row["username"],
            full_name=row["full_name"],
            role_id=row["role_id"],
            role=ROLE_NAMES.get(row["role_id"]),
            staff_id=row["staff_id"],
            disabled=bool(row["disabled"]),
            created_at=row["created_at"],
        )

    @staticmethod
    def _check_staff(cursor: sqlite3.Cursor, staff_id) -> None:
        if staff_id is not None and not cursor.execute(
            "SELECT 1 FROM staff WHERE id = ?", (staff_id,)
        ).fetchone():
            raise NotFoundError(f"Staff member {staff_id} not found")

    @classmethod
    async def create_user(cls, data: UserCreate, actor_id: int) -> UserRead:
        """Create a new account.  Raises ``ConflictError`` if the username is taken."""
        logger.info("Creating user %s", data.username)
        conn = get_connection()
        try:
            cursor = conn.cursor()
            if cursor.execute("SELECT 1 FROM users WHERE username = ?", (data.username,)).fetchone():
                raise ConflictError(f"Username '{data.username}' is already taken")
            cls._check_staff(cursor, data.staff_id)
            now = now_iso()
            cursor.execute(
                "INSERT INTO users (username, full_name, password, role_id, staff_id, created_at, updated_at) "
                "VALUES (?, ?, ?, ?, ?, ?, ?)",
                (data.username, data.full_name, hash_password(data.password), data.role_id, data.staff_id, now, now),
            )
            user_id = cursor.lastrowid
            AuditService.record(
                cursor, actor_id, "create", "user", user_id,
                {"username": data.username, "role_id": data.role_id},
            )
            conn.commit()
            row = cursor.execute(f"SELECT {_COLUMNS} FROM users WHERE id = ?", (user_id,)).fetchone()
            return cls._row_to_model(row)
        except Exception:
            conn.rollback()
            raise
        finally:
            conn.close()

    @classmethod
    async def list_users(cls) -> List[UserRead]:
        conn = get_connection()
        try:
            rows = conn.execute(f"SELECT {_COLUMNS} FROM users ORDER BY id").fetchall()
            return [cls._row_to_model(row) for row in rows]
        finally:
            conn.close()

    @classmethod
    async def get_user_by_id(cls, user_id: int) -> UserRead:
        conn = get_connection()
        try:
            row = conn.execute(f"SELECT {_COLUMNS} FROM users WHERE id = ?", (user_id,)).fetchone()
            if not row:
                raise NotFoundError(f"User {user_id} not found")
            return cls._row_to_model(row)
        finally:
            conn.close()

    @classmethod
    async def update_user(cls, user_id: int, updates: Dict[str, Any], actor_id: int) -> UserRead:
        """Update an account.

        ``updates`` may hold ``full_name``, ``password``, ``role_id``,
        ``staff_id`` and ``disabled``.  Disabling an account or changing
        its password ends all of its sessions.
        """
        conn = get_connection()
        try:
            cursor = conn.cursor()
            if not cursor.execute("SELECT 1 FROM users WHERE id = ?", (user_id,)).fetchone():
                raise NotFoundError(f"User {user_id} not found")
            if not updates:
                return cls._row_to_model(
                    cursor.execute(f"SELECT {_COLUMNS} FROM users WHERE id = ?", (user_id,)).fetchone()
                )
            if "staff_id" in updates:
                cls._check_staff(cursor, updates["staff_id"])
            fields = []
            values = []
            for key, value in updates.items():
                if key == "password":
                    value = hash_password(value)
                if isinstance(value, bool):
                    value = 1 if value else 0
                fields.append(f"{key} = ?")
                values.append(value)
            values.extend([now_iso(), user_id])
            cursor.execute(f"UPDATE users SET {', '.join(fields)}, updated_at = ? WHERE id = ?", tuple(values))
            if updates.get("disabled") or "password" in updates:
                cursor.execute("DELETE FROM sessions WHERE user_id = ?", (user_id,))
            AuditService.record(
                cursor, actor_id, "update", "user", user_id,
                {"fields": sorted(updates)},
            )
            conn.commit()
            row = cursor.execute(f"SELECT {_COLUMNS} FROM users WHERE id = ?", (user_id,)).fetchone()
            return cls._row_to_model(row)
        except Exception:
            conn.rollback()
            raise
        finally:
            conn.close()

    @classmethod
    async def delete_user(cls, user_id: int, actor_id: int) -> None:
        """Delete an account.

        Refuses to delete the acting user or the primary administrator
        (the account with the lowest id).
        """
        if user_id == actor_id:
            raise ValueError("Cannot delete your own account")
        conn = get_connection()
        try:
            cursor = conn.cursor()
            row = cursor.execute("SELECT id, username FROM users WHERE id = ?", (user_id,)).fetchone()
            if not row:
                raise NotFoundError(f"User {user_id} not found")
            first = cursor.execute("SELECT id FROM users ORDER BY id ASC LIMIT 1").fetchone()
            if first and first["id"] == user_id:
                raise ValueError("Cannot delete the primary administrator")
            cursor.execute("DELETE FROM users WHERE id = ?", (user_id,))
            AuditService.record(cursor, actor_id, "delete", "user", user_id, {"username": row["username"]})
            conn.commit()
            logger.info("User %s deleted", row["username"])
        except Exception:
            conn.rollback()
            raise
        finally:
            conn.close()
