"""
Login sessions.

Each successful login stores a row in ``sessions`` and returns a JWT
whose ``sid`` claim points at it.  Deleting the row on logout makes the
token unusable even though its signature is still valid.
"""

import logging
import uuid
from datetime import datetime, timedelta
from typing import Any, Dict, Optional

from service_center_api.app.core.config import settings
from service_center_api.app.core.db import get_connection, now_iso
from service_center_api.app.core.enums import ROLE_NAMES
from service_center_api.app.core.security import create_access_token, verify_password
from service_center_api.app.services.audit_service import AuditService

logger = logging.getLogger(__name__)


class AuthService:
    """Service for authenticating users and managing their sessions."""

    @classmethod
    async def authenticate(cls, username: str, password: str) -> Optional[Dict[str, Any]]:
        """Return the user row as a dict when the credentials match.

        Disabled accounts never authenticate.
        """
        conn = get_connection()
        try:
            row = conn.execute(
                "SELECT id, username, full_name, password, role_id, staff_id, disabled FROM users WHERE username = ?",
                (username,),
            ).fetchone()
        finally:
            conn.close()
        if not row or row["disabled"] or not verify_password(password, row["password"]):
            return None
        return {
            "user_id": row["id"],
            "username": row["username"],
            "full_name": row["full_name"],
            "role_id": row["role_id"],
            "role": ROLE_NAMES.get(row["role_id"]),
            "staff_id": row["staff_id"],
        }

    @classmethod
    async def create_session(cls, user_id: int, username: str, expire_minutes: Optional[int] = None) -> Dict[str, str]:
        """Open a session for ``user_id`` and issue a token bound to it."""
        minutes = expire_minutes or settings.access_token_expire_minutes
        session_id = uuid.uuid4().hex
        expires_at = (datetime.now() + timedelta(minutes=minutes)).strftime("%Y-%m-%d %H:%M:%S")
        conn = get_connection()
        try:
            conn.execute(
                "INSERT INTO sessions (id, user_id, created_at, expires_at) VALUES (?, ?, ?, ?)",
                (session_id, user_id, now_iso(), expires_at),
            )
            conn.commit()
        finally:
            conn.close()
        token = create_access_token({"sub": username, "sid": session_id}, expires_delta=minutes * 60)
        return {"access_token": token, "token_type": "bearer", "expires_at": expires_at}

    @classmethod
    async def login(cls, username: str, password: str) -> Optional[Dict[str, Any]]:
        user = await cls.authenticate(username, password)
        if not user:
            logger.warning("Failed login for %s", username)
            return None
        token = await cls.create_session(user["user_id"], user["username"])
        await AuditService.log(user["user_id"], "login", "user", user["user_id"])
        logger.info("User %s logged in", username)
        return {**token, "user": user}

    @classmethod
    async def logout(cls, session_id: Optional[str]) -> None:
        """Revoke a session.  Static-token requests have no session."""
        if not session_id:
            return
        conn = get_connection()
        try:
            conn.execute("DELETE FROM sessions WHERE id = ?", (session_id,))
            conn.commit()
        finally:
            conn.close()

    @classmethod
    async def purge_expired(cls) -> int:
        """Delete expired sessions and return how many were removed."""
        conn = get_connection()
        try:
            cursor = conn.execute("DELETE FROM sessions WHERE expires_at < ?", (now_iso(),))
            conn.commit()
            return cursor.rowcount
        finally:
            conn.close()
