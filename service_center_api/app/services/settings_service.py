"""
Service layer for runtime settings.

Settings are key/value pairs stored in the ``settings`` table with a
``type`` that tells how to convert the stored string back to a Python
value.  They override the environment-based defaults in
``core.config`` for values that administrators change while the
service runs, such as ``loyalty.points_per_unit``.
"""

import logging
import math
import sqlite3
from typing import Any, Dict, List, Optional

from service_center_api.app.core.db import get_connection
from service_center_api.app.core.exceptions import NotFoundError
from service_center_api.app.services.audit_service import AuditService

logger = logging.getLogger(__name__)

LOYALTY_POINTS_PER_UNIT = "loyalty.points_per_unit"


class SettingsService:
    """Service for managing application settings."""

    @classmethod
    async def list_settings(cls) -> List[Dict[str, Any]]:
        conn = get_connection()
        try:
            rows = conn.execute("SELECT key, value, type FROM settings ORDER BY key").fetchall()
            return [
                {"key": row["key"], "value": cls._deserialize(row["value"], row["type"]), "type": row["type"]}
                for row in rows
            ]
        finally:
            conn.close()

    @classmethod
    async def get_setting(cls, key: str) -> Dict[str, Any]:
        conn = get_connection()
        try:
            row = conn.execute("SELECT key, value, type FROM settings WHERE key = ?", (key,)).fetchone()
            if not row:
                raise NotFoundError(f"Setting '{key}' not found")
            return {"key": row["key"], "value": cls._deserialize(row["value"], row["type"]), "type": row["type"]}
        finally:
            conn.close()

    @classmethod
    def get_value(cls, cursor: sqlite3.Cursor, key: str, default: Any = None) -> Any:
        """Read one setting on an open cursor, falling back to ``default``."""
        row = cursor.execute("SELECT value, type FROM settings WHERE key = ?", (key,)).fetchone()
        if not row:
            return default
        return cls._deserialize(row["value"], row["type"])

    @classmethod
    async def upsert_setting(cls, key: str, value: Any, type_str: str, actor_id: Optional[int] = None) -> Dict[str, Any]:
        """Insert or update a setting and return it with its converted value.

        Raises ``ValueError`` when ``value`` cannot be converted to ``type_str``.
        """
        try:
            serialized = cls._serialize(value, type_str)
        except (TypeError, ValueError) as exc:
            raise ValueError(f"Value {value!r} is not a valid {type_str}") from exc
        if key == LOYALTY_POINTS_PER_UNIT:
            cls._check_rate(serialized, type_str)
        conn = get_connection()
        try:
            cursor = conn.cursor()
            cursor.execute(
                "INSERT INTO settings (key, value, type) VALUES (?, ?, ?)"
                " ON CONFLICT(key) DO UPDATE SET value = excluded.value, type = excluded.type",
                (key, serialized, type_str),
            )
            AuditService.record(cursor, actor_id, "update", "setting", None, {"key": key, "value": serialized})
            conn.commit()
            logger.info("Setting %s updated", key)
            return {"key": key, "value": cls._deserialize(serialized, type_str), "type": type_str}
        finally:
            conn.close()

    @staticmethod
    def _check_rate(serialized: str, type_str: str) -> None:
        if type_str == "bool":
            raise ValueError("Points per unit must be a number")
        try:
            rate = float(serialized)
        except ValueError as exc:
            raise ValueError("Points per unit must be a number") from exc
        if not math.isfinite(rate) or rate <= 0:
            raise ValueError("Points per unit must be a positive finite number")

    @staticmethod
    def _serialize(value: Any, type_str: str) -> str:
        if type_str == "int":
            return str(int(value))
        if type_str == "float":
            return str(float(value))
        if type_str == "bool":
            return "1" if bool(value) else "0"
        return str(value)

    @staticmethod
    def _deserialize(value: str, type_str: str) -> Any:
        if type_str == "int":
            return int(value)
        if type_str == "float":
            return float(value)
        if type_str == "bool":
            return value not in {"0", "false", "False", ""}
        return value
