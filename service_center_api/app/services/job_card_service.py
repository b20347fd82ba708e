"""
Business logic for job cards.

A job card is the service ticket for one motorcycle visit.  This
service stores job cards in SQLite, enforces the status workflow from
``job_workflow``, keeps technician bays to one active job each, and
appends an audit entry for every change in the same transaction as the
change itself.
"""

import logging
import sqlite3
from typing import Any, Dict, List, Optional

from service_center_api.app.core.db import get_connection, now_iso
from service_center_api.app.core.enums import (
    BAYS,
    CLOSED_STATUSES,
    LIMITED_ROLES,
    WASH_BAY,
    JobStatus,
    Role,
    ServiceCategory,
)
from service_center_api.app.core.exceptions import ConflictError, NotFoundError
from service_center_api.app.schemas.job_card import (
    REVENUE_FIELDS,
    BayStatus,
    JobCardCreate,
    JobCardRead,
)
from service_center_api.app.services import job_workflow
from service_center_api.app.services.audit_service import AuditService

logger = logging.getLogger(__name__)

OBJECT_TYPE = "job_card"

_SELECT = (
    "SELECT j.*, t.name AS technician_name FROM job_cards j "
    "LEFT JOIN technicians t ON t.id = j.technician_id"
)

# Columns that ``update_job_card`` may change directly.
EDITABLE_FIELDS = (
    "customer_name",
    "phone",
    "bike_model",
    "registration",
    "odometer",
    "service_category",
    "service_type",
    "estimated_time",
    "repair_details",
    "cost",
)


def job_number(job_id: int) -> str:
    return f"JC{job_id:03d}"


def parse_job_number(value: str) -> Optional[int]:
    """Return the numeric id behind ``JC012``-style references, if any."""
    value = value.strip().upper()
    if value.startswith("JC") and value[2:].isdigit():
        return int(value[2:])
    return None


def redact_audit_details(details: Optional[dict]) -> Optional[dict]:
    """Remove monetary values from job card audit details."""
    if not details:
        return details
    cleaned = dict(details)
    for key in ("changes", "values"):
        if isinstance(cleaned.get(key), dict):
            cleaned[key] = {
                field: value
                for field, value in cleaned[key].items()
                if field not in REVENUE_FIELDS
            }
    return cleaned


class JobCardService:
    """Service for creating, updating and querying job cards."""

    @staticmethod
    def _row_to_model(row: sqlite3.Row) -> JobCardRead:
        data = dict(row)
        data["job_number"] = job_number(row["id"])
        return JobCardRead(**data)

    @staticmethod
    def _fetch_row(cursor: sqlite3.Cursor, job_id: int) -> sqlite3.Row:
        row = cursor.execute(f"{_SELECT} WHERE j.id = ?", (job_id,)).fetchone()
        if not row:
            raise NotFoundError(f"Job card {job_id} not found")
        return row

    @staticmethod
    def _visible_to(row: sqlite3.Row, current_user: Optional[dict]) -> bool:
        """Whether a Technician or Service user may see the job in ``row``."""
        role_id = (current_user or {}).get("role_id")
        if role_id not in LIMITED_ROLES:
            return True
        if row["status"] not in (JobStatus.PENDING.value, JobStatus.IN_PROGRESS.value):
            return False
        return role_id != Role.SERVICE or row["bay"] == WASH_BAY

    @classmethod
    def _fetch_visible(cls, cursor: sqlite3.Cursor, job_id: int, current_user: Optional[dict]) -> sqlite3.Row:
        row = cls._fetch_row(cursor, job_id)
        if not cls._visible_to(row, current_user):
            raise NotFoundError(f"Job card {job_id} not found")
        return row

    @staticmethod
    def _check_bay(cursor: sqlite3.Cursor, bay: Optional[str], job_id: Optional[int] = None) -> None:
        """Ensure ``bay`` exists and, for technician bays, is free.

        The wash bay may hold any number of jobs.  ``job_id`` is excluded
        from the occupancy check so a job does not conflict with itself.
        """
        if bay is None:
            return
        if bay not in BAYS:
            raise ValueError(f"Unknown bay '{bay}'")
        if bay == WASH_BAY:
            return
        closed = tuple(s.value for s in CLOSED_STATUSES)
        row = cursor.execute(
            f"SELECT id FROM job_cards WHERE bay = ? AND status NOT IN ({', '.join('?' for _ in closed)})"
            " AND id != ? LIMIT 1",
            (bay, *closed, job_id or 0),
        ).fetchone()
        if row:
            raise ConflictError(f"{bay} is occupied by job {job_number(row['id'])}")

    @staticmethod
    def _check_technician(cursor: sqlite3.Cursor, technician_id: Optional[int]) -> None:
        if technician_id is None:
            return
        row = cursor.execute(
            "SELECT id, is_active FROM technicians WHERE id = ?", (technician_id,)
        ).fetchone()
        if not row:
            raise NotFoundError(f"Technician {technician_id} not found")
        if not row["is_active"]:
            raise ValueError(f"Technician {technician_id} is not active")

    # ------------------------------------------------------------------
    # Queries
    # ------------------------------------------------------------------
    @classmethod
    async def list_job_cards(
        cls,
        current_user: Optional[dict] = None,
        status: Optional[str] = None,
        bay: Optional[str] = None,
        service_category: Optional[str] = None,
        q: Optional[str] = None,
        date_from: Optional[str] = None,
        date_to: Optional[str] = None,
        limit: int = 100,
        offset: int = 0,
    ) -> List[JobCardRead]:
        """List job cards, newest first, with optional filters.

        Technician and Service users only see jobs that are ``Pending``
        or ``In Progress``; Service users additionally only see jobs in
        the wash bay.
        """
        where: List[str] = []
        params: List[Any] = []
        role_id = (current_user or {}).get("role_id")
        if role_id in LIMITED_ROLES:
            where.append("j.status IN (?, ?)")
            params.extend([JobStatus.PENDING.value, JobStatus.IN_PROGRESS.value])
            if role_id == Role.SERVICE:
                where.append("j.bay = ?")
                params.append(WASH_BAY)
        if status:
            where.append("j.status = ?")
            params.append(status)
        if bay:
            where.append("j.bay = ?")
            params.append(bay)
        if service_category:
            where.append("j.service_category = ?")
            params.append(service_category)
        if q:
            like = f"%{q.strip()}%"
            clause = "(j.customer_name LIKE ? OR j.registration LIKE ? OR j.phone LIKE ?"
            params.extend([like, like, like])
            ref = parse_job_number(q)
            if ref is not None:
                clause += " OR j.id = ?"
                params.append(ref)
            where.append(clause + ")")
        if date_from:
            where.append("date(j.created_at) >= date(?)")
            params.append(date_from)
        if date_to:
            where.append("date(j.created_at) <= date(?)")
            params.append(date_to)
        query = _SELECT
        if where:
            query += " WHERE " + " AND ".join(where)
        query += " ORDER BY j.created_at DESC, j.id DESC LIMIT ? OFFSET ?"
        params.extend([limit, offset])
        conn = get_connection()
        try:
            rows = conn.execute(query, tuple(params)).fetchall()
            return [cls._row_to_model(row) for row in rows]
        finally:
            conn.close()

    @classmethod
    async def get_job_card(cls, job_id: int, current_user: Optional[dict] = None) -> JobCardRead:
        """Fetch one job card.  Jobs hidden from the caller's role are not found."""
        conn = get_connection()
        try:
            return cls._row_to_model(cls._fetch_visible(conn.cursor(), job_id, current_user))
        finally:
            conn.close()

    @classmethod
    async def history(cls, job_id: int) -> List[Dict[str, Any]]:
        """Return the audit trail of a job card, oldest entry first.

        The trail outlives the job card itself, so a deleted job still
        has a history.  Unknown ids raise ``NotFoundError``.
        """
        entries = await AuditService.list_logs(
            object_type=OBJECT_TYPE, object_id=job_id, limit=10_000, oldest_first=True
        )
        if not entries:
            raise NotFoundError(f"Job card {job_id} not found")
        return entries

    @classmethod
    async def bay_status(cls) -> List[BayStatus]:
        """Report every bay with the active jobs currently assigned to it."""
        closed = tuple(s.value for s in CLOSED_STATUSES)
        conn = get_connection()
        try:
            rows = conn.execute(
                f"{_SELECT} WHERE j.bay IS NOT NULL AND j.status NOT IN ({', '.join('?' for _ in closed)})"
                " ORDER BY j.created_at ASC, j.id ASC",
                closed,
            ).fetchall()
        finally:
            conn.close()
        by_bay: Dict[str, List[JobCardRead]] = {bay: [] for bay in BAYS}
        for row in rows:
            if row["bay"] in by_bay:
                by_bay[row["bay"]].append(cls._row_to_model(row))
        return [
            BayStatus(
                bay=bay,
                is_wash_bay=bay == WASH_BAY,
                is_occupied=bool(jobs),
                job_cards=jobs,
            )
            for bay, jobs in by_bay.items()
        ]

    # ------------------------------------------------------------------
    # Writes
    # ------------------------------------------------------------------
    @classmethod
    async def create_job_card(cls, data: JobCardCreate, current_user: dict) -> JobCardRead:
        """Open a new job card.

        The service type must belong to the chosen category and the
        initial status must be legal for it.  A job cannot be opened as
        ``Delivered``.
        """
        job_workflow.validate_service_type(data.service_category, data.service_type)
        if data.status not in job_workflow.allowed_statuses(data.service_category):
            raise ValueError(
                f"Status '{data.status.value}' is not allowed for {data.service_category.value} jobs"
            )
        if data.status is JobStatus.DELIVERED:
            raise ValueError("A new job card cannot start as Delivered")

        values = data.model_dump(mode="json")
        values.update(job_workflow.calculate_payment(data.service_category, data.cost))
        now = now_iso()
        values["created_by"] = current_user.get("user_id")
        values["created_at"] = now
        values["updated_at"] = now
        values["completed_at"] = now if data.status is JobStatus.COMPLETED else None
        values["delivered_at"] = None

        conn = get_connection()
        try:
            cursor = conn.cursor()
            if data.status not in CLOSED_STATUSES:
                cls._check_bay(cursor, data.bay)
            elif data.bay is not None and data.bay not in BAYS:
                raise ValueError(f"Unknown bay '{data.bay}'")
            cls._check_technician(cursor, data.technician_id)
            columns = list(values.keys())
            cursor.execute(
                f"INSERT INTO job_cards ({', '.join(columns)}) VALUES ({', '.join('?' for _ in columns)})",
                tuple(values[c] for c in columns),
            )
            job_id = cursor.lastrowid
            AuditService.record(
                cursor,
                current_user.get("user_id"),
                "create",
                OBJECT_TYPE,
                job_id,
                {"values": {k: v for k, v in values.items() if k not in ("created_by", "created_at", "updated_at")}},
            )
            conn.commit()
            logger.info("Job card %s created by user %s", job_number(job_id), current_user.get("user_id"))
            return cls._row_to_model(cls._fetch_row(cursor, job_id))
        except Exception:
            conn.rollback()
            raise
        finally:
            conn.close()

    @classmethod
    async def update_job_card(cls, job_id: int, updates: Dict[str, Any], current_user: dict) -> JobCardRead:
        """Apply a partial edit of descriptive fields.

        Only fields whose value actually changes are written and logged.
        Changing cost or category recomputes the payment split.
        """
        unknown = set(updates) - set(EDITABLE_FIELDS)
        if unknown:
            raise ValueError(f"Fields cannot be edited here: {', '.join(sorted(unknown))}")
        conn = get_connection()
        try:
            cursor = conn.cursor()
            row = cls._fetch_row(cursor, job_id)
            changes: Dict[str, Dict[str, Any]] = {}
            for field, value in updates.items():
                if isinstance(value, ServiceCategory):
                    value = value.value
                if value is None and field not in ("estimated_time", "repair_details"):
                    raise ValueError(f"Field '{field}' cannot be empty")
                if row[field] != value:
                    changes[field] = {"old": row[field], "new": value}
            if not changes:
                return cls._row_to_model(row)

            category = changes.get("service_category", {}).get("new", row["service_category"])
            service_type = changes.get("service_type", {}).get("new", row["service_type"])
            if "service_category" in changes or "service_type" in changes:
                job_workflow.validate_service_type(category, service_type)
            if "service_category" in changes:
                job_workflow.check_category_change(row["status"], category)
            if "service_category" in changes or "cost" in changes:
                cost = changes.get("cost", {}).get("new", row["cost"])
                for field, value in job_workflow.calculate_payment(category, cost).items():
                    if row[field] != value:
                        changes[field] = {"old": row[field], "new": value}

            assignments = ", ".join(f"{field} = ?" for field in changes)
            cursor.execute(
                f"UPDATE job_cards SET {assignments}, updated_at = ? WHERE id = ?",
                (*[c["new"] for c in changes.values()], now_iso(), job_id),
            )
            AuditService.record(
                cursor, current_user.get("user_id"), "update", OBJECT_TYPE, job_id, {"changes": changes}
            )
            conn.commit()
            logger.info("Job card %s updated: %s", job_number(job_id), ", ".join(changes))
            return cls._row_to_model(cls._fetch_row(cursor, job_id))
        except Exception:
            conn.rollback()
            raise
        finally:
            conn.close()

    @classmethod
    async def update_status(cls, job_id: int, status: JobStatus, current_user: dict) -> JobCardRead:
        """Move a job card to ``status`` following the workflow rules."""
        conn = get_connection()
        try:
            cursor = conn.cursor()
            row = cls._fetch_visible(cursor, job_id, current_user)
            current = JobStatus(row["status"])
            if not job_workflow.check_status_change(
                current, status, row["service_category"], current_user.get("role_id")
            ):
                return cls._row_to_model(row)
            if current in CLOSED_STATUSES and status not in CLOSED_STATUSES:
                # Reopening puts the job back into its bay.
                cls._check_bay(cursor, row["bay"], job_id)
            now = now_iso()
            completed_at = row["completed_at"]
            delivered_at = row["delivered_at"]
            if status is JobStatus.COMPLETED:
                completed_at = now
            elif status is JobStatus.DELIVERED:
                delivered_at = now
            elif current in CLOSED_STATUSES:
                completed_at = None
            cursor.execute(
                "UPDATE job_cards SET status = ?, completed_at = ?, delivered_at = ?, updated_at = ? WHERE id = ?",
                (status.value, completed_at, delivered_at, now, job_id),
            )
            AuditService.record(
                cursor,
                current_user.get("user_id"),
                "status_change",
                OBJECT_TYPE,
                job_id,
                {"changes": {"status": {"old": current.value, "new": status.value}}},
            )
            conn.commit()
            logger.info("Job card %s: %s -> %s", job_number(job_id), current.value, status.value)
            return cls._row_to_model(cls._fetch_row(cursor, job_id))
        except Exception:
            conn.rollback()
            raise
        finally:
            conn.close()

    @classmethod
    async def update_assignment(cls, job_id: int, assignment: Dict[str, Any], current_user: dict) -> JobCardRead:
        """Change the bay and/or technician of a job card.

        ``assignment`` holds only the keys the client sent; a ``None``
        value clears the assignment.  Closed jobs cannot be reassigned.
        """
        conn = get_connection()
        try:
            cursor = conn.cursor()
            row = cls._fetch_row(cursor, job_id)
            changes: Dict[str, Dict[str, Any]] = {}
            for field in ("bay", "technician_id"):
                if field in assignment and assignment[field] != row[field]:
                    changes[field] = {"old": row[field], "new": assignment[field]}
            if not changes:
                return cls._row_to_model(row)
            if JobStatus(row["status"]) in CLOSED_STATUSES:
                raise ConflictError(f"Job card {job_number(job_id)} is already {row['status']}")
            if "bay" in changes:
                cls._check_bay(cursor, changes["bay"]["new"], job_id)
            if "technician_id" in changes:
                cls._check_technician(cursor, changes["technician_id"]["new"])
            assignments = ", ".join(f"{field} = ?" for field in changes)
            cursor.execute(
                f"UPDATE job_cards SET {assignments}, updated_at = ? WHERE id = ?",
                (*[c["new"] for c in changes.values()], now_iso(), job_id),
            )
            AuditService.record(
                cursor, current_user.get("user_id"), "assignment", OBJECT_TYPE, job_id, {"changes": changes}
            )
            conn.commit()
            logger.info("Job card %s reassigned: %s", job_number(job_id), changes)
            return cls._row_to_model(cls._fetch_row(cursor, job_id))
        except Exception:
            conn.rollback()
            raise
        finally:
            conn.close()

    @classmethod
    async def delete_job_card(cls, job_id: int, current_user: dict) -> None:
        """Delete a job card.  Its audit trail is kept."""
        conn = get_connection()
        try:
            cursor = conn.cursor()
            row = cls._fetch_row(cursor, job_id)
            snapshot = {k: row[k] for k in row.keys() if k != "technician_name"}
            cursor.execute("DELETE FROM job_cards WHERE id = ?", (job_id,))
            AuditService.record(
                cursor, current_user.get("user_id"), "delete", OBJECT_TYPE, job_id, {"values": snapshot}
            )
            conn.commit()
            logger.info("Job card %s deleted by user %s", job_number(job_id), current_user.get("user_id"))
        except Exception:
            conn.rollback()
            raise
        finally:
            conn.close()
