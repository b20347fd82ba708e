"""
SQLite storage for the service center.

Each service call opens its own connection with ``get_connection`` and
closes it when done.  The schema lives in ``MIGRATIONS``; ``init_db``
runs at startup, applies the versions newer than the highest one in the
``migrations`` table, seeds the five roles and creates the first
administrator on an empty database.
"""

import logging
import os
import sqlite3
from contextlib import contextmanager
from datetime import date, datetime
from pathlib import Path
from typing import Iterator

from .config import settings
from .enums import ROLE_NAMES, Role

logger = logging.getLogger(__name__)


MIGRATIONS: list[tuple[int, str]] = [
    # Migration 1: initial schema
    (
        1,
        """
        CREATE TABLE IF NOT EXISTS roles (
            id INTEGER PRIMARY KEY,
            name TEXT NOT NULL UNIQUE
        );

        CREATE TABLE IF NOT EXISTS staff (
            id INTEGER PRIMARY KEY AUTOINCREMENT,
            name TEXT NOT NULL,
            phone TEXT NOT NULL,
            email TEXT,
            role TEXT NOT NULL,
            work_skills TEXT,
            is_active INTEGER NOT NULL DEFAULT 1,
            created_at TIMESTAMP NOT NULL,
            updated_at TIMESTAMP
        );

        CREATE TABLE IF NOT EXISTS users (
            id INTEGER PRIMARY KEY AUTOINCREMENT,
            username TEXT NOT NULL UNIQUE,
            full_name TEXT,
            password TEXT NOT NULL,
            role_id INTEGER NOT NULL,
            staff_id INTEGER,
            disabled INTEGER NOT NULL DEFAULT 0,
            created_at TIMESTAMP DEFAULT CURRENT_TIMESTAMP,
            updated_at TIMESTAMP DEFAULT CURRENT_TIMESTAMP,
            FOREIGN KEY(role_id) REFERENCES roles(id),
            FOREIGN KEY(staff_id) REFERENCES staff(id) ON DELETE SET NULL
        );

        CREATE TABLE IF NOT EXISTS sessions (
            id TEXT PRIMARY KEY,
            user_id INTEGER NOT NULL,
            created_at TIMESTAMP NOT NULL,
            expires_at TIMESTAMP NOT NULL,
            FOREIGN KEY(user_id) REFERENCES users(id) ON DELETE CASCADE
        );

        CREATE TABLE IF NOT EXISTS settings (
            key TEXT PRIMARY KEY,
            value TEXT NOT NULL,
            type TEXT NOT NULL
        );

        CREATE TABLE IF NOT EXISTS audit_logs (
            id INTEGER PRIMARY KEY AUTOINCREMENT,
            user_id INTEGER,
            action TEXT NOT NULL,
            object_type TEXT,
            object_id INTEGER,
            timestamp TIMESTAMP NOT NULL,
            details TEXT
        );

        CREATE TABLE IF NOT EXISTS technicians (
            id INTEGER PRIMARY KEY AUTOINCREMENT,
            name TEXT NOT NULL,
            phone TEXT NOT NULL,
            specialization TEXT,
            is_active INTEGER NOT NULL DEFAULT 1,
            created_at TIMESTAMP NOT NULL,
            updated_at TIMESTAMP
        );

        CREATE TABLE IF NOT EXISTS job_cards (
            id INTEGER PRIMARY KEY AUTOINCREMENT,
            customer_name TEXT NOT NULL,
            phone TEXT NOT NULL,
            bike_model TEXT NOT NULL,
            registration TEXT NOT NULL,
            odometer INTEGER NOT NULL CHECK (odometer >= 0),
            service_category TEXT NOT NULL,
            service_type TEXT NOT NULL,
            status TEXT NOT NULL,
            bay TEXT,
            technician_id INTEGER,
            estimated_time TEXT,
            repair_details TEXT,
            cost REAL NOT NULL CHECK (cost >= 0),
            advance_payment REAL NOT NULL,
            remaining_payment REAL NOT NULL,
            payment_status TEXT NOT NULL,
            created_by INTEGER,
            created_at TIMESTAMP NOT NULL,
            updated_at TIMESTAMP,
            completed_at TIMESTAMP,
            delivered_at TIMESTAMP,
            FOREIGN KEY(technician_id) REFERENCES technicians(id) ON DELETE SET NULL,
            FOREIGN KEY(created_by) REFERENCES users(id) ON DELETE SET NULL
        );

        CREATE TABLE IF NOT EXISTS attendance (
            id INTEGER PRIMARY KEY AUTOINCREMENT,
            staff_id INTEGER NOT NULL,
            date TEXT NOT NULL,
            status TEXT NOT NULL,
            check_in_time TEXT,
            check_out_time TEXT,
            notes TEXT,
            created_at TIMESTAMP NOT NULL,
            updated_at TIMESTAMP,
            UNIQUE(staff_id, date),
            FOREIGN KEY(staff_id) REFERENCES staff(id) ON DELETE CASCADE
        );

        CREATE TABLE IF NOT EXISTS parts_catalog (
            id INTEGER PRIMARY KEY AUTOINCREMENT,
            part_number TEXT NOT NULL UNIQUE,
            name TEXT NOT NULL,
            price REAL NOT NULL CHECK (price >= 0),
            created_at TIMESTAMP NOT NULL,
            updated_at TIMESTAMP
        );

        CREATE TABLE IF NOT EXISTS loyalty_customers (
            id INTEGER PRIMARY KEY AUTOINCREMENT,
            name TEXT NOT NULL,
            phone TEXT NOT NULL UNIQUE,
            email TEXT,
            vehicle_numbers TEXT,
            total_points INTEGER NOT NULL DEFAULT 0 CHECK (total_points >= 0),
            available_points INTEGER NOT NULL DEFAULT 0 CHECK (available_points >= 0),
            tier TEXT NOT NULL,
            total_spent REAL NOT NULL DEFAULT 0,
            created_at TIMESTAMP NOT NULL,
            updated_at TIMESTAMP
        );

        CREATE TABLE IF NOT EXISTS rewards (
            id INTEGER PRIMARY KEY AUTOINCREMENT,
            name TEXT NOT NULL,
            description TEXT,
            points_cost INTEGER NOT NULL CHECK (points_cost > 0),
            category TEXT NOT NULL,
            stock INTEGER CHECK (stock IS NULL OR stock >= 0),
            is_active INTEGER NOT NULL DEFAULT 1,
            created_at TIMESTAMP NOT NULL,
            updated_at TIMESTAMP
        );

        CREATE TABLE IF NOT EXISTS redemptions (
            id INTEGER PRIMARY KEY AUTOINCREMENT,
            customer_id INTEGER NOT NULL,
            reward_id INTEGER NOT NULL,
            points_spent INTEGER NOT NULL,
            status TEXT NOT NULL,
            created_by INTEGER,
            created_at TIMESTAMP NOT NULL,
            resolved_at TIMESTAMP,
            resolved_by INTEGER,
            FOREIGN KEY(customer_id) REFERENCES loyalty_customers(id) ON DELETE CASCADE,
            FOREIGN KEY(reward_id) REFERENCES rewards(id)
        );

        CREATE TABLE IF NOT EXISTS points_transactions (
            id INTEGER PRIMARY KEY AUTOINCREMENT,
            customer_id INTEGER NOT NULL,
            type TEXT NOT NULL,
            points INTEGER NOT NULL,
            amount REAL,
            job_card_id INTEGER,
            redemption_id INTEGER,
            description TEXT,
            created_by INTEGER,
            created_at TIMESTAMP NOT NULL,
            FOREIGN KEY(customer_id) REFERENCES loyalty_customers(id) ON DELETE CASCADE
        );
        """,
    ),
    # Migration 2: audit log immutability and lookup indices
    (
        2,
        """
        CREATE TRIGGER IF NOT EXISTS audit_logs_no_update
        BEFORE UPDATE ON audit_logs
        BEGIN
            SELECT RAISE(ABORT, 'audit log entries are immutable');
        END;

        CREATE TRIGGER IF NOT EXISTS audit_logs_no_delete
        BEFORE DELETE ON audit_logs
        BEGIN
            SELECT RAISE(ABORT, 'audit log entries are immutable');
        END;

        CREATE INDEX IF NOT EXISTS idx_audit_logs_object ON audit_logs(object_type, object_id);
        CREATE INDEX IF NOT EXISTS idx_job_cards_status ON job_cards(status);
        CREATE INDEX IF NOT EXISTS idx_job_cards_bay ON job_cards(bay);
        CREATE INDEX IF NOT EXISTS idx_attendance_date ON attendance(date);
        CREATE INDEX IF NOT EXISTS idx_points_transactions_customer ON points_transactions(customer_id);
        CREATE INDEX IF NOT EXISTS idx_redemptions_status ON redemptions(status);
        """,
    ),
    # Migration 3: a job card can be credited to the loyalty ledger once
    (
        3,
        """
        CREATE UNIQUE INDEX IF NOT EXISTS idx_points_transactions_job_card
        ON points_transactions(job_card_id)
        WHERE type = 'earn' AND job_card_id IS NOT NULL;
        """,
    ),
]


def get_database_path() -> str:
    """Absolute path of the database file.

    A relative ``DATABASE_URL`` is taken relative to the package directory.
    """
    db_url = settings.database_url
    if os.path.isabs(db_url):
        return db_url
    base_dir = Path(__file__).resolve().parent.parent.parent  # service_center_api/
    return str((base_dir / db_url).resolve())


def get_connection() -> sqlite3.Connection:
    """Open a connection returning ``sqlite3.Row`` rows with foreign keys enforced."""
    conn = sqlite3.connect(get_database_path())
    conn.row_factory = sqlite3.Row
    conn.execute("PRAGMA foreign_keys = ON")
    return conn


@contextmanager
def get_cursor() -> Iterator[sqlite3.Cursor]:
    """Yield a cursor, commit when the block finishes and always close."""
    conn = get_connection()
    try:
        yield conn.cursor()
        conn.commit()
    finally:
        conn.close()


def now_iso() -> str:
    """Current local time in the format SQLite uses for timestamps."""
    return datetime.now().strftime("%Y-%m-%d %H:%M:%S")


def today_iso() -> str:
    return date.today().isoformat()


def init_db() -> None:
    """Bring the schema up to date and seed the fixed data."""
    from .security import hash_password

    with get_cursor() as cursor:
        cursor.execute(
            "CREATE TABLE IF NOT EXISTS migrations (version INTEGER PRIMARY KEY)"
        )
        cursor.execute("SELECT MAX(version) as version FROM migrations")
        row = cursor.fetchone()
        current_version = row["version"] if row and row["version"] is not None else 0

        for version, sql in MIGRATIONS:
            if version > current_version:
                cursor.executescript(sql)
                cursor.execute(
                    "INSERT INTO migrations (version) VALUES (?)", (version,)
                )
                current_version = version
                logger.info("Applied migration %s", version)

        for role_id, name in ROLE_NAMES.items():
            cursor.execute(
                "INSERT OR IGNORE INTO roles (id, name) VALUES (?, ?)",
                (int(role_id), name),
            )

        users_count = cursor.execute("SELECT COUNT(*) FROM users").fetchone()[0]
        if users_count == 0:
            cursor.execute(
                "INSERT INTO users (username, full_name, password, role_id) VALUES (?, ?, ?, ?)",
                (
                    settings.admin_username,
                    "Administrator",
                    hash_password(settings.admin_password),
                    int(Role.ADMIN),
                ),
            )
            logger.info("Created bootstrap administrator %s", settings.admin_username)
