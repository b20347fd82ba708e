#!/usr/bin/env python3
"""
Reset a user's password in the service center SQLite database.

This script does not read or reveal existing passwords.  It sets a new
PBKDF2-HMAC-SHA256 hash ("salthex$hashhex") for the given username and
ends all of that user's sessions.

Usage:
    python reset_password.py --db ./service_center_api/service_center.db --username admin --password "NewStrongPass!234"

If --password is omitted, you will be prompted to enter it securely.
"""

import argparse
import getpass
import os
import sqlite3
import sys

from service_center_api.app.core.db import now_iso
from service_center_api.app.core.security import hash_password


def main() -> None:
    ap = argparse.ArgumentParser(description="Reset a user password (SQLite).")
    ap.add_argument("--db", required=True, help="Path to SQLite DB file")
    ap.add_argument("--username", required=True, help="Username to update")
    ap.add_argument("--password", help="New password. If omitted, you'll be prompted securely.")
    args = ap.parse_args()

    if not os.path.exists(args.db):
        print(f"[!] DB not found: {args.db}", file=sys.stderr)
        sys.exit(1)

    new_password = args.password or getpass.getpass("Enter NEW password: ")
    if len(new_password) < 6:
        print("[!] Password must be at least 6 characters.", file=sys.stderr)
        sys.exit(1)

    conn = sqlite3.connect(args.db)
    try:
        cur = conn.cursor()
        cur.execute("SELECT id FROM users WHERE username = ?", (args.username,))
        row = cur.fetchone()
        if not row:
            print(f"[!] No user found with username: {args.username}", file=sys.stderr)
            sys.exit(2)
        cur.execute(
            "UPDATE users SET password = ?, updated_at = ? WHERE id = ?",
            (hash_password(new_password), now_iso(), row[0]),
        )
        cur.execute("DELETE FROM sessions WHERE user_id = ?", (row[0],))
        conn.commit()
        print(f"[+] Password updated for user: {args.username}")
    finally:
        conn.close()


if __name__ == "__main__":
    main()
