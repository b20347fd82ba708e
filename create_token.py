#!/usr/bin/env python3
"""
Issue a long-lived access token for an existing user.

The token is bound to a new session row, so it can be revoked like any
other login (``POST /api/v1/auth/logout`` or deleting the session).

Usage:
    python create_token.py --username admin --days 365
"""

import argparse
import asyncio
import sys

from service_center_api.app.core.db import get_connection, init_db
from service_center_api.app.services.auth_service import AuthService


def main() -> None:
    ap = argparse.ArgumentParser(description="Issue an access token for a user.")
    ap.add_argument("--username", default="admin", help="Username to issue the token for")
    ap.add_argument("--days", type=int, default=365, help="Token lifetime in days")
    args = ap.parse_args()

    init_db()
    conn = get_connection()
    try:
        row = conn.execute(
            "SELECT id, disabled FROM users WHERE username = ?", (args.username,)
        ).fetchone()
    finally:
        conn.close()
    if not row:
        print(f"[!] No user found with username: {args.username}", file=sys.stderr)
        sys.exit(2)
    if row["disabled"]:
        print(f"[!] User {args.username} is disabled", file=sys.stderr)
        sys.exit(2)

    token = asyncio.run(AuthService.create_session(row["id"], args.username, expire_minutes=args.days * 24 * 60))
    print(token["access_token"])


if __name__ == "__main__":
    main()
