"""
Security helpers for password hashing and token authentication.

Bearer tokens are compact JWTs signed with HMAC-SHA256.  Tokens embed the
username (``sub``), the server-side session id (``sid``) and an
expiration timestamp (``exp``).  A token is only accepted while its
session row exists, which lets ``/auth/logout`` revoke it.

Passwords are hashed with PBKDF2-HMAC-SHA256 and a random salt.
"""

import base64
import binascii
import hashlib
import hmac
import json
import os
import time
from typing import Callable, Dict, Optional

from fastapi import Depends, HTTPException, status
from fastapi.security import HTTPAuthorizationCredentials, HTTPBearer

from .config import settings
from .db import get_connection, now_iso
from .enums import REVENUE_ROLES, ROLE_NAMES, Role

PBKDF2_ITERATIONS = 100_000


def _b64_url_encode(data: bytes) -> str:
    """Base64-url encode bytes without padding."""
    return base64.urlsafe_b64encode(data).rstrip(b"=").decode("utf-8")


def _b64_url_decode(data: str) -> bytes:
    """Decode base64-url encoded string, adding padding if necessary."""
    padding = "=" * (-len(data) % 4)
    return base64.urlsafe_b64decode(data + padding)


def _sign(message: bytes, secret: str) -> bytes:
    return hmac.new(secret.encode("utf-8"), message, hashlib.sha256).digest()


def create_access_token(data: Dict[str, str], expires_delta: Optional[int] = None) -> str:
    """Sign ``data`` as a JWT that expires after ``expires_delta`` seconds.

    Without ``expires_delta`` the token lives for
    ``ACCESS_TOKEN_EXPIRE_MINUTES``.
    """
    to_encode = data.copy()
    exp_seconds = expires_delta or settings.access_token_expire_minutes * 60
    to_encode["exp"] = int(time.time()) + exp_seconds
    header = {"alg": settings.algorithm, "typ": "JWT"}
    header_b64 = _b64_url_encode(json.dumps(header, separators=(",", ":")).encode("utf-8"))
    payload_b64 = _b64_url_encode(json.dumps(to_encode, separators=(",", ":")).encode("utf-8"))
    signing_input = f"{header_b64}.{payload_b64}".encode("utf-8")
    signature_b64 = _b64_url_encode(_sign(signing_input, settings.secret_key))
    return f"{header_b64}.{payload_b64}.{signature_b64}"


def decode_access_token(token: str) -> Optional[Dict[str, str]]:
    """Return the claims of ``token``, or ``None`` if it is forged, malformed or expired."""
    parts = token.split(".")
    if len(parts) != 3:
        return None
    header_b64, payload_b64, signature_b64 = parts
    signing_input = f"{header_b64}.{payload_b64}".encode("utf-8")
    expected_sig = _sign(signing_input, settings.secret_key)
    try:
        actual_sig = _b64_url_decode(signature_b64)
        if not hmac.compare_digest(expected_sig, actual_sig):
            return None
        data = json.loads(_b64_url_decode(payload_b64).decode("utf-8"))
    except (binascii.Error, UnicodeDecodeError, json.JSONDecodeError):
        return None
    if not isinstance(data, dict):
        return None
    if data.get("exp") is None or int(data["exp"]) < int(time.time()):
        return None
    return data


security = HTTPBearer(auto_error=False)


def _unauthorized(detail: str) -> HTTPException:
    return HTTPException(
        status_code=status.HTTP_401_UNAUTHORIZED,
        detail=detail,
        headers={"WWW-Authenticate": "Bearer"},
    )


def _user_context(row, session_id: Optional[str]) -> Dict[str, object]:
    return {
        "sub": row["username"],
        "sid": session_id,
        "user_id": row["id"],
        "role_id": row["role_id"],
        "role": ROLE_NAMES.get(row["role_id"]),
        "full_name": row["full_name"],
        "staff_id": row["staff_id"],
    }


def get_current_user(credentials: HTTPAuthorizationCredentials = Depends(security)) -> Dict[str, object]:
    """Dependency that resolves the authenticated user.

    Raises HTTP 401 when the header is missing, the token is invalid or
    expired, the session was revoked, or the user no longer exists or
    is disabled.  Returns a dictionary with the user's id, username and
    role.
    """
    if credentials is None:
        raise _unauthorized("Not authenticated")
    token = credentials.credentials

    conn = get_connection()
    try:
        cursor = conn.cursor()
        if settings.super_admin_static_token and hmac.compare_digest(token.encode("utf-8"), settings.super_admin_static_token.encode("utf-8")):
            row = cursor.execute(
                "SELECT id, username, full_name, role_id, staff_id, disabled FROM users "
                "WHERE role_id = ? AND disabled = 0 ORDER BY id ASC LIMIT 1",
                (int(Role.ADMIN),),
            ).fetchone()
            if not row:
                raise _unauthorized("No administrator account available")
            return _user_context(row, None)

        payload = decode_access_token(token)
        if not payload:
            raise _unauthorized("Invalid or expired token")
        session_row = cursor.execute(
            "SELECT user_id, expires_at FROM sessions WHERE id = ?",
            (payload.get("sid"),),
        ).fetchone()
        if not session_row or session_row["expires_at"] < now_iso():
            raise _unauthorized("Session expired or revoked")
        row = cursor.execute(
            "SELECT id, username, full_name, role_id, staff_id, disabled FROM users WHERE id = ?",
            (session_row["user_id"],),
        ).fetchone()
        if not row or row["username"] != payload.get("sub"):
            raise _unauthorized("User no longer exists")
        if row["disabled"]:
            raise _unauthorized("User account disabled")
        return _user_context(row, payload.get("sid"))
    finally:
        conn.close()


# Role checks

def require_roles(*role_ids: int) -> Callable[[Dict[str, object]], Dict[str, object]]:
    """Dependency factory to enforce that the current user has one of the given roles.

    Use in endpoints as ``Depends(require_roles(Role.ADMIN, Role.MANAGER))``.
    Raises HTTP 403 when the authenticated user's role is not listed.
    """
    allowed = {int(r) for r in role_ids}

    def _role_dependency(current_user: Dict[str, object] = Depends(get_current_user)) -> Dict[str, object]:
        if current_user.get("role_id") not in allowed:
            raise HTTPException(
                status_code=status.HTTP_403_FORBIDDEN,
                detail="Insufficient permissions",
            )
        return current_user

    return _role_dependency


def can_view_revenue(current_user: Dict[str, object]) -> bool:
    return current_user.get("role_id") in REVENUE_ROLES


def hash_password(password: str) -> str:
    """Hash a password using PBKDF2-HMAC with SHA-256.

    A 16-byte random salt is generated for each password.  The result
    holds the salt and the digest in hex, separated by ``$``.
    """
    salt = os.urandom(16)
    dk = hashlib.pbkdf2_hmac("sha256", password.encode("utf-8"), salt, PBKDF2_ITERATIONS)
    return f"{salt.hex()}${dk.hex()}"


def verify_password(plain_password: str, hashed_password: Optional[str]) -> bool:
    """Verify a plain password against a stored ``salt$hash`` string."""
    if not hashed_password or "$" not in hashed_password:
        return False
    salt_hex, hash_hex = hashed_password.split("$", 1)
    try:
        salt = bytes.fromhex(salt_hex)
        stored_hash = bytes.fromhex(hash_hex)
    except ValueError:
        return False
    dk = hashlib.pbkdf2_hmac("sha256", plain_password.encode("utf-8"), salt, PBKDF2_ITERATIONS)
    return hmac.compare_digest(dk, stored_hash)
