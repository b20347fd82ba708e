"""
Simple configuration management.

The ``Settings`` dataclass reads configuration directly from
environment variables.  Defaults are provided for all fields so the
service starts on a developer machine without any setup.  In a
production deployment override at least ``SECRET_KEY`` and
``ADMIN_PASSWORD``.
"""

import os
from dataclasses import dataclass


@dataclass
class Settings:
    """Application settings loaded from environment variables."""

    project_name: str = os.getenv("PROJECT_NAME", "Service Center API")
    api_version: str = os.getenv("API_VERSION", "1.0.0")
    debug: bool = os.getenv("DEBUG", "false").lower() in {"1", "true", "yes"}
    log_level: str = os.getenv("LOG_LEVEL", "INFO")
    log_file: str = os.getenv("LOG_FILE", "")
    secret_key: str = os.getenv("SECRET_KEY", "change_me")
    access_token_expire_minutes: int = int(os.getenv("ACCESS_TOKEN_EXPIRE_MINUTES", str(60 * 24)))
    algorithm: str = os.getenv("ALGORITHM", "HS256")

    # Optional static token for script access.  Requests carrying this
    # token in the Authorization header are treated as the primary
    # administrator (the Admin user with the lowest id).
    super_admin_static_token: str = os.getenv("SUPER_ADMIN_TOKEN", "")

    # Path of the SQLite database file.  Relative paths are resolved
    # against the project root by ``core.db``.
    database_url: str = os.getenv("DATABASE_URL", "service_center.db")

    # Credentials of the administrator created on first start when the
    # users table is empty.
    admin_username: str = os.getenv("ADMIN_USERNAME", "admin")
    admin_password: str = os.getenv("ADMIN_PASSWORD", "admin123")

    # Loyalty points earned per currency unit spent, before the tier
    # multiplier.  0.01 means one point per 100 units.  May be overridden
    # at runtime through the ``loyalty.points_per_unit`` setting.
    loyalty_points_per_unit: float = float(os.getenv("LOYALTY_POINTS_PER_UNIT", "0.01"))
    currency: str = os.getenv("CURRENCY", "LKR")

    # Comma separated origins allowed to call the API from a browser.
    cors_origins: str = os.getenv("CORS_ORIGINS", "*")


# Instantiate settings once so other modules can import it without
# repeatedly reading environment variables.  Environment variables must
# be set before this module is imported.
settings = Settings()
