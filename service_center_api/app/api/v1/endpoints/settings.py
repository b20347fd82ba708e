"""
Settings endpoints for API v1.

Runtime settings override environment defaults without a restart, for
example ``loyalty.points_per_unit``.  Only administrators may use them.
"""

from typing import List

from fastapi import APIRouter, Depends

from service_center_api.app.core.enums import Role
from service_center_api.app.core.exceptions import http_error
from service_center_api.app.core.security import require_roles
from service_center_api.app.schemas.setting import SettingRead, SettingWrite
from service_center_api.app.services.settings_service import SettingsService

router = APIRouter()

admin_only = require_roles(Role.ADMIN)


@router.get("/", response_model=List[SettingRead])
async def list_settings(current_user: dict = Depends(admin_only)) -> List[SettingRead]:
    return await SettingsService.list_settings()


@router.get("/{key}", response_model=SettingRead)
async def get_setting(key: str, current_user: dict = Depends(admin_only)) -> SettingRead:
    try:
        return await SettingsService.get_setting(key)
    except ValueError as e:
        raise http_error(e) from e


@router.put("/{key}", response_model=SettingRead)
async def upsert_setting(key: str, body: SettingWrite, current_user: dict = Depends(admin_only)) -> SettingRead:
    """Insert or update a setting.

    Supported types are ``string``, ``int``, ``float`` and ``bool``.
    """
    try:
        return await SettingsService.upsert_setting(key, body.value, body.type, current_user["user_id"])
    except ValueError as e:
        raise http_error(e) from e
