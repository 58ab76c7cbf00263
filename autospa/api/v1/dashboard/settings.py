# autospa/api/v1/dashboard/settings.py
from fastapi import APIRouter, Depends, Path
from sqlalchemy.orm import Session

from autospa.api.dependencies import get_settings_cache, require_permission
from autospa.config.database import get_db
from autospa.core.cache import TTLCache
from autospa.models.employee import Employee
from autospa.schemas.settings import SettingsListResponse, SettingUpdate
from autospa.services.auth.permission_service import SETTINGS_MANAGE
from autospa.services.settings.business_settings_service import BusinessSettingsService

router = APIRouter(prefix="/settings", tags=["dashboard-settings"])


@router.get("", response_model=SettingsListResponse)
async def list_settings(
        current_employee: Employee = Depends(require_permission(SETTINGS_MANAGE)),
        db: Session = Depends(get_db)
):
    return SettingsListResponse(settings=BusinessSettingsService.list_settings(db))


@router.put("/{key}")
async def update_setting(
        body: SettingUpdate,
        key: str = Path(..., description="business_hours, booking_config or coupon_type_enforcement"),
        current_employee: Employee = Depends(require_permission(SETTINGS_MANAGE)),
        db: Session = Depends(get_db),
        cache: TTLCache = Depends(get_settings_cache)
):
    """Validate and store one setting; cached settings are dropped"""
    value = BusinessSettingsService.update_setting(db, key, body.value, cache=cache)
    return {"key": key, "value": value}
