from fastapi import APIRouter, Depends
from sqlalchemy.ext.asyncio import AsyncSession

from portal.core.dependencies import get_db
from portal.core.permissions import require_admin
from portal.models import User
from portal.schemas.organization import SettingsResponse, SettingsUpdateRequest, SettingValueResponse
from portal.services import SettingsService

router = APIRouter(tags=["Settings"])


def get_settings_service(db: AsyncSession = Depends(get_db)) -> SettingsService:
    return SettingsService(db=db)


@router.get("", response_model=SettingsResponse)
async def get_settings(
    current_user: User = Depends(require_admin),
    service: SettingsService = Depends(get_settings_service)
):
    """All site settings with defaults filled in for keys never saved"""
    return SettingsResponse(settings=await service.get_all(current_user.organization_id))


@router.put("", response_model=SettingsResponse)
async def update_settings(
    data: SettingsUpdateRequest,
    current_user: User = Depends(require_admin),
    service: SettingsService = Depends(get_settings_service)
):
    values = await service.update(current_user.organization_id, data.settings)
    return SettingsResponse(settings=values)


@router.get("/{key}", response_model=SettingValueResponse)
async def get_setting(
    key: str,
    current_user: User = Depends(require_admin),
    service: SettingsService = Depends(get_settings_service)
):
    return SettingValueResponse(key=key, value=await service.get(current_user.organization_id, key))
