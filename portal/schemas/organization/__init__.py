from .requests import (
    OrganizationAdmin, OrganizationCreateRequest, OrganizationUpdateRequest, SettingsUpdateRequest
)
from .responses import (
    OrganizationResponse, OrganizationCreateResponse, SettingsResponse, SettingValueResponse,
    ActivityLogResponse
)

__all__ = [
    'OrganizationAdmin', 'OrganizationCreateRequest', 'OrganizationUpdateRequest',
    'SettingsUpdateRequest', 'OrganizationResponse', 'OrganizationCreateResponse',
    'SettingsResponse', 'SettingValueResponse', 'ActivityLogResponse'
]
