from datetime import datetime
from typing import Any, Dict, Optional, Union

from pydantic import BaseModel

from portal.schemas.common import ORMModel


class OrganizationResponse(ORMModel):
    id: int
    name: str
    slug: str
    email: Optional[str] = None
    phone: Optional[str] = None
    address: Optional[str] = None
    is_active: bool
    created_at: datetime


class OrganizationCreateResponse(BaseModel):
    organization: OrganizationResponse
    admin_email: str
    message: str = "Organization and admin account created successfully"


class SettingsResponse(BaseModel):
    settings: Dict[str, Union[bool, int, float, str]]


class SettingValueResponse(BaseModel):
    key: str
    value: Union[bool, int, float, str]


class ActivityLogResponse(ORMModel):
    id: int
    user_id: Optional[int] = None
    action: str
    entity_type: str
    entity_id: Optional[int] = None
    details: Optional[Dict[str, Any]] = None
    ip_address: Optional[str] = None
    created_at: datetime
