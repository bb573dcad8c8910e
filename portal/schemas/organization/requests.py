from typing import Dict, Optional, Union

from pydantic import BaseModel, EmailStr, Field


class OrganizationAdmin(BaseModel):
    email: EmailStr
    password: str = Field(..., min_length=8)
    first_name: str = Field(..., min_length=1)
    last_name: str = Field(..., min_length=1)


class OrganizationCreateRequest(BaseModel):
    name: str = Field(..., min_length=2, max_length=200)
    slug: Optional[str] = Field(default=None, pattern=r"^[a-z0-9]+(?:-[a-z0-9]+)*$")
    email: Optional[EmailStr] = None
    phone: Optional[str] = None
    address: Optional[str] = None
    admin: OrganizationAdmin


class OrganizationUpdateRequest(BaseModel):
    name: Optional[str] = Field(default=None, min_length=2, max_length=200)
    email: Optional[EmailStr] = None
    phone: Optional[str] = None
    address: Optional[str] = None
    is_active: Optional[bool] = None


class SettingsUpdateRequest(BaseModel):
    settings: Dict[str, Union[bool, int, float, str]]
