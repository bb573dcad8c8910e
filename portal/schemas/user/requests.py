from datetime import date
from typing import List, Optional

from pydantic import BaseModel, EmailStr, Field


class StudentProfileData(BaseModel):
    date_of_birth: Optional[date] = None
    grade: Optional[str] = None
    school_name: Optional[str] = None
    phone_number: Optional[str] = None
    performance_discount: Optional[float] = Field(default=None, ge=0, le=100)
    parent_id: Optional[int] = None


class ParentProfileData(BaseModel):
    phone: Optional[str] = None
    address: Optional[str] = None


class TeacherProfileData(BaseModel):
    bio: Optional[str] = None
    specialization: Optional[str] = None
    salary: Optional[float] = Field(default=None, ge=0)


class UserCreateRequest(BaseModel):
    email: EmailStr
    password: str = Field(..., min_length=8)
    first_name: str = Field(..., min_length=1, max_length=100)
    last_name: str = Field(..., min_length=1, max_length=100)
    username: Optional[str] = Field(default=None, min_length=3, max_length=30)
    phone: Optional[str] = None
    roles: List[str] = Field(..., min_length=1)
    is_approved: bool = True
    student_profile: Optional[StudentProfileData] = None
    parent_profile: Optional[ParentProfileData] = None
    teacher_profile: Optional[TeacherProfileData] = None


class UserUpdateRequest(BaseModel):
    email: Optional[EmailStr] = None
    first_name: Optional[str] = Field(default=None, min_length=1, max_length=100)
    last_name: Optional[str] = Field(default=None, min_length=1, max_length=100)
    username: Optional[str] = Field(default=None, min_length=3, max_length=30)
    phone: Optional[str] = None
    avatar: Optional[str] = None
    is_active: Optional[bool] = None
    is_approved: Optional[bool] = None
    roles: Optional[List[str]] = Field(default=None, min_length=1)
    student_profile: Optional[StudentProfileData] = None
    parent_profile: Optional[ParentProfileData] = None
    teacher_profile: Optional[TeacherProfileData] = None


class UserFilterParams(BaseModel):
    search: Optional[str] = None
    role: Optional[str] = None
    is_approved: Optional[bool] = None
    page: int = Field(default=1, ge=1)
    size: int = Field(default=20, ge=1, le=100)


class ApproveUsersRequest(BaseModel):
    user_ids: List[int] = Field(..., min_length=1)


class PasswordResetRequest(BaseModel):
    # omitted: a temporary password is generated and returned once
    new_password: Optional[str] = Field(default=None, min_length=8)


class RoleCreateRequest(BaseModel):
    name: str = Field(..., min_length=2, max_length=50)
    description: Optional[str] = None
    permissions: List[str] = Field(default_factory=list)


class ChildCreateRequest(BaseModel):
    first_name: str = Field(..., min_length=1, max_length=100)
    last_name: str = Field(..., min_length=1, max_length=100)
    email: EmailStr
    date_of_birth: Optional[date] = None
    grade: Optional[str] = None
    school_name: Optional[str] = None
