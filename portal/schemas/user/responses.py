from datetime import date, datetime
from typing import List, Optional

from pydantic import BaseModel

from portal.schemas.common import ORMModel, UserBrief


class RoleResponse(ORMModel):
    id: int
    name: str
    description: Optional[str] = None
    permissions: List[str] = []
    is_system: bool


class RoleWithCountResponse(RoleResponse):
    user_count: int = 0


class StudentProfileResponse(ORMModel):
    id: int
    date_of_birth: Optional[date] = None
    grade: Optional[str] = None
    school_name: Optional[str] = None
    phone_number: Optional[str] = None
    performance_discount: float = 0
    parent_id: Optional[int] = None


class ParentProfileResponse(ORMModel):
    id: int
    phone: Optional[str] = None
    address: Optional[str] = None


class TeacherProfileResponse(ORMModel):
    id: int
    bio: Optional[str] = None
    specialization: Optional[str] = None
    salary: Optional[float] = None


class UserResponse(ORMModel):
    id: int
    organization_id: int
    email: str
    first_name: str
    last_name: str
    full_name: str
    username: Optional[str] = None
    phone: Optional[str] = None
    avatar: Optional[str] = None
    is_active: bool
    is_approved: bool
    is_superuser: bool
    last_login: Optional[datetime] = None
    created_at: datetime
    role_names: List[str] = []
    student_profile: Optional[StudentProfileResponse] = None
    parent_profile: Optional[ParentProfileResponse] = None
    teacher_profile: Optional[TeacherProfileResponse] = None


class UserListResponse(BaseModel):
    total: int
    page: int
    size: int
    items: List[UserResponse]


class ApproveUsersResponse(BaseModel):
    approved: int


class ParentSummary(ORMModel):
    id: int
    phone: Optional[str] = None
    user: UserBrief


class StudentSummary(ORMModel):
    id: int
    grade: Optional[str] = None
    user: UserBrief


class PasswordResetResponse(BaseModel):
    success: bool = True
    message: str
    temporary_password: Optional[str] = None


class ChildResponse(ORMModel):
    id: int
    grade: Optional[str] = None
    school_name: Optional[str] = None
    date_of_birth: Optional[date] = None
    user: UserBrief


class ChildCreatedResponse(BaseModel):
    child: ChildResponse
    temporary_password: str
