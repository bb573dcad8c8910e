from .requests import (
    UserCreateRequest, UserUpdateRequest, UserFilterParams, ApproveUsersRequest,
    PasswordResetRequest, RoleCreateRequest, StudentProfileData, ParentProfileData,
    TeacherProfileData, ChildCreateRequest
)
from .responses import (
    UserResponse, UserListResponse, RoleResponse, RoleWithCountResponse,
    ApproveUsersResponse, ParentSummary, StudentSummary, PasswordResetResponse,
    ChildResponse, ChildCreatedResponse
)

__all__ = [
    'UserCreateRequest', 'UserUpdateRequest', 'UserFilterParams', 'ApproveUsersRequest',
    'PasswordResetRequest', 'RoleCreateRequest', 'StudentProfileData', 'ParentProfileData',
    'TeacherProfileData', 'UserResponse', 'UserListResponse', 'RoleResponse',
    'RoleWithCountResponse', 'ApproveUsersResponse', 'ParentSummary', 'StudentSummary', 'PasswordResetResponse',
    'ChildCreateRequest', 'ChildResponse', 'ChildCreatedResponse'
]
