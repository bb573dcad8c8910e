from typing import List

from fastapi import APIRouter, Depends, status
from sqlalchemy.ext.asyncio import AsyncSession

from portal.core.dependencies import get_db
from portal.core.permissions import require_admin
from portal.models import User
from portal.schemas.user import (
    ApproveUsersRequest,
    ApproveUsersResponse,
    ParentSummary,
    PasswordResetRequest,
    PasswordResetResponse,
    RoleCreateRequest,
    RoleResponse,
    RoleWithCountResponse,
    UserCreateRequest,
    UserFilterParams,
    UserListResponse,
    UserResponse,
    UserUpdateRequest
)
from portal.services import UserService

router = APIRouter(tags=["Users"])


def get_user_service(db: AsyncSession = Depends(get_db)) -> UserService:
    return UserService(db=db)


@router.get("", response_model=UserListResponse)
async def list_users(
    filters: UserFilterParams = Depends(),
    current_user: User = Depends(require_admin),
    service: UserService = Depends(get_user_service)
):
    """Search and page through the organization's users"""
    return await service.list_users(current_user.organization_id, filters)


@router.post("", response_model=UserResponse, status_code=status.HTTP_201_CREATED)
async def create_user(
    data: UserCreateRequest,
    current_user: User = Depends(require_admin),
    service: UserService = Depends(get_user_service)
):
    return await service.create_user(current_user.organization_id, data, current_user)


@router.post("/approve", response_model=ApproveUsersResponse)
async def approve_users(
    data: ApproveUsersRequest,
    current_user: User = Depends(require_admin),
    service: UserService = Depends(get_user_service)
):
    """Approve pending accounts in bulk"""
    approved = await service.approve_users(current_user.organization_id, data.user_ids, current_user)
    return ApproveUsersResponse(approved=approved)


@router.get("/roles", response_model=List[RoleWithCountResponse])
async def list_roles(
    current_user: User = Depends(require_admin),
    service: UserService = Depends(get_user_service)
):
    return await service.list_roles(current_user.organization_id)


@router.post("/roles", response_model=RoleResponse, status_code=status.HTTP_201_CREATED)
async def create_role(
    data: RoleCreateRequest,
    current_user: User = Depends(require_admin),
    service: UserService = Depends(get_user_service)
):
    return await service.create_role(current_user.organization_id, data)


@router.delete("/roles/{role_id}", status_code=status.HTTP_204_NO_CONTENT)
async def delete_role(
    role_id: int,
    current_user: User = Depends(require_admin),
    service: UserService = Depends(get_user_service)
):
    await service.delete_role(current_user.organization_id, role_id)


@router.get("/parents/{parent_id}", response_model=ParentSummary)
async def get_parent(
    parent_id: int,
    current_user: User = Depends(require_admin),
    service: UserService = Depends(get_user_service)
):
    return await service.get_parent_profile(current_user.organization_id, parent_id)


@router.get("/{user_id}", response_model=UserResponse)
async def get_user(
    user_id: int,
    current_user: User = Depends(require_admin),
    service: UserService = Depends(get_user_service)
):
    return await service.get_user(current_user.organization_id, user_id)


@router.patch("/{user_id}", response_model=UserResponse)
async def update_user(
    user_id: int,
    data: UserUpdateRequest,
    current_user: User = Depends(require_admin),
    service: UserService = Depends(get_user_service)
):
    return await service.update_user(current_user.organization_id, user_id, data)


@router.delete("/{user_id}", status_code=status.HTTP_204_NO_CONTENT)
async def delete_user(
    user_id: int,
    current_user: User = Depends(require_admin),
    service: UserService = Depends(get_user_service)
):
    await service.delete_user(current_user.organization_id, user_id, current_user)


@router.post("/{user_id}/approve", response_model=ApproveUsersResponse)
async def approve_user(
    user_id: int,
    current_user: User = Depends(require_admin),
    service: UserService = Depends(get_user_service)
):
    approved = await service.approve_users(current_user.organization_id, [user_id], current_user)
    return ApproveUsersResponse(approved=approved)


@router.post("/{user_id}/reset-password", response_model=PasswordResetResponse)
async def reset_password(
    user_id: int,
    data: PasswordResetRequest,
    current_user: User = Depends(require_admin),
    service: UserService = Depends(get_user_service)
):
    """Set a password, or generate a temporary one when none is supplied"""
    password = await service.reset_password(current_user.organization_id, user_id, data.new_password)
    return PasswordResetResponse(
        message="Password reset successfully",
        temporary_password=None if data.new_password else password
    )
