from typing import List

from fastapi import APIRouter, Depends, status
from sqlalchemy.ext.asyncio import AsyncSession

from portal.core.dependencies import get_current_active_user, get_db
from portal.core.permissions import require_admin
from portal.models import User
from portal.schemas.projects import (
    TeamCreateRequest,
    TeamMemberAddRequest,
    TeamMemberResponse,
    TeamMemberRoleUpdate,
    TeamResponse,
    TeamSummary,
    TeamUpdateRequest
)
from portal.services import TeamService

router = APIRouter(tags=["Teams"])


def get_team_service(db: AsyncSession = Depends(get_db)) -> TeamService:
    return TeamService(db=db)


@router.get("", response_model=List[TeamSummary])
async def list_my_teams(
    current_user: User = Depends(get_current_active_user),
    service: TeamService = Depends(get_team_service)
):
    """Teams the user belongs to; Admins see every team"""
    return await service.list_my_teams(current_user.organization_id, current_user)


@router.post("", response_model=TeamResponse, status_code=status.HTTP_201_CREATED)
async def create_team(
    data: TeamCreateRequest,
    current_user: User = Depends(require_admin),
    service: TeamService = Depends(get_team_service)
):
    return await service.create_team(current_user.organization_id, data, current_user)


@router.get("/{team_id}", response_model=TeamResponse)
async def get_team(
    team_id: int,
    current_user: User = Depends(get_current_active_user),
    service: TeamService = Depends(get_team_service)
):
    return await service.get_team(current_user.organization_id, team_id, current_user)


@router.patch("/{team_id}", response_model=TeamResponse)
async def update_team(
    team_id: int,
    data: TeamUpdateRequest,
    current_user: User = Depends(get_current_active_user),
    service: TeamService = Depends(get_team_service)
):
    return await service.update_team(current_user.organization_id, team_id, data, current_user)


@router.delete("/{team_id}", status_code=status.HTTP_204_NO_CONTENT)
async def delete_team(
    team_id: int,
    current_user: User = Depends(get_current_active_user),
    service: TeamService = Depends(get_team_service)
):
    await service.delete_team(current_user.organization_id, team_id, current_user)


@router.get("/{team_id}/members", response_model=List[TeamMemberResponse])
async def list_members(
    team_id: int,
    current_user: User = Depends(get_current_active_user),
    service: TeamService = Depends(get_team_service)
):
    return await service.list_members(current_user.organization_id, team_id, current_user)


@router.post("/{team_id}/members", response_model=TeamMemberResponse, status_code=status.HTTP_201_CREATED)
async def add_member(
    team_id: int,
    data: TeamMemberAddRequest,
    current_user: User = Depends(get_current_active_user),
    service: TeamService = Depends(get_team_service)
):
    return await service.add_member(current_user.organization_id, team_id, data, current_user)


@router.patch("/{team_id}/members/{member_id}", response_model=TeamMemberResponse)
async def change_member_role(
    team_id: int,
    member_id: int,
    data: TeamMemberRoleUpdate,
    current_user: User = Depends(get_current_active_user),
    service: TeamService = Depends(get_team_service)
):
    return await service.change_role(current_user.organization_id, team_id, member_id, data, current_user)


@router.delete("/{team_id}/members/{member_id}", status_code=status.HTTP_204_NO_CONTENT)
async def remove_member(
    team_id: int,
    member_id: int,
    current_user: User = Depends(get_current_active_user),
    service: TeamService = Depends(get_team_service)
):
    """Leave a team, or remove someone else as a team manager"""
    await service.remove_member(current_user.organization_id, team_id, member_id, current_user)
