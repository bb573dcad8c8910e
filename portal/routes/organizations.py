from typing import List

from fastapi import APIRouter, Depends, status
from sqlalchemy.ext.asyncio import AsyncSession

from portal.core.dependencies import get_current_superuser, get_db
from portal.models import User
from portal.schemas.organization import (
    OrganizationCreateRequest,
    OrganizationCreateResponse,
    OrganizationResponse,
    OrganizationUpdateRequest
)
from portal.services import OrganizationService

router = APIRouter(tags=["Organizations"])


def get_organization_service(db: AsyncSession = Depends(get_db)) -> OrganizationService:
    return OrganizationService(db=db)


@router.post("", response_model=OrganizationCreateResponse, status_code=status.HTTP_201_CREATED)
async def create_organization(
    data: OrganizationCreateRequest,
    current_user: User = Depends(get_current_superuser),
    service: OrganizationService = Depends(get_organization_service)
):
    """Create an organization with its built-in roles and first Admin (superuser only)"""
    organization = await service.create_organization(data)
    return OrganizationCreateResponse(
        organization=OrganizationResponse.model_validate(organization),
        admin_email=data.admin.email.lower()
    )


@router.get("", response_model=List[OrganizationResponse])
async def list_organizations(
    include_inactive: bool = True,
    current_user: User = Depends(get_current_superuser),
    service: OrganizationService = Depends(get_organization_service)
):
    return await service.list_organizations(include_inactive)


@router.get("/{organization_id}", response_model=OrganizationResponse)
async def get_organization(
    organization_id: int,
    current_user: User = Depends(get_current_superuser),
    service: OrganizationService = Depends(get_organization_service)
):
    return await service.get_organization(organization_id)


@router.patch("/{organization_id}", response_model=OrganizationResponse)
async def update_organization(
    organization_id: int,
    data: OrganizationUpdateRequest,
    current_user: User = Depends(get_current_superuser),
    service: OrganizationService = Depends(get_organization_service)
):
    return await service.update_organization(organization_id, data)


@router.post("/{organization_id}/deactivate", response_model=OrganizationResponse)
async def deactivate_organization(
    organization_id: int,
    current_user: User = Depends(get_current_superuser),
    service: OrganizationService = Depends(get_organization_service)
):
    return await service.deactivate_organization(organization_id)
