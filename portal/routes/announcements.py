from typing import List

from fastapi import APIRouter, Depends, status
from sqlalchemy.ext.asyncio import AsyncSession

from portal.core.dependencies import get_current_active_user, get_db
from portal.core.permissions import require_admin
from portal.models import User
from portal.schemas.common import MessageResponse
from portal.schemas.content import (
    AnnouncementCreateRequest,
    AnnouncementFeedItem,
    AnnouncementResponse,
    AnnouncementStatusUpdate,
    UnreadCountResponse
)
from portal.services import AnnouncementService

router = APIRouter(tags=["Announcements"])


def get_announcement_service(db: AsyncSession = Depends(get_db)) -> AnnouncementService:
    return AnnouncementService(db=db)


@router.get("", response_model=List[AnnouncementFeedItem])
async def announcement_feed(
    current_user: User = Depends(get_current_active_user),
    service: AnnouncementService = Depends(get_announcement_service)
):
    """Latest announcements addressed to the current user"""
    return await service.feed(current_user.organization_id, current_user)


@router.get("/unread-count", response_model=UnreadCountResponse)
async def unread_count(
    current_user: User = Depends(get_current_active_user),
    service: AnnouncementService = Depends(get_announcement_service)
):
    return {"unread": await service.unread_count(current_user.organization_id, current_user)}


@router.post("/{announcement_id}/read", response_model=MessageResponse)
async def mark_read(
    announcement_id: int,
    current_user: User = Depends(get_current_active_user),
    service: AnnouncementService = Depends(get_announcement_service)
):
    await service.mark_read(current_user.organization_id, announcement_id, current_user)
    return {"message": "Announcement marked as read"}


# Administration

@router.get("/all", response_model=List[AnnouncementResponse])
async def list_announcements(
    current_user: User = Depends(require_admin),
    service: AnnouncementService = Depends(get_announcement_service)
):
    return await service.list_all(current_user.organization_id)


@router.post("", response_model=AnnouncementResponse, status_code=status.HTTP_201_CREATED)
async def create_announcement(
    data: AnnouncementCreateRequest,
    current_user: User = Depends(require_admin),
    service: AnnouncementService = Depends(get_announcement_service)
):
    return await service.create(current_user.organization_id, data, current_user)


@router.patch("/{announcement_id}", response_model=AnnouncementResponse)
async def update_announcement_status(
    announcement_id: int,
    data: AnnouncementStatusUpdate,
    current_user: User = Depends(require_admin),
    service: AnnouncementService = Depends(get_announcement_service)
):
    return await service.set_active(current_user.organization_id, announcement_id, data.is_active)


@router.delete("/{announcement_id}", status_code=status.HTTP_204_NO_CONTENT)
async def delete_announcement(
    announcement_id: int,
    current_user: User = Depends(require_admin),
    service: AnnouncementService = Depends(get_announcement_service)
):
    await service.delete(current_user.organization_id, announcement_id)
