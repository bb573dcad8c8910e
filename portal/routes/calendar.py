from datetime import datetime
from typing import List, Optional

from fastapi import APIRouter, Depends, Response, status
from sqlalchemy.ext.asyncio import AsyncSession

from portal.core.dependencies import get_current_active_user, get_db
from portal.models import User
from portal.schemas.content import (
    CalendarEventCreateRequest,
    CalendarEventResponse,
    CalendarEventUpdateRequest
)
from portal.services import CalendarService
from portal.utils.dates import to_naive_utc

router = APIRouter(tags=["Calendar"])


def get_calendar_service(db: AsyncSession = Depends(get_db)) -> CalendarService:
    return CalendarService(db=db)


@router.get("/events", response_model=List[CalendarEventResponse])
async def list_events(
    start: Optional[datetime] = None,
    end: Optional[datetime] = None,
    team_id: Optional[int] = None,
    current_user: User = Depends(get_current_active_user),
    service: CalendarService = Depends(get_calendar_service)
):
    """Events visible to the user, optionally limited to a time range or team"""
    return await service.list_events(
        current_user.organization_id,
        current_user,
        start=to_naive_utc(start) if start else None,
        end=to_naive_utc(end) if end else None,
        team_id=team_id
    )


@router.get("/export.ics")
async def export_calendar(
    team_id: Optional[int] = None,
    current_user: User = Depends(get_current_active_user),
    service: CalendarService = Depends(get_calendar_service)
):
    body = await service.export_ics(current_user.organization_id, current_user, team_id=team_id)
    return Response(
        content=body,
        media_type="text/calendar",
        headers={"Content-Disposition": 'attachment; filename="calendar.ics"'}
    )


@router.post("/events", response_model=CalendarEventResponse, status_code=status.HTTP_201_CREATED)
async def create_event(
    data: CalendarEventCreateRequest,
    current_user: User = Depends(get_current_active_user),
    service: CalendarService = Depends(get_calendar_service)
):
    return await service.create_event(current_user.organization_id, data, current_user)


@router.get("/events/{event_id}", response_model=CalendarEventResponse)
async def get_event(
    event_id: int,
    current_user: User = Depends(get_current_active_user),
    service: CalendarService = Depends(get_calendar_service)
):
    return await service.get_event(current_user.organization_id, event_id)


@router.patch("/events/{event_id}", response_model=CalendarEventResponse)
async def update_event(
    event_id: int,
    data: CalendarEventUpdateRequest,
    current_user: User = Depends(get_current_active_user),
    service: CalendarService = Depends(get_calendar_service)
):
    return await service.update_event(current_user.organization_id, event_id, data, current_user)


@router.delete("/events/{event_id}", status_code=status.HTTP_204_NO_CONTENT)
async def delete_event(
    event_id: int,
    current_user: User = Depends(get_current_active_user),
    service: CalendarService = Depends(get_calendar_service)
):
    await service.delete_event(current_user.organization_id, event_id, current_user)
