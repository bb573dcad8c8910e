from typing import List

from fastapi import APIRouter, Depends, Query
from sqlalchemy.ext.asyncio import AsyncSession

from portal.core.dependencies import get_db
from portal.core.permissions import require_admin
from portal.models import User
from portal.schemas.organization import ActivityLogResponse
from portal.services import ActivityService

router = APIRouter(tags=["Activity"])


def get_activity_service(db: AsyncSession = Depends(get_db)) -> ActivityService:
    return ActivityService(db=db)


@router.get("", response_model=List[ActivityLogResponse])
async def list_activity(
    limit: int = Query(default=50, ge=1, le=200),
    current_user: User = Depends(require_admin),
    service: ActivityService = Depends(get_activity_service)
):
    """Most recent audit entries for the organization"""
    return await service.list_recent(current_user.organization_id, limit)
