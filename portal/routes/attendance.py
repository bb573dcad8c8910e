from typing import List, Optional

from fastapi import APIRouter, Depends, status
from sqlalchemy.ext.asyncio import AsyncSession

from portal.core.dependencies import get_current_active_user, get_db
from portal.core.permissions import require_staff
from portal.models import User
from portal.routes.lms import resolve_student_id
from portal.schemas.lms import (
    AttendanceSummaryResponse,
    ClassSessionCreateRequest,
    ClassSessionResponse,
    ClassSessionUpdateRequest
)
from portal.services import AttendanceService

router = APIRouter(tags=["Attendance"])


def get_attendance_service(db: AsyncSession = Depends(get_db)) -> AttendanceService:
    return AttendanceService(db=db)


@router.get("/courses/{course_id}/sessions", response_model=List[ClassSessionResponse])
async def list_sessions(
    course_id: int,
    current_user: User = Depends(require_staff),
    service: AttendanceService = Depends(get_attendance_service)
):
    return await service.list_sessions(current_user.organization_id, course_id)


@router.post(
    "/courses/{course_id}/sessions",
    response_model=ClassSessionResponse,
    status_code=status.HTTP_201_CREATED
)
async def create_session(
    course_id: int,
    data: ClassSessionCreateRequest,
    current_user: User = Depends(require_staff),
    service: AttendanceService = Depends(get_attendance_service)
):
    """Record a class meeting and who attended"""
    return await service.create_session(current_user.organization_id, course_id, data)


@router.get("/courses/{course_id}/attendance/summary", response_model=AttendanceSummaryResponse)
async def attendance_summary(
    course_id: int,
    student_id: Optional[int] = None,
    current_user: User = Depends(get_current_active_user),
    service: AttendanceService = Depends(get_attendance_service)
):
    student_id = resolve_student_id(current_user, student_id)
    return await service.student_summary(current_user.organization_id, course_id, student_id)


@router.get("/sessions/{session_id}", response_model=ClassSessionResponse)
async def get_session(
    session_id: int,
    current_user: User = Depends(require_staff),
    service: AttendanceService = Depends(get_attendance_service)
):
    return await service.get_session(current_user.organization_id, session_id)


@router.patch("/sessions/{session_id}", response_model=ClassSessionResponse)
async def update_session(
    session_id: int,
    data: ClassSessionUpdateRequest,
    current_user: User = Depends(require_staff),
    service: AttendanceService = Depends(get_attendance_service)
):
    return await service.update_session(current_user.organization_id, session_id, data)


@router.delete("/sessions/{session_id}", status_code=status.HTTP_204_NO_CONTENT)
async def delete_session(
    session_id: int,
    current_user: User = Depends(require_staff),
    service: AttendanceService = Depends(get_attendance_service)
):
    await service.delete_session(current_user.organization_id, session_id)
