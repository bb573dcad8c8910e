from typing import List, Optional

from fastapi import APIRouter, Depends, status
from sqlalchemy.ext.asyncio import AsyncSession

from portal.core.dependencies import get_current_active_user, get_db
from portal.core.errors import BadRequestError, PermissionDenied
from portal.core.permissions import require_staff, require_student
from portal.models import User
from portal.schemas.lms import (
    CourseCreateRequest,
    CourseProgressResponse,
    CourseResponse,
    CourseSummary,
    CourseUpdateRequest,
    EnrollmentResponse,
    EnrollmentStatusUpdate,
    EnrollRequest,
    LearningPathCreateRequest,
    LearningPathProgressResponse,
    LearningPathResponse,
    LearningPathUpdateRequest,
    LessonCreateRequest,
    LessonProgressResponse,
    LessonProgressUpdate,
    LessonResponse,
    LessonUpdateRequest,
    ModuleCreateRequest,
    ModuleResponse,
    ModuleUpdateRequest,
    ReorderRequest
)
from portal.services import CourseService, LearningPathService
from portal.services.parent_service import linked_student_ids

router = APIRouter(tags=["Learning"])


# Service dependencies
def get_course_service(db: AsyncSession = Depends(get_db)) -> CourseService:
    return CourseService(db=db)


def get_learning_path_service(db: AsyncSession = Depends(get_db)) -> LearningPathService:
    return LearningPathService(db=db)


def resolve_student_id(user: User, student_id: Optional[int]) -> int:
    """
    Students always get their own id; staff must name the student.

    Parents name one of their linked children.
    """
    if user.has_role("Admin", "Teacher"):
        if student_id is None:
            raise BadRequestError("student_id is required")
        return student_id
    if user.has_role("Parent") and (student_id is not None or user.student_profile is None):
        if student_id is None:
            raise BadRequestError("student_id is required")
        if student_id not in linked_student_ids(user):
            raise PermissionDenied("Student is not linked to this parent")
        return student_id
    if user.student_profile is None:
        raise BadRequestError("No student profile for this account")
    return user.student_profile.id


# Courses

@router.get("/courses", response_model=List[CourseSummary])
async def list_courses(
    active_only: bool = False,
    current_user: User = Depends(get_current_active_user),
    service: CourseService = Depends(get_course_service)
):
    return await service.list_courses(current_user.organization_id, active_only)


@router.post("/courses", response_model=CourseResponse, status_code=status.HTTP_201_CREATED)
async def create_course(
    data: CourseCreateRequest,
    current_user: User = Depends(require_staff),
    service: CourseService = Depends(get_course_service)
):
    return await service.create_course(current_user.organization_id, data, current_user)


@router.get("/courses/{course_id}", response_model=CourseResponse)
async def get_course(
    course_id: int,
    current_user: User = Depends(get_current_active_user),
    service: CourseService = Depends(get_course_service)
):
    """Course with its modules and lessons in order"""
    return await service.get_course(current_user.organization_id, course_id)


@router.patch("/courses/{course_id}", response_model=CourseResponse)
async def update_course(
    course_id: int,
    data: CourseUpdateRequest,
    current_user: User = Depends(require_staff),
    service: CourseService = Depends(get_course_service)
):
    return await service.update_course(current_user.organization_id, course_id, data)


@router.delete("/courses/{course_id}", status_code=status.HTTP_204_NO_CONTENT)
async def delete_course(
    course_id: int,
    current_user: User = Depends(require_staff),
    service: CourseService = Depends(get_course_service)
):
    await service.delete_course(current_user.organization_id, course_id)


# Modules

@router.post("/courses/{course_id}/modules", response_model=ModuleResponse, status_code=status.HTTP_201_CREATED)
async def create_module(
    course_id: int,
    data: ModuleCreateRequest,
    current_user: User = Depends(require_staff),
    service: CourseService = Depends(get_course_service)
):
    return await service.create_module(current_user.organization_id, course_id, data)


@router.put("/courses/{course_id}/modules/order", response_model=CourseResponse)
async def reorder_modules(
    course_id: int,
    data: ReorderRequest,
    current_user: User = Depends(require_staff),
    service: CourseService = Depends(get_course_service)
):
    return await service.reorder_modules(current_user.organization_id, course_id, data.ids)


@router.patch("/modules/{module_id}", response_model=ModuleResponse)
async def update_module(
    module_id: int,
    data: ModuleUpdateRequest,
    current_user: User = Depends(require_staff),
    service: CourseService = Depends(get_course_service)
):
    return await service.update_module(current_user.organization_id, module_id, data)


@router.delete("/modules/{module_id}", status_code=status.HTTP_204_NO_CONTENT)
async def delete_module(
    module_id: int,
    current_user: User = Depends(require_staff),
    service: CourseService = Depends(get_course_service)
):
    await service.delete_module(current_user.organization_id, module_id)


# Lessons

@router.post("/modules/{module_id}/lessons", response_model=LessonResponse, status_code=status.HTTP_201_CREATED)
async def create_lesson(
    module_id: int,
    data: LessonCreateRequest,
    current_user: User = Depends(require_staff),
    service: CourseService = Depends(get_course_service)
):
    return await service.create_lesson(current_user.organization_id, module_id, data)


@router.get("/lessons/{lesson_id}", response_model=LessonResponse)
async def get_lesson(
    lesson_id: int,
    current_user: User = Depends(get_current_active_user),
    service: CourseService = Depends(get_course_service)
):
    return await service.get_lesson(current_user.organization_id, lesson_id)


@router.patch("/lessons/{lesson_id}", response_model=LessonResponse)
async def update_lesson(
    lesson_id: int,
    data: LessonUpdateRequest,
    current_user: User = Depends(require_staff),
    service: CourseService = Depends(get_course_service)
):
    return await service.update_lesson(current_user.organization_id, lesson_id, data)


@router.delete("/lessons/{lesson_id}", status_code=status.HTTP_204_NO_CONTENT)
async def delete_lesson(
    lesson_id: int,
    current_user: User = Depends(require_staff),
    service: CourseService = Depends(get_course_service)
):
    await service.delete_lesson(current_user.organization_id, lesson_id)


@router.put("/lessons/{lesson_id}/progress", response_model=LessonProgressResponse)
async def update_lesson_progress(
    lesson_id: int,
    data: LessonProgressUpdate,
    current_user: User = Depends(require_student),
    service: CourseService = Depends(get_course_service)
):
    return await service.update_progress(current_user.organization_id, lesson_id, data, current_user)


# Enrollments

@router.get("/courses/{course_id}/enrollments", response_model=List[EnrollmentResponse])
async def list_enrollments(
    course_id: int,
    current_user: User = Depends(require_staff),
    service: CourseService = Depends(get_course_service)
):
    return await service.list_enrollments(current_user.organization_id, course_id)


@router.post(
    "/courses/{course_id}/enrollments",
    response_model=List[EnrollmentResponse],
    status_code=status.HTTP_201_CREATED
)
async def enroll_students(
    course_id: int,
    data: EnrollRequest,
    current_user: User = Depends(require_staff),
    service: CourseService = Depends(get_course_service)
):
    """Enroll student profiles; students already enrolled are left as they are"""
    return await service.enroll(current_user.organization_id, course_id, data.student_ids)


@router.patch("/courses/{course_id}/enrollments/{enrollment_id}", response_model=EnrollmentResponse)
async def update_enrollment(
    course_id: int,
    enrollment_id: int,
    data: EnrollmentStatusUpdate,
    current_user: User = Depends(require_staff),
    service: CourseService = Depends(get_course_service)
):
    return await service.set_enrollment_status(
        current_user.organization_id, course_id, enrollment_id, data.status
    )


@router.delete("/courses/{course_id}/enrollments/{enrollment_id}", status_code=status.HTTP_204_NO_CONTENT)
async def remove_enrollment(
    course_id: int,
    enrollment_id: int,
    current_user: User = Depends(require_staff),
    service: CourseService = Depends(get_course_service)
):
    await service.remove_enrollment(current_user.organization_id, course_id, enrollment_id)


@router.get("/courses/{course_id}/progress", response_model=CourseProgressResponse)
async def course_progress(
    course_id: int,
    student_id: Optional[int] = None,
    current_user: User = Depends(get_current_active_user),
    service: CourseService = Depends(get_course_service)
):
    student_id = resolve_student_id(current_user, student_id)
    return await service.course_progress(current_user.organization_id, course_id, student_id)


# Learning paths

@router.get("/learning-paths", response_model=List[LearningPathResponse])
async def list_learning_paths(
    current_user: User = Depends(get_current_active_user),
    service: LearningPathService = Depends(get_learning_path_service)
):
    published_only = not current_user.has_role("Admin", "Teacher")
    return await service.list_paths(current_user.organization_id, published_only)


@router.post("/learning-paths", response_model=LearningPathResponse, status_code=status.HTTP_201_CREATED)
async def create_learning_path(
    data: LearningPathCreateRequest,
    current_user: User = Depends(require_staff),
    service: LearningPathService = Depends(get_learning_path_service)
):
    return await service.create_path(current_user.organization_id, data)


@router.get("/learning-paths/{path_id}", response_model=LearningPathResponse)
async def get_learning_path(
    path_id: int,
    current_user: User = Depends(get_current_active_user),
    service: LearningPathService = Depends(get_learning_path_service)
):
    return await service.get_path(current_user.organization_id, path_id)


@router.patch("/learning-paths/{path_id}", response_model=LearningPathResponse)
async def update_learning_path(
    path_id: int,
    data: LearningPathUpdateRequest,
    current_user: User = Depends(require_staff),
    service: LearningPathService = Depends(get_learning_path_service)
):
    return await service.update_path(current_user.organization_id, path_id, data)


@router.delete("/learning-paths/{path_id}", status_code=status.HTTP_204_NO_CONTENT)
async def delete_learning_path(
    path_id: int,
    current_user: User = Depends(require_staff),
    service: LearningPathService = Depends(get_learning_path_service)
):
    await service.delete_path(current_user.organization_id, path_id)


@router.get("/learning-paths/{path_id}/progress", response_model=LearningPathProgressResponse)
async def learning_path_progress(
    path_id: int,
    student_id: Optional[int] = None,
    current_user: User = Depends(get_current_active_user),
    service: LearningPathService = Depends(get_learning_path_service)
):
    student_id = resolve_student_id(current_user, student_id)
    return await service.progress(current_user.organization_id, path_id, current_user, student_id)
