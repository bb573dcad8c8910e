from typing import Any, Dict, List, Optional, Set

from sqlalchemy import select

from portal.core.errors import BadRequestError
from portal.models import CourseEnrollment, LearningPath, LearningPathStep, LMSCourse, User
from portal.schemas.enums import EnrollmentStatus
from portal.schemas.lms.requests import (
    LearningPathCreateRequest,
    LearningPathStepInput,
    LearningPathUpdateRequest
)
from portal.services.base_service import BaseService
from portal.services.course_service import CourseService, calculate_progress
from portal.utils.text import unique_slug


def build_steps(steps: List[LearningPathStepInput]) -> List[LearningPathStep]:
    return [
        LearningPathStep(course_id=step.course_id, order=position, is_required=step.is_required)
        for position, step in enumerate(steps)
    ]


class LearningPathService(BaseService):
    async def _slug_taken(self, organization_id: int, slug: str) -> bool:
        result = await self.db.execute(
            select(LearningPath.id).where(
                LearningPath.organization_id == organization_id,
                LearningPath.slug == slug
            )
        )
        return result.first() is not None

    async def _check_courses(self, organization_id: int, steps: List[LearningPathStepInput]) -> None:
        wanted = {step.course_id for step in steps}
        if not wanted:
            return
        result = await self.db.execute(
            select(LMSCourse.id).where(LMSCourse.organization_id == organization_id, LMSCourse.id.in_(wanted))
        )
        if wanted - set(result.scalars().all()):
            raise BadRequestError("Course(s) not found")

    async def list_paths(self, organization_id: int, published_only: bool = False) -> List[LearningPath]:
        stmt = select(LearningPath).where(LearningPath.organization_id == organization_id)
        if published_only:
            stmt = stmt.where(LearningPath.is_published.is_(True))
        return await self._scalars(stmt.order_by(LearningPath.name, LearningPath.id))

    async def get_path(self, organization_id: int, path_id: int) -> LearningPath:
        return await self._fetch(LearningPath, path_id, organization_id, label="Learning path")

    async def create_path(self, organization_id: int, data: LearningPathCreateRequest) -> LearningPath:
        """
        Raises:
            BadRequestError: If a step references a course outside the organization
        """
        await self._check_courses(organization_id, data.steps)

        async def exists(slug: str) -> bool:
            return await self._slug_taken(organization_id, slug)

        slug = await unique_slug(data.name, exists)
        async with self.transaction():
            path = LearningPath(
                organization_id=organization_id,
                slug=slug,
                steps=build_steps(data.steps),
                **data.model_dump(exclude={"steps"})
            )
            self.db.add(path)
        return await self.get_path(organization_id, path.id)

    async def update_path(self, organization_id: int, path_id: int, data: LearningPathUpdateRequest) -> LearningPath:
        path = await self.get_path(organization_id, path_id)
        if data.steps is not None:
            await self._check_courses(organization_id, data.steps)
        async with self.transaction():
            self._apply(path, data.model_dump(exclude_unset=True, exclude={"steps"}))
            if data.steps is not None:
                path.steps = build_steps(data.steps)
        return await self.get_path(organization_id, path_id)

    async def delete_path(self, organization_id: int, path_id: int) -> None:
        path = await self.get_path(organization_id, path_id)
        async with self.transaction():
            await self.db.delete(path)

    async def _completed_courses(self, organization_id: int, course_ids: Set[int], student_id: int) -> Set[int]:
        """A course counts as complete when its enrollment is completed or every lesson is done."""
        if not course_ids:
            return set()
        enrollments = await self._scalars(
            select(CourseEnrollment).where(
                CourseEnrollment.student_id == student_id,
                CourseEnrollment.course_id.in_(course_ids)
            )
        )
        completed = {e.course_id for e in enrollments if e.status == EnrollmentStatus.COMPLETED.value}

        course_service = CourseService(self.db)
        done_lessons = await course_service.completed_lesson_ids(student_id)
        for course_id in course_ids - completed:
            course = await course_service.get_course(organization_id, course_id)
            progress = calculate_progress(course, done_lessons)
            if progress["total_lessons"] and progress["percent"] == 100:
                completed.add(course_id)
        return completed

    async def progress(self, organization_id: int, path_id: int, user: User, student_id: Optional[int] = None) -> Dict[str, Any]:
        path = await self.get_path(organization_id, path_id)
        if student_id is None:
            if user.student_profile is None:
                raise BadRequestError("student_id is required")
            student_id = user.student_profile.id

        course_ids = {step.course_id for step in path.steps}
        completed = await self._completed_courses(organization_id, course_ids, student_id)
        done_steps = [step for step in path.steps if step.course_id in completed]
        total = len(path.steps)
        return {
            "path_id": path.id,
            "student_id": student_id,
            "completed_steps": len(done_steps),
            "total_steps": total,
            "percent": round(len(done_steps) / total * 100) if total else 0,
            "completed_course_ids": sorted(completed),
        }
