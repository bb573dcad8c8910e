from typing import Any, Dict, List, Optional, Set

from sqlalchemy import func, select

from portal.core.errors import BadRequestError, ConflictError, NotFoundError, PermissionDenied
from portal.core.logging import logger
from portal.models import (
    CourseEnrollment,
    Lesson,
    LessonProgress,
    LMSCourse,
    Module,
    StudentProfile,
    User
)
from portal.schemas.enums import EnrollmentStatus, ProgressStatus
from portal.schemas.lms.requests import (
    CourseCreateRequest,
    CourseUpdateRequest,
    LessonCreateRequest,
    LessonProgressUpdate,
    LessonUpdateRequest,
    ModuleCreateRequest,
    ModuleUpdateRequest
)
from portal.services.activity_service import ActivityService
from portal.services.base_service import BaseService
from portal.utils.dates import utcnow


def student_profile_of(user: User) -> StudentProfile:
    if user.student_profile is None:
        raise PermissionDenied("Only students can perform this action")
    return user.student_profile


def percent(done: int, total: int) -> int:
    return round(done / total * 100) if total else 0


def calculate_progress(course: LMSCourse, completed_lesson_ids: Set[int]) -> Dict[str, Any]:
    """
    Completion of a course for one student.

    Only published lessons inside published modules count.
    """
    modules = []
    completed = total = 0
    for module in course.modules:
        if not module.is_published:
            continue
        lessons = [lesson for lesson in module.lessons if lesson.is_published]
        done = sum(1 for lesson in lessons if lesson.id in completed_lesson_ids)
        completed += done
        total += len(lessons)
        modules.append({"module_id": module.id, "title": module.title, "percent": percent(done, len(lessons))})
    return {
        "course_id": course.id,
        "percent": percent(completed, total),
        "completed_lessons": completed,
        "total_lessons": total,
        "modules": modules,
    }


def _dump(data: Any, **kwargs) -> Dict[str, Any]:
    fields = data.model_dump(**kwargs)
    if fields.get("content_type") is not None and hasattr(fields["content_type"], "value"):
        fields["content_type"] = fields["content_type"].value
    return fields


class CourseService(BaseService):
    """Courses with their ordered modules, lessons, enrollments and progress."""

    async def _code_taken(self, organization_id: int, code: str, exclude_id: Optional[int] = None) -> bool:
        stmt = select(LMSCourse.id).where(LMSCourse.organization_id == organization_id, LMSCourse.code == code)
        if exclude_id is not None:
            stmt = stmt.where(LMSCourse.id != exclude_id)
        return (await self.db.execute(stmt)).first() is not None

    async def _check_instructor(self, organization_id: int, instructor_id: Optional[int]) -> None:
        if instructor_id is None:
            return
        result = await self.db.execute(
            select(User.id).where(User.id == instructor_id, User.organization_id == organization_id)
        )
        if result.first() is None:
            raise BadRequestError("Instructor not found")

    async def list_courses(self, organization_id: int, active_only: bool = False) -> List[LMSCourse]:
        stmt = select(LMSCourse).where(LMSCourse.organization_id == organization_id)
        if active_only:
            stmt = stmt.where(LMSCourse.is_active.is_(True))
        return await self._scalars(stmt.order_by(LMSCourse.name, LMSCourse.id))

    async def get_course(self, organization_id: int, course_id: int) -> LMSCourse:
        return await self._fetch(LMSCourse, course_id, organization_id, label="Course")

    async def create_course(self, organization_id: int, data: CourseCreateRequest, actor: User) -> LMSCourse:
        """
        Raises:
            ConflictError: If the course code is already used in the organization
        """
        if await self._code_taken(organization_id, data.code):
            raise ConflictError(f"Course code '{data.code}' already exists")
        await self._check_instructor(organization_id, data.instructor_id)

        fields = data.model_dump()
        if fields["instructor_id"] is None:
            fields["instructor_id"] = actor.id
        async with self.transaction():
            course = LMSCourse(organization_id=organization_id, **fields)
            self.db.add(course)
            await self.db.flush()
            await ActivityService(self.db).record(
                organization_id, "course_created", "course", course.id,
                user_id=actor.id, details={"code": course.code}
            )
        logger.info(f"Course {course.code} created", extra={'organization_id': organization_id})
        return await self.get_course(organization_id, course.id)

    async def update_course(self, organization_id: int, course_id: int, data: CourseUpdateRequest) -> LMSCourse:
        course = await self.get_course(organization_id, course_id)
        fields = data.model_dump(exclude_unset=True)
        if fields.get("code") and await self._code_taken(organization_id, fields["code"], exclude_id=course.id):
            raise ConflictError(f"Course code '{fields['code']}' already exists")
        if "instructor_id" in fields:
            await self._check_instructor(organization_id, fields["instructor_id"])

        async with self.transaction():
            self._apply(course, fields)
        return await self.get_course(organization_id, course_id)

    async def delete_course(self, organization_id: int, course_id: int) -> None:
        course = await self.get_course(organization_id, course_id)
        async with self.transaction():
            await self.db.delete(course)

    # Modules

    async def get_module(self, organization_id: int, module_id: int) -> Module:
        result = await self.db.execute(
            select(Module)
            .join(LMSCourse, Module.course_id == LMSCourse.id)
            .where(Module.id == module_id, LMSCourse.organization_id == organization_id)
            .execution_options(populate_existing=True)
        )
        module = result.scalar_one_or_none()
        if module is None:
            raise NotFoundError("Module not found")
        return module

    async def create_module(self, organization_id: int, course_id: int, data: ModuleCreateRequest) -> Module:
        await self.get_course(organization_id, course_id)
        last = (await self.db.execute(
            select(func.max(Module.order)).where(Module.course_id == course_id)
        )).scalar_one()
        async with self.transaction():
            module = Module(
                course_id=course_id,
                order=0 if last is None else last + 1,
                **data.model_dump()
            )
            self.db.add(module)
        return await self.get_module(organization_id, module.id)

    async def update_module(self, organization_id: int, module_id: int, data: ModuleUpdateRequest) -> Module:
        module = await self.get_module(organization_id, module_id)
        async with self.transaction():
            self._apply(module, data.model_dump(exclude_unset=True))
        return await self.get_module(organization_id, module_id)

    async def delete_module(self, organization_id: int, module_id: int) -> None:
        module = await self.get_module(organization_id, module_id)
        async with self.transaction():
            await self.db.delete(module)

    async def reorder_modules(self, organization_id: int, course_id: int, ids: List[int]) -> LMSCourse:
        """
        Raises:
            BadRequestError: If an id is not a module of the course
        """
        course = await self.get_course(organization_id, course_id)
        modules = {module.id: module for module in course.modules}
        unknown = [module_id for module_id in ids if module_id not in modules]
        if unknown:
            raise BadRequestError(f"Module(s) not in course: {', '.join(str(i) for i in unknown)}")

        async with self.transaction():
            for position, module_id in enumerate(ids):
                modules[module_id].order = position
        return await self.get_course(organization_id, course_id)

    # Lessons

    async def get_lesson(self, organization_id: int, lesson_id: int) -> Lesson:
        result = await self.db.execute(
            select(Lesson)
            .join(Module, Lesson.module_id == Module.id)
            .join(LMSCourse, Module.course_id == LMSCourse.id)
            .where(Lesson.id == lesson_id, LMSCourse.organization_id == organization_id)
            .execution_options(populate_existing=True)
        )
        lesson = result.scalar_one_or_none()
        if lesson is None:
            raise NotFoundError("Lesson not found")
        return lesson

    async def create_lesson(self, organization_id: int, module_id: int, data: LessonCreateRequest) -> Lesson:
        await self.get_module(organization_id, module_id)
        last = (await self.db.execute(
            select(func.max(Lesson.order)).where(Lesson.module_id == module_id)
        )).scalar_one()
        async with self.transaction():
            lesson = Lesson(module_id=module_id, order=0 if last is None else last + 1, **_dump(data))
            self.db.add(lesson)
        return await self.get_lesson(organization_id, lesson.id)

    async def update_lesson(self, organization_id: int, lesson_id: int, data: LessonUpdateRequest) -> Lesson:
        lesson = await self.get_lesson(organization_id, lesson_id)
        async with self.transaction():
            self._apply(lesson, _dump(data, exclude_unset=True))
        return await self.get_lesson(organization_id, lesson_id)

    async def delete_lesson(self, organization_id: int, lesson_id: int) -> None:
        lesson = await self.get_lesson(organization_id, lesson_id)
        async with self.transaction():
            await self.db.delete(lesson)

    # Enrollments

    async def list_enrollments(self, organization_id: int, course_id: int) -> List[CourseEnrollment]:
        await self.get_course(organization_id, course_id)
        return await self._scalars(
            select(CourseEnrollment)
            .where(CourseEnrollment.course_id == course_id)
            .order_by(CourseEnrollment.enrolled_at, CourseEnrollment.id)
        )

    async def enroll(self, organization_id: int, course_id: int, student_ids: List[int]) -> List[CourseEnrollment]:
        """
        Enroll student profiles; students already enrolled are left untouched.

        Raises:
            BadRequestError: If a student profile is not part of the organization
        """
        course = await self.get_course(organization_id, course_id)
        wanted = set(student_ids)
        result = await self.db.execute(
            select(StudentProfile.id).where(
                StudentProfile.organization_id == organization_id,
                StudentProfile.id.in_(wanted)
            )
        )
        missing = wanted - set(result.scalars().all())
        if missing:
            raise BadRequestError(f"Student(s) not found: {', '.join(str(i) for i in sorted(missing))}")

        enrolled = {enrollment.student_id for enrollment in course.enrollments}
        async with self.transaction():
            for student_id in dict.fromkeys(student_ids):
                if student_id not in enrolled:
                    self.db.add(CourseEnrollment(
                        course_id=course_id,
                        student_id=student_id,
                        status=EnrollmentStatus.ACTIVE.value
                    ))
        return await self.list_enrollments(organization_id, course_id)

    async def _get_enrollment(self, organization_id: int, course_id: int, enrollment_id: int) -> CourseEnrollment:
        await self.get_course(organization_id, course_id)
        result = await self.db.execute(
            select(CourseEnrollment)
            .where(CourseEnrollment.id == enrollment_id, CourseEnrollment.course_id == course_id)
            .execution_options(populate_existing=True)
        )
        enrollment = result.scalar_one_or_none()
        if enrollment is None:
            raise NotFoundError("Enrollment not found")
        return enrollment

    async def set_enrollment_status(
        self,
        organization_id: int,
        course_id: int,
        enrollment_id: int,
        status: EnrollmentStatus
    ) -> CourseEnrollment:
        enrollment = await self._get_enrollment(organization_id, course_id, enrollment_id)
        async with self.transaction():
            enrollment.status = status.value
        return await self._get_enrollment(organization_id, course_id, enrollment_id)

    async def remove_enrollment(self, organization_id: int, course_id: int, enrollment_id: int) -> None:
        enrollment = await self._get_enrollment(organization_id, course_id, enrollment_id)
        async with self.transaction():
            await self.db.delete(enrollment)

    async def is_enrolled(self, course_id: int, student_id: int) -> bool:
        result = await self.db.execute(
            select(CourseEnrollment.id).where(
                CourseEnrollment.course_id == course_id,
                CourseEnrollment.student_id == student_id
            )
        )
        return result.first() is not None

    # Progress

    async def update_progress(
        self,
        organization_id: int,
        lesson_id: int,
        data: LessonProgressUpdate,
        user: User
    ) -> LessonProgress:
        """
        Record a student's status on a lesson.

        Raises:
            PermissionDenied: If the user is not a student enrolled in the course
        """
        student = student_profile_of(user)
        lesson = await self.get_lesson(organization_id, lesson_id)
        module = await self.get_module(organization_id, lesson.module_id)
        if not await self.is_enrolled(module.course_id, student.id):
            raise PermissionDenied("Not enrolled in this course")

        result = await self.db.execute(
            select(LessonProgress).where(
                LessonProgress.lesson_id == lesson_id,
                LessonProgress.student_id == student.id
            )
        )
        progress = result.scalar_one_or_none()
        async with self.transaction():
            if progress is None:
                progress = LessonProgress(lesson_id=lesson_id, student_id=student.id)
                self.db.add(progress)
            progress.status = data.status.value
            progress.completed_at = utcnow() if data.status == ProgressStatus.COMPLETED else None
        return progress

    async def completed_lesson_ids(self, student_id: int) -> Set[int]:
        result = await self.db.execute(
            select(LessonProgress.lesson_id).where(
                LessonProgress.student_id == student_id,
                LessonProgress.status == ProgressStatus.COMPLETED.value
            )
        )
        return set(result.scalars().all())

    async def course_progress(self, organization_id: int, course_id: int, student_id: int) -> Dict[str, Any]:
        course = await self.get_course(organization_id, course_id)
        progress = calculate_progress(course, await self.completed_lesson_ids(student_id))
        progress["student_id"] = student_id
        return progress
