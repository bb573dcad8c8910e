from typing import Dict, List, Optional

from sqlalchemy import select

from portal.core.errors import BadRequestError, NotFoundError, PermissionDenied
from portal.core.logging import logger
from portal.models import Assignment, AssignmentSubmission, LMSCourse, Rubric, RubricScore, User
from portal.schemas.enums import SubmissionStatus
from portal.schemas.lms.requests import (
    AssignmentCreateRequest,
    AssignmentUpdateRequest,
    GradeSubmissionRequest,
    RubricGradeRequest,
    SubmissionCreateRequest
)
from portal.services.base_service import BaseService
from portal.services.course_service import CourseService, student_profile_of
from portal.utils.dates import utcnow


def clamp_rubric_scores(rubric: Rubric, scores: List) -> Dict[int, float]:
    """Clamp each score to [0, criterion max]; scores for unknown criteria are dropped."""
    limits = {criterion.id: criterion.max_points for criterion in rubric.criteria}
    clamped = {}
    for entry in scores:
        if entry.criterion_id in limits:
            clamped[entry.criterion_id] = min(max(entry.score, 0.0), limits[entry.criterion_id])
    return clamped


class AssignmentService(BaseService):
    async def _check_links(self, organization_id: int, course_id: Optional[int], rubric_id: Optional[int]) -> None:
        if course_id is not None:
            await self._fetch(LMSCourse, course_id, organization_id, label="Course")
        if rubric_id is not None:
            await self._fetch(Rubric, rubric_id, organization_id, label="Rubric")

    async def list_assignments(self, organization_id: int, course_id: Optional[int] = None) -> List[Assignment]:
        stmt = select(Assignment).where(Assignment.organization_id == organization_id)
        if course_id is not None:
            stmt = stmt.where(Assignment.course_id == course_id)
        return await self._scalars(stmt.order_by(Assignment.due_date, Assignment.id))

    async def get_assignment(self, organization_id: int, assignment_id: int) -> Assignment:
        return await self._fetch(Assignment, assignment_id, organization_id, label="Assignment")

    async def create_assignment(self, organization_id: int, data: AssignmentCreateRequest, actor: User) -> Assignment:
        await self._check_links(organization_id, data.course_id, data.rubric_id)
        async with self.transaction():
            assignment = Assignment(organization_id=organization_id, teacher_id=actor.id, **data.model_dump())
            self.db.add(assignment)
        return await self.get_assignment(organization_id, assignment.id)

    async def update_assignment(
        self,
        organization_id: int,
        assignment_id: int,
        data: AssignmentUpdateRequest
    ) -> Assignment:
        assignment = await self.get_assignment(organization_id, assignment_id)
        fields = data.model_dump(exclude_unset=True)
        await self._check_links(organization_id, None, fields.get("rubric_id"))
        async with self.transaction():
            self._apply(assignment, fields)
        return await self.get_assignment(organization_id, assignment_id)

    async def delete_assignment(self, organization_id: int, assignment_id: int) -> None:
        assignment = await self.get_assignment(organization_id, assignment_id)
        async with self.transaction():
            await self.db.delete(assignment)

    async def list_submissions(self, organization_id: int, assignment_id: int) -> List[AssignmentSubmission]:
        await self.get_assignment(organization_id, assignment_id)
        return await self._scalars(
            select(AssignmentSubmission)
            .where(AssignmentSubmission.assignment_id == assignment_id)
            .order_by(AssignmentSubmission.submitted_at, AssignmentSubmission.id)
        )

    async def get_submission(self, organization_id: int, assignment_id: int, submission_id: int) -> AssignmentSubmission:
        """
        Raises:
            NotFoundError: If the submission does not belong to the assignment
        """
        await self.get_assignment(organization_id, assignment_id)
        result = await self.db.execute(
            select(AssignmentSubmission)
            .where(
                AssignmentSubmission.id == submission_id,
                AssignmentSubmission.assignment_id == assignment_id
            )
            .execution_options(populate_existing=True)
        )
        submission = result.scalar_one_or_none()
        if submission is None:
            raise NotFoundError("Submission not found")
        return submission

    async def _find_submission(self, assignment_id: int, student_id: int) -> Optional[AssignmentSubmission]:
        result = await self.db.execute(
            select(AssignmentSubmission)
            .where(
                AssignmentSubmission.assignment_id == assignment_id,
                AssignmentSubmission.student_id == student_id
            )
            .execution_options(populate_existing=True)
        )
        return result.scalar_one_or_none()

    async def my_submission(self, organization_id: int, assignment_id: int, user: User) -> AssignmentSubmission:
        student = student_profile_of(user)
        await self.get_assignment(organization_id, assignment_id)
        submission = await self._find_submission(assignment_id, student.id)
        if submission is None:
            raise NotFoundError("Submission not found")
        return submission

    async def submit(
        self,
        organization_id: int,
        assignment_id: int,
        data: SubmissionCreateRequest,
        user: User
    ) -> AssignmentSubmission:
        """
        Submit or resubmit work for an assignment.

        Raises:
            PermissionDenied: If the student is not enrolled in the assignment's course
            BadRequestError: If the submission was already graded
        """
        student = student_profile_of(user)
        assignment = await self.get_assignment(organization_id, assignment_id)
        if assignment.course_id is not None and not await CourseService(self.db).is_enrolled(
            assignment.course_id, student.id
        ):
            raise PermissionDenied("Not enrolled in this course")

        submission = await self._find_submission(assignment_id, student.id)
        if submission is not None and submission.status == SubmissionStatus.GRADED.value:
            raise BadRequestError("Submission has already been graded")

        now = utcnow()
        async with self.transaction():
            if submission is None:
                submission = AssignmentSubmission(assignment_id=assignment_id, student_id=student.id)
                self.db.add(submission)
            submission.content = data.content
            submission.file_url = data.file_url
            submission.status = SubmissionStatus.SUBMITTED.value
            submission.submitted_at = now
            submission.is_late = assignment.due_date is not None and now > assignment.due_date

        return await self.get_submission(organization_id, assignment_id, submission.id)

    async def grade(
        self,
        organization_id: int,
        assignment_id: int,
        submission_id: int,
        data: GradeSubmissionRequest,
        actor: User
    ) -> AssignmentSubmission:
        assignment = await self.get_assignment(organization_id, assignment_id)
        if data.grade > assignment.max_points:
            raise BadRequestError(f"Grade cannot exceed {assignment.max_points:g} points")
        submission = await self.get_submission(organization_id, assignment_id, submission_id)

        async with self.transaction():
            submission.grade = data.grade
            submission.feedback = data.feedback
            submission.status = SubmissionStatus.GRADED.value
            submission.graded_at = utcnow()
            submission.graded_by_id = actor.id

        logger.info(f"Submission {submission_id} graded by {actor.id}")
        return await self.get_submission(organization_id, assignment_id, submission_id)

    async def grade_with_rubric(
        self,
        organization_id: int,
        assignment_id: int,
        submission_id: int,
        data: RubricGradeRequest,
        actor: User
    ) -> AssignmentSubmission:
        """
        Score a submission criterion by criterion; its grade is the sum of the scores.

        Raises:
            BadRequestError: If the assignment has no rubric
        """
        assignment = await self.get_assignment(organization_id, assignment_id)
        if assignment.rubric is None:
            raise BadRequestError("Assignment has no rubric")
        submission = await self.get_submission(organization_id, assignment_id, submission_id)

        clamped = clamp_rubric_scores(assignment.rubric, data.scores)
        comments = {entry.criterion_id: entry.comment for entry in data.scores}
        existing = {score.criterion_id: score for score in submission.rubric_scores}

        async with self.transaction():
            for criterion_id, score in clamped.items():
                row = existing.get(criterion_id)
                if row is None:
                    row = RubricScore(criterion_id=criterion_id)
                    submission.rubric_scores.append(row)
                    existing[criterion_id] = row
                row.score = score
                row.comment = comments.get(criterion_id)
            submission.grade = round(sum(row.score for row in existing.values()), 2)
            if data.feedback is not None:
                submission.feedback = data.feedback
            submission.status = SubmissionStatus.GRADED.value
            submission.graded_at = utcnow()
            submission.graded_by_id = actor.id

        return await self.get_submission(organization_id, assignment_id, submission_id)
