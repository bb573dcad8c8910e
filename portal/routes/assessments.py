from typing import List, Optional

from fastapi import APIRouter, Depends, Response, status
from sqlalchemy.ext.asyncio import AsyncSession

from portal.core.dependencies import get_current_active_user, get_db
from portal.core.permissions import require_staff, require_student
from portal.models import User
from portal.routes.lms import resolve_student_id
from portal.schemas.lms import (
    AssignmentCreateRequest,
    AssignmentResponse,
    AssignmentUpdateRequest,
    AttemptResultResponse,
    AttemptStartResponse,
    CourseGradeResponse,
    GradebookResponse,
    GradeSubmissionRequest,
    QuestionCreateRequest,
    QuestionResponse,
    QuestionUpdateRequest,
    QuizCreateRequest,
    QuizResponse,
    QuizSubmitRequest,
    QuizUpdateRequest,
    ReorderRequest,
    RubricCreateRequest,
    RubricGradeRequest,
    RubricResponse,
    RubricUpdateRequest,
    SubmissionCreateRequest,
    SubmissionResponse
)
from portal.services import AssignmentService, GradingService, QuizService, RubricService

router = APIRouter(tags=["Assessments"])


# Service dependencies
def get_rubric_service(db: AsyncSession = Depends(get_db)) -> RubricService:
    return RubricService(db=db)


def get_assignment_service(db: AsyncSession = Depends(get_db)) -> AssignmentService:
    return AssignmentService(db=db)


def get_quiz_service(db: AsyncSession = Depends(get_db)) -> QuizService:
    return QuizService(db=db)


def get_grading_service(db: AsyncSession = Depends(get_db)) -> GradingService:
    return GradingService(db=db)


# Rubrics

@router.get("/rubrics", response_model=List[RubricResponse])
async def list_rubrics(
    current_user: User = Depends(require_staff),
    service: RubricService = Depends(get_rubric_service)
):
    return await service.list_rubrics(current_user.organization_id)


@router.post("/rubrics", response_model=RubricResponse, status_code=status.HTTP_201_CREATED)
async def create_rubric(
    data: RubricCreateRequest,
    current_user: User = Depends(require_staff),
    service: RubricService = Depends(get_rubric_service)
):
    return await service.create_rubric(current_user.organization_id, data, current_user)


@router.get("/rubrics/{rubric_id}", response_model=RubricResponse)
async def get_rubric(
    rubric_id: int,
    current_user: User = Depends(get_current_active_user),
    service: RubricService = Depends(get_rubric_service)
):
    return await service.get_rubric(current_user.organization_id, rubric_id)


@router.patch("/rubrics/{rubric_id}", response_model=RubricResponse)
async def update_rubric(
    rubric_id: int,
    data: RubricUpdateRequest,
    current_user: User = Depends(require_staff),
    service: RubricService = Depends(get_rubric_service)
):
    """Update a rubric; a criteria list replaces the existing criteria"""
    return await service.update_rubric(current_user.organization_id, rubric_id, data)


@router.delete("/rubrics/{rubric_id}", status_code=status.HTTP_204_NO_CONTENT)
async def delete_rubric(
    rubric_id: int,
    current_user: User = Depends(require_staff),
    service: RubricService = Depends(get_rubric_service)
):
    await service.delete_rubric(current_user.organization_id, rubric_id)


# Assignments

@router.get("/assignments", response_model=List[AssignmentResponse])
async def list_assignments(
    course_id: Optional[int] = None,
    current_user: User = Depends(get_current_active_user),
    service: AssignmentService = Depends(get_assignment_service)
):
    return await service.list_assignments(current_user.organization_id, course_id)


@router.post("/assignments", response_model=AssignmentResponse, status_code=status.HTTP_201_CREATED)
async def create_assignment(
    data: AssignmentCreateRequest,
    current_user: User = Depends(require_staff),
    service: AssignmentService = Depends(get_assignment_service)
):
    return await service.create_assignment(current_user.organization_id, data, current_user)


@router.get("/assignments/{assignment_id}", response_model=AssignmentResponse)
async def get_assignment(
    assignment_id: int,
    current_user: User = Depends(get_current_active_user),
    service: AssignmentService = Depends(get_assignment_service)
):
    return await service.get_assignment(current_user.organization_id, assignment_id)


@router.patch("/assignments/{assignment_id}", response_model=AssignmentResponse)
async def update_assignment(
    assignment_id: int,
    data: AssignmentUpdateRequest,
    current_user: User = Depends(require_staff),
    service: AssignmentService = Depends(get_assignment_service)
):
    return await service.update_assignment(current_user.organization_id, assignment_id, data)


@router.delete("/assignments/{assignment_id}", status_code=status.HTTP_204_NO_CONTENT)
async def delete_assignment(
    assignment_id: int,
    current_user: User = Depends(require_staff),
    service: AssignmentService = Depends(get_assignment_service)
):
    await service.delete_assignment(current_user.organization_id, assignment_id)


@router.get("/assignments/{assignment_id}/submissions", response_model=List[SubmissionResponse])
async def list_submissions(
    assignment_id: int,
    current_user: User = Depends(require_staff),
    service: AssignmentService = Depends(get_assignment_service)
):
    return await service.list_submissions(current_user.organization_id, assignment_id)


@router.post("/assignments/{assignment_id}/submissions", response_model=SubmissionResponse)
async def submit_assignment(
    assignment_id: int,
    data: SubmissionCreateRequest,
    current_user: User = Depends(require_student),
    service: AssignmentService = Depends(get_assignment_service)
):
    """Submit or resubmit work; resubmission is closed once graded"""
    return await service.submit(current_user.organization_id, assignment_id, data, current_user)


@router.get("/assignments/{assignment_id}/submissions/me", response_model=SubmissionResponse)
async def my_submission(
    assignment_id: int,
    current_user: User = Depends(require_student),
    service: AssignmentService = Depends(get_assignment_service)
):
    return await service.my_submission(current_user.organization_id, assignment_id, current_user)


@router.get("/assignments/{assignment_id}/submissions/{submission_id}", response_model=SubmissionResponse)
async def get_submission(
    assignment_id: int,
    submission_id: int,
    current_user: User = Depends(require_staff),
    service: AssignmentService = Depends(get_assignment_service)
):
    return await service.get_submission(current_user.organization_id, assignment_id, submission_id)


@router.post("/assignments/{assignment_id}/submissions/{submission_id}/grade", response_model=SubmissionResponse)
async def grade_submission(
    assignment_id: int,
    submission_id: int,
    data: GradeSubmissionRequest,
    current_user: User = Depends(require_staff),
    service: AssignmentService = Depends(get_assignment_service)
):
    return await service.grade(
        current_user.organization_id, assignment_id, submission_id, data, current_user
    )


@router.post(
    "/assignments/{assignment_id}/submissions/{submission_id}/rubric-grade",
    response_model=SubmissionResponse
)
async def grade_submission_with_rubric(
    assignment_id: int,
    submission_id: int,
    data: RubricGradeRequest,
    current_user: User = Depends(require_staff),
    service: AssignmentService = Depends(get_assignment_service)
):
    return await service.grade_with_rubric(
        current_user.organization_id, assignment_id, submission_id, data, current_user
    )


# Quizzes

@router.get("/quizzes", response_model=List[QuizResponse])
async def list_quizzes(
    course_id: Optional[int] = None,
    current_user: User = Depends(require_staff),
    service: QuizService = Depends(get_quiz_service)
):
    return await service.list_quizzes(current_user.organization_id, course_id)


@router.post("/quizzes", response_model=QuizResponse, status_code=status.HTTP_201_CREATED)
async def create_quiz(
    data: QuizCreateRequest,
    current_user: User = Depends(require_staff),
    service: QuizService = Depends(get_quiz_service)
):
    return await service.create_quiz(current_user.organization_id, data, current_user)


@router.get("/quizzes/{quiz_id}", response_model=QuizResponse)
async def get_quiz(
    quiz_id: int,
    current_user: User = Depends(require_staff),
    service: QuizService = Depends(get_quiz_service)
):
    return await service.get_quiz(current_user.organization_id, quiz_id)


@router.patch("/quizzes/{quiz_id}", response_model=QuizResponse)
async def update_quiz(
    quiz_id: int,
    data: QuizUpdateRequest,
    current_user: User = Depends(require_staff),
    service: QuizService = Depends(get_quiz_service)
):
    return await service.update_quiz(current_user.organization_id, quiz_id, data)


@router.delete("/quizzes/{quiz_id}", status_code=status.HTTP_204_NO_CONTENT)
async def delete_quiz(
    quiz_id: int,
    current_user: User = Depends(require_staff),
    service: QuizService = Depends(get_quiz_service)
):
    await service.delete_quiz(current_user.organization_id, quiz_id)


@router.post("/quizzes/{quiz_id}/questions", response_model=QuestionResponse, status_code=status.HTTP_201_CREATED)
async def add_question(
    quiz_id: int,
    data: QuestionCreateRequest,
    current_user: User = Depends(require_staff),
    service: QuizService = Depends(get_quiz_service)
):
    return await service.add_question(current_user.organization_id, quiz_id, data)


@router.put("/quizzes/{quiz_id}/questions/order", response_model=QuizResponse)
async def reorder_questions(
    quiz_id: int,
    data: ReorderRequest,
    current_user: User = Depends(require_staff),
    service: QuizService = Depends(get_quiz_service)
):
    return await service.reorder_questions(current_user.organization_id, quiz_id, data.ids)


@router.patch("/quizzes/{quiz_id}/questions/{question_id}", response_model=QuestionResponse)
async def update_question(
    quiz_id: int,
    question_id: int,
    data: QuestionUpdateRequest,
    current_user: User = Depends(require_staff),
    service: QuizService = Depends(get_quiz_service)
):
    return await service.update_question(current_user.organization_id, quiz_id, question_id, data)


@router.delete("/quizzes/{quiz_id}/questions/{question_id}", status_code=status.HTTP_204_NO_CONTENT)
async def delete_question(
    quiz_id: int,
    question_id: int,
    current_user: User = Depends(require_staff),
    service: QuizService = Depends(get_quiz_service)
):
    await service.delete_question(current_user.organization_id, quiz_id, question_id)


@router.get("/quizzes/{quiz_id}/attempts", response_model=List[AttemptResultResponse])
async def list_attempts(
    quiz_id: int,
    current_user: User = Depends(require_staff),
    service: QuizService = Depends(get_quiz_service)
):
    return await service.list_attempts(current_user.organization_id, quiz_id)


@router.post("/quizzes/{quiz_id}/attempts", response_model=AttemptStartResponse)
async def start_attempt(
    quiz_id: int,
    current_user: User = Depends(require_student),
    service: QuizService = Depends(get_quiz_service)
):
    """Start a new attempt or resume the unfinished one; answers are hidden"""
    return await service.start_attempt(current_user.organization_id, quiz_id, current_user)


@router.get("/attempts/{attempt_id}", response_model=AttemptResultResponse)
async def get_attempt(
    attempt_id: int,
    current_user: User = Depends(get_current_active_user),
    service: QuizService = Depends(get_quiz_service)
):
    return await service.view_attempt(current_user.organization_id, attempt_id, current_user)


@router.post("/attempts/{attempt_id}/submit", response_model=AttemptResultResponse)
async def submit_attempt(
    attempt_id: int,
    data: QuizSubmitRequest,
    current_user: User = Depends(require_student),
    service: QuizService = Depends(get_quiz_service)
):
    return await service.submit_attempt(current_user.organization_id, attempt_id, data, current_user)


# Grades

@router.get("/courses/{course_id}/grades", response_model=CourseGradeResponse)
async def course_grade(
    course_id: int,
    student_id: Optional[int] = None,
    current_user: User = Depends(get_current_active_user),
    service: GradingService = Depends(get_grading_service)
):
    """A student's overall grade; staff and parents pass student_id"""
    student_id = resolve_student_id(current_user, student_id)
    return await service.student_grade(current_user.organization_id, course_id, student_id)


@router.get("/courses/{course_id}/gradebook", response_model=GradebookResponse)
async def gradebook(
    course_id: int,
    current_user: User = Depends(require_staff),
    service: GradingService = Depends(get_grading_service)
):
    return await service.gradebook(current_user.organization_id, course_id)


@router.get("/courses/{course_id}/gradebook.csv")
async def export_gradebook(
    course_id: int,
    current_user: User = Depends(require_staff),
    service: GradingService = Depends(get_grading_service)
):
    export = await service.export_csv(current_user.organization_id, course_id)
    return Response(
        content=export["content"],
        media_type="text/csv",
        headers={"Content-Disposition": f'attachment; filename="{export["filename"]}"'}
    )
