from datetime import datetime
from typing import Any, Dict, List, Optional

from pydantic import BaseModel

from portal.schemas.common import ORMModel
from portal.schemas.user.responses import StudentSummary


class LessonResponse(ORMModel):
    id: int
    module_id: int
    title: str
    content: Optional[str] = None
    content_type: str
    resource_url: Optional[str] = None
    duration_minutes: Optional[int] = None
    order: int
    is_published: bool


class ModuleResponse(ORMModel):
    id: int
    course_id: int
    title: str
    description: Optional[str] = None
    order: int
    is_published: bool
    lessons: List[LessonResponse] = []


class CourseSummary(ORMModel):
    id: int
    name: str
    code: str
    description: Optional[str] = None
    instructor_id: Optional[int] = None
    is_active: bool
    module_count: int = 0
    enrollment_count: int = 0
    created_at: datetime


class CourseResponse(ORMModel):
    id: int
    name: str
    code: str
    description: Optional[str] = None
    instructor_id: Optional[int] = None
    is_active: bool
    grading_scale: Optional[List[Dict[str, Any]]] = None
    grading_weights: Optional[Dict[str, float]] = None
    modules: List[ModuleResponse] = []
    created_at: datetime
    updated_at: datetime


class EnrollmentResponse(ORMModel):
    id: int
    course_id: int
    student_id: int
    status: str
    enrolled_at: datetime
    student: Optional[StudentSummary] = None


class LessonProgressResponse(ORMModel):
    lesson_id: int
    student_id: int
    status: str
    completed_at: Optional[datetime] = None


class ModuleProgress(BaseModel):
    module_id: int
    title: str
    percent: int


class CourseProgressResponse(BaseModel):
    course_id: int
    student_id: int
    percent: int
    completed_lessons: int
    total_lessons: int
    modules: List[ModuleProgress]


class RubricCriterionResponse(ORMModel):
    id: int
    title: str
    description: Optional[str] = None
    max_points: float
    order: int


class RubricResponse(ORMModel):
    id: int
    title: str
    description: Optional[str] = None
    criteria: List[RubricCriterionResponse] = []
    created_at: datetime


class AssignmentResponse(ORMModel):
    id: int
    course_id: Optional[int] = None
    lesson_id: Optional[int] = None
    rubric_id: Optional[int] = None
    teacher_id: Optional[int] = None
    title: str
    description: Optional[str] = None
    due_date: Optional[datetime] = None
    max_points: float
    grade_category: Optional[str] = None
    allow_text_entry: bool
    allow_file_upload: bool
    rubric: Optional[RubricResponse] = None
    created_at: datetime


class RubricScoreResponse(ORMModel):
    id: int
    criterion_id: int
    score: float
    comment: Optional[str] = None


class SubmissionResponse(ORMModel):
    id: int
    assignment_id: int
    student_id: int
    student: Optional[StudentSummary] = None
    content: Optional[str] = None
    file_url: Optional[str] = None
    status: str
    is_late: bool
    submitted_at: datetime
    grade: Optional[float] = None
    feedback: Optional[str] = None
    graded_at: Optional[datetime] = None
    rubric_scores: List[RubricScoreResponse] = []


class QuestionResponse(ORMModel):
    id: int
    quiz_id: int
    question_type: str
    text: str
    options: Optional[List[Dict[str, Any]]] = None
    correct_answer: Optional[str] = None
    explanation: Optional[str] = None
    points: float
    order: int


class QuizResponse(ORMModel):
    id: int
    course_id: Optional[int] = None
    title: str
    description: Optional[str] = None
    time_limit_minutes: Optional[int] = None
    passing_score: float
    max_attempts: Optional[int] = None
    grade_category: Optional[str] = None
    is_published: bool
    questions: List[QuestionResponse] = []
    created_at: datetime


class StudentQuestion(BaseModel):
    """Question as shown to a student taking the quiz, without the answer key."""
    id: int
    question_type: str
    text: str
    options: Optional[List[str]] = None
    points: float
    order: int


class AttemptStartResponse(BaseModel):
    attempt_id: int
    quiz_id: int
    started_at: datetime
    resumed: bool
    time_limit_minutes: Optional[int] = None
    questions: List[StudentQuestion]


class QuizAnswerResponse(ORMModel):
    question_id: int
    answer: Any = None
    is_correct: Optional[bool] = None
    points_earned: float


class AttemptResultResponse(ORMModel):
    id: int
    quiz_id: int
    student_id: int
    started_at: datetime
    submitted_at: Optional[datetime] = None
    score: Optional[float] = None
    points_earned: Optional[float] = None
    points_possible: Optional[float] = None
    is_passing: Optional[bool] = None
    time_spent_seconds: Optional[int] = None
    answers: List[QuizAnswerResponse] = []


class AttendanceRecordResponse(ORMModel):
    id: int
    student_id: int
    status: str
    note: Optional[str] = None


class ClassSessionResponse(ORMModel):
    id: int
    course_id: int
    date: datetime
    topic: Optional[str] = None
    notes: Optional[str] = None
    records: List[AttendanceRecordResponse] = []


class AttendanceSummaryResponse(BaseModel):
    student_id: int
    total: int
    present: int
    absent: int
    late: int
    excused: int
    attendance_rate: float


class CategoryGrade(BaseModel):
    category: str
    earned: float
    possible: float
    percentage: float
    weight: Optional[float] = None


class CourseGradeResponse(BaseModel):
    student_id: int
    student_name: Optional[str] = None
    percentage: float
    letter: str
    earned: float
    possible: float
    categories: List[CategoryGrade] = []


class GradebookResponse(BaseModel):
    course_id: int
    students: List[CourseGradeResponse]


class LearningPathStepResponse(ORMModel):
    id: int
    course_id: int
    order: int
    is_required: bool


class LearningPathResponse(ORMModel):
    id: int
    name: str
    slug: str
    description: Optional[str] = None
    image_url: Optional[str] = None
    is_published: bool
    steps: List[LearningPathStepResponse] = []
    created_at: datetime


class LearningPathProgressResponse(BaseModel):
    path_id: int
    student_id: int
    completed_steps: int
    total_steps: int
    percent: int
    completed_course_ids: List[int]


class PostResponse(ORMModel):
    id: int
    thread_id: int
    author_id: Optional[int] = None
    content: str
    created_at: datetime
    updated_at: datetime


class ThreadSummary(ORMModel):
    id: int
    course_id: int
    creator_id: Optional[int] = None
    title: str
    is_public: bool
    is_pinned: bool
    is_locked: bool
    post_count: int = 0
    created_at: datetime
    updated_at: datetime


class ThreadResponse(ThreadSummary):
    posts: List[PostResponse] = []
