from typing import Any, Dict, List, Optional

from pydantic import BaseModel, Field, field_validator, model_validator

from portal.schemas.common import UTCDateTime
from portal.schemas.enums import (
    EnrollmentStatus, LessonContentType, ProgressStatus, QuestionType
)


class GradingScaleEntry(BaseModel):
    label: str = Field(..., min_length=1, max_length=10)
    min: float = Field(..., ge=0, le=100)


class CourseCreateRequest(BaseModel):
    name: str = Field(..., min_length=1, max_length=200)
    code: str = Field(..., min_length=1, max_length=50)
    description: Optional[str] = None
    instructor_id: Optional[int] = None
    is_active: bool = True
    grading_scale: Optional[List[GradingScaleEntry]] = None
    grading_weights: Optional[Dict[str, float]] = None

    @field_validator("grading_weights")
    @classmethod
    def validate_weights(cls, v: Optional[Dict[str, float]]) -> Optional[Dict[str, float]]:
        if v and any(weight < 0 for weight in v.values()):
            raise ValueError("Grading weights cannot be negative")
        return v


class CourseUpdateRequest(BaseModel):
    name: Optional[str] = Field(default=None, min_length=1, max_length=200)
    code: Optional[str] = Field(default=None, min_length=1, max_length=50)
    description: Optional[str] = None
    instructor_id: Optional[int] = None
    is_active: Optional[bool] = None
    grading_scale: Optional[List[GradingScaleEntry]] = None
    grading_weights: Optional[Dict[str, float]] = None


class ModuleCreateRequest(BaseModel):
    title: str = Field(..., min_length=1, max_length=300)
    description: Optional[str] = None
    is_published: bool = False


class ModuleUpdateRequest(BaseModel):
    title: Optional[str] = Field(default=None, min_length=1, max_length=300)
    description: Optional[str] = None
    is_published: Optional[bool] = None


class ReorderRequest(BaseModel):
    ids: List[int] = Field(..., min_length=1)


class LessonCreateRequest(BaseModel):
    title: str = Field(..., min_length=1, max_length=300)
    content: Optional[str] = None
    content_type: LessonContentType = LessonContentType.TEXT
    resource_url: Optional[str] = None
    duration_minutes: Optional[int] = Field(default=None, ge=0)
    is_published: bool = False


class LessonUpdateRequest(BaseModel):
    title: Optional[str] = Field(default=None, min_length=1, max_length=300)
    content: Optional[str] = None
    content_type: Optional[LessonContentType] = None
    resource_url: Optional[str] = None
    duration_minutes: Optional[int] = Field(default=None, ge=0)
    is_published: Optional[bool] = None


class EnrollRequest(BaseModel):
    student_ids: List[int] = Field(..., min_length=1)


class EnrollmentStatusUpdate(BaseModel):
    status: EnrollmentStatus


class LessonProgressUpdate(BaseModel):
    status: ProgressStatus


class RubricCriterionRequest(BaseModel):
    title: str = Field(..., min_length=1, max_length=300)
    description: Optional[str] = None
    max_points: float = Field(..., gt=0, le=1000)


class RubricCreateRequest(BaseModel):
    title: str = Field(..., min_length=1, max_length=300)
    description: Optional[str] = None
    criteria: List[RubricCriterionRequest] = Field(..., min_length=1)


class RubricUpdateRequest(BaseModel):
    title: Optional[str] = Field(default=None, min_length=1, max_length=300)
    description: Optional[str] = None
    criteria: Optional[List[RubricCriterionRequest]] = Field(default=None, min_length=1)


class AssignmentCreateRequest(BaseModel):
    title: str = Field(..., min_length=1, max_length=300)
    description: Optional[str] = None
    course_id: Optional[int] = None
    lesson_id: Optional[int] = None
    rubric_id: Optional[int] = None
    due_date: Optional[UTCDateTime] = None
    max_points: float = Field(default=100, gt=0)
    grade_category: Optional[str] = None
    allow_text_entry: bool = True
    allow_file_upload: bool = False


class AssignmentUpdateRequest(BaseModel):
    title: Optional[str] = Field(default=None, min_length=1, max_length=300)
    description: Optional[str] = None
    lesson_id: Optional[int] = None
    rubric_id: Optional[int] = None
    due_date: Optional[UTCDateTime] = None
    max_points: Optional[float] = Field(default=None, gt=0)
    grade_category: Optional[str] = None
    allow_text_entry: Optional[bool] = None
    allow_file_upload: Optional[bool] = None


class SubmissionCreateRequest(BaseModel):
    content: Optional[str] = None
    file_url: Optional[str] = None

    @model_validator(mode='after')
    def validate_payload(self) -> 'SubmissionCreateRequest':
        if not (self.content or self.file_url):
            raise ValueError("A submission needs text content or a file")
        return self


class GradeSubmissionRequest(BaseModel):
    grade: float = Field(..., ge=0)
    feedback: Optional[str] = None


class RubricScoreInput(BaseModel):
    criterion_id: int
    score: float
    comment: Optional[str] = None


class RubricGradeRequest(BaseModel):
    scores: List[RubricScoreInput] = Field(..., min_length=1)
    feedback: Optional[str] = None


class QuizCreateRequest(BaseModel):
    title: str = Field(..., min_length=1, max_length=300)
    description: Optional[str] = None
    course_id: Optional[int] = None
    time_limit_minutes: Optional[int] = Field(default=None, gt=0)
    passing_score: float = Field(default=70, ge=0, le=100)
    max_attempts: Optional[int] = Field(default=None, ge=1)
    grade_category: Optional[str] = None
    is_published: bool = False


class QuizUpdateRequest(BaseModel):
    title: Optional[str] = Field(default=None, min_length=1, max_length=300)
    description: Optional[str] = None
    time_limit_minutes: Optional[int] = Field(default=None, gt=0)
    passing_score: Optional[float] = Field(default=None, ge=0, le=100)
    max_attempts: Optional[int] = Field(default=None, ge=1)
    grade_category: Optional[str] = None
    is_published: Optional[bool] = None


class QuestionOption(BaseModel):
    text: str = Field(..., min_length=1)
    is_correct: bool = False


class QuestionCreateRequest(BaseModel):
    question_type: QuestionType
    text: str = Field(..., min_length=1)
    options: Optional[List[QuestionOption]] = None
    correct_answer: Optional[str] = None
    explanation: Optional[str] = None
    points: float = Field(default=1, ge=0)

    @model_validator(mode='after')
    def validate_answer_key(self) -> 'QuestionCreateRequest':
        if self.question_type == QuestionType.MULTIPLE_CHOICE:
            if not self.options or len(self.options) < 2:
                raise ValueError("Multiple choice questions need at least two options")
            if not any(option.is_correct for option in self.options):
                raise ValueError("Mark at least one option as correct")
        elif self.question_type == QuestionType.TRUE_FALSE:
            if (self.correct_answer or "").strip().lower() not in ("true", "false"):
                raise ValueError("True/false questions need correct_answer 'true' or 'false'")
        elif self.question_type == QuestionType.SHORT_ANSWER:
            if not (self.correct_answer or "").strip():
                raise ValueError("Short answer questions need accepted answers")
        return self


class QuestionUpdateRequest(BaseModel):
    text: Optional[str] = Field(default=None, min_length=1)
    options: Optional[List[QuestionOption]] = None
    correct_answer: Optional[str] = None
    explanation: Optional[str] = None
    points: Optional[float] = Field(default=None, ge=0)


class QuizAnswerInput(BaseModel):
    question_id: int
    # list of option texts for multiple choice, plain string otherwise
    answer: Any = None


class QuizSubmitRequest(BaseModel):
    answers: List[QuizAnswerInput] = Field(default_factory=list)


class AttendanceRecordInput(BaseModel):
    student_id: int
    status: str = "present"
    note: Optional[str] = None


class ClassSessionCreateRequest(BaseModel):
    date: UTCDateTime
    topic: Optional[str] = Field(default=None, max_length=300)
    notes: Optional[str] = None
    records: List[AttendanceRecordInput] = Field(default_factory=list)


class ClassSessionUpdateRequest(BaseModel):
    date: Optional[UTCDateTime] = None
    topic: Optional[str] = Field(default=None, max_length=300)
    notes: Optional[str] = None
    records: Optional[List[AttendanceRecordInput]] = None


class LearningPathStepInput(BaseModel):
    course_id: int
    is_required: bool = True


class LearningPathCreateRequest(BaseModel):
    name: str = Field(..., min_length=1, max_length=200)
    description: Optional[str] = None
    image_url: Optional[str] = None
    is_published: bool = False
    steps: List[LearningPathStepInput] = Field(default_factory=list)


class LearningPathUpdateRequest(BaseModel):
    name: Optional[str] = Field(default=None, min_length=1, max_length=200)
    description: Optional[str] = None
    image_url: Optional[str] = None
    is_published: Optional[bool] = None
    steps: Optional[List[LearningPathStepInput]] = None


class ThreadCreateRequest(BaseModel):
    title: str = Field(..., min_length=1, max_length=300)
    content: str = Field(..., min_length=1)
    is_public: bool = True


class ThreadUpdateRequest(BaseModel):
    title: Optional[str] = Field(default=None, min_length=1, max_length=300)
    is_pinned: Optional[bool] = None
    is_locked: Optional[bool] = None
    is_public: Optional[bool] = None


class PostCreateRequest(BaseModel):
    content: str = Field(..., min_length=1)
