from sqlalchemy import (
    JSON, Boolean, Column, DateTime, Float, ForeignKey, Integer, String, Text, UniqueConstraint
)
from sqlalchemy.orm import relationship

from portal.utils.dates import utcnow

from .base import Base, TenantModel, TimestampMixin


class LMSCourse(TimestampMixin, TenantModel):
    __tablename__ = "lms_courses"
    __table_args__ = (UniqueConstraint("organization_id", "code", name="uq_course_code"),)

    id = Column(Integer, primary_key=True, index=True)
    name = Column(String(200), nullable=False)
    code = Column(String(50), nullable=False)
    description = Column(Text, nullable=True)
    instructor_id = Column(Integer, ForeignKey("users.id", ondelete="SET NULL"), nullable=True)
    is_active = Column(Boolean, default=True, nullable=False)
    # [{"label": "A", "min": 90}, ...]
    grading_scale = Column(JSON, nullable=True)
    # {"homework": 40, "exam": 60}
    grading_weights = Column(JSON, nullable=True)

    modules = relationship(
        "Module", back_populates="course", lazy="selectin",
        cascade="all, delete-orphan", order_by="Module.order"
    )
    enrollments = relationship(
        "CourseEnrollment", back_populates="course", lazy="selectin",
        cascade="all, delete-orphan"
    )

    @property
    def module_count(self) -> int:
        return len(self.modules)

    @property
    def enrollment_count(self) -> int:
        return len(self.enrollments)


class CourseEnrollment(Base):
    __tablename__ = "course_enrollments"
    __table_args__ = (UniqueConstraint("course_id", "student_id", name="uq_enrollment"),)

    id = Column(Integer, primary_key=True, index=True)
    course_id = Column(Integer, ForeignKey("lms_courses.id", ondelete="CASCADE"), nullable=False)
    student_id = Column(Integer, ForeignKey("student_profiles.id", ondelete="CASCADE"), nullable=False)
    status = Column(String(20), default="active", nullable=False)
    enrolled_at = Column(DateTime, default=utcnow, nullable=False)

    course = relationship("LMSCourse", back_populates="enrollments")
    student = relationship("StudentProfile", lazy="selectin")


class Module(Base):
    __tablename__ = "lms_modules"

    id = Column(Integer, primary_key=True, index=True)
    course_id = Column(Integer, ForeignKey("lms_courses.id", ondelete="CASCADE"), nullable=False)
    title = Column(String(300), nullable=False)
    description = Column(Text, nullable=True)
    order = Column(Integer, default=0, nullable=False)
    is_published = Column(Boolean, default=False, nullable=False)

    course = relationship("LMSCourse", back_populates="modules")
    lessons = relationship(
        "Lesson", back_populates="module", lazy="selectin",
        cascade="all, delete-orphan", order_by="Lesson.order"
    )


class Lesson(Base):
    __tablename__ = "lms_lessons"

    id = Column(Integer, primary_key=True, index=True)
    module_id = Column(Integer, ForeignKey("lms_modules.id", ondelete="CASCADE"), nullable=False)
    title = Column(String(300), nullable=False)
    content = Column(Text, nullable=True)
    content_type = Column(String(20), default="text", nullable=False)
    resource_url = Column(String(1000), nullable=True)
    duration_minutes = Column(Integer, nullable=True)
    order = Column(Integer, default=0, nullable=False)
    is_published = Column(Boolean, default=False, nullable=False)

    module = relationship("Module", back_populates="lessons")


class LessonProgress(Base):
    __tablename__ = "lesson_progress"
    __table_args__ = (UniqueConstraint("lesson_id", "student_id", name="uq_lesson_progress"),)

    id = Column(Integer, primary_key=True, index=True)
    lesson_id = Column(Integer, ForeignKey("lms_lessons.id", ondelete="CASCADE"), nullable=False)
    student_id = Column(Integer, ForeignKey("student_profiles.id", ondelete="CASCADE"), nullable=False)
    status = Column(String(20), default="not_started", nullable=False)
    completed_at = Column(DateTime, nullable=True)
    updated_at = Column(DateTime, default=utcnow, onupdate=utcnow, nullable=False)


class Rubric(TimestampMixin, TenantModel):
    __tablename__ = "rubrics"

    id = Column(Integer, primary_key=True, index=True)
    title = Column(String(300), nullable=False)
    description = Column(Text, nullable=True)
    created_by_id = Column(Integer, ForeignKey("users.id", ondelete="SET NULL"), nullable=True)

    criteria = relationship(
        "RubricCriterion", back_populates="rubric", lazy="selectin",
        cascade="all, delete-orphan", order_by="RubricCriterion.order"
    )


class RubricCriterion(Base):
    __tablename__ = "rubric_criteria"

    id = Column(Integer, primary_key=True, index=True)
    rubric_id = Column(Integer, ForeignKey("rubrics.id", ondelete="CASCADE"), nullable=False)
    title = Column(String(300), nullable=False)
    description = Column(Text, nullable=True)
    max_points = Column(Float, nullable=False)
    order = Column(Integer, default=0, nullable=False)

    rubric = relationship("Rubric", back_populates="criteria")


class Assignment(TimestampMixin, TenantModel):
    __tablename__ = "assignments"

    id = Column(Integer, primary_key=True, index=True)
    course_id = Column(Integer, ForeignKey("lms_courses.id", ondelete="CASCADE"), nullable=True)
    lesson_id = Column(Integer, ForeignKey("lms_lessons.id", ondelete="SET NULL"), nullable=True)
    rubric_id = Column(Integer, ForeignKey("rubrics.id", ondelete="SET NULL"), nullable=True)
    teacher_id = Column(Integer, ForeignKey("users.id", ondelete="SET NULL"), nullable=True)
    title = Column(String(300), nullable=False)
    description = Column(Text, nullable=True)
    due_date = Column(DateTime, nullable=True)
    max_points = Column(Float, default=100, nullable=False)
    grade_category = Column(String(100), nullable=True)
    allow_text_entry = Column(Boolean, default=True, nullable=False)
    allow_file_upload = Column(Boolean, default=False, nullable=False)

    rubric = relationship("Rubric", lazy="selectin")
    submissions = relationship(
        "AssignmentSubmission", back_populates="assignment",
        cascade="all, delete-orphan"
    )


class AssignmentSubmission(Base):
    __tablename__ = "assignment_submissions"
    __table_args__ = (UniqueConstraint("assignment_id", "student_id", name="uq_submission"),)

    id = Column(Integer, primary_key=True, index=True)
    assignment_id = Column(Integer, ForeignKey("assignments.id", ondelete="CASCADE"), nullable=False)
    student_id = Column(Integer, ForeignKey("student_profiles.id", ondelete="CASCADE"), nullable=False)
    content = Column(Text, nullable=True)
    file_url = Column(String(1000), nullable=True)
    status = Column(String(20), default="submitted", nullable=False)
    is_late = Column(Boolean, default=False, nullable=False)
    submitted_at = Column(DateTime, default=utcnow, nullable=False)
    grade = Column(Float, nullable=True)
    feedback = Column(Text, nullable=True)
    graded_at = Column(DateTime, nullable=True)
    graded_by_id = Column(Integer, ForeignKey("users.id", ondelete="SET NULL"), nullable=True)

    assignment = relationship("Assignment", back_populates="submissions")
    student = relationship("StudentProfile", lazy="selectin")
    rubric_scores = relationship(
        "RubricScore", back_populates="submission", lazy="selectin",
        cascade="all, delete-orphan"
    )


class RubricScore(Base):
    __tablename__ = "rubric_scores"
    __table_args__ = (UniqueConstraint("criterion_id", "submission_id", name="uq_rubric_score"),)

    id = Column(Integer, primary_key=True, index=True)
    criterion_id = Column(Integer, ForeignKey("rubric_criteria.id", ondelete="CASCADE"), nullable=False)
    submission_id = Column(Integer, ForeignKey("assignment_submissions.id", ondelete="CASCADE"), nullable=False)
    score = Column(Float, nullable=False)
    comment = Column(Text, nullable=True)

    submission = relationship("AssignmentSubmission", back_populates="rubric_scores")


class Quiz(TimestampMixin, TenantModel):
    __tablename__ = "quizzes"

    id = Column(Integer, primary_key=True, index=True)
    course_id = Column(Integer, ForeignKey("lms_courses.id", ondelete="CASCADE"), nullable=True)
    title = Column(String(300), nullable=False)
    description = Column(Text, nullable=True)
    time_limit_minutes = Column(Integer, nullable=True)
    passing_score = Column(Float, default=70, nullable=False)
    max_attempts = Column(Integer, nullable=True)
    grade_category = Column(String(100), nullable=True)
    is_published = Column(Boolean, default=False, nullable=False)
    created_by_id = Column(Integer, ForeignKey("users.id", ondelete="SET NULL"), nullable=True)

    questions = relationship(
        "Question", back_populates="quiz", lazy="selectin",
        cascade="all, delete-orphan", order_by="Question.order"
    )
    attempts = relationship("QuizAttempt", back_populates="quiz", cascade="all, delete-orphan")


class Question(Base):
    __tablename__ = "quiz_questions"

    id = Column(Integer, primary_key=True, index=True)
    quiz_id = Column(Integer, ForeignKey("quizzes.id", ondelete="CASCADE"), nullable=False)
    question_type = Column(String(30), nullable=False)
    text = Column(Text, nullable=False)
    # multiple choice: [{"text": "...", "is_correct": bool}]
    options = Column(JSON, nullable=True)
    correct_answer = Column(Text, nullable=True)
    explanation = Column(Text, nullable=True)
    points = Column(Float, default=1, nullable=False)
    order = Column(Integer, default=0, nullable=False)

    quiz = relationship("Quiz", back_populates="questions")


class QuizAttempt(Base):
    __tablename__ = "quiz_attempts"

    id = Column(Integer, primary_key=True, index=True)
    quiz_id = Column(Integer, ForeignKey("quizzes.id", ondelete="CASCADE"), nullable=False)
    student_id = Column(Integer, ForeignKey("student_profiles.id", ondelete="CASCADE"), nullable=False)
    started_at = Column(DateTime, default=utcnow, nullable=False)
    submitted_at = Column(DateTime, nullable=True)
    score = Column(Float, nullable=True)
    points_earned = Column(Float, nullable=True)
    points_possible = Column(Float, nullable=True)
    is_passing = Column(Boolean, nullable=True)
    time_spent_seconds = Column(Integer, nullable=True)

    quiz = relationship("Quiz", back_populates="attempts")
    answers = relationship(
        "QuizAnswer", back_populates="attempt", lazy="selectin",
        cascade="all, delete-orphan", order_by="QuizAnswer.id"
    )


class QuizAnswer(Base):
    __tablename__ = "quiz_answers"

    id = Column(Integer, primary_key=True, index=True)
    attempt_id = Column(Integer, ForeignKey("quiz_attempts.id", ondelete="CASCADE"), nullable=False)
    question_id = Column(Integer, ForeignKey("quiz_questions.id", ondelete="CASCADE"), nullable=False)
    answer = Column(JSON, nullable=True)
    is_correct = Column(Boolean, nullable=True)
    points_earned = Column(Float, default=0, nullable=False)

    attempt = relationship("QuizAttempt", back_populates="answers")


class ClassSession(TimestampMixin, TenantModel):
    __tablename__ = "class_sessions"

    id = Column(Integer, primary_key=True, index=True)
    course_id = Column(Integer, ForeignKey("lms_courses.id", ondelete="CASCADE"), nullable=False)
    date = Column(DateTime, nullable=False)
    topic = Column(String(300), nullable=True)
    notes = Column(Text, nullable=True)

    records = relationship(
        "AttendanceRecord", back_populates="session", lazy="selectin",
        cascade="all, delete-orphan", order_by="AttendanceRecord.id"
    )


class AttendanceRecord(Base):
    __tablename__ = "attendance_records"
    __table_args__ = (UniqueConstraint("session_id", "student_id", name="uq_attendance_record"),)

    id = Column(Integer, primary_key=True, index=True)
    session_id = Column(Integer, ForeignKey("class_sessions.id", ondelete="CASCADE"), nullable=False)
    student_id = Column(Integer, ForeignKey("student_profiles.id", ondelete="CASCADE"), nullable=False)
    status = Column(String(20), default="present", nullable=False)
    note = Column(Text, nullable=True)

    session = relationship("ClassSession", back_populates="records")


class LearningPath(TimestampMixin, TenantModel):
    __tablename__ = "learning_paths"
    __table_args__ = (UniqueConstraint("organization_id", "slug", name="uq_learning_path_slug"),)

    id = Column(Integer, primary_key=True, index=True)
    name = Column(String(200), nullable=False)
    slug = Column(String(200), nullable=False)
    description = Column(Text, nullable=True)
    image_url = Column(String(500), nullable=True)
    is_published = Column(Boolean, default=False, nullable=False)

    steps = relationship(
        "LearningPathStep", back_populates="path", lazy="selectin",
        cascade="all, delete-orphan", order_by="LearningPathStep.order"
    )


class LearningPathStep(Base):
    __tablename__ = "learning_path_steps"

    id = Column(Integer, primary_key=True, index=True)
    path_id = Column(Integer, ForeignKey("learning_paths.id", ondelete="CASCADE"), nullable=False)
    course_id = Column(Integer, ForeignKey("lms_courses.id", ondelete="CASCADE"), nullable=False)
    order = Column(Integer, default=0, nullable=False)
    is_required = Column(Boolean, default=True, nullable=False)

    path = relationship("LearningPath", back_populates="steps")


class ForumThread(TimestampMixin, TenantModel):
    __tablename__ = "forum_threads"

    id = Column(Integer, primary_key=True, index=True)
    course_id = Column(Integer, ForeignKey("lms_courses.id", ondelete="CASCADE"), nullable=False)
    creator_id = Column(Integer, ForeignKey("users.id", ondelete="SET NULL"), nullable=True)
    title = Column(String(300), nullable=False)
    is_public = Column(Boolean, default=True, nullable=False)
    is_pinned = Column(Boolean, default=False, nullable=False)
    is_locked = Column(Boolean, default=False, nullable=False)

    posts = relationship(
        "ForumPost", back_populates="thread", lazy="selectin",
        cascade="all, delete-orphan", order_by="ForumPost.id"
    )

    @property
    def post_count(self) -> int:
        return len(self.posts)


class ForumPost(Base):
    __tablename__ = "forum_posts"

    id = Column(Integer, primary_key=True, index=True)
    thread_id = Column(Integer, ForeignKey("forum_threads.id", ondelete="CASCADE"), nullable=False)
    author_id = Column(Integer, ForeignKey("users.id", ondelete="SET NULL"), nullable=True)
    content = Column(Text, nullable=False)
    created_at = Column(DateTime, default=utcnow, nullable=False)
    updated_at = Column(DateTime, default=utcnow, onupdate=utcnow, nullable=False)

    thread = relationship("ForumThread", back_populates="posts")
