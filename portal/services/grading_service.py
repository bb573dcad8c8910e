"""
Course grade calculation, gradebook and CSV export.
"""

import csv
from io import StringIO
from typing import Any, Dict, List, Optional

from sqlalchemy import select

from portal.core.logging import log_function_call, logger
from portal.models import (
    Assignment,
    AssignmentSubmission,
    CourseEnrollment,
    LMSCourse,
    Quiz,
    QuizAttempt,
    StudentProfile
)
from portal.schemas.enums import SubmissionStatus
from portal.services.base_service import BaseService
from portal.services.course_service import CourseService

UNCATEGORIZED = "uncategorized"


def letter_for(percentage: float, scale: Optional[List[Dict[str, Any]]]) -> str:
    """Highest band whose minimum the percentage reaches, else the lowest band."""
    if not scale:
        return "N/A"
    bands = sorted(scale, key=lambda band: band["min"], reverse=True)
    for band in bands:
        if percentage >= band["min"]:
            return band["label"]
    return bands[-1]["label"]


def best_attempts(attempts: List[QuizAttempt]) -> Dict[int, QuizAttempt]:
    """Best submitted attempt per quiz, judged by points earned."""
    best: Dict[int, QuizAttempt] = {}
    for attempt in attempts:
        if attempt.submitted_at is None:
            continue
        current = best.get(attempt.quiz_id)
        if current is None or (attempt.points_earned or 0) > (current.points_earned or 0):
            best[attempt.quiz_id] = attempt
    return best


def collect_grade_items(
    assignments: List[Assignment],
    quizzes: List[Quiz],
    submissions: Dict[int, AssignmentSubmission],
    attempts: Dict[int, QuizAttempt]
) -> List[Dict[str, Any]]:
    """Graded work of one student as {category, earned, possible} entries."""
    items = []
    for assignment in assignments:
        submission = submissions.get(assignment.id)
        if submission is not None and submission.grade is not None:
            items.append({
                "category": assignment.grade_category or UNCATEGORIZED,
                "earned": submission.grade,
                "possible": assignment.max_points,
            })
    for quiz in quizzes:
        attempt = attempts.get(quiz.id)
        if attempt is not None:
            items.append({
                "category": quiz.grade_category or UNCATEGORIZED,
                "earned": attempt.points_earned or 0,
                "possible": sum(question.points for question in quiz.questions),
            })
    return items


def calculate_grade(
    items: List[Dict[str, Any]],
    weights: Optional[Dict[str, float]] = None,
    scale: Optional[List[Dict[str, Any]]] = None
) -> Dict[str, Any]:
    """
    Combine graded work into a course percentage and letter.

    With weights, each weighted category that has graded work contributes its
    percentage times its weight, normalised by the weights of those categories.
    Work in categories without a weight is ignored. Without weights, the grade
    is total points earned over total points possible.
    """
    earned = sum(item["earned"] for item in items)
    possible = sum(item["possible"] for item in items)

    by_category: Dict[str, Dict[str, float]] = {}
    for item in items:
        bucket = by_category.setdefault(item["category"], {"earned": 0.0, "possible": 0.0})
        bucket["earned"] += item["earned"]
        bucket["possible"] += item["possible"]

    categories = []
    for name, bucket in by_category.items():
        categories.append({
            "category": name,
            "earned": bucket["earned"],
            "possible": bucket["possible"],
            "percentage": round(bucket["earned"] / bucket["possible"] * 100, 1) if bucket["possible"] else 0.0,
            "weight": (weights or {}).get(name),
        })

    if weights:
        weighted_total = 0.0
        weight_sum = 0.0
        for name, weight in weights.items():
            bucket = by_category.get(name)
            if bucket and bucket["possible"] > 0:
                weighted_total += bucket["earned"] / bucket["possible"] * 100 * weight
                weight_sum += weight
        percentage = weighted_total / weight_sum if weight_sum > 0 else 0.0
    else:
        percentage = earned / possible * 100 if possible > 0 else 0.0

    return {
        "percentage": round(percentage, 1),
        "letter": letter_for(percentage, scale),
        "earned": earned,
        "possible": possible,
        "categories": categories,
    }


class GradingService(BaseService):
    async def _course_work(self, organization_id: int, course_id: int) -> Dict[str, Any]:
        course = await CourseService(self.db).get_course(organization_id, course_id)
        assignments = await self._scalars(
            select(Assignment)
            .where(Assignment.course_id == course_id)
            .order_by(Assignment.due_date, Assignment.id)
        )
        quizzes = await self._scalars(
            select(Quiz)
            .where(Quiz.course_id == course_id, Quiz.is_published.is_(True))
            .order_by(Quiz.created_at, Quiz.id)
        )
        submissions = await self._scalars(
            select(AssignmentSubmission).where(
                AssignmentSubmission.assignment_id.in_([a.id for a in assignments]),
                AssignmentSubmission.status == SubmissionStatus.GRADED.value
            )
        )
        attempts = await self._scalars(
            select(QuizAttempt).where(QuizAttempt.quiz_id.in_([q.id for q in quizzes]))
        )
        return {
            "course": course,
            "assignments": assignments,
            "quizzes": quizzes,
            "submissions": submissions,
            "attempts": attempts,
        }

    @staticmethod
    def _grade_for(work: Dict[str, Any], student_id: int) -> Dict[str, Any]:
        course = work["course"]
        submissions = {s.assignment_id: s for s in work["submissions"] if s.student_id == student_id}
        attempts = best_attempts([a for a in work["attempts"] if a.student_id == student_id])
        items = collect_grade_items(work["assignments"], work["quizzes"], submissions, attempts)
        grade = calculate_grade(items, course.grading_weights, course.grading_scale)
        grade["student_id"] = student_id
        return grade

    async def student_grade(self, organization_id: int, course_id: int, student_id: int) -> Dict[str, Any]:
        work = await self._course_work(organization_id, course_id)
        grade = self._grade_for(work, student_id)
        student = await self._fetch(StudentProfile, student_id, organization_id, label="Student")
        grade["student_name"] = student.user.full_name
        return grade

    async def _enrollments(self, course_id: int) -> List[CourseEnrollment]:
        return await self._scalars(
            select(CourseEnrollment)
            .where(CourseEnrollment.course_id == course_id)
            .order_by(CourseEnrollment.id)
        )

    @log_function_call(logger)
    async def gradebook(self, organization_id: int, course_id: int) -> Dict[str, Any]:
        work = await self._course_work(organization_id, course_id)
        students = []
        for enrollment in await self._enrollments(course_id):
            grade = self._grade_for(work, enrollment.student_id)
            grade["student_name"] = enrollment.student.user.full_name
            students.append(grade)
        return {"course_id": course_id, "students": students}

    @log_function_call(logger)
    async def export_csv(self, organization_id: int, course_id: int) -> Dict[str, str]:
        """
        Gradebook as CSV: one row per enrolled student.

        Quiz columns hold the best score out of 100 and count 100 points
        toward the average.
        """
        work = await self._course_work(organization_id, course_id)
        course: LMSCourse = work["course"]
        assignments, quizzes = work["assignments"], work["quizzes"]

        buffer = StringIO()
        writer = csv.writer(buffer, lineterminator="\n")
        writer.writerow(
            ["Student Name", "Email"]
            + [f"[A] {a.title}" for a in assignments]
            + [f"[Q] {q.title}" for q in quizzes]
            + ["Average (%)"]
        )

        for enrollment in await self._enrollments(course_id):
            student_id = enrollment.student_id
            user = enrollment.student.user
            submissions = {s.assignment_id: s for s in work["submissions"] if s.student_id == student_id}
            best_scores: Dict[int, float] = {}
            for attempt in work["attempts"]:
                if attempt.student_id == student_id and attempt.score is not None:
                    best_scores[attempt.quiz_id] = max(best_scores.get(attempt.quiz_id, 0.0), attempt.score)

            total_score = total_max = 0.0
            row = [user.full_name, user.email]
            for assignment in assignments:
                submission = submissions.get(assignment.id)
                if submission is not None and submission.grade is not None:
                    total_score += submission.grade
                    total_max += assignment.max_points
                    row.append(f"{submission.grade:g}")
                else:
                    row.append("")
            for quiz in quizzes:
                if quiz.id in best_scores:
                    total_score += best_scores[quiz.id]
                    total_max += 100
                    row.append(f"{best_scores[quiz.id]:.1f}")
                else:
                    row.append("")
            average = total_score / total_max * 100 if total_max > 0 else 0
            row.append(f"{average:.2f}")
            writer.writerow(row)

        return {"filename": f"gradebook-{course.code}.csv", "content": buffer.getvalue()}
