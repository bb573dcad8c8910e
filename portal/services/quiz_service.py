from typing import Any, Dict, List, Optional, Tuple

from sqlalchemy import delete, func, select

from portal.core.errors import BadRequestError, NotFoundError, PermissionDenied
from portal.core.logging import logger
from portal.models import LMSCourse, Question, Quiz, QuizAnswer, QuizAttempt, User
from portal.schemas.enums import QuestionType
from portal.schemas.lms.requests import (
    QuestionCreateRequest,
    QuestionUpdateRequest,
    QuizCreateRequest,
    QuizSubmitRequest,
    QuizUpdateRequest
)
from portal.services.base_service import BaseService
from portal.services.course_service import student_profile_of
from portal.utils.dates import utcnow


def _normalize(value: Any) -> str:
    return str(value).strip().lower()


def score_answer(question: Question, answer: Any) -> Tuple[Optional[bool], float]:
    """
    Auto-grade one answer, returning (is_correct, points_earned).

    Essays are left for manual review and report is_correct as None.
    """
    if question.question_type == QuestionType.ESSAY.value:
        return None, 0.0

    if question.question_type == QuestionType.MULTIPLE_CHOICE.value:
        selected = answer if isinstance(answer, list) else ([] if answer is None else [answer])
        chosen = {str(item).strip() for item in selected}
        correct = {
            str(option.get("text", "")).strip()
            for option in (question.options or [])
            if option.get("is_correct")
        }
        is_correct = bool(correct) and chosen == correct
    elif question.question_type == QuestionType.TRUE_FALSE.value:
        is_correct = answer is not None and _normalize(answer) == _normalize(question.correct_answer or "")
    elif question.question_type == QuestionType.SHORT_ANSWER.value:
        accepted = {_normalize(item) for item in (question.correct_answer or "").split(",") if item.strip()}
        is_correct = answer is not None and _normalize(answer) in accepted
    else:
        is_correct = False

    return is_correct, float(question.points) if is_correct else 0.0


def score_attempt(questions: List[Question], answers: Dict[int, Any], passing_score: float) -> Dict[str, Any]:
    """Score every question of the quiz; unanswered questions earn nothing."""
    results = []
    earned = possible = 0.0
    for question in questions:
        answer = answers.get(question.id)
        is_correct, points = score_answer(question, answer)
        earned += points
        possible += question.points
        results.append({
            "question_id": question.id,
            "answer": answer,
            "is_correct": is_correct,
            "points_earned": points,
        })
    score = round(earned / possible * 100, 2) if possible else 0.0
    return {
        "answers": results,
        "points_earned": earned,
        "points_possible": possible,
        "score": score,
        "is_passing": score >= passing_score,
    }


def student_view(question: Question) -> Dict[str, Any]:
    options = None
    if question.options:
        options = [option.get("text") for option in question.options]
    return {
        "id": question.id,
        "question_type": question.question_type,
        "text": question.text,
        "options": options,
        "points": question.points,
        "order": question.order,
    }


class QuizService(BaseService):
    async def list_quizzes(self, organization_id: int, course_id: Optional[int] = None) -> List[Quiz]:
        stmt = select(Quiz).where(Quiz.organization_id == organization_id)
        if course_id is not None:
            stmt = stmt.where(Quiz.course_id == course_id)
        return await self._scalars(stmt.order_by(Quiz.id))

    async def get_quiz(self, organization_id: int, quiz_id: int) -> Quiz:
        return await self._fetch(Quiz, quiz_id, organization_id, label="Quiz")

    async def create_quiz(self, organization_id: int, data: QuizCreateRequest, actor: User) -> Quiz:
        if data.course_id is not None:
            await self._fetch(LMSCourse, data.course_id, organization_id, label="Course")
        async with self.transaction():
            quiz = Quiz(organization_id=organization_id, created_by_id=actor.id, **data.model_dump())
            self.db.add(quiz)
        return await self.get_quiz(organization_id, quiz.id)

    async def update_quiz(self, organization_id: int, quiz_id: int, data: QuizUpdateRequest) -> Quiz:
        quiz = await self.get_quiz(organization_id, quiz_id)
        async with self.transaction():
            self._apply(quiz, data.model_dump(exclude_unset=True))
        return await self.get_quiz(organization_id, quiz_id)

    async def delete_quiz(self, organization_id: int, quiz_id: int) -> None:
        quiz = await self.get_quiz(organization_id, quiz_id)
        async with self.transaction():
            await self.db.delete(quiz)

    # Questions

    async def _get_question(self, quiz_id: int, question_id: int) -> Question:
        result = await self.db.execute(
            select(Question)
            .where(Question.id == question_id, Question.quiz_id == quiz_id)
            .execution_options(populate_existing=True)
        )
        question = result.scalar_one_or_none()
        if question is None:
            raise NotFoundError("Question not found")
        return question

    async def add_question(self, organization_id: int, quiz_id: int, data: QuestionCreateRequest) -> Question:
        await self.get_quiz(organization_id, quiz_id)
        last = (await self.db.execute(
            select(func.max(Question.order)).where(Question.quiz_id == quiz_id)
        )).scalar_one()
        async with self.transaction():
            question = Question(
                quiz_id=quiz_id,
                question_type=data.question_type.value,
                text=data.text,
                options=[option.model_dump() for option in data.options] if data.options else None,
                correct_answer=data.correct_answer,
                explanation=data.explanation,
                points=data.points,
                order=0 if last is None else last + 1
            )
            self.db.add(question)
        return await self._get_question(quiz_id, question.id)

    async def update_question(
        self,
        organization_id: int,
        quiz_id: int,
        question_id: int,
        data: QuestionUpdateRequest
    ) -> Question:
        await self.get_quiz(organization_id, quiz_id)
        question = await self._get_question(quiz_id, question_id)
        fields = data.model_dump(exclude_unset=True)
        if fields.get("options") is not None:
            fields["options"] = [option.model_dump() for option in data.options]
        async with self.transaction():
            self._apply(question, fields)
        return await self._get_question(quiz_id, question_id)

    async def delete_question(self, organization_id: int, quiz_id: int, question_id: int) -> None:
        await self.get_quiz(organization_id, quiz_id)
        question = await self._get_question(quiz_id, question_id)
        async with self.transaction():
            await self.db.delete(question)

    async def reorder_questions(self, organization_id: int, quiz_id: int, ids: List[int]) -> Quiz:
        quiz = await self.get_quiz(organization_id, quiz_id)
        questions = {question.id: question for question in quiz.questions}
        unknown = [question_id for question_id in ids if question_id not in questions]
        if unknown:
            raise BadRequestError(f"Question(s) not in quiz: {', '.join(str(i) for i in unknown)}")
        async with self.transaction():
            for position, question_id in enumerate(ids):
                questions[question_id].order = position
        return await self.get_quiz(organization_id, quiz_id)

    # Attempts

    async def start_attempt(self, organization_id: int, quiz_id: int, user: User) -> Dict[str, Any]:
        """
        Begin a quiz attempt, or resume the student's unfinished one.

        Raises:
            NotFoundError: If the quiz is not published
            PermissionDenied: If the maximum number of attempts is used up
        """
        student = student_profile_of(user)
        quiz = await self.get_quiz(organization_id, quiz_id)
        if not quiz.is_published:
            raise NotFoundError("Quiz not found")

        attempts = await self._scalars(
            select(QuizAttempt)
            .where(QuizAttempt.quiz_id == quiz_id, QuizAttempt.student_id == student.id)
            .order_by(QuizAttempt.id)
        )
        unfinished = next((a for a in attempts if a.submitted_at is None), None)
        resumed = unfinished is not None

        if unfinished is None:
            if quiz.max_attempts is not None and len(attempts) >= quiz.max_attempts:
                raise PermissionDenied("Maximum number of attempts reached")
            async with self.transaction():
                unfinished = QuizAttempt(quiz_id=quiz_id, student_id=student.id, started_at=utcnow())
                self.db.add(unfinished)

        return {
            "attempt_id": unfinished.id,
            "quiz_id": quiz.id,
            "started_at": unfinished.started_at,
            "resumed": resumed,
            "time_limit_minutes": quiz.time_limit_minutes,
            "questions": [student_view(question) for question in quiz.questions],
        }

    async def get_attempt(self, organization_id: int, attempt_id: int) -> QuizAttempt:
        result = await self.db.execute(
            select(QuizAttempt)
            .join(Quiz, QuizAttempt.quiz_id == Quiz.id)
            .where(QuizAttempt.id == attempt_id, Quiz.organization_id == organization_id)
            .execution_options(populate_existing=True)
        )
        attempt = result.scalar_one_or_none()
        if attempt is None:
            raise NotFoundError("Attempt not found")
        return attempt

    async def view_attempt(self, organization_id: int, attempt_id: int, user: User) -> QuizAttempt:
        """Staff see any attempt; students only their own."""
        attempt = await self.get_attempt(organization_id, attempt_id)
        if user.has_role("Admin", "Teacher"):
            return attempt
        if user.student_profile is None or attempt.student_id != user.student_profile.id:
            raise PermissionDenied("This attempt belongs to another student")
        return attempt

    async def submit_attempt(
        self,
        organization_id: int,
        attempt_id: int,
        data: QuizSubmitRequest,
        user: User
    ) -> QuizAttempt:
        """
        Raises:
            PermissionDenied: If the attempt belongs to another student
            BadRequestError: If the attempt was already submitted
        """
        student = student_profile_of(user)
        attempt = await self.get_attempt(organization_id, attempt_id)
        if attempt.student_id != student.id:
            raise PermissionDenied("This attempt belongs to another student")
        if attempt.submitted_at is not None:
            raise BadRequestError("Attempt has already been submitted")

        quiz = await self.get_quiz(organization_id, attempt.quiz_id)
        answers = {entry.question_id: entry.answer for entry in data.answers}
        result = score_attempt(quiz.questions, answers, quiz.passing_score)
        now = utcnow()

        async with self.transaction():
            await self.db.execute(delete(QuizAnswer).where(QuizAnswer.attempt_id == attempt.id))
            for entry in result["answers"]:
                self.db.add(QuizAnswer(attempt_id=attempt.id, **entry))
            attempt.submitted_at = now
            attempt.score = result["score"]
            attempt.points_earned = result["points_earned"]
            attempt.points_possible = result["points_possible"]
            attempt.is_passing = result["is_passing"]
            attempt.time_spent_seconds = int((now - attempt.started_at).total_seconds())

        logger.info(
            f"Quiz attempt {attempt.id} submitted with score {attempt.score}",
            extra={'user_id': user.id}
        )
        return await self.get_attempt(organization_id, attempt_id)

    async def list_attempts(self, organization_id: int, quiz_id: int) -> List[QuizAttempt]:
        await self.get_quiz(organization_id, quiz_id)
        return await self._scalars(
            select(QuizAttempt).where(QuizAttempt.quiz_id == quiz_id).order_by(QuizAttempt.id)
        )
