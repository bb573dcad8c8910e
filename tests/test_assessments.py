from datetime import timedelta
from types import SimpleNamespace

import pytest

from portal.models import QuizAttempt
from portal.services.assignment_service import clamp_rubric_scores
from portal.services.grading_service import best_attempts, calculate_grade, letter_for
from portal.services.quiz_service import score_answer, score_attempt
from portal.utils.dates import utcnow

SCALE = [{"label": "A", "min": 90}, {"label": "B", "min": 80}, {"label": "C", "min": 0}]


def _question(question_type, question_id=1, points=1.0, options=None, correct_answer=None):
    return SimpleNamespace(
        id=question_id,
        question_type=question_type,
        options=options,
        correct_answer=correct_answer,
        points=points
    )


@pytest.mark.parametrize("answer,expected", [
    (["Paris", "Lyon"], (True, 2.0)),
    (["Lyon", "Paris"], (True, 2.0)),
    (["Paris"], (False, 0.0)),
    ("Paris", (False, 0.0)),
    (None, (False, 0.0)),
])
def test_score_multiple_choice(answer, expected):
    question = _question("multiple_choice", points=2, options=[
        {"text": "Paris", "is_correct": True},
        {"text": "Lyon", "is_correct": True},
        {"text": "Berlin", "is_correct": False},
    ])
    assert score_answer(question, answer) == expected


def test_score_true_false_and_short_answer():
    true_false = _question("true_false", correct_answer="true")
    assert score_answer(true_false, "TRUE ") == (True, 1.0)
    assert score_answer(true_false, False) == (False, 0.0)

    short = _question("short_answer", correct_answer="photosynthesis, Photo synthesis")
    assert score_answer(short, "  Photo Synthesis") == (True, 1.0)
    assert score_answer(short, "respiration") == (False, 0.0)
    assert score_answer(short, None) == (False, 0.0)


def test_essays_are_not_auto_graded():
    assert score_answer(_question("essay", points=5), "A long answer") == (None, 0.0)


def test_score_attempt_totals():
    questions = [
        _question("true_false", question_id=1, points=2, correct_answer="false"),
        _question("short_answer", question_id=2, points=3, correct_answer="seven"),
        _question("essay", question_id=3, points=5),
    ]
    result = score_attempt(questions, {1: "false", 3: "Essay text"}, passing_score=20)
    assert result["points_earned"] == 2.0
    assert result["points_possible"] == 10.0
    assert result["score"] == 20.0
    assert result["is_passing"] is True
    assert [answer["is_correct"] for answer in result["answers"]] == [True, False, None]


def test_best_attempts_ignores_unsubmitted():
    attempts = [
        SimpleNamespace(quiz_id=1, submitted_at=1, points_earned=3),
        SimpleNamespace(quiz_id=1, submitted_at=2, points_earned=5),
        SimpleNamespace(quiz_id=1, submitted_at=None, points_earned=9),
        SimpleNamespace(quiz_id=2, submitted_at=None, points_earned=4),
    ]
    best = best_attempts(attempts)
    assert list(best) == [1]
    assert best[1].points_earned == 5


def test_letter_for():
    assert letter_for(95, SCALE) == "A"
    assert letter_for(80, SCALE) == "B"
    assert letter_for(50, SCALE[:2]) == "B"
    assert letter_for(50, None) == "N/A"


def test_calculate_grade_unweighted():
    grade = calculate_grade(
        [{"category": "homework", "earned": 18, "possible": 20}, {"category": "exams", "earned": 30, "possible": 40}],
        scale=SCALE
    )
    assert grade["percentage"] == 80.0
    assert grade["letter"] == "B"
    assert (grade["earned"], grade["possible"]) == (48, 60)


def test_calculate_grade_weighted_ignores_unweighted_categories():
    items = [
        {"category": "exams", "earned": 45, "possible": 50},
        {"category": "homework", "earned": 8, "possible": 10},
        {"category": "uncategorized", "earned": 0, "possible": 50},
    ]
    grade = calculate_grade(items, weights={"exams": 60, "homework": 40, "projects": 50}, scale=SCALE)
    assert grade["percentage"] == 86.0
    assert grade["letter"] == "B"
    categories = {entry["category"]: entry for entry in grade["categories"]}
    assert categories["exams"]["percentage"] == 90.0
    assert categories["uncategorized"]["weight"] is None


def test_calculate_grade_without_work():
    grade = calculate_grade([], weights={"exams": 1})
    assert grade["percentage"] == 0.0
    assert grade["letter"] == "N/A"


def test_clamp_rubric_scores():
    rubric = SimpleNamespace(criteria=[SimpleNamespace(id=1, max_points=10), SimpleNamespace(id=2, max_points=5)])
    scores = [
        SimpleNamespace(criterion_id=1, score=12),
        SimpleNamespace(criterion_id=2, score=-1),
        SimpleNamespace(criterion_id=3, score=4),
    ]
    assert clamp_rubric_scores(rubric, scores) == {1: 10, 2: 0.0}


async def _course_with_student(client, teacher_headers, student_user, **course_fields):
    payload = {"name": "Literature", "code": "LIT-1"}
    payload.update(course_fields)
    course = (await client.post("/api/v1/lms/courses", headers=teacher_headers, json=payload)).json()
    await client.post(
        f"/api/v1/lms/courses/{course['id']}/enrollments", headers=teacher_headers,
        json={"student_ids": [student_user.student_profile.id]}
    )
    return course


async def _quiz(client, headers, **overrides):
    payload = {"title": "Unit quiz", "passing_score": 70}
    payload.update(overrides)
    quiz = (await client.post("/api/v1/lms/quizzes", headers=headers, json=payload)).json()
    questions = [
        {"question_type": "multiple_choice", "text": "2 + 2?", "points": 2, "options": [
            {"text": "3"}, {"text": "4", "is_correct": True}
        ]},
        {"question_type": "true_false", "text": "The earth is round", "correct_answer": "true"},
        {"question_type": "short_answer", "text": "Capital of France", "correct_answer": "paris"},
        {"question_type": "essay", "text": "Describe your summer", "points": 2},
    ]
    for question in questions:
        response = await client.post(f"/api/v1/lms/quizzes/{quiz['id']}/questions", headers=headers, json=question)
        assert response.status_code == 201, response.text
    return quiz


ANSWERS = {"2 + 2?": ["4"], "The earth is round": "True", "Capital of France": " PARIS ", "Describe your summer": "Hot"}


async def test_rubric_crud(client, teacher_headers, student_headers):
    created = await client.post("/api/v1/lms/rubrics", headers=teacher_headers, json={
        "title": "Essay rubric", "criteria": [{"title": "Thesis", "max_points": 10}, {"title": "Style", "max_points": 5}]
    })
    assert created.status_code == 201
    rubric = created.json()
    assert [(c["title"], c["order"]) for c in rubric["criteria"]] == [("Thesis", 0), ("Style", 1)]

    updated = await client.patch(f"/api/v1/lms/rubrics/{rubric['id']}", headers=teacher_headers, json={
        "criteria": [{"title": "Overall", "max_points": 20}]
    })
    assert [c["title"] for c in updated.json()["criteria"]] == ["Overall"]

    forbidden = await client.post("/api/v1/lms/rubrics", headers=student_headers, json={
        "title": "Mine", "criteria": [{"title": "Effort", "max_points": 1}]
    })
    assert forbidden.status_code == 403

    deleted = await client.delete(f"/api/v1/lms/rubrics/{rubric['id']}", headers=teacher_headers)
    assert deleted.status_code == 204


async def test_assignment_submission_and_grading(client, teacher_headers, student_headers, student_user):
    course = await _course_with_student(client, teacher_headers, student_user)
    assignment = (await client.post("/api/v1/lms/assignments", headers=teacher_headers, json={
        "title": "Book report", "course_id": course["id"], "max_points": 50
    })).json()
    url = f"/api/v1/lms/assignments/{assignment['id']}/submissions"

    empty = await client.post(url, headers=student_headers, json={})
    assert empty.status_code == 422

    submitted = await client.post(url, headers=student_headers, json={"content": "First draft"})
    assert submitted.status_code == 200
    submission = submitted.json()
    assert submission["status"] == "submitted"
    assert submission["is_late"] is False

    resubmitted = await client.post(url, headers=student_headers, json={"file_url": "https://files.example.org/r.pdf"})
    assert resubmitted.json()["id"] == submission["id"]
    assert resubmitted.json()["content"] is None

    too_high = await client.post(f"{url}/{submission['id']}/grade", headers=teacher_headers, json={"grade": 51})
    assert too_high.status_code == 400

    graded = await client.post(
        f"{url}/{submission['id']}/grade", headers=teacher_headers, json={"grade": 42, "feedback": "Well argued"}
    )
    assert graded.json()["status"] == "graded"
    assert graded.json()["grade"] == 42

    mine = await client.get(f"{url}/me", headers=student_headers)
    assert mine.json()["feedback"] == "Well argued"

    closed = await client.post(url, headers=student_headers, json={"content": "Late fix"})
    assert closed.status_code == 400

    listed = await client.get(url, headers=teacher_headers)
    assert len(listed.json()) == 1


async def test_submission_requires_enrollment(client, teacher_headers, student_headers):
    course = (await client.post(
        "/api/v1/lms/courses", headers=teacher_headers, json={"name": "Art", "code": "ART-1"}
    )).json()
    assignment = (await client.post("/api/v1/lms/assignments", headers=teacher_headers, json={
        "title": "Sketch", "course_id": course["id"]
    })).json()
    response = await client.post(
        f"/api/v1/lms/assignments/{assignment['id']}/submissions", headers=student_headers, json={"content": "x"}
    )
    assert response.status_code == 403


async def test_rubric_grading_clamps_scores(client, teacher_headers, student_headers, student_user):
    course = await _course_with_student(client, teacher_headers, student_user)
    rubric = (await client.post("/api/v1/lms/rubrics", headers=teacher_headers, json={
        "title": "Essay", "criteria": [{"title": "Thesis", "max_points": 10}, {"title": "Evidence", "max_points": 5}]
    })).json()
    thesis, evidence = (criterion["id"] for criterion in rubric["criteria"])

    plain = (await client.post("/api/v1/lms/assignments", headers=teacher_headers, json={
        "title": "No rubric", "course_id": course["id"]
    })).json()
    assignment = (await client.post("/api/v1/lms/assignments", headers=teacher_headers, json={
        "title": "Essay", "course_id": course["id"], "rubric_id": rubric["id"], "max_points": 15
    })).json()
    assert assignment["rubric"]["title"] == "Essay"

    submission = (await client.post(
        f"/api/v1/lms/assignments/{assignment['id']}/submissions", headers=student_headers, json={"content": "Essay"}
    )).json()
    url = f"/api/v1/lms/assignments/{assignment['id']}/submissions/{submission['id']}/rubric-grade"
    graded = await client.post(url, headers=teacher_headers, json={
        "scores": [
            {"criterion_id": thesis, "score": 12, "comment": "Sharp"},
            {"criterion_id": evidence, "score": 3},
            {"criterion_id": 9999, "score": 5},
        ],
        "feedback": "Good work"
    })
    body = graded.json()
    assert body["grade"] == 13
    assert body["status"] == "graded"
    assert {score["criterion_id"]: score["score"] for score in body["rubric_scores"]} == {thesis: 10, evidence: 3}

    regraded = await client.post(url, headers=teacher_headers, json={"scores": [{"criterion_id": evidence, "score": 5}]})
    assert regraded.json()["grade"] == 15
    assert len(regraded.json()["rubric_scores"]) == 2

    plain_submission = (await client.post(
        f"/api/v1/lms/assignments/{plain['id']}/submissions", headers=student_headers, json={"content": "x"}
    )).json()
    no_rubric = await client.post(
        f"/api/v1/lms/assignments/{plain['id']}/submissions/{plain_submission['id']}/rubric-grade",
        headers=teacher_headers, json={"scores": [{"criterion_id": thesis, "score": 1}]}
    )
    assert no_rubric.status_code == 400


async def test_invalid_questions_are_rejected(client, teacher_headers):
    quiz = (await client.post("/api/v1/lms/quizzes", headers=teacher_headers, json={"title": "Q"})).json()
    url = f"/api/v1/lms/quizzes/{quiz['id']}/questions"
    for payload in (
        {"question_type": "multiple_choice", "text": "?", "options": [{"text": "a", "is_correct": True}]},
        {"question_type": "multiple_choice", "text": "?", "options": [{"text": "a"}, {"text": "b"}]},
        {"question_type": "true_false", "text": "?", "correct_answer": "maybe"},
        {"question_type": "short_answer", "text": "?"},
    ):
        response = await client.post(url, headers=teacher_headers, json=payload)
        assert response.status_code == 422, payload


async def test_quiz_attempt_flow(client, teacher_headers, student_headers, make_user, headers_for):
    quiz = await _quiz(client, teacher_headers, max_attempts=1)
    start_url = f"/api/v1/lms/quizzes/{quiz['id']}/attempts"

    hidden = await client.post(start_url, headers=student_headers)
    assert hidden.status_code == 404

    await client.patch(f"/api/v1/lms/quizzes/{quiz['id']}", headers=teacher_headers, json={"is_published": True})
    started = (await client.post(start_url, headers=student_headers)).json()
    assert started["resumed"] is False
    assert [question["text"] for question in started["questions"]] == list(ANSWERS)
    assert started["questions"][0]["options"] == ["3", "4"]
    assert "correct_answer" not in started["questions"][1]

    resumed = (await client.post(start_url, headers=student_headers)).json()
    assert resumed["resumed"] is True
    assert resumed["attempt_id"] == started["attempt_id"]

    other = await make_user("Student")
    other_headers = headers_for(other)
    attempt_url = f"/api/v1/lms/attempts/{started['attempt_id']}"
    assert (await client.get(attempt_url, headers=other_headers)).status_code == 403
    stolen = await client.post(f"{attempt_url}/submit", headers=other_headers, json={"answers": []})
    assert stolen.status_code == 403

    answers = [
        {"question_id": question["id"], "answer": ANSWERS[question["text"]]}
        for question in started["questions"]
    ]
    result = await client.post(f"{attempt_url}/submit", headers=student_headers, json={"answers": answers})
    body = result.json()
    assert body["points_earned"] == 4
    assert body["points_possible"] == 6
    assert body["score"] == 66.67
    assert body["is_passing"] is False
    assert [answer["is_correct"] for answer in body["answers"]] == [True, True, True, None]

    again = await client.post(f"{attempt_url}/submit", headers=student_headers, json={"answers": answers})
    assert again.status_code == 400

    exhausted = await client.post(start_url, headers=student_headers)
    assert exhausted.status_code == 403

    staff_view = await client.get(attempt_url, headers=teacher_headers)
    assert staff_view.json()["submitted_at"] is not None
    attempts = await client.get(f"{start_url}", headers=teacher_headers)
    assert len(attempts.json()) == 1


async def test_time_spent_is_whole_seconds(client, db_session, teacher_headers, student_headers):
    quiz = await _quiz(client, teacher_headers, is_published=True)
    started = (await client.post(f"/api/v1/lms/quizzes/{quiz['id']}/attempts", headers=student_headers)).json()

    attempt = await db_session.get(QuizAttempt, started["attempt_id"])
    attempt.started_at = utcnow() - timedelta(seconds=90, milliseconds=750)
    await db_session.commit()

    answers = [{"question_id": q["id"], "answer": ANSWERS[q["text"]]} for q in started["questions"]]
    result = await client.post(
        f"/api/v1/lms/attempts/{started['attempt_id']}/submit", headers=student_headers, json={"answers": answers}
    )
    spent = result.json()["time_spent_seconds"]
    assert isinstance(spent, int)
    assert 90 <= spent < 100


async def test_students_cannot_read_answer_keys(client, teacher_headers, student_headers):
    quiz = await _quiz(client, teacher_headers, is_published=True)
    response = await client.get(f"/api/v1/lms/quizzes/{quiz['id']}", headers=student_headers)
    assert response.status_code == 403

    staff = await client.get(f"/api/v1/lms/quizzes/{quiz['id']}", headers=teacher_headers)
    assert staff.json()["questions"][1]["correct_answer"] == "true"


async def test_reorder_questions(client, teacher_headers):
    quiz = await _quiz(client, teacher_headers)
    ids = [question["id"] for question in (await client.get(
        f"/api/v1/lms/quizzes/{quiz['id']}", headers=teacher_headers
    )).json()["questions"]]
    reordered = await client.put(
        f"/api/v1/lms/quizzes/{quiz['id']}/questions/order", headers=teacher_headers, json={"ids": ids[::-1]}
    )
    assert [question["id"] for question in reordered.json()["questions"]] == ids[::-1]


async def test_course_grades_and_gradebook(client, teacher_headers, student_headers, student_user):
    course = await _course_with_student(client, teacher_headers, student_user, grading_scale=SCALE)
    assignment = (await client.post("/api/v1/lms/assignments", headers=teacher_headers, json={
        "title": "Essay", "course_id": course["id"]
    })).json()
    submission = (await client.post(
        f"/api/v1/lms/assignments/{assignment['id']}/submissions", headers=student_headers, json={"content": "x"}
    )).json()
    await client.post(
        f"/api/v1/lms/assignments/{assignment['id']}/submissions/{submission['id']}/grade",
        headers=teacher_headers, json={"grade": 85}
    )

    quiz = await _quiz(client, teacher_headers, course_id=course["id"], is_published=True)
    started = (await client.post(f"/api/v1/lms/quizzes/{quiz['id']}/attempts", headers=student_headers)).json()
    answers = [{"question_id": q["id"], "answer": ANSWERS[q["text"]]} for q in started["questions"]]
    await client.post(
        f"/api/v1/lms/attempts/{started['attempt_id']}/submit", headers=student_headers, json={"answers": answers}
    )

    grade = (await client.get(f"/api/v1/lms/courses/{course['id']}/grades", headers=student_headers)).json()
    assert grade["earned"] == 89
    assert grade["possible"] == 106
    assert grade["percentage"] == 84.0
    assert grade["letter"] == "B"
    assert grade["student_name"] == student_user.full_name

    staff_missing_id = await client.get(f"/api/v1/lms/courses/{course['id']}/grades", headers=teacher_headers)
    assert staff_missing_id.status_code == 400

    book = (await client.get(f"/api/v1/lms/courses/{course['id']}/gradebook", headers=teacher_headers)).json()
    assert [student["percentage"] for student in book["students"]] == [84.0]

    export = await client.get(f"/api/v1/lms/courses/{course['id']}/gradebook.csv", headers=teacher_headers)
    assert export.headers["content-type"].startswith("text/csv")
    assert 'filename="gradebook-LIT-1.csv"' in export.headers["content-disposition"]
    header, row = export.text.strip().split("\n")
    assert header == "Student Name,Email,[A] Essay,[Q] Unit quiz,Average (%)"
    assert row.startswith(f"{student_user.full_name},{student_user.email},85,66.7,")
