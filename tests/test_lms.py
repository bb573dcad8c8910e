from types import SimpleNamespace

from portal.services.course_service import calculate_progress


def _course(*modules):
    return SimpleNamespace(id=1, modules=list(modules))


def _module(module_id, lessons, is_published=True):
    return SimpleNamespace(id=module_id, title=f"Module {module_id}", is_published=is_published, lessons=lessons)


def _lesson(lesson_id, is_published=True):
    return SimpleNamespace(id=lesson_id, is_published=is_published)


def test_calculate_progress_ignores_unpublished_content():
    course = _course(
        _module(1, [_lesson(1), _lesson(2), _lesson(3, is_published=False)]),
        _module(2, [_lesson(4)], is_published=False),
        _module(3, []),
    )
    progress = calculate_progress(course, {1, 3, 4})
    assert progress["total_lessons"] == 2
    assert progress["completed_lessons"] == 1
    assert progress["percent"] == 50
    assert progress["modules"] == [
        {"module_id": 1, "title": "Module 1", "percent": 50},
        {"module_id": 3, "title": "Module 3", "percent": 0},
    ]


def test_calculate_progress_empty_course():
    assert calculate_progress(_course(), set())["percent"] == 0


async def _create_course(client, headers, **overrides):
    payload = {"name": "Algebra I", "code": "MATH-101"}
    payload.update(overrides)
    response = await client.post("/api/v1/lms/courses", headers=headers, json=payload)
    assert response.status_code == 201, response.text
    return response.json()


async def _published_course(client, headers, lessons=2):
    """Course with one published module holding published lessons."""
    course = await _create_course(client, headers)
    module = (await client.post(
        f"/api/v1/lms/courses/{course['id']}/modules", headers=headers,
        json={"title": "Foundations", "is_published": True}
    )).json()
    lesson_ids = []
    for index in range(lessons):
        lesson = (await client.post(
            f"/api/v1/lms/modules/{module['id']}/lessons", headers=headers,
            json={"title": f"Lesson {index + 1}", "is_published": True}
        )).json()
        lesson_ids.append(lesson["id"])
    return course, module, lesson_ids


async def test_create_course_defaults_instructor(client, teacher_headers, teacher_user):
    course = await _create_course(client, teacher_headers)
    assert course["instructor_id"] == teacher_user.id
    assert course["modules"] == []

    duplicate = await client.post(
        "/api/v1/lms/courses", headers=teacher_headers, json={"name": "Copy", "code": "MATH-101"}
    )
    assert duplicate.status_code == 409


async def test_students_cannot_create_courses(client, student_headers):
    response = await client.post(
        "/api/v1/lms/courses", headers=student_headers, json={"name": "Algebra", "code": "X"}
    )
    assert response.status_code == 403


async def test_grading_weights_cannot_be_negative(client, teacher_headers):
    response = await client.post("/api/v1/lms/courses", headers=teacher_headers, json={
        "name": "Physics", "code": "PHY-1", "grading_weights": {"exams": -1}
    })
    assert response.status_code == 422


async def test_modules_and_lessons_are_ordered(client, teacher_headers):
    course = await _create_course(client, teacher_headers)
    first = (await client.post(
        f"/api/v1/lms/courses/{course['id']}/modules", headers=teacher_headers, json={"title": "Week 1"}
    )).json()
    second = (await client.post(
        f"/api/v1/lms/courses/{course['id']}/modules", headers=teacher_headers, json={"title": "Week 2"}
    )).json()
    assert (first["order"], second["order"]) == (0, 1)

    lesson = await client.post(
        f"/api/v1/lms/modules/{first['id']}/lessons", headers=teacher_headers,
        json={"title": "Intro video", "content_type": "video", "resource_url": "https://videos.example.org/1"}
    )
    assert lesson.status_code == 201
    assert lesson.json()["content_type"] == "video"

    reordered = await client.put(
        f"/api/v1/lms/courses/{course['id']}/modules/order", headers=teacher_headers,
        json={"ids": [second["id"], first["id"]]}
    )
    assert [module["title"] for module in reordered.json()["modules"]] == ["Week 2", "Week 1"]
    assert len(reordered.json()["modules"][1]["lessons"]) == 1

    unknown = await client.put(
        f"/api/v1/lms/courses/{course['id']}/modules/order", headers=teacher_headers, json={"ids": [999]}
    )
    assert unknown.status_code == 400


async def test_delete_module_removes_lessons(client, teacher_headers):
    course, module, lesson_ids = await _published_course(client, teacher_headers)
    deleted = await client.delete(f"/api/v1/lms/modules/{module['id']}", headers=teacher_headers)
    assert deleted.status_code == 204

    missing = await client.get(f"/api/v1/lms/lessons/{lesson_ids[0]}", headers=teacher_headers)
    assert missing.status_code == 404


async def test_enrollment_skips_existing_students(client, teacher_headers, student_user, make_user):
    course = await _create_course(client, teacher_headers)
    other = await make_user("Student")
    url = f"/api/v1/lms/courses/{course['id']}/enrollments"

    first = await client.post(url, headers=teacher_headers, json={"student_ids": [student_user.student_profile.id]})
    assert first.status_code == 201
    assert len(first.json()) == 1
    assert first.json()[0]["status"] == "active"

    second = await client.post(url, headers=teacher_headers, json={
        "student_ids": [student_user.student_profile.id, other.student_profile.id]
    })
    assert len(second.json()) == 2

    unknown = await client.post(url, headers=teacher_headers, json={"student_ids": [4040]})
    assert unknown.status_code == 400

    enrollment_id = second.json()[0]["id"]
    updated = await client.patch(f"{url}/{enrollment_id}", headers=teacher_headers, json={"status": "completed"})
    assert updated.json()["status"] == "completed"

    removed = await client.delete(f"{url}/{enrollment_id}", headers=teacher_headers)
    assert removed.status_code == 204
    remaining = await client.get(url, headers=teacher_headers)
    assert len(remaining.json()) == 1


async def test_progress_requires_enrollment(client, teacher_headers, student_headers, student_user):
    course, _, lesson_ids = await _published_course(client, teacher_headers)

    blocked = await client.put(
        f"/api/v1/lms/lessons/{lesson_ids[0]}/progress", headers=student_headers, json={"status": "completed"}
    )
    assert blocked.status_code == 403

    await client.post(
        f"/api/v1/lms/courses/{course['id']}/enrollments", headers=teacher_headers,
        json={"student_ids": [student_user.student_profile.id]}
    )
    done = await client.put(
        f"/api/v1/lms/lessons/{lesson_ids[0]}/progress", headers=student_headers, json={"status": "completed"}
    )
    assert done.status_code == 200
    assert done.json()["completed_at"] is not None

    progress = await client.get(f"/api/v1/lms/courses/{course['id']}/progress", headers=student_headers)
    body = progress.json()
    assert body["student_id"] == student_user.student_profile.id
    assert (body["completed_lessons"], body["total_lessons"], body["percent"]) == (1, 2, 50)


async def test_staff_progress_needs_student_id(client, teacher_headers, student_user):
    course, _, _ = await _published_course(client, teacher_headers)
    url = f"/api/v1/lms/courses/{course['id']}/progress"

    missing = await client.get(url, headers=teacher_headers)
    assert missing.status_code == 400

    response = await client.get(url, headers=teacher_headers, params={"student_id": student_user.student_profile.id})
    assert response.json()["percent"] == 0


async def test_teachers_cannot_record_progress(client, teacher_headers):
    _, _, lesson_ids = await _published_course(client, teacher_headers, lessons=1)
    response = await client.put(
        f"/api/v1/lms/lessons/{lesson_ids[0]}/progress", headers=teacher_headers, json={"status": "completed"}
    )
    assert response.status_code == 403


async def test_learning_path_progress(client, teacher_headers, student_headers, student_user):
    course, _, lesson_ids = await _published_course(client, teacher_headers, lessons=1)
    other = await _create_course(client, teacher_headers, name="Geometry", code="MATH-102")

    created = await client.post("/api/v1/lms/learning-paths", headers=teacher_headers, json={
        "name": "Maths Foundations",
        "is_published": True,
        "steps": [{"course_id": course["id"]}, {"course_id": other["id"], "is_required": False}],
    })
    assert created.status_code == 201
    path = created.json()
    assert path["slug"] == "maths-foundations"
    assert [step["order"] for step in path["steps"]] == [0, 1]

    await client.post(
        f"/api/v1/lms/courses/{course['id']}/enrollments", headers=teacher_headers,
        json={"student_ids": [student_user.student_profile.id]}
    )
    await client.put(
        f"/api/v1/lms/lessons/{lesson_ids[0]}/progress", headers=student_headers, json={"status": "completed"}
    )

    progress = await client.get(f"/api/v1/lms/learning-paths/{path['id']}/progress", headers=student_headers)
    assert progress.json() == {
        "path_id": path["id"],
        "student_id": student_user.student_profile.id,
        "completed_steps": 1,
        "total_steps": 2,
        "percent": 50,
        "completed_course_ids": [course["id"]],
    }


async def test_learning_path_visibility_and_validation(client, teacher_headers, student_headers):
    await client.post("/api/v1/lms/learning-paths", headers=teacher_headers, json={"name": "Draft path"})
    listed = await client.get("/api/v1/lms/learning-paths", headers=student_headers)
    assert listed.json() == []

    staff = await client.get("/api/v1/lms/learning-paths", headers=teacher_headers)
    assert [path["name"] for path in staff.json()] == ["Draft path"]

    bad = await client.post("/api/v1/lms/learning-paths", headers=teacher_headers, json={
        "name": "Broken", "steps": [{"course_id": 999}]
    })
    assert bad.status_code == 400

    path_id = staff.json()[0]["id"]
    deleted = await client.delete(f"/api/v1/lms/learning-paths/{path_id}", headers=teacher_headers)
    assert deleted.status_code == 204
