import pytest


@pytest.fixture
async def course(client, teacher_headers, student_user):
    course = (await client.post(
        "/api/v1/lms/courses", headers=teacher_headers, json={"name": "History", "code": "HIS-1"}
    )).json()
    await client.post(
        f"/api/v1/lms/courses/{course['id']}/enrollments", headers=teacher_headers,
        json={"student_ids": [student_user.student_profile.id]}
    )
    return course


async def _thread(client, headers, course_id, **overrides):
    payload = {"title": "Essay question", "content": "When is the essay due?"}
    payload.update(overrides)
    response = await client.post(f"/api/v1/lms/courses/{course_id}/threads", headers=headers, json=payload)
    assert response.status_code == 201, response.text
    return response.json()


async def test_thread_with_first_post(client, course, student_headers, student_user):
    thread = await _thread(client, student_headers, course["id"])
    assert thread["creator_id"] == student_user.id
    assert thread["post_count"] == 1
    assert thread["posts"][0]["content"] == "When is the essay due?"


async def test_only_participants_can_post(client, course, make_user, headers_for):
    outsider = await make_user("Student")
    response = await client.post(
        f"/api/v1/lms/courses/{course['id']}/threads", headers=headers_for(outsider),
        json={"title": "Hi", "content": "Can I join?"}
    )
    assert response.status_code == 403


async def test_private_threads(client, course, student_headers, teacher_headers, make_user, headers_for):
    await _thread(client, teacher_headers, course["id"], title="Announcements")
    private = await _thread(client, student_headers, course["id"], title="Grade query", is_public=False)

    classmate = await make_user("Student")
    classmate_headers = headers_for(classmate)
    listed = await client.get(f"/api/v1/lms/courses/{course['id']}/threads", headers=classmate_headers)
    assert [thread["title"] for thread in listed.json()] == ["Announcements"]
    hidden = await client.get(f"/api/v1/lms/threads/{private['id']}", headers=classmate_headers)
    assert hidden.status_code == 404

    staff = await client.get(f"/api/v1/lms/courses/{course['id']}/threads", headers=teacher_headers)
    assert len(staff.json()) == 2


async def test_pinned_threads_come_first(client, course, student_headers, teacher_headers):
    first = await _thread(client, student_headers, course["id"], title="Old question")
    await _thread(client, student_headers, course["id"], title="New question")

    denied = await client.patch(
        f"/api/v1/lms/threads/{first['id']}", headers=student_headers, json={"is_pinned": True}
    )
    assert denied.status_code == 403

    pinned = await client.patch(
        f"/api/v1/lms/threads/{first['id']}", headers=teacher_headers, json={"is_pinned": True}
    )
    assert pinned.json()["is_pinned"] is True

    listed = await client.get(f"/api/v1/lms/courses/{course['id']}/threads", headers=student_headers)
    assert [thread["title"] for thread in listed.json()] == ["Old question", "New question"]


async def test_replies_and_locking(client, course, student_headers, teacher_headers):
    thread = await _thread(client, student_headers, course["id"])
    posts_url = f"/api/v1/lms/threads/{thread['id']}/posts"

    reply = await client.post(posts_url, headers=teacher_headers, json={"content": "Friday"})
    assert reply.status_code == 201

    not_mine = await client.delete(f"{posts_url}/{reply.json()['id']}", headers=student_headers)
    assert not_mine.status_code == 403

    await client.patch(f"/api/v1/lms/threads/{thread['id']}", headers=teacher_headers, json={"is_locked": True})
    locked = await client.post(posts_url, headers=student_headers, json={"content": "Thanks!"})
    assert locked.status_code == 403

    posts = await client.get(posts_url, headers=student_headers)
    assert [post["content"] for post in posts.json()] == ["When is the essay due?", "Friday"]

    removed = await client.delete(f"{posts_url}/{reply.json()['id']}", headers=teacher_headers)
    assert removed.status_code == 204


async def test_thread_deletion_rights(client, course, student_headers, teacher_headers, make_user, headers_for):
    thread = await _thread(client, student_headers, course["id"])

    classmate = await make_user("Student")
    denied = await client.delete(f"/api/v1/lms/threads/{thread['id']}", headers=headers_for(classmate))
    assert denied.status_code == 403

    deleted = await client.delete(f"/api/v1/lms/threads/{thread['id']}", headers=teacher_headers)
    assert deleted.status_code == 204
