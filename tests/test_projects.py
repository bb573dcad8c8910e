from types import SimpleNamespace

import pytest

from portal.services.task_service import apply_move


def _board(**columns):
    tasks = []
    for status, names in columns.items():
        for order, name in enumerate(names):
            tasks.append(SimpleNamespace(id=len(tasks) + 1, name=name, status=status, kanban_order=order))
    return tasks


def _column(tasks, status):
    return [task.name for task in sorted(
        (task for task in tasks if task.status == status), key=lambda task: task.kanban_order
    )]


def test_apply_move_between_columns():
    tasks = _board(todo=["a", "b", "c"], in_progress=["d"])
    moving = tasks[1]
    apply_move(tasks, moving, "in_progress", 0)
    assert _column(tasks, "in_progress") == ["b", "d"]
    assert _column(tasks, "todo") == ["a", "c"]
    assert [task.kanban_order for task in tasks if task.status == "todo"] == [0, 1]


def test_apply_move_within_column_and_clamps_position():
    tasks = _board(todo=["a", "b", "c"])
    apply_move(tasks, tasks[2], "todo", 0)
    assert _column(tasks, "todo") == ["c", "a", "b"]

    apply_move(tasks, tasks[2], "todo", 99)
    assert _column(tasks, "todo") == ["a", "b", "c"]
    assert sorted(task.kanban_order for task in tasks) == [0, 1, 2]


@pytest.fixture
async def team(client, admin_headers, teacher_user, student_user):
    team = (await client.post("/api/v1/teams", headers=admin_headers, json={"name": "Science Fair"})).json()
    url = f"/api/v1/teams/{team['id']}/members"
    await client.post(url, headers=admin_headers, json={"user_id": teacher_user.id, "role": "mentor"})
    await client.post(url, headers=admin_headers, json={"user_id": student_user.id})
    return team


@pytest.fixture
async def project(client, team, teacher_headers):
    response = await client.post(
        f"/api/v1/teams/{team['id']}/projects", headers=teacher_headers, json={"name": "Volcano Model"}
    )
    assert response.status_code == 201, response.text
    return response.json()


async def _task(client, headers, project_id, **overrides):
    payload = {"title": "Research"}
    payload.update(overrides)
    response = await client.post(f"/api/v1/projects/{project_id}/tasks", headers=headers, json=payload)
    assert response.status_code == 201, response.text
    return response.json()


async def test_project_lifecycle(client, team, project, student_headers, teacher_headers, parent_headers):
    assert project["slug"] == "volcano-model"
    assert project["status"] == "planning"

    listed = await client.get(f"/api/v1/teams/{team['id']}/projects", headers=teacher_headers)
    assert [item["id"] for item in listed.json()] == [project["id"]]

    outsider = await client.get(f"/api/v1/projects/{project['id']}", headers=parent_headers)
    assert outsider.status_code == 403

    updated = await client.patch(
        f"/api/v1/projects/{project['id']}", headers=teacher_headers, json={"status": "active", "priority": "high"}
    )
    assert (updated.json()["status"], updated.json()["priority"]) == ("active", "high")

    duplicate = await client.post(
        f"/api/v1/teams/{team['id']}/projects", headers=teacher_headers, json={"name": "Other", "slug": "volcano-model"}
    )
    assert duplicate.status_code == 409

    member_delete = await client.delete(f"/api/v1/projects/{project['id']}", headers=student_headers)
    assert member_delete.status_code == 403

    mentor_delete = await client.delete(f"/api/v1/projects/{project['id']}", headers=teacher_headers)
    assert mentor_delete.status_code == 204


async def test_project_dates_are_validated(client, team, teacher_headers):
    response = await client.post(f"/api/v1/teams/{team['id']}/projects", headers=teacher_headers, json={
        "name": "Backwards", "start_date": "2024-10-01T00:00:00", "end_date": "2024-09-01T00:00:00"
    })
    assert response.status_code == 422


async def test_milestones(client, project, teacher_headers, student_headers):
    url = f"/api/v1/projects/{project['id']}/milestones"
    first = (await client.post(url, headers=teacher_headers, json={"title": "Design"})).json()
    second = (await client.post(url, headers=teacher_headers, json={"title": "Build"})).json()
    assert (first["order"], second["order"]) == (0, 1)

    toggled = await client.post(f"{url}/{first['id']}/toggle", headers=teacher_headers)
    assert toggled.json()["is_completed"] is True
    assert toggled.json()["completed_at"] is not None

    reopened = await client.patch(f"{url}/{first['id']}", headers=teacher_headers, json={"is_completed": False})
    assert reopened.json()["completed_at"] is None

    deleted = await client.delete(f"{url}/{second['id']}", headers=teacher_headers)
    assert deleted.status_code == 204
    remaining = await client.get(url, headers=student_headers)
    assert [milestone["title"] for milestone in remaining.json()] == ["Design"]


async def test_plain_members_cannot_manage_projects_or_milestones(client, team, project, student_headers, teacher_headers):
    created = await client.post(
        f"/api/v1/teams/{team['id']}/projects", headers=student_headers, json={"name": "Solo Project"}
    )
    assert created.status_code == 403

    updated = await client.patch(f"/api/v1/projects/{project['id']}", headers=student_headers, json={"status": "active"})
    assert updated.status_code == 403

    url = f"/api/v1/projects/{project['id']}/milestones"
    assert (await client.post(url, headers=student_headers, json={"title": "Design"})).status_code == 403

    milestone = (await client.post(url, headers=teacher_headers, json={"title": "Design"})).json()
    assert (await client.post(f"{url}/{milestone['id']}/toggle", headers=student_headers)).status_code == 403
    assert (await client.patch(f"{url}/{milestone['id']}", headers=student_headers, json={"title": "X"})).status_code == 403
    assert (await client.delete(f"{url}/{milestone['id']}", headers=student_headers)).status_code == 403

    # members still read the project and work on its board
    assert (await client.get(f"/api/v1/projects/{project['id']}", headers=student_headers)).status_code == 200
    await _task(client, student_headers, project["id"], title="Collect rocks")


async def test_project_files(client, project, student_headers, student_user):
    url = f"/api/v1/projects/{project['id']}/files"
    added = await client.post(url, headers=student_headers, json={
        "name": "plan.pdf", "url": "https://files.example.org/plan.pdf", "size": 2048, "mime_type": "application/pdf"
    })
    assert added.status_code == 201
    assert added.json()["uploaded_by_id"] == student_user.id

    listed = await client.get(url, headers=student_headers)
    assert [record["name"] for record in listed.json()] == ["plan.pdf"]

    deleted = await client.delete(f"{url}/{added.json()['id']}", headers=student_headers)
    assert deleted.status_code == 204
    missing = await client.delete(f"{url}/{added.json()['id']}", headers=student_headers)
    assert missing.status_code == 404


async def test_task_board(client, project, student_headers, student_user):
    first = await _task(client, student_headers, project["id"], title="Research", assignee_ids=[student_user.id])
    second = await _task(client, student_headers, project["id"], title="Sketch")
    third = await _task(client, student_headers, project["id"], title="Buy materials")
    assert [task["kanban_order"] for task in (first, second, third)] == [0, 1, 2]
    assert first["assignee_ids"] == [student_user.id]

    moved = await client.post(
        f"/api/v1/tasks/{second['id']}/move", headers=student_headers, json={"status": "done", "position": 0}
    )
    assert moved.json()["status"] == "done"
    assert moved.json()["completed_at"] is not None

    board = await client.get(f"/api/v1/projects/{project['id']}/tasks", headers=student_headers)
    assert [(task["title"], task["status"], task["kanban_order"]) for task in board.json()] == [
        ("Research", "todo", 0),
        ("Buy materials", "todo", 1),
        ("Sketch", "done", 0),
    ]

    activity = await client.get(f"/api/v1/tasks/{second['id']}/activity", headers=student_headers)
    assert [entry["action"] for entry in activity.json()] == ["created", "status_changed"]
    assert (activity.json()[1]["old_value"], activity.json()[1]["new_value"]) == ("todo", "done")


async def test_task_validation(client, project, student_headers):
    bad_assignee = await client.post(f"/api/v1/projects/{project['id']}/tasks", headers=student_headers, json={
        "title": "x", "assignee_ids": [9999]
    })
    assert bad_assignee.status_code == 400

    bad_milestone = await client.post(f"/api/v1/projects/{project['id']}/tasks", headers=student_headers, json={
        "title": "x", "milestone_id": 9999
    })
    assert bad_milestone.status_code == 400


async def test_task_updates_and_assignees(client, project, student_headers, student_user, teacher_user):
    task = await _task(client, student_headers, project["id"], assignee_ids=[student_user.id])
    updated = await client.patch(f"/api/v1/tasks/{task['id']}", headers=student_headers, json={
        "description": "Find three sources", "assignee_ids": [teacher_user.id, student_user.id]
    })
    assert updated.json()["description"] == "Find three sources"
    assert sorted(updated.json()["assignee_ids"]) == sorted([student_user.id, teacher_user.id])

    deleted = await client.delete(f"/api/v1/tasks/{task['id']}", headers=student_headers)
    assert deleted.status_code == 204


async def test_checklist_progress(client, project, student_headers):
    task = await _task(client, student_headers, project["id"])
    url = f"/api/v1/tasks/{task['id']}/checklist"

    await client.post(url, headers=student_headers, json={"content": "Find sources"})
    added = await client.post(url, headers=student_headers, json={"content": "Write summary"})
    items = added.json()["checklist_items"]
    assert [(item["content"], item["order"]) for item in items] == [("Find sources", 0), ("Write summary", 1)]
    assert added.json()["progress"] == 0

    toggled = await client.post(f"{url}/{items[0]['id']}/toggle", headers=student_headers)
    assert toggled.json()["progress"] == 50

    renamed = await client.patch(f"{url}/{items[1]['id']}", headers=student_headers, json={"content": "Summarise"})
    assert renamed.json()["checklist_items"][1]["content"] == "Summarise"

    removed = await client.delete(f"{url}/{items[1]['id']}", headers=student_headers)
    assert removed.json()["progress"] == 100


async def test_dashboard(client, project, student_headers, student_user):
    await _task(client, student_headers, project["id"], assignee_ids=[student_user.id], due_date="2020-01-01T00:00:00")
    await _task(client, student_headers, project["id"], assignee_ids=[student_user.id], status="in_progress")
    await _task(client, student_headers, project["id"], assignee_ids=[student_user.id], status="done")
    await _task(client, student_headers, project["id"], title="Unassigned")

    stats = (await client.get("/api/v1/dashboard", headers=student_headers)).json()
    assert stats["team_count"] == 1
    assert stats["project_count"] == 1
    assert stats["open_tasks"] == 2
    assert stats["overdue_tasks"] == 1
    assert stats["tasks_by_status"]["todo"] == 1
    assert stats["tasks_by_status"]["done"] == 1
    assert stats["tasks_by_status"]["blocked"] == 0
