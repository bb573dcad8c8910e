from datetime import timedelta

import pytest

from portal.utils.dates import utcnow


@pytest.fixture
async def family(db_session, parent_user, student_user):
    """Link the student to the parent."""
    student_user.student_profile.parent_id = parent_user.parent_profile.id
    await db_session.commit()
    return parent_user, student_user


async def _invoice(client, admin_headers, parent_id):
    response = await client.post("/api/v1/finance/invoices", headers=admin_headers, json={
        "parent_id": parent_id,
        "due_date": (utcnow() + timedelta(days=14)).isoformat(),
        "items": [{"description": "Tuition", "quantity": 1, "unit_price": 300}],
    })
    assert response.status_code == 201, response.text
    return response.json()


async def test_parent_lists_children(client, family, parent_headers):
    _, student = family
    children = (await client.get("/api/v1/parent/children", headers=parent_headers)).json()
    assert [child["id"] for child in children] == [student.student_profile.id]
    assert children[0]["user"]["email"] == "student@riverside.org"


async def test_parent_portal_is_parents_only(client, student_headers, admin_headers):
    assert (await client.get("/api/v1/parent/children", headers=student_headers)).status_code == 403
    assert (await client.get("/api/v1/parent/invoices", headers=admin_headers)).status_code == 403


async def test_parent_adds_a_child(client, family, parent_headers):
    created = await client.post("/api/v1/parent/children", headers=parent_headers, json={
        "first_name": "Maya", "last_name": "Okafor", "email": "Maya.Okafor@gmail.com", "grade": "5"
    })
    assert created.status_code == 201, created.text
    body = created.json()
    assert body["child"]["grade"] == "5"
    assert body["child"]["user"]["email"] == "maya.okafor@gmail.com"
    assert len(body["temporary_password"]) >= 8

    login = await client.post("/api/v1/auth/login", json={
        "email": "maya.okafor@gmail.com", "password": body["temporary_password"]
    })
    assert login.status_code == 200

    children = (await client.get("/api/v1/parent/children", headers=parent_headers)).json()
    assert len(children) == 2

    duplicate = await client.post("/api/v1/parent/children", headers=parent_headers, json={
        "first_name": "Maya", "last_name": "Okafor", "email": "maya.okafor@gmail.com"
    })
    assert duplicate.status_code == 409


async def test_parent_reads_linked_child_records(client, family, parent_headers, teacher_headers, make_user):
    _, student = family
    course = (await client.post("/api/v1/lms/courses", headers=teacher_headers, json={
        "name": "Literature", "code": "LIT-1"
    })).json()
    await client.post(
        f"/api/v1/lms/courses/{course['id']}/enrollments", headers=teacher_headers,
        json={"student_ids": [student.student_profile.id]}
    )
    base = f"/api/v1/lms/courses/{course['id']}"
    params = {"student_id": student.student_profile.id}

    grade = await client.get(f"{base}/grades", headers=parent_headers, params=params)
    assert grade.status_code == 200
    assert grade.json()["student_name"] == student.full_name
    attendance = await client.get(f"{base}/attendance/summary", headers=parent_headers, params=params)
    assert attendance.status_code == 200
    progress = await client.get(f"{base}/progress", headers=parent_headers, params=params)
    assert progress.status_code == 200

    missing = await client.get(f"{base}/grades", headers=parent_headers)
    assert missing.status_code == 400

    stranger = await make_user("Student")
    other = await client.get(
        f"{base}/grades", headers=parent_headers, params={"student_id": stranger.student_profile.id}
    )
    assert other.status_code == 403


async def test_parent_sees_only_own_invoices(client, family, parent_headers, admin_headers, make_user):
    parent, _ = family
    mine = await _invoice(client, admin_headers, parent.parent_profile.id)
    other_parent = await make_user("Parent")
    theirs = await _invoice(client, admin_headers, other_parent.parent_profile.id)

    listing = (await client.get("/api/v1/parent/invoices", headers=parent_headers)).json()
    assert [invoice["id"] for invoice in listing] == [mine["id"]]

    detail = await client.get(f"/api/v1/parent/invoices/{mine['id']}", headers=parent_headers)
    assert detail.json()["total"] == 300
    hidden = await client.get(f"/api/v1/parent/invoices/{theirs['id']}", headers=parent_headers)
    assert hidden.status_code == 404

    pdf = await client.get(f"/api/v1/parent/invoices/{mine['id']}/pdf", headers=parent_headers)
    assert pdf.status_code == 200
    assert pdf.headers["content-type"] == "application/pdf"
    assert pdf.content.startswith(b"%PDF")
    hidden_pdf = await client.get(f"/api/v1/parent/invoices/{theirs['id']}/pdf", headers=parent_headers)
    assert hidden_pdf.status_code == 404
