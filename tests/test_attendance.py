import pytest

from portal.core.errors import BadRequestError
from portal.schemas.lms.requests import AttendanceRecordInput
from portal.services.attendance_service import summarize_attendance, validate_records


def test_summarize_attendance_counts_late_as_attended():
    summary = summarize_attendance(7, ["present", "late", "absent", "present", "excused"])
    assert summary == {
        "student_id": 7,
        "total": 5,
        "present": 2,
        "absent": 1,
        "late": 1,
        "excused": 1,
        "attendance_rate": 60.0,
    }


def test_summarize_attendance_without_sessions():
    assert summarize_attendance(7, [])["attendance_rate"] == 0.0


def test_validate_records_rejects_unknown_status():
    validate_records([AttendanceRecordInput(student_id=1, status="late")])
    with pytest.raises(BadRequestError) as exc_info:
        validate_records([AttendanceRecordInput(student_id=1, status="sleeping")])
    assert "sleeping" in exc_info.value.message


async def _course(client, headers):
    response = await client.post("/api/v1/lms/courses", headers=headers, json={"name": "Biology", "code": "BIO-1"})
    return response.json()


async def test_sessions_and_summary(client, teacher_headers, student_headers, student_user, make_user):
    course = await _course(client, teacher_headers)
    classmate = await make_user("Student")
    student_id = student_user.student_profile.id
    url = f"/api/v1/lms/courses/{course['id']}/sessions"

    first = await client.post(url, headers=teacher_headers, json={
        "date": "2024-09-02T09:00:00Z",
        "topic": "Cells",
        "records": [
            {"student_id": student_id, "status": "present"},
            {"student_id": classmate.student_profile.id, "status": "absent", "note": "Sick"},
        ],
    })
    assert first.status_code == 201
    assert len(first.json()["records"]) == 2

    second = await client.post(url, headers=teacher_headers, json={
        "date": "2024-09-09T09:00:00Z", "records": [{"student_id": student_id, "status": "late"}]
    })
    session_id = second.json()["id"]

    updated = await client.patch(f"/api/v1/lms/sessions/{session_id}", headers=teacher_headers, json={
        "topic": "Mitosis", "records": [{"student_id": student_id, "status": "absent"}]
    })
    assert updated.json()["topic"] == "Mitosis"
    assert [(r["student_id"], r["status"]) for r in updated.json()["records"]] == [(student_id, "absent")]

    listed = await client.get(url, headers=teacher_headers)
    assert [session["id"] for session in listed.json()] == [session_id, first.json()["id"]]

    summary = await client.get(f"/api/v1/lms/courses/{course['id']}/attendance/summary", headers=student_headers)
    assert summary.json()["total"] == 2
    assert summary.json()["present"] == 1
    assert summary.json()["attendance_rate"] == 50.0

    staff_summary = await client.get(
        f"/api/v1/lms/courses/{course['id']}/attendance/summary", headers=teacher_headers,
        params={"student_id": classmate.student_profile.id}
    )
    assert staff_summary.json()["absent"] == 1

    deleted = await client.delete(f"/api/v1/lms/sessions/{session_id}", headers=teacher_headers)
    assert deleted.status_code == 204


async def test_session_validation(client, teacher_headers, student_headers, student_user):
    course = await _course(client, teacher_headers)
    url = f"/api/v1/lms/courses/{course['id']}/sessions"

    bad_status = await client.post(url, headers=teacher_headers, json={
        "date": "2024-09-02T09:00:00Z", "records": [{"student_id": student_user.student_profile.id, "status": "asleep"}]
    })
    assert bad_status.status_code == 400

    unknown_student = await client.post(url, headers=teacher_headers, json={
        "date": "2024-09-02T09:00:00Z", "records": [{"student_id": 9999}]
    })
    assert unknown_student.status_code == 400

    forbidden = await client.post(url, headers=student_headers, json={"date": "2024-09-02T09:00:00Z"})
    assert forbidden.status_code == 403
