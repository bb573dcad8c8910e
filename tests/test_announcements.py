async def _announce(client, headers, title, **audience):
    response = await client.post("/api/v1/announcements", headers=headers, json={
        "title": title, "content": f"{title} details", **audience
    })
    assert response.status_code == 201, response.text
    return response.json()


async def test_audience_must_be_chosen(client, admin_headers):
    response = await client.post("/api/v1/announcements", headers=admin_headers, json={
        "title": "Nobody", "content": "Hears this"
    })
    assert response.status_code == 422


async def test_only_admins_publish(client, teacher_headers, admin_headers):
    denied = await client.post("/api/v1/announcements", headers=teacher_headers, json={
        "title": "Hi", "content": "x", "send_to_all": True
    })
    assert denied.status_code == 403
    assert (await client.get("/api/v1/announcements/all", headers=teacher_headers)).status_code == 403


async def test_feed_follows_audience(client, admin_headers, student_headers, parent_headers, teacher_headers):
    everyone = await _announce(client, admin_headers, "Open day", send_to_all=True)
    await _announce(client, admin_headers, "Exam timetable", send_to_students=True)
    await _announce(client, admin_headers, "Fee reminder", send_to_parents=True)

    student_feed = (await client.get("/api/v1/announcements", headers=student_headers)).json()
    assert [item["title"] for item in student_feed] == ["Exam timetable", "Open day"]
    assert all(item["is_read"] is False for item in student_feed)

    parent_feed = (await client.get("/api/v1/announcements", headers=parent_headers)).json()
    assert [item["title"] for item in parent_feed] == ["Fee reminder", "Open day"]

    teacher_feed = (await client.get("/api/v1/announcements", headers=teacher_headers)).json()
    assert [item["id"] for item in teacher_feed] == [everyone["id"]]
    assert teacher_feed[0]["author"]["email"] == "admin@riverside.org"

    everything = (await client.get("/api/v1/announcements/all", headers=admin_headers)).json()
    assert len(everything) == 3


async def test_read_tracking(client, admin_headers, student_headers, parent_headers):
    first = await _announce(client, admin_headers, "Open day", send_to_all=True)
    await _announce(client, admin_headers, "Exam timetable", send_to_students=True)
    parents_only = await _announce(client, admin_headers, "Fee reminder", send_to_parents=True)

    count = await client.get("/api/v1/announcements/unread-count", headers=student_headers)
    assert count.json() == {"unread": 2}

    read = await client.post(f"/api/v1/announcements/{first['id']}/read", headers=student_headers)
    assert read.status_code == 200
    again = await client.post(f"/api/v1/announcements/{first['id']}/read", headers=student_headers)
    assert again.status_code == 200

    assert (await client.get("/api/v1/announcements/unread-count", headers=student_headers)).json() == {"unread": 1}
    feed = (await client.get("/api/v1/announcements", headers=student_headers)).json()
    assert {item["title"]: item["is_read"] for item in feed} == {"Open day": True, "Exam timetable": False}

    hidden = await client.post(f"/api/v1/announcements/{parents_only['id']}/read", headers=student_headers)
    assert hidden.status_code == 404
    assert (await client.get("/api/v1/announcements/unread-count", headers=parent_headers)).json() == {"unread": 2}


async def test_deactivate_and_delete(client, admin_headers, student_headers):
    notice = await _announce(client, admin_headers, "Snow day", send_to_all=True)

    paused = await client.patch(
        f"/api/v1/announcements/{notice['id']}", headers=admin_headers, json={"is_active": False}
    )
    assert paused.json()["is_active"] is False
    assert (await client.get("/api/v1/announcements", headers=student_headers)).json() == []
    inactive = await client.post(f"/api/v1/announcements/{notice['id']}/read", headers=student_headers)
    assert inactive.status_code == 404

    deleted = await client.delete(f"/api/v1/announcements/{notice['id']}", headers=admin_headers)
    assert deleted.status_code == 204
    assert (await client.get("/api/v1/announcements/all", headers=admin_headers)).json() == []


async def test_announcements_are_per_organization(client, admin_headers, other_organization, make_user, headers_for):
    organization, roles = other_organization
    await _announce(client, admin_headers, "Open day", send_to_all=True)
    outsider = await make_user("Student", organization_id=organization.id, role_map=roles)
    assert (await client.get("/api/v1/announcements", headers=headers_for(outsider))).json() == []
