from datetime import datetime

from portal.utils.ical import all_day_end, build_calendar, escape_text, fold_line


class Event:
    def __init__(self, **fields):
        defaults = {
            "id": 1,
            "title": "Open day",
            "description": None,
            "location": None,
            "event_type": "event",
            "all_day": False,
            "start_time": datetime(2024, 9, 1, 9, 30),
            "end_time": None,
        }
        defaults.update(fields)
        self.__dict__.update(defaults)


def test_escape_text():
    assert escape_text("a;b,c\\d\ne") == r"a\;b\,c\\d\ne"
    assert escape_text(None) == ""


def test_build_calendar_timed_and_all_day():
    body = build_calendar([
        Event(description="Tours, talks; snacks", location="Main hall"),
        Event(id=2, title="Holiday", all_day=True, start_time=datetime(2024, 12, 24), end_time=datetime(2024, 12, 27)),
    ])
    lines = body.split("\r\n")
    assert lines[0] == "BEGIN:VCALENDAR"
    assert body.endswith("END:VCALENDAR\r\n")
    assert "DTSTART:20240901T093000Z" in lines
    assert "DTEND:20240901T093000Z" in lines
    assert r"DESCRIPTION:Tours\, talks\; snacks" in lines
    assert "DTSTART;VALUE=DATE:20241224" in lines
    assert "DTEND;VALUE=DATE:20241227" in lines
    assert lines.count("BEGIN:VEVENT") == 2
    assert "UID:event-2@academy-portal" in lines


def test_all_day_end_is_exclusive():
    start = datetime(2024, 12, 24)
    assert all_day_end(start, None) == datetime(2024, 12, 25)
    assert all_day_end(start, datetime(2024, 12, 24, 18, 0)) == datetime(2024, 12, 25)
    assert all_day_end(start, datetime(2024, 12, 27)) == datetime(2024, 12, 27)

    body = build_calendar([Event(title="Founders day", all_day=True, start_time=start)])
    lines = body.split("\r\n")
    assert "DTSTART;VALUE=DATE:20241224" in lines
    assert "DTEND;VALUE=DATE:20241225" in lines


def test_fold_line_limits_octets():
    assert fold_line("SUMMARY:short") == "SUMMARY:short"

    folded = fold_line("DESCRIPTION:" + "x" * 200)
    physical = folded.split("\r\n")
    assert all(len(line.encode("utf-8")) <= 75 for line in physical)
    assert all(line.startswith(" ") for line in physical[1:])
    assert "".join(line[1:] if i else line for i, line in enumerate(physical)) == "DESCRIPTION:" + "x" * 200

    accented = fold_line("SUMMARY:" + "\u00e9" * 60).split("\r\n")
    assert [len(line.encode("utf-8")) for line in accented] == [74, 55]


def test_long_descriptions_are_folded_in_the_document():
    body = build_calendar([Event(description="Bring " + "snacks and " * 20)])
    assert all(len(line.encode("utf-8")) <= 75 for line in body.split("\r\n"))
    assert "\r\n " in body


async def _event(client, headers, **overrides):
    payload = {"title": "Staff meeting", "start_time": "2024-09-02T10:00:00Z", "end_time": "2024-09-02T11:00:00Z"}
    payload.update(overrides)
    response = await client.post("/api/v1/calendar/events", headers=headers, json=payload)
    assert response.status_code == 201, response.text
    return response.json()


async def test_event_visibility(client, teacher_headers, student_headers):
    await _event(client, teacher_headers, title="Private prep")
    await _event(client, teacher_headers, title="Open day", is_public=True)

    mine = await client.get("/api/v1/calendar/events", headers=teacher_headers)
    assert {event["title"] for event in mine.json()} == {"Private prep", "Open day"}

    theirs = await client.get("/api/v1/calendar/events", headers=student_headers)
    assert [event["title"] for event in theirs.json()] == ["Open day"]


async def test_timezone_aware_input_is_stored_as_utc(client, teacher_headers):
    event = await _event(client, teacher_headers, start_time="2024-09-02T12:00:00+02:00", end_time=None)
    assert event["start_time"].startswith("2024-09-02T10:00:00")


async def test_range_filter(client, teacher_headers):
    await _event(client, teacher_headers, title="September", start_time="2024-09-10T09:00:00", end_time=None)
    await _event(client, teacher_headers, title="October", start_time="2024-10-10T09:00:00", end_time=None)
    response = await client.get("/api/v1/calendar/events", headers=teacher_headers, params={
        "start": "2024-10-01T00:00:00", "end": "2024-10-31T23:59:59"
    })
    assert [event["title"] for event in response.json()] == ["October"]


async def test_end_before_start_is_rejected(client, teacher_headers):
    response = await client.post("/api/v1/calendar/events", headers=teacher_headers, json={
        "title": "Backwards", "start_time": "2024-09-02T10:00:00", "end_time": "2024-09-02T09:00:00"
    })
    assert response.status_code == 422

    event = await _event(client, teacher_headers)
    patched = await client.patch(
        f"/api/v1/calendar/events/{event['id']}", headers=teacher_headers, json={"end_time": "2024-09-01T00:00:00"}
    )
    assert patched.status_code == 400


async def test_only_owner_or_admin_can_modify(client, teacher_headers, student_headers, admin_headers):
    event = await _event(client, teacher_headers, is_public=True)

    forbidden = await client.patch(
        f"/api/v1/calendar/events/{event['id']}", headers=student_headers, json={"title": "Hijacked"}
    )
    assert forbidden.status_code == 403

    allowed = await client.patch(
        f"/api/v1/calendar/events/{event['id']}", headers=admin_headers, json={"location": "Room 4"}
    )
    assert allowed.json()["location"] == "Room 4"

    deleted = await client.delete(f"/api/v1/calendar/events/{event['id']}", headers=teacher_headers)
    assert deleted.status_code == 204


async def test_ics_export(client, teacher_headers):
    await _event(client, teacher_headers, title="Parents, evening", location="Hall")
    response = await client.get("/api/v1/calendar/export.ics", headers=teacher_headers)
    assert response.status_code == 200
    assert response.headers["content-type"].startswith("text/calendar")
    assert "attachment" in response.headers["content-disposition"]
    assert "SUMMARY:Parents\\, evening" in response.text
    assert "DTSTART:20240902T100000Z" in response.text
