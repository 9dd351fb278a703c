import pytest
from datetime import timedelta

from app.core.config import settings
from app.core.timeutils import utcnow
from tests.helpers import auth_headers


def event_body(starts_at, **extra):
    body = {"title": "Career fair", "location": "Main hall", "starts_at": starts_at.isoformat()}
    body.update(extra)
    return body


def timetable_body(day, **extra):
    body = {"title": "Exam timetable", "effective_date": day.isoformat()}
    body.update(extra)
    return body


# -------------------------------------------------------------------
# EVENTS
# -------------------------------------------------------------------
@pytest.mark.asyncio
async def test_create_event_permissions(client, make_user, academic):
    student = await make_user("user")
    hod = await make_user("d_admin", managed_department_id=academic["cs"].id)
    starts_at = utcnow() + timedelta(days=1)

    denied = await client.post("/api/events", json=event_body(starts_at), headers=auth_headers(student))
    assert denied.status_code == 403

    res = await client.post("/api/events", json=event_body(starts_at), headers=auth_headers(hod))
    assert res.status_code == 201
    body = res.json()
    assert body["created_by"]["name"] == hod.name
    assert body["location"] == "Main hall"

    short = await client.post("/api/events", json=event_body(starts_at, title="Hi"), headers=auth_headers(hod))
    assert short.status_code == 422


@pytest.mark.asyncio
async def test_events_hide_after_expiry(client, make_user):
    admin = await make_user("admin")
    headers = auth_headers(admin)

    upcoming = await client.post("/api/events", headers=headers,
                                 json=event_body(utcnow() + timedelta(hours=3), title="Later today"))
    soon = await client.post("/api/events", headers=headers,
                             json=event_body(utcnow() + timedelta(hours=1), title="Soon"))
    started = await client.post("/api/events", headers=headers,
                                json=event_body(utcnow() - timedelta(minutes=10), title="Just started"))
    past = await client.post("/api/events", headers=headers,
                             json=event_body(utcnow() - timedelta(hours=2), title="This morning"))

    listed = await client.get("/api/events")
    assert listed.status_code == 200
    assert [e["title"] for e in listed.json()["events"]] == ["Just started", "Soon", "Later today"]

    one = await client.get(f"/api/events/{upcoming.json()['id']}")
    assert one.status_code == 200
    assert soon.status_code == started.status_code == 201

    expired = await client.get(f"/api/events/{past.json()['id']}")
    assert expired.status_code == 404
    assert expired.json()["detail"] == "Event has expired"

    missing = await client.get("/api/events/00000000-0000-0000-0000-000000000000")
    assert missing.json()["detail"] == "Event not found"


# -------------------------------------------------------------------
# TIMETABLES
# -------------------------------------------------------------------
@pytest.mark.asyncio
async def test_timetables(client, make_user, academic):
    student = await make_user("user")
    hod = await make_user("d_admin", managed_department_id=academic["cs"].id)
    today = utcnow().date()

    denied = await client.post("/api/timetables", json=timetable_body(today), headers=auth_headers(student))
    assert denied.status_code == 403

    current = await client.post("/api/timetables", headers=auth_headers(hod),
                                json=timetable_body(today, pdf_url="https://files.example.com/exams.pdf"))
    assert current.status_code == 201
    assert current.json()["pdf_url"] == "https://files.example.com/exams.pdf"

    upcoming = await client.post("/api/timetables", headers=auth_headers(hod),
                                 json=timetable_body(today + timedelta(days=7), title="Next week"))
    old = await client.post("/api/timetables", headers=auth_headers(hod),
                            json=timetable_body(today - timedelta(days=1), title="Yesterday"))

    listed = await client.get("/api/timetables")
    assert [t["title"] for t in listed.json()["timetables"]] == ["Next week", "Exam timetable"]

    assert (await client.get(f"/api/timetables/{upcoming.json()['id']}")).status_code == 200

    expired = await client.get(f"/api/timetables/{old.json()['id']}")
    assert expired.status_code == 404
    assert expired.json()["detail"] == "Timetable has expired"


# -------------------------------------------------------------------
# CLEANUP JOB
# -------------------------------------------------------------------
@pytest.mark.asyncio
async def test_cleanup_job(client, make_user, monkeypatch):
    admin = await make_user("admin")
    headers = auth_headers(admin)
    today = utcnow().date()

    await client.post("/api/events", headers=headers, json=event_body(utcnow() - timedelta(hours=2)))
    await client.post("/api/events", headers=headers, json=event_body(utcnow() + timedelta(hours=2)))
    await client.post("/api/timetables", headers=headers, json=timetable_body(today - timedelta(days=3)))
    await client.post("/api/timetables", headers=headers, json=timetable_body(today))

    monkeypatch.setattr(settings, "JOB_SECRET", "cron-secret")

    wrong = await client.post("/api/jobs/cleanup-expired", params={"secret_key": "guess"})
    assert wrong.status_code == 403

    res = await client.post("/api/jobs/cleanup-expired", params={"secret_key": "cron-secret"})
    assert res.status_code == 200
    assert res.json() == {"events_removed": 1, "timetables_removed": 1}

    again = await client.post("/api/jobs/cleanup-expired", params={"secret_key": "cron-secret"})
    assert again.json() == {"events_removed": 0, "timetables_removed": 0}

    assert len((await client.get("/api/events")).json()["events"]) == 1
    assert len((await client.get("/api/timetables")).json()["timetables"]) == 1


@pytest.mark.asyncio
async def test_cleanup_job_disabled_without_secret(client, monkeypatch):
    monkeypatch.setattr(settings, "JOB_SECRET", None)
    res = await client.post("/api/jobs/cleanup-expired", params={"secret_key": ""})
    assert res.status_code == 403
