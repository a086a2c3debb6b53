from __future__ import annotations

from datetime import date, datetime, timedelta

import pytest

DAY = date.today() + timedelta(days=10)


def _at(hour: int, minute: int = 0, day: date = DAY) -> str:
    return datetime.combine(day, datetime.min.time()).replace(hour=hour, minute=minute).isoformat()


@pytest.fixture
def coach_and_kim(api, seed):
    seed.user("coach-a", name="Coach A")
    seed.user("kim-user", "CLIENT")
    kim = seed.client("coach-a", "Kim", user_id="kim-user")
    return {"coach": seed.headers("coach-a"), "kim": seed.headers("kim-user"), "kim_id": kim}


def _block(api, headers, start: str, end: str, title: str = "Tournament"):
    return api.post(
        "/api/v1/scheduling/blocked-times",
        json={"title": title, "start_time": start, "end_time": end},
        headers=headers,
    )


def _lesson(api, headers, client_id: int, clock: str, day: date = DAY):
    return api.post(
        "/api/v1/events/lessons",
        json={"client_id": client_id, "date": day.isoformat(), "time": clock},
        headers=headers,
    )


def _request(api, headers, clock: str = "2:00 PM", day: date = DAY, reason: str | None = None):
    body = {"requested_date": day.isoformat(), "time": clock}
    if reason:
        body["reason"] = reason
    return api.post("/api/v1/scheduling/requests", json=body, headers=headers)


def test_lessons_cannot_land_in_a_blocked_slot(api, coach_and_kim):
    blocked = _block(api, coach_and_kim["coach"], _at(9), _at(12))
    assert blocked.status_code == 201, blocked.text
    blocked_id = blocked.json()["id"]

    inside = _lesson(api, coach_and_kim["coach"], coach_and_kim["kim_id"], "10:00")
    assert inside.status_code == 409
    assert inside.json()["detail"]["blocked_time_id"] == blocked_id

    # a one-hour lesson starting at 8:30 runs into the block
    assert _lesson(api, coach_and_kim["coach"], coach_and_kim["kim_id"], "08:30").status_code == 409
    assert _lesson(api, coach_and_kim["coach"], coach_and_kim["kim_id"], "12:00").status_code == 201


def test_blocking_over_a_confirmed_lesson_is_rejected(api, coach_and_kim):
    assert _lesson(api, coach_and_kim["coach"], coach_and_kim["kim_id"], "13:00").status_code == 201
    blocked_id = _block(api, coach_and_kim["coach"], _at(9), _at(12)).json()["id"]

    overlapping = api.put(
        f"/api/v1/scheduling/blocked-times/{blocked_id}",
        json={"title": "Longer", "start_time": _at(9), "end_time": _at(13, 30)},
        headers=coach_and_kim["coach"],
    )
    assert overlapping.status_code == 409
    assert "Lesson" in overlapping.json()["detail"]["message"]
    assert _block(api, coach_and_kim["coach"], _at(12, 30), _at(15)).status_code == 409

    moved = api.put(
        f"/api/v1/scheduling/blocked-times/{blocked_id}",
        json={"title": "Morning off", "start_time": _at(8), "end_time": _at(11)},
        headers=coach_and_kim["coach"],
    )
    assert moved.status_code == 200
    assert moved.json()["title"] == "Morning off"


def test_blocked_time_must_end_after_it_starts(api, coach_and_kim):
    assert _block(api, coach_and_kim["coach"], _at(12), _at(9)).status_code == 422


def test_blocked_times_are_private_to_their_coach(api, seed, coach_and_kim):
    seed.user("coach-b")
    blocked_id = _block(api, coach_and_kim["coach"], _at(9), _at(12)).json()["id"]

    other = seed.headers("coach-b")
    assert api.get("/api/v1/scheduling/blocked-times", headers=other).json() == []
    assert api.delete(f"/api/v1/scheduling/blocked-times/{blocked_id}", headers=other).status_code == 404
    assert api.get("/api/v1/scheduling/blocked-times", headers=coach_and_kim["kim"]).status_code == 403

    seen_by_kim = api.get("/api/v1/scheduling/blocked-times/coach", headers=coach_and_kim["kim"]).json()
    assert [b["id"] for b in seen_by_kim] == [blocked_id]

    assert api.delete(f"/api/v1/scheduling/blocked-times/{blocked_id}", headers=coach_and_kim["coach"]).status_code == 200
    assert api.get("/api/v1/scheduling/blocked-times", headers=coach_and_kim["coach"]).json() == []


def test_blocked_times_filter_by_range(api, coach_and_kim):
    _block(api, coach_and_kim["coach"], _at(9), _at(12), title="Today")
    _block(api, coach_and_kim["coach"], _at(9, day=DAY + timedelta(days=7)), _at(12, day=DAY + timedelta(days=7)), title="Later")

    rows = api.get(
        "/api/v1/scheduling/blocked-times",
        params={"start": _at(0), "end": _at(23, 59)},
        headers=coach_and_kim["coach"],
    ).json()
    assert [b["title"] for b in rows] == ["Today"]


def test_approved_request_becomes_the_next_lesson(api, coach_and_kim):
    created = _request(api, coach_and_kim["kim"], reason="Exams that week")
    assert created.status_code == 201, created.text
    request = created.json()
    assert request["status"] == "PENDING"
    assert request["requested_by_client"] is True
    assert request["description"] == "Exams that week"

    pending = api.get("/api/v1/scheduling/requests/pending", headers=coach_and_kim["coach"]).json()
    assert [r["id"] for r in pending] == [request["id"]]
    mine = api.get("/api/v1/scheduling/requests/mine", headers=coach_and_kim["kim"]).json()
    assert [r["id"] for r in mine] == [request["id"]]
    coach_notes = api.get("/api/v1/notifications", headers=coach_and_kim["coach"]).json()
    assert [n["type"] for n in coach_notes] == ["SCHEDULE_REQUEST"]
    assert api.get("/api/v1/me/next-lesson", headers=coach_and_kim["kim"]).json() is None

    approved = api.post(f"/api/v1/scheduling/requests/{request['id']}/approve", headers=coach_and_kim["coach"])
    assert approved.status_code == 200
    assert approved.json()["status"] == "CONFIRMED"
    assert approved.json()["title"] == "Lesson with Kim"

    assert api.get("/api/v1/scheduling/requests/pending", headers=coach_and_kim["coach"]).json() == []
    again = api.post(f"/api/v1/scheduling/requests/{request['id']}/approve", headers=coach_and_kim["coach"])
    assert again.status_code == 404
    assert api.get("/api/v1/me/next-lesson", headers=coach_and_kim["kim"]).json()["id"] == request["id"]
    kim_notes = api.get("/api/v1/notifications", headers=coach_and_kim["kim"]).json()
    assert [n["title"] for n in kim_notes] == ["Schedule Request Approved"]


def test_rejected_request_frees_the_slot(api, coach_and_kim):
    request_id = _request(api, coach_and_kim["kim"]).json()["id"]
    assert _request(api, coach_and_kim["kim"]).status_code == 400

    rejected = api.post(
        f"/api/v1/scheduling/requests/{request_id}/reject",
        json={"reason": "Court is closed"},
        headers=coach_and_kim["coach"],
    )
    assert rejected.status_code == 200
    assert api.get("/api/v1/scheduling/requests/mine", headers=coach_and_kim["kim"]).json() == []
    kim_notes = api.get("/api/v1/notifications", headers=coach_and_kim["kim"]).json()
    assert kim_notes[0]["type"] == "LESSON_CANCELLED"
    assert kim_notes[0]["message"].endswith("Reason: Court is closed")

    assert _request(api, coach_and_kim["kim"]).status_code == 201


def test_request_validation(api, coach_and_kim):
    assert _request(api, coach_and_kim["kim"], day=date.today() - timedelta(days=1)).status_code == 400
    assert _request(api, coach_and_kim["kim"], clock="25:00").status_code == 422
    assert _request(api, coach_and_kim["coach"]).status_code == 403

    _block(api, coach_and_kim["coach"], _at(13), _at(16))
    assert _request(api, coach_and_kim["kim"], clock="2:00 PM").status_code == 409


def test_requests_respect_the_coachs_working_days(api, coach_and_kim):
    other_days = [d for d in ("Monday", "Tuesday", "Wednesday", "Thursday", "Friday", "Saturday", "Sunday") if d != f"{DAY:%A}"]
    saved = api.patch("/api/v1/settings", json={"working_days": other_days}, headers=coach_and_kim["coach"])
    assert saved.status_code == 200

    refused = _request(api, coach_and_kim["kim"])
    assert refused.status_code == 400
    assert f"{DAY:%A}" in refused.json()["detail"]["message"]
    assert _request(api, coach_and_kim["kim"], day=DAY + timedelta(days=1)).status_code == 201


def test_approval_is_refused_once_the_slot_is_blocked(api, coach_and_kim):
    request_id = _request(api, coach_and_kim["kim"], clock="15:00").json()["id"]
    # pending requests do not stop the coach from blocking the slot
    assert _block(api, coach_and_kim["coach"], _at(14), _at(17)).status_code == 201

    refused = api.post(f"/api/v1/scheduling/requests/{request_id}/approve", headers=coach_and_kim["coach"])
    assert refused.status_code == 409
    mine = api.get("/api/v1/scheduling/requests/mine", headers=coach_and_kim["kim"]).json()
    assert [r["status"] for r in mine] == ["PENDING"]


def test_client_reads_coach_notes(api, coach_and_kim):
    assert api.get("/api/v1/me/coach-notes", headers=coach_and_kim["kim"]).json()["notes"] == ""
    api.patch(f"/api/v1/clients/{coach_and_kim['kim_id']}", json={"notes": "Work on follow-through"}, headers=coach_and_kim["coach"])
    assert api.get("/api/v1/me/coach-notes", headers=coach_and_kim["kim"]).json()["notes"] == "Work on follow-through"
