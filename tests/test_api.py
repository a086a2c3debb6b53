from __future__ import annotations

import json
from datetime import date, datetime, timedelta

import pytest


def _program_body(title: str = "Drive Basics", duration: int = 1) -> dict:
    return {
        "title": title,
        "level": "Drive",
        "duration": duration,
        "weeks": [
            {
                "week_number": 1,
                "title": "Week 1",
                "days": [
                    {"day_number": 1, "title": "Ground", "drills": [{"title": "Step drill", "sets": 3, "reps": 10}]},
                    {"day_number": 2, "title": "Off", "is_rest_day": True},
                ],
            }
        ],
    }


def test_health_echoes_or_generates_request_id_header(api):
    resp = api.get("/api/v1/health", headers={"X-Request-ID": "req-test-123"})
    assert resp.status_code == 200
    assert resp.json() == {"status": "ok"}
    assert resp.headers["X-Request-ID"] == "req-test-123"
    assert api.get("/api/v1/health").headers.get("X-Request-ID")


def test_service_errors_render_as_coded_detail(api):
    from starlette.requests import Request

    from api.main import service_error_handler
    from core.errors import Conflict, ServiceError

    request = Request({"type": "http", "method": "POST", "path": "/api/v1/time-swaps", "headers": [], "query_string": b""})
    conflict = service_error_handler(request, Conflict("Already taken", swap_request_id=7))
    assert conflict.status_code == 409
    assert json.loads(conflict.body) == {"detail": {"code": "CONFLICT", "message": "Already taken", "swap_request_id": 7}}

    internal = service_error_handler(request, ServiceError())
    assert internal.status_code == 500
    assert json.loads(internal.body)["detail"]["code"] == "INTERNAL"


def test_missing_and_bad_tokens_are_rejected(api):
    resp = api.get("/api/v1/clients")
    assert resp.status_code == 401
    assert resp.json()["detail"]["code"] == "AUTH_REQUIRED"

    resp = api.get("/api/v1/clients", headers={"Authorization": "Bearer not-a-jwt"})
    assert resp.status_code == 401
    assert resp.json()["detail"]["code"] == "INVALID_TOKEN"


def test_clients_endpoints_require_coach_role(api, seed):
    seed.user("client-user", "CLIENT")
    resp = api.get("/api/v1/clients", headers=seed.headers("client-user"))
    assert resp.status_code == 403
    assert resp.json()["detail"]["code"] == "FORBIDDEN"


def test_coach_cannot_see_another_coachs_client(api, seed):
    seed.user("coach-a")
    seed.user("coach-b")
    client_id = seed.client("coach-a", "Ava")

    own = api.get(f"/api/v1/clients/{client_id}", headers=seed.headers("coach-a"))
    assert own.status_code == 200
    assert own.json()["name"] == "Ava"

    other = api.get(f"/api/v1/clients/{client_id}", headers=seed.headers("coach-b"))
    assert other.status_code == 404
    assert other.json()["detail"]["code"] == "NOT_FOUND"


def test_create_and_list_clients(api, seed):
    seed.user("coach-a")
    headers = seed.headers("coach-a")
    created = api.post("/api/v1/clients", json={"name": "Ben", "email": "ben@example.com"}, headers=headers)
    assert created.status_code == 201, created.text
    assert created.json()["coach_id"] == "coach-a"

    names = [c["name"] for c in api.get("/api/v1/clients", headers=headers).json()]
    assert names == ["Ben"]


def _age_client(client_id: int, days: int) -> None:
    from core.db import session_scope
    from core.models import Client

    with session_scope() as s:
        s.get(Client, client_id).updated_at = datetime.utcnow() - timedelta(days=days)


def test_quiet_clients_stay_listed_until_coach_sets_auto_archive(api, seed):
    seed.user("coach-a")
    headers = seed.headers("coach-a")
    client_id = seed.client("coach-a", "Quiet")
    seed.lesson("coach-a", client_id)
    _age_client(client_id, 31)

    assert [c["name"] for c in api.get("/api/v1/clients", headers=headers).json()] == ["Quiet"]

    saved = api.patch("/api/v1/settings", json={"auto_archive_days": 30}, headers=headers)
    assert saved.status_code == 200, saved.text
    assert api.get("/api/v1/clients", headers=headers).json() == []
    archived = api.get("/api/v1/clients?archived=true", headers=headers).json()
    assert [c["id"] for c in archived] == [client_id]


def _schedule_everything(api, headers, client_id: int) -> None:
    program = api.post("/api/v1/programs", json=_program_body(), headers=headers).json()
    assigned = api.post(
        f"/api/v1/programs/{program['id']}/assign",
        json={"client_ids": [client_id], "start_date": date.today().isoformat()},
        headers=headers,
    )
    assert assigned.status_code == 201, assigned.text

    routine = api.post(
        "/api/v1/routines", json={"name": "Warm-up", "exercises": [{"title": "Band pulls"}]}, headers=headers
    ).json()
    routine_assigned = api.post(f"/api/v1/routines/{routine['id']}/assign", json={"client_ids": [client_id]}, headers=headers)
    assert routine_assigned.status_code == 201, routine_assigned.text

    video = api.post("/api/v1/library", json={"title": "Hip turn", "url": "https://example.com/hip.mp4"}, headers=headers).json()
    video_assigned = api.post(
        "/api/v1/library/assignments", json={"video_id": video["id"], "client_id": client_id}, headers=headers
    )
    assert video_assigned.status_code == 201, video_assigned.text


def _scheduled(api, headers, client_id: int) -> dict[str, int]:
    return {
        "programs": len(api.get(f"/api/v1/clients/{client_id}/programs", headers=headers).json()),
        "routines": len(api.get(f"/api/v1/routines/clients/{client_id}/assignments", headers=headers).json()),
        "videos": len(api.get(f"/api/v1/library/clients/{client_id}/assignments", headers=headers).json()),
        "lessons": len(api.get("/api/v1/events/upcoming", headers=headers).json()),
    }


def test_archive_drops_schedule_and_unlocks_delete(api, seed):
    seed.user("coach-a")
    headers = seed.headers("coach-a")
    client_id = seed.client("coach-a", "Cara")
    seed.lesson("coach-a", client_id)
    _schedule_everything(api, headers, client_id)
    assert _scheduled(api, headers, client_id) == {"programs": 1, "routines": 1, "videos": 1, "lessons": 1}

    blocked = api.delete(f"/api/v1/clients/{client_id}", headers=headers)
    assert blocked.status_code == 400

    archived = api.post(f"/api/v1/clients/{client_id}/archive", headers=headers)
    assert archived.status_code == 200
    assert archived.json()["archived"] is True

    assert _scheduled(api, headers, client_id) == {"programs": 0, "routines": 0, "videos": 0, "lessons": 0}
    assert [c["id"] for c in api.get("/api/v1/clients?archived=true", headers=headers).json()] == [client_id]

    assert api.delete(f"/api/v1/clients/{client_id}", headers=headers).status_code == 200
    assert api.get(f"/api/v1/clients/{client_id}", headers=headers).status_code == 404


def test_failed_archive_leaves_client_and_schedule_untouched(api, seed, monkeypatch):
    from core.services import clients

    seed.user("coach-a")
    headers = seed.headers("coach-a")
    client_id = seed.client("coach-a", "Dev")
    seed.lesson("coach-a", client_id)
    _schedule_everything(api, headers, client_id)

    def fail(*args, **kwargs):
        raise RuntimeError("archive interrupted")

    with monkeypatch.context() as m:
        # runs after every cascade delete has been issued
        m.setattr(clients.logger, "info", fail)
        with pytest.raises(RuntimeError):
            api.post(f"/api/v1/clients/{client_id}/archive", headers=headers)

    assert api.get(f"/api/v1/clients/{client_id}", headers=headers).json()["archived"] is False
    assert _scheduled(api, headers, client_id) == {"programs": 1, "routines": 1, "videos": 1, "lessons": 1}


def test_program_assignment_cycles_follow_duration(api, seed):
    seed.user("coach-a")
    headers = seed.headers("coach-a")
    client_id = seed.client("coach-a", "Dana")
    program = api.post("/api/v1/programs", json=_program_body(duration=2), headers=headers).json()

    start = date(2026, 3, 2)
    rows = api.post(
        f"/api/v1/programs/{program['id']}/assign",
        json={"client_ids": [client_id], "start_date": start.isoformat(), "repetitions": 3},
        headers=headers,
    ).json()
    assert [r["cycle"] for r in rows] == [1, 2, 3]
    assert [r["start_date"][:10] for r in rows] == [
        start.isoformat(),
        (start + timedelta(weeks=2)).isoformat(),
        (start + timedelta(weeks=4)).isoformat(),
    ]

    summary = api.get("/api/v1/programs", headers=headers).json()[0]
    assert summary["total_assignments"] == 3
    assert summary["drill_count"] == 1

    removed = api.post(f"/api/v1/programs/{program['id']}/unassign", json={"client_ids": [client_id]}, headers=headers)
    assert removed.json() == {"count": 3}


def test_assigning_another_coachs_client_is_rejected(api, seed):
    seed.user("coach-a")
    seed.user("coach-b")
    foreign = seed.client("coach-b", "Eli")
    headers = seed.headers("coach-a")
    program = api.post("/api/v1/programs", json=_program_body(), headers=headers).json()
    resp = api.post(
        f"/api/v1/programs/{program['id']}/assign",
        json={"client_ids": [foreign], "start_date": date.today().isoformat()},
        headers=headers,
    )
    assert resp.status_code == 400


def test_drill_completion_is_idempotent_and_shows_on_calendar(api, seed):
    seed.user("coach-a")
    seed.user("fay", "CLIENT")
    client_id = seed.client("coach-a", "Fay", user_id="fay")
    coach_headers = seed.headers("coach-a")
    program = api.post("/api/v1/programs", json=_program_body(), headers=coach_headers).json()
    drill_id = program["weeks"][0]["days"][0]["drills"][0]["id"]
    start = date.today()
    api.post(
        f"/api/v1/programs/{program['id']}/assign",
        json={"client_ids": [client_id], "start_date": start.isoformat()},
        headers=coach_headers,
    )

    headers = seed.headers("fay")
    for _ in range(2):
        resp = api.post("/api/v1/me/drills/complete", json={"drill_id": str(drill_id), "completed": True}, headers=headers)
        assert resp.status_code == 200, resp.text
        assert resp.json()["completed"] is True

    calendar = api.get(f"/api/v1/me/calendar?start={start.isoformat()}", headers=headers).json()
    day = calendar[start.isoformat()]
    assert day["total_drills"] == 1
    assert day["completed_drills"] == 1
    rest = calendar[(start + timedelta(days=1)).isoformat()]
    assert rest["is_rest_day"] is True

    coach_view = api.get(f"/api/v1/clients/{client_id}/compliance?period=all", headers=coach_headers).json()
    assert coach_view["completed"] == 1


def test_drill_outside_assigned_programs_is_not_found(api, seed):
    seed.user("coach-a")
    seed.user("gus", "CLIENT")
    seed.client("coach-a", "Gus", user_id="gus")
    program = api.post("/api/v1/programs", json=_program_body(), headers=seed.headers("coach-a")).json()
    drill_id = program["weeks"][0]["days"][0]["drills"][0]["id"]

    resp = api.post(
        "/api/v1/me/drills/complete", json={"drill_id": str(drill_id), "completed": True}, headers=seed.headers("gus")
    )
    assert resp.status_code == 404


def test_program_assignment_notifies_linked_client(api, seed):
    seed.user("coach-a")
    seed.user("hal", "CLIENT")
    client_id = seed.client("coach-a", "Hal", user_id="hal")
    coach_headers = seed.headers("coach-a")
    program = api.post("/api/v1/programs", json=_program_body(), headers=coach_headers).json()
    api.post(
        f"/api/v1/programs/{program['id']}/assign",
        json={"client_ids": [client_id], "start_date": date.today().isoformat()},
        headers=coach_headers,
    )

    headers = seed.headers("hal")
    assert api.get("/api/v1/notifications/unread-count", headers=headers).json() == {"count": 1}
    items = api.get("/api/v1/notifications", headers=headers).json()
    assert [n["type"] for n in items] == ["PROGRAM_ASSIGNED"]

    assert api.post("/api/v1/notifications/read-all", headers=headers).json() == {"count": 1}
    assert api.get("/api/v1/notifications?unread_only=true", headers=headers).json() == []

    # someone else's notification is invisible
    assert api.delete(f"/api/v1/notifications/{items[0]['id']}", headers=coach_headers).status_code == 404
    assert api.delete(f"/api/v1/notifications/{items[0]['id']}", headers=headers).status_code == 200


def test_empty_message_is_rejected_and_real_one_is_delivered(api, seed):
    seed.user("coach-a")
    seed.user("ivy", "CLIENT")
    client_id = seed.client("coach-a", "Ivy", user_id="ivy")
    coach_headers = seed.headers("coach-a")

    conv = api.post("/api/v1/conversations/with-client", json={"client_id": client_id}, headers=coach_headers)
    assert conv.status_code == 201, conv.text
    conv_id = conv.json()["id"]

    empty = api.post(f"/api/v1/conversations/{conv_id}/messages", json={"content": "   "}, headers=coach_headers)
    assert empty.status_code == 422
    too_long = api.post(f"/api/v1/conversations/{conv_id}/messages", json={"content": "x" * 1001}, headers=coach_headers)
    assert too_long.status_code == 422

    sent = api.post(f"/api/v1/conversations/{conv_id}/messages", json={"content": "See you Tuesday"}, headers=coach_headers)
    assert sent.status_code == 201, sent.text

    client_headers = seed.headers("ivy")
    assert api.get("/api/v1/conversations/unread-count", headers=client_headers).json() == {"count": 1}
    messages = api.get(f"/api/v1/conversations/{conv_id}/messages", headers=client_headers).json()
    assert [m["content"] for m in messages] == ["See you Tuesday"]
    assert api.get("/api/v1/conversations/unread-count", headers=client_headers).json() == {"count": 0}

    seed.user("stranger", "CLIENT")
    assert api.get(f"/api/v1/conversations/{conv_id}/messages", headers=seed.headers("stranger")).status_code == 404


def test_welcome_message_is_sent_once(api, seed):
    seed.user("coach-a")
    seed.user("jo", "CLIENT")
    headers = seed.headers("coach-a")
    body = {"name": "Jo", "email": "jo@example.com"}

    first = api.post("/api/v1/clients", json=body, headers=headers)
    assert first.status_code == 201, first.text
    assert first.json()["user_id"] == "jo"
    second = api.post("/api/v1/clients", json=body, headers=headers)
    assert second.json()["id"] == first.json()["id"]

    client_headers = seed.headers("jo")
    assert api.get("/api/v1/conversations/unread-count", headers=client_headers).json() == {"count": 1}


def test_settings_created_on_first_read_and_patchable(api, seed):
    seed.user("coach-a")
    headers = seed.headers("coach-a")
    initial = api.get("/api/v1/settings", headers=headers)
    assert initial.status_code == 200
    assert initial.json()["default_lesson_duration"] == 60

    patched = api.patch("/api/v1/settings", json={"default_lesson_duration": 45}, headers=headers)
    assert patched.status_code == 200, patched.text
    assert patched.json()["default_lesson_duration"] == 45


def test_analytics_dashboard_reports_zeros_without_data(api, seed):
    seed.user("coach-a")
    headers = seed.headers("coach-a")
    resp = api.get("/api/v1/analytics/dashboard?time_range=4w", headers=headers)
    assert resp.status_code == 200, resp.text
    data = resp.json()
    assert data["active_clients"] == 0
    assert all(week["count"] == 0 for week in data["weekly_completions"])

    assert api.get("/api/v1/analytics/dashboard?time_range=2w", headers=headers).status_code == 422


def test_admin_routes_require_admin_flag(api, seed):
    seed.user("coach-a")
    seed.user("root", "COACH", is_admin=True)
    assert api.get("/api/v1/admin/stats", headers=seed.headers("coach-a")).status_code == 403

    stats = api.get("/api/v1/admin/stats", headers=seed.headers("root"))
    assert stats.status_code == 200
    assert stats.json()["master_library_count"] == 0


def test_youtube_import_checks_role_before_fetching(api, seed, monkeypatch):
    seed.user("coach-a")
    seed.user("kim-user", "CLIENT")
    seed.client("coach-a", "Kim", user_id="kim-user")
    fetched: list[str] = []

    async def fake_fetch(video_id):
        fetched.append(video_id)
        return {"title": "Serve drill", "duration": "4:10"}

    monkeypatch.setattr("core.services.youtube.fetch_video_info", fake_fetch)
    body = {"url": "https://youtu.be/dQw4w9WgXcQ"}

    denied = api.post("/api/v1/library/import/youtube", json=body, headers=seed.headers("kim-user"))
    assert denied.status_code == 403
    assert fetched == []

    created = api.post("/api/v1/library/import/youtube", json=body, headers=seed.headers("coach-a"))
    assert created.status_code == 201
    assert created.json()["title"] == "Serve drill"
    assert fetched == ["dQw4w9WgXcQ"]
