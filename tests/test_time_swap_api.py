from __future__ import annotations

import pytest


@pytest.fixture
def swap_setup(api, seed):
    seed.user("coach-a")
    seed.user("kim", "CLIENT")
    seed.user("lee", "CLIENT")
    kim = seed.client("coach-a", "Kim", user_id="kim")
    lee = seed.client("coach-a", "Lee", user_id="lee")
    return {
        "kim_event": seed.lesson("coach-a", kim, days_ahead=2, title="Kim lesson"),
        "lee_event": seed.lesson("coach-a", lee, days_ahead=5, title="Lee lesson"),
    }


def _request(api, seed, setup):
    return api.post(
        "/api/v1/time-swaps",
        json={"requester_event_id": setup["kim_event"], "target_event_id": setup["lee_event"]},
        headers=seed.headers("kim"),
    )


def test_other_clients_lessons_are_listed_as_available(api, seed, swap_setup):
    events = api.get("/api/v1/time-swaps/available-events", headers=seed.headers("kim")).json()
    assert [e["id"] for e in events] == [swap_setup["lee_event"]]


def test_approved_swap_exchanges_lessons(api, seed, swap_setup):
    created = _request(api, seed, swap_setup)
    assert created.status_code == 201, created.text
    request_id = created.json()["id"]
    assert created.json()["status"] == "PENDING"

    received = api.get("/api/v1/time-swaps", headers=seed.headers("lee")).json()["received"]
    assert [r["id"] for r in received] == [request_id]

    approved = api.post(f"/api/v1/time-swaps/{request_id}/approve", headers=seed.headers("lee"))
    assert approved.status_code == 200, approved.text
    assert approved.json()["status"] == "APPROVED"

    kim_lessons = api.get("/api/v1/events/upcoming", headers=seed.headers("kim")).json()
    lee_lessons = api.get("/api/v1/events/upcoming", headers=seed.headers("lee")).json()
    assert [e["id"] for e in kim_lessons] == [swap_setup["lee_event"]]
    assert [e["id"] for e in lee_lessons] == [swap_setup["kim_event"]]

    again = api.post(f"/api/v1/time-swaps/{request_id}/approve", headers=seed.headers("lee"))
    assert again.status_code == 400
    assert again.json()["detail"]["message"] == "Swap request was already processed"


def test_only_target_may_approve(api, seed, swap_setup):
    request_id = _request(api, seed, swap_setup).json()["id"]
    resp = api.post(f"/api/v1/time-swaps/{request_id}/approve", headers=seed.headers("kim"))
    assert resp.status_code == 403


def test_duplicate_pending_request_conflicts(api, seed, swap_setup):
    assert _request(api, seed, swap_setup).status_code == 201
    dup = _request(api, seed, swap_setup)
    assert dup.status_code == 409
    assert dup.json()["detail"]["code"] == "CONFLICT"


def test_requester_can_cancel_pending_request(api, seed, swap_setup):
    request_id = _request(api, seed, swap_setup).json()["id"]
    cancelled = api.post(f"/api/v1/time-swaps/{request_id}/cancel", headers=seed.headers("kim"))
    assert cancelled.status_code == 200
    assert cancelled.json()["status"] == "EXPIRED"
    assert api.post(f"/api/v1/time-swaps/{request_id}/decline", headers=seed.headers("lee")).status_code == 400


def test_swapping_own_lesson_with_itself_is_rejected(api, seed, swap_setup):
    resp = api.post(
        "/api/v1/time-swaps",
        json={"requester_event_id": swap_setup["kim_event"], "target_event_id": swap_setup["kim_event"]},
        headers=seed.headers("kim"),
    )
    assert resp.status_code == 400


def _owners(*event_ids):
    from core.db import session_scope
    from core.models import Event

    with session_scope() as s:
        return {event_id: s.get(Event, event_id).client_id for event_id in event_ids}


def test_approving_one_request_expires_others_for_the_same_lesson(api, seed, swap_setup):
    seed.user("max", "CLIENT")
    max_client = seed.client("coach-a", "Max", user_id="max")
    max_event = seed.lesson("coach-a", max_client, days_ahead=7, title="Max lesson")
    kim_request = _request(api, seed, swap_setup).json()["id"]
    max_request = api.post(
        "/api/v1/time-swaps",
        json={"requester_event_id": max_event, "target_event_id": swap_setup["lee_event"]},
        headers=seed.headers("max"),
    )
    assert max_request.status_code == 201, max_request.text
    before = _owners(swap_setup["kim_event"], swap_setup["lee_event"], max_event)

    approved = api.post(f"/api/v1/time-swaps/{max_request.json()['id']}/approve", headers=seed.headers("lee"))
    assert approved.status_code == 200, approved.text

    stale = api.post(f"/api/v1/time-swaps/{kim_request}/approve", headers=seed.headers("lee"))
    assert stale.status_code == 400

    owners = _owners(swap_setup["kim_event"], swap_setup["lee_event"], max_event)
    assert owners[swap_setup["kim_event"]] == before[swap_setup["kim_event"]]
    assert owners[swap_setup["lee_event"]] == before[max_event]
    assert owners[max_event] == before[swap_setup["lee_event"]]

    sent = api.get("/api/v1/time-swaps", headers=seed.headers("kim")).json()["sent"]
    assert [r["status"] for r in sent] == ["EXPIRED"]


def test_lesson_moved_since_request_blocks_approval(api, seed, swap_setup):
    from core.db import session_scope
    from core.models import Event

    request_id = _request(api, seed, swap_setup).json()["id"]
    seed.user("ned", "CLIENT")
    ned = seed.client("coach-a", "Ned", user_id="ned")
    with session_scope() as s:
        s.get(Event, swap_setup["lee_event"]).client_id = ned

    resp = api.post(f"/api/v1/time-swaps/{request_id}/approve", headers=seed.headers("lee"))
    assert resp.status_code == 409
    assert _owners(swap_setup["lee_event"]) == {swap_setup["lee_event"]: ned}
    received = api.get("/api/v1/time-swaps", headers=seed.headers("lee")).json()["received"]
    assert [r["status"] for r in received] == ["PENDING"]
