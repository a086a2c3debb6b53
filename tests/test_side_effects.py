from __future__ import annotations

import asyncio
import logging

from core.services import delivery
from core.services.side_effects import SideEffects


def test_failed_effect_is_logged_and_the_rest_still_run(caplog):
    ran: list[str] = []

    def boom():
        raise RuntimeError("provider down")

    async def later(tag):
        ran.append(tag)

    effects = SideEffects()
    effects.add("email.first", boom, context={"recipient_id": "u1"})
    effects.add("push.second", later, "push")
    effects.add("sync.third", ran.append, "sync")

    with caplog.at_level(logging.WARNING, logger="core.services.side_effects"):
        ok = asyncio.run(effects.flush())

    assert ok == 2
    assert ran == ["push", "sync"]
    assert effects.failures == ["email.first"]
    assert any(r.getMessage() == "side_effect_failed" for r in caplog.records)
    assert len(effects) == 0


def test_discard_drops_pending_effects():
    effects = SideEffects()
    effects.add("x", lambda: None)
    effects.discard()
    assert asyncio.run(effects.flush()) == 0


def test_publish_realtime_uses_registered_sender():
    sent: list[tuple] = []

    async def sender(user_id, event, payload):
        sent.append((user_id, event, payload))
        return 1

    delivery.set_realtime_sender(sender)
    try:
        assert asyncio.run(delivery.publish_realtime("u1", "new_message", {"id": 1})) == 1
    finally:
        delivery.set_realtime_sender(None)
    assert sent == [("u1", "new_message", {"id": 1})]
    assert asyncio.run(delivery.publish_realtime("u1", "new_message", {})) == 0


def test_unconfigured_providers_are_skipped(monkeypatch):
    from core.config import get_settings

    monkeypatch.delenv("EMAIL_API_URL", raising=False)
    monkeypatch.delenv("PUSH_API_URL", raising=False)
    monkeypatch.delenv("BLOB_API_URL", raising=False)
    get_settings.cache_clear()
    try:
        assert asyncio.run(delivery.send_email("a@example.com", "s", "b")) is False
        assert asyncio.run(delivery.send_push("u1", "t", "b")) is False
        assert asyncio.run(delivery.delete_blob("https://blob.test/x")) is False
    finally:
        get_settings.cache_clear()
