"""Clients for the collaborators the platform calls but does not own.

Email, push and blob storage are reached over HTTP with httpx. A collaborator
without a configured endpoint is skipped with a debug log. Real-time delivery
goes through a broadcaster registered by the web layer at startup.
"""

from __future__ import annotations

import logging
from typing import Any, Awaitable, Callable, Optional

import httpx

from core.config import get_settings

logger = logging.getLogger(__name__)

RealtimeSender = Callable[[str, str, dict[str, Any]], Awaitable[int]]

_realtime_sender: Optional[RealtimeSender] = None


def set_realtime_sender(sender: Optional[RealtimeSender]) -> None:
    global _realtime_sender
    _realtime_sender = sender


async def publish_realtime(user_id: str, event: str, payload: dict[str, Any]) -> int:
    if _realtime_sender is None:
        logger.debug("realtime_skipped", extra={"user_id": user_id, "event": event})
        return 0
    return await _realtime_sender(user_id, event, payload)


async def _post(url: str, api_key: str, payload: dict[str, Any]) -> httpx.Response:
    headers = {"Content-Type": "application/json"}
    if api_key:
        headers["Authorization"] = f"Bearer {api_key}"
    async with httpx.AsyncClient(timeout=get_settings().external_timeout_seconds) as client:
        resp = await client.post(url, json=payload, headers=headers)
        resp.raise_for_status()
        return resp


async def send_email(to: str, subject: str, body: str, *, template: str | None = None) -> bool:
    settings = get_settings()
    if not settings.email_api_url or not to:
        logger.debug("email_skipped", extra={"to": to, "template": template})
        return False
    await _post(
        settings.email_api_url,
        settings.email_api_key,
        {"from": settings.email_from, "to": to, "subject": subject, "html": body, "template": template},
    )
    logger.info("email_sent", extra={"template": template})
    return True


async def send_push(user_id: str, title: str, body: str, data: dict[str, Any] | None = None) -> bool:
    settings = get_settings()
    if not settings.push_api_url:
        logger.debug("push_skipped", extra={"user_id": user_id})
        return False
    await _post(settings.push_api_url, settings.push_api_key, {"user_id": user_id, "title": title, "body": body, "data": data or {}})
    return True


async def delete_blob(url: str) -> bool:
    settings = get_settings()
    if not settings.blob_api_url or not url:
        logger.debug("blob_delete_skipped", extra={"url": url})
        return False
    await _post(f"{settings.blob_api_url.rstrip('/')}/delete", settings.blob_api_key, {"url": url})
    logger.info("blob_deleted", extra={"url": url})
    return True
