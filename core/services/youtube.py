from __future__ import annotations

import logging
import re
from typing import Any, Optional

import httpx

from core.config import get_settings

logger = logging.getLogger(__name__)

API_BASE = "https://www.googleapis.com/youtube/v3"

_VIDEO_ID_RE = re.compile(r"(?:youtube\.com\/(?:[^\/]+\/.+\/|(?:v|e(?:mbed)?)\/|.*[?&]v=)|youtu\.be\/)([^\"&?\/\s]{11})")
_PLAYLIST_ID_RE = re.compile(r"[&?]list=([^&]+)")


def extract_video_id(url: str) -> Optional[str]:
    match = _VIDEO_ID_RE.search(url or "")
    return match.group(1) if match else None


def extract_playlist_id(url: str) -> Optional[str]:
    match = _PLAYLIST_ID_RE.search(url or "")
    return match.group(1) if match else None


def thumbnail_url(video_id: str) -> str:
    return f"https://img.youtube.com/vi/{video_id}/mqdefault.jpg"


def default_video_info(video_id: str, reason: str = "without API") -> dict[str, Any]:
    return {
        "title": f"YouTube Video {video_id}",
        "description": f"YouTube video imported {reason}",
        "thumbnail": thumbnail_url(video_id),
        "duration": None,
    }


async def fetch_video_info(video_id: str, api_key: str | None = None) -> dict[str, Any]:
    """Video metadata from the Data API, or defaults when no key is configured or the call fails."""
    settings = get_settings()
    key = api_key if api_key is not None else settings.youtube_api_key
    if not key:
        return default_video_info(video_id)

    params = {"id": video_id, "key": key, "part": "snippet,contentDetails"}
    try:
        async with httpx.AsyncClient(timeout=settings.external_timeout_seconds) as client:
            resp = await client.get(f"{API_BASE}/videos", params=params)
            resp.raise_for_status()
            items = resp.json().get("items") or []
    except (httpx.HTTPError, ValueError) as exc:
        logger.warning("youtube_video_fetch_failed", extra={"video_id": video_id, "error": str(exc)})
        return default_video_info(video_id, reason="with API error")

    if not items:
        return default_video_info(video_id, reason="with API error")
    video = items[0]
    snippet = video.get("snippet") or {}
    thumbs = snippet.get("thumbnails") or {}
    return {
        "title": snippet.get("title") or f"YouTube Video {video_id}",
        "description": snippet.get("description") or "",
        "thumbnail": (thumbs.get("medium") or {}).get("url") or thumbnail_url(video_id),
        "duration": (video.get("contentDetails") or {}).get("duration"),
    }


async def fetch_playlist_videos(playlist_id: str, api_key: str | None = None) -> list[dict[str, Any]]:
    settings = get_settings()
    key = api_key if api_key is not None else settings.youtube_api_key
    if not key:
        return []

    params = {"playlistId": playlist_id, "key": key, "part": "snippet", "maxResults": 50}
    async with httpx.AsyncClient(timeout=settings.external_timeout_seconds) as client:
        resp = await client.get(f"{API_BASE}/playlistItems", params=params)
        resp.raise_for_status()
        items = resp.json().get("items") or []

    videos: list[dict[str, Any]] = []
    for item in items:
        snippet = item.get("snippet") or {}
        video_id = (snippet.get("resourceId") or {}).get("videoId")
        if not video_id:
            continue
        thumbs = snippet.get("thumbnails") or {}
        videos.append(
            {
                "video_id": video_id,
                "title": snippet.get("title") or f"YouTube Video {video_id}",
                "description": snippet.get("description") or "",
                "thumbnail": (thumbs.get("medium") or {}).get("url") or thumbnail_url(video_id),
            }
        )
    return videos
