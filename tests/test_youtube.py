from __future__ import annotations

import asyncio

import pytest

from core.services.youtube import (
    default_video_info,
    extract_playlist_id,
    extract_video_id,
    fetch_video_info,
    thumbnail_url,
)


@pytest.mark.parametrize(
    "url",
    [
        "https://www.youtube.com/watch?v=dQw4w9WgXcQ",
        "https://youtu.be/dQw4w9WgXcQ",
        "https://www.youtube.com/embed/dQw4w9WgXcQ",
        "https://www.youtube.com/watch?feature=share&v=dQw4w9WgXcQ",
    ],
)
def test_extract_video_id_from_common_urls(url):
    assert extract_video_id(url) == "dQw4w9WgXcQ"


def test_extract_video_id_none_for_non_youtube():
    assert extract_video_id("https://vimeo.com/12345") is None
    assert extract_video_id("") is None


def test_extract_playlist_id():
    assert extract_playlist_id("https://www.youtube.com/playlist?list=PL123abc") == "PL123abc"
    assert extract_playlist_id("https://www.youtube.com/watch?v=dQw4w9WgXcQ&list=PLx&index=2") == "PLx"
    assert extract_playlist_id("https://www.youtube.com/watch?v=dQw4w9WgXcQ") is None


def test_thumbnail_and_defaults():
    assert thumbnail_url("abc") == "https://img.youtube.com/vi/abc/mqdefault.jpg"
    info = default_video_info("abc")
    assert info["title"] == "YouTube Video abc"
    assert info["thumbnail"] == thumbnail_url("abc")
    assert info["duration"] is None


def test_fetch_without_key_returns_defaults():
    info = asyncio.run(fetch_video_info("dQw4w9WgXcQ", api_key=""))
    assert info["title"] == "YouTube Video dQw4w9WgXcQ"
