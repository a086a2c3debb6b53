from __future__ import annotations

import logging
from typing import Optional

import httpx
from fastapi import APIRouter, Request, Response

from api.deps import DbSession, Principal
from api.ratelimit import limiter
from api.schemas import CategoryCount, LibraryResourceOut, LibraryStatsOut, SuccessResponse, VideoAssignmentOut
from core.config import get_settings
from core.db import session_scope
from core.errors import BadRequest
from core.services import library, youtube
from core.services.access import require_coach
from core.services.side_effects import SideEffects
from core.validators import (
    LibraryResourceCreateInput,
    LibraryResourceUpdateInput,
    PlaylistImportInput,
    RatingInput,
    VideoAssignInput,
    YouTubeImportInput,
)

logger = logging.getLogger(__name__)
router = APIRouter(prefix="/library", tags=["library"])


@router.get("", response_model=list[LibraryResourceOut])
def list_resources(
    principal: Principal,
    db: DbSession,
    search: Optional[str] = None,
    category: Optional[str] = None,
    type: Optional[str] = None,
):
    return library.list_resources(db, principal.user_id, search=search, category=category, type=type)


@router.get("/stats", response_model=LibraryStatsOut)
def get_stats(principal: Principal, db: DbSession):
    return library.get_stats(db, principal.user_id)


@router.get("/categories", response_model=list[CategoryCount])
def get_categories(principal: Principal, db: DbSession):
    return library.get_categories(db, principal.user_id)


@router.post("", response_model=LibraryResourceOut, status_code=201)
def create_resource(body: LibraryResourceCreateInput, principal: Principal):
    with session_scope() as s:
        return LibraryResourceOut.model_validate(library.create_resource(s, principal.user_id, body))


@router.post("/import/youtube", response_model=LibraryResourceOut, status_code=201)
@limiter.limit(get_settings().import_rate_limit)
async def import_youtube_video(request: Request, response: Response, body: YouTubeImportInput, principal: Principal):
    del request, response
    video_id = library.resolve_video_id(body.url)
    with session_scope() as s:
        require_coach(s, principal.user_id, "import videos")
    info = await youtube.fetch_video_info(video_id)
    with session_scope() as s:
        return LibraryResourceOut.model_validate(library.import_youtube_video(s, principal.user_id, body, video_id, info))


@router.post("/import/playlist", response_model=list[LibraryResourceOut], status_code=201)
@limiter.limit(get_settings().import_rate_limit)
async def import_youtube_playlist(request: Request, response: Response, body: PlaylistImportInput, principal: Principal):
    del request, response
    key = library.playlist_api_key()
    playlist_id = library.resolve_playlist_id(body.url)
    with session_scope() as s:
        require_coach(s, principal.user_id, "import playlists")
    try:
        videos = await youtube.fetch_playlist_videos(playlist_id, key)
    except httpx.HTTPError as exc:
        logger.warning("youtube_playlist_fetch_failed", extra={"playlist_id": playlist_id, "error": str(exc)})
        raise BadRequest("Could not fetch the playlist from YouTube") from exc
    if not videos:
        raise BadRequest("The playlist has no importable videos")
    with session_scope() as s:
        rows = library.import_youtube_playlist(s, principal.user_id, body, playlist_id, videos)
        return [LibraryResourceOut.model_validate(r) for r in rows]


@router.post("/assignments", response_model=VideoAssignmentOut, status_code=201)
async def assign_video_to_client(body: VideoAssignInput, principal: Principal):
    effects = SideEffects()
    with session_scope() as s:
        result = VideoAssignmentOut.model_validate(library.assign_video_to_client(s, principal.user_id, body, effects))
    await effects.flush()
    return result


@router.delete("/assignments/{video_id}/clients/{client_id}", response_model=SuccessResponse)
def remove_video_assignment(video_id: int, client_id: int, principal: Principal):
    with session_scope() as s:
        library.remove_video_assignment(s, principal.user_id, video_id, client_id)
    return SuccessResponse()


@router.get("/clients/{client_id}/assignments", response_model=list[VideoAssignmentOut])
def get_client_assignments(client_id: int, principal: Principal, db: DbSession):
    return library.get_client_assignments(db, principal.user_id, client_id)


@router.get("/{resource_id}", response_model=LibraryResourceOut)
def get_resource(resource_id: int, principal: Principal):
    # reading counts a view
    with session_scope() as s:
        return LibraryResourceOut.model_validate(library.get_resource(s, principal.user_id, resource_id))


@router.patch("/{resource_id}", response_model=LibraryResourceOut)
def update_resource(resource_id: int, body: LibraryResourceUpdateInput, principal: Principal):
    with session_scope() as s:
        return LibraryResourceOut.model_validate(library.update_resource(s, principal.user_id, resource_id, body))


@router.delete("/{resource_id}", response_model=SuccessResponse)
async def delete_resource(resource_id: int, principal: Principal):
    effects = SideEffects()
    with session_scope() as s:
        library.delete_resource(s, principal.user_id, resource_id, effects)
    await effects.flush()
    return SuccessResponse()


@router.post("/{resource_id}/rate", response_model=LibraryResourceOut)
def rate_resource(resource_id: int, body: RatingInput, principal: Principal):
    with session_scope() as s:
        return LibraryResourceOut.model_validate(library.rate_resource(s, principal.user_id, resource_id, body.rating))
