from __future__ import annotations

import logging
from datetime import datetime
from typing import Any, Optional

from sqlalchemy import func, or_, select
from sqlalchemy.orm import Session

from core.config import get_settings
from core.errors import BadRequest, Forbidden, NotFound
from core.models import ROLE_CLIENT, ROLE_COACH, Client, LibraryResource, User, VideoAssignment
from core.services import delivery, youtube
from core.services.access import owned_client, require_coach
from core.services.notifications import notify
from core.services.side_effects import SideEffects
from core.validators import (
    LibraryResourceCreateInput,
    LibraryResourceUpdateInput,
    PlaylistImportInput,
    VideoAssignInput,
    YouTubeImportInput,
)

logger = logging.getLogger(__name__)


def _library_owner(s: Session, user_id: str) -> Optional[str]:
    """Coach id whose library the caller may browse."""
    user = s.get(User, user_id)
    if user is None or user.role not in (ROLE_COACH, ROLE_CLIENT):
        raise Forbidden("Only coaches and clients can view library")
    if user.role == ROLE_COACH:
        return user.id
    client = s.execute(select(Client).where(Client.user_id == user_id)).scalar_one_or_none()
    if client is None:
        raise NotFound("Client profile not found")
    return client.coach_id


def list_resources(
    s: Session,
    user_id: str,
    search: Optional[str] = None,
    category: Optional[str] = None,
    type: Optional[str] = None,
) -> list[LibraryResource]:
    owner = _library_owner(s, user_id)
    if owner is None:
        return []
    q = select(LibraryResource).where(LibraryResource.coach_id == owner, LibraryResource.is_master_library.is_(False))
    if search:
        pattern = f"%{search}%"
        q = q.where(or_(LibraryResource.title.ilike(pattern), LibraryResource.description.ilike(pattern)))
    if category and category != "All":
        q = q.where(LibraryResource.category == category)
    if type and type != "all":
        q = q.where(LibraryResource.type == type)
    return list(s.execute(q.order_by(LibraryResource.created_at.desc(), LibraryResource.id.desc())).scalars().all())


def get_stats(s: Session, user_id: str) -> dict[str, Any]:
    coach = require_coach(s, user_id, "view library stats")
    mine = LibraryResource.coach_id == coach.id
    total = s.execute(select(func.count(LibraryResource.id)).where(mine)).scalar_one()
    videos = s.execute(
        select(func.count(LibraryResource.id)).where(
            mine, or_(LibraryResource.type == "video", LibraryResource.is_youtube.is_(True))
        )
    ).scalar_one()
    documents = s.execute(select(func.count(LibraryResource.id)).where(mine, LibraryResource.type == "document")).scalar_one()
    views = s.execute(select(func.coalesce(func.sum(LibraryResource.views), 0)).where(mine)).scalar_one()
    categories = s.execute(select(func.count(func.distinct(LibraryResource.category))).where(mine)).scalar_one()
    return {
        "total": int(total),
        "videos": int(videos),
        "documents": int(documents),
        "total_views": int(views),
        "categories": int(categories),
    }


def get_categories(s: Session, user_id: str) -> list[dict[str, Any]]:
    coach = require_coach(s, user_id, "view library categories")
    rows = s.execute(
        select(LibraryResource.category, func.count(LibraryResource.id))
        .where(LibraryResource.coach_id == coach.id)
        .group_by(LibraryResource.category)
        .order_by(LibraryResource.category)
    ).all()
    return [{"name": name, "count": int(count)} for name, count in rows]


def _visible_resource(s: Session, user_id: str, resource_id: int) -> LibraryResource:
    owner = _library_owner(s, user_id)
    resource = s.get(LibraryResource, resource_id)
    if resource is None or resource.coach_id != owner:
        raise NotFound("Resource not found")
    return resource


def get_resource(s: Session, user_id: str, resource_id: int) -> LibraryResource:
    resource = _visible_resource(s, user_id, resource_id)
    resource.views = (resource.views or 0) + 1
    return resource


def _owned_resource(s: Session, user_id: str, resource_id: int) -> LibraryResource:
    resource = s.get(LibraryResource, resource_id)
    if resource is None:
        raise NotFound("Resource not found")
    if resource.coach_id != user_id:
        raise Forbidden("You can only modify your own resources")
    return resource


def create_resource(s: Session, user_id: str, body: LibraryResourceCreateInput) -> LibraryResource:
    coach = require_coach(s, user_id, "create library resources")
    resource = LibraryResource(coach_id=coach.id, **body.model_dump())
    s.add(resource)
    s.flush()
    logger.info("library_resource_created", extra={"resource_id": resource.id, "coach_id": coach.id})
    return resource


def update_resource(s: Session, user_id: str, resource_id: int, body: LibraryResourceUpdateInput) -> LibraryResource:
    require_coach(s, user_id, "update library resources")
    resource = _owned_resource(s, user_id, resource_id)
    for key, value in body.model_dump(exclude_unset=True).items():
        setattr(resource, key, value)
    s.flush()
    return resource


def delete_resource(s: Session, user_id: str, resource_id: int, effects: SideEffects) -> None:
    require_coach(s, user_id, "delete library resources")
    resource = _owned_resource(s, user_id, resource_id)
    if not resource.is_youtube and resource.url:
        effects.add("blob.delete", delivery.delete_blob, resource.url, context={"resource_id": resource.id})
    s.delete(resource)
    logger.info("library_resource_deleted", extra={"resource_id": resource_id})


def rate_resource(s: Session, user_id: str, resource_id: int, rating: int) -> LibraryResource:
    resource = _visible_resource(s, user_id, resource_id)
    resource.rating = float(rating)
    return resource


# -- youtube --


def resolve_video_id(url: str) -> str:
    video_id = youtube.extract_video_id(url)
    if not video_id:
        raise BadRequest("Invalid YouTube URL")
    return video_id


def resolve_playlist_id(url: str) -> str:
    playlist_id = youtube.extract_playlist_id(url)
    if not playlist_id:
        raise BadRequest("Invalid YouTube playlist URL")
    return playlist_id


def playlist_api_key() -> str:
    key = get_settings().youtube_api_key
    if not key:
        raise BadRequest("YouTube API key is not configured, playlist import is unavailable")
    return key


def import_youtube_video(
    s: Session, user_id: str, body: YouTubeImportInput, video_id: str, info: dict[str, Any]
) -> LibraryResource:
    """Store a YouTube video; ``info`` comes from ``youtube.fetch_video_info``."""
    coach = require_coach(s, user_id, "import videos")
    resource = LibraryResource(
        coach_id=coach.id,
        title=body.title or info.get("title") or f"YouTube Video {video_id}",
        description=body.description if body.description is not None else info.get("description"),
        category=body.category,
        type="video",
        url=f"https://www.youtube.com/watch?v={video_id}",
        thumbnail=info.get("thumbnail") or youtube.thumbnail_url(video_id),
        duration=info.get("duration"),
        is_youtube=True,
        youtube_id=video_id,
    )
    s.add(resource)
    s.flush()
    logger.info("youtube_video_imported", extra={"resource_id": resource.id, "youtube_id": video_id})
    return resource


def import_youtube_playlist(
    s: Session, user_id: str, body: PlaylistImportInput, playlist_id: str, videos: list[dict[str, Any]]
) -> list[LibraryResource]:
    coach = require_coach(s, user_id, "import playlists")
    created: list[LibraryResource] = []
    for video in videos:
        resource = LibraryResource(
            coach_id=coach.id,
            title=video["title"],
            description=video.get("description"),
            category=body.category,
            type="video",
            url=f"https://www.youtube.com/watch?v={video['video_id']}",
            thumbnail=video.get("thumbnail") or youtube.thumbnail_url(video["video_id"]),
            is_youtube=True,
            youtube_id=video["video_id"],
            playlist_id=playlist_id,
        )
        s.add(resource)
        created.append(resource)
    s.flush()
    logger.info("youtube_playlist_imported", extra={"playlist_id": playlist_id, "count": len(created)})
    return created


# -- assignments --


def assign_video_to_client(s: Session, user_id: str, body: VideoAssignInput, effects: SideEffects) -> VideoAssignment:
    coach = require_coach(s, user_id, "assign videos")
    client = owned_client(s, coach.id, body.client_id)
    video = s.get(LibraryResource, body.video_id)
    if video is None or (video.coach_id != coach.id and not video.is_master_library):
        raise NotFound("Video not found")

    assignment = s.execute(
        select(VideoAssignment).where(VideoAssignment.video_id == video.id, VideoAssignment.client_id == client.id)
    ).scalar_one_or_none()
    if assignment is None:
        assignment = VideoAssignment(video_id=video.id, client_id=client.id)
        s.add(assignment)
    assignment.due_date = body.due_date
    assignment.notes = body.notes
    assignment.assigned_at = datetime.utcnow()
    s.flush()

    if client.user_id:
        notify(
            s,
            client.user_id,
            "WORKOUT_ASSIGNED",
            "New Video Assigned",
            f"{coach.name or 'Your coach'} assigned you a new video: {video.title}",
            effects,
            data={"video_id": video.id, "assignment_id": assignment.id},
        )
    if client.email:
        effects.add(
            "email.video_assigned",
            delivery.send_email,
            client.email,
            "New video assigned",
            f"{coach.name or 'Your coach'} assigned you \"{video.title}\".",
            template="video_assigned",
            context={"client_id": client.id, "video_id": video.id},
        )
    logger.info("video_assigned", extra={"video_id": video.id, "client_id": client.id})
    return assignment


def remove_video_assignment(s: Session, user_id: str, video_id: int, client_id: int) -> None:
    coach = require_coach(s, user_id, "remove video assignments")
    client = owned_client(s, coach.id, client_id)
    assignment = s.execute(
        select(VideoAssignment).where(VideoAssignment.video_id == video_id, VideoAssignment.client_id == client.id)
    ).scalar_one_or_none()
    if assignment is None:
        raise NotFound("Video assignment not found")
    s.delete(assignment)


def get_client_assignments(s: Session, user_id: str, client_id: int) -> list[VideoAssignment]:
    coach = require_coach(s, user_id, "view client assignments")
    client = owned_client(s, coach.id, client_id)
    return list(
        s.execute(
            select(VideoAssignment).where(VideoAssignment.client_id == client.id).order_by(VideoAssignment.assigned_at.desc())
        ).scalars().all()
    )
