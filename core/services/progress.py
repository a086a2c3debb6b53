from __future__ import annotations

import logging
from datetime import datetime, timedelta
from typing import Any, Optional

from sqlalchemy import select
from sqlalchemy.orm import Session

from core.errors import BadRequest
from core.models import AssignedWorkout, Client, ProgressEntry
from core.services.access import get_user, is_coach, owned_client, require_client_record, require_coach
from core.services.analytics import capped_rate, records, weekly_counts, weekly_progress
from core.services.notifications import notify
from core.services.side_effects import SideEffects
from core.validators import ProgressUpdateInput

logger = logging.getLogger(__name__)

HISTORY_WEEKS = 12


def range_start(time_range: str, now: datetime) -> Optional[datetime]:
    if time_range == "all":
        return None
    return now - timedelta(weeks=int(time_range))


def _target_client(s: Session, user_id: str, client_id: Optional[int]) -> Client:
    """Coaches look at one of their clients; clients look at themselves."""
    user = get_user(s, user_id)
    if is_coach(user):
        if client_id is None:
            raise BadRequest("client_id is required")
        return owned_client(s, user.id, client_id)
    return require_client_record(s, user_id)


def _workouts(s: Session, client: Client, since: Optional[datetime]) -> list[AssignedWorkout]:
    q = select(AssignedWorkout).where(AssignedWorkout.client_id == client.id)
    if since is not None:
        q = q.where(AssignedWorkout.scheduled_date >= since)
    return list(s.execute(q.order_by(AssignedWorkout.scheduled_date.desc())).scalars().all())


def _entries(s: Session, client: Client, since: Optional[datetime] = None) -> list[ProgressEntry]:
    if not client.user_id:
        return []
    q = select(ProgressEntry).where(ProgressEntry.client_id == client.user_id)
    if since is not None:
        q = q.where(ProgressEntry.date >= since)
    return list(s.execute(q.order_by(ProgressEntry.date.desc())).scalars().all())


def get_progress_data(
    s: Session, user_id: str, client_id: Optional[int] = None, time_range: str = "4", now: datetime | None = None
) -> dict[str, Any]:
    client = _target_client(s, user_id, client_id)
    since = range_start(time_range, now or datetime.utcnow())
    workouts = _workouts(s, client, since)
    entries = _entries(s, client, since)
    completed = sum(1 for w in workouts if w.completed)
    return {
        "client_id": client.id,
        "time_range": time_range,
        "completion_rate": capped_rate(completed, len(workouts)),
        "completed_workouts": completed,
        "total_workouts": len(workouts),
        "streak": sum(1 for e in entries if e.progress >= 100),
        "entries": entries,
    }


def get_workout_history(
    s: Session, user_id: str, client_id: Optional[int] = None, time_range: str = "4", now: datetime | None = None
) -> list[AssignedWorkout]:
    client = _target_client(s, user_id, client_id)
    return _workouts(s, client, range_start(time_range, now or datetime.utcnow()))


def update_progress(s: Session, user_id: str, body: ProgressUpdateInput, effects: SideEffects) -> ProgressEntry:
    coach = require_coach(s, user_id, "update progress")
    client = owned_client(s, coach.id, body.client_id)
    if not client.user_id:
        raise BadRequest("Client has no user account to record progress against")
    entry = ProgressEntry(client_id=client.user_id, progress=body.progress, notes=body.notes)
    s.add(entry)
    s.flush()
    notify(
        s,
        client.user_id,
        "PROGRESS_UPDATE",
        "Progress Updated",
        f"Your coach recorded {body.progress}% progress.",
        effects,
        data={"progress_entry_id": entry.id},
    )
    logger.info("progress_recorded", extra={"client_id": client.id, "progress": body.progress})
    return entry


def get_historical_data(s: Session, user_id: str, client_id: Optional[int] = None, now: datetime | None = None) -> dict[str, Any]:
    client = _target_client(s, user_id, client_id)
    now = now or datetime.utcnow()
    since = now - timedelta(weeks=HISTORY_WEEKS)
    entries = _entries(s, client, since)
    completed = [w.completed_at for w in _workouts(s, client, since) if w.completed and w.completed_at]
    return {
        "client_id": client.id,
        "progress": records(weekly_progress((e.date, e.progress) for e in entries)),
        "completed_workouts": records(weekly_counts(completed, since, now)),
    }


def build_insights(completion_rate: float, streak: int, total_workouts: int) -> list[dict[str, str]]:
    insights: list[dict[str, str]] = []
    if total_workouts == 0:
        insights.append({"type": "info", "message": "No workouts scheduled in this period yet."})
        return insights
    if completion_rate > 80:
        insights.append({"type": "positive", "message": f"Excellent consistency: {completion_rate:.0f}% of workouts completed."})
    elif completion_rate < 50:
        insights.append({"type": "warning", "message": f"Only {completion_rate:.0f}% of workouts completed. Consider checking in."})
    if streak > 7:
        insights.append({"type": "positive", "message": f"{streak} full-progress sessions logged. Keep the streak going!"})
    return insights


def get_progress_insights(s: Session, user_id: str, client_id: Optional[int] = None, now: datetime | None = None) -> dict[str, Any]:
    data = get_progress_data(s, user_id, client_id, "4", now)
    return {
        "client_id": data["client_id"],
        "completion_rate": data["completion_rate"],
        "streak": data["streak"],
        "insights": build_insights(data["completion_rate"], data["streak"], data["total_workouts"]),
    }
