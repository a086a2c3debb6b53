"""Coach analytics: dashboard metrics, per-client progress, program performance.

Metrics compare the current window with the equally long window before it.
Trends are relative changes in percent and are zero when the previous value
is zero. Nothing is estimated: an empty window reports zeros.
"""

from __future__ import annotations

from dataclasses import dataclass
from datetime import date, datetime, timedelta
from typing import Any, Iterable

import pandas as pd
from sqlalchemy import func, select
from sqlalchemy.orm import Session

from core.models import (
    Client,
    Conversation,
    DrillCompletion,
    Message,
    Program,
    ProgramAssignment,
    ProgramDrillCompletion,
    RoutineExerciseCompletion,
)
from core.services.access import require_coach
from core.services.calendar import scheduled_drill_dates

RANGE_DAYS = {"4w": 28, "6w": 42, "8w": 56, "1y": 365}
RETENTION_DAYS = 30

_COMPLETION_MODELS = (ProgramDrillCompletion, DrillCompletion, RoutineExerciseCompletion)


# ---------------------------------------------------------------------------
# Pure helpers
# ---------------------------------------------------------------------------

@dataclass(frozen=True)
class Window:
    start: datetime
    end: datetime

    def contains(self, value: datetime | date) -> bool:
        if not isinstance(value, datetime):
            value = datetime.combine(value, datetime.min.time())
        return self.start <= value < self.end


def windows(time_range: str, now: datetime) -> tuple[Window, Window]:
    """(current, previous) windows for a dashboard range such as ``"4w"``."""
    days = RANGE_DAYS.get(time_range, RANGE_DAYS["4w"])
    current = Window(now - timedelta(days=days), now)
    previous = Window(current.start - timedelta(days=days), current.start)
    return current, previous


def trend(current: float, previous: float) -> float:
    if previous > 0:
        return round((current - previous) / previous * 100, 1)
    return 0.0


def capped_rate(numerator: float, denominator: float) -> float:
    if denominator <= 0:
        return 0.0
    return round(min(100.0, numerator / denominator * 100), 1)


def weekly_counts(timestamps: Iterable[datetime], start: datetime, end: datetime) -> pd.DataFrame:
    """Count timestamps per ISO week across [start, end), filling empty weeks with zero.

    Returns a DataFrame with columns: week, count.
    """
    weeks = pd.period_range(start=pd.Timestamp(start), end=pd.Timestamp(end), freq="W")
    skeleton = pd.DataFrame({"week": weeks.astype(str), "count": 0})
    stamps = [t for t in timestamps if start <= t < end]
    if not stamps:
        return skeleton
    d = pd.DataFrame({"ts": pd.to_datetime(stamps)})
    d["week"] = d["ts"].dt.to_period("W").astype(str)
    counts = d.groupby("week").size()
    skeleton["count"] = skeleton["week"].map(counts).fillna(0).astype(int)
    return skeleton


def weekly_progress(entries: Iterable[tuple[datetime, int]]) -> pd.DataFrame:
    """Average progress and entry count per week.

    Returns a DataFrame with columns: week, average_progress, entries.
    """
    rows = list(entries)
    if not rows:
        return pd.DataFrame(columns=["week", "average_progress", "entries"])
    d = pd.DataFrame(rows, columns=["date", "progress"])
    d["date"] = pd.to_datetime(d["date"])
    d["week"] = d["date"].dt.to_period("W").astype(str)
    out = d.groupby("week", as_index=False).agg(average_progress=("progress", "mean"), entries=("progress", "count"))
    out["average_progress"] = out["average_progress"].round(1)
    return out


def records(frame: pd.DataFrame) -> list[dict[str, Any]]:
    return [
        {key: (value.item() if hasattr(value, "item") else value) for key, value in row.items()}
        for row in frame.to_dict(orient="records")
    ]


# ---------------------------------------------------------------------------
# Queries
# ---------------------------------------------------------------------------

def _client_ids(s: Session, coach_id: str) -> list[int]:
    return list(s.execute(select(Client.id).where(Client.coach_id == coach_id)).scalars().all())


def _completion_times(s: Session, client_ids: list[int], window: Window | None = None) -> list[tuple[int, datetime]]:
    if not client_ids:
        return []
    out: list[tuple[int, datetime]] = []
    for model in _COMPLETION_MODELS:
        q = select(model.client_id, model.completed_at).where(model.client_id.in_(client_ids))
        if window is not None:
            q = q.where(model.completed_at >= window.start, model.completed_at < window.end)
        out.extend((int(cid), ts) for cid, ts in s.execute(q).all())
    return out


def _coach_assignments(s: Session, coach_id: str) -> list[ProgramAssignment]:
    return list(
        s.execute(
            select(ProgramAssignment)
            .join(Program, ProgramAssignment.program_id == Program.id)
            .where(Program.coach_id == coach_id)
        ).scalars().all()
    )


def _overlaps(assignment: ProgramAssignment, window: Window) -> bool:
    ends = assignment.start_date + timedelta(weeks=max(assignment.program.duration, 1))
    return assignment.start_date < window.end and ends > window.start


def _drills_in(assignments: Iterable[ProgramAssignment], window: Window) -> int:
    return sum(count for a in assignments for when, count in scheduled_drill_dates(a) if window.contains(when))


def _active_clients_at(s: Session, coach_id: str, moment: datetime) -> int:
    rows = s.execute(
        select(Client.created_at, Client.archived, Client.archived_at).where(Client.coach_id == coach_id)
    ).all()
    return sum(
        1
        for created_at, archived, archived_at in rows
        if created_at <= moment and (not archived or (archived_at is not None and archived_at > moment))
    )


def _period_metrics(s: Session, coach_id: str, client_ids: list[int], assignments: list[ProgramAssignment], window: Window) -> dict[str, float]:
    active = _active_clients_at(s, coach_id, window.end)
    in_window = [a for a in assignments if _overlaps(a, window)]
    completions = _completion_times(s, client_ids, window)
    retention_window = Window(window.end - timedelta(days=RETENTION_DAYS), window.end)
    retained = {cid for cid, _ in _completion_times(s, client_ids, retention_window)}
    progress = [a.progress or 0 for a in in_window]
    return {
        "active_clients": float(active),
        "workout_completion_rate": capped_rate(len(completions), _drills_in(in_window, window)),
        "average_progress": round(sum(progress) / len(progress), 1) if progress else 0.0,
        "completion_rate": capped_rate(sum(1 for p in progress if p >= 100), len(progress)),
        "retention_rate": capped_rate(len(retained), active),
    }


# ---------------------------------------------------------------------------
# Operations
# ---------------------------------------------------------------------------

def get_dashboard_data(s: Session, user_id: str, time_range: str = "4w", now: datetime | None = None) -> dict[str, Any]:
    coach = require_coach(s, user_id, "view analytics")
    now = now or datetime.utcnow()
    current, previous = windows(time_range, now)
    client_ids = _client_ids(s, coach.id)
    assignments = _coach_assignments(s, coach.id)

    cur = _period_metrics(s, coach.id, client_ids, assignments, current)
    prev = _period_metrics(s, coach.id, client_ids, assignments, previous)
    data: dict[str, Any] = {"time_range": time_range}
    for key, value in cur.items():
        data[key] = int(value) if key == "active_clients" else value
        data[f"{key}_trend"] = trend(value, prev[key])
    weekly = weekly_counts((ts for _, ts in _completion_times(s, client_ids, current)), current.start, current.end)
    data["weekly_completions"] = records(weekly)
    return data


def get_client_progress(s: Session, user_id: str, time_range: str = "4w", now: datetime | None = None) -> list[dict[str, Any]]:
    coach = require_coach(s, user_id, "view analytics")
    now = now or datetime.utcnow()
    current, _ = windows(time_range, now)
    clients = s.execute(
        select(Client).where(Client.coach_id == coach.id, Client.archived.is_(False)).order_by(Client.name)
    ).scalars().all()
    assignments = _coach_assignments(s, coach.id)

    rows: list[dict[str, Any]] = []
    for client in clients:
        mine = [a for a in assignments if a.client_id == client.id]
        in_window = [a for a in mine if _overlaps(a, current)]
        completions = _completion_times(s, [client.id], current)
        rows.append(
            {
                "client_id": client.id,
                "name": client.name,
                "completion_rate": capped_rate(len(completions), _drills_in(in_window, current)),
                "completed": len(completions),
                "average_progress": round(sum(a.progress for a in mine) / len(mine), 1) if mine else 0.0,
                "active_programs": sum(1 for a in mine if a.completed_at is None),
                "last_completed_workout": client.last_completed_workout,
            }
        )
    return rows


def get_program_performance(s: Session, user_id: str) -> list[dict[str, Any]]:
    coach = require_coach(s, user_id, "view analytics")
    rows = s.execute(
        select(
            Program.id,
            Program.title,
            Program.level,
            func.count(ProgramAssignment.id),
            func.avg(ProgramAssignment.progress),
            func.count(ProgramAssignment.completed_at),
        )
        .outerjoin(ProgramAssignment, ProgramAssignment.program_id == Program.id)
        .where(Program.coach_id == coach.id)
        .group_by(Program.id, Program.title, Program.level)
        .order_by(Program.title)
    ).all()
    return [
        {
            "program_id": pid,
            "title": title,
            "level": level,
            "assignments": int(total),
            "average_progress": round(float(avg or 0), 1),
            "completions": int(completed),
        }
        for pid, title, level, total, avg, completed in rows
    ]


def get_engagement_metrics(s: Session, user_id: str, time_range: str = "4w", now: datetime | None = None) -> dict[str, Any]:
    coach = require_coach(s, user_id, "view analytics")
    now = now or datetime.utcnow()
    current, _ = windows(time_range, now)
    conv_ids = list(s.execute(select(Conversation.id).where(Conversation.coach_id == coach.id)).scalars().all())

    sent = received = active = 0
    if conv_ids:
        rows = s.execute(
            select(Message.conversation_id, Message.sender_id).where(
                Message.conversation_id.in_(conv_ids),
                Message.created_at >= current.start,
                Message.created_at < current.end,
            )
        ).all()
        sent = sum(1 for _, sender in rows if sender == coach.id)
        received = len(rows) - sent
        active = len({conv_id for conv_id, _ in rows})

    client_ids = _client_ids(s, coach.id)
    weekly = weekly_counts((ts for _, ts in _completion_times(s, client_ids, current)), current.start, current.end)
    return {
        "time_range": time_range,
        "messages_sent": sent,
        "messages_received": received,
        "active_conversations": active,
        "completions_per_week": records(weekly),
    }
