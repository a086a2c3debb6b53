from __future__ import annotations

import logging
from datetime import date, datetime, time, timedelta
from typing import Any

from sqlalchemy import select
from sqlalchemy.orm import Session

from core.errors import NotFound
from core.models import AssignedWorkout, ProgramAssignment, Routine
from core.services.access import owned_client, require_client_record, require_coach
from core.services.calendar import as_date, expand_drill
from core.services.notifications import notify
from core.services.side_effects import SideEffects
from core.validators import WorkoutCreateInput

logger = logging.getLogger(__name__)


def program_position(start: date | datetime, today: date) -> tuple[int, int] | None:
    """(week, day) of ``today`` within a program started on ``start``, or None before it starts."""
    days = (today - as_date(start)).days
    if days < 0:
        return None
    return days // 7 + 1, days % 7 + 1


def get_todays_workouts(s: Session, user_id: str, today: date | None = None) -> dict[str, Any]:
    client = require_client_record(s, user_id)
    today = today or datetime.utcnow().date()

    program_days: list[dict[str, Any]] = []
    assignments = s.execute(select(ProgramAssignment).where(ProgramAssignment.client_id == client.id)).scalars().all()
    for assignment in assignments:
        position = program_position(assignment.start_date, today)
        if position is None:
            continue
        week_number, day_number = position
        week = next((w for w in assignment.program.weeks if w.week_number == week_number), None)
        day = next((d for d in week.days if d.day_number == day_number), None) if week else None
        if day is None:
            continue
        drills: list[dict[str, Any]] = []
        for drill in day.drills:
            routine = s.get(Routine, drill.routine_id) if drill.routine_id else None
            drills.extend(expand_drill(drill, False, routine))
        program_days.append(
            {
                "assignment_id": assignment.id,
                "program_id": assignment.program_id,
                "program_title": assignment.program.title,
                "week_number": week_number,
                "day_number": day_number,
                "title": day.title,
                "is_rest_day": day.is_rest_day or not drills,
                "drills": drills,
            }
        )

    start = datetime.combine(today, time.min)
    workouts = s.execute(
        select(AssignedWorkout)
        .where(
            AssignedWorkout.client_id == client.id,
            AssignedWorkout.scheduled_date >= start,
            AssignedWorkout.scheduled_date < start + timedelta(days=1),
        )
        .order_by(AssignedWorkout.scheduled_date)
    ).scalars().all()
    return {"date": today, "program_days": program_days, "workouts": list(workouts)}


def get_client_workouts(s: Session, user_id: str, client_id: int) -> list[AssignedWorkout]:
    coach = require_coach(s, user_id, "view client workouts")
    client = owned_client(s, coach.id, client_id)
    return list(
        s.execute(
            select(AssignedWorkout).where(AssignedWorkout.client_id == client.id).order_by(AssignedWorkout.scheduled_date.desc())
        ).scalars().all()
    )


def create_workout(s: Session, user_id: str, body: WorkoutCreateInput, effects: SideEffects) -> AssignedWorkout:
    coach = require_coach(s, user_id, "create workouts")
    client = owned_client(s, coach.id, body.client_id)
    workout = AssignedWorkout(coach_id=coach.id, **body.model_dump())
    s.add(workout)
    s.flush()
    if client.user_id:
        notify(
            s,
            client.user_id,
            "WORKOUT_ASSIGNED",
            "New Workout Assigned",
            f"{workout.title} on {workout.scheduled_date:%Y-%m-%d}",
            effects,
            data={"workout_id": workout.id},
        )
    logger.info("workout_created", extra={"workout_id": workout.id, "client_id": client.id})
    return workout


def mark_complete(s: Session, user_id: str, workout_id: int, completed: bool, effects: SideEffects) -> AssignedWorkout:
    client = require_client_record(s, user_id)
    workout = s.execute(
        select(AssignedWorkout).where(AssignedWorkout.id == workout_id, AssignedWorkout.client_id == client.id)
    ).scalar_one_or_none()
    if workout is None:
        raise NotFound("Workout not found")
    workout.completed = completed
    workout.completed_at = datetime.utcnow() if completed else None
    if completed:
        client.last_completed_workout = workout.completed_at
        notify(
            s,
            workout.coach_id,
            "WORKOUT_COMPLETED",
            "Workout Completed",
            f"{client.name} completed \"{workout.title}\".",
            effects,
            data={"workout_id": workout.id, "client_id": client.id},
        )
    return workout
