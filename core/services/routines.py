from __future__ import annotations

import logging
from datetime import datetime, time
from typing import Any

from sqlalchemy import select
from sqlalchemy.orm import Session

from core.errors import NotFound
from core.models import Client, ProgramDay, ProgramDrill, ProgramWeek, Routine, RoutineAssignment, RoutineExercise
from core.services import delivery
from core.services.access import owned_client, owned_clients, require_client_record, require_coach
from core.services.side_effects import SideEffects
from core.validators import RoutineAssignInput, RoutineCreateInput, RoutineExerciseInput, RoutineUpdateInput

logger = logging.getLogger(__name__)


def _exercises(items: list[RoutineExerciseInput]) -> list[RoutineExercise]:
    return [RoutineExercise(order=i, **item.model_dump()) for i, item in enumerate(items, start=1)]


def _owned_routine(s: Session, coach_id: str, routine_id: int) -> Routine:
    routine = s.execute(select(Routine).where(Routine.id == routine_id, Routine.coach_id == coach_id)).scalar_one_or_none()
    if routine is None:
        raise NotFound("Routine not found")
    return routine


def list_routines(s: Session, user_id: str) -> list[Routine]:
    coach = require_coach(s, user_id, "view routines")
    return list(
        s.execute(select(Routine).where(Routine.coach_id == coach.id).order_by(Routine.updated_at.desc(), Routine.id.desc()))
        .scalars()
        .all()
    )


def get_routine(s: Session, user_id: str, routine_id: int) -> Routine:
    coach = require_coach(s, user_id, "view routines")
    return _owned_routine(s, coach.id, routine_id)


def create_routine(s: Session, user_id: str, body: RoutineCreateInput) -> Routine:
    coach = require_coach(s, user_id, "create routines")
    routine = Routine(coach_id=coach.id, name=body.name, description=body.description, exercises=_exercises(body.exercises))
    s.add(routine)
    s.flush()
    logger.info("routine_created", extra={"routine_id": routine.id, "exercises": len(body.exercises)})
    return routine


def update_routine(s: Session, user_id: str, routine_id: int, body: RoutineUpdateInput) -> Routine:
    coach = require_coach(s, user_id, "update routines")
    routine = _owned_routine(s, coach.id, routine_id)
    if body.name is not None:
        routine.name = body.name
    if "description" in body.model_fields_set:
        routine.description = body.description
    if body.exercises is not None:
        routine.exercises.clear()
        s.flush()
        routine.exercises.extend(_exercises(body.exercises))
    routine.updated_at = datetime.utcnow()
    s.flush()
    return routine


def delete_routine(s: Session, user_id: str, routine_id: int) -> dict[str, Any]:
    """Delete a routine; program drills that used it turn into rest-day placeholders."""
    coach = require_coach(s, user_id, "delete routines")
    routine = _owned_routine(s, coach.id, routine_id)
    rows = s.execute(
        select(ProgramDrill, ProgramWeek.program_id)
        .join(ProgramDay, ProgramDrill.day_id == ProgramDay.id)
        .join(ProgramWeek, ProgramDay.week_id == ProgramWeek.id)
        .where(ProgramDrill.routine_id == routine.id)
    ).all()
    programs: set[int] = set()
    for drill, program_id in rows:
        programs.add(program_id)
        drill.routine_id = None
        drill.title = "Rest Day"
        drill.description = "Routine was removed"
        drill.type = "rest"
        drill.sets = None
        drill.reps = None
        drill.tempo = None
        drill.duration = None
        drill.video_url = None
        drill.video_id = None
        drill.video_title = None
        drill.video_thumbnail = None
    s.flush()
    s.delete(routine)
    logger.info(
        "routine_deleted",
        extra={"routine_id": routine_id, "affected_programs": len(programs), "replaced_drills": len(rows)},
    )
    return {"success": True, "affected_programs": len(programs), "replaced_drills": len(rows)}


# -- assignments --


def assign_routine(s: Session, user_id: str, routine_id: int, body: RoutineAssignInput, effects: SideEffects) -> list[RoutineAssignment]:
    coach = require_coach(s, user_id, "assign routines")
    routine = _owned_routine(s, coach.id, routine_id)
    clients = owned_clients(s, coach.id, body.client_ids, active_only=True)
    start = datetime.combine(body.start_date, time.min) if body.start_date else None

    created: list[RoutineAssignment] = []
    for client in sorted(clients, key=lambda c: c.id):
        row = RoutineAssignment(routine_id=routine.id, client_id=client.id, start_date=start)
        s.add(row)
        created.append(row)
        context = {"routine_id": routine.id, "client_id": client.id}
        if client.email:
            effects.add(
                "email.routine_assigned",
                delivery.send_email,
                client.email,
                "New routine assigned",
                f"{coach.name or 'Your coach'} assigned you the routine \"{routine.name}\".",
                template="routine_assigned",
                context=context,
            )
        if client.user_id:
            effects.add(
                "push.routine_assigned",
                delivery.send_push,
                client.user_id,
                "New Routine Assigned",
                f"You have a new routine: {routine.name}",
                {"routine_id": routine.id},
                context=context,
            )
    s.flush()
    logger.info("routine_assigned", extra={"routine_id": routine.id, "clients": len(created)})
    return created


def unassign(s: Session, user_id: str, assignment_id: int) -> None:
    coach = require_coach(s, user_id, "unassign routines")
    row = s.execute(
        select(RoutineAssignment)
        .join(Routine, RoutineAssignment.routine_id == Routine.id)
        .where(RoutineAssignment.id == assignment_id, Routine.coach_id == coach.id)
    ).scalar_one_or_none()
    if row is None:
        raise NotFound("Routine assignment not found")
    s.delete(row)


def unassign_specific_routine(s: Session, user_id: str, routine_id: int, client_id: int) -> int:
    coach = require_coach(s, user_id, "unassign routines")
    routine = _owned_routine(s, coach.id, routine_id)
    client = owned_client(s, coach.id, client_id)
    rows = s.execute(
        select(RoutineAssignment).where(RoutineAssignment.routine_id == routine.id, RoutineAssignment.client_id == client.id)
    ).scalars().all()
    if not rows:
        raise NotFound("Routine assignment not found")
    for row in rows:
        s.delete(row)
    return len(rows)


def get_routine_assignments(s: Session, user_id: str, routine_id: int) -> list[RoutineAssignment]:
    coach = require_coach(s, user_id, "view routine assignments")
    routine = _owned_routine(s, coach.id, routine_id)
    return list(
        s.execute(
            select(RoutineAssignment)
            .join(Client, RoutineAssignment.client_id == Client.id)
            .where(RoutineAssignment.routine_id == routine.id, Client.archived.is_(False))
            .order_by(RoutineAssignment.assigned_at.desc())
        ).scalars().all()
    )


def get_client_routine_assignments(s: Session, user_id: str, client_id: int) -> list[RoutineAssignment]:
    coach = require_coach(s, user_id, "view routine assignments")
    client = owned_client(s, coach.id, client_id)
    return list(
        s.execute(
            select(RoutineAssignment).where(RoutineAssignment.client_id == client.id).order_by(RoutineAssignment.assigned_at.desc())
        ).scalars().all()
    )


def get_my_routine_assignments(s: Session, user_id: str) -> list[RoutineAssignment]:
    client = require_client_record(s, user_id)
    return list(
        s.execute(
            select(RoutineAssignment).where(RoutineAssignment.client_id == client.id).order_by(RoutineAssignment.assigned_at.desc())
        ).scalars().all()
    )
