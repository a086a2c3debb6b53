"""Program building and assignment.

A program is weeks of days of drills. Rewrites and assignments run inside
the caller's session so a failure leaves nothing half written.
"""

from __future__ import annotations

import logging
from datetime import datetime, time, timedelta
from typing import Any, Iterable

from sqlalchemy import delete, func, select
from sqlalchemy.orm import Session

from core.errors import Conflict, NotFound
from core.models import (
    PROGRAM_LEVELS,
    Client,
    Program,
    ProgramAssignment,
    ProgramDay,
    ProgramDrill,
    ProgramWeek,
    Routine,
)
from core.services.access import owned_clients, require_coach
from core.services.notifications import notify
from core.services.side_effects import SideEffects
from core.validators import (
    DayCreateInput,
    DrillInput,
    DrillUpdateInput,
    ProgramAssignInput,
    ProgramCreateInput,
    ProgramUpdateInput,
    WeekCreateInput,
    WeekInput,
    WeekUpdateInput,
)

logger = logging.getLogger(__name__)

DAYS_PER_WEEK = 7


def _build_drill(order: int, drill: DrillInput) -> ProgramDrill:
    return ProgramDrill(order=order, **drill.model_dump())


def _build_week(week: WeekInput) -> ProgramWeek:
    row = ProgramWeek(week_number=week.week_number, title=week.title, description=week.description)
    for day in week.days:
        row.days.append(
            ProgramDay(
                day_number=day.day_number,
                title=day.title,
                description=day.description,
                is_rest_day=day.is_rest_day or not day.drills,
                drills=[_build_drill(i, d) for i, d in enumerate(day.drills, start=1)],
            )
        )
    return row


def _owned_program(s: Session, coach_id: str, program_id: int) -> Program:
    program = s.execute(select(Program).where(Program.id == program_id, Program.coach_id == coach_id)).scalar_one_or_none()
    if program is None:
        raise NotFound("Program not found")
    return program


def _owned_week(s: Session, coach_id: str, week_id: int) -> ProgramWeek:
    week = s.execute(
        select(ProgramWeek)
        .join(Program, ProgramWeek.program_id == Program.id)
        .where(ProgramWeek.id == week_id, Program.coach_id == coach_id)
    ).scalar_one_or_none()
    if week is None:
        raise NotFound("Week not found")
    return week


def _owned_day(s: Session, coach_id: str, day_id: int) -> ProgramDay:
    day = s.execute(
        select(ProgramDay)
        .join(ProgramWeek, ProgramDay.week_id == ProgramWeek.id)
        .join(Program, ProgramWeek.program_id == Program.id)
        .where(ProgramDay.id == day_id, Program.coach_id == coach_id)
    ).scalar_one_or_none()
    if day is None:
        raise NotFound("Day not found")
    return day


def _owned_drill(s: Session, coach_id: str, drill_id: int) -> ProgramDrill:
    drill = s.execute(
        select(ProgramDrill)
        .join(ProgramDay, ProgramDrill.day_id == ProgramDay.id)
        .join(ProgramWeek, ProgramDay.week_id == ProgramWeek.id)
        .join(Program, ProgramWeek.program_id == Program.id)
        .where(ProgramDrill.id == drill_id, Program.coach_id == coach_id)
    ).scalar_one_or_none()
    if drill is None:
        raise NotFound("Exercise not found")
    return drill


def _check_routines(s: Session, coach_id: str, routine_ids: Iterable[int | None]) -> None:
    wanted = {r for r in routine_ids if r}
    if not wanted:
        return
    found = set(
        s.execute(select(Routine.id).where(Routine.id.in_(wanted), Routine.coach_id == coach_id)).scalars().all()
    )
    if found != wanted:
        raise NotFound("Routine not found")


def _nested_routine_ids(weeks: Iterable[WeekInput]) -> list[int | None]:
    return [drill.routine_id for week in weeks for day in week.days for drill in day.drills]


# -- read --


def active_client_count(s: Session, program_id: int) -> int:
    return int(
        s.execute(
            select(func.count(func.distinct(ProgramAssignment.client_id)))
            .join(Client, ProgramAssignment.client_id == Client.id)
            .where(
                ProgramAssignment.program_id == program_id,
                ProgramAssignment.completed_at.is_(None),
                Client.archived.is_(False),
            )
        ).scalar_one()
    )


def program_summary(s: Session, program: Program) -> dict[str, Any]:
    days = [day for week in program.weeks for day in week.days]
    return {
        "id": program.id,
        "title": program.title,
        "description": program.description,
        "level": program.level,
        "duration": program.duration,
        "status": program.status,
        "created_at": program.created_at,
        "updated_at": program.updated_at,
        "week_count": len(program.weeks),
        "day_count": len(days),
        "drill_count": sum(len(day.drills) for day in days),
        "active_client_count": active_client_count(s, program.id),
        "total_assignments": len(program.assignments),
    }


def list_programs(s: Session, user_id: str) -> list[dict[str, Any]]:
    coach = require_coach(s, user_id, "view programs")
    rows = s.execute(
        select(Program).where(Program.coach_id == coach.id).order_by(Program.updated_at.desc(), Program.id.desc())
    ).scalars().all()
    return [program_summary(s, p) for p in rows]


def get_categories(s: Session, user_id: str) -> list[dict[str, Any]]:
    coach = require_coach(s, user_id, "view programs")
    counts = dict(
        s.execute(
            select(Program.level, func.count(Program.id)).where(Program.coach_id == coach.id).group_by(Program.level)
        ).all()
    )
    return [{"name": level, "count": int(counts.get(level, 0))} for level in PROGRAM_LEVELS]


def get_program(s: Session, user_id: str, program_id: int) -> Program:
    coach = require_coach(s, user_id, "view programs")
    return _owned_program(s, coach.id, program_id)


def get_active_client_count(s: Session, user_id: str, program_id: int) -> int:
    program = get_program(s, user_id, program_id)
    return active_client_count(s, program.id)


def get_program_assignments(s: Session, user_id: str, program_id: int) -> list[ProgramAssignment]:
    program = get_program(s, user_id, program_id)
    return list(
        s.execute(
            select(ProgramAssignment)
            .where(ProgramAssignment.program_id == program.id)
            .order_by(ProgramAssignment.start_date, ProgramAssignment.cycle)
        ).scalars().all()
    )


# -- write --


def create_program(s: Session, user_id: str, body: ProgramCreateInput) -> Program:
    coach = require_coach(s, user_id, "create programs")
    _check_routines(s, coach.id, _nested_routine_ids(body.weeks))
    program = Program(
        coach_id=coach.id,
        title=body.title,
        description=body.description,
        level=body.level,
        duration=body.duration,
        status="ACTIVE",
        weeks=[_build_week(w) for w in sorted(body.weeks, key=lambda w: w.week_number)],
    )
    s.add(program)
    s.flush()
    logger.info("program_created", extra={"program_id": program.id, "coach_id": coach.id, "weeks": len(body.weeks)})
    return program


def update_program(s: Session, user_id: str, program_id: int, body: ProgramUpdateInput) -> Program:
    coach = require_coach(s, user_id, "update programs")
    program = _owned_program(s, coach.id, program_id)
    changes = body.model_dump(exclude_unset=True, exclude={"weeks"})
    for key, value in changes.items():
        setattr(program, key, value)
    if body.weeks is not None:
        _check_routines(s, coach.id, _nested_routine_ids(body.weeks))
        program.weeks.clear()
        s.flush()
        program.weeks.extend(_build_week(w) for w in sorted(body.weeks, key=lambda w: w.week_number))
    program.updated_at = datetime.utcnow()
    s.flush()
    logger.info("program_updated", extra={"program_id": program.id, "weeks_replaced": body.weeks is not None})
    return program


def duplicate_program(s: Session, user_id: str, program_id: int) -> Program:
    coach = require_coach(s, user_id, "duplicate programs")
    source = _owned_program(s, coach.id, program_id)
    copy = Program(
        coach_id=coach.id,
        title=f"{source.title} (Copy)",
        description=source.description,
        level=source.level,
        duration=source.duration,
        status="DRAFT",
    )
    for week in source.weeks:
        new_week = ProgramWeek(week_number=week.week_number, title=week.title, description=week.description)
        for day in week.days:
            new_day = ProgramDay(
                day_number=day.day_number, title=day.title, description=day.description, is_rest_day=day.is_rest_day
            )
            for drill in day.drills:
                new_day.drills.append(
                    ProgramDrill(
                        order=drill.order,
                        title=drill.title,
                        description=drill.description,
                        duration=drill.duration,
                        video_url=drill.video_url,
                        video_id=drill.video_id,
                        video_title=drill.video_title,
                        video_thumbnail=drill.video_thumbnail,
                        notes=drill.notes,
                        sets=drill.sets,
                        reps=drill.reps,
                        tempo=drill.tempo,
                        type=drill.type,
                        routine_id=drill.routine_id,
                        superset_id=drill.superset_id,
                    )
                )
            new_week.days.append(new_day)
        copy.weeks.append(new_week)
    s.add(copy)
    s.flush()
    logger.info("program_duplicated", extra={"source_id": source.id, "program_id": copy.id})
    return copy


def delete_program(s: Session, user_id: str, program_id: int) -> None:
    coach = require_coach(s, user_id, "delete programs")
    program = _owned_program(s, coach.id, program_id)
    s.delete(program)
    logger.info("program_deleted", extra={"program_id": program_id})


# -- structure edits --


def update_week(s: Session, user_id: str, week_id: int, body: WeekUpdateInput) -> ProgramWeek:
    coach = require_coach(s, user_id, "edit programs")
    week = _owned_week(s, coach.id, week_id)
    for key, value in body.model_dump(exclude_unset=True).items():
        setattr(week, key, value)
    return week


def create_week(s: Session, user_id: str, program_id: int, body: WeekCreateInput) -> ProgramWeek:
    coach = require_coach(s, user_id, "edit programs")
    program = _owned_program(s, coach.id, program_id)
    number = max((w.week_number for w in program.weeks), default=0) + 1
    week = ProgramWeek(week_number=number, title=body.title or f"Week {number}", description=body.description)
    for day_number in range(1, DAYS_PER_WEEK + 1):
        week.days.append(ProgramDay(day_number=day_number, title=f"Day {day_number}", is_rest_day=True))
    program.weeks.append(week)
    program.duration = max(program.duration, number)
    s.flush()
    return week


def delete_week(s: Session, user_id: str, week_id: int) -> Program:
    """Remove a week and close the gap in the numbering after it."""
    coach = require_coach(s, user_id, "edit programs")
    week = _owned_week(s, coach.id, week_id)
    program = week.program
    removed = week.week_number
    program.weeks.remove(week)
    s.flush()
    for later in program.weeks:
        if later.week_number > removed:
            later.week_number -= 1
    program.duration = max(1, len(program.weeks))
    s.flush()
    return program


def create_day(s: Session, user_id: str, week_id: int, body: DayCreateInput) -> ProgramDay:
    coach = require_coach(s, user_id, "edit programs")
    week = _owned_week(s, coach.id, week_id)
    if any(d.day_number == body.day_number for d in week.days):
        raise Conflict(f"Day {body.day_number} already exists in this week")
    day = ProgramDay(week_id=week.id, **body.model_dump())
    week.days.append(day)
    s.flush()
    return day


def toggle_rest_day(s: Session, user_id: str, day_id: int) -> ProgramDay:
    coach = require_coach(s, user_id, "edit programs")
    day = _owned_day(s, coach.id, day_id)
    day.is_rest_day = not day.is_rest_day
    return day


def add_exercise(s: Session, user_id: str, day_id: int, body: DrillInput) -> ProgramDrill:
    coach = require_coach(s, user_id, "edit programs")
    day = _owned_day(s, coach.id, day_id)
    _check_routines(s, coach.id, [body.routine_id])
    next_order = (s.execute(select(func.max(ProgramDrill.order)).where(ProgramDrill.day_id == day.id)).scalar_one() or 0) + 1
    drill = _build_drill(next_order, body)
    day.drills.append(drill)
    day.is_rest_day = False
    s.flush()
    return drill


def update_exercise(s: Session, user_id: str, drill_id: int, body: DrillUpdateInput) -> ProgramDrill:
    coach = require_coach(s, user_id, "edit programs")
    drill = _owned_drill(s, coach.id, drill_id)
    changes = body.model_dump(exclude_unset=True)
    if "routine_id" in changes:
        _check_routines(s, coach.id, [changes["routine_id"]])
    for key, value in changes.items():
        setattr(drill, key, value)
    return drill


def delete_exercise(s: Session, user_id: str, drill_id: int) -> None:
    coach = require_coach(s, user_id, "edit programs")
    drill = _owned_drill(s, coach.id, drill_id)
    s.delete(drill)


# -- assignments --


def assign_to_clients(s: Session, user_id: str, program_id: int, body: ProgramAssignInput, effects: SideEffects) -> list[ProgramAssignment]:
    """One assignment per repetition; cycle N starts ``(N-1) * duration`` weeks after the first."""
    coach = require_coach(s, user_id, "assign programs")
    program = _owned_program(s, coach.id, program_id)
    clients = owned_clients(s, coach.id, body.client_ids)
    first_start = datetime.combine(body.start_date, time.min)

    created: list[ProgramAssignment] = []
    for client in sorted(clients, key=lambda c: c.id):
        for cycle in range(1, body.repetitions + 1):
            row = ProgramAssignment(
                program_id=program.id,
                client_id=client.id,
                start_date=first_start + timedelta(days=(cycle - 1) * program.duration * DAYS_PER_WEEK),
                repetitions=body.repetitions,
                cycle=cycle,
            )
            s.add(row)
            created.append(row)
        if client.user_id:
            notify(
                s,
                client.user_id,
                "PROGRAM_ASSIGNED",
                "New Program Assigned",
                f"You have been assigned the program \"{program.title}\" starting {body.start_date.isoformat()}.",
                effects,
                data={"program_id": program.id},
            )
    s.flush()
    logger.info(
        "program_assigned",
        extra={"program_id": program.id, "clients": len(clients), "repetitions": body.repetitions},
    )
    return created


def unassign_from_clients(s: Session, user_id: str, program_id: int, client_ids: list[int]) -> int:
    coach = require_coach(s, user_id, "unassign programs")
    program = _owned_program(s, coach.id, program_id)
    clients = owned_clients(s, coach.id, client_ids)
    result = s.execute(
        delete(ProgramAssignment).where(
            ProgramAssignment.program_id == program.id,
            ProgramAssignment.client_id.in_([c.id for c in clients]),
        )
    )
    s.expire_all()
    return int(result.rowcount or 0)


def update_assignment_progress(s: Session, user_id: str, assignment_id: int, progress: int) -> ProgramAssignment:
    coach = require_coach(s, user_id, "update progress")
    assignment = s.execute(
        select(ProgramAssignment)
        .join(Program, ProgramAssignment.program_id == Program.id)
        .where(ProgramAssignment.id == assignment_id, Program.coach_id == coach.id)
    ).scalar_one_or_none()
    if assignment is None:
        raise NotFound("Assignment not found")
    assignment.progress = progress
    assignment.completed_at = datetime.utcnow() if progress >= 100 else None
    return assignment
