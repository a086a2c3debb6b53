"""Demo data for local development.

Creates one coach, two linked clients, a short program assigned to both and
an upcoming lesson. Safe to run repeatedly: existing demo rows are reused.
"""
from __future__ import annotations

import logging
from datetime import date, datetime, timedelta
from typing import Any

from alembic import command
from alembic.config import Config
from sqlalchemy import select
from sqlalchemy.orm import Session

from core.db import session_scope
from core.models import ROLE_CLIENT, ROLE_COACH, Client, Event, Program
from core.services import clients, programs
from core.services.side_effects import SideEffects
from core.services.users import ensure_user
from core.validators import ClientCreateInput, DayInput, DrillInput, ProgramAssignInput, ProgramCreateInput, WeekInput

logger = logging.getLogger(__name__)

DEMO_COACH_ID = "demo-coach"
DEMO_CLIENTS = (
    ("demo-client-1", "ava@example.com", "Ava Demo"),
    ("demo-client-2", "ben@example.com", "Ben Demo"),
)
DEMO_PROGRAM_TITLE = "Foundations: Drive Phase"


def run_migrations() -> None:
    cfg = Config("alembic.ini")
    command.upgrade(cfg, "head")


def _demo_weeks() -> list[WeekInput]:
    return [
        WeekInput(
            week_number=1,
            title="Setup",
            days=[
                DayInput(
                    day_number=1,
                    title="Ground force",
                    drills=[
                        DrillInput(title="Step-through drill", sets=3, reps=10),
                        DrillInput(title="Med ball scoop toss", sets=3, reps=6, tempo="fast"),
                    ],
                ),
                DayInput(day_number=2, title="Recovery", is_rest_day=True),
                DayInput(day_number=3, title="Sequencing", drills=[DrillInput(title="Pause-at-top swings", duration="15 min")]),
            ],
        ),
        WeekInput(
            week_number=2,
            title="Load",
            days=[DayInput(day_number=1, title="Rotation", drills=[DrillInput(title="Hip lead walks", sets=4, reps=8)])],
        ),
    ]


def seed_demo(s: Session) -> dict[str, Any]:
    """Seed the demo graph inside ``s``. Returns the ids it touched."""
    effects = SideEffects()
    coach = ensure_user(s, DEMO_COACH_ID, "coach@example.com", "Demo Coach")
    coach.role = ROLE_COACH

    client_ids: list[int] = []
    for user_id, email, name in DEMO_CLIENTS:
        user = ensure_user(s, user_id, email, name)
        user.role = ROLE_CLIENT
        existing = s.execute(select(Client).where(Client.email == email)).scalar_one_or_none()
        client = existing or clients.create_client(s, coach.id, ClientCreateInput(name=name, email=email), effects)
        client_ids.append(client.id)

    program = s.execute(
        select(Program).where(Program.coach_id == coach.id, Program.title == DEMO_PROGRAM_TITLE)
    ).scalar_one_or_none()
    if program is None:
        program = programs.create_program(
            s,
            coach.id,
            ProgramCreateInput(title=DEMO_PROGRAM_TITLE, level="Drive", duration=2, weeks=_demo_weeks()),
        )
        programs.assign_to_clients(
            s,
            coach.id,
            program.id,
            ProgramAssignInput(client_ids=client_ids, start_date=date.today(), repetitions=1),
            effects,
        )
        lesson_start = datetime.utcnow().replace(minute=0, second=0, microsecond=0) + timedelta(days=2)
        s.add(
            Event(
                coach_id=coach.id,
                client_id=client_ids[0],
                title="Lesson with Ava Demo",
                date=lesson_start,
                end_time=lesson_start + timedelta(hours=1),
                status="CONFIRMED",
            )
        )
        s.flush()

    # demo data never reaches real mail or push providers
    effects.discard()
    logger.info("demo_seeded", extra={"coach_id": coach.id, "program_id": program.id, "clients": len(client_ids)})
    return {"coach_id": coach.id, "client_ids": client_ids, "program_id": program.id}


def main() -> None:
    run_migrations()
    with session_scope() as s:
        ids = seed_demo(s)
    print(f"Seeding complete: {ids}")


if __name__ == "__main__":
    main()
