"""initial coaching schema"""

from alembic import op
import sqlalchemy as sa


revision = "20261001_0001"
down_revision = None
branch_labels = None
depends_on = None

_NOW = sa.text("CURRENT_TIMESTAMP")
_FALSE = sa.text("false")
_TRUE = sa.text("true")


def _user_fk(ondelete: str = "CASCADE") -> sa.ForeignKey:
    return sa.ForeignKey("users.id", ondelete=ondelete)


def upgrade() -> None:
    op.create_table(
        "users",
        sa.Column("id", sa.String(length=64), primary_key=True),
        sa.Column("email", sa.String(length=255), nullable=False, unique=True),
        sa.Column("name", sa.String(length=200), nullable=True),
        sa.Column("role", sa.String(length=16), nullable=True),
        sa.Column("is_admin", sa.Boolean(), nullable=False, server_default=_FALSE),
        sa.Column("invite_code", sa.String(length=32), nullable=True, unique=True),
        sa.Column("time_slot_interval", sa.Integer(), nullable=False, server_default="60"),
        sa.Column("created_at", sa.DateTime(), nullable=False, server_default=_NOW),
        sa.Column("updated_at", sa.DateTime(), nullable=False, server_default=_NOW),
    )
    op.create_index("ix_users_role", "users", ["role"])

    op.create_table(
        "user_settings",
        sa.Column("id", sa.Integer(), primary_key=True),
        sa.Column("user_id", sa.String(length=64), _user_fk(), nullable=False, unique=True),
        sa.Column("phone", sa.String(length=40), nullable=True),
        sa.Column("location", sa.String(length=200), nullable=True),
        sa.Column("bio", sa.Text(), nullable=True),
        sa.Column("avatar_url", sa.String(length=500), nullable=True),
        sa.Column("email_notifications", sa.Boolean(), nullable=False, server_default=_TRUE),
        sa.Column("push_notifications", sa.Boolean(), nullable=False, server_default=_TRUE),
        sa.Column("sound_notifications", sa.Boolean(), nullable=False, server_default=_TRUE),
        sa.Column("new_client_notifications", sa.Boolean(), nullable=False, server_default=_TRUE),
        sa.Column("message_notifications", sa.Boolean(), nullable=False, server_default=_TRUE),
        sa.Column("schedule_notifications", sa.Boolean(), nullable=False, server_default=_TRUE),
        sa.Column("lesson_reminders_enabled", sa.Boolean(), nullable=False, server_default=_TRUE),
        sa.Column("default_welcome_message", sa.Text(), nullable=True),
        sa.Column("message_retention_days", sa.Integer(), nullable=False, server_default="90"),
        sa.Column("max_file_size_mb", sa.Integer(), nullable=False, server_default="50"),
        sa.Column("default_lesson_duration", sa.Integer(), nullable=False, server_default="60"),
        sa.Column("auto_archive_days", sa.Integer(), nullable=False, server_default="30"),
        sa.Column("require_client_email", sa.Boolean(), nullable=False, server_default=_FALSE),
        sa.Column("timezone", sa.String(length=64), nullable=False, server_default="UTC"),
        sa.Column("working_days", sa.JSON(), nullable=False),
        sa.Column("two_factor_enabled", sa.Boolean(), nullable=False, server_default=_FALSE),
        sa.Column("compact_sidebar", sa.Boolean(), nullable=False, server_default=_FALSE),
        sa.Column("show_animations", sa.Boolean(), nullable=False, server_default=_TRUE),
        sa.Column("created_at", sa.DateTime(), nullable=False, server_default=_NOW),
        sa.Column("updated_at", sa.DateTime(), nullable=False, server_default=_NOW),
    )

    op.create_table(
        "clients",
        sa.Column("id", sa.Integer(), primary_key=True),
        sa.Column("coach_id", sa.String(length=64), _user_fk("SET NULL"), nullable=True),
        sa.Column("user_id", sa.String(length=64), _user_fk("SET NULL"), nullable=True, unique=True),
        sa.Column("name", sa.String(length=200), nullable=False),
        sa.Column("email", sa.String(length=255), nullable=True),
        sa.Column("phone", sa.String(length=40), nullable=True),
        sa.Column("notes", sa.Text(), nullable=True),
        sa.Column("avatar", sa.String(length=500), nullable=True),
        sa.Column("archived", sa.Boolean(), nullable=False, server_default=_FALSE),
        sa.Column("archived_at", sa.DateTime(), nullable=True),
        sa.Column("next_lesson_date", sa.DateTime(), nullable=True),
        sa.Column("last_completed_workout", sa.DateTime(), nullable=True),
        sa.Column("created_at", sa.DateTime(), nullable=False, server_default=_NOW),
        sa.Column("updated_at", sa.DateTime(), nullable=False, server_default=_NOW),
    )
    op.create_index("ix_clients_coach_id", "clients", ["coach_id"])
    op.create_index("ix_clients_email", "clients", ["email"])
    op.create_index("ix_clients_archived", "clients", ["archived"])

    op.create_table(
        "client_notes",
        sa.Column("id", sa.Integer(), primary_key=True),
        sa.Column("client_id", sa.Integer(), sa.ForeignKey("clients.id", ondelete="CASCADE"), nullable=False),
        sa.Column("coach_id", sa.String(length=64), _user_fk(), nullable=False),
        sa.Column("content", sa.Text(), nullable=False),
        sa.Column("is_pinned", sa.Boolean(), nullable=False, server_default=_FALSE),
        sa.Column("created_at", sa.DateTime(), nullable=False, server_default=_NOW),
    )
    op.create_index("ix_client_notes_client_id", "client_notes", ["client_id"])
    op.create_index("ix_client_notes_coach_id", "client_notes", ["coach_id"])

    op.create_table(
        "programs",
        sa.Column("id", sa.Integer(), primary_key=True),
        sa.Column("coach_id", sa.String(length=64), _user_fk(), nullable=False),
        sa.Column("title", sa.String(length=200), nullable=False),
        sa.Column("description", sa.Text(), nullable=True),
        sa.Column("level", sa.String(length=20), nullable=False),
        sa.Column("duration", sa.Integer(), nullable=False, server_default="1"),
        sa.Column("status", sa.String(length=16), nullable=False, server_default="ACTIVE"),
        sa.Column("created_at", sa.DateTime(), nullable=False, server_default=_NOW),
        sa.Column("updated_at", sa.DateTime(), nullable=False, server_default=_NOW),
        sa.CheckConstraint("duration >= 1", name="ck_programs_duration_positive"),
    )
    op.create_index("ix_programs_coach_id", "programs", ["coach_id"])

    op.create_table(
        "program_weeks",
        sa.Column("id", sa.Integer(), primary_key=True),
        sa.Column("program_id", sa.Integer(), sa.ForeignKey("programs.id", ondelete="CASCADE"), nullable=False),
        sa.Column("week_number", sa.Integer(), nullable=False),
        sa.Column("title", sa.String(length=200), nullable=False, server_default=""),
        sa.Column("description", sa.Text(), nullable=True),
    )
    op.create_index("ix_program_weeks_program_id", "program_weeks", ["program_id"])

    op.create_table(
        "program_days",
        sa.Column("id", sa.Integer(), primary_key=True),
        sa.Column("week_id", sa.Integer(), sa.ForeignKey("program_weeks.id", ondelete="CASCADE"), nullable=False),
        sa.Column("day_number", sa.Integer(), nullable=False),
        sa.Column("title", sa.String(length=200), nullable=False, server_default=""),
        sa.Column("description", sa.Text(), nullable=True),
        sa.Column("is_rest_day", sa.Boolean(), nullable=False, server_default=_FALSE),
    )
    op.create_index("ix_program_days_week_id", "program_days", ["week_id"])

    op.create_table(
        "routines",
        sa.Column("id", sa.Integer(), primary_key=True),
        sa.Column("coach_id", sa.String(length=64), _user_fk(), nullable=False),
        sa.Column("name", sa.String(length=200), nullable=False),
        sa.Column("description", sa.Text(), nullable=True),
        sa.Column("created_at", sa.DateTime(), nullable=False, server_default=_NOW),
        sa.Column("updated_at", sa.DateTime(), nullable=False, server_default=_NOW),
    )
    op.create_index("ix_routines_coach_id", "routines", ["coach_id"])

    op.create_table(
        "routine_exercises",
        sa.Column("id", sa.Integer(), primary_key=True),
        sa.Column("routine_id", sa.Integer(), sa.ForeignKey("routines.id", ondelete="CASCADE"), nullable=False),
        sa.Column("order", sa.Integer(), nullable=False, server_default="1"),
        sa.Column("title", sa.String(length=200), nullable=False),
        sa.Column("description", sa.Text(), nullable=True),
        sa.Column("type", sa.String(length=40), nullable=True),
        sa.Column("notes", sa.Text(), nullable=True),
        sa.Column("sets", sa.Integer(), nullable=True),
        sa.Column("reps", sa.Integer(), nullable=True),
        sa.Column("tempo", sa.String(length=40), nullable=True),
        sa.Column("duration", sa.String(length=40), nullable=True),
        sa.Column("video_id", sa.String(length=64), nullable=True),
        sa.Column("video_url", sa.String(length=500), nullable=True),
        sa.Column("video_title", sa.String(length=200), nullable=True),
        sa.Column("video_thumbnail", sa.String(length=500), nullable=True),
    )
    op.create_index("ix_routine_exercises_routine_id", "routine_exercises", ["routine_id"])

    op.create_table(
        "program_drills",
        sa.Column("id", sa.Integer(), primary_key=True),
        sa.Column("day_id", sa.Integer(), sa.ForeignKey("program_days.id", ondelete="CASCADE"), nullable=False),
        sa.Column("order", sa.Integer(), nullable=False, server_default="1"),
        sa.Column("title", sa.String(length=200), nullable=False),
        sa.Column("description", sa.Text(), nullable=True),
        sa.Column("duration", sa.String(length=40), nullable=True),
        sa.Column("video_url", sa.String(length=500), nullable=True),
        sa.Column("video_id", sa.String(length=64), nullable=True),
        sa.Column("video_title", sa.String(length=200), nullable=True),
        sa.Column("video_thumbnail", sa.String(length=500), nullable=True),
        sa.Column("notes", sa.Text(), nullable=True),
        sa.Column("sets", sa.Integer(), nullable=True),
        sa.Column("reps", sa.Integer(), nullable=True),
        sa.Column("tempo", sa.String(length=40), nullable=True),
        sa.Column("type", sa.String(length=40), nullable=True),
        sa.Column("routine_id", sa.Integer(), sa.ForeignKey("routines.id", ondelete="SET NULL"), nullable=True),
        sa.Column("superset_id", sa.String(length=64), nullable=True),
    )
    op.create_index("ix_program_drills_day_id", "program_drills", ["day_id"])
    op.create_index("ix_program_drills_routine_id", "program_drills", ["routine_id"])

    op.create_table(
        "program_assignments",
        sa.Column("id", sa.Integer(), primary_key=True),
        sa.Column("program_id", sa.Integer(), sa.ForeignKey("programs.id", ondelete="CASCADE"), nullable=False),
        sa.Column("client_id", sa.Integer(), sa.ForeignKey("clients.id", ondelete="CASCADE"), nullable=False),
        sa.Column("start_date", sa.DateTime(), nullable=False),
        sa.Column("assigned_at", sa.DateTime(), nullable=False, server_default=_NOW),
        sa.Column("completed_at", sa.DateTime(), nullable=True),
        sa.Column("progress", sa.Integer(), nullable=False, server_default="0"),
        sa.Column("repetitions", sa.Integer(), nullable=False, server_default="1"),
        sa.Column("cycle", sa.Integer(), nullable=False, server_default="1"),
        sa.CheckConstraint("progress >= 0 AND progress <= 100", name="ck_program_assignments_progress"),
    )
    op.create_index("ix_program_assignments_program_id", "program_assignments", ["program_id"])
    op.create_index("ix_program_assignments_client_id", "program_assignments", ["client_id"])

    op.create_table(
        "events",
        sa.Column("id", sa.Integer(), primary_key=True),
        sa.Column("coach_id", sa.String(length=64), _user_fk(), nullable=False),
        sa.Column("client_id", sa.Integer(), sa.ForeignKey("clients.id", ondelete="SET NULL"), nullable=True),
        sa.Column("title", sa.String(length=200), nullable=False),
        sa.Column("description", sa.Text(), nullable=True),
        sa.Column("date", sa.DateTime(), nullable=False),
        sa.Column("end_time", sa.DateTime(), nullable=True),
        sa.Column("status", sa.String(length=16), nullable=False, server_default="PENDING"),
        sa.Column("reminder_sent", sa.Boolean(), nullable=False, server_default=_FALSE),
        sa.Column("requested_by_client", sa.Boolean(), nullable=False, server_default=_FALSE),
        sa.Column("created_at", sa.DateTime(), nullable=False, server_default=_NOW),
        sa.Column("updated_at", sa.DateTime(), nullable=False, server_default=_NOW),
    )
    op.create_index("ix_events_coach_id", "events", ["coach_id"])
    op.create_index("ix_events_client_id", "events", ["client_id"])
    op.create_index("ix_events_date", "events", ["date"])

    op.create_table(
        "blocked_times",
        sa.Column("id", sa.Integer(), primary_key=True),
        sa.Column("coach_id", sa.String(length=64), _user_fk(), nullable=False),
        sa.Column("title", sa.String(length=200), nullable=False),
        sa.Column("description", sa.Text(), nullable=True),
        sa.Column("start_time", sa.DateTime(), nullable=False),
        sa.Column("end_time", sa.DateTime(), nullable=False),
        sa.Column("is_all_day", sa.Boolean(), nullable=False, server_default=_FALSE),
        sa.Column("created_at", sa.DateTime(), nullable=False, server_default=_NOW),
        sa.Column("updated_at", sa.DateTime(), nullable=False, server_default=_NOW),
    )
    op.create_index("ix_blocked_times_coach_id", "blocked_times", ["coach_id"])
    op.create_index("ix_blocked_times_start_time", "blocked_times", ["start_time"])

    op.create_table(
        "program_day_replacements",
        sa.Column("id", sa.Integer(), primary_key=True),
        sa.Column(
            "assignment_id", sa.Integer(), sa.ForeignKey("program_assignments.id", ondelete="CASCADE"), nullable=False
        ),
        sa.Column("program_id", sa.Integer(), sa.ForeignKey("programs.id", ondelete="CASCADE"), nullable=False),
        sa.Column("client_id", sa.Integer(), sa.ForeignKey("clients.id", ondelete="CASCADE"), nullable=False),
        sa.Column("coach_id", sa.String(length=64), _user_fk(), nullable=False),
        sa.Column("replaced_date", sa.DateTime(), nullable=False),
        sa.Column("lesson_id", sa.Integer(), sa.ForeignKey("events.id", ondelete="SET NULL"), nullable=True),
        sa.Column("replacement_reason", sa.String(length=300), nullable=True),
        sa.Column("created_at", sa.DateTime(), nullable=False, server_default=_NOW),
    )
    op.create_index("ix_program_day_replacements_assignment_id", "program_day_replacements", ["assignment_id"])
    op.create_index("ix_program_day_replacements_client_id", "program_day_replacements", ["client_id"])

    op.create_table(
        "drill_completions",
        sa.Column("id", sa.Integer(), primary_key=True),
        sa.Column("drill_id", sa.Integer(), sa.ForeignKey("program_drills.id", ondelete="CASCADE"), nullable=False),
        sa.Column("client_id", sa.Integer(), sa.ForeignKey("clients.id", ondelete="CASCADE"), nullable=False),
        sa.Column("completed_at", sa.DateTime(), nullable=False, server_default=_NOW),
        sa.UniqueConstraint("drill_id", "client_id", name="uq_drill_completion"),
    )
    op.create_index("ix_drill_completions_drill_id", "drill_completions", ["drill_id"])
    op.create_index("ix_drill_completions_client_id", "drill_completions", ["client_id"])

    op.create_table(
        "program_drill_completions",
        sa.Column("id", sa.Integer(), primary_key=True),
        sa.Column("drill_id", sa.Integer(), sa.ForeignKey("program_drills.id", ondelete="CASCADE"), nullable=False),
        sa.Column(
            "program_assignment_id",
            sa.Integer(),
            sa.ForeignKey("program_assignments.id", ondelete="CASCADE"),
            nullable=False,
        ),
        sa.Column("client_id", sa.Integer(), sa.ForeignKey("clients.id", ondelete="CASCADE"), nullable=False),
        sa.Column("completed_at", sa.DateTime(), nullable=False, server_default=_NOW),
        sa.UniqueConstraint("drill_id", "program_assignment_id", "client_id", name="uq_program_drill_completion"),
    )
    op.create_index("ix_program_drill_completions_drill_id", "program_drill_completions", ["drill_id"])
    op.create_index(
        "ix_program_drill_completions_program_assignment_id", "program_drill_completions", ["program_assignment_id"]
    )
    op.create_index("ix_program_drill_completions_client_id", "program_drill_completions", ["client_id"])

    op.create_table(
        "routine_assignments",
        sa.Column("id", sa.Integer(), primary_key=True),
        sa.Column("routine_id", sa.Integer(), sa.ForeignKey("routines.id", ondelete="CASCADE"), nullable=False),
        sa.Column("client_id", sa.Integer(), sa.ForeignKey("clients.id", ondelete="CASCADE"), nullable=False),
        sa.Column("assigned_at", sa.DateTime(), nullable=False, server_default=_NOW),
        sa.Column("start_date", sa.DateTime(), nullable=True),
        sa.Column("completed_at", sa.DateTime(), nullable=True),
        sa.Column("progress", sa.Integer(), nullable=False, server_default="0"),
    )
    op.create_index("ix_routine_assignments_routine_id", "routine_assignments", ["routine_id"])
    op.create_index("ix_routine_assignments_client_id", "routine_assignments", ["client_id"])

    op.create_table(
        "routine_exercise_completions",
        sa.Column("id", sa.Integer(), primary_key=True),
        sa.Column(
            "routine_assignment_id",
            sa.Integer(),
            sa.ForeignKey("routine_assignments.id", ondelete="CASCADE"),
            nullable=False,
        ),
        sa.Column("exercise_id", sa.Integer(), sa.ForeignKey("routine_exercises.id", ondelete="CASCADE"), nullable=False),
        sa.Column("client_id", sa.Integer(), sa.ForeignKey("clients.id", ondelete="CASCADE"), nullable=False),
        sa.Column("completed_at", sa.DateTime(), nullable=False, server_default=_NOW),
        sa.UniqueConstraint(
            "routine_assignment_id", "exercise_id", "client_id", name="uq_routine_exercise_completion"
        ),
    )
    op.create_index(
        "ix_routine_exercise_completions_routine_assignment_id",
        "routine_exercise_completions",
        ["routine_assignment_id"],
    )
    op.create_index("ix_routine_exercise_completions_client_id", "routine_exercise_completions", ["client_id"])

    op.create_table(
        "library_resources",
        sa.Column("id", sa.Integer(), primary_key=True),
        sa.Column("coach_id", sa.String(length=64), _user_fk(), nullable=False),
        sa.Column("title", sa.String(length=300), nullable=False),
        sa.Column("description", sa.Text(), nullable=True),
        sa.Column("category", sa.String(length=80), nullable=False, server_default="General"),
        sa.Column("type", sa.String(length=20), nullable=False, server_default="video"),
        sa.Column("url", sa.String(length=500), nullable=True),
        sa.Column("filename", sa.String(length=300), nullable=True),
        sa.Column("thumbnail", sa.String(length=500), nullable=True),
        sa.Column("duration", sa.String(length=40), nullable=True),
        sa.Column("views", sa.Integer(), nullable=False, server_default="0"),
        sa.Column("rating", sa.Float(), nullable=False, server_default="0"),
        sa.Column("is_youtube", sa.Boolean(), nullable=False, server_default=_FALSE),
        sa.Column("youtube_id", sa.String(length=20), nullable=True),
        sa.Column("playlist_id", sa.String(length=64), nullable=True),
        sa.Column("is_master_library", sa.Boolean(), nullable=False, server_default=_FALSE),
        sa.Column("is_active", sa.Boolean(), nullable=False, server_default=_TRUE),
        sa.Column("created_at", sa.DateTime(), nullable=False, server_default=_NOW),
        sa.Column("updated_at", sa.DateTime(), nullable=False, server_default=_NOW),
    )
    op.create_index("ix_library_resources_coach_id", "library_resources", ["coach_id"])
    op.create_index("ix_library_resources_category", "library_resources", ["category"])
    op.create_index("ix_library_resources_master_active", "library_resources", ["is_master_library", "is_active"])

    op.create_table(
        "video_assignments",
        sa.Column("id", sa.Integer(), primary_key=True),
        sa.Column("video_id", sa.Integer(), sa.ForeignKey("library_resources.id", ondelete="CASCADE"), nullable=False),
        sa.Column("client_id", sa.Integer(), sa.ForeignKey("clients.id", ondelete="CASCADE"), nullable=False),
        sa.Column("assigned_at", sa.DateTime(), nullable=False, server_default=_NOW),
        sa.Column("due_date", sa.DateTime(), nullable=True),
        sa.Column("notes", sa.Text(), nullable=True),
        sa.Column("completed", sa.Boolean(), nullable=False, server_default=_FALSE),
        sa.Column("completed_at", sa.DateTime(), nullable=True),
        sa.UniqueConstraint("video_id", "client_id", name="uq_video_assignment"),
    )
    op.create_index("ix_video_assignments_video_id", "video_assignments", ["video_id"])
    op.create_index("ix_video_assignments_client_id", "video_assignments", ["client_id"])

    op.create_table(
        "conversations",
        sa.Column("id", sa.Integer(), primary_key=True),
        sa.Column("type", sa.String(length=20), nullable=False, server_default="COACH_CLIENT"),
        sa.Column("coach_id", sa.String(length=64), _user_fk(), nullable=True),
        sa.Column("client_id", sa.String(length=64), _user_fk(), nullable=True),
        sa.Column("client1_id", sa.String(length=64), _user_fk(), nullable=True),
        sa.Column("client2_id", sa.String(length=64), _user_fk(), nullable=True),
        sa.Column("created_at", sa.DateTime(), nullable=False, server_default=_NOW),
        sa.Column("updated_at", sa.DateTime(), nullable=False, server_default=_NOW),
    )
    for column in ("coach_id", "client_id", "client1_id", "client2_id"):
        op.create_index(f"ix_conversations_{column}", "conversations", [column])

    op.create_table(
        "messages",
        sa.Column("id", sa.Integer(), primary_key=True),
        sa.Column("conversation_id", sa.Integer(), sa.ForeignKey("conversations.id", ondelete="CASCADE"), nullable=False),
        sa.Column("sender_id", sa.String(length=64), _user_fk(), nullable=False),
        sa.Column("content", sa.Text(), nullable=False, server_default=""),
        sa.Column("is_read", sa.Boolean(), nullable=False, server_default=_FALSE),
        sa.Column("attachment_url", sa.String(length=500), nullable=True),
        sa.Column("attachment_type", sa.String(length=80), nullable=True),
        sa.Column("attachment_name", sa.String(length=300), nullable=True),
        sa.Column("attachment_size", sa.Integer(), nullable=True),
        sa.Column("requires_acknowledgment", sa.Boolean(), nullable=False, server_default=_FALSE),
        sa.Column("is_acknowledged", sa.Boolean(), nullable=False, server_default=_FALSE),
        sa.Column("acknowledged_at", sa.DateTime(), nullable=True),
        sa.Column("acknowledged_by", sa.String(length=64), nullable=True),
        sa.Column("data", sa.JSON(), nullable=True),
        sa.Column("created_at", sa.DateTime(), nullable=False, server_default=_NOW),
    )
    op.create_index("ix_messages_conversation_id", "messages", ["conversation_id"])
    op.create_index("ix_messages_sender_id", "messages", ["sender_id"])
    op.create_index("ix_messages_created_at", "messages", ["created_at"])

    op.create_table(
        "notifications",
        sa.Column("id", sa.Integer(), primary_key=True),
        sa.Column("user_id", sa.String(length=64), _user_fk(), nullable=False),
        sa.Column("type", sa.String(length=32), nullable=False),
        sa.Column("title", sa.String(length=200), nullable=False),
        sa.Column("message", sa.Text(), nullable=False),
        sa.Column("is_read", sa.Boolean(), nullable=False, server_default=_FALSE),
        sa.Column("data", sa.JSON(), nullable=True),
        sa.Column("created_at", sa.DateTime(), nullable=False, server_default=_NOW),
    )
    op.create_index("ix_notifications_user_id", "notifications", ["user_id"])
    op.create_index("ix_notifications_created_at", "notifications", ["created_at"])

    op.create_table(
        "time_swap_requests",
        sa.Column("id", sa.Integer(), primary_key=True),
        sa.Column("requester_id", sa.String(length=64), _user_fk(), nullable=False),
        sa.Column("target_id", sa.String(length=64), _user_fk(), nullable=False),
        sa.Column("requester_event_id", sa.Integer(), sa.ForeignKey("events.id", ondelete="CASCADE"), nullable=False),
        sa.Column("target_event_id", sa.Integer(), sa.ForeignKey("events.id", ondelete="CASCADE"), nullable=False),
        sa.Column("status", sa.String(length=16), nullable=False, server_default="PENDING"),
        sa.Column("approved_at", sa.DateTime(), nullable=True),
        sa.Column("declined_at", sa.DateTime(), nullable=True),
        sa.Column("created_at", sa.DateTime(), nullable=False, server_default=_NOW),
    )
    op.create_index("ix_time_swap_requests_requester_id", "time_swap_requests", ["requester_id"])
    op.create_index("ix_time_swap_requests_target_id", "time_swap_requests", ["target_id"])
    op.create_index("ix_time_swap_requests_status", "time_swap_requests", ["status"])

    op.create_table(
        "assigned_workouts",
        sa.Column("id", sa.Integer(), primary_key=True),
        sa.Column("client_id", sa.Integer(), sa.ForeignKey("clients.id", ondelete="CASCADE"), nullable=False),
        sa.Column("coach_id", sa.String(length=64), _user_fk(), nullable=False),
        sa.Column("title", sa.String(length=200), nullable=False),
        sa.Column("description", sa.Text(), nullable=True),
        sa.Column("scheduled_date", sa.DateTime(), nullable=False),
        sa.Column("duration", sa.Integer(), nullable=True),
        sa.Column("notes", sa.Text(), nullable=True),
        sa.Column("completed", sa.Boolean(), nullable=False, server_default=_FALSE),
        sa.Column("completed_at", sa.DateTime(), nullable=True),
        sa.Column("created_at", sa.DateTime(), nullable=False, server_default=_NOW),
    )
    op.create_index("ix_assigned_workouts_client_id", "assigned_workouts", ["client_id"])
    op.create_index("ix_assigned_workouts_coach_id", "assigned_workouts", ["coach_id"])
    op.create_index("ix_assigned_workouts_scheduled_date", "assigned_workouts", ["scheduled_date"])

    op.create_table(
        "progress_entries",
        sa.Column("id", sa.Integer(), primary_key=True),
        sa.Column("client_id", sa.String(length=64), _user_fk(), nullable=False),
        sa.Column("progress", sa.Integer(), nullable=False),
        sa.Column("notes", sa.Text(), nullable=True),
        sa.Column("date", sa.DateTime(), nullable=False, server_default=_NOW),
    )
    op.create_index("ix_progress_entries_client_id", "progress_entries", ["client_id"])
    op.create_index("ix_progress_entries_date", "progress_entries", ["date"])


def downgrade() -> None:
    for table in (
        "progress_entries",
        "assigned_workouts",
        "time_swap_requests",
        "notifications",
        "messages",
        "conversations",
        "video_assignments",
        "library_resources",
        "routine_exercise_completions",
        "routine_assignments",
        "program_drill_completions",
        "drill_completions",
        "program_day_replacements",
        "blocked_times",
        "events",
        "program_assignments",
        "program_drills",
        "routine_exercises",
        "routines",
        "program_days",
        "program_weeks",
        "programs",
        "client_notes",
        "clients",
        "user_settings",
        "users",
    ):
        op.drop_table(table)
