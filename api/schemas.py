from __future__ import annotations

from datetime import date as dt_date
from datetime import datetime as dt_datetime
from typing import Any, Optional

from pydantic import BaseModel, ConfigDict


class SimpleStatusResponse(BaseModel):
    status: str


class SuccessResponse(BaseModel):
    success: bool = True


class CountResponse(BaseModel):
    count: int


class ExistsResponse(BaseModel):
    exists: bool


class InviteCodeResponse(BaseModel):
    invite_code: str


# ── Users ──


class UserOut(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    id: str
    email: str
    name: Optional[str] = None
    role: Optional[str] = None
    is_admin: bool = False
    invite_code: Optional[str] = None
    time_slot_interval: int = 60
    created_at: Optional[dt_datetime] = None


class SettingsOut(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    user_id: str
    phone: Optional[str] = None
    location: Optional[str] = None
    bio: Optional[str] = None
    avatar_url: Optional[str] = None
    email_notifications: bool
    push_notifications: bool
    sound_notifications: bool
    new_client_notifications: bool
    message_notifications: bool
    schedule_notifications: bool
    lesson_reminders_enabled: bool
    default_welcome_message: Optional[str] = None
    message_retention_days: int
    max_file_size_mb: int
    default_lesson_duration: int
    auto_archive_days: int
    require_client_email: bool
    timezone: str
    working_days: list[str]
    two_factor_enabled: bool
    compact_sidebar: bool
    show_animations: bool


class ProfileOut(UserOut):
    settings: Optional[SettingsOut] = None


class CoachBrief(BaseModel):
    id: str
    name: Optional[str] = None
    email: str


class InviteCodeCheck(BaseModel):
    valid: bool
    coach: Optional[CoachBrief] = None


class CoachExistsCheck(BaseModel):
    exists: bool
    coach: Optional[CoachBrief] = None


# ── Clients ──


class ClientOut(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    id: int
    coach_id: Optional[str] = None
    user_id: Optional[str] = None
    name: str
    email: Optional[str] = None
    phone: Optional[str] = None
    notes: Optional[str] = None
    avatar: Optional[str] = None
    archived: bool
    archived_at: Optional[dt_datetime] = None
    next_lesson_date: Optional[dt_datetime] = None
    last_completed_workout: Optional[dt_datetime] = None
    created_at: Optional[dt_datetime] = None
    updated_at: Optional[dt_datetime] = None


class ClientNoteOut(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    id: int
    client_id: int
    content: str
    is_pinned: bool
    created_at: dt_datetime


class ComplianceOut(BaseModel):
    completion_rate: int
    completed: int
    total: int
    period: str


class ReplacementOut(BaseModel):
    replacement_id: int
    lesson_id: int
    replaced_date: dt_date


# ── Programs ──


class DrillOut(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    id: int
    order: int
    title: str
    description: Optional[str] = None
    duration: Optional[str] = None
    video_url: Optional[str] = None
    video_id: Optional[str] = None
    video_title: Optional[str] = None
    video_thumbnail: Optional[str] = None
    notes: Optional[str] = None
    sets: Optional[int] = None
    reps: Optional[int] = None
    tempo: Optional[str] = None
    type: Optional[str] = None
    routine_id: Optional[int] = None
    superset_id: Optional[str] = None


class DayOut(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    id: int
    day_number: int
    title: str
    description: Optional[str] = None
    is_rest_day: bool
    drills: list[DrillOut] = []


class WeekOut(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    id: int
    week_number: int
    title: str
    description: Optional[str] = None
    days: list[DayOut] = []


class ProgramAssignmentOut(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    id: int
    program_id: int
    client_id: int
    start_date: dt_datetime
    assigned_at: dt_datetime
    completed_at: Optional[dt_datetime] = None
    progress: int
    repetitions: int
    cycle: int


class ProgramOut(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    id: int
    coach_id: str
    title: str
    description: Optional[str] = None
    level: str
    duration: int
    status: str
    created_at: dt_datetime
    updated_at: dt_datetime
    weeks: list[WeekOut] = []


class ProgramDetailOut(ProgramOut):
    assignments: list[ProgramAssignmentOut] = []


class ProgramSummaryOut(BaseModel):
    id: int
    title: str
    description: Optional[str] = None
    level: str
    duration: int
    status: str
    created_at: dt_datetime
    updated_at: dt_datetime
    week_count: int
    day_count: int
    drill_count: int
    active_client_count: int
    total_assignments: int


class CategoryCount(BaseModel):
    name: Optional[str] = None
    count: int


class AssignedProgramOut(ProgramAssignmentOut):
    program: ProgramOut


# ── Routines ──


class RoutineExerciseOut(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    id: int
    order: int
    title: str
    description: Optional[str] = None
    type: Optional[str] = None
    notes: Optional[str] = None
    sets: Optional[int] = None
    reps: Optional[int] = None
    tempo: Optional[str] = None
    duration: Optional[str] = None
    video_id: Optional[str] = None
    video_url: Optional[str] = None
    video_title: Optional[str] = None
    video_thumbnail: Optional[str] = None


class RoutineOut(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    id: int
    name: str
    description: Optional[str] = None
    created_at: dt_datetime
    updated_at: dt_datetime
    exercises: list[RoutineExerciseOut] = []


class RoutineAssignmentOut(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    id: int
    routine_id: int
    client_id: int
    assigned_at: dt_datetime
    start_date: Optional[dt_datetime] = None
    completed_at: Optional[dt_datetime] = None
    progress: int
    routine: Optional[RoutineOut] = None


class RoutineDeleteOut(BaseModel):
    success: bool
    affected_programs: int
    replaced_drills: int


# ── Library ──


class LibraryResourceOut(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    id: int
    coach_id: str
    title: str
    description: Optional[str] = None
    category: str
    type: str
    url: Optional[str] = None
    filename: Optional[str] = None
    thumbnail: Optional[str] = None
    duration: Optional[str] = None
    views: int
    rating: float
    is_youtube: bool
    youtube_id: Optional[str] = None
    playlist_id: Optional[str] = None
    is_master_library: bool
    is_active: bool
    created_at: dt_datetime


class LibraryStatsOut(BaseModel):
    total: int
    videos: int
    documents: int
    total_views: int
    categories: int


class VideoAssignmentOut(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    id: int
    video_id: int
    client_id: int
    assigned_at: dt_datetime
    due_date: Optional[dt_datetime] = None
    notes: Optional[str] = None
    completed: bool
    completed_at: Optional[dt_datetime] = None
    video: Optional[LibraryResourceOut] = None


# ── Messaging ──


class ConversationOut(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    id: int
    type: str
    coach_id: Optional[str] = None
    client_id: Optional[str] = None
    client1_id: Optional[str] = None
    client2_id: Optional[str] = None
    created_at: dt_datetime
    updated_at: dt_datetime


class MessageOut(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    id: int
    conversation_id: int
    sender_id: str
    content: str
    is_read: bool
    attachment_url: Optional[str] = None
    attachment_type: Optional[str] = None
    attachment_name: Optional[str] = None
    attachment_size: Optional[int] = None
    requires_acknowledgment: bool
    is_acknowledged: bool
    acknowledged_at: Optional[dt_datetime] = None
    acknowledged_by: Optional[str] = None
    data: Optional[dict[str, Any]] = None
    created_at: dt_datetime


class MassMessageResult(BaseModel):
    client_id: int
    success: bool
    conversation_id: Optional[int] = None
    message_id: Optional[int] = None
    error: Optional[str] = None


class MassMessageOut(BaseModel):
    results: list[MassMessageResult]
    total_sent: int
    total_failed: int


# ── Notifications / events / workouts / progress ──


class NotificationOut(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    id: int
    user_id: str
    type: str
    title: str
    message: str
    is_read: bool
    data: Optional[dict[str, Any]] = None
    created_at: dt_datetime


class EventOut(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    id: int
    coach_id: str
    client_id: Optional[int] = None
    title: str
    description: Optional[str] = None
    date: dt_datetime
    end_time: Optional[dt_datetime] = None
    status: str
    reminder_sent: bool
    requested_by_client: bool = False


class BlockedTimeOut(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    id: int
    coach_id: str
    title: str
    description: Optional[str] = None
    start_time: dt_datetime
    end_time: dt_datetime
    is_all_day: bool


class CoachNotesOut(BaseModel):
    notes: str
    updated_at: Optional[dt_datetime] = None


class ConfirmationLinkOut(BaseModel):
    token: str
    confirm_url: str


class WorkoutOut(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    id: int
    client_id: int
    coach_id: str
    title: str
    description: Optional[str] = None
    scheduled_date: dt_datetime
    duration: Optional[int] = None
    notes: Optional[str] = None
    completed: bool
    completed_at: Optional[dt_datetime] = None


class ProgressEntryOut(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    id: int
    client_id: str
    progress: int
    notes: Optional[str] = None
    date: dt_datetime


class TimeSwapRequestOut(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    id: int
    requester_id: str
    target_id: str
    requester_event_id: int
    target_event_id: int
    status: str
    approved_at: Optional[dt_datetime] = None
    declined_at: Optional[dt_datetime] = None
    created_at: dt_datetime


class AdminStatsOut(BaseModel):
    total_resources: int
    master_library_count: int
    active_users: int
    total_views: int
