"""Pydantic validation models for all user-facing data entry points."""

from __future__ import annotations

import re
from datetime import date as dt_date
from datetime import datetime
from typing import Any, Literal, Optional

from pydantic import BaseModel, EmailStr, Field, field_validator, model_validator

from core.models import NOTIFICATION_TYPES, PROGRAM_LEVELS

_CLOCK_RE = re.compile(r"^\s*(\d{1,2}):(\d{2})\s*([AaPp][Mm])?\s*$")

TimeRange = Literal["4", "6", "8", "all"]
DashboardRange = Literal["4w", "6w", "8w", "1y"]


def parse_clock(value: str) -> tuple[int, int]:
    """Parse "2:30 PM" or "14:30" into (hour, minute) on a 24h clock."""
    match = _CLOCK_RE.match(value or "")
    if not match:
        raise ValueError("time must look like 'h:mm AM/PM' or 'HH:MM'")
    hour, minute, period = int(match.group(1)), int(match.group(2)), match.group(3)
    if minute > 59:
        raise ValueError("minute must be 0-59")
    if period:
        if not 1 <= hour <= 12:
            raise ValueError("hour must be 1-12 with AM/PM")
        period = period.upper()
        if period == "PM" and hour != 12:
            hour += 12
        elif period == "AM" and hour == 12:
            hour = 0
    elif hour > 23:
        raise ValueError("hour must be 0-23")
    return hour, minute


class _ClockTimeMixin(BaseModel):
    @field_validator("time", check_fields=False)
    @classmethod
    def valid_clock(cls, v):
        hour, minute = parse_clock(v)
        return f"{hour:02d}:{minute:02d}"


# -- users --


class RoleUpdateInput(BaseModel):
    role: Literal["COACH", "CLIENT"]
    coach_id: Optional[str] = None
    invite_code: Optional[str] = Field(default=None, max_length=32)
    coach_email: Optional[EmailStr] = None


class InviteCodeInput(BaseModel):
    invite_code: str = Field(min_length=1, max_length=32)


# -- clients --


class ClientCreateInput(BaseModel):
    name: str = Field(min_length=1, max_length=200)
    email: Optional[EmailStr] = None
    phone: Optional[str] = Field(default=None, max_length=40)
    notes: Optional[str] = Field(default=None, max_length=5000)
    next_lesson_date: Optional[datetime] = None


class ClientUpdateInput(BaseModel):
    name: Optional[str] = Field(default=None, min_length=1, max_length=200)
    email: Optional[EmailStr] = None
    phone: Optional[str] = Field(default=None, max_length=40)
    notes: Optional[str] = Field(default=None, max_length=5000)
    avatar: Optional[str] = Field(default=None, max_length=500)
    next_lesson_date: Optional[datetime] = None


class ClientNotesInput(BaseModel):
    notes: str = Field(min_length=1, max_length=5000)


class LessonDataInput(_ClockTimeMixin):
    title: str = Field(min_length=1, max_length=200)
    time: str
    description: Optional[str] = Field(default=None, max_length=2000)


class ReplaceWorkoutInput(BaseModel):
    program_id: int = Field(gt=0)
    day_date: dt_date
    lesson_data: LessonDataInput


# -- client portal --


class DrillCompletionInput(BaseModel):
    drill_id: str = Field(min_length=1, max_length=120)
    completed: bool


class ProgramDrillCompletionInput(BaseModel):
    drill_id: int = Field(gt=0)
    program_assignment_id: int = Field(gt=0)
    completed: bool


class RoutineExerciseCompletionInput(BaseModel):
    exercise_id: int = Field(gt=0)
    routine_assignment_id: int = Field(gt=0)
    completed: bool


class CompletionToggleInput(BaseModel):
    completed: bool = True


class NoteToCoachInput(BaseModel):
    note: str = Field(min_length=1, max_length=2000)


# -- library --


class LibraryResourceCreateInput(BaseModel):
    title: str = Field(min_length=1, max_length=300)
    description: Optional[str] = Field(default=None, max_length=5000)
    category: str = Field(default="General", min_length=1, max_length=80)
    type: str = Field(default="video", min_length=1, max_length=20)
    url: Optional[str] = Field(default=None, max_length=500)
    filename: Optional[str] = Field(default=None, max_length=300)
    thumbnail: Optional[str] = Field(default=None, max_length=500)
    duration: Optional[str] = Field(default=None, max_length=40)


class LibraryResourceUpdateInput(BaseModel):
    title: Optional[str] = Field(default=None, min_length=1, max_length=300)
    description: Optional[str] = Field(default=None, max_length=5000)
    category: Optional[str] = Field(default=None, min_length=1, max_length=80)
    thumbnail: Optional[str] = Field(default=None, max_length=500)
    duration: Optional[str] = Field(default=None, max_length=40)


class RatingInput(BaseModel):
    rating: int = Field(ge=1, le=5)


class YouTubeImportInput(BaseModel):
    url: str = Field(min_length=1, max_length=500)
    title: Optional[str] = Field(default=None, max_length=300)
    description: Optional[str] = Field(default=None, max_length=5000)
    category: str = Field(default="General", min_length=1, max_length=80)


class PlaylistImportInput(BaseModel):
    url: str = Field(min_length=1, max_length=500)
    category: str = Field(default="General", min_length=1, max_length=80)


class VideoAssignInput(BaseModel):
    video_id: int = Field(gt=0)
    client_id: int = Field(gt=0)
    due_date: Optional[datetime] = None
    notes: Optional[str] = Field(default=None, max_length=2000)


# -- messaging --


class _AttachmentFields(BaseModel):
    attachment_url: Optional[str] = Field(default=None, max_length=500)
    attachment_type: Optional[str] = Field(default=None, max_length=80)
    attachment_name: Optional[str] = Field(default=None, max_length=300)
    attachment_size: Optional[int] = Field(default=None, ge=0)


class SendMessageInput(_AttachmentFields):
    content: str = Field(default="", max_length=1000)

    @model_validator(mode="after")
    def content_or_attachment(self):
        if not self.content.strip() and not self.attachment_url:
            raise ValueError("Message must have content or an attachment")
        return self


class MassMessageInput(SendMessageInput):
    client_ids: list[int] = Field(min_length=1, max_length=500)


class ConversationCreateInput(BaseModel):
    other_user_id: str = Field(min_length=1, max_length=64)


class ConversationWithClientInput(BaseModel):
    client_id: int = Field(gt=0)


# -- workouts / progress --


class WorkoutCreateInput(BaseModel):
    client_id: int = Field(gt=0)
    title: str = Field(min_length=1, max_length=200)
    description: Optional[str] = Field(default=None, max_length=2000)
    scheduled_date: datetime
    duration: Optional[int] = Field(default=None, ge=0, le=1440)
    notes: Optional[str] = Field(default=None, max_length=2000)


class ProgressUpdateInput(BaseModel):
    client_id: int = Field(gt=0)
    progress: int = Field(ge=0, le=1000)
    notes: Optional[str] = Field(default=None, max_length=2000)


# -- events --


class ReminderCreateInput(_ClockTimeMixin):
    title: str = Field(min_length=1, max_length=200)
    description: Optional[str] = Field(default=None, max_length=2000)
    date: dt_date
    time: str


class LessonScheduleInput(_ClockTimeMixin):
    client_id: int = Field(gt=0)
    date: dt_date
    time: str
    title: str = Field(default="Lesson", min_length=1, max_length=200)
    description: Optional[str] = Field(default=None, max_length=2000)


class LessonConfirmInput(BaseModel):
    token: str = Field(min_length=1)


# -- scheduling --


class BlockedTimeInput(BaseModel):
    title: str = Field(min_length=1, max_length=200)
    description: Optional[str] = Field(default=None, max_length=2000)
    start_time: datetime
    end_time: datetime
    is_all_day: bool = False

    @model_validator(mode="after")
    def ends_after_start(self):
        if self.end_time <= self.start_time:
            raise ValueError("End time must be after start time")
        return self


class ScheduleChangeInput(_ClockTimeMixin):
    requested_date: dt_date
    time: str
    reason: Optional[str] = Field(default=None, max_length=1000)


class ScheduleRejectInput(BaseModel):
    reason: Optional[str] = Field(default=None, max_length=1000)


# -- programs --


class DrillInput(BaseModel):
    title: str = Field(min_length=1, max_length=200)
    description: Optional[str] = Field(default=None, max_length=2000)
    duration: Optional[str] = Field(default=None, max_length=40)
    video_url: Optional[str] = Field(default=None, max_length=500)
    video_id: Optional[str] = Field(default=None, max_length=64)
    video_title: Optional[str] = Field(default=None, max_length=200)
    video_thumbnail: Optional[str] = Field(default=None, max_length=500)
    notes: Optional[str] = Field(default=None, max_length=2000)
    sets: Optional[int] = Field(default=None, ge=0, le=100)
    reps: Optional[int] = Field(default=None, ge=0, le=1000)
    tempo: Optional[str] = Field(default=None, max_length=40)
    type: Optional[str] = Field(default=None, max_length=40)
    routine_id: Optional[int] = Field(default=None, gt=0)
    superset_id: Optional[str] = Field(default=None, max_length=64)


class DrillUpdateInput(BaseModel):
    title: Optional[str] = Field(default=None, min_length=1, max_length=200)
    description: Optional[str] = Field(default=None, max_length=2000)
    duration: Optional[str] = Field(default=None, max_length=40)
    video_url: Optional[str] = Field(default=None, max_length=500)
    notes: Optional[str] = Field(default=None, max_length=2000)
    sets: Optional[int] = Field(default=None, ge=0, le=100)
    reps: Optional[int] = Field(default=None, ge=0, le=1000)
    tempo: Optional[str] = Field(default=None, max_length=40)
    type: Optional[str] = Field(default=None, max_length=40)
    routine_id: Optional[int] = Field(default=None, gt=0)
    superset_id: Optional[str] = Field(default=None, max_length=64)


class DayInput(BaseModel):
    day_number: int = Field(ge=1, le=7)
    title: str = Field(default="", max_length=200)
    description: Optional[str] = Field(default=None, max_length=2000)
    is_rest_day: bool = False
    drills: list[DrillInput] = Field(default_factory=list)


class WeekInput(BaseModel):
    week_number: int = Field(ge=1, le=52)
    title: str = Field(default="", max_length=200)
    description: Optional[str] = Field(default=None, max_length=2000)
    days: list[DayInput] = Field(default_factory=list)

    @field_validator("days")
    @classmethod
    def unique_day_numbers(cls, v):
        numbers = [d.day_number for d in v]
        if len(numbers) != len(set(numbers)):
            raise ValueError("day_number must be unique within a week")
        return v


def _valid_level(v):
    if v is not None and v not in PROGRAM_LEVELS:
        raise ValueError(f"level must be one of {list(PROGRAM_LEVELS)}")
    return v


def _unique_weeks(v):
    if v is None:
        return v
    numbers = [w.week_number for w in v]
    if len(numbers) != len(set(numbers)):
        raise ValueError("week_number must be unique within a program")
    return v


class ProgramCreateInput(BaseModel):
    title: str = Field(min_length=1, max_length=200)
    description: Optional[str] = Field(default=None, max_length=5000)
    level: str
    duration: int = Field(ge=1, le=52)
    weeks: list[WeekInput] = Field(default_factory=list)

    @field_validator("level")
    @classmethod
    def valid_level(cls, v):
        return _valid_level(v)

    @field_validator("weeks")
    @classmethod
    def unique_week_numbers(cls, v):
        return _unique_weeks(v)


class ProgramUpdateInput(BaseModel):
    title: Optional[str] = Field(default=None, min_length=1, max_length=200)
    description: Optional[str] = Field(default=None, max_length=5000)
    level: Optional[str] = None
    duration: Optional[int] = Field(default=None, ge=1, le=52)
    status: Optional[Literal["DRAFT", "ACTIVE", "ARCHIVED"]] = None
    weeks: Optional[list[WeekInput]] = None

    @field_validator("level")
    @classmethod
    def valid_level(cls, v):
        return _valid_level(v)

    @field_validator("weeks")
    @classmethod
    def unique_week_numbers(cls, v):
        return _unique_weeks(v)


class WeekUpdateInput(BaseModel):
    title: Optional[str] = Field(default=None, max_length=200)
    description: Optional[str] = Field(default=None, max_length=2000)


class WeekCreateInput(BaseModel):
    title: str = Field(default="", max_length=200)
    description: Optional[str] = Field(default=None, max_length=2000)


class DayCreateInput(BaseModel):
    day_number: int = Field(ge=1, le=7)
    title: str = Field(default="", max_length=200)
    description: Optional[str] = Field(default=None, max_length=2000)
    is_rest_day: bool = False


class ProgramAssignInput(BaseModel):
    client_ids: list[int] = Field(min_length=1, max_length=500)
    start_date: dt_date
    repetitions: int = Field(default=1, ge=1, le=12)


class ClientIdsInput(BaseModel):
    client_ids: list[int] = Field(min_length=1, max_length=500)


class AssignmentProgressInput(BaseModel):
    progress: int = Field(ge=0, le=100)


# -- routines --


class RoutineExerciseInput(BaseModel):
    title: str = Field(min_length=1, max_length=200)
    description: Optional[str] = Field(default=None, max_length=2000)
    type: Optional[str] = Field(default=None, max_length=40)
    notes: Optional[str] = Field(default=None, max_length=2000)
    sets: Optional[int] = Field(default=None, ge=0, le=100)
    reps: Optional[int] = Field(default=None, ge=0, le=1000)
    tempo: Optional[str] = Field(default=None, max_length=40)
    duration: Optional[str] = Field(default=None, max_length=40)
    video_id: Optional[str] = Field(default=None, max_length=64)
    video_url: Optional[str] = Field(default=None, max_length=500)
    video_title: Optional[str] = Field(default=None, max_length=200)
    video_thumbnail: Optional[str] = Field(default=None, max_length=500)


class RoutineCreateInput(BaseModel):
    name: str = Field(min_length=1, max_length=200)
    description: Optional[str] = Field(default=None, max_length=2000)
    exercises: list[RoutineExerciseInput] = Field(default_factory=list)


class RoutineUpdateInput(BaseModel):
    name: Optional[str] = Field(default=None, min_length=1, max_length=200)
    description: Optional[str] = Field(default=None, max_length=2000)
    exercises: Optional[list[RoutineExerciseInput]] = None


class RoutineAssignInput(BaseModel):
    client_ids: list[int] = Field(min_length=1, max_length=500)
    start_date: Optional[dt_date] = None


# -- notifications --


class NotificationCreateInput(BaseModel):
    user_id: str = Field(min_length=1, max_length=64)
    type: str
    title: str = Field(min_length=1, max_length=200)
    message: str = Field(min_length=1, max_length=2000)
    data: Optional[dict[str, Any]] = None

    @field_validator("type")
    @classmethod
    def valid_type(cls, v):
        if v not in NOTIFICATION_TYPES:
            raise ValueError(f"type must be one of {list(NOTIFICATION_TYPES)}")
        return v


class IdsInput(BaseModel):
    ids: list[int] = Field(min_length=1, max_length=500)


# -- settings --


class SettingsUpdateInput(BaseModel):
    phone: Optional[str] = Field(default=None, max_length=40)
    location: Optional[str] = Field(default=None, max_length=200)
    bio: Optional[str] = Field(default=None, max_length=2000)
    avatar_url: Optional[str] = Field(default=None, max_length=500)
    email_notifications: Optional[bool] = None
    push_notifications: Optional[bool] = None
    sound_notifications: Optional[bool] = None
    new_client_notifications: Optional[bool] = None
    message_notifications: Optional[bool] = None
    schedule_notifications: Optional[bool] = None
    lesson_reminders_enabled: Optional[bool] = None
    default_welcome_message: Optional[str] = Field(default=None, max_length=2000)
    message_retention_days: Optional[int] = Field(default=None, ge=1, le=3650)
    max_file_size_mb: Optional[int] = Field(default=None, ge=1, le=1024)
    default_lesson_duration: Optional[int] = Field(default=None, ge=5, le=480)
    auto_archive_days: Optional[int] = Field(default=None, ge=1, le=3650)
    require_client_email: Optional[bool] = None
    timezone: Optional[str] = Field(default=None, max_length=64)
    working_days: Optional[list[str]] = None
    two_factor_enabled: Optional[bool] = None
    compact_sidebar: Optional[bool] = None
    show_animations: Optional[bool] = None

    @field_validator("working_days")
    @classmethod
    def valid_days(cls, v):
        allowed = {"Monday", "Tuesday", "Wednesday", "Thursday", "Friday", "Saturday", "Sunday"}
        if v is not None and not set(v) <= allowed:
            raise ValueError(f"working_days must be drawn from {sorted(allowed)}")
        return v


class ProfileUpdateInput(BaseModel):
    name: Optional[str] = Field(default=None, min_length=1, max_length=200)
    phone: Optional[str] = Field(default=None, max_length=40)
    location: Optional[str] = Field(default=None, max_length=200)
    bio: Optional[str] = Field(default=None, max_length=2000)
    avatar_url: Optional[str] = Field(default=None, max_length=500)


# -- admin --


class MasterResourceCreateInput(LibraryResourceCreateInput):
    is_youtube: bool = False
    youtube_id: Optional[str] = Field(default=None, max_length=20)


class AdminStatusInput(BaseModel):
    is_admin: bool


# -- time swap --


class TimeSwapCreateInput(BaseModel):
    requester_event_id: int = Field(gt=0)
    target_event_id: int = Field(gt=0)
