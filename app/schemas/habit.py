"""
Habit request / response schemas.

Create:    POST /habits              → HabitCreate → HabitOut
Update:    PUT  /habits/{id}         → HabitUpdate → HabitOut
Read-side: stats / schedule / overview / recompute

Request models keep domain fields loosely typed (plain str / int); the
registry validates them and answers with INVALID_INPUT. Unknown keys are
passed through so that attempts to write derived fields are rejected
explicitly instead of being silently dropped.
"""
from __future__ import annotations

from datetime import date, datetime
from typing import Any, Optional

from pydantic import BaseModel, ConfigDict, Field

from app.models.habit import FrequencyType


# ---------------------------------------------------------------------------
# Requests
# ---------------------------------------------------------------------------

class HabitCreate(BaseModel):
    model_config = ConfigDict(extra="allow")

    name: str = Field(description="1–200 characters.", examples=["Morning run"])
    description: Optional[str] = Field(default=None, description="Up to 1000 characters.")
    color: Optional[str] = Field(default=None, description="Hex colour, e.g. #3B82F6.")
    icon: Optional[str] = Field(default=None, max_length=50)
    frequency_type: Optional[str] = Field(
        default=None,
        description="daily | weekly | monthly | custom. Defaults to daily.",
        examples=["daily"],
    )
    frequency_value: Optional[int] = Field(
        default=None,
        description="Interval multiplier (≥ 1). Defaults to 1.",
    )
    target_count: Optional[int] = Field(default=None, description="Completions per day (≥ 1).")
    difficulty_level: Optional[int] = Field(default=None, description="1–5.")
    notes: Optional[str] = None


class HabitUpdate(BaseModel):
    """Only the keys present in the body are changed."""
    model_config = ConfigDict(extra="allow")

    name: Optional[str] = None
    description: Optional[str] = None
    color: Optional[str] = None
    icon: Optional[str] = Field(default=None, max_length=50)
    frequency_type: Optional[str] = None
    frequency_value: Optional[int] = None
    target_count: Optional[int] = None
    difficulty_level: Optional[int] = None
    notes: Optional[str] = None

    def changes(self) -> dict[str, Any]:
        return self.model_dump(exclude_unset=True)


# ---------------------------------------------------------------------------
# Responses
# ---------------------------------------------------------------------------

class HabitOut(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    id: int
    owner_id: str
    name: str
    description: Optional[str] = None
    color: str
    icon: Optional[str] = None
    frequency_type: FrequencyType
    frequency_value: int
    target_count: int
    difficulty_level: Optional[int] = None
    notes: Optional[str] = None
    streak_count: int = Field(description="Current streak, derived from logs.")
    best_streak: int = Field(description="Longest streak ever reached, derived from logs.")
    total_completions: int = Field(description="Completed + partial logs, derived.")
    is_active: bool
    archived_at: Optional[datetime] = None
    created_at: Optional[datetime] = None
    updated_at: Optional[datetime] = None


class HabitStatsOut(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    habit_id: int
    total_logs: int
    completed_count: int
    partial_count: int
    skipped_count: int
    failed_count: int
    avg_quality: Optional[float] = None
    avg_mood_before: Optional[float] = None
    avg_mood_after: Optional[float] = None
    first_log_date: Optional[date] = None
    last_log_date: Optional[date] = None
    completion_rate: float = Field(description="Qualifying logs / total logs (0.0 – 1.0).")
    current_streak: int
    best_streak: int
    total_completions: int


class HabitOverviewOut(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    total_active_habits: int
    total_current_streaks: int
    best_streak: int
    total_completions: int
    habits_due_today: list[HabitOut]
    recent_habits: list[HabitOut]


class ScheduleOut(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    habit_id: int
    frequency_type: FrequencyType
    frequency_value: int
    last_completed: Optional[date] = Field(
        default=None, description="Latest completed / partial log day."
    )
    next_due: date
    is_due_today: bool
    days_overdue: int


class StreakOut(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    habit_id: int
    as_of: date
    current_streak: int
    best_streak: int
    total_completions: int
