"""
Log request / response schemas.

Single day:  POST  /habits/{id}/logs         → LogCreate       → LogWriteOut
Edit:        PATCH /logs/{log_id}            → LogUpdate       → LogWriteOut
Batch:       POST  /habits/{id}/logs/batch   → LogBatchRequest → LogBatchResponse

Days travel as ISO strings and status as a plain string so that malformed
values reach the log store and come back as INVALID_INPUT.
"""
from __future__ import annotations

import datetime as dt
from typing import Any, Optional

from pydantic import BaseModel, ConfigDict, Field

from app.models.habit_log import LogStatus
from app.schemas.habit import HabitOut, StreakOut


# ---------------------------------------------------------------------------
# Requests
# ---------------------------------------------------------------------------

class LogFields(BaseModel):
    status: str = Field(
        description="completed | partial | skipped | failed.",
        examples=["completed"],
    )
    completion_count: Optional[int] = Field(default=None, description="≥ 0. Defaults to 1.")
    quality_rating: Optional[int] = Field(default=None, description="1–10.")
    mood_before: Optional[int] = Field(default=None, description="1–10.")
    mood_after: Optional[int] = Field(default=None, description="1–10.")
    notes: Optional[str] = Field(default=None, description="Up to 500 characters.")

    def as_fields(self) -> dict[str, Any]:
        return self.model_dump(exclude={"date"})


class LogCreate(LogFields):
    """Record (or overwrite) one calendar day. A second write for the same day replaces the first."""
    date: Optional[str] = Field(
        default=None,
        description="ISO day (YYYY-MM-DD). Defaults to today in the caller's timezone.",
        examples=["2026-10-19"],
    )


class LogUpdate(BaseModel):
    """Partial edit of a stored day; only the keys present in the body change."""
    status: Optional[str] = None
    completion_count: Optional[int] = None
    quality_rating: Optional[int] = None
    mood_before: Optional[int] = None
    mood_after: Optional[int] = None
    notes: Optional[str] = None

    def changes(self) -> dict[str, Any]:
        return self.model_dump(exclude_unset=True)


class LogBatchItem(LogFields):
    date: str = Field(description="ISO day (YYYY-MM-DD).", examples=["2026-10-18"])


class LogBatchRequest(BaseModel):
    """Bulk import for one habit.

    - Items are processed in order; a later item for the same day overwrites an earlier one.
    - Each item is independent: a failure on one does not cancel the others.
    - Streak fields are recomputed once, after the last item.
    """
    items: list[LogBatchItem] = Field(description="Days to import.")


# ---------------------------------------------------------------------------
# Responses
# ---------------------------------------------------------------------------

class LogOut(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    id: int
    habit_id: int
    date: dt.date
    status: LogStatus
    completion_count: int
    target_count: int = Field(description="Habit target at the time the day was written.")
    quality_rating: Optional[int] = None
    mood_before: Optional[int] = None
    mood_after: Optional[int] = None
    notes: Optional[str] = None
    completed_at: Optional[dt.datetime] = None
    created_at: Optional[dt.datetime] = None
    updated_at: Optional[dt.datetime] = None


class HabitDetailOut(HabitOut):
    recent_logs: Optional[list[LogOut]] = Field(
        default=None, description="Most recent logs, newest first. Only with include_logs=true."
    )


class LogWriteOut(BaseModel):
    """The written log (absent after a delete) and the habit with refreshed streak fields."""
    model_config = ConfigDict(from_attributes=True)

    log: Optional[LogOut] = None
    habit: HabitOut
    streak: StreakOut


class LogBatchItemResult(BaseModel):
    index: int = Field(description="Zero-based position in the request items list.")
    ok: bool
    date: Optional[dt.date] = None
    log: Optional[LogOut] = Field(default=None, description="Populated when ok=True.")
    error: Optional[str] = Field(default=None, description="Error message when ok=False.")


class LogBatchResponse(BaseModel):
    total: int
    succeeded: int
    failed: int
    habit: HabitOut
    streak: Optional[StreakOut] = Field(
        default=None, description="Absent when no item was written."
    )
    items: list[LogBatchItemResult] = Field(description="Per-item results in input order.")
