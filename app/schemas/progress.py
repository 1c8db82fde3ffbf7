"""
Progress (aggregation) response schemas.
"""
from __future__ import annotations

from datetime import date
from typing import Optional

from pydantic import BaseModel, ConfigDict, Field

from app.schemas.habit import HabitOut
from app.schemas.log import LogOut


class TodayOut(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    day: date
    total_habits: int = Field(description="Active habits.")
    logged_count: int = Field(description="Active habits with a log for the day, any status.")
    completed_count: int = Field(description="Of those, completed or partial.")
    completion_rate: float = Field(description="logged_count / total_habits (0.0 when no habits).")
    logged_habits: list[LogOut]
    unlogged_habits: list[HabitOut]


class DaySummaryOut(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    day: date
    total_habits: int
    logged_habits: int
    completed_habits: int
    completion_rate: float = Field(description="completed_habits / total_habits (0.0 – 1.0).")
    avg_quality: Optional[float] = None
    avg_mood_before: Optional[float] = None
    avg_mood_after: Optional[float] = None


class WeeklySummaryOut(BaseModel):
    start_date: date
    end_date: date
    days: list[DaySummaryOut] = Field(description="One record per day, including days with no logs.")


class OwnerStatsOut(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    period_days: int
    start_date: date
    end_date: date
    total_habits: int
    active_habits: int
    best_streak: int
    total_completions: int
    recent_completions: int = Field(description="Completed / partial logs inside the window.")
    active_days: int = Field(description="Days in the window with at least one qualifying log.")
    habits_logged: int
    avg_completion_rate: float
