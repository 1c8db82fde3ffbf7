"""
Aggregation reporter — read-only progress views built from habits + logs.

Public API
----------
today_view(db, owner_id, today)                 -> TodayView
weekly_summary(db, owner_id, start, end)        -> list[DaySummary]   (dense, one per day)
owner_stats(db, owner_id, days, today)          -> OwnerStats

Nothing here writes. Reads are not isolated from concurrent log writes, so a
view may reflect a write that lands mid-request.
"""
from __future__ import annotations

from collections import defaultdict
from dataclasses import dataclass
from datetime import date, timedelta
from typing import Optional

from sqlalchemy.orm import Session

from app.core.config import settings
from app.core.dates import iter_days
from app.core.errors import InvalidInputError
from app.models.habit import Habit
from app.models.habit_log import HabitLog, QUALIFYING_STATUSES


# ---------------------------------------------------------------------------
# Result types
# ---------------------------------------------------------------------------

@dataclass
class TodayView:
    day: date
    logged_habits: list[HabitLog]
    unlogged_habits: list[Habit]
    total_habits: int
    logged_count: int
    completed_count: int
    completion_rate: float   # logged_count / total_habits, 0.0 when no habits


@dataclass
class DaySummary:
    day: date
    total_habits: int
    logged_habits: int
    completed_habits: int
    completion_rate: float
    avg_quality: Optional[float]
    avg_mood_before: Optional[float]
    avg_mood_after: Optional[float]


@dataclass
class OwnerStats:
    period_days: int
    start_date: date
    end_date: date
    total_habits: int
    active_habits: int
    best_streak: int
    total_completions: int
    recent_completions: int
    active_days: int
    habits_logged: int
    avg_completion_rate: float


# ---------------------------------------------------------------------------
# Helpers
# ---------------------------------------------------------------------------

def _rate(part: int, whole: int) -> float:
    return round(part / whole, 4) if whole else 0.0


def _mean(values: list[int]) -> Optional[float]:
    return round(sum(values) / len(values), 2) if values else None


def _as_day(ts) -> Optional[date]:
    return ts.date() if ts is not None else None


def _tracked_on(habit: Habit, day: date) -> bool:
    """True if the habit existed and was not archived on `day`."""
    created = _as_day(habit.created_at)
    if created is not None and created > day:
        return False
    archived = _as_day(habit.archived_at)
    return archived is None or archived > day


def _check_range(start: date, end: date) -> None:
    if start > end:
        raise InvalidInputError("start_date must not be after end_date.", field="start_date", value=start)
    span = (end - start).days + 1
    if span > settings.SUMMARY_MAX_DAYS:
        raise InvalidInputError(
            f"Summary window is limited to {settings.SUMMARY_MAX_DAYS} days (got {span}).",
            field="end_date", value=end,
        )


# ---------------------------------------------------------------------------
# Today
# ---------------------------------------------------------------------------

def today_view(db: Session, owner_id: str, today: date) -> TodayView:
    habits: list[Habit] = (
        db.query(Habit)
        .filter(Habit.owner_id == owner_id, Habit.is_active == True)  # noqa: E712
        .order_by(Habit.name.asc(), Habit.id.asc())
        .all()
    )
    habit_ids = [h.id for h in habits]
    logs: list[HabitLog] = (
        db.query(HabitLog)
        .filter(HabitLog.habit_id.in_(habit_ids), HabitLog.date == today)
        .order_by(HabitLog.habit_id.asc())
        .all()
    ) if habit_ids else []

    logged_ids = {log.habit_id for log in logs}
    completed = sum(1 for log in logs if log.status in QUALIFYING_STATUSES)
    return TodayView(
        day=today,
        logged_habits=logs,
        unlogged_habits=[h for h in habits if h.id not in logged_ids],
        total_habits=len(habits),
        logged_count=len(logged_ids),
        completed_count=completed,
        completion_rate=_rate(len(logged_ids), len(habits)),
    )


# ---------------------------------------------------------------------------
# Weekly (any range)
# ---------------------------------------------------------------------------

def weekly_summary(db: Session, owner_id: str, start: date, end: date) -> list[DaySummary]:
    """
    One record per day in [start, end], including days without logs.

    A habit counts toward a day's total when it has a log that day, or when
    it had been created and was not archived on that day.
    """
    _check_range(start, end)

    habits: list[Habit] = db.query(Habit).filter(Habit.owner_id == owner_id).all()
    logs: list[HabitLog] = (
        db.query(HabitLog)
        .filter(
            HabitLog.owner_id == owner_id,
            HabitLog.date >= start,
            HabitLog.date <= end,
        )
        .all()
    )
    by_day: dict[date, list[HabitLog]] = defaultdict(list)
    for log in logs:
        by_day[log.date].append(log)

    summaries: list[DaySummary] = []
    for day in iter_days(start, end):
        day_logs = by_day.get(day, [])
        tracked = {h.id for h in habits if _tracked_on(h, day)}
        tracked.update(log.habit_id for log in day_logs)
        completed = sum(1 for log in day_logs if log.status in QUALIFYING_STATUSES)
        summaries.append(DaySummary(
            day=day,
            total_habits=len(tracked),
            logged_habits=len(day_logs),
            completed_habits=completed,
            completion_rate=_rate(completed, len(tracked)),
            avg_quality=_mean([l.quality_rating for l in day_logs if l.quality_rating is not None]),
            avg_mood_before=_mean([l.mood_before for l in day_logs if l.mood_before is not None]),
            avg_mood_after=_mean([l.mood_after for l in day_logs if l.mood_after is not None]),
        ))
    return summaries


# ---------------------------------------------------------------------------
# Rolling owner stats
# ---------------------------------------------------------------------------

def owner_stats(db: Session, owner_id: str, days: int, today: date) -> OwnerStats:
    if days < 1 or days > settings.SUMMARY_MAX_DAYS:
        raise InvalidInputError(
            f"days must be between 1 and {settings.SUMMARY_MAX_DAYS}.", field="days", value=days
        )
    start = today - timedelta(days=days - 1)

    habits: list[Habit] = db.query(Habit).filter(Habit.owner_id == owner_id).all()
    summary = weekly_summary(db, owner_id, start, today)
    qualifying = (
        db.query(HabitLog.date, HabitLog.habit_id)
        .filter(
            HabitLog.owner_id == owner_id,
            HabitLog.date >= start,
            HabitLog.date <= today,
            HabitLog.status.in_(QUALIFYING_STATUSES),
        )
        .all()
    )

    return OwnerStats(
        period_days=days,
        start_date=start,
        end_date=today,
        total_habits=len(habits),
        active_habits=sum(1 for h in habits if h.is_active),
        best_streak=max((h.best_streak for h in habits), default=0),
        total_completions=sum(h.total_completions for h in habits),
        recent_completions=len(qualifying),
        active_days=len({d for d, _ in qualifying}),
        habits_logged=len({hid for _, hid in qualifying}),
        avg_completion_rate=round(
            sum(s.completion_rate for s in summary) / len(summary), 4
        ),
    )
