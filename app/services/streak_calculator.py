"""
Streak calculator.

current_streak walks backward from `as_of` one day at a time. A day counts
when its log is completed or partial; the walk stops at the first day that
is unlogged, skipped, or failed. If `as_of` itself has no log the walk starts
at the day before, so an unlogged "today" does not break a streak yet, while
a skipped/failed "today" resets it to 0.

best_streak never decreases: max(previous best, new current).

recompute() is the only path that refreshes a habit's cached streak fields,
and it writes them through habit_registry.update_derived_fields.
"""
from __future__ import annotations

import logging
from dataclasses import dataclass
from datetime import date, timedelta
from typing import Mapping

from sqlalchemy import func
from sqlalchemy.orm import Session

from app.models.habit import Habit
from app.models.habit_log import HabitLog, LogStatus, QUALIFYING_STATUSES
from app.services import habit_registry

logger = logging.getLogger(__name__)


@dataclass
class StreakResult:
    habit_id: int
    as_of: date
    current_streak: int
    best_streak: int
    total_completions: int


# ---------------------------------------------------------------------------
# Pure functions
# ---------------------------------------------------------------------------

def current_streak(statuses: Mapping[date, LogStatus], as_of: date) -> int:
    """Consecutive qualifying days ending at `as_of` (or the day before, if unlogged)."""
    cursor = as_of if as_of in statuses else as_of - timedelta(days=1)
    streak = 0
    while statuses.get(cursor) in QUALIFYING_STATUSES:
        streak += 1
        cursor -= timedelta(days=1)
    return streak


def best_streak(previous_best: int, new_current_streak: int) -> int:
    return max(previous_best or 0, new_current_streak)


# ---------------------------------------------------------------------------
# Store-backed
# ---------------------------------------------------------------------------

def load_statuses(db: Session, habit_id: int, as_of: date) -> dict[date, LogStatus]:
    rows = (
        db.query(HabitLog.date, HabitLog.status)
        .filter(HabitLog.habit_id == habit_id, HabitLog.date <= as_of)
        .order_by(HabitLog.date.desc())
        .all()
    )
    return {day: LogStatus(status) for day, status in rows}


def count_completions(db: Session, habit_id: int) -> int:
    return (
        db.query(func.count(HabitLog.id))
        .filter(
            HabitLog.habit_id == habit_id,
            HabitLog.status.in_(QUALIFYING_STATUSES),
        )
        .scalar()
        or 0
    )


def compute_current_streak(db: Session, habit_id: int, as_of: date) -> int:
    return current_streak(load_statuses(db, habit_id, as_of), as_of)


def recompute(db: Session, habit: Habit, as_of: date) -> StreakResult:
    """Derive streak / best / total from the log history and persist them."""
    streak = compute_current_streak(db, habit.id, as_of)
    best = best_streak(habit.best_streak, streak)
    total = count_completions(db, habit.id)

    habit_registry.update_derived_fields(
        db,
        habit_id=habit.id,
        streak=streak,
        best_streak=best,
        total_completions=total,
    )
    logger.debug(
        "habit %s recomputed as of %s: streak=%s best=%s total=%s",
        habit.id, as_of, streak, best, total,
    )
    return StreakResult(
        habit_id=habit.id,
        as_of=as_of,
        current_streak=streak,
        best_streak=best,
        total_completions=total,
    )
