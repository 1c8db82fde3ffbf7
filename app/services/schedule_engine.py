"""
Schedule engine — when is a habit due next?

Frequency arithmetic (from the last qualifying log day):
  daily   : last + value days
  weekly  : last + 7 * value days
  monthly : last + value months, day-of-month clamped (Jan 31 + 1 → Feb 28/29)
  custom  : last + value days (arbitrary interval, displayed differently)

A habit that was never completed is due immediately. `is_due_today` uses
`today >= next_due`, so a missed habit stays due until it is logged.

next_due_date / is_due_today are pure; the remaining helpers read the
last qualifying day from habit_logs.
"""
from __future__ import annotations

from dataclasses import dataclass
from datetime import date, timedelta
from typing import Iterable, Optional

from sqlalchemy import func
from sqlalchemy.orm import Session

from app.core.dates import add_months
from app.models.habit import Habit, FrequencyType
from app.models.habit_log import HabitLog, QUALIFYING_STATUSES


@dataclass
class Schedule:
    habit_id: int
    frequency_type: FrequencyType
    frequency_value: int
    last_completed: Optional[date]
    next_due: date
    is_due_today: bool
    days_overdue: int


def next_due_date(habit: Habit, last_date: Optional[date], today: date) -> date:
    if last_date is None:
        return today

    value = habit.frequency_value
    ftype = FrequencyType(habit.frequency_type)
    if ftype == FrequencyType.daily:
        return last_date + timedelta(days=value)
    if ftype == FrequencyType.weekly:
        return last_date + timedelta(days=7 * value)
    if ftype == FrequencyType.monthly:
        return add_months(last_date, value)
    # custom: an arbitrary interval in days
    return last_date + timedelta(days=value)


def is_due_today(habit: Habit, today: date, last_date: Optional[date]) -> bool:
    return today >= next_due_date(habit, last_date, today)


# ---------------------------------------------------------------------------
# Store-backed helpers
# ---------------------------------------------------------------------------

def last_completed_date(db: Session, habit_id: int) -> Optional[date]:
    return (
        db.query(func.max(HabitLog.date))
        .filter(
            HabitLog.habit_id == habit_id,
            HabitLog.status.in_(QUALIFYING_STATUSES),
        )
        .scalar()
    )


def last_completed_dates(db: Session, habit_ids: Iterable[int]) -> dict[int, date]:
    """Latest qualifying log day per habit, in one grouped query."""
    ids = list(habit_ids)
    if not ids:
        return {}
    rows = (
        db.query(HabitLog.habit_id, func.max(HabitLog.date))
        .filter(
            HabitLog.habit_id.in_(ids),
            HabitLog.status.in_(QUALIFYING_STATUSES),
        )
        .group_by(HabitLog.habit_id)
        .all()
    )
    return {habit_id: last for habit_id, last in rows}


def get_schedule(db: Session, habit: Habit, today: date) -> Schedule:
    last = last_completed_date(db, habit.id)
    due = next_due_date(habit, last, today)
    return Schedule(
        habit_id=habit.id,
        frequency_type=FrequencyType(habit.frequency_type),
        frequency_value=habit.frequency_value,
        last_completed=last,
        next_due=due,
        is_due_today=today >= due,
        days_overdue=max((today - due).days, 0),
    )
