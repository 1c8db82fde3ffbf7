"""
Habit registry: owns habit metadata and its lifecycle.

Public API
----------
create_habit(db, owner_id, data)                       -> Habit
get_habit(db, owner_id, habit_id, include_archived)    -> Habit
list_habits(db, owner_id, ...)                         -> list[Habit]
update_habit(db, owner_id, habit_id, changes)          -> Habit
archive_habit(db, owner_id, habit_id)                  -> Habit
restore_habit(db, owner_id, habit_id)                  -> Habit
delete_habit(db, owner_id, habit_id, permanent)        -> Habit | None
update_derived_fields(db, habit_id, streak, best, total) -> Habit
habit_stats(db, owner_id, habit_id, start, end, today) -> HabitStats
habit_overview(db, owner_id, today)                    -> HabitOverview

Archive is a soft delete (is_active=False + archived_at); logs survive it.
Only delete_habit(permanent=True) removes rows, cascading to the habit's logs.
"""
from __future__ import annotations

import logging
import re
from dataclasses import dataclass
from datetime import date, datetime, timezone
from typing import Any, Optional

from sqlalchemy import case, func
from sqlalchemy.orm import Session

from app.core.dates import local_today
from app.core.errors import HabitNotFoundError, InvalidInputError
from app.models.habit import Habit, FrequencyType, DEFAULT_COLOR
from app.models.habit_log import COUNT_MAX, HabitLog, LogStatus
from app.services import streak_calculator
from app.services.schedule_engine import is_due_today, last_completed_dates

logger = logging.getLogger(__name__)


# ---------------------------------------------------------------------------
# Field rules
# ---------------------------------------------------------------------------

NAME_MAX_LENGTH = 200
DESCRIPTION_MAX_LENGTH = 1000
DIFFICULTY_MIN, DIFFICULTY_MAX = 1, 5

_COLOR_RE = re.compile(r"^#[0-9A-Fa-f]{6}$")

EDITABLE_FIELDS = frozenset({
    "name", "description", "color", "icon",
    "frequency_type", "frequency_value", "target_count",
    "difficulty_level", "notes",
})
DERIVED_FIELDS = frozenset({"streak_count", "best_streak", "total_completions"})
_LIFECYCLE_FIELDS = frozenset({"is_active", "archived_at", "owner_id", "id"})

_ORDERABLE = {"created_at": Habit.created_at, "name": Habit.name}


# ---------------------------------------------------------------------------
# Result types
# ---------------------------------------------------------------------------

@dataclass
class HabitStats:
    habit_id: int
    total_logs: int
    completed_count: int
    partial_count: int
    skipped_count: int
    failed_count: int
    avg_quality: Optional[float]
    avg_mood_before: Optional[float]
    avg_mood_after: Optional[float]
    first_log_date: Optional[date]
    last_log_date: Optional[date]
    completion_rate: float   # qualifying logs / total logs, 0.0 – 1.0
    current_streak: int
    best_streak: int
    total_completions: int


@dataclass
class HabitOverview:
    total_active_habits: int
    total_current_streaks: int
    best_streak: int
    total_completions: int
    habits_due_today: list[Habit]
    recent_habits: list[Habit]


# ---------------------------------------------------------------------------
# Validation
# ---------------------------------------------------------------------------

def _positive_int(field: str, value: Any) -> int:
    if isinstance(value, bool) or not isinstance(value, int) or not (1 <= value <= COUNT_MAX):
        raise InvalidInputError(
            f"{field} must be an integer between 1 and {COUNT_MAX}.", field=field, value=value
        )
    return value


def _clean(field: str, value: Any) -> Any:
    """Validate one editable field and return its normalized value."""
    if field == "name":
        name = value.strip() if isinstance(value, str) else ""
        if not name or len(name) > NAME_MAX_LENGTH:
            raise InvalidInputError(
                f"name must be between 1 and {NAME_MAX_LENGTH} characters.",
                field=field, value=value,
            )
        return name
    if field == "description":
        if value is not None and len(value) > DESCRIPTION_MAX_LENGTH:
            raise InvalidInputError(
                f"description cannot exceed {DESCRIPTION_MAX_LENGTH} characters.",
                field=field, value=None,
            )
        return value
    if field == "color":
        if value is None:
            return DEFAULT_COLOR
        if not isinstance(value, str) or not _COLOR_RE.match(value):
            raise InvalidInputError("color must be a hex code like #3B82F6.", field=field, value=value)
        return value
    if field == "frequency_type":
        try:
            return FrequencyType(value)
        except ValueError as exc:
            raise InvalidInputError(
                "frequency_type must be daily, weekly, monthly, or custom.",
                field=field, value=value,
            ) from exc
    if field in ("frequency_value", "target_count"):
        return _positive_int(field, value)
    if field == "difficulty_level":
        if value is None:
            return None
        if isinstance(value, bool) or not isinstance(value, int) or not (
            DIFFICULTY_MIN <= value <= DIFFICULTY_MAX
        ):
            raise InvalidInputError(
                f"difficulty_level must be between {DIFFICULTY_MIN} and {DIFFICULTY_MAX}.",
                field=field, value=value,
            )
        return value
    return value


def _check_writable(changes: dict[str, Any]) -> None:
    for key in changes:
        if key in DERIVED_FIELDS:
            raise InvalidInputError(
                f"{key} is derived from the habit's logs and cannot be set directly.",
                field=key, value=changes[key],
            )
        if key in _LIFECYCLE_FIELDS:
            raise InvalidInputError(
                f"{key} cannot be edited; use archive / restore instead.",
                field=key, value=changes[key],
            )
        if key not in EDITABLE_FIELDS:
            raise InvalidInputError(f"Unknown habit field '{key}'.", field=key, value=None)


# ---------------------------------------------------------------------------
# Lookups
# ---------------------------------------------------------------------------

def get_habit(
    db: Session,
    owner_id: str,
    habit_id: int,
    include_archived: bool = False,
) -> Habit:
    """Return the owner's habit or raise HabitNotFoundError (absent, foreign, or archived)."""
    q = db.query(Habit).filter(Habit.id == habit_id, Habit.owner_id == owner_id)
    if not include_archived:
        q = q.filter(Habit.is_active == True)  # noqa: E712
    habit = q.first()
    if habit is None:
        raise HabitNotFoundError(habit_id)
    return habit


def list_habits(
    db: Session,
    owner_id: str,
    include_archived: bool = False,
    limit: Optional[int] = None,
    offset: int = 0,
    order_by: str = "created_at",
    descending: bool = True,
) -> list[Habit]:
    column = _ORDERABLE.get(order_by)
    if column is None:
        raise InvalidInputError(
            f"order_by must be one of {sorted(_ORDERABLE)}.", field="order_by", value=order_by
        )
    q = db.query(Habit).filter(Habit.owner_id == owner_id)
    if not include_archived:
        q = q.filter(Habit.is_active == True)  # noqa: E712
    q = q.order_by(column.desc() if descending else column.asc(), Habit.id.desc())
    if offset:
        q = q.offset(offset)
    if limit:
        q = q.limit(limit)
    return q.all()


# ---------------------------------------------------------------------------
# Writes
# ---------------------------------------------------------------------------

def create_habit(db: Session, owner_id: str, data: dict[str, Any]) -> Habit:
    fields = {k: v for k, v in data.items() if v is not None}
    _check_writable(fields)
    if "name" not in fields:
        raise InvalidInputError("name is required.", field="name", value=None)

    values = {key: _clean(key, value) for key, value in fields.items()}
    habit = Habit(owner_id=owner_id, **values)
    db.add(habit)
    db.commit()
    db.refresh(habit)
    logger.info("habit %s created for owner %s", habit.id, owner_id)
    return habit


def update_habit(db: Session, owner_id: str, habit_id: int, changes: dict[str, Any]) -> Habit:
    _check_writable(changes)
    habit = get_habit(db, owner_id, habit_id)
    if not changes:
        return habit
    for key, value in changes.items():
        if key in ("name", "frequency_type", "frequency_value", "target_count") and value is None:
            raise InvalidInputError(f"{key} cannot be null.", field=key, value=None)
        setattr(habit, key, _clean(key, value))
    db.commit()
    db.refresh(habit)
    return habit


def archive_habit(db: Session, owner_id: str, habit_id: int) -> Habit:
    habit = get_habit(db, owner_id, habit_id)
    habit.is_active = False
    habit.archived_at = datetime.now(tz=timezone.utc)
    db.commit()
    db.refresh(habit)
    logger.info("habit %s archived", habit.id)
    return habit


def restore_habit(db: Session, owner_id: str, habit_id: int) -> Habit:
    habit = get_habit(db, owner_id, habit_id, include_archived=True)
    if habit.is_active:
        return habit
    habit.is_active = True
    habit.archived_at = None
    db.commit()
    db.refresh(habit)
    logger.info("habit %s restored", habit.id)
    return habit


def delete_habit(
    db: Session,
    owner_id: str,
    habit_id: int,
    permanent: bool = False,
) -> Optional[Habit]:
    """
    Archive the habit, or with permanent=True remove it together with its logs.
    Returns the archived habit, or None after a permanent delete.
    """
    if not permanent:
        return archive_habit(db, owner_id, habit_id)

    habit = get_habit(db, owner_id, habit_id, include_archived=True)
    db.delete(habit)
    db.commit()
    logger.info("habit %s permanently deleted with its logs", habit_id)
    return None


def update_derived_fields(
    db: Session,
    habit_id: int,
    streak: int,
    best_streak: int,
    total_completions: int,
) -> Habit:
    """Sole writer of streak_count / best_streak / total_completions."""
    habit = db.get(Habit, habit_id)
    if habit is None:
        raise HabitNotFoundError(habit_id)
    habit.streak_count = streak
    habit.best_streak = best_streak
    habit.total_completions = total_completions
    db.commit()
    db.refresh(habit)
    return habit


# ---------------------------------------------------------------------------
# Read-side summaries
# ---------------------------------------------------------------------------

def _avg(value) -> Optional[float]:
    return round(float(value), 2) if value is not None else None


def habit_stats(
    db: Session,
    owner_id: str,
    habit_id: int,
    start: Optional[date] = None,
    end: Optional[date] = None,
    today: Optional[date] = None,
) -> HabitStats:
    """Log statistics for one habit; current_streak is walked as of `today`."""
    habit = get_habit(db, owner_id, habit_id)
    today = today or local_today()
    if start and end and start > end:
        raise InvalidInputError("start_date must not be after end_date.", field="start_date", value=start)

    def _count(*statuses: LogStatus):
        return func.count(case((HabitLog.status.in_(statuses), 1)))

    q = db.query(
        func.count(HabitLog.id),
        _count(LogStatus.completed),
        _count(LogStatus.partial),
        _count(LogStatus.skipped),
        _count(LogStatus.failed),
        func.avg(HabitLog.quality_rating),
        func.avg(HabitLog.mood_before),
        func.avg(HabitLog.mood_after),
        func.min(HabitLog.date),
        func.max(HabitLog.date),
    ).filter(HabitLog.habit_id == habit.id)
    if start:
        q = q.filter(HabitLog.date >= start)
    if end:
        q = q.filter(HabitLog.date <= end)
    (total, completed, partial, skipped, failed,
     avg_quality, avg_before, avg_after, first, last) = q.one()

    total = total or 0
    qualifying = (completed or 0) + (partial or 0)
    return HabitStats(
        habit_id=habit.id,
        total_logs=total,
        completed_count=completed or 0,
        partial_count=partial or 0,
        skipped_count=skipped or 0,
        failed_count=failed or 0,
        avg_quality=_avg(avg_quality),
        avg_mood_before=_avg(avg_before),
        avg_mood_after=_avg(avg_after),
        first_log_date=first,
        last_log_date=last,
        completion_rate=round(qualifying / total, 4) if total else 0.0,
        current_streak=streak_calculator.compute_current_streak(db, habit.id, today),
        best_streak=habit.best_streak,
        total_completions=habit.total_completions,
    )


def habit_overview(db: Session, owner_id: str, today: date) -> HabitOverview:
    habits = list_habits(db, owner_id)
    last_dates = last_completed_dates(db, [h.id for h in habits])
    due = [h for h in habits if is_due_today(h, today, last_dates.get(h.id))]
    return HabitOverview(
        total_active_habits=len(habits),
        total_current_streaks=sum(
            streak_calculator.compute_current_streak(db, h.id, today) for h in habits
        ),
        best_streak=max((h.best_streak for h in habits), default=0),
        total_completions=sum(h.total_completions for h in habits),
        habits_due_today=due,
        recent_habits=habits[:5],
    )
