"""
Log store: one completion record per (habit, calendar day).

Public API
----------
upsert_log(db, owner_id, habit_id, day, fields)     -> HabitLog   (row write only)
find_by_habit(db, owner_id, habit_id, ...)          -> list[HabitLog]
find_for_day(db, owner_id, habit_id, day)           -> HabitLog | None
find_by_owner(db, owner_id, ...)                    -> list[HabitLog]
get_log(db, owner_id, log_id)                       -> HabitLog

Write + recompute (the engine boundary used by the routers)
-----------------------------------------------------------
log_completion(db, owner_id, habit_id, day, fields, as_of) -> LogWriteResult
update_log(db, owner_id, log_id, changes, as_of)           -> LogWriteResult
delete_log(db, owner_id, log_id, as_of)                    -> LogWriteResult
import_logs(db, owner_id, habit_id, items, as_of)          -> ImportResult

upsert_log never recomputes streaks so bulk imports can defer that step.
A second write for the same day overwrites the first (last write wins);
the (habit_id, date) unique constraint plus INSERT .. ON CONFLICT DO UPDATE
guarantees exactly one row survives concurrent writers.

If the log row commits but the streak recompute fails, the row is kept and
the inconsistency is logged and raised as RecomputeFailedError.
"""
from __future__ import annotations

import logging
from dataclasses import dataclass, field
from datetime import date, datetime, timezone
from typing import Any, Optional

from sqlalchemy import func
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.orm import Session

from app.core.dates import DayLike, local_today, parse_day
from app.core.errors import InvalidInputError, LogNotFoundError, RecomputeFailedError
from app.models.habit import Habit
from app.models.habit_log import (
    COUNT_MAX,
    HabitLog,
    LogStatus,
    QUALIFYING_STATUSES,
    RATING_MIN,
    RATING_MAX,
    NOTES_MAX_LENGTH,
)
from app.services import habit_registry, streak_calculator
from app.services.streak_calculator import StreakResult

logger = logging.getLogger(__name__)

RATING_FIELDS = ("quality_rating", "mood_before", "mood_after")
LOG_FIELDS = frozenset({"status", "completion_count", "notes", *RATING_FIELDS})

# Logs returned alongside a habit when the caller asks for them.
RECENT_LOGS_LIMIT = 7


# ---------------------------------------------------------------------------
# Result types
# ---------------------------------------------------------------------------

@dataclass
class LogWriteResult:
    """The row touched by a write and the habit's refreshed streak fields."""
    habit: Habit
    streak: StreakResult
    log: Optional[HabitLog] = None


@dataclass
class ImportItem:
    """Lightweight DTO so the service layer stays schema-agnostic."""
    day: DayLike
    fields: dict[str, Any] = field(default_factory=dict)


@dataclass
class ImportResult:
    habit: Habit
    streak: Optional[StreakResult]
    items: list[dict]


# ---------------------------------------------------------------------------
# Validation
# ---------------------------------------------------------------------------

def parse_status(value: Any) -> LogStatus:
    try:
        return LogStatus(value)
    except ValueError as exc:
        raise InvalidInputError(
            "status must be completed, partial, skipped, or failed.",
            field="status", value=value,
        ) from exc


def _rating(name: str, value: Any) -> Optional[int]:
    if value is None:
        return None
    if isinstance(value, bool) or not isinstance(value, int) or not (
        RATING_MIN <= value <= RATING_MAX
    ):
        raise InvalidInputError(
            f"{name} must be an integer between {RATING_MIN} and {RATING_MAX}.",
            field=name, value=value,
        )
    return value


def _validate_fields(fields: dict[str, Any], partial: bool = False) -> dict[str, Any]:
    """
    Normalize the writable log fields. With partial=False (upsert) every field
    is resolved, absent ones to their defaults, because the write replaces the
    whole day.
    """
    unknown = set(fields) - LOG_FIELDS
    if unknown:
        name = sorted(unknown)[0]
        raise InvalidInputError(f"Unknown log field '{name}'.", field=name, value=None)

    clean: dict[str, Any] = {}
    if "status" in fields or not partial:
        if fields.get("status") is None:
            raise InvalidInputError("status is required.", field="status", value=None)
        clean["status"] = parse_status(fields["status"])

    if "completion_count" in fields or not partial:
        count = fields.get("completion_count", 1)
        if count is None and not partial:
            count = 1
        if isinstance(count, bool) or not isinstance(count, int) or not (0 <= count <= COUNT_MAX):
            raise InvalidInputError(
                f"completion_count must be an integer between 0 and {COUNT_MAX}.",
                field="completion_count", value=count,
            )
        clean["completion_count"] = count

    for name in RATING_FIELDS:
        if name in fields or not partial:
            clean[name] = _rating(name, fields.get(name))

    if "notes" in fields or not partial:
        notes = fields.get("notes")
        if notes is not None:
            notes = notes.strip() or None
        if notes is not None and len(notes) > NOTES_MAX_LENGTH:
            raise InvalidInputError(
                f"notes cannot exceed {NOTES_MAX_LENGTH} characters.", field="notes", value=None
            )
        clean["notes"] = notes

    if "status" in clean:
        clean["completed_at"] = (
            datetime.now(tz=timezone.utc) if clean["status"] in QUALIFYING_STATUSES else None
        )
    return clean


# ---------------------------------------------------------------------------
# Row write
# ---------------------------------------------------------------------------

def _upsert_statement(db: Session, values: dict[str, Any]):
    """Dialect-native INSERT .. ON CONFLICT (habit_id, date) DO UPDATE."""
    dialect = db.get_bind().dialect.name
    if dialect == "postgresql":
        from sqlalchemy.dialects.postgresql import insert
    elif dialect == "sqlite":
        from sqlalchemy.dialects.sqlite import insert
    else:
        raise NotImplementedError(f"log upsert is not supported on the {dialect!r} dialect")

    stmt = insert(HabitLog).values(**values)
    overwrite = {
        key: stmt.excluded[key]
        for key in values
        if key not in ("habit_id", "date", "owner_id")
    }
    overwrite["updated_at"] = func.now()
    return stmt.on_conflict_do_update(
        index_elements=[HabitLog.habit_id, HabitLog.date],
        set_=overwrite,
    )


def _write_row(db: Session, values: dict[str, Any]) -> None:
    db.execute(_upsert_statement(db, values))


def _fetch_day(db: Session, habit_id: int, day: date) -> Optional[HabitLog]:
    return (
        db.query(HabitLog)
        .filter(HabitLog.habit_id == habit_id, HabitLog.date == day)
        .populate_existing()
        .first()
    )


def _row_values(habit: Habit, day: date, clean: dict[str, Any]) -> dict[str, Any]:
    return {
        "habit_id": habit.id,
        "owner_id": habit.owner_id,
        "date": day,
        "target_count": habit.target_count,
        **clean,
    }


# ---------------------------------------------------------------------------
# Public — store operations
# ---------------------------------------------------------------------------

def upsert_log(
    db: Session,
    owner_id: str,
    habit_id: int,
    day: DayLike,
    fields: dict[str, Any],
) -> HabitLog:
    """Create the (habit, day) log or overwrite the existing one. Commits."""
    target_day = parse_day(day)
    clean = _validate_fields(fields)
    habit = habit_registry.get_habit(db, owner_id, habit_id)

    _write_row(db, _row_values(habit, target_day, clean))
    db.commit()
    log = _fetch_day(db, habit.id, target_day)
    logger.debug("log %s upserted for habit %s on %s", log.id, habit.id, target_day)
    return log


def find_for_day(
    db: Session,
    owner_id: str,
    habit_id: int,
    day: DayLike,
) -> Optional[HabitLog]:
    target_day = parse_day(day)
    habit = habit_registry.get_habit(db, owner_id, habit_id)
    return (
        db.query(HabitLog)
        .filter(HabitLog.habit_id == habit.id, HabitLog.date == target_day)
        .first()
    )


def _filtered(q, start, end, status):
    if start is not None:
        q = q.filter(HabitLog.date >= parse_day(start, field="start_date"))
    if end is not None:
        q = q.filter(HabitLog.date <= parse_day(end, field="end_date"))
    if start is not None and end is not None and parse_day(start) > parse_day(end):
        raise InvalidInputError("start_date must not be after end_date.", field="start_date", value=start)
    if status is not None:
        q = q.filter(HabitLog.status == parse_status(status))
    return q


def find_by_habit(
    db: Session,
    owner_id: str,
    habit_id: int,
    start: Optional[DayLike] = None,
    end: Optional[DayLike] = None,
    status: Optional[str] = None,
    limit: Optional[int] = None,
    offset: int = 0,
    descending: bool = True,
) -> list[HabitLog]:
    """Logs of one habit, newest day first unless descending=False."""
    habit = habit_registry.get_habit(db, owner_id, habit_id)
    q = _filtered(db.query(HabitLog).filter(HabitLog.habit_id == habit.id), start, end, status)
    q = q.order_by(HabitLog.date.desc() if descending else HabitLog.date.asc())
    if offset:
        q = q.offset(offset)
    if limit:
        q = q.limit(limit)
    return q.all()


def find_by_owner(
    db: Session,
    owner_id: str,
    start: Optional[DayLike] = None,
    end: Optional[DayLike] = None,
    status: Optional[str] = None,
    habit_ids: Optional[list[int]] = None,
    limit: Optional[int] = None,
    offset: int = 0,
) -> list[HabitLog]:
    """Logs across the owner's active habits, newest day first."""
    q = (
        db.query(HabitLog)
        .join(Habit, Habit.id == HabitLog.habit_id)
        .filter(HabitLog.owner_id == owner_id, Habit.is_active == True)  # noqa: E712
    )
    q = _filtered(q, start, end, status)
    if habit_ids:
        q = q.filter(HabitLog.habit_id.in_(habit_ids))
    q = q.order_by(HabitLog.date.desc(), HabitLog.habit_id.asc())
    if offset:
        q = q.offset(offset)
    if limit:
        q = q.limit(limit)
    return q.all()


def get_log(db: Session, owner_id: str, log_id: int) -> HabitLog:
    log = (
        db.query(HabitLog)
        .join(Habit, Habit.id == HabitLog.habit_id)
        .filter(
            HabitLog.id == log_id,
            HabitLog.owner_id == owner_id,
            Habit.is_active == True,  # noqa: E712
        )
        .first()
    )
    if log is None:
        raise LogNotFoundError(log_id)
    return log


# ---------------------------------------------------------------------------
# Public — write + recompute
# ---------------------------------------------------------------------------

def _refresh_streak(
    db: Session,
    habit: Habit,
    as_of: date,
    log_id: Optional[int] = None,
) -> StreakResult:
    try:
        return streak_calculator.recompute(db, habit, as_of)
    except SQLAlchemyError as exc:
        db.rollback()
        logger.error(
            "derived fields stale for habit %s after write to log %s: %s",
            habit.id, log_id, exc,
        )
        raise RecomputeFailedError(habit.id, log_id) from exc


def log_completion(
    db: Session,
    owner_id: str,
    habit_id: int,
    day: Optional[DayLike],
    fields: dict[str, Any],
    as_of: Optional[date] = None,
) -> LogWriteResult:
    """Upsert the day's log, then recompute the habit's streak as of `as_of`."""
    as_of = as_of or local_today()
    log = upsert_log(db, owner_id, habit_id, day if day is not None else as_of, fields)
    log_id, habit = log.id, log.habit
    streak = _refresh_streak(db, habit, as_of, log_id)
    db.refresh(log)
    return LogWriteResult(habit=habit, streak=streak, log=log)


def update_log(
    db: Session,
    owner_id: str,
    log_id: int,
    changes: dict[str, Any],
    as_of: Optional[date] = None,
) -> LogWriteResult:
    as_of = as_of or local_today()
    log = get_log(db, owner_id, log_id)
    habit = log.habit
    clean = _validate_fields(changes, partial=True)
    for key, value in clean.items():
        setattr(log, key, value)
    db.commit()

    streak = _refresh_streak(db, habit, as_of, log_id)
    db.refresh(log)
    return LogWriteResult(habit=habit, streak=streak, log=log)


def delete_log(
    db: Session,
    owner_id: str,
    log_id: int,
    as_of: Optional[date] = None,
) -> LogWriteResult:
    """Hard-delete a single day's log and recompute."""
    as_of = as_of or local_today()
    log = get_log(db, owner_id, log_id)
    habit = log.habit
    db.delete(log)
    db.commit()
    logger.info("log %s for habit %s deleted", log_id, habit.id)

    streak = _refresh_streak(db, habit, as_of, log_id)
    return LogWriteResult(habit=habit, streak=streak)


def import_logs(
    db: Session,
    owner_id: str,
    habit_id: int,
    items: list[ImportItem],
    as_of: Optional[date] = None,
) -> ImportResult:
    """
    Upsert many days using one savepoint per item; a failing item does not
    cancel the others. Streaks are recomputed once, after the last item.
    """
    as_of = as_of or local_today()
    habit = habit_registry.get_habit(db, owner_id, habit_id)
    results: list[dict] = []

    for i, item in enumerate(items):
        try:
            target_day = parse_day(item.day)
            values = _row_values(habit, target_day, _validate_fields(item.fields))
        except InvalidInputError as exc:
            results.append({"index": i, "ok": False, "day": None, "error": exc.message})
            continue

        savepoint = db.begin_nested()
        try:
            _write_row(db, values)
            savepoint.commit()
            results.append({"index": i, "ok": True, "day": target_day, "error": None})
        except SQLAlchemyError as exc:
            savepoint.rollback()
            results.append({"index": i, "ok": False, "day": target_day, "error": str(exc)})

    db.commit()
    written = sum(1 for r in results if r["ok"])
    logger.info("imported %s/%s logs for habit %s", written, len(items), habit.id)

    streak = _refresh_streak(db, habit, as_of) if written else None
    for r in results:
        if r["ok"]:
            r["log"] = _fetch_day(db, habit.id, r["day"])
    return ImportResult(habit=habit, streak=streak, items=results)
