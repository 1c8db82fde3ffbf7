"""
Habits router.

POST   /habits                    — create
GET    /habits                    — list (active by default)
GET    /habits/overview           — dashboard totals + habits due today
GET    /habits/{id}               — one habit, ?include_logs=true adds its 7 most recent logs
PUT    /habits/{id}               — edit metadata
POST   /habits/{id}/archive       — soft delete
POST   /habits/{id}/restore       — undo archive
DELETE /habits/{id}               — archive, or ?permanent=true to drop habit + logs
GET    /habits/{id}/stats         — per-habit log statistics
GET    /habits/{id}/schedule      — next due date
POST   /habits/{id}/recompute     — rebuild streak fields from the log history
"""
from __future__ import annotations

from datetime import date
from typing import Literal, Optional

from fastapi import APIRouter, Depends, Query, Response, status
from sqlalchemy.orm import Session

from app.core.dates import parse_day
from app.core.deps import get_owner_id, get_today
from app.db.base import get_db
from app.schemas.common import COMMON_ERROR_RESPONSES
from app.schemas.habit import (
    HabitCreate,
    HabitOut,
    HabitOverviewOut,
    HabitStatsOut,
    HabitUpdate,
    ScheduleOut,
    StreakOut,
)
from app.schemas.log import HabitDetailOut, LogOut
from app.services import habit_registry, log_store, schedule_engine, streak_calculator

router = APIRouter(prefix="/habits", tags=["habits"], responses=COMMON_ERROR_RESPONSES)


@router.post(
    "",
    response_model=HabitOut,
    status_code=status.HTTP_201_CREATED,
    summary="Create a habit",
    responses={422: {"description": "Invalid field value or attempt to set a derived field."}},
)
def create_habit(
    payload: HabitCreate,
    owner_id: str = Depends(get_owner_id),
    db: Session = Depends(get_db),
):
    return habit_registry.create_habit(db, owner_id, payload.model_dump())


@router.get("", response_model=list[HabitOut], summary="List habits")
def list_habits(
    include_archived: bool = Query(default=False),
    limit: Optional[int] = Query(default=None, ge=1, le=500),
    offset: int = Query(default=0, ge=0),
    order_by: Literal["created_at", "name"] = Query(default="created_at"),
    direction: Literal["asc", "desc"] = Query(default="desc"),
    owner_id: str = Depends(get_owner_id),
    db: Session = Depends(get_db),
):
    return habit_registry.list_habits(
        db,
        owner_id,
        include_archived=include_archived,
        limit=limit,
        offset=offset,
        order_by=order_by,
        descending=direction == "desc",
    )


@router.get("/overview", response_model=HabitOverviewOut, summary="Dashboard overview")
def overview(
    today: date = Depends(get_today),
    owner_id: str = Depends(get_owner_id),
    db: Session = Depends(get_db),
):
    """Active-habit totals plus the habits due today according to their frequency."""
    return HabitOverviewOut.model_validate(
        habit_registry.habit_overview(db, owner_id, today)
    )


@router.get(
    "/{habit_id}",
    response_model=HabitDetailOut,
    summary="Get one habit",
    responses={404: {"description": "Absent, archived, or owned by someone else."}},
)
def get_habit(
    habit_id: int,
    include_logs: bool = Query(default=False, description="Attach the most recent logs."),
    owner_id: str = Depends(get_owner_id),
    db: Session = Depends(get_db),
):
    habit = habit_registry.get_habit(db, owner_id, habit_id)
    out = HabitDetailOut.model_validate(habit)
    if include_logs:
        logs = log_store.find_by_habit(db, owner_id, habit.id, limit=log_store.RECENT_LOGS_LIMIT)
        out.recent_logs = [LogOut.model_validate(log) for log in logs]
    return out


@router.put("/{habit_id}", response_model=HabitOut, summary="Edit habit metadata")
def update_habit(
    habit_id: int,
    payload: HabitUpdate,
    owner_id: str = Depends(get_owner_id),
    db: Session = Depends(get_db),
):
    """Only the keys present in the body change. streak_count, best_streak and
    total_completions are derived and rejected with INVALID_INPUT."""
    return habit_registry.update_habit(db, owner_id, habit_id, payload.changes())


@router.post("/{habit_id}/archive", response_model=HabitOut, summary="Archive a habit")
def archive_habit(
    habit_id: int,
    owner_id: str = Depends(get_owner_id),
    db: Session = Depends(get_db),
):
    return habit_registry.archive_habit(db, owner_id, habit_id)


@router.post("/{habit_id}/restore", response_model=HabitOut, summary="Restore an archived habit")
def restore_habit(
    habit_id: int,
    owner_id: str = Depends(get_owner_id),
    db: Session = Depends(get_db),
):
    return habit_registry.restore_habit(db, owner_id, habit_id)


@router.delete(
    "/{habit_id}",
    response_model=Optional[HabitOut],
    summary="Archive a habit, or delete it permanently",
    responses={
        200: {"description": "Archived; the habit is returned."},
        204: {"description": "Permanently deleted together with its logs."},
    },
)
def delete_habit(
    habit_id: int,
    permanent: bool = Query(default=False),
    owner_id: str = Depends(get_owner_id),
    db: Session = Depends(get_db),
):
    habit = habit_registry.delete_habit(db, owner_id, habit_id, permanent=permanent)
    if habit is None:
        return Response(status_code=status.HTTP_204_NO_CONTENT)
    return habit


@router.get("/{habit_id}/stats", response_model=HabitStatsOut, summary="Per-habit statistics")
def habit_stats(
    habit_id: int,
    start_date: Optional[str] = Query(default=None, examples=["2026-10-01"]),
    end_date: Optional[str] = Query(default=None, examples=["2026-10-31"]),
    today: date = Depends(get_today),
    owner_id: str = Depends(get_owner_id),
    db: Session = Depends(get_db),
):
    start = parse_day(start_date, field="start_date") if start_date else None
    end = parse_day(end_date, field="end_date") if end_date else None
    return HabitStatsOut.model_validate(
        habit_registry.habit_stats(db, owner_id, habit_id, start, end, today=today)
    )


@router.get("/{habit_id}/schedule", response_model=ScheduleOut, summary="Next due date")
def habit_schedule(
    habit_id: int,
    today: date = Depends(get_today),
    owner_id: str = Depends(get_owner_id),
    db: Session = Depends(get_db),
):
    habit = habit_registry.get_habit(db, owner_id, habit_id)
    return ScheduleOut.model_validate(schedule_engine.get_schedule(db, habit, today))


@router.post(
    "/{habit_id}/recompute",
    response_model=StreakOut,
    summary="Rebuild streak fields from the log history",
)
def recompute(
    habit_id: int,
    as_of: Optional[str] = Query(default=None, description="Defaults to today."),
    today: date = Depends(get_today),
    owner_id: str = Depends(get_owner_id),
    db: Session = Depends(get_db),
):
    """Repair path after a DERIVED_FIELDS_STALE error. Idempotent."""
    habit = habit_registry.get_habit(db, owner_id, habit_id)
    day = parse_day(as_of, field="as_of") if as_of else today
    return StreakOut.model_validate(streak_calculator.recompute(db, habit, day))
