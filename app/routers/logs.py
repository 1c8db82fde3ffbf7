"""
Logs router.

POST   /habits/{id}/logs              — record (or overwrite) one day, then recompute
POST   /habits/{id}/logs/batch        — bulk import, one recompute at the end
GET    /habits/{id}/logs              — history of one habit
GET    /habits/{id}/logs/day/{day}    — the log stored for one day
GET    /logs                          — history across the owner's active habits
GET    /logs/{log_id}                 — one log
PATCH  /logs/{log_id}                 — partial edit, then recompute
DELETE /logs/{log_id}                 — remove one day, then recompute
"""
from __future__ import annotations

from datetime import date
from typing import Literal, Optional

from fastapi import APIRouter, Depends, Query, status
from sqlalchemy.orm import Session

from app.core.config import settings
from app.core.deps import get_owner_id, get_today
from app.core.errors import BatchTooLargeError, EmptyBatchError, LogNotFoundError
from app.db.base import get_db
from app.schemas.common import COMMON_ERROR_RESPONSES
from app.schemas.habit import HabitOut, StreakOut
from app.schemas.log import (
    LogBatchItemResult,
    LogBatchRequest,
    LogBatchResponse,
    LogCreate,
    LogOut,
    LogUpdate,
    LogWriteOut,
)
from app.services import log_store
from app.services.log_store import ImportItem

router = APIRouter(tags=["logs"], responses=COMMON_ERROR_RESPONSES)


# ---------------------------------------------------------------------------
# Habit-scoped
# ---------------------------------------------------------------------------

@router.post(
    "/habits/{habit_id}/logs",
    response_model=LogWriteOut,
    status_code=status.HTTP_201_CREATED,
    summary="Log a day for a habit",
    responses={
        404: {"description": "Habit absent, archived, or owned by someone else."},
        422: {"description": "Malformed date, unknown status, or rating out of range."},
        500: {"description": "DERIVED_FIELDS_STALE: the log was saved but streaks were not refreshed."},
    },
)
def log_day(
    habit_id: int,
    payload: LogCreate,
    owner_id: str = Depends(get_owner_id),
    today: date = Depends(get_today),
    db: Session = Depends(get_db),
):
    """
    Upsert the (habit, day) log: a second write for the same day replaces the
    first. The habit's streak_count, best_streak and total_completions are then
    recomputed as of today.
    """
    result = log_store.log_completion(
        db, owner_id, habit_id, payload.date, payload.as_fields(), as_of=today
    )
    return LogWriteOut.model_validate(result)


@router.post(
    "/habits/{habit_id}/logs/batch",
    response_model=LogBatchResponse,
    status_code=status.HTTP_207_MULTI_STATUS,
    summary="Import many days for a habit",
    responses={
        207: {"description": "Multi-status: check each item's `ok` field."},
        422: {"description": "Batch-level validation error (empty list, too many items)."},
    },
)
def import_logs(
    habit_id: int,
    payload: LogBatchRequest,
    owner_id: str = Depends(get_owner_id),
    today: date = Depends(get_today),
    db: Session = Depends(get_db),
):
    """
    Each item is written inside its own savepoint, so a failure on one does
    not roll back the others. Response status is **207 Multi-Status**.
    """
    if not payload.items:
        raise EmptyBatchError()
    if len(payload.items) > settings.LOG_BATCH_MAX_ITEMS:
        raise BatchTooLargeError(max_items=settings.LOG_BATCH_MAX_ITEMS, received=len(payload.items))

    items = [ImportItem(day=item.date, fields=item.as_fields()) for item in payload.items]
    result = log_store.import_logs(db, owner_id, habit_id, items, as_of=today)

    item_results = [
        LogBatchItemResult(
            index=r["index"],
            ok=r["ok"],
            date=r["day"],
            log=LogOut.model_validate(r["log"]) if r.get("log") is not None else None,
            error=r["error"],
        )
        for r in result.items
    ]
    succeeded = sum(1 for r in item_results if r.ok)
    return LogBatchResponse(
        total=len(item_results),
        succeeded=succeeded,
        failed=len(item_results) - succeeded,
        habit=HabitOut.model_validate(result.habit),
        streak=StreakOut.model_validate(result.streak) if result.streak else None,
        items=item_results,
    )


@router.get("/habits/{habit_id}/logs", response_model=list[LogOut], summary="History of one habit")
def habit_logs(
    habit_id: int,
    start_date: Optional[str] = Query(default=None, examples=["2026-10-01"]),
    end_date: Optional[str] = Query(default=None, examples=["2026-10-31"]),
    status_filter: Optional[str] = Query(default=None, alias="status"),
    limit: Optional[int] = Query(default=None, ge=1, le=1000),
    offset: int = Query(default=0, ge=0),
    order: Literal["asc", "desc"] = Query(default="desc"),
    owner_id: str = Depends(get_owner_id),
    db: Session = Depends(get_db),
):
    return log_store.find_by_habit(
        db,
        owner_id,
        habit_id,
        start=start_date,
        end=end_date,
        status=status_filter,
        limit=limit,
        offset=offset,
        descending=order == "desc",
    )


@router.get(
    "/habits/{habit_id}/logs/day/{day}",
    response_model=LogOut,
    summary="The log stored for one day",
    responses={404: {"description": "No log for that day, or habit not found."}},
)
def habit_log_for_day(
    habit_id: int,
    day: str,
    owner_id: str = Depends(get_owner_id),
    db: Session = Depends(get_db),
):
    log = log_store.find_for_day(db, owner_id, habit_id, day)
    if log is None:
        raise LogNotFoundError(details={"habit_id": habit_id, "date": day})
    return log


# ---------------------------------------------------------------------------
# Owner-scoped
# ---------------------------------------------------------------------------

@router.get("/logs", response_model=list[LogOut], summary="History across all active habits")
def owner_logs(
    start_date: Optional[str] = Query(default=None),
    end_date: Optional[str] = Query(default=None),
    status_filter: Optional[str] = Query(default=None, alias="status"),
    habit_id: Optional[list[int]] = Query(default=None, description="Repeat to filter several habits."),
    limit: Optional[int] = Query(default=None, ge=1, le=1000),
    offset: int = Query(default=0, ge=0),
    owner_id: str = Depends(get_owner_id),
    db: Session = Depends(get_db),
):
    return log_store.find_by_owner(
        db,
        owner_id,
        start=start_date,
        end=end_date,
        status=status_filter,
        habit_ids=habit_id,
        limit=limit,
        offset=offset,
    )


@router.get("/logs/{log_id}", response_model=LogOut, summary="Get one log")
def get_log(
    log_id: int,
    owner_id: str = Depends(get_owner_id),
    db: Session = Depends(get_db),
):
    return log_store.get_log(db, owner_id, log_id)


@router.patch("/logs/{log_id}", response_model=LogWriteOut, summary="Edit a stored day")
def update_log(
    log_id: int,
    payload: LogUpdate,
    owner_id: str = Depends(get_owner_id),
    today: date = Depends(get_today),
    db: Session = Depends(get_db),
):
    result = log_store.update_log(db, owner_id, log_id, payload.changes(), as_of=today)
    return LogWriteOut.model_validate(result)


@router.delete("/logs/{log_id}", response_model=LogWriteOut, summary="Remove a stored day")
def delete_log(
    log_id: int,
    owner_id: str = Depends(get_owner_id),
    today: date = Depends(get_today),
    db: Session = Depends(get_db),
):
    """Hard delete; the habit's streak fields are recomputed without that day."""
    result = log_store.delete_log(db, owner_id, log_id, as_of=today)
    return LogWriteOut.model_validate(result)
