"""
Progress router.

GET /progress/today    — which active habits have a log for the day
GET /progress/weekly   — dense per-day summary (defaults to the current Sun–Sat week)
GET /progress/stats    — rolling totals over the last N days
"""
from datetime import date, timedelta
from typing import Optional

from fastapi import APIRouter, Depends, Query
from sqlalchemy.orm import Session

from app.core.dates import parse_day, week_bounds
from app.core.deps import get_owner_id, get_today
from app.db.base import get_db
from app.schemas.common import COMMON_ERROR_RESPONSES
from app.schemas.progress import OwnerStatsOut, TodayOut, WeeklySummaryOut
from app.services import aggregation

router = APIRouter(prefix="/progress", tags=["progress"], responses=COMMON_ERROR_RESPONSES)


@router.get("/today", response_model=TodayOut, summary="Today's logged / unlogged habits")
def today_view(
    day: Optional[str] = Query(
        default=None,
        description="ISO day (YYYY-MM-DD). Defaults to today in `tz`.",
        examples=["2026-10-19"],
    ),
    today: date = Depends(get_today),
    owner_id: str = Depends(get_owner_id),
    db: Session = Depends(get_db),
):
    target = parse_day(day, field="day") if day else today
    return TodayOut.model_validate(aggregation.today_view(db, owner_id, target))


@router.get("/weekly", response_model=WeeklySummaryOut, summary="Per-day summary for a range")
def weekly(
    start_date: Optional[str] = Query(default=None, examples=["2026-10-18"]),
    end_date: Optional[str] = Query(default=None, examples=["2026-10-24"]),
    today: date = Depends(get_today),
    owner_id: str = Depends(get_owner_id),
    db: Session = Depends(get_db),
):
    """
    With no range, summarises the Sunday-to-Saturday week containing today.
    With only one bound, the other is taken 6 days away.
    """
    start = parse_day(start_date, field="start_date") if start_date else None
    end = parse_day(end_date, field="end_date") if end_date else None
    if start is None and end is None:
        start, end = week_bounds(today)
    elif start is None:
        start = end - timedelta(days=6)
    elif end is None:
        end = start + timedelta(days=6)

    days = aggregation.weekly_summary(db, owner_id, start, end)
    return WeeklySummaryOut.model_validate(
        {"start_date": start, "end_date": end, "days": days}, from_attributes=True
    )


@router.get("/stats", response_model=OwnerStatsOut, summary="Rolling owner statistics")
def stats(
    days: int = Query(default=30, ge=1, description="Window length ending today."),
    today: date = Depends(get_today),
    owner_id: str = Depends(get_owner_id),
    db: Session = Depends(get_db),
):
    return OwnerStatsOut.model_validate(aggregation.owner_stats(db, owner_id, days, today))
