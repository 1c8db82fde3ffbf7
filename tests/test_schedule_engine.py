"""
Tests for the schedule engine and its calendar helpers.

Covers:
- next_due_date per frequency type (daily / weekly / monthly / custom)
- Monthly clamping to the end of shorter months (incl. leap years)
- Never-completed habits are due immediately
- is_due_today stays true while a habit is overdue
- last_completed_date ignores skipped / failed logs
- get_schedule end to end
"""
from __future__ import annotations

from datetime import date
from types import SimpleNamespace

import pytest

from app.core.dates import add_months, week_bounds
from app.models.habit import FrequencyType
from app.services import log_store, schedule_engine
from app.services.schedule_engine import is_due_today, next_due_date

TODAY = date(2026, 5, 15)


def _habit(ftype: str, value: int = 1):
    return SimpleNamespace(frequency_type=FrequencyType(ftype), frequency_value=value)


class TestNextDueDate:
    def test_daily(self):
        assert next_due_date(_habit("daily"), date(2026, 5, 14), TODAY) == date(2026, 5, 15)

    def test_every_three_days(self):
        assert next_due_date(_habit("daily", 3), date(2026, 5, 14), TODAY) == date(2026, 5, 17)

    def test_weekly(self):
        assert next_due_date(_habit("weekly"), date(2026, 5, 10), TODAY) == date(2026, 5, 17)

    def test_biweekly(self):
        assert next_due_date(_habit("weekly", 2), date(2026, 5, 10), TODAY) == date(2026, 5, 24)

    def test_monthly(self):
        assert next_due_date(_habit("monthly"), date(2026, 4, 20), TODAY) == date(2026, 5, 20)

    def test_monthly_clamps_to_end_of_february(self):
        assert next_due_date(_habit("monthly"), date(2026, 1, 31), TODAY) == date(2026, 2, 28)

    def test_monthly_clamps_in_leap_year(self):
        assert next_due_date(_habit("monthly"), date(2028, 1, 31), TODAY) == date(2028, 2, 29)

    def test_custom_interval_in_days(self):
        assert next_due_date(_habit("custom", 10), date(2026, 5, 1), TODAY) == date(2026, 5, 11)

    def test_never_completed_is_due_today(self):
        assert next_due_date(_habit("weekly"), None, TODAY) == TODAY


class TestIsDueToday:
    def test_due_exactly_today(self):
        assert is_due_today(_habit("daily"), TODAY, date(2026, 5, 14))

    def test_not_due_yet(self):
        assert not is_due_today(_habit("weekly"), TODAY, date(2026, 5, 12))

    def test_overdue_stays_due(self):
        assert is_due_today(_habit("daily"), TODAY, date(2026, 5, 1))

    def test_completed_today_not_due_again(self):
        assert not is_due_today(_habit("daily"), TODAY, TODAY)

    def test_never_completed(self):
        assert is_due_today(_habit("monthly"), TODAY, None)


class TestCalendarHelpers:
    @pytest.mark.parametrize(
        "start, months, expected",
        [
            (date(2026, 1, 31), 1, date(2026, 2, 28)),
            (date(2026, 3, 31), 1, date(2026, 4, 30)),
            (date(2026, 11, 15), 2, date(2027, 1, 15)),
            (date(2026, 8, 31), 6, date(2027, 2, 28)),
            (date(2026, 5, 15), 0, date(2026, 5, 15)),
        ],
    )
    def test_add_months(self, start, months, expected):
        assert add_months(start, months) == expected

    def test_week_bounds_sunday_to_saturday(self):
        # 2026-05-15 is a Friday
        start, end = week_bounds(TODAY)
        assert start == date(2026, 5, 10)
        assert start.weekday() == 6
        assert end == date(2026, 5, 16)

    def test_week_bounds_on_sunday(self):
        start, end = week_bounds(date(2026, 5, 10))
        assert start == date(2026, 5, 10)
        assert end == date(2026, 5, 16)


class TestStoreBacked:
    def test_last_completed_ignores_non_qualifying(self, db, owner, make_habit):
        habit = make_habit()
        log_store.upsert_log(db, owner, habit.id, "2026-05-10", {"status": "completed"})
        log_store.upsert_log(db, owner, habit.id, "2026-05-12", {"status": "partial"})
        log_store.upsert_log(db, owner, habit.id, "2026-05-14", {"status": "skipped"})

        assert schedule_engine.last_completed_date(db, habit.id) == date(2026, 5, 12)

    def test_last_completed_dates_grouped(self, db, owner, make_habit):
        a, b, c = make_habit("A"), make_habit("B"), make_habit("C")
        log_store.upsert_log(db, owner, a.id, "2026-05-01", {"status": "completed"})
        log_store.upsert_log(db, owner, a.id, "2026-05-03", {"status": "completed"})
        log_store.upsert_log(db, owner, b.id, "2026-05-02", {"status": "failed"})

        result = schedule_engine.last_completed_dates(db, [a.id, b.id, c.id])

        assert result == {a.id: date(2026, 5, 3)}

    def test_get_schedule_weekly_overdue(self, db, owner, make_habit):
        habit = make_habit(frequency_type="weekly")
        log_store.upsert_log(db, owner, habit.id, "2026-05-01", {"status": "completed"})

        sched = schedule_engine.get_schedule(db, habit, TODAY)

        assert sched.last_completed == date(2026, 5, 1)
        assert sched.next_due == date(2026, 5, 8)
        assert sched.is_due_today is True
        assert sched.days_overdue == 7

    def test_get_schedule_never_logged(self, db, owner, make_habit):
        habit = make_habit(frequency_type="monthly")
        sched = schedule_engine.get_schedule(db, habit, TODAY)
        assert sched.last_completed is None
        assert sched.next_due == TODAY
        assert sched.is_due_today is True
        assert sched.days_overdue == 0
