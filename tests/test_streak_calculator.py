"""
Tests for the streak calculator.

Covers:
- Backward walk: consecutive completed/partial days ending at as_of
- Unlogged as_of starts the walk from the day before (streak not yet broken)
- Skipped / failed as_of resets the streak to 0
- Gaps and non-qualifying days stop the walk
- best_streak never decreases
- recompute() persists streak / best / total through the registry
"""
from __future__ import annotations

from datetime import date, timedelta

from app.models.habit_log import LogStatus
from app.services import log_store, streak_calculator
from app.services.streak_calculator import best_streak, current_streak

C, P, S, F = LogStatus.completed, LogStatus.partial, LogStatus.skipped, LogStatus.failed
AS_OF = date(2026, 3, 10)


def _days(*statuses, end: date = AS_OF) -> dict[date, LogStatus]:
    """Map statuses onto consecutive days ending at `end` (last item = end)."""
    n = len(statuses)
    return {end - timedelta(days=n - 1 - i): s for i, s in enumerate(statuses) if s is not None}


# ---------------------------------------------------------------------------
# Pure: current_streak
# ---------------------------------------------------------------------------

class TestCurrentStreak:
    def test_no_logs(self):
        assert current_streak({}, AS_OF) == 0

    def test_three_completed_days_ending_today(self):
        assert current_streak(_days(C, C, C), AS_OF) == 3

    def test_partial_counts_as_qualifying(self):
        assert current_streak(_days(C, P, C), AS_OF) == 3

    def test_unlogged_today_does_not_break_streak(self):
        statuses = _days(C, C, end=AS_OF - timedelta(days=1))
        assert current_streak(statuses, AS_OF) == 2

    def test_skipped_today_resets(self):
        assert current_streak(_days(C, C, S), AS_OF) == 0

    def test_failed_today_resets(self):
        assert current_streak(_days(C, C, F), AS_OF) == 0

    def test_gap_stops_walk(self):
        # C C _ C C : only the last two are contiguous with today
        assert current_streak(_days(C, C, None, C, C), AS_OF) == 2

    def test_skip_in_the_middle_stops_walk(self):
        assert current_streak(_days(C, C, S, C), AS_OF) == 1

    def test_two_day_gap_before_today_is_zero(self):
        statuses = _days(C, C, end=AS_OF - timedelta(days=2))
        assert current_streak(statuses, AS_OF) == 0

    def test_future_logs_are_ignored(self):
        statuses = _days(C, end=AS_OF)
        statuses[AS_OF + timedelta(days=1)] = C
        assert current_streak(statuses, AS_OF) == 1

    def test_walk_crosses_month_boundary(self):
        end = date(2026, 3, 2)
        assert current_streak(_days(C, C, C, C, end=end), end) == 4


class TestBestStreak:
    def test_takes_new_current_when_higher(self):
        assert best_streak(3, 5) == 5

    def test_never_decreases(self):
        assert best_streak(7, 0) == 7

    def test_none_previous_treated_as_zero(self):
        assert best_streak(None, 2) == 2


# ---------------------------------------------------------------------------
# Store-backed: recompute
# ---------------------------------------------------------------------------

class TestRecompute:
    def _log(self, db, owner, habit, day, status):
        log_store.upsert_log(db, owner, habit.id, day, {"status": status})

    def test_recompute_persists_derived_fields(self, db, owner, make_habit):
        habit = make_habit()
        for offset in (2, 1, 0):
            self._log(db, owner, habit, AS_OF - timedelta(days=offset), "completed")

        result = streak_calculator.recompute(db, habit, AS_OF)

        assert result.current_streak == 3
        assert result.best_streak == 3
        assert result.total_completions == 3
        db.refresh(habit)
        assert habit.streak_count == 3
        assert habit.best_streak == 3
        assert habit.total_completions == 3

    def test_total_counts_only_qualifying(self, db, owner, make_habit):
        habit = make_habit()
        self._log(db, owner, habit, AS_OF - timedelta(days=3), "completed")
        self._log(db, owner, habit, AS_OF - timedelta(days=2), "skipped")
        self._log(db, owner, habit, AS_OF - timedelta(days=1), "partial")
        self._log(db, owner, habit, AS_OF, "failed")

        result = streak_calculator.recompute(db, habit, AS_OF)

        assert result.total_completions == 2
        assert result.current_streak == 0

    def test_best_streak_survives_a_reset(self, db, owner, make_habit):
        habit = make_habit()
        for offset in (4, 3, 2):
            self._log(db, owner, habit, AS_OF - timedelta(days=offset), "completed")
        streak_calculator.recompute(db, habit, AS_OF - timedelta(days=2))

        self._log(db, owner, habit, AS_OF - timedelta(days=1), "failed")
        result = streak_calculator.recompute(db, habit, AS_OF)

        assert result.current_streak == 0
        assert result.best_streak == 3

    def test_recompute_is_idempotent(self, db, owner, make_habit):
        habit = make_habit()
        self._log(db, owner, habit, AS_OF, "completed")
        first = streak_calculator.recompute(db, habit, AS_OF)
        second = streak_calculator.recompute(db, habit, AS_OF)
        assert first == second

    def test_other_habits_do_not_leak(self, db, owner, make_habit):
        habit = make_habit("A")
        other = make_habit("B")
        self._log(db, owner, other, AS_OF, "completed")
        result = streak_calculator.recompute(db, habit, AS_OF)
        assert result.current_streak == 0
        assert result.total_completions == 0
