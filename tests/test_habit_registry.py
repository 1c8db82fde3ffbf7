"""
Tests for the habit registry.

Covers:
- create: defaults, validation, derived fields rejected
- get / list: ownership, archive visibility, ordering, paging
- update: editable fields only
- archive / restore / delete (soft and permanent, with log cascade)
- habit_stats and habit_overview
"""
from __future__ import annotations

from datetime import date, timedelta

import pytest

from app.core.errors import HabitNotFoundError, InvalidInputError
from app.models.habit import FrequencyType
from app.models.habit_log import HabitLog
from app.services import habit_registry, log_store

TODAY = date(2026, 7, 15)


class TestCreate:
    def test_defaults(self, db, owner):
        habit = habit_registry.create_habit(db, owner, {"name": "  Meditate  "})

        assert habit.id is not None
        assert habit.name == "Meditate"
        assert habit.owner_id == owner
        assert habit.frequency_type == FrequencyType.daily
        assert habit.frequency_value == 1
        assert habit.target_count == 1
        assert habit.color == "#3B82F6"
        assert habit.is_active is True
        assert habit.archived_at is None
        assert (habit.streak_count, habit.best_streak, habit.total_completions) == (0, 0, 0)

    def test_all_fields(self, db, owner):
        habit = habit_registry.create_habit(db, owner, {
            "name": "Gym",
            "description": "Upper body",
            "color": "#10b981",
            "icon": "dumbbell",
            "frequency_type": "weekly",
            "frequency_value": 2,
            "target_count": 3,
            "difficulty_level": 4,
            "notes": "bring water",
        })
        assert habit.frequency_type == FrequencyType.weekly
        assert habit.frequency_value == 2
        assert habit.difficulty_level == 4

    @pytest.mark.parametrize(
        "data",
        [
            {},
            {"name": "   "},
            {"name": "x" * 201},
            {"name": "ok", "frequency_type": "hourly"},
            {"name": "ok", "frequency_value": 0},
            {"name": "ok", "target_count": -2},
            {"name": "ok", "frequency_value": 2**31},
            {"name": "ok", "difficulty_level": 6},
            {"name": "ok", "color": "blue"},
            {"name": "ok", "description": "d" * 1001},
        ],
    )
    def test_invalid_rejected(self, db, owner, data):
        with pytest.raises(InvalidInputError):
            habit_registry.create_habit(db, owner, data)

    @pytest.mark.parametrize("field", ["streak_count", "best_streak", "total_completions"])
    def test_derived_fields_cannot_be_set(self, db, owner, field):
        with pytest.raises(InvalidInputError) as exc_info:
            habit_registry.create_habit(db, owner, {"name": "ok", field: 10})
        assert exc_info.value.details["field"] == field


class TestLookups:
    def test_get_foreign_habit_not_found(self, db, owner, make_habit):
        habit = make_habit()
        with pytest.raises(HabitNotFoundError):
            habit_registry.get_habit(db, "other-owner", habit.id)

    def test_get_missing_habit(self, db, owner):
        with pytest.raises(HabitNotFoundError):
            habit_registry.get_habit(db, owner, 987_654)

    def test_list_hides_archived_by_default(self, db, owner, make_habit):
        keep, gone = make_habit("Keep"), make_habit("Gone")
        habit_registry.archive_habit(db, owner, gone.id)

        assert [h.id for h in habit_registry.list_habits(db, owner)] == [keep.id]
        all_ids = {h.id for h in habit_registry.list_habits(db, owner, include_archived=True)}
        assert all_ids == {keep.id, gone.id}

    def test_list_order_by_name(self, db, owner, make_habit):
        for name in ("Walk", "Alpha", "Journal"):
            make_habit(name)
        names = [h.name for h in habit_registry.list_habits(db, owner, order_by="name", descending=False)]
        assert names == ["Alpha", "Journal", "Walk"]

    def test_list_paging(self, db, owner, make_habit):
        for name in ("a", "b", "c", "d"):
            make_habit(name)
        page = habit_registry.list_habits(db, owner, order_by="name", descending=False, limit=2, offset=1)
        assert [h.name for h in page] == ["b", "c"]

    def test_list_bad_order_by(self, db, owner):
        with pytest.raises(InvalidInputError):
            habit_registry.list_habits(db, owner, order_by="streak_count")


class TestUpdate:
    def test_partial_update(self, db, owner, make_habit):
        habit = make_habit("Old name", description="keep me")
        updated = habit_registry.update_habit(db, owner, habit.id, {"name": "New name", "frequency_type": "monthly"})
        assert updated.name == "New name"
        assert updated.frequency_type == FrequencyType.monthly
        assert updated.description == "keep me"

    def test_clear_optional_field(self, db, owner, make_habit):
        habit = make_habit(difficulty_level=3)
        updated = habit_registry.update_habit(db, owner, habit.id, {"difficulty_level": None})
        assert updated.difficulty_level is None

    def test_required_field_cannot_be_nulled(self, db, owner, make_habit):
        habit = make_habit()
        with pytest.raises(InvalidInputError):
            habit_registry.update_habit(db, owner, habit.id, {"name": None})

    @pytest.mark.parametrize("field", ["streak_count", "best_streak", "total_completions", "is_active"])
    def test_protected_fields_rejected(self, db, owner, make_habit, field):
        habit = make_habit()
        with pytest.raises(InvalidInputError):
            habit_registry.update_habit(db, owner, habit.id, {field: 1})

    def test_update_archived_not_found(self, db, owner, make_habit):
        habit = make_habit()
        habit_registry.archive_habit(db, owner, habit.id)
        with pytest.raises(HabitNotFoundError):
            habit_registry.update_habit(db, owner, habit.id, {"name": "x"})


class TestLifecycle:
    def test_archive_keeps_logs(self, db, owner, make_habit):
        habit = make_habit()
        log_store.upsert_log(db, owner, habit.id, TODAY, {"status": "completed"})

        archived = habit_registry.archive_habit(db, owner, habit.id)

        assert archived.is_active is False
        assert archived.archived_at is not None
        assert db.query(HabitLog).filter(HabitLog.habit_id == habit.id).count() == 1
        with pytest.raises(HabitNotFoundError):
            habit_registry.get_habit(db, owner, habit.id)

    def test_restore(self, db, owner, make_habit):
        habit = make_habit()
        habit_registry.archive_habit(db, owner, habit.id)
        restored = habit_registry.restore_habit(db, owner, habit.id)
        assert restored.is_active is True
        assert restored.archived_at is None
        assert habit_registry.get_habit(db, owner, habit.id).id == habit.id

    def test_restore_active_is_noop(self, db, owner, make_habit):
        habit = make_habit()
        assert habit_registry.restore_habit(db, owner, habit.id).is_active is True

    def test_delete_defaults_to_archive(self, db, owner, make_habit):
        habit = make_habit()
        result = habit_registry.delete_habit(db, owner, habit.id)
        assert result is not None
        assert result.is_active is False

    def test_permanent_delete_cascades_logs(self, db, owner, make_habit):
        habit = make_habit()
        habit_id = habit.id
        for offset in range(3):
            log_store.upsert_log(db, owner, habit_id, TODAY - timedelta(days=offset), {"status": "completed"})

        assert habit_registry.delete_habit(db, owner, habit_id, permanent=True) is None
        assert db.query(HabitLog).filter(HabitLog.habit_id == habit_id).count() == 0
        with pytest.raises(HabitNotFoundError):
            habit_registry.get_habit(db, owner, habit_id, include_archived=True)

    def test_permanent_delete_of_archived_habit(self, db, owner, make_habit):
        habit = make_habit()
        habit_registry.archive_habit(db, owner, habit.id)
        assert habit_registry.delete_habit(db, owner, habit.id, permanent=True) is None


class TestSummaries:
    def test_habit_stats(self, db, owner, make_habit):
        habit = make_habit()
        seed = [
            (3, {"status": "completed", "quality_rating": 8, "mood_before": 4, "mood_after": 7}),
            (2, {"status": "partial", "quality_rating": 6}),
            (1, {"status": "skipped"}),
            (0, {"status": "failed"}),
        ]
        for offset, fields in seed:
            log_store.upsert_log(db, owner, habit.id, TODAY - timedelta(days=offset), fields)

        stats = habit_registry.habit_stats(db, owner, habit.id)

        assert stats.total_logs == 4
        assert (stats.completed_count, stats.partial_count, stats.skipped_count, stats.failed_count) == (1, 1, 1, 1)
        assert stats.avg_quality == 7.0
        assert stats.avg_mood_before == 4.0
        assert stats.avg_mood_after == 7.0
        assert stats.first_log_date == TODAY - timedelta(days=3)
        assert stats.last_log_date == TODAY
        assert stats.completion_rate == 0.5

    def test_habit_stats_empty(self, db, owner, make_habit):
        stats = habit_registry.habit_stats(db, owner, make_habit().id)
        assert stats.total_logs == 0
        assert stats.avg_quality is None
        assert stats.first_log_date is None
        assert stats.completion_rate == 0.0

    def test_habit_stats_window(self, db, owner, make_habit):
        habit = make_habit()
        log_store.upsert_log(db, owner, habit.id, TODAY - timedelta(days=10), {"status": "completed"})
        log_store.upsert_log(db, owner, habit.id, TODAY, {"status": "completed"})

        stats = habit_registry.habit_stats(db, owner, habit.id, start=TODAY - timedelta(days=5), end=TODAY)
        assert stats.total_logs == 1

        with pytest.raises(InvalidInputError):
            habit_registry.habit_stats(db, owner, habit.id, start=TODAY, end=TODAY - timedelta(days=1))

    def test_overview(self, db, owner, make_habit):
        daily = make_habit("Daily")
        weekly = make_habit("Weekly", frequency_type="weekly")
        fresh = make_habit("Fresh")
        log_store.log_completion(db, owner, daily.id, TODAY, {"status": "completed"}, as_of=TODAY)
        log_store.log_completion(db, owner, weekly.id, TODAY - timedelta(days=3), {"status": "completed"}, as_of=TODAY)

        overview = habit_registry.habit_overview(db, owner, TODAY)

        assert overview.total_active_habits == 3
        assert overview.total_completions == 2
        assert overview.best_streak == 1
        assert [h.id for h in overview.habits_due_today] == [fresh.id]

    def test_streaks_read_as_of_today_not_from_cache(self, db, owner, make_habit):
        habit = make_habit()
        for i in range(5):
            log_store.log_completion(
                db, owner, habit.id, TODAY - timedelta(days=i), {"status": "completed"}, as_of=TODAY
            )
        db.refresh(habit)
        assert habit.streak_count == 5

        later = TODAY + timedelta(days=3)
        stats = habit_registry.habit_stats(db, owner, habit.id, today=later)
        assert stats.current_streak == 0
        assert stats.best_streak == 5
        assert habit_registry.habit_overview(db, owner, later).total_current_streaks == 0

        assert habit_registry.habit_stats(db, owner, habit.id, today=TODAY).current_streak == 5
        assert habit_registry.habit_overview(db, owner, TODAY).total_current_streaks == 5
