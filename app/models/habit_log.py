"""
HabitLog — one row per (habit, calendar day).

The unique constraint on (habit_id, date) is what makes a second write for
the same day an overwrite (upsert) instead of a duplicate row.
target_count is a snapshot of the habit's target at write time.
"""
import datetime as dt
from typing import TYPE_CHECKING, Optional

import enum
from sqlalchemy import (
    Integer, String, Text, DateTime, Date, Enum, ForeignKey, UniqueConstraint, func,
)
from sqlalchemy.orm import Mapped, mapped_column, relationship

from app.db.base import Base

if TYPE_CHECKING:
    from app.models.habit import Habit


class LogStatus(str, enum.Enum):
    completed = "completed"
    partial = "partial"
    skipped = "skipped"
    failed = "failed"


# Statuses that extend a streak and count as a completion.
QUALIFYING_STATUSES = (LogStatus.completed, LogStatus.partial)

RATING_MIN = 1
RATING_MAX = 10
NOTES_MAX_LENGTH = 500

# Largest value a 32-bit INTEGER column holds on every supported backend.
COUNT_MAX = 2**31 - 1


class HabitLog(Base):
    __tablename__ = "habit_logs"
    __table_args__ = (
        UniqueConstraint("habit_id", "date", name="uq_habit_log_habit_date"),
    )

    id: Mapped[int] = mapped_column(Integer, primary_key=True, index=True)
    habit_id: Mapped[int] = mapped_column(
        Integer, ForeignKey("habits.id", ondelete="CASCADE"), nullable=False, index=True
    )
    owner_id: Mapped[str] = mapped_column(String(64), nullable=False, index=True)
    date: Mapped[dt.date] = mapped_column(Date, nullable=False, index=True)
    status: Mapped[LogStatus] = mapped_column(
        Enum(LogStatus, name="log_status_enum"), nullable=False, index=True
    )
    completion_count: Mapped[int] = mapped_column(Integer, nullable=False, default=1)
    target_count: Mapped[int] = mapped_column(Integer, nullable=False, default=1)
    quality_rating: Mapped[Optional[int]] = mapped_column(Integer, nullable=True)
    mood_before: Mapped[Optional[int]] = mapped_column(Integer, nullable=True)
    mood_after: Mapped[Optional[int]] = mapped_column(Integer, nullable=True)
    notes: Mapped[Optional[str]] = mapped_column(Text, nullable=True)
    completed_at: Mapped[Optional[dt.datetime]] = mapped_column(DateTime(timezone=True), nullable=True)
    created_at: Mapped[dt.datetime] = mapped_column(
        DateTime(timezone=True), server_default=func.now(), nullable=False
    )
    updated_at: Mapped[dt.datetime] = mapped_column(
        DateTime(timezone=True),
        server_default=func.now(),
        onupdate=func.now(),
        nullable=False,
    )

    habit: Mapped["Habit"] = relationship(back_populates="logs")
