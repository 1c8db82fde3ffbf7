"""habits and habit_logs

Revision ID: 0001
Revises:
Create Date: 2026-10-19

One row per habit, one row per (habit, calendar day) log.
Unique constraint (habit_id, date) is what turns a second write for the same
day into an overwrite. Logs cascade with a permanent habit delete.
"""
from alembic import op
import sqlalchemy as sa

revision = "0001"
down_revision = None
branch_labels = None
depends_on = None

frequency_type_enum = sa.Enum("daily", "weekly", "monthly", "custom", name="frequency_type_enum")
log_status_enum = sa.Enum("completed", "partial", "skipped", "failed", name="log_status_enum")


def upgrade() -> None:
    op.create_table(
        "habits",
        sa.Column("id", sa.Integer(), primary_key=True, autoincrement=True),
        sa.Column("owner_id", sa.String(64), nullable=False),
        sa.Column("name", sa.String(200), nullable=False),
        sa.Column("description", sa.Text(), nullable=True),
        sa.Column("color", sa.String(7), nullable=False, server_default="#3B82F6"),
        sa.Column("icon", sa.String(50), nullable=True),
        sa.Column("frequency_type", frequency_type_enum, nullable=False, server_default="daily"),
        sa.Column("frequency_value", sa.Integer(), nullable=False, server_default="1"),
        sa.Column("target_count", sa.Integer(), nullable=False, server_default="1"),
        sa.Column("difficulty_level", sa.Integer(), nullable=True),
        sa.Column("notes", sa.Text(), nullable=True),
        sa.Column("streak_count", sa.Integer(), nullable=False, server_default="0"),
        sa.Column("best_streak", sa.Integer(), nullable=False, server_default="0"),
        sa.Column("total_completions", sa.Integer(), nullable=False, server_default="0"),
        sa.Column("is_active", sa.Boolean(), nullable=False, server_default=sa.true()),
        sa.Column("archived_at", sa.DateTime(timezone=True), nullable=True),
        sa.Column(
            "created_at",
            sa.DateTime(timezone=True),
            server_default=sa.func.now(),
            nullable=False,
        ),
        sa.Column(
            "updated_at",
            sa.DateTime(timezone=True),
            server_default=sa.func.now(),
            nullable=False,
        ),
        sa.CheckConstraint("frequency_value >= 1", name="ck_habit_frequency_value"),
        sa.CheckConstraint("target_count >= 1", name="ck_habit_target_count"),
    )
    op.create_index("ix_habits_id", "habits", ["id"])
    op.create_index("ix_habits_owner_id", "habits", ["owner_id"])
    op.create_index("ix_habits_is_active", "habits", ["is_active"])

    op.create_table(
        "habit_logs",
        sa.Column("id", sa.Integer(), primary_key=True, autoincrement=True),
        sa.Column(
            "habit_id",
            sa.Integer(),
            sa.ForeignKey("habits.id", ondelete="CASCADE"),
            nullable=False,
        ),
        sa.Column("owner_id", sa.String(64), nullable=False),
        sa.Column("date", sa.Date(), nullable=False),
        sa.Column("status", log_status_enum, nullable=False),
        sa.Column("completion_count", sa.Integer(), nullable=False, server_default="1"),
        sa.Column("target_count", sa.Integer(), nullable=False, server_default="1"),
        sa.Column("quality_rating", sa.Integer(), nullable=True),
        sa.Column("mood_before", sa.Integer(), nullable=True),
        sa.Column("mood_after", sa.Integer(), nullable=True),
        sa.Column("notes", sa.Text(), nullable=True),
        sa.Column("completed_at", sa.DateTime(timezone=True), nullable=True),
        sa.Column(
            "created_at",
            sa.DateTime(timezone=True),
            server_default=sa.func.now(),
            nullable=False,
        ),
        sa.Column(
            "updated_at",
            sa.DateTime(timezone=True),
            server_default=sa.func.now(),
            nullable=False,
        ),
        sa.CheckConstraint("completion_count >= 0", name="ck_habit_log_completion_count"),
    )
    op.create_index("ix_habit_logs_id", "habit_logs", ["id"])
    op.create_index("ix_habit_logs_habit_id", "habit_logs", ["habit_id"])
    op.create_index("ix_habit_logs_owner_id", "habit_logs", ["owner_id"])
    op.create_index("ix_habit_logs_date", "habit_logs", ["date"])
    op.create_index("ix_habit_logs_status", "habit_logs", ["status"])
    op.create_unique_constraint(
        "uq_habit_log_habit_date",
        "habit_logs",
        ["habit_id", "date"],
    )


def downgrade() -> None:
    op.drop_constraint("uq_habit_log_habit_date", "habit_logs", type_="unique")
    op.drop_index("ix_habit_logs_status", table_name="habit_logs")
    op.drop_index("ix_habit_logs_date", table_name="habit_logs")
    op.drop_index("ix_habit_logs_owner_id", table_name="habit_logs")
    op.drop_index("ix_habit_logs_habit_id", table_name="habit_logs")
    op.drop_index("ix_habit_logs_id", table_name="habit_logs")
    op.drop_table("habit_logs")

    op.drop_index("ix_habits_is_active", table_name="habits")
    op.drop_index("ix_habits_owner_id", table_name="habits")
    op.drop_index("ix_habits_id", table_name="habits")
    op.drop_table("habits")

    log_status_enum.drop(op.get_bind(), checkfirst=True)
    frequency_type_enum.drop(op.get_bind(), checkfirst=True)
