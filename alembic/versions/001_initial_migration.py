"""Initial migration: users, eco habits and habit logs

Revision ID: 001_initial
Revises:
Create Date: 2026-10-19 12:00:00.000000

"""

from typing import Sequence, Union

import sqlalchemy as sa

from alembic import op

revision: str = "001_initial"
down_revision: Union[str, Sequence[str], None] = None
branch_labels: Union[str, Sequence[str], None] = None
depends_on: Union[str, Sequence[str], None] = None


def upgrade() -> None:
    """Upgrade schema."""
    op.create_table(
        "users",
        sa.Column("id", sa.String(), nullable=False),
        sa.Column("username", sa.String(), nullable=False),
        sa.Column("hashed_password", sa.String(), nullable=False),
        sa.Column("is_active", sa.Boolean(), nullable=False),
        sa.PrimaryKeyConstraint("id"),
    )
    op.create_index(op.f("ix_users_id"), "users", ["id"], unique=False)
    op.create_index(op.f("ix_users_username"), "users", ["username"], unique=True)

    op.create_table(
        "eco_habits",
        sa.Column("id", sa.String(), nullable=False),
        sa.Column("user_id", sa.String(), nullable=False),
        sa.Column("name", sa.Text(), nullable=False),
        sa.Column("description", sa.Text(), nullable=True),
        sa.Column("category", sa.Text(), nullable=True),
        sa.Column("frequency", sa.Text(), nullable=True),
        sa.Column("target_per_period", sa.Float(), nullable=True),
        sa.Column("impact_per_unit", sa.Float(), nullable=True),
        sa.Column("impact_unit", sa.Text(), nullable=True),
        sa.Column("is_active", sa.Boolean(), nullable=False),
        sa.Column("created_at", sa.DateTime(), nullable=False),
        sa.Column("updated_at", sa.DateTime(), nullable=False),
        sa.PrimaryKeyConstraint("id"),
    )
    op.create_index(op.f("ix_eco_habits_user_id"), "eco_habits", ["user_id"], unique=False)

    op.create_table(
        "eco_habit_logs",
        sa.Column("id", sa.String(), nullable=False),
        sa.Column("habit_id", sa.String(), nullable=False),
        sa.Column("user_id", sa.String(), nullable=False),
        sa.Column("log_date", sa.DateTime(), nullable=False),
        sa.Column("quantity", sa.Float(), nullable=True),
        sa.Column("notes", sa.Text(), nullable=True),
        sa.Column("created_at", sa.DateTime(), nullable=False),
        sa.ForeignKeyConstraint(
            ["habit_id"],
            ["eco_habits.id"],
        ),
        sa.PrimaryKeyConstraint("id"),
    )
    op.create_index(
        op.f("ix_eco_habit_logs_habit_id"), "eco_habit_logs", ["habit_id"], unique=False
    )
    op.create_index(
        op.f("ix_eco_habit_logs_user_id"), "eco_habit_logs", ["user_id"], unique=False
    )


def downgrade() -> None:
    """Downgrade schema."""
    op.drop_index(op.f("ix_eco_habit_logs_user_id"), table_name="eco_habit_logs")
    op.drop_index(op.f("ix_eco_habit_logs_habit_id"), table_name="eco_habit_logs")
    op.drop_table("eco_habit_logs")
    op.drop_index(op.f("ix_eco_habits_user_id"), table_name="eco_habits")
    op.drop_table("eco_habits")
    op.drop_index(op.f("ix_users_username"), table_name="users")
    op.drop_index(op.f("ix_users_id"), table_name="users")
    op.drop_table("users")
