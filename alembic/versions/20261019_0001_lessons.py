"""Lessons table

Revision ID: 20261019_0001
Revises:
Create Date: 2026-10-19 10:00:00
"""

from typing import Sequence, Union

from alembic import op
import sqlalchemy as sa
from sqlalchemy.dialects import postgresql

# revision identifiers, used by Alembic.
revision: str = "20261019_0001"
down_revision: Union[str, None] = None
branch_labels: Union[str, Sequence[str], None] = None
depends_on: Union[str, Sequence[str], None] = None


def upgrade() -> None:
    op.create_table(
        "lessons",
        sa.Column("id", postgresql.UUID(as_uuid=True), primary_key=True, nullable=False),
        sa.Column("created_at", sa.DateTime(timezone=True), nullable=False),
        sa.Column("subject", sa.String(length=255), nullable=False),
        sa.Column("teacher", sa.String(length=255), nullable=False),
        sa.Column("classroom", sa.String(length=255), nullable=False),
        sa.Column("scheduled_time", sa.DateTime(timezone=True), nullable=False),
        sa.Column("duration_minutes", sa.Integer(), nullable=False),
        sa.CheckConstraint(
            "duration_minutes > 0 AND duration_minutes <= 480",
            name="ck_lessons_duration_minutes_range",
        ),
    )
    op.create_index("ix_lessons_teacher", "lessons", ["teacher"], unique=False)
    op.create_index("ix_lessons_scheduled_time", "lessons", ["scheduled_time"], unique=False)
    op.create_index(
        "ix_lessons_classroom_scheduled_time",
        "lessons",
        ["classroom", "scheduled_time"],
        unique=False,
    )


def downgrade() -> None:
    op.drop_index("ix_lessons_classroom_scheduled_time", table_name="lessons")
    op.drop_index("ix_lessons_scheduled_time", table_name="lessons")
    op.drop_index("ix_lessons_teacher", table_name="lessons")
    op.drop_table("lessons")
