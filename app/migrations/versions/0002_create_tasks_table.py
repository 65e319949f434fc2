"""create tasks table

Revision ID: 0002_tasks
Revises: 0001_users
Create Date: 2025-11-08 02:37:01

"""
from typing import Sequence, Union

from alembic import context, op
import sqlalchemy as sa

from app.utils.logger import setup_logger

# revision identifiers, used by Alembic.
revision: str = "0002_tasks"
down_revision: Union[str, Sequence[str], None] = "0001_users"
branch_labels: Union[str, Sequence[str], None] = None
depends_on: Union[str, Sequence[str], None] = None

logger = setup_logger("migrations.0002_tasks")

# Frozen copy of the allowed statuses at the time of this revision
task_status = sa.Enum(
    "pending",
    "in-progress",
    "completed",
    name="task_status",
    native_enum=False,
    create_constraint=True,
)


def upgrade() -> None:
    """Upgrade schema."""
    if not context.is_offline_mode():
        inspector = sa.inspect(op.get_bind())
        if not inspector.has_table("users"):
            raise RuntimeError(
                "Cannot create table 'tasks': referenced table 'users' does not exist"
            )
        if inspector.has_table("tasks"):
            raise RuntimeError(
                "Cannot create table 'tasks': a table with that name already exists"
            )

    op.create_table(
        "tasks",
        sa.Column(
            "id",
            sa.Integer(),
            autoincrement=True,
            nullable=False,
            comment="Auto-incrementing primary key",
        ),
        sa.Column(
            "user_id",
            sa.Integer(),
            nullable=False,
            comment="Owner of the task",
        ),
        sa.Column(
            "title",
            sa.String(length=255),
            nullable=False,
            comment="Short title of the task",
        ),
        sa.Column(
            "description",
            sa.Text(),
            nullable=True,
            comment="Optional free-form description",
        ),
        sa.Column(
            "status",
            task_status,
            server_default="pending",
            nullable=False,
            comment="Current status: pending/in-progress/completed",
        ),
        sa.Column(
            "created_at",
            sa.DateTime(timezone=True),
            server_default=sa.func.now(),
            nullable=False,
            comment="Timestamp when the record was created",
        ),
        sa.Column(
            "updated_at",
            sa.DateTime(timezone=True),
            server_default=sa.func.now(),
            nullable=False,
            comment="Timestamp when the record was last updated",
        ),
        sa.ForeignKeyConstraint(["user_id"], ["users.id"], ondelete="CASCADE"),
        sa.PrimaryKeyConstraint("id"),
    )
    op.create_index("idx_status", "tasks", ["status"], unique=False)
    op.create_index(
        "idx_user_id_status", "tasks", ["user_id", "status"], unique=False
    )


def downgrade() -> None:
    """Downgrade schema."""
    if not context.is_offline_mode() and not sa.inspect(op.get_bind()).has_table(
        "tasks"
    ):
        logger.warning("Table 'tasks' does not exist, nothing to drop")
        return

    op.drop_index("idx_user_id_status", table_name="tasks")
    op.drop_index("idx_status", table_name="tasks")
    op.drop_table("tasks")
