"""
Task model for units of work owned by a user.

Structure:
    User 1 ── * Task

Constraints enforced by the database:
    - ``user_id`` must reference an existing user; deleting the user deletes
      the task (``ON DELETE CASCADE``)
    - ``status`` is one of pending / in-progress / completed (CHECK constraint
      ``task_status`` on every backend) and defaults to pending
    - ``idx_status`` serves filtering by status, ``idx_user_id_status`` serves
      "this user's tasks with this status"

Status transitions are not restricted; any allowed value may follow any other.
"""

import enum

from sqlalchemy import Column, Enum, ForeignKey, Index, Integer, String, Text
from sqlalchemy.orm import relationship, validates

from app.models.base import Base, IntegerIDMixin, TimestampMixin


class TaskStatus(str, enum.Enum):
    PENDING = "pending"
    IN_PROGRESS = "in-progress"
    COMPLETED = "completed"


TASK_STATUSES = tuple(status.value for status in TaskStatus)


class Task(Base, IntegerIDMixin, TimestampMixin):
    """
    Unit of trackable work owned by exactly one user.
    """

    __tablename__ = "tasks"
    __table_args__ = (
        Index("idx_status", "status"),
        Index("idx_user_id_status", "user_id", "status"),
    )

    user_id = Column(
        Integer,
        ForeignKey("users.id", ondelete="CASCADE"),
        nullable=False,
        comment="Owner of the task",
    )

    title = Column(
        String(255),
        nullable=False,
        comment="Short title of the task",
    )

    description = Column(
        Text,
        nullable=True,
        comment="Optional free-form description",
    )

    status = Column(
        Enum(
            *TASK_STATUSES,
            name="task_status",
            native_enum=False,
            create_constraint=True,
        ),
        nullable=False,
        default=TaskStatus.PENDING.value,
        server_default=TaskStatus.PENDING.value,
        comment="Current status: pending/in-progress/completed",
    )

    owner = relationship(
        "User",
        back_populates="tasks",
        doc="User who owns this task",
    )

    @validates("status")
    def validate_status(self, key, value):
        """Reject unknown statuses and store enum members as their string value."""
        if isinstance(value, TaskStatus):
            return value.value
        if value not in TASK_STATUSES:
            raise ValueError(f"Invalid status: {value}")
        return value

    def __repr__(self):
        return (
            f"<Task(id={self.id}, "
            f"user_id={self.user_id}, "
            f"status='{self.status}', "
            f"title='{(self.title or '')[:50]}')>"
        )
