"""
Database models for the task store.

Architecture: User → Task ownership, with the task table carrying the status
enum and its indexes.
"""

from app.models.task import TASK_STATUSES, Task, TaskStatus
from app.models.user import User

__all__ = [
    "User",
    "Task",
    "TaskStatus",
    "TASK_STATUSES",
]
