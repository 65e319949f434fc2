from __future__ import annotations

from typing import Any

from sqlalchemy import func, select
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.ext.asyncio import AsyncSession

from app.db_handlers.base import BaseDBHandler, check_local_db
from app.models.task import Task, TaskStatus
from app.utils.logger import setup_logger

logger = setup_logger("task_db_handler")


def _status_value(status: TaskStatus | str) -> str:
    return status.value if isinstance(status, TaskStatus) else status


class TaskDBHandler(BaseDBHandler[Task]):
    def __init__(self):
        super().__init__(Task)

    @check_local_db
    async def create_task(
        self, obj_dict: dict[str, Any], *, db: AsyncSession = None
    ) -> dict[str, Any]:
        """Create a new task and return as dict."""
        task = await super().create(obj_dict, db=db)
        return task.to_dict()

    @check_local_db
    async def get_tasks_for_user(
        self,
        user_id: int,
        status: TaskStatus | str | None = None,
        *,
        db: AsyncSession = None,
    ) -> list[Task]:
        """Tasks owned by ``user_id``, oldest first, optionally with one status."""
        stmt = select(Task).where(Task.user_id == user_id)
        if status is not None:
            stmt = stmt.where(Task.status == _status_value(status))
        stmt = stmt.order_by(Task.created_at, Task.id)
        try:
            result = await db.execute(stmt)
            return list(result.scalars().all())
        except SQLAlchemyError as e:
            logger.error(f"Error retrieving tasks for user {user_id}: {e}")
            raise

    @check_local_db
    async def get_tasks_by_status(
        self,
        status: TaskStatus | str,
        limit: int = 100,
        *,
        db: AsyncSession = None,
    ) -> list[Task]:
        try:
            stmt = (
                select(Task)
                .where(Task.status == _status_value(status))
                .order_by(Task.created_at, Task.id)
                .limit(limit)
            )
            result = await db.execute(stmt)
            return list(result.scalars().all())
        except SQLAlchemyError as e:
            logger.error(f"Error retrieving tasks with status '{status}': {e}")
            raise

    @check_local_db
    async def count_tasks_by_status(
        self, user_id: int, *, db: AsyncSession = None
    ) -> dict[str, int]:
        """Number of tasks per status for one user, zero for absent statuses."""
        stmt = (
            select(Task.status, func.count(Task.id))
            .where(Task.user_id == user_id)
            .group_by(Task.status)
        )
        result = await db.execute(stmt)
        counts = {status.value: 0 for status in TaskStatus}
        counts.update({status: count for status, count in result.all()})
        return counts

    @check_local_db
    async def update_task_status(
        self,
        task_id: int,
        status: TaskStatus | str,
        *,
        db: AsyncSession = None,
    ) -> Task | None:
        """Set the status of a task. Any allowed status may follow any other."""
        task = await self.get(task_id, db=db)
        if not task:
            logger.warning(f"Task {task_id} not found for status update")
            return None
        return await self.update(task, {"status": status}, db=db)
