"""
Tests for the constraints the database enforces on task records.

Raw SQL is used where the point is that the storage layer itself rejects or
cascades, independent of the ORM.
"""

import asyncio

import pytest
from sqlalchemy import func, select, text
from sqlalchemy.exc import IntegrityError

from app.models import TASK_STATUSES, Task, TaskStatus, User


async def _count_tasks(session, **filters) -> int:
    stmt = select(func.count()).select_from(Task).filter_by(**filters)
    return (await session.execute(stmt)).scalar_one()


async def _insert_raw_task(session, user_id: int, title: str, status: str | None = None):
    if status is None:
        await session.execute(
            text("INSERT INTO tasks (user_id, title) VALUES (:user_id, :title)"),
            {"user_id": user_id, "title": title},
        )
    else:
        await session.execute(
            text(
                "INSERT INTO tasks (user_id, title, status) "
                "VALUES (:user_id, :title, :status)"
            ),
            {"user_id": user_id, "title": title, "status": status},
        )


@pytest.mark.asyncio
async def test_new_task_defaults_to_pending(user, make_task):
    task = await make_task(user.id)

    assert task.status == "pending"
    assert task.description is None
    assert task.created_at is not None
    assert task.updated_at is not None


@pytest.mark.asyncio
async def test_raw_insert_defaults_to_pending(session, user):
    await _insert_raw_task(session, user.id, "Raw task")
    await session.commit()

    row = (
        await session.execute(text("SELECT status, created_at, updated_at FROM tasks"))
    ).one()
    assert row.status == "pending"
    assert row.created_at is not None
    assert row.updated_at is not None


@pytest.mark.asyncio
@pytest.mark.parametrize("status", TASK_STATUSES)
async def test_allowed_statuses_are_accepted(session, user, make_task, status):
    task = await make_task(user.id, status=status)
    assert task.status == status

    await _insert_raw_task(session, user.id, "Raw task", status)
    await session.commit()

    assert await _count_tasks(session, status=status) == 2


@pytest.mark.asyncio
async def test_status_accepts_enum_members(user, make_task):
    task = await make_task(user.id, status=TaskStatus.IN_PROGRESS)

    assert task.status == "in-progress"


@pytest.mark.asyncio
@pytest.mark.parametrize("status", ["archived", "done", "Pending", "in_progress", ""])
async def test_storage_rejects_unknown_status(session, user, status):
    with pytest.raises(IntegrityError):
        await _insert_raw_task(session, user.id, "Bad task", status)
    await session.rollback()

    assert await _count_tasks(session) == 0


@pytest.mark.asyncio
async def test_storage_rejects_unknown_status_on_update(session, user, make_task):
    task_id = (await make_task(user.id)).id

    with pytest.raises(IntegrityError):
        await session.execute(
            text("UPDATE tasks SET status = 'archived' WHERE id = :id"), {"id": task_id}
        )
    await session.rollback()

    status = (
        await session.execute(
            text("SELECT status FROM tasks WHERE id = :id"), {"id": task_id}
        )
    ).scalar_one()
    assert status == "pending"


@pytest.mark.asyncio
async def test_model_rejects_unknown_status(session, user):
    with pytest.raises(ValueError, match="Invalid status: done"):
        Task(user_id=user.id, title="Write report", status="done")

    assert await _count_tasks(session) == 0


@pytest.mark.asyncio
async def test_nonexistent_user_is_rejected(session, user):
    missing_user_id = user.id + 1000

    session.add(Task(user_id=missing_user_id, title="Orphan"))
    with pytest.raises(IntegrityError):
        await session.commit()
    await session.rollback()

    with pytest.raises(IntegrityError):
        await _insert_raw_task(session, missing_user_id, "Orphan")
    await session.rollback()

    assert await _count_tasks(session) == 0


@pytest.mark.asyncio
async def test_missing_user_id_is_rejected(session):
    with pytest.raises(IntegrityError):
        await session.execute(text("INSERT INTO tasks (title) VALUES ('No owner')"))
    await session.rollback()

    assert await _count_tasks(session) == 0


@pytest.mark.asyncio
async def test_missing_title_is_rejected(session, user):
    with pytest.raises(IntegrityError):
        await session.execute(
            text("INSERT INTO tasks (user_id) VALUES (:user_id)"), {"user_id": user.id}
        )
    await session.rollback()

    assert await _count_tasks(session) == 0


@pytest.mark.asyncio
async def test_deleting_user_with_raw_sql_cascades(session, user, make_task):
    other = User(name="Grace Hopper", email="grace@example.com")
    session.add(other)
    await session.commit()

    for i in range(3):
        await make_task(user.id, title=f"Task {i}")
    kept = await make_task(other.id, title="Someone else's task")

    await session.execute(text("DELETE FROM users WHERE id = :id"), {"id": user.id})
    await session.commit()

    assert await _count_tasks(session, user_id=user.id) == 0
    assert await _count_tasks(session) == 1
    remaining = (await session.execute(select(Task.id))).scalars().all()
    assert remaining == [kept.id]


@pytest.mark.asyncio
async def test_deleting_user_through_orm_cascades(session, user, make_task):
    for i in range(4):
        await make_task(user.id, title=f"Task {i}", status=TASK_STATUSES[i % 3])

    await session.delete(user)
    await session.commit()

    assert await _count_tasks(session) == 0


@pytest.mark.asyncio
async def test_update_refreshes_updated_at_only(session, user, make_task):
    task = await make_task(user.id, description="first draft")
    created_at = task.created_at
    updated_at = task.updated_at

    await asyncio.sleep(0.01)
    task.description = "second draft"
    await session.commit()
    await session.refresh(task)

    assert task.updated_at > updated_at
    assert task.created_at == created_at


@pytest.mark.asyncio
async def test_id_cannot_change_after_insert(session, user, make_task):
    task = await make_task(user.id)
    task_id = task.id

    with pytest.raises(ValueError, match="id is immutable"):
        task.id = task_id + 1
    with pytest.raises(ValueError, match="id is immutable"):
        user.id = user.id + 1

    task.id = task_id
    await session.commit()

    assert (await session.execute(select(Task.id))).scalars().all() == [task_id]


@pytest.mark.asyncio
async def test_task_lifecycle_scenario(session, make_task):
    u1 = User(name="U1", email="u1@example.com")
    session.add(u1)
    await session.commit()

    t1 = await make_task(u1.id, title="Write report")
    assert t1.status == "pending"
    before = t1.updated_at

    await asyncio.sleep(0.01)
    t1.status = "completed"
    await session.commit()
    await session.refresh(t1)
    assert t1.status == "completed"
    assert t1.updated_at > before

    # Transitions are unrestricted
    t1.status = TaskStatus.PENDING
    await session.commit()
    await session.refresh(t1)
    assert t1.status == "pending"

    t1_id = t1.id
    await session.delete(u1)
    await session.commit()
    session.expunge_all()

    assert await session.get(Task, t1_id) is None


@pytest.mark.asyncio
async def test_invalid_status_scenario_persists_nothing(session, user):
    user_id = user.id

    with pytest.raises(IntegrityError):
        await _insert_raw_task(session, user_id, "Write report", "done")
    await session.rollback()

    with pytest.raises(ValueError):
        session.add(Task(user_id=user_id, title="Write report", status="done"))

    assert await _count_tasks(session) == 0


@pytest.mark.asyncio
async def test_to_dict_and_repr(user, make_task):
    task = await make_task(user.id, title="Write report", description="Q3 numbers")

    data = task.to_dict()
    assert data["id"] == task.id
    assert data["user_id"] == user.id
    assert data["title"] == "Write report"
    assert data["description"] == "Q3 numbers"
    assert data["status"] == "pending"
    assert isinstance(data["created_at"], str)
    assert isinstance(data["updated_at"], str)

    assert repr(task) == (
        f"<Task(id={task.id}, user_id={user.id}, status='pending', title='Write report')>"
    )
