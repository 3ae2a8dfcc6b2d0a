"""Daily task queries"""
import logging
from typing import Optional
from daybook.db.connection import db
from daybook.models.task import DailyTask

logger = logging.getLogger(__name__)

_TASK_COLUMNS = (
    "id, user_id, date, due_date, text, details, done, points, pinned, recurring, "
    "order_index, parent_task_id, log_entry_id, created_at, completed_at"
)
_UPDATABLE = ("text", "due_date", "details", "done", "points", "pinned", "recurring", "log_entry_id", "completed_at")


async def get_tasks_for_date(user_id: str, date: str) -> list[DailyTask]:
    """
    Tasks shown on a date: top-level tasks created or due that day, plus
    every sub-task of those tasks.
    """
    async with db.connection() as conn:
        async with conn.cursor() as cur:
            await cur.execute(
                f"""
                SELECT {_TASK_COLUMNS} FROM daily_tasks
                WHERE user_id = %(u)s AND (
                    (parent_task_id IS NULL AND (date = %(d)s OR due_date = %(d)s))
                    OR parent_task_id IN (
                        SELECT id FROM daily_tasks
                        WHERE user_id = %(u)s AND parent_task_id IS NULL AND (date = %(d)s OR due_date = %(d)s)
                    )
                )
                ORDER BY order_index, id
                """,
                {"u": user_id, "d": date}
            )
            rows = await cur.fetchall()
    return [DailyTask(**row) for row in rows]


async def get_task(user_id: str, task_id: int) -> Optional[DailyTask]:
    async with db.connection() as conn:
        async with conn.cursor() as cur:
            await cur.execute(
                f"SELECT {_TASK_COLUMNS} FROM daily_tasks WHERE user_id = %s AND id = %s",
                (user_id, task_id)
            )
            row = await cur.fetchone()
    return DailyTask(**row) if row else None


async def get_all_tasks(user_id: str) -> list[DailyTask]:
    async with db.connection() as conn:
        async with conn.cursor() as cur:
            await cur.execute(
                f"SELECT {_TASK_COLUMNS} FROM daily_tasks WHERE user_id = %s ORDER BY date, order_index, id",
                (user_id,)
            )
            rows = await cur.fetchall()
    return [DailyTask(**row) for row in rows]


async def create_task(
    user_id: str,
    date: str,
    text: str,
    due_date: Optional[str] = None,
    details: Optional[str] = None,
    parent_task_id: Optional[int] = None,
    points: int = 0
) -> DailyTask:
    async with db.connection() as conn:
        async with conn.cursor() as cur:
            await cur.execute(
                f"""
                INSERT INTO daily_tasks (user_id, date, due_date, text, details, parent_task_id, points, order_index)
                VALUES (
                    %s, %s, %s, %s, %s, %s, %s,
                    (SELECT COALESCE(MAX(order_index), -1) + 1 FROM daily_tasks WHERE user_id = %s AND date = %s)
                )
                RETURNING {_TASK_COLUMNS}
                """,
                (user_id, date, due_date or date, text, details, parent_task_id, points, user_id, date)
            )
            row = await cur.fetchone()
    logger.info(f"Created task {row['id']} for user {user_id} on {date}")
    return DailyTask(**row)


async def update_task(user_id: str, task_id: int, **changes) -> Optional[DailyTask]:
    """Update the given task columns; unknown keys are ignored"""
    updates = {k: v for k, v in changes.items() if k in _UPDATABLE}
    if not updates:
        return await get_task(user_id, task_id)

    assignments = ", ".join(f"{column} = %s" for column in updates)
    async with db.connection() as conn:
        async with conn.cursor() as cur:
            await cur.execute(
                f"UPDATE daily_tasks SET {assignments} WHERE user_id = %s AND id = %s RETURNING {_TASK_COLUMNS}",
                (*updates.values(), user_id, task_id)
            )
            row = await cur.fetchone()
    return DailyTask(**row) if row else None


async def delete_task(user_id: str, task_id: int) -> bool:
    """Delete a task; its sub-tasks cascade"""
    async with db.connection() as conn:
        async with conn.cursor() as cur:
            await cur.execute(
                "DELETE FROM daily_tasks WHERE user_id = %s AND id = %s",
                (user_id, task_id)
            )
            return cur.rowcount > 0


async def get_tasks_in_range(
    user_id: str,
    start_date: str,
    end_date: str,
    completion_status: str = "all"
) -> list[DailyTask]:
    query = f"SELECT {_TASK_COLUMNS} FROM daily_tasks WHERE user_id = %s AND date >= %s AND date <= %s"
    if completion_status == "completed":
        query += " AND done = TRUE"
    elif completion_status == "incomplete":
        query += " AND done = FALSE"
    query += " ORDER BY date, order_index, id"

    async with db.connection() as conn:
        async with conn.cursor() as cur:
            await cur.execute(query, (user_id, start_date, end_date))
            rows = await cur.fetchall()
    return [DailyTask(**row) for row in rows]
