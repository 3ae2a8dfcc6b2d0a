"""Activity entry queries"""
import logging
from typing import Optional
from datetime import datetime
from daybook.db.connection import db
from daybook.models.entry import ActivityEntry

logger = logging.getLogger(__name__)

_ENTRY_COLUMNS = "id, user_id, date, text, image, timestamp, order_index"


async def get_entries(user_id: str, date: str) -> list[ActivityEntry]:
    async with db.connection() as conn:
        async with conn.cursor() as cur:
            await cur.execute(
                f"""
                SELECT {_ENTRY_COLUMNS} FROM activity_entries
                WHERE user_id = %s AND date = %s
                ORDER BY order_index, timestamp, id
                """,
                (user_id, date)
            )
            rows = await cur.fetchall()
    return [ActivityEntry(**row) for row in rows]


async def get_entry(user_id: str, entry_id: int) -> Optional[ActivityEntry]:
    async with db.connection() as conn:
        async with conn.cursor() as cur:
            await cur.execute(
                f"SELECT {_ENTRY_COLUMNS} FROM activity_entries WHERE user_id = %s AND id = %s",
                (user_id, entry_id)
            )
            row = await cur.fetchone()
    return ActivityEntry(**row) if row else None


async def create_entry(
    user_id: str,
    date: str,
    text: str,
    image: Optional[str] = None,
    timestamp: Optional[datetime] = None
) -> ActivityEntry:
    async with db.connection() as conn:
        async with conn.cursor() as cur:
            await cur.execute(
                f"""
                INSERT INTO activity_entries (user_id, date, text, image, timestamp, order_index)
                VALUES (
                    %s, %s, %s, %s, COALESCE(%s, NOW()),
                    (SELECT COALESCE(MAX(order_index), -1) + 1 FROM activity_entries WHERE user_id = %s AND date = %s)
                )
                RETURNING {_ENTRY_COLUMNS}
                """,
                (user_id, date, text, image, timestamp, user_id, date)
            )
            row = await cur.fetchone()
    logger.debug(f"Created activity entry {row['id']} for user {user_id} on {date}")
    return ActivityEntry(**row)


async def update_entry(user_id: str, entry_id: int, text: str) -> Optional[ActivityEntry]:
    async with db.connection() as conn:
        async with conn.cursor() as cur:
            await cur.execute(
                f"UPDATE activity_entries SET text = %s WHERE user_id = %s AND id = %s RETURNING {_ENTRY_COLUMNS}",
                (text, user_id, entry_id)
            )
            row = await cur.fetchone()
    return ActivityEntry(**row) if row else None


async def delete_entry(user_id: str, entry_id: int) -> bool:
    async with db.connection() as conn:
        async with conn.cursor() as cur:
            await cur.execute(
                "DELETE FROM activity_entries WHERE user_id = %s AND id = %s",
                (user_id, entry_id)
            )
            return cur.rowcount > 0


async def has_activity(user_id: str, date: str) -> bool:
    """Whether anything was recorded for the user on the date"""
    async with db.connection() as conn:
        async with conn.cursor() as cur:
            await cur.execute(
                """
                SELECT
                    EXISTS (SELECT 1 FROM activity_entries WHERE user_id = %(u)s AND date = %(d)s)
                    OR EXISTS (SELECT 1 FROM daily_tasks WHERE user_id = %(u)s AND date = %(d)s)
                    OR EXISTS (SELECT 1 FROM daily_custom_fields WHERE user_id = %(u)s AND date = %(d)s AND value <> '')
                    OR EXISTS (SELECT 1 FROM custom_counter_values WHERE user_id = %(u)s AND date = %(d)s AND value > 0)
                    OR EXISTS (
                        SELECT 1 FROM daily_state WHERE user_id = %(u)s AND date = %(d)s
                        AND (previous_bedtime <> '' OR wake_time <> '')
                    )
                    AS active
                """,
                {"u": user_id, "d": date}
            )
            row = await cur.fetchone()
    return bool(row["active"])
