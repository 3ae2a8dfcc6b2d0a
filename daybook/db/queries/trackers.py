"""Counter, time-since tracker and timer queries"""
import logging
from typing import Optional
from daybook.db.connection import db
from daybook.models.tracker import (
    CustomCounter,
    CounterValue,
    TimeSinceTracker,
    DurationTracker,
    TimerDailyTotal,
)

logger = logging.getLogger(__name__)

_TIMER_COLUMNS = "id, user_id, name, type, is_running, is_locked, start_time, elapsed_ms, value, order_index"
_TIMER_UPDATABLE = ("is_running", "is_locked", "start_time", "elapsed_ms", "value", "name")


# Counters
async def get_counters(user_id: str) -> list[CustomCounter]:
    async with db.connection() as conn:
        async with conn.cursor() as cur:
            await cur.execute(
                "SELECT id, user_id, name, order_index FROM custom_counters WHERE user_id = %s ORDER BY order_index, id",
                (user_id,)
            )
            rows = await cur.fetchall()
    return [CustomCounter(**row) for row in rows]


async def get_counter(user_id: str, counter_id: int) -> Optional[CustomCounter]:
    async with db.connection() as conn:
        async with conn.cursor() as cur:
            await cur.execute(
                "SELECT id, user_id, name, order_index FROM custom_counters WHERE user_id = %s AND id = %s",
                (user_id, counter_id)
            )
            row = await cur.fetchone()
    return CustomCounter(**row) if row else None


async def get_counter_by_name(user_id: str, name: str) -> Optional[CustomCounter]:
    async with db.connection() as conn:
        async with conn.cursor() as cur:
            await cur.execute(
                "SELECT id, user_id, name, order_index FROM custom_counters WHERE user_id = %s AND name = %s",
                (user_id, name)
            )
            row = await cur.fetchone()
    return CustomCounter(**row) if row else None


async def create_counter(user_id: str, name: str) -> CustomCounter:
    async with db.connection() as conn:
        async with conn.cursor() as cur:
            await cur.execute(
                """
                INSERT INTO custom_counters (user_id, name, order_index)
                VALUES (%s, %s, (SELECT COALESCE(MAX(order_index), -1) + 1 FROM custom_counters WHERE user_id = %s))
                RETURNING id, user_id, name, order_index
                """,
                (user_id, name, user_id)
            )
            row = await cur.fetchone()
    logger.info(f"Created counter '{name}' for user {user_id}")
    return CustomCounter(**row)


async def delete_counter(user_id: str, counter_id: int) -> bool:
    """Delete a counter; its per-date values cascade"""
    async with db.connection() as conn:
        async with conn.cursor() as cur:
            await cur.execute(
                "DELETE FROM custom_counters WHERE user_id = %s AND id = %s",
                (user_id, counter_id)
            )
            return cur.rowcount > 0


async def get_counter_values(user_id: str, date: str) -> dict[int, int]:
    """{counter_id: value} for every counter with a stored value on the date"""
    async with db.connection() as conn:
        async with conn.cursor() as cur:
            await cur.execute(
                "SELECT counter_id, value FROM custom_counter_values WHERE user_id = %s AND date = %s",
                (user_id, date)
            )
            rows = await cur.fetchall()
    return {row["counter_id"]: row["value"] for row in rows}


async def set_counter_value(user_id: str, counter_id: int, date: str, value: int) -> CounterValue:
    async with db.connection() as conn:
        async with conn.cursor() as cur:
            await cur.execute(
                """
                INSERT INTO custom_counter_values (counter_id, user_id, date, value)
                VALUES (%s, %s, %s, %s)
                ON CONFLICT (counter_id, date) DO UPDATE SET value = EXCLUDED.value
                """,
                (counter_id, user_id, date, value)
            )
    return CounterValue(counter_id=counter_id, user_id=user_id, date=date, value=value)


async def get_counter_values_in_range(
    user_id: str,
    counter_id: int,
    start_date: str,
    end_date: str
) -> list[CounterValue]:
    async with db.connection() as conn:
        async with conn.cursor() as cur:
            await cur.execute(
                """
                SELECT counter_id, user_id, date, value FROM custom_counter_values
                WHERE user_id = %s AND counter_id = %s AND date >= %s AND date <= %s
                ORDER BY date
                """,
                (user_id, counter_id, start_date, end_date)
            )
            rows = await cur.fetchall()
    return [CounterValue(**row) for row in rows]


async def get_populated_counters(user_id: str, start_date: str, end_date: str) -> list[str]:
    async with db.connection() as conn:
        async with conn.cursor() as cur:
            await cur.execute(
                """
                SELECT DISTINCT c.name FROM custom_counter_values v
                JOIN custom_counters c ON c.id = v.counter_id
                WHERE v.user_id = %s AND v.date >= %s AND v.date <= %s AND v.value > 0
                ORDER BY c.name
                """,
                (user_id, start_date, end_date)
            )
            rows = await cur.fetchall()
    return [row["name"] for row in rows]


# Time-since trackers
async def get_time_since_trackers(user_id: str) -> list[TimeSinceTracker]:
    async with db.connection() as conn:
        async with conn.cursor() as cur:
            await cur.execute(
                """
                SELECT id, user_id, name, date, order_index FROM time_since_trackers
                WHERE user_id = %s ORDER BY order_index, id
                """,
                (user_id,)
            )
            rows = await cur.fetchall()
    return [TimeSinceTracker(**row) for row in rows]


async def create_time_since_tracker(user_id: str, name: str, date: str) -> TimeSinceTracker:
    async with db.connection() as conn:
        async with conn.cursor() as cur:
            await cur.execute(
                """
                INSERT INTO time_since_trackers (user_id, name, date, order_index)
                VALUES (%s, %s, %s, (SELECT COALESCE(MAX(order_index), -1) + 1 FROM time_since_trackers WHERE user_id = %s))
                RETURNING id, user_id, name, date, order_index
                """,
                (user_id, name, date, user_id)
            )
            row = await cur.fetchone()
    return TimeSinceTracker(**row)


async def delete_time_since_tracker(user_id: str, tracker_id: int) -> bool:
    async with db.connection() as conn:
        async with conn.cursor() as cur:
            await cur.execute(
                "DELETE FROM time_since_trackers WHERE user_id = %s AND id = %s",
                (user_id, tracker_id)
            )
            return cur.rowcount > 0


# Timers
async def get_duration_trackers(user_id: str) -> list[DurationTracker]:
    async with db.connection() as conn:
        async with conn.cursor() as cur:
            await cur.execute(
                f"SELECT {_TIMER_COLUMNS} FROM duration_trackers WHERE user_id = %s ORDER BY order_index, id",
                (user_id,)
            )
            rows = await cur.fetchall()
    return [DurationTracker(**row) for row in rows]


async def get_duration_tracker(user_id: str, tracker_id: int) -> Optional[DurationTracker]:
    async with db.connection() as conn:
        async with conn.cursor() as cur:
            await cur.execute(
                f"SELECT {_TIMER_COLUMNS} FROM duration_trackers WHERE user_id = %s AND id = %s",
                (user_id, tracker_id)
            )
            row = await cur.fetchone()
    return DurationTracker(**row) if row else None


async def get_duration_tracker_by_name(user_id: str, name: str) -> Optional[DurationTracker]:
    async with db.connection() as conn:
        async with conn.cursor() as cur:
            await cur.execute(
                f"SELECT {_TIMER_COLUMNS} FROM duration_trackers WHERE user_id = %s AND name = %s ORDER BY id LIMIT 1",
                (user_id, name)
            )
            row = await cur.fetchone()
    return DurationTracker(**row) if row else None


async def create_duration_tracker(user_id: str, name: str) -> DurationTracker:
    async with db.connection() as conn:
        async with conn.cursor() as cur:
            await cur.execute(
                f"""
                INSERT INTO duration_trackers (user_id, name, order_index)
                VALUES (%s, %s, (SELECT COALESCE(MAX(order_index), -1) + 1 FROM duration_trackers WHERE user_id = %s))
                RETURNING {_TIMER_COLUMNS}
                """,
                (user_id, name, user_id)
            )
            row = await cur.fetchone()
    logger.info(f"Created timer '{name}' for user {user_id}")
    return DurationTracker(**row)


async def update_duration_tracker(user_id: str, tracker_id: int, **changes) -> Optional[DurationTracker]:
    updates = {k: v for k, v in changes.items() if k in _TIMER_UPDATABLE}
    if not updates:
        return await get_duration_tracker(user_id, tracker_id)

    assignments = ", ".join(f"{column} = %s" for column in updates)
    async with db.connection() as conn:
        async with conn.cursor() as cur:
            await cur.execute(
                f"UPDATE duration_trackers SET {assignments} WHERE user_id = %s AND id = %s RETURNING {_TIMER_COLUMNS}",
                (*updates.values(), user_id, tracker_id)
            )
            row = await cur.fetchone()
    return DurationTracker(**row) if row else None


async def delete_duration_tracker(user_id: str, tracker_id: int) -> bool:
    async with db.connection() as conn:
        async with conn.cursor() as cur:
            await cur.execute(
                "DELETE FROM duration_trackers WHERE user_id = %s AND id = %s",
                (user_id, tracker_id)
            )
            return cur.rowcount > 0


async def add_timer_daily_total(user_id: str, tracker_id: int, date: str, delta_ms: int) -> TimerDailyTotal:
    """Accrue (or remove) timer time on a date; the total never drops below zero"""
    async with db.connection() as conn:
        async with conn.cursor() as cur:
            await cur.execute(
                """
                INSERT INTO timer_daily_totals (tracker_id, user_id, date, elapsed_ms)
                VALUES (%s, %s, %s, GREATEST(%s, 0))
                ON CONFLICT (tracker_id, date)
                DO UPDATE SET elapsed_ms = GREATEST(timer_daily_totals.elapsed_ms + %s, 0)
                RETURNING tracker_id, user_id, date, elapsed_ms
                """,
                (tracker_id, user_id, date, delta_ms, delta_ms)
            )
            row = await cur.fetchone()
    return TimerDailyTotal(**row)


async def get_timer_totals_in_range(
    user_id: str,
    tracker_id: int,
    start_date: str,
    end_date: str
) -> list[TimerDailyTotal]:
    async with db.connection() as conn:
        async with conn.cursor() as cur:
            await cur.execute(
                """
                SELECT tracker_id, user_id, date, elapsed_ms FROM timer_daily_totals
                WHERE user_id = %s AND tracker_id = %s AND date >= %s AND date <= %s
                ORDER BY date
                """,
                (user_id, tracker_id, start_date, end_date)
            )
            rows = await cur.fetchall()
    return [TimerDailyTotal(**row) for row in rows]


async def get_populated_timers(user_id: str, start_date: str, end_date: str) -> list[str]:
    async with db.connection() as conn:
        async with conn.cursor() as cur:
            await cur.execute(
                """
                SELECT DISTINCT d.name FROM timer_daily_totals t
                JOIN duration_trackers d ON d.id = t.tracker_id
                WHERE t.user_id = %s AND t.date >= %s AND t.date <= %s AND t.elapsed_ms > 0
                ORDER BY d.name
                """,
                (user_id, start_date, end_date)
            )
            rows = await cur.fetchall()
    return [row["name"] for row in rows]
