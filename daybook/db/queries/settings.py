"""User settings and sleep state queries"""
import logging
from typing import Optional
from daybook.db.connection import db
from daybook.models.user import UserSettings, DailySleep
from daybook.models.snapshot import RetentionPolicy
from daybook.config import DEFAULT_TIMEZONE, DEFAULT_SNAPSHOT_MAX_DAYS, DEFAULT_SNAPSHOT_MAX_COUNT

logger = logging.getLogger(__name__)

_SETTINGS_COLUMNS = ("theme", "timezone", "auto_save")


async def get_user_settings(user_id: str) -> UserSettings:
    """Get settings, creating the default row on first read"""
    async with db.connection() as conn:
        async with conn.cursor() as cur:
            await cur.execute(
                """
                INSERT INTO user_settings (user_id, timezone)
                VALUES (%s, %s)
                ON CONFLICT (user_id) DO NOTHING
                """,
                (user_id, DEFAULT_TIMEZONE)
            )
            await cur.execute(
                "SELECT user_id, theme, timezone, auto_save FROM user_settings WHERE user_id = %s",
                (user_id,)
            )
            row = await cur.fetchone()
    return UserSettings(**row)


async def update_user_settings(user_id: str, **changes) -> UserSettings:
    """Update the given settings columns and return the new settings"""
    await get_user_settings(user_id)
    updates = {k: v for k, v in changes.items() if k in _SETTINGS_COLUMNS and v is not None}
    if updates:
        assignments = ", ".join(f"{column} = %s" for column in updates)
        async with db.connection() as conn:
            async with conn.cursor() as cur:
                await cur.execute(
                    f"UPDATE user_settings SET {assignments} WHERE user_id = %s",
                    (*[getattr(v, "value", v) for v in updates.values()], user_id)
                )
        logger.info(f"Updated settings {sorted(updates)} for user {user_id}")
    return await get_user_settings(user_id)


async def get_daily_sleep(user_id: str, date: str) -> Optional[DailySleep]:
    async with db.connection() as conn:
        async with conn.cursor() as cur:
            await cur.execute(
                """
                SELECT user_id, date, previous_bedtime, wake_time
                FROM daily_state WHERE user_id = %s AND date = %s
                """,
                (user_id, date)
            )
            row = await cur.fetchone()
    return DailySleep(**row) if row else None


async def set_daily_sleep(user_id: str, date: str, previous_bedtime: str, wake_time: str) -> DailySleep:
    async with db.connection() as conn:
        async with conn.cursor() as cur:
            await cur.execute(
                """
                INSERT INTO daily_state (user_id, date, previous_bedtime, wake_time)
                VALUES (%s, %s, %s, %s)
                ON CONFLICT (user_id, date)
                DO UPDATE SET previous_bedtime = EXCLUDED.previous_bedtime, wake_time = EXCLUDED.wake_time
                """,
                (user_id, date, previous_bedtime, wake_time)
            )
    return DailySleep(user_id=user_id, date=date, previous_bedtime=previous_bedtime, wake_time=wake_time)


async def get_retention_policy(user_id: str) -> RetentionPolicy:
    async with db.connection() as conn:
        async with conn.cursor() as cur:
            await cur.execute(
                "SELECT max_days, max_count FROM snapshot_settings WHERE user_id = %s",
                (user_id,)
            )
            row = await cur.fetchone()
    if not row:
        return RetentionPolicy(max_days=DEFAULT_SNAPSHOT_MAX_DAYS, max_count=DEFAULT_SNAPSHOT_MAX_COUNT)
    return RetentionPolicy(**row)


async def set_retention_policy(user_id: str, policy: RetentionPolicy) -> RetentionPolicy:
    async with db.connection() as conn:
        async with conn.cursor() as cur:
            await cur.execute(
                """
                INSERT INTO snapshot_settings (user_id, max_days, max_count)
                VALUES (%s, %s, %s)
                ON CONFLICT (user_id)
                DO UPDATE SET max_days = EXCLUDED.max_days, max_count = EXCLUDED.max_count
                """,
                (user_id, policy.max_days, policy.max_count)
            )
    logger.info(f"Set snapshot retention for user {user_id}: {policy.max_days} days / {policy.max_count} snapshots")
    return policy
