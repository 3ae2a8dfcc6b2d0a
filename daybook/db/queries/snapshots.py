"""Snapshot queries"""
import logging
from typing import Any, Optional
from psycopg.types.json import Jsonb
from daybook.db.connection import db
from daybook.models.snapshot import SnapshotRecord, SnapshotInfo

logger = logging.getLogger(__name__)


async def get_snapshot(user_id: str, date: str) -> Optional[SnapshotRecord]:
    async with db.connection() as conn:
        async with conn.cursor() as cur:
            await cur.execute(
                "SELECT user_id, date, document, created_at FROM snapshots WHERE user_id = %s AND date = %s",
                (user_id, date)
            )
            row = await cur.fetchone()
    return SnapshotRecord(**row) if row else None


async def save_snapshot(user_id: str, date: str, document: dict[str, Any]) -> SnapshotRecord:
    """Insert or overwrite the snapshot for a date; created_at is reset"""
    async with db.connection() as conn:
        async with conn.cursor() as cur:
            await cur.execute(
                """
                INSERT INTO snapshots (user_id, date, document, created_at)
                VALUES (%s, %s, %s, NOW())
                ON CONFLICT (user_id, date)
                DO UPDATE SET document = EXCLUDED.document, created_at = NOW()
                RETURNING user_id, date, document, created_at
                """,
                (user_id, date, Jsonb(document))
            )
            row = await cur.fetchone()
    return SnapshotRecord(**row)


async def delete_snapshot(user_id: str, date: str) -> bool:
    async with db.connection() as conn:
        async with conn.cursor() as cur:
            await cur.execute(
                "DELETE FROM snapshots WHERE user_id = %s AND date = %s",
                (user_id, date)
            )
            return cur.rowcount > 0


async def delete_snapshots(user_id: str, dates: list[str]) -> int:
    if not dates:
        return 0
    async with db.connection() as conn:
        async with conn.cursor() as cur:
            await cur.execute(
                "DELETE FROM snapshots WHERE user_id = %s AND date = ANY(%s)",
                (user_id, list(dates))
            )
            return cur.rowcount


async def list_snapshots(user_id: str) -> list[SnapshotInfo]:
    """Snapshot dates for a user, most recent first"""
    async with db.connection() as conn:
        async with conn.cursor() as cur:
            await cur.execute(
                "SELECT date, created_at FROM snapshots WHERE user_id = %s ORDER BY date DESC",
                (user_id,)
            )
            rows = await cur.fetchall()
    return [SnapshotInfo(**row) for row in rows]
