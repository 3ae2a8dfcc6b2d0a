"""Display order rewrites shared by every reorderable table"""
import logging
from daybook.db.connection import db
from daybook.db.schema import REORDERABLE_TABLES

logger = logging.getLogger(__name__)


async def reorder(user_id: str, table: str, items: list[tuple[int, int]]) -> int:
    """
    Set order_index for rows of one table in a single transaction

    Args:
        user_id: Owner; rows of other users are left untouched
        table: One of REORDERABLE_TABLES
        items: (row_id, order_index) pairs

    Returns:
        Number of rows updated
    """
    if table not in REORDERABLE_TABLES:
        raise ValueError(f"Table {table!r} is not reorderable")

    updated = 0
    async with db.transaction() as conn:
        async with conn.cursor() as cur:
            for row_id, order_index in items:
                await cur.execute(
                    f"UPDATE {table} SET order_index = %s WHERE user_id = %s AND id = %s",
                    (order_index, user_id, row_id)
                )
                updated += cur.rowcount
    logger.debug(f"Reordered {updated} rows in {table} for user {user_id}")
    return updated
