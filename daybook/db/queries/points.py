"""Points balance and redemption queries"""
import logging
from daybook.db.connection import db
from daybook.models.task import PointsBalance, PointsRedemption

logger = logging.getLogger(__name__)

_REDEMPTION_COLUMNS = "id, user_id, reward_description, points_cost, redeemed_at"


async def get_points_balance(user_id: str) -> PointsBalance:
    """Points from completed tasks, points redeemed, and their difference"""
    async with db.connection() as conn:
        async with conn.cursor() as cur:
            await cur.execute(
                """
                SELECT
                    (SELECT COALESCE(SUM(points), 0) FROM daily_tasks
                     WHERE user_id = %(u)s AND done AND points > 0) AS earned,
                    (SELECT COALESCE(SUM(points_cost), 0) FROM points_redemptions
                     WHERE user_id = %(u)s) AS redeemed
                """,
                {"u": user_id}
            )
            row = await cur.fetchone()
    earned, redeemed = int(row["earned"]), int(row["redeemed"])
    return PointsBalance(earned=earned, redeemed=redeemed, balance=earned - redeemed)


async def create_redemption(user_id: str, reward_description: str, points_cost: int) -> PointsRedemption:
    async with db.connection() as conn:
        async with conn.cursor() as cur:
            await cur.execute(
                f"""
                INSERT INTO points_redemptions (user_id, reward_description, points_cost)
                VALUES (%s, %s, %s)
                RETURNING {_REDEMPTION_COLUMNS}
                """,
                (user_id, reward_description, points_cost)
            )
            row = await cur.fetchone()
    logger.debug(f"Created redemption {row['id']} for user {user_id}")
    return PointsRedemption(**row)


async def get_redemptions(user_id: str) -> list[PointsRedemption]:
    """Redemptions for a user, newest first"""
    async with db.connection() as conn:
        async with conn.cursor() as cur:
            await cur.execute(
                f"""
                SELECT {_REDEMPTION_COLUMNS} FROM points_redemptions
                WHERE user_id = %s ORDER BY redeemed_at DESC, id DESC
                """,
                (user_id,)
            )
            rows = await cur.fetchall()
    return [PointsRedemption(**row) for row in rows]


async def delete_redemption(user_id: str, redemption_id: int) -> bool:
    async with db.connection() as conn:
        async with conn.cursor() as cur:
            await cur.execute(
                "DELETE FROM points_redemptions WHERE user_id = %s AND id = %s",
                (user_id, redemption_id)
            )
            return cur.rowcount > 0
