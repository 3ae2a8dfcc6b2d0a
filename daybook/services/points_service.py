"""
PointsService - Task Points and Rewards

Points are earned by completing tasks that carry them. Redeeming spends
points on a reward, which shows up as a task on the user's today; cancelling
a redemption refunds its cost and leaves the reward task in place.
"""

import logging

from daybook.exceptions import NotFoundError, ValidationError
from daybook.models.task import PointsBalance, PointsRedemption, RedemptionReceipt
from daybook.services.base import MutationService

logger = logging.getLogger(__name__)

REWARD_PREFIX = "\U0001F381 "


class PointsService(MutationService):
    """Balance, redemption and refund of task points"""

    async def get_balance(self, user_id: str) -> PointsBalance:
        return await self.store.get_points_balance(user_id)

    async def list_redemptions(self, user_id: str) -> list[PointsRedemption]:
        return await self.store.get_redemptions(user_id)

    async def redeem(self, user_id: str, reward_description: str, points_cost: int) -> RedemptionReceipt:
        """
        Spend points on a reward.

        The redemption and its reward task on today are written together.

        Raises:
            ValidationError: Empty description, non-positive cost, or a cost
                above the current balance
        """
        reward_description = (reward_description or "").strip()
        if not reward_description:
            raise ValidationError("is required", field="rewardDescription", value=reward_description, user_id=user_id)
        if points_cost <= 0:
            raise ValidationError("must be > 0", field="pointsCost", value=points_cost, user_id=user_id)

        today = await self.clock.today(user_id)

        async with self.store.transaction():
            current = await self.store.get_points_balance(user_id)
            if current.balance < points_cost:
                raise ValidationError(
                    f"insufficient points: balance is {current.balance}",
                    field="pointsCost",
                    value=points_cost,
                    user_id=user_id
                )
            redemption = await self.store.create_redemption(user_id, reward_description, points_cost)
            task = await self.store.create_task(
                user_id,
                today,
                REWARD_PREFIX + reward_description,
                due_date=today,
                details=f"Redeemed for {points_cost} points",
            )
            balance = await self.store.get_points_balance(user_id)

        self._invalidate(user_id)
        logger.info(f"User {user_id} redeemed {points_cost} points for {reward_description!r}")
        return RedemptionReceipt(redemption=redemption, task=task, balance=balance)

    async def cancel_redemption(self, user_id: str, redemption_id: int) -> PointsBalance:
        """Delete a redemption, refunding its cost; returns the new balance"""
        if not await self.store.delete_redemption(user_id, redemption_id):
            raise NotFoundError(
                f"Redemption {redemption_id} not found",
                record_type="Redemption",
                record_id=redemption_id,
                user_id=user_id
            )
        logger.info(f"User {user_id} cancelled redemption {redemption_id}")
        return await self.store.get_points_balance(user_id)
