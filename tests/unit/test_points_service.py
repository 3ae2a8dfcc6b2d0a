"""Tests for PointsService"""
import pytest

from daybook.exceptions import NotFoundError, ValidationError

TODAY = "2024-01-05"


@pytest.fixture
def points(container):
    return container.points_service


async def _earn(container, user_id, *amounts):
    """Create and complete one task per amount"""
    for amount in amounts:
        task = await container.task_service.create_task(user_id, f"worth {amount}", points=amount)
        await container.task_service.toggle_task(user_id, task.id)


class TestBalance:

    async def test_empty(self, points, test_user_id):
        balance = await points.get_balance(test_user_id)

        assert (balance.earned, balance.redeemed, balance.balance) == (0, 0, 0)

    async def test_only_completed_tasks_count(self, points, container, test_user_id):
        await _earn(container, test_user_id, 5, 3)
        await container.task_service.create_task(test_user_id, "still open", points=10)

        balance = await points.get_balance(test_user_id)

        assert balance.earned == 8
        assert balance.balance == 8

    async def test_reopened_task_gives_points_back(self, points, container, test_user_id):
        task = await container.task_service.create_task(test_user_id, "gym", points=4)
        await container.task_service.toggle_task(test_user_id, task.id)
        await container.task_service.toggle_task(test_user_id, task.id)

        assert (await points.get_balance(test_user_id)).earned == 0

    async def test_balances_are_per_user(self, points, container, test_user_id, other_user_id):
        await _earn(container, test_user_id, 7)

        assert (await points.get_balance(other_user_id)).balance == 0


class TestRedeem:

    async def test_spends_points_and_adds_reward_task(self, points, container, store, test_user_id):
        await _earn(container, test_user_id, 10)

        receipt = await points.redeem(test_user_id, " movie night ", 6)

        assert receipt.redemption.reward_description == "movie night"
        assert receipt.redemption.points_cost == 6
        assert (receipt.balance.earned, receipt.balance.redeemed, receipt.balance.balance) == (10, 6, 4)
        assert receipt.task.date == TODAY
        assert receipt.task.text == "\U0001F381 movie night"
        assert receipt.task.details == "Redeemed for 6 points"
        assert receipt.task.points == 0
        assert (await store.get_task(test_user_id, receipt.task.id)) is not None

    async def test_exact_balance_can_be_spent(self, points, container, test_user_id):
        await _earn(container, test_user_id, 5)

        receipt = await points.redeem(test_user_id, "ice cream", 5)

        assert receipt.balance.balance == 0

    async def test_insufficient_points_writes_nothing(self, points, container, store, test_user_id):
        await _earn(container, test_user_id, 3)
        tasks_before = await store.get_all_tasks(test_user_id)

        with pytest.raises(ValidationError) as exc_info:
            await points.redeem(test_user_id, "new bike", 50)

        assert exc_info.value.field == "pointsCost"
        assert await points.list_redemptions(test_user_id) == []
        assert await store.get_all_tasks(test_user_id) == tasks_before

    @pytest.mark.parametrize("description,cost,field", [
        ("  ", 5, "rewardDescription"),
        ("treat", 0, "pointsCost"),
        ("treat", -2, "pointsCost"),
    ])
    async def test_validation(self, points, container, test_user_id, description, cost, field):
        await _earn(container, test_user_id, 10)

        with pytest.raises(ValidationError) as exc_info:
            await points.redeem(test_user_id, description, cost)
        assert exc_info.value.field == field

    async def test_reward_task_appears_in_cached_state(self, points, container, test_user_id):
        await _earn(container, test_user_id, 10)
        await container.state_service.get_state(test_user_id)

        await points.redeem(test_user_id, "long bath", 2)

        state = await container.state_service.get_state(test_user_id)
        assert "\U0001F381 long bath" in [t.text for t in state.daily_tasks]


class TestRedemptions:

    async def test_listed_newest_first(self, points, container, test_user_id):
        await _earn(container, test_user_id, 10)
        await points.redeem(test_user_id, "coffee", 1)
        await points.redeem(test_user_id, "cake", 2)

        listed = await points.list_redemptions(test_user_id)

        assert [r.reward_description for r in listed] == ["cake", "coffee"]

    async def test_cancel_refunds(self, points, container, test_user_id):
        await _earn(container, test_user_id, 10)
        receipt = await points.redeem(test_user_id, "game", 8)

        balance = await points.cancel_redemption(test_user_id, receipt.redemption.id)

        assert (balance.redeemed, balance.balance) == (0, 10)
        assert await points.list_redemptions(test_user_id) == []

    async def test_cancel_keeps_reward_task(self, points, container, store, test_user_id):
        await _earn(container, test_user_id, 10)
        receipt = await points.redeem(test_user_id, "game", 8)

        await points.cancel_redemption(test_user_id, receipt.redemption.id)

        assert (await store.get_task(test_user_id, receipt.task.id)) is not None

    async def test_cancel_unknown_raises(self, points, test_user_id):
        with pytest.raises(NotFoundError):
            await points.cancel_redemption(test_user_id, 999)

    async def test_cannot_cancel_another_users_redemption(self, points, container, test_user_id, other_user_id):
        await _earn(container, test_user_id, 10)
        receipt = await points.redeem(test_user_id, "game", 8)

        with pytest.raises(NotFoundError):
            await points.cancel_redemption(other_user_id, receipt.redemption.id)

        assert len(await points.list_redemptions(test_user_id)) == 1
