"""Tests for QueryService: validation, series loading and response shapes"""
import pytest
from unittest.mock import patch

from daybook.exceptions import NotFoundError, ValidationError
from daybook.models.field import FieldType


@pytest.fixture
def queries(container):
    return container.query_service


async def _seed_field(store, user_id, key, field_type, values):
    await store.create_field_template(user_id, key, field_type)
    for date, value in values.items():
        await store.upsert_daily_field_value(user_id, date, key, value, True, field_type)


# ============================================================================
# Validation
# ============================================================================

class TestValidation:

    @pytest.mark.parametrize("start,end,field", [
        ("2024-01-10", "2024-01-01", "endDate"),
        ("2024-1-1", "2024-01-10", "startDate"),
        ("2024-01-01", "soon", "endDate"),
    ])
    def test_bad_ranges(self, start, end, field):
        from daybook.services.query_service import QueryService

        with pytest.raises(ValidationError) as exc_info:
            QueryService.validate_range(start, end)
        assert exc_info.value.field == field

    def test_range_bound(self):
        from daybook.services.query_service import QueryService

        with patch("daybook.services.query_service.ANALYTICS_MAX_RANGE_DAYS", 7):
            QueryService.validate_range("2024-01-01", "2024-01-07")
            with pytest.raises(ValidationError):
                QueryService.validate_range("2024-01-01", "2024-01-08")

    async def test_unknown_group_by(self, queries, test_user_id):
        with pytest.raises(ValidationError) as exc_info:
            await queries.query_tasks(test_user_id, "2024-01-01", "2024-01-31", group_by="hour")
        assert exc_info.value.field == "groupBy"

    async def test_keys_required(self, queries, test_user_id):
        with pytest.raises(ValidationError) as exc_info:
            await queries.query_fields(test_user_id, ["", None], "2024-01-01", "2024-01-31")
        assert exc_info.value.field == "fieldKeys"

    async def test_unknown_completion_status(self, queries, test_user_id):
        with pytest.raises(ValidationError):
            await queries.query_tasks(test_user_id, "2024-01-01", "2024-01-31", completion_status="late")


# ============================================================================
# Fields
# ============================================================================

class TestFieldQueries:

    async def test_numeric_field(self, queries, store, test_user_id):
        await _seed_field(store, test_user_id, "Mood", FieldType.NUMBER, {
            "2024-01-08": "1", "2024-01-10": "5", "2024-01-14": "9", "2024-01-20": "",
        })

        result = await queries.query_fields(test_user_id, ["Mood"], "2024-01-01", "2024-01-31", group_by="week")

        assert result["fieldKey"] == "Mood"
        assert result["fieldType"] == "number"
        assert len(result["data"]) == 1
        assert result["summary"]["avg"] == 5.0
        assert result["summary"]["count"] == 3

    async def test_boolean_field(self, queries, store, test_user_id):
        await _seed_field(store, test_user_id, "Gym", FieldType.BOOLEAN, {"2024-01-05": "true"})

        result = await queries.query_fields(test_user_id, ["Gym"], "2024-01-05", "2024-01-05")

        bucket = result["data"][0]
        assert (bucket["trueCount"], bucket["falseCount"], bucket["totalCount"], bucket["truePercentage"]) == (1, 0, 1, 100)

    async def test_non_numeric_rows_are_skipped(self, queries, store, test_user_id):
        """Values written before a type change to number are ignored"""
        await _seed_field(store, test_user_id, "Sleep", FieldType.NUMBER, {"2024-01-01": "7.5", "2024-01-02": "lots"})

        result = await queries.query_fields(test_user_id, ["Sleep"], "2024-01-01", "2024-01-31")

        assert result["summary"]["count"] == 1

    async def test_categorical_field(self, queries, store, test_user_id):
        await _seed_field(store, test_user_id, "Lunch", FieldType.TEXT, {
            "2024-01-01": "salad", "2024-01-02": "soup", "2024-01-03": "salad",
        })

        result = await queries.query_fields(test_user_id, ["Lunch"], "2024-01-01", "2024-01-31", group_by="none")

        assert result["summary"]["mostCommonValue"] == "salad"
        assert result["data"][0]["date"] == "2024-01-01"

    async def test_multiple_fields_are_combined(self, queries, store, test_user_id):
        await _seed_field(store, test_user_id, "A", FieldType.NUMBER, {"2024-01-01": "2"})
        await _seed_field(store, test_user_id, "B", FieldType.NUMBER, {"2024-01-01": "3"})

        result = await queries.query_fields(test_user_id, ["A", "B", "A"], "2024-01-01", "2024-01-31")

        assert result["fieldKeys"] == ["A", "B"]
        assert [f["fieldKey"] for f in result["fields"]] == ["A", "B"]
        assert result["combined"]["data"] == [{"date": "2024-01-01", "value": 5.0, "count": 2}]

    async def test_missing_template(self, queries, test_user_id):
        with pytest.raises(NotFoundError):
            await queries.query_fields(test_user_id, ["Ghost"], "2024-01-01", "2024-01-31")

    async def test_populated_fields(self, queries, store, test_user_id):
        await _seed_field(store, test_user_id, "Mood", FieldType.NUMBER, {"2024-01-02": "4"})
        await _seed_field(store, test_user_id, "Empty", FieldType.TEXT, {"2024-01-02": ""})

        assert await queries.populated_fields(test_user_id, "2024-01-01", "2024-01-31") == [
            {"key": "Mood", "fieldType": "number"}
        ]


# ============================================================================
# Counters and timers
# ============================================================================

class TestCounterAndTimerQueries:

    async def test_counters_combined(self, container, queries, test_user_id):
        trackers = container.tracker_service
        coffee = await trackers.create_counter(test_user_id, "Coffee")
        water = await trackers.create_counter(test_user_id, "Water")
        await trackers.set_counter(test_user_id, coffee.id, 2, date="2024-01-05")
        await trackers.set_counter(test_user_id, water.id, 5, date="2024-01-05")

        result = await queries.query_counters(test_user_id, ["Coffee", "Water"], "2024-01-05", "2024-01-05")

        assert result["counterNames"] == ["Coffee", "Water"]
        assert result["combined"]["data"] == [{"date": "2024-01-05", "value": 7.0, "count": 2}]

    async def test_single_counter_sums_by_week(self, container, queries, test_user_id):
        trackers = container.tracker_service
        coffee = await trackers.create_counter(test_user_id, "Coffee")
        await trackers.set_counter(test_user_id, coffee.id, 2, date="2024-01-01")
        await trackers.set_counter(test_user_id, coffee.id, 3, date="2024-01-03")

        result = await queries.query_counters(test_user_id, ["Coffee"], "2024-01-01", "2024-01-31", group_by="week")

        assert result["counterName"] == "Coffee"
        assert result["data"][0]["sum"] == 5.0

    async def test_missing_counter(self, queries, test_user_id):
        with pytest.raises(NotFoundError):
            await queries.query_counters(test_user_id, ["Tea"], "2024-01-01", "2024-01-31")

    async def test_timer_minutes(self, container, queries, test_user_id):
        timer = await container.tracker_service.create_timer(test_user_id, "Reading")
        await container.tracker_service.adjust_timer(test_user_id, timer.id, 90_000)

        result = await queries.query_timers(test_user_id, ["Reading"], "2024-01-01", "2024-01-31")

        assert result["timerName"] == "Reading"
        assert result["data"][0]["date"] == "2024-01-05"
        assert result["data"][0]["sum"] == 1.5

    async def test_populated_counters_and_timers(self, container, queries, test_user_id):
        counter = await container.tracker_service.create_counter(test_user_id, "Coffee")
        await container.tracker_service.increment_counter(test_user_id, counter.id)
        await container.tracker_service.create_timer(test_user_id, "Idle")

        assert await queries.populated_counters(test_user_id, "2024-01-01", "2024-01-31") == ["Coffee"]
        assert await queries.populated_timers(test_user_id, "2024-01-01", "2024-01-31") == []


# ============================================================================
# Tasks
# ============================================================================

class TestTaskQueries:

    @pytest.fixture
    async def seeded(self, container, test_user_id):
        tasks = container.task_service
        plan = {"2024-01-01": [True, False], "2024-01-02": [True, True, False], "2024-01-03": [False]}
        for date, states in plan.items():
            for i, done in enumerate(states):
                task = await tasks.create_task(test_user_id, f"{date} #{i}", date=date)
                if done:
                    await tasks.toggle_task(test_user_id, task.id)
        return container.query_service

    async def test_daily_buckets(self, seeded, test_user_id):
        result = await seeded.query_tasks(test_user_id, "2024-01-01", "2024-01-31", group_by="day")

        assert [(b["date"], b["total"], b["completed"]) for b in result["data"]] == [
            ("2024-01-01", 2, 1), ("2024-01-02", 3, 2), ("2024-01-03", 1, 0),
        ]
        assert result["summary"]["total"] == 6
        assert result["summary"]["completed"] == 3
        assert result["summary"]["completionRate"] == 0.5

    async def test_default_grouping_is_one_bucket(self, seeded, test_user_id):
        result = await seeded.query_tasks(test_user_id, "2024-01-01", "2024-01-31")

        assert len(result["data"]) == 1
        assert result["data"][0]["date"] == "2024-01-01"

    async def test_completion_filter(self, seeded, test_user_id):
        result = await seeded.query_tasks(test_user_id, "2024-01-01", "2024-01-31", completion_status="incomplete")

        assert result["summary"]["total"] == 3
        assert result["summary"]["completed"] == 0
