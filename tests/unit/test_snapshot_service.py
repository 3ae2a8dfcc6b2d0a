"""Tests for SnapshotService: save, read, delete, retention and search"""
import pytest
from datetime import datetime, timezone

from daybook.exceptions import NotFoundError, ValidationError
from daybook.models.snapshot import RetentionPolicy, SnapshotSource
from daybook.models.state import DayState, EntryView


def _state(date, *entries):
    return DayState(
        date=date,
        entries=[
            EntryView(id=i, timestamp=f"{date}T0{i}:00:00+00:00", text=text)
            for i, text in enumerate(entries, start=1)
        ],
    )


@pytest.fixture
def snapshots(container):
    return container.snapshot_service


class TestSaveAndRead:
    """Save overwrites; reads return the frozen state"""

    async def test_save_then_get(self, snapshots, test_user_id):
        # Setup
        state = _state("2024-01-04", "walked the dog")

        # Execute
        info = await snapshots.save(test_user_id, "2024-01-04", state)
        loaded = await snapshots.get(test_user_id, "2024-01-04")

        # Assert
        assert info.date == "2024-01-04"
        assert loaded == state

    async def test_save_is_idempotent_per_date(self, snapshots, store, test_user_id):
        """Saving twice leaves exactly one snapshot with the latest content"""
        await snapshots.save(test_user_id, "2024-01-04", _state("2024-01-04", "first"))
        await snapshots.save(test_user_id, "2024-01-04", _state("2024-01-04", "second"))

        listed = await snapshots.list_snapshots(test_user_id)
        loaded = await snapshots.get(test_user_id, "2024-01-04")

        assert [s.date for s in listed] == ["2024-01-04"]
        assert [e.text for e in loaded.entries] == ["second"]

    async def test_stored_document_is_versioned(self, snapshots, store, test_user_id):
        await snapshots.save(test_user_id, "2024-01-04", _state("2024-01-04"), SnapshotSource.AUTO)

        record = await store.get_snapshot(test_user_id, "2024-01-04")

        assert record.document["schemaVersion"] == 1
        assert record.document["source"] == "auto"
        assert record.document["state"]["date"] == "2024-01-04"

    async def test_legacy_document_is_readable(self, snapshots, store, test_user_id):
        await store.save_snapshot(test_user_id, "2024-01-03", {"date": "2024-01-03", "wakeTime": "06:30"})

        document = await snapshots.get_document(test_user_id, "2024-01-03")

        assert document.source == SnapshotSource.MANUAL
        assert document.state.wake_time == "06:30"

    async def test_get_missing_returns_none(self, snapshots, test_user_id):
        assert await snapshots.get(test_user_id, "2024-01-04") is None

    async def test_get_or_raise_missing(self, snapshots, test_user_id):
        with pytest.raises(NotFoundError):
            await snapshots.get_or_raise(test_user_id, "2024-01-04")

    async def test_invalid_date_rejected(self, snapshots, test_user_id):
        with pytest.raises(ValidationError):
            await snapshots.save(test_user_id, "04/01/2024", _state("2024-01-04"))

    async def test_users_are_isolated(self, snapshots, test_user_id, other_user_id):
        await snapshots.save(test_user_id, "2024-01-04", _state("2024-01-04"))

        assert await snapshots.get(other_user_id, "2024-01-04") is None


class TestDelete:

    async def test_delete_returns_remaining_most_recent_first(self, snapshots, test_user_id):
        for date in ("2024-01-02", "2024-01-03", "2024-01-04"):
            await snapshots.save(test_user_id, date, _state(date))

        remaining = await snapshots.delete(test_user_id, "2024-01-03")

        assert [s.date for s in remaining] == ["2024-01-04", "2024-01-02"]

    async def test_delete_missing_raises(self, snapshots, test_user_id):
        with pytest.raises(NotFoundError):
            await snapshots.delete(test_user_id, "2024-01-03")


class TestRetention:
    """Age bound first, then count bound"""

    async def test_default_policy(self, snapshots, test_user_id):
        policy = await snapshots.get_retention_policy(test_user_id)

        assert policy == RetentionPolicy(max_days=30, max_count=100)

    @pytest.mark.parametrize("max_days,max_count", [(0, 10), (10, 0), (-1, 10), (10, 10001), (3651, 10)])
    async def test_out_of_range_bounds_rejected(self, snapshots, test_user_id, max_days, max_count):
        with pytest.raises(ValidationError):
            await snapshots.set_retention_policy(test_user_id, max_days, max_count)

    async def test_policy_change_prunes_by_age_then_count(self, snapshots, test_user_id):
        """Today is 2024-01-05: max_days=3 keeps 01-03..01-05, max_count=2 keeps the newest two"""
        # Setup
        for date in ("2023-12-30", "2024-01-01", "2024-01-02", "2024-01-03", "2024-01-04", "2024-01-05"):
            await snapshots.save(test_user_id, date, _state(date))

        # Execute
        policy = await snapshots.set_retention_policy(test_user_id, max_days=3, max_count=2)

        # Assert
        assert policy == RetentionPolicy(max_days=3, max_count=2)
        assert [s.date for s in await snapshots.list_snapshots(test_user_id)] == ["2024-01-05", "2024-01-04"]

    async def test_age_boundary(self, snapshots, test_user_id):
        """A snapshot exactly max_days old is deleted"""
        await snapshots.save(test_user_id, "2024-01-02", _state("2024-01-02"))
        await snapshots.save(test_user_id, "2024-01-03", _state("2024-01-03"))

        await snapshots.set_retention_policy(test_user_id, max_days=3, max_count=100)

        assert [s.date for s in await snapshots.list_snapshots(test_user_id)] == ["2024-01-03"]

    async def test_save_enforces_count(self, snapshots, test_user_id):
        await snapshots.set_retention_policy(test_user_id, max_days=365, max_count=2)

        for date in ("2024-01-01", "2024-01-02", "2024-01-03"):
            await snapshots.save(test_user_id, date, _state(date))

        assert [s.date for s in await snapshots.list_snapshots(test_user_id)] == ["2024-01-03", "2024-01-02"]

    async def test_prune_returns_deleted_dates(self, snapshots, store, test_user_id):
        await store.save_snapshot(test_user_id, "2023-01-01", {"date": "2023-01-01"})

        assert await snapshots.prune(test_user_id) == ["2023-01-01"]

    async def test_prune_uses_user_timezone(self, snapshots, store, frozen_now, test_user_id):
        """2024-01-05 23:30 UTC is already 2024-01-06 in Tokyo"""
        frozen_now.set(datetime(2024, 1, 5, 23, 30, tzinfo=timezone.utc))
        await store.update_user_settings(test_user_id, timezone="Asia/Tokyo")
        await store.set_retention_policy(test_user_id, RetentionPolicy(max_days=1, max_count=100))
        await store.save_snapshot(test_user_id, "2024-01-05", {"date": "2024-01-05"})

        assert await snapshots.prune(test_user_id) == ["2024-01-05"]


class TestSearch:
    """Case-insensitive search of entries inside snapshots"""

    @pytest.fixture
    async def seeded(self, snapshots, test_user_id):
        await snapshots.save(test_user_id, "2024-01-03", _state("2024-01-03", "Ran 5k", "Read a book"))
        await snapshots.save(test_user_id, "2024-01-04", _state("2024-01-04", "ran again"))
        return snapshots

    async def test_search_all_snapshots(self, seeded, test_user_id):
        results = await seeded.search_entries(test_user_id, text="RAN")

        assert [(r["date"], r["text"]) for r in results] == [("2024-01-04", "ran again"), ("2024-01-03", "Ran 5k")]

    async def test_search_single_date(self, seeded, test_user_id):
        results = await seeded.search_entries(test_user_id, text="book", date="2024-01-03")

        assert [r["text"] for r in results] == ["Read a book"]

    async def test_date_without_text_returns_all_entries(self, seeded, test_user_id):
        results = await seeded.search_entries(test_user_id, date="2024-01-03")

        assert len(results) == 2

    async def test_no_text_no_date_returns_nothing(self, seeded, test_user_id):
        assert await seeded.search_entries(test_user_id, text="  ") == []
