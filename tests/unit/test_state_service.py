"""Tests for StateService: live reads, cache, snapshot preference and auto-capture"""
import asyncio
import pytest
from unittest.mock import AsyncMock, patch

from daybook.db.memory_store import InMemoryJournalStore
from daybook.models.snapshot import SnapshotSource
from daybook.models.state import DayState
from daybook.services.container import ServiceContainer
from daybook.utils.datetime_helpers import TimezoneClock

TODAY = "2024-01-05"
YESTERDAY = "2024-01-04"


@pytest.fixture
def state_service(container):
    return container.state_service


class GatedStore(InMemoryJournalStore):
    """Store whose next entry read waits on a gate after reading its rows"""

    def __init__(self):
        super().__init__()
        self.gate = None
        self.paused = asyncio.Event()

    async def get_entries(self, user_id, date):
        rows = await super().get_entries(user_id, date)
        gate, self.gate = self.gate, None
        if gate is not None:
            self.paused.set()
            await gate.wait()
        return rows


async def _source(container, user_id, date):
    document = await container.snapshot_service.get_document(user_id, date)
    return document.source if document else None


# ============================================================================
# Live reads and cache
# ============================================================================

class TestLiveState:

    async def test_empty_day(self, state_service, test_user_id):
        state = await state_service.get_state(test_user_id)

        assert isinstance(state, DayState)
        assert state.date == TODAY
        assert state.entries == []

    async def test_second_read_is_served_from_cache(self, state_service, cache, test_user_id):
        await state_service.get_state(test_user_id)

        with patch.object(state_service, "materialize", new=AsyncMock()) as mock_materialize:
            await state_service.get_state(test_user_id)

        mock_materialize.assert_not_called()
        assert cache.stats()["hits"] == 1

    async def test_read_after_write(self, container, test_user_id):
        """A mutation is visible on the very next read"""
        # Setup
        state_service = container.state_service
        await state_service.get_state(test_user_id)

        # Execute
        await container.journal_service.create_entry(test_user_id, "morning run")
        state = await state_service.get_state(test_user_id)

        # Assert
        assert [e.text for e in state.entries] == ["morning run"]

    async def test_returned_state_cannot_corrupt_cache(self, state_service, test_user_id):
        state = await state_service.get_state(test_user_id)
        state.wake_time = "tampered"

        again = await state_service.get_state(test_user_id)

        assert again.wake_time == ""

    async def test_today_follows_user_timezone(self, state_service, store, frozen_now, test_user_id):
        from datetime import datetime, timezone

        frozen_now.set(datetime(2024, 1, 5, 23, 30, tzinfo=timezone.utc))
        await store.update_user_settings(test_user_id, timezone="Asia/Tokyo")

        state = await state_service.get_state(test_user_id)

        assert state.date == "2024-01-06"

    async def test_write_during_slow_read_is_not_lost(self, cache, frozen_now, test_user_id):
        """A read that started before a committed write must not cache its older state"""
        # Setup
        store = GatedStore()
        container = ServiceContainer(store=store, cache=cache, clock=TimezoneClock(store, now=frozen_now))
        store.gate = asyncio.Event()

        # Execute
        read = asyncio.create_task(container.state_service.get_state(test_user_id))
        await store.paused.wait()
        await container.journal_service.create_entry(test_user_id, "morning run")
        store.gate.set()
        stale = await read
        state = await container.state_service.get_state(test_user_id)

        # Assert
        assert stale.entries == []
        assert [e.text for e in state.entries] == ["morning run"]


# ============================================================================
# Snapshot preference
# ============================================================================

class TestStateForDate:

    async def test_past_date_prefers_snapshot(self, container, store, test_user_id):
        # Setup
        await store.create_entry(test_user_id, "2024-01-03", "frozen")
        await container.state_service.save_snapshot(test_user_id, "2024-01-03")
        await store.create_entry(test_user_id, "2024-01-03", "added later")

        # Execute
        state = await container.state_service.get_state_for_date(test_user_id, "2024-01-03")

        # Assert
        assert [e.text for e in state.entries] == ["frozen"]

    async def test_past_date_without_snapshot_is_live(self, container, store, test_user_id):
        await store.create_entry(test_user_id, "2024-01-03", "live")

        state = await container.state_service.get_state_for_date(test_user_id, "2024-01-03")

        assert [e.text for e in state.entries] == ["live"]

    async def test_today_is_always_live(self, container, store, test_user_id):
        await container.state_service.save_snapshot(test_user_id)
        await store.create_entry(test_user_id, TODAY, "after snapshot")

        state = await container.state_service.get_state_for_date(test_user_id, TODAY)

        assert [e.text for e in state.entries] == ["after snapshot"]

    async def test_future_date_is_live(self, container, test_user_id):
        state = await container.state_service.get_state_for_date(test_user_id, "2024-02-01")

        assert state.date == "2024-02-01"

    async def test_invalid_date(self, container, test_user_id):
        from daybook.exceptions import ValidationError

        with pytest.raises(ValidationError):
            await container.state_service.get_state_for_date(test_user_id, "yesterday")


# ============================================================================
# Auto-capture
# ============================================================================

class TestAutoCapture:
    """Snapshots taken when today's state is first materialized"""

    async def test_first_read_checkpoints_today(self, container, test_user_id):
        await container.state_service.get_state(test_user_id)

        assert await _source(container, test_user_id, TODAY) == SnapshotSource.AUTO

    async def test_quiet_prior_day_is_not_captured(self, container, test_user_id):
        await container.state_service.get_state(test_user_id)

        assert await _source(container, test_user_id, YESTERDAY) is None

    async def test_prior_day_with_activity_is_rolled_over(self, container, store, test_user_id):
        await store.create_entry(test_user_id, YESTERDAY, "late night notes")

        await container.state_service.get_state(test_user_id)

        frozen = await container.snapshot_service.get(test_user_id, YESTERDAY)
        assert await _source(container, test_user_id, YESTERDAY) == SnapshotSource.ROLLOVER
        assert [e.text for e in frozen.entries] == ["late night notes"]

    async def test_prior_checkpoint_is_replaced_by_rollover(self, container, store, test_user_id):
        """An early-morning checkpoint is superseded by the end-of-day capture"""
        # Setup
        await container.snapshot_service.save(
            test_user_id, YESTERDAY, DayState(date=YESTERDAY), SnapshotSource.AUTO
        )
        await store.create_entry(test_user_id, YESTERDAY, "written after checkpoint")

        # Execute
        await container.state_service.get_state(test_user_id)

        # Assert
        frozen = await container.snapshot_service.get(test_user_id, YESTERDAY)
        assert await _source(container, test_user_id, YESTERDAY) == SnapshotSource.ROLLOVER
        assert [e.text for e in frozen.entries] == ["written after checkpoint"]

    async def test_manual_snapshot_never_overwritten(self, container, store, test_user_id):
        await container.state_service.save_snapshot(test_user_id, YESTERDAY)
        await store.create_entry(test_user_id, YESTERDAY, "after manual save")

        await container.state_service.get_state(test_user_id)

        frozen = await container.snapshot_service.get(test_user_id, YESTERDAY)
        assert await _source(container, test_user_id, YESTERDAY) == SnapshotSource.MANUAL
        assert frozen.entries == []

    async def test_existing_snapshot_for_today_is_kept(self, container, test_user_id):
        await container.state_service.save_snapshot(test_user_id)

        await container.state_service.get_state(test_user_id)

        assert await _source(container, test_user_id, TODAY) == SnapshotSource.MANUAL

    async def test_disabled_by_auto_save_setting(self, container, store, test_user_id):
        await store.update_user_settings(test_user_id, auto_save=False)
        await store.create_entry(test_user_id, YESTERDAY, "note")

        await container.state_service.get_state(test_user_id)

        assert await container.snapshot_service.list_snapshots(test_user_id) == []

    async def test_past_date_read_does_not_capture(self, container, test_user_id):
        await container.state_service.get_state_for_date(test_user_id, "2024-01-02")

        assert await container.snapshot_service.list_snapshots(test_user_id) == []

    async def test_capture_failure_does_not_fail_read(self, container, test_user_id):
        snapshots = container.snapshot_service

        with patch.object(snapshots, "save", new=AsyncMock(side_effect=RuntimeError("disk full"))):
            state = await container.state_service.get_state(test_user_id)

        assert state.date == TODAY

    @pytest.mark.parametrize("max_days,max_count", [(1, 100), (30, 1)])
    async def test_prior_day_outside_retention_is_not_captured(
        self, container, store, cache, test_user_id, max_days, max_count
    ):
        """Repeated cache misses never write a rollover that pruning would delete at once"""
        # Setup
        snapshots = container.snapshot_service
        await snapshots.set_retention_policy(test_user_id, max_days, max_count)
        await store.create_entry(test_user_id, YESTERDAY, "late night notes")

        # Execute
        with patch.object(snapshots, "save", new=AsyncMock(wraps=snapshots.save)) as mock_save:
            for _ in range(3):
                await container.state_service.get_state(test_user_id)
                cache.invalidate(test_user_id)

        # Assert
        saved = [(c.args[1], c.args[3]) for c in mock_save.call_args_list]
        assert (YESTERDAY, SnapshotSource.ROLLOVER) not in saved
        assert saved == [(TODAY, SnapshotSource.AUTO)]
        assert [s.date for s in await snapshots.list_snapshots(test_user_id)] == [TODAY]

    async def test_prior_day_inside_retention_is_captured(self, container, store, test_user_id):
        await container.snapshot_service.set_retention_policy(test_user_id, 2, 2)
        await store.create_entry(test_user_id, YESTERDAY, "late night notes")

        await container.state_service.get_state(test_user_id)

        assert await _source(container, test_user_id, YESTERDAY) == SnapshotSource.ROLLOVER
