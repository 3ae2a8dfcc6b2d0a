"""
StateService - Day State Reads

Answers "what did this user's day look like" for today or any date:
TimezoneClock for "today", the StateCache in front of live materialization,
and snapshots for dates that have already ended.
"""

import logging
from typing import Optional

from daybook.models.snapshot import SnapshotSource
from daybook.models.state import DayState
from daybook.services.snapshot_service import SnapshotService
from daybook.services.state_materializer import materialize_state
from daybook.utils.cache import StateCache
from daybook.utils.datetime_helpers import TimezoneClock, parse_date_key, previous_date_key

logger = logging.getLogger(__name__)


class StateService:
    """
    Service for reading materialized day states.

    Responsibilities:
    - Live materialization of a date from raw rows
    - Cache read-through for live states
    - Preferring snapshots for past dates
    - Automatic snapshot capture when a new day is first read
    """

    def __init__(self, store, cache: StateCache, clock: TimezoneClock, snapshots: SnapshotService):
        self.store = store
        self.cache = cache
        self.clock = clock
        self.snapshots = snapshots

    async def materialize(self, user_id: str, date: str) -> DayState:
        """Build the live state for a date from storage, bypassing cache and snapshots"""
        templates = await self.store.get_field_templates(user_id)
        field_values = await self.store.get_daily_field_values(user_id, date)
        sleep = await self.store.get_daily_sleep(user_id, date)
        tasks = await self.store.get_tasks_for_date(user_id, date)
        counters = await self.store.get_counters(user_id)
        counter_values = await self.store.get_counter_values(user_id, date)
        entries = await self.store.get_entries(user_id, date)
        time_since = await self.store.get_time_since_trackers(user_id)
        timers = await self.store.get_duration_trackers(user_id)

        return materialize_state(
            date,
            sleep=sleep,
            templates=templates,
            field_values=field_values,
            tasks=tasks,
            counters=counters,
            counter_values=counter_values,
            entries=entries,
            time_since_trackers=time_since,
            duration_trackers=timers,
        )

    async def get_live_state(self, user_id: str, date: str, today: Optional[str] = None) -> DayState:
        """
        Live state through the cache.

        On a cache miss for the user's today, automatic snapshot capture runs.
        """
        async def load() -> DayState:
            state = await self.materialize(user_id, date)
            if today is not None and date == today:
                await self._auto_capture(user_id, today, state)
            return state

        return await self.cache.get_or_load(user_id, date, load)

    async def get_state_for_date(self, user_id: str, date: str) -> DayState:
        """
        State for any date.

        Dates before the user's today are served from their snapshot when one
        exists. Today and later are always live.

        Raises:
            ValidationError: If date is not a YYYY-MM-DD key
        """
        parse_date_key(date)
        today = await self.clock.today(user_id)

        if date < today:
            frozen = await self.snapshots.get(user_id, date)
            if frozen is not None:
                logger.debug(f"Serving snapshot for user {user_id} on {date}")
                return frozen

        return await self.get_live_state(user_id, date, today=today)

    async def get_state(self, user_id: str) -> DayState:
        """State for the user's current date"""
        today = await self.clock.today(user_id)
        return await self.get_live_state(user_id, today, today=today)

    async def save_snapshot(self, user_id: str, date: Optional[str] = None):
        """
        Capture the live state of a date (today by default) as a manual snapshot.

        Returns:
            SnapshotInfo of the saved snapshot
        """
        today = await self.clock.today(user_id)
        target = date or today
        parse_date_key(target)
        state = await self.materialize(user_id, target)
        return await self.snapshots.save(user_id, target, state, SnapshotSource.MANUAL)

    async def _auto_capture(self, user_id: str, today: str, state: DayState) -> None:
        """
        Snapshot rules applied when today's state is first materialized.

        - The day before today is captured from live rows if it has no
          snapshot (and has activity) or only an early checkpoint.
          It is skipped when the retention policy would prune it at once.
        - Today gets a checkpoint if it has no snapshot yet.

        Failures are logged and never fail the read.
        """
        try:
            settings = await self.store.get_user_settings(user_id)
            if not settings.auto_save:
                return

            prior = previous_date_key(today)
            prior_document = await self.snapshots.get_document(user_id, prior)
            if not await self.snapshots.would_retain(user_id, prior, today, also_kept=(today,)):
                logger.debug(f"Skipping rollover of {prior} for user {user_id}: outside retention policy")
            elif prior_document is None:
                if await self.store.has_activity(user_id, prior):
                    await self.snapshots.save(
                        user_id, prior, await self.materialize(user_id, prior), SnapshotSource.ROLLOVER
                    )
            elif prior_document.source == SnapshotSource.AUTO:
                await self.snapshots.save(
                    user_id, prior, await self.materialize(user_id, prior), SnapshotSource.ROLLOVER
                )

            if await self.store.get_snapshot(user_id, today) is None:
                await self.snapshots.save(user_id, today, state, SnapshotSource.AUTO)

        except Exception as e:
            logger.error(f"Automatic snapshot capture failed for user {user_id} on {today}: {e}", exc_info=True)
