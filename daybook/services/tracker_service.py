"""
TrackerService - Counters, Timers, Time-Since Trackers

Counters hold one integer per date. Timers and time-since trackers are
global; every bit of time a timer accrues is also added to its per-date total
so timer analytics have raw rows to read.
"""

import logging
from datetime import datetime, timedelta
from typing import Optional

from daybook.exceptions import ConflictError, NotFoundError, ValidationError
from daybook.models.tracker import CustomCounter, DurationTracker, TimeSinceTracker
from daybook.services.base import MutationService
from daybook.utils.datetime_helpers import format_time_in_timezone, parse_date_key

logger = logging.getLogger(__name__)


def format_duration(elapsed_ms: int) -> str:
    """Milliseconds as HH:MM:SS"""
    total_seconds = max(int(elapsed_ms), 0) // 1000
    hours, remainder = divmod(total_seconds, 3600)
    minutes, seconds = divmod(remainder, 60)
    return f"{hours:02d}:{minutes:02d}:{seconds:02d}"


class TrackerService(MutationService):
    """
    Service for counters and trackers.

    Responsibilities:
    - Counter lifecycle and per-date value changes (logged)
    - Time-since tracker lifecycle
    - Timer lifecycle: start, pause, stop, lock, adjust, reset, manual time
    - Per-date timer totals
    """

    # ==========================================
    # Counters
    # ==========================================

    async def _counter_or_raise(self, user_id: str, counter_id: int) -> CustomCounter:
        counter = await self.store.get_counter(user_id, counter_id)
        if counter is None:
            raise NotFoundError(
                f"Counter {counter_id} not found",
                record_type="Counter",
                record_id=counter_id,
                user_id=user_id
            )
        return counter

    async def create_counter(self, user_id: str, name: str) -> CustomCounter:
        name = (name or "").strip()
        if not name:
            raise ValidationError("is required", field="name", value=name, user_id=user_id)
        if await self.store.get_counter_by_name(user_id, name):
            raise ConflictError(
                f"Counter '{name}' already exists",
                record_type="Counter",
                key=name,
                user_id=user_id
            )

        counter = await self.store.create_counter(user_id, name)
        self._invalidate(user_id)
        logger.info(f"Created counter '{name}' for user {user_id}")
        return counter

    async def delete_counter(self, user_id: str, counter_id: int) -> None:
        """Delete a counter and all of its per-date values"""
        if not await self.store.delete_counter(user_id, counter_id):
            raise NotFoundError(
                f"Counter {counter_id} not found",
                record_type="Counter",
                record_id=counter_id,
                user_id=user_id
            )
        self._invalidate(user_id)

    async def increment_counter(self, user_id: str, counter_id: int, date: Optional[str] = None) -> int:
        """
        Add 1 to a counter on a date (today by default).

        Returns:
            The new value
        """
        counter = await self._counter_or_raise(user_id, counter_id)
        date = await self._resolve_date(user_id, date)

        async with self.store.transaction():
            values = await self.store.get_counter_values(user_id, date)
            value = values.get(counter_id, 0) + 1
            await self.store.set_counter_value(user_id, counter_id, date, value)
            await self._append_log(user_id, date, f'Added 1 to "{counter.name}" counter (now at {value})')

        self._invalidate(user_id, date)
        return value

    async def decrement_counter(self, user_id: str, counter_id: int, date: Optional[str] = None) -> int:
        """
        Remove 1 from a counter on a date. A counter at 0 stays at 0 and
        nothing is logged.

        Returns:
            The new value
        """
        counter = await self._counter_or_raise(user_id, counter_id)
        date = await self._resolve_date(user_id, date)

        async with self.store.transaction():
            values = await self.store.get_counter_values(user_id, date)
            current = values.get(counter_id, 0)
            if current == 0:
                return 0
            value = current - 1
            await self.store.set_counter_value(user_id, counter_id, date, value)
            await self._append_log(user_id, date, f'Removed 1 from "{counter.name}" counter (now at {value})')

        self._invalidate(user_id, date)
        return value

    async def set_counter(self, user_id: str, counter_id: int, value: int, date: Optional[str] = None) -> int:
        """
        Set a counter to an absolute value; logged only when it changes.

        Raises:
            ValidationError: If value is negative
        """
        if value < 0:
            raise ValidationError("must be >= 0", field="value", value=value, user_id=user_id)
        counter = await self._counter_or_raise(user_id, counter_id)
        date = await self._resolve_date(user_id, date)

        async with self.store.transaction():
            values = await self.store.get_counter_values(user_id, date)
            current = values.get(counter_id, 0)
            await self.store.set_counter_value(user_id, counter_id, date, value)
            if value != current:
                direction = "added" if value > current else "removed"
                await self._append_log(
                    user_id,
                    date,
                    f'Set "{counter.name}" counter to {value} ({direction} {abs(value - current)})'
                )

        self._invalidate(user_id, date)
        return value

    # ==========================================
    # Time-since trackers
    # ==========================================

    async def create_time_since_tracker(self, user_id: str, name: str, date: str) -> TimeSinceTracker:
        name = (name or "").strip()
        if not name:
            raise ValidationError("is required", field="name", value=name, user_id=user_id)
        parse_date_key(date)

        tracker = await self.store.create_time_since_tracker(user_id, name, date)
        self._invalidate(user_id)
        return tracker

    async def delete_time_since_tracker(self, user_id: str, tracker_id: int) -> None:
        if not await self.store.delete_time_since_tracker(user_id, tracker_id):
            raise NotFoundError(
                f"Time-since tracker {tracker_id} not found",
                record_type="Time-since tracker",
                record_id=tracker_id,
                user_id=user_id
            )
        self._invalidate(user_id)

    # ==========================================
    # Timers
    # ==========================================

    async def _timer_or_raise(self, user_id: str, tracker_id: int) -> DurationTracker:
        timer = await self.store.get_duration_tracker(user_id, tracker_id)
        if timer is None:
            raise NotFoundError(
                f"Timer {tracker_id} not found",
                record_type="Timer",
                record_id=tracker_id,
                user_id=user_id
            )
        return timer

    async def _accrue(self, user_id: str, timer: DurationTracker, now: datetime) -> tuple[int, int]:
        """
        Time run since start_time, added to today's total.

        Returns:
            (elapsed_ms including the run, milliseconds accrued)
        """
        if not timer.is_running or timer.start_time is None:
            return timer.elapsed_ms, 0

        run_ms = max(int((now - timer.start_time).total_seconds() * 1000), 0)
        if run_ms:
            today = await self.clock.today(user_id)
            await self.store.add_timer_daily_total(user_id, timer.id, today, run_ms)
        return timer.elapsed_ms + run_ms, run_ms

    async def _log_stop(self, user_id: str, timer: DurationTracker, elapsed_ms: int, now: datetime) -> None:
        tz_name = await self.clock.user_timezone(user_id)
        today = await self.clock.today(user_id)
        await self._append_log(
            user_id,
            today,
            f'Stopped "{timer.name}" timer (elapsed: {format_duration(elapsed_ms)}, '
            f'completed at: {format_time_in_timezone(now, tz_name)})'
        )

    async def create_timer(self, user_id: str, name: str) -> DurationTracker:
        name = (name or "").strip()
        if not name:
            raise ValidationError("is required", field="name", value=name, user_id=user_id)

        timer = await self.store.create_duration_tracker(user_id, name)
        self._invalidate(user_id)
        return timer

    async def delete_timer(self, user_id: str, tracker_id: int) -> None:
        if not await self.store.delete_duration_tracker(user_id, tracker_id):
            raise NotFoundError(
                f"Timer {tracker_id} not found",
                record_type="Timer",
                record_id=tracker_id,
                user_id=user_id
            )
        self._invalidate(user_id)

    async def start_timer(self, user_id: str, tracker_id: int) -> DurationTracker:
        """Start (or resume) a timer; starting unlocks it"""
        timer = await self._timer_or_raise(user_id, tracker_id)
        if timer.is_running:
            return timer

        timer = await self.store.update_duration_tracker(
            user_id, tracker_id, is_running=True, is_locked=False, start_time=self.clock.now()
        )
        self._invalidate(user_id)
        return timer

    async def pause_timer(self, user_id: str, tracker_id: int) -> DurationTracker:
        timer = await self._timer_or_raise(user_id, tracker_id)
        if not timer.is_running:
            return timer

        now = self.clock.now()
        async with self.store.transaction():
            elapsed_ms, _ = await self._accrue(user_id, timer, now)
            timer = await self.store.update_duration_tracker(
                user_id,
                tracker_id,
                is_running=False,
                start_time=None,
                elapsed_ms=elapsed_ms,
                value=elapsed_ms // 1000,
            )

        self._invalidate(user_id)
        return timer

    async def stop_timer(self, user_id: str, tracker_id: int) -> DurationTracker:
        """Stop and lock a timer, logging the total elapsed time"""
        timer = await self._timer_or_raise(user_id, tracker_id)

        now = self.clock.now()
        async with self.store.transaction():
            elapsed_ms, _ = await self._accrue(user_id, timer, now)
            updated = await self.store.update_duration_tracker(
                user_id,
                tracker_id,
                is_running=False,
                is_locked=True,
                start_time=None,
                elapsed_ms=elapsed_ms,
                value=elapsed_ms // 1000,
            )
            await self._log_stop(user_id, timer, elapsed_ms, now)

        self._invalidate(user_id)
        logger.info(f"Stopped timer '{timer.name}' for user {user_id} at {format_duration(elapsed_ms)}")
        return updated

    async def toggle_timer_lock(self, user_id: str, tracker_id: int) -> DurationTracker:
        """Lock (stopping a running timer first) or unlock a timer"""
        timer = await self._timer_or_raise(user_id, tracker_id)

        if timer.is_locked:
            timer = await self.store.update_duration_tracker(user_id, tracker_id, is_locked=False)
            self._invalidate(user_id)
            return timer

        now = self.clock.now()
        async with self.store.transaction():
            elapsed_ms, _ = await self._accrue(user_id, timer, now)
            updated = await self.store.update_duration_tracker(
                user_id,
                tracker_id,
                is_running=False,
                is_locked=True,
                start_time=None,
                elapsed_ms=elapsed_ms,
                value=elapsed_ms // 1000,
            )
            await self._log_stop(user_id, timer, elapsed_ms, now)

        self._invalidate(user_id)
        return updated

    async def adjust_timer(self, user_id: str, tracker_id: int, adjustment_ms: int) -> DurationTracker:
        """
        Add or remove time.

        A running timer has its start moved (never past now); the change
        reaches today's total when the run is accrued. A stopped timer has
        elapsed_ms changed directly, floored at 0, and today's total follows.

        Raises:
            ValidationError: If adjustment_ms is 0
        """
        if not adjustment_ms:
            raise ValidationError("must not be 0", field="adjustmentMs", value=adjustment_ms, user_id=user_id)
        timer = await self._timer_or_raise(user_id, tracker_id)

        async with self.store.transaction():
            if timer.is_running and timer.start_time is not None:
                now = self.clock.now()
                start_time = min(timer.start_time - timedelta(milliseconds=adjustment_ms), now)
                timer = await self.store.update_duration_tracker(user_id, tracker_id, start_time=start_time)
            else:
                elapsed_ms = max(timer.elapsed_ms + adjustment_ms, 0)
                delta = elapsed_ms - timer.elapsed_ms
                if delta:
                    today = await self.clock.today(user_id)
                    await self.store.add_timer_daily_total(user_id, tracker_id, today, delta)
                timer = await self.store.update_duration_tracker(
                    user_id, tracker_id, elapsed_ms=elapsed_ms, value=elapsed_ms // 1000
                )

        self._invalidate(user_id)
        return timer

    async def reset_timer(self, user_id: str, tracker_id: int) -> DurationTracker:
        """Zero a timer. Per-date totals already recorded are kept."""
        await self._timer_or_raise(user_id, tracker_id)
        timer = await self.store.update_duration_tracker(
            user_id,
            tracker_id,
            is_running=False,
            is_locked=False,
            start_time=None,
            elapsed_ms=0,
            value=0,
        )
        self._invalidate(user_id)
        return timer

    async def set_timer_manual_time(
        self,
        user_id: str,
        tracker_id: int,
        elapsed_ms: int,
        start_time: Optional[datetime] = None
    ) -> DurationTracker:
        """Overwrite a timer's elapsed time; the difference goes to today's total"""
        if elapsed_ms < 0:
            raise ValidationError("must be >= 0", field="elapsedMs", value=elapsed_ms, user_id=user_id)
        timer = await self._timer_or_raise(user_id, tracker_id)

        async with self.store.transaction():
            delta = elapsed_ms - timer.elapsed_ms
            if delta:
                today = await self.clock.today(user_id)
                await self.store.add_timer_daily_total(user_id, tracker_id, today, delta)
            timer = await self.store.update_duration_tracker(
                user_id,
                tracker_id,
                is_running=False,
                start_time=start_time,
                elapsed_ms=elapsed_ms,
                value=elapsed_ms // 1000,
            )

        self._invalidate(user_id)
        return timer
