"""
In-memory JournalStore

Implements the same contract as PostgresJournalStore with plain dicts. Data
lives only as long as the process. Used with STORAGE_BACKEND=memory and by
the test suite.
"""

import copy
import itertools
import logging
from contextlib import asynccontextmanager
from datetime import datetime, timezone
from typing import Any, Optional

from daybook.config import DEFAULT_SNAPSHOT_MAX_COUNT, DEFAULT_SNAPSHOT_MAX_DAYS, DEFAULT_TIMEZONE
from daybook.db.schema import REORDERABLE_TABLES
from daybook.models.entry import ActivityEntry
from daybook.models.field import DailyFieldValue, FieldTemplate, FieldType
from daybook.models.snapshot import RetentionPolicy, SnapshotInfo, SnapshotRecord
from daybook.models.task import DailyTask, PointsBalance, PointsRedemption
from daybook.models.tracker import (
    CounterValue,
    CustomCounter,
    DurationTracker,
    TimeSinceTracker,
    TimerDailyTotal,
)
from daybook.models.user import DailySleep, UserSettings

logger = logging.getLogger(__name__)

_TASK_UPDATABLE = ("text", "due_date", "details", "done", "points", "pinned", "recurring", "log_entry_id", "completed_at")
_TIMER_UPDATABLE = ("is_running", "is_locked", "start_time", "elapsed_ms", "value", "name")
_SETTINGS_UPDATABLE = ("theme", "timezone", "auto_save")


def _utcnow() -> datetime:
    return datetime.now(timezone.utc)


def _next_order(rows) -> int:
    return max((row.order_index for row in rows), default=-1) + 1


class InMemoryJournalStore:
    """Process-local store; nothing is persisted"""

    def __init__(self):
        self._ids = itertools.count(1)
        self._tables: dict[str, dict] = {
            "user_settings": {},           # user_id -> UserSettings
            "daily_state": {},             # (user_id, date) -> DailySleep
            "snapshot_settings": {},       # user_id -> RetentionPolicy
            "custom_field_templates": {},  # id -> FieldTemplate
            "daily_custom_fields": {},     # id -> DailyFieldValue
            "daily_tasks": {},             # id -> DailyTask
            "activity_entries": {},        # id -> ActivityEntry
            "custom_counters": {},         # id -> CustomCounter
            "custom_counter_values": {},   # (counter_id, date) -> CounterValue
            "time_since_trackers": {},     # id -> TimeSinceTracker
            "duration_trackers": {},       # id -> DurationTracker
            "timer_daily_totals": {},      # (tracker_id, date) -> TimerDailyTotal
            "snapshots": {},               # (user_id, date) -> SnapshotRecord
            "points_redemptions": {},      # id -> PointsRedemption
        }
        self._transaction_depth = 0
        logger.warning("InMemoryJournalStore initialized - data is NOT persisted!")

    def _new_id(self) -> int:
        return next(self._ids)

    def _rows(self, table: str, user_id: str) -> list:
        return [row for row in self._tables[table].values() if row.user_id == user_id]

    @asynccontextmanager
    async def transaction(self):
        """All-or-nothing block: table contents are restored if the block raises"""
        if self._transaction_depth:
            self._transaction_depth += 1
            try:
                yield self
            finally:
                self._transaction_depth -= 1
            return

        saved = copy.deepcopy(self._tables)
        self._transaction_depth = 1
        try:
            yield self
        except BaseException:
            self._tables = saved
            logger.debug("In-memory transaction rolled back")
            raise
        finally:
            self._transaction_depth = 0

    # ==========================================
    # Settings
    # ==========================================

    async def get_user_settings(self, user_id: str) -> UserSettings:
        settings = self._tables["user_settings"].setdefault(
            user_id, UserSettings(user_id=user_id, timezone=DEFAULT_TIMEZONE)
        )
        return settings.model_copy()

    async def update_user_settings(self, user_id: str, **changes) -> UserSettings:
        current = await self.get_user_settings(user_id)
        updates = {k: v for k, v in changes.items() if k in _SETTINGS_UPDATABLE and v is not None}
        updated = current.model_copy(update=updates)
        self._tables["user_settings"][user_id] = updated
        return updated.model_copy()

    async def get_daily_sleep(self, user_id: str, date: str) -> Optional[DailySleep]:
        row = self._tables["daily_state"].get((user_id, date))
        return row.model_copy() if row else None

    async def set_daily_sleep(self, user_id: str, date: str, previous_bedtime: str, wake_time: str) -> DailySleep:
        row = DailySleep(user_id=user_id, date=date, previous_bedtime=previous_bedtime, wake_time=wake_time)
        self._tables["daily_state"][(user_id, date)] = row
        return row.model_copy()

    async def get_retention_policy(self, user_id: str) -> RetentionPolicy:
        policy = self._tables["snapshot_settings"].get(user_id)
        if policy is None:
            return RetentionPolicy(max_days=DEFAULT_SNAPSHOT_MAX_DAYS, max_count=DEFAULT_SNAPSHOT_MAX_COUNT)
        return policy.model_copy()

    async def set_retention_policy(self, user_id: str, policy: RetentionPolicy) -> RetentionPolicy:
        self._tables["snapshot_settings"][user_id] = policy.model_copy()
        return policy

    # ==========================================
    # Fields
    # ==========================================

    async def get_field_templates(self, user_id: str) -> list[FieldTemplate]:
        rows = self._rows("custom_field_templates", user_id)
        return [row.model_copy() for row in sorted(rows, key=lambda t: (t.order_index, t.id))]

    async def get_field_template(self, user_id: str, key: str) -> Optional[FieldTemplate]:
        for row in self._rows("custom_field_templates", user_id):
            if row.key == key:
                return row.model_copy()
        return None

    async def get_field_template_by_id(self, user_id: str, template_id: int) -> Optional[FieldTemplate]:
        row = self._tables["custom_field_templates"].get(template_id)
        return row.model_copy() if row and row.user_id == user_id else None

    async def create_field_template(self, user_id: str, key: str, field_type: FieldType) -> FieldTemplate:
        from daybook.exceptions import ConflictError

        if await self.get_field_template(user_id, key):
            raise ConflictError(f"Field template '{key}' already exists", record_type="Field template", key=key)

        row = FieldTemplate(
            id=self._new_id(),
            user_id=user_id,
            key=key,
            field_type=field_type,
            order_index=_next_order(self._rows("custom_field_templates", user_id)),
        )
        self._tables["custom_field_templates"][row.id] = row
        return row.model_copy()

    async def update_field_template_type(
        self, user_id: str, template_id: int, field_type: FieldType
    ) -> Optional[FieldTemplate]:
        row = self._tables["custom_field_templates"].get(template_id)
        if not row or row.user_id != user_id:
            return None
        row.field_type = field_type
        return row.model_copy()

    async def delete_field_template(self, user_id: str, key: str) -> bool:
        for row in self._rows("custom_field_templates", user_id):
            if row.key == key:
                del self._tables["custom_field_templates"][row.id]
                return True
        return False

    async def get_daily_field_values(self, user_id: str, date: str) -> list[DailyFieldValue]:
        rows = [row for row in self._rows("daily_custom_fields", user_id) if row.date == date]
        return [row.model_copy() for row in sorted(rows, key=lambda v: (v.order_index, v.id))]

    async def get_field_values_in_range(
        self, user_id: str, key: str, start_date: str, end_date: str
    ) -> list[DailyFieldValue]:
        rows = [
            row for row in self._rows("daily_custom_fields", user_id)
            if row.key == key and start_date <= row.date <= end_date
        ]
        return [row.model_copy() for row in sorted(rows, key=lambda v: (v.date, v.id))]

    async def upsert_daily_field_value(
        self, user_id: str, date: str, key: str, value: str, is_template: bool, field_type: FieldType
    ) -> DailyFieldValue:
        same_day = [row for row in self._rows("daily_custom_fields", user_id) if row.date == date]
        for row in same_day:
            if row.key == key:
                row.value = value
                row.is_template = is_template
                row.field_type = field_type
                return row.model_copy()

        row = DailyFieldValue(
            id=self._new_id(),
            user_id=user_id,
            date=date,
            key=key,
            value=value,
            is_template=is_template,
            field_type=field_type,
            order_index=_next_order(same_day),
            created_at=_utcnow(),
        )
        self._tables["daily_custom_fields"][row.id] = row
        return row.model_copy()

    async def delete_daily_field_value(self, user_id: str, date: str, key: str) -> bool:
        for row in self._rows("daily_custom_fields", user_id):
            if row.date == date and row.key == key:
                del self._tables["daily_custom_fields"][row.id]
                return True
        return False

    async def delete_daily_field_value_by_id(self, user_id: str, value_id: int) -> bool:
        row = self._tables["daily_custom_fields"].get(value_id)
        if not row or row.user_id != user_id or row.is_template:
            return False
        del self._tables["daily_custom_fields"][value_id]
        return True

    async def get_populated_fields(self, user_id: str, start_date: str, end_date: str) -> list[dict]:
        templates = {t.key: t.field_type for t in self._rows("custom_field_templates", user_id)}
        keys = {
            row.key for row in self._rows("daily_custom_fields", user_id)
            if start_date <= row.date <= end_date and row.value != ""
        }
        return [
            {"key": key, "fieldType": FieldType(templates.get(key, FieldType.TEXT)).value}
            for key in sorted(keys)
        ]

    # ==========================================
    # Tasks
    # ==========================================

    async def get_tasks_for_date(self, user_id: str, date: str) -> list[DailyTask]:
        tasks = self._rows("daily_tasks", user_id)
        parent_ids = {
            t.id for t in tasks
            if t.parent_task_id is None and (t.date == date or t.due_date == date)
        }
        selected = [t for t in tasks if t.id in parent_ids or t.parent_task_id in parent_ids]
        return [t.model_copy() for t in sorted(selected, key=lambda t: (t.order_index, t.id))]

    async def get_task(self, user_id: str, task_id: int) -> Optional[DailyTask]:
        row = self._tables["daily_tasks"].get(task_id)
        return row.model_copy() if row and row.user_id == user_id else None

    async def get_all_tasks(self, user_id: str) -> list[DailyTask]:
        rows = self._rows("daily_tasks", user_id)
        return [t.model_copy() for t in sorted(rows, key=lambda t: (t.date, t.order_index, t.id))]

    async def create_task(
        self,
        user_id: str,
        date: str,
        text: str,
        due_date: Optional[str] = None,
        details: Optional[str] = None,
        parent_task_id: Optional[int] = None,
        points: int = 0,
    ) -> DailyTask:
        same_day = [t for t in self._rows("daily_tasks", user_id) if t.date == date]
        row = DailyTask(
            id=self._new_id(),
            user_id=user_id,
            date=date,
            due_date=due_date or date,
            text=text,
            details=details,
            parent_task_id=parent_task_id,
            points=points,
            order_index=_next_order(same_day),
            created_at=_utcnow(),
        )
        self._tables["daily_tasks"][row.id] = row
        return row.model_copy()

    async def update_task(self, user_id: str, task_id: int, **changes) -> Optional[DailyTask]:
        row = self._tables["daily_tasks"].get(task_id)
        if not row or row.user_id != user_id:
            return None
        updates = {k: v for k, v in changes.items() if k in _TASK_UPDATABLE}
        updated = row.model_copy(update=updates)
        self._tables["daily_tasks"][task_id] = updated
        return updated.model_copy()

    async def delete_task(self, user_id: str, task_id: int) -> bool:
        row = self._tables["daily_tasks"].get(task_id)
        if not row or row.user_id != user_id:
            return False
        children = [t.id for t in self._rows("daily_tasks", user_id) if t.parent_task_id == task_id]
        for child_id in children:
            del self._tables["daily_tasks"][child_id]
        del self._tables["daily_tasks"][task_id]
        return True

    async def get_tasks_in_range(
        self, user_id: str, start_date: str, end_date: str, completion_status: str = "all"
    ) -> list[DailyTask]:
        rows = [t for t in self._rows("daily_tasks", user_id) if start_date <= t.date <= end_date]
        if completion_status == "completed":
            rows = [t for t in rows if t.done]
        elif completion_status == "incomplete":
            rows = [t for t in rows if not t.done]
        return [t.model_copy() for t in sorted(rows, key=lambda t: (t.date, t.order_index, t.id))]

    # ==========================================
    # Entries
    # ==========================================

    async def get_entries(self, user_id: str, date: str) -> list[ActivityEntry]:
        rows = [e for e in self._rows("activity_entries", user_id) if e.date == date]
        return [e.model_copy() for e in sorted(rows, key=lambda e: (e.order_index, e.timestamp, e.id))]

    async def get_entry(self, user_id: str, entry_id: int) -> Optional[ActivityEntry]:
        row = self._tables["activity_entries"].get(entry_id)
        return row.model_copy() if row and row.user_id == user_id else None

    async def create_entry(
        self,
        user_id: str,
        date: str,
        text: str,
        image: Optional[str] = None,
        timestamp: Optional[datetime] = None,
    ) -> ActivityEntry:
        same_day = [e for e in self._rows("activity_entries", user_id) if e.date == date]
        row = ActivityEntry(
            id=self._new_id(),
            user_id=user_id,
            date=date,
            text=text,
            image=image,
            timestamp=timestamp or _utcnow(),
            order_index=_next_order(same_day),
        )
        self._tables["activity_entries"][row.id] = row
        return row.model_copy()

    async def update_entry(self, user_id: str, entry_id: int, text: str) -> Optional[ActivityEntry]:
        row = self._tables["activity_entries"].get(entry_id)
        if not row or row.user_id != user_id:
            return None
        row.text = text
        return row.model_copy()

    async def delete_entry(self, user_id: str, entry_id: int) -> bool:
        row = self._tables["activity_entries"].get(entry_id)
        if not row or row.user_id != user_id:
            return False
        del self._tables["activity_entries"][entry_id]
        return True

    async def has_activity(self, user_id: str, date: str) -> bool:
        if any(e.date == date for e in self._rows("activity_entries", user_id)):
            return True
        if any(t.date == date for t in self._rows("daily_tasks", user_id)):
            return True
        if any(v.date == date and v.value != "" for v in self._rows("daily_custom_fields", user_id)):
            return True
        if any(v.date == date and v.value > 0 for v in self._rows("custom_counter_values", user_id)):
            return True
        sleep = self._tables["daily_state"].get((user_id, date))
        return bool(sleep and (sleep.previous_bedtime or sleep.wake_time))

    # ==========================================
    # Counters
    # ==========================================

    async def get_counters(self, user_id: str) -> list[CustomCounter]:
        rows = self._rows("custom_counters", user_id)
        return [c.model_copy() for c in sorted(rows, key=lambda c: (c.order_index, c.id))]

    async def get_counter(self, user_id: str, counter_id: int) -> Optional[CustomCounter]:
        row = self._tables["custom_counters"].get(counter_id)
        return row.model_copy() if row and row.user_id == user_id else None

    async def get_counter_by_name(self, user_id: str, name: str) -> Optional[CustomCounter]:
        for row in self._rows("custom_counters", user_id):
            if row.name == name:
                return row.model_copy()
        return None

    async def create_counter(self, user_id: str, name: str) -> CustomCounter:
        from daybook.exceptions import ConflictError

        if await self.get_counter_by_name(user_id, name):
            raise ConflictError(f"Counter '{name}' already exists", record_type="Counter", key=name)

        row = CustomCounter(
            id=self._new_id(),
            user_id=user_id,
            name=name,
            order_index=_next_order(self._rows("custom_counters", user_id)),
        )
        self._tables["custom_counters"][row.id] = row
        return row.model_copy()

    async def delete_counter(self, user_id: str, counter_id: int) -> bool:
        row = self._tables["custom_counters"].get(counter_id)
        if not row or row.user_id != user_id:
            return False
        del self._tables["custom_counters"][counter_id]
        values = self._tables["custom_counter_values"]
        for key in [k for k in values if k[0] == counter_id]:
            del values[key]
        return True

    async def get_counter_values(self, user_id: str, date: str) -> dict[int, int]:
        return {
            v.counter_id: v.value
            for v in self._rows("custom_counter_values", user_id)
            if v.date == date
        }

    async def set_counter_value(self, user_id: str, counter_id: int, date: str, value: int) -> CounterValue:
        row = CounterValue(counter_id=counter_id, user_id=user_id, date=date, value=value)
        self._tables["custom_counter_values"][(counter_id, date)] = row
        return row.model_copy()

    async def get_counter_values_in_range(
        self, user_id: str, counter_id: int, start_date: str, end_date: str
    ) -> list[CounterValue]:
        rows = [
            v for v in self._rows("custom_counter_values", user_id)
            if v.counter_id == counter_id and start_date <= v.date <= end_date
        ]
        return [v.model_copy() for v in sorted(rows, key=lambda v: v.date)]

    async def get_populated_counters(self, user_id: str, start_date: str, end_date: str) -> list[str]:
        counter_ids = {
            v.counter_id for v in self._rows("custom_counter_values", user_id)
            if start_date <= v.date <= end_date and v.value > 0
        }
        counters = self._tables["custom_counters"]
        return sorted(counters[cid].name for cid in counter_ids if cid in counters)

    # ==========================================
    # Time-since trackers
    # ==========================================

    async def get_time_since_trackers(self, user_id: str) -> list[TimeSinceTracker]:
        rows = self._rows("time_since_trackers", user_id)
        return [t.model_copy() for t in sorted(rows, key=lambda t: (t.order_index, t.id))]

    async def create_time_since_tracker(self, user_id: str, name: str, date: str) -> TimeSinceTracker:
        row = TimeSinceTracker(
            id=self._new_id(),
            user_id=user_id,
            name=name,
            date=date,
            order_index=_next_order(self._rows("time_since_trackers", user_id)),
        )
        self._tables["time_since_trackers"][row.id] = row
        return row.model_copy()

    async def delete_time_since_tracker(self, user_id: str, tracker_id: int) -> bool:
        row = self._tables["time_since_trackers"].get(tracker_id)
        if not row or row.user_id != user_id:
            return False
        del self._tables["time_since_trackers"][tracker_id]
        return True

    # ==========================================
    # Timers
    # ==========================================

    async def get_duration_trackers(self, user_id: str) -> list[DurationTracker]:
        rows = self._rows("duration_trackers", user_id)
        return [t.model_copy() for t in sorted(rows, key=lambda t: (t.order_index, t.id))]

    async def get_duration_tracker(self, user_id: str, tracker_id: int) -> Optional[DurationTracker]:
        row = self._tables["duration_trackers"].get(tracker_id)
        return row.model_copy() if row and row.user_id == user_id else None

    async def get_duration_tracker_by_name(self, user_id: str, name: str) -> Optional[DurationTracker]:
        for row in sorted(self._rows("duration_trackers", user_id), key=lambda t: t.id):
            if row.name == name:
                return row.model_copy()
        return None

    async def create_duration_tracker(self, user_id: str, name: str) -> DurationTracker:
        row = DurationTracker(
            id=self._new_id(),
            user_id=user_id,
            name=name,
            order_index=_next_order(self._rows("duration_trackers", user_id)),
        )
        self._tables["duration_trackers"][row.id] = row
        return row.model_copy()

    async def update_duration_tracker(self, user_id: str, tracker_id: int, **changes) -> Optional[DurationTracker]:
        row = self._tables["duration_trackers"].get(tracker_id)
        if not row or row.user_id != user_id:
            return None
        updates = {k: v for k, v in changes.items() if k in _TIMER_UPDATABLE}
        updated = row.model_copy(update=updates)
        self._tables["duration_trackers"][tracker_id] = updated
        return updated.model_copy()

    async def delete_duration_tracker(self, user_id: str, tracker_id: int) -> bool:
        row = self._tables["duration_trackers"].get(tracker_id)
        if not row or row.user_id != user_id:
            return False
        del self._tables["duration_trackers"][tracker_id]
        totals = self._tables["timer_daily_totals"]
        for key in [k for k in totals if k[0] == tracker_id]:
            del totals[key]
        return True

    async def add_timer_daily_total(self, user_id: str, tracker_id: int, date: str, delta_ms: int) -> TimerDailyTotal:
        totals = self._tables["timer_daily_totals"]
        current = totals.get((tracker_id, date))
        elapsed = max((current.elapsed_ms if current else 0) + delta_ms, 0)
        row = TimerDailyTotal(tracker_id=tracker_id, user_id=user_id, date=date, elapsed_ms=elapsed)
        totals[(tracker_id, date)] = row
        return row.model_copy()

    async def get_timer_totals_in_range(
        self, user_id: str, tracker_id: int, start_date: str, end_date: str
    ) -> list[TimerDailyTotal]:
        rows = [
            t for t in self._rows("timer_daily_totals", user_id)
            if t.tracker_id == tracker_id and start_date <= t.date <= end_date
        ]
        return [t.model_copy() for t in sorted(rows, key=lambda t: t.date)]

    async def get_populated_timers(self, user_id: str, start_date: str, end_date: str) -> list[str]:
        tracker_ids = {
            t.tracker_id for t in self._rows("timer_daily_totals", user_id)
            if start_date <= t.date <= end_date and t.elapsed_ms > 0
        }
        trackers = self._tables["duration_trackers"]
        return sorted({trackers[tid].name for tid in tracker_ids if tid in trackers})

    # ==========================================
    # Snapshots
    # ==========================================

    async def get_snapshot(self, user_id: str, date: str) -> Optional[SnapshotRecord]:
        row = self._tables["snapshots"].get((user_id, date))
        return row.model_copy(deep=True) if row else None

    async def save_snapshot(self, user_id: str, date: str, document: dict[str, Any]) -> SnapshotRecord:
        row = SnapshotRecord(user_id=user_id, date=date, document=copy.deepcopy(document), created_at=_utcnow())
        self._tables["snapshots"][(user_id, date)] = row
        return row.model_copy(deep=True)

    async def delete_snapshot(self, user_id: str, date: str) -> bool:
        return self._tables["snapshots"].pop((user_id, date), None) is not None

    async def delete_snapshots(self, user_id: str, dates: list[str]) -> int:
        return sum(1 for date in dates if self._tables["snapshots"].pop((user_id, date), None) is not None)

    async def list_snapshots(self, user_id: str) -> list[SnapshotInfo]:
        rows = self._rows("snapshots", user_id)
        return [
            SnapshotInfo(date=row.date, created_at=row.created_at)
            for row in sorted(rows, key=lambda r: r.date, reverse=True)
        ]

    # ==========================================
    # Points
    # ==========================================

    async def get_points_balance(self, user_id: str) -> PointsBalance:
        earned = sum(t.points for t in self._rows("daily_tasks", user_id) if t.done and t.points > 0)
        redeemed = sum(r.points_cost for r in self._rows("points_redemptions", user_id))
        return PointsBalance(earned=earned, redeemed=redeemed, balance=earned - redeemed)

    async def create_redemption(self, user_id: str, reward_description: str, points_cost: int) -> PointsRedemption:
        row = PointsRedemption(
            id=self._new_id(),
            user_id=user_id,
            reward_description=reward_description,
            points_cost=points_cost,
            redeemed_at=_utcnow(),
        )
        self._tables["points_redemptions"][row.id] = row
        return row.model_copy()

    async def get_redemptions(self, user_id: str) -> list[PointsRedemption]:
        rows = self._rows("points_redemptions", user_id)
        return [row.model_copy() for row in sorted(rows, key=lambda r: (r.redeemed_at, r.id), reverse=True)]

    async def delete_redemption(self, user_id: str, redemption_id: int) -> bool:
        row = self._tables["points_redemptions"].get(redemption_id)
        if row is None or row.user_id != user_id:
            return False
        del self._tables["points_redemptions"][redemption_id]
        return True

    # ==========================================
    # Ordering
    # ==========================================

    async def reorder(self, user_id: str, table: str, items: list[tuple[int, int]]) -> int:
        if table not in REORDERABLE_TABLES:
            raise ValueError(f"Table {table!r} is not reorderable")

        rows = self._tables[table]
        updated = 0
        for row_id, order_index in items:
            row = rows.get(row_id)
            if row and row.user_id == user_id:
                row.order_index = order_index
                updated += 1
        return updated
