"""
Persistence interface used by the services.

JournalStore is the contract; PostgresJournalStore runs it against the pooled
psycopg database, InMemoryJournalStore (memory_store.py) keeps everything in
process for local runs and tests.
"""
import logging
from contextlib import AbstractAsyncContextManager
from datetime import datetime
from typing import Any, Optional, Protocol

from daybook.db import queries
from daybook.db.connection import Database, db as default_db
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


class JournalStore(Protocol):
    """Row-level storage for every per-user table"""

    def transaction(self) -> AbstractAsyncContextManager: ...

    # Settings
    async def get_user_settings(self, user_id: str) -> UserSettings: ...
    async def update_user_settings(self, user_id: str, **changes) -> UserSettings: ...
    async def get_daily_sleep(self, user_id: str, date: str) -> Optional[DailySleep]: ...
    async def set_daily_sleep(self, user_id: str, date: str, previous_bedtime: str, wake_time: str) -> DailySleep: ...
    async def get_retention_policy(self, user_id: str) -> RetentionPolicy: ...
    async def set_retention_policy(self, user_id: str, policy: RetentionPolicy) -> RetentionPolicy: ...

    # Fields
    async def get_field_templates(self, user_id: str) -> list[FieldTemplate]: ...
    async def get_field_template(self, user_id: str, key: str) -> Optional[FieldTemplate]: ...
    async def get_field_template_by_id(self, user_id: str, template_id: int) -> Optional[FieldTemplate]: ...
    async def create_field_template(self, user_id: str, key: str, field_type: FieldType) -> FieldTemplate: ...
    async def update_field_template_type(
        self, user_id: str, template_id: int, field_type: FieldType
    ) -> Optional[FieldTemplate]: ...
    async def delete_field_template(self, user_id: str, key: str) -> bool: ...
    async def get_daily_field_values(self, user_id: str, date: str) -> list[DailyFieldValue]: ...
    async def get_field_values_in_range(
        self, user_id: str, key: str, start_date: str, end_date: str
    ) -> list[DailyFieldValue]: ...
    async def upsert_daily_field_value(
        self, user_id: str, date: str, key: str, value: str, is_template: bool, field_type: FieldType
    ) -> DailyFieldValue: ...
    async def delete_daily_field_value(self, user_id: str, date: str, key: str) -> bool: ...
    async def delete_daily_field_value_by_id(self, user_id: str, value_id: int) -> bool: ...
    async def get_populated_fields(self, user_id: str, start_date: str, end_date: str) -> list[dict]: ...

    # Tasks
    async def get_tasks_for_date(self, user_id: str, date: str) -> list[DailyTask]: ...
    async def get_task(self, user_id: str, task_id: int) -> Optional[DailyTask]: ...
    async def get_all_tasks(self, user_id: str) -> list[DailyTask]: ...
    async def create_task(
        self,
        user_id: str,
        date: str,
        text: str,
        due_date: Optional[str] = None,
        details: Optional[str] = None,
        parent_task_id: Optional[int] = None,
        points: int = 0,
    ) -> DailyTask: ...
    async def update_task(self, user_id: str, task_id: int, **changes) -> Optional[DailyTask]: ...
    async def delete_task(self, user_id: str, task_id: int) -> bool: ...
    async def get_tasks_in_range(
        self, user_id: str, start_date: str, end_date: str, completion_status: str = "all"
    ) -> list[DailyTask]: ...

    # Entries
    async def get_entries(self, user_id: str, date: str) -> list[ActivityEntry]: ...
    async def get_entry(self, user_id: str, entry_id: int) -> Optional[ActivityEntry]: ...
    async def create_entry(
        self,
        user_id: str,
        date: str,
        text: str,
        image: Optional[str] = None,
        timestamp: Optional[datetime] = None,
    ) -> ActivityEntry: ...
    async def update_entry(self, user_id: str, entry_id: int, text: str) -> Optional[ActivityEntry]: ...
    async def delete_entry(self, user_id: str, entry_id: int) -> bool: ...
    async def has_activity(self, user_id: str, date: str) -> bool: ...

    # Counters
    async def get_counters(self, user_id: str) -> list[CustomCounter]: ...
    async def get_counter(self, user_id: str, counter_id: int) -> Optional[CustomCounter]: ...
    async def get_counter_by_name(self, user_id: str, name: str) -> Optional[CustomCounter]: ...
    async def create_counter(self, user_id: str, name: str) -> CustomCounter: ...
    async def delete_counter(self, user_id: str, counter_id: int) -> bool: ...
    async def get_counter_values(self, user_id: str, date: str) -> dict[int, int]: ...
    async def set_counter_value(self, user_id: str, counter_id: int, date: str, value: int) -> CounterValue: ...
    async def get_counter_values_in_range(
        self, user_id: str, counter_id: int, start_date: str, end_date: str
    ) -> list[CounterValue]: ...
    async def get_populated_counters(self, user_id: str, start_date: str, end_date: str) -> list[str]: ...

    # Time-since trackers
    async def get_time_since_trackers(self, user_id: str) -> list[TimeSinceTracker]: ...
    async def create_time_since_tracker(self, user_id: str, name: str, date: str) -> TimeSinceTracker: ...
    async def delete_time_since_tracker(self, user_id: str, tracker_id: int) -> bool: ...

    # Timers
    async def get_duration_trackers(self, user_id: str) -> list[DurationTracker]: ...
    async def get_duration_tracker(self, user_id: str, tracker_id: int) -> Optional[DurationTracker]: ...
    async def get_duration_tracker_by_name(self, user_id: str, name: str) -> Optional[DurationTracker]: ...
    async def create_duration_tracker(self, user_id: str, name: str) -> DurationTracker: ...
    async def update_duration_tracker(self, user_id: str, tracker_id: int, **changes) -> Optional[DurationTracker]: ...
    async def delete_duration_tracker(self, user_id: str, tracker_id: int) -> bool: ...
    async def add_timer_daily_total(self, user_id: str, tracker_id: int, date: str, delta_ms: int) -> TimerDailyTotal: ...
    async def get_timer_totals_in_range(
        self, user_id: str, tracker_id: int, start_date: str, end_date: str
    ) -> list[TimerDailyTotal]: ...
    async def get_populated_timers(self, user_id: str, start_date: str, end_date: str) -> list[str]: ...

    # Snapshots
    async def get_snapshot(self, user_id: str, date: str) -> Optional[SnapshotRecord]: ...
    async def save_snapshot(self, user_id: str, date: str, document: dict[str, Any]) -> SnapshotRecord: ...
    async def delete_snapshot(self, user_id: str, date: str) -> bool: ...
    async def delete_snapshots(self, user_id: str, dates: list[str]) -> int: ...
    async def list_snapshots(self, user_id: str) -> list[SnapshotInfo]: ...

    # Points
    async def get_points_balance(self, user_id: str) -> PointsBalance: ...
    async def create_redemption(self, user_id: str, reward_description: str, points_cost: int) -> PointsRedemption: ...
    async def get_redemptions(self, user_id: str) -> list[PointsRedemption]: ...
    async def delete_redemption(self, user_id: str, redemption_id: int) -> bool: ...

    # Ordering
    async def reorder(self, user_id: str, table: str, items: list[tuple[int, int]]) -> int: ...


class PostgresJournalStore:
    """JournalStore backed by the pooled PostgreSQL database"""

    def __init__(self, database: Database = default_db):
        self.database = database

    def transaction(self) -> AbstractAsyncContextManager:
        return self.database.transaction()

    # Settings
    get_user_settings = staticmethod(queries.get_user_settings)
    update_user_settings = staticmethod(queries.update_user_settings)
    get_daily_sleep = staticmethod(queries.get_daily_sleep)
    set_daily_sleep = staticmethod(queries.set_daily_sleep)
    get_retention_policy = staticmethod(queries.get_retention_policy)
    set_retention_policy = staticmethod(queries.set_retention_policy)

    # Fields
    get_field_templates = staticmethod(queries.get_field_templates)
    get_field_template = staticmethod(queries.get_field_template)
    get_field_template_by_id = staticmethod(queries.get_field_template_by_id)
    create_field_template = staticmethod(queries.create_field_template)
    update_field_template_type = staticmethod(queries.update_field_template_type)
    delete_field_template = staticmethod(queries.delete_field_template)
    get_daily_field_values = staticmethod(queries.get_daily_field_values)
    get_field_values_in_range = staticmethod(queries.get_field_values_in_range)
    upsert_daily_field_value = staticmethod(queries.upsert_daily_field_value)
    delete_daily_field_value = staticmethod(queries.delete_daily_field_value)
    delete_daily_field_value_by_id = staticmethod(queries.delete_daily_field_value_by_id)
    get_populated_fields = staticmethod(queries.get_populated_fields)

    # Tasks
    get_tasks_for_date = staticmethod(queries.get_tasks_for_date)
    get_task = staticmethod(queries.get_task)
    get_all_tasks = staticmethod(queries.get_all_tasks)
    create_task = staticmethod(queries.create_task)
    update_task = staticmethod(queries.update_task)
    delete_task = staticmethod(queries.delete_task)
    get_tasks_in_range = staticmethod(queries.get_tasks_in_range)

    # Entries
    get_entries = staticmethod(queries.get_entries)
    get_entry = staticmethod(queries.get_entry)
    create_entry = staticmethod(queries.create_entry)
    update_entry = staticmethod(queries.update_entry)
    delete_entry = staticmethod(queries.delete_entry)
    has_activity = staticmethod(queries.has_activity)

    # Counters
    get_counters = staticmethod(queries.get_counters)
    get_counter = staticmethod(queries.get_counter)
    get_counter_by_name = staticmethod(queries.get_counter_by_name)
    create_counter = staticmethod(queries.create_counter)
    delete_counter = staticmethod(queries.delete_counter)
    get_counter_values = staticmethod(queries.get_counter_values)
    set_counter_value = staticmethod(queries.set_counter_value)
    get_counter_values_in_range = staticmethod(queries.get_counter_values_in_range)
    get_populated_counters = staticmethod(queries.get_populated_counters)

    # Time-since trackers
    get_time_since_trackers = staticmethod(queries.get_time_since_trackers)
    create_time_since_tracker = staticmethod(queries.create_time_since_tracker)
    delete_time_since_tracker = staticmethod(queries.delete_time_since_tracker)

    # Timers
    get_duration_trackers = staticmethod(queries.get_duration_trackers)
    get_duration_tracker = staticmethod(queries.get_duration_tracker)
    get_duration_tracker_by_name = staticmethod(queries.get_duration_tracker_by_name)
    create_duration_tracker = staticmethod(queries.create_duration_tracker)
    update_duration_tracker = staticmethod(queries.update_duration_tracker)
    delete_duration_tracker = staticmethod(queries.delete_duration_tracker)
    add_timer_daily_total = staticmethod(queries.add_timer_daily_total)
    get_timer_totals_in_range = staticmethod(queries.get_timer_totals_in_range)
    get_populated_timers = staticmethod(queries.get_populated_timers)

    # Snapshots
    get_snapshot = staticmethod(queries.get_snapshot)
    save_snapshot = staticmethod(queries.save_snapshot)
    delete_snapshot = staticmethod(queries.delete_snapshot)
    delete_snapshots = staticmethod(queries.delete_snapshots)
    list_snapshots = staticmethod(queries.list_snapshots)

    # Points
    get_points_balance = staticmethod(queries.get_points_balance)
    create_redemption = staticmethod(queries.create_redemption)
    get_redemptions = staticmethod(queries.get_redemptions)
    delete_redemption = staticmethod(queries.delete_redemption)

    # Ordering
    reorder = staticmethod(queries.reorder)
