"""
Database queries - re-exports every query function.

Module organization:
- settings.py: User settings, sleep state, snapshot retention settings
- fields.py: Custom field templates and per-date values
- tasks.py: Daily tasks and sub-tasks
- entries.py: Activity log entries
- trackers.py: Counters, time-since trackers, timers and their daily totals
- snapshots.py: Frozen day snapshots
- points.py: Points balance and reward redemptions
- ordering.py: Display order rewrites
"""

# Settings operations
from daybook.db.queries.settings import (
    get_user_settings,
    update_user_settings,
    get_daily_sleep,
    set_daily_sleep,
    get_retention_policy,
    set_retention_policy,
)

# Field operations
from daybook.db.queries.fields import (
    get_field_templates,
    get_field_template,
    get_field_template_by_id,
    create_field_template,
    update_field_template_type,
    delete_field_template,
    get_daily_field_values,
    get_field_values_in_range,
    upsert_daily_field_value,
    delete_daily_field_value,
    delete_daily_field_value_by_id,
    get_populated_fields,
)

# Task operations
from daybook.db.queries.tasks import (
    get_tasks_for_date,
    get_task,
    get_all_tasks,
    create_task,
    update_task,
    delete_task,
    get_tasks_in_range,
)

# Entry operations
from daybook.db.queries.entries import (
    get_entries,
    get_entry,
    create_entry,
    update_entry,
    delete_entry,
    has_activity,
)

# Tracker operations
from daybook.db.queries.trackers import (
    get_counters,
    get_counter,
    get_counter_by_name,
    create_counter,
    delete_counter,
    get_counter_values,
    set_counter_value,
    get_counter_values_in_range,
    get_populated_counters,
    get_time_since_trackers,
    create_time_since_tracker,
    delete_time_since_tracker,
    get_duration_trackers,
    get_duration_tracker,
    get_duration_tracker_by_name,
    create_duration_tracker,
    update_duration_tracker,
    delete_duration_tracker,
    add_timer_daily_total,
    get_timer_totals_in_range,
    get_populated_timers,
)

# Snapshot operations
from daybook.db.queries.snapshots import (
    get_snapshot,
    save_snapshot,
    delete_snapshot,
    delete_snapshots,
    list_snapshots,
)

# Points operations
from daybook.db.queries.points import (
    get_points_balance,
    create_redemption,
    get_redemptions,
    delete_redemption,
)

# Ordering
from daybook.db.queries.ordering import reorder

__all__ = [
    # Settings
    "get_user_settings",
    "update_user_settings",
    "get_daily_sleep",
    "set_daily_sleep",
    "get_retention_policy",
    "set_retention_policy",
    # Fields
    "get_field_templates",
    "get_field_template",
    "get_field_template_by_id",
    "create_field_template",
    "update_field_template_type",
    "delete_field_template",
    "get_daily_field_values",
    "get_field_values_in_range",
    "upsert_daily_field_value",
    "delete_daily_field_value",
    "delete_daily_field_value_by_id",
    "get_populated_fields",
    # Tasks
    "get_tasks_for_date",
    "get_task",
    "get_all_tasks",
    "create_task",
    "update_task",
    "delete_task",
    "get_tasks_in_range",
    # Entries
    "get_entries",
    "get_entry",
    "create_entry",
    "update_entry",
    "delete_entry",
    "has_activity",
    # Trackers
    "get_counters",
    "get_counter",
    "get_counter_by_name",
    "create_counter",
    "delete_counter",
    "get_counter_values",
    "set_counter_value",
    "get_counter_values_in_range",
    "get_populated_counters",
    "get_time_since_trackers",
    "create_time_since_tracker",
    "delete_time_since_tracker",
    "get_duration_trackers",
    "get_duration_tracker",
    "get_duration_tracker_by_name",
    "create_duration_tracker",
    "update_duration_tracker",
    "delete_duration_tracker",
    "add_timer_daily_total",
    "get_timer_totals_in_range",
    "get_populated_timers",
    # Snapshots
    "get_snapshot",
    "save_snapshot",
    "delete_snapshot",
    "delete_snapshots",
    "list_snapshots",
    # Points
    "get_points_balance",
    "create_redemption",
    "get_redemptions",
    "delete_redemption",
    # Ordering
    "reorder",
]
