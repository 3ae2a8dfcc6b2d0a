"""
Day state materialization

Pure assembly of a DayState from the raw rows stored for one user and date.
Nothing here touches storage; StateService gathers the rows and caches the
result.
"""

import logging
from dataclasses import dataclass, field
from datetime import datetime
from typing import Iterable, Mapping, Optional

from daybook.exceptions import ValidationError
from daybook.models.entry import ActivityEntry
from daybook.models.field import DailyFieldValue, FieldTemplate
from daybook.models.state import (
    CounterView,
    DailyCustomFieldView,
    DayState,
    DurationTrackerView,
    EntryView,
    TaskView,
    TimeSinceView,
)
from daybook.models.task import DailyTask
from daybook.models.tracker import CustomCounter, DurationTracker, TimeSinceTracker
from daybook.models.user import DailySleep
from daybook.services.field_merger import merge_template_fields

logger = logging.getLogger(__name__)


def _iso(value: Optional[datetime]) -> Optional[str]:
    return value.isoformat() if value is not None else None


@dataclass
class TaskArena:
    """
    Tasks keyed by id with parent -> ordered child ids.

    Only two levels exist: a task with a parent can never be a parent.
    """

    tasks: dict[int, DailyTask] = field(default_factory=dict)
    children: dict[int, list[int]] = field(default_factory=dict)
    roots: list[int] = field(default_factory=list)

    @classmethod
    def build(cls, tasks: Iterable[DailyTask]) -> "TaskArena":
        """
        Arrange tasks into a two-level tree.

        Sub-tasks whose parent is not among the given tasks are dropped.

        Raises:
            ValidationError: If a sub-task's parent is itself a sub-task
        """
        arena = cls()
        ordered = sorted(tasks, key=lambda t: (t.order_index, t.id))
        for task in ordered:
            arena.tasks[task.id] = task

        for task in ordered:
            if task.parent_task_id is None:
                arena.roots.append(task.id)
                continue

            parent = arena.tasks.get(task.parent_task_id)
            if parent is None:
                logger.debug(f"Skipping sub-task {task.id}: parent {task.parent_task_id} not shown on this date")
                continue
            if parent.parent_task_id is not None:
                raise ValidationError(
                    "sub-tasks cannot have sub-tasks",
                    field="parent_task_id",
                    value=task.parent_task_id
                )
            arena.children.setdefault(parent.id, []).append(task.id)

        return arena

    def _view(self, task_id: int) -> TaskView:
        task = self.tasks[task_id]
        return TaskView(
            id=task.id,
            text=task.text,
            details=task.details,
            completed=task.done,
            due_date=task.due_date,
            points=task.points,
            pinned=task.pinned,
            recurring=task.recurring,
            created_at=_iso(task.created_at),
            completed_at=_iso(task.completed_at),
            log_entry_id=task.log_entry_id,
            sub_tasks=[self._view(child_id) for child_id in self.children.get(task_id, [])],
        )

    def to_views(self) -> list[TaskView]:
        return [self._view(task_id) for task_id in self.roots]


def materialize_state(
    date: str,
    *,
    sleep: Optional[DailySleep] = None,
    templates: Iterable[FieldTemplate] = (),
    field_values: Iterable[DailyFieldValue] = (),
    tasks: Iterable[DailyTask] = (),
    counters: Iterable[CustomCounter] = (),
    counter_values: Optional[Mapping[int, int]] = None,
    entries: Iterable[ActivityEntry] = (),
    time_since_trackers: Iterable[TimeSinceTracker] = (),
    duration_trackers: Iterable[DurationTracker] = (),
) -> DayState:
    """
    Build the complete view of one day from its raw rows.

    Repeated calls with the same inputs produce identical output: every
    collection has a total order.
    """
    field_values = list(field_values)
    counter_values = counter_values or {}

    daily_only = sorted(
        (row for row in field_values if not row.is_template),
        key=lambda row: (row.order_index, row.id)
    )

    return DayState(
        date=date,
        previous_bedtime=sleep.previous_bedtime if sleep else "",
        wake_time=sleep.wake_time if sleep else "",
        custom_fields=merge_template_fields(templates, field_values),
        daily_custom_fields=[
            DailyCustomFieldView(id=row.id, key=row.key, value=row.value) for row in daily_only
        ],
        daily_tasks=TaskArena.build(tasks).to_views(),
        custom_counters=[
            CounterView(id=c.id, name=c.name, value=counter_values.get(c.id, 0))
            for c in sorted(counters, key=lambda c: (c.order_index, c.id))
        ],
        entries=[
            EntryView(id=e.id, timestamp=e.timestamp.isoformat(), text=e.text, image=e.image)
            for e in sorted(entries, key=lambda e: (e.order_index, e.timestamp, e.id))
        ],
        time_since_trackers=[
            TimeSinceView(id=t.id, name=t.name, date=t.date)
            for t in sorted(time_since_trackers, key=lambda t: (t.order_index, t.id))
        ],
        duration_trackers=[
            DurationTrackerView(
                id=t.id,
                name=t.name,
                type=t.type,
                is_running=t.is_running,
                is_locked=t.is_locked,
                start_time=_iso(t.start_time),
                elapsed_ms=t.elapsed_ms,
                value=t.value,
            )
            for t in sorted(duration_trackers, key=lambda t: (t.order_index, t.id))
        ],
    )
