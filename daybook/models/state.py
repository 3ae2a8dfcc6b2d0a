"""Materialized day state served to clients and stored in snapshots"""
from typing import Optional, Any
from pydantic import BaseModel, ConfigDict, Field
from pydantic.alias_generators import to_camel

from daybook.models.field import ResolvedField


class _CamelModel(BaseModel):
    model_config = ConfigDict(alias_generator=to_camel, populate_by_name=True)


class DailyCustomFieldView(_CamelModel):
    id: int
    key: str
    value: str


class TaskView(_CamelModel):
    """Task as shown in a day view; sub_tasks holds at most one level"""
    id: int
    text: str
    details: Optional[str] = None
    completed: bool = False
    due_date: Optional[str] = None
    points: int = 0
    pinned: bool = False
    recurring: bool = False
    created_at: Optional[str] = None
    completed_at: Optional[str] = None
    log_entry_id: Optional[int] = None
    sub_tasks: list["TaskView"] = Field(default_factory=list)


class CounterView(_CamelModel):
    id: int
    name: str
    value: int = 0


class EntryView(_CamelModel):
    id: int
    timestamp: str
    text: str
    image: Optional[str] = None


class TimeSinceView(_CamelModel):
    id: int
    name: str
    date: str


class DurationTrackerView(_CamelModel):
    id: int
    name: str
    type: str = "timer"
    is_running: bool = False
    is_locked: bool = False
    start_time: Optional[str] = None
    elapsed_ms: int = 0
    value: int = 0


class DayState(_CamelModel):
    """
    Complete view of one user's day.

    customFields holds exactly one entry per field template, in template
    order. Trackers reflect their current global rows.
    """
    date: str
    previous_bedtime: str = ""
    wake_time: str = ""
    custom_fields: list[ResolvedField] = Field(default_factory=list)
    daily_custom_fields: list[DailyCustomFieldView] = Field(default_factory=list)
    daily_tasks: list[TaskView] = Field(default_factory=list)
    custom_counters: list[CounterView] = Field(default_factory=list)
    entries: list[EntryView] = Field(default_factory=list)
    time_since_trackers: list[TimeSinceView] = Field(default_factory=list)
    duration_trackers: list[DurationTrackerView] = Field(default_factory=list)

    def to_json_dict(self) -> dict[str, Any]:
        """Serialize with the camelCase wire names"""
        return self.model_dump(mode="json", by_alias=True)
