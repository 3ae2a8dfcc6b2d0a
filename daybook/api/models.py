"""Pydantic models for API request/response validation"""
from typing import Optional, List
from datetime import datetime
from pydantic import BaseModel, ConfigDict, Field
from pydantic.alias_generators import to_camel


class ApiModel(BaseModel):
    """Request bodies use camelCase on the wire"""
    model_config = ConfigDict(alias_generator=to_camel, populate_by_name=True)


# Fields

class FieldTemplateCreateRequest(ApiModel):
    """Request to create a field template"""
    key: str = Field(..., description="Field name, unique per user")
    field_type: str = Field(default="text", description="text|number|currency|date|time|datetime|boolean")


class FieldTemplateTypeRequest(ApiModel):
    field_type: str


class FieldValueRequest(ApiModel):
    """Request to set a field value on a date"""
    key: str
    value: str = ""
    date: Optional[str] = Field(default=None, description="YYYY-MM-DD, defaults to today")


class DailyFieldRequest(ApiModel):
    """Request to add a field that exists on one date only"""
    key: str
    value: str = ""
    date: Optional[str] = None


# Entries and sleep

class EntryCreateRequest(ApiModel):
    text: str = ""
    image: Optional[str] = Field(default=None, description="Base64 image, optionally a data URL")
    date: Optional[str] = None


class EntryUpdateRequest(ApiModel):
    text: str


class SleepRequest(ApiModel):
    previous_bedtime: str = ""
    wake_time: str = ""
    date: Optional[str] = None


class SettingsUpdateRequest(ApiModel):
    theme: Optional[str] = None
    timezone: Optional[str] = None
    auto_save: Optional[bool] = None


# Tasks

class TaskCreateRequest(ApiModel):
    """Request to create a task or sub-task"""
    text: str
    details: Optional[str] = None
    due_date: Optional[str] = None
    parent_task_id: Optional[int] = None
    points: int = Field(default=0, ge=0)
    date: Optional[str] = None


class TaskUpdateRequest(ApiModel):
    text: Optional[str] = None
    details: Optional[str] = None
    due_date: Optional[str] = None
    points: Optional[int] = Field(default=None, ge=0)


# Counters and trackers

class NameRequest(ApiModel):
    name: str


class CounterValueRequest(ApiModel):
    value: int = Field(..., ge=0)
    date: Optional[str] = None


class TimeSinceCreateRequest(ApiModel):
    name: str
    date: str = Field(..., description="Event date counted from (YYYY-MM-DD)")


class TimerAdjustRequest(ApiModel):
    adjustment_ms: int = Field(..., description="Milliseconds to add (negative to remove)")


class TimerManualTimeRequest(ApiModel):
    elapsed_ms: int = Field(..., ge=0)
    start_time: Optional[datetime] = None


# Ordering

class ReorderItem(ApiModel):
    id: int
    order_index: int


class ReorderRequest(ApiModel):
    items: List[ReorderItem]


# Snapshots

class SnapshotCreateRequest(ApiModel):
    date: Optional[str] = Field(default=None, description="Date to capture, defaults to today")


class RetentionPolicyRequest(ApiModel):
    max_days: int
    max_count: int


# Points

class RedeemRequest(ApiModel):
    reward_description: str
    points_cost: int


# Analytics

class RangeRequest(ApiModel):
    start_date: str
    end_date: str
    group_by: str = "day"


class FieldQueryRequest(RangeRequest):
    field_key: Optional[str] = None
    field_keys: Optional[List[str]] = None


class CounterQueryRequest(RangeRequest):
    counter_name: Optional[str] = None
    counter_names: Optional[List[str]] = None


class TimerQueryRequest(RangeRequest):
    timer_name: Optional[str] = None
    timer_names: Optional[List[str]] = None


class TaskQueryRequest(RangeRequest):
    group_by: str = "none"
    completion_status: str = "all"


class HealthCheckResponse(BaseModel):
    """Health check response"""
    status: str = Field(..., description="Service status")
    database: str = Field(..., description="Database connection status")
    timestamp: datetime = Field(..., description="Check timestamp")
