"""Counter, time-since and timer models"""
from typing import Optional
from datetime import datetime
from pydantic import BaseModel, Field


class CustomCounter(BaseModel):
    """Named counter; its value is kept per date"""
    id: int
    user_id: str
    name: str
    order_index: int = 0


class CounterValue(BaseModel):
    counter_id: int
    user_id: str
    date: str
    value: int = Field(default=0, ge=0)


class TimeSinceTracker(BaseModel):
    """Counts days since an event date. Global, not per day."""
    id: int
    user_id: str
    name: str
    date: str
    order_index: int = 0


class DurationTracker(BaseModel):
    """Stopwatch-style timer. Global, not per day."""
    id: int
    user_id: str
    name: str
    type: str = "timer"
    is_running: bool = False
    is_locked: bool = False
    start_time: Optional[datetime] = None
    elapsed_ms: int = 0
    value: int = 0  # whole seconds
    order_index: int = 0


class TimerDailyTotal(BaseModel):
    """Milliseconds a timer accrued on one date"""
    tracker_id: int
    user_id: str
    date: str
    elapsed_ms: int = 0
