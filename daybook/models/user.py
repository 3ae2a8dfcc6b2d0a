"""User settings and per-date sleep state"""
from enum import Enum
from pydantic import BaseModel


class Theme(str, Enum):
    LIGHT = "light"
    DARK = "dark"


class UserSettings(BaseModel):
    """Per-user preferences. Created with defaults on first read."""
    user_id: str
    theme: Theme = Theme.LIGHT
    timezone: str = "UTC"
    auto_save: bool = True


class DailySleep(BaseModel):
    """Sleep metrics recorded against a date"""
    user_id: str
    date: str
    previous_bedtime: str = ""
    wake_time: str = ""
