"""Activity log entry model"""
from typing import Optional
from datetime import datetime
from pydantic import BaseModel


class ActivityEntry(BaseModel):
    """Free-text log entry for a date, optionally with a base64 image"""
    id: int
    user_id: str
    date: str
    text: str
    image: Optional[str] = None
    timestamp: datetime
    order_index: int = 0
