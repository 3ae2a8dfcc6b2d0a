"""Daily task models"""
from typing import Optional
from datetime import datetime
from pydantic import BaseModel, Field


class DailyTask(BaseModel):
    """Task row. Sub-tasks reference their parent through parent_task_id."""
    id: int
    user_id: str
    date: str
    due_date: Optional[str] = None
    text: str
    details: Optional[str] = None
    done: bool = False
    points: int = Field(default=0, ge=0)
    pinned: bool = False
    recurring: bool = False
    order_index: int = 0
    parent_task_id: Optional[int] = None
    log_entry_id: Optional[int] = None
    created_at: Optional[datetime] = None
    completed_at: Optional[datetime] = None


class PointsRedemption(BaseModel):
    """Points spent on a reward"""
    id: int
    user_id: str
    reward_description: str
    points_cost: int = Field(gt=0)
    redeemed_at: Optional[datetime] = None


class PointsBalance(BaseModel):
    """Points earned from completed tasks minus points redeemed"""
    earned: int = 0
    redeemed: int = 0
    balance: int = 0


class RedemptionReceipt(BaseModel):
    """Outcome of a redemption: the record, its reward task and the new balance"""
    redemption: PointsRedemption
    task: DailyTask
    balance: PointsBalance
