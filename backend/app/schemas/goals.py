from datetime import date
from decimal import Decimal
from typing import List, Literal, Optional

from pydantic import BaseModel

GoalType = Literal["savings", "debt", "tax", "investment"]


class GoalAllocationOut(BaseModel):
    id: int
    goal_id: int
    wallet_id: int
    amount: Decimal
    wallet_name: Optional[str]
    wallet_type: Optional[str]
    wallet_currency: Optional[str]


class GoalOut(BaseModel):
    id: int
    name: str
    type: str
    target_amount: Decimal
    current_amount: Decimal
    deadline: Optional[date]
    remaining: Decimal
    percentage: float
    is_completed: bool
    estimated_completion_days: Optional[int]


class GoalDetailOut(GoalOut):
    allocations: List[GoalAllocationOut]


class GoalCreate(BaseModel):
    name: str
    type: GoalType
    target_amount: Decimal
    current_amount: Decimal = Decimal("0")
    deadline: Optional[date] = None


class GoalUpdate(BaseModel):
    name: Optional[str] = None
    type: Optional[GoalType] = None
    target_amount: Optional[Decimal] = None
    current_amount: Optional[Decimal] = None
    deadline: Optional[date] = None


class GoalAllocationCreate(BaseModel):
    wallet_id: int
    amount: Decimal
