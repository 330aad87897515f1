from datetime import date
from decimal import Decimal
from typing import Literal, Optional

from pydantic import BaseModel

BudgetPeriod = Literal["monthly", "weekly", "custom"]


class BudgetOut(BaseModel):
    id: int
    category_id: int
    category_name: Optional[str]
    category_icon: Optional[str]
    category_color: Optional[str]
    amount: Decimal
    period: str
    start_date: date
    end_date: Optional[date]
    spent: Decimal
    last_period_spent: Decimal
    remaining: Decimal
    percentage_used: float
    is_over_budget: bool


class BudgetCreate(BaseModel):
    category_id: int
    amount: Decimal
    period: BudgetPeriod
    start_date: date
    end_date: Optional[date] = None


class BudgetUpdate(BaseModel):
    category_id: Optional[int] = None
    amount: Optional[Decimal] = None
    period: Optional[BudgetPeriod] = None
    start_date: Optional[date] = None
    end_date: Optional[date] = None
