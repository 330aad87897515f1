from decimal import Decimal
from typing import List, Optional

from pydantic import BaseModel


class SummaryResponse(BaseModel):
    total_income: Decimal
    total_expense: Decimal
    net: Decimal


class PeriodTotals(BaseModel):
    period: str
    income: Decimal
    expense: Decimal


class PeriodNetTotals(PeriodTotals):
    net: Decimal


class CategoryBreakdownItem(BaseModel):
    category_id: Optional[int]
    category_name: str
    category_icon: Optional[str]
    category_color: Optional[str]
    total: Decimal


class CategoryAmount(BaseModel):
    name: str
    color: str
    amount: Decimal


class PeriodCategorySpend(BaseModel):
    period: str
    categories: List[CategoryAmount]


class MerchantTotal(BaseModel):
    name: str
    amount: Decimal
    count: int


class WalletExpenseShare(BaseModel):
    wallet_id: int
    wallet_name: str
    wallet_type: Optional[str]
    wallet_currency: Optional[str]
    amount: Decimal
    count: int
    percentage: float
