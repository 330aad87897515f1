from decimal import Decimal
from typing import List, Literal, Optional

from pydantic import BaseModel

from app.schemas.reports import PeriodTotals

WalletType = Literal["bank", "card", "cash", "wallet"]


class WalletOut(BaseModel):
    id: int
    name: str
    type: str
    balance: Decimal
    currency: str


class WalletCreate(BaseModel):
    name: str
    type: WalletType
    balance: Decimal = Decimal("0")
    currency: Optional[str] = None


class WalletUpdate(BaseModel):
    name: Optional[str] = None
    type: Optional[WalletType] = None
    balance: Optional[Decimal] = None
    currency: Optional[str] = None


class WalletTotals(BaseModel):
    total_income: Decimal
    total_expense: Decimal
    net_change: Decimal
    transaction_count: int


class WalletSummaryResponse(BaseModel):
    wallet: WalletOut
    summary: WalletTotals
    trend: List[PeriodTotals]


class CurrencySettings(BaseModel):
    default_currency: str
    available_currencies: List[str]
