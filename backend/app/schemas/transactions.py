from datetime import date
from decimal import Decimal
from typing import Literal, Optional

from pydantic import BaseModel

TransactionType = Literal["income", "expense"]


class TransactionOut(BaseModel):
    id: int
    amount: Decimal
    type: str
    txn_date: date
    category_id: Optional[int]
    category_name: Optional[str]
    category_icon: Optional[str]
    category_color: Optional[str]
    wallet_id: Optional[int]
    wallet_name: Optional[str]
    wallet_type: Optional[str]
    wallet_currency: Optional[str]
    import_batch_id: Optional[int]
    note: Optional[str]
    source: str
    external_ref: Optional[str]


class TransactionCreate(BaseModel):
    amount: Decimal
    type: TransactionType
    txn_date: date
    category_id: Optional[int] = None
    wallet_id: Optional[int] = None
    note: Optional[str] = None
    source: str = "manual"


class TransactionUpdate(BaseModel):
    amount: Optional[Decimal] = None
    type: Optional[TransactionType] = None
    txn_date: Optional[date] = None
    category_id: Optional[int] = None
    wallet_id: Optional[int] = None
    note: Optional[str] = None
