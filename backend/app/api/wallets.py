from datetime import date
from decimal import Decimal
from typing import List, Optional

from fastapi import APIRouter, Depends, HTTPException, Query, Response
from sqlalchemy.orm import Session

from app.api.deps import get_current_user
from app.api.transactions import build_transactions_query, get_user_wallet, transaction_out
from app.core.config import settings
from app.db.models import Transaction, Wallet
from app.db.session import get_db
from app.schemas.reports import PeriodTotals
from app.schemas.transactions import TransactionOut
from app.schemas.wallets import (
    WalletCreate,
    WalletOut,
    WalletSummaryResponse,
    WalletTotals,
    WalletUpdate,
)
from app.services.identity import AuthenticatedUser
from app.services.periods import income_expense_by_period

router = APIRouter()


def _wallet_out(wallet: Wallet) -> WalletOut:
    return WalletOut(
        id=wallet.id,
        name=wallet.name,
        type=wallet.type,
        balance=wallet.balance,
        currency=wallet.currency,
    )


def _check_balance(balance: Decimal) -> None:
    if balance < 0:
        raise HTTPException(status_code=400, detail="Balance must be non-negative")


@router.get("", response_model=List[WalletOut])
def list_wallets(
    user: AuthenticatedUser = Depends(get_current_user),
    db: Session = Depends(get_db),
) -> List[WalletOut]:
    wallets = (
        db.query(Wallet)
        .filter(Wallet.user_id == user.user_id)
        .order_by(Wallet.created_at.desc(), Wallet.id.desc())
        .all()
    )
    return [_wallet_out(wallet) for wallet in wallets]


@router.get("/{wallet_id}", response_model=WalletOut)
def get_wallet(
    wallet_id: int,
    user: AuthenticatedUser = Depends(get_current_user),
    db: Session = Depends(get_db),
) -> WalletOut:
    return _wallet_out(get_user_wallet(db, user.user_id, wallet_id))


@router.post("", response_model=WalletOut, status_code=201)
def create_wallet(
    payload: WalletCreate,
    user: AuthenticatedUser = Depends(get_current_user),
    db: Session = Depends(get_db),
) -> WalletOut:
    name = payload.name.strip()
    if not name:
        raise HTTPException(status_code=400, detail="Missing required fields: name, type")
    _check_balance(payload.balance)

    wallet = Wallet(
        user_id=user.user_id,
        name=name,
        type=payload.type,
        balance=payload.balance,
        currency=payload.currency or settings.DEFAULT_CURRENCY,
    )
    db.add(wallet)
    db.commit()
    return _wallet_out(wallet)


@router.put("/{wallet_id}", response_model=WalletOut)
def update_wallet(
    wallet_id: int,
    payload: WalletUpdate,
    user: AuthenticatedUser = Depends(get_current_user),
    db: Session = Depends(get_db),
) -> WalletOut:
    wallet = get_user_wallet(db, user.user_id, wallet_id)
    fields = payload.model_dump(exclude_unset=True)

    if fields.get("name") is not None:
        name = fields["name"].strip()
        if not name:
            raise HTTPException(status_code=400, detail="Wallet name is required")
        wallet.name = name
    if fields.get("type") is not None:
        wallet.type = fields["type"]
    if fields.get("balance") is not None:
        _check_balance(fields["balance"])
        wallet.balance = fields["balance"]
    if fields.get("currency"):
        wallet.currency = fields["currency"]

    db.commit()
    return _wallet_out(wallet)


@router.delete("/{wallet_id}", status_code=204)
def delete_wallet(
    wallet_id: int,
    user: AuthenticatedUser = Depends(get_current_user),
    db: Session = Depends(get_db),
) -> Response:
    wallet = get_user_wallet(db, user.user_id, wallet_id)
    db.delete(wallet)
    db.commit()
    return Response(status_code=204)


@router.get("/{wallet_id}/summary", response_model=WalletSummaryResponse)
def wallet_summary(
    wallet_id: int,
    start_date: Optional[date] = Query(None, alias="startDate"),
    end_date: Optional[date] = Query(None, alias="endDate"),
    user: AuthenticatedUser = Depends(get_current_user),
    db: Session = Depends(get_db),
) -> WalletSummaryResponse:
    wallet = get_user_wallet(db, user.user_id, wallet_id)

    query = db.query(Transaction.amount, Transaction.type, Transaction.txn_date).filter(
        Transaction.user_id == user.user_id,
        Transaction.wallet_id == wallet.id,
    )
    if start_date:
        query = query.filter(Transaction.txn_date >= start_date)
    if end_date:
        query = query.filter(Transaction.txn_date <= end_date)
    rows = query.all()

    total_income = sum((row.amount for row in rows if row.type == "income"), Decimal("0"))
    total_expense = sum((row.amount for row in rows if row.type == "expense"), Decimal("0"))
    trend = income_expense_by_period(rows, "month")

    return WalletSummaryResponse(
        wallet=_wallet_out(wallet),
        summary=WalletTotals(
            total_income=total_income,
            total_expense=total_expense,
            net_change=total_income - total_expense,
            transaction_count=len(rows),
        ),
        trend=[
            PeriodTotals(period=item["period"], income=item["income"], expense=item["expense"])
            for item in trend
        ],
    )


@router.get("/{wallet_id}/transactions", response_model=List[TransactionOut])
def wallet_transactions(
    wallet_id: int,
    start_date: Optional[date] = Query(None, alias="startDate"),
    end_date: Optional[date] = Query(None, alias="endDate"),
    txn_type: Optional[str] = Query(None, alias="type"),
    limit: int = Query(100, ge=1, le=1000),
    user: AuthenticatedUser = Depends(get_current_user),
    db: Session = Depends(get_db),
) -> List[TransactionOut]:
    wallet = get_user_wallet(db, user.user_id, wallet_id)
    query = build_transactions_query(
        db,
        user.user_id,
        start_date=start_date,
        end_date=end_date,
        txn_type=txn_type,
        wallet_id=wallet.id,
    )
    return [transaction_out(row) for row in query.limit(limit).all()]
