from collections import defaultdict
from datetime import date
from decimal import Decimal
from typing import List, Optional

from fastapi import APIRouter, Depends, Query
from sqlalchemy.orm import Session

from app.api.dashboard import check_group_by, filter_date_range
from app.api.deps import get_current_user
from app.db.models import Category, Transaction, Wallet
from app.db.session import get_db
from app.schemas.reports import (
    CategoryAmount,
    MerchantTotal,
    PeriodCategorySpend,
    PeriodNetTotals,
    WalletExpenseShare,
)
from app.services.identity import AuthenticatedUser
from app.services.periods import category_spend_by_period, income_expense_by_period

router = APIRouter()


@router.get("/spending-by-category", response_model=List[PeriodCategorySpend])
def spending_by_category(
    start_date: Optional[date] = Query(None, alias="startDate"),
    end_date: Optional[date] = Query(None, alias="endDate"),
    group_by: str = Query("month", alias="groupBy"),
    user: AuthenticatedUser = Depends(get_current_user),
    db: Session = Depends(get_db),
) -> List[PeriodCategorySpend]:
    check_group_by(group_by)
    query = (
        db.query(
            Transaction.txn_date,
            Transaction.amount,
            Category.name.label("category_name"),
            Category.color.label("category_color"),
        )
        .outerjoin(Category, Transaction.category_id == Category.id)
        .filter(Transaction.user_id == user.user_id, Transaction.type == "expense")
    )
    rows = filter_date_range(query, start_date, end_date).all()

    return [
        PeriodCategorySpend(
            period=item["period"],
            categories=[CategoryAmount(**category) for category in item["categories"]],
        )
        for item in category_spend_by_period(rows, group_by)
    ]


@router.get("/income-vs-expense", response_model=List[PeriodNetTotals])
def income_vs_expense(
    start_date: Optional[date] = Query(None, alias="startDate"),
    end_date: Optional[date] = Query(None, alias="endDate"),
    group_by: str = Query("month", alias="groupBy"),
    user: AuthenticatedUser = Depends(get_current_user),
    db: Session = Depends(get_db),
) -> List[PeriodNetTotals]:
    check_group_by(group_by)
    query = db.query(Transaction.txn_date, Transaction.type, Transaction.amount).filter(
        Transaction.user_id == user.user_id
    )
    rows = filter_date_range(query, start_date, end_date).all()
    return [PeriodNetTotals(**item) for item in income_expense_by_period(rows, group_by)]


@router.get("/top-merchants", response_model=List[MerchantTotal])
def top_merchants(
    start_date: Optional[date] = Query(None, alias="startDate"),
    end_date: Optional[date] = Query(None, alias="endDate"),
    limit: int = Query(10, ge=1, le=200),
    user: AuthenticatedUser = Depends(get_current_user),
    db: Session = Depends(get_db),
) -> List[MerchantTotal]:
    query = db.query(Transaction.note, Transaction.amount).filter(
        Transaction.user_id == user.user_id,
        Transaction.type == "expense",
        Transaction.note.isnot(None),
    )
    rows = filter_date_range(query, start_date, end_date).all()

    totals = defaultdict(lambda: {"amount": Decimal("0"), "count": 0})
    for row in rows:
        name = (row.note or "").strip()
        if not name:
            continue
        totals[name]["amount"] += Decimal(row.amount or 0)
        totals[name]["count"] += 1

    ranked = sorted(totals.items(), key=lambda item: item[1]["amount"], reverse=True)
    return [
        MerchantTotal(name=name, amount=bucket["amount"], count=bucket["count"])
        for name, bucket in ranked[:limit]
    ]


@router.get("/wallet-expense-split", response_model=List[WalletExpenseShare])
def wallet_expense_split(
    start_date: Optional[date] = Query(None, alias="startDate"),
    end_date: Optional[date] = Query(None, alias="endDate"),
    user: AuthenticatedUser = Depends(get_current_user),
    db: Session = Depends(get_db),
) -> List[WalletExpenseShare]:
    query = (
        db.query(
            Transaction.wallet_id,
            Transaction.amount,
            Wallet.name.label("wallet_name"),
            Wallet.type.label("wallet_type"),
            Wallet.currency.label("wallet_currency"),
        )
        .outerjoin(Wallet, Transaction.wallet_id == Wallet.id)
        .filter(
            Transaction.user_id == user.user_id,
            Transaction.type == "expense",
            Transaction.wallet_id.isnot(None),
        )
    )
    rows = filter_date_range(query, start_date, end_date).all()

    wallets = {}
    for row in rows:
        if row.wallet_id not in wallets:
            wallets[row.wallet_id] = {
                "wallet_id": row.wallet_id,
                "wallet_name": row.wallet_name or "Unknown",
                "wallet_type": row.wallet_type,
                "wallet_currency": row.wallet_currency,
                "amount": Decimal("0"),
                "count": 0,
            }
        wallets[row.wallet_id]["amount"] += Decimal(row.amount or 0)
        wallets[row.wallet_id]["count"] += 1

    total = sum((wallet["amount"] for wallet in wallets.values()), Decimal("0"))
    shares = [
        WalletExpenseShare(
            **wallet,
            percentage=float(wallet["amount"] / total * 100) if total > 0 else 0.0,
        )
        for wallet in wallets.values()
    ]
    return sorted(shares, key=lambda share: share.amount, reverse=True)
