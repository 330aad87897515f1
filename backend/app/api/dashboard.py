from datetime import date
from decimal import Decimal
from typing import List, Optional

from fastapi import APIRouter, Depends, HTTPException, Query
from sqlalchemy import func
from sqlalchemy.orm import Session

from app.api.deps import get_current_user
from app.db.models import Category, Transaction
from app.db.session import get_db
from app.schemas.reports import CategoryBreakdownItem, PeriodTotals, SummaryResponse
from app.services.identity import AuthenticatedUser
from app.services.periods import GROUP_BY_OPTIONS, UNCATEGORIZED_NAME, income_expense_by_period

router = APIRouter()


def filter_date_range(query, start_date: Optional[date], end_date: Optional[date]):
    if start_date:
        query = query.filter(Transaction.txn_date >= start_date)
    if end_date:
        query = query.filter(Transaction.txn_date <= end_date)
    return query


def check_group_by(group_by: str) -> str:
    if group_by not in GROUP_BY_OPTIONS:
        raise HTTPException(status_code=400, detail='groupBy must be "day", "week", or "month"')
    return group_by


@router.get("/summary", response_model=SummaryResponse)
def summary(
    start_date: Optional[date] = Query(None, alias="startDate"),
    end_date: Optional[date] = Query(None, alias="endDate"),
    user: AuthenticatedUser = Depends(get_current_user),
    db: Session = Depends(get_db),
) -> SummaryResponse:
    query = db.query(Transaction.type, func.sum(Transaction.amount).label("total")).filter(
        Transaction.user_id == user.user_id
    )
    query = filter_date_range(query, start_date, end_date)
    totals = {row.type: Decimal(str(row.total or 0)) for row in query.group_by(Transaction.type).all()}

    total_income = totals.get("income", Decimal("0"))
    total_expense = totals.get("expense", Decimal("0"))
    return SummaryResponse(
        total_income=total_income,
        total_expense=total_expense,
        net=total_income - total_expense,
    )


@router.get("/trend", response_model=List[PeriodTotals])
def trend(
    start_date: Optional[date] = Query(None, alias="startDate"),
    end_date: Optional[date] = Query(None, alias="endDate"),
    group_by: str = Query("month", alias="groupBy"),
    user: AuthenticatedUser = Depends(get_current_user),
    db: Session = Depends(get_db),
) -> List[PeriodTotals]:
    check_group_by(group_by)
    query = (
        db.query(Transaction.txn_date, Transaction.type, Transaction.amount)
        .filter(Transaction.user_id == user.user_id)
        .order_by(Transaction.txn_date)
    )
    rows = filter_date_range(query, start_date, end_date).all()

    return [
        PeriodTotals(period=item["period"], income=item["income"], expense=item["expense"])
        for item in income_expense_by_period(rows, group_by)
    ]


@router.get("/category-breakdown", response_model=List[CategoryBreakdownItem])
def category_breakdown(
    start_date: Optional[date] = Query(None, alias="startDate"),
    end_date: Optional[date] = Query(None, alias="endDate"),
    user: AuthenticatedUser = Depends(get_current_user),
    db: Session = Depends(get_db),
) -> List[CategoryBreakdownItem]:
    total_expr = func.sum(Transaction.amount)
    query = (
        db.query(
            Category.id.label("id"),
            Category.name.label("name"),
            Category.icon.label("icon"),
            Category.color.label("color"),
            total_expr.label("total"),
        )
        .select_from(Transaction)
        .outerjoin(Category, Transaction.category_id == Category.id)
        .filter(Transaction.user_id == user.user_id, Transaction.type == "expense")
    )
    query = filter_date_range(query, start_date, end_date)
    rows = (
        query.group_by(Category.id, Category.name, Category.icon, Category.color)
        .order_by(total_expr.desc())
        .all()
    )

    return [
        CategoryBreakdownItem(
            category_id=row.id,
            category_name=row.name or UNCATEGORIZED_NAME,
            category_icon=row.icon,
            category_color=row.color,
            total=Decimal(str(row.total or 0)),
        )
        for row in rows
    ]
