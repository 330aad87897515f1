from datetime import date
from decimal import Decimal
from typing import List, Optional

from fastapi import APIRouter, Depends, HTTPException, Query, Response
from sqlalchemy import func, or_
from sqlalchemy.orm import Session

from app.api.categories import get_user_category
from app.api.deps import get_current_user
from app.db.models import Budget, Transaction
from app.db.session import get_db
from app.schemas.budgets import BudgetCreate, BudgetOut, BudgetUpdate
from app.services.identity import AuthenticatedUser
from app.services.periods import budget_window, previous_budget_window

router = APIRouter()


def calculate_spent(
    db: Session,
    user_id: str,
    category_id: int,
    start_date: Optional[date],
    end_date: Optional[date],
) -> Decimal:
    query = db.query(func.coalesce(func.sum(Transaction.amount), 0)).filter(
        Transaction.user_id == user_id,
        Transaction.type == "expense",
        Transaction.category_id == category_id,
    )
    if start_date:
        query = query.filter(Transaction.txn_date >= start_date)
    if end_date:
        query = query.filter(Transaction.txn_date <= end_date)
    return Decimal(str(query.scalar() or 0))


def _budget_out(db: Session, budget: Budget, today: date) -> BudgetOut:
    start, end = budget_window(budget.period, today, budget.start_date, budget.end_date)
    spent = calculate_spent(db, budget.user_id, budget.category_id, start, end)

    previous = previous_budget_window(budget.period, today)
    last_period_spent = (
        calculate_spent(db, budget.user_id, budget.category_id, *previous)
        if previous
        else Decimal("0")
    )

    amount = Decimal(budget.amount)
    percentage_used = float(spent / amount * 100) if amount > 0 else 0.0
    category = budget.category

    return BudgetOut(
        id=budget.id,
        category_id=budget.category_id,
        category_name=category.name if category else None,
        category_icon=category.icon if category else None,
        category_color=category.color if category else None,
        amount=amount,
        period=budget.period,
        start_date=budget.start_date,
        end_date=budget.end_date,
        spent=spent,
        last_period_spent=last_period_spent,
        remaining=amount - spent,
        percentage_used=percentage_used,
        is_over_budget=spent > amount,
    )


def _get_user_budget(db: Session, user_id: str, budget_id: int) -> Budget:
    budget = (
        db.query(Budget)
        .filter(Budget.id == budget_id, Budget.user_id == user_id)
        .one_or_none()
    )
    if not budget:
        raise HTTPException(status_code=404, detail="Budget not found")
    return budget


def _check_amount(amount: Decimal) -> None:
    if amount <= 0:
        raise HTTPException(status_code=400, detail="Amount must be greater than 0")


@router.get("", response_model=List[BudgetOut])
def list_budgets(
    active: bool = Query(False),
    user: AuthenticatedUser = Depends(get_current_user),
    db: Session = Depends(get_db),
) -> List[BudgetOut]:
    today = date.today()
    query = (
        db.query(Budget)
        .filter(Budget.user_id == user.user_id)
        .order_by(Budget.created_at.desc(), Budget.id.desc())
    )
    if active:
        query = query.filter(or_(Budget.end_date.is_(None), Budget.end_date >= today))

    return [_budget_out(db, budget, today) for budget in query.all()]


@router.get("/{budget_id}", response_model=BudgetOut)
def get_budget(
    budget_id: int,
    user: AuthenticatedUser = Depends(get_current_user),
    db: Session = Depends(get_db),
) -> BudgetOut:
    budget = _get_user_budget(db, user.user_id, budget_id)
    return _budget_out(db, budget, date.today())


@router.post("", response_model=BudgetOut, status_code=201)
def create_budget(
    payload: BudgetCreate,
    user: AuthenticatedUser = Depends(get_current_user),
    db: Session = Depends(get_db),
) -> BudgetOut:
    _check_amount(payload.amount)
    get_user_category(db, user.user_id, payload.category_id)

    budget = Budget(
        user_id=user.user_id,
        category_id=payload.category_id,
        amount=payload.amount,
        period=payload.period,
        start_date=payload.start_date,
        end_date=payload.end_date,
    )
    db.add(budget)
    db.commit()
    db.refresh(budget)
    return _budget_out(db, budget, date.today())


@router.put("/{budget_id}", response_model=BudgetOut)
def update_budget(
    budget_id: int,
    payload: BudgetUpdate,
    user: AuthenticatedUser = Depends(get_current_user),
    db: Session = Depends(get_db),
) -> BudgetOut:
    budget = _get_user_budget(db, user.user_id, budget_id)
    fields = payload.model_dump(exclude_unset=True)

    if fields.get("category_id") is not None:
        get_user_category(db, user.user_id, fields["category_id"])
        budget.category_id = fields["category_id"]
    if fields.get("amount") is not None:
        _check_amount(fields["amount"])
        budget.amount = fields["amount"]
    if fields.get("period") is not None:
        budget.period = fields["period"]
    if fields.get("start_date") is not None:
        budget.start_date = fields["start_date"]
    if "end_date" in fields:
        budget.end_date = fields["end_date"]

    db.commit()
    db.refresh(budget)
    return _budget_out(db, budget, date.today())


@router.delete("/{budget_id}", status_code=204)
def delete_budget(
    budget_id: int,
    user: AuthenticatedUser = Depends(get_current_user),
    db: Session = Depends(get_db),
) -> Response:
    budget = _get_user_budget(db, user.user_id, budget_id)
    db.delete(budget)
    db.commit()
    return Response(status_code=204)
