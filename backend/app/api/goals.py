from datetime import date
from decimal import Decimal
from typing import List, Optional

from fastapi import APIRouter, Depends, HTTPException, Query, Response
from sqlalchemy import or_
from sqlalchemy.orm import Session

from app.api.deps import get_current_user
from app.api.transactions import get_user_wallet
from app.db.models import Goal, GoalAllocation
from app.db.session import get_db
from app.schemas.goals import (
    GoalAllocationCreate,
    GoalAllocationOut,
    GoalCreate,
    GoalDetailOut,
    GoalOut,
    GoalUpdate,
)
from app.services.identity import AuthenticatedUser

router = APIRouter()


def goal_metrics(goal: Goal, today: date) -> dict:
    """Progress figures derived from the stored target and current amounts."""
    target = Decimal(goal.target_amount)
    current = Decimal(goal.current_amount or 0)
    remaining = target - current
    is_completed = current >= target
    percentage = float(current / target * 100) if target > 0 else 0.0

    days_left = None
    if goal.deadline and not is_completed and remaining > 0:
        days_left = max((goal.deadline - today).days, 0)

    return {
        "remaining": remaining,
        "percentage": min(percentage, 100.0),
        "is_completed": is_completed,
        "estimated_completion_days": days_left,
    }


def _goal_out(goal: Goal, today: date) -> GoalOut:
    return GoalOut(
        id=goal.id,
        name=goal.name,
        type=goal.type,
        target_amount=goal.target_amount,
        current_amount=goal.current_amount,
        deadline=goal.deadline,
        **goal_metrics(goal, today),
    )


def _allocation_out(allocation: GoalAllocation) -> GoalAllocationOut:
    wallet = allocation.wallet
    return GoalAllocationOut(
        id=allocation.id,
        goal_id=allocation.goal_id,
        wallet_id=allocation.wallet_id,
        amount=allocation.amount,
        wallet_name=wallet.name if wallet else None,
        wallet_type=wallet.type if wallet else None,
        wallet_currency=wallet.currency if wallet else None,
    )


def _get_user_goal(db: Session, user_id: str, goal_id: int) -> Goal:
    goal = db.query(Goal).filter(Goal.id == goal_id, Goal.user_id == user_id).one_or_none()
    if not goal:
        raise HTTPException(status_code=404, detail="Goal not found")
    return goal


def _check_target(amount: Decimal) -> None:
    if amount <= 0:
        raise HTTPException(status_code=400, detail="Target amount must be greater than 0")


def _check_current(amount: Decimal) -> None:
    if amount < 0:
        raise HTTPException(status_code=400, detail="Current amount must be non-negative")


@router.get("", response_model=List[GoalOut])
def list_goals(
    active: bool = Query(False),
    user: AuthenticatedUser = Depends(get_current_user),
    db: Session = Depends(get_db),
) -> List[GoalOut]:
    today = date.today()
    query = (
        db.query(Goal)
        .filter(Goal.user_id == user.user_id)
        .order_by(Goal.created_at.desc(), Goal.id.desc())
    )
    if active:
        query = query.filter(or_(Goal.deadline.is_(None), Goal.deadline >= today))
    return [_goal_out(goal, today) for goal in query.all()]


@router.get("/{goal_id}", response_model=GoalDetailOut)
def get_goal(
    goal_id: int,
    user: AuthenticatedUser = Depends(get_current_user),
    db: Session = Depends(get_db),
) -> GoalDetailOut:
    goal = _get_user_goal(db, user.user_id, goal_id)
    allocations = (
        db.query(GoalAllocation)
        .filter(GoalAllocation.goal_id == goal.id)
        .order_by(GoalAllocation.id)
        .all()
    )
    return GoalDetailOut(
        **_goal_out(goal, date.today()).model_dump(),
        allocations=[_allocation_out(allocation) for allocation in allocations],
    )


@router.post("", response_model=GoalOut, status_code=201)
def create_goal(
    payload: GoalCreate,
    user: AuthenticatedUser = Depends(get_current_user),
    db: Session = Depends(get_db),
) -> GoalOut:
    name = payload.name.strip()
    if not name:
        raise HTTPException(
            status_code=400, detail="Missing required fields: name, type, target_amount"
        )
    _check_target(payload.target_amount)
    _check_current(payload.current_amount)

    goal = Goal(
        user_id=user.user_id,
        name=name,
        type=payload.type,
        target_amount=payload.target_amount,
        current_amount=payload.current_amount,
        deadline=payload.deadline,
    )
    db.add(goal)
    db.commit()
    return _goal_out(goal, date.today())


@router.put("/{goal_id}", response_model=GoalOut)
def update_goal(
    goal_id: int,
    payload: GoalUpdate,
    user: AuthenticatedUser = Depends(get_current_user),
    db: Session = Depends(get_db),
) -> GoalOut:
    goal = _get_user_goal(db, user.user_id, goal_id)
    fields = payload.model_dump(exclude_unset=True)

    if fields.get("name") is not None:
        name = fields["name"].strip()
        if not name:
            raise HTTPException(status_code=400, detail="Goal name is required")
        goal.name = name
    if fields.get("type") is not None:
        goal.type = fields["type"]
    if fields.get("target_amount") is not None:
        _check_target(fields["target_amount"])
        goal.target_amount = fields["target_amount"]
    if fields.get("current_amount") is not None:
        _check_current(fields["current_amount"])
        goal.current_amount = fields["current_amount"]
    if "deadline" in fields:
        goal.deadline = fields["deadline"]

    db.commit()
    return _goal_out(goal, date.today())


@router.delete("/{goal_id}", status_code=204)
def delete_goal(
    goal_id: int,
    user: AuthenticatedUser = Depends(get_current_user),
    db: Session = Depends(get_db),
) -> Response:
    goal = _get_user_goal(db, user.user_id, goal_id)
    db.delete(goal)
    db.commit()
    return Response(status_code=204)


@router.post("/{goal_id}/allocations", response_model=GoalAllocationOut, status_code=201)
def add_allocation(
    goal_id: int,
    payload: GoalAllocationCreate,
    user: AuthenticatedUser = Depends(get_current_user),
    db: Session = Depends(get_db),
) -> GoalAllocationOut:
    goal = _get_user_goal(db, user.user_id, goal_id)
    wallet = get_user_wallet(db, user.user_id, payload.wallet_id)
    if payload.amount <= 0:
        raise HTTPException(status_code=400, detail="Amount must be greater than 0")

    allocation = GoalAllocation(goal_id=goal.id, wallet_id=wallet.id, amount=payload.amount)
    db.add(allocation)
    db.commit()
    db.refresh(allocation)
    return _allocation_out(allocation)


@router.delete("/{goal_id}/allocations/{allocation_id}", status_code=204)
def delete_allocation(
    goal_id: int,
    allocation_id: int,
    user: AuthenticatedUser = Depends(get_current_user),
    db: Session = Depends(get_db),
) -> Response:
    goal = _get_user_goal(db, user.user_id, goal_id)
    (
        db.query(GoalAllocation)
        .filter(GoalAllocation.id == allocation_id, GoalAllocation.goal_id == goal.id)
        .delete()
    )
    db.commit()
    return Response(status_code=204)
