from datetime import date
from decimal import Decimal
from typing import List, Optional

from fastapi import APIRouter, Depends, HTTPException, Query, Response
from sqlalchemy import or_
from sqlalchemy.orm import Session

from app.api.categories import get_user_category
from app.api.deps import get_current_user
from app.db.models import Category, Transaction, Wallet
from app.db.session import get_db
from app.schemas.transactions import TransactionCreate, TransactionOut, TransactionUpdate
from app.services.identity import AuthenticatedUser

router = APIRouter()


def build_transactions_query(
    db: Session,
    user_id: str,
    *,
    start_date: Optional[date] = None,
    end_date: Optional[date] = None,
    txn_type: Optional[str] = None,
    category_id: Optional[int] = None,
    wallet_id: Optional[int] = None,
    search: Optional[str] = None,
):
    query = (
        db.query(
            Transaction,
            Category.name.label("category_name"),
            Category.icon.label("category_icon"),
            Category.color.label("category_color"),
            Wallet.name.label("wallet_name"),
            Wallet.type.label("wallet_type"),
            Wallet.currency.label("wallet_currency"),
        )
        .outerjoin(Category, Transaction.category_id == Category.id)
        .outerjoin(Wallet, Transaction.wallet_id == Wallet.id)
        .filter(Transaction.user_id == user_id)
        .order_by(
            Transaction.txn_date.desc(),
            Transaction.created_at.desc(),
            Transaction.id.desc(),
        )
    )

    if start_date:
        query = query.filter(Transaction.txn_date >= start_date)
    if end_date:
        query = query.filter(Transaction.txn_date <= end_date)
    if txn_type in ("income", "expense"):
        query = query.filter(Transaction.type == txn_type)
    if category_id:
        query = query.filter(Transaction.category_id == category_id)
    if wallet_id:
        query = query.filter(Transaction.wallet_id == wallet_id)
    if search:
        query = query.filter(
            or_(
                Transaction.note.ilike(f"%{search}%"),
                Transaction.external_ref.ilike(f"%{search}%"),
            )
        )

    return query


def transaction_out(row) -> TransactionOut:
    transaction = row.Transaction
    return TransactionOut(
        id=transaction.id,
        amount=transaction.amount,
        type=transaction.type,
        txn_date=transaction.txn_date,
        category_id=transaction.category_id,
        category_name=row.category_name,
        category_icon=row.category_icon,
        category_color=row.category_color,
        wallet_id=transaction.wallet_id,
        wallet_name=row.wallet_name,
        wallet_type=row.wallet_type,
        wallet_currency=row.wallet_currency,
        import_batch_id=transaction.import_batch_id,
        note=transaction.note,
        source=transaction.source,
        external_ref=transaction.external_ref,
    )


def get_user_wallet(db: Session, user_id: str, wallet_id: int) -> Wallet:
    wallet = (
        db.query(Wallet)
        .filter(Wallet.id == wallet_id, Wallet.user_id == user_id)
        .one_or_none()
    )
    if not wallet:
        raise HTTPException(status_code=404, detail="Wallet not found")
    return wallet


def _check_amount(amount: Decimal) -> None:
    if amount < 0:
        raise HTTPException(status_code=400, detail="Amount must be non-negative")


def _load_transaction(db: Session, user_id: str, transaction_id: int) -> TransactionOut:
    row = (
        build_transactions_query(db, user_id)
        .filter(Transaction.id == transaction_id)
        .one_or_none()
    )
    if not row:
        raise HTTPException(status_code=404, detail="Transaction not found")
    return transaction_out(row)


@router.get("", response_model=List[TransactionOut])
def list_transactions(
    start_date: Optional[date] = Query(None, alias="startDate"),
    end_date: Optional[date] = Query(None, alias="endDate"),
    txn_type: Optional[str] = Query(None, alias="type"),
    category_id: Optional[int] = Query(None, alias="categoryId", ge=1),
    wallet_id: Optional[int] = Query(None, alias="walletId", ge=1),
    search: Optional[str] = Query(None, min_length=1),
    user: AuthenticatedUser = Depends(get_current_user),
    db: Session = Depends(get_db),
) -> List[TransactionOut]:
    query = build_transactions_query(
        db,
        user.user_id,
        start_date=start_date,
        end_date=end_date,
        txn_type=txn_type,
        category_id=category_id,
        wallet_id=wallet_id,
        search=search,
    )
    return [transaction_out(row) for row in query.all()]


@router.post("", response_model=TransactionOut, status_code=201)
def create_transaction(
    payload: TransactionCreate,
    user: AuthenticatedUser = Depends(get_current_user),
    db: Session = Depends(get_db),
) -> TransactionOut:
    _check_amount(payload.amount)
    if payload.category_id:
        get_user_category(db, user.user_id, payload.category_id)
    if payload.wallet_id:
        get_user_wallet(db, user.user_id, payload.wallet_id)

    transaction = Transaction(
        user_id=user.user_id,
        amount=payload.amount,
        type=payload.type,
        txn_date=payload.txn_date,
        category_id=payload.category_id or None,
        wallet_id=payload.wallet_id or None,
        note=payload.note or None,
        source=payload.source or "manual",
    )
    db.add(transaction)
    db.commit()
    return _load_transaction(db, user.user_id, transaction.id)


@router.put("/{transaction_id}", response_model=TransactionOut)
def update_transaction(
    transaction_id: int,
    payload: TransactionUpdate,
    user: AuthenticatedUser = Depends(get_current_user),
    db: Session = Depends(get_db),
) -> TransactionOut:
    transaction = (
        db.query(Transaction)
        .filter(Transaction.id == transaction_id, Transaction.user_id == user.user_id)
        .one_or_none()
    )
    if not transaction:
        raise HTTPException(status_code=404, detail="Transaction not found")

    fields = payload.model_dump(exclude_unset=True)
    if fields.get("amount") is not None:
        _check_amount(fields["amount"])
        transaction.amount = fields["amount"]
    if fields.get("type") is not None:
        transaction.type = fields["type"]
    if fields.get("txn_date") is not None:
        transaction.txn_date = fields["txn_date"]
    if "category_id" in fields:
        if fields["category_id"]:
            get_user_category(db, user.user_id, fields["category_id"])
        transaction.category_id = fields["category_id"] or None
    if "wallet_id" in fields:
        if fields["wallet_id"]:
            get_user_wallet(db, user.user_id, fields["wallet_id"])
        transaction.wallet_id = fields["wallet_id"] or None
    if "note" in fields:
        transaction.note = fields["note"] or None

    db.commit()
    return _load_transaction(db, user.user_id, transaction.id)


@router.delete("/{transaction_id}", status_code=204)
def delete_transaction(
    transaction_id: int,
    user: AuthenticatedUser = Depends(get_current_user),
    db: Session = Depends(get_db),
) -> Response:
    (
        db.query(Transaction)
        .filter(Transaction.id == transaction_id, Transaction.user_id == user.user_id)
        .delete()
    )
    db.commit()
    return Response(status_code=204)
