from datetime import date
from io import BytesIO
from typing import Optional

from fastapi import APIRouter, Depends, Query, Response
from fastapi.responses import StreamingResponse
from sqlalchemy.orm import Session

from app.api.deps import get_current_user
from app.api.transactions import build_transactions_query
from app.db.session import get_db
from app.services.exporter import build_workbook, export_records, generate_csv
from app.services.identity import AuthenticatedUser

router = APIRouter()


def _filtered_records(db: Session, user_id: str, **filters):
    return export_records(build_transactions_query(db, user_id, **filters).all())


@router.get("/csv")
def export_csv(
    start_date: Optional[date] = Query(None, alias="startDate"),
    end_date: Optional[date] = Query(None, alias="endDate"),
    txn_type: Optional[str] = Query(None, alias="type"),
    category_id: Optional[int] = Query(None, alias="categoryId", ge=1),
    wallet_id: Optional[int] = Query(None, alias="walletId", ge=1),
    search: Optional[str] = Query(None, min_length=1),
    user: AuthenticatedUser = Depends(get_current_user),
    db: Session = Depends(get_db),
) -> Response:
    records = _filtered_records(
        db,
        user.user_id,
        start_date=start_date,
        end_date=end_date,
        txn_type=txn_type,
        category_id=category_id,
        wallet_id=wallet_id,
        search=search,
    )
    filename = f"transactions-{date.today().isoformat()}.csv"
    return Response(
        content=generate_csv(records),
        media_type="text/csv",
        headers={"Content-Disposition": f'attachment; filename="{filename}"'},
    )


@router.get("/xlsx")
def export_xlsx(
    start_date: Optional[date] = Query(None, alias="startDate"),
    end_date: Optional[date] = Query(None, alias="endDate"),
    txn_type: Optional[str] = Query(None, alias="type"),
    category_id: Optional[int] = Query(None, alias="categoryId", ge=1),
    wallet_id: Optional[int] = Query(None, alias="walletId", ge=1),
    search: Optional[str] = Query(None, min_length=1),
    user: AuthenticatedUser = Depends(get_current_user),
    db: Session = Depends(get_db),
):
    records = _filtered_records(
        db,
        user.user_id,
        start_date=start_date,
        end_date=end_date,
        txn_type=txn_type,
        category_id=category_id,
        wallet_id=wallet_id,
        search=search,
    )
    workbook = build_workbook(records)

    output = BytesIO()
    workbook.save(output)
    output.seek(0)
    filename = f"transactions-{date.today().isoformat()}.xlsx"
    headers = {"Content-Disposition": f'attachment; filename="{filename}"'}
    return StreamingResponse(
        output,
        media_type="application/vnd.openxmlformats-officedocument.spreadsheetml.sheet",
        headers=headers,
    )
