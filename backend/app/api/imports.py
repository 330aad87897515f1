from typing import Optional

from fastapi import APIRouter, Depends, File, Form, HTTPException, Query, UploadFile
from sqlalchemy.orm import Session

from app.api.deps import get_current_user
from app.core.config import settings
from app.db.models import ImportBatch
from app.db.session import get_db
from app.schemas.imports import (
    CsvImportRequest,
    ImportBatchOut,
    ImportRowFailure,
    ImportRowResults,
    ImportRowSuccess,
    ImportSummary,
)
from app.services.errors import ImportValidationError
from app.services.identity import AuthenticatedUser
from app.services.import_runner import ImportOutcome, run_import
from app.services.importer import decode_base64_file

router = APIRouter()


def _summary(outcome: ImportOutcome) -> ImportSummary:
    limit = settings.IMPORT_PREVIEW_LIMIT
    batch = outcome.batch
    return ImportSummary(
        batch_id=batch.id,
        total_rows=batch.total_rows,
        success_rows=batch.success_rows,
        failed_rows=batch.failed_rows,
        status=batch.status,
        categories_created=outcome.categories_created,
        results=ImportRowResults(
            success=[ImportRowSuccess(**item) for item in outcome.succeeded[:limit]],
            failed=[ImportRowFailure(**item) for item in outcome.failed[:limit]],
        ),
    )


def _batch_out(batch: ImportBatch) -> ImportBatchOut:
    return ImportBatchOut(
        id=batch.id,
        source=batch.source,
        source_filename=batch.source_filename,
        total_rows=batch.total_rows,
        success_rows=batch.success_rows,
        failed_rows=batch.failed_rows,
        status=batch.status,
        started_at=batch.started_at,
        completed_at=batch.completed_at,
        error_message=batch.error_message,
    )


@router.post("/csv", response_model=ImportSummary)
def import_csv(
    payload: CsvImportRequest,
    user: AuthenticatedUser = Depends(get_current_user),
    db: Session = Depends(get_db),
) -> ImportSummary:
    if not payload.file or payload.mapping is None:
        raise HTTPException(
            status_code=400,
            detail="Missing required fields: file (base64 or buffer) and mapping config",
        )

    try:
        content = decode_base64_file(payload.file)
        outcome = run_import(db, user.user_id, content, payload.mapping)
    except ImportValidationError as exc:
        raise HTTPException(status_code=400, detail=str(exc)) from exc

    return _summary(outcome)


@router.post("/csv/upload", response_model=ImportSummary)
def upload_csv(
    file: UploadFile = File(...),
    amount_field: Optional[str] = Form(None, alias="amountField"),
    date_field: Optional[str] = Form(None, alias="dateField"),
    type_field: Optional[str] = Form(None, alias="typeField"),
    category_field: Optional[str] = Form(None, alias="categoryField"),
    note_field: Optional[str] = Form(None, alias="noteField"),
    user: AuthenticatedUser = Depends(get_current_user),
    db: Session = Depends(get_db),
) -> ImportSummary:
    mapping = {
        "amountField": amount_field,
        "dateField": date_field,
        "typeField": type_field,
        "categoryField": category_field,
        "noteField": note_field,
    }

    try:
        outcome = run_import(
            db,
            user.user_id,
            file.file.read(),
            mapping,
            source_filename=file.filename,
        )
    except ImportValidationError as exc:
        raise HTTPException(status_code=400, detail=str(exc)) from exc

    return _summary(outcome)


@router.get("", response_model=list[ImportBatchOut])
def list_imports(
    limit: int = Query(20, ge=1, le=200),
    user: AuthenticatedUser = Depends(get_current_user),
    db: Session = Depends(get_db),
) -> list[ImportBatchOut]:
    batches = (
        db.query(ImportBatch)
        .filter(ImportBatch.user_id == user.user_id)
        .order_by(ImportBatch.started_at.desc(), ImportBatch.id.desc())
        .limit(limit)
        .all()
    )
    return [_batch_out(batch) for batch in batches]


@router.get("/{batch_id}", response_model=ImportBatchOut)
def get_import(
    batch_id: int,
    user: AuthenticatedUser = Depends(get_current_user),
    db: Session = Depends(get_db),
) -> ImportBatchOut:
    batch = (
        db.query(ImportBatch)
        .filter(ImportBatch.id == batch_id, ImportBatch.user_id == user.user_id)
        .one_or_none()
    )
    if not batch:
        raise HTTPException(status_code=404, detail="Import batch not found")
    return _batch_out(batch)
