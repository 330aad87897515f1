import logging
from dataclasses import dataclass, field
from datetime import datetime, timezone
from typing import Dict, List, Mapping, Optional

from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.orm import Session

from app.core.config import settings
from app.db.models import ImportBatch, Transaction
from app.services.categories import CategoryResolver
from app.services.errors import RowError
from app.services.importer import FieldMapping, decode_csv, map_row, validate_mapping

logger = logging.getLogger(__name__)


@dataclass
class ImportOutcome:
    batch: ImportBatch
    succeeded: List[Dict] = field(default_factory=list)
    failed: List[Dict] = field(default_factory=list)
    categories_created: int = 0


def final_status(success_rows: int, failed_rows: int) -> str:
    if failed_rows == 0:
        return "completed"
    if success_rows == 0:
        return "failed"
    return "partial"


def _store_error_message(exc: SQLAlchemyError) -> str:
    return str(getattr(exc, "orig", None) or exc)


def _utcnow() -> datetime:
    # Columns are naive and hold UTC, matching the CURRENT_TIMESTAMP defaults.
    return datetime.now(timezone.utc).replace(tzinfo=None)


def _import_row(
    db: Session,
    user_id: str,
    batch_id: int,
    row: Mapping[str, str],
    field_mapping: FieldMapping,
    resolver: CategoryResolver,
    negative_type: str,
) -> Transaction:
    mapped = map_row(row, field_mapping, negative_type=negative_type)
    category_id = resolver.resolve(mapped.category_name)

    with db.begin_nested():
        transaction = Transaction(
            user_id=user_id,
            amount=mapped.amount,
            type=mapped.type,
            txn_date=mapped.txn_date,
            category_id=category_id,
            import_batch_id=batch_id,
            note=mapped.note,
            source=mapped.source,
            external_ref=mapped.external_ref,
        )
        db.add(transaction)
        db.flush()
    return transaction


def run_import(
    db: Session,
    user_id: str,
    content: bytes,
    mapping: Mapping[str, Optional[str]],
    *,
    source_filename: Optional[str] = None,
    negative_type: Optional[str] = None,
) -> ImportOutcome:
    """Import a CSV file as transactions owned by ``user_id``.

    Mapping and file problems raise ``ImportValidationError`` before anything
    is written. Afterwards rows are processed strictly in order; a row that
    fails is recorded and skipped, and the batch record is finalized once
    with the counts and a completed/partial/failed status.
    """
    field_mapping = validate_mapping(mapping)
    rows = decode_csv(content)
    negative_type = negative_type or settings.NEGATIVE_AMOUNT_TYPE

    batch = ImportBatch(
        user_id=user_id,
        source="csv",
        source_filename=source_filename,
        total_rows=len(rows),
        success_rows=0,
        failed_rows=0,
        status="pending",
        started_at=_utcnow(),
    )
    db.add(batch)
    db.commit()
    logger.info("Import batch %s started for user %s: %s rows", batch.id, user_id, len(rows))

    outcome = ImportOutcome(batch=batch)
    resolver = CategoryResolver(db, user_id)

    for row_number, row in enumerate(rows, start=1):
        try:
            transaction = _import_row(
                db, user_id, batch.id, row, field_mapping, resolver, negative_type
            )
        except RowError as exc:
            logger.warning("Import batch %s row %s rejected: %s", batch.id, row_number, exc)
            outcome.failed.append({"row": row_number, "error": str(exc)})
            continue
        except SQLAlchemyError as exc:
            message = _store_error_message(exc)
            logger.warning("Import batch %s row %s insert failed: %s", batch.id, row_number, message)
            outcome.failed.append({"row": row_number, "error": message})
            continue
        except Exception as exc:
            # Rows never abort the batch; anything unexpected is a row failure.
            logger.exception("Import batch %s row %s failed unexpectedly", batch.id, row_number)
            outcome.failed.append({"row": row_number, "error": str(exc) or type(exc).__name__})
            continue

        outcome.succeeded.append({"row": row_number, "transaction_id": transaction.id})

    batch.success_rows = len(outcome.succeeded)
    batch.failed_rows = len(outcome.failed)
    batch.status = final_status(batch.success_rows, batch.failed_rows)
    batch.completed_at = _utcnow()
    batch.error_message = f"{batch.failed_rows} rows failed" if outcome.failed else None
    db.commit()

    outcome.categories_created = resolver.created
    logger.info(
        "Import batch %s finished: status=%s success=%s failed=%s categories_created=%s",
        batch.id,
        batch.status,
        batch.success_rows,
        batch.failed_rows,
        outcome.categories_created,
    )
    return outcome
