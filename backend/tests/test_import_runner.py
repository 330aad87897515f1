"""Tests for the import orchestration outside the HTTP layer."""
from datetime import datetime, timedelta, timezone
from decimal import Decimal

import pytest
from sqlalchemy.exc import OperationalError

from app.db.models import ImportBatch, Transaction
from app.services import import_runner, importer
from app.services.categories import CategoryResolver
from app.services.errors import EmptyFileError
from app.services.import_runner import final_status, run_import

MAPPING = {"amountField": "Amount", "dateField": "Date", "categoryField": "Category"}


@pytest.mark.parametrize(
    "success, failed, expected",
    [(3, 0, "completed"), (0, 3, "failed"), (2, 1, "partial")],
)
def test_final_status(success, failed, expected):
    assert final_status(success, failed) == expected


def test_run_import_records_batch(db_session):
    content = b"Date,Amount,Category\n2024-01-01,-20,Refunds\n2024-01-02,5,\n2024-01-03,x,Food\n"

    outcome = run_import(db_session, "user-1", content, MAPPING, source_filename="jan.csv")

    batch = db_session.get(ImportBatch, outcome.batch.id)
    assert batch.status == "partial"
    assert (batch.total_rows, batch.success_rows, batch.failed_rows) == (3, 2, 1)
    assert batch.source_filename == "jan.csv"
    assert batch.error_message == "1 rows failed"
    assert outcome.categories_created == 1
    assert outcome.failed == [{"row": 3, "error": "Invalid amount: x"}]

    transactions = db_session.query(Transaction).order_by(Transaction.txn_date).all()
    assert [(t.type, t.amount, t.category_id is None) for t in transactions] == [
        ("income", Decimal("20"), False),
        ("expense", Decimal("5"), True),
    ]
    assert all(t.import_batch_id == batch.id for t in transactions)


def test_run_import_negative_type_override(db_session):
    content = b"Date,Amount\n2024-01-01,-20\n"

    run_import(db_session, "user-1", content, MAPPING, negative_type="expense")

    assert db_session.query(Transaction).one().type == "expense"


def test_run_import_rejects_before_creating_batch(db_session):
    with pytest.raises(EmptyFileError):
        run_import(db_session, "user-1", b"Date,Amount\n", MAPPING)

    assert db_session.query(ImportBatch).count() == 0


def test_category_store_errors_degrade_to_no_category(db_session, monkeypatch):
    """A failing category lookup leaves the row uncategorized instead of failing it."""

    def broken_find(self, name):
        raise OperationalError("SELECT", {}, Exception("database is locked"))

    monkeypatch.setattr(CategoryResolver, "_find", broken_find)
    content = b"Date,Amount,Category\n2024-01-01,7,Food\n"

    outcome = run_import(db_session, "user-1", content, MAPPING)

    assert outcome.batch.status == "completed"
    assert outcome.categories_created == 0
    assert db_session.query(Transaction).one().category_id is None


def test_out_of_range_date_is_a_row_failure(db_session):
    content = b"Date,Amount\n2024-01-01,5\n0001-01-01T00:00:00+05:00,7\n"

    outcome = run_import(db_session, "user-1", content, MAPPING)

    batch = db_session.get(ImportBatch, outcome.batch.id)
    assert (batch.status, batch.success_rows, batch.failed_rows) == ("partial", 1, 1)
    assert outcome.failed == [{"row": 2, "error": "Invalid date: 0001-01-01T00:00:00+05:00"}]
    assert db_session.query(Transaction).count() == 1


def test_failed_insert_is_recorded_and_batch_continues(db_session, monkeypatch):
    """A store error on one row's insert fails that row only."""

    def map_with_broken_row(row, mapping, negative_type="income"):
        mapped = importer.map_row(row, mapping, negative_type=negative_type)
        if row.get("Note") == "broken":
            mapped.type = None
        return mapped

    monkeypatch.setattr(import_runner, "map_row", map_with_broken_row)
    content = b"Date,Amount,Note\n2024-01-01,5,ok\n2024-01-02,6,broken\n2024-01-03,7,ok\n"

    outcome = run_import(db_session, "user-1", content, MAPPING)

    assert outcome.batch.status == "partial"
    assert [item["row"] for item in outcome.succeeded] == [1, 3]
    assert len(outcome.failed) == 1
    assert outcome.failed[0]["row"] == 2
    assert "NOT NULL constraint failed" in outcome.failed[0]["error"]
    stored = db_session.query(Transaction).order_by(Transaction.txn_date).all()
    assert [t.amount for t in stored] == [Decimal("5"), Decimal("7")]
    assert db_session.get(ImportBatch, outcome.batch.id).failed_rows == 1


def test_unexpected_row_error_does_not_abort_batch(db_session, monkeypatch):
    def exploding_map_row(row, mapping, negative_type="income"):
        if row["Amount"] == "6":
            raise RuntimeError("unexpected parser state")
        return importer.map_row(row, mapping, negative_type=negative_type)

    monkeypatch.setattr(import_runner, "map_row", exploding_map_row)
    content = b"Date,Amount\n2024-01-01,5\n2024-01-02,6\n"

    outcome = run_import(db_session, "user-1", content, MAPPING)

    batch = db_session.get(ImportBatch, outcome.batch.id)
    assert batch.status == "partial"
    assert batch.success_rows + batch.failed_rows == batch.total_rows
    assert outcome.failed == [{"row": 2, "error": "unexpected parser state"}]


def test_batch_timestamps_are_naive_utc(db_session):
    before = datetime.now(timezone.utc).replace(tzinfo=None) - timedelta(seconds=1)

    outcome = run_import(db_session, "user-1", b"Date,Amount\n2024-01-01,5\n", MAPPING)

    batch = outcome.batch
    assert batch.started_at.tzinfo is None
    assert batch.completed_at.tzinfo is None
    assert before <= batch.started_at <= batch.completed_at
    assert batch.completed_at - before < timedelta(minutes=1)
