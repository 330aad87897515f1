"""Tests for CSV and XLSX export."""
from datetime import date
from decimal import Decimal
from io import BytesIO
from types import SimpleNamespace

from fastapi.testclient import TestClient
from openpyxl import load_workbook

from app.services.exporter import build_workbook, export_records, generate_csv


def _record(**fields):
    record = {
        "txn_date": date(2024, 1, 2),
        "type": "expense",
        "category": "Food",
        "wallet": "Bank",
        "amount": Decimal("12.50"),
        "note": "Lunch, with team",
        "source": "manual",
        "transaction_id": 1,
    }
    record.update(fields)
    return record


def test_export_records_fill_missing_category():
    row = SimpleNamespace(
        Transaction=SimpleNamespace(
            id=7,
            txn_date=date(2024, 1, 2),
            type="expense",
            amount=Decimal("3"),
            note=None,
            source="csv",
        ),
        category_name=None,
        wallet_name=None,
    )

    (record,) = export_records([row])

    assert record["category"] == "Uncategorized"
    assert record["wallet"] == ""
    assert record["note"] == ""
    assert record["transaction_id"] == 7


def test_generate_csv_quotes_fields():
    content = generate_csv([_record()])

    assert content.splitlines() == [
        "Date,Type,Category,Amount,Note,Source",
        '2024-01-02,expense,Food,12.50,"Lunch, with team",manual',
    ]


def test_build_workbook_sheets_and_totals():
    workbook = build_workbook(
        [
            _record(),
            _record(type="income", category="Salary", amount=Decimal("100"), transaction_id=2),
            _record(txn_date=date(2024, 2, 1), amount=Decimal("7.50"), transaction_id=3),
        ]
    )

    assert workbook.sheetnames == ["Transactions", "Summary", "Monthly Trend", "By Category"]
    summary = workbook["Summary"]
    assert summary["B1"].value == 3
    assert summary["B2"].value == Decimal("100")
    assert summary["B3"].value == Decimal("20.00")
    trend = workbook["Monthly Trend"]
    assert [trend.cell(row=r, column=1).value for r in (2, 3)] == ["2024-01", "2024-02"]
    by_category = workbook["By Category"]
    assert by_category["A2"].value == "Food"
    assert by_category["B2"].value == 2


def test_export_csv_endpoint(client: TestClient):
    client.post(
        "/api/transactions",
        json={"amount": "9.99", "type": "expense", "txn_date": "2024-06-01", "note": "Book"},
    )
    client.post(
        "/api/transactions",
        json={"amount": "50", "type": "income", "txn_date": "2024-06-02", "note": "Gift"},
    )

    response = client.get("/api/export/csv", params={"type": "expense"})

    assert response.status_code == 200
    assert response.headers["content-type"].startswith("text/csv")
    assert f"transactions-{date.today().isoformat()}.csv" in response.headers["content-disposition"]
    lines = response.text.splitlines()
    assert lines[0] == "Date,Type,Category,Amount,Note,Source"
    assert len(lines) == 2
    assert lines[1].startswith("2024-06-01,expense,Uncategorized,")


def test_export_xlsx_endpoint(client: TestClient):
    client.post(
        "/api/transactions",
        json={"amount": "9.99", "type": "expense", "txn_date": "2024-06-01", "note": "Book"},
    )

    response = client.get("/api/export/xlsx")

    assert response.status_code == 200
    workbook = load_workbook(BytesIO(response.content))
    sheet = workbook["Transactions"]
    assert sheet["A1"].value == "Date"
    assert sheet["F2"].value == "Book"
