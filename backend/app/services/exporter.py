import csv
import io
from collections import defaultdict
from decimal import Decimal
from typing import Dict, List

from openpyxl import Workbook
from openpyxl.styles import Font
from openpyxl.utils import get_column_letter

CSV_HEADERS = ["Date", "Type", "Category", "Amount", "Note", "Source"]
UNCATEGORIZED = "Uncategorized"


def export_records(rows) -> List[Dict]:
    """Flatten transaction query rows into plain export records."""
    records = []
    for row in rows:
        transaction = row.Transaction
        records.append(
            {
                "txn_date": transaction.txn_date,
                "type": transaction.type,
                "category": row.category_name or UNCATEGORIZED,
                "wallet": row.wallet_name or "",
                "amount": transaction.amount,
                "note": transaction.note or "",
                "source": transaction.source or "manual",
                "transaction_id": transaction.id,
            }
        )
    return records


def generate_csv(records: List[Dict]) -> str:
    output = io.StringIO()
    writer = csv.writer(output, lineterminator="\n")
    writer.writerow(CSV_HEADERS)
    for record in records:
        writer.writerow(
            [
                record["txn_date"].isoformat(),
                record["type"],
                record["category"],
                record["amount"],
                record["note"],
                record["source"],
            ]
        )
    return output.getvalue()


def _bold_headers(sheet, headers: List[str]) -> None:
    for column, header in enumerate(headers, start=1):
        sheet.cell(row=1, column=column, value=header).font = Font(bold=True)


def build_workbook(records: List[Dict]) -> Workbook:
    column_defs = [
        ("txn_date", "Date", 14),
        ("type", "Type", 10),
        ("category", "Category", 22),
        ("wallet", "Wallet", 18),
        ("amount", "Amount", 16),
        ("note", "Note", 34),
        ("source", "Source", 10),
        ("transaction_id", "Transaction id", 16),
    ]

    workbook = Workbook()
    transactions_sheet = workbook.active
    transactions_sheet.title = "Transactions"
    transactions_sheet.freeze_panes = "A2"
    transactions_sheet.auto_filter.ref = f"A1:{get_column_letter(len(column_defs))}1"

    for column_index, (_key, header, width) in enumerate(column_defs, start=1):
        cell = transactions_sheet.cell(row=1, column=column_index, value=header)
        cell.font = Font(bold=True)
        transactions_sheet.column_dimensions[get_column_letter(column_index)].width = width

    for row_index, record in enumerate(records, start=2):
        for column_index, (key, _header, _width) in enumerate(column_defs, start=1):
            cell = transactions_sheet.cell(row=row_index, column=column_index, value=record[key])
            if key == "txn_date":
                cell.number_format = "yyyy-mm-dd"
            if key == "amount":
                cell.number_format = "#,##0.00"

    monthly_totals = defaultdict(lambda: {"income": Decimal("0"), "expense": Decimal("0")})
    category_totals = defaultdict(lambda: {"count": 0, "amount": Decimal("0")})
    for record in records:
        amount = Decimal(record["amount"] or 0)
        month_key = record["txn_date"].strftime("%Y-%m")
        monthly_totals[month_key][record["type"]] += amount
        if record["type"] == "expense":
            category_totals[record["category"]]["count"] += 1
            category_totals[record["category"]]["amount"] += amount

    total_income = sum((bucket["income"] for bucket in monthly_totals.values()), Decimal("0"))
    total_expense = sum((bucket["expense"] for bucket in monthly_totals.values()), Decimal("0"))

    summary_sheet = workbook.create_sheet("Summary")
    summary_rows = [
        ("Rows", len(records)),
        ("Total income", total_income),
        ("Total expense", total_expense),
        ("Net", total_income - total_expense),
    ]
    for i, (label, value) in enumerate(summary_rows, start=1):
        summary_sheet.cell(row=i, column=1, value=label).font = Font(bold=True)
        value_cell = summary_sheet.cell(row=i, column=2, value=value)
        if isinstance(value, Decimal):
            value_cell.number_format = "#,##0.00"
    summary_sheet.column_dimensions["A"].width = 18
    summary_sheet.column_dimensions["B"].width = 18

    trend_sheet = workbook.create_sheet("Monthly Trend")
    _bold_headers(trend_sheet, ["Month", "Income", "Expense", "Net"])
    for row_number, month_key in enumerate(sorted(monthly_totals.keys()), start=2):
        bucket = monthly_totals[month_key]
        trend_sheet.cell(row=row_number, column=1, value=month_key)
        trend_sheet.cell(row=row_number, column=2, value=bucket["income"]).number_format = "#,##0.00"
        trend_sheet.cell(row=row_number, column=3, value=bucket["expense"]).number_format = "#,##0.00"
        net = bucket["income"] - bucket["expense"]
        trend_sheet.cell(row=row_number, column=4, value=net).number_format = "#,##0.00"
    trend_sheet.column_dimensions["A"].width = 12

    category_sheet = workbook.create_sheet("By Category")
    _bold_headers(category_sheet, ["Category", "Transactions", "Total spent", "Average per transaction"])
    for row_number, (name, bucket) in enumerate(
        sorted(category_totals.items(), key=lambda item: item[1]["amount"], reverse=True),
        start=2,
    ):
        category_sheet.cell(row=row_number, column=1, value=name)
        category_sheet.cell(row=row_number, column=2, value=bucket["count"])
        category_sheet.cell(row=row_number, column=3, value=bucket["amount"]).number_format = "#,##0.00"
        avg_value = (bucket["amount"] / bucket["count"]) if bucket["count"] else Decimal("0")
        category_sheet.cell(row=row_number, column=4, value=avg_value).number_format = "#,##0.00"
    category_sheet.column_dimensions["A"].width = 26
    category_sheet.column_dimensions["D"].width = 24

    return workbook
