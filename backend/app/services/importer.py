import base64
import binascii
import csv
import io
import re
from dataclasses import dataclass
from datetime import date, datetime, timezone
from decimal import Decimal, InvalidOperation
from typing import Any, Dict, List, Mapping, Optional

from dateutil import parser as date_parser

from app.core.config import TRANSACTION_TYPES
from app.services.errors import (
    CsvParseError,
    EmptyFileError,
    InvalidAmountError,
    InvalidDateError,
    InvalidFileError,
    MissingMappingFieldError,
)

CURRENCY_SYMBOLS = ("₹", "₪", "$", "£", "€")
REQUIRED_MAPPING_FIELDS = ("amountField", "dateField")


@dataclass(frozen=True)
class FieldMapping:
    amount_field: str
    date_field: str
    type_field: Optional[str] = None
    category_field: Optional[str] = None
    note_field: Optional[str] = None


@dataclass
class MappedTransaction:
    amount: Decimal
    type: str
    txn_date: date
    category_name: Optional[str]
    note: Optional[str]
    source: str = "csv"
    external_ref: Optional[str] = None


def validate_mapping(mapping: Mapping[str, Optional[str]]) -> FieldMapping:
    for field in REQUIRED_MAPPING_FIELDS:
        if not mapping.get(field):
            raise MissingMappingFieldError(field)

    return FieldMapping(
        amount_field=mapping["amountField"],
        date_field=mapping["dateField"],
        type_field=mapping.get("typeField") or None,
        category_field=mapping.get("categoryField") or None,
        note_field=mapping.get("noteField") or None,
    )


def decode_base64_file(encoded: str) -> bytes:
    payload = "".join(encoded.split())
    # Line-wrapped base64 is accepted. Browsers hand over data URLs
    # ("data:text/csv;base64,....").
    if payload.startswith("data:") and "," in payload:
        payload = payload.split(",", 1)[1]
    try:
        return base64.b64decode(payload, validate=True)
    except (binascii.Error, ValueError) as exc:
        raise InvalidFileError() from exc


def _normalize_header(value: str) -> str:
    return re.sub(r"\s+", " ", value.replace("\ufeff", "").strip())


def decode_csv(content: bytes) -> List[Dict[str, str]]:
    """Parse a whole CSV file into one dict per data row, keyed by header name.

    The first non-blank line is the header. Blank lines are skipped, cells are
    trimmed, and a row whose length differs from the header is a parse error.
    """
    try:
        text = content.decode("utf-8-sig")
    except UnicodeDecodeError as exc:
        raise CsvParseError("file is not valid UTF-8 text") from exc

    reader = csv.reader(io.StringIO(text), strict=True)
    header: Optional[List[str]] = None
    rows: List[Dict[str, str]] = []
    try:
        for record in reader:
            if not any(cell.strip() for cell in record):
                continue
            cells = [cell.strip() for cell in record]
            if header is None:
                header = [_normalize_header(cell) for cell in cells]
                continue
            if len(cells) != len(header):
                raise CsvParseError(
                    f"Invalid record length on line {reader.line_num}: "
                    f"expected {len(header)} columns, got {len(cells)}"
                )
            rows.append(dict(zip(header, cells)))
    except csv.Error as exc:
        raise CsvParseError(f"line {reader.line_num}: {exc}") from exc

    if not rows:
        raise EmptyFileError()
    return rows


def parse_amount(value: Any) -> Decimal:
    raw = "" if value is None else str(value).strip()
    for symbol in CURRENCY_SYMBOLS:
        raw = raw.replace(symbol, "")
    raw = raw.replace(",", "").replace(" ", "")

    try:
        amount = Decimal(raw)
    except InvalidOperation as exc:
        raise InvalidAmountError(value) from exc

    if not amount.is_finite() or amount == 0:
        raise InvalidAmountError(value)
    return amount


def parse_txn_date(value: Any) -> date:
    if isinstance(value, datetime):
        if value.tzinfo is not None:
            try:
                value = value.astimezone(timezone.utc)
            except OverflowError as exc:
                raise InvalidDateError(value) from exc
        return value.date()
    if isinstance(value, date):
        return value

    raw = "" if value is None else str(value).strip()
    if not raw:
        raise InvalidDateError(value)

    try:
        return date.fromisoformat(raw)
    except ValueError:
        pass

    try:
        parsed = date_parser.parse(raw)
        if parsed.tzinfo is not None:
            parsed = parsed.astimezone(timezone.utc)
    except (ValueError, OverflowError) as exc:
        raise InvalidDateError(value) from exc
    return parsed.date()


def _optional_text(row: Mapping[str, Any], field: Optional[str]) -> Optional[str]:
    if not field:
        return None
    value = row.get(field)
    text = "" if value is None else str(value).strip()
    return text or None


def map_row(
    row: Mapping[str, Any],
    mapping: FieldMapping,
    negative_type: str = "income",
) -> MappedTransaction:
    """Turn one decoded CSV row into a transaction payload.

    Negative amounts are stored as their absolute value. When the type column
    is missing or holds something other than income/expense, the sign decides:
    negative amounts get ``negative_type``, everything else the opposite type.
    """
    raw_amount = parse_amount(row.get(mapping.amount_field))
    is_negative = raw_amount < 0

    positive_type = "expense" if negative_type == "income" else "income"
    txn_type = negative_type if is_negative else positive_type
    if mapping.type_field:
        type_raw = str(row.get(mapping.type_field) or "").strip().lower()
        if type_raw in TRANSACTION_TYPES:
            txn_type = type_raw

    txn_date = parse_txn_date(row.get(mapping.date_field))

    return MappedTransaction(
        amount=abs(raw_amount),
        type=txn_type,
        txn_date=txn_date,
        category_name=_optional_text(row, mapping.category_field),
        note=_optional_text(row, mapping.note_field),
    )
