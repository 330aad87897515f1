"""Unit tests for CSV decoding and row mapping."""
import base64
from datetime import date, datetime, timezone
from decimal import Decimal

import pytest

from app.services.errors import (
    CsvParseError,
    EmptyFileError,
    InvalidAmountError,
    InvalidDateError,
    InvalidFileError,
    MissingMappingFieldError,
)
from app.services.importer import (
    FieldMapping,
    decode_base64_file,
    decode_csv,
    map_row,
    parse_amount,
    parse_txn_date,
    validate_mapping,
)


def test_validate_mapping_requires_amount_field_first():
    """An empty mapping reports amountField as missing."""
    with pytest.raises(MissingMappingFieldError) as exc_info:
        validate_mapping({})
    assert str(exc_info.value) == "Missing required mapping field: amountField"


def test_validate_mapping_requires_date_field():
    with pytest.raises(MissingMappingFieldError) as exc_info:
        validate_mapping({"amountField": "Amount"})
    assert exc_info.value.field == "dateField"


def test_validate_mapping_blank_optional_fields_become_none():
    mapping = validate_mapping(
        {"amountField": "Amount", "dateField": "Date", "typeField": "", "noteField": None}
    )
    assert mapping == FieldMapping(amount_field="Amount", date_field="Date")


def test_decode_base64_file_accepts_data_url():
    encoded = base64.b64encode(b"a,b\n1,2\n").decode("ascii")
    assert decode_base64_file(f"data:text/csv;base64,{encoded}") == b"a,b\n1,2\n"


def test_decode_base64_file_rejects_garbage():
    with pytest.raises(InvalidFileError):
        decode_base64_file("not base64 at all!!")


def test_decode_csv_uses_first_row_as_header():
    """Rows come back in input order keyed by the trimmed header names."""
    rows = decode_csv(b'\xef\xbb\xbfDate , Amount\n2024-01-01,"1,200.50"\n\n2024-01-02, 7 \n')
    assert rows == [
        {"Date": "2024-01-01", "Amount": "1,200.50"},
        {"Date": "2024-01-02", "Amount": "7"},
    ]


def test_decode_csv_rejects_ragged_rows():
    with pytest.raises(CsvParseError) as exc_info:
        decode_csv(b"Date,Amount\n2024-01-01,5,extra\n")
    assert str(exc_info.value).startswith("CSV parsing failed:")


def test_decode_csv_rejects_invalid_utf8():
    with pytest.raises(CsvParseError):
        decode_csv(b"Date,Amount\n\xff\xfe,1\n")


@pytest.mark.parametrize("content", [b"", b"\n\n", b"Date,Amount\n"])
def test_decode_csv_without_data_rows_is_empty(content):
    with pytest.raises(EmptyFileError) as exc_info:
        decode_csv(content)
    assert str(exc_info.value) == "CSV file is empty"


def test_parse_amount_strips_currency_formatting():
    assert parse_amount("$1,234.50") == Decimal("1234.50")
    assert parse_amount(" -42 ") == Decimal("-42")


@pytest.mark.parametrize("value", ["", "abc", "0", "0.00", "NaN", None])
def test_parse_amount_rejects_unusable_values(value):
    with pytest.raises(InvalidAmountError):
        parse_amount(value)


def test_parse_txn_date_formats():
    assert parse_txn_date("2024-03-15") == date(2024, 3, 15)
    assert parse_txn_date("03/15/2024") == date(2024, 3, 15)
    assert parse_txn_date("15 March 2024") == date(2024, 3, 15)
    assert parse_txn_date(date(2024, 3, 15)) == date(2024, 3, 15)


def test_parse_txn_date_normalizes_aware_datetimes_to_utc():
    assert parse_txn_date("2024-03-15T23:30:00-05:00") == date(2024, 3, 16)
    assert parse_txn_date(datetime(2024, 3, 15, 1, tzinfo=timezone.utc)) == date(2024, 3, 15)


@pytest.mark.parametrize("value", ["", "not-a-date", None])
def test_parse_txn_date_rejects_unparseable(value):
    with pytest.raises(InvalidDateError):
        parse_txn_date(value)


def test_map_row_negative_amount_without_type_is_income():
    mapping = FieldMapping(amount_field="Amount", date_field="Date")
    mapped = map_row({"Amount": "-50", "Date": "2024-01-05"}, mapping)
    assert mapped.type == "income"
    assert mapped.amount == Decimal("50")


def test_map_row_positive_amount_without_type_is_expense():
    mapping = FieldMapping(amount_field="Amount", date_field="Date")
    mapped = map_row({"Amount": "50", "Date": "2024-01-05"}, mapping)
    assert mapped.type == "expense"
    assert mapped.amount == Decimal("50")


def test_map_row_negative_type_can_be_flipped():
    mapping = FieldMapping(amount_field="Amount", date_field="Date")
    mapped = map_row({"Amount": "-50", "Date": "2024-01-05"}, mapping, negative_type="expense")
    assert mapped.type == "expense"
    assert map_row({"Amount": "50", "Date": "2024-01-05"}, mapping, "expense").type == "income"


def test_map_row_type_column_wins_over_sign():
    mapping = FieldMapping(amount_field="Amount", date_field="Date", type_field="Kind")
    mapped = map_row({"Amount": "-50", "Date": "2024-01-05", "Kind": " Expense "}, mapping)
    assert mapped.type == "expense"
    assert mapped.amount == Decimal("50")


def test_map_row_unknown_type_value_falls_back_to_sign():
    mapping = FieldMapping(amount_field="Amount", date_field="Date", type_field="Kind")
    mapped = map_row({"Amount": "50", "Date": "2024-01-05", "Kind": "transfer"}, mapping)
    assert mapped.type == "expense"


def test_map_row_blank_category_and_note_are_none():
    mapping = FieldMapping(
        amount_field="Amount",
        date_field="Date",
        category_field="Category",
        note_field="Note",
    )
    mapped = map_row(
        {"Amount": "5", "Date": "2024-01-05", "Category": "   ", "Note": ""}, mapping
    )
    assert mapped.category_name is None
    assert mapped.note is None
    assert mapped.source == "csv"


def test_map_row_trims_category_and_note():
    mapping = FieldMapping(
        amount_field="Amount",
        date_field="Date",
        category_field="Category",
        note_field="Note",
    )
    mapped = map_row(
        {"Amount": "5", "Date": "2024-01-05", "Category": " Food ", "Note": " Lunch "}, mapping
    )
    assert mapped.category_name == "Food"
    assert mapped.note == "Lunch"


def test_map_row_checks_amount_before_date():
    mapping = FieldMapping(amount_field="Amount", date_field="Date")
    with pytest.raises(InvalidAmountError):
        map_row({"Amount": "oops", "Date": "never"}, mapping)
    with pytest.raises(InvalidDateError):
        map_row({"Amount": "5", "Date": "never"}, mapping)


def test_decode_base64_file_accepts_line_wrapped_input():
    content = b"Date,Amount,Note\n" + b"2024-01-01,5,coffee\n" * 10
    wrapped = base64.encodebytes(content).decode("ascii")

    assert "\n" in wrapped.strip()
    assert decode_base64_file(wrapped) == content


def test_parse_txn_date_out_of_range_offset_is_invalid():
    """Shifting year 1 to UTC overflows and is reported as a bad date."""
    with pytest.raises(InvalidDateError):
        parse_txn_date("0001-01-01T00:00:00+05:00")
