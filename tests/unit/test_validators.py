import calendar
from dataclasses import replace

import pytest

from invoice_engine.extraction import LineItem
from invoice_engine.output_handler import CanonicalRow
from invoice_engine.schema import CANONICAL_COLUMNS
from invoice_engine.validation import (
    DateValidator,
    SchemaValidator,
    Severity,
    ValidationResult,
    format_validation_results,
)


@pytest.mark.parametrize("year", [1900, 1999, 2000, 2024, 2100])
def test_every_calendar_day_validates(year):
    validator = DateValidator()
    for month in range(1, 13):
        days = calendar.monthrange(year, month)[1]
        for day in range(1, days + 1):
            assert validator.is_valid(f"{day:02d}/{month:02d}/{year}")
        assert not validator.is_valid(f"{days + 1:02d}/{month:02d}/{year}")


@pytest.mark.parametrize("value", ["00/01/2024", "15/00/2024", "15/13/2024", "29/02/2023", "31/04/2024"])
def test_out_of_range_day_or_month_fails(value):
    valid, message = DateValidator().validate(value)
    assert not valid
    assert message == f"Invalid date: {value}. Expected DD/MM/YYYY"


def test_date_format_and_year_range():
    validator = DateValidator()
    assert validator.validate("2024-03-15") == (False, "Invalid date format: 2024-03-15. Expected DD/MM/YYYY")
    assert validator.validate("01/01/1899") == (False, "Year 1899 is outside 1900-2100")
    assert validator.validate("") == (False, "Date is empty")


def test_due_date_ordering():
    validator = DateValidator()
    assert validator.is_due_after_invoice("15/03/2024", "15/03/2024")[0]
    assert validator.is_due_after_invoice("15/03/2024", "14/03/2024") == (False, "Due date is before invoice date")
    assert validator.is_due_after_invoice("bad", "14/03/2024")[0]


def test_valid_record(make_record):
    result = SchemaValidator().validate_record(make_record())
    assert result.is_valid
    assert result.warnings == []


def test_record_errors(make_record):
    record = make_record(
        invoice_number="",
        contact_name=" ",
        invoice_date="31/02/2024",
        due_date="",
        line_items=[LineItem("Box", 0, float('inf'))],
    )
    result = SchemaValidator().validate_record(record)

    fields = [e.field for e in result.errors]
    assert fields == ['InvoiceNumber', 'ContactName', 'InvoiceDate', 'DueDate', 'Quantity', 'UnitAmount']
    assert result.errors[0].invoice_number == 'unknown'
    assert all(e.severity is Severity.ERROR for e in result.errors)


def test_zero_line_items_is_an_error(make_record):
    result = SchemaValidator().validate_record(make_record(line_items=[]))
    assert [str(e) for e in result.errors] == [
        "[LineItems] At least one line item is required (Invoice: INV-001)"
    ]


def test_record_warnings(make_record):
    record = make_record(
        due_date="01/03/2024",
        line_items=[LineItem("Ab", 1, 5.0)],
        overall_confidence=40,
        warnings=["Could not extract due date"],
    )
    result = SchemaValidator().validate_record(record)

    assert result.is_valid
    fields = [w.field for w in result.warnings]
    assert fields == ['DueDate', 'Description', 'AccountCode', 'Confidence', 'Extraction']


def test_unknown_tax_type_warns(make_record):
    record = make_record(line_items=[LineItem("Consulting", 1, 5.0, account_code="200", tax_type="VAT 20%")])
    result = SchemaValidator().validate_record(record)
    assert result.is_valid
    assert [w.message for w in result.warnings] == ["Line item 1 has unknown tax type: VAT 20%"]

    row = CanonicalRow(
        ContactName="ABC", InvoiceNumber="INV-1", InvoiceDate="15/03/2024", DueDate="15/04/2024",
        Description="Consulting", Quantity="1", UnitAmount="5.00", AccountCode="200", TaxType="VAT",
    )
    warnings = SchemaValidator().validate_row(row, 1).warnings
    assert [(w.field, w.message) for w in warnings] == [('TaxType', "Unknown tax type: VAT")]
    assert SchemaValidator().validate_row(replace(row, TaxType="GST Free Exports"), 1).warnings == []


def test_duplicate_invoice_numbers_warn(make_record):
    records = [make_record(), make_record(source_id="copy.txt")]
    result = SchemaValidator().validate_records(records)
    assert result.is_valid
    assert result.warnings[0].message == "Duplicate invoice number: INV-001 appears 2 times"


def test_missing_column_seven_is_one_error():
    headers = list(CANONICAL_COLUMNS)
    del headers[6]
    result = SchemaValidator().validate_headers(headers)

    assert len(result.errors) == 1
    assert "7" in result.errors[0].message
    assert "UnitAmount" in result.errors[0].message


def test_header_mismatches():
    validator = SchemaValidator()
    assert validator.validate_headers(['\ufeff' + CANONICAL_COLUMNS[0]] + list(CANONICAL_COLUMNS[1:])).is_valid

    renamed = list(CANONICAL_COLUMNS)
    renamed[1] = "InvoiceNo"
    errors = validator.validate_headers(renamed).errors
    assert [e.message for e in errors] == ['Column 2 should be "InvoiceNumber", found "InvoiceNo"']

    extra = list(CANONICAL_COLUMNS) + ["Notes"]
    errors = validator.validate_headers(extra).errors
    assert [e.message for e in errors] == ['Column 11: unexpected column "Notes"']


def test_fifty_one_rows_warn_once():
    rows = [
        CanonicalRow("ABC Pty Ltd", "INV-9", "15/03/2024", "15/04/2024", f"Item {i}", "1", "5.00",
                     "200", "GST on Income", "")
        for i in range(51)
    ]
    result = SchemaValidator().validate_rows(rows)

    assert result.errors == []
    line_warnings = [w for w in result.warnings if w.field == 'LineItems']
    assert len(line_warnings) == 1
    assert "INV-9" in line_warnings[0].message


def test_row_errors():
    row = {
        'ContactName': '', 'InvoiceNumber': 'INV-1', 'InvoiceDate': '15/03/2024',
        'DueDate': '30/02/2024', 'Description': 'Thing', 'Quantity': '-1',
        'UnitAmount': 'abc', 'AccountCode': '', 'TaxType': '', 'Reference': '',
    }
    result = SchemaValidator().validate_row(row, 3)

    assert [e.field for e in result.errors] == ['ContactName', 'DueDate', 'Quantity', 'UnitAmount']
    assert all(e.row == 3 for e in result.errors)
    assert [w.field for w in result.warnings] == ['AccountCode']


def test_merge_and_format():
    first = ValidationResult()
    first.add_error('InvoiceNumber', "Invoice number is required", invoice_number='unknown')
    second = ValidationResult()
    second.add_warning('AccountCode', "No account code (will use default)", row=2)

    merged = first.merge(second)
    assert not merged.is_valid
    assert merged.to_dict()['warnings'][0]['row'] == 2

    text = format_validation_results(merged)
    assert "ERRORS:" in text
    assert "[InvoiceNumber] Invoice number is required (Invoice: unknown)" in text
    assert "[AccountCode] No account code (will use default) (Row: 2)" in text
    assert format_validation_results(ValidationResult()) == "All validations passed successfully."
