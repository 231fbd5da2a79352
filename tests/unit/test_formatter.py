import pytest

from invoice_engine.extraction import LineItem
from invoice_engine.output_handler import CanonicalRow, RecordFormatter, escape_csv_field, sanitize_text
from invoice_engine.output_handler.formatter import BOM, format_quantity, format_unit_amount
from invoice_engine.schema import CANONICAL_COLUMNS
from invoice_engine.validation import SchemaValidator


def test_reference_scenario(make_record):
    record = make_record(line_items=[LineItem("Widget", 2, 50.00)])
    rows = RecordFormatter().to_rows([record])

    assert len(rows) == 1
    row = rows[0]
    assert row.Quantity == "2"
    assert row.UnitAmount == "50.00"
    assert row.AccountCode == "200"
    assert row.TaxType == "GST on Income"
    assert RecordFormatter.calculate_totals(rows) == {"INV-001": 100.0}
    assert SchemaValidator().validate_rows(rows).errors == []


def test_invoice_fields_repeat_on_every_row(make_record):
    record = make_record(
        reference="PO-1",
        line_items=[LineItem("First", 1, 10.0), LineItem("Second", 1.5, 3.333)],
    )
    rows = RecordFormatter().to_rows([record])

    assert [r.InvoiceNumber for r in rows] == ["INV-001", "INV-001"]
    assert [r.Reference for r in rows] == ["PO-1", "PO-1"]
    assert rows[1].Quantity == "1.5"
    assert rows[1].UnitAmount == "3.33"


def test_text_columns_are_sanitized(make_record):
    record = make_record(
        contact_name="=HYPERLINK(x)",
        reference="  PO\x9b 9 ",
        line_items=[LineItem("Widget", 1, 5.0, account_code=" 400 ", tax_type="BAS  Excluded")],
    )
    row = RecordFormatter().to_rows([record])[0]

    assert row.ContactName == "'=HYPERLINK(x)"
    assert row.Reference == "PO 9"
    assert row.AccountCode == "400"
    assert row.TaxType == "BAS Excluded"
    assert row.InvoiceDate == "15/03/2024"


def test_record_without_lines_has_no_rows(make_record):
    assert RecordFormatter().to_rows([make_record(line_items=[])]) == []


@pytest.mark.parametrize("raw, expected", [
    ("=SUM(A1:A2)", "'=SUM(A1:A2)"),
    ("+61 400", "'+61 400"),
    ("-5 discount", "'-5 discount"),
    ("@cmd", "'@cmd"),
    ("  Widget \x07 A\n", "Widget A"),
    ("\x9b=cmd", "'=cmd"),
    ("Wid\x85get\x9f", "Widget"),
    ("'quoted", "'quoted"),
    ("", ""),
    (None, ""),
])
def test_sanitize_text(raw, expected):
    assert sanitize_text(raw) == expected


@pytest.mark.parametrize("raw", ["=1+1", "\t=cmd", " -x", "a\x00b", "\r@x", "\x9b=cmd", "plain"])
def test_sanitize_is_idempotent(raw):
    once = sanitize_text(raw)
    assert sanitize_text(once) == once


def test_numeric_rendering():
    assert format_quantity(2.0) == "2"
    assert format_quantity(1.25) == "1.25"
    assert format_quantity(float('nan')) == "1"
    assert format_unit_amount(2.675) == "2.68"
    assert format_unit_amount(float('inf')) == "0.00"


def test_escape_csv_field():
    assert escape_csv_field("plain") == "plain"
    assert escape_csv_field("a,b") == '"a,b"'
    assert escape_csv_field('say "hi"') == '"say ""hi"""'
    assert escape_csv_field("two\nlines") == '"two\nlines"'


def test_csv_text_round_trip(make_record):
    record = make_record(
        contact_name='Smith, "Jones" & Co',
        line_items=[LineItem("Design, phase 1", 3, 19.99), LineItem("Hosting", 1.5, 0.33)],
    )
    formatter = RecordFormatter(include_bom=True)
    rows = formatter.to_rows([record])
    text = formatter.to_csv_text(rows)

    assert text.startswith(BOM)
    assert text.split("\n")[0] == BOM + ",".join(CANONICAL_COLUMNS)

    headers, parsed = formatter.parse_csv_text(text)
    assert headers == list(CANONICAL_COLUMNS)
    assert [CanonicalRow.from_dict(p) for p in parsed] == rows

    for item, values in zip(record.line_items, parsed):
        product = float(values['Quantity']) * float(values['UnitAmount'])
        assert abs(product - item.quantity * item.unit_amount) <= 0.01


def test_csv_without_bom():
    text = RecordFormatter(include_bom=False).to_csv_text([])
    assert text == ",".join(CANONICAL_COLUMNS)


def test_canonical_row_shape():
    row = CanonicalRow.from_dict({'InvoiceNumber': 'INV-1', 'Quantity': 2, 'Extra': 'x'})
    assert list(row.to_dict()) == list(CANONICAL_COLUMNS)
    assert row.Quantity == "2"
    assert RecordFormatter.validate_row_schema(row.to_dict())
    assert not RecordFormatter.validate_row_schema({'InvoiceNumber': 'INV-1'})


def test_preview_and_grouping(make_record):
    formatter = RecordFormatter()
    rows = formatter.to_rows([make_record(), make_record(invoice_number="INV-002")])

    grouped = formatter.group_rows_by_invoice(rows)
    assert list(grouped) == ["INV-001", "INV-002"]

    preview = formatter.create_preview(rows, max_rows=1)
    assert "... and 1 more rows" in preview
    assert preview.endswith("Total rows: 2\n")
