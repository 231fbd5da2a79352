import pytest
from openpyxl import load_workbook

from invoice_engine.input_handler import SourceDocument
from invoice_engine.output_handler import CSVExporter, ExcelExporter, OutputHandler, RecordFormatter
from invoice_engine.output_handler.formatter import BOM
from invoice_engine.processor import InvoiceBatchProcessor
from invoice_engine.schema import CANONICAL_COLUMNS
from invoice_engine.utils.exceptions import CSVExportError


def batch(sample_text):
    return InvoiceBatchProcessor().process_batch([SourceDocument("a.txt", sample_text)])


def test_csv_export_writes_bom_and_log(tmp_path, sample_text):
    result = batch(sample_text)
    target = tmp_path / "out" / "import.csv"

    export = CSVExporter().export(result.rows, target, validation_result=result.validation)

    raw = target.read_bytes()
    assert raw.startswith(b"\xef\xbb\xbf")
    text = raw.decode("utf-8")
    headers, rows = RecordFormatter.parse_csv_text(text)
    assert headers == list(CANONICAL_COLUMNS)
    assert rows[0]['UnitAmount'] == "50.00"

    assert export.row_count == 1
    assert export.invoice_count == 1
    assert export.file_size == len(raw)
    log = (tmp_path / "out" / "import.log").read_text(encoding="utf-8")
    assert "Rows: 1" in log
    assert "Errors: 0" in log


def test_csv_export_failure_raises(tmp_path, sample_text):
    blocker = tmp_path / "blocker"
    blocker.write_text("not a directory")
    with pytest.raises(CSVExportError, match="import.csv"):
        CSVExporter().export(batch(sample_text).rows, blocker / "import.csv")


def test_generated_filename():
    name = CSVExporter().generate_filename()
    assert name.startswith("xero_invoices_")
    assert name.endswith(".csv")


def test_excel_review_workbook(tmp_path, sample_text):
    result = batch(sample_text)
    path = ExcelExporter().export(
        result.rows,
        tmp_path / "review.xlsx",
        validation_result=result.validation,
        amount_verification=result.amount_verification,
    )

    workbook = load_workbook(path)
    assert workbook.sheetnames == ["Invoices", "Validation", "Amount Checks"]

    sheet = workbook["Invoices"]
    assert [c.value for c in sheet[1]] == list(CANONICAL_COLUMNS)
    assert sheet["B2"].value == "INV-001"
    assert sheet["G2"].value == "50.00"
    assert sheet.freeze_panes == "A2"

    checks = workbook["Amount Checks"]
    assert checks["A2"].value == "INV-001"
    assert checks["F2"].value == "Valid"


def test_output_handler_saves_both(tmp_path, sample_text):
    handler = OutputHandler(csv_enabled=True, excel_enabled=True)
    info = handler.save(batch(sample_text), tmp_path / "import.csv")

    assert info['errors'] == []
    assert info['csv_path'].endswith("import.csv")
    assert info['log_path'].endswith("import.log")
    assert info['excel_path'].endswith("import.xlsx")
    assert (tmp_path / "import.xlsx").exists()


def test_output_handler_reports_failures(tmp_path, sample_text):
    blocker = tmp_path / "blocker"
    blocker.write_text("x")
    handler = OutputHandler(csv_enabled=True, excel_enabled=False)

    info = handler.save(batch(sample_text), blocker / "import.csv")

    assert info['csv_path'] is None
    assert len(info['errors']) == 1


def test_csv_text_starts_with_bom(sample_text):
    rows = batch(sample_text).rows
    assert RecordFormatter().to_csv_text(rows).startswith(BOM)
