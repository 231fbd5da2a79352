"""
Output Handler Module.

Turns processed invoices into import artifacts:
    - RecordFormatter: canonical rows and CSV text
    - CSVExporter: CSV file with export log
    - ExcelExporter: review workbook
    - OutputHandler: coordinates the exporters
"""

from .formatter import CanonicalRow, RecordFormatter, sanitize_text, escape_csv_field
from .csv_exporter import CSVExporter, ExportResult
from .excel_exporter import ExcelExporter
from .handler import OutputHandler

__all__ = [
    'CanonicalRow',
    'RecordFormatter',
    'sanitize_text',
    'escape_csv_field',
    'CSVExporter',
    'ExportResult',
    'ExcelExporter',
    'OutputHandler'
]
