"""
Excel Exporter Module.

This module provides the review workbook for a processed batch. Uses
openpyxl for modern Excel format support.

Features:
    - Canonical rows on a formatted "Invoices" sheet
    - Validation issues sheet
    - Amount check sheet with calculated vs. detected totals

Author: ML Engineering Team
"""

import logging
from pathlib import Path
from typing import Optional, List, Union

from openpyxl import Workbook
from openpyxl.styles import Font, PatternFill, Alignment, Border, Side
from openpyxl.utils import get_column_letter

from config import get_config
from invoice_engine.schema import CANONICAL_COLUMNS
from invoice_engine.utils.logger import get_logger
from invoice_engine.utils.helpers import ensure_directory, generate_timestamp
from invoice_engine.utils.exceptions import ExcelExportError
from .formatter import CanonicalRow

THIN_BORDER = Border(
    left=Side(style='thin'),
    right=Side(style='thin'),
    top=Side(style='thin'),
    bottom=Side(style='thin')
)


def _header_style(sheet, headers: List[str], color: str) -> None:
    """Write a bold, filled header row."""
    font = Font(bold=True, color="FFFFFF")
    fill = PatternFill(start_color=color, end_color=color, fill_type="solid")
    for col, header in enumerate(headers, 1):
        cell = sheet.cell(row=1, column=col, value=header)
        cell.font = font
        cell.fill = fill
        cell.alignment = Alignment(horizontal="center", vertical="center")
        cell.border = THIN_BORDER


def _fit_columns(sheet, headers: List[str], max_width: int = 50) -> None:
    for col, header in enumerate(headers, 1):
        max_length = len(header)
        for row in range(2, sheet.max_row + 1):
            value = sheet.cell(row=row, column=col).value
            if value is not None:
                max_length = max(max_length, len(str(value)))
        sheet.column_dimensions[get_column_letter(col)].width = min(max_length + 2, max_width)


class ExcelExporter:
    """
    Exports a batch to an Excel review workbook.

    The "Invoices" sheet holds the same ten columns as the CSV, as
    text, so that nothing is reinterpreted by the spreadsheet.

    Attributes:
        output_dir: Directory for generated files
        sheet_name: Title of the canonical rows sheet

    Example:
        >>> exporter = ExcelExporter()
        >>> path = exporter.export(rows, "review.xlsx", validation_result=result)
    """

    VALIDATION_COLUMNS = ['Severity', 'Field', 'Invoice', 'Row', 'Message']
    AMOUNT_COLUMNS = [
        'Invoice', 'Line Items', 'Calculated Total', 'Detected Total',
        'Discrepancy', 'Status', 'Suggestions'
    ]

    def __init__(self, logger: Optional[logging.Logger] = None) -> None:
        self.output_dir = Path(get_config("paths.output_dir", "outputs"))
        self.sheet_name = get_config("output.excel.sheet_name", "Invoices")
        self.logger = logger or get_logger(__name__)

    def get_default_filename(self) -> str:
        """Generate a default filename with timestamp."""
        prefix = get_config("output.csv.filename_prefix", "xero_invoices")
        return f"{prefix}_{generate_timestamp()}.xlsx"

    def export(
        self,
        rows: List[CanonicalRow],
        output_path: Optional[Union[str, Path]] = None,
        validation_result=None,
        amount_verification=None
    ) -> str:
        """
        Write the review workbook.

        Args:
            rows: Canonical rows.
            output_path: Target file. If None, auto-generated.
            validation_result: Optional ValidationResult for the
                "Validation" sheet.
            amount_verification: Optional BatchVerificationResult for
                the "Amount Checks" sheet.

        Returns:
            Path to the created workbook.

        Raises:
            ExcelExportError: If the workbook cannot be written.
        """
        if output_path is None:
            path = self.output_dir / self.get_default_filename()
        else:
            path = Path(output_path)

        workbook = Workbook()
        self._create_rows_sheet(workbook, rows)
        if validation_result is not None:
            self._create_validation_sheet(workbook, validation_result)
        if amount_verification is not None:
            self._create_amount_sheet(workbook, amount_verification)

        try:
            ensure_directory(path.parent)
            workbook.save(path)
        except OSError as e:
            self.logger.error(f"Excel export failed: {e}")
            raise ExcelExportError(str(path), str(e))

        self.logger.info(f"Excel file saved: {path} ({len(rows)} rows)")
        return str(path)

    def _create_rows_sheet(self, workbook, rows: List[CanonicalRow]) -> None:
        sheet = workbook.active
        sheet.title = self.sheet_name
        headers = list(CANONICAL_COLUMNS)

        _header_style(sheet, headers, "4472C4")
        for row_num, row in enumerate(rows, 2):
            for col, value in enumerate(row.values(), 1):
                cell = sheet.cell(row=row_num, column=col, value=value)
                cell.number_format = '@'
                cell.border = THIN_BORDER

        _fit_columns(sheet, headers)
        sheet.freeze_panes = 'A2'

    def _create_validation_sheet(self, workbook, validation_result) -> None:
        sheet = workbook.create_sheet(title="Validation")
        _header_style(sheet, self.VALIDATION_COLUMNS, "C65911")

        issues = list(validation_result.errors) + list(validation_result.warnings)
        for row_num, issue in enumerate(issues, 2):
            values = [
                issue.severity.value,
                issue.field,
                issue.invoice_number or '',
                issue.row if issue.row is not None else '',
                issue.message,
            ]
            for col, value in enumerate(values, 1):
                sheet.cell(row=row_num, column=col, value=value)

        _fit_columns(sheet, self.VALIDATION_COLUMNS, max_width=80)
        sheet.freeze_panes = 'A2'

    def _create_amount_sheet(self, workbook, amount_verification) -> None:
        sheet = workbook.create_sheet(title="Amount Checks")
        _header_style(sheet, self.AMOUNT_COLUMNS, "548235")

        for row_num, result in enumerate(amount_verification.results, 2):
            values = [
                result.invoice_number,
                result.line_items_count,
                result.calculated_total,
                result.expected_total if result.expected_total is not None else '',
                result.discrepancy,
                'Valid' if result.is_valid else 'Needs Review',
                '; '.join(result.suggestions),
            ]
            for col, value in enumerate(values, 1):
                cell = sheet.cell(row=row_num, column=col, value=value)
                if col in (3, 4, 5) and value != '':
                    cell.number_format = '0.00'

        _fit_columns(sheet, self.AMOUNT_COLUMNS, max_width=80)
        sheet.freeze_panes = 'A2'
